"""
Logging helpers for the simulation. Every logger in the package lives under the
[SIMULATION_LOGGER][bullysim.simulator.log.SIMULATION_LOGGER] hierarchy so that a single call to
[setup_simulation_formatter][bullysim.simulator.log.setup_simulation_formatter] configures all of them.
"""
import logging
from typing import Callable, Optional

SIMULATION_LOGGER = "bullysim"

_installed_handlers = []


def label_node(node_id: int) -> str:
    """Label used to refer to a node in log messages."""
    return f"P{node_id}"


class SimulationFormatter(logging.Formatter):
    """
    Formatter that prefixes every record with the current simulation time, read through the clock callable.
    """

    def __init__(self, clock: Callable[[], float]):
        super().__init__("%(levelname)-8s [%(sim_time)9.3fs] %(name)s: %(message)s")
        self._clock = clock

    def format(self, record: logging.LogRecord) -> str:
        record.sim_time = self._clock()
        return super().format(record)


def setup_simulation_formatter(clock: Callable[[], float],
                               debug: bool = False,
                               log_file: Optional[str] = None) -> SimulationFormatter:
    """
    Installs handlers on the package logger. Handlers installed by a previous call are removed first.

    Args:
        clock: Returns the current simulation time in seconds
        debug: Sets the package logger to DEBUG instead of INFO
        log_file: Optional path of a file that receives the same records as the console

    Returns:
        The formatter shared by the installed handlers
    """
    logger = logging.getLogger(SIMULATION_LOGGER)
    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    formatter = SimulationFormatter(clock)

    handlers = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, mode="w"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _installed_handlers.append(handler)

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return formatter

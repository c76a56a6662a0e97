import logging
import time
from dataclasses import dataclass
from typing import Optional

from bullysim.simulator.event import EventLoop
from bullysim.simulator.handler.timer import TimerHandler
from bullysim.simulator.log import SIMULATION_LOGGER, setup_simulation_formatter


@dataclass
class SimulationConfiguration:
    """
    Configuration for a [Simulator][bullysim.simulator.simulation.Simulator]
    """

    duration: Optional[float] = None
    """Maximum simulation time in seconds. None means the simulation runs until no events are left"""

    real_time: bool = False
    """Delays event execution so that simulation time follows wall-clock time"""

    debug: bool = False
    """Installs the simulation log formatter at DEBUG level"""

    log_file: Optional[str] = None
    """If set together with debug, log records are also written to this file"""


class Simulator:
    """
    Runs the event loop. Owns the [EventLoop][bullysim.simulator.event.EventLoop] and the
    [TimerHandler][bullysim.simulator.handler.timer.TimerHandler] that protocol components use to schedule work.
    """

    def __init__(self, configuration: SimulationConfiguration = None):
        self._configuration = configuration or SimulationConfiguration()
        self.event_loop = EventLoop()
        self.timer = TimerHandler()
        self.timer.inject(self.event_loop)

        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.simulator")
        if self._configuration.debug:
            setup_simulation_formatter(self.current_time, True, self._configuration.log_file)

        self._wall_start: Optional[float] = None
        self._executed_events = 0

    def current_time(self) -> float:
        return self.event_loop.current_time

    def _is_past_duration(self, timestamp: float) -> bool:
        duration = self._configuration.duration
        return duration is not None and timestamp > duration

    def _wait_real_time(self, timestamp: float) -> None:
        if self._wall_start is None:
            self._wall_start = time.time() - self.event_loop.current_time
        remaining = (self._wall_start + timestamp) - time.time()
        if remaining > 0:
            time.sleep(remaining)

    def step_simulation(self) -> bool:
        """
        Executes the next event, advancing the clock to its timestamp.

        Returns:
            False if no event was executed because the queue is empty or the next event is past the duration
        """
        event = self.event_loop.peek_event()
        if event is None or self._is_past_duration(event.timestamp):
            return False

        if self._configuration.real_time:
            self._wait_real_time(event.timestamp)

        self.event_loop.pop_event()
        self.event_loop.current_time = event.timestamp
        self._executed_events += 1
        event.callback()
        return True

    def run_for(self, seconds: float) -> int:
        """
        Executes every event due within the next `seconds` of simulation time and then moves the clock to the end
        of that window.

        Returns:
            Number of events executed
        """
        deadline = self.event_loop.current_time + seconds
        executed = 0
        while True:
            event = self.event_loop.peek_event()
            if event is None or event.timestamp > deadline or self._is_past_duration(event.timestamp):
                break
            self.step_simulation()
            executed += 1
        self.event_loop.current_time = max(self.event_loop.current_time, deadline)
        return executed

    def start_simulation(self) -> None:
        """
        Runs the simulation until the event queue drains or the configured duration elapses.
        """
        self._logger.info("Simulation started")
        start = time.time()
        while self.step_simulation():
            pass
        self._logger.info("Simulation finished: %d events in %.3fs of simulation time (%.3fs real time)",
                          self._executed_events, self.event_loop.current_time, time.time() - start)

    def is_running(self) -> bool:
        event = self.event_loop.peek_event()
        return event is not None and not self._is_past_duration(event.timestamp)

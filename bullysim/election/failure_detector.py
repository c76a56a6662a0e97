import logging

from bullysim.election.bully_config import FailureConfig
from bullysim.election.failure_controller import FailureController
from bullysim.election.node_store import NodeStore
from bullysim.simulator.handler.timer import TimerHandler
from bullysim.simulator.log import SIMULATION_LOGGER

DETECTION_TIMER = "failure_detection"


class FailureDetector:
    """
    Periodic check for a missing leader. On every tick, if some node is ACTIVE but no ACTIVE node holds the leader
    role, the detector asks the [FailureController][bullysim.election.failure_controller.FailureController] for a
    re-election. Ticks are skipped while a re-election is already pending.

    The detector keeps at most one tick scheduled. Stopping it cancels the next tick, never an election.
    """

    def __init__(self, store: NodeStore, controller: FailureController, timer: TimerHandler,
                 config: FailureConfig = None, timer_prefix: str = ""):
        self._store = store
        self._controller = controller
        self._timer = timer
        self._config = config or FailureConfig()
        self._detection_timer = f"{timer_prefix}{DETECTION_TIMER}"
        self._running = False
        self._checking = False
        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.detector")

    def is_running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """
        Starts the periodic check. Does nothing if it is already running.

        Returns:
            True if the detector was started by this call
        """
        if self._running:
            return False
        self._running = True
        self._schedule_tick()
        self._logger.info("Automatic failure detection started, checking the coordinator every %.3fs",
                          self._config.get_detection_interval())
        return True

    def stop(self) -> bool:
        """
        Stops the periodic check.

        Returns:
            True if the detector was running
        """
        if not self._running:
            return False
        self._running = False
        self._timer.cancel_timer(self._detection_timer)
        self._logger.info("Automatic failure detection stopped")
        return True

    def check(self) -> bool:
        """
        Runs one detection pass.

        Returns:
            True if a re-election was scheduled
        """
        if self._controller.reelection_pending:
            self._logger.debug("Re-election already pending, skipping detection")
            return False

        if not self._store.active_nodes():
            return False

        leader = self._store.leader()
        if leader is not None and leader.is_active():
            return False

        self._logger.warning("Coordinator is missing, requesting a re-election")
        return self._controller.schedule_reelection(self._config.get_detection_reelection_delay())

    def _schedule_tick(self) -> None:
        self._timer.schedule_timer(self._detection_timer,
                                   self._timer.current_time() + self._config.get_detection_interval(),
                                   self._handle_timer)

    def _handle_timer(self, _timer: str) -> None:
        if self._checking:
            return
        self._checking = True
        try:
            self.check()
        finally:
            self._checking = False

        if self._running and not self._timer.is_scheduled(self._detection_timer):
            self._schedule_tick()

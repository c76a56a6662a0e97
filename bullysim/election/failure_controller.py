import logging
import random
from typing import Optional

from bullysim.election.bully_config import FailureConfig
from bullysim.election.bully_state import NodeStatus
from bullysim.election.election_engine import ElectionEngine
from bullysim.election.errors import EmptyError, NoLeaderError
from bullysim.election.events import EventDispatcher, EventKind
from bullysim.election.node_store import NodeStore
from bullysim.simulator.handler.timer import TimerHandler
from bullysim.simulator.log import SIMULATION_LOGGER, label_node

REELECTION_TIMER = "reelection"


class FailureController:
    """
    Injects failures and recoveries and decides when a new election is needed.

    When the leader fails a re-election is scheduled on the timer handler after the configured delay. The node that
    starts it is drawn at random among the nodes that are ACTIVE when the timer fires, failure detection is not
    owned by any particular node.
    """

    def __init__(self,
                 store: NodeStore,
                 engine: ElectionEngine,
                 dispatcher: EventDispatcher,
                 timer: TimerHandler,
                 config: Optional[FailureConfig] = None,
                 rng: Optional[random.Random] = None,
                 timer_prefix: str = ""):
        self._store = store
        self._engine = engine
        self._dispatcher = dispatcher
        self._timer = timer
        self._config = config or FailureConfig()
        self._rng = rng or random.Random()
        self._reelection_timer = f"{timer_prefix}{REELECTION_TIMER}"
        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.failure")

    @property
    def reelection_pending(self) -> bool:
        return self._timer.is_scheduled(self._reelection_timer)

    def fail(self, node_id: int) -> None:
        """
        Marks a node as FAILED. Failing the leader schedules a re-election, failing the last ACTIVE node emits
        LEADERLESS instead. Failing an already failed node does nothing.

        Raises:
            NotFoundError: If the node does not exist
        """
        node = self._store.get(node_id)
        if not node.is_active():
            self._logger.debug("%s is already failed", label_node(node_id))
            return

        self._store.set_status(node_id, NodeStatus.FAILED)
        was_leader = self._engine.resign(node_id)
        self._logger.warning("%s failed%s", label_node(node_id), " while coordinator" if was_leader else "")
        self._dispatcher.emit(EventKind.FAILED, node_id=node_id, was_leader=was_leader)

        if not self._store.active_nodes():
            self.cancel_reelection()
            self._logger.error("Every node has failed, the cluster has no coordinator")
            self._dispatcher.emit(EventKind.LEADERLESS)
            return

        if was_leader:
            self.schedule_reelection(self._config.get_reelection_delay())

    def recover(self, node_id: int) -> None:
        """
        Brings a FAILED node back as a follower of the current leader. Recovery never starts an election, even if
        the recovered node has a higher id than the leader. Recovering an ACTIVE node does nothing.

        Raises:
            NotFoundError: If the node does not exist
        """
        node = self._store.get(node_id)
        if node.is_active():
            self._logger.debug("%s is already active", label_node(node_id))
            return

        self._store.set_status(node_id, NodeStatus.ACTIVE)
        self._engine.enroll_follower(node_id)
        self._logger.info("%s recovered", label_node(node_id))
        self._dispatcher.emit(EventKind.RECOVERED, node_id=node_id)

    def recover_all(self) -> None:
        for node_id in self._store.failed_nodes():
            self.recover(node_id)

    def fail_leader(self) -> int:
        """
        Fails the current leader.

        Returns:
            Id of the failed leader

        Raises:
            NoLeaderError: If the cluster has no leader
        """
        leader = self._store.leader()
        if leader is None:
            raise NoLeaderError("The cluster has no coordinator to fail")
        self.fail(leader.id)
        return leader.id

    def fail_random_non_leader(self) -> int:
        """
        Fails a randomly chosen ACTIVE node that is not the leader.

        Returns:
            Id of the failed node

        Raises:
            EmptyError: If every ACTIVE node is the leader or no node is ACTIVE
        """
        eligible = [node.id for node in self._store.all() if node.is_active() and not node.is_leader()]
        if not eligible:
            raise EmptyError("There is no active non-coordinator node to fail")
        node_id = self._rng.choice(eligible)
        self.fail(node_id)
        return node_id

    def schedule_reelection(self, delay: float) -> bool:
        """
        Schedules a re-election `delay` seconds from now.

        Returns:
            False if a re-election was already pending, in which case nothing is scheduled
        """
        if self.reelection_pending:
            return False
        self._timer.schedule_timer(self._reelection_timer, self._timer.current_time() + delay, self._handle_timer)
        self._logger.debug("Re-election scheduled in %.3fs", delay)
        return True

    def cancel_reelection(self) -> bool:
        return self._timer.cancel_timer(self._reelection_timer)

    def _handle_timer(self, _timer: str) -> None:
        active = self._store.active_nodes()
        if not active:
            self._logger.warning("No active node left to start the re-election")
            return

        initiator_id = self._rng.choice(active)
        self._logger.warning("%s detected the coordinator failure and started an election", label_node(initiator_id))
        self._engine.start_election(initiator_id)

"""
Bully election cascade.

An election started by node X sends ELECTION to every ACTIVE node with a higher id. Each of them answers OK and
runs its own election, so the cascade climbs towards the highest ACTIVE id, which finds no higher node and
promotes itself. The cascade is processed as a work-list instead of recursion: a queue of nodes waiting to run
their own election, served in ascending id order. A node enters the queue at most once per cascade, which bounds
a cascade over N nodes to N election starts. A queued node that fails before its turn is dropped from the cascade.

Any higher ACTIVE node always preempts the initiator. An initiator never promotes itself while a higher ACTIVE
node exists, so every completed election leaves the highest ACTIVE id as leader.
"""
import logging
from collections import deque
from typing import Deque, Set

from bullysim.election.bully_state import NodeRole
from bullysim.election.events import EventDispatcher, EventKind, MessageType
from bullysim.election.node_store import NodeStore
from bullysim.simulator.log import SIMULATION_LOGGER, label_node


class ElectionEngine:
    """
    Runs elections over a [NodeStore][bullysim.election.node_store.NodeStore]. The engine is the only component
    that rewrites node roles and coordinators.
    """

    def __init__(self, store: NodeStore, dispatcher: EventDispatcher):
        self._store = store
        self._dispatcher = dispatcher
        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.election")

    def start_election(self, initiator_id: int) -> None:
        """
        Starts an election from `initiator_id` and runs the whole cascade synchronously.

        The call is a silent no-op if the initiator is FAILED or already taking part in an election.

        Raises:
            NotFoundError: If the initiator does not exist
        """
        initiator = self._store.get(initiator_id)
        if not initiator.is_active():
            self._logger.debug("%s is failed, ignoring election request", label_node(initiator_id))
            return
        if initiator.election_in_progress:
            self._logger.debug("%s is already in an election, ignoring election request", label_node(initiator_id))
            return

        pending: Deque[int] = deque([initiator_id])
        enqueued: Set[int] = {initiator_id}
        self._store.set_election_in_progress(initiator_id, True)

        while pending:
            candidate_id = pending.popleft()
            if not self._store.get(candidate_id).is_active():
                self._logger.debug("%s failed before running its election, skipping", label_node(candidate_id))
                self._store.set_election_in_progress(candidate_id, False)
                continue
            self._run_candidate(candidate_id, pending, enqueued)

    def _run_candidate(self, candidate_id: int, pending: Deque[int], enqueued: Set[int]) -> None:
        self._dispatcher.emit(EventKind.STARTED, node_id=candidate_id)
        self._logger.debug("%s is a candidate", label_node(candidate_id))

        higher = [node_id for node_id in self._store.active_nodes() if node_id > candidate_id]
        if not higher:
            self.promote(candidate_id)
            self._store.set_election_in_progress(candidate_id, False)
            return

        for higher_id in higher:
            self._dispatcher.emit(EventKind.MESSAGE,
                                  sender_id=candidate_id,
                                  receiver_id=higher_id,
                                  message_type=MessageType.ELECTION)
            self._dispatcher.emit(EventKind.MESSAGE,
                                  sender_id=higher_id,
                                  receiver_id=candidate_id,
                                  message_type=MessageType.OK)

            if higher_id in enqueued or self._store.get(higher_id).election_in_progress:
                continue
            enqueued.add(higher_id)
            self._store.set_election_in_progress(higher_id, True)
            pending.append(higher_id)

        self._logger.debug("%s defers to %s", label_node(candidate_id), ", ".join(map(label_node, higher)))
        self._store.set_election_in_progress(candidate_id, False)

    def promote(self, node_id: int) -> None:
        """
        Makes `node_id` the leader: demotes the previous leader, then points every ACTIVE node at the new one.
        """
        for node in self._store.all():
            if node.role is NodeRole.LEADER and node.id != node_id:
                self._store.set_role(node.id, NodeRole.FOLLOWER)

        self._store.set_role(node_id, NodeRole.LEADER)
        for active_id in self._store.active_nodes():
            self._store.set_coordinator(active_id, node_id)

        self._logger.info("%s is the new coordinator", label_node(node_id))
        self._dispatcher.emit(EventKind.ELECTED, node_id=node_id)

    def resign(self, node_id: int) -> bool:
        """
        Clears the leader role of a node, used when the leader fails.

        Returns:
            True if the node was the leader
        """
        node = self._store.get(node_id)
        if node.role is not NodeRole.LEADER:
            return False
        self._store.set_role(node_id, NodeRole.FOLLOWER)
        self._logger.debug("%s no longer holds the coordinator role", label_node(node_id))
        return True

    def enroll_follower(self, node_id: int) -> None:
        """
        Makes a node a follower of the current leader, or of nobody if the cluster has no leader. Used when a
        node recovers, recovery never triggers an election.
        """
        leader = self._store.leader()
        self._store.set_role(node_id, NodeRole.FOLLOWER)
        self._store.set_coordinator(node_id, leader.id if leader is not None else None)

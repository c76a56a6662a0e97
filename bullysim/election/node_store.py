from collections import Counter
from typing import Dict, Iterable, List, Optional

from bullysim.election.bully_config import DEFAULT_MAX_CLUSTER_SIZE, DEFAULT_MIN_CLUSTER_SIZE
from bullysim.election.bully_state import Node, NodeRole, NodeStatus
from bullysim.election.errors import ConfigError, NotFoundError


class NodeStore:
    """
    Authoritative set of node records for one cluster. The id set is fixed when the store is created; nodes only
    move between ACTIVE and FAILED and have their role and coordinator rewritten.

    The store has no side effects beyond its own records, events are emitted by the components that call it.
    """

    def __init__(self, nodes: Iterable[Node]):
        self._nodes: Dict[int, Node] = {node.id: node for node in sorted(nodes, key=lambda node: node.id)}

    @classmethod
    def create(cls,
               ids: Iterable[int],
               initial_leader_id: int,
               min_size: int = DEFAULT_MIN_CLUSTER_SIZE,
               max_size: int = DEFAULT_MAX_CLUSTER_SIZE) -> "NodeStore":
        """
        Creates the records of a new cluster. Every node starts ACTIVE and following the initial leader.

        Args:
            ids: Node ids. Must be unique integers
            initial_leader_id: Id of the node that starts as leader, must be one of `ids`
            min_size: Smallest accepted cluster size
            max_size: Largest accepted cluster size

        Raises:
            ConfigError: If ids repeat or are not integers, if the cluster size is outside `[min_size, max_size]`
                or if the initial leader is not one of the ids
        """
        ids = list(ids)

        invalid = [node_id for node_id in ids if isinstance(node_id, bool) or not isinstance(node_id, int)]
        if invalid:
            raise ConfigError(f"Node ids must be integers, got {invalid}")

        duplicates = sorted(node_id for node_id, count in Counter(ids).items() if count > 1)
        if duplicates:
            raise ConfigError(f"Node ids must be unique, repeated ids: {duplicates}")

        if not min_size <= len(ids) <= max_size:
            raise ConfigError(f"Cluster size must be between {min_size} and {max_size}, got {len(ids)}")

        if initial_leader_id not in ids:
            raise ConfigError(f"Initial leader {initial_leader_id} is not one of the node ids {sorted(ids)}")

        nodes = []
        for node_id in ids:
            role = NodeRole.LEADER if node_id == initial_leader_id else NodeRole.FOLLOWER
            nodes.append(Node(node_id, NodeStatus.ACTIVE, role, initial_leader_id))
        return cls(nodes)

    def get(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFoundError(node_id) from None

    def all(self) -> List[Node]:
        """Every node, ordered by id."""
        return list(self._nodes.values())

    def ids(self) -> List[int]:
        return list(self._nodes.keys())

    def active_nodes(self) -> List[int]:
        """Ids of the ACTIVE nodes, in ascending order."""
        return [node.id for node in self._nodes.values() if node.status is NodeStatus.ACTIVE]

    def failed_nodes(self) -> List[int]:
        return [node.id for node in self._nodes.values() if node.status is NodeStatus.FAILED]

    def leader(self) -> Optional[Node]:
        """The node holding the leader role, if any."""
        for node in self._nodes.values():
            if node.role is NodeRole.LEADER:
                return node
        return None

    def set_status(self, node_id: int, status: NodeStatus) -> None:
        self.get(node_id).status = status

    def set_role(self, node_id: int, role: NodeRole) -> None:
        self.get(node_id).role = role

    def set_coordinator(self, node_id: int, coordinator_id: Optional[int]) -> None:
        if coordinator_id is not None and coordinator_id not in self._nodes:
            raise NotFoundError(coordinator_id)
        self.get(node_id).coordinator_id = coordinator_id

    def set_election_in_progress(self, node_id: int, in_progress: bool) -> None:
        self.get(node_id).election_in_progress = in_progress

    def __len__(self) -> int:
        return len(self._nodes)

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NodeStatus(Enum):
    ACTIVE = "active"
    FAILED = "failed"


class NodeRole(Enum):
    LEADER = "leader"
    FOLLOWER = "follower"


@dataclass
class Node:
    """
    Mutable record of one process in the cluster. Records are owned by the
    [NodeStore][bullysim.election.node_store.NodeStore]; other components read them but change them only through
    the store's mutators.
    """

    id: int
    """Unique identifier, also the only attribute used to break ties in an election"""

    status: NodeStatus = NodeStatus.ACTIVE

    role: NodeRole = NodeRole.FOLLOWER

    coordinator_id: Optional[int] = None
    """Id of the node this node believes to be the leader, None before any leader is known"""

    election_in_progress: bool = False
    """Set while the node takes part in an election cascade, guards against re-entrant elections"""

    def is_active(self) -> bool:
        return self.status is NodeStatus.ACTIVE

    def is_leader(self) -> bool:
        return self.role is NodeRole.LEADER

    def snapshot(self) -> "NodeSnapshot":
        return NodeSnapshot(self.id, self.status, self.role, self.coordinator_id)


@dataclass(frozen=True)
class NodeSnapshot:
    """Immutable copy of the externally visible fields of a node."""

    id: int
    status: NodeStatus
    role: NodeRole
    coordinator_id: Optional[int]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "role": self.role.value,
            "coordinator_id": self.coordinator_id,
        }

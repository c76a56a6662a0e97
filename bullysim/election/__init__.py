"""
Bully Election for bullysim

This package simulates the Bully leader-election protocol over a fixed set of processes. The active process with
the highest id always becomes coordinator.

Key Features:

- Iterative election cascade with ELECTION/OK message events

- Leader failure with delayed, randomly initiated re-election

- Recovery that never usurps the current coordinator

- Periodic detection of a missing coordinator

- Synchronous, ordered event delivery to subscribed sinks

Example:

    from bullysim.election import BullyConfig, LoggingEventSink, configure

    config = BullyConfig()
    config.set_random_seed(42)
    config.get_failure_config().set_reelection_delay(0.8)

    cluster = configure([1, 2, 3, 4, 5], initial_leader_id=5, config=config)
    cluster.subscribe(LoggingEventSink())

    cluster.fail_leader()
    cluster.simulator.run_for(1.0)
    print(cluster.get_leader_id())  # 4
"""

from .bully_cluster import BullyCluster, configure, default_leader, sequential_ids
from .bully_config import BullyConfig, FailureConfig
from .bully_state import Node, NodeRole, NodeSnapshot, NodeStatus
from .errors import BullyError, ConfigError, EmptyError, NoLeaderError, NotFoundError
from .events import ElectionEvent, EventKind, LoggingEventSink, MessageType, RecordingEventSink


__all__ = [
    "BullyCluster",
    "configure",
    "default_leader",
    "sequential_ids",
    "BullyConfig",
    "FailureConfig",
    "Node",
    "NodeRole",
    "NodeSnapshot",
    "NodeStatus",
    "BullyError",
    "ConfigError",
    "EmptyError",
    "NoLeaderError",
    "NotFoundError",
    "ElectionEvent",
    "EventKind",
    "LoggingEventSink",
    "MessageType",
    "RecordingEventSink",
]

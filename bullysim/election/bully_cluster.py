"""
Bully Election Main Interface

Provides the main interface for the Bully simulation using the Facade pattern. A
[BullyCluster][bullysim.election.bully_cluster.BullyCluster] owns the node records of one configured cluster and
wires the election engine, the failure controller and the automatic failure detector around them. Reconfiguring
means building a new cluster with [configure][bullysim.election.bully_cluster.configure] and stopping the old one.
"""

import itertools
import logging
import random
from typing import Any, Dict, Iterable, List, Optional

from bullysim.election.bully_config import BullyConfig
from bullysim.election.bully_state import NodeSnapshot
from bullysim.election.election_engine import ElectionEngine
from bullysim.election.errors import ConfigError
from bullysim.election.events import EventDispatcher, EventSink
from bullysim.election.failure_controller import FailureController
from bullysim.election.failure_detector import FailureDetector
from bullysim.election.node_store import NodeStore
from bullysim.simulator.log import SIMULATION_LOGGER, label_node
from bullysim.simulator.simulation import Simulator

# Timer names of a cluster start with this prefix and the cluster number.
BULLY_TIMER_PREFIX = "__BULLY__"

_cluster_numbers = itertools.count()


def sequential_ids(count: int) -> List[int]:
    """Ids 1..count, the numbering used by the interactive simulation."""
    return list(range(1, count + 1))


def default_leader(ids: Iterable[int]) -> int:
    """The conventional initial coordinator of a Bully cluster: its highest id."""
    return max(ids)


def configure(ids: Iterable[int],
              initial_leader_id: int,
              min_size: Optional[int] = None,
              max_size: Optional[int] = None,
              config: Optional[BullyConfig] = None,
              simulator: Optional[Simulator] = None) -> "BullyCluster":
    """
    Creates a cluster. Nothing is created if any check fails.

    Args:
        ids: Unique integer node ids
        initial_leader_id: Id of the node that starts as coordinator
        min_size: Smallest accepted cluster size, defaults to the configuration's
        max_size: Largest accepted cluster size, defaults to the configuration's
        config: Cluster configuration, defaults to `BullyConfig()`
        simulator: Simulator used to schedule timed behaviour, a new one is created if not given

    Raises:
        ConfigError: If the configuration is invalid, the ids repeat, the size is out of range or the initial
            leader is not one of the ids
    """
    config = config or BullyConfig()
    errors = config.validate()
    if errors:
        raise ConfigError(f"Invalid configuration: {'; '.join(errors)}")

    configured_min, configured_max = config.get_cluster_size_range()
    min_size = configured_min if min_size is None else min_size
    max_size = configured_max if max_size is None else max_size
    if min_size < 1 or max_size < min_size:
        raise ConfigError(f"Invalid cluster size range [{min_size}, {max_size}]")

    store = NodeStore.create(ids, initial_leader_id, min_size, max_size)
    return BullyCluster(store, config, simulator)


class BullyCluster:
    """
    Main interface of a simulated Bully cluster.

    Main Methods:
        - fail() / fail_leader() / fail_random_non_leader(): Inject failures
        - recover() / recover_all(): Bring failed nodes back
        - start_election(): Start an election by hand
        - start_failure_detection() / stop_failure_detection(): Control the periodic leader check
        - get_snapshot() / get_statistics(): Inspect the cluster
        - subscribe() / unsubscribe(): Receive protocol events

    Example:
        # 1. Configure the cluster
        config = BullyConfig()
        config.set_random_seed(7)
        config.get_failure_config().set_reelection_delay(0.8)
        cluster = configure([1, 2, 3, 4, 5], 5, config=config)

        # 2. Listen to protocol events
        cluster.subscribe(LoggingEventSink())

        # 3. Fail the coordinator and let the re-election run
        cluster.fail_leader()
        cluster.simulator.run_for(1.0)
        assert cluster.get_leader_id() == 4

        # 4. Check the cluster periodically for a missing coordinator
        cluster.start_failure_detection()

        # 5. Stop the cluster when done
        cluster.stop()
    """

    def __init__(self, store: NodeStore, config: Optional[BullyConfig] = None, simulator: Optional[Simulator] = None):
        self.config = config or BullyConfig()
        self.simulator = simulator or Simulator()
        self._store = store

        cluster_number = next(_cluster_numbers)
        self.logger = logging.getLogger(f"{SIMULATION_LOGGER}.cluster.{cluster_number}")
        if self.config.is_logging_enabled():
            self.logger.setLevel(self.config.get_log_level())

        failure_config = self.config.get_failure_config()
        rng = random.Random(self.config.get_random_seed())
        timer_prefix = f"{BULLY_TIMER_PREFIX}{cluster_number}:"

        self._dispatcher = EventDispatcher(self.simulator.current_time)
        self._engine = ElectionEngine(store, self._dispatcher)
        self._controller = FailureController(store, self._engine, self._dispatcher, self.simulator.timer,
                                             failure_config, rng, timer_prefix)
        self._detector = FailureDetector(store, self._controller, self.simulator.timer, failure_config,
                                         timer_prefix)

        leader = store.leader()
        self.logger.info("Cluster initialized with %d nodes, %s is the initial coordinator",
                         len(store), label_node(leader.id) if leader is not None else "nobody")

    def subscribe(self, sink: EventSink) -> None:
        """
        Registers a callable that receives every protocol event, synchronously and in the order events occur.
        """
        self._dispatcher.subscribe(sink)

    def unsubscribe(self, sink: EventSink) -> bool:
        return self._dispatcher.unsubscribe(sink)

    def fail(self, node_id: int) -> None:
        """
        Fails a node. See [FailureController.fail][bullysim.election.failure_controller.FailureController.fail].

        Raises:
            NotFoundError: If the node does not exist
        """
        self._controller.fail(node_id)

    def fail_leader(self) -> int:
        """
        Fails the current coordinator.

        Returns:
            Id of the failed coordinator

        Raises:
            NoLeaderError: If the cluster has no coordinator
        """
        return self._controller.fail_leader()

    def fail_random_non_leader(self) -> int:
        """
        Fails a random active node other than the coordinator.

        Returns:
            Id of the failed node

        Raises:
            EmptyError: If no such node exists
        """
        return self._controller.fail_random_non_leader()

    def recover(self, node_id: int) -> None:
        self._controller.recover(node_id)

    def recover_all(self) -> None:
        """Recovers every failed node. Recovered nodes follow the current coordinator."""
        self._controller.recover_all()

    def start_election(self, node_id: int) -> None:
        """
        Starts an election from `node_id` and runs it to completion.

        Raises:
            NotFoundError: If the node does not exist
        """
        self._engine.start_election(node_id)

    def start_failure_detection(self) -> bool:
        return self._detector.start()

    def stop_failure_detection(self) -> bool:
        return self._detector.stop()

    def is_failure_detection_running(self) -> bool:
        return self._detector.is_running()

    def get_snapshot(self) -> List[NodeSnapshot]:
        """
        Returns:
            A snapshot of every node, ordered by id
        """
        return [node.snapshot() for node in self._store.all()]

    def get_leader_id(self) -> Optional[int]:
        """
        Returns:
            Id of the node holding the coordinator role, or None if the cluster has none
        """
        leader = self._store.leader()
        return leader.id if leader is not None else None

    def is_leader(self, node_id: int) -> bool:
        return self._store.get(node_id).is_leader()

    def get_node_ids(self) -> List[int]:
        return self._store.ids()

    def get_active_nodes(self) -> List[int]:
        return self._store.active_nodes()

    def get_failed_nodes(self) -> List[int]:
        return self._store.failed_nodes()

    def is_reelection_pending(self) -> bool:
        return self._controller.reelection_pending

    def get_statistics(self) -> Dict[str, Any]:
        """
        Returns:
            Dictionary with the number of active and failed nodes and the current coordinator
        """
        return {
            "total_nodes": len(self._store),
            "active_nodes": len(self._store.active_nodes()),
            "failed_nodes": len(self._store.failed_nodes()),
            "leader_id": self.get_leader_id(),
            "reelection_pending": self._controller.reelection_pending,
            "failure_detection_running": self._detector.is_running(),
        }

    def get_configuration(self) -> Dict[str, Any]:
        return self.config.to_dict()

    def stop(self) -> None:
        """
        Stops the failure detector and cancels a pending re-election. Node records are left as they are.
        """
        self._detector.stop()
        self._controller.cancel_reelection()
        self.logger.info("Cluster stopped")

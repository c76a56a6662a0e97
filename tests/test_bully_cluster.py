import logging
import unittest

from bullysim.election import (
    BullyConfig, ConfigError, EventKind, LoggingEventSink, MessageType, NodeRole, NodeStatus, NotFoundError,
    RecordingEventSink, configure, default_leader, sequential_ids
)
from bullysim.simulator.simulation import Simulator


def seeded_config(seed: int = 0) -> BullyConfig:
    config = BullyConfig()
    config.set_random_seed(seed)
    config.set_logging(False)
    return config


class TestConfigure(unittest.TestCase):
    def test_size_below_minimum(self):
        with self.assertRaises(ConfigError):
            configure({1, 2}, 1, min_size=3, max_size=10)

    def test_duplicate_ids(self):
        with self.assertRaises(ConfigError):
            configure([1, 1, 2], 2, 3, 10)

    def test_unknown_initial_leader(self):
        with self.assertRaises(ConfigError):
            configure([1, 2, 3], 5)

    def test_invalid_size_range(self):
        with self.assertRaises(ConfigError):
            configure([1, 2, 3], 3, min_size=4, max_size=2)

    def test_invalid_configuration(self):
        config = BullyConfig()
        config.get_failure_config().set_detection_interval(0)
        with self.assertRaises(ConfigError):
            configure([1, 2, 3], 3, config=config)

    def test_config_error_is_value_error(self):
        with self.assertRaises(ValueError):
            configure([1, 2], 2)

    def test_configured_range_is_used_by_default(self):
        config = seeded_config()
        config.set_cluster_size_range(1, 2)
        cluster = configure([1, 2], 2, config=config)
        self.assertEqual(cluster.get_node_ids(), [1, 2])
        with self.assertRaises(ConfigError):
            configure([1, 2, 3], 3, config=config)

    def test_helpers(self):
        ids = sequential_ids(4)
        self.assertEqual(ids, [1, 2, 3, 4])
        self.assertEqual(default_leader(ids), 4)


class TestBullyCluster(unittest.TestCase):
    def setUp(self):
        self.cluster = configure([1, 2, 3, 4, 5], 5, config=seeded_config())
        self.sink = RecordingEventSink()
        self.cluster.subscribe(self.sink)

    def test_scenario_cascading_leader_failures(self):
        for expected_leader in [4, 3, 2, 1]:
            self.cluster.fail(self.cluster.get_leader_id())
            self.cluster.simulator.run_for(1)
            self.assertEqual(self.cluster.get_leader_id(), expected_leader)

        self.assertEqual(self.cluster.get_active_nodes(), [1])
        self.assertTrue(self.cluster.is_leader(1))
        self.sink.clear()

        self.cluster.fail(1)
        self.cluster.simulator.run_for(5)

        self.assertEqual(len(self.sink.of_kind(EventKind.LEADERLESS)), 1)
        self.assertEqual(self.sink.of_kind(EventKind.ELECTED), [])
        self.assertIsNone(self.cluster.get_leader_id())

    def test_scenario_recover_active_node_then_fail_leader(self):
        cluster = configure([1, 2, 3], 3, config=seeded_config())
        sink = RecordingEventSink()
        cluster.subscribe(sink)

        cluster.recover(2)
        self.assertEqual(sink.events, [])

        cluster.fail(3)
        cluster.simulator.run_for(1)
        self.assertEqual(cluster.get_leader_id(), 2)

    def test_convergence_with_random_failures(self):
        for seed in range(10):
            with self.subTest(seed=seed):
                cluster = configure(sequential_ids(8), 8, config=seeded_config(seed))
                cluster.fail_random_non_leader()
                cluster.fail_random_non_leader()
                cluster.fail_leader()
                cluster.simulator.run_for(1)

                self.assertEqual(cluster.get_leader_id(), max(cluster.get_active_nodes()))
                for node in cluster.get_snapshot():
                    if node.status is NodeStatus.ACTIVE:
                        self.assertEqual(node.coordinator_id, cluster.get_leader_id())

    def test_manual_election_reaches_highest_active_node(self):
        self.cluster.fail(5)
        self.cluster.start_election(1)

        self.assertEqual(self.cluster.get_leader_id(), 4)
        self.assertLessEqual(len(self.sink.of_kind(EventKind.STARTED)), 5)

    def test_manual_election_unknown_node(self):
        with self.assertRaises(NotFoundError):
            self.cluster.start_election(99)
        with self.assertRaises(NotFoundError):
            self.cluster.fail(99)

    def test_recovered_higher_node_does_not_usurp(self):
        self.cluster.fail(5)
        self.cluster.simulator.run_for(1)
        self.cluster.recover_all()
        self.cluster.simulator.run_for(10)

        self.assertEqual(self.cluster.get_leader_id(), 4)
        snapshot = {node.id: node for node in self.cluster.get_snapshot()}
        self.assertEqual(snapshot[5].role, NodeRole.FOLLOWER)
        self.assertEqual(snapshot[5].coordinator_id, 4)

    def test_snapshot(self):
        self.cluster.fail(2)
        snapshot = self.cluster.get_snapshot()

        self.assertEqual([node.id for node in snapshot], [1, 2, 3, 4, 5])
        self.assertEqual(snapshot[1].status, NodeStatus.FAILED)
        self.assertEqual(snapshot[4].role, NodeRole.LEADER)
        self.assertEqual(snapshot[0].coordinator_id, 5)

    def test_events_follow_cascade_order(self):
        self.cluster.fail(5)
        self.cluster.simulator.run_for(1)

        kinds = [event.kind for event in self.sink.events]
        self.assertEqual(kinds[0], EventKind.FAILED)
        self.assertEqual(kinds[1], EventKind.STARTED)
        self.assertEqual(kinds[-2], EventKind.STARTED)
        self.assertEqual(kinds[-1], EventKind.ELECTED)

        for event in self.sink.of_kind(EventKind.MESSAGE):
            if event.message_type is MessageType.ELECTION:
                self.assertLess(event.sender_id, event.receiver_id)
            else:
                self.assertGreater(event.sender_id, event.receiver_id)

    def test_unsubscribe(self):
        self.assertTrue(self.cluster.unsubscribe(self.sink))
        self.assertFalse(self.cluster.unsubscribe(self.sink))
        self.cluster.fail(1)
        self.assertEqual(self.sink.events, [])

    def test_logging_sink(self):
        self.cluster.subscribe(LoggingEventSink())
        with self.assertLogs("bullysim.eventlog", level="INFO") as logs:
            self.cluster.fail(5)
            self.cluster.simulator.run_for(1)

        self.assertIn("P5 failed (coordinator)", logs.output[0])
        self.assertIn("P4 was elected coordinator", logs.output[-1])

    def test_failure_detection_controls(self):
        self.assertTrue(self.cluster.start_failure_detection())
        self.assertFalse(self.cluster.start_failure_detection())
        self.assertTrue(self.cluster.is_failure_detection_running())
        self.assertTrue(self.cluster.stop_failure_detection())
        self.assertFalse(self.cluster.is_failure_detection_running())

    def test_statistics(self):
        self.cluster.fail(1)
        self.cluster.fail_leader()

        statistics = self.cluster.get_statistics()
        self.assertEqual(statistics["total_nodes"], 5)
        self.assertEqual(statistics["active_nodes"], 3)
        self.assertEqual(statistics["failed_nodes"], 2)
        self.assertIsNone(statistics["leader_id"])
        self.assertTrue(statistics["reelection_pending"])

    def test_stop_cancels_pending_reelection(self):
        self.cluster.start_failure_detection()
        self.cluster.fail_leader()
        self.cluster.stop()
        self.cluster.simulator.run_for(10)

        self.assertIsNone(self.cluster.get_leader_id())
        self.assertFalse(self.cluster.is_reelection_pending())
        self.assertEqual(self.sink.of_kind(EventKind.ELECTED), [])

    def test_node_failed_by_sink_during_cascade_is_not_elected(self):
        cluster = configure([1, 2, 3, 4], 4, config=seeded_config())
        cluster.fail(4)
        recorder = RecordingEventSink()

        def fail_on_answer(event):
            if event.kind is EventKind.MESSAGE and event.message_type is MessageType.OK and event.sender_id == 3:
                cluster.fail(3)

        cluster.subscribe(fail_on_answer)
        cluster.subscribe(recorder)
        cluster.start_election(1)

        self.assertEqual(cluster.get_leader_id(), 2)
        self.assertFalse(cluster.is_leader(3))
        self.assertEqual([event.node_id for event in recorder.of_kind(EventKind.ELECTED)], [2])
        self.assertNotIn(3, [event.node_id for event in recorder.of_kind(EventKind.STARTED)])

    def test_configuration(self):
        configuration = self.cluster.get_configuration()
        self.assertEqual(configuration, self.cluster.config.to_dict())
        self.assertEqual(configuration["random_seed"], 0)

    def test_logging_level_is_per_cluster(self):
        package_level = logging.getLogger("bullysim").level
        verbose_config = seeded_config()
        verbose_config.set_logging(True, "DEBUG")
        quiet_config = seeded_config()
        quiet_config.set_logging(True, "WARNING")

        verbose = configure([1, 2, 3], 3, config=verbose_config)
        quiet = configure([1, 2, 3], 3, config=quiet_config)

        self.assertNotEqual(verbose.logger.name, quiet.logger.name)
        self.assertEqual(verbose.logger.level, logging.DEBUG)
        self.assertEqual(quiet.logger.level, logging.WARNING)
        self.assertEqual(logging.getLogger("bullysim").level, package_level)

    def test_shared_simulator(self):
        simulator = Simulator()
        first = configure([1, 2, 3], 3, config=seeded_config(), simulator=simulator)
        second = configure([10, 20, 30], 30, config=seeded_config(), simulator=simulator)

        first.fail_leader()
        second.fail_leader()
        simulator.run_for(1)

        self.assertEqual(first.get_leader_id(), 2)
        self.assertEqual(second.get_leader_id(), 20)


if __name__ == "__main__":
    unittest.main()

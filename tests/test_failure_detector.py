import random
import unittest

from bullysim.election import EventKind, FailureConfig, RecordingEventSink
from bullysim.election.election_engine import ElectionEngine
from bullysim.election.events import EventDispatcher
from bullysim.election.failure_controller import FailureController
from bullysim.election.failure_detector import DETECTION_TIMER, FailureDetector
from bullysim.election.node_store import NodeStore
from bullysim.simulator.simulation import Simulator


class TestFailureDetector(unittest.TestCase):
    def setUp(self):
        self.simulator = Simulator()
        self.store = NodeStore.create([1, 2, 3], 3)
        dispatcher = EventDispatcher(self.simulator.current_time)
        self.sink = RecordingEventSink()
        dispatcher.subscribe(self.sink)

        config = FailureConfig()
        config.set_reelection_delay(0.8)
        config.set_detection_interval(3)
        config.set_detection_reelection_delay(0.5)

        self.engine = ElectionEngine(self.store, dispatcher)
        self.controller = FailureController(self.store, self.engine, dispatcher, self.simulator.timer, config,
                                            random.Random(1))
        self.detector = FailureDetector(self.store, self.controller, self.simulator.timer, config)

    def test_start_is_idempotent(self):
        self.assertTrue(self.detector.start())
        self.assertFalse(self.detector.start())
        self.assertTrue(self.detector.is_running())
        self.assertEqual(len(self.simulator.event_loop), 1)

    def test_ticks_repeat_while_running(self):
        self.detector.start()
        self.simulator.run_for(10)
        self.assertTrue(self.simulator.timer.is_scheduled(DETECTION_TIMER))

    def test_stop_cancels_next_tick(self):
        self.detector.start()
        self.assertTrue(self.detector.stop())
        self.assertFalse(self.detector.stop())
        self.assertFalse(self.simulator.timer.is_scheduled(DETECTION_TIMER))

        self.controller.fail(1)
        self.controller.fail(2)
        self.controller.fail(3)
        self.controller.recover_all()
        self.simulator.run_for(10)
        self.assertEqual(self.sink.of_kind(EventKind.ELECTED), [])

    def test_healthy_cluster_needs_no_election(self):
        self.assertFalse(self.detector.check())
        self.detector.start()
        self.simulator.run_for(10)
        self.assertEqual(self.sink.events, [])

    def test_recovery_from_leaderless_cluster(self):
        self.controller.fail(1)
        self.controller.fail(2)
        self.controller.fail(3)
        self.controller.recover_all()
        self.assertIsNone(self.store.leader())

        self.detector.start()
        self.simulator.run_for(3)
        self.assertTrue(self.controller.reelection_pending)

        self.simulator.run_for(1)
        self.assertEqual(self.store.leader().id, 3)
        self.assertEqual(self.sink.of_kind(EventKind.ELECTED)[0].timestamp, 3.5)

    def test_skips_when_reelection_pending(self):
        self.controller.fail(3)
        self.assertTrue(self.controller.reelection_pending)
        self.assertFalse(self.detector.check())

        self.detector.start()
        self.simulator.run_for(10)
        self.assertEqual(len(self.sink.of_kind(EventKind.ELECTED)), 1)
        self.assertEqual(self.store.leader().id, 2)

    def test_leaderless_cluster_is_left_alone(self):
        self.controller.fail(1)
        self.controller.fail(2)
        self.controller.fail(3)
        self.assertFalse(self.detector.check())


if __name__ == "__main__":
    unittest.main()

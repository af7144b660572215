"""
Unit tests for the consumer agent and the actor layer.
"""

import tempfile
import unittest
from pathlib import Path

import numpy as np

from dominoes.actors import (
    Actor,
    ActorFailure,
    AssignedStartTime,
    ConsumptionReply,
    CoverageReply,
    CoverageRequest,
    Receiver,
)
from dominoes.consumer import ConsumerAgent, ConsumerState, failed_consumers
from dominoes.data_structures import TimeInterval
from dominoes.exceptions import AgentNotReadyError


class Collector(Receiver):
    """Receiver keeping every reply it handles."""

    def __init__(self):
        super().__init__()
        self.replies = []
        self.register_handler(ConsumptionReply, self._keep)
        self.register_handler(CoverageReply, self._keep)

    def _keep(self, message, sender):
        self.replies.append(message)


class TestConsumerAgent(unittest.TestCase):
    """Test consumption and coverage computations."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.profile = Path(self.tmp.name) / "washing_machine.csv"
        # 2 kWh drawn evenly over one hour
        self.profile.write_text("0,0.0\n1800,1.0\n3600,2.0\n")
        self.samples = [0, 1800, 3600, 5400, 7200]
        self.agent = ConsumerAgent("WM", 0, 3600, str(self.profile), self.samples)
        self.assertTrue(self.agent.wait_until_loaded(5.0))

    def tearDown(self):
        self.agent.stop(5.0)
        self.tmp.cleanup()

    def test_loaded(self):
        """Test that the profile is loaded after construction."""
        self.assertEqual(self.agent.state, ConsumerState.READY)
        self.assertEqual(self.agent.duration, 3600)
        self.assertIsNone(self.agent.error)

    def test_consumption_inside_window(self):
        """Test consumption for samples inside the load window."""
        consumption = self.agent.compute_consumption(1800)
        np.testing.assert_allclose(consumption, [0.0, 0.0, 1.0, 1.0, 0.0])

    def test_consumption_same_length_as_samples(self):
        """Test that one value is returned per sample."""
        for start in (0, 900, 1800, 3600):
            self.assertEqual(len(self.agent.compute_consumption(start)), len(self.samples))

    def test_total_energy_conserved(self):
        """The full profile energy is credited even between samples."""
        samples = [0, 1000, 5000]
        consumption = self.agent.compute_consumption(0, samples)
        self.assertAlmostEqual(consumption[1], 1000 / 1800)
        self.assertAlmostEqual(consumption.sum(), 2.0)

    def test_nothing_after_end(self):
        """Test that nothing is consumed after the end of the load."""
        samples = [0, 1800, 3600, 5400, 7200, 9000]
        consumption = self.agent.compute_consumption(0, samples)
        np.testing.assert_allclose(consumption[3:], 0.0)

    def test_coverage(self):
        """Test coverage from earliest start to latest end."""
        self.assertEqual(self.agent.compute_coverage(), TimeInterval(0, 7200))

    def test_start_interval(self):
        """Test the allowed start window."""
        self.assertEqual(self.agent.start_interval, TimeInterval(0, 3600))
        self.assertEqual(self.agent.real_start_time(600), 600)

    def test_reads_shared_samples(self):
        """Samples appended by the owner are seen by the agent."""
        self.samples.append(9000)
        self.assertEqual(len(self.agent.compute_consumption(0)), 6)

    def test_consumption_message(self):
        """Test the reply to an assigned start time."""
        collector = Collector()
        self.agent.send(AssignedStartTime(1800), collector)

        self.assertEqual(collector.wait(1, timeout=5.0), 1)
        reply = collector.replies[0]
        self.assertEqual(reply.consumer_id, "WM")
        np.testing.assert_allclose(reply.values, [0.0, 0.0, 1.0, 1.0, 0.0])

    def test_coverage_message(self):
        """Test the reply to a coverage request."""
        collector = Collector()
        self.agent.send(CoverageRequest(), collector)

        self.assertEqual(collector.wait(1, timeout=5.0), 1)
        self.assertEqual(collector.replies[0].interval, TimeInterval(0, 7200))

    def test_profile_not_starting_at_zero(self):
        """Test a profile whose first sample is after zero."""
        late = Path(self.tmp.name) / "late.csv"
        late.write_text("600,0.5\n1200,1.0\n")
        agent = ConsumerAgent("L", 0, 10, str(late), [0, 300, 1200])
        try:
            self.assertTrue(agent.wait_until_loaded(5.0))
            consumption = agent.compute_consumption(0)
            self.assertAlmostEqual(consumption.sum(), 1.0)
        finally:
            agent.stop(5.0)


class TestFailedConsumer(unittest.TestCase):

    def setUp(self):
        self.agent = ConsumerAgent("BAD", 0, 100, "/nonexistent/profile.csv", [0, 60])
        self.agent.wait_until_loaded(5.0)

    def tearDown(self):
        self.agent.stop(5.0)

    def test_failed_state(self):
        """Test that an unreadable profile fails the agent."""
        self.assertEqual(self.agent.state, ConsumerState.FAILED)
        self.assertIsNotNone(self.agent.error)
        self.assertEqual(failed_consumers([self.agent]), [self.agent])

    def test_requests_rejected(self):
        """Test that a failed agent rejects computations."""
        with self.assertRaises(AgentNotReadyError):
            self.agent.compute_consumption(0)
        with self.assertRaises(AgentNotReadyError):
            self.agent.compute_coverage()

    def test_failure_reaches_waiting_receiver(self):
        """Test that a failed computation reaches the waiting receiver."""
        collector = Collector()
        self.agent.send(AssignedStartTime(0), collector)
        with self.assertRaises(AgentNotReadyError):
            collector.wait(1, timeout=5.0)


class TestActor(unittest.TestCase):

    def test_messages_handled_in_order(self):
        """Test that messages are handled in sending order."""
        handled = []
        actor = Actor("echo")
        actor.register_handler(int, lambda message, sender: handled.append(message))
        actor.start()
        for i in range(10):
            actor.send(i)
        actor.stop(5.0)

        self.assertEqual(handled, list(range(10)))
        self.assertFalse(actor.running)

    def test_handler_error_forwarded(self):
        """Test that a handler error is raised on the reply side."""
        def fail(message, sender):
            raise ValueError("broken")

        actor = Actor("failing")
        actor.register_handler(str, fail)
        actor.start()

        receiver = Receiver()
        actor.send("go", receiver)
        with self.assertRaises(ValueError):
            receiver.wait(1, timeout=5.0)
        actor.stop(5.0)

    def test_receiver_wait_may_return_fewer(self):
        """Test waiting for more messages than arrive."""
        receiver = Receiver()
        receiver.register_handler(int, lambda message, sender: None)
        receiver.send(1)
        self.assertEqual(receiver.wait(3, timeout=0.05), 1)

    def test_receiver_discards_pending(self):
        """Test that pending messages are dropped unhandled."""
        handled = []
        receiver = Receiver()
        receiver.register_handler(int, lambda message, sender: handled.append(message))
        receiver.send(1)
        receiver.send(2)

        self.assertEqual(receiver.discard_pending(), 2)
        self.assertEqual(receiver.wait(1, timeout=0.05), 0)
        self.assertEqual(handled, [])

    def test_actor_failure_message(self):
        """Test failure message fields."""
        failure = ActorFailure("a", RuntimeError("x"))
        self.assertEqual(failure.actor, "a")


if __name__ == '__main__':
    unittest.main()

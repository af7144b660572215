"""
Tests for the energy objective accumulator and the time axis extension.
"""

import itertools

import numpy as np
import pytest

from dominoes.actors import Address, ConsumptionReply
from dominoes.data_structures import TimeInterval
from dominoes.energy_objective import EnergyObjective, ObjectiveState
from dominoes.exceptions import InvariantViolationError
from dominoes.utils import backward_sample_times, first_differences, forward_sample_times


class ReplyingAgent(Address):
    """Answers every start time with a fixed consumption vector."""

    def __init__(self, name, values):
        self.name = name
        self.values = values

    def send(self, message, reply_to=None):
        reply_to.send(ConsumptionReply(self.name, self.values), self)


class SilentAgent(Address):

    def send(self, message, reply_to=None):
        pass


class TestProductionValues:

    def setup_method(self):
        self.samples = [0, 3600, 7200]
        self.objective = EnergyObjective(self.samples)

    def test_first_differences(self):
        """Test interval values from cumulative values."""
        self.objective.set_production_values([1.0, 3.0, 6.0])
        assert self.objective.interval_production == [1.0, 2.0, 3.0]

    def test_length_mismatch(self):
        """Test rejection of production values of the wrong length."""
        with pytest.raises(InvariantViolationError):
            self.objective.set_production_values([1.0, 2.0])

    def test_accumulate_length_mismatch(self):
        """Test rejection of consumption vectors of the wrong length."""
        self.objective.set_production_values([0.0, 0.0, 0.0])
        with pytest.raises(InvariantViolationError):
            self.objective.accumulate([1.0, 2.0])

    def test_accumulate_is_commutative(self):
        """Test that the accumulation order does not matter."""
        a = np.array([0.5, 1.0, 0.0])
        b = np.array([0.0, 2.0, 1.5])
        c = np.array([1.0, 0.0, 0.25])

        self.objective.set_production_values([0.0, 0.0, 0.0])
        for values in (a, b, c):
            self.objective.accumulate(values)
        forward = self.objective.total_consumption

        self.objective.reset()
        for values in (c, a, b):
            self.objective.accumulate(values)
        shuffled = self.objective.total_consumption

        np.testing.assert_allclose(forward, shuffled)
        np.testing.assert_allclose(forward, a + b + c)

    def test_reset_clears(self):
        """Test that reset clears the accumulator."""
        self.objective.set_production_values([0.0, 0.0, 0.0])
        self.objective.accumulate([1.0, 1.0, 1.0])
        self.objective.reset()
        np.testing.assert_array_equal(self.objective.total_consumption, [0.0, 0.0, 0.0])
        assert self.objective.state is ObjectiveState.IDLE


class TestExtendTimeAxis:

    def setup_method(self):
        self.samples = [3600, 7200, 10800]
        self.objective = EnergyObjective(self.samples)
        self.objective.set_production_values([1.0, 2.0, 4.0])

    def assert_consistent(self):
        samples = self.objective.production_samples
        assert len(samples) == len(self.objective.interval_production)
        assert len(samples) == len(self.objective.total_consumption)
        assert all(later > earlier for earlier, later in zip(samples, samples[1:]))

    def test_covers_both_ends(self):
        """Test extension before the first and after the last sample."""
        self.objective.extend_time_axis(TimeInterval(0, 20000))

        samples = self.objective.production_samples
        assert samples == [0, 3600, 7200, 10800, 14400, 18000, 21600]
        assert samples[0] <= 0 and samples[-1] >= 20000
        assert self.objective.interval_production == [0.0, 1.0, 1.0, 2.0, 0.0, 0.0, 0.0]
        self.assert_consistent()

    def test_covers_three_spacings_before(self):
        """Test prepending samples for a coverage three spacings early."""
        samples = [36000, 39600, 43200]
        objective = EnergyObjective(samples)
        objective.set_production_values([1.0, 2.0, 3.0])
        prepended = backward_sample_times(36000, 3600, 25200)

        objective.extend_time_axis(TimeInterval(25200, 43200))

        assert objective.production_samples[0] <= 25200
        assert objective.production_samples[:len(prepended)] == prepended
        assert len(objective.production_samples) == 3 + len(prepended)
        assert len(objective.interval_production) == 3 + len(prepended)
        assert len(objective.total_consumption) == 3 + len(prepended)
        assert objective.interval_production[len(prepended):] == [1.0, 1.0, 1.0]

    def test_shared_list_grows(self):
        """Test that the shared sample list is extended in place."""
        self.objective.extend_time_axis(TimeInterval(3600, 15000))
        assert self.samples == [3600, 7200, 10800, 14400, 18000]

    def test_idempotent(self):
        """Test that repeating an extension changes nothing."""
        self.objective.extend_time_axis(TimeInterval(1000, 15000))
        first = self.objective.production_samples
        self.objective.extend_time_axis(TimeInterval(1000, 15000))
        assert self.objective.production_samples == first
        self.assert_consistent()

    def test_inside_coverage_unchanged(self):
        """Test that a covered interval leaves the axis unchanged."""
        self.objective.extend_time_axis(TimeInterval(5000, 9000))
        assert self.objective.production_samples == [3600, 7200, 10800]

    def test_never_negative(self):
        """Test that no negative sample times are created."""
        objective = EnergyObjective([1000, 3000, 5000])
        objective.set_production_values([0.0, 0.0, 0.0])
        objective.extend_time_axis(TimeInterval(0, 5000))

        samples = objective.production_samples
        assert samples[0] == 0
        assert min(samples) >= 0
        assert len(samples) == len(objective.interval_production)

    def test_single_sample_timeline(self):
        """Test extension of a timeline with one sample."""
        objective = EnergyObjective([3600])
        objective.set_production_values([1.0])
        objective.extend_time_axis(TimeInterval(0, 7200))
        assert objective.production_samples == [0, 3600, 7200]
        assert objective.interval_production == [0.0, 1.0, 0.0]


class TestEvaluationCycle:

    def setup_method(self):
        self.samples = [0, 3600, 7200]
        self.objective = EnergyObjective(self.samples)
        self.objective.set_production_values([0.0, 0.0, 0.0])

    def test_value_constant_grid_energy(self):
        """Test the grid energy for constant consumption."""
        self.objective.accumulate([1.0, 1.0, 1.0])
        assert self.objective.value() == pytest.approx(7200.0)

    def test_production_covers_consumption(self):
        """Test zero grid energy when production exceeds consumption."""
        objective = EnergyObjective([0, 3600, 7200])
        objective.set_production_values([5.0, 10.0, 15.0])
        objective.accumulate([1.0, 1.0, 1.0])
        assert objective.value() == pytest.approx(0.0)

    def test_dispatch_and_wait(self):
        """Test one complete evaluation cycle."""
        agents = [ReplyingAgent("A", [1.0, 0.0, 0.0]), ReplyingAgent("B", [0.0, 0.0, 1.0])]
        self.objective.dispatch(agents, [0, 0])
        assert self.objective.state is ObjectiveState.AWAITING
        assert self.objective.outstanding == 2

        self.objective.wait_for_all()
        assert self.objective.state is ObjectiveState.REDUCED
        assert self.objective.outstanding == 0
        np.testing.assert_allclose(self.objective.total_consumption, [1.0, 0.0, 1.0])

    def test_value_independent_of_reply_order(self):
        """Test that the grid energy does not depend on the arrival order."""
        objective = EnergyObjective([0, 3600, 7200])
        objective.set_production_values([0.0, 1.0, 1.0])
        agents = [
            ReplyingAgent("A", [1.0, 0.5, 0.0]),
            ReplyingAgent("B", [0.0, 1.0, 0.5]),
            ReplyingAgent("C", [0.5, 0.0, 1.0]),
        ]

        values = []
        for order in itertools.permutations(agents):
            objective.reset()
            objective.dispatch(list(order), [0, 0, 0])
            objective.wait_for_all()
            values.append(objective.value())

        assert values[0] > 0.0
        assert values == pytest.approx([values[0]] * len(values))

    def test_reset_drops_stale_replies(self):
        """Test that replies left from an aborted cycle are not counted."""
        self.objective.send(ConsumptionReply("late", [5.0, 5.0, 5.0]))
        self.objective.reset()

        self.objective.dispatch([ReplyingAgent("A", [0.0, 0.0, 1.0])], [0])
        self.objective.wait_for_all()
        np.testing.assert_allclose(self.objective.total_consumption, [0.0, 0.0, 1.0])

    def test_value_while_awaiting(self):
        """Test that the value is unavailable while replies are outstanding."""
        self.objective.dispatch([SilentAgent()], [0])
        with pytest.raises(InvariantViolationError):
            self.objective.value()

    def test_dispatch_count_mismatch(self):
        """Test rejection of mismatched agents and start times."""
        with pytest.raises(InvariantViolationError):
            self.objective.dispatch([SilentAgent()], [0, 1])


class TestAxisArithmetic:

    def test_backward(self):
        """Test backward sample times."""
        assert backward_sample_times(10000, 600, 8000) == [7600, 8200, 8800, 9400]

    def test_backward_nothing_to_cover(self):
        """Test that a covered start needs no samples."""
        assert backward_sample_times(100, 10, 100) == []

    def test_forward(self):
        """Test forward sample times."""
        assert forward_sample_times(10800, 3600, 20000) == [14400, 18000, 21600]

    def test_forward_exact_multiple(self):
        """Test forward samples for an exact multiple of the spacing."""
        assert forward_sample_times(0, 10, 20) == [10, 20, 30]

    def test_first_differences(self):
        """Test interval values from cumulative values."""
        assert first_differences([1.0, 3.0, 6.0]) == [1.0, 2.0, 3.0]
        assert first_differences([]) == []

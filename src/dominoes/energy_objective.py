"""
Energy objective: reduces the consumers' replies to the grid energy.

The EnergyObjective owns the production timeline, i.e. the production sample
times and the energy produced in each interval, and the accumulator of the
total consumption on the same timeline. One objective evaluation is a cycle

    reset() → dispatch(agents, start_times) → wait_for_all() → value()

where the consumers' replies are added to the accumulator in whatever order
they arrive. Addition is commutative, so the arrival order does not change
the result.

Before the first evaluation the timeline is extended once so that it covers
every time a consumer can draw energy (see extend_time_axis).
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from .actors import (
    Address,
    AssignedStartTime,
    ConsumptionReply,
    CoverageReply,
    CoverageRequest,
    Receiver,
)
from .data_structures import InterpolationType, TimeInterval
from .exceptions import InvariantViolationError
from .interpolation import Interpolation
from .utils import backward_sample_times, first_differences, forward_sample_times


logger = logging.getLogger(__name__)


class ObjectiveState(Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    REDUCED = "reduced"


class EnergyObjective(Receiver):
    """
    Accumulator of consumption against production on a shared timeline.

    The production_samples list is shared with the consumer agents, which
    read it while computing their consumption. It is only modified while
    no evaluation is in flight.

    Attributes:
        production_samples: Sorted production sample times (POSIX seconds)
        interval_production: Energy produced up to each sample since the
            previous one (the first value is the cumulative production at
            the first sample)
        total_consumption: Consumption accumulated in the current cycle
    """

    def __init__(self, production_samples: List[int]):
        super().__init__()
        self._production_samples = production_samples
        self._interval_production: List[float] = []
        self._total_consumption = np.zeros(len(production_samples))
        self._outstanding = 0
        self._state = ObjectiveState.IDLE

        self.register_handler(ConsumptionReply, self._on_consumption)
        self.register_handler(CoverageReply, self._on_coverage)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def production_samples(self) -> List[int]:
        return list(self._production_samples)

    @property
    def interval_production(self) -> List[float]:
        return list(self._interval_production)

    @property
    def total_consumption(self) -> np.ndarray:
        return self._total_consumption.copy()

    @property
    def outstanding(self) -> int:
        """Replies still expected in the current cycle."""
        return self._outstanding

    @property
    def state(self) -> ObjectiveState:
        return self._state

    # -------------------------------------------------------------------------
    # Production timeline
    # -------------------------------------------------------------------------

    def set_production_values(self, cumulative: Sequence[float]) -> None:
        """
        Store the interval production from cumulative production values.

        Raises:
            InvariantViolationError: If the number of values differs from the
                number of production samples
        """
        if len(cumulative) != len(self._production_samples):
            raise InvariantViolationError(
                f"The size of the production values vector {len(cumulative)} "
                f"is not equal to the number of sample times "
                f"{len(self._production_samples)}"
            )
        self._interval_production = first_differences(cumulative)
        self._total_consumption = np.zeros(len(self._production_samples))

    def request_coverage(self, agent: Address) -> None:
        """Ask an agent for its coverage; the reply extends the time axis."""
        agent.send(CoverageRequest(), self)
        self._outstanding += 1

    def extend_time_axis(
        self,
        coverage: TimeInterval,
        sender: Optional[Address] = None
    ) -> None:
        """
        Grow the timeline until it covers the given interval.

        New samples keep the spacing at the respective end of the timeline
        and produce no energy. The earliest new sample is never negative.
        A coverage already inside the timeline changes nothing.
        """
        samples = self._production_samples
        if coverage.empty or not samples:
            return

        if len(samples) == 1:
            before = [coverage.lower] if 0 <= coverage.lower < samples[0] else []
            after = [coverage.upper] if coverage.upper > samples[0] else []
        else:
            before = backward_sample_times(samples[0], samples[1] - samples[0],
                                           coverage.lower)
            after = forward_sample_times(samples[-1], samples[-1] - samples[-2],
                                         coverage.upper)

        if not before and not after:
            return

        samples[:0] = before
        samples.extend(after)
        self._interval_production = (
            [0.0] * len(before) + self._interval_production + [0.0] * len(after)
        )
        self._total_consumption = np.zeros(len(samples))

        logger.info(
            f"Time axis extended by {len(before)} samples before and "
            f"{len(after)} samples after, now [{samples[0]}, {samples[-1]}] "
            f"with {len(samples)} samples"
        )

    # -------------------------------------------------------------------------
    # Evaluation cycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """
        Clear the accumulator for a new evaluation.

        Replies left over from an aborted cycle are dropped.
        """
        stale = self.discard_pending()
        if stale:
            logger.warning(f"Discarded {stale} replies from an earlier evaluation")
        self._total_consumption = np.zeros(len(self._production_samples))
        self._outstanding = 0
        self._state = ObjectiveState.IDLE

    def dispatch(self, agents: Sequence[Address], start_times: Sequence[int]) -> None:
        """Send each agent its start time with replies to this objective."""
        if len(agents) != len(start_times):
            raise InvariantViolationError(
                f"{len(start_times)} start times given for {len(agents)} consumers"
            )
        for agent, start_time in zip(agents, start_times):
            agent.send(AssignedStartTime(int(start_time)), self)
        self._outstanding = len(agents)
        self._state = ObjectiveState.AWAITING

    def accumulate(self, values: Sequence[float], sender: Optional[Address] = None) -> None:
        """
        Add one consumer's interval consumption to the total.

        Raises:
            InvariantViolationError: If the vector length differs from the
                number of production samples
        """
        if len(values) != len(self._total_consumption):
            raise InvariantViolationError(
                f"The size of a consumer's consumption vector {len(values)} "
                f"does not match the size of the production vector "
                f"{len(self._total_consumption)}"
            )
        self._total_consumption += np.asarray(values, dtype=float)

    def wait_for_all(self, timeout: Optional[float] = None) -> None:
        """Handle replies until none is outstanding."""
        while self._outstanding > 0:
            self._outstanding -= self.wait(self._outstanding, timeout)
        if self._state is ObjectiveState.AWAITING:
            self._state = ObjectiveState.REDUCED

    def value(self) -> float:
        """
        Energy imported from the grid in the current cycle.

        The grid energy per interval is the consumption exceeding the
        production. It is interpolated over the sample times and integrated
        over the whole timeline.

        Raises:
            InvariantViolationError: If replies are still outstanding
        """
        if self._state is ObjectiveState.AWAITING:
            raise InvariantViolationError(
                f"Objective value requested with {self._outstanding} "
                f"consumer replies outstanding"
            )

        production = np.asarray(self._interval_production, dtype=float)
        grid_energy = np.maximum(0.0, self._total_consumption - production)

        if len(self._production_samples) < 2:
            return 0.0

        energy = Interpolation(self._production_samples, grid_energy,
                               InterpolationType.STEFFEN)
        return energy.integral(energy.domain_lower, energy.domain_upper)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _on_consumption(self, message: ConsumptionReply, sender: Optional[Address]) -> None:
        self.accumulate(message.values, sender)

    def _on_coverage(self, message: CoverageReply, sender: Optional[Address]) -> None:
        self.extend_time_axis(message.interval, sender)

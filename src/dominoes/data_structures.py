"""
Data structures for the DOMINOES energy scheduling simulator.

This module defines the value types shared by the interpolation engine,
the consumer agents, the energy objective and the solver: time intervals,
time samples, consumer event rows, interpolation types, and the schedule
result written at the end of a run.

All times are POSIX seconds (integers). Energies are cumulative unless the
name says otherwise.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class TimeInterval:
    """
    Closed interval of POSIX times [lower, upper].

    An interval whose upper bound is below its lower bound is empty. The
    default constructed interval is empty, which is how an absent solar day
    is represented.

    Attributes:
        lower: First time in the interval
        upper: Last time in the interval
    """
    lower: int = 0
    upper: int = -1

    @property
    def empty(self) -> bool:
        """True if the interval contains no time."""
        return self.upper < self.lower

    @property
    def width(self) -> int:
        """Length of the interval in seconds (0 if empty)."""
        return 0 if self.empty else self.upper - self.lower

    def intersection(self, other: "TimeInterval") -> "TimeInterval":
        """Intersection of two intervals, possibly empty."""
        return TimeInterval(max(self.lower, other.lower),
                            min(self.upper, other.upper))

    @classmethod
    def ordered(cls, first: int, second: int) -> "TimeInterval":
        """Create an interval from two times given in any order."""
        return cls(min(first, second), max(first, second))

    def __repr__(self) -> str:
        if self.empty:
            return "TimeInterval(empty)"
        return f"TimeInterval([{self.lower}, {self.upper}])"


@dataclass(frozen=True)
class TimeSample:
    """
    A single point of a cumulative energy time series.

    Attributes:
        time: Time stamp (POSIX seconds, or relative seconds for profiles)
        energy: Cumulative energy at the time stamp
    """
    time: int
    energy: float


class InterpolationType(Enum):
    """
    Interpolation methods supported by the interpolation engine.

    The declaration order is the rank used when two interpolated functions
    are combined: the result uses the higher ranked method of the two
    operands. Periodic methods rank highest so that a combination with a
    periodic operand stays periodic.
    """
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    CUBIC_SPLINE = "cubic_spline"
    AKIMA_SPLINE = "akima_spline"
    STEFFEN = "steffen"
    PERIODIC_CUBIC_SPLINE = "periodic_cubic_spline"
    PERIODIC_AKIMA_SPLINE = "periodic_akima_spline"

    @property
    def rank(self) -> int:
        """Position in the combination order (higher wins)."""
        return list(InterpolationType).index(self)

    @property
    def is_periodic(self) -> bool:
        """Periodic methods extrapolate by periodic continuation."""
        return self in (InterpolationType.PERIODIC_CUBIC_SPLINE,
                        InterpolationType.PERIODIC_AKIMA_SPLINE)

    @property
    def min_samples(self) -> int:
        """Minimum number of data points the method can interpolate."""
        return _MIN_SAMPLES[self]

    @classmethod
    def most_advanced(
        cls,
        first: "InterpolationType",
        second: "InterpolationType"
    ) -> "InterpolationType":
        """Select the higher ranked of two methods (first wins ties)."""
        return first if first.rank >= second.rank else second


_MIN_SAMPLES: Dict[InterpolationType, int] = {
    InterpolationType.LINEAR: 2,
    InterpolationType.POLYNOMIAL: 3,
    InterpolationType.CUBIC_SPLINE: 3,
    InterpolationType.AKIMA_SPLINE: 5,
    InterpolationType.STEFFEN: 2,
    InterpolationType.PERIODIC_CUBIC_SPLINE: 3,
    InterpolationType.PERIODIC_AKIMA_SPLINE: 5,
}


@dataclass(frozen=True)
class ConsumerEvent:
    """
    One row of the consumer events file.

    Attributes:
        consumer_id: Unique identifier of the load
        earliest_start: Earliest allowed start time (POSIX seconds)
        latest_start: Latest allowed start time (POSIX seconds)
        consumption_file: Path to the relative cumulative consumption profile
    """
    consumer_id: str
    earliest_start: int
    latest_start: int
    consumption_file: str

    @property
    def start_interval(self) -> TimeInterval:
        """The allowed start window."""
        return TimeInterval(self.earliest_start, self.latest_start)


@dataclass(frozen=True)
class ScheduleAssignment:
    """Assigned start time for a single consumer."""
    consumer_id: str
    start_time: int

    def __repr__(self) -> str:
        return f"ScheduleAssignment({self.consumer_id} @ {self.start_time})"


@dataclass
class ScheduleResult:
    """
    Outcome of a scheduling run.

    Attributes:
        total_grid_energy: Energy imported from the grid for the assignment
        assignments: Start time per consumer, in construction order
        status: Termination status reported by the optimizer
        evaluations: Number of objective function evaluations
        message: Optimizer termination message
    """
    total_grid_energy: float
    assignments: List[ScheduleAssignment] = field(default_factory=list)
    status: Optional[str] = None
    evaluations: int = 0
    message: str = ""

    @property
    def start_times(self) -> Dict[str, int]:
        """Mapping consumer_id → assigned start time."""
        return {a.consumer_id: a.start_time for a in self.assignments}

    def __repr__(self) -> str:
        return (f"ScheduleResult(grid_energy={self.total_grid_energy:.3f}, "
                f"consumers={len(self.assignments)}, status={self.status})")

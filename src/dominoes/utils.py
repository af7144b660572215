"""
Utility functions for the DOMINOES simulator.

Helpers for the production time axis arithmetic, the random initial guess,
and a few statistics used when reporting a schedule.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from .data_structures import ScheduleResult, TimeInterval


logger = logging.getLogger(__name__)


# =============================================================================
# Time axis arithmetic
# =============================================================================

def first_differences(values: Sequence[float]) -> List[float]:
    """
    Interval values from cumulative values.

    The first element is kept as is (its predecessor is taken as zero).

    Examples:
        >>> first_differences([1.0, 3.0, 6.0])
        [1.0, 2.0, 3.0]
    """
    array = np.asarray(values, dtype=float)
    if len(array) == 0:
        return []
    return np.diff(array, prepend=0.0).tolist()


def backward_sample_times(first: int, spacing: int, lower: int) -> List[int]:
    """
    Sample times to prepend so that the axis starts at or before lower.

    TimeToCover // spacing + 1 samples are created at the given spacing,
    ending one spacing before first. Negative time stamps are never
    produced: the earliest sample is clamped to zero and samples falling on
    the same time are merged.

    Args:
        first: Current first sample time
        spacing: Spacing of the first two samples (positive)
        lower: Time that must be covered

    Returns:
        Strictly increasing times, all below first (empty if lower >= first)
    """
    if lower >= first:
        return []

    count = (first - lower) // spacing + 1
    times = [first - k * spacing for k in range(count, 0, -1)]
    times = [max(0, t) for t in times]
    return sorted(set(t for t in times if t < first))


def forward_sample_times(last: int, spacing: int, upper: int) -> List[int]:
    """
    Sample times to append so that the axis extends past upper.

    With ElementsToAdd = (upper - last) // spacing, ElementsToAdd + 1
    samples are appended at the given spacing.

    Returns:
        Strictly increasing times, all above last (empty if upper <= last)
    """
    if upper <= last:
        return []

    count = (upper - last) // spacing + 1
    return [last + k * spacing for k in range(1, count + 1)]


# =============================================================================
# Initial guess
# =============================================================================

def draw_initial_start_times(
    windows: Sequence[TimeInterval],
    rng: np.random.Generator,
    solar_day: Optional[TimeInterval] = None
) -> List[int]:
    """
    Draw a random start time for each consumer.

    Each start time is uniform in the consumer's window. When a solar day is
    given and overlaps the window with positive length, the draw is made
    from the overlap instead so the optimizer starts with loads in daylight.

    Args:
        windows: Allowed start window per consumer
        rng: Random generator (inject a seeded one for reproducible runs)
        solar_day: Sunrise to sunset, or None/empty to ignore

    Returns:
        Integer start times in window order
    """
    use_solar_day = solar_day is not None and not solar_day.empty
    start_times = []

    for window in windows:
        interval = window
        if use_solar_day:
            overlap = window.intersection(solar_day)
            if overlap.upper > overlap.lower:
                interval = overlap
        start_times.append(int(rng.integers(interval.lower, interval.upper,
                                            endpoint=True)))

    return start_times


# =============================================================================
# Reporting
# =============================================================================

def calculate_schedule_statistics(
    result: ScheduleResult,
    windows: Dict[str, TimeInterval]
) -> Dict:
    """
    Summary statistics of a schedule.

    Args:
        result: Schedule produced by the solver
        windows: Allowed start window per consumer ID

    Returns:
        Dictionary with the number of consumers, the grid energy, the mean
        delay after the earliest start and the number of boundary starts
    """
    delays = []
    at_bounds = 0
    for assignment in result.assignments:
        window = windows[assignment.consumer_id]
        delays.append(assignment.start_time - window.lower)
        if assignment.start_time in (window.lower, window.upper):
            at_bounds += 1

    return {
        'consumers': len(result.assignments),
        'total_grid_energy': result.total_grid_energy,
        'mean_delay': float(np.mean(delays)) if delays else 0.0,
        'max_delay': max(delays) if delays else 0,
        'starts_at_bounds': at_bounds,
        'status': result.status,
        'evaluations': result.evaluations,
    }


def format_schedule(result: ScheduleResult) -> str:
    """Human readable multi-line description of a schedule."""
    lines = [f"Total grid energy: {result.total_grid_energy:.3f}"]
    for assignment in result.assignments:
        lines.append(f"  {assignment.consumer_id:<20} {assignment.start_time}")
    if result.status is not None:
        lines.append(f"Status: {result.status} after {result.evaluations} evaluations")
    return "\n".join(lines)

"""
Consumer agent: one schedulable load.

Each agent owns the cumulative consumption profile of its load, expressed in
seconds relative to the start of the load. Given a candidate start time it
returns how much energy the load draws in each interval of the production
timeline, and on request it reports the time span the load can ever cover.

The profile file is parsed on the agent's own thread right after
construction, so a large number of consumers load in parallel.
"""

import logging
import threading
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from .actors import (
    Actor,
    Address,
    AssignedStartTime,
    ConsumptionReply,
    CoverageReply,
    CoverageRequest,
    LoadProfile,
)
from .data_structures import InterpolationType, TimeInterval, TimeSample
from .exceptions import AgentNotReadyError
from .interpolation import Interpolation
from .time_series import iter_samples, read_time_series


logger = logging.getLogger(__name__)


class ConsumerState(Enum):
    CREATED = "created"
    LOADING_PROFILE = "loading_profile"
    READY = "ready"
    FAILED = "failed"


class ConsumerAgent(Actor):
    """
    Actor computing the consumption of one load on the production timeline.

    Args:
        consumer_id: Unique identifier of the load (also the actor name)
        earliest_start: Earliest allowed start time (POSIX seconds)
        latest_start: Latest allowed start time (POSIX seconds)
        consumption_file: CSV with the relative cumulative consumption
        production_samples: Production sample times, shared with and owned
            by the energy objective (read only here)
        interpolation_type: Method used for the consumption profile
    """

    def __init__(
        self,
        consumer_id: str,
        earliest_start: int,
        latest_start: int,
        consumption_file: str,
        production_samples: Sequence[int],
        interpolation_type: InterpolationType = InterpolationType.STEFFEN
    ):
        super().__init__(consumer_id)
        self.consumer_id = consumer_id
        self.start_interval = TimeInterval(earliest_start, latest_start)
        self.consumption_file = consumption_file
        self.interpolation_type = interpolation_type
        self.duration = 0
        self.error: Optional[BaseException] = None

        self._production_samples = production_samples
        self._energy = Interpolation(kind=interpolation_type)
        self._state = ConsumerState.CREATED
        self._loaded = threading.Event()

        self.register_handler(LoadProfile, self._on_load_profile)
        self.register_handler(AssignedStartTime, self._on_assigned_start_time)
        self.register_handler(CoverageRequest, self._on_coverage_request)
        self.start()

        self.send(LoadProfile(consumption_file), self)

    @property
    def state(self) -> ConsumerState:
        return self._state

    def real_start_time(self, relative_time: int) -> int:
        """Convert a time relative to the earliest start to POSIX time."""
        return self.start_interval.lower + relative_time

    # -------------------------------------------------------------------------
    # Profile loading
    # -------------------------------------------------------------------------

    def read_load(self, path: str) -> None:
        """
        Load the cumulative consumption profile.

        On failure the agent enters the FAILED state and keeps the error for
        the solver's startup check; nothing is raised on the agent thread.
        """
        self._state = ConsumerState.LOADING_PROFILE
        try:
            samples = list(iter_samples(read_time_series(path)))
            if samples[0].time > 0:
                # Nothing is consumed before the load starts
                samples.insert(0, TimeSample(0, 0.0))
            self._energy.assign(Interpolation.from_pairs(
                ((s.time, s.energy) for s in samples), self.interpolation_type))
            self.duration = samples[-1].time
            self._state = ConsumerState.READY
            logger.info(
                f"Consumer {self.consumer_id} loaded {len(samples)} samples "
                f"from {path}, duration {self.duration} s"
            )
        except (ValueError, OSError) as e:
            self.error = e
            self._state = ConsumerState.FAILED
            logger.error(f"Consumer {self.consumer_id} failed to load {path}: {e}")
        finally:
            self._loaded.set()

    def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        """Block until loading finished (successfully or not)."""
        return self._loaded.wait(timeout)

    def _require_ready(self) -> None:
        if self._state is not ConsumerState.READY:
            raise AgentNotReadyError(
                f"Consumer {self.consumer_id} is {self._state.value}, "
                f"its consumption profile is not available"
            )

    # -------------------------------------------------------------------------
    # Computations
    # -------------------------------------------------------------------------

    def compute_consumption(
        self,
        start_time: int,
        samples: Optional[Sequence[int]] = None
    ) -> np.ndarray:
        """
        Energy consumed in each production interval for a start time.

        Samples before the start get nothing. A sample inside
        [start, start + duration] gets the profile increase since the
        previous contributing sample. The first sample past the end gets the
        energy still missing up to the full profile, and the scan stops
        there, so the total always equals the profile's total energy as long
        as the timeline covers the end of the load.

        Args:
            start_time: Assigned start (POSIX seconds)
            samples: Sample times (defaults to the shared production samples)

        Returns:
            Array with one value per sample
        """
        self._require_ready()
        if samples is None:
            samples = self._production_samples

        consumption = np.zeros(len(samples))
        end_time = start_time + self.duration
        previous = 0.0

        for index, time in enumerate(samples):
            if time < start_time:
                continue
            if time <= end_time:
                cumulative = self._energy(time - start_time)
                consumption[index] = cumulative - previous
                previous = cumulative
            else:
                consumption[index] = self._energy(self.duration) - previous
                break

        return consumption

    def compute_coverage(self) -> TimeInterval:
        """Time span from the earliest start to the latest possible end."""
        self._require_ready()
        return TimeInterval(self.start_interval.lower,
                            self.start_interval.upper + self.duration)

    # -------------------------------------------------------------------------
    # Message handlers
    # -------------------------------------------------------------------------

    def _on_load_profile(self, message: LoadProfile, sender: Optional[Address]) -> None:
        self.read_load(message.path)

    def _on_assigned_start_time(
        self,
        message: AssignedStartTime,
        sender: Optional[Address]
    ) -> None:
        values = self.compute_consumption(message.time)
        if sender is not None:
            sender.send(ConsumptionReply(self.consumer_id, values), self)

    def _on_coverage_request(
        self,
        message: CoverageRequest,
        sender: Optional[Address]
    ) -> None:
        interval = self.compute_coverage()
        if sender is not None:
            sender.send(CoverageReply(self.consumer_id, interval), self)

    def __repr__(self) -> str:
        return (f"ConsumerAgent({self.consumer_id}, window={self.start_interval}, "
                f"state={self._state.value})")


def failed_consumers(agents: List[ConsumerAgent]) -> List[ConsumerAgent]:
    """Agents whose profile could not be loaded."""
    return [agent for agent in agents if agent.state is ConsumerState.FAILED]

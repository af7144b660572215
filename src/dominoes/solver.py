"""
DOMINOES Solver - Main Implementation.

The solver assigns a start time to every consumer load so that the energy
imported from the grid is minimal, given a forecast of the local (PV)
production. It connects the pieces of the simulator:

1. Read the cumulative production and build the production timeline
2. Read the consumer events and create one ConsumerAgent per load; every
   agent loads its consumption profile on its own thread
3. Check that every profile loaded, then ask every agent for the time span
   its load may cover and extend the timeline to cover all of them
4. Let the bounded minimizer search the start times; each trial is one
   broadcast of start times to the agents and one reduction of their replies
   by the EnergyObjective
5. Write the total grid energy and the assigned start times

Example:
    >>> config = SimulationConfig(production_file='production.csv',
    ...                           consumers_file='consumers.csv',
    ...                           directory='data', seed=42)
    >>> with Solver(config) as solver:
    ...     result = solver.assign_start_times()
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import SimulationConfig
from .consumer import ConsumerAgent, failed_consumers
from .data_structures import ScheduleAssignment, ScheduleResult, TimeInterval
from .energy_objective import EnergyObjective
from .exceptions import ConfigurationError, OptimizationFailedError
from .optimizer import BoundedMinimizer, TerminationStatus
from .time_series import read_consumer_events, read_time_series, write_result_file
from .utils import draw_initial_start_times


logger = logging.getLogger(__name__)


class SolverState(Enum):
    CONSTRUCTING = "constructing"
    READY = "ready"
    SOLVING = "solving"
    DONE = "done"


class Solver:
    """
    Start time assignment for a set of shiftable loads.

    Attributes:
        config: Simulation configuration
        rng: Random generator for the initial guess
        consumers: Consumer agents in the order of the events file
        energy_objective: Accumulator owning the production timeline
        evaluations: Number of objective function evaluations so far
    """

    def __init__(
        self,
        config: SimulationConfig,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Build the problem and wait until every consumer is ready.

        Args:
            config: Simulation configuration
            rng: Random generator (default: seeded from config.seed)

        Raises:
            ValueError: If the configuration is invalid
            ConfigurationError: If a file or directory is missing, or a
                consumer profile could not be loaded
            DataFormatError: If the production or events file is malformed
        """
        self.config = config
        self.config.validate()
        if self.config.enable_logging:
            logging.basicConfig(level=logging.INFO)

        self._state = SolverState.CONSTRUCTING
        self.config.check_files()

        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.evaluations = 0
        self.consumers: List[ConsumerAgent] = []

        production = read_time_series(config.production_path)
        self._production_samples: List[int] = list(production.keys())
        self.energy_objective = EnergyObjective(self._production_samples)
        self.energy_objective.set_production_values(list(production.values()))
        logger.info(
            f"Production read from {config.production_path}: "
            f"{len(production)} samples"
        )

        try:
            self._create_consumers()
            self._check_loaded()
            self._cover_consumption()
        except Exception:
            self.shutdown()
            raise

        self._state = SolverState.READY
        logger.info(f"Solver ready with {len(self.consumers)} consumers")

    def _create_consumers(self) -> None:
        events = read_consumer_events(self.config.consumers_path)

        seen = set()
        for event in events:
            if event.consumer_id in seen:
                raise ConfigurationError(
                    f"Consumer ID {event.consumer_id} is used more than once"
                )
            seen.add(event.consumer_id)

            self.consumers.append(ConsumerAgent(
                event.consumer_id,
                event.earliest_start,
                event.latest_start,
                event.consumption_file,
                self._production_samples,
                self.config.interpolation_type,
            ))

    def _check_loaded(self) -> None:
        """Fail before any evaluation if a consumer profile did not load."""
        not_loaded = [
            agent for agent in self.consumers
            if not agent.wait_until_loaded(self.config.load_timeout)
        ]
        failed = failed_consumers(self.consumers) + not_loaded

        if failed:
            for agent in failed:
                logger.error(
                    f"Consumer {agent.consumer_id} has no consumption profile "
                    f"({agent.consumption_file}): {agent.error or 'load timed out'}"
                )
            raise ConfigurationError(
                "Consumption profiles could not be loaded for: "
                + ", ".join(agent.consumer_id for agent in failed)
            )

    def _cover_consumption(self) -> None:
        """Extend the timeline until it covers every consumer (barrier)."""
        for agent in self.consumers:
            self.energy_objective.request_coverage(agent)
        self.energy_objective.wait_for_all()
        self.energy_objective.reset()

    # -------------------------------------------------------------------------
    # Optimization problem
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SolverState:
        return self._state

    @property
    def production_samples(self) -> List[int]:
        return self.energy_objective.production_samples

    def bound_constraints(self) -> List[TimeInterval]:
        """Allowed start window of every consumer, in consumer order."""
        return [agent.start_interval for agent in self.consumers]

    def objective_function(self, start_times: Sequence[float]) -> float:
        """
        Grid energy for a vector of start times.

        The start times are rounded to whole seconds, sent to the consumers,
        and their replies reduced by the energy objective.
        """
        assigned = [int(round(t)) for t in start_times]

        self.energy_objective.reset()
        self.energy_objective.dispatch(self.consumers, assigned)
        self.energy_objective.wait_for_all()
        value = self.energy_objective.value()

        self.evaluations += 1
        logger.debug(f"Start times {assigned} give grid energy {value}")
        return value

    def initial_guess(self, solar_day: Optional[TimeInterval] = None) -> List[int]:
        """Random start times, inside the solar day where possible."""
        return draw_initial_start_times(self.bound_constraints(), self.rng, solar_day)

    def assign_start_times(
        self,
        result_file: Optional[Union[str, Path]] = None,
        solar_day: Optional[TimeInterval] = None
    ) -> ScheduleResult:
        """
        Search the start times and write the result file.

        Args:
            result_file: Output path (default: config.result_path)
            solar_day: Sunrise to sunset for the initial guess (default:
                config.solar_day)

        Returns:
            The schedule with its total grid energy

        Raises:
            OptimizationFailedError: If the optimizer terminates with a failure
        """
        if solar_day is None:
            solar_day = self.config.solar_day
        result_path = Path(result_file) if result_file is not None else self.config.result_path

        self._state = SolverState.SOLVING
        initial = self.initial_guess(solar_day)
        logger.info(f"Initial start times: {initial}")

        optimizer = BoundedMinimizer(len(self.consumers), config=self.config.optimizer)
        optimizer.set_bound_constraints(self.bound_constraints())
        optimizer.set_objective(self.objective_function)
        solution = optimizer.find_solution(initial)

        if solution.status is TerminationStatus.FAILED:
            self._state = SolverState.READY
            raise OptimizationFailedError(
                f"No start times found: {solution.message}"
            )

        assignments = []
        for agent, value in zip(self.consumers, solution.point):
            window = agent.start_interval
            start_time = int(np.clip(round(value), window.lower, window.upper))
            assignments.append(ScheduleAssignment(agent.consumer_id, start_time))

        result = ScheduleResult(
            total_grid_energy=solution.value,
            assignments=assignments,
            status=solution.status.value,
            evaluations=solution.evaluations,
            message=solution.message,
        )
        write_result_file(result_path, result)

        self._state = SolverState.DONE
        logger.info(
            f"Schedule for {len(assignments)} consumers found with total grid "
            f"energy {result.total_grid_energy}"
        )
        return result

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop all consumer agent threads."""
        for agent in self.consumers:
            agent.stop()

    def __enter__(self) -> "Solver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

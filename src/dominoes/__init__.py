"""
DOMINOES - Distributed Optimisation of Microgrid Energy Scheduling

A multi-agent simulator that assigns start times to shiftable household
loads (washing machines, dishwashers, electric vehicles, ...) so that their
combined consumption follows the local PV production and the energy drawn
from the grid is minimal.

Main Components:
- Solver: Builds the problem from the input files and searches the start times
- ConsumerAgent: One load, computing its consumption on its own thread
- EnergyObjective: Reduces the consumers' replies to the grid energy
- BoundedMinimizer: Derivative-free bounded search (scipy.optimize)
- Interpolation: Interpolated, differentiable, integrable time series
- SimulationConfig / OptimizerConfig: Configuration parameters

Quick Start:
    >>> from dominoes import Solver, SimulationConfig, TimeInterval
    >>>
    >>> config = SimulationConfig(
    ...     production_file='production.csv',
    ...     consumers_file='consumers.csv',
    ...     directory='data',
    ...     solar_day=TimeInterval(1552370400, 1552413600),
    ...     seed=42,
    ... )
    >>> with Solver(config) as solver:
    ...     result = solver.assign_start_times()
    >>> result.start_times

Author: Research Team
Version: 0.1.0
"""

from .actors import Actor, Receiver
from .config import OptimizerConfig, SimulationConfig
from .consumer import ConsumerAgent, ConsumerState
from .data_structures import (
    ConsumerEvent,
    InterpolationType,
    ScheduleAssignment,
    ScheduleResult,
    TimeInterval,
    TimeSample,
)
from .energy_objective import EnergyObjective, ObjectiveState
from .exceptions import (
    AgentNotReadyError,
    ConfigurationError,
    DataFormatError,
    DominoesError,
    InsufficientDataError,
    InvalidDomainError,
    InvariantViolationError,
    OptimizationFailedError,
    OutOfDomainError,
    UninitializedInterpolationError,
)
from .interpolation import Interpolation, combine, derivative, derivative2, integral
from .optimizer import (
    BoundedMinimizer,
    OptimizationDirection,
    OptimizationResult,
    TerminationStatus,
)
from .solver import Solver, SolverState
from .time_series import (
    iter_samples,
    read_consumer_events,
    read_result_file,
    read_time_series,
    to_cumulative,
    to_non_cumulative,
    write_result_file,
)
from .utils import (
    calculate_schedule_statistics,
    draw_initial_start_times,
    first_differences,
    format_schedule,
)

__version__ = "0.1.0"
__author__ = "Research Team"

__all__ = [
    # Main classes
    'Solver',
    'SolverState',
    'SimulationConfig',
    'OptimizerConfig',

    # Data structures
    'TimeInterval',
    'TimeSample',
    'ConsumerEvent',
    'InterpolationType',
    'ScheduleAssignment',
    'ScheduleResult',

    # Interpolation
    'Interpolation',
    'combine',
    'derivative',
    'derivative2',
    'integral',

    # Agents
    'Actor',
    'Receiver',
    'ConsumerAgent',
    'ConsumerState',
    'EnergyObjective',
    'ObjectiveState',

    # Optimization
    'BoundedMinimizer',
    'OptimizationDirection',
    'OptimizationResult',
    'TerminationStatus',

    # Files
    'read_time_series',
    'iter_samples',
    'read_consumer_events',
    'write_result_file',
    'read_result_file',
    'to_cumulative',
    'to_non_cumulative',

    # Utilities
    'first_differences',
    'draw_initial_start_times',
    'calculate_schedule_statistics',
    'format_schedule',

    # Exceptions
    'DominoesError',
    'DataFormatError',
    'InsufficientDataError',
    'OutOfDomainError',
    'InvalidDomainError',
    'UninitializedInterpolationError',
    'InvariantViolationError',
    'AgentNotReadyError',
    'ConfigurationError',
    'OptimizationFailedError',
]

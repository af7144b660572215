"""
Bound-constrained, derivative-free minimization of the energy objective.

The objective is evaluated by the consumer agents and has no usable
gradient: it is piecewise smooth in the start times and flat wherever a
load is shifted inside a constant production interval. BoundedMinimizer
therefore wraps the derivative-free methods of scipy.optimize.minimize that
accept bounds (Powell, Nelder-Mead), adds a wall-clock budget, and maps
scipy's termination to three outcomes:

- CONVERGED: the tolerance was met
- LIMIT_REACHED: an iteration, evaluation or time limit stopped the search;
  the best point found is still a usable schedule
- FAILED: anything else
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.optimize import Bounds, minimize

from .config import OptimizerConfig
from .data_structures import TimeInterval
from .exceptions import InvariantViolationError


logger = logging.getLogger(__name__)

# Absolute simplex size (seconds) at which Nelder-Mead stops; start times
# are whole seconds
SIMPLEX_TOLERANCE = 1.0


class OptimizationDirection(Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


class TerminationStatus(Enum):
    CONVERGED = "converged"
    LIMIT_REACHED = "limit_reached"
    FAILED = "failed"


@dataclass
class OptimizationResult:
    """
    Outcome of one optimizer run.

    Attributes:
        point: Best variable values found
        value: Objective value at point (in the caller's direction)
        status: Termination status
        evaluations: Number of objective evaluations
        message: Termination message from scipy
    """
    point: np.ndarray
    value: float
    status: TerminationStatus
    evaluations: int
    message: str = ""

    @property
    def usable(self) -> bool:
        return self.status is not TerminationStatus.FAILED


class _TimeBudgetExceeded(StopIteration):
    """Raised from the iteration callback to stop the search."""


class BoundedMinimizer:
    """
    Optimizer over a box of variable bounds.

    Args:
        num_variables: Number of variables
        direction: Minimize or maximize the objective
        config: Method and limits (defaults to OptimizerConfig())

    Example:
        >>> optimizer = BoundedMinimizer(2)
        >>> optimizer.set_bound_constraints([TimeInterval(0, 10), TimeInterval(0, 10)])
        >>> optimizer.set_objective(lambda x: (x[0] - 3) ** 2 + (x[1] - 7) ** 2)
        >>> result = optimizer.find_solution([5, 5])
    """

    def __init__(
        self,
        num_variables: int,
        direction: OptimizationDirection = OptimizationDirection.MINIMIZE,
        config: Optional[OptimizerConfig] = None
    ):
        self.num_variables = num_variables
        self.direction = direction
        self.config = config or OptimizerConfig()
        self.config.validate()

        self._bounds: Optional[Bounds] = None
        self._objective: Optional[Callable[[np.ndarray], float]] = None
        self._evaluations = 0
        self._best_point: Optional[np.ndarray] = None
        self._best_value = np.inf

    def set_bound_constraints(self, intervals: Sequence[TimeInterval]) -> None:
        """
        Set one closed interval per variable.

        Raises:
            InvariantViolationError: If the number of intervals differs from
                the number of variables
        """
        if len(intervals) != self.num_variables:
            raise InvariantViolationError(
                f"{len(intervals)} bounds given for {self.num_variables} variables"
            )
        lower = [interval.lower for interval in intervals]
        upper = [interval.upper for interval in intervals]
        self._bounds = Bounds(lower, upper)

    def set_objective(self, objective: Callable[[np.ndarray], float]) -> None:
        self._objective = objective

    @property
    def evaluations(self) -> int:
        return self._evaluations

    def _signed_objective(self, x: np.ndarray) -> float:
        """Objective as minimized by scipy, remembering the best point."""
        value = float(self._objective(x))
        self._evaluations += 1

        signed = -value if self.direction is OptimizationDirection.MAXIMIZE else value
        if signed < self._best_value:
            self._best_value = signed
            self._best_point = np.array(x, dtype=float)

        logger.debug(f"Evaluation {self._evaluations}: {value}")
        return signed

    def _options(self) -> dict:
        options = {'maxiter': self.config.max_iterations}
        if self.config.max_evaluations is not None:
            options['maxfev'] = self.config.max_evaluations

        if self.config.method == 'Powell':
            options.update(ftol=self.config.tolerance)
        else:
            options.update(xatol=SIMPLEX_TOLERANCE, fatol=self.config.tolerance)
        return options

    def find_solution(self, initial: Sequence[float]) -> OptimizationResult:
        """
        Run the optimizer from an initial point.

        The initial point is clipped into the bounds. The returned point is
        the best one evaluated, which for a limit-reached run may differ from
        scipy's last iterate.

        Raises:
            InvariantViolationError: If the objective or bounds are missing,
                or the initial point has the wrong size
        """
        if self._objective is None:
            raise InvariantViolationError("No objective function set")
        if self._bounds is None:
            raise InvariantViolationError("No bound constraints set")
        if len(initial) != self.num_variables:
            raise InvariantViolationError(
                f"Initial point has {len(initial)} values for "
                f"{self.num_variables} variables"
            )

        self._evaluations = 0
        self._best_point = None
        self._best_value = np.inf

        x0 = np.clip(np.asarray(initial, dtype=float), self._bounds.lb, self._bounds.ub)
        started = time.monotonic()
        time_exceeded = False

        def callback(*args):
            nonlocal time_exceeded
            if (self.config.max_time is not None
                    and time.monotonic() - started > self.config.max_time):
                time_exceeded = True
                raise _TimeBudgetExceeded()

        logger.info(
            f"Starting {self.config.method} search over {self.num_variables} "
            f"variables"
        )
        try:
            result = minimize(
                self._signed_objective,
                x0,
                method=self.config.method,
                bounds=self._bounds,
                callback=callback,
                options=self._options(),
            )
            success, scipy_status, message = result.success, result.status, str(result.message)
        except _TimeBudgetExceeded:
            # Older scipy releases let the callback exception escape
            result = None
            success, scipy_status, message = False, None, "time budget exceeded"

        if success:
            status = TerminationStatus.CONVERGED
        elif time_exceeded or scipy_status in (1, 2):
            status = TerminationStatus.LIMIT_REACHED
            logger.warning(f"Optimizer stopped at a limit: {message}")
        else:
            status = TerminationStatus.FAILED
            logger.error(f"Optimizer failed: {message}")

        if self._best_point is not None:
            point, best = self._best_point, self._best_value
        elif result is not None:
            point, best = np.asarray(result.x), float(result.fun)
        else:
            point, best = x0, np.inf
        value = -best if self.direction is OptimizationDirection.MAXIMIZE else best

        logger.info(
            f"Optimizer finished ({status.value}) after {self._evaluations} "
            f"evaluations with objective {value}"
        )
        return OptimizationResult(
            point=point,
            value=float(value),
            status=status,
            evaluations=self._evaluations,
            message=message,
        )

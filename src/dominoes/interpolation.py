"""
Interpolation of univariate time series.

The Interpolation class turns a discrete, sorted set of (x, y) samples into
a continuous function that passes through every sample, and that can be
differentiated and integrated in closed form. It is the numerical primitive
used by the consumer agents (cumulative consumption profiles) and by the
energy objective (grid energy integral).

Supported methods (see InterpolationType):
- LINEAR: straight lines between neighbouring samples
- POLYNOMIAL: one polynomial through all samples (oscillates for large sets)
- CUBIC_SPLINE: natural cubic spline
- AKIMA_SPLINE: Akima's local spline, robust against outliers
- STEFFEN: Steffen's monotone cubic Hermite interpolation (default)
- PERIODIC_CUBIC_SPLINE / PERIODIC_AKIMA_SPLINE: periodic variants that
  extrapolate by periodic continuation

Note that Akima and Steffen interpolation is not additive: the Steffen
interpolation of f + g is in general not equal to the sum of the Steffen
interpolations of f and g away from the data points.

Two interpolated functions can be combined with + - * /. The result covers
the union of both domains, is sampled at the union of both abscissae and is
interpolated again with the more advanced of the two methods.

Translation is free: the offsets are applied when the function is
evaluated and never touch the solved coefficients.
"""

import logging
import operator
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

import numpy as np
from numpy.polynomial import Polynomial
from scipy.interpolate import (
    Akima1DInterpolator,
    CubicHermiteSpline,
    CubicSpline,
    PPoly,
)

from .data_structures import InterpolationType
from .exceptions import (
    InsufficientDataError,
    InvalidDomainError,
    OutOfDomainError,
    UninitializedInterpolationError,
)
from .time_series import read_time_series


logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


# =============================================================================
# Slope estimators
# =============================================================================

def steffen_slopes(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Derivatives at the data points for Steffen's monotone interpolation.

    Interior points use Steffen's limiter on the parabola through the three
    neighbouring points. The two boundary points use the secant of the
    adjacent interval, which keeps the boundary intervals monotone as well.

    Args:
        x: Strictly increasing abscissa
        y: Ordinate values

    Returns:
        Derivative at every data point
    """
    h = np.diff(x)
    s = np.diff(y) / h
    slopes = np.empty_like(y)
    slopes[0] = s[0]
    slopes[-1] = s[-1]

    if len(x) > 2:
        h_left, h_right = h[:-1], h[1:]
        s_left, s_right = s[:-1], s[1:]
        p = (s_left * h_right + s_right * h_left) / (h_left + h_right)
        slopes[1:-1] = (
            (np.sign(s_left) + np.sign(s_right))
            * np.minimum(np.minimum(np.abs(s_left), np.abs(s_right)),
                         0.5 * np.abs(p))
        )

    return slopes


def periodic_akima_slopes(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Akima derivatives where the segment slopes wrap around the period.

    The last data point coincides with the first one of the next period, so
    both get the same derivative.
    """
    m = np.diff(y) / np.diff(x)
    # Two segments borrowed from each end of the period
    ext = np.concatenate((m[-2:], m, m[:2]))

    m_2 = ext[:-3]     # m[i-2]
    m_1 = ext[1:-2]    # m[i-1]
    m_0 = ext[2:-1]    # m[i]
    m_p1 = ext[3:]     # m[i+1]

    w_left = np.abs(m_p1 - m_0)
    w_right = np.abs(m_1 - m_2)
    weight = w_left + w_right

    slopes = np.where(
        weight > 0,
        (w_left * m_1 + w_right * m_0) / np.where(weight > 0, weight, 1.0),
        0.5 * (m_1 + m_0),
    )
    return slopes


# =============================================================================
# Backends
# =============================================================================

class _PiecewiseBackend:
    """Closed-form operations on a scipy piecewise polynomial."""

    def __init__(self, spline: PPoly):
        self._spline = spline
        self._first = spline.derivative(1)
        self._second = spline.derivative(2)

    def evaluate(self, x: ArrayLike) -> ArrayLike:
        return self._spline(x)

    def derivative(self, x: ArrayLike) -> ArrayLike:
        return self._first(x)

    def second_derivative(self, x: ArrayLike) -> ArrayLike:
        return self._second(x)

    def integral(self, a: float, b: float) -> float:
        return float(self._spline.integrate(a, b))


class _PolynomialBackend:
    """A single interpolating polynomial through all the samples."""

    def __init__(self, x: np.ndarray, y: np.ndarray):
        self._poly = Polynomial.fit(x, y, deg=len(x) - 1)
        self._first = self._poly.deriv(1)
        self._second = self._poly.deriv(2)
        self._antiderivative = self._poly.integ()

    def evaluate(self, x: ArrayLike) -> ArrayLike:
        return self._poly(x)

    def derivative(self, x: ArrayLike) -> ArrayLike:
        return self._first(x)

    def second_derivative(self, x: ArrayLike) -> ArrayLike:
        return self._second(x)

    def integral(self, a: float, b: float) -> float:
        return float(self._antiderivative(b) - self._antiderivative(a))


def _linear(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    slopes = np.diff(y) / np.diff(x)
    return _PiecewiseBackend(PPoly(np.vstack((slopes, y[:-1])), x))


def _polynomial(x: np.ndarray, y: np.ndarray) -> _PolynomialBackend:
    return _PolynomialBackend(x, y)


def _cubic_spline(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    return _PiecewiseBackend(CubicSpline(x, y, bc_type='natural'))


def _akima_spline(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    return _PiecewiseBackend(Akima1DInterpolator(x, y))


def _steffen(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    return _PiecewiseBackend(CubicHermiteSpline(x, y, steffen_slopes(x, y)))


def _periodic_cubic_spline(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    return _PiecewiseBackend(
        CubicSpline(x, y, bc_type='periodic', extrapolate='periodic')
    )


def _periodic_akima_spline(x: np.ndarray, y: np.ndarray) -> _PiecewiseBackend:
    return _PiecewiseBackend(
        CubicHermiteSpline(x, y, periodic_akima_slopes(x, y),
                           extrapolate='periodic')
    )


_BACKENDS: Dict[InterpolationType, Callable] = {
    InterpolationType.LINEAR: _linear,
    InterpolationType.POLYNOMIAL: _polynomial,
    InterpolationType.CUBIC_SPLINE: _cubic_spline,
    InterpolationType.AKIMA_SPLINE: _akima_spline,
    InterpolationType.STEFFEN: _steffen,
    InterpolationType.PERIODIC_CUBIC_SPLINE: _periodic_cubic_spline,
    InterpolationType.PERIODIC_AKIMA_SPLINE: _periodic_akima_spline,
}


# =============================================================================
# Interpolation
# =============================================================================

class Interpolation:
    """
    Continuous function interpolating a set of (x, y) samples.

    The samples are stored sorted by abscissa with duplicates collapsed
    (the last given ordinate wins). A default constructed object is an empty
    placeholder: every operation on it raises
    UninitializedInterpolationError until assign() gives it real data.

    Attributes:
        kind: Interpolation method
        offset: (x, y) translation applied at evaluation time

    Examples:
        >>> f = Interpolation([0, 1800, 3600], [0.0, 1.2, 2.0])
        >>> f(900)
        >>> f.integral(0, 3600)
        >>> g = f + Interpolation([3600, 7200], [2.0, 2.5])
    """

    def __init__(
        self,
        abscissa: Optional[Iterable[float]] = None,
        ordinate: Optional[Iterable[float]] = None,
        kind: InterpolationType = InterpolationType.STEFFEN
    ):
        """
        Initialize the interpolation from parallel abscissa/ordinate data.

        Args:
            abscissa: x values, in any order
            ordinate: y values, aligned with the abscissa
            kind: Interpolation method

        Raises:
            ValueError: If only one of abscissa/ordinate is given
            InsufficientDataError: If there are too few unique samples for
                the method, or periodic data with different end values
        """
        self.kind = kind
        self.offset: Tuple[float, float] = (0.0, 0.0)
        self._x = np.empty(0)
        self._y = np.empty(0)
        self._backend = None

        if abscissa is None and ordinate is None:
            return
        if abscissa is None or ordinate is None:
            raise ValueError("Both abscissa and ordinate must be given")

        # Stop at the shorter sequence, like zipping two iterator ranges
        self._initialise(dict(zip(abscissa, ordinate)), kind)

    # -------------------------------------------------------------------------
    # Alternative constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_mapping(
        cls,
        data_points: Mapping[float, float],
        kind: InterpolationType = InterpolationType.STEFFEN
    ) -> "Interpolation":
        """Interpolate a mapping abscissa → ordinate (e.g. a time series)."""
        function = cls(kind=kind)
        function._initialise(data_points, kind)
        return function

    @classmethod
    def from_pairs(
        cls,
        data_points: Iterable[Tuple[float, float]],
        kind: InterpolationType = InterpolationType.STEFFEN
    ) -> "Interpolation":
        """Interpolate an iterable of (x, y) pairs."""
        return cls.from_mapping(dict(data_points), kind)

    @classmethod
    def from_file(
        cls,
        file_name: Union[str, Path],
        kind: InterpolationType = InterpolationType.STEFFEN
    ) -> "Interpolation":
        """
        Interpolate the two-column data in a file.

        Raises:
            DataFormatError: If the file is empty or malformed
        """
        return cls.from_mapping(read_time_series(file_name, time_type=float), kind)

    # -------------------------------------------------------------------------
    # State handling
    # -------------------------------------------------------------------------

    def _initialise(
        self,
        data_points: Mapping[float, float],
        kind: InterpolationType
    ) -> None:
        """Store sorted unique samples and solve the coefficients."""
        ordered = sorted((float(x), float(y)) for x, y in data_points.items())
        self._x = np.array([x for x, _ in ordered], dtype=float)
        self._y = np.array([y for _, y in ordered], dtype=float)
        self.kind = kind
        self.offset = (0.0, 0.0)
        self._compute_coefficients()

    def _compute_coefficients(self) -> None:
        """Solve the backend for the current data and method."""
        if len(self._x) < self.kind.min_samples:
            raise InsufficientDataError(
                f"Not enough points for {self.kind.value} interpolation: "
                f"{len(self._x)} given, {self.kind.min_samples} required"
            )

        if self.kind.is_periodic and self._y[0] != self._y[-1]:
            raise InsufficientDataError(
                "Periodic interpolation requires first and last ordinate "
                f"value equal, got {self._y[0]} and {self._y[-1]}"
            )

        self._backend = _BACKENDS[self.kind](self._x, self._y)

    def _require_data(self) -> None:
        if self._backend is None:
            raise UninitializedInterpolationError(
                "Evaluation of an empty interpolation object"
            )

    def assign(self, other: "Interpolation") -> "Interpolation":
        """
        Make this object a deep copy of another interpolation.

        This is how an empty placeholder receives real data.
        """
        other._require_data()
        self._x = other._x.copy()
        self._y = other._y.copy()
        self.kind = other.kind
        self.offset = other.offset
        self._compute_coefficients()
        return self

    def copy(self) -> "Interpolation":
        """Return an independent copy with its own coefficients."""
        duplicate = Interpolation(kind=self.kind)
        if self._backend is not None:
            duplicate.assign(self)
        return duplicate

    def __bool__(self) -> bool:
        return self._backend is not None

    def __len__(self) -> int:
        return len(self._x)

    @property
    def abscissa(self) -> np.ndarray:
        """Sample abscissa without offset (read-only view)."""
        view = self._x.view()
        view.flags.writeable = False
        return view

    @property
    def ordinate(self) -> np.ndarray:
        """Sample ordinate without offset (read-only view)."""
        view = self._y.view()
        view.flags.writeable = False
        return view

    # -------------------------------------------------------------------------
    # Domain
    # -------------------------------------------------------------------------

    @property
    def domain_lower(self) -> float:
        """Lower domain limit including the x offset."""
        self._require_data()
        return float(self._x[0] + self.offset[0])

    @property
    def domain_upper(self) -> float:
        """Upper domain limit including the x offset."""
        self._require_data()
        return float(self._x[-1] + self.offset[0])

    @property
    def domain(self) -> Tuple[float, float]:
        return self.domain_lower, self.domain_upper

    def in_domain(self, x: float) -> bool:
        """
        Check if the function can be evaluated at x.

        Periodic functions accept any argument.
        """
        if self.kind.is_periodic:
            self._require_data()
            return True
        return self.domain_lower <= x <= self.domain_upper

    def _shift(self, x: ArrayLike) -> ArrayLike:
        """
        Map user coordinates to sample coordinates, checking the domain.

        Non-periodic arguments inside the user domain are clipped to the
        sample range to absorb rounding in the offset subtraction.
        """
        self._require_data()
        values = np.asarray(x, dtype=float)

        if self.kind.is_periodic:
            return values - self.offset[0]

        lower, upper = self.domain_lower, self.domain_upper
        if np.any(values < lower) or np.any(values > upper) or np.any(np.isnan(values)):
            raise OutOfDomainError(
                f"Interpolation: Requested argument {x} is outside the "
                f"interpolation range [{lower}, {upper}]"
            )
        return np.clip(values - self.offset[0], self._x[0], self._x[-1])

    @staticmethod
    def _as_result(x: ArrayLike, values: np.ndarray) -> ArrayLike:
        if np.ndim(x) == 0:
            return float(values)
        return values

    def restrict_domain(self, lower: float, upper: float) -> None:
        """
        Restrict the function to a sub-interval of its domain.

        Samples strictly inside the new domain are kept, and two new samples
        are added at the new limits with the interpolated values. The
        function is then interpolated again over these points, and the
        offsets are folded into the data. Restricting to exactly the current
        domain does nothing.

        Args:
            lower: New lower domain limit
            upper: New upper domain limit

        Raises:
            InvalidDomainError: If [lower, upper] is not inside the domain
        """
        current_lower, current_upper = self.domain
        if lower < current_lower or upper > current_upper or lower >= upper:
            raise InvalidDomainError(
                f"Interpolation: The new domain [{lower}, {upper}] is not a "
                f"sub-domain of the existing [{current_lower}, {current_upper}]"
            )

        if lower == current_lower and upper == current_upper:
            return

        data_points = {lower: self(lower), upper: self(upper)}
        for x, y in zip(self._x + self.offset[0], self._y + self.offset[1]):
            if lower < x < upper:
                data_points[float(x)] = float(y)

        self._initialise(data_points, self.kind)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def __call__(self, x: ArrayLike) -> ArrayLike:
        """
        Value of the function at x.

        Raises:
            OutOfDomainError: If x is outside a non-periodic domain
            UninitializedInterpolationError: If the object is a placeholder
        """
        values = self._backend_call('evaluate', x) + self.offset[1]
        return self._as_result(x, values)

    def evaluate(self, x: ArrayLike) -> ArrayLike:
        """Alias for calling the function."""
        return self(x)

    def derivative(self, x: ArrayLike) -> ArrayLike:
        """First derivative at x."""
        return self._as_result(x, self._backend_call('derivative', x))

    def second_derivative(self, x: ArrayLike) -> ArrayLike:
        """Second derivative at x."""
        return self._as_result(x, self._backend_call('second_derivative', x))

    def integral(self, lower: float, upper: float) -> float:
        """
        Definite integral from lower to upper.

        The y offset adds offset_y * (upper - lower) to the area.
        """
        a = float(self._shift(lower))
        b = float(self._shift(upper))
        return self._backend.integral(a, b) + self.offset[1] * (upper - lower)

    def _backend_call(self, name: str, x: ArrayLike) -> np.ndarray:
        shifted = self._shift(x)
        return np.asarray(getattr(self._backend, name)(shifted), dtype=float)

    def translate(self, dx: float, dy: float) -> None:
        """
        Shift the function by dx along the abscissa and dy along the ordinate.

        After the call f(x) equals the previous f(x - dx) + dy.
        """
        self.offset = (self.offset[0] + dx, self.offset[1] + dy)

    # -------------------------------------------------------------------------
    # Algebra
    # -------------------------------------------------------------------------

    def __add__(self, other: "Interpolation") -> "Interpolation":
        return combine(self, other, operator.add)

    def __sub__(self, other: "Interpolation") -> "Interpolation":
        return combine(self, other, operator.sub)

    def __mul__(self, other: "Interpolation") -> "Interpolation":
        return combine(self, other, operator.mul)

    def __truediv__(self, other: "Interpolation") -> "Interpolation":
        return combine(self, other, operator.truediv)

    def __iadd__(self, other: "Interpolation") -> "Interpolation":
        return self.assign(self + other)

    def __isub__(self, other: "Interpolation") -> "Interpolation":
        return self.assign(self - other)

    def __imul__(self, other: "Interpolation") -> "Interpolation":
        return self.assign(self * other)

    def __itruediv__(self, other: "Interpolation") -> "Interpolation":
        return self.assign(self / other)

    def __repr__(self) -> str:
        if not self:
            return f"Interpolation({self.kind.value}, empty)"
        return (f"Interpolation({self.kind.value}, n={len(self)}, "
                f"domain=[{self.domain_lower}, {self.domain_upper}])")


def combine(
    first: Interpolation,
    second: Interpolation,
    operation: Callable[[float, float], float]
) -> Interpolation:
    """
    Combine two interpolated functions into a new one.

    The new abscissa is the union of the offset-adjusted abscissae of both
    functions. At a point outside the domain of one function the value of
    the other is used unchanged; inside both domains the operation is
    applied to the two values. The result is interpolated with the more
    advanced method of the two. Combining with a periodic function assumes
    the combined data is periodic too, which fails with
    InsufficientDataError if the end values differ.

    Args:
        first: Left operand
        second: Right operand
        operation: Binary operation on two values, e.g. operator.add

    Returns:
        New interpolation owning its own coefficients
    """
    first._require_data()
    second._require_data()

    kind = InterpolationType.most_advanced(first.kind, second.kind)
    abscissa = np.union1d(first._x + first.offset[0],
                          second._x + second.offset[0])

    ordinate = []
    for x in abscissa:
        if not first.in_domain(x):
            ordinate.append(second(x))
        elif not second.in_domain(x):
            ordinate.append(first(x))
        else:
            ordinate.append(operation(first(x), second(x)))

    logger.debug(
        f"Combined {first.kind.value} and {second.kind.value} interpolation "
        f"over {len(abscissa)} points as {kind.value}"
    )
    return Interpolation(abscissa, ordinate, kind)


def derivative(function: Interpolation, x: ArrayLike) -> ArrayLike:
    """First derivative of an interpolated function."""
    return function.derivative(x)


def derivative2(function: Interpolation, x: ArrayLike) -> ArrayLike:
    """Second derivative of an interpolated function."""
    return function.second_derivative(x)


def integral(function: Interpolation, lower: float, upper: float) -> float:
    """Definite integral of an interpolated function."""
    return function.integral(lower, upper)

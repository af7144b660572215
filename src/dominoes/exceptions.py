"""
Exceptions raised by the DOMINOES simulator.

Input data problems (bad files, too few samples) derive from ValueError.
Contract violations inside the simulator (mismatched vector lengths,
requests to agents that never finished loading) derive from RuntimeError
and are not meant to be caught by library code.
"""


class DominoesError(Exception):
    """Base class for all simulator errors."""


class DataFormatError(DominoesError, ValueError):
    """A CSV file is empty or cannot be parsed."""


class InsufficientDataError(DominoesError, ValueError):
    """Too few samples for the interpolation method, or bad periodic data."""


class OutOfDomainError(DominoesError, ValueError):
    """Evaluation of a non-periodic interpolation outside its domain."""


class InvalidDomainError(DominoesError, ValueError):
    """A requested domain restriction is not a sub-interval of the domain."""


class UninitializedInterpolationError(DominoesError, RuntimeError):
    """An empty placeholder interpolation was used before assignment."""


class InvariantViolationError(DominoesError, RuntimeError):
    """Internal consistency check failed; indicates a programming error."""


class AgentNotReadyError(InvariantViolationError):
    """A consumer agent was asked for data before its profile was loaded."""


class ConfigurationError(DominoesError):
    """Missing files, invalid directories or consumers that failed to load."""


class OptimizationFailedError(DominoesError, RuntimeError):
    """The optimizer terminated with a hard failure."""

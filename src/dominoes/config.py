"""
Configuration for the DOMINOES simulator.

The solver is driven by a SimulationConfig holding the input and output
files, the optional solar day used to bias the initial guess, and an
OptimizerConfig with the limits given to the bound-constrained minimizer.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .data_structures import InterpolationType, TimeInterval
from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


SUPPORTED_METHODS = ('Powell', 'Nelder-Mead')


@dataclass
class OptimizerConfig:
    """
    Limits and method for the bound-constrained minimizer.

    Attributes:
        method: scipy.optimize.minimize method (derivative-free, bounded)
        max_iterations: Maximum number of optimizer iterations
        max_evaluations: Maximum number of objective evaluations (None = no limit)
        tolerance: Relative tolerance on the objective value
        max_time: Wall-clock budget in seconds (None = no limit)
    """
    method: str = 'Powell'
    max_iterations: int = 1000
    max_evaluations: Optional[int] = None
    tolerance: float = 1e-6
    max_time: Optional[float] = None

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.method not in SUPPORTED_METHODS:
            raise ValueError(
                f"method must be one of {SUPPORTED_METHODS}, got {self.method}"
            )
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if self.max_evaluations is not None and self.max_evaluations <= 0:
            raise ValueError("max_evaluations must be positive")
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")
        if self.max_time is not None and self.max_time <= 0:
            raise ValueError("max_time must be positive")


@dataclass
class SimulationConfig:
    """
    Configuration of a scheduling run.

    Attributes:
        production_file: CSV with cumulative production in absolute time
        consumers_file: CSV with one consumer event per line
        result_file: Output file for the assigned start times
        directory: Working directory the file names are relative to
        solar_day: Sunrise to sunset, used only for the initial guess
        interpolation_type: Method used for the consumption profiles
        seed: Seed for the random initial guess (None = nondeterministic)
        load_timeout: Seconds to wait for all consumer profiles to load
        enable_logging: Whether the solver configures basic logging
        optimizer: Optimizer limits and method
    """
    production_file: str
    consumers_file: str
    result_file: str = 'AST.csv'
    directory: Optional[str] = None
    solar_day: Optional[TimeInterval] = None
    interpolation_type: InterpolationType = InterpolationType.STEFFEN
    seed: Optional[int] = None
    load_timeout: float = 60.0
    enable_logging: bool = False
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)

    def resolve(self, file_name: str) -> Path:
        """Resolve a file name against the working directory."""
        path = Path(file_name)
        if self.directory is not None and not path.is_absolute():
            path = Path(self.directory) / path
        return path

    @property
    def production_path(self) -> Path:
        return self.resolve(self.production_file)

    @property
    def consumers_path(self) -> Path:
        return self.resolve(self.consumers_file)

    @property
    def result_path(self) -> Path:
        return self.resolve(self.result_file)

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.production_file:
            raise ValueError("production_file must be given")
        if not self.consumers_file:
            raise ValueError("consumers_file must be given")
        if not self.result_file:
            raise ValueError("result_file must be given")
        if self.load_timeout <= 0:
            raise ValueError("load_timeout must be positive")
        self.optimizer.validate()

    def check_files(self) -> None:
        """
        Verify that the working directory and the input files exist.

        Raises:
            ConfigurationError: If the directory or an input file is missing
        """
        errors: List[str] = []

        if self.directory is not None and not Path(self.directory).is_dir():
            errors.append(
                f"The given working directory {self.directory} is not a directory"
            )
        else:
            if not self.production_path.is_file():
                errors.append(
                    f"The production file {self.production_path} does not exist"
                )
            if not self.consumers_path.is_file():
                errors.append(
                    f"The file {self.consumers_path} with consumer information "
                    f"does not exist"
                )

        if errors:
            for error in errors:
                logger.error(error)
            raise ConfigurationError("; ".join(errors))

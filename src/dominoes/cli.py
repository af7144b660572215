"""
Command line front-end of the DOMINOES simulator.

    dominoes -p production.csv -c consumers.csv -d data -s 1552370400 1552413600

writes the assigned start times to AST.csv in the data directory.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import SUPPORTED_METHODS, OptimizerConfig, SimulationConfig
from .data_structures import InterpolationType, TimeInterval
from .exceptions import DominoesError
from .solver import Solver
from .utils import format_schedule


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="dominoes",
        description="Assign start times to shiftable loads so that the energy "
                    "drawn from the grid is minimal for a given PV production.",
    )
    ap.add_argument("-p", "--production-file", required=True,
                    help="CSV file with the cumulative production in POSIX time")
    ap.add_argument("-c", "--consumers", required=True,
                    help="CSV file with ID, earliest start, latest start and "
                         "consumption file for each load")
    ap.add_argument("-d", "--directory", default=None,
                    help="Directory the file names are relative to")
    ap.add_argument("-a", "--assigned-times", default="AST.csv",
                    help="Output file for the assigned start times (default: AST.csv)")
    ap.add_argument("-s", "--sun-day", nargs=2, type=int, default=None,
                    metavar=("SUNRISE", "SUNSET"),
                    help="Sunrise and sunset in POSIX time, in any order")
    ap.add_argument("--interpolation", default=InterpolationType.STEFFEN.value,
                    choices=[kind.value for kind in InterpolationType],
                    help="Interpolation of the consumption profiles")
    ap.add_argument("--seed", type=int, default=None,
                    help="Seed for the random initial start times")
    ap.add_argument("--method", default="Powell", choices=SUPPORTED_METHODS,
                    help="Optimization method")
    ap.add_argument("--max-iterations", type=int, default=1000)
    ap.add_argument("--max-evaluations", type=int, default=None)
    ap.add_argument("--max-time", type=float, default=None,
                    help="Time budget of the optimizer in seconds")
    ap.add_argument("--log-level", default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return ap


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    """Translate parsed options into a simulation configuration."""
    solar_day = None
    if args.sun_day is not None:
        solar_day = TimeInterval.ordered(*args.sun_day)

    return SimulationConfig(
        production_file=args.production_file,
        consumers_file=args.consumers,
        result_file=args.assigned_times,
        directory=args.directory,
        solar_day=solar_day,
        interpolation_type=InterpolationType(args.interpolation),
        seed=args.seed,
        optimizer=OptimizerConfig(
            method=args.method,
            max_iterations=args.max_iterations,
            max_evaluations=args.max_evaluations,
            max_time=args.max_time,
        ),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        config = config_from_args(args)
        with Solver(config) as solver:
            result = solver.assign_start_times()
    except (DominoesError, ValueError) as e:
        logger.error(str(e))
        return 1

    print(format_schedule(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())

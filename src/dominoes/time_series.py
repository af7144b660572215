"""
Reading and writing of the simulator's text files.

All input files are plain two- or four-column tables without a header. The
columns may be separated by commas, semicolons or whitespace, and lines
starting with '#' are ignored.

Files handled here:
- time series: <time>, <cumulative energy> per line (production, profiles)
- consumer events: <ID>, <earliest start>, <latest start>, <consumption file>
- result file: 'Total grid energy <value>' followed by '<ID> <start>' lines
"""

import io
import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, Union

import numpy as np
import pandas as pd

from .data_structures import ConsumerEvent, ScheduleAssignment, ScheduleResult, TimeSample
from .exceptions import DataFormatError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SEPARATORS = r"[,;\s]+"
RESULT_HEADER = "Total grid energy"


def _read_table(file_name: PathLike, columns: int) -> pd.DataFrame:
    """
    Parse a headerless table with flexible separators.

    Every cell is read as text; callers convert the columns they need.

    Raises:
        DataFormatError: If the file is missing, empty, or has too few columns
    """
    path = Path(file_name)
    try:
        text = path.read_text()
    except OSError as e:
        raise DataFormatError(f"Cannot read {path}: {e}") from e

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line and not line.startswith('#')]
    if not lines:
        raise DataFormatError(f"The file {path} contains no data")

    try:
        df = pd.read_csv(
            io.StringIO("\n".join(lines)),
            sep=SEPARATORS,
            engine='python',
            header=None,
            dtype=str,
        )
    except (pd.errors.ParserError, ValueError) as e:
        raise DataFormatError(f"Malformed data in {path}: {e}") from e

    if df.shape[1] < columns:
        raise DataFormatError(
            f"Expected {columns} columns in {path}, found {df.shape[1]}"
        )

    df = df.iloc[:, :columns]
    if df.isna().any().any():
        raise DataFormatError(f"Missing values in {path}")
    return df


def read_time_series(
    file_name: PathLike,
    time_type: Callable = int
) -> Dict:
    """
    Read a two-column time series file.

    Duplicate time stamps collapse, the last value in the file wins.

    Args:
        file_name: Path to the CSV file
        time_type: Conversion applied to the time column (int for POSIX
            seconds, float for generic abscissae)

    Returns:
        Dictionary time → value in ascending time order

    Raises:
        DataFormatError: If the file is empty or cannot be parsed as numbers
    """
    df = _read_table(file_name, 2)
    try:
        times = pd.to_numeric(df[0]).to_numpy(dtype=float)
        values = pd.to_numeric(df[1]).to_numpy(dtype=float)
    except (ValueError, TypeError) as e:
        raise DataFormatError(f"Non-numeric data in {file_name}: {e}") from e

    if time_type is int:
        times = np.round(times).astype(np.int64)

    series = dict(zip((time_type(t) for t in times), (float(v) for v in values)))
    series = dict(sorted(series.items()))

    logger.debug(f"Read {len(series)} samples from {file_name}")
    return series


def iter_samples(series: Mapping) -> Iterator[TimeSample]:
    """Yield the samples of a time series in ascending time order."""
    for time, energy in sorted(series.items()):
        yield TimeSample(time, energy)


def read_consumer_events(file_name: PathLike) -> List[ConsumerEvent]:
    """
    Read the consumer events file.

    Relative consumption file names are resolved against the directory of
    the events file, so a data set can be moved as a whole.

    Returns:
        Consumer events in file order

    Raises:
        DataFormatError: If the file is empty or malformed
    """
    path = Path(file_name)
    df = _read_table(path, 4)

    events = []
    for row in df.itertuples(index=False):
        consumer_id, earliest, latest, consumption_file = row
        try:
            earliest_start = int(round(float(earliest)))
            latest_start = int(round(float(latest)))
        except ValueError as e:
            raise DataFormatError(
                f"Invalid start window for consumer {consumer_id} in {path}"
            ) from e

        consumption_path = Path(consumption_file)
        if not consumption_path.is_absolute():
            consumption_path = path.parent / consumption_path

        events.append(ConsumerEvent(
            consumer_id=str(consumer_id),
            earliest_start=earliest_start,
            latest_start=latest_start,
            consumption_file=str(consumption_path),
        ))

    logger.info(f"Read {len(events)} consumer events from {path}")
    return events


def write_result_file(file_name: PathLike, result: ScheduleResult) -> None:
    """Write the total grid energy and the assigned start times."""
    path = Path(file_name)
    with open(path, 'w') as f:
        f.write(f"{RESULT_HEADER} {result.total_grid_energy}\n")
        for assignment in result.assignments:
            f.write(f"{assignment.consumer_id} {assignment.start_time}\n")

    logger.info(f"Assigned start times written to {path}")


def read_result_file(file_name: PathLike) -> ScheduleResult:
    """
    Parse a result file written by write_result_file.

    Raises:
        DataFormatError: If the header line or an assignment is malformed
    """
    path = Path(file_name)
    lines = [line.strip() for line in path.read_text().splitlines()]
    lines = [line for line in lines if line]

    if not lines or not lines[0].startswith(RESULT_HEADER):
        raise DataFormatError(f"{path} is not a result file")

    try:
        total = float(lines[0][len(RESULT_HEADER):])
        assignments = []
        for line in lines[1:]:
            consumer_id, start = line.rsplit(maxsplit=1)
            assignments.append(ScheduleAssignment(consumer_id, int(start)))
    except ValueError as e:
        raise DataFormatError(f"Malformed result file {path}: {e}") from e

    return ScheduleResult(total_grid_energy=total, assignments=assignments)


def to_cumulative(series: Dict) -> Dict:
    """Running sum of an interval series, keeping the time stamps."""
    values = np.cumsum(list(series.values()))
    return dict(zip(series.keys(), values.tolist()))


def to_non_cumulative(series: Dict) -> Dict:
    """
    Interval values of a cumulative series.

    The first value is kept as is, every later one is the difference to its
    predecessor.
    """
    values = np.asarray(list(series.values()), dtype=float)
    if len(values) == 0:
        return {}
    deltas = np.concatenate(([values[0]], np.diff(values)))
    return dict(zip(series.keys(), deltas.tolist()))

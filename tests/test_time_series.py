"""
Tests for reading and writing the simulator's files.
"""

from pathlib import Path

import pytest

from dominoes import (
    ScheduleAssignment,
    ScheduleResult,
    TimeSample,
    iter_samples,
    read_consumer_events,
    read_result_file,
    read_time_series,
    to_cumulative,
    to_non_cumulative,
    write_result_file,
)
from dominoes.exceptions import DataFormatError


def write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestReadTimeSeries:

    def test_mixed_separators(self, tmp_path):
        """Test comma, semicolon and whitespace separators."""
        path = write(tmp_path / "production.csv",
                     "0, 0.0\n3600;1.5\n7200 2.5\n10800,\t4.0\n")
        series = read_time_series(path)
        assert series == {0: 0.0, 3600: 1.5, 7200: 2.5, 10800: 4.0}
        assert all(isinstance(t, int) for t in series)

    def test_sorted_by_time(self, tmp_path):
        """Test that samples are sorted by time."""
        path = write(tmp_path / "series.csv", "200,2\n0,0\n100,1\n")
        assert list(read_time_series(path)) == [0, 100, 200]

    def test_duplicate_time_last_wins(self, tmp_path):
        """Test that the last duplicate time wins."""
        path = write(tmp_path / "series.csv", "0,0\n100,1\n100,3\n")
        assert read_time_series(path) == {0: 0.0, 100: 3.0}

    def test_comments_and_blank_lines(self, tmp_path):
        """Test that comments and blank lines are skipped."""
        path = write(tmp_path / "series.csv", "# time, energy\n\n  0, 1\n  60, 2\n")
        assert read_time_series(path) == {0: 1.0, 60: 2.0}

    def test_float_abscissa(self, tmp_path):
        """Test reading a float abscissa."""
        path = write(tmp_path / "series.csv", "0.5,1\n1.5,2\n")
        assert read_time_series(path, time_type=float) == {0.5: 1.0, 1.5: 2.0}

    def test_empty_file_rejected(self, tmp_path):
        """Test rejection of an empty file."""
        path = write(tmp_path / "empty.csv", "")
        with pytest.raises(DataFormatError):
            read_time_series(path)

    def test_whitespace_only_rejected(self, tmp_path):
        """Test rejection of a file without data lines."""
        path = write(tmp_path / "blank.csv", "\n   \n# nothing\n")
        with pytest.raises(DataFormatError):
            read_time_series(path)

    def test_single_column_rejected(self, tmp_path):
        """Test rejection of a single column."""
        path = write(tmp_path / "bad.csv", "0\n1\n")
        with pytest.raises(DataFormatError):
            read_time_series(path)

    def test_non_numeric_rejected(self, tmp_path):
        """Test rejection of non-numeric values."""
        path = write(tmp_path / "bad.csv", "0,abc\n1,def\n")
        with pytest.raises(DataFormatError):
            read_time_series(path)

    def test_missing_file(self, tmp_path):
        """Test reading a missing file."""
        with pytest.raises(DataFormatError):
            read_time_series(tmp_path / "missing.csv")

    def test_data_format_error_is_value_error(self, tmp_path):
        """Test that format errors are ValueErrors."""
        path = write(tmp_path / "empty.csv", "")
        with pytest.raises(ValueError):
            read_time_series(path)


class TestIterSamples:

    def test_ascending_samples(self):
        """Test that samples come out in time order."""
        samples = list(iter_samples({600: 2.0, 0: 0.0, 300: 1.5}))
        assert samples == [TimeSample(0, 0.0), TimeSample(300, 1.5), TimeSample(600, 2.0)]

    def test_empty_series(self):
        """Test that an empty series yields nothing."""
        assert list(iter_samples({})) == []


class TestReadConsumerEvents:

    def test_rows_in_file_order(self, tmp_path):
        """Test that events keep the file order."""
        path = write(tmp_path / "consumers.csv",
                     "WM1, 1000, 5000, wm.csv\nDW2;2000;8000;/abs/dw.csv\n")
        events = read_consumer_events(path)

        assert [e.consumer_id for e in events] == ["WM1", "DW2"]
        assert events[0].earliest_start == 1000
        assert events[0].latest_start == 5000
        assert events[1].start_interval.upper == 8000

    def test_relative_paths_resolved(self, tmp_path):
        """Test resolving relative profile paths."""
        path = write(tmp_path / "consumers.csv", "WM1,0,10,profiles/wm.csv\n")
        event = read_consumer_events(path)[0]
        assert Path(event.consumption_file) == tmp_path / "profiles" / "wm.csv"

    def test_absolute_paths_kept(self, tmp_path):
        """Test that absolute profile paths are kept."""
        absolute = tmp_path / "elsewhere" / "wm.csv"
        path = write(tmp_path / "consumers.csv", f"WM1,0,10,{absolute}\n")
        assert Path(read_consumer_events(path)[0].consumption_file) == absolute

    def test_numeric_ids_kept_as_text(self, tmp_path):
        """Test that numeric IDs keep leading zeros."""
        path = write(tmp_path / "consumers.csv", "007,0,10,a.csv\n")
        assert read_consumer_events(path)[0].consumer_id == "007"

    def test_too_few_columns(self, tmp_path):
        """Test rejection of an events file with three columns."""
        path = write(tmp_path / "consumers.csv", "WM1,0,10\n")
        with pytest.raises(DataFormatError):
            read_consumer_events(path)

    def test_short_row_rejected(self, tmp_path):
        """Test that a row missing its consumption file is a format error."""
        path = write(tmp_path / "consumers.csv", "WM1,0,10,wm.csv\nDW2,0,10\n")
        with pytest.raises(DataFormatError):
            read_consumer_events(path)

    def test_too_few_columns_is_value_error(self, tmp_path):
        """Test that the command line error handling catches a short file."""
        path = write(tmp_path / "consumers.csv", "WM1,0,10\n")
        with pytest.raises(ValueError):
            read_consumer_events(path)

    def test_empty_file_rejected(self, tmp_path):
        """Test rejection of an empty file."""
        path = write(tmp_path / "consumers.csv", "")
        with pytest.raises(DataFormatError):
            read_consumer_events(path)


class TestResultFile:

    def test_round_trip(self, tmp_path):
        """Test writing and reading a result file."""
        result = ScheduleResult(
            total_grid_energy=12.5,
            assignments=[ScheduleAssignment("X", 100), ScheduleAssignment("Y", 200)],
        )
        path = tmp_path / "AST.csv"
        write_result_file(path, result)

        assert path.read_text() == "Total grid energy 12.5\nX 100\nY 200\n"

        parsed = read_result_file(path)
        assert parsed.total_grid_energy == 12.5
        assert parsed.start_times == {"X": 100, "Y": 200}
        assert [a.consumer_id for a in parsed.assignments] == ["X", "Y"]

    def test_not_a_result_file(self, tmp_path):
        """Test rejection of a file without the header line."""
        path = write(tmp_path / "AST.csv", "X 100\n")
        with pytest.raises(DataFormatError):
            read_result_file(path)


class TestCumulativeConversion:

    def test_non_cumulative(self):
        """Test conversion to interval values."""
        series = {0: 1.0, 10: 3.0, 20: 6.0}
        assert to_non_cumulative(series) == {0: 1.0, 10: 2.0, 20: 3.0}

    def test_cumulative_inverts(self):
        """Test that the running sum inverts the conversion."""
        series = {0: 1.0, 10: 3.0, 20: 6.0}
        assert to_cumulative(to_non_cumulative(series)) == pytest.approx(series)

    def test_empty(self):
        """Test conversion of an empty series."""
        assert to_non_cumulative({}) == {}

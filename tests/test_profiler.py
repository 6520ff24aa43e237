"""Tests for sheetops.profiler module."""

import pytest

from sheetops.exceptions import SheetUnreachableError
from sheetops.profiler import (
    ColumnType,
    PatternFlag,
    ProfileWindow,
    SampleConfig,
    SheetDescriptor,
    WindowRead,
    detect_header_row,
    infer_column_type,
    is_arithmetic_sequence,
    plan_windows,
    profile_sheet,
)

SALES_VALUES = [
    ["Date", "Units", "Revenue"],
    ["2024-01-01", 10, 150.5],
    ["2024-01-02", 12, 180],
    ["2024-01-03", 9, 135.25],
    ["2024-01-04", 15, 225],
    ["2024-01-05", 11, 165],
]


def _read(sheet: SheetDescriptor, values=None, formulas=None, error=None, index=0) -> WindowRead:
    window = plan_windows(sheet)[index]
    return WindowRead(window, values=values, formulas=formulas, error=error)


class TestInferColumnType:
    def test_dates(self) -> None:
        profile = infer_column_type(["2024-01-01", "2024-01-02", "2024-01-03"])
        assert profile.inferred_type == ColumnType.DATE
        assert profile.sample_count == 3

    def test_numbers_including_numeric_strings(self) -> None:
        assert infer_column_type([1, 2.5, "3", 4]).inferred_type == ColumnType.NUMBER

    def test_booleans(self) -> None:
        assert infer_column_type([True, False, "TRUE", "false"]).inferred_type == (
            ColumnType.BOOLEAN
        )

    def test_empty(self) -> None:
        profile = infer_column_type([None, "", "  "])
        assert profile.inferred_type == ColumnType.EMPTY
        assert profile.sample_count == 0

    def test_threshold_is_inclusive(self) -> None:
        # 4 of 5 numeric is exactly 0.8
        assert infer_column_type([1, 2, 3, 4, "x"]).inferred_type == ColumnType.NUMBER
        assert infer_column_type([1, 2, 3, "y", "x"]).inferred_type == ColumnType.TEXT

    def test_date_threshold(self) -> None:
        values = ["01/02/2024", "01/03/2024", "03-15-2024", "n/a", "tbd"]
        assert infer_column_type(values).inferred_type == ColumnType.DATE

    def test_impossible_date_is_text(self) -> None:
        assert infer_column_type(["2024-13-45", "2024-02-30"]).inferred_type == ColumnType.TEXT


class TestSequencesAndHeaders:
    def test_arithmetic_sequence(self) -> None:
        assert is_arithmetic_sequence([1, 2, 3, 4])
        assert is_arithmetic_sequence([10, 7.5, 5, 2.5])
        assert is_arithmetic_sequence([0.1, 0.2, 0.3])
        assert not is_arithmetic_sequence([1, 2])
        assert not is_arithmetic_sequence([1, 2, 4])

    def test_text_header(self) -> None:
        assert detect_header_row(SALES_VALUES) == ["Date", "Units", "Revenue"]

    def test_numeric_first_row_is_not_header(self) -> None:
        assert detect_header_row([[1, 2, 3], [4, 5, 6]]) is None

    def test_boolean_first_row_is_not_header(self) -> None:
        assert detect_header_row([[True, "FALSE"], [1, 2]]) is None

    def test_date_headers_count_as_text(self) -> None:
        grid = [["Name", "2024-01-01", "2024-02-01"], ["a", 1, 2]]
        assert detect_header_row(grid) == ["Name", "2024-01-01", "2024-02-01"]

    def test_blank_header_keeps_position(self) -> None:
        grid = [["Name", "", "Revenue"], ["a", 1, 2.5]]
        assert detect_header_row(grid) == ["Name", "", "Revenue"]

    def test_header_ratio(self) -> None:
        assert detect_header_row([["a", "b", "c", 2024]]) == ["a", "b", "c", "2024"]
        assert detect_header_row([["a", 1, 2]]) is None

    def test_blank_first_row(self) -> None:
        assert detect_header_row([[None, ""], ["a", "b"]]) is None
        assert detect_header_row([]) is None


class TestPlanWindows:
    def test_small_sheet_single_window(self) -> None:
        windows = plan_windows(SheetDescriptor("Small", row_count=5, column_count=3))
        assert [w.name for w in windows] == ["top_left"]
        assert windows[0].range.to_a1() == "Small!A1:C5"

    def test_large_sheet_has_middle_window(self) -> None:
        windows = plan_windows(SheetDescriptor("Sales", row_count=1000, column_count=26))
        assert [(w.name, w.range.to_a1()) for w in windows] == [
            ("top_left", "Sales!A1:J10"),
            ("middle", "Sales!M500:R505"),
        ]

    def test_custom_config(self) -> None:
        config = SampleConfig(sample_rows=3, sample_columns=2)
        windows = plan_windows(SheetDescriptor("S", 10, 10), config)
        assert windows[0].range.to_a1() == "S!A1:B3"

    def test_one_cell_sheet(self) -> None:
        windows = plan_windows(SheetDescriptor("Scratch", row_count=1, column_count=1))
        assert windows[0].range.to_a1() == "Scratch!A1"


class TestProfileSheet:
    def test_sales_sheet(self) -> None:
        sheet = SheetDescriptor("Sales", row_count=6, column_count=3)
        sample = profile_sheet(sheet, [_read(sheet, SALES_VALUES)])
        assert sample.detected_headers == ["Date", "Units", "Revenue"]
        assert sample.column_types == [ColumnType.DATE, ColumnType.NUMBER, ColumnType.NUMBER]
        assert sample.has(PatternFlag.HAS_DATE_RANGE)
        assert not sample.has(PatternFlag.HAS_NUMERIC_SEQUENCE)
        assert not sample.has(PatternFlag.HAS_FORMULAS)
        assert sample.diagnostics == []

    def test_numeric_sequence_flag(self) -> None:
        sheet = SheetDescriptor("Ids", row_count=5, column_count=1)
        sample = profile_sheet(sheet, [_read(sheet, [["ID"], [1], [2], [3], [4]])])
        assert sample.column_types == [ColumnType.NUMBER]
        assert sample.has(PatternFlag.HAS_NUMERIC_SEQUENCE)

    def test_formulas_flag(self) -> None:
        sheet = SheetDescriptor("Calc", row_count=2, column_count=2)
        read = _read(sheet, [[1, 2], [3, 3]], formulas=[[1, 2], [3, "=A2"]])
        assert profile_sheet(sheet, [read]).has(PatternFlag.HAS_FORMULAS)

    def test_ragged_rows_padded(self) -> None:
        sheet = SheetDescriptor("R", row_count=3, column_count=3)
        sample = profile_sheet(sheet, [_read(sheet, [["a", "b", "c"], [1], [2, 3]])])
        assert sample.grid == [["a", "b", "c"], [1, None, None], [2, 3, None]]
        assert sample.column_types == [ColumnType.NUMBER, ColumnType.NUMBER, ColumnType.EMPTY]

    def test_partial_failure_recorded(self, caplog: pytest.LogCaptureFixture) -> None:
        sheet = SheetDescriptor("Big", row_count=100, column_count=20)
        reads = [
            _read(sheet, SALES_VALUES),
            _read(sheet, error="HTTP 500", index=1),
        ]
        sample = profile_sheet(sheet, reads)
        assert sample.detected_headers == ["Date", "Units", "Revenue"]
        assert sample.diagnostics == ["middle window Big!J50:O55: HTTP 500"]
        assert "Skipping middle window" in caplog.text

    def test_middle_only_has_no_headers(self) -> None:
        sheet = SheetDescriptor("Big", row_count=100, column_count=20)
        reads = [
            _read(sheet, error="timeout"),
            _read(sheet, [[1, 2], [2, 4], [3, 6]], index=1),
        ]
        sample = profile_sheet(sheet, reads)
        assert sample.detected_headers is None
        assert sample.range.to_a1() == "Big!J50:O55"
        assert sample.has(PatternFlag.HAS_NUMERIC_SEQUENCE)
        assert sample.diagnostics[-1] == "top-left window unavailable; headers not detected"

    def test_flags_are_union_of_windows(self) -> None:
        sheet = SheetDescriptor("Big", row_count=100, column_count=20)
        reads = [
            _read(sheet, [["Name"], ["x"], ["y"]]),
            _read(sheet, [["2024-01-01"], ["2024-02-01"]], index=1),
        ]
        sample = profile_sheet(sheet, reads)
        assert sample.column_types == [ColumnType.TEXT]
        assert sample.has(PatternFlag.HAS_DATE_RANGE)

    def test_all_windows_fail(self) -> None:
        sheet = SheetDescriptor("Gone", row_count=100, column_count=20)
        reads = [_read(sheet, error="403"), _read(sheet, error="403", index=1)]
        with pytest.raises(SheetUnreachableError) as exc_info:
            profile_sheet(sheet, reads)
        assert exc_info.value.sheet_title == "Gone"
        assert len(exc_info.value.reasons) == 2

    def test_no_reads(self) -> None:
        with pytest.raises(SheetUnreachableError):
            profile_sheet(SheetDescriptor("Empty", 1, 1), [])

    def test_to_dict(self) -> None:
        sheet = SheetDescriptor("Sales", row_count=6, column_count=3)
        data = profile_sheet(sheet, [_read(sheet, SALES_VALUES)]).to_dict()
        assert data["range"] == "Sales!A1:C6"
        assert data["flags"] == ["hasDateRange"]
        assert data["columnProfiles"][0] == {"type": "date", "sampleCount": 5}

    def test_window_read_ok(self) -> None:
        window = ProfileWindow("top_left", plan_windows(SheetDescriptor("S", 1, 1))[0].range)
        assert WindowRead(window, values=[]).ok
        assert not WindowRead(window).ok
        assert not WindowRead(window, values=[], error="x").ok

"""Tests for sheetops.context module."""

from sheetops.context import analyze_sheet, build_spreadsheet_context
from sheetops.profiler import (
    SheetDescriptor,
    SheetSample,
    WindowRead,
    plan_windows,
    profile_sheet,
)


def _sample(sheet: SheetDescriptor, values: list, formulas: list | None = None) -> SheetSample:
    window = plan_windows(sheet)[0]
    return profile_sheet(sheet, [WindowRead(window, values=values, formulas=formulas)])


class TestAnalyzeSheet:
    def test_headers_and_types(self) -> None:
        sheet = SheetDescriptor("Sales", row_count=3, column_count=2)
        sample = _sample(sheet, [["Date", "Units"], ["2024-01-01", 1], ["2024-01-02", 5]])
        analysis = analyze_sheet(sheet, sample)
        assert analysis.has_headers
        assert analysis.data_types == {"Date": "date", "Units": "number"}
        assert analysis.patterns == ["Has headers: Date, Units", "Contains date ranges"]
        assert analysis.suggestions == [
            "Time-series data detected - suitable for trend analysis",
            "Numerical and date data available - suitable for time-series analysis",
        ]

    def test_blank_header_cell_uses_column_name(self) -> None:
        sheet = SheetDescriptor("Sales", row_count=3, column_count=3)
        sample = _sample(sheet, [["Name", "", "Revenue"], ["a", 1, 2.5], ["b", 2, 3.5]])
        analysis = analyze_sheet(sheet, sample)
        assert analysis.data_types == {"Name": "text", "Column_2": "number", "Revenue": "number"}
        assert analysis.patterns[0] == "Has headers: Name, Revenue"

    def test_no_headers_uses_column_names(self) -> None:
        sheet = SheetDescriptor("Raw", row_count=3, column_count=2)
        sample = _sample(sheet, [[1, "a"], [2, "b"], [3, "c"]], formulas=[["=1", "a"]])
        analysis = analyze_sheet(sheet, sample)
        assert not analysis.has_headers
        assert analysis.data_types == {"Column_1": "number", "Column_2": "text"}
        assert analysis.patterns == [
            "Contains numerical sequences",
            "Contains formulas",
        ]
        assert analysis.suggestions == [
            "Contains calculated fields - good for automated analysis",
            "Sequential data detected - good for forecasting",
        ]

    def test_size_suggestions(self) -> None:
        sheet = SheetDescriptor("Wide", row_count=5000, column_count=40)
        analysis = analyze_sheet(sheet, _sample(sheet, [["a"], ["b"]]))
        assert analysis.suggestions[:2] == [
            "Large dataset - consider using filters or pivot tables for analysis",
            "Wide dataset - consider grouping related columns",
        ]

    def test_unreachable_sheet(self) -> None:
        sheet = SheetDescriptor("Gone", row_count=10, column_count=3)
        analysis = analyze_sheet(sheet, None)
        assert analysis.sample is None
        assert analysis.suggestions == ['Unable to analyze sheet "Gone"']
        assert analysis.to_dict()["rowCount"] == 10


class TestBuildSpreadsheetContext:
    def test_summary_and_recommendations(self) -> None:
        sales = SheetDescriptor("Sales", row_count=20000, column_count=5)
        scratch = SheetDescriptor("Scratch", row_count=1, column_count=1)
        raw = SheetDescriptor("Raw", row_count=4, column_count=2)
        analyses = [
            analyze_sheet(sales, _sample(sales, [["Name"], ["x"]])),
            analyze_sheet(scratch, None),
            analyze_sheet(raw, _sample(raw, [[1, 2], [3, 4]], formulas=[["=A1", 2]])),
        ]
        context = build_spreadsheet_context("Book", analyses)
        assert context.total_cells == 100000 + 1 + 8
        assert context.summary == (
            'Spreadsheet "Book" contains 3 sheet(s) with 20005 total rows and '
            "8 total columns. 1 sheet(s) have headers, 1 sheet(s) contain formulas."
        )
        assert context.recommendations == [
            "Consider removing 1 empty sheet(s)",
            "Large sheets detected - consider data validation and performance optimization",
            "Add headers to improve data clarity and analysis capabilities",
        ]

    def test_empty_spreadsheet(self) -> None:
        context = build_spreadsheet_context("Blank", [])
        assert context.total_cells == 0
        assert context.recommendations == []
        assert context.to_dict()["sheets"] == []

"""Tests for sheetops.ranges module."""

import pytest

from sheetops.coordinates import CellRef
from sheetops.exceptions import InvalidRangeError
from sheetops.ranges import (
    Range,
    RangeHistory,
    RangeKind,
    expand_range,
    parse_range,
    quote_sheet_name,
    range_from_grid_range,
    suggest_ranges,
)


class TestParseRange:
    """Tests for the range syntaxes."""

    def test_single_cell(self) -> None:
        r = parse_range("A1")
        assert r.kind == RangeKind.CELL
        assert r.start == CellRef(1, 1)
        assert r.sheet_name is None

    def test_bounded_range(self) -> None:
        r = parse_range("A1:C10")
        assert r.kind == RangeKind.BOUNDED_RANGE
        assert r.start == CellRef(1, 1)
        assert r.end == CellRef(10, 3)

    def test_full_column(self) -> None:
        r = parse_range("A:A")
        assert r.kind == RangeKind.FULL_COLUMN
        assert (r.start_column, r.end_column) == (1, 1)
        assert r.start_row is None and r.end_row is None

    def test_full_row(self) -> None:
        r = parse_range("1:5")
        assert r.kind == RangeKind.FULL_ROW
        assert (r.start_row, r.end_row) == (1, 5)
        assert r.start_column is None and r.end_column is None

    def test_sheet_qualified(self) -> None:
        r = parse_range("Sheet2!B2:B4")
        assert r.kind == RangeKind.BOUNDED_RANGE
        assert r.sheet_name == "Sheet2"
        assert r.start == CellRef(2, 2)
        assert r.end == CellRef(4, 2)

    def test_quoted_sheet_name(self) -> None:
        r = parse_range("'My Sheet'!A1")
        assert r.sheet_name == "My Sheet"
        assert r.kind == RangeKind.CELL

    def test_quoted_sheet_name_with_escaped_quote(self) -> None:
        r = parse_range("'Bob''s Data'!A:C")
        assert r.sheet_name == "Bob's Data"
        assert r.kind == RangeKind.FULL_COLUMN
        assert (r.start_column, r.end_column) == (1, 3)

    def test_current_sheet_applies_without_prefix(self) -> None:
        assert parse_range("A1", current_sheet="Data").sheet_name == "Data"
        assert parse_range("Other!A1", current_sheet="Data").sheet_name == "Other"

    def test_whitespace_and_case(self) -> None:
        r = parse_range("  b2:c3 ")
        assert r.start == CellRef(2, 2)
        assert r.end == CellRef(3, 3)

    def test_named_range_known(self) -> None:
        r = parse_range("Revenue", named_ranges={"Revenue"})
        assert r.kind == RangeKind.NAMED_RANGE
        assert r.name == "Revenue"
        assert r.start is None

    def test_named_range_unknown_is_invalid(self) -> None:
        with pytest.raises(InvalidRangeError):
            parse_range("Revenue", named_ranges=set())

    def test_cell_shaped_token_is_a_cell_even_if_named(self) -> None:
        # cell references are tried before named ranges
        assert parse_range("AB12", named_ranges={"AB12"}).kind == RangeKind.CELL


class TestReversedCorners:
    """Reversed corners are normalized, never rejected."""

    def test_bounded_swapped(self) -> None:
        r = parse_range("C10:A1")
        assert r.start == CellRef(1, 1)
        assert r.end == CellRef(10, 3)

    def test_per_axis_swap(self) -> None:
        r = parse_range("A10:C1")
        assert r.start == CellRef(1, 1)
        assert r.end == CellRef(10, 3)

    def test_full_column_swapped(self) -> None:
        r = parse_range("D:B")
        assert (r.start_column, r.end_column) == (2, 4)

    def test_full_row_swapped(self) -> None:
        r = parse_range("9:3")
        assert (r.start_row, r.end_row) == (3, 9)


class TestInvalidRanges:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "A1:",
            ":B2",
            "A1:B2:C3",
            "A0",
            "A1:1B",
            "0:5",
            "Sheet1!",
            "!A1",
            "A1!B2!C3",
            "Total Sales",
            "1abc",
        ],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(InvalidRangeError):
            parse_range(text)

    def test_error_carries_expression(self) -> None:
        with pytest.raises(InvalidRangeError) as exc_info:
            parse_range("Sheet1!Nope")
        assert exc_info.value.expression == "Sheet1!Nope"


class TestRendering:
    def test_to_a1_roundtrip(self) -> None:
        for text in ("A1", "A1:C10", "A:C", "1:5", "Sheet2!B2:B4"):
            assert parse_range(text).to_a1() == text

    def test_to_a1_quotes_sheet(self) -> None:
        assert parse_range("A1", current_sheet="My Sheet").to_a1() == "'My Sheet'!A1"
        assert parse_range("A1", current_sheet="Bob's").to_a1() == "'Bob''s'!A1"

    def test_to_a1_without_sheet(self) -> None:
        assert parse_range("Data!A1:B2").to_a1(include_sheet=False) == "A1:B2"

    def test_quote_sheet_name(self) -> None:
        assert quote_sheet_name("Sheet1") == "Sheet1"
        assert quote_sheet_name("2024") == "'2024'"
        assert quote_sheet_name("AB12") == "'AB12'"

    def test_grid_range_bounded(self) -> None:
        assert parse_range("B2:C10").to_grid_range(7) == {
            "sheetId": 7,
            "startRowIndex": 1,
            "endRowIndex": 10,
            "startColumnIndex": 1,
            "endColumnIndex": 3,
        }

    def test_grid_range_omits_open_axis(self) -> None:
        assert parse_range("B:C").to_grid_range() == {
            "sheetId": 0,
            "startColumnIndex": 1,
            "endColumnIndex": 3,
        }
        assert parse_range("2:4").to_grid_range() == {
            "sheetId": 0,
            "startRowIndex": 1,
            "endRowIndex": 4,
        }

    def test_grid_range_named_raises(self) -> None:
        r = parse_range("Revenue", named_ranges={"Revenue"})
        with pytest.raises(InvalidRangeError):
            r.to_grid_range()

    def test_range_from_grid_range(self) -> None:
        r = range_from_grid_range(
            {
                "sheetId": 0,
                "startRowIndex": 1,
                "endRowIndex": 6,
                "startColumnIndex": 2,
                "endColumnIndex": 3,
            },
            sheet_name="Sales",
        )
        assert r.kind == RangeKind.BOUNDED_RANGE
        assert r.to_a1() == "Sales!C2:C6"

    def test_counts(self) -> None:
        r = parse_range("A1:C10")
        assert (r.row_count, r.column_count, r.cell_count) == (10, 3, 30)
        col = parse_range("A:B")
        assert col.row_count is None
        assert col.column_count == 2
        assert col.cell_count is None
        assert not col.is_bounded


class TestExpandRange:
    def test_expand_cell(self) -> None:
        r = expand_range(parse_range("B2"), rows=2, columns=1)
        assert r.kind == RangeKind.BOUNDED_RANGE
        assert r.to_a1() == "B2:C4"

    def test_shrink_stops_at_start(self) -> None:
        r = expand_range(parse_range("B2:D4"), rows=-10, columns=-10)
        assert r.kind == RangeKind.CELL
        assert r.to_a1() == "B2"

    def test_other_kinds_unchanged(self) -> None:
        r = parse_range("A:A")
        assert expand_range(r, rows=5) is r


class TestSuggestions:
    def test_history_most_recent_first(self) -> None:
        history = RangeHistory(max_size=3)
        for expr in ("A1", "B2", "A1", "C3", "D4"):
            history.add(expr)
        assert list(history) == ["D4", "C3", "A1"]
        assert len(history) == 3

    def test_suggest_filters_by_substring(self) -> None:
        history = RangeHistory()
        history.add("Sales!A1:C10")
        suggestions = suggest_ranges("a1", history=history, named_ranges=["Area1", "Total"])
        assert [s.range for s in suggestions] == [
            "A1:Z1000",
            "A1:B10",
            "Sales!A1:C10",
            "Area1",
        ]
        assert [s.source for s in suggestions] == ["common", "common", "recent", "named"]

    def test_suggest_limit(self) -> None:
        assert len(suggest_ranges("", limit=2)) == 2

    def test_range_is_hashable_value(self) -> None:
        assert parse_range("A1:B2") == Range(
            RangeKind.BOUNDED_RANGE, None, 1, 1, 2, 2
        )

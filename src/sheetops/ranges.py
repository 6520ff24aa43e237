"""Range expressions: parsing, normalization and A1/GridRange rendering.

Supported syntaxes:
    A1            single cell
    A1:C10        bounded range (reversed corners are swapped, never rejected)
    A:C           full column(s)
    1:5           full row(s)
    Sheet2!B2:B4  sheet-qualified, any of the above ('My Sheet'!A1 for quoted names)
    Revenue       named range, only when present in the caller's named-range set
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from sheetops.coordinates import (
    CellRef,
    cell_to_a1,
    column_to_number,
    has_digits,
    has_letters,
    number_to_column,
    parse_cell_reference,
)
from sheetops.exceptions import InvalidRangeError, InvalidReferenceError

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
SHEET_PREFIX_PATTERN = re.compile(r"^(?:'((?:[^']|'')+)'|([^'!]+))!(.*)$")
ROW_PATTERN = re.compile(r"^\d+$")


class RangeKind(str, Enum):
    """The five range shapes."""

    CELL = "cell"
    BOUNDED_RANGE = "bounded_range"
    FULL_COLUMN = "full_column"
    FULL_ROW = "full_row"
    NAMED_RANGE = "named_range"


@dataclass(frozen=True)
class Range:
    """A normalized range.

    Bounds are 1-based and inclusive. FULL_COLUMN ranges carry only column
    bounds, FULL_ROW ranges only row bounds, NAMED_RANGE ranges only a name.
    """

    kind: RangeKind
    sheet_name: str | None = None
    start_row: int | None = None
    start_column: int | None = None
    end_row: int | None = None
    end_column: int | None = None
    name: str | None = None

    @property
    def start(self) -> CellRef | None:
        if self.start_row is None or self.start_column is None:
            return None
        return CellRef(self.start_row, self.start_column)

    @property
    def end(self) -> CellRef | None:
        if self.end_row is None or self.end_column is None:
            return None
        return CellRef(self.end_row, self.end_column)

    @property
    def row_count(self) -> int | None:
        if self.start_row is None or self.end_row is None:
            return None
        return self.end_row - self.start_row + 1

    @property
    def column_count(self) -> int | None:
        if self.start_column is None or self.end_column is None:
            return None
        return self.end_column - self.start_column + 1

    @property
    def cell_count(self) -> int | None:
        rows, columns = self.row_count, self.column_count
        if rows is None or columns is None:
            return None
        return rows * columns

    @property
    def is_bounded(self) -> bool:
        return self.cell_count is not None

    def with_sheet(self, sheet_name: str | None) -> Range:
        return replace(self, sheet_name=sheet_name)

    def to_a1(self, include_sheet: bool = True) -> str:
        """Render as A1 notation, prefixed with the (quoted) sheet name if set."""
        body = self._a1_body()
        if include_sheet and self.sheet_name:
            return f"{quote_sheet_name(self.sheet_name)}!{body}"
        return body

    def _a1_body(self) -> str:
        if self.kind == RangeKind.NAMED_RANGE:
            return self.name or ""
        if self.kind == RangeKind.FULL_COLUMN:
            assert self.start_column is not None and self.end_column is not None
            return f"{number_to_column(self.start_column)}:{number_to_column(self.end_column)}"
        if self.kind == RangeKind.FULL_ROW:
            return f"{self.start_row}:{self.end_row}"
        assert self.start_row is not None and self.start_column is not None
        start_a1 = cell_to_a1(self.start_row, self.start_column)
        if self.end_row is None or self.end_column is None:
            return start_a1
        if (self.end_row, self.end_column) == (self.start_row, self.start_column):
            return start_a1
        return f"{start_a1}:{cell_to_a1(self.end_row, self.end_column)}"

    def to_grid_range(self, sheet_id: int = 0) -> dict[str, int]:
        """Convert to a GridRange dict (zero-based, end-exclusive).

        Open axes are omitted, which the API reads as unbounded.
        """
        if self.kind == RangeKind.NAMED_RANGE:
            raise InvalidRangeError(
                self.to_a1(), "named ranges have no grid bounds until resolved"
            )
        grid_range: dict[str, int] = {"sheetId": sheet_id}
        if self.start_row is not None:
            grid_range["startRowIndex"] = self.start_row - 1
            end_row = self.end_row if self.end_row is not None else self.start_row
            grid_range["endRowIndex"] = end_row
        if self.start_column is not None:
            grid_range["startColumnIndex"] = self.start_column - 1
            end_column = (
                self.end_column if self.end_column is not None else self.start_column
            )
            grid_range["endColumnIndex"] = end_column
        return grid_range

    def __str__(self) -> str:
        return self.to_a1()


def quote_sheet_name(title: str) -> str:
    """Quote a sheet title for use in A1 notation when it needs it.

    Sheet names containing spaces, special characters, or starting with
    digits need to be wrapped in single quotes.
    """
    needs_quoting = (
        not IDENTIFIER_PATTERN.match(title)
        or (len(title) > 0 and title[0].isdigit())
        or bool(re.match(r"^[A-Za-z]{1,3}\d+$", title))
    )
    if needs_quoting:
        escaped = title.replace("'", "''")
        return f"'{escaped}'"
    return title


def parse_range(
    text: str,
    current_sheet: str | None = None,
    named_ranges: Iterable[str] = (),
) -> Range:
    """Parse a range expression into a normalized Range.

    Args:
        text: The expression, e.g. "Sheet2!B2:B4", "A:A", "Revenue"
        current_sheet: Sheet applied when the expression has no prefix
        named_ranges: Names defined in the spreadsheet; a bare identifier
            is only accepted when it appears here

    Raises:
        InvalidRangeError: if the expression matches none of the syntaxes
    """
    if not isinstance(text, str):
        raise InvalidRangeError(str(text), "range must be a string")
    expression = text.strip()
    if not expression:
        raise InvalidRangeError(text, "range is empty")

    sheet_name = current_sheet
    body = expression
    prefix = SHEET_PREFIX_PATTERN.match(expression)
    if prefix:
        quoted, bare, body = prefix.groups()
        sheet_name = quoted.replace("''", "'") if quoted is not None else bare.strip()
        body = body.strip()
        if not sheet_name:
            raise InvalidRangeError(text, "sheet name is empty")
        if not body:
            raise InvalidRangeError(text, "nothing after the sheet name")
    elif "!" in expression:
        raise InvalidRangeError(text, "malformed sheet prefix")

    try:
        parsed = _parse_body(body, frozenset(named_ranges))
    except InvalidReferenceError as e:
        raise InvalidRangeError(text, e.reason) from e
    except InvalidRangeError as e:
        raise InvalidRangeError(text, e.reason) from e

    result = parsed.with_sheet(sheet_name)
    logger.debug("Parsed range %r as %s", text, result)
    return result


def _parse_body(body: str, named_ranges: frozenset[str]) -> Range:
    if ":" in body:
        parts = body.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidRangeError(body, "expected exactly two sides around ':'")
        left, right = (p.strip() for p in parts)

        if not has_digits(left) and not has_digits(right):
            first, last = sorted((column_to_number(left), column_to_number(right)))
            return Range(RangeKind.FULL_COLUMN, start_column=first, end_column=last)

        if not has_letters(left) and not has_letters(right):
            first, last = sorted((_parse_row(left), _parse_row(right)))
            return Range(RangeKind.FULL_ROW, start_row=first, end_row=last)

        start = parse_cell_reference(left)
        end = parse_cell_reference(right)
        top, bottom = sorted((start.row, end.row))
        left_col, right_col = sorted((start.column, end.column))
        return Range(
            RangeKind.BOUNDED_RANGE,
            start_row=top,
            start_column=left_col,
            end_row=bottom,
            end_column=right_col,
        )

    try:
        cell = parse_cell_reference(body)
    except InvalidReferenceError:
        cell = None
    if cell is not None:
        return Range(
            RangeKind.CELL,
            start_row=cell.row,
            start_column=cell.column,
            end_row=cell.row,
            end_column=cell.column,
        )

    if IDENTIFIER_PATTERN.match(body):
        if body in named_ranges:
            return Range(RangeKind.NAMED_RANGE, name=body)
        raise InvalidRangeError(body, "not a cell reference or a known named range")

    raise InvalidRangeError(body, "unrecognized range syntax")


def _parse_row(token: str) -> int:
    if not ROW_PATTERN.match(token):
        raise InvalidReferenceError(token, "row must be digits")
    row = int(token)
    if row < 1:
        raise InvalidReferenceError(token, "row must be >= 1")
    return row


def range_from_grid_range(
    grid_range: dict[str, Any], sheet_name: str | None = None
) -> Range:
    """Convert a GridRange dict (zero-based, end-exclusive) back to a Range."""
    start_row = grid_range.get("startRowIndex")
    end_row = grid_range.get("endRowIndex")
    start_col = grid_range.get("startColumnIndex")
    end_col = grid_range.get("endColumnIndex")

    rows = (start_row or 0) + 1, end_row
    columns = (start_col or 0) + 1, end_col
    has_rows = start_row is not None or end_row is not None
    has_cols = start_col is not None or end_col is not None

    if has_rows and has_cols and end_row is not None and end_col is not None:
        kind = (
            RangeKind.CELL
            if end_row - rows[0] == 0 and end_col - columns[0] == 0
            else RangeKind.BOUNDED_RANGE
        )
        return Range(kind, sheet_name, rows[0], columns[0], end_row, end_col)
    if has_cols and end_col is not None and not has_rows:
        return Range(
            RangeKind.FULL_COLUMN, sheet_name, start_column=columns[0], end_column=end_col
        )
    if has_rows and end_row is not None and not has_cols:
        return Range(RangeKind.FULL_ROW, sheet_name, start_row=rows[0], end_row=end_row)
    raise InvalidRangeError(str(grid_range), "grid range is not rectangular")


def expand_range(range_: Range, rows: int = 0, columns: int = 0) -> Range:
    """Grow a cell or bounded range by moving its end corner.

    Other kinds are returned unchanged.
    """
    if range_.kind not in (RangeKind.CELL, RangeKind.BOUNDED_RANGE):
        return range_
    assert range_.end_row is not None and range_.end_column is not None
    end_row = max(range_.start_row or 1, range_.end_row + rows)
    end_column = max(range_.start_column or 1, range_.end_column + columns)
    kind = (
        RangeKind.CELL
        if (end_row, end_column) == (range_.start_row, range_.start_column)
        else RangeKind.BOUNDED_RANGE
    )
    return replace(range_, kind=kind, end_row=end_row, end_column=end_column)


# Shown before recent and named ranges when suggesting
COMMON_RANGES = (
    ("A:A", "Entire column A"),
    ("1:1", "Entire row 1"),
    ("A1:Z1000", "Large data range"),
    ("A1:B10", "Small table range"),
)


@dataclass(frozen=True)
class RangeSuggestion:
    range: str
    description: str
    source: str  # "common", "recent" or "named"


class RangeHistory:
    """Most-recently-used range expressions, newest first."""

    def __init__(self, max_size: int = 10) -> None:
        self._max_size = max_size
        self._items: list[str] = []

    def add(self, expression: str) -> None:
        self._items = [r for r in self._items if r != expression]
        self._items.insert(0, expression)
        del self._items[self._max_size :]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


def suggest_ranges(
    text: str = "",
    history: RangeHistory | None = None,
    named_ranges: Iterable[str] = (),
    limit: int = 10,
) -> list[RangeSuggestion]:
    """Suggest range expressions matching a partial input (case-insensitive)."""
    needle = text.lower()
    suggestions: list[RangeSuggestion] = []

    for expression, description in COMMON_RANGES:
        if not needle or needle in expression.lower():
            suggestions.append(RangeSuggestion(expression, description, "common"))

    for expression in history or ():
        if not needle or needle in expression.lower():
            suggestions.append(RangeSuggestion(expression, "Recently used", "recent"))

    for name in named_ranges:
        if not needle or needle in name.lower():
            suggestions.append(RangeSuggestion(name, "Named range", "named"))

    return suggestions[:limit]

"""Sheet profiling: column types, header detection and structural patterns.

The profiler works on windows a caller has already read. plan_windows()
says which blocks to read; profile_sheet() turns the reads (some of which
may have failed) into a SheetSample. Nothing here performs I/O.

Thresholds are fixed policy values compared with >=:

    HEADER_TEXT_RATIO  first-row cells that must be non-numeric text
    NUMBER_RATIO       non-empty values that must be numeric
    DATE_RATIO         non-empty values that must be dates
    BOOLEAN_RATIO      non-empty values that must be booleans
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sheetops.exceptions import SheetUnreachableError
from sheetops.ranges import Range, RangeKind

if TYPE_CHECKING:
    from sheetops.config import Settings

logger = logging.getLogger(__name__)

HEADER_TEXT_RATIO = 0.7
NUMBER_RATIO = 0.8
DATE_RATIO = 0.6
BOOLEAN_RATIO = 0.8

SEQUENCE_TOLERANCE = 0.001
MIN_SEQUENCE_VALUES = 3
MIN_DATE_RANGE_VALUES = 2

# (shape, strptime format); a value must match the shape and parse
DATE_FORMATS = (
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{2}-\d{2}-\d{4}$"), "%m-%d-%Y"),
)

TOP_LEFT_WINDOW = "top_left"
MIDDLE_WINDOW = "middle"


class ColumnType(str, Enum):
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    TEXT = "text"
    EMPTY = "empty"


class PatternFlag(str, Enum):
    HAS_FORMULAS = "hasFormulas"
    HAS_NUMERIC_SEQUENCE = "hasNumericSequence"
    HAS_DATE_RANGE = "hasDateRange"


@dataclass(frozen=True)
class ColumnProfile:
    inferred_type: ColumnType
    sample_count: int


@dataclass(frozen=True)
class SampleConfig:
    """Window sizes used when sampling a sheet."""

    sample_rows: int = 10
    sample_columns: int = 10
    middle_rows: int = 5
    middle_columns: int = 5
    large_sheet_rows: int = 20
    large_sheet_columns: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> SampleConfig:
        return cls(sample_rows=settings.sample_rows, sample_columns=settings.sample_columns)


@dataclass(frozen=True)
class SheetDescriptor:
    """The sheet being profiled, as reported by spreadsheet metadata."""

    title: str
    row_count: int
    column_count: int
    sheet_id: int = 0


@dataclass(frozen=True)
class ProfileWindow:
    name: str
    range: Range


@dataclass
class WindowRead:
    """The result of reading one window: values, or the error that prevented it."""

    window: ProfileWindow
    values: list[list[Any]] | None = None
    formulas: list[list[Any]] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.values is not None


@dataclass
class WindowProfile:
    window: ProfileWindow
    grid: list[list[Any]]
    headers: list[str] | None
    column_profiles: list[ColumnProfile]
    flags: frozenset[PatternFlag]


@dataclass
class SheetSample:
    """Profile of a sheet built from its sampled windows.

    ``range``, ``grid``, ``detected_headers`` and ``column_profiles`` come
    from the top-left window (or the first window that could be read);
    ``flags`` are the union over all windows.
    """

    sheet: SheetDescriptor
    range: Range
    grid: list[list[Any]]
    detected_headers: list[str] | None
    column_profiles: list[ColumnProfile]
    flags: frozenset[PatternFlag]
    diagnostics: list[str] = field(default_factory=list)
    windows: list[WindowProfile] = field(default_factory=list)

    def has(self, flag: PatternFlag) -> bool:
        return flag in self.flags

    @property
    def column_types(self) -> list[ColumnType]:
        return [p.inferred_type for p in self.column_profiles]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sheet": self.sheet.title,
            "range": self.range.to_a1(),
            "headers": self.detected_headers,
            "columnProfiles": [
                {"type": p.inferred_type.value, "sampleCount": p.sample_count}
                for p in self.column_profiles
            ],
            "flags": sorted(flag.value for flag in self.flags),
            "diagnostics": self.diagnostics,
            "windows": [
                {
                    "name": w.window.name,
                    "range": w.window.range.to_a1(),
                    "columnTypes": [p.inferred_type.value for p in w.column_profiles],
                }
                for w in self.windows
            ],
        }


def plan_windows(sheet: SheetDescriptor, config: SampleConfig | None = None) -> list[ProfileWindow]:
    """Blocks to read for profiling: top-left, plus the middle of a large sheet."""
    config = config or SampleConfig()
    row_count = max(1, sheet.row_count)
    column_count = max(1, sheet.column_count)

    windows = [
        ProfileWindow(
            TOP_LEFT_WINDOW,
            _block(
                sheet.title,
                1,
                1,
                min(config.sample_rows, row_count),
                min(config.sample_columns, column_count),
            ),
        )
    ]

    if row_count > config.large_sheet_rows and column_count > config.large_sheet_columns:
        mid_row = row_count // 2
        mid_column = column_count // 2
        windows.append(
            ProfileWindow(
                MIDDLE_WINDOW,
                _block(
                    sheet.title,
                    mid_row,
                    mid_column,
                    min(mid_row + config.middle_rows, row_count),
                    min(mid_column + config.middle_columns, column_count),
                ),
            )
        )
    return windows


def _block(title: str, top: int, left: int, bottom: int, right: int) -> Range:
    return Range(
        RangeKind.BOUNDED_RANGE if (top, left) != (bottom, right) else RangeKind.CELL,
        sheet_name=title,
        start_row=top,
        start_column=left,
        end_row=bottom,
        end_column=right,
    )


def profile_sheet(
    sheet: SheetDescriptor,
    reads: Sequence[WindowRead],
    config: SampleConfig | None = None,
) -> SheetSample:
    """Build a SheetSample from the windows read for ``sheet``.

    Windows that failed are skipped and noted in ``diagnostics``.

    Raises:
        SheetUnreachableError: if no window could be read
    """
    diagnostics: list[str] = []
    profiles: list[WindowProfile] = []

    for read in reads:
        where = f"{read.window.name} window {read.window.range.to_a1()}"
        if not read.ok:
            reason = read.error or "no values returned"
            logger.warning("Skipping %s: %s", where, reason)
            diagnostics.append(f"{where}: {reason}")
            continue
        assert read.values is not None
        profile = _profile_window(
            read, detect_headers=read.window.name == TOP_LEFT_WINDOW
        )
        profiles.append(profile)
        logger.debug(
            "Profiled %s: %s", where, [p.inferred_type.value for p in profile.column_profiles]
        )

    if not profiles:
        raise SheetUnreachableError(sheet.title, diagnostics)

    primary = next(
        (p for p in profiles if p.window.name == TOP_LEFT_WINDOW), profiles[0]
    )
    if primary.window.name != TOP_LEFT_WINDOW:
        diagnostics.append("top-left window unavailable; headers not detected")

    flags: frozenset[PatternFlag] = frozenset().union(*(p.flags for p in profiles))
    return SheetSample(
        sheet=sheet,
        range=primary.window.range,
        grid=primary.grid,
        detected_headers=primary.headers,
        column_profiles=primary.column_profiles,
        flags=flags,
        diagnostics=diagnostics,
        windows=profiles,
    )


def _profile_window(read: WindowRead, detect_headers: bool) -> WindowProfile:
    assert read.values is not None
    grid = _pad(read.values)
    headers = detect_header_row(grid) if detect_headers else None
    data_rows = grid[1:] if headers is not None else grid

    width = len(grid[0]) if grid else 0
    columns = [[row[c] for row in data_rows] for c in range(width)]
    column_profiles = [infer_column_type(values) for values in columns]

    flags: set[PatternFlag] = set()
    if read.formulas and _has_formulas(read.formulas):
        flags.add(PatternFlag.HAS_FORMULAS)
    for values, profile in zip(columns, column_profiles):
        if profile.inferred_type == ColumnType.NUMBER and is_arithmetic_sequence(
            [n for n in (_as_number(v) for v in values) if n is not None]
        ):
            flags.add(PatternFlag.HAS_NUMERIC_SEQUENCE)
        if sum(1 for v in values if _as_date(v) is not None) >= MIN_DATE_RANGE_VALUES:
            flags.add(PatternFlag.HAS_DATE_RANGE)

    return WindowProfile(
        window=read.window,
        grid=grid,
        headers=headers,
        column_profiles=column_profiles,
        flags=frozenset(flags),
    )


def _pad(values: list[list[Any]]) -> list[list[Any]]:
    # The values API drops trailing empty cells, so rows come back ragged.
    width = max((len(row) for row in values), default=0)
    return [list(row) + [None] * (width - len(row)) for row in values]


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def detect_header_row(grid: Sequence[Sequence[Any]]) -> list[str] | None:
    """Return the first row as headers if enough of it is non-numeric text.

    Numbers and booleans do not count as text. Blank cells keep their
    position as "" so headers line up with the columns below them.
    """
    if not grid:
        return None
    row = ["" if _is_empty(v) else str(v).strip() for v in grid[0]]
    cells = [cell for cell in row if cell]
    if not cells:
        return None
    text = sum(1 for cell in cells if _as_number(cell) is None and _as_boolean(cell) is None)
    if text >= len(cells) * HEADER_TEXT_RATIO:
        return row
    return None


def infer_column_type(values: Sequence[Any]) -> ColumnProfile:
    """Infer a column's type from its non-empty values.

    Precedence is number, then date, then boolean, then text.
    """
    present = [v for v in values if not _is_empty(v)]
    total = len(present)
    if total == 0:
        return ColumnProfile(ColumnType.EMPTY, 0)

    numbers = dates = booleans = 0
    for value in present:
        if _as_boolean(value) is not None:
            booleans += 1
        elif _as_number(value) is not None:
            numbers += 1
        elif _as_date(value) is not None:
            dates += 1

    if numbers >= total * NUMBER_RATIO:
        inferred = ColumnType.NUMBER
    elif dates >= total * DATE_RATIO:
        inferred = ColumnType.DATE
    elif booleans >= total * BOOLEAN_RATIO:
        inferred = ColumnType.BOOLEAN
    else:
        inferred = ColumnType.TEXT
    return ColumnProfile(inferred, total)


def is_arithmetic_sequence(numbers: Sequence[float]) -> bool:
    """True for at least three numbers with a constant successive difference."""
    if len(numbers) < MIN_SEQUENCE_VALUES:
        return False
    step = numbers[1] - numbers[0]
    return all(
        abs((numbers[i] - numbers[i - 1]) - step) <= SEQUENCE_TOLERANCE
        for i in range(2, len(numbers))
    )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _as_date(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    for shape, fmt in DATE_FORMATS:
        if shape.match(text):
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                return None
    return None


def _as_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().upper() in ("TRUE", "FALSE"):
        return value.strip().upper() == "TRUE"
    return None


def _has_formulas(formulas: Sequence[Sequence[Any]]) -> bool:
    return any(
        isinstance(cell, str) and cell.startswith("=") for row in formulas for cell in row
    )

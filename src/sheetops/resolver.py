"""Fill in missing range bounds and clamp oversized requests.

Resolution never invents a bound on an open axis: a full-column range stays
open on rows and a full-row range stays open on columns. Caps only apply to
axes that are bounded after resolution. Exceeding a cap truncates the range
and attaches a TruncationWarning; it is not an error.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from sheetops.ranges import Range, RangeKind

if TYPE_CHECKING:
    from sheetops.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 1000
DEFAULT_MAX_COLUMNS = 50


@dataclass(frozen=True)
class RangeCaps:
    """Upper bounds on how many rows/columns one request may touch."""

    max_rows: int = DEFAULT_MAX_ROWS
    max_columns: int = DEFAULT_MAX_COLUMNS

    @classmethod
    def from_settings(cls, settings: Settings) -> RangeCaps:
        return cls(max_rows=settings.max_rows, max_columns=settings.max_columns)


@dataclass(frozen=True)
class DataExtent:
    """Row/column extent of an input grid."""

    rows: int
    columns: int

    @classmethod
    def of(cls, grid: Sequence[Sequence[Any]]) -> DataExtent:
        return cls(rows=len(grid), columns=len(grid[0]) if grid else 0)


@dataclass(frozen=True)
class TruncationWarning:
    """A resolved axis was clamped to the configured cap."""

    axis: str  # "rows" or "columns"
    requested: int
    allowed: int

    @property
    def message(self) -> str:
        return (
            f"Requested {self.requested} {self.axis}, "
            f"truncated to {self.allowed} (limit)"
        )

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ResolvedRange:
    """A range after bound derivation and capping."""

    range: Range
    warnings: tuple[TruncationWarning, ...] = field(default_factory=tuple)

    @property
    def truncated(self) -> bool:
        return bool(self.warnings)

    def to_a1(self) -> str:
        return self.range.to_a1()


def resolve_range(
    range_: Range,
    data_extent: DataExtent | None = None,
    caps: RangeCaps | None = None,
) -> ResolvedRange:
    """Resolve missing bounds and apply caps.

    Args:
        range_: A parsed range
        data_extent: Extent of the data being written, if any. Used to
            derive the end corner of a single-cell anchor.
        caps: Row/column caps (defaults to 1000 rows, 50 columns)

    Returns:
        ResolvedRange with any truncation recorded in ``warnings``
    """
    caps = caps or RangeCaps()

    if range_.kind == RangeKind.NAMED_RANGE:
        return ResolvedRange(range_)

    resolved = _derive_bounds(range_, data_extent)

    warnings: list[TruncationWarning] = []
    rows = resolved.row_count
    if rows is not None and rows > caps.max_rows:
        assert resolved.start_row is not None
        resolved = replace(resolved, end_row=resolved.start_row + caps.max_rows - 1)
        warnings.append(TruncationWarning("rows", rows, caps.max_rows))

    columns = resolved.column_count
    if columns is not None and columns > caps.max_columns:
        assert resolved.start_column is not None
        resolved = replace(
            resolved, end_column=resolved.start_column + caps.max_columns - 1
        )
        warnings.append(TruncationWarning("columns", columns, caps.max_columns))

    for warning in warnings:
        logger.warning("Range %s: %s", range_.to_a1(), warning.message)

    return ResolvedRange(resolved, tuple(warnings))


def _derive_bounds(range_: Range, data_extent: DataExtent | None) -> Range:
    if range_.kind != RangeKind.CELL:
        return range_

    assert range_.start_row is not None and range_.start_column is not None
    if data_extent is None or data_extent.rows == 0 or data_extent.columns == 0:
        return replace(range_, end_row=range_.start_row, end_column=range_.start_column)

    end_row = range_.start_row + data_extent.rows - 1
    end_column = range_.start_column + data_extent.columns - 1
    kind = (
        RangeKind.CELL
        if data_extent.rows == 1 and data_extent.columns == 1
        else RangeKind.BOUNDED_RANGE
    )
    return replace(range_, kind=kind, end_row=end_row, end_column=end_column)

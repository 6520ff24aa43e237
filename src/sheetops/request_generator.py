"""
Translate validated operations into Google Sheets API request shapes.

The output of build_request() is a plain value: values-API bodies and
batchUpdate request dicts, plus the resolved range, warnings and a summary.
Nothing here performs I/O; the transport sends what this module builds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any

from sheetops.coordinates import number_to_column
from sheetops.exceptions import InvalidRangeError, ValidationError
from sheetops.formats import CellFormat, cell_format_to_api
from sheetops.operations import (
    CreateSheetOperation,
    FormatCellsOperation,
    InsertMode,
    Operation,
    ReadOperation,
    Scalar,
    SetFormulaOperation,
    SheetTemplate,
    WriteOperation,
)
from sheetops.ranges import Range, RangeKind
from sheetops.resolver import (
    DataExtent,
    RangeCaps,
    ResolvedRange,
    TruncationWarning,
    resolve_range,
)

logger = logging.getLogger(__name__)

VALUE_INPUT_OPTION = "USER_ENTERED"


@dataclass(frozen=True)
class OperationImpact:
    """What an operation will touch. Counts are None on an open axis."""

    affected_cells: int | None = None
    affected_rows: int | None = None
    affected_columns: int | None = None
    will_overwrite: bool = False
    will_create: bool = False


@dataclass
class TranslatedRequest:
    """Transport-agnostic description of the API calls for one operation."""

    operation: Operation
    resolved: ResolvedRange | None = None
    value_reads: list[dict[str, Any]] = field(default_factory=list)
    value_update: dict[str, Any] | None = None
    batch_requests: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    summary: str = ""
    impact: OperationImpact = field(default_factory=OperationImpact)
    value_input_option: str = VALUE_INPUT_OPTION

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.kind,
            "range": self.resolved.to_a1() if self.resolved else None,
            "valueReads": self.value_reads,
            "valueUpdate": self.value_update,
            "valueInputOption": self.value_input_option if self.value_update else None,
            "batchRequests": self.batch_requests,
            "warnings": self.warnings,
            "summary": self.summary,
            "impact": asdict(self.impact),
        }


def build_request(
    operation: Operation,
    sheet_id: int = 0,
    caps: RangeCaps | None = None,
) -> TranslatedRequest:
    """Validate an operation and translate it into API requests.

    Args:
        operation: Any operation variant
        sheet_id: Numeric id of the target sheet, used by batchUpdate requests
        caps: Row/column caps applied by the resolver

    Raises:
        ValidationError: if the operation's parameters are invalid
        InvalidRangeError: if a grid request targets an unresolved named range
    """
    caps = caps or RangeCaps()
    validated = operation.validate()

    if isinstance(validated, ReadOperation):
        request = _build_read(validated, caps)
    elif isinstance(validated, WriteOperation):
        request = _build_write(validated, sheet_id, caps)
    elif isinstance(validated, CreateSheetOperation):
        request = _build_create_sheet(validated)
    elif isinstance(validated, SetFormulaOperation):
        request = _build_set_formula(validated, caps)
    elif isinstance(validated, FormatCellsOperation):
        request = _build_format_cells(validated, sheet_id, caps)
    else:
        raise ValidationError("operation", f"unsupported operation {operation!r}")

    logger.debug(
        "Translated %s: %d value reads, %s value update, %d batch requests",
        validated.kind,
        len(request.value_reads),
        "1" if request.value_update else "no",
        len(request.batch_requests),
    )
    return request


# --- Read ---


def _build_read(op: ReadOperation, caps: RangeCaps) -> TranslatedRequest:
    read_caps = RangeCaps(
        max_rows=op.max_rows or caps.max_rows,
        max_columns=op.max_columns or caps.max_columns,
    )
    resolved = resolve_range(op.range, caps=read_caps)
    a1 = resolved.to_a1()

    reads = [
        {
            "range": a1,
            "valueRenderOption": "UNFORMATTED_VALUE",
            "dateTimeRenderOption": "FORMATTED_STRING",
        }
    ]
    if op.include_formulas:
        reads.append(
            {
                "range": a1,
                "valueRenderOption": "FORMULA",
                "dateTimeRenderOption": "FORMATTED_STRING",
            }
        )

    summary = f"Read {a1}"
    if op.include_formulas:
        summary += " (with formulas)"
    return TranslatedRequest(
        operation=op,
        resolved=resolved,
        value_reads=reads,
        warnings=[w.message for w in resolved.warnings],
        summary=summary,
        impact=_impact(resolved.range),
    )


# --- Write ---


def _build_write(op: WriteOperation, sheet_id: int, caps: RangeCaps) -> TranslatedRequest:
    grid = op.grid
    target = op.target
    if target.kind == RangeKind.BOUNDED_RANGE:
        # The grid fits (checked by validate); write exactly the block it covers.
        target = replace(
            target, kind=RangeKind.CELL, end_row=target.start_row, end_column=target.start_column
        )
    resolved = resolve_range(target, DataExtent.of(grid), caps)
    grid, truncations = _fit_grid(grid, resolved, caps)
    warnings = [w.message for w in (*resolved.warnings, *truncations)]
    warnings.extend(op.warnings())

    rows, columns = len(grid), len(grid[0])
    impact = OperationImpact(
        affected_cells=rows * columns,
        affected_rows=rows,
        affected_columns=columns,
        will_overwrite=op.insert_mode == InsertMode.OVERWRITE,
        will_create=op.insert_mode != InsertMode.OVERWRITE,
    )

    if op.insert_mode == InsertMode.APPEND:
        return TranslatedRequest(
            operation=op,
            resolved=None,
            batch_requests=[_append_cells_request(grid, sheet_id, op.format)],
            warnings=warnings,
            summary=_write_summary(op, None, rows, columns),
            impact=impact,
        )

    batch_requests: list[dict[str, Any]] = []
    if op.insert_mode == InsertMode.INSERT_ROWS:
        start_row = resolved.range.start_row
        if start_row is None:
            raise ValidationError(
                op.kind, "insert_rows needs a target with a starting row"
            )
        batch_requests.append(
            {
                "insertDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        "startIndex": start_row - 1,
                        "endIndex": start_row - 1 + rows,
                    },
                    "inheritFromBefore": start_row > 1,
                }
            }
        )

    if op.format is not None:
        batch_requests.append(
            _repeat_cell_request(_written_block(resolved.range, rows, columns), sheet_id, op.format)
        )

    value_update = {
        "range": resolved.to_a1(),
        "majorDimension": "ROWS",
        "values": [[_to_json_value(v) for v in row] for row in grid],
    }
    return TranslatedRequest(
        operation=op,
        resolved=resolved,
        value_update=value_update,
        batch_requests=batch_requests,
        warnings=warnings,
        summary=_write_summary(op, resolved.range, rows, columns),
        impact=impact,
    )


def _fit_grid(
    grid: list[list[Scalar]], resolved: ResolvedRange, caps: RangeCaps
) -> tuple[list[list[Scalar]], list[TruncationWarning]]:
    """Trim the grid to the resolved range, or to the caps on an open axis."""
    warnings: list[TruncationWarning] = []
    max_rows = resolved.range.row_count
    if max_rows is None:
        max_rows = caps.max_rows
        if len(grid) > max_rows:
            warnings.append(TruncationWarning("rows", len(grid), max_rows))
    max_columns = resolved.range.column_count
    if max_columns is None:
        max_columns = caps.max_columns
        if len(grid[0]) > max_columns:
            warnings.append(TruncationWarning("columns", len(grid[0]), max_columns))
    return [row[:max_columns] for row in grid[:max_rows]], warnings


def _written_block(range_: Range, rows: int, columns: int) -> Range:
    """The bounded block a grid of ``rows`` x ``columns`` covers from the range's corner."""
    if range_.kind == RangeKind.NAMED_RANGE:
        raise InvalidRangeError(
            range_.to_a1(), "named ranges have no grid bounds until resolved"
        )
    start_row = range_.start_row or 1
    start_column = range_.start_column or 1
    return Range(
        RangeKind.BOUNDED_RANGE,
        sheet_name=range_.sheet_name,
        start_row=start_row,
        start_column=start_column,
        end_row=start_row + rows - 1,
        end_column=start_column + columns - 1,
    )


def _write_summary(op: WriteOperation, range_: Range | None, rows: int, columns: int) -> str:
    sheet = op.target.sheet_name
    where = f' to sheet "{sheet}"' if sheet else ""
    if op.insert_mode == InsertMode.APPEND:
        summary = f"Appended {rows} rows and {columns} columns{where}"
    else:
        summary = f"Wrote {rows} rows and {columns} columns{where}"
    if range_ is not None and range_.start_row is not None and range_.start_column is not None:
        end_row = range_.start_row + rows - 1
        end_column = range_.start_column + columns - 1
        summary += f" (rows {range_.start_row}-{end_row})"
        summary += (
            f" (columns {number_to_column(range_.start_column)}-"
            f"{number_to_column(end_column)})"
        )
    if op.insert_mode == InsertMode.INSERT_ROWS:
        summary += f" after inserting {rows} rows"
    if op.headers:
        summary += f". Included headers: {', '.join(str(h) for h in op.headers)}"
    if op.format is not None:
        summary += ". Applied formatting"
    return summary


def _append_cells_request(
    grid: list[list[Scalar]], sheet_id: int, cell_format: CellFormat | None
) -> dict[str, Any]:
    api_format: dict[str, Any] = {}
    fields = "userEnteredValue"
    if cell_format is not None:
        api_format, paths = cell_format_to_api(cell_format)
        fields += f",userEnteredFormat({','.join(paths)})"

    rows = []
    for row in grid:
        values = []
        for value in row:
            cell: dict[str, Any] = {"userEnteredValue": to_extended_value(value)}
            if api_format:
                cell["userEnteredFormat"] = api_format
            values.append(cell)
        rows.append({"values": values})

    return {"appendCells": {"sheetId": sheet_id, "rows": rows, "fields": fields}}


def _to_json_value(value: Scalar) -> str | int | float | bool:
    # An empty cell in a write clears whatever was there.
    return "" if value is None else value


def to_extended_value(value: Scalar) -> dict[str, Any]:
    """Convert a scalar to an ExtendedValue the way USER_ENTERED input reads it."""
    if value is None or value == "":
        return {}
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, int | float):
        return {"numberValue": value}

    if value.startswith("="):
        return {"formulaValue": value}
    if value.upper() == "TRUE":
        return {"boolValue": True}
    if value.upper() == "FALSE":
        return {"boolValue": False}
    try:
        num = float(value.replace(",", ""))
    except ValueError:
        return {"stringValue": value}
    if not math.isfinite(num):
        return {"stringValue": value}
    if num == int(num):
        return {"numberValue": int(num)}
    return {"numberValue": num}


# --- Create sheet ---


def _build_create_sheet(op: CreateSheetOperation) -> TranslatedRequest:
    properties: dict[str, Any] = {
        "title": op.name,
        "gridProperties": {
            "rowCount": op.row_count,
            "columnCount": op.column_count,
        },
    }
    if op.index is not None:
        properties["index"] = op.index

    summary = (
        f'Created sheet "{op.name}" with {op.row_count} rows '
        f"and {op.column_count} columns"
    )
    if op.template is not None and op.template != SheetTemplate.BLANK:
        summary += f" using {op.template.value} template"

    return TranslatedRequest(
        operation=op,
        batch_requests=[{"addSheet": {"properties": properties}}],
        warnings=op.warnings(),
        summary=summary,
        impact=OperationImpact(
            affected_cells=op.row_count * op.column_count,
            affected_rows=op.row_count,
            affected_columns=op.column_count,
            will_create=True,
        ),
    )


@dataclass(frozen=True)
class TemplateBlock:
    """A block of values (and optional format) placed at a 1-based corner."""

    row: int
    column: int
    values: tuple[tuple[Scalar, ...], ...]
    format: CellFormat | None = None


def template_blocks(
    template: SheetTemplate | str, today: date | None = None
) -> list[TemplateBlock]:
    """Content seeded into a new sheet for a template."""
    template = SheetTemplate(template)
    stamp = (today or date.today()).isoformat()

    if template == SheetTemplate.DATA_TABLE:
        return [
            TemplateBlock(
                1,
                1,
                (("ID", "Name", "Category", "Value", "Date", "Status"),),
                CellFormat(bold=True, background_color="#4285f4", text_color="#ffffff"),
            ),
            TemplateBlock(
                2,
                1,
                (
                    ("1", "Sample Item 1", "Category A", "100", stamp, "Active"),
                    ("2", "Sample Item 2", "Category B", "200", stamp, "Pending"),
                    ("3", "Sample Item 3", "Category A", "150", stamp, "Active"),
                ),
            ),
        ]
    if template == SheetTemplate.DASHBOARD:
        return [
            TemplateBlock(
                1, 1, (("Dashboard",),),
                CellFormat(bold=True, font_size=18, horizontal_align="CENTER"),
            ),
            TemplateBlock(
                3,
                1,
                (("Metric", "Current", "Target", "Status"),),
                CellFormat(bold=True, background_color="#34a853", text_color="#ffffff"),
            ),
            TemplateBlock(
                4,
                1,
                (
                    ("Revenue", "$10,000", "$12,000", "Below Target"),
                    ("Users", "1,500", "1,200", "Above Target"),
                    ("Conversion Rate", "3.2%", "3.0%", "On Target"),
                ),
            ),
        ]
    if template == SheetTemplate.REPORT:
        return [
            TemplateBlock(1, 1, ((f"Report - {stamp}",),), CellFormat(bold=True, font_size=16)),
            TemplateBlock(3, 1, (("Executive Summary",),), CellFormat(bold=True, font_size=14)),
            TemplateBlock(
                6,
                1,
                (("Period", "Metric 1", "Metric 2", "Metric 3", "Notes"),),
                CellFormat(bold=True, background_color="#ff9900", text_color="#ffffff"),
            ),
        ]
    return []


def template_requests(
    template: SheetTemplate | str, sheet_id: int, today: date | None = None
) -> list[dict[str, Any]]:
    """updateCells requests that seed a freshly created sheet."""
    requests: list[dict[str, Any]] = []
    for block in template_blocks(template, today):
        api_format: dict[str, Any] = {}
        fields = "userEnteredValue"
        if block.format is not None:
            api_format, paths = cell_format_to_api(block.format)
            fields += f",userEnteredFormat({','.join(paths)})"

        rows = []
        for row in block.values:
            cells = []
            for value in row:
                cell: dict[str, Any] = {"userEnteredValue": to_extended_value(value)}
                if api_format:
                    cell["userEnteredFormat"] = api_format
                cells.append(cell)
            rows.append({"values": cells})

        requests.append(
            {
                "updateCells": {
                    "rows": rows,
                    "fields": fields,
                    "start": {
                        "sheetId": sheet_id,
                        "rowIndex": block.row - 1,
                        "columnIndex": block.column - 1,
                    },
                }
            }
        )
    return requests


# --- Set formula ---


def _build_set_formula(op: SetFormulaOperation, caps: RangeCaps) -> TranslatedRequest:
    resolved = resolve_range(op.range, caps=caps)
    target = resolved.range
    if target.kind == RangeKind.NAMED_RANGE:
        raise InvalidRangeError(
            target.to_a1(), "named ranges have no grid bounds until resolved"
        )
    assert target.row_count is not None and target.column_count is not None
    rows, columns = target.row_count, target.column_count

    # Every cell gets the same text; references are not shifted per cell.
    values = [[op.formula] * columns for _ in range(rows)]
    cells = rows * columns

    a1 = resolved.to_a1()
    sheet = f' in sheet "{target.sheet_name}"' if target.sheet_name else ""
    summary = (
        f'Set formula "{op.formula}" in {cells} cell(s){sheet} '
        f"({target.to_a1(include_sheet=False)})"
    )

    return TranslatedRequest(
        operation=op,
        resolved=resolved,
        value_update={"range": a1, "majorDimension": "ROWS", "values": values},
        warnings=[w.message for w in resolved.warnings] + op.warnings(cells),
        summary=summary,
        impact=OperationImpact(
            affected_cells=cells,
            affected_rows=rows,
            affected_columns=columns,
            will_overwrite=True,
        ),
    )


# --- Format cells ---


def _repeat_cell_request(
    range_: Range, sheet_id: int, cell_format: CellFormat
) -> dict[str, Any]:
    api_format, paths = cell_format_to_api(cell_format)
    return {
        "repeatCell": {
            "range": range_.to_grid_range(sheet_id),
            "cell": {"userEnteredFormat": api_format},
            "fields": f"userEnteredFormat({','.join(paths)})",
        }
    }


def _build_format_cells(
    op: FormatCellsOperation, sheet_id: int, caps: RangeCaps
) -> TranslatedRequest:
    resolved = resolve_range(op.range, caps=caps)
    request = _repeat_cell_request(resolved.range, sheet_id, op.format)

    impact = _impact(resolved.range)
    cells = impact.affected_cells
    count = f"{cells} cells" if cells is not None else "cells"
    summary = f"Applied formatting to {count} in {resolved.to_a1()}"
    if op.preset is not None:
        summary += f" using {op.preset.value} preset"
    details = op.format.describe()
    if details:
        summary += f" ({', '.join(details)})"

    return TranslatedRequest(
        operation=op,
        resolved=resolved,
        batch_requests=[request],
        warnings=[w.message for w in resolved.warnings] + op.warnings(cells),
        summary=summary,
        impact=impact,
    )


def _impact(range_: Range) -> OperationImpact:
    return OperationImpact(
        affected_cells=range_.cell_count,
        affected_rows=range_.row_count,
        affected_columns=range_.column_count,
    )

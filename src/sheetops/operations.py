"""Typed operation intents.

Each operation is an immutable value that knows how to check its own
parameters. ``validate()`` either raises a ValidationError subclass or
returns the normalized operation (formula prefixed with "=", alignment
upper-cased, preset applied) that the request generator consumes.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar

from sheetops.coordinates import number_to_column
from sheetops.exceptions import (
    InvalidSheetNameError,
    MalformedGridError,
    UnbalancedFormulaError,
    ValidationError,
)
from sheetops.formats import CellFormat, FormatPreset, apply_preset
from sheetops.ranges import Range, RangeKind, parse_range

logger = logging.getLogger(__name__)

Scalar = str | int | float | bool | None

MAX_SHEET_NAME_LENGTH = 100
INVALID_SHEET_NAME_CHARS = frozenset("[]?*\\:/")
RESERVED_SHEET_NAMES = frozenset({"History"})

DEFAULT_SHEET_ROWS = 1000
DEFAULT_SHEET_COLUMNS = 26

LARGE_WRITE_CELLS = 10000
LARGE_FORMAT_CELLS = 10000
LARGE_FORMULA_CELLS = 1000
LARGE_SHEET_CELLS = 100000
LONG_FORMULA_CHARS = 200
RATE_LIMITED_FUNCTIONS = ("IMPORTDATA", "IMPORTHTML", "IMPORTXML", "IMPORTRANGE")


class InsertMode(str, Enum):
    OVERWRITE = "overwrite"
    INSERT_ROWS = "insert_rows"
    APPEND = "append"


class SheetTemplate(str, Enum):
    BLANK = "blank"
    DATA_TABLE = "data_table"
    DASHBOARD = "dashboard"
    REPORT = "report"


def _require_range(operation: str, range_: Any) -> Range:
    if not isinstance(range_, Range):
        raise ValidationError(operation, "a target range is required")
    return range_


def _positive_or_none(operation: str, name: str, value: Any) -> None:
    if value is None:
        return
    _positive(operation, name, value)


def _positive(operation: str, name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(operation, f"{name} must be an integer >= 1")


def _as_row(row: Any) -> Any:
    return tuple(row) if isinstance(row, list | tuple) else row


@dataclass(frozen=True)
class ReadOperation:
    """Read the values of a range."""

    kind: ClassVar[str] = "read"

    range: Range
    max_rows: int | None = None
    max_columns: int | None = None
    include_formulas: bool = False

    def validate(self) -> ReadOperation:
        _require_range(self.kind, self.range)
        _positive_or_none(self.kind, "max_rows", self.max_rows)
        _positive_or_none(self.kind, "max_columns", self.max_columns)
        return self


@dataclass(frozen=True)
class WriteOperation:
    """Write a rectangular grid of values.

    Without a range the grid is anchored at A1 of ``sheet_name``. Headers,
    when given, become the first row of the written block.
    """

    kind: ClassVar[str] = "write"

    values: tuple[tuple[Scalar, ...], ...]
    range: Range | None = None
    sheet_name: str | None = None
    headers: tuple[Scalar, ...] | None = None
    insert_mode: InsertMode = InsertMode.OVERWRITE
    overwrite: bool = False
    format: CellFormat | None = None

    def __post_init__(self) -> None:
        # Accept lists from callers but store immutable rows. Anything that is
        # not a row is left as is for validate() to reject.
        if isinstance(self.values, list | tuple):
            object.__setattr__(self, "values", tuple(_as_row(row) for row in self.values))
        if isinstance(self.headers, list):
            object.__setattr__(self, "headers", tuple(self.headers))
        if isinstance(self.insert_mode, str) and self.insert_mode in [m.value for m in InsertMode]:
            object.__setattr__(self, "insert_mode", InsertMode(self.insert_mode))

    @property
    def grid(self) -> list[list[Scalar]]:
        """The block to write, header row first."""
        rows = [list(row) for row in self.values]
        if self.headers:
            rows.insert(0, list(self.headers))
        return rows

    @property
    def target(self) -> Range:
        """The explicit range, or the A1 anchor on ``sheet_name``."""
        if self.range is not None:
            return self.range
        return Range(
            RangeKind.CELL,
            sheet_name=self.sheet_name,
            start_row=1,
            start_column=1,
            end_row=1,
            end_column=1,
        )

    def validate(self) -> WriteOperation:
        if self.range is not None:
            _require_range(self.kind, self.range)

        if not isinstance(self.insert_mode, InsertMode):
            raise ValidationError(self.kind, f"unknown insert mode {self.insert_mode!r}")
        if not isinstance(self.values, tuple):
            raise ValidationError(self.kind, "values must be a list of rows")
        for row in self.values:
            if not isinstance(row, tuple):
                raise ValidationError(self.kind, "values must be a list of rows")
        if self.headers is not None and not isinstance(self.headers, tuple):
            raise ValidationError(self.kind, "headers must be a list")

        grid = self.grid
        if not grid or all(len(row) == 0 for row in grid):
            raise ValidationError(self.kind, "no values to write")

        row_lengths = [len(row) for row in grid]
        if len(set(row_lengths)) != 1:
            raise MalformedGridError(row_lengths)

        for r, row in enumerate(grid):
            for c, value in enumerate(row):
                if value is not None and not isinstance(value, str | int | float | bool):
                    raise ValidationError(
                        self.kind,
                        f"cell {number_to_column(c + 1)}{r + 1} has unsupported "
                        f"type {type(value).__name__}",
                    )

        # An open axis is held to the caps later; a bounded one must hold the grid.
        target = self.target
        if target.kind in (RangeKind.BOUNDED_RANGE, RangeKind.FULL_COLUMN, RangeKind.FULL_ROW):
            rows, columns = target.row_count, target.column_count
            if (rows is not None and len(grid) > rows) or (
                columns is not None and row_lengths[0] > columns
            ):
                raise ValidationError(
                    self.kind,
                    f"{len(grid)}x{row_lengths[0]} values do not fit in "
                    f"{target.to_a1()}",
                )

        if self.format is not None:
            return replace(self, format=self.format.validate())
        return self

    def warnings(self) -> list[str]:
        grid = self.grid
        warnings: list[str] = []

        total = len(grid) * (len(grid[0]) if grid else 0)
        if total > LARGE_WRITE_CELLS:
            warnings.append(f"Writing {total} cells - this may take some time")

        data_rows = [list(row) for row in self.values]
        first_column = self.target.start_column or 1
        if len(data_rows) > 1:
            for c in range(len(data_rows[0])):
                types = {
                    _value_type(row[c]) for row in data_rows if row[c] not in (None, "")
                }
                if len(types) > 1:
                    warnings.append(
                        f"Column {number_to_column(first_column + c)} "
                        "contains mixed data types"
                    )

        if not self.overwrite and self.insert_mode != InsertMode.APPEND:
            warnings.append(
                "Data may overwrite existing content - use overwrite=True to confirm"
            )
        return warnings


def _value_type(value: Scalar) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    return "text"


@dataclass(frozen=True)
class CreateSheetOperation:
    """Add a new sheet (tab)."""

    kind: ClassVar[str] = "create_sheet"

    name: str
    row_count: int = DEFAULT_SHEET_ROWS
    column_count: int = DEFAULT_SHEET_COLUMNS
    index: int | None = None
    template: SheetTemplate | None = None

    def validate(self) -> CreateSheetOperation:
        name = self.name
        if not isinstance(name, str) or not name.strip():
            raise InvalidSheetNameError(str(name), "name cannot be empty")
        if len(name) > MAX_SHEET_NAME_LENGTH:
            raise InvalidSheetNameError(
                name, f"name cannot exceed {MAX_SHEET_NAME_LENGTH} characters"
            )
        bad = sorted(INVALID_SHEET_NAME_CHARS.intersection(name))
        if bad:
            raise InvalidSheetNameError(
                name, f"name contains invalid characters: {' '.join(bad)}"
            )
        if name in RESERVED_SHEET_NAMES:
            raise InvalidSheetNameError(name, "reserved sheet name")

        _positive(self.kind, "row_count", self.row_count)
        _positive(self.kind, "column_count", self.column_count)
        if self.index is not None and (
            isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0
        ):
            raise ValidationError(self.kind, "index must be an integer >= 0")

        if self.template is not None:
            try:
                template = SheetTemplate(self.template)
            except ValueError as e:
                raise ValidationError(
                    self.kind, f"unknown template {self.template!r}"
                ) from e
            return replace(self, template=template)
        return self

    def warnings(self) -> list[str]:
        total = self.row_count * self.column_count
        if total > LARGE_SHEET_CELLS:
            return [f"Large sheet created ({total} cells) - may impact performance"]
        return []


@dataclass(frozen=True)
class SetFormulaOperation:
    """Place the same formula text in every cell of a range.

    References inside the formula are copied verbatim to each cell; they
    are not shifted the way a spreadsheet fill would shift them.
    """

    kind: ClassVar[str] = "set_formula"

    range: Range
    formula: str
    array_formula: bool = False

    def validate(self) -> SetFormulaOperation:
        target = _require_range(self.kind, self.range)
        if target.kind in (RangeKind.FULL_COLUMN, RangeKind.FULL_ROW):
            raise ValidationError(
                self.kind, f"formula target {target.to_a1()} must be a cell or bounded range"
            )
        if not isinstance(self.formula, str):
            raise ValidationError(self.kind, "formula must be a string")

        formula = normalize_formula(self.formula, self.array_formula)
        check_balanced_parentheses(formula)
        return replace(self, formula=formula)

    def warnings(self, cells: int | None = None) -> list[str]:
        warnings: list[str] = []
        if cells is None:
            cells = self.range.cell_count
        if cells is not None and cells > LARGE_FORMULA_CELLS:
            warnings.append(f"Setting formula in {cells} cells may impact performance")
        if self.array_formula:
            warnings.append("Array formulas can be resource-intensive for large ranges")
        if len(self.formula) > LONG_FORMULA_CHARS:
            warnings.append("Complex formulas may be difficult to maintain")
        upper = self.formula.upper()
        for func in RATE_LIMITED_FUNCTIONS:
            if func in upper:
                warnings.append(f"{func} function may have rate limits or require permissions")
        return warnings


def normalize_formula(formula: str, array_formula: bool = False) -> str:
    """Trim, ensure a leading "=", and optionally wrap in ARRAYFORMULA()."""
    text = formula.strip()
    if not text:
        raise ValidationError("set_formula", "formula cannot be empty")
    if not text.startswith("="):
        text = "=" + text
    if text == "=":
        raise ValidationError("set_formula", "formula cannot be empty")
    if array_formula and "ARRAYFORMULA" not in text.upper():
        text = f"=ARRAYFORMULA({text[1:]})"
    return text


def check_balanced_parentheses(formula: str) -> None:
    """Raise UnbalancedFormulaError if parentheses outside strings do not balance."""
    depth = 0
    open_positions: list[int] = []
    in_string = False
    for i, char in enumerate(formula):
        if char == '"':
            # A doubled quote inside a string toggles twice and stays inside.
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "(":
            depth += 1
            open_positions.append(i)
        elif char == ")":
            if depth == 0:
                raise UnbalancedFormulaError(formula, i)
            depth -= 1
            open_positions.pop()
    if depth:
        raise UnbalancedFormulaError(formula, open_positions[-1])


@dataclass(frozen=True)
class FormatCellsOperation:
    """Apply formatting to a range. A preset's fields override ``format``."""

    kind: ClassVar[str] = "format_cells"

    range: Range
    format: CellFormat = field(default_factory=CellFormat)
    preset: FormatPreset | None = None

    def validate(self) -> FormatCellsOperation:
        _require_range(self.kind, self.range)
        cell_format = self.format
        preset = self.preset
        if preset is not None:
            cell_format = apply_preset(cell_format, preset)
            preset = FormatPreset(preset)
        return replace(self, format=cell_format.validate(), preset=preset)

    def warnings(self, cells: int | None = None) -> list[str]:
        warnings: list[str] = []
        if cells is None:
            cells = self.range.cell_count
        if cells is not None and cells > LARGE_FORMAT_CELLS:
            warnings.append(f"Formatting {cells} cells may take some time")
        if self.format.text_color and self.format.background_color:
            warnings.append("Ensure text and background colors have sufficient contrast")
        if self.format.font_size:
            if self.format.font_size < 8:
                warnings.append("Font size may be too small for readability")
            elif self.format.font_size > 24:
                warnings.append("Large font size may affect sheet layout")
        return warnings


Operation = (
    ReadOperation
    | WriteOperation
    | CreateSheetOperation
    | SetFormulaOperation
    | FormatCellsOperation
)


def parse_operation(
    payload: dict[str, Any],
    current_sheet: str | None = None,
    named_ranges: Iterable[str] = (),
) -> Operation:
    """Build a typed operation from a tool-call style dict.

    The ``type`` key selects the variant: read, write, create, formula or
    format. Other keys accept camelCase names (``rowCount``,
    ``includeFormulas``, ...). A ``sheet`` key overrides ``current_sheet``.
    The returned operation is not yet validated.
    """
    if not isinstance(payload, dict):
        raise ValidationError("operation", "payload must be an object")
    op_type = payload.get("type")
    sheet = payload.get("sheet", current_sheet)
    names = frozenset(named_ranges)

    def _range(required: bool = True) -> Range | None:
        text = payload.get("range")
        if text is None:
            if required:
                raise ValidationError(str(op_type), "range is required")
            return None
        return parse_range(text, current_sheet=sheet, named_ranges=names)

    def _get(*keys: str, default: Any = None) -> Any:
        for key in keys:
            if key in payload:
                return payload[key]
        return default

    if op_type == "read":
        return ReadOperation(
            range=_range(),  # type: ignore[arg-type]
            max_rows=_get("maxRows", "max_rows"),
            max_columns=_get("maxColumns", "max_columns"),
            include_formulas=bool(_get("includeFormulas", "include_formulas", default=False)),
        )

    if op_type == "write":
        values = _get("values", "data")
        if not isinstance(values, list) or not all(isinstance(r, list) for r in values):
            raise ValidationError("write", "values must be a list of rows")
        format_data = _get("format")
        return WriteOperation(
            values=values,
            range=_range(required=False),
            sheet_name=sheet,
            headers=_get("headers"),
            insert_mode=_insert_mode(_get("insertMode", "insert_mode", default="overwrite")),
            overwrite=bool(_get("overwrite", default=False)),
            format=CellFormat.from_dict(format_data) if format_data else None,
        )

    if op_type == "create":
        return CreateSheetOperation(
            name=_get("name", "title", default=""),
            row_count=_get("rowCount", "row_count", default=DEFAULT_SHEET_ROWS),
            column_count=_get("columnCount", "column_count", default=DEFAULT_SHEET_COLUMNS),
            index=_get("index"),
            template=_get("template"),
        )

    if op_type == "formula":
        return SetFormulaOperation(
            range=_range(),  # type: ignore[arg-type]
            formula=_get("formula", default=""),
            array_formula=bool(_get("arrayFormula", "array_formula", default=False)),
        )

    if op_type == "format":
        return FormatCellsOperation(
            range=_range(),  # type: ignore[arg-type]
            format=CellFormat.from_dict(_get("format", default={}) or {}),
            preset=_get("preset"),
        )

    raise ValidationError("operation", f"unknown operation type {op_type!r}")


def _insert_mode(value: Any) -> InsertMode:
    try:
        return InsertMode(value)
    except ValueError as e:
        raise ValidationError("write", f"unknown insert mode {value!r}") from e


def write_operation_from_csv(
    csv_text: str,
    sheet_name: str | None = None,
    delimiter: str = ",",
    has_headers: bool = False,
    range_: Range | None = None,
) -> WriteOperation:
    """Build a confirmed overwrite from CSV text."""
    rows = [
        [cell.strip() for cell in row]
        for row in csv.reader(io.StringIO(csv_text.strip()), delimiter=delimiter)
    ]
    headers = None
    if has_headers and rows:
        headers, rows = rows[0], rows[1:]
    logger.debug("Parsed %d CSV rows (headers=%s)", len(rows), headers is not None)
    return WriteOperation(
        values=rows,
        range=range_,
        sheet_name=sheet_name,
        headers=headers,
        overwrite=True,
    )


def write_operation_from_records(
    records: Sequence[dict[str, Any]],
    sheet_name: str | None = None,
    include_headers: bool = True,
    range_: Range | None = None,
) -> WriteOperation:
    """Build a confirmed overwrite from a list of dicts (keys of the first one are columns)."""
    if not records:
        raise ValidationError("write", "records must be a non-empty list")
    columns = list(records[0].keys())
    rows = [[record.get(column) for column in columns] for record in records]
    return WriteOperation(
        values=rows,
        range=range_,
        sheet_name=sheet_name,
        headers=columns if include_headers else None,
        overwrite=True,
    )


def common_formula(
    kind: str,
    data_range: str | None = None,
    condition: str | None = None,
    lookup_table: str | None = None,
    lookup_column: int | None = None,
) -> str:
    """Formula text for a handful of everyday spreadsheet formulas."""
    data = data_range or "A:A"
    if kind in ("sum", "average", "count", "max", "min"):
        return f"={kind.upper()}({data})"
    if kind == "vlookup":
        return f"=VLOOKUP(A1,{lookup_table or 'Sheet2!A:B'},{lookup_column or 2},FALSE)"
    if kind == "if":
        return f'=IF({condition or "A1>0"},"Yes","No")'
    if kind == "concatenate":
        return f"=CONCATENATE({data_range or 'A1,B1'})"
    raise ValidationError("set_formula", f"unknown formula type {kind!r}")


def conditional_formula(operation: str, source_range: str, criteria: str) -> str:
    """SUMIF/COUNTIF-style formula text over one range."""
    if operation == "sum_if":
        return f'=SUMIF({source_range},"{criteria}",{source_range})'
    if operation == "count_if":
        return f'=COUNTIF({source_range},"{criteria}")'
    if operation == "average_if":
        return f'=AVERAGEIF({source_range},"{criteria}",{source_range})'
    if operation == "max_if":
        return f'=MAXIFS({source_range},{source_range},"{criteria}")'
    if operation == "min_if":
        return f'=MINIFS({source_range},{source_range},"{criteria}")'
    raise ValidationError("set_formula", f"unknown conditional operation {operation!r}")

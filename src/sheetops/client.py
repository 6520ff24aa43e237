"""SheetsClient - runs operations and profiles sheets through a Transport.

The client is the only place where the pure core meets I/O: it looks up
sheet ids and named ranges in spreadsheet metadata, hands operations to
build_request(), and sends the result through the transport.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from sheetops.context import (
    SheetAnalysis,
    SpreadsheetContext,
    analyze_sheet,
    build_spreadsheet_context,
)
from sheetops.exceptions import SheetUnreachableError
from sheetops.formats import CellFormat, FormatPreset
from sheetops.operations import (
    CreateSheetOperation,
    FormatCellsOperation,
    InsertMode,
    Operation,
    ReadOperation,
    SetFormulaOperation,
    SheetTemplate,
    WriteOperation,
    parse_operation,
)
from sheetops.profiler import (
    ProfileWindow,
    SampleConfig,
    SheetDescriptor,
    SheetSample,
    WindowRead,
    plan_windows,
    profile_sheet,
)
from sheetops.ranges import (
    Range,
    RangeHistory,
    RangeKind,
    RangeSuggestion,
    parse_range,
    suggest_ranges,
)
from sheetops.request_generator import TranslatedRequest, build_request, template_requests
from sheetops.resolver import RangeCaps, TruncationWarning
from sheetops.transport import (
    APIError,
    AuthenticationError,
    NotFoundError,
    SheetInfo,
    SpreadsheetMetadata,
    Transport,
    TransportError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "APIError",
    "AuthenticationError",
    "NotFoundError",
    "OperationResult",
    "SheetsClient",
    "TransportError",
]


@dataclass
class OperationResult:
    """Result of an executed operation.

    Failures raise instead of producing a result.
    """

    operation: str
    range: str | None
    summary: str
    warnings: list[str] = field(default_factory=list)
    values: list[list[Any]] | None = None
    formulas: list[list[Any]] | None = None
    response: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "operation": self.operation,
            "range": self.range,
            "summary": self.summary,
            "warnings": self.warnings,
        }
        if self.values is not None:
            result["values"] = self.values
        if self.formulas is not None:
            result["formulas"] = self.formulas
        return result


class SheetsClient:
    """Client for running spreadsheet operations.

    Example:
        >>> from sheetops.transport import GoogleSheetsTransport
        >>> transport = GoogleSheetsTransport(access_token="ya29...")
        >>> client = SheetsClient(transport)
        >>> result = await client.read_range("1Bxi...", "Sales!A1:C10")
        >>> result.values
    """

    def __init__(
        self,
        transport: Transport,
        *,
        caps: RangeCaps | None = None,
        sample_config: SampleConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Transport implementation for talking to spreadsheets
            caps: Row/column caps applied to every operation
            sample_config: Default window sizes for profiling
        """
        self._transport = transport
        self._caps = caps or RangeCaps()
        self._sample_config = sample_config or SampleConfig()
        self._history = RangeHistory()

    @property
    def history(self) -> RangeHistory:
        return self._history

    # --- Operations ---

    async def execute(self, spreadsheet_id: str, operation: Operation) -> OperationResult:
        """Validate, translate and send one operation."""
        metadata = await self._transport.get_metadata(spreadsheet_id)
        return await self._execute(spreadsheet_id, operation, metadata)

    async def execute_payload(
        self,
        spreadsheet_id: str,
        payload: dict[str, Any],
        current_sheet: str | None = None,
    ) -> OperationResult:
        """Run a tool-call style dict (see parse_operation)."""
        metadata = await self._transport.get_metadata(spreadsheet_id)
        operation = parse_operation(
            payload,
            current_sheet=current_sheet,
            named_ranges=metadata.named_range_names,
        )
        if isinstance(payload.get("range"), str):
            self._history.add(payload["range"])
        return await self._execute(spreadsheet_id, operation, metadata)

    async def read_range(
        self,
        spreadsheet_id: str,
        range_expr: str,
        *,
        sheet: str | None = None,
        include_formulas: bool = False,
        max_rows: int | None = None,
        max_columns: int | None = None,
    ) -> OperationResult:
        metadata = await self._transport.get_metadata(spreadsheet_id)
        operation = ReadOperation(
            range=self._parse(range_expr, sheet, metadata),
            max_rows=max_rows,
            max_columns=max_columns,
            include_formulas=include_formulas,
        )
        return await self._execute(spreadsheet_id, operation, metadata)

    async def write_range(
        self,
        spreadsheet_id: str,
        values: list[list[Any]],
        range_expr: str | None = None,
        *,
        sheet: str | None = None,
        headers: list[Any] | None = None,
        insert_mode: InsertMode | str = InsertMode.OVERWRITE,
        overwrite: bool = False,
        format: CellFormat | None = None,
    ) -> OperationResult:
        metadata = await self._transport.get_metadata(spreadsheet_id)
        operation = WriteOperation(
            values=values,
            range=self._parse(range_expr, sheet, metadata) if range_expr else None,
            sheet_name=sheet,
            headers=headers,
            insert_mode=insert_mode,
            overwrite=overwrite,
            format=format,
        )
        return await self._execute(spreadsheet_id, operation, metadata)

    async def set_formula(
        self,
        spreadsheet_id: str,
        range_expr: str,
        formula: str,
        *,
        sheet: str | None = None,
        array_formula: bool = False,
    ) -> OperationResult:
        metadata = await self._transport.get_metadata(spreadsheet_id)
        operation = SetFormulaOperation(
            range=self._parse(range_expr, sheet, metadata),
            formula=formula,
            array_formula=array_formula,
        )
        return await self._execute(spreadsheet_id, operation, metadata)

    async def format_cells(
        self,
        spreadsheet_id: str,
        range_expr: str,
        format: CellFormat | None = None,
        *,
        sheet: str | None = None,
        preset: FormatPreset | str | None = None,
    ) -> OperationResult:
        metadata = await self._transport.get_metadata(spreadsheet_id)
        operation = FormatCellsOperation(
            range=self._parse(range_expr, sheet, metadata),
            format=format or CellFormat(),
            preset=FormatPreset(preset) if preset is not None else None,
        )
        return await self._execute(spreadsheet_id, operation, metadata)

    async def create_sheet(
        self,
        spreadsheet_id: str,
        name: str,
        *,
        row_count: int = 1000,
        column_count: int = 26,
        index: int | None = None,
        template: SheetTemplate | str | None = None,
    ) -> OperationResult:
        operation = CreateSheetOperation(
            name=name,
            row_count=row_count,
            column_count=column_count,
            index=index,
            template=SheetTemplate(template) if template is not None else None,
        )
        return await self.execute(spreadsheet_id, operation)

    async def suggest_ranges(
        self, spreadsheet_id: str, text: str = "", limit: int = 10
    ) -> list[RangeSuggestion]:
        """Range completions from common ranges, history and named ranges."""
        metadata = await self._transport.get_metadata(spreadsheet_id)
        return suggest_ranges(
            text,
            history=self._history,
            named_ranges=sorted(metadata.named_range_names),
            limit=limit,
        )

    def _parse(
        self, range_expr: str, sheet: str | None, metadata: SpreadsheetMetadata
    ) -> Range:
        range_ = parse_range(
            range_expr, current_sheet=sheet, named_ranges=metadata.named_range_names
        )
        self._history.add(range_expr)
        return range_

    async def _execute(
        self,
        spreadsheet_id: str,
        operation: Operation,
        metadata: SpreadsheetMetadata,
    ) -> OperationResult:
        if isinstance(operation, CreateSheetOperation):
            return await self._create_sheet(spreadsheet_id, operation)

        operation, sheet = self._bind_sheet(operation, metadata)
        request = build_request(operation, sheet_id=sheet.sheet_id, caps=self._caps)
        logger.info("%s on %s: %s", operation.kind, spreadsheet_id, request.summary)

        if isinstance(operation, ReadOperation):
            return await self._read(spreadsheet_id, operation, request)

        response: dict[str, Any] = {}
        # Structural requests (insertDimension) must land before the values.
        if request.batch_requests:
            response["batchUpdate"] = await self._transport.batch_update(
                spreadsheet_id, request.batch_requests
            )
        if request.value_update is not None:
            response["valuesUpdate"] = await self._transport.update_values(
                spreadsheet_id, request.value_update, request.value_input_option
            )

        return OperationResult(
            operation=operation.kind,
            range=request.resolved.to_a1() if request.resolved else None,
            summary=request.summary,
            warnings=request.warnings,
            response=response,
        )

    def _bind_sheet(
        self, operation: Operation, metadata: SpreadsheetMetadata
    ) -> tuple[Operation, SheetInfo]:
        """Qualify the operation's range with a sheet and resolve named ranges."""
        if not metadata.sheets:
            raise NotFoundError(f"Spreadsheet '{metadata.spreadsheet_id}' has no sheets")
        default_title = metadata.sheets[0].title

        if isinstance(operation, WriteOperation) and operation.range is None:
            title = operation.sheet_name or default_title
            operation = replace(operation, sheet_name=title)
        else:
            range_: Range = operation.range  # type: ignore[union-attr]
            if range_.kind == RangeKind.NAMED_RANGE:
                range_ = metadata.resolve_named_range(range_.name or "")
            elif range_.sheet_name is None:
                range_ = range_.with_sheet(default_title)
            title = range_.sheet_name or default_title
            operation = replace(operation, range=range_)  # type: ignore[type-var]

        sheet = metadata.sheet_by_title(title)
        if sheet is None:
            raise NotFoundError(f"Sheet '{title}' not found")
        return operation, sheet

    async def _read(
        self, spreadsheet_id: str, operation: ReadOperation, request: TranslatedRequest
    ) -> OperationResult:
        results = [
            await self._transport.read_values(
                spreadsheet_id,
                read["range"],
                read["valueRenderOption"],
                read["dateTimeRenderOption"],
            )
            for read in request.value_reads
        ]
        max_rows = operation.max_rows or self._caps.max_rows
        max_columns = operation.max_columns or self._caps.max_columns

        warnings = list(request.warnings)
        values = results[0]
        # Open ranges come back unbounded; hold them to the caps too.
        if len(values) > max_rows:
            warnings.append(TruncationWarning("rows", len(values), max_rows).message)
        widest = max((len(row) for row in values), default=0)
        if widest > max_columns:
            warnings.append(TruncationWarning("columns", widest, max_columns).message)
        values = [row[:max_columns] for row in values[:max_rows]]
        formulas = None
        if len(results) > 1:
            formulas = [row[:max_columns] for row in results[1][:max_rows]]

        return OperationResult(
            operation=operation.kind,
            range=request.resolved.to_a1() if request.resolved else None,
            summary=f"{request.summary} ({len(values)} rows)",
            warnings=warnings,
            values=values,
            formulas=formulas,
        )

    async def _create_sheet(
        self, spreadsheet_id: str, operation: CreateSheetOperation
    ) -> OperationResult:
        request = build_request(operation, caps=self._caps)
        validated = request.operation
        assert isinstance(validated, CreateSheetOperation)

        response = await self._transport.batch_update(
            spreadsheet_id, request.batch_requests
        )
        result: dict[str, Any] = {"batchUpdate": response}

        if validated.template is not None and validated.template != SheetTemplate.BLANK:
            sheet_id = response["replies"][0]["addSheet"]["properties"]["sheetId"]
            result["template"] = await self._transport.batch_update(
                spreadsheet_id, template_requests(validated.template, sheet_id)
            )

        logger.info("create_sheet on %s: %s", spreadsheet_id, request.summary)
        return OperationResult(
            operation=validated.kind,
            range=None,
            summary=request.summary,
            warnings=request.warnings,
            response=result,
        )

    # --- Profiling ---

    async def profile_sheet(
        self,
        spreadsheet_id: str,
        sheet_title: str,
        config: SampleConfig | None = None,
    ) -> SheetSample:
        """Read the sheet's sample windows concurrently and profile them.

        Raises:
            NotFoundError: if the sheet does not exist
            SheetUnreachableError: if none of the windows could be read
        """
        metadata = await self._transport.get_metadata(spreadsheet_id)
        sheet = metadata.sheet_by_title(sheet_title)
        if sheet is None:
            raise NotFoundError(f"Sheet '{sheet_title}' not found")
        return await self._profile(spreadsheet_id, sheet, config or self._sample_config)

    async def _profile(
        self, spreadsheet_id: str, sheet: SheetInfo, config: SampleConfig
    ) -> SheetSample:
        descriptor = SheetDescriptor(
            title=sheet.title,
            row_count=sheet.row_count,
            column_count=sheet.column_count,
            sheet_id=sheet.sheet_id,
        )
        windows = plan_windows(descriptor, config)
        results = await asyncio.gather(
            *(self._read_window(spreadsheet_id, window) for window in windows),
            return_exceptions=True,
        )

        reads: list[WindowRead] = []
        for window, result in zip(windows, results):
            if isinstance(result, WindowRead):
                reads.append(result)
            elif isinstance(result, Exception):
                reads.append(WindowRead(window, error=str(result) or type(result).__name__))
            else:
                raise result
        return profile_sheet(descriptor, reads, config)

    async def _read_window(self, spreadsheet_id: str, window: ProfileWindow) -> WindowRead:
        a1 = window.range.to_a1()
        values = await self._transport.read_values(spreadsheet_id, a1)
        formulas = await self._transport.read_values(spreadsheet_id, a1, "FORMULA")
        return WindowRead(window, values=values, formulas=formulas)

    async def build_context(
        self, spreadsheet_id: str, config: SampleConfig | None = None
    ) -> SpreadsheetContext:
        """Profile every sheet and summarize the spreadsheet."""
        metadata = await self._transport.get_metadata(spreadsheet_id)
        config = config or self._sample_config

        analyses: list[SheetAnalysis] = []
        for sheet in metadata.sheets:
            descriptor = SheetDescriptor(
                sheet.title, sheet.row_count, sheet.column_count, sheet.sheet_id
            )
            try:
                sample = await self._profile(spreadsheet_id, sheet, config)
            except SheetUnreachableError as e:
                logger.warning("Could not profile sheet '%s': %s", sheet.title, e)
                sample = None
            analyses.append(analyze_sheet(descriptor, sample))

        return build_spreadsheet_context(metadata.title, analyses)

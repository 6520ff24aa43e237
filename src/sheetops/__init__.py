"""sheetops - Range parsing, operation translation and sheet profiling for Google Sheets.

Turns human-facing range expressions and typed operation intents into
bounded Google Sheets API requests, and profiles sheets to ground an LLM's
planning.
"""

__version__ = "0.1.0"

from sheetops.client import OperationResult, SheetsClient
from sheetops.exceptions import (
    InvalidRangeError,
    InvalidReferenceError,
    InvalidSheetNameError,
    MalformedGridError,
    SheetOpsError,
    SheetUnreachableError,
    UnbalancedFormulaError,
    ValidationError,
)
from sheetops.formats import CellFormat, FormatPreset
from sheetops.operations import (
    CreateSheetOperation,
    FormatCellsOperation,
    ReadOperation,
    SetFormulaOperation,
    WriteOperation,
    parse_operation,
)
from sheetops.profiler import SampleConfig, SheetDescriptor, SheetSample, profile_sheet
from sheetops.ranges import Range, RangeKind, parse_range
from sheetops.request_generator import TranslatedRequest, build_request
from sheetops.resolver import DataExtent, RangeCaps, ResolvedRange, resolve_range
from sheetops.transport import (
    APIError,
    AuthenticationError,
    GoogleSheetsTransport,
    LocalFileTransport,
    NotFoundError,
    Transport,
    TransportError,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "CellFormat",
    "CreateSheetOperation",
    "DataExtent",
    "FormatCellsOperation",
    "FormatPreset",
    "GoogleSheetsTransport",
    "InvalidRangeError",
    "InvalidReferenceError",
    "InvalidSheetNameError",
    "LocalFileTransport",
    "MalformedGridError",
    "NotFoundError",
    "OperationResult",
    "Range",
    "RangeCaps",
    "RangeKind",
    "ReadOperation",
    "ResolvedRange",
    "SampleConfig",
    "SetFormulaOperation",
    "SheetDescriptor",
    "SheetOpsError",
    "SheetSample",
    "SheetUnreachableError",
    "SheetsClient",
    "Transport",
    "TransportError",
    "TranslatedRequest",
    "UnbalancedFormulaError",
    "ValidationError",
    "WriteOperation",
    "__version__",
    "build_request",
    "parse_operation",
    "parse_range",
    "profile_sheet",
    "resolve_range",
]

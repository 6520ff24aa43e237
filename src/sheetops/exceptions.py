"""Error kinds raised by the sheetops core.

All of these are detected locally and synchronously. Transport failures
live in sheetops.transport.
"""

from __future__ import annotations


class SheetOpsError(Exception):
    """Base exception for sheetops errors."""

    pass


class InvalidReferenceError(SheetOpsError):
    """Raised for a malformed cell or column token (e.g. "A0", "1A", "Ä")."""

    def __init__(self, token: object, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"Invalid reference {token!r}: {reason}")


class InvalidRangeError(SheetOpsError):
    """Raised when a range expression cannot be parsed.

    Unknown bare identifiers land here too: a token that looks like a named
    range but is not in the supplied named-range set is never treated as a
    cell.
    """

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid range {expression!r}: {reason}")


class ValidationError(SheetOpsError):
    """Raised when an operation's parameters are invalid."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class MalformedGridError(ValidationError):
    """Raised when a write payload is not rectangular."""

    def __init__(self, row_lengths: list[int]) -> None:
        self.row_lengths = row_lengths
        super().__init__(
            "write",
            f"grid must be rectangular, got row lengths {row_lengths}",
        )


class InvalidSheetNameError(ValidationError):
    """Raised when a new sheet's name is empty, too long or uses reserved characters."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__("create_sheet", f"invalid sheet name {name!r}: {reason}")


class UnbalancedFormulaError(ValidationError):
    """Raised when a formula's parentheses do not balance."""

    def __init__(self, formula: str, position: int | None = None) -> None:
        self.formula = formula
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(
            "set_formula", f"unbalanced parentheses{where} in {formula!r}"
        )


class SheetUnreachableError(SheetOpsError):
    """Raised when no profiling window of a sheet could be read."""

    def __init__(self, sheet_title: str, reasons: list[str]) -> None:
        self.sheet_title = sheet_title
        self.reasons = reasons
        detail = "; ".join(reasons) if reasons else "no windows to read"
        super().__init__(f"Sheet '{sheet_title}' could not be read: {detail}")

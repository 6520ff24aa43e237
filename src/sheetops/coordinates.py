"""
Coordinate conversion for A1 notation.

Columns are a bijective base-26 numeral system: A-Z stand for 1-26, so there
is no zero digit ("Z" is 26, "AA" is 27). Rows and columns are 1-based
throughout sheetops; zero-based indices only appear in GridRange dicts built
by sheetops.ranges.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sheetops.exceptions import InvalidReferenceError

CELL_PATTERN = re.compile(r"^([A-Za-z]+)(\d+)$")
COLUMN_PATTERN = re.compile(r"^[A-Za-z]+$")


def column_to_number(letters: str) -> int:
    """Convert column letter(s) to a 1-based column number.

    Examples:
        A -> 1, Z -> 26, AA -> 27, AZ -> 52, ZZ -> 702, AAA -> 703
    """
    if not letters or not COLUMN_PATTERN.match(letters):
        raise InvalidReferenceError(letters, "column must be letters A-Z")
    result = 0
    for char in letters.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result


def number_to_column(number: int) -> str:
    """Convert a 1-based column number to column letter(s).

    Examples:
        1 -> A, 26 -> Z, 27 -> AA, 702 -> ZZ, 703 -> AAA
    """
    if isinstance(number, bool) or not isinstance(number, int) or number < 1:
        raise InvalidReferenceError(number, "column number must be an integer >= 1")
    result = ""
    n = number
    while n > 0:
        n -= 1
        result = chr(ord("A") + (n % 26)) + result
        n //= 26
    return result


@dataclass(frozen=True)
class CellRef:
    """A single cell, 1-based."""

    row: int
    column: int

    def __post_init__(self) -> None:
        if self.row < 1:
            raise InvalidReferenceError(self.row, "row must be >= 1")
        if self.column < 1:
            raise InvalidReferenceError(self.column, "column must be >= 1")

    def to_a1(self) -> str:
        return cell_to_a1(self.row, self.column)

    def offset(self, rows: int = 0, columns: int = 0) -> CellRef:
        return CellRef(self.row + rows, self.column + columns)


def cell_to_a1(row: int, column: int) -> str:
    """Convert 1-based row and column to A1 notation.

    Examples:
        (1, 1) -> A1, (1, 2) -> B1, (10, 3) -> C10
    """
    if row < 1:
        raise InvalidReferenceError(row, "row must be >= 1")
    return f"{number_to_column(column)}{row}"


def parse_cell_reference(token: str) -> CellRef:
    """Parse a cell token like "B7" (case-insensitive) into a CellRef."""
    match = CELL_PATTERN.match(token.strip())
    if not match:
        raise InvalidReferenceError(token, "expected column letters followed by a row")
    letters, digits = match.groups()
    row = int(digits)
    if row < 1:
        raise InvalidReferenceError(token, "row must be >= 1")
    return CellRef(row=row, column=column_to_number(letters))


def has_letters(token: str) -> bool:
    return any(c.isalpha() for c in token)


def has_digits(token: str) -> bool:
    return any(c.isdigit() for c in token)

"""Spreadsheet-level context assembled from sheet profiles.

This is the grounding handed to a planner: per-sheet column types and
patterns, plus a few plain-language suggestions and recommendations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sheetops.profiler import ColumnType, PatternFlag, SheetDescriptor, SheetSample

LARGE_SHEET_ROWS = 1000
WIDE_SHEET_COLUMNS = 20
VERY_LARGE_SHEET_ROWS = 10000

_PATTERN_LABELS = {
    PatternFlag.HAS_NUMERIC_SEQUENCE: "Contains numerical sequences",
    PatternFlag.HAS_DATE_RANGE: "Contains date ranges",
    PatternFlag.HAS_FORMULAS: "Contains formulas",
}


@dataclass
class SheetAnalysis:
    sheet: SheetDescriptor
    has_headers: bool = False
    data_types: dict[str, str] = field(default_factory=dict)
    patterns: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    sample: SheetSample | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.sheet.title,
            "rowCount": self.sheet.row_count,
            "columnCount": self.sheet.column_count,
            "hasHeaders": self.has_headers,
            "dataTypes": self.data_types,
            "patterns": self.patterns,
            "suggestions": self.suggestions,
        }


@dataclass
class SpreadsheetContext:
    title: str
    sheets: list[SheetAnalysis]
    total_cells: int
    summary: str
    recommendations: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "sheets": [s.to_dict() for s in self.sheets],
            "totalCells": self.total_cells,
            "summary": self.summary,
            "recommendations": self.recommendations,
        }


def analyze_sheet(sheet: SheetDescriptor, sample: SheetSample | None) -> SheetAnalysis:
    """Summarize one sheet's profile.

    ``sample`` is None when the sheet could not be profiled; the analysis
    then carries only the sheet's size and a note.
    """
    if sample is None:
        return SheetAnalysis(
            sheet=sheet,
            suggestions=[f'Unable to analyze sheet "{sheet.title}"'],
        )

    headers = [h for h in sample.detected_headers or [] if h]
    data_types: dict[str, str] = {}
    for window in sample.windows:
        window_headers = window.headers or []
        for i, profile in enumerate(window.column_profiles):
            key = window_headers[i] if i < len(window_headers) else ""
            data_types[key or f"Column_{i + 1}"] = profile.inferred_type.value

    patterns: list[str] = []
    if headers:
        patterns.append(f"Has headers: {', '.join(headers)}")
    for flag, label in _PATTERN_LABELS.items():
        if sample.has(flag):
            patterns.append(label)

    return SheetAnalysis(
        sheet=sheet,
        has_headers=bool(headers),
        data_types=data_types,
        patterns=patterns,
        suggestions=_sheet_suggestions(sheet, sample),
        sample=sample,
    )


def _sheet_suggestions(sheet: SheetDescriptor, sample: SheetSample) -> list[str]:
    suggestions: list[str] = []
    if sheet.row_count > LARGE_SHEET_ROWS:
        suggestions.append(
            "Large dataset - consider using filters or pivot tables for analysis"
        )
    if sheet.column_count > WIDE_SHEET_COLUMNS:
        suggestions.append("Wide dataset - consider grouping related columns")
    if sample.has(PatternFlag.HAS_FORMULAS):
        suggestions.append("Contains calculated fields - good for automated analysis")
    if sample.has(PatternFlag.HAS_DATE_RANGE):
        suggestions.append("Time-series data detected - suitable for trend analysis")
    if sample.has(PatternFlag.HAS_NUMERIC_SEQUENCE):
        suggestions.append("Sequential data detected - good for forecasting")

    types = {p.inferred_type for w in sample.windows for p in w.column_profiles}
    if ColumnType.NUMBER in types and ColumnType.DATE in types:
        suggestions.append(
            "Numerical and date data available - suitable for time-series analysis"
        )
    return suggestions


def build_spreadsheet_context(title: str, analyses: Sequence[SheetAnalysis]) -> SpreadsheetContext:
    total_cells = sum(a.sheet.row_count * a.sheet.column_count for a in analyses)
    total_rows = sum(a.sheet.row_count for a in analyses)
    total_columns = sum(a.sheet.column_count for a in analyses)
    with_headers = sum(1 for a in analyses if a.has_headers)
    formulas_label = _PATTERN_LABELS[PatternFlag.HAS_FORMULAS]
    with_formulas = sum(1 for a in analyses if formulas_label in a.patterns)

    summary = (
        f'Spreadsheet "{title}" contains {len(analyses)} sheet(s) with '
        f"{total_rows} total rows and {total_columns} total columns. "
        f"{with_headers} sheet(s) have headers, "
        f"{with_formulas} sheet(s) contain formulas."
    )

    return SpreadsheetContext(
        title=title,
        sheets=list(analyses),
        total_cells=total_cells,
        summary=summary,
        recommendations=_recommendations(analyses),
    )


def _recommendations(analyses: Sequence[SheetAnalysis]) -> list[str]:
    recommendations: list[str] = []
    empty = [a for a in analyses if a.sheet.row_count <= 1 and a.sheet.column_count <= 1]
    if empty:
        recommendations.append(f"Consider removing {len(empty)} empty sheet(s)")
    if any(a.sheet.row_count > VERY_LARGE_SHEET_ROWS for a in analyses):
        recommendations.append(
            "Large sheets detected - consider data validation and performance optimization"
        )
    if any(not a.has_headers and a.sheet.row_count > 1 for a in analyses):
        recommendations.append(
            "Add headers to improve data clarity and analysis capabilities"
        )
    return recommendations

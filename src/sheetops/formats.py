"""
Cell formats for the format-cells operation.

CellFormat is the caller-facing shape: every field is optional and an absent
field leaves the cell's current value unchanged. cell_format_to_api() turns
it into a Google Sheets CellFormat plus the field mask naming exactly the
paths that were set.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any

from sheetops.exceptions import ValidationError

logger = logging.getLogger(__name__)

HEX_COLOR_PATTERN = re.compile(r"^#([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})$")

NAMED_COLORS: dict[str, dict[str, float]] = {
    "white": {"red": 1.0, "green": 1.0, "blue": 1.0},
    "black": {"red": 0.0, "green": 0.0, "blue": 0.0},
    "red": {"red": 1.0, "green": 0.0, "blue": 0.0},
    "green": {"red": 0.0, "green": 1.0, "blue": 0.0},
    "blue": {"red": 0.0, "green": 0.0, "blue": 1.0},
    "yellow": {"red": 1.0, "green": 1.0, "blue": 0.0},
    "orange": {"red": 1.0, "green": 0.5, "blue": 0.0},
    "purple": {"red": 0.5, "green": 0.0, "blue": 0.5},
    "gray": {"red": 0.5, "green": 0.5, "blue": 0.5},
    "grey": {"red": 0.5, "green": 0.5, "blue": 0.5},
}

FALLBACK_COLOR = NAMED_COLORS["black"]

HORIZONTAL_ALIGNMENTS = ("LEFT", "CENTER", "RIGHT")
VERTICAL_ALIGNMENTS = ("TOP", "MIDDLE", "BOTTOM")


def hex_to_rgb(hex_color: str) -> dict[str, float]:
    """Convert "#RRGGBB" to {"red": r, "green": g, "blue": b} with 0-1 floats."""
    match = HEX_COLOR_PATTERN.match(hex_color.strip())
    if not match:
        raise ValueError(f"Invalid hex color: {hex_color}")
    r, g, b = (int(part, 16) / 255.0 for part in match.groups())
    return {"red": r, "green": g, "blue": b}


def rgb_to_hex(color: dict[str, Any]) -> str:
    """Convert {"red": 0.84, "green": 1, "blue": 0.84} to "#D6FFD6"."""
    r = round(color.get("red", 0) * 255)
    g = round(color.get("green", 0) * 255)
    b = round(color.get("blue", 0) * 255)
    return f"#{r:02X}{g:02X}{b:02X}"


def parse_color(color: str) -> dict[str, float]:
    """Parse a hex or named color into an RGB dict.

    Unrecognized strings resolve to black instead of failing.
    """
    text = color.strip()
    if text.startswith("#"):
        try:
            return hex_to_rgb(text)
        except ValueError:
            pass
    named = NAMED_COLORS.get(text.lower())
    if named is not None:
        return dict(named)
    logger.warning("Unrecognized color %r, using black", color)
    return dict(FALLBACK_COLOR)


@dataclass(frozen=True)
class CellFormat:
    """Formatting to apply to a range. None means "leave unchanged"."""

    background_color: str | None = None
    text_color: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    font_size: int | None = None
    font_family: str | None = None
    horizontal_align: str | None = None
    vertical_align: str | None = None
    number_format_pattern: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellFormat:
        """Build from a tool-call style dict (camelCase or snake_case keys)."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _FORMAT_KEY_ALIASES.get(key, key)
            if name not in known:
                raise ValidationError("format_cells", f"unknown format field {key!r}")
            values[name] = value
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def merged(self, override: CellFormat) -> CellFormat:
        """Return a copy where every field set on ``override`` wins."""
        changes = {
            f.name: getattr(override, f.name)
            for f in fields(override)
            if getattr(override, f.name) is not None
        }
        return replace(self, **changes)

    def validate(self) -> CellFormat:
        """Check field values and normalize alignments to upper case."""
        if self.is_empty():
            raise ValidationError("format_cells", "format has no fields set")

        for name in (
            "background_color",
            "text_color",
            "font_family",
            "horizontal_align",
            "vertical_align",
            "number_format_pattern",
        ):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ValidationError("format_cells", f"{name} must be a string")

        horizontal = self.horizontal_align
        if horizontal is not None:
            horizontal = horizontal.upper()
            if horizontal not in HORIZONTAL_ALIGNMENTS:
                raise ValidationError(
                    "format_cells",
                    f"horizontal alignment must be one of {HORIZONTAL_ALIGNMENTS}",
                )
        vertical = self.vertical_align
        if vertical is not None:
            vertical = vertical.upper()
            if vertical not in VERTICAL_ALIGNMENTS:
                raise ValidationError(
                    "format_cells",
                    f"vertical alignment must be one of {VERTICAL_ALIGNMENTS}",
                )
        if self.font_size is not None and (
            isinstance(self.font_size, bool)
            or not isinstance(self.font_size, int | float)
            or self.font_size <= 0
        ):
            raise ValidationError("format_cells", "font size must be a positive number")
        for flag in ("bold", "italic", "underline"):
            value = getattr(self, flag)
            if value is not None and not isinstance(value, bool):
                raise ValidationError("format_cells", f"{flag} must be true or false")

        return replace(self, horizontal_align=horizontal, vertical_align=vertical)

    def describe(self) -> list[str]:
        """Short human-readable list of what this format sets."""
        details: list[str] = []
        if self.bold:
            details.append("bold")
        if self.italic:
            details.append("italic")
        if self.underline:
            details.append("underline")
        if self.background_color:
            details.append(f"background: {rgb_to_hex(parse_color(self.background_color))}")
        if self.text_color:
            details.append(f"text: {rgb_to_hex(parse_color(self.text_color))}")
        if self.font_size:
            details.append(f"size: {self.font_size}")
        if self.font_family:
            details.append(f"font: {self.font_family}")
        if self.number_format_pattern:
            details.append(f"format: {self.number_format_pattern}")
        return details


_FORMAT_KEY_ALIASES = {
    "backgroundColor": "background_color",
    "textColor": "text_color",
    "fontSize": "font_size",
    "fontFamily": "font_family",
    "horizontalAlign": "horizontal_align",
    "horizontalAlignment": "horizontal_align",
    "verticalAlign": "vertical_align",
    "verticalAlignment": "vertical_align",
    "numberFormat": "number_format_pattern",
    "numberFormatPattern": "number_format_pattern",
}


def infer_number_format_type(pattern: str) -> str:
    """Pick the NumberFormatType that matches a pattern."""
    if "%" in pattern:
        return "PERCENT"
    if any(symbol in pattern for symbol in "$€£¥"):
        return "CURRENCY"
    lowered = pattern.lower()
    if "yy" in lowered or "dd" in lowered or "mmm" in lowered:
        return "DATE"
    return "NUMBER"


def cell_format_to_api(cell_format: CellFormat) -> tuple[dict[str, Any], list[str]]:
    """Convert a CellFormat to a Sheets CellFormat dict and its field paths.

    Returns:
        (userEnteredFormat dict, list of field paths relative to
        userEnteredFormat, e.g. ["backgroundColor", "textFormat.bold"])
    """
    api_format: dict[str, Any] = {}
    paths: list[str] = []
    text_format: dict[str, Any] = {}

    if cell_format.background_color is not None:
        api_format["backgroundColor"] = parse_color(cell_format.background_color)
        paths.append("backgroundColor")

    if cell_format.text_color is not None:
        text_format["foregroundColor"] = parse_color(cell_format.text_color)
    if cell_format.bold is not None:
        text_format["bold"] = cell_format.bold
    if cell_format.italic is not None:
        text_format["italic"] = cell_format.italic
    if cell_format.underline is not None:
        text_format["underline"] = cell_format.underline
    if cell_format.font_size is not None:
        text_format["fontSize"] = cell_format.font_size
    if cell_format.font_family is not None:
        text_format["fontFamily"] = cell_format.font_family
    if text_format:
        api_format["textFormat"] = text_format
        paths.extend(f"textFormat.{key}" for key in text_format)

    if cell_format.horizontal_align is not None:
        api_format["horizontalAlignment"] = cell_format.horizontal_align
        paths.append("horizontalAlignment")
    if cell_format.vertical_align is not None:
        api_format["verticalAlignment"] = cell_format.vertical_align
        paths.append("verticalAlignment")

    if cell_format.number_format_pattern is not None:
        pattern = cell_format.number_format_pattern
        api_format["numberFormat"] = {
            "type": infer_number_format_type(pattern),
            "pattern": pattern,
        }
        paths.append("numberFormat")

    return api_format, paths


class FormatPreset(str, Enum):
    HEADER = "header"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"
    HIGHLIGHT = "highlight"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


PRESETS: dict[FormatPreset, CellFormat] = {
    FormatPreset.HEADER: CellFormat(
        bold=True,
        background_color="#4285f4",
        text_color="#ffffff",
        font_size=12,
        horizontal_align="CENTER",
    ),
    FormatPreset.CURRENCY: CellFormat(
        number_format_pattern="$#,##0.00", horizontal_align="RIGHT"
    ),
    FormatPreset.PERCENTAGE: CellFormat(
        number_format_pattern="0.00%", horizontal_align="RIGHT"
    ),
    FormatPreset.DATE: CellFormat(
        number_format_pattern="mm/dd/yyyy", horizontal_align="CENTER"
    ),
    FormatPreset.HIGHLIGHT: CellFormat(background_color="#fff2cc", bold=True),
    FormatPreset.WARNING: CellFormat(background_color="#fce5cd", text_color="#cc4125"),
    FormatPreset.SUCCESS: CellFormat(background_color="#d9ead3", text_color="#274e13"),
    FormatPreset.ERROR: CellFormat(
        background_color="#f4cccc", text_color="#cc0000", bold=True
    ),
}

HEADER_STYLES: dict[str, CellFormat] = {
    "default": CellFormat(
        bold=True, background_color="#4285f4", text_color="#ffffff", horizontal_align="CENTER"
    ),
    "dark": CellFormat(
        bold=True, background_color="#333333", text_color="#ffffff", horizontal_align="CENTER"
    ),
    "light": CellFormat(
        bold=True, background_color="#f8f9fa", text_color="#333333", horizontal_align="CENTER"
    ),
    "colorful": CellFormat(
        bold=True, background_color="#ff9900", text_color="#ffffff", horizontal_align="CENTER"
    ),
}

CURRENCY_PATTERNS = {
    "USD": "$#,##0.00",
    "EUR": "€#,##0.00",
    "GBP": "£#,##0.00",
    "JPY": "¥#,##0",
}

DATE_PATTERNS = {
    "short": "mm/dd/yyyy",
    "long": "mmmm dd, yyyy",
    "iso": "yyyy-mm-dd",
}


def apply_preset(base: CellFormat, preset: FormatPreset | str) -> CellFormat:
    """Overlay a named preset on ``base``; preset fields take precedence."""
    try:
        preset = FormatPreset(preset)
    except ValueError as e:
        raise ValidationError("format_cells", f"unknown preset {preset!r}") from e
    return base.merged(PRESETS[preset])


def header_style(style: str = "default") -> CellFormat:
    try:
        return HEADER_STYLES[style]
    except KeyError as e:
        raise ValidationError("format_cells", f"unknown header style {style!r}") from e


def currency_format(currency: str = "USD", decimals: int | None = None) -> CellFormat:
    pattern = CURRENCY_PATTERNS.get(currency.upper())
    if pattern is None:
        raise ValidationError("format_cells", f"unsupported currency {currency!r}")
    if decimals is not None and ".00" in pattern:
        pattern = pattern.replace(".00", "." + "0" * decimals if decimals > 0 else "")
    return CellFormat(number_format_pattern=pattern, horizontal_align="RIGHT")


def percentage_format(decimals: int = 2) -> CellFormat:
    pattern = f"0.{'0' * decimals}%" if decimals > 0 else "0%"
    return CellFormat(number_format_pattern=pattern, horizontal_align="RIGHT")


def date_format(style: str = "short", custom_pattern: str | None = None) -> CellFormat:
    if style == "custom":
        pattern = custom_pattern or DATE_PATTERNS["short"]
    elif style in DATE_PATTERNS:
        pattern = DATE_PATTERNS[style]
    else:
        raise ValidationError("format_cells", f"unknown date style {style!r}")
    return CellFormat(number_format_pattern=pattern, horizontal_align="CENTER")

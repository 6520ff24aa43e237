"""Transport layer for talking to spreadsheets.

Defines the Transport protocol and implementations:
- GoogleSheetsTransport: Production transport using the Google Sheets v4 API
- LocalFileTransport: Test transport reading from local golden files and
  recording writes instead of sending them
"""

from __future__ import annotations

import json
import logging
import ssl
import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

import certifi
import httpx

from sheetops.exceptions import SheetOpsError
from sheetops.ranges import Range, RangeKind, parse_range, range_from_grid_range

logger = logging.getLogger(__name__)

# API constants
API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DEFAULT_TIMEOUT = 60


class TransportError(SheetOpsError):
    """Base exception for transport errors."""


class AuthenticationError(TransportError):
    """Raised when authentication fails (401/403)."""


class NotFoundError(TransportError):
    """Raised when a spreadsheet or sheet is not found (404)."""


class APIError(TransportError):
    """Raised when the API returns an error."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class SheetInfo:
    """Information about a single sheet within a spreadsheet."""

    sheet_id: int
    title: str
    row_count: int
    column_count: int


@dataclass(frozen=True)
class SpreadsheetMetadata:
    """Metadata about a spreadsheet: its sheets and named ranges."""

    spreadsheet_id: str
    title: str
    sheets: tuple[SheetInfo, ...]
    named_ranges: dict[str, dict[str, Any]] = field(default_factory=dict)  # name -> GridRange
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def named_range_names(self) -> frozenset[str]:
        return frozenset(self.named_ranges)

    def sheet_by_title(self, title: str) -> SheetInfo | None:
        for sheet in self.sheets:
            if sheet.title == title:
                return sheet
        return None

    def sheet_by_id(self, sheet_id: int) -> SheetInfo | None:
        for sheet in self.sheets:
            if sheet.sheet_id == sheet_id:
                return sheet
        return None

    def resolve_named_range(self, name: str) -> Range:
        """Concrete bounds of a named range, qualified with its sheet title."""
        grid_range = self.named_ranges.get(name)
        if grid_range is None:
            raise NotFoundError(f"Named range '{name}' not found")
        sheet = self.sheet_by_id(grid_range.get("sheetId", 0))
        if sheet is None:
            raise NotFoundError(f"Sheet for named range '{name}' not found")
        return range_from_grid_range(grid_range, sheet_name=sheet.title)


def parse_metadata(response: dict[str, Any], spreadsheet_id: str) -> SpreadsheetMetadata:
    """Build SpreadsheetMetadata from a spreadsheets.get response."""
    sheets: list[SheetInfo] = []
    for sheet in response.get("sheets", []):
        props = sheet.get("properties", {})
        grid_props = props.get("gridProperties", {})
        sheets.append(
            SheetInfo(
                sheet_id=props.get("sheetId", 0),
                title=props.get("title", "Sheet1"),
                row_count=grid_props.get("rowCount", 0),
                column_count=grid_props.get("columnCount", 26),
            )
        )

    named_ranges = {
        nr["name"]: nr.get("range", {})
        for nr in response.get("namedRanges", [])
        if "name" in nr
    }

    return SpreadsheetMetadata(
        spreadsheet_id=response.get("spreadsheetId", spreadsheet_id),
        title=response.get("properties", {}).get("title", ""),
        sheets=tuple(sheets),
        named_ranges=named_ranges,
        raw=response,
    )


class Transport(ABC):
    """Abstract base class for spreadsheet transport.

    Implementations must provide methods to fetch metadata, read and write
    values, and send batchUpdate requests.
    """

    @abstractmethod
    async def get_metadata(self, spreadsheet_id: str) -> SpreadsheetMetadata:
        """Fetch spreadsheet metadata without cell data."""
        ...

    @abstractmethod
    async def read_values(
        self,
        spreadsheet_id: str,
        range_a1: str,
        value_render_option: str = "UNFORMATTED_VALUE",
        date_time_render_option: str = "FORMATTED_STRING",
    ) -> list[list[Any]]:
        """Read a range as a list of rows.

        Args:
            spreadsheet_id: The spreadsheet identifier
            range_a1: Range in A1 notation, or a named range
            value_render_option: UNFORMATTED_VALUE, FORMATTED_VALUE or FORMULA
            date_time_render_option: SERIAL_NUMBER or FORMATTED_STRING

        Returns:
            Rows of values; trailing empty rows and cells may be omitted
        """
        ...

    @abstractmethod
    async def update_values(
        self,
        spreadsheet_id: str,
        body: dict[str, Any],
        value_input_option: str = "USER_ENTERED",
    ) -> dict[str, Any]:
        """Write a values body ({"range", "majorDimension", "values"})."""
        ...

    @abstractmethod
    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Send batchUpdate requests to the spreadsheet.

        Returns:
            API response from batchUpdate, including ``replies``
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        ...


class GoogleSheetsTransport(Transport):
    """Production transport for the Google Sheets API.

    Handles authentication, SSL, and HTTP communication.
    """

    def __init__(
        self,
        access_token: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            access_token: OAuth2 access token with the spreadsheets scope
            timeout: Request timeout in seconds
        """
        self._access_token = access_token
        self._timeout = timeout
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=ssl_context,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

    async def get_metadata(self, spreadsheet_id: str) -> SpreadsheetMetadata:
        """Fetch spreadsheet metadata from Google Sheets API."""
        url = f"{API_BASE}/{spreadsheet_id}"
        response = await self._request(
            "GET",
            url,
            params={"fields": "spreadsheetId,properties.title,sheets.properties,namedRanges"},
        )
        return parse_metadata(response, spreadsheet_id)

    async def read_values(
        self,
        spreadsheet_id: str,
        range_a1: str,
        value_render_option: str = "UNFORMATTED_VALUE",
        date_time_render_option: str = "FORMATTED_STRING",
    ) -> list[list[Any]]:
        """Read a range via values.get."""
        url = f"{API_BASE}/{spreadsheet_id}/values/{urllib.parse.quote(range_a1, safe='')}"
        response = await self._request(
            "GET",
            url,
            params={
                "majorDimension": "ROWS",
                "valueRenderOption": value_render_option,
                "dateTimeRenderOption": date_time_render_option,
            },
        )
        values: list[list[Any]] = response.get("values", [])
        return values

    async def update_values(
        self,
        spreadsheet_id: str,
        body: dict[str, Any],
        value_input_option: str = "USER_ENTERED",
    ) -> dict[str, Any]:
        """Write values via values.update."""
        range_a1 = body["range"]
        url = f"{API_BASE}/{spreadsheet_id}/values/{urllib.parse.quote(range_a1, safe='')}"
        return await self._request(
            "PUT", url, params={"valueInputOption": value_input_option}, body=body
        )

    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Send batch update requests to Google Sheets API."""
        url = f"{API_BASE}/{spreadsheet_id}:batchUpdate"
        return await self._request("POST", url, body={"requests": requests})

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request."""
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, params=params, json=body)
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e) from e
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}") from e

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> TransportError:
        """Convert HTTP errors to appropriate transport exceptions."""
        status = e.response.status_code
        if status == 401:
            return AuthenticationError("Invalid or expired access token")
        if status == 403:
            return AuthenticationError(
                "Access denied. Check your scopes and permissions."
            )
        if status == 404:
            return NotFoundError(
                "Spreadsheet not found. Check the ID and sharing permissions."
            )
        body = e.response.text
        return APIError(f"API error ({status}): {body}", status_code=status)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


class LocalFileTransport(Transport):
    """Test transport that reads from local golden files.

    Expected directory structure:
        golden_dir/
            <spreadsheet_id>/
                metadata.json
                sheets/
                    <sheet title>.json    {"values": [[...]], "formulas": [[...]]}

    Writes are recorded, not applied.
    """

    def __init__(self, golden_dir: Path) -> None:
        """Initialize the transport.

        Args:
            golden_dir: Directory containing golden test files
        """
        self._golden_dir = golden_dir
        self._value_updates: list[dict[str, Any]] = []
        self._batch_updates: list[dict[str, Any]] = []
        self._next_sheet_id = 1000

    async def get_metadata(self, spreadsheet_id: str) -> SpreadsheetMetadata:
        """Read metadata from local file."""
        path = self._golden_dir / spreadsheet_id / "metadata.json"
        if not path.exists():
            raise NotFoundError(f"Spreadsheet '{spreadsheet_id}' not found")
        return parse_metadata(json.loads(path.read_text()), spreadsheet_id)

    async def read_values(
        self,
        spreadsheet_id: str,
        range_a1: str,
        value_render_option: str = "UNFORMATTED_VALUE",
        date_time_render_option: str = "FORMATTED_STRING",
    ) -> list[list[Any]]:
        """Slice a range out of the sheet's golden file."""
        metadata = await self.get_metadata(spreadsheet_id)
        range_ = parse_range(range_a1, named_ranges=metadata.named_range_names)
        if range_.kind == RangeKind.NAMED_RANGE:
            range_ = metadata.resolve_named_range(range_.name or "")

        title = range_.sheet_name or (metadata.sheets[0].title if metadata.sheets else "")
        path = self._golden_dir / spreadsheet_id / "sheets" / f"{title}.json"
        if not path.exists():
            raise NotFoundError(f"Sheet '{title}' not found")
        sheet_data = json.loads(path.read_text())

        grid = sheet_data.get("values", [])
        if value_render_option == "FORMULA":
            grid = sheet_data.get("formulas", grid)

        top = (range_.start_row or 1) - 1
        bottom = range_.end_row
        left = (range_.start_column or 1) - 1
        right = range_.end_column
        rows = [list(row[left:right]) for row in grid[top:bottom]]
        while rows and not any(v not in (None, "") for v in rows[-1]):
            rows.pop()
        return rows

    async def update_values(
        self,
        spreadsheet_id: str,
        body: dict[str, Any],
        value_input_option: str = "USER_ENTERED",
    ) -> dict[str, Any]:
        """Record a values update (for testing)."""
        self._value_updates.append(
            {
                "spreadsheet_id": spreadsheet_id,
                "value_input_option": value_input_option,
                "body": body,
            }
        )
        values = body.get("values", [])
        rows = len(values)
        columns = len(values[0]) if values else 0
        return {
            "spreadsheetId": spreadsheet_id,
            "updatedRange": body.get("range"),
            "updatedRows": rows,
            "updatedColumns": columns,
            "updatedCells": rows * columns,
        }

    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Record batch update requests (for testing)."""
        self._batch_updates.append(
            {"spreadsheet_id": spreadsheet_id, "requests": requests}
        )
        replies: list[dict[str, Any]] = []
        for request in requests:
            if "addSheet" in request:
                properties = dict(request["addSheet"].get("properties", {}))
                properties["sheetId"] = self._next_sheet_id
                self._next_sheet_id += 1
                replies.append({"addSheet": {"properties": properties}})
            else:
                replies.append({})
        return {"spreadsheetId": spreadsheet_id, "replies": replies}

    async def close(self) -> None:
        """No-op for local file transport."""
        pass

    @property
    def value_updates(self) -> list[dict[str, Any]]:
        """Get recorded values updates (for testing)."""
        return self._value_updates

    @property
    def batch_updates(self) -> list[dict[str, Any]]:
        """Get recorded batch updates (for testing)."""
        return self._batch_updates

"""Tests for the local golden-file transport and metadata parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from sheetops.transport import LocalFileTransport, NotFoundError, parse_metadata

GOLDEN_DIR = Path(__file__).parent / "golden"
SPREADSHEET_ID = "sales_spreadsheet"


@pytest.fixture
def local_transport() -> LocalFileTransport:
    """Create a transport that reads from golden files."""
    return LocalFileTransport(GOLDEN_DIR)


@pytest.mark.asyncio
async def test_metadata(local_transport: LocalFileTransport) -> None:
    metadata = await local_transport.get_metadata(SPREADSHEET_ID)
    assert metadata.title == "Quarterly Sales"
    assert [s.title for s in metadata.sheets] == ["Sales", "Inventory", "Scratch"]
    assert metadata.named_range_names == frozenset({"Revenue"})
    assert metadata.sheet_by_id(1) is metadata.sheet_by_title("Inventory")
    assert metadata.resolve_named_range("Revenue").to_a1() == "Sales!C2:C6"


@pytest.mark.asyncio
async def test_metadata_unknown_named_range(local_transport: LocalFileTransport) -> None:
    metadata = await local_transport.get_metadata(SPREADSHEET_ID)
    with pytest.raises(NotFoundError):
        metadata.resolve_named_range("Costs")


@pytest.mark.asyncio
async def test_missing_spreadsheet(local_transport: LocalFileTransport) -> None:
    with pytest.raises(NotFoundError):
        await local_transport.get_metadata("nope")


@pytest.mark.asyncio
async def test_read_slices_range(local_transport: LocalFileTransport) -> None:
    values = await local_transport.read_values(SPREADSHEET_ID, "Sales!B2:C3")
    assert values == [[10, 150.5], [12, 180]]


@pytest.mark.asyncio
async def test_read_drops_trailing_empty_rows(local_transport: LocalFileTransport) -> None:
    values = await local_transport.read_values(SPREADSHEET_ID, "Sales!A1:J10")
    assert len(values) == 6
    assert values[0] == ["Date", "Units", "Revenue"]
    assert await local_transport.read_values(SPREADSHEET_ID, "Sales!M500:R505") == []


@pytest.mark.asyncio
async def test_read_named_range(local_transport: LocalFileTransport) -> None:
    values = await local_transport.read_values(SPREADSHEET_ID, "Revenue")
    assert values == [[150.5], [180], [135.25], [225], [165]]


@pytest.mark.asyncio
async def test_read_formulas(local_transport: LocalFileTransport) -> None:
    values = await local_transport.read_values(SPREADSHEET_ID, "Inventory!E2:E3")
    formulas = await local_transport.read_values(
        SPREADSHEET_ID, "Inventory!E2:E3", "FORMULA"
    )
    assert values == [[10], [12]]
    assert formulas == [["=C2*D2"], ["=C3*D3"]]


@pytest.mark.asyncio
async def test_read_sheet_without_file(local_transport: LocalFileTransport) -> None:
    with pytest.raises(NotFoundError):
        await local_transport.read_values(SPREADSHEET_ID, "Scratch!A1")


@pytest.mark.asyncio
async def test_writes_are_recorded(local_transport: LocalFileTransport) -> None:
    body = {"range": "Sales!A7:B7", "majorDimension": "ROWS", "values": [[1, 2]]}
    response = await local_transport.update_values(SPREADSHEET_ID, body)
    assert response["updatedCells"] == 2
    assert local_transport.value_updates == [
        {
            "spreadsheet_id": SPREADSHEET_ID,
            "value_input_option": "USER_ENTERED",
            "body": body,
        }
    ]

    reply = await local_transport.batch_update(
        SPREADSHEET_ID,
        [{"addSheet": {"properties": {"title": "New"}}}, {"repeatCell": {}}],
    )
    assert reply["replies"][0]["addSheet"]["properties"] == {
        "title": "New",
        "sheetId": 1000,
    }
    assert reply["replies"][1] == {}
    assert len(local_transport.batch_updates) == 1


def test_parse_metadata_defaults() -> None:
    metadata = parse_metadata({"sheets": [{"properties": {}}]}, "abc")
    assert metadata.spreadsheet_id == "abc"
    assert metadata.title == ""
    (sheet,) = metadata.sheets
    assert (sheet.sheet_id, sheet.title, sheet.column_count) == (0, "Sheet1", 26)
    assert metadata.named_ranges == {}

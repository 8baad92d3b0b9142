"""Tests for roster workbook import and sheet export."""

import io

import pytest
from openpyxl import Workbook, load_workbook

from hostel_allocation.core.exceptions import ValidationError
from hostel_allocation.schemas.common.bulk import BulkStatus
from hostel_allocation.services import AllocationService, BulkAllocationService, OccupancyProjectionService
from hostel_allocation.utils import RosterReader, SheetExporter


def roster_workbook(path, headers, rows, title="Roster"):
    workbook = Workbook()
    ws = workbook.active
    ws.title = title
    ws.append(headers)
    for row in rows:
        ws.append(row)
    workbook.save(path)
    return path


class TestRosterReader:
    def test_reads_rows_by_header(self, tmp_path):
        path = roster_workbook(
            tmp_path / "roster.xlsx",
            ["Roll Number", "UNIT", "Room", "Bed", "Notes"],
            [["CS01", "A", 101, 1, "window"], [None, None, None, None, None], ["CS02", "A", 101, 2, None]],
        )

        rows = RosterReader.read_rows(str(path))

        assert rows == [
            {"roll_number": "CS01", "unit": "A", "room": 101, "bed_number": 1},
            {"roll_number": "CS02", "unit": "A", "room": 101, "bed_number": 2},
        ]

    def test_missing_required_column(self, tmp_path):
        path = roster_workbook(tmp_path / "roster.xlsx", ["Roll Number", "Room"], [["CS01", "1"]])

        with pytest.raises(ValidationError) as exc_info:
            RosterReader.read_rows(str(path))
        assert "bed_number" in exc_info.value.details["field_errors"]

    def test_unknown_sheet_name(self, tmp_path):
        path = roster_workbook(tmp_path / "roster.xlsx", ["Roll Number", "Room", "Bed"], [])

        with pytest.raises(ValidationError):
            RosterReader.read_rows(str(path), sheet_name="Other")

    def test_template_round_trips_headers(self):
        content = RosterReader.create_template()

        assert RosterReader.read_rows(content) == []
        ws = load_workbook(io.BytesIO(content)).active
        assert ws.title == "Roster"
        assert ws.cell(row=1, column=1).value == "Roll Number"

    def test_rows_feed_bulk_allocation(self, tmp_path, uow, factory, hasher):
        block = factory.unit_hostel()
        a, b = factory.students(2)
        path = roster_workbook(
            tmp_path / "roster.xlsx",
            ["Roll Number", "Unit", "Room", "Bed"],
            [[a.roll_number, "A", "101", 1], [b.roll_number, "B", 102, 2]],
        )

        report = BulkAllocationService(uow, hasher).bulk_allocate(block.id, RosterReader.read_rows(str(path)))

        assert report.status == BulkStatus.ALL_SUCCESS
        assert report.succeeded_count == 2


class TestSheetExporter:
    def test_hostel_sheet_hides_id_columns(self, tmp_path, uow, factory):
        block = factory.unit_hostel(units=("A",), rooms=("101",), capacity=2)
        room = factory.room(block, "101", "A")
        student = factory.student()
        AllocationService(uow).allocate(room.id, student.id, 1, unit_id=room.unit_id)
        sheet = OccupancyProjectionService(uow).project_sheet(block.id)

        path = SheetExporter.export_hostel_sheet(sheet, str(tmp_path / "out" / "sheet.xlsx"))

        ws = load_workbook(path).active
        headers = [cell.value for cell in ws[1]]
        assert ws.title == block.name
        assert headers == [c.header for c in sheet.columns if not c.hidden]
        assert "Room ID" not in headers
        assert ws.max_row == sheet.total_rows + 1
        assert ws.cell(row=2, column=headers.index("Roll Number") + 1).value == student.roll_number
        assert ws.freeze_panes == "A2"

    def test_allocation_summary(self, uow, factory):
        north = factory.room_only_hostel(name="North", capacity=2)
        room = factory.room(north, "1")
        AllocationService(uow).allocate(room.id, factory.student(degree="B.Tech").id, 1)
        summary = OccupancyProjectionService(uow).project_allocation_summary()

        content = SheetExporter.export_allocation_summary(summary)

        ws = load_workbook(io.BytesIO(content)).active
        assert [cell.value for cell in ws[1]] == summary.headers
        assert [cell.value for cell in ws[2]] == ["B.Tech", 1, 1]
        assert [cell.value for cell in ws[ws.max_row]] == ["Total", 1, 1]
        assert ws.cell(row=ws.max_row, column=1).font.bold

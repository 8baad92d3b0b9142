"""
Excel import and export for allocation rosters and occupancy sheets.
"""

import io
import os
from typing import Any, Dict, List, Optional, Sequence, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from hostel_allocation.core.exceptions import ValidationError
from hostel_allocation.schemas.sheet.sheet import AllocationSummary, HostelSheet

ExcelSource = Union[str, os.PathLike, bytes, io.BytesIO]

# Spreadsheet header -> roster row field
ROSTER_HEADERS: Dict[str, str] = {
    "roll number": "roll_number",
    "roll no": "roll_number",
    "unit": "unit",
    "unit number": "unit",
    "room": "room",
    "room number": "room",
    "bed": "bed_number",
    "bed number": "bed_number",
    "email": "email",
    "name": "name",
    "phone": "phone",
    "password": "password",
    "department": "department",
    "degree": "degree",
    "gender": "gender",
    "admission date": "admission_date",
    "guardian": "guardian",
    "guardian phone": "guardian_phone",
    "guardian email": "guardian_email",
    "day scholar": "is_day_scholar",
}

REQUIRED_ROSTER_FIELDS = ("roll_number", "room", "bed_number")

TEMPLATE_HEADERS = [
    "Roll Number", "Unit", "Room", "Bed", "Email", "Name", "Phone",
    "Department", "Degree", "Gender", "Admission Date", "Guardian", "Guardian Phone",
]


def _thin_border() -> Border:
    side = Side(style='thin')
    return Border(left=side, right=side, top=side, bottom=side)


class ExcelGenerator:
    """Workbook builder with the shared header and data styles"""

    def __init__(self):
        self.workbook = Workbook()
        self.workbook.remove(self.workbook.active)
        self.default_styles = {
            'header': {
                'font': Font(bold=True, color='FFFFFF'),
                'fill': PatternFill(start_color='366092', end_color='366092', fill_type='solid'),
                'alignment': Alignment(horizontal='center', vertical='center'),
                'border': _thin_border(),
            },
            'data': {
                'font': Font(size=10),
                'alignment': Alignment(horizontal='left', vertical='center'),
                'border': _thin_border(),
            },
            'total': {
                'font': Font(bold=True, size=10),
                'border': _thin_border(),
            },
        }

    def add_worksheet(self, name: str, headers: Sequence[str], data: Sequence[Sequence[Any]],
                      total_last_row: bool = False) -> None:
        """Add a worksheet with one header row"""
        ws = self.workbook.create_sheet(title=name[:31])

        for col, header in enumerate(headers, 1):
            self._apply_style(ws.cell(row=1, column=col, value=header), 'header')

        for row_idx, row_data in enumerate(data, 2):
            style = 'total' if total_last_row and row_idx == len(data) + 1 else 'data'
            for col_idx, value in enumerate(row_data, 1):
                self._apply_style(ws.cell(row=row_idx, column=col_idx, value=value), style)

        ws.freeze_panes = 'A2'
        self._auto_adjust_columns(ws)

    def _apply_style(self, cell, style_name: str) -> None:
        for attr, value in self.default_styles[style_name].items():
            setattr(cell, attr, value)

    def _auto_adjust_columns(self, worksheet) -> None:
        for column_cells in worksheet.columns:
            length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
            worksheet.column_dimensions[get_column_letter(column_cells[0].column)].width = min(length + 2, 50)

    def save(self, filename: Optional[str] = None) -> Union[str, bytes]:
        """Save to ``filename`` and return it, or return the workbook bytes"""
        if filename is None:
            buffer = io.BytesIO()
            self.workbook.save(buffer)
            return buffer.getvalue()

        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.workbook.save(filename)
        return filename


class SheetExporter:
    """Occupancy projections as Excel workbooks"""

    @staticmethod
    def export_hostel_sheet(sheet: HostelSheet, filename: Optional[str] = None,
                            include_hidden: bool = False) -> Union[str, bytes]:
        columns = [c for c in sheet.columns if include_hidden or not c.hidden]
        data = []
        for row in sheet.rows:
            values = row.model_dump(mode='json')
            data.append([values.get(c.accessor_key) for c in columns])

        generator = ExcelGenerator()
        generator.add_worksheet(sheet.hostel.name, [c.header for c in columns], data)
        return generator.save(filename)

    @staticmethod
    def export_allocation_summary(summary: AllocationSummary,
                                  filename: Optional[str] = None) -> Union[str, bytes]:
        keys = [c.accessor_key for c in summary.columns] or ['degree', *summary.headers[1:]]
        data = [[row.get(key, 0) for key in keys] for row in summary.rows]

        generator = ExcelGenerator()
        generator.add_worksheet('Allocation Summary', summary.headers, data, total_last_row=True)
        return generator.save(filename)


class RosterReader:
    """Reads roster spreadsheets into rows accepted by bulk allocation"""

    @staticmethod
    def read_rows(source: ExcelSource, sheet_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Read the first (or named) worksheet.

        The first row holds the headers, matched case-insensitively against
        ``ROSTER_HEADERS``; unknown columns are ignored and blank rows
        skipped. Cell values are passed through untouched so that row
        validation reports bad values per row.

        Raises:
            ValidationError: If the sheet is missing or lacks a required column
        """
        if isinstance(source, bytes):
            source = io.BytesIO(source)
        workbook = load_workbook(source, read_only=True, data_only=True)
        try:
            if sheet_name is not None and sheet_name not in workbook.sheetnames:
                raise ValidationError(f"Worksheet '{sheet_name}' not found")
            ws = workbook[sheet_name] if sheet_name else workbook.worksheets[0]

            rows = ws.iter_rows(values_only=True)
            header_row = next(rows, None) or ()
            fields = [ROSTER_HEADERS.get(str(h).strip().lower()) if h is not None else None for h in header_row]

            missing = [f for f in REQUIRED_ROSTER_FIELDS if f not in fields]
            if missing:
                raise ValidationError(
                    "Roster sheet is missing required columns",
                    {field: ["column not found"] for field in missing},
                )

            records = []
            for values in rows:
                record = {
                    field: value
                    for field, value in zip(fields, values)
                    if field is not None and value is not None and str(value).strip() != ""
                }
                if record:
                    records.append(record)
            return records
        finally:
            workbook.close()

    @staticmethod
    def create_template(filename: Optional[str] = None) -> Union[str, bytes]:
        """Empty roster workbook with the expected headers"""
        generator = ExcelGenerator()
        generator.add_worksheet('Roster', TEMPLATE_HEADERS, [])
        return generator.save(filename)

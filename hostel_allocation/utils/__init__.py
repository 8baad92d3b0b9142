"""
Utility helpers for spreadsheet import and export.
"""

from hostel_allocation.utils.excel_utils import (
    ExcelGenerator,
    RosterReader,
    SheetExporter,
)

__all__ = [
    "ExcelGenerator",
    "RosterReader",
    "SheetExporter",
]

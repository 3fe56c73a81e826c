"""Legacy spreadsheet store: Google Sheets adapter and sheet layouts."""
from sheets.client import GoogleSheetsStore

__all__ = ["GoogleSheetsStore"]

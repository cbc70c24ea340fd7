"""Source adapters: file I/O only, no database or kernel service imports."""

from timesheet_ingestion.adapters.base import SourceAdapter, SourceProbe
from timesheet_ingestion.adapters.csv_adapter import CsvSourceAdapter

__all__ = ["CsvSourceAdapter", "SourceAdapter", "SourceProbe"]

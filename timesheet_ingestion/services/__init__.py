"""Ingestion services."""

from timesheet_ingestion.services.directory_import_service import DirectoryImportService

__all__ = ["DirectoryImportService"]

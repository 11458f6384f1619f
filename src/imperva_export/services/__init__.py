"""Services for the Imperva export client."""

from imperva_export.services.export import AsyncExportService, ExportService

__all__ = ["AsyncExportService", "ExportService"]

"""Data export domain: DataExport sessions and transfers from them."""

from d8_data.domains.export.client import DataExportClient
from d8_data.domains.export.crds import DataExportCRDs
from d8_data.domains.export.service import DataExportService, DownloadResult

__all__ = [
    "DataExportCRDs",
    "DataExportClient",
    "DataExportService",
    "DownloadResult",
]

from .scanner import FileScannerImpl
from .report_service import ReportService

__all__ = [
    "FileScannerImpl",
    "ReportService",
]

"""Report generation."""

from .excel_generator import ExcelReportGenerator, default_report_path
from .links_export import export_links

__all__ = ["ExcelReportGenerator", "default_report_path", "export_links"]

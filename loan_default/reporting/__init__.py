"""Excel reporting for pipeline runs."""

from loan_default.reporting.excel_reporter import generate_report

__all__ = ["generate_report"]

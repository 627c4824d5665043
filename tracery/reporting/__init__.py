"""
tracery Reporting Module
========================

Report generation for analysis results.

Components:
- report_builder.py: Builds the result object, JSON report and text summary
"""

from .report_builder import ReportBuilder, generate_text_report

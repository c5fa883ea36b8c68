"""
Officer report parsing.
Mines scores, probabilities and findings out of free-text officer reports.
"""

from .comparison import compare_reports
from .extractors import extract_bullet_points, extract_list_items
from .report_parser import parse_officer_report, summarize_report

__all__ = [
    'parse_officer_report',
    'summarize_report',
    'compare_reports',
    'extract_bullet_points',
    'extract_list_items',
]

"""Descriptive statistics over stores."""

from geomxset.stats.summaries import SUMMARY_COLUMNS, summarize, summarize_values

__all__ = [
    'SUMMARY_COLUMNS',
    'summarize',
    'summarize_values',
]

"""Comparison report writers."""

from .diff_reporter import DiffReporter, summarize

__all__ = ["DiffReporter", "summarize"]

"""Comparison orchestration - LIVE and BASELINE runs."""

from .service import ComparisonService

__all__ = ["ComparisonService"]

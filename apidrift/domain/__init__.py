"""Domain models - baselines, verdicts, and comparison results."""

from .baseline import BaselineIteration, BaselineRun, IterationMetadata, RunInfo, RunMetadata
from .result import (
    ApiCallResult,
    ComparisonResult,
    ComparisonStatus,
    ComparisonVerdict,
    Difference,
    DifferenceKind,
)

__all__ = [
    "BaselineIteration",
    "BaselineRun",
    "IterationMetadata",
    "RunInfo",
    "RunMetadata",
    "ApiCallResult",
    "ComparisonResult",
    "ComparisonStatus",
    "ComparisonVerdict",
    "Difference",
    "DifferenceKind",
]

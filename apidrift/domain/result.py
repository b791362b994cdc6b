"""
Comparison domain models.

Verdicts produced by the comparison engine and the per-iteration
result records that the orchestrator hands to the report writer.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ComparisonStatus(Enum):
    """Outcome of comparing two responses."""

    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    ERROR = "ERROR"


class DifferenceKind(Enum):
    """Kind of a single structural difference."""

    VALUE_MISMATCH = "value-mismatch"
    MISSING_IN_LEFT = "missing-in-left"
    MISSING_IN_RIGHT = "missing-in-right"


@dataclass(frozen=True)
class Difference:
    """
    One path-addressed difference between two structured documents.

    Attributes:
        path: Location in the compared tree ("$.a.b[2]" for JSON,
            "/root/child[1]" for XML)
        kind: DifferenceKind
        detail: Human-readable description including both values when
            applicable
    """

    path: str
    kind: DifferenceKind
    detail: str

    def __str__(self) -> str:
        return self.detail

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "kind": self.kind.value, "detail": self.detail}


@dataclass
class ComparisonVerdict:
    """Result of a single compare() call."""

    status: ComparisonStatus
    differences: List[Difference] = field(default_factory=list)
    error_message: Optional[str] = None

    @classmethod
    def match(cls) -> "ComparisonVerdict":
        return cls(status=ComparisonStatus.MATCH)

    @classmethod
    def mismatch(cls, differences: List[Difference]) -> "ComparisonVerdict":
        return cls(status=ComparisonStatus.MISMATCH, differences=list(differences))

    @classmethod
    def error(cls, message: str) -> "ComparisonVerdict":
        return cls(status=ComparisonStatus.ERROR, error_message=message)

    @property
    def is_match(self) -> bool:
        return self.status is ComparisonStatus.MATCH

    def difference_details(self) -> List[str]:
        """Plain-text differences, in report order."""
        return [d.detail for d in self.differences]


@dataclass
class ApiCallResult:
    """Request/response record for one API call in an iteration."""

    url: Optional[str] = None
    method: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    request_payload: Optional[str] = None
    status_code: Optional[int] = None
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_payload: Optional[str] = None
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ComparisonResult:
    """
    Outcome of one iteration of one operation.

    Baseline provenance fields are only populated in BASELINE mode.
    """

    operation_name: str
    iteration_tokens: Dict[str, Any] = field(default_factory=dict)
    status: ComparisonStatus = ComparisonStatus.ERROR
    error_message: Optional[str] = None
    differences: List[Difference] = field(default_factory=list)
    timestamp: Optional[str] = None
    api1: Optional[ApiCallResult] = None
    api2: Optional[ApiCallResult] = None
    payload_fell_back: bool = False

    baseline_service_name: Optional[str] = None
    baseline_date: Optional[str] = None
    baseline_run_id: Optional[str] = None
    baseline_path: Optional[str] = None
    baseline_description: Optional[str] = None
    baseline_tags: List[str] = field(default_factory=list)
    baseline_capture_timestamp: Optional[str] = None

    def apply_verdict(self, verdict: ComparisonVerdict) -> None:
        """Copy a verdict's status, differences, and error onto this result."""
        self.status = verdict.status
        self.differences = list(verdict.differences)
        self.error_message = verdict.error_message

    def difference_details(self) -> List[str]:
        return [d.detail for d in self.differences]

    def fail(self, message: str) -> None:
        self.status = ComparisonStatus.ERROR
        self.error_message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization, dropping empty fields."""
        data = asdict(self)
        data["status"] = self.status.value
        data["differences"] = [d.to_dict() for d in self.differences]
        return {key: value for key, value in data.items() if value is not None}

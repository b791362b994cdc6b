"""
Baseline domain models.

A baseline run is a captured set of request/response exchanges that a
later run is compared against. On disk the models use camelCase keys so
baselines captured by earlier releases stay readable.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RunMetadata:
    """
    Run-level information for a captured baseline.

    Attributes:
        run_id: Sequential identifier "run-NNN" per service and date
        service_name: Logical service the baseline belongs to
        capture_date: Capture date "YYYYMMDD"
        capture_timestamp: ISO-8601 capture time
        test_type: "REST" or "SOAP"
        endpoint: Base endpoint of the captured API
        operation: Operation name
        total_iterations: Number of captured iterations
        description: Free-text description
        tags: Operator-supplied tags
        config_used: Snapshot of the settings that produced the run
    """

    run_id: str
    service_name: str
    capture_date: str
    capture_timestamp: Optional[str] = None
    test_type: Optional[str] = None
    endpoint: Optional[str] = None
    operation: Optional[str] = None
    total_iterations: int = 0
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    config_used: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunMetadata":
        return cls(
            run_id=data.get("runId", ""),
            service_name=data.get("serviceName", ""),
            capture_date=data.get("captureDate", ""),
            capture_timestamp=data.get("captureTimestamp"),
            test_type=data.get("testType"),
            endpoint=data.get("endpoint"),
            operation=data.get("operation"),
            total_iterations=int(data.get("totalIterations") or 0),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
            config_used=dict(data.get("configUsed") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "serviceName": self.service_name,
            "captureDate": self.capture_date,
            "captureTimestamp": self.capture_timestamp,
            "testType": self.test_type,
            "endpoint": self.endpoint,
            "operation": self.operation,
            "totalIterations": self.total_iterations,
            "description": self.description,
            "tags": list(self.tags),
            "configUsed": dict(self.config_used),
        }


@dataclass(frozen=True)
class IterationMetadata:
    """Request-side metadata for one captured iteration."""

    iteration_number: int
    timestamp: Optional[str] = None
    tokens_used: Dict[str, str] = field(default_factory=dict)
    endpoint: Optional[str] = None
    method: Optional[str] = None
    soap_action: Optional[str] = None
    authentication: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IterationMetadata":
        return cls(
            iteration_number=int(data.get("iterationNumber") or 0),
            timestamp=data.get("timestamp"),
            tokens_used=dict(data.get("tokensUsed") or {}),
            endpoint=data.get("endpoint"),
            method=data.get("method"),
            soap_action=data.get("soapAction"),
            authentication=dict(data.get("authentication") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iterationNumber": self.iteration_number,
            "timestamp": self.timestamp,
            "tokensUsed": dict(self.tokens_used),
            "endpoint": self.endpoint,
            "method": self.method,
            "soapAction": self.soap_action,
            "authentication": dict(self.authentication),
        }


@dataclass(frozen=True)
class BaselineIteration:
    """One captured request/response exchange."""

    iteration_number: int
    request_payload: str
    request_headers: Dict[str, str]
    request_metadata: IterationMetadata
    response_payload: str
    response_headers: Dict[str, str]
    response_metadata: Dict[str, Any]

    @property
    def status_code(self) -> Optional[int]:
        value = self.response_metadata.get("statusCode")
        return int(value) if value is not None else None

    @property
    def duration(self) -> Optional[float]:
        value = self.response_metadata.get("duration")
        return float(value) if value is not None else None


@dataclass(frozen=True)
class BaselineRun:
    """A loaded baseline: metadata plus iterations in capture order."""

    metadata: RunMetadata
    iterations: List[BaselineIteration]


@dataclass(frozen=True)
class RunInfo:
    """Listing entry for a stored run."""

    run_id: str
    description: Optional[str]
    tags: List[str]
    total_iterations: int
    timestamp: Optional[str]

    @classmethod
    def from_metadata(cls, metadata: RunMetadata) -> "RunInfo":
        return cls(
            run_id=metadata.run_id,
            description=metadata.description,
            tags=list(metadata.tags),
            total_iterations=metadata.total_iterations,
            timestamp=metadata.capture_timestamp,
        )

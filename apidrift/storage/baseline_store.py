"""
Baseline repository implementations.

Runs are stored under a deterministic directory layout:

    {storage_dir}/{service}/{YYYYMMDD}/{run-NNN}/
        metadata.json
        summary.json
        iteration-NNN/
            request.xml|json
            request-headers.json
            request-metadata.json
            response.xml|json
            response-headers.json
            response-metadata.json

The store keeps no in-memory state about runs; every call reads or writes
the backend directly.
"""

import json
import re
import shutil
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import nullcontext
from pathlib import Path
from typing import Any, ContextManager, Dict, List, Optional, Tuple, Union

from apidrift.domain.baseline import (
    BaselineIteration,
    BaselineRun,
    IterationMetadata,
    RunInfo,
    RunMetadata,
)
from apidrift.utils.logger import get_logger, log_operation
from apidrift.utils.timezone import today_capture_date
from .exceptions import BaselineExistsError, BaselineNotFoundError, BaselineStorageError

logger = get_logger(__name__)

RUN_PREFIX = "run-"
ITERATION_PREFIX = "iteration-"
RUN_ID_PATTERN = re.compile(r"^run-(\d+)$")
TEMP_RUN_PATTERN = re.compile(r"^\.(run-\d+)\.tmp-[0-9a-f]+$")

METADATA_FILE = "metadata.json"
SUMMARY_FILE = "summary.json"
REQUEST_HEADERS_FILE = "request-headers.json"
REQUEST_METADATA_FILE = "request-metadata.json"
RESPONSE_HEADERS_FILE = "response-headers.json"
RESPONSE_METADATA_FILE = "response-metadata.json"
PAYLOAD_EXTENSIONS = ("xml", "json")


def format_run_id(number: int) -> str:
    return f"{RUN_PREFIX}{number:03d}"


def format_iteration_dir(number: int) -> str:
    return f"{ITERATION_PREFIX}{number:03d}"


def payload_extension(test_type: Optional[str]) -> str:
    """SOAP runs store .xml payloads, REST runs .json."""
    if test_type and test_type.strip().upper() == "REST":
        return "json"
    return "xml"


class BaselineRepository(ABC):
    """
    Storage interface for baseline runs.

    Comparison logic only depends on this interface so the filesystem
    backend can be replaced by an object store or database.
    """

    @abstractmethod
    def generate_run_id(self, service_name: str, date: str) -> str:
        """Return the next unused run identifier for (service, date)."""

    @abstractmethod
    def save_baseline(self, metadata: RunMetadata, iterations: List[BaselineIteration]) -> None:
        """Persist a complete run."""

    @abstractmethod
    def load_baseline(self, service_name: str, date: str, run_id: str) -> BaselineRun:
        """Load a complete run."""

    @abstractmethod
    def list_services(self) -> List[str]:
        """Services with stored baselines, ascending."""

    @abstractmethod
    def list_dates(self, service_name: str) -> List[str]:
        """Capture dates for a service, most recent first."""

    @abstractmethod
    def list_runs(self, service_name: str, date: str) -> List[RunInfo]:
        """Runs for a service and date, ascending by run id."""

    def run_lock(self, service_name: str, date: str) -> ContextManager[Any]:
        """Serializes run-id allocation and save for (service, date). No-op by default."""
        return nullcontext()

    @staticmethod
    def today() -> str:
        """Capture date for a run started now (YYYYMMDD)."""
        return today_capture_date()


class FileSystemBaselineStore(BaselineRepository):
    """
    Directory-tree implementation of BaselineRepository.

    Run ids are allocated by scanning existing run directories, so two
    writers for the same (service, date) must not interleave
    generate_run_id() and save_baseline(). Callers in the same process
    serialize through run_lock(); a save into an existing run id fails
    with BaselineExistsError.

    The lock registry is process-wide and keeps one lock per
    (storage directory, service, date) for the life of the process.

    Attributes:
        storage_dir: Root directory of the store
    """

    _locks: Dict[Tuple[str, str, str], threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, storage_dir: Union[str, Path] = "baselines"):
        self.storage_dir = Path(storage_dir)

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    def service_dir(self, service_name: str) -> Path:
        return self.storage_dir / service_name

    def date_dir(self, service_name: str, date: str) -> Path:
        return self.storage_dir / service_name / date

    def run_dir(self, service_name: str, date: str, run_id: str) -> Path:
        return self.storage_dir / service_name / date / run_id

    def run_lock(self, service_name: str, date: str) -> threading.Lock:
        """Lock guarding run-id allocation and save for one (service, date)."""
        key = (str(self.storage_dir.resolve()), service_name, date)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    # ------------------------------------------------------------------ #
    # Run ids
    # ------------------------------------------------------------------ #

    def generate_run_id(self, service_name: str, date: str) -> str:
        """
        Return max(existing run number) + 1 as "run-NNN".

        Directories named run-* that are not run-<digits> are skipped with
        a warning. Runs still being written count as existing.
        """
        date_dir = self.date_dir(service_name, date)
        if not date_dir.is_dir():
            return format_run_id(1)

        max_run = 0
        for entry in date_dir.iterdir():
            name = entry.name
            temp_match = TEMP_RUN_PATTERN.match(name)
            if temp_match:
                name = temp_match.group(1)
            elif not name.startswith(RUN_PREFIX):
                continue

            match = RUN_ID_PATTERN.match(name)
            if match is None:
                logger.warning(
                    "Invalid run directory name",
                    operation="generate_run_id",
                    context={"service": service_name, "date": date, "name": entry.name},
                )
                continue
            max_run = max(max_run, int(match.group(1)))

        return format_run_id(max_run + 1)

    # ------------------------------------------------------------------ #
    # Save
    # ------------------------------------------------------------------ #

    @log_operation("save_baseline")
    def save_baseline(self, metadata: RunMetadata, iterations: List[BaselineIteration]) -> None:
        """
        Write a run into a temporary directory and rename it into place.

        Raises:
            BaselineExistsError: If the run directory already exists
            BaselineStorageError: If writing fails
        """
        target = self.run_dir(metadata.service_name, metadata.capture_date, metadata.run_id)
        if target.exists():
            raise BaselineExistsError(f"Baseline already exists: {target}")

        staging = target.parent / f".{metadata.run_id}.tmp-{uuid.uuid4().hex[:8]}"
        extension = payload_extension(metadata.test_type)

        try:
            staging.mkdir(parents=True)
            self._write_json(staging / METADATA_FILE, metadata.to_dict())
            for iteration in iterations:
                self._save_iteration(staging, iteration, extension)
            self._save_summary(staging, iterations)

            if target.exists():
                raise BaselineExistsError(f"Baseline already exists: {target}")
            staging.rename(target)
        except BaselineExistsError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            logger.error(
                "Failed to write baseline",
                operation="save_baseline",
                context={"path": str(target)},
                error=str(e),
            )
            raise BaselineStorageError(f"Failed to write baseline {target}: {e}") from e

        logger.info(
            "Baseline saved",
            operation="save_baseline",
            context={
                "service": metadata.service_name,
                "date": metadata.capture_date,
                "run_id": metadata.run_id,
                "iterations": len(iterations),
            },
        )

    def _save_iteration(self, run_dir: Path, iteration: BaselineIteration, extension: str) -> None:
        iteration_dir = run_dir / format_iteration_dir(iteration.iteration_number)
        iteration_dir.mkdir(parents=True, exist_ok=True)

        self._write_payload(iteration_dir / f"request.{extension}", iteration.request_payload)
        self._write_json(iteration_dir / REQUEST_HEADERS_FILE, iteration.request_headers or {})
        self._write_json(iteration_dir / REQUEST_METADATA_FILE, iteration.request_metadata.to_dict())

        self._write_payload(iteration_dir / f"response.{extension}", iteration.response_payload)
        self._write_json(iteration_dir / RESPONSE_HEADERS_FILE, iteration.response_headers or {})
        self._write_json(iteration_dir / RESPONSE_METADATA_FILE, iteration.response_metadata or {})

    def _save_summary(self, run_dir: Path, iterations: List[BaselineIteration]) -> None:
        summary = {
            "totalIterations": len(iterations),
            "iterations": [
                {
                    "iterationNumber": iteration.iteration_number,
                    "tokens": dict(iteration.request_metadata.tokens_used),
                    "statusCode": iteration.response_metadata.get("statusCode"),
                    "duration": iteration.response_metadata.get("duration"),
                }
                for iteration in iterations
            ],
        }
        self._write_json(run_dir / SUMMARY_FILE, summary)

    @staticmethod
    def _write_payload(path: Path, payload: Optional[str]) -> None:
        # payloads are stored byte for byte, CRLF included
        path.write_text(payload or "", encoding="utf-8", newline="")

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    # ------------------------------------------------------------------ #
    # Load
    # ------------------------------------------------------------------ #

    def load_baseline(self, service_name: str, date: str, run_id: str) -> BaselineRun:
        """
        Load metadata and every iteration-* directory, sorted by name.

        Raises:
            BaselineNotFoundError: If the run directory does not exist
            BaselineStorageError: If a stored file is unreadable or corrupt
        """
        run_dir = self.run_dir(service_name, date, run_id)
        if not run_dir.is_dir():
            raise BaselineNotFoundError(f"Baseline not found: {run_dir}")

        try:
            metadata = RunMetadata.from_dict(self._read_json(run_dir / METADATA_FILE))
            iteration_dirs = sorted(
                entry
                for entry in run_dir.iterdir()
                if entry.is_dir() and entry.name.startswith(ITERATION_PREFIX)
            )
            iterations = [self._load_iteration(entry) for entry in iteration_dirs]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise BaselineStorageError(f"Failed to read baseline {run_dir}: {e}") from e

        logger.info(
            "Baseline loaded",
            operation="load_baseline",
            context={
                "service": service_name,
                "date": date,
                "run_id": run_id,
                "iterations": len(iterations),
            },
        )
        return BaselineRun(metadata=metadata, iterations=iterations)

    def _load_iteration(self, iteration_dir: Path) -> BaselineIteration:
        request_metadata = IterationMetadata.from_dict(
            self._read_json(iteration_dir / REQUEST_METADATA_FILE)
        )
        return BaselineIteration(
            iteration_number=request_metadata.iteration_number,
            request_payload=self._read_payload(iteration_dir, "request"),
            request_headers=self._read_json(iteration_dir / REQUEST_HEADERS_FILE) or {},
            request_metadata=request_metadata,
            response_payload=self._read_payload(iteration_dir, "response"),
            response_headers=self._read_json(iteration_dir / RESPONSE_HEADERS_FILE) or {},
            response_metadata=self._read_json(iteration_dir / RESPONSE_METADATA_FILE) or {},
        )

    @staticmethod
    def _read_payload(iteration_dir: Path, stem: str) -> str:
        for extension in PAYLOAD_EXTENSIONS:
            path = iteration_dir / f"{stem}.{extension}"
            if path.is_file():
                with path.open("r", encoding="utf-8", newline="") as f:
                    return f.read()
        raise FileNotFoundError(f"No {stem} payload in {iteration_dir}")

    @staticmethod
    def _read_json(path: Path) -> Any:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    # ------------------------------------------------------------------ #
    # Listing
    # ------------------------------------------------------------------ #

    def list_services(self) -> List[str]:
        if not self.storage_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.storage_dir.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def list_dates(self, service_name: str) -> List[str]:
        service_dir = self.service_dir(service_name)
        if not service_dir.is_dir():
            return []
        return sorted(
            (
                entry.name
                for entry in service_dir.iterdir()
                if entry.is_dir() and not entry.name.startswith(".")
            ),
            reverse=True,
        )

    def list_runs(self, service_name: str, date: str) -> List[RunInfo]:
        """
        Runs with a readable metadata.json, ascending by run id.

        Runs whose metadata cannot be parsed are skipped with a warning.
        """
        date_dir = self.date_dir(service_name, date)
        if not date_dir.is_dir():
            return []

        runs: List[RunInfo] = []
        for entry in date_dir.iterdir():
            if not entry.is_dir() or not entry.name.startswith(RUN_PREFIX):
                continue
            metadata_path = entry / METADATA_FILE
            if not metadata_path.is_file():
                continue
            try:
                metadata = RunMetadata.from_dict(self._read_json(metadata_path))
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warning(
                    "Skipping run with unreadable metadata",
                    operation="list_runs",
                    context={"path": str(metadata_path)},
                    error=str(e),
                )
                continue
            runs.append(RunInfo.from_metadata(metadata))

        runs.sort(key=lambda run: run.run_id)
        return runs

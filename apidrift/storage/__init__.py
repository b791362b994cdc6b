"""Baseline storage - repository interface and filesystem implementation."""

from .baseline_store import (
    BaselineRepository,
    FileSystemBaselineStore,
    format_iteration_dir,
    format_run_id,
    payload_extension,
)
from .exceptions import (
    BaselineExistsError,
    BaselineNotFoundError,
    BaselineStorageError,
    BaselineStoreException,
)

__all__ = [
    "BaselineRepository",
    "FileSystemBaselineStore",
    "format_iteration_dir",
    "format_run_id",
    "payload_extension",
    "BaselineExistsError",
    "BaselineNotFoundError",
    "BaselineStorageError",
    "BaselineStoreException",
]

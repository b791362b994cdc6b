"""
Custom exception hierarchy for baseline storage.

Storage errors are raised to the orchestrator, which records them as
ERROR results for the affected run instead of aborting everything.
"""


class BaselineStoreException(Exception):
    """
    Base exception for all baseline storage errors.
    """

    pass


class BaselineNotFoundError(BaselineStoreException):
    """
    Raised when a requested run directory does not exist.
    """

    pass


class BaselineExistsError(BaselineStoreException):
    """
    Raised when saving would overwrite an existing run.

    Runs are never mutated in place; a new capture always gets a new
    run identifier.
    """

    pass


class BaselineStorageError(BaselineStoreException):
    """
    Raised when the filesystem (or other backend) fails during a read or write.
    """

    pass

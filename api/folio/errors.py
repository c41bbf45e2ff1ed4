"""Error taxonomy and per-call-site error policies."""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import Iterator


class FolioError(Exception):
    """Base error for all folio exceptions."""


class StoreError(FolioError):
    """Raised when a row-store statement fails."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"{table}: {message}")
        self.table = table
        self.message = message


class UnknownColumnError(StoreError):
    """Raised when a statement references a column the table does not have."""

    def __init__(self, table: str, column: str) -> None:
        super().__init__(table, f"column '{column}' does not exist")
        self.column = column


class DuplicateKeyError(StoreError):
    """Raised when an insert violates a unique or primary key constraint."""


class BlobStoreError(FolioError):
    """Raised when the blob store cannot upload or sign an object."""


class BlobNotFoundError(BlobStoreError):
    """Raised when a blob key does not exist."""


class InvalidDataUrlError(FolioError):
    """Raised when an embedded image payload cannot be decoded."""


class AuthError(FolioError):
    """Raised when the authentication provider rejects a request."""


class InternalError(FolioError):
    """Fatal-to-caller failure carrying the underlying store message."""


class ErrorPolicy(enum.Enum):
    BEST_EFFORT = "best_effort"
    FATAL = "fatal"


@contextmanager
def guarded(step: str, policy: ErrorPolicy, logger: logging.Logger) -> Iterator[None]:
    """
    Run one pipeline step under an error policy.

    BEST_EFFORT logs and swallows any failure so the surrounding operation
    continues. FATAL re-raises as InternalError (InternalError passes through
    untouched so the first failing step keeps its message).
    """
    try:
        yield
    except InternalError:
        if policy is ErrorPolicy.FATAL:
            raise
        logger.error(f"Failed to {step}", exc_info=True)
    except Exception as e:
        if policy is ErrorPolicy.FATAL:
            logger.error(f"Failed to {step}: {e}")
            raise InternalError(f"Failed to {step}: {e}") from e
        logger.error(f"Failed to {step}: {e}")

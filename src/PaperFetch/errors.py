"""Exception hierarchy shared across update checks, downloads, and verification.

A single run spans configuration parsing, a remote metadata lookup, a local
filesystem probe, a streaming download, and a checksum comparison.  This module
groups the failure modes of those stages into a small hierarchy so the
orchestrator and CLI can react to one base class while callers that need finer
handling (for example, telling a deadline expiry apart from a network error)
still have specialised subclasses to match on.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .models import DownloadOutcome

__all__ = [
    "PaperFetchError",
    "ConfigurationError",
    "RemoteRequestError",
    "MetadataFetchError",
    "MetadataTimeoutError",
    "LocalStateError",
    "ResponseShapeError",
    "TransferError",
    "IntegrityError",
]


class PaperFetchError(RuntimeError):
    """Base exception for every failure that terminates an update run.

    Secondary errors (for example, a failed cleanup after the primary failure)
    are joined onto the primary error instead of being discarded, and rendered
    as part of ``str(error)``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.secondary_errors: List[BaseException] = []

    def add_secondary(self, error: BaseException) -> None:
        """Attach a follow-up failure that occurred while handling this error."""

        self.secondary_errors.append(error)

    def __str__(self) -> str:
        if not self.secondary_errors:
            return self.message
        details = "; ".join(str(error) or type(error).__name__ for error in self.secondary_errors)
        return f"{self.message} (additionally: {details})"


class ConfigurationError(PaperFetchError):
    """Raised when settings, CLI inputs, or template substitutions are invalid."""


class RemoteRequestError(PaperFetchError):
    """Raised when an HTTP request fails or returns a non-2xx status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MetadataFetchError(RemoteRequestError):
    """Raised when the latest-build lookup cannot be fetched or decoded."""


class MetadataTimeoutError(PaperFetchError):
    """Raised when the metadata lookup misses its deadline."""

    def __init__(self, message: str, *, timeout_sec: float) -> None:
        super().__init__(message)
        self.timeout_sec = timeout_sec


class LocalStateError(PaperFetchError):
    """Raised when the output file cannot be inspected for reasons other than absence."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class ResponseShapeError(PaperFetchError):
    """Raised when build metadata lacks the artifact role, checksum, or URL required."""


class TransferError(PaperFetchError):
    """Raised when streaming an artifact to disk fails.

    ``stage`` is one of ``"open"``, ``"transfer"``, or ``"close"``.  A close
    failure after a complete transfer still carries the finished ``outcome``.
    """

    STAGES = ("open", "transfer", "close")

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        path: Path,
        outcome: Optional["DownloadOutcome"] = None,
    ) -> None:
        if stage not in self.STAGES:
            raise ValueError(f"unknown transfer stage '{stage}'")
        super().__init__(message)
        self.stage = stage
        self.path = path
        self.outcome = outcome


class IntegrityError(PaperFetchError):
    """Raised when the downloaded bytes do not hash to the expected checksum."""

    def __init__(self, message: str, *, expected: str, actual: str, path: Path) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.path = path


# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.errors",
#   "purpose": "Define the exception hierarchy used across update checks, downloads, and verification",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"},
#     {"id": "remote", "name": "Remote & Timeout Errors", "anchor": "REM", "kind": "api"},
#     {"id": "local", "name": "Local State Errors", "anchor": "LOC", "kind": "api"},
#     {"id": "transfer", "name": "Transfer & Integrity Errors", "anchor": "XFR", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

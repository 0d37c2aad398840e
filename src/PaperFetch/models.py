"""Immutable records exchanged between the update-check stages.

Nothing here outlives a single process invocation.  The only durable state is
the output file itself, whose modification time stands in for "last verified
build time" on the next run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .errors import ResponseShapeError

__all__ = [
    "ArtifactDescriptor",
    "BuildInfo",
    "LocalFileState",
    "DownloadOutcome",
    "as_utc",
]


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime, treating naive values as UTC."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(slots=True, frozen=True)
class ArtifactDescriptor:
    """A downloadable artifact advertised by a build.

    Attributes:
        name: Filename of the artifact on the server.
        checksum: Expected SHA-256 digest as hex, when the API supplied one.
        url: Direct download URL, for APIs that publish one.
        size: Advertised size in bytes, when known.

    Examples:
        >>> ArtifactDescriptor("paper-1.21-130.jar", "ab" * 32).url is None
        True
    """

    name: str
    checksum: Optional[str] = None
    url: Optional[str] = None
    size: Optional[int] = None


@dataclass(slots=True, frozen=True)
class BuildInfo:
    """Normalized description of the latest build of a project version.

    Attributes:
        build_id: Build number.
        created_at: Build creation time (UTC).
        artifacts: Read-only mapping of artifact role to descriptor.
        changes: Change summaries in the order the API listed them.
    """

    build_id: int
    created_at: datetime
    artifacts: Mapping[str, ArtifactDescriptor] = field(default_factory=dict)
    changes: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        object.__setattr__(self, "artifacts", MappingProxyType(dict(self.artifacts)))
        object.__setattr__(self, "changes", tuple(self.changes))

    def artifact(self, role: str) -> ArtifactDescriptor:
        """Return the artifact published under ``role``.

        Raises:
            ResponseShapeError: If the build has no downloads or lacks ``role``.
        """

        if not self.artifacts:
            raise ResponseShapeError(f"build {self.build_id} lists no downloads")
        try:
            return self.artifacts[role]
        except KeyError:
            available = ", ".join(sorted(self.artifacts)) or "none"
            raise ResponseShapeError(
                f"build {self.build_id} has no '{role}' download (available: {available})"
            ) from None


@dataclass(slots=True, frozen=True)
class LocalFileState:
    """Result of probing the output path.

    ``modified_at`` is ``None`` when the file does not exist.
    """

    path: Path
    modified_at: Optional[datetime] = None

    @classmethod
    def absent(cls, path: Path) -> "LocalFileState":
        return cls(path=path, modified_at=None)

    @property
    def exists(self) -> bool:
        return self.modified_at is not None


@dataclass(slots=True, frozen=True)
class DownloadOutcome:
    """Digest and size of the bytes actually written to ``path``."""

    path: Path
    digest: bytes
    size: int

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()

"""Pydantic models for the two build-API response shapes.

Two API generations describe the latest build differently:

* ``v2`` returns every build of a version, ascending, with ``build``,
  ``time``, ``downloads{role: {name, sha256}}`` and ``changes[{summary}]``.
* ``v3`` returns only the latest build, with ``id``, ``time``,
  ``downloads{role: {name, url, checksums: {sha256}, size}}`` and
  ``commits[{message}]``.

Both are parsed here and normalized into :class:`~PaperFetch.models.BuildInfo`
by :func:`normalize_build_response`, so nothing downstream needs to know which
generation answered.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import MetadataFetchError
from .models import ArtifactDescriptor, BuildInfo

__all__ = [
    "BuildListResponse",
    "LatestBuildResponse",
    "BuildResponse",
    "parse_build_response",
    "normalize_build_response",
]


class _ResponseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# --- v2: list of builds ------------------------------------------------------


class V2Download(_ResponseModel):
    name: str
    sha256: Optional[str] = None


class V2Change(_ResponseModel):
    commit: Optional[str] = None
    summary: str = ""
    message: Optional[str] = None


class V2Build(_ResponseModel):
    build: int
    time: datetime
    channel: Optional[str] = None
    promoted: Optional[bool] = None
    changes: List[V2Change] = Field(default_factory=list)
    downloads: Dict[str, V2Download] = Field(default_factory=dict)

    def to_build_info(self) -> BuildInfo:
        return BuildInfo(
            build_id=self.build,
            created_at=self.time,
            artifacts={
                role: ArtifactDescriptor(name=download.name, checksum=download.sha256)
                for role, download in self.downloads.items()
            },
            changes=tuple(change.summary for change in self.changes),
        )


class BuildListResponse(_ResponseModel):
    """``GET /v2/projects/{project}/versions/{version}/builds``."""

    project_id: Optional[str] = None
    version: Optional[str] = None
    builds: List[V2Build] = Field(default_factory=list)

    def to_build_info(self) -> BuildInfo:
        if not self.builds:
            raise MetadataFetchError("no builds found")
        return self.builds[-1].to_build_info()


# --- v3: latest build ----------------------------------------------------------


class V3Checksums(_ResponseModel):
    sha256: Optional[str] = None


class V3Download(_ResponseModel):
    name: str
    url: Optional[str] = None
    size: Optional[int] = None
    checksums: V3Checksums = Field(default_factory=V3Checksums)


class V3Commit(_ResponseModel):
    sha: Optional[str] = None
    time: Optional[datetime] = None
    message: str = ""


class LatestBuildResponse(_ResponseModel):
    """``GET /v3/projects/{project}/versions/{version}/builds/latest``."""

    id: int
    time: datetime
    channel: Optional[str] = None
    downloads: Dict[str, V3Download] = Field(default_factory=dict)
    commits: List[V3Commit] = Field(default_factory=list)

    def to_build_info(self) -> BuildInfo:
        return BuildInfo(
            build_id=self.id,
            created_at=self.time,
            artifacts={
                role: ArtifactDescriptor(
                    name=download.name,
                    checksum=download.checksums.sha256,
                    url=download.url,
                    size=download.size,
                )
                for role, download in self.downloads.items()
            },
            changes=tuple(commit.message for commit in self.commits),
        )


BuildResponse = Union[BuildListResponse, LatestBuildResponse]

_RESPONSE_MODELS = {
    "v2": BuildListResponse,
    "v3": LatestBuildResponse,
}


def parse_build_response(api_generation: str, payload: Any) -> BuildResponse:
    """Validate a decoded JSON payload against the generation's response model.

    Raises:
        MetadataFetchError: If the payload does not match the expected shape.
    """

    try:
        model = _RESPONSE_MODELS[api_generation]
    except KeyError:
        raise MetadataFetchError(f"unsupported API generation '{api_generation}'") from None
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise MetadataFetchError(
            f"unexpected {api_generation} build response: {exc.error_count()} validation error(s)"
        ) from exc


def normalize_build_response(api_generation: str, payload: Any) -> BuildInfo:
    """Parse ``payload`` and normalize it into :class:`BuildInfo`."""

    return parse_build_response(api_generation, payload).to_build_info()

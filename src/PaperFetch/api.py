# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.api",
#   "purpose": "Build API client: latest-build lookups and artifact streams",
#   "sections": [
#     {
#       "id": "metadatasource",
#       "name": "MetadataSource",
#       "anchor": "class-metadatasource",
#       "kind": "class"
#     },
#     {
#       "id": "buildapiclient",
#       "name": "BuildApiClient",
#       "anchor": "class-buildapiclient",
#       "kind": "class"
#     },
#     {
#       "id": "describe-status",
#       "name": "_describe_status",
#       "anchor": "function-describe-status",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Build API client: latest-build lookups and artifact streams.

:class:`BuildApiClient` talks to PaperMC-style project APIs.  It formats the
endpoint for the configured API generation, rejects non-2xx responses, decodes
the JSON body, and hands the payload to
:func:`~PaperFetch.responses.normalize_build_response` so callers only ever
see :class:`~PaperFetch.models.BuildInfo`.

Example:
    >>> from PaperFetch.net import build_http_client
    >>> from PaperFetch.settings import load_settings
    >>> settings = load_settings(project_name="paper", project_version="1.21")  # doctest: +SKIP
    >>> with build_http_client(settings) as http:  # doctest: +SKIP
    ...     build = BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")
"""

from __future__ import annotations

import contextlib
import logging
from typing import ContextManager, Iterator, Protocol

import httpx

from .errors import MetadataFetchError, RemoteRequestError, ResponseShapeError
from .models import ArtifactDescriptor, BuildInfo
from .responses import normalize_build_response
from .settings import FetchSettings
from .templates import SubstitutionContext, format_template

__all__ = [
    "LATEST_BUILD_TEMPLATES",
    "V2_DOWNLOAD_TEMPLATE",
    "DOWNLOAD_CHUNK_SIZE",
    "MetadataSource",
    "BuildApiClient",
]

LOGGER = logging.getLogger(__name__)

_BASE_TEMPLATE = "{api-server}/{generation}/projects/{project-name}/versions/{project-version}"

LATEST_BUILD_TEMPLATES = {
    "v2": _BASE_TEMPLATE.replace("{generation}", "v2") + "/builds",
    "v3": _BASE_TEMPLATE.replace("{generation}", "v3") + "/builds/latest",
}
V2_DOWNLOAD_TEMPLATE = (
    _BASE_TEMPLATE.replace("{generation}", "v2") + "/builds/{build}/downloads/{download-name}"
)
DOWNLOAD_CHUNK_SIZE = 1 << 16

# httpx.InvalidURL does not derive from httpx.HTTPError.
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class MetadataSource(Protocol):
    """Collaborator answering "what is the latest build" and serving artifacts."""

    def fetch_latest_build(self, project_name: str, project_version: str) -> BuildInfo:
        ...

    def download_url(self, build: BuildInfo, artifact: ArtifactDescriptor) -> str:
        ...

    def stream_download(self, url: str) -> ContextManager[Iterator[bytes]]:
        ...


def _describe_status(response: httpx.Response) -> str:
    reason = response.reason_phrase or ""
    return f"{response.status_code} {reason}".strip()


class BuildApiClient:
    """:class:`MetadataSource` backed by a PaperMC-style HTTP API."""

    def __init__(self, settings: FetchSettings, client: httpx.Client) -> None:
        self._settings = settings
        self._client = client

    @property
    def api_generation(self) -> str:
        return self._settings.api_generation

    def _context(self, project_name: str, project_version: str) -> SubstitutionContext:
        return SubstitutionContext(
            api_server=self._settings.api_server.rstrip("/"),
            project_name=project_name,
            project_version=project_version,
        )

    def fetch_latest_build(self, project_name: str, project_version: str) -> BuildInfo:
        """Fetch and normalize the latest build of ``project_name`` ``project_version``.

        Raises:
            ConfigurationError: If the endpoint template cannot be formatted.
            MetadataFetchError: On transport failures, malformed URLs, non-2xx responses,
                undecodable bodies, or payloads of the wrong shape.
        """

        url = format_template(
            LATEST_BUILD_TEMPLATES[self.api_generation],
            self._context(project_name, project_version),
        )
        LOGGER.debug(
            "requesting latest build",
            extra={"stage": "metadata", "url": url, "api_generation": self.api_generation},
        )
        try:
            response = self._client.get(url, headers={"Accept": "application/json"})
        except _REQUEST_ERRORS as exc:
            raise MetadataFetchError(f"request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise MetadataFetchError(
                f"request to {url} failed: {_describe_status(response)}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"response from {url} is not valid JSON") from exc

        build = normalize_build_response(self.api_generation, payload)
        LOGGER.debug(
            "latest build resolved",
            extra={
                "stage": "metadata",
                "build": build.build_id,
                "build_time": build.created_at.isoformat(),
            },
        )
        return build

    def download_url(self, build: BuildInfo, artifact: ArtifactDescriptor) -> str:
        """Return where ``artifact`` of ``build`` can be downloaded from.

        Direct URLs published by the API win.  Otherwise the ``v2`` download
        endpoint is formatted from the build number and artifact name.

        Raises:
            ResponseShapeError: If a ``v3`` artifact carries no URL.
        """

        if artifact.url:
            return artifact.url
        if self.api_generation != "v2":
            raise ResponseShapeError(
                f"artifact '{artifact.name}' of build {build.build_id} has no download URL"
            )
        context = (
            self._context(self._settings.project_name, self._settings.project_version)
            .with_build(build.build_id)
            .with_download(artifact.name)
        )
        return format_template(V2_DOWNLOAD_TEMPLATE, context)

    @contextlib.contextmanager
    def stream_download(self, url: str) -> Iterator[Iterator[bytes]]:
        """Open ``url`` and yield an iterator over its body chunks.

        Transport failures raised while the caller iterates are converted to
        :class:`RemoteRequestError` as they leave the ``with`` block.

        Raises:
            RemoteRequestError: On non-2xx responses, malformed URLs, or
                transport failures.
        """

        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise RemoteRequestError(
                        f"download from {url} failed: {_describe_status(response)}",
                        status_code=response.status_code,
                    )
                yield response.iter_bytes(DOWNLOAD_CHUNK_SIZE)
        except _REQUEST_ERRORS as exc:
            raise RemoteRequestError(f"download from {url} failed: {exc}") from exc

"""Testing utilities for exercising update checks without a real build API.

Provides an in-memory fake of the PaperMC-style build API served through
``httpx.MockTransport``, payload builders for both API generations, and a
context manager that installs a mock-backed HTTPX client built with the same
settings the CLI uses.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

import httpx

from ..net import build_http_client
from ..settings import FetchSettings

__all__ = [
    "ResponseSpec",
    "RequestRecord",
    "FakeBuildApi",
    "sha256_hex",
    "v2_builds_payload",
    "v3_latest_payload",
    "use_mock_http_client",
]


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def _isoformat(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


@dataclass
class ResponseSpec:
    """HTTP response definition served by :class:`FakeBuildApi`."""

    status: int = 200
    body: Union[bytes, str, Mapping, Sequence] = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def serialise_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body).encode("utf-8")


@dataclass
class RequestRecord:
    """Captured HTTP request issued against :class:`FakeBuildApi`."""

    method: str
    url: str
    headers: Mapping[str, str]


class FakeBuildApi:
    """Route-table fake of a build API for ``httpx.MockTransport``.

    Examples:
        >>> api = FakeBuildApi()
        >>> api.add("https://api.test/v3/ping", ResponseSpec(body={"ok": True}))
        >>> isinstance(api.transport(), httpx.MockTransport)
        True
    """

    def __init__(self) -> None:
        self.routes: Dict[str, ResponseSpec] = {}
        self.requests: List[RequestRecord] = []

    def add(self, url: str, response: ResponseSpec) -> None:
        self.routes[url] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(
            RequestRecord(method=request.method, url=url, headers=dict(request.headers))
        )
        spec = self.routes.get(url)
        if spec is None:
            return httpx.Response(404, content=b"not found", request=request)
        return httpx.Response(
            spec.status,
            headers=dict(spec.headers),
            content=spec.serialise_body(),
            request=request,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def urls_requested(self) -> List[str]:
        return [record.url for record in self.requests]


def v2_builds_payload(
    builds: Sequence[Mapping[str, object]],
    *,
    project: str = "paper",
    version: str = "1.20.6",
) -> Dict[str, object]:
    """Build a ``v2`` builds-list payload.

    Each entry needs ``build``, ``time`` (datetime), ``name`` and ``sha256``
    (``None`` to omit it); ``role`` defaults to ``application`` and
    ``changes`` to an empty list of summaries.
    """

    entries = []
    for entry in builds:
        download: Dict[str, object] = {"name": entry["name"]}
        if entry.get("sha256") is not None:
            download["sha256"] = entry["sha256"]
        entries.append(
            {
                "build": entry["build"],
                "time": _isoformat(entry["time"]),  # type: ignore[arg-type]
                "channel": "default",
                "promoted": False,
                "changes": [
                    {"commit": f"c{index}", "summary": summary, "message": summary}
                    for index, summary in enumerate(entry.get("changes", ()))  # type: ignore[arg-type]
                ],
                "downloads": {str(entry.get("role", "application")): download},
            }
        )
    return {"project_id": project, "version": version, "builds": entries}


def v3_latest_payload(
    *,
    build: int,
    time: datetime,
    name: str,
    url: Optional[str],
    sha256: Optional[str],
    role: str = "server:default",
    commits: Sequence[str] = (),
    size: Optional[int] = None,
) -> Dict[str, object]:
    """Build a ``v3`` latest-build payload."""

    download: Dict[str, object] = {"name": name, "checksums": {}}
    if url is not None:
        download["url"] = url
    if sha256 is not None:
        download["checksums"] = {"sha256": sha256}
    if size is not None:
        download["size"] = size
    return {
        "id": build,
        "time": _isoformat(time),
        "channel": "STABLE",
        "downloads": {role: download},
        "commits": [
            {"sha": f"{index:040x}", "message": message} for index, message in enumerate(commits)
        ],
    }


@contextlib.contextmanager
def use_mock_http_client(
    transport: httpx.BaseTransport, settings: FetchSettings
) -> Iterator[httpx.Client]:
    """Yield an HTTPX client for ``settings`` whose requests go to ``transport``."""

    client = build_http_client(settings, transport=transport)
    try:
        yield client
    finally:
        client.close()

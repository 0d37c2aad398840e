"""HTTPX MockTransport-based coverage for the build API client."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from PaperFetch.api import BuildApiClient
from PaperFetch.errors import MetadataFetchError, RemoteRequestError, ResponseShapeError
from PaperFetch.models import ArtifactDescriptor, BuildInfo
from PaperFetch.testing import (
    ResponseSpec,
    use_mock_http_client,
    v2_builds_payload,
    v3_latest_payload,
)

BUILD_TIME = datetime(2024, 7, 1, 9, 0, tzinfo=timezone.utc)
V3_LATEST = "https://api.test/v3/projects/paper/versions/1.21/builds/latest"
V2_BUILDS = "https://api.test/v2/projects/paper/versions/1.21/builds"


def test_fetch_latest_build_v3(make_settings, fake_api) -> None:
    settings = make_settings(user_agent="paperfetch-tests/1.0")
    fake_api.add(
        V3_LATEST,
        ResponseSpec(
            body=v3_latest_payload(
                build=42,
                time=BUILD_TIME,
                name="paper-1.21-42.jar",
                url="https://fill-data.test/paper-1.21-42.jar",
                sha256="ab" * 32,
            )
        ),
    )

    with use_mock_http_client(fake_api.transport(), settings) as http:
        build = BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")

    assert build.build_id == 42
    assert build.created_at == BUILD_TIME
    assert fake_api.urls_requested() == [V3_LATEST]
    assert fake_api.requests[0].headers["user-agent"] == "paperfetch-tests/1.0"


def test_fetch_latest_build_v2(make_settings, fake_api) -> None:
    settings = make_settings(api_generation="v2")
    fake_api.add(
        V2_BUILDS,
        ResponseSpec(
            body=v2_builds_payload(
                [{"build": 7, "time": BUILD_TIME, "name": "paper-1.21-7.jar", "sha256": "cd" * 32}]
            )
        ),
    )

    with use_mock_http_client(fake_api.transport(), settings) as http:
        build = BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")

    assert build.build_id == 7
    assert build.artifact("application").name == "paper-1.21-7.jar"


def test_non_2xx_metadata_response_carries_status(make_settings, fake_api) -> None:
    settings = make_settings()
    fake_api.add(V3_LATEST, ResponseSpec(status=503, body=b"maintenance"))

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with pytest.raises(MetadataFetchError) as excinfo:
            BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")

    assert excinfo.value.status_code == 503
    assert "503 Service Unavailable" in str(excinfo.value)


def test_non_json_metadata_is_a_fetch_error(make_settings, fake_api) -> None:
    settings = make_settings()
    fake_api.add(V3_LATEST, ResponseSpec(body=b"<html>oops</html>"))

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with pytest.raises(MetadataFetchError, match="not valid JSON"):
            BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")


def test_transport_failure_is_a_fetch_error(make_settings) -> None:
    settings = make_settings()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with use_mock_http_client(httpx.MockTransport(handler), settings) as http:
        with pytest.raises(MetadataFetchError, match="connection refused"):
            BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")


class TestDownloadUrl:
    def _build(self) -> BuildInfo:
        return BuildInfo(build_id=99, created_at=BUILD_TIME)

    def test_direct_url_wins(self, make_settings) -> None:
        settings = make_settings(api_generation="v2")
        artifact = ArtifactDescriptor(
            name="a.jar", checksum="00" * 32, url="https://cdn.test/a.jar"
        )
        with httpx.Client() as http:
            url = BuildApiClient(settings, http).download_url(self._build(), artifact)
        assert url == "https://cdn.test/a.jar"

    def test_v2_url_is_templated_from_build_and_name(self, make_settings) -> None:
        settings = make_settings(api_generation="v2")
        artifact = ArtifactDescriptor(name="paper-1.21-99.jar", checksum="00" * 32)
        with httpx.Client() as http:
            url = BuildApiClient(settings, http).download_url(self._build(), artifact)
        assert url == (
            "https://api.test/v2/projects/paper/versions/1.21/builds/99/downloads/paper-1.21-99.jar"
        )

    def test_v3_without_url_is_a_shape_error(self, make_settings) -> None:
        settings = make_settings(api_generation="v3")
        artifact = ArtifactDescriptor(name="paper.jar", checksum="00" * 32)
        with httpx.Client() as http:
            with pytest.raises(ResponseShapeError, match="no download URL"):
                BuildApiClient(settings, http).download_url(self._build(), artifact)


def test_stream_download_yields_body_chunks(make_settings, fake_api) -> None:
    settings = make_settings()
    fake_api.add("https://cdn.test/a.jar", ResponseSpec(body=b"x" * 200_000))

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with BuildApiClient(settings, http).stream_download("https://cdn.test/a.jar") as chunks:
            body = b"".join(chunks)

    assert body == b"x" * 200_000


def test_stream_download_rejects_non_2xx(make_settings, fake_api) -> None:
    settings = make_settings()

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with pytest.raises(RemoteRequestError) as excinfo:
            with BuildApiClient(settings, http).stream_download("https://cdn.test/missing.jar"):
                pytest.fail("body should not be yielded for a 404")

    assert excinfo.value.status_code == 404
    assert "404 Not Found" in str(excinfo.value)


def test_malformed_api_server_is_a_fetch_error(make_settings, fake_api) -> None:
    settings = make_settings(api_server="https://[::1")

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with pytest.raises(MetadataFetchError, match="failed"):
            BuildApiClient(settings, http).fetch_latest_build("paper", "1.21")

    assert fake_api.requests == []


def test_stream_download_rejects_malformed_url(make_settings, fake_api) -> None:
    settings = make_settings()

    with use_mock_http_client(fake_api.transport(), settings) as http:
        with pytest.raises(RemoteRequestError) as excinfo:
            with BuildApiClient(settings, http).stream_download("https://[::1/a.jar"):
                pytest.fail("no body for an unparseable URL")

    assert isinstance(excinfo.value.__cause__, httpx.InvalidURL)
    assert excinfo.value.status_code is None

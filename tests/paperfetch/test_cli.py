"""Typer CLI tests driven through ``CliRunner`` and a mock transport."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from PaperFetch import __version__
from PaperFetch.cli import app
from PaperFetch.net import build_http_client
from PaperFetch.testing import FakeBuildApi, ResponseSpec, sha256_hex, v3_latest_payload

BUILD_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
PAYLOAD = b"jar bytes" * 100
V3_LATEST = "https://api.test/v3/projects/paper/versions/1.21/builds/latest"
JAR_URL = "https://fill-data.test/paper-1.21-130.jar"

runner = CliRunner()


@pytest.fixture
def served_api(monkeypatch) -> FakeBuildApi:
    api = FakeBuildApi()
    api.add(
        V3_LATEST,
        ResponseSpec(
            body=v3_latest_payload(
                build=130,
                time=BUILD_TIME,
                name="paper-1.21-130.jar",
                url=JAR_URL,
                sha256=sha256_hex(PAYLOAD),
            )
        ),
    )
    api.add(JAR_URL, ResponseSpec(body=PAYLOAD))
    monkeypatch.setattr(
        "PaperFetch.cli.build_http_client",
        lambda settings: build_http_client(settings, transport=api.transport()),
    )
    return api


def _args(tmp_path: Path, *extra: str) -> list:
    return [
        "--api-server",
        "https://api.test",
        "--project-name",
        "paper",
        "--project-version",
        "1.21",
        "--filename-format",
        str(tmp_path / "server.jar"),
        *extra,
    ]


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"paperfetch {__version__}" in result.output


def test_missing_project_flags_exit_with_one() -> None:
    result = runner.invoke(app, [])
    assert result.exit_code == 1
    assert "An error found in flags: project-name is required" in result.output


def test_invalid_generation_is_a_flag_error(tmp_path: Path) -> None:
    result = runner.invoke(app, _args(tmp_path, "--api-generation", "v9"))
    assert result.exit_code == 1
    assert "An error found in flags" in result.output


def test_download_reports_destination(tmp_path: Path, served_api: FakeBuildApi) -> None:
    result = runner.invoke(app, _args(tmp_path))

    assert result.exit_code == 0, result.output
    assert f"Downloaded paper 1.21 (build 130) to {tmp_path / 'server.jar'}" in result.output
    assert (tmp_path / "server.jar").read_bytes() == PAYLOAD
    assert served_api.urls_requested() == [V3_LATEST, JAR_URL]


def test_up_to_date_file_is_reported(tmp_path: Path, served_api: FakeBuildApi) -> None:
    output = tmp_path / "server.jar"
    output.write_bytes(b"current")
    stamp = (BUILD_TIME + timedelta(minutes=5)).timestamp()
    os.utime(output, (stamp, stamp))

    result = runner.invoke(app, _args(tmp_path))

    assert result.exit_code == 0, result.output
    assert f"No updates! {output} is up to date." in result.output
    assert served_api.urls_requested() == [V3_LATEST]


def test_dry_run_reports_available_update(tmp_path: Path, served_api: FakeBuildApi) -> None:
    result = runner.invoke(app, _args(tmp_path, "--dry-run"))

    assert result.exit_code == 0, result.output
    assert "Update available: paper 1.21 (build 130)" in result.output
    assert not (tmp_path / "server.jar").exists()


def test_misspelled_api_server_alias_is_accepted(tmp_path: Path, served_api) -> None:
    args = _args(tmp_path)
    args[0] = "--api-sever"
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output


def test_environment_supplies_project(tmp_path: Path, served_api, monkeypatch) -> None:
    monkeypatch.setenv("PAPERFETCH_PROJECT_NAME", "paper")
    monkeypatch.setenv("PAPERFETCH_PROJECT_VERSION", "1.21")
    monkeypatch.setenv("PAPERFETCH_API_SERVER", "https://api.test")

    result = runner.invoke(app, ["--filename-format", str(tmp_path / "server.jar")])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "server.jar").exists()


def test_remote_failure_exits_with_one(tmp_path: Path, served_api: FakeBuildApi) -> None:
    served_api.add(V3_LATEST, ResponseSpec(status=502, body=b"bad gateway"))

    result = runner.invoke(app, _args(tmp_path))

    assert result.exit_code == 1
    assert "Error: request to" in result.output
    assert "502" in result.output


def test_log_dir_receives_json_records(tmp_path: Path, served_api: FakeBuildApi) -> None:
    log_dir = tmp_path / "logs"

    result = runner.invoke(app, _args(tmp_path, "--log-dir", str(log_dir)))

    assert result.exit_code == 0, result.output
    (log_file,) = log_dir.glob("paperfetch-*.jsonl")
    records = [json.loads(line) for line in log_file.read_text("utf-8").splitlines()]
    assert any(record["message"] == "Checking updates..." for record in records)
    assert all("timestamp" in record and "level" in record for record in records)

"""Shared fixtures for the paperfetch test suite."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from PaperFetch.settings import FetchSettings
from PaperFetch.testing import FakeBuildApi

API_SERVER = "https://api.test"
BUILD_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
PAYLOAD = b"PK\x03\x04 fake server jar contents\n" * 64


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer ``PAPERFETCH_*`` variables out of the tests."""

    for key in list(os.environ):
        if key.upper().startswith("PAPERFETCH_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers and propagation changes made by ``setup_logging``."""

    logger = logging.getLogger("PaperFetch")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., FetchSettings]:
    """Return a factory for settings that write into ``tmp_path``."""

    def _factory(**overrides) -> FetchSettings:
        values = {
            "api_server": API_SERVER,
            "project_name": "paper",
            "project_version": "1.21",
            "filename_format": str(tmp_path / "{project-name}-{project-version}.jar"),
        }
        values.update(overrides)
        return FetchSettings(**values)

    return _factory


@pytest.fixture
def fake_api() -> FakeBuildApi:
    return FakeBuildApi()

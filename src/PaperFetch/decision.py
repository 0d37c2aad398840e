"""Decide whether the latest remote build should replace the local file."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from .models import LocalFileState, as_utc

__all__ = ["UpdateDecision", "decide_update"]


class UpdateDecision(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


def decide_update(latest_build_time: datetime, local_state: LocalFileState) -> UpdateDecision:
    """Return SKIP only when the local file is strictly newer than the build.

    An equal timestamp still proceeds, so a build published at the same
    instant the local file was written is downloaded again rather than missed.

    Examples:
        >>> from pathlib import Path
        >>> decide_update(datetime(2024, 1, 1), LocalFileState.absent(Path("x.jar")))
        <UpdateDecision.PROCEED: 'proceed'>
    """

    if local_state.modified_at is None:
        return UpdateDecision.PROCEED
    if as_utc(local_state.modified_at) > as_utc(latest_build_time):
        return UpdateDecision.SKIP
    return UpdateDecision.PROCEED

"""Local state probe for the output file."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from .errors import LocalStateError
from .models import LocalFileState

__all__ = ["probe_local_state"]

LOGGER = logging.getLogger(__name__)


def probe_local_state(path: Path) -> LocalFileState:
    """Report whether ``path`` exists and, if so, when it was last modified.

    Only a missing file counts as absent.  Permission problems, a path
    component that is not a directory, and other I/O failures raise instead,
    so a broken filesystem is never mistaken for "no previous download".

    Args:
        path: Output file to inspect.

    Returns:
        :class:`LocalFileState` with a UTC modification time, or absent.

    Raises:
        LocalStateError: If ``path`` cannot be inspected.
    """

    try:
        stat_result = path.stat()
    except FileNotFoundError:
        LOGGER.debug("output file absent", extra={"stage": "probe", "path": str(path)})
        return LocalFileState.absent(path)
    except OSError as exc:
        raise LocalStateError(f"failed to inspect {path}: {exc}", path=path) from exc

    modified_at = datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc)
    LOGGER.debug(
        "output file present",
        extra={"stage": "probe", "path": str(path), "modified_at": modified_at.isoformat()},
    )
    return LocalFileState(path=path, modified_at=modified_at)

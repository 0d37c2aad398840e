"""
Verified Artifact Downloads

This module streams a remote artifact into the output file while hashing the
exact bytes written.  It does not compare digests or delete anything itself:
it reports what was written, and the orchestrator decides whether the result
is accepted or rolled back.  Partial files from a failed transfer are left in
place for inspection.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Callable, ContextManager, Iterable, Optional

from .checksums import new_hasher
from .errors import RemoteRequestError, TransferError
from .models import DownloadOutcome

__all__ = ["StreamOpener", "download_verified"]

LOGGER = logging.getLogger(__name__)

#: Zero-argument callable opening the remote body as an iterable of chunks.
StreamOpener = Callable[[], ContextManager[Iterable[bytes]]]


def _close_quietly(handle: BinaryIO) -> Optional[OSError]:
    try:
        handle.close()
    except OSError as exc:
        return exc
    return None


def download_verified(open_stream: StreamOpener, destination: Path) -> DownloadOutcome:
    """Stream ``open_stream()`` into ``destination`` and return its SHA-256 digest.

    The destination is opened (and truncated) before the remote stream, so an
    unwritable path fails without any network traffic.  Each chunk is written
    to disk first and then fed to the hasher, so the digest always describes
    the file contents.

    Args:
        open_stream: Opens the remote body; called once, after the file opens.
        destination: Output file path.

    Returns:
        :class:`DownloadOutcome` with the digest and byte count written.

    Raises:
        TransferError: With ``stage="open"`` when the destination cannot be
            opened, ``stage="transfer"`` on network or disk failures while
            streaming (a close failure is joined as a secondary error), and
            ``stage="close"`` when only the final close fails.
    """

    try:
        handle = destination.open("wb")
    except OSError as exc:
        raise TransferError(
            f"failed to open {destination}: {exc}", stage="open", path=destination
        ) from exc

    hasher = new_hasher()
    size = 0
    failure: Optional[TransferError] = None
    try:
        with open_stream() as chunks:
            for chunk in chunks:
                if not chunk:
                    continue
                handle.write(chunk)
                hasher.update(chunk)
                size += len(chunk)
    except (RemoteRequestError, OSError) as exc:
        failure = TransferError(
            f"failed to download {destination.name}: {exc}", stage="transfer", path=destination
        )
        failure.__cause__ = exc
        LOGGER.debug(
            "transfer aborted",
            extra={"stage": "download", "path": str(destination), "bytes_written": size},
        )
    except BaseException:
        _close_quietly(handle)
        raise

    close_error = _close_quietly(handle)
    if failure is not None:
        if close_error is not None:
            failure.add_secondary(
                TransferError(
                    f"failed to close {destination}: {close_error}",
                    stage="close",
                    path=destination,
                )
            )
        raise failure

    outcome = DownloadOutcome(path=destination, digest=hasher.digest(), size=size)
    if close_error is not None:
        raise TransferError(
            f"failed to close {destination} after writing {size} bytes: {close_error}",
            stage="close",
            path=destination,
            outcome=outcome,
        ) from close_error

    LOGGER.debug(
        "transfer complete",
        extra={"stage": "download", "path": str(destination), "bytes_written": size},
    )
    return outcome

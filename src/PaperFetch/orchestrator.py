# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.orchestrator",
#   "purpose": "Drive one update check: concurrent lookups, decision, verified download",
#   "sections": [
#     {"id": "states", "name": "RunState", "anchor": "class-runstate", "kind": "class"},
#     {"id": "result", "name": "RunResult", "anchor": "class-runresult", "kind": "class"},
#     {
#       "id": "shutdown-executor-nowait",
#       "name": "_shutdown_executor_nowait",
#       "anchor": "function-shutdown-executor-nowait",
#       "kind": "function"
#     },
#     {
#       "id": "submit-daemon",
#       "name": "_submit_daemon",
#       "anchor": "function-submit-daemon",
#       "kind": "function"
#     },
#     {
#       "id": "updateorchestrator",
#       "name": "UpdateOrchestrator",
#       "anchor": "class-updateorchestrator",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Drive one update check from lookup to verified download.

:class:`UpdateOrchestrator` moves through ``RunState`` values::

    INIT -> FETCHING -> DECIDING -> SKIPPED | DOWNLOADING
    DOWNLOADING -> VERIFIED | CORRUPTED
    -> SUCCESS (exit 0) | FAILURE (exit 1)

The metadata lookup and the local-state probe run concurrently: the lookup on
a daemon thread, the probe on a one-worker pool.  Only the metadata lookup
carries a deadline; when it expires the lookup is abandoned, and its daemon
thread does not delay interpreter exit.  Everything after the join is
sequential, and every :class:`PaperFetchError` ends the run with exit code 1.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from .api import MetadataSource
from .checksums import ExpectedChecksum
from .decision import UpdateDecision, decide_update
from .download import download_verified
from .errors import IntegrityError, MetadataTimeoutError, PaperFetchError
from .models import BuildInfo, DownloadOutcome, LocalFileState
from .probe import probe_local_state
from .settings import FetchSettings

__all__ = ["RunState", "RunResult", "UpdateOrchestrator", "run_update"]

LOGGER = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class RunState(str, Enum):
    INIT = "init"
    FETCHING = "fetching"
    DECIDING = "deciding"
    SKIPPED = "skipped"
    DOWNLOADING = "downloading"
    VERIFIED = "verified"
    CORRUPTED = "corrupted"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(slots=True)
class RunResult:
    """Terminal outcome of :meth:`UpdateOrchestrator.run`.

    Attributes:
        state: ``RunState.SUCCESS`` or ``RunState.FAILURE``.
        exit_code: Process exit code for the outcome.
        output_path: Resolved output file path.
        decision: Update decision, when the run got that far.
        build: Latest build metadata, when fetched.
        outcome: Download outcome, when a download completed.
        error: Terminal error for failed runs.
        history: Every state the run passed through, in order.
    """

    state: RunState
    exit_code: int
    output_path: Path
    decision: Optional[UpdateDecision] = None
    build: Optional[BuildInfo] = None
    outcome: Optional[DownloadOutcome] = None
    error: Optional[PaperFetchError] = None
    history: List[RunState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCESS

    @property
    def downloaded(self) -> bool:
        return RunState.VERIFIED in self.history


def _shutdown_executor_nowait(executor: ThreadPoolExecutor) -> None:
    """Request non-blocking shutdown with cancellation for *executor*."""

    executor.shutdown(wait=False, cancel_futures=True)


def _submit_daemon(name: str, fn: Callable[..., Any], *args: Any) -> "Future[Any]":
    """Run ``fn(*args)`` on a daemon thread and return a future for its result.

    Executor workers are joined at interpreter exit; a daemon thread is not,
    so an abandoned call cannot hold the process open.
    """

    future: "Future[Any]" = Future()

    def _target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except BaseException as exc:  # delivered through the future
            future.set_exception(exc)
        else:
            future.set_result(result)

    threading.Thread(target=_target, name=name, daemon=True).start()
    return future


class UpdateOrchestrator:
    """Run the update-check-and-verified-download workflow once.

    Args:
        settings: Validated run settings.
        source: Metadata source used for the lookup and the download stream.
        probe: Local state probe; replaceable for tests.
    """

    def __init__(
        self,
        settings: FetchSettings,
        source: MetadataSource,
        *,
        probe: Callable[[Path], LocalFileState] = probe_local_state,
    ) -> None:
        self._settings = settings
        self._source = source
        self._probe = probe
        self._history: List[RunState] = []
        self._decision: Optional[UpdateDecision] = None
        self._build: Optional[BuildInfo] = None
        self._outcome: Optional[DownloadOutcome] = None

    @property
    def state(self) -> RunState:
        return self._history[-1] if self._history else RunState.INIT

    def _transition(self, state: RunState) -> None:
        LOGGER.debug(
            "state transition",
            extra={"stage": "orchestrate", "from_state": self.state.value, "to_state": state.value},
        )
        self._history.append(state)

    def run(self) -> RunResult:
        """Execute the workflow and return its terminal :class:`RunResult`."""

        self._history = [RunState.INIT]
        output_path = Path()
        try:
            self._settings.validate_required()
            output_path = self._settings.output_path()
            self._execute(output_path)
        except PaperFetchError as exc:
            self._transition(RunState.FAILURE)
            return self._result(RunState.FAILURE, EXIT_FAILURE, output_path, error=exc)
        self._transition(RunState.SUCCESS)
        return self._result(RunState.SUCCESS, EXIT_SUCCESS, output_path)

    def _result(
        self,
        state: RunState,
        exit_code: int,
        output_path: Path,
        *,
        error: Optional[PaperFetchError] = None,
    ) -> RunResult:
        return RunResult(
            state=state,
            exit_code=exit_code,
            output_path=output_path,
            decision=self._decision,
            build=self._build,
            outcome=self._outcome,
            error=error,
            history=list(self._history),
        )

    def _execute(self, output_path: Path) -> None:
        settings = self._settings
        LOGGER.info(
            "Checking updates...",
            extra={
                "stage": "metadata",
                "project": settings.project_name,
                "version": settings.project_version,
            },
        )
        self._transition(RunState.FETCHING)
        build, local_state = self._fetch(output_path)
        self._build = build

        self._transition(RunState.DECIDING)
        self._decision = decide_update(build.created_at, local_state)
        if self._decision is UpdateDecision.SKIP:
            self._transition(RunState.SKIPPED)
            LOGGER.info(
                "No updates!",
                extra={"stage": "decide", "build": build.build_id, "path": str(output_path)},
            )
            return

        artifact = build.artifact(settings.resolved_artifact_role)
        expected = ExpectedChecksum.for_artifact(artifact)
        url = self._source.download_url(build, artifact)

        LOGGER.info(
            "Found a new build.",
            extra={
                "stage": "decide",
                "build": build.build_id,
                "build_time": build.created_at.isoformat(),
            },
        )
        if build.changes:
            LOGGER.info("Changes in this build:", extra={"stage": "decide"})
            for change in build.changes:
                LOGGER.info("  %s", change, extra={"stage": "decide"})

        if settings.dry_run:
            LOGGER.info(
                "Update available; dry run, skipping download of %s",
                artifact.name,
                extra={"stage": "decide", "url": url},
            )
            return

        self._transition(RunState.DOWNLOADING)
        LOGGER.info(
            "Downloading %s...",
            artifact.name,
            extra={"stage": "download", "url": url, "checksum": expected.to_mapping()},
        )
        outcome = download_verified(partial(self._source.stream_download, url), output_path)
        self._outcome = outcome
        self._verify(expected, outcome)
        LOGGER.info(
            "Latest %s %s (build %d) has been downloaded to %s!",
            settings.project_name,
            settings.project_version,
            build.build_id,
            output_path,
            extra={"stage": "verify", "bytes": outcome.size, "sha256": outcome.hexdigest},
        )

    def _fetch(self, output_path: Path) -> Tuple[BuildInfo, LocalFileState]:
        metadata_future = _submit_daemon(
            "paperfetch-metadata",
            self._source.fetch_latest_build,
            self._settings.project_name,
            self._settings.project_version,
        )
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="paperfetch-probe")
        try:
            local_future = executor.submit(self._probe, output_path)
            return self._join(metadata_future, local_future)
        finally:
            _shutdown_executor_nowait(executor)

    def _join(
        self,
        metadata_future: "Future[BuildInfo]",
        local_future: "Future[LocalFileState]",
    ) -> Tuple[BuildInfo, LocalFileState]:
        timeout_sec = self._settings.metadata_timeout_sec
        deadline = time.monotonic() + timeout_sec
        pending = {metadata_future, local_future}
        while metadata_future in pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise MetadataTimeoutError(
                    f"failed to get builds: no response within {timeout_sec:g} seconds",
                    timeout_sec=timeout_sec,
                )
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error
        # The probe has no deadline of its own.
        return metadata_future.result(), local_future.result()

    def _verify(self, expected: ExpectedChecksum, outcome: DownloadOutcome) -> None:
        if expected.matches(outcome.digest):
            self._transition(RunState.VERIFIED)
            return

        self._transition(RunState.CORRUPTED)
        error = IntegrityError(
            f"downloaded file is corrupted: expected sha256 {expected.value}, "
            f"got {outcome.hexdigest}",
            expected=expected.value,
            actual=outcome.hexdigest,
            path=outcome.path,
        )
        LOGGER.warning(
            "Deleting downloaded file...",
            extra={"stage": "cleanup", "path": str(outcome.path)},
        )
        try:
            outcome.path.unlink()
        except OSError as exc:
            LOGGER.warning(
                "Failed to remove downloaded file.",
                extra={"stage": "cleanup", "path": str(outcome.path), "error": str(exc)},
            )
            error.add_secondary(exc)
        raise error


def run_update(settings: FetchSettings, source: MetadataSource) -> RunResult:
    """Run one update check for ``settings`` against ``source``."""

    return UpdateOrchestrator(settings, source).run()

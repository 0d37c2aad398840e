# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.cli",
#   "purpose": "Typer CLI entry point for update checks and verified downloads",
#   "sections": [
#     {
#       "id": "version-callback",
#       "name": "_version_callback",
#       "anchor": "function-version-callback",
#       "kind": "function"
#     },
#     {
#       "id": "main",
#       "name": "main",
#       "anchor": "function-main",
#       "kind": "function"
#     },
#     {
#       "id": "run",
#       "name": "_run",
#       "anchor": "function-run",
#       "kind": "function"
#     },
#     {
#       "id": "report",
#       "name": "_report",
#       "anchor": "function-report",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Typer CLI entry point for update checks and verified downloads.

Every option can also be supplied through a ``PAPERFETCH_*`` environment
variable; explicit options win.  Invalid or missing settings exit with code 1
before any lookup starts.

Example:
    $ paperfetch --project-name paper --project-version 1.21
    $ paperfetch --api-generation v2 --project-name velocity \\
        --project-version 3.3.0-SNAPSHOT --filename-format velocity.jar
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .api import BuildApiClient
from .errors import ConfigurationError
from .logging_utils import setup_logging
from .net import build_http_client
from .orchestrator import RunResult, RunState, UpdateOrchestrator
from .settings import FetchSettings, load_settings

_console = Console(soft_wrap=True)
_error_console = Console(stderr=True, soft_wrap=True)

app = typer.Typer(
    name="paperfetch",
    help="Download the latest build of a project version when it is newer than the local copy.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"paperfetch {__version__}")
        raise typer.Exit(0)


@app.command()
def main(
    api_server: Optional[str] = typer.Option(
        None, "--api-server", "--api-sever", help="Base URL of the build API."
    ),
    project_name: Optional[str] = typer.Option(
        None, "--project-name", help="The project name such as paper or velocity."
    ),
    project_version: Optional[str] = typer.Option(
        None, "--project-version", help="The project version such as 1.20.6 or 1.21."
    ),
    filename_format: Optional[str] = typer.Option(
        None,
        "--filename-format",
        help="Output filename; supports {project-name} and {project-version}.",
    ),
    api_generation: Optional[str] = typer.Option(
        None, "--api-generation", help="API generation to query: v2 or v3."
    ),
    artifact_role: Optional[str] = typer.Option(
        None,
        "--artifact-role",
        help="Download role to fetch (default: application for v2, server:default for v3).",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for build metadata."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Report whether an update exists without downloading."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Directory for JSON log files."
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (-v for DEBUG)."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Check for a newer build and download it with checksum verification."""

    try:
        settings = load_settings(
            api_server=api_server,
            project_name=project_name,
            project_version=project_version,
            filename_format=filename_format,
            api_generation=api_generation,
            artifact_role=artifact_role,
            metadata_timeout_sec=timeout,
            dry_run=dry_run or None,
            log_level="DEBUG" if verbose else log_level,
            log_dir=log_dir,
        )
        settings.validate_required()
        settings.output_path()
    except ConfigurationError as exc:
        _error_console.print(f"An error found in flags: {exc}", style="red", markup=False)
        raise typer.Exit(1) from exc

    setup_logging(level=settings.log_level, log_dir=settings.log_dir)
    result = _run(settings)
    _report(settings, result)
    raise typer.Exit(result.exit_code)


def _run(settings: FetchSettings) -> RunResult:
    with build_http_client(settings) as http_client:
        return UpdateOrchestrator(settings, BuildApiClient(settings, http_client)).run()


def _report(settings: FetchSettings, result: RunResult) -> None:
    """Print exactly one terminal status line for ``result``."""

    if result.error is not None:
        _error_console.print(f"Error: {result.error}", style="red", markup=False)
        return
    if RunState.SKIPPED in result.history:
        _console.print(
            f"No updates! {result.output_path} is up to date.", style="green", markup=False
        )
        return
    build_id = result.build.build_id if result.build else "?"
    label = f"{settings.project_name} {settings.project_version} (build {build_id})"
    if result.downloaded:
        _console.print(
            f"Downloaded {label} to {result.output_path}", style="green", markup=False
        )
    else:
        _console.print(f"Update available: {label}", style="yellow", markup=False)


__all__ = ["app", "main"]

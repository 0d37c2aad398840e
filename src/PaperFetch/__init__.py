# === NAVMAP v1 ===
# {
#   "module": "PaperFetch",
#   "purpose": "Package initialization for PaperFetch",
#   "sections": [
#     {
#       "id": "getattr",
#       "name": "__getattr__",
#       "anchor": "function-getattr",
#       "kind": "function"
#     },
#     {
#       "id": "dir",
#       "name": "__dir__",
#       "anchor": "function-dir",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public API for the PaperFetch update checker and verified downloader.

This facade exposes the orchestrator that checks a build API for the newest
artifact of a project version, compares it with the local copy, and downloads
it with SHA-256 verification, along with the settings, data model, and error
types callers need around it.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__version__ = "0.3.0"

_EXPORTS = {
    "BuildApiClient": "api",
    "BuildInfo": "models",
    "ArtifactDescriptor": "models",
    "LocalFileState": "models",
    "DownloadOutcome": "models",
    "FetchSettings": "settings",
    "load_settings": "settings",
    "UpdateDecision": "decision",
    "decide_update": "decision",
    "probe_local_state": "probe",
    "download_verified": "download",
    "UpdateOrchestrator": "orchestrator",
    "RunResult": "orchestrator",
    "RunState": "orchestrator",
    "run_update": "orchestrator",
    "PaperFetchError": "errors",
}

__all__ = [*_EXPORTS, "__version__"]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .api import BuildApiClient
    from .decision import UpdateDecision, decide_update
    from .download import download_verified
    from .errors import PaperFetchError
    from .models import ArtifactDescriptor, BuildInfo, DownloadOutcome, LocalFileState
    from .orchestrator import RunResult, RunState, UpdateOrchestrator, run_update
    from .probe import probe_local_state
    from .settings import FetchSettings, load_settings


def __getattr__(name: str) -> Any:
    """Lazily import public names so ``import PaperFetch`` stays cheap."""

    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    value = getattr(import_module(f".{module_name}", __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))

# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.templates",
#   "purpose": "Placeholder substitution for API URLs and output filenames",
#   "sections": [
#     {
#       "id": "substitutioncontext",
#       "name": "SubstitutionContext",
#       "anchor": "class-substitutioncontext",
#       "kind": "class"
#     },
#     {
#       "id": "format-template",
#       "name": "format_template",
#       "anchor": "function-format-template",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Placeholder substitution for API URLs and output filenames.

Templates use ``{key}`` placeholders such as ``{project-name}`` or
``{build}``.  Values come from an explicit :class:`SubstitutionContext`
rather than ambient state, and the context grows as a run learns more (the
build number is only known once metadata arrives, the download name only once
an artifact is selected).

Example:
    >>> ctx = SubstitutionContext("https://api.papermc.io", "paper", "1.21")
    >>> format_template("{project-name}-{project-version}.jar", ctx)
    'paper-1.21.jar'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Dict, Optional

from .errors import ConfigurationError

__all__ = [
    "API_SERVER_KEY",
    "PROJECT_NAME_KEY",
    "PROJECT_VERSION_KEY",
    "BUILD_KEY",
    "DOWNLOAD_NAME_KEY",
    "SubstitutionContext",
    "format_template",
]

API_SERVER_KEY = "api-server"
PROJECT_NAME_KEY = "project-name"
PROJECT_VERSION_KEY = "project-version"
BUILD_KEY = "build"
DOWNLOAD_NAME_KEY = "download-name"

_PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z][A-Za-z0-9_-]*)\}")


@dataclass(slots=True, frozen=True)
class SubstitutionContext:
    """Values available to :func:`format_template` for one run.

    Attributes:
        api_server: Base URL of the build API without a trailing slash.
        project_name: Project identifier such as ``paper`` or ``velocity``.
        project_version: Project version such as ``1.21``.
        build: Build number, once the latest build is known.
        download_name: Artifact filename, once an artifact is selected.
    """

    api_server: str
    project_name: str
    project_version: str
    build: Optional[int] = None
    download_name: Optional[str] = None

    def with_build(self, build: int) -> "SubstitutionContext":
        """Return a copy of the context that also knows ``build``."""

        return replace(self, build=build)

    def with_download(self, download_name: str) -> "SubstitutionContext":
        """Return a copy of the context that also knows ``download_name``."""

        return replace(self, download_name=download_name)

    def values(self) -> Dict[str, Optional[str]]:
        """Map placeholder keys to their current string values."""

        return {
            API_SERVER_KEY: self.api_server,
            PROJECT_NAME_KEY: self.project_name,
            PROJECT_VERSION_KEY: self.project_version,
            BUILD_KEY: None if self.build is None else str(self.build),
            DOWNLOAD_NAME_KEY: self.download_name,
        }


def format_template(template: str, context: SubstitutionContext) -> str:
    """Substitute every ``{key}`` placeholder in ``template``.

    Args:
        template: URL or filename template.
        context: Values to substitute.

    Returns:
        The template with every placeholder replaced.

    Raises:
        ConfigurationError: If the template names an unknown placeholder or one
            whose value is not available in ``context`` yet.
    """

    values = context.values()

    def _substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in values:
            raise ConfigurationError(f"unknown placeholder '{{{key}}}' in template '{template}'")
        value = values[key]
        if value is None:
            raise ConfigurationError(
                f"placeholder '{{{key}}}' in template '{template}' has no value yet"
            )
        return value

    return _PLACEHOLDER_PATTERN.sub(_substitute, template)

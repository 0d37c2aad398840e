# === NAVMAP v1 ===
# {
#   "module": "PaperFetch.checksums",
#   "purpose": "Expected-checksum parsing and digest comparison helpers",
#   "sections": [
#     {"id": "constants", "name": "Constants", "anchor": "CONST", "kind": "constants"},
#     {"id": "expected", "name": "ExpectedChecksum", "anchor": "EXP", "kind": "api"},
#     {"id": "compare", "name": "Digest comparison", "anchor": "CMP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Expected-checksum parsing and digest comparison helpers.

Build APIs publish a hex-encoded SHA-256 digest per artifact.  This module
normalises that declaration into raw digest bytes before any download starts,
so a missing or malformed checksum fails the run without touching the output
file, and exposes the byte-exact comparison used once the download finishes.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Optional

from .errors import ResponseShapeError
from .models import ArtifactDescriptor

__all__ = [
    "CHECKSUM_ALGORITHM",
    "ExpectedChecksum",
    "new_hasher",
    "parse_expected_digest",
    "digests_match",
]

CHECKSUM_ALGORITHM = "sha256"
_DIGEST_SIZE = hashlib.sha256().digest_size
_HEX_DIGEST_PATTERN = re.compile(rf"[0-9a-f]{{{_DIGEST_SIZE * 2}}}")


def new_hasher() -> "hashlib._Hash":
    """Return a fresh hasher for the one supported algorithm."""

    return hashlib.sha256()


def parse_expected_digest(value: Optional[str], *, context: str) -> bytes:
    """Decode a published hex checksum into digest bytes.

    Args:
        value: Hex digest from the build metadata, or ``None`` when absent.
        context: Human-readable description used in error messages.

    Returns:
        Raw SHA-256 digest bytes.

    Raises:
        ResponseShapeError: If the checksum is missing, not a string, or not a
            64-character hexadecimal SHA-256 digest.

    Examples:
        >>> len(parse_expected_digest("00" * 32, context="demo"))
        32
    """

    if value is None:
        raise ResponseShapeError(f"{context}: no {CHECKSUM_ALGORITHM} checksum in build metadata")
    if not isinstance(value, str):
        raise ResponseShapeError(f"{context}: {CHECKSUM_ALGORITHM} checksum must be a string")
    checksum = value.strip().lower()
    if not _HEX_DIGEST_PATTERN.fullmatch(checksum):
        raise ResponseShapeError(
            f"{context}: {CHECKSUM_ALGORITHM} checksum '{value}' is not a "
            f"{_DIGEST_SIZE * 2}-digit hexadecimal digest"
        )
    return bytes.fromhex(checksum)


@dataclass(slots=True, frozen=True)
class ExpectedChecksum:
    """Expected checksum for one artifact, validated before downloading."""

    digest: bytes
    algorithm: str = CHECKSUM_ALGORITHM

    @classmethod
    def for_artifact(cls, artifact: ArtifactDescriptor) -> "ExpectedChecksum":
        """Validate and decode ``artifact.checksum``."""

        context = f"artifact '{artifact.name}'"
        return cls(digest=parse_expected_digest(artifact.checksum, context=context))

    @property
    def value(self) -> str:
        return self.digest.hex()

    def to_mapping(self) -> dict:
        """Return mapping representation for structured log payloads."""

        return {"algorithm": self.algorithm, "value": self.value}

    def matches(self, actual: bytes) -> bool:
        return digests_match(self.digest, actual)


def digests_match(expected: bytes, actual: bytes) -> bool:
    """Compare two raw digests byte for byte."""

    return hmac.compare_digest(expected, actual)

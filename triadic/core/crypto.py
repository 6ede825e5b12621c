"""Hashing, signing and Merkle folding shared by every engine.

All hashes are lowercase SHA-256 hex digests. All signatures are
HMAC-SHA256 hex digests under the process-wide secret.
"""

import hashlib
import hmac
import json
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from triadic.core.config import get_settings
from triadic.core.logging import get_logger

logger = get_logger(__name__)

HASH_ALGORITHM = "SHA-256"


def sha256_hex(content: str) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def canonical_json(obj: Any) -> str:
    """Serialize to JSON with stable key order and no whitespace.

    Values JSON cannot represent (datetimes, enums, paths) are
    serialized through ``str``.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def compute_merkle_root(hashes: Sequence[str]) -> str:
    """Fold leaf hashes into a single root.

    Adjacent pairs are hashed as ``sha256(left + right)``. A node left
    without a partner at any level is paired with itself.

    Args:
        hashes: Ordered leaf hashes

    Returns:
        Root hash. A single leaf is its own root; no leaves hash the
        literal string "empty".
    """
    if not hashes:
        return sha256_hex("empty")

    level = list(hashes)
    while len(level) > 1:
        next_level = []
        for i in range(0, len(level), 2):
            left = level[i]
            right = level[i + 1] if i + 1 < len(level) else left
            next_level.append(sha256_hex(left + right))
        level = next_level

    return level[0]


class Signer:
    """HMAC-SHA256 signer bound to one shared secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._key = secret.encode("utf-8")

    def sign(self, data: str) -> str:
        """Return the hex HMAC of data."""
        return hmac.new(self._key, data.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, data: str, signature: str) -> bool:
        """Check a signature in constant time."""
        if not isinstance(signature, str):
            return False
        return hmac.compare_digest(self.sign(data), signature)


@lru_cache
def default_signer() -> Signer:
    """Build the process-wide signer from settings.

    Warns once when POO_SECRET is not configured.
    """
    settings = get_settings()
    if settings.uses_default_secret:
        logger.warning(
            "POO_SECRET is not set; signing with the built-in default key. "
            "Signatures are verifiable but not secret."
        )
    return Signer(settings.signing_secret)

"""Fast non-cryptographic hashing for store keys and tree fingerprints."""

from enum import Enum
from typing import Any
import hashlib

import msgspec
import orjson
import xxhash


class Algorithm(str, Enum):
    """Supported hash algorithms."""

    XXHASH64 = "xxhash64"  # store keys, fingerprints
    SHA256 = "sha256"


def hash_bytes(data: bytes, algorithm: Algorithm = Algorithm.XXHASH64, truncate: int | None = None) -> str:
    """
    Hash bytes to a hex digest.

    Args:
        data: Bytes to hash
        algorithm: Hash algorithm (default: xxhash64 for speed)
        truncate: Optional length to truncate digest

    Returns:
        Hex digest string
    """
    if algorithm == Algorithm.XXHASH64:
        digest = xxhash.xxh64(data).hexdigest()
    elif algorithm == Algorithm.SHA256:
        digest = hashlib.sha256(data).hexdigest()
    else:
        raise ValueError(f"Unknown algorithm: {algorithm}")

    return digest[:truncate] if truncate else digest


def hash_string(text: str, algorithm: Algorithm = Algorithm.XXHASH64, truncate: int | None = None) -> str:
    """Hash a string (UTF-8) to a hex digest."""
    return hash_bytes(text.encode("utf-8"), algorithm, truncate)


def fingerprint(document: Any) -> str:
    """
    Stable digest of a JSON-compatible document.

    Key order does not matter, so two structurally equal trees share a
    fingerprint.
    """
    try:
        encoded = orjson.dumps(document, option=orjson.OPT_SORT_KEYS)
    except TypeError:
        # e.g. integers outside 64-bit range
        encoded = msgspec.json.encode(document, order="sorted")
    return hash_bytes(encoded, truncate=16)


__all__ = ["Algorithm", "hash_bytes", "hash_string", "fingerprint"]

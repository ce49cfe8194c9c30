"""Fast hashing for cache keys and connection identities.

xxhash64 is the default: keys only need to be deterministic, not
collision-resistant. SHA-1/SHA-256 remain available for callers that want
digests comparable with other systems.
"""

from typing import Protocol
from enum import Enum
import hashlib

import xxhash


class Algorithm(str, Enum):
    """Supported hash algorithms."""

    XXHASH64 = "xxhash64"  # Fast, non-cryptographic (default)
    SHA1 = "sha1"
    SHA256 = "sha256"


class Hasher(Protocol):
    """Incremental hasher."""

    def update(self, data: bytes) -> None:
        """Feed bytes into the digest."""
        ...

    def hexdigest(self) -> str:
        """Return the hex digest."""
        ...


def create_hasher(algorithm: Algorithm = Algorithm.XXHASH64) -> Hasher:
    """
    Create a fresh incremental hasher.

    Args:
        algorithm: Hash algorithm to use

    Returns:
        Hasher instance

    Raises:
        ValueError: If the algorithm is unknown
    """
    if algorithm == Algorithm.XXHASH64:
        return xxhash.xxh64()
    elif algorithm == Algorithm.SHA1:
        return hashlib.sha1()
    elif algorithm == Algorithm.SHA256:
        return hashlib.sha256()
    else:
        raise ValueError(f"Unknown algorithm: {algorithm}")


def hash_parts(*parts: bytes, algorithm: Algorithm = Algorithm.XXHASH64) -> str:
    """
    Hash several byte strings together (deterministic, order-sensitive).

    Parts are NUL-separated so that ("ab", "c") and ("a", "bc") differ.
    """
    hasher = create_hasher(algorithm)
    for index, part in enumerate(parts):
        if index:
            hasher.update(b"\x00")
        hasher.update(part)
    return hasher.hexdigest()


__all__ = [
    "Algorithm",
    "Hasher",
    "create_hasher",
    "hash_parts",
]

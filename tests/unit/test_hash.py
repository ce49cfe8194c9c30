"""Tests for hash module."""

import pytest
from hypothesis import given, strategies as st

from fetchkit.core.hash import Algorithm, hash_parts, create_hasher


def test_hash_parts_xxhash():
    """Test xxhash digests."""
    result = hash_parts(b"test", algorithm=Algorithm.XXHASH64)
    assert isinstance(result, str)
    assert len(result) == 16  # xxhash64 produces 16 hex chars

    # Same input = same hash
    assert hash_parts(b"test") == result


def test_hash_parts_sha256():
    """Test SHA256 digests."""
    result = hash_parts(b"test", algorithm=Algorithm.SHA256)
    assert len(result) == 64
    assert result == "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"


def test_hash_parts_sha1():
    """Test SHA1 digests."""
    assert hash_parts(b"test", algorithm=Algorithm.SHA1) == "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"


def test_hash_parts_separated():
    """Test part boundaries are part of the digest."""
    assert hash_parts(b"ab", b"c") != hash_parts(b"a", b"bc")
    assert hash_parts(b"a", b"b") == hash_parts(b"a", b"b")


def test_hash_parts_order():
    """Test multi-part hashing is order-sensitive."""
    result = hash_parts(b"field1", b"field2", b"field3")

    # Order matters
    assert result != hash_parts(b"field3", b"field2", b"field1")

    # Deterministic
    assert result == hash_parts(b"field1", b"field2", b"field3")


def test_create_hasher_incremental():
    """Test incremental hashing matches one-shot hashing."""
    hasher = create_hasher(Algorithm.XXHASH64)
    hasher.update(b"te")
    hasher.update(b"st")

    assert hasher.hexdigest() == hash_parts(b"test")


def test_create_hasher_invalid():
    """Test invalid algorithm."""
    with pytest.raises(ValueError):
        create_hasher("invalid")  # type: ignore


@given(st.binary(min_size=1, max_size=1000))
def test_hash_deterministic(data):
    """Property test: hashing is deterministic."""
    assert hash_parts(data) == hash_parts(data)


@given(st.binary(min_size=1), st.binary(min_size=1))
def test_hash_unique(first, second):
    """Property test: different inputs produce different hashes."""
    if first != second:
        # Collision is possible but extremely rare for SHA-256
        assert hash_parts(first, algorithm=Algorithm.SHA256) != hash_parts(second, algorithm=Algorithm.SHA256)

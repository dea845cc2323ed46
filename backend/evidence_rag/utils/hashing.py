"""Hashing utilities."""

from __future__ import annotations

import hashlib

MULTI_SEPARATOR = "\n---\n"


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def hash_content(content: str) -> str:
    """Return the SHA-256 hex digest of the UTF-8 encoded text."""
    return sha256_bytes(content.encode("utf-8"))


def hash_multiple(*contents: str) -> str:
    """Hash several fields as one value, joined by an unambiguous separator."""
    return hash_content(MULTI_SEPARATOR.join(contents))


__all__ = ["MULTI_SEPARATOR", "hash_content", "hash_multiple", "sha256_bytes"]

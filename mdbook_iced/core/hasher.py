"""Hashing helpers for content addressing compiled examples.

An iceberg's identity is ``sha256(normalized_source + manifest_hash)``.
Normalization happens before hashing so that hidden-line markers, which
only affect how a block is displayed, never change the cache key.
"""

from __future__ import annotations

import hashlib


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def split_lines(text: str) -> list[str]:
    """Split *text* on ``\\n`` only, dropping a trailing ``\\r`` per line.

    Unlike ``str.splitlines`` this leaves form feeds, vertical tabs and
    Unicode separators inside a line untouched. A final newline does not
    produce an empty trailing line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def normalize_source(source: str, hidden_line_prefix: str = "# ") -> str:
    """Strip one hidden-line marker from the start of each line.

    Lines are rejoined with a single ``\\n``. Only the marker is removed,
    never the code that follows it, so ``# let x = 1;`` becomes
    ``let x = 1;``.
    """
    return "\n".join(
        line.removeprefix(hidden_line_prefix) for line in split_lines(source)
    )


def manifest_hash(manifest: str) -> str:
    """Hash a rendered toolchain manifest."""
    return sha256_hex(manifest.encode("utf-8"))


def iceberg_digest(normalized_source: str, environment_hash: str) -> str:
    """SHA-256 of the normalized source salted with the environment hash."""
    return sha256_hex(f"{normalized_source}{environment_hash}".encode("utf-8"))

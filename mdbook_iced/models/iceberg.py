"""Artifact handle for one compiled, web-deployable example."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Iceberg(BaseModel):
    """A content-addressed handle to a compiled example.

    The digest is the SHA-256 hex of the normalized source salted with the
    environment's manifest hash. It is both the identity of the handle and
    the directory name of the artifact in the cache and release trees.
    """

    model_config = ConfigDict(frozen=True)

    digest: str

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Iceberg):
            return NotImplemented
        return self.digest < other.digest

    def __str__(self) -> str:
        return self.digest

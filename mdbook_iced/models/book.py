"""mdBook preprocessor protocol models.

Only the context is modelled strictly. Book items are kept as the plain
JSON data mdBook sends so that fields this preprocessor does not know about
survive the round trip untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class PreprocessorContext(BaseModel):
    """The first element of the ``[context, book]`` pair mdBook writes to stdin."""

    model_config = ConfigDict(frozen=True, extra="allow")

    root: Path
    config: dict[str, Any] = {}
    renderer: str = "html"
    mdbook_version: str = ""

    def preprocessor_config(self, name: str) -> dict[str, Any] | None:
        """Return the ``[preprocessor.<name>]`` table, if configured."""
        table = self.config.get("preprocessor", {}).get(name)
        return table if isinstance(table, dict) else None

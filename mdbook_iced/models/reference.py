"""Pinned git reference for the iced dependency: the cache salt."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConfigurationError(RuntimeError):
    """Raised when the preprocessor configuration is missing or malformed."""


class ReferenceKind(str, Enum):
    """Which kind of git reference pins the iced dependency."""

    REVISION = "rev"
    BRANCH = "branch"
    TAG = "tag"


class Reference(BaseModel):
    """Exactly one of a revision, branch or tag.

    The kind doubles as the ``Cargo.toml`` key used to pin the git
    dependency, so rendering is ``{kind} = "{value}"``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    value: str = Field(min_length=1)

    @classmethod
    def from_config(cls, table: dict[str, Any]) -> Reference:
        """Parse the ``[preprocessor.iced]`` table.

        ``rev`` takes precedence over ``branch``, which takes precedence
        over ``tag``. Non-string or empty values are ignored.
        """
        for kind in ReferenceKind:
            value = table.get(kind.value)
            if isinstance(value, str) and value:
                return cls(kind=kind, value=value)

        raise ConfigurationError(
            "No Git reference found for `iced` in the preprocessor configuration. "
            "Please, specify a `rev`, `branch` or `tag`."
        )

    def render(self) -> str:
        """Render as a ``Cargo.toml`` inline-table entry."""
        return f'{self.kind.value} = "{self.value}"'

"""Jinja2 templates shipped with the package.

``Cargo.toml.j2`` is the toolchain manifest, ``library.html`` is the
bootstrap snippet injected once per page and ``embed.html`` is the per-block
embed.
"""

from __future__ import annotations

from functools import lru_cache

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from mdbook_iced.models.iceberg import Iceberg
from mdbook_iced.models.reference import Reference


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("mdbook_iced", "templates"),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_manifest(reference: Reference) -> str:
    """Render ``Cargo.toml`` with the iced dependency pinned to *reference*."""
    template = _environment().get_template("Cargo.toml.j2")
    return template.render(git_reference=reference.render())


def render_library() -> str:
    """Render the shared runtime bootstrap snippet."""
    return _environment().get_template("library.html").render()


def render_embed(iceberg: Iceberg, embed_id: int, height: str) -> str:
    """Render the embed snippet for one compiled example."""
    template = _environment().get_template("embed.html")
    return template.render(hash=iceberg.digest, id=embed_id, height=height)

"""Preprocessor run: drives the transformer over a whole book.

Order of a run:
    validate context -> set up environment -> transform every chapter
        -> prune the cache -> release live icebergs into ``src/.icebergs``

Garbage collection only happens after every chapter has been processed,
since only then is the set of live icebergs complete.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from mdbook_iced.config import settings
from mdbook_iced.core.compiler import Compiler
from mdbook_iced.core.environment import Environment, workspace_dir
from mdbook_iced.core.toolchain import Toolchain
from mdbook_iced.core.transformer import ChapterTransformer, DocumentError
from mdbook_iced.models.book import PreprocessorContext
from mdbook_iced.models.iceberg import Iceberg
from mdbook_iced.models.reference import ConfigurationError, Reference

logger = logging.getLogger(__name__)

PREPROCESSOR_NAME = "iced"


def is_supported(renderer: str) -> bool:
    """Whether the preprocessor can run for *renderer*."""
    return renderer in settings.supported_renderers


def release_dir(root: Path) -> Path:
    """Where released icebergs are published within the book sources."""
    return Path(root) / "src" / settings.release_dir_name


def check_version(mdbook_version: str) -> None:
    """Raise if the host mdBook is not a compatible release."""
    expected = settings.mdbook_version_prefix.split(".")
    actual = mdbook_version.split(".")
    if actual[: len(expected)] != expected:
        raise ConfigurationError(
            f"mdbook-iced supports mdBook {settings.mdbook_version_prefix}.x, "
            f"but the book is built with mdBook {mdbook_version or 'unknown'}"
        )


def iter_chapters(items: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield every chapter in *items*, depth first.

    Separators and part titles are skipped; nested ``sub_items`` are walked.
    """
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("Chapter"), dict):
            chapter = item["Chapter"]
            yield chapter
            yield from iter_chapters(chapter.get("sub_items") or [])


def _book_items(book: dict[str, Any]) -> list[Any]:
    for key in ("sections", "items"):
        items = book.get(key)
        if isinstance(items, list):
            return items
    raise DocumentError("Book has no `sections` to preprocess")


def run(
    context: PreprocessorContext,
    book: dict[str, Any],
    *,
    toolchain: Toolchain | None = None,
) -> dict[str, Any]:
    """Compile the iced examples of *book* and splice in their embeds.

    The book is modified in place and returned. Compile failures only drop
    the embed of the offending block; every other error aborts the run.
    """
    check_version(context.mdbook_version)

    table = context.preprocessor_config(PREPROCESSOR_NAME)
    if table is None:
        raise ConfigurationError("mdbook-iced configuration not found")

    reference = Reference.from_config(table)
    environment = Environment.set_up(context.root, reference)
    compiler = Compiler(environment, toolchain)
    transformer = ChapterTransformer(compiler)

    icebergs: set[Iceberg] = set()

    for chapter in iter_chapters(_book_items(book)):
        content = chapter.get("content")
        if not isinstance(content, str):
            raise DocumentError(f"Chapter {chapter.get('name')!r} has no content")

        chapter["content"], found = transformer.transform(content)
        icebergs |= found

    target = release_dir(context.root)
    target.mkdir(parents=True, exist_ok=True)

    compiler.retain(icebergs)
    compiler.release(icebergs, target)

    logger.info(
        "Embedded %d examples backed by %d icebergs",
        transformer.embeds_emitted,
        len(icebergs),
    )
    return book


def clean(root: Path) -> list[Path]:
    """Remove the build workspace and released icebergs of a book.

    Returns the directories that were removed; missing ones are skipped.
    """
    removed: list[Path] = []
    for directory in (workspace_dir(root), release_dir(root)):
        if directory.exists():
            shutil.rmtree(directory)
            removed.append(directory)
            logger.info("Removed %s", directory)
    return removed

"""Garbage collection and copying for iceberg directory trees.

Both the cache store and the release directory are flat directories whose
children are named by iceberg digest. ``retain`` prunes everything that is
not live; ``copy_missing`` merges one artifact tree into another without
touching files that are already there.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from mdbook_iced.models.iceberg import Iceberg

logger = logging.getLogger(__name__)


def retain(directory: Path, icebergs: Iterable[Iceberg]) -> list[Path]:
    """Delete every child of *directory* not named by a live iceberg.

    Deletion is recursive and irreversible. Returns the deleted paths.
    Raises ``FileNotFoundError`` if *directory* does not exist.
    """
    live = {iceberg.digest for iceberg in icebergs}
    deleted: list[Path] = []

    for entry in sorted(Path(directory).iterdir()):
        if entry.name in live:
            continue

        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()

        deleted.append(entry)

    if deleted:
        logger.info("Pruned %d stale entries from %s", len(deleted), directory)
    return deleted


def _copy_if_missing(src: str, dst: str) -> str:
    if not Path(dst).exists():
        shutil.copy2(src, dst)
    return dst


def copy_missing(source: Path, target: Path) -> None:
    """Recursively copy *source* into *target*, skipping existing files."""
    shutil.copytree(
        source,
        target,
        copy_function=_copy_if_missing,
        dirs_exist_ok=True,
    )

"""Build environment: the pinned toolchain configuration for a run.

The environment owns the cargo workspace under ``<root>/target/icebergs``
and identifies the toolchain configuration by hashing the rendered
``Cargo.toml``. Changing the pinned iced reference changes that hash and
with it every iceberg digest, which is how the cache is invalidated when
the toolchain configuration changes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from mdbook_iced.core.hasher import manifest_hash
from mdbook_iced.core.markup import render_manifest
from mdbook_iced.models.reference import Reference

logger = logging.getLogger(__name__)


def workspace_dir(root: Path) -> Path:
    """Location of the cargo workspace for a book rooted at *root*."""
    return Path(root) / "target" / "icebergs"


class Environment(BaseModel):
    """Immutable handle on a prepared build workspace.

    Use :meth:`set_up` rather than constructing directly.
    """

    model_config = ConfigDict(frozen=True)

    reference: Reference
    build_dir: Path
    src_dir: Path
    artifacts_dir: Path
    manifest: str
    manifest_hash: str

    @property
    def source_file(self) -> Path:
        """The single source file every compile overwrites."""
        return self.src_dir / "main.rs"

    @classmethod
    def set_up(cls, root: Path, reference: Reference) -> Environment:
        """Create the workspace under *root* and write the pinned manifest.

        Directory creation is idempotent. Filesystem errors propagate.
        """
        build_dir = workspace_dir(root)
        src_dir = build_dir / "src"
        artifacts_dir = build_dir / "target" / "mdbook"

        for directory in (build_dir, src_dir, artifacts_dir):
            directory.mkdir(parents=True, exist_ok=True)

        manifest = render_manifest(reference)
        (build_dir / "Cargo.toml").write_text(manifest.lstrip(), encoding="utf-8")

        environment = cls(
            reference=reference,
            build_dir=build_dir,
            src_dir=src_dir,
            artifacts_dir=artifacts_dir,
            manifest=manifest,
            manifest_hash=manifest_hash(manifest),
        )
        logger.info(
            "Prepared iced workspace at %s (%s, manifest %s)",
            build_dir,
            reference.render(),
            environment.manifest_hash[:12],
        )
        return environment

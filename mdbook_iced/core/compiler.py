"""Content-addressed compilation cache for iced examples.

Storage layout: {workspace}/target/mdbook/{digest}/ holding the files
``wasm-bindgen`` produced (``iceberg.js``, ``iceberg_bg.wasm``, ...).

The existence of the digest directory is the only cache index: an existing
entry is reused without recompiling or validating it. Entries are built in
a staging directory and renamed into place once both toolchain stages have
succeeded, so an interrupted run never leaves a half-built entry visible.

A compiler owns a single workspace source file. Calls to ``compile`` must
be serialized.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from mdbook_iced.config import settings
from mdbook_iced.core.environment import Environment
from mdbook_iced.core.hasher import iceberg_digest, normalize_source
from mdbook_iced.core.retention import copy_missing, retain
from mdbook_iced.core.toolchain import CargoToolchain, CompileError, Toolchain
from mdbook_iced.models.iceberg import Iceberg

logger = logging.getLogger(__name__)


class Compiler:
    """Compiles example sources into icebergs, at most once per digest.

    Parameters
    ----------
    environment:
        The prepared build environment; its manifest hash salts every digest.
    toolchain:
        Compile backend. Defaults to :class:`CargoToolchain`.
    hidden_line_prefix:
        Marker stripped from the start of each source line before hashing.
    """

    def __init__(
        self,
        environment: Environment,
        toolchain: Toolchain | None = None,
        *,
        hidden_line_prefix: str | None = None,
    ) -> None:
        self._environment = environment
        self._toolchain = toolchain or CargoToolchain()
        self._hidden_line_prefix = (
            settings.hidden_line_prefix
            if hidden_line_prefix is None
            else hidden_line_prefix
        )

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def artifacts_dir(self) -> Path:
        """The cache store."""
        return self._environment.artifacts_dir

    @property
    def staging_dir(self) -> Path:
        """Where entries are built before being renamed into the cache."""
        return self._environment.build_dir / "staging"

    def artifact_path(self, iceberg: Iceberg) -> Path:
        """Cache directory for *iceberg*."""
        return self.artifacts_dir / iceberg.digest

    def iceberg_for(self, source: str) -> tuple[Iceberg, str]:
        """Compute the iceberg for *source* without compiling.

        Returns the iceberg and the normalized source it was derived from.
        """
        code = normalize_source(source, self._hidden_line_prefix)
        digest = iceberg_digest(code, self._environment.manifest_hash)
        return Iceberg(digest=digest), code

    # ------------------------------------------------------------------
    # Compile
    # ------------------------------------------------------------------

    def compile(self, source: str) -> Iceberg:
        """Return the iceberg for *source*, compiling it on a cache miss.

        Raises :class:`CompileError` if the toolchain fails. Filesystem
        errors propagate as ``OSError``.
        """
        iceberg, code = self.iceberg_for(source)
        artifact_dir = self.artifact_path(iceberg)

        if artifact_dir.exists():
            logger.debug("Cache hit for iceberg %s", iceberg.digest[:12])
            return iceberg

        logger.info("Compiling iceberg %s", iceberg.digest[:12])
        self._environment.source_file.write_text(code, encoding="utf-8")

        staging = self.staging_dir / iceberg.digest
        if staging.exists():
            shutil.rmtree(staging)
        staging.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._toolchain.build(self._environment)
            self._toolchain.bind(self._environment, staging)
        except CompileError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if not staging.is_dir():
            raise CompileError(
                f"Toolchain produced no artifacts for iceberg {iceberg.digest}"
            )

        staging.rename(artifact_dir)
        return iceberg

    # ------------------------------------------------------------------
    # Retention and release
    # ------------------------------------------------------------------

    def retain(self, icebergs: Iterable[Iceberg]) -> list[Path]:
        """Prune cache entries for icebergs no longer referenced.

        Staging directories left behind by interrupted runs are swept too.
        """
        if self.staging_dir.is_dir():
            retain(self.staging_dir, ())
        return retain(self.artifacts_dir, icebergs)

    def release(self, icebergs: Iterable[Iceberg], target: Path) -> None:
        """Materialize exactly *icebergs* under *target*.

        Stale entries in *target* are pruned first. Every live iceberg is
        then copied from the cache, skipping files already present, so a
        partially released entry from an interrupted run is completed.
        """
        icebergs = sorted(set(icebergs))
        target = Path(target)
        target.mkdir(parents=True, exist_ok=True)

        retain(target, icebergs)

        for iceberg in icebergs:
            output = target / iceberg.digest
            if not output.exists():
                logger.info("Releasing iceberg %s", iceberg.digest[:12])
            copy_missing(self.artifact_path(iceberg), output)

"""Shared test fixtures for mdbook-iced."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mdbook_iced.core.compiler import Compiler
from mdbook_iced.core.environment import Environment
from mdbook_iced.core.toolchain import CompileError
from mdbook_iced.core.transformer import ChapterTransformer
from mdbook_iced.models.reference import Reference, ReferenceKind

ARTIFACT_FILES = ("iceberg.js", "iceberg_bg.wasm", "snippets/loader.js")


class FakeToolchain:
    """Stands in for cargo + wasm-bindgen.

    Records every invocation. Fails the build for empty sources and for
    sources containing ``compile_error!``; fails binding when
    ``fail_bind`` is set.
    """

    def __init__(self) -> None:
        self.sources: list[str] = []
        self.builds = 0
        self.binds = 0
        self.fail_bind = False

    def build(self, environment: Environment) -> None:
        self.builds += 1
        source = environment.source_file.read_text(encoding="utf-8")
        self.sources.append(source)
        if not source.strip() or "compile_error!" in source:
            raise CompileError("error: aborting due to 1 previous error")

    def bind(self, environment: Environment, out_dir: Path) -> None:
        self.binds += 1
        if self.fail_bind:
            out_dir.mkdir(parents=True)
            (out_dir / "iceberg.js").write_text("partial", encoding="utf-8")
            raise CompileError("wasm-bindgen exited with status 1")
        for name in ARTIFACT_FILES:
            path = out_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"{name} for {environment.source_file.name}", encoding="utf-8")


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary book root."""
    return tmp_path


@pytest.fixture
def reference() -> Reference:
    return Reference(kind=ReferenceKind.REVISION, value="a1b2c3d")


@pytest.fixture
def environment(tmp_dir: Path, reference: Reference) -> Environment:
    """Provide a workspace set up under the temporary book root."""
    return Environment.set_up(tmp_dir, reference)


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def compiler(environment: Environment, toolchain: FakeToolchain) -> Compiler:
    """Provide a Compiler wired to the fake toolchain."""
    return Compiler(environment, toolchain)


@pytest.fixture
def transformer(compiler: Compiler) -> ChapterTransformer:
    return ChapterTransformer(compiler)


# ---------------------------------------------------------------------------
# Book factories: shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_chapter() -> Callable[..., dict[str, Any]]:
    """Factory fixture: build a book item wrapping one chapter."""

    def _factory(
        name: str,
        content: str,
        sub_items: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return {
            "Chapter": {
                "name": name,
                "content": content,
                "number": None,
                "sub_items": sub_items or [],
                "path": f"{name.lower()}.md",
                "source_path": f"{name.lower()}.md",
                "parent_names": [],
            }
        }

    return _factory


@pytest.fixture
def make_context(tmp_dir: Path) -> Callable[..., dict[str, Any]]:
    """Factory fixture: build the mdBook context JSON for the temp book."""

    def _factory(
        iced: dict[str, Any] | None = None,
        mdbook_version: str = "0.4.40",
    ) -> dict[str, Any]:
        preprocessor = {} if iced is None else {"iced": iced}
        return {
            "root": str(tmp_dir),
            "config": {
                "book": {"title": "Interactive iced", "src": "src"},
                "preprocessor": preprocessor,
            },
            "renderer": "html",
            "mdbook_version": mdbook_version,
        }

    return _factory

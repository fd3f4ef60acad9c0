"""Tests for the preprocessor run: book walking, version checks, GC, clean."""

from __future__ import annotations

from pathlib import Path

import pytest

from mdbook_iced.core.environment import workspace_dir
from mdbook_iced.core.preprocessor import (
    check_version,
    clean,
    is_supported,
    iter_chapters,
    release_dir,
    run,
)
from mdbook_iced.core.transformer import DocumentError
from mdbook_iced.models.book import PreprocessorContext
from mdbook_iced.models.reference import ConfigurationError

EXAMPLE = "```rust,iced\nfn main() {}\n```\n"


class TestSupport:
    def test_html_supported(self):
        assert is_supported("html") is True

    def test_other_renderers_unsupported(self):
        assert is_supported("latex") is False

    def test_compatible_version(self):
        check_version("0.4.40")

    @pytest.mark.parametrize("version", ["0.5.0", "1.0.0", "", "0.40.1"])
    def test_incompatible_version(self, version: str):
        with pytest.raises(ConfigurationError):
            check_version(version)


class TestIterChapters:
    def test_walks_nested_chapters(self, make_chapter):
        items = [
            make_chapter("Intro", ""),
            "Separator",
            {"PartTitle": "Guide"},
            make_chapter("Guide", "", [make_chapter("Widgets", "", [make_chapter("Text", "")])]),
        ]
        assert [c["name"] for c in iter_chapters(items)] == ["Intro", "Guide", "Widgets", "Text"]


class TestRun:
    def test_transforms_every_chapter(self, make_context, make_chapter, toolchain):
        book = {
            "sections": [
                make_chapter("Intro", "# Intro\n"),
                make_chapter("Guide", EXAMPLE, [make_chapter("Nested", "```rust,iced\nfn b() {}\n```\n")]),
            ],
            "__non_exhaustive": None,
        }
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        result = run(context, book, toolchain=toolchain)

        guide = result["sections"][1]["Chapter"]
        nested = guide["sub_items"][0]["Chapter"]
        assert result["sections"][0]["Chapter"]["content"] == "# Intro\n"
        assert 'id="iceberg-0"' in guide["content"]
        assert 'id="iceberg-1"' in nested["content"]
        assert result["__non_exhaustive"] is None

    def test_release_matches_live_icebergs(self, make_context, make_chapter, toolchain, tmp_dir):
        context = PreprocessorContext.model_validate(make_context({"tag": "0.13.1"}))
        run(context, {"sections": [make_chapter("Guide", EXAMPLE)]}, toolchain=toolchain)

        released = {p.name for p in release_dir(tmp_dir).iterdir()}
        cached = {p.name for p in (workspace_dir(tmp_dir) / "target" / "mdbook").iterdir()}
        assert len(released) == 1
        assert released == cached

    def test_removed_example_is_collected(self, make_context, make_chapter, toolchain, tmp_dir):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        run(context, {"sections": [make_chapter("Guide", EXAMPLE)]}, toolchain=toolchain)
        run(context, {"sections": [make_chapter("Guide", "No examples anymore.\n")]}, toolchain=toolchain)

        assert list(release_dir(tmp_dir).iterdir()) == []
        assert list((workspace_dir(tmp_dir) / "target" / "mdbook").iterdir()) == []

    def test_rerun_hits_cache(self, make_context, make_chapter, toolchain):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        for _ in range(2):
            run(context, {"sections": [make_chapter("Guide", EXAMPLE)]}, toolchain=toolchain)
        assert toolchain.builds == 1

    def test_missing_configuration(self, make_context, make_chapter, toolchain, tmp_dir):
        context = PreprocessorContext.model_validate(make_context(None))
        with pytest.raises(ConfigurationError, match="configuration not found"):
            run(context, {"sections": [make_chapter("Guide", EXAMPLE)]}, toolchain=toolchain)
        assert not workspace_dir(tmp_dir).exists()

    def test_malformed_reference_before_filesystem_work(self, make_context, toolchain, tmp_dir):
        context = PreprocessorContext.model_validate(make_context({"command": "mdbook-iced"}))
        with pytest.raises(ConfigurationError):
            run(context, {"sections": []}, toolchain=toolchain)
        assert not workspace_dir(tmp_dir).exists()

    def test_incompatible_mdbook(self, make_context, toolchain):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}, mdbook_version="0.5.0"))
        with pytest.raises(ConfigurationError):
            run(context, {"sections": []}, toolchain=toolchain)

    def test_malformed_book(self, make_context, toolchain):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        with pytest.raises(DocumentError):
            run(context, {"chapters": []}, toolchain=toolchain)

    def test_chapter_without_content(self, make_context, toolchain):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        with pytest.raises(DocumentError):
            run(context, {"sections": [{"Chapter": {"name": "Draft"}}]}, toolchain=toolchain)


class TestClean:
    def test_removes_workspace_and_release(self, make_context, make_chapter, toolchain, tmp_dir: Path):
        context = PreprocessorContext.model_validate(make_context({"rev": "abc"}))
        run(context, {"sections": [make_chapter("Guide", EXAMPLE)]}, toolchain=toolchain)

        removed = clean(tmp_dir)
        assert set(removed) == {workspace_dir(tmp_dir), release_dir(tmp_dir)}
        assert not workspace_dir(tmp_dir).exists()
        assert not release_dir(tmp_dir).exists()

    def test_nothing_to_clean(self, tmp_dir: Path):
        assert clean(tmp_dir) == []

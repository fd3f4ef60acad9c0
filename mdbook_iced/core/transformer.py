"""Chapter transformer: turns iced code blocks into interactive embeds.

A chapter is parsed with markdown-it-py and flattened into a linear stream
of structural events. A two-state machine walks the stream:

    OUTSIDE --(start of an eligible fence)--> INSIDE_ELIGIBLE_BLOCK
    INSIDE_ELIGIBLE_BLOCK --(end of fence)--> OUTSIDE

While inside, the fence's text is accumulated. On leaving, the source is
compiled; on success an embed snippet (preceded by the library bootstrap
the first time on the page) is spliced in right after the code block.
Every input event is passed through, so the original code block always
renders. The stream is then serialized back to Markdown with mdformat.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import NamedTuple

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat.plugins import PARSER_EXTENSIONS
from mdformat.renderer import MDRenderer
from pydantic import BaseModel, ConfigDict

from mdbook_iced.config import settings
from mdbook_iced.core.compiler import Compiler
from mdbook_iced.core.hasher import split_lines
from mdbook_iced.core.markup import render_embed, render_library
from mdbook_iced.core.toolchain import CompileError
from mdbook_iced.models.iceberg import Iceberg

logger = logging.getLogger(__name__)


class DocumentError(RuntimeError):
    """Raised when a chapter cannot be parsed or serialized back."""


class BlockState(str, Enum):
    OUTSIDE = "outside"
    INSIDE_ELIGIBLE_BLOCK = "inside_eligible_block"


class EventKind(str, Enum):
    CODE_BLOCK_START = "code_block_start"
    TEXT = "text"
    CODE_BLOCK_END = "code_block_end"
    HTML = "html"
    OTHER = "other"


class Event(NamedTuple):
    """One structural event in a chapter.

    ``token`` is the markdown-it token the event re-serializes to. Text and
    end events of a fence carry no token of their own: the fence token on
    the start event already holds the whole block.
    """

    kind: EventKind
    token: Token | None = None
    text: str = ""


class FenceOptions(BaseModel):
    """Options parsed from an eligible fence label."""

    model_config = ConfigDict(frozen=True)

    height: str | None = None


# ---------------------------------------------------------------------------
# Fence labels
# ---------------------------------------------------------------------------


def parse_fence_label(
    label: str,
    language: str | None = None,
    modifier: str | None = None,
) -> FenceOptions | None:
    """Return options if *label* opts the block into compilation.

    A label is eligible when it starts with the language tag and one of its
    comma-separated modifiers starts with the opt-in modifier, e.g.
    ``rust,iced`` or ``rust,ignore,iced(height=350px)``.
    """
    language = language or settings.language
    modifier = modifier or settings.modifier

    label = label.strip()
    if not label.startswith(language):
        return None

    marker = next(
        (part.strip() for part in label.split(",") if part.strip().startswith(modifier)),
        None,
    )
    if marker is None:
        return None

    arguments = marker.removeprefix(modifier)
    if not (arguments.startswith("(") and arguments.endswith(")")):
        return FenceOptions()

    _, found, height = arguments[1:-1].partition("height=")
    if not found:
        return FenceOptions()
    return FenceOptions(height=height.strip() or None)


# ---------------------------------------------------------------------------
# Event stream
# ---------------------------------------------------------------------------


def iter_events(tokens: Iterable[Token]) -> Iterator[Event]:
    """Flatten markdown-it tokens into structural events."""
    for token in tokens:
        if token.type == "fence":
            yield Event(kind=EventKind.CODE_BLOCK_START, token=token, text=token.info)
            for line in split_lines(token.content):
                yield Event(kind=EventKind.TEXT, text=line)
            yield Event(kind=EventKind.CODE_BLOCK_END)
        else:
            yield Event(kind=EventKind.OTHER, token=token)


def collect_tokens(events: Iterable[Event]) -> list[Token]:
    """Reassemble the token list from an event stream."""
    return [event.token for event in events if event.token is not None]


def html_event(html: str, level: int = 0) -> Event:
    token = Token("html_block", "", 0, content=html, block=True, level=level)
    return Event(kind=EventKind.HTML, token=token)


def build_parser(extensions: Iterable[str] | None = None) -> MarkdownIt:
    """A CommonMark parser wired to mdformat's Markdown renderer.

    *extensions* name mdformat parser extensions (``gfm``, ``footnote``...)
    enabled on top of CommonMark so that the syntax mdBook accepts survives
    the round trip instead of being escaped as literal text.
    """
    names = settings.markdown_extensions if extensions is None else extensions

    parser = MarkdownIt("commonmark", renderer_cls=MDRenderer)
    parser.options["mdformat"] = {"wrap": "keep", "number": False, "end_of_line": "lf"}
    parser.options["store_labels"] = True
    parser.options["codeformatters"] = {}
    parser.options["parser_extension"] = []

    for name in names:
        try:
            plugin = PARSER_EXTENSIONS[name]
        except KeyError:
            raise DocumentError(
                f"Markdown extension {name!r} is not installed"
            ) from None
        if plugin not in parser.options["parser_extension"]:
            parser.options["parser_extension"].append(plugin)
            plugin.update_mdit(parser)
    return parser


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------


class ChapterTransformer:
    """Transforms chapters for one run of the preprocessor.

    The transformer owns the embed id counter for the run, so ids are unique
    across every page it processes.

    Parameters
    ----------
    compiler:
        Compiles the accumulated source of each eligible block.
    default_height:
        Embed height used when the fence label does not set one.
    """

    def __init__(
        self,
        compiler: Compiler,
        *,
        language: str | None = None,
        modifier: str | None = None,
        default_height: str | None = None,
    ) -> None:
        self._compiler = compiler
        self._language = language or settings.language
        self._modifier = modifier or settings.modifier
        self._default_height = default_height or settings.default_height
        self._parser = build_parser()
        self._next_embed_id = 0

    @property
    def embeds_emitted(self) -> int:
        return self._next_embed_id

    def transform(self, content: str) -> tuple[str, set[Iceberg]]:
        """Transform one chapter.

        Returns the new Markdown and the icebergs its embeds reference.
        """
        env: dict = {}
        try:
            tokens = self._parser.parse(content, env)
        except Exception as exc:
            raise DocumentError(f"Failed to parse chapter: {exc}") from exc

        events, icebergs = self.process(iter_events(tokens))

        try:
            output = self._parser.renderer.render(
                collect_tokens(events), self._parser.options, env
            )
        except Exception as exc:
            raise DocumentError(f"Failed to serialize chapter: {exc}") from exc

        return output, icebergs

    def process(self, events: Iterable[Event]) -> tuple[list[Event], set[Iceberg]]:
        """Run the state machine over *events*."""
        state = BlockState.OUTSIDE
        segments: list[str] = []
        options = FenceOptions()
        fence_level = 0
        library_emitted = False

        output: list[Event] = []
        icebergs: set[Iceberg] = set()

        for event in events:
            output.append(event)

            if state is BlockState.OUTSIDE:
                if event.kind is not EventKind.CODE_BLOCK_START:
                    continue
                parsed = parse_fence_label(event.text, self._language, self._modifier)
                if parsed is not None:
                    state = BlockState.INSIDE_ELIGIBLE_BLOCK
                    segments = []
                    options = parsed
                    fence_level = event.token.level if event.token is not None else 0
                continue

            if event.kind is EventKind.TEXT:
                segments.append(event.text)
            elif event.kind is EventKind.CODE_BLOCK_END:
                state = BlockState.OUTSIDE
                iceberg = self._compile("\n".join(segments))
                if iceberg is None:
                    continue

                icebergs.add(iceberg)
                if not library_emitted:
                    output.append(html_event(render_library(), fence_level))
                    library_emitted = True

                embed = render_embed(
                    iceberg,
                    self._next_embed_id,
                    options.height or self._default_height,
                )
                output.append(html_event(embed, fence_level))
                self._next_embed_id += 1

        return output, icebergs

    def _compile(self, source: str) -> Iceberg | None:
        try:
            return self._compiler.compile(source)
        except CompileError as exc:
            logger.warning("Skipping embed for example that failed to compile: %s", exc)
            return None

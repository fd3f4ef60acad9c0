"""Main Typer application: the ``mdbook-iced`` preprocessor executable.

Entry point: ``mdbook-iced`` (configured via pyproject.toml scripts).

Without a subcommand, reads mdBook's ``[context, book]`` JSON from stdin
and writes the processed book to stdout. Everything human-readable goes
to stderr, since stdout belongs to mdBook.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from mdbook_iced.config import settings
from mdbook_iced.core.preprocessor import clean, is_supported, run
from mdbook_iced.core.transformer import DocumentError
from mdbook_iced.models.book import PreprocessorContext
from mdbook_iced.models.reference import ConfigurationError

console = Console(stderr=True)

app = typer.Typer(
    name="mdbook-iced",
    help="An mdBook preprocessor to turn iced code blocks into interactive examples.",
    rich_markup_mode="rich",
    add_completion=False,
)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _read_input() -> tuple[PreprocessorContext, dict]:
    payload = json.load(sys.stdin)
    if not (isinstance(payload, list) and len(payload) == 2):
        raise DocumentError("Expected a [context, book] pair on stdin")

    context, book = payload
    if not isinstance(book, dict):
        raise DocumentError("Expected the book to be a JSON object")
    return PreprocessorContext.model_validate(context), book


@app.callback(invoke_without_command=True)
def preprocess_cmd(ctx: typer.Context) -> None:
    """Preprocess the book mdBook writes to stdin."""
    _configure_logging()
    if ctx.invoked_subcommand is not None:
        return

    try:
        context, book = _read_input()
        processed = run(context, book)
    except (ConfigurationError, DocumentError, ValueError, OSError) as exc:
        console.print(f"[bold red]mdbook-iced:[/bold red] {exc}")
        raise typer.Exit(code=1)

    sys.stdout.write(json.dumps(processed))
    sys.stdout.flush()


@app.command(name="supports", help="Check whether a renderer is supported by this preprocessor.")
def supports_cmd(
    renderer: str = typer.Argument(..., help="Name of the mdBook renderer."),
) -> None:
    """Exit with status 0 if *renderer* is supported, 1 otherwise."""
    raise typer.Exit(code=0 if is_supported(renderer) else 1)


@app.command(
    name="clean",
    help="Cleans the artifacts and binaries produced by this preprocessor in the current book.",
)
def clean_cmd(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Root directory of the book."),
) -> None:
    """Remove the build workspace and the released icebergs."""
    try:
        removed = clean(root)
    except OSError as exc:
        console.print(f"[bold red]Clean failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not removed:
        console.print("[dim]Nothing to clean.[/dim]")
    for directory in removed:
        console.print(f"[green]Removed[/green] {directory}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

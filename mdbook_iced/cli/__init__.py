"""mdbook-iced CLI: Typer-based command-line interface.

Provides the ``mdbook-iced`` command: the preprocessor itself plus the
``supports`` and ``clean`` subcommands mdBook and book authors use.
"""

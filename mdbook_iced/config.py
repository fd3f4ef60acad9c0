"""Runtime configuration: env-driven.

Centralized settings using pydantic-settings. Reads from a .env file and
MDBOOK_ICED_* environment variables. The pinned iced reference itself is
per-book and lives in the ``[preprocessor.iced]`` table of ``book.toml``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class IcedSettings(BaseSettings):
    """Preprocessor settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MDBOOK_ICED_LOG_LEVEL=DEBUG
        export MDBOOK_ICED_CARGO=/opt/rust/bin/cargo
        export MDBOOK_ICED_DEFAULT_HEIGHT=300px
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MDBOOK_ICED_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Fence label recognition
    language: str = "rust"
    modifier: str = "iced"
    hidden_line_prefix: str = "# "
    default_height: str = "200px"

    # mdformat parser extensions layered over CommonMark
    markdown_extensions: list[str] = ["gfm", "footnote"]

    # External toolchain
    cargo: str = "cargo"
    wasm_bindgen: str = "wasm-bindgen"
    target_triple: str = "wasm32-unknown-unknown"

    # Host integration
    release_dir_name: str = ".icebergs"
    supported_renderers: list[str] = ["html"]
    mdbook_version_prefix: str = "0.4"


# Module-level singleton: import as `from mdbook_iced.config import settings`
settings = IcedSettings()

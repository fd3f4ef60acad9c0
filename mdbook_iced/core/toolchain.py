"""External compiler toolchain backends.

Defines the ``Toolchain`` Protocol the compiler drives, along with the
default ``CargoToolchain`` that shells out to ``cargo`` and
``wasm-bindgen``. Tests substitute a fake that satisfies the same Protocol.

Both subprocesses have their stdout forwarded to our stderr: when running
as an mdBook preprocessor, stdout is reserved for the processed book.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Protocol, runtime_checkable

from mdbook_iced.config import settings
from mdbook_iced.core.environment import Environment

logger = logging.getLogger(__name__)

BINARY_NAME = "iceberg"


class CompileError(RuntimeError):
    """Raised when either stage of the external toolchain fails."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Toolchain(Protocol):
    """Protocol for compile backends.

    ``build`` compiles the workspace source file to a WebAssembly binary;
    ``bind`` generates the web bindings for that binary into *out_dir*.
    Both raise :class:`CompileError` on failure.
    """

    def build(self, environment: Environment) -> None:
        ...

    def bind(self, environment: Environment, out_dir: Path) -> None:
        ...


# ---------------------------------------------------------------------------
# Default implementation
# ---------------------------------------------------------------------------


def _stream(args: list[str], cwd: Path, env: dict[str, str] | None = None) -> None:
    """Run *args* to completion, copying its stdout to our stderr."""
    logger.debug("Running %s in %s", " ".join(args), cwd)
    try:
        process = subprocess.Popen(
            args,
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise CompileError(f"Failed to spawn `{args[0]}`: {exc}") from exc

    assert process.stdout is not None
    with process.stdout:
        for line in process.stdout:
            sys.stderr.write(line)

    returncode = process.wait()
    if returncode != 0:
        raise CompileError(f"`{' '.join(args)}` exited with status {returncode}")


class CargoToolchain:
    """Builds with ``cargo`` and binds with ``wasm-bindgen --target web``."""

    def __init__(
        self,
        cargo: str | None = None,
        wasm_bindgen: str | None = None,
        target_triple: str | None = None,
    ) -> None:
        self.cargo = cargo or settings.cargo
        self.wasm_bindgen = wasm_bindgen or settings.wasm_bindgen
        self.target_triple = target_triple or settings.target_triple

    @property
    def binary_path(self) -> Path:
        """Path of the compiled binary, relative to the workspace."""
        return Path("target") / self.target_triple / "release" / f"{BINARY_NAME}.wasm"

    def build(self, environment: Environment) -> None:
        env = {**os.environ, "RUSTFLAGS": ""}
        _stream(
            [self.cargo, "build", "--release", "--target", self.target_triple],
            cwd=environment.build_dir,
            env=env,
        )

    def bind(self, environment: Environment, out_dir: Path) -> None:
        _stream(
            [
                self.wasm_bindgen,
                "--target",
                "web",
                "--no-typescript",
                "--out-dir",
                str(out_dir),
                str(self.binary_path),
            ],
            cwd=environment.build_dir,
        )

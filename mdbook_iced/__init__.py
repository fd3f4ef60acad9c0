"""mdbook-iced: interactive iced examples for mdBook.

Compiles ``rust,iced`` code blocks to WebAssembly through a content-addressed
cache, releases the artifacts next to the book sources, and embeds a runnable
example right after each block.
"""

__version__ = "0.1.0"

from mdbook_iced.core.compiler import Compiler
from mdbook_iced.core.environment import Environment
from mdbook_iced.core.preprocessor import clean, is_supported, run
from mdbook_iced.models.iceberg import Iceberg
from mdbook_iced.models.reference import Reference

__all__ = [
    "Compiler",
    "Environment",
    "Iceberg",
    "Reference",
    "clean",
    "is_supported",
    "run",
    "__version__",
]

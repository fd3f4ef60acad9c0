"""mdbook-iced data models: Pydantic v2, frozen (immutable)."""

from mdbook_iced.models.book import PreprocessorContext
from mdbook_iced.models.iceberg import Iceberg
from mdbook_iced.models.reference import ConfigurationError, Reference, ReferenceKind

__all__ = [
    # book
    "PreprocessorContext",
    # iceberg
    "Iceberg",
    # reference
    "ConfigurationError",
    "Reference",
    "ReferenceKind",
]

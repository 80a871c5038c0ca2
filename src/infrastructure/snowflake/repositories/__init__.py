"""
Repository pattern implementations over the document store.

Repositories translate between stored documents and domain models.
"""

from .records import (
    MAX_IN_FILTER_VALUES,
    Document,
    DocumentStore,
    FieldFilter,
    RecordRepository,
    SnowflakeConfig,
)

__all__ = [
    "MAX_IN_FILTER_VALUES",
    "Document",
    "DocumentStore",
    "FieldFilter",
    "RecordRepository",
    "SnowflakeConfig",
]

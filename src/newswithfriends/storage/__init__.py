"""Persistence interfaces and the bundled store implementations."""

from __future__ import annotations

from .base import SourceNotFoundError, SourceStore, StoryStore  # noqa: F401
from .blob import DEFAULT_BLOB_ROOT, BlobStore, ensure_blob_root, resolve_blob_root  # noqa: F401
from .memory import InMemoryStore  # noqa: F401

__all__ = [
    "BlobStore",
    "DEFAULT_BLOB_ROOT",
    "InMemoryStore",
    "SourceNotFoundError",
    "SourceStore",
    "StoryStore",
    "ensure_blob_root",
    "resolve_blob_root",
]

"""Abstract persistence interfaces consumed by the scraping pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from newswithfriends.models import Source, Story

__all__ = ["SourceNotFoundError", "SourceStore", "StoryStore"]


class SourceNotFoundError(LookupError):
    """Raised when a source id is not known to the store."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"Source not found: {source_id}")
        self.source_id = source_id


class SourceStore(ABC):
    """CRUD for :class:`Source` records."""

    @abstractmethod
    def list_sources(self) -> List[Source]:
        pass

    @abstractmethod
    def get_source(self, source_id: str) -> Source:
        """Return the source or raise :class:`SourceNotFoundError`."""
        pass

    @abstractmethod
    def add_source(self, source: Source) -> Source:
        """Store a new source; ``ValueError`` if its homepage URL is taken."""
        pass

    @abstractmethod
    def update_source(self, source_id: str, changes: dict[str, Any]) -> Source:
        """Apply a partial update and return the stored result."""
        pass


class StoryStore(ABC):
    """Persistence for :class:`Story` records, unique on ``(source_id, url)``."""

    @abstractmethod
    def find_by_url(self, source_id: str, url: str) -> Optional[Story]:
        pass

    @abstractmethod
    def upsert(self, story: Story) -> Story:
        """Insert ``story`` or replace the record sharing its ``(source_id, url)``.

        A replaced record keeps its original ``id`` and ``created_at``.
        """
        pass

    @abstractmethod
    def archive_all_except(self, source_id: str, urls: Iterable[str]) -> int:
        """Archive the source's stories whose URL is not in ``urls``; return how many changed."""
        pass

    @abstractmethod
    def list_stories(self, source_id: str, *, include_archived: bool = False) -> List[Story]:
        """Return the source's stories ordered by ``in_page_rank``."""
        pass

    def flush(self) -> None:
        """Persist buffered changes. Stores that write through need not override this."""

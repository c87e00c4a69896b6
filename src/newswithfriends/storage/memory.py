"""Dictionary-backed implementation of both store interfaces."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Iterable, List, Optional, Tuple

from newswithfriends.models import Source, Story, utcnow
from newswithfriends.storage.base import SourceNotFoundError, SourceStore, StoryStore

logger = logging.getLogger(__name__)

__all__ = ["InMemoryStore"]

_StoryKey = Tuple[str, str]


class InMemoryStore(SourceStore, StoryStore):
    """Keeps sources and stories in process memory. Not shared across processes."""

    def __init__(self) -> None:
        self._sources: Dict[str, Source] = {}
        self._stories: Dict[_StoryKey, Story] = {}

    def _changed(self) -> None:
        """Hook invoked after every mutation."""

    # Sources -----------------------------------------------------------------

    def list_sources(self) -> List[Source]:
        return [source.model_copy() for source in self._sources.values()]

    def get_source(self, source_id: str) -> Source:
        try:
            return self._sources[source_id].model_copy()
        except KeyError:
            raise SourceNotFoundError(source_id) from None

    def add_source(self, source: Source) -> Source:
        if any(existing.homepage_url == source.homepage_url for existing in self._sources.values()):
            raise ValueError(f"A source with homepage {source.homepage_url} already exists")
        if source.id in self._sources:
            raise ValueError(f"A source with id {source.id} already exists")

        self._sources[source.id] = source.model_copy()
        self._changed()
        return source.model_copy()

    def update_source(self, source_id: str, changes: dict[str, Any]) -> Source:
        current = self.get_source(source_id)
        # Round trip through validation so homepage normalization still applies.
        updated = Source.model_validate({**current.model_dump(), **changes, "id": source_id})
        self._sources[source_id] = updated
        self._changed()
        return updated.model_copy()

    # Stories -----------------------------------------------------------------

    def find_by_url(self, source_id: str, url: str) -> Optional[Story]:
        story = self._stories.get((source_id, url))
        return story.model_copy() if story else None

    def upsert(self, story: Story) -> Story:
        key = (story.source_id, story.url)
        existing = self._stories.get(key)
        if existing is not None:
            story = story.model_copy(update={"id": existing.id, "created_at": existing.created_at})

        self._stories[key] = story.model_copy()
        self._changed()
        return story

    def archive_all_except(self, source_id: str, urls: Iterable[str]) -> int:
        keep = set(urls)
        now = utcnow()
        archived = 0
        for key, story in list(self._stories.items()):
            if story.source_id != source_id or story.url in keep or story.archived:
                continue
            self._stories[key] = story.model_copy(
                update={"archived": True, "in_page_rank": None, "updated_at": now}
            )
            archived += 1

        if archived:
            self._changed()
        return archived

    def list_stories(self, source_id: str, *, include_archived: bool = False) -> List[Story]:
        stories = [
            story.model_copy()
            for story in self._stories.values()
            if story.source_id == source_id and (include_archived or not story.archived)
        ]
        stories.sort(key=lambda story: story.in_page_rank if story.in_page_rank is not None else sys.maxsize)
        return stories

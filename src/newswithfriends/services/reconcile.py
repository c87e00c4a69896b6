"""Merge a fresh scrape into the stored stories of one source."""

from __future__ import annotations

import logging
from typing import Iterable, List

from newswithfriends.models import DraftStory, Story
from newswithfriends.storage import StoryStore

logger = logging.getLogger(__name__)

__all__ = ["dedupe_drafts", "reconcile_stories"]


def dedupe_drafts(drafts: Iterable[DraftStory]) -> List[DraftStory]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""

    seen: set[str] = set()
    unique: List[DraftStory] = []
    for draft in drafts:
        if draft.url in seen:
            logger.debug("Dropping repeated URL %s", draft.url)
            continue
        seen.add(draft.url)
        unique.append(draft)
    return unique


def reconcile_stories(store: StoryStore, source_id: str, drafts: Iterable[DraftStory]) -> List[Story]:
    """Upsert ``drafts`` in order and archive everything else for ``source_id``.

    ``in_page_rank`` is the 1-based position in the de-duplicated draft list.
    Afterwards exactly the URLs that were saved in this call are non-archived.
    """

    saved: List[Story] = []
    for rank, draft in enumerate(dedupe_drafts(drafts), start=1):
        try:
            existing = store.find_by_url(source_id, draft.url)
            if existing is not None:
                logger.debug("Updating existing story: %s", draft.url)
                story = existing.refreshed(draft, rank)
            else:
                logger.debug("Creating new story: %s", draft.url)
                story = Story.from_draft(draft, source_id, rank)
            saved.append(store.upsert(story))
        except Exception:  # noqa: BLE001 - keep saving the rest of the list
            logger.exception("Error saving story %s", draft.url)

    archived = store.archive_all_except(source_id, [story.url for story in saved])
    store.flush()
    logger.info("Saved %d stories and archived %d for source %s", len(saved), archived, source_id)
    return saved

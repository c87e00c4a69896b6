"""RSS/Atom ingestion into :class:`DraftStory` objects."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, List, Optional

import feedparser
from bs4 import BeautifulSoup

from newswithfriends.config import ScraperSettings
from newswithfriends.models import DraftStory, NewsTopic, Section, utcnow
from newswithfriends.services.http import FetchError, HttpFetcher
from newswithfriends.utils import decode_html_entities

logger = logging.getLogger(__name__)

__all__ = ["FeedError", "FeedResult", "RssStoryParser", "is_feed", "parse_feed"]

AUDIO_PLACEHOLDER = "Audio recording"
VIDEO_PLACEHOLDER = "Video recording"


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed at all."""


@dataclass
class FeedResult:
    """Stories read from a feed plus the channel image, if the feed declares one."""

    stories: List[DraftStory] = field(default_factory=list)
    image_url: Optional[str] = None


def parse_feed(content: bytes | str) -> feedparser.FeedParserDict:
    return feedparser.parse(content)


def is_feed(content: bytes | str) -> bool:
    """Return ``True`` when ``content`` parses as an RSS or Atom document."""

    parsed = parse_feed(content)
    return bool(parsed.get("version")) or bool(parsed.get("entries"))


def _strip_html(value: str) -> str:
    return BeautifulSoup(value, "lxml").get_text(" ", strip=True)


def _enclosure_type(entry: Any) -> str:
    for enclosure in entry.get("enclosures") or []:
        kind = enclosure.get("type") or ""
        if kind:
            return kind
    return ""


def _entry_summary(entry: Any) -> str:
    content = entry.get("content") or []
    raw = content[0].get("value", "") if content else ""
    description = entry.get("summary") or ""
    text = raw or description
    summary = (_strip_html(text) if text else "") or text
    if summary:
        return decode_html_entities(summary)

    kind = _enclosure_type(entry)
    if kind.startswith("audio/"):
        return AUDIO_PLACEHOLDER
    if kind.startswith("video/"):
        return VIDEO_PLACEHOLDER
    return ""


def _is_image_media(media: dict) -> bool:
    return media.get("medium") == "image" or (media.get("type") or "").startswith("image/")


def _entry_image(entry: Any) -> str | None:
    media_content = [media for media in entry.get("media_content") or [] if media.get("url")]
    for media in media_content:
        if _is_image_media(media):
            return media["url"]
    if media_content:
        return media_content[0]["url"]

    for thumbnail in entry.get("media_thumbnail") or []:
        if thumbnail.get("url"):
            return thumbnail["url"]

    for enclosure in entry.get("enclosures") or []:
        url = enclosure.get("href") or enclosure.get("url")
        if url and (enclosure.get("type") or "").startswith("image/"):
            return url
    return None


def _entry_date(entry: Any) -> datetime:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)
    return utcnow()


def _feed_image(parsed: feedparser.FeedParserDict) -> str | None:
    image = parsed.feed.get("image") or {}
    return image.get("href") or image.get("url") or None


class RssStoryParser:
    """Fetch a feed and map its items, in feed order, to draft stories."""

    def __init__(self, fetcher: HttpFetcher | None = None, settings: ScraperSettings | None = None) -> None:
        self._settings = settings or ScraperSettings()
        self._fetcher = fetcher or HttpFetcher(settings=self._settings)

    def read(self, rss_url: str) -> FeedResult:
        """Return the feed's stories and channel image; raise :class:`FeedError` on total failure."""

        try:
            content = self._fetcher.fetch(rss_url, timeout=self._settings.page_timeout)
        except FetchError as exc:
            raise FeedError(f"Could not fetch feed {rss_url}: {exc}") from exc

        parsed = parse_feed(content)
        if not parsed.get("version") and not parsed.get("entries"):
            reason = parsed.get("bozo_exception") or "not an RSS or Atom document"
            raise FeedError(f"Could not parse feed {rss_url}: {reason}")
        if parsed.get("bozo"):
            logger.warning("Feed %s is malformed but readable: %s", rss_url, parsed.get("bozo_exception"))

        stories: List[DraftStory] = []
        for entry in parsed.entries:
            try:
                story = self._to_draft(entry, rank=len(stories) + 1)
            except Exception as exc:  # noqa: BLE001 - one broken item must not sink the feed
                logger.warning("Skipping unreadable item in %s: %s", rss_url, exc)
                continue
            if story is not None:
                stories.append(story)

        logger.info("Read %d stories from %s", len(stories), rss_url)
        return FeedResult(stories=stories, image_url=_feed_image(parsed))

    def parse(self, rss_url: str) -> List[DraftStory]:
        return self.read(rss_url).stories

    def _to_draft(self, entry: Any, rank: int) -> DraftStory | None:
        # feedparser has already unescaped the title.
        headline = (entry.get("title") or "").strip()
        url = (entry.get("link") or "").strip()
        if not headline or not url:
            logger.debug("Skipping feed item without title or link: %r", entry.get("id"))
            return None

        return DraftStory(
            headline=headline,
            url=url,
            summary=_entry_summary(entry) or None,
            image_url=_entry_image(entry),
            section=Section.NEWS,
            topic=NewsTopic.US_POLITICS,
            rank=rank,
            published_at=_entry_date(entry),
        )

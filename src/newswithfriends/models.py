"""Domain models used across the scraping pipeline."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from newswithfriends.utils import normalize_homepage_url

__all__ = [
    "DraftStory",
    "NewsTopic",
    "PageMetadata",
    "Section",
    "Source",
    "Story",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class _Vocabulary(str, Enum):
    """String enum that tolerates the loose casing language models produce."""

    @classmethod
    def coerce(cls, value: object):
        """Return the member matching ``value`` by name or value, else ``None``."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None

        wanted = value.strip().lower()
        for member in cls:
            if wanted in (member.value, member.name.lower(), member.name.lower().replace("_", " ")):
                return member
        return None


class Section(_Vocabulary):
    NEWS = "news"
    OPINION = "opinion"
    SPORTS = "sports"
    BUSINESS = "business"
    TECHNOLOGY = "technology"
    ENTERTAINMENT = "entertainment"
    LIFESTYLE = "lifestyle"


class NewsTopic(_Vocabulary):
    US_POLITICS = "us politics"
    WORLD = "world"
    ECONOMY = "economy"
    TECHNOLOGY = "technology"
    HEALTH = "health"
    SCIENCE = "science"
    SPORTS = "sports"
    ENTERTAINMENT = "entertainment"


class Source(BaseModel):
    """A news outlet that the pipeline polls."""

    id: str = Field(default_factory=_new_id)
    name: str
    homepage_url: str = Field(..., description="Unique homepage URL, stored without trailing slashes")
    rss_url: Optional[str] = None
    include_selector: Optional[str] = Field(
        default=None, description="CSS selector bounding the scrapable region of the homepage"
    )
    exclude_selector: Optional[str] = Field(
        default=None, description="CSS selector for elements removed from the scrapable region"
    )
    bias_score: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    has_paywall: bool = False
    last_scraped_at: Optional[datetime] = None

    @field_validator("homepage_url")
    @classmethod
    def _normalize_homepage(cls, value: str) -> str:
        normalized = normalize_homepage_url(value)
        if not normalized:
            raise ValueError("homepage_url must not be empty")
        return normalized

    @field_validator("last_scraped_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(tag for tag in value if tag))


class PageMetadata(BaseModel):
    """Open Graph / Twitter card details scraped from a page."""

    image_url: Optional[str] = None
    description: Optional[str] = None


class DraftStory(BaseModel):
    """Unpersisted story produced by one of the parsers."""

    headline: str
    url: str
    summary: Optional[str] = None
    image_url: Optional[str] = None
    section: Optional[Section] = None
    topic: Optional[NewsTopic] = None
    rank: Optional[int] = Field(default=None, description="1-based position in the source's current list")
    published_at: Optional[datetime] = None
    full_text: Optional[str] = None
    author_names: List[str] = Field(default_factory=list)


class Story(BaseModel):
    """A persisted story owned by exactly one source."""

    id: str = Field(default_factory=_new_id)
    source_id: str
    headline: str
    url: str
    summary: Optional[str] = None
    image_url: Optional[str] = None
    full_text: Optional[str] = None
    author_names: List[str] = Field(default_factory=list)
    section: Optional[Section] = None
    topic: Optional[NewsTopic] = None
    in_page_rank: Optional[int] = None
    archived: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_draft(cls, draft: DraftStory, source_id: str, rank: int) -> "Story":
        """Build a brand new record for a first sighting of ``draft``."""

        now = utcnow()
        return cls(
            source_id=source_id,
            headline=draft.headline,
            url=draft.url,
            summary=draft.summary,
            image_url=draft.image_url,
            full_text=draft.full_text,
            author_names=list(draft.author_names),
            section=draft.section,
            topic=draft.topic,
            in_page_rank=rank,
            archived=False,
            created_at=draft.published_at or now,
            updated_at=now,
        )

    def refreshed(self, draft: DraftStory, rank: int) -> "Story":
        """Return a copy updated from a fresh sighting of the same URL.

        Enrichment fields are only replaced when the draft actually carries a
        value, so a draft that failed enrichment this cycle keeps what an
        earlier cycle found.
        """

        return self.model_copy(
            update={
                "headline": draft.headline,
                "summary": draft.summary or self.summary,
                "image_url": draft.image_url or self.image_url,
                "full_text": draft.full_text or self.full_text,
                "author_names": list(draft.author_names) or list(self.author_names),
                "section": draft.section or self.section,
                "topic": draft.topic or self.topic,
                "in_page_rank": rank,
                "archived": False,
                "updated_at": utcnow(),
            }
        )

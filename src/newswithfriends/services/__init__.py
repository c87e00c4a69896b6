"""Service layer entry points for the scraping pipeline."""

from __future__ import annotations

from .ai import AiError, AiTextExtractor  # noqa: F401
from .enricher import StoryEnricher  # noqa: F401
from .homepage import HomepageStoryParser  # noqa: F401
from .http import FetchError, HttpFetcher  # noqa: F401
from .json_repair import repair_json  # noqa: F401
from .preview import PreviewService  # noqa: F401
from .reconcile import reconcile_stories  # noqa: F401
from .rss import FeedError, FeedResult, RssStoryParser  # noqa: F401
from .scraper import ScraperService, ScrapeStrategy  # noqa: F401

__all__ = [
    "AiError",
    "AiTextExtractor",
    "FeedError",
    "FeedResult",
    "FetchError",
    "HomepageStoryParser",
    "HttpFetcher",
    "PreviewService",
    "RssStoryParser",
    "ScrapeStrategy",
    "ScraperService",
    "StoryEnricher",
    "reconcile_stories",
    "repair_json",
]

"""Orchestrates acquisition, enrichment and reconciliation for each source."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Dict, List, Sequence

from newswithfriends.config import ScraperSettings
from newswithfriends.models import DraftStory, Source, Story, utcnow
from newswithfriends.services.ai import AiTextExtractor
from newswithfriends.services.enricher import StoryEnricher
from newswithfriends.services.homepage import HomepageStoryParser
from newswithfriends.services.http import FetchError, HttpFetcher
from newswithfriends.services.preview import PreviewService
from newswithfriends.services.reconcile import reconcile_stories
from newswithfriends.services.rss import RssStoryParser, is_feed
from newswithfriends.storage import SourceStore, StoryStore

logger = logging.getLogger(__name__)

__all__ = ["ScrapeStrategy", "ScraperService"]

_NEVER = datetime.min.replace(tzinfo=UTC)


class ScrapeStrategy(str, Enum):
    RSS = "rss"
    HOMEPAGE = "homepage"


class ScraperService:
    """Scrape sources one at a time, isolating every source's failures.

    Per source the flow is: select a strategy, acquire draft stories, enrich
    them in order, then reconcile them against the stored stories.
    """

    def __init__(
        self,
        sources: SourceStore,
        stories: StoryStore,
        *,
        settings: ScraperSettings | None = None,
        fetcher: HttpFetcher | None = None,
        ai: AiTextExtractor | None = None,
        homepage_parser: HomepageStoryParser | None = None,
        rss_parser: RssStoryParser | None = None,
        enricher: StoryEnricher | None = None,
    ) -> None:
        self.settings = settings or ScraperSettings()
        self.sources = sources
        self.stories = stories
        self.fetcher = fetcher or HttpFetcher(settings=self.settings)
        self.ai = ai or AiTextExtractor(settings=self.settings)
        self.homepage_parser = homepage_parser or HomepageStoryParser(self.ai, self.settings)
        self.rss_parser = rss_parser or RssStoryParser(self.fetcher, self.settings)
        self.enricher = enricher or StoryEnricher(
            self.fetcher, self.ai, PreviewService(self.fetcher, self.settings), self.settings
        )

    # Batches -----------------------------------------------------------------

    def scrape_all_sources(self) -> Dict[str, List[Story]]:
        """Scrape every stored source in turn; a failing source contributes nothing."""

        sources = self.sources.list_sources()
        logger.info("Found %d sources to collect from", len(sources))
        results = self._scrape_batch(sources)
        logger.info("Completed collecting from all sources")
        return results

    def scrape_stalest_sources(self, limit: int | None = None) -> Dict[str, List[Story]]:
        """Scrape the ``limit`` sources scraped longest ago, never-scraped ones first."""

        limit = limit or self.settings.stalest_batch_size
        sources = sorted(self.sources.list_sources(), key=lambda source: source.last_scraped_at or _NEVER)
        return self._scrape_batch(sources[:limit])

    def scrape_source_by_id(self, source_id: str) -> List[Story]:
        """Look up and scrape one source; used by the admin "scrape now" action."""

        if not source_id:
            raise ValueError("source_id is required")
        return self.scrape_source(self.sources.get_source(source_id))

    def _scrape_batch(self, sources: Sequence[Source]) -> Dict[str, List[Story]]:
        results: Dict[str, List[Story]] = {}
        for source in sources:
            results[source.id] = self.scrape_source(source)
        return results

    # One source --------------------------------------------------------------

    def scrape_source(self, source: Source) -> List[Story]:
        """Run the full pipeline for ``source`` and return the stories it saved.

        Never raises: any failure is logged and yields an empty list.
        """

        try:
            logger.info("Starting collection for source: %s (%s)", source.name, source.homepage_url)
            source, strategy = self.select_strategy(source)
            # Recorded before the slow part so a crash still counts as an attempt.
            source = self.sources.update_source(source.id, {"last_scraped_at": utcnow()})

            drafts = self.acquire(source, strategy)
            enriched = self.enrich_all(drafts, source)
            saved = reconcile_stories(self.stories, source.id, enriched)
            logger.info("Saved %d stories for %s", len(saved), source.name)
            return saved
        except Exception:  # noqa: BLE001 - one source must never abort the batch
            logger.exception("Error collecting from source %s (%s)", source.name, source.id)
            return []

    def select_strategy(self, source: Source) -> tuple[Source, ScrapeStrategy]:
        """Pick RSS or homepage scraping, probing for an undeclared feed if needed.

        A discovered feed URL is written back to the store and the updated
        source is returned alongside the strategy.
        """

        if source.rss_url:
            logger.info("Using RSS feed for %s", source.name)
            return source, ScrapeStrategy.RSS
        if source.include_selector:
            logger.info("Scraping webpage for %s", source.name)
            return source, ScrapeStrategy.HOMEPAGE

        rss_url = source.homepage_url + self.settings.feed_probe_path
        if self._feed_exists(rss_url):
            logger.info("Found RSS feed at %s", rss_url)
            source = self.sources.update_source(source.id, {"rss_url": rss_url})
            return source, ScrapeStrategy.RSS

        logger.info("No RSS feed found at %s, scraping the homepage", rss_url)
        return source, ScrapeStrategy.HOMEPAGE

    def _feed_exists(self, url: str) -> bool:
        try:
            content = self.fetcher.fetch(url, timeout=self.settings.preview_timeout, max_retries=1)
        except FetchError:
            return False
        return is_feed(content)

    def acquire(self, source: Source, strategy: ScrapeStrategy) -> List[DraftStory]:
        if strategy is ScrapeStrategy.RSS:
            return self._read_rss(source)
        return self._scrape_homepage(source)

    def _read_rss(self, source: Source) -> List[DraftStory]:
        if not source.rss_url:
            raise ValueError(f"No RSS URL configured for source: {source.name}")

        feed = self.rss_parser.read(source.rss_url)
        if feed.image_url and not source.image_url:
            self.sources.update_source(source.id, {"image_url": feed.image_url})
        return feed.stories

    def _scrape_homepage(self, source: Source) -> List[DraftStory]:
        html = self.fetcher.fetch_text(source.homepage_url, timeout=self.settings.page_timeout)
        return self.homepage_parser.parse(
            html,
            source.homepage_url,
            include_selector=source.include_selector,
            exclude_selector=source.exclude_selector,
        )

    def enrich_all(self, drafts: Sequence[DraftStory], source: Source) -> List[DraftStory]:
        """Enrich ``drafts`` sequentially, keeping their order."""

        enriched: List[DraftStory] = []
        for draft in drafts:
            try:
                enriched.append(self.enricher.enrich(draft, source))
            except Exception as exc:  # noqa: BLE001 - fall back to the unenriched draft
                logger.warning("Error enriching %s: %s", draft.url, exc)
                enriched.append(draft)
        return enriched

"""Per-story enrichment from the article page itself."""

from __future__ import annotations

import logging
from typing import Any, List

from bs4 import BeautifulSoup

from newswithfriends.config import ScraperSettings
from newswithfriends.models import DraftStory, Source
from newswithfriends.services.ai import AiTextExtractor
from newswithfriends.services.http import HttpFetcher
from newswithfriends.services.json_repair import repair_json
from newswithfriends.services.preview import PreviewService
from newswithfriends.utils import decode_html_entities

logger = logging.getLogger(__name__)

__all__ = ["PAYWALL_SENTINEL", "StoryEnricher", "build_article_prompt", "page_text"]

PAYWALL_SENTINEL = "PAYWALL_DETECTED"


def page_text(html: str) -> str:
    """Return the visible text of a page's body."""

    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    root = soup.body or soup
    return root.get_text("\n", strip=True)


def build_article_prompt(text: str) -> str:
    return f"""Extract the following information from this news article as a valid JSON object:
1. fullText: The complete article text content, excluding navigation, ads, related articles, comments, and other non-article content
2. authorNames: An array of names of the article's author(s)

If you can't find any clear article text or the article appears to be behind a paywall, set fullText to "{PAYWALL_SENTINEL}" and provide any author information if available.

Return only a valid JSON object with these fields, properly escaped, with no additional text, markdown, or explanation.

Page content:
{text}"""


def _author_names(data: dict) -> List[str]:
    names: Any = data.get("authorNames")
    if isinstance(names, str):
        names = [names]
    if not isinstance(names, list):
        legacy = data.get("authorName")
        names = [legacy] if isinstance(legacy, str) else []
    return [name.strip() for name in names if isinstance(name, str) and name.strip()]


class StoryEnricher:
    """Add image, longer summary, full text and authors to a draft. Never raises."""

    def __init__(
        self,
        fetcher: HttpFetcher | None = None,
        ai: AiTextExtractor | None = None,
        preview: PreviewService | None = None,
        settings: ScraperSettings | None = None,
    ) -> None:
        self._settings = settings or ScraperSettings()
        self._fetcher = fetcher or HttpFetcher(settings=self._settings)
        self._ai = ai or AiTextExtractor(settings=self._settings)
        self._preview = preview or PreviewService(self._fetcher, self._settings)

    def enrich(self, draft: DraftStory, source: Source) -> DraftStory:
        """Return an enriched copy of ``draft``; the input itself is never modified."""

        if source.has_paywall:
            logger.debug("Skipping enrichment for paywalled source %s", source.name)
            return draft

        story = draft.model_copy(deep=True)
        try:
            self._apply_metadata(story)
            self._apply_article_text(story)
        except Exception as exc:  # noqa: BLE001 - enrichment is strictly best effort
            logger.warning("Error enriching %s: %s", draft.url, exc)
        return story

    def _apply_metadata(self, story: DraftStory) -> None:
        metadata = self._preview.get_page_metadata(story.url)
        if metadata.image_url and not story.image_url:
            story.image_url = metadata.image_url

        if metadata.description:
            description = decode_html_entities(metadata.description).strip()
            if len(description) > len(story.summary or ""):
                story.summary = description

    def _apply_article_text(self, story: DraftStory) -> None:
        html = self._fetcher.fetch_text(story.url, timeout=self._settings.page_timeout)
        text = page_text(html)[: self._settings.max_html_chars]
        data = repair_json(self._ai.complete(build_article_prompt(text)))
        if not isinstance(data, dict):
            logger.info("Failed to extract structured data for %s", story.url)
            return

        full_text = data.get("fullText")
        if (
            isinstance(full_text, str)
            and full_text != PAYWALL_SENTINEL
            and len(full_text) >= self._settings.min_full_text_length
        ):
            story.full_text = full_text
        else:
            logger.debug("No usable article text for %s", story.url)

        authors = _author_names(data)
        if authors:
            story.author_names = authors

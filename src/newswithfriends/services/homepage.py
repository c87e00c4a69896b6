"""Language-model driven headline extraction from a news homepage."""

from __future__ import annotations

import logging
from typing import Any, Iterator, List

from bs4 import BeautifulSoup, Tag

from newswithfriends.config import ScraperSettings
from newswithfriends.models import DraftStory, NewsTopic, Section
from newswithfriends.services.ai import AiTextExtractor
from newswithfriends.services.json_repair import repair_json
from newswithfriends.utils import decode_html_entities, make_url_absolute

logger = logging.getLogger(__name__)

__all__ = ["HomepageStoryParser", "build_headline_prompt", "clean_html"]

NOISE_TAGS = ["script", "style", "noscript"]


def _select(root: Tag, selector: str | None) -> List[Tag]:
    if not selector:
        return []
    try:
        return root.select(selector)
    except Exception as exc:  # noqa: BLE001 - soupsieve raises its own syntax error type
        logger.warning("Ignoring invalid CSS selector %r: %s", selector, exc)
        return []


def clean_html(
    html: str,
    include_selector: str | None = None,
    exclude_selector: str | None = None,
    *,
    max_chars: int = 100_000,
) -> str:
    """Return the scrapable region of ``html``, trimmed for the model's context.

    The region is the first ``include_selector`` match, else ``<main>``, else
    ``<body>``. ``exclude_selector`` matches and script/style noise are removed
    from it before serialization.
    """

    soup = BeautifulSoup(html, "lxml")
    region = next(iter(_select(soup, include_selector)), None)
    if region is None:
        if include_selector:
            logger.info("includeSelector %r not found, trying fallbacks", include_selector)
        region = soup.find("main") or soup.body

    if region is None:
        cleaned = html
    else:
        for node in _select(region, exclude_selector):
            node.decompose()
        for node in region(NOISE_TAGS):
            node.decompose()
        cleaned = region.decode_contents() or html

    logger.debug("Cleaned HTML from %d to %d characters", len(html), len(cleaned))
    return cleaned[:max_chars]


def build_headline_prompt(html: str) -> str:
    """Return the extraction prompt for a cleaned homepage fragment."""

    sections = ", ".join(member.name for member in Section)
    topics = ", ".join(member.name for member in NewsTopic)
    return f"""Extract headlines from this HTML, which has been extracted from the front page of a news site. For each headline, provide:
1. fullHeadline: the full headline text (required)
2. articleUrl: the URL link to the full article (required)
3. summary: a summary of the article, if one is provided in the HTML
4. section: the section of the paper the article belongs to, one of: {sections} (required)
5. type: the topic of the article, one of: {topics} (required)

Format the response as a correctly formatted JSON array of objects with these fields: fullHeadline, articleUrl, summary, section, type.
IMPORTANT:
- Keep the JSON response under 4000 characters
- No markdown formatting
- No trailing commas
- Each object must be complete with all fields
- If you can't fit all headlines, return fewer but complete ones
- Return headlines in the order they appear in the HTML, starting with the first one
- Ensure all JSON is properly escaped and formatted

HTML content:
{html}"""


def _iter_records(payload: Any) -> Iterator[dict]:
    if isinstance(payload, dict):
        nested = payload.get("stories") or payload.get("headlines")
        payload = nested if isinstance(nested, list) else [payload]
    if not isinstance(payload, list):
        return
    for record in payload:
        if isinstance(record, dict):
            yield record


class HomepageStoryParser:
    """Turn homepage HTML into ordered :class:`DraftStory` objects via the model."""

    def __init__(self, ai: AiTextExtractor | None = None, settings: ScraperSettings | None = None) -> None:
        self._settings = settings or ScraperSettings()
        self._ai = ai or AiTextExtractor(settings=self._settings)

    def parse(
        self,
        html: str,
        base_url: str,
        *,
        include_selector: str | None = None,
        exclude_selector: str | None = None,
    ) -> List[DraftStory]:
        """Return the stories found in ``html``; an empty list on any failure."""

        response = ""
        try:
            cleaned = clean_html(
                html,
                include_selector,
                exclude_selector,
                max_chars=self._settings.max_html_chars,
            )
            response = self._ai.complete(build_headline_prompt(cleaned))
            logger.info("Got response from AI with length %d", len(response))

            payload = repair_json(response)
            if payload is None:
                logger.error("Failed to parse stories from AI response for %s", base_url)
                return []

            return self._to_drafts(payload, base_url)
        except Exception:  # noqa: BLE001 - one bad homepage must not stop the batch
            logger.exception("Error parsing stories for %s; raw response: %r", base_url, response[:500])
            return []

    def _to_drafts(self, payload: Any, base_url: str) -> List[DraftStory]:
        drafts: List[DraftStory] = []
        for record in _iter_records(payload):
            headline = decode_html_entities(str(record.get("fullHeadline") or "")).strip()
            url = make_url_absolute(str(record.get("articleUrl") or ""), base_url)
            if not headline or not url:
                logger.debug("Skipping incomplete record %r", record)
                continue

            summary = record.get("summary")
            if isinstance(summary, str):
                summary = decode_html_entities(summary).strip() or None
            else:
                summary = None

            drafts.append(
                DraftStory(
                    headline=headline,
                    url=url,
                    summary=summary,
                    section=Section.coerce(record.get("section")),
                    topic=NewsTopic.coerce(record.get("type")),
                    rank=len(drafts) + 1,
                )
            )

        logger.info("Got %d stories from %s", len(drafts), base_url)
        return drafts

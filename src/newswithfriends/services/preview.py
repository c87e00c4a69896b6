"""Open Graph / Twitter card metadata extraction for link previews."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from newswithfriends.config import ScraperSettings
from newswithfriends.models import PageMetadata
from newswithfriends.services.http import HttpFetcher
from newswithfriends.utils import make_url_absolute

logger = logging.getLogger(__name__)

__all__ = ["PreviewService", "extract_metadata"]

_IMAGE_TAGS = (("property", "og:image"), ("name", "twitter:image"))
_DESCRIPTION_TAGS = (
    ("property", "og:description"),
    ("name", "twitter:description"),
    ("name", "description"),
)


def _meta_content(soup: BeautifulSoup, candidates: tuple[tuple[str, str], ...]) -> str | None:
    for attribute, value in candidates:
        tag = soup.find("meta", attrs={attribute: value})
        if tag is None:
            continue
        content = (tag.get("content") or "").strip()
        if content:
            return content
    return None


def extract_metadata(html: str, url: str) -> PageMetadata:
    """Return the preview image and description declared in ``html``."""

    soup = BeautifulSoup(html, "lxml")
    image = _meta_content(soup, _IMAGE_TAGS)
    return PageMetadata(
        image_url=make_url_absolute(image, url) if image else None,
        description=_meta_content(soup, _DESCRIPTION_TAGS),
    )


class PreviewService:
    """Fetch a page and pull its preview metadata; never raises."""

    def __init__(self, fetcher: HttpFetcher | None = None, settings: ScraperSettings | None = None) -> None:
        self._settings = settings or ScraperSettings()
        self._fetcher = fetcher or HttpFetcher(settings=self._settings)

    def get_page_metadata(self, url: str) -> PageMetadata:
        try:
            html = self._fetcher.fetch_text(url, timeout=self._settings.preview_timeout)
            return extract_metadata(html, url)
        except Exception as exc:  # noqa: BLE001 - previews are best effort
            logger.warning("Error getting metadata for %s: %s", url, exc)
            return PageMetadata()

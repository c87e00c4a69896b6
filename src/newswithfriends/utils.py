"""Small text and URL helpers shared by the parsers."""

from __future__ import annotations

import html
import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

__all__ = ["decode_html_entities", "make_url_absolute", "normalize_homepage_url"]


def decode_html_entities(text: str | None) -> str:
    """Return ``text`` with named and numeric HTML entities decoded."""

    if not text:
        return ""
    return html.unescape(text).replace("\xa0", " ")


def make_url_absolute(url: str | None, base_url: str) -> str:
    """Resolve ``url`` against ``base_url``.

    Resolution failures fall back to the raw string so a single odd link never
    sinks the caller.
    """

    if not url:
        return ""
    url = url.strip()
    try:
        resolved = urljoin(base_url, url)
        # ``urlparse`` raises for malformed netlocs such as unbalanced IPv6 brackets.
        urlparse(resolved).port
    except ValueError as exc:
        logger.warning("Could not make %r absolute against %s: %s", url, base_url, exc)
        return url
    return resolved


def normalize_homepage_url(url: str) -> str:
    """Strip whitespace and trailing slashes so homepage URLs compare equal."""

    return url.strip().rstrip("/")

"""Retrying HTTP GET used by every component that needs bytes from the web."""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from newswithfriends.config import ScraperSettings
from newswithfriends.services.retry import call_with_retry

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_HEADERS", "FetchError", "HttpFetcher"]

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "application/rss+xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


class FetchError(Exception):
    """Raised when a URL could not be fetched after all retries."""

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Failed to fetch {url} after {attempts} attempts. Last error: {last_error}")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class HttpFetcher:
    """GET with a browser User-Agent, a per-attempt timeout and linear backoff."""

    def __init__(
        self,
        session: requests.Session | None = None,
        settings: ScraperSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or ScraperSettings()
        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)
        self._sleep = sleep

    def _get_once(self, url: str, timeout: float) -> requests.Response:
        response = self._session.get(url, timeout=timeout)
        response.raise_for_status()
        return response

    def get(
        self, url: str, *, timeout: float | None = None, max_retries: int | None = None
    ) -> requests.Response:
        """Return the successful response for ``url`` or raise :class:`FetchError`."""

        attempts = self._settings.max_retries if max_retries is None else max_retries
        if attempts < 1:
            raise ValueError(f"max_retries must be at least 1, got {attempts}")
        if timeout is None:
            timeout = self._settings.page_timeout
        try:
            return call_with_retry(
                self._get_once,
                url,
                timeout,
                attempts=attempts,
                base_delay=self._settings.retry_base_delay,
                jitter=self._settings.retry_jitter,
                retry_on=(requests.RequestException,),
                sleep=self._sleep,
            )
        except requests.RequestException as exc:
            logger.warning("Giving up on %s after %d attempts: %s", url, attempts, exc)
            raise FetchError(url, attempts, exc) from exc

    def fetch(self, url: str, *, timeout: float | None = None, max_retries: int | None = None) -> bytes:
        """Return the raw body of ``url``."""

        return self.get(url, timeout=timeout, max_retries=max_retries).content

    def fetch_text(
        self, url: str, *, timeout: float | None = None, max_retries: int | None = None
    ) -> str:
        """Return the decoded body of ``url``."""

        return self.get(url, timeout=timeout, max_retries=max_retries).text

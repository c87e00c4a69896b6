"""Shared fakes for the pipeline tests. Nothing here touches the network."""

from __future__ import annotations

from typing import Callable, Dict, List, Union

import pytest

from newswithfriends.config import ScraperSettings
from newswithfriends.services.ai import AiError
from newswithfriends.services.http import FetchError

Body = Union[str, bytes, Exception]


class FakeFetcher:
    """Serves canned bodies by URL and records every request."""

    def __init__(self, pages: Dict[str, Body] | None = None) -> None:
        self.pages: Dict[str, Body] = dict(pages or {})
        self.calls: List[tuple[str, float | None]] = []

    def _body(self, url: str, timeout: float | None) -> Body:
        self.calls.append((url, timeout))
        body = self.pages.get(url)
        if body is None:
            raise FetchError(url, 1, ConnectionError("no route to host"))
        if isinstance(body, Exception):
            raise body
        return body

    def fetch(self, url: str, *, timeout: float | None = None, max_retries: int | None = None) -> bytes:
        body = self._body(url, timeout)
        return body.encode("utf-8") if isinstance(body, str) else body

    def fetch_text(self, url: str, *, timeout: float | None = None, max_retries: int | None = None) -> str:
        body = self._body(url, timeout)
        return body.decode("utf-8") if isinstance(body, bytes) else body

    def requested(self) -> List[str]:
        return [url for url, _ in self.calls]


class FakeAi:
    """Answers prompts with a fixed reply or a function of the prompt."""

    def __init__(self, reply: Union[str, Callable[[str], str], Exception] = "[]") -> None:
        self.reply = reply
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        if callable(self.reply):
            return self.reply(prompt)
        return self.reply


@pytest.fixture
def settings() -> ScraperSettings:
    return ScraperSettings(retry_base_delay=0, max_retries=3)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def failing_ai() -> FakeAi:
    return FakeAi(AiError("upstream unavailable"))

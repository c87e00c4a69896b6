from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from conftest import FakeAi, FakeFetcher

from newswithfriends.config import ScraperSettings
from newswithfriends.models import DraftStory, Source
from newswithfriends.services.scraper import ScrapeStrategy, ScraperService
from newswithfriends.storage import InMemoryStore, SourceNotFoundError


def rss(*slugs: str, image: str | None = None) -> str:
    items = "".join(
        f"<item><title>Story {slug}</title><link>https://feed.example.com/{slug}</link>"
        f"<description>Summary {slug}</description></item>"
        for slug in slugs
    )
    channel_image = ""
    if image:
        channel_image = f"<image><url>{image}</url><title>t</title><link>https://feed.example.com</link></image>"
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>'
        f"<link>https://feed.example.com</link>{channel_image}{items}</channel></rss>"
    )


HOMEPAGE = """
<html><body>
  <nav>Menu</nav>
  <div id="stories"><a href="/politics/1">Budget deal reached</a><a href="/world/2">Summit opens</a></div>
</body></html>
"""

HEADLINES = json.dumps(
    [
        {"fullHeadline": "Budget deal reached", "articleUrl": "/politics/1", "section": "news", "type": "us politics"},
        {"fullHeadline": "Summit opens", "articleUrl": "/world/2", "section": "news", "type": "world"},
    ]
)


class PassThroughEnricher:
    """Records the order drafts arrive in and hands them back untouched."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.seen: list[str] = []

    def enrich(self, draft: DraftStory, source: Source) -> DraftStory:
        self.seen.append(draft.url)
        if self.error is not None:
            raise self.error
        return draft


def make_service(store: InMemoryStore, pages: dict, reply="[]", enricher=None):
    fetcher = FakeFetcher(pages)
    ai = FakeAi(reply)
    service = ScraperService(
        store,
        store,
        settings=ScraperSettings(),
        fetcher=fetcher,
        ai=ai,
        enricher=enricher or PassThroughEnricher(),
    )
    return service, fetcher, ai


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


def add(store: InMemoryStore, **fields) -> Source:
    fields.setdefault("name", "Example")
    fields.setdefault("homepage_url", "https://news.example.com")
    return store.add_source(Source(**fields))


# Strategy selection -----------------------------------------------------------


def test_declared_feed_uses_rss_without_probing(store) -> None:
    source = add(store, rss_url="https://news.example.com/rss.xml")
    service, fetcher, _ = make_service(store, {})

    assert service.select_strategy(source) == (source, ScrapeStrategy.RSS)
    assert fetcher.calls == []


def test_selector_uses_homepage_without_probing(store) -> None:
    source = add(store, include_selector="#stories")
    service, fetcher, _ = make_service(store, {})

    _, strategy = service.select_strategy(source)

    assert strategy is ScrapeStrategy.HOMEPAGE
    assert fetcher.calls == []


def test_discovered_feed_is_saved_on_the_source(store) -> None:
    source = add(store, homepage_url="https://news.example.com/")
    service, fetcher, _ = make_service(store, {"https://news.example.com/feed": rss("a")})

    updated, strategy = service.select_strategy(source)

    assert strategy is ScrapeStrategy.RSS
    assert updated.rss_url == "https://news.example.com/feed"
    assert store.get_source(source.id).rss_url == "https://news.example.com/feed"
    assert fetcher.calls == [("https://news.example.com/feed", 10.0)]


def test_html_at_feed_path_falls_back_to_homepage(store) -> None:
    source = add(store)
    service, _, _ = make_service(store, {"https://news.example.com/feed": HOMEPAGE})

    updated, strategy = service.select_strategy(source)

    assert strategy is ScrapeStrategy.HOMEPAGE
    assert updated.rss_url is None
    assert store.get_source(source.id).rss_url is None


# Single source ----------------------------------------------------------------


def test_rss_source_is_scraped_and_saved(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss", name="Feed")
    enricher = PassThroughEnricher()
    feed = rss("a", "b", image="https://feed.example.com/logo.png")
    service, _, ai = make_service(store, {"https://feed.example.com/rss": feed}, enricher=enricher)

    saved = service.scrape_source(source)

    assert [(story.headline, story.in_page_rank) for story in saved] == [("Story a", 1), ("Story b", 2)]
    assert enricher.seen == ["https://feed.example.com/a", "https://feed.example.com/b"]
    assert ai.prompts == []
    updated = store.get_source(source.id)
    assert updated.image_url == "https://feed.example.com/logo.png"
    assert updated.last_scraped_at is not None


def test_feed_image_does_not_replace_existing_image(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss", image_url="https://cdn.example.com/mine.png")
    service, _, _ = make_service(
        store, {"https://feed.example.com/rss": rss("a", image="https://feed.example.com/logo.png")}
    )

    service.scrape_source(source)

    assert store.get_source(source.id).image_url == "https://cdn.example.com/mine.png"


def test_homepage_source_is_scraped_through_the_model(store) -> None:
    source = add(store)
    service, fetcher, ai = make_service(store, {"https://news.example.com": HOMEPAGE}, reply=HEADLINES)

    saved = service.scrape_source(source)

    assert fetcher.requested() == ["https://news.example.com/feed", "https://news.example.com"]
    assert [(story.url, story.in_page_rank) for story in saved] == [
        ("https://news.example.com/politics/1", 1),
        ("https://news.example.com/world/2", 2),
    ]
    assert "Budget deal reached" in ai.prompts[0]


def test_rescrape_archives_dropped_stories(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss")
    service, fetcher, _ = make_service(store, {"https://feed.example.com/rss": rss("a", "b", "c")})
    first = {story.url: story.id for story in service.scrape_source(source)}

    fetcher.pages["https://feed.example.com/rss"] = rss("c", "a")
    second = service.scrape_source(store.get_source(source.id))

    assert [(story.url, story.in_page_rank) for story in second] == [
        ("https://feed.example.com/c", 1),
        ("https://feed.example.com/a", 2),
    ]
    assert all(story.id == first[story.url] for story in second)
    assert [story.url for story in store.list_stories(source.id)] == [
        "https://feed.example.com/c",
        "https://feed.example.com/a",
    ]
    (dropped,) = [story for story in store.list_stories(source.id, include_archived=True) if story.archived]
    assert dropped.url == "https://feed.example.com/b"


def test_failed_acquisition_still_records_the_attempt(store) -> None:
    source = add(store, rss_url="https://feed.example.com/missing")
    service, _, _ = make_service(store, {})

    assert service.scrape_source(source) == []
    assert store.get_source(source.id).last_scraped_at is not None


def test_enrichment_errors_fall_back_to_drafts(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss")
    service, _, _ = make_service(
        store, {"https://feed.example.com/rss": rss("a", "b")}, enricher=PassThroughEnricher(RuntimeError("boom"))
    )

    saved = service.scrape_source(source)

    assert [story.summary for story in saved] == ["Summary a", "Summary b"]


# Batches ----------------------------------------------------------------------


def test_one_failing_source_does_not_abort_the_batch(store) -> None:
    first = add(store, name="First", homepage_url="https://one.example.com", rss_url="https://one.example.com/rss")
    broken = add(store, name="Broken", homepage_url="https://two.example.com", rss_url="https://two.example.com/rss")
    third = add(store, name="Third", homepage_url="https://three.example.com", rss_url="https://three.example.com/rss")
    service, _, _ = make_service(
        store,
        {
            "https://one.example.com/rss": rss("a"),
            "https://two.example.com/rss": ConnectionResetError("reset by peer"),
            "https://three.example.com/rss": rss("b", "c"),
        },
    )

    results = service.scrape_all_sources()

    assert list(results) == [first.id, broken.id, third.id]
    assert len(results[first.id]) == 1
    assert results[broken.id] == []
    assert len(results[third.id]) == 2
    assert store.get_source(broken.id).last_scraped_at is not None


def test_stalest_sources_are_scraped_first(store, monkeypatch) -> None:
    recent = datetime(2025, 3, 1, tzinfo=UTC)
    add(store, name="Recent", homepage_url="https://recent.example.com", last_scraped_at=recent)
    add(store, name="Never", homepage_url="https://never.example.com")
    add(store, name="Old", homepage_url="https://old.example.com", last_scraped_at=datetime(2024, 1, 1, tzinfo=UTC))
    service, _, _ = make_service(store, {})
    scraped: list[str] = []
    monkeypatch.setattr(service, "scrape_source", lambda source: scraped.append(source.name) or [])

    service.scrape_stalest_sources(limit=2)

    assert scraped == ["Never", "Old"]


def test_scrape_source_by_id(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss")
    service, _, _ = make_service(store, {"https://feed.example.com/rss": rss("a")})

    assert [story.headline for story in service.scrape_source_by_id(source.id)] == ["Story a"]

    with pytest.raises(ValueError):
        service.scrape_source_by_id("")
    with pytest.raises(SourceNotFoundError):
        service.scrape_source_by_id("missing")


def test_full_pipeline_with_enrichment(store) -> None:
    source = add(store, rss_url="https://feed.example.com/rss")
    article = (
        '<html><head><meta property="og:image" content="https://feed.example.com/a.jpg" /></head>'
        "<body><p>Full story text.</p></body></html>"
    )
    reply = json.dumps({"fullText": "Full story text. " * 10, "authorNames": ["Jane Doe"]})
    fetcher = FakeFetcher({"https://feed.example.com/rss": rss("a"), "https://feed.example.com/a": article})
    service = ScraperService(store, store, settings=ScraperSettings(), fetcher=fetcher, ai=FakeAi(reply))

    (story,) = service.scrape_source(source)

    assert story.image_url == "https://feed.example.com/a.jpg"
    assert story.full_text == "Full story text. " * 10
    assert story.author_names == ["Jane Doe"]
    assert store.find_by_url(source.id, "https://feed.example.com/a").full_text == story.full_text


def test_stalest_ordering_accepts_naive_timestamps(store, monkeypatch) -> None:
    add(store, name="Aware", homepage_url="https://aware.example.com", last_scraped_at=datetime(2024, 6, 1, tzinfo=UTC))
    add(store, name="Naive", homepage_url="https://naive.example.com", last_scraped_at="2024-01-01T00:00:00")
    service, _, _ = make_service(store, {})
    scraped: list[str] = []
    monkeypatch.setattr(service, "scrape_source", lambda source: scraped.append(source.name) or [])

    service.scrape_stalest_sources()

    assert scraped == ["Naive", "Aware"]

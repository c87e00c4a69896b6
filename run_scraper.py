"""Convenience script for running one scrape cycle locally or from cron."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the newswithfriends package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from newswithfriends.config import AppConfig  # noqa: E402  (import after path setup)
from newswithfriends.services.scraper import ScraperService  # noqa: E402
from newswithfriends.storage import BlobStore  # noqa: E402


def main() -> None:
    """Load the source configuration, seed the store and scrape every source."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        config = AppConfig.from_file()
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Could not load source configuration: %s", exc)
        sys.exit(1)

    with BlobStore(config.scraper.blob_root) as store:
        added = config.seed_sources(store)
        if added:
            logging.info("Seeded %d new sources", len(added))

        scraper = ScraperService(store, store, settings=config.scraper)
        results = scraper.scrape_all_sources()

        summary = []
        for source in store.list_sources():
            saved = results.get(source.id, [])
            summary.append(
                {
                    "source": source.name,
                    "homepage_url": source.homepage_url,
                    "rss_url": source.rss_url,
                    "stories": len(saved),
                    "headlines": [story.headline for story in saved[:5]],
                }
            )

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()

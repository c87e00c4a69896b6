"""Configuration models and helpers for the News With Friends scraper."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from newswithfriends.models import Source

if TYPE_CHECKING:  # pragma: no cover
    from newswithfriends.storage import SourceStore

__all__ = [
    "AppConfig",
    "ScraperSettings",
    "DEFAULT_CONFIG_PATH",
]

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "sources.json"


class ScraperSettings(BaseModel):
    """Tunables for fetching, extraction and scheduling."""

    max_html_chars: int = Field(
        default=100_000, description="Upper bound on HTML/text handed to the language model"
    )
    max_retries: int = Field(default=3, ge=1, description="HTTP attempts before giving up")
    retry_base_delay: float = Field(
        default=1.0, ge=0, description="Seconds; attempt N waits N * base delay before retrying"
    )
    retry_jitter: float = Field(default=0.0, ge=0, description="Optional random extra delay in seconds")
    preview_timeout: float = Field(default=10.0, gt=0, description="Per-attempt timeout for metadata fetches")
    page_timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout for pages and feeds")
    feed_probe_path: str = Field(default="/feed", description="Path probed for an undeclared RSS feed")
    min_full_text_length: int = Field(
        default=100, description="Shorter extracted article bodies are treated as implausible"
    )
    openai_model: str = Field(default="gpt-4o-mini")
    stalest_batch_size: int = Field(default=10, ge=1)
    blob_root: str | None = Field(default=None, description="Directory used by the JSON blob store")

    @staticmethod
    def env_values() -> dict[str, object]:
        """Return the settings supplied through environment variables."""

        values: dict[str, object] = {}
        if os.environ.get("OPENAI_MODEL"):
            values["openai_model"] = os.environ["OPENAI_MODEL"]
        if os.environ.get("NEWSWITHFRIENDS_BLOB_ROOT"):
            values["blob_root"] = os.environ["NEWSWITHFRIENDS_BLOB_ROOT"]
        return values

    @classmethod
    def from_env(cls, **overrides: object) -> "ScraperSettings":
        """Return settings with environment variables layered over the defaults."""

        return cls.model_validate({**cls.env_values(), **overrides})


class AppConfig(BaseModel):
    """Scraper settings plus the list of sources seeded into the store."""

    scraper: ScraperSettings = Field(default_factory=ScraperSettings.from_env)
    sources: List[Source] = Field(default_factory=list)

    @field_validator("scraper", mode="before")
    @classmethod
    def _overlay_env(cls, value: object) -> object:
        # Environment variables win over a ``scraper`` block read from disk.
        if isinstance(value, dict):
            return {**value, **ScraperSettings.env_values()}
        return value

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "AppConfig":
        """Load configuration data from a JSON file."""

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")

    def seed_sources(self, store: "SourceStore") -> List[Source]:
        """Add configured sources the store does not know yet; return the ones added."""

        known = {source.homepage_url for source in store.list_sources()}
        added: List[Source] = []
        for source in self.sources:
            if source.homepage_url in known:
                continue
            added.append(store.add_source(source))
            known.add(source.homepage_url)
        return added

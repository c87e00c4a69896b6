"""JSON-file persistence for sources and stories under a local blob root."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from newswithfriends.models import Source, Story
from newswithfriends.storage.memory import InMemoryStore

logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent

#: Default location where scraper artefacts are stored.
DEFAULT_BLOB_ROOT = _PACKAGE_DIR.parents[2] / "blobstore"

SOURCES_FILENAME = "sources.json"
STORIES_FILENAME = "stories.json"

_Pathish = Union[str, Path]

__all__ = [
    "BlobStore",
    "DEFAULT_BLOB_ROOT",
    "ensure_blob_root",
    "resolve_blob_root",
]


def resolve_blob_root(blob_root: _Pathish | None = None) -> Path:
    """Return a :class:`Path` pointing at the blob root.

    ``blob_root`` may be either a string or :class:`Path`.  When ``None`` is
    provided, :data:`DEFAULT_BLOB_ROOT` is returned.  The path is not created on
    disk; callers can use :func:`ensure_blob_root` if they need to create it.
    """

    if blob_root is None:
        return DEFAULT_BLOB_ROOT
    return Path(blob_root)


def ensure_blob_root(blob_root: _Pathish | None = None) -> Path:
    """Ensure the blob root exists and return it as a :class:`Path`."""

    root = resolve_blob_root(blob_root)
    root.mkdir(parents=True, exist_ok=True)
    return root


def store_json(path: Path, payload: Any) -> None:
    """Save payload as UTF-8 JSON, replacing the file atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as file:
        json.dump(payload, file, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


def _load_json(path: Path) -> list:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as file:
            data = json.load(file)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in blob store file: {path}") from exc
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list in blob store file: {path}")
    return data


class BlobStore(InMemoryStore):
    """In-memory store mirrored to ``sources.json`` and ``stories.json``.

    The store must be opened before use and closed afterwards, either
    explicitly or by using it as a context manager. Changes are written on
    :meth:`flush` and when the store is closed.
    """

    def __init__(self, blob_root: _Pathish | None = None) -> None:
        super().__init__()
        self.root = resolve_blob_root(blob_root)
        self._open = False
        self._dirty = False

    def open(self) -> "BlobStore":
        if self._open:
            return self

        ensure_blob_root(self.root)
        self._sources = {
            source.id: source
            for source in (Source.model_validate(item) for item in _load_json(self.root / SOURCES_FILENAME))
        }
        self._stories = {
            (story.source_id, story.url): story
            for story in (Story.model_validate(item) for item in _load_json(self.root / STORIES_FILENAME))
        }
        self._open = True
        self._dirty = False
        logger.info(
            "Opened blob store at %s (%d sources, %d stories)", self.root, len(self._sources), len(self._stories)
        )
        return self

    def close(self) -> None:
        if not self._open:
            return
        if self._dirty:
            self.flush()
        self._open = False
        self._sources = {}
        self._stories = {}

    def flush(self) -> None:
        self._require_open()
        store_json(
            self.root / SOURCES_FILENAME,
            [source.model_dump(mode="json") for source in self._sources.values()],
        )
        store_json(
            self.root / STORIES_FILENAME,
            [story.model_dump(mode="json") for story in self._stories.values()],
        )
        self._dirty = False

    def __enter__(self) -> "BlobStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._open:
            raise RuntimeError(f"BlobStore at {self.root} is not open")

    def _changed(self) -> None:
        self._dirty = True

    # Every read goes through the open check as well.

    def list_sources(self):
        self._require_open()
        return super().list_sources()

    def get_source(self, source_id):
        self._require_open()
        return super().get_source(source_id)

    def add_source(self, source):
        self._require_open()
        return super().add_source(source)

    def update_source(self, source_id, changes):
        self._require_open()
        return super().update_source(source_id, changes)

    def find_by_url(self, source_id, url):
        self._require_open()
        return super().find_by_url(source_id, url)

    def upsert(self, story):
        self._require_open()
        return super().upsert(story)

    def archive_all_except(self, source_id, urls):
        self._require_open()
        return super().archive_all_except(source_id, urls)

    def list_stories(self, source_id, *, include_archived=False):
        self._require_open()
        return super().list_stories(source_id, include_archived=include_archived)

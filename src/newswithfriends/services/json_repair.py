"""Coerce almost-JSON language model output into Python objects."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ["repair_json"]

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_NEWLINES_RE = re.compile(r"\n+")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")


def _trim_to_json(text: str) -> str:
    starts = [index for index in (text.find("["), text.find("{")) if index != -1]
    ends = [index for index in (text.rfind("]"), text.rfind("}")) if index != -1]
    if not starts or not ends:
        return text

    start, end = min(starts), max(ends)
    if end < start:
        return text
    return text[start : end + 1]


def _clean(text: str) -> str:
    text = _FENCE_RE.sub("", text).strip()
    text = _trim_to_json(text)
    text = _NEWLINES_RE.sub("\n", text)
    text = _CONTROL_CHARS_RE.sub("", text)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _close_truncated_array(text: str) -> str | None:
    """Cut a truncated array back to its last complete object and close it."""

    if not text.startswith("[") or text.endswith("]"):
        return None
    last_object_end = text.rfind("}")
    if last_object_end == -1:
        return None
    return _TRAILING_COMMA_RE.sub(r"\1", text[: last_object_end + 1] + "]")


def repair_json(text: str | None) -> Any | None:
    """Return the parsed object/array hidden in ``text``, or ``None``.

    Handles Markdown fences, surrounding prose, control characters, trailing
    commas and arrays cut off mid-object.
    """

    if not text:
        return None

    cleaned = _clean(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        salvaged = _close_truncated_array(cleaned)
        if salvaged is not None:
            try:
                return json.loads(salvaged)
            except json.JSONDecodeError:
                pass
        logger.warning("JSON parse failed (%s); first 200 chars: %r", exc, cleaned[:200])
        return None

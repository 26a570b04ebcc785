"""Recover a JSON value from free-form model output.

Models frequently wrap the requested JSON in prose ("Sure! Here is..."),
markdown code fences, or trailing commentary. extract_json tries the whole
text first, then the widest ``{ ... }`` span (first opening brace through
the last closing brace).
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from src.scribe.minutes.errors import RAW_TEXT_PREVIEW_CHARS, UnparseableResponseError

logger = structlog.get_logger(__name__)


def extract_json(text: str) -> Any:
    """Parse model text into a JSON value.

    Args:
        text: Raw text payload from the provider.

    Returns:
        The decoded JSON value.

    Raises:
        UnparseableResponseError: If neither the full text nor the widest
            brace-delimited span decodes as JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass

    span = _widest_object_span(text or "")
    if span is not None:
        try:
            return json.loads(span)
        except json.JSONDecodeError:
            pass

    logger.warning(
        "response_json_unrecoverable",
        text_length=len(text or ""),
        text_preview=(text or "")[:RAW_TEXT_PREVIEW_CHARS],
    )
    raise UnparseableResponseError(text or "")


def _widest_object_span(text: str) -> str | None:
    """Return text from the first ``{`` to the last ``}``, if both exist."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]

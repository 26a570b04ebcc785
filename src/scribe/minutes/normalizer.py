"""Total coercion of untrusted JSON into the MeetingMinutes schema.

normalize_minutes never raises: anything absent, wrongly typed, or malformed
is replaced by a safe default. List elements that fail the type filter
(element is not an object, or a required key is not a string) are dropped;
elements that pass it but carry blank strings are kept with defaults.

Each field is handled independently so one bad section never affects another.
"""

from __future__ import annotations

import warnings
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

from src.scribe.minutes.schemas import (
    ActionItem,
    Attendee,
    Decision,
    MeetingMinutes,
    Observation,
    Risk,
)

# ── Defaults ────────────────────────────────────────────────────────────────

DEFAULT_TITLE = "Untitled Meeting"
DEFAULT_ATTENDEE_NAME = "Unknown Attendee"
DEFAULT_ATTENDEE_ROLE = "Participant"
DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_MADE_BY = "Unspecified"
DEFAULT_MITIGATION = "No mitigation specified"
DEFAULT_OWNER = "Unassigned"
DEFAULT_OBSERVATION = "No observation provided"
DEFAULT_DEADLINE_DAYS = 14


# ── Date Validation ─────────────────────────────────────────────────────────


def validate_date(value: Any, today: date | None = None) -> str | None:
    """Parse a date-like string and format it as ``YYYY-MM-DD`` in UTC.

    Accepts anything dateutil understands (ISO strings, ``"July 15, 2024"``,
    ``"15 Jul 2024"``...) as long as it names both a month and a day. A
    missing year is taken from ``today``. Timezone-aware values are converted
    to UTC first; naive values are taken as UTC.

    Returns:
        The formatted date, or None if the value is not a recognisable date.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    year = (today or _today_utc()).year
    text = value.strip()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", date_parser.UnknownTimezoneWarning)
            parsed = date_parser.parse(text, default=datetime(year, 1, 1))
            shifted = date_parser.parse(text, default=datetime(year, 2, 2))
    except (ValueError, OverflowError):
        return None
    # Month or day filled in from the default.
    if (parsed.month, parsed.day) != (shifted.month, shifted.day):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


# ── Normalization ───────────────────────────────────────────────────────────


def normalize_minutes(raw: Any, *, today: date | None = None) -> MeetingMinutes:
    """Coerce an arbitrary decoded JSON value into MeetingMinutes.

    Args:
        raw: Any JSON value (object, array, scalar, or None).
        today: Reference date for date defaults; defaults to today in UTC.

    Returns:
        A structurally valid MeetingMinutes. Never raises.
    """
    data = raw if isinstance(raw, dict) else {}
    today = today or _today_utc()

    return MeetingMinutes(
        title=_trimmed(data.get("title"), DEFAULT_TITLE),
        executive_summary=_trimmed(data.get("executiveSummary"), ""),
        action_minutes=_trimmed(data.get("actionMinutes"), ""),
        attendees=_attendees(data.get("attendees")),
        decisions=_decisions(data.get("decisions"), today),
        risks=_risks(data.get("risks")),
        action_items=_action_items(data.get("actionItems"), today),
        observations=_observations(data.get("observations")),
    )


def _trimmed(value: Any, default: str) -> str:
    """Trim a string field, falling back to ``default`` for non-strings."""
    return value.strip() if isinstance(value, str) else default


def _or_default(value: str, default: str) -> str:
    """Trim a string already known to be a str; blank becomes ``default``."""
    return value.strip() or default


def _typed_elements(value: Any, *keys: str) -> list[dict]:
    """Keep only object elements whose ``keys`` are all strings."""
    if not isinstance(value, list):
        return []
    return [
        item
        for item in value
        if isinstance(item, dict) and all(isinstance(item.get(k), str) for k in keys)
    ]


def _attendees(value: Any) -> list[Attendee]:
    return [
        Attendee(
            name=_or_default(item["name"], DEFAULT_ATTENDEE_NAME),
            role=_or_default(item["role"], DEFAULT_ATTENDEE_ROLE),
        )
        for item in _typed_elements(value, "name", "role")
    ]


def _decisions(value: Any, today: date) -> list[Decision]:
    return [
        Decision(
            description=_or_default(item["description"], DEFAULT_DESCRIPTION),
            made_by=_or_default(item["madeBy"], DEFAULT_MADE_BY),
            date=validate_date(item["date"], today) or today.isoformat(),
        )
        for item in _typed_elements(value, "description", "madeBy", "date")
    ]


def _risks(value: Any) -> list[Risk]:
    return [
        Risk(
            description=_or_default(item["description"], DEFAULT_DESCRIPTION),
            mitigation=_or_default(item["mitigation"], DEFAULT_MITIGATION),
        )
        for item in _typed_elements(value, "description", "mitigation")
    ]


def _action_items(value: Any, today: date) -> list[ActionItem]:
    default_deadline = (today + timedelta(days=DEFAULT_DEADLINE_DAYS)).isoformat()
    return [
        ActionItem(
            description=_or_default(item["description"], DEFAULT_DESCRIPTION),
            owner=_or_default(item["owner"], DEFAULT_OWNER),
            deadline=validate_date(item["deadline"], today) or default_deadline,
        )
        for item in _typed_elements(value, "description", "owner", "deadline")
    ]


def _observations(value: Any) -> list[Observation]:
    return [
        Observation(description=_or_default(item["description"], DEFAULT_OBSERVATION))
        for item in _typed_elements(value, "description")
    ]

"""Prompt for turning raw meeting notes into the minutes JSON document."""

from __future__ import annotations

import json
from datetime import date, timedelta

MINUTES_SYSTEM_INSTRUCTIONS = (
    "You are an assistant specialized in writing professional, executive-ready "
    "meeting minutes. Transform the raw meeting notes below into a structured "
    "document with:\n"
    "1) title: a concise, professional title capturing the meeting's purpose\n"
    "2) executiveSummary: 3-5 sentences covering outcomes, risks and next steps\n"
    "3) actionMinutes: a short paragraph of what was agreed and what happens next\n"
    "4) attendees: every participant with their role or title\n"
    "5) decisions: description, who made it, and the date (YYYY-MM-DD)\n"
    "6) risks: description and a specific mitigation\n"
    "7) actionItems: description, owner, and a realistic deadline (YYYY-MM-DD)\n"
    "8) observations: key insights from the discussion\n\n"
    "Extract and organize information even if the notes are disorganized. "
    "Keep descriptions professional and concise. Do not reference these "
    "instructions. Respond ONLY with the JSON object, no other text."
)


def _example_document(today: date) -> dict:
    return {
        "title": "Q3 Marketing Strategy Review",
        "executiveSummary": (
            "The marketing team reviewed Q3 campaign performance and approved a "
            "revised budget allocation for the remainder of the quarter."
        ),
        "actionMinutes": "Revised Q3 budget approved; launch timeline moved up two weeks.",
        "attendees": [
            {"name": "Sarah Johnson", "role": "CMO"},
            {"name": "Michael Chen", "role": "Head of Digital Marketing"},
        ],
        "decisions": [
            {
                "description": "Reallocate 15% of digital ad spend to emerging channels",
                "madeBy": "Sarah Johnson",
                "date": today.isoformat(),
            }
        ],
        "risks": [
            {
                "description": "Packaging supplier may deliver launch materials late",
                "mitigation": "Place early orders with a backup supplier",
            }
        ],
        "actionItems": [
            {
                "description": "Finalize campaign creative assets",
                "owner": "Michael Chen",
                "deadline": (today + timedelta(days=14)).isoformat(),
            }
        ],
        "observations": [
            {"description": "Video content outperformed static assets on every channel"}
        ],
    }


def build_minutes_prompt(notes: str, today: date) -> str:
    """Assemble the full prompt for one generation request.

    Args:
        notes: Raw meeting notes (already validated).
        today: Date embedded as the default decision date.

    Returns:
        Prompt text for the provider.
    """
    example = json.dumps(_example_document(today), indent=2)
    return (
        f"{MINUTES_SYSTEM_INSTRUCTIONS}\n\n"
        f"Today's date is {today.isoformat()}.\n\n"
        f"Example output:\n{example}\n\n"
        f"Meeting notes to process:\n{notes}"
    )

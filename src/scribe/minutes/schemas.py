"""Pydantic v2 schemas for generated meeting minutes and their versions.

MeetingMinutes is the structured document produced by the AI provider after
normalization. MinutesRecord is the persisted, versioned wrapper around it.
Attributes are snake_case; the JSON wire shape is camelCase via aliases, so
``model_dump(by_alias=True)`` yields ``executiveSummary``, ``isLatest`` etc.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Minutes Content ─────────────────────────────────────────────────────────


class Attendee(_CamelModel):
    """A meeting attendee with their role or title."""

    name: str
    role: str


class Decision(_CamelModel):
    """A decision taken during the meeting."""

    description: str
    made_by: str
    date: str = Field(description="YYYY-MM-DD")


class Risk(_CamelModel):
    """An identified risk and how it will be mitigated."""

    description: str
    mitigation: str


class ActionItem(_CamelModel):
    """A follow-up task with an owner and deadline."""

    description: str
    owner: str
    deadline: str = Field(description="YYYY-MM-DD")


class Observation(_CamelModel):
    """A noteworthy observation or insight from the discussion."""

    description: str


class MeetingMinutes(_CamelModel):
    """Structured meeting minutes document."""

    title: str = "Untitled Meeting"
    executive_summary: str = ""
    action_minutes: str = ""
    attendees: list[Attendee] = Field(default_factory=list)
    decisions: list[Decision] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    observations: list[Observation] = Field(default_factory=list)


# ── Versioned Records ───────────────────────────────────────────────────────


class MinutesRecord(MeetingMinutes):
    """Persisted minutes document with version lineage metadata.

    A record without ``parent_id`` is the root of its lineage (the original
    generation). Exactly one record per lineage carries ``is_latest``.
    """

    id: str
    owner_id: str
    version: int = Field(default=1, ge=1)
    parent_id: str | None = None
    is_latest: bool = True
    created_at: datetime
    updated_at: datetime

    def to_minutes(self) -> MeetingMinutes:
        """Strip lineage metadata and return the bare document."""
        return MeetingMinutes.model_validate(
            self.model_dump(include=set(MeetingMinutes.model_fields))
        )


class NewMinutesRecord(MeetingMinutes):
    """Fields supplied by the version chain when inserting a record."""

    owner_id: str
    version: int = Field(default=1, ge=1)
    parent_id: str | None = None
    is_latest: bool = True


# ── Operation Results ───────────────────────────────────────────────────────


class GenerationOutcome(BaseModel):
    """Normalized minutes plus the wall-clock time the generation took."""

    minutes: MeetingMinutes
    duration_ms: int


class GenerateResult(_CamelModel):
    """Result of generating and persisting a new lineage root."""

    minutes: MeetingMinutes
    record_id: str
    duration_ms: int


class EditResult(_CamelModel):
    """Result of saving an edited version."""

    record_id: str
    version: int

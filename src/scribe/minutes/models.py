"""Minutes persistence model -- one row per version of a minutes document.

List sections are stored as JSON for Pydantic round-tripping via
model_dump(mode="json") / model_validate(). Lineage is expressed with
``parent_id`` (no foreign key; referential integrity is application-level,
maintained by the version chain) and the ``is_latest`` flag.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, Text, func, text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.scribe.core.database import Base


class MinutesRecordModel(Base):
    """A persisted version of a meeting minutes document.

    The root of a lineage has no parent_id and version 1. Each edit inserts
    a new row pointing at the edited row and flips the previous latest row's
    is_latest to false.
    """

    __tablename__ = "minutes_records"
    __table_args__ = (
        Index("idx_minutes_owner_latest", "owner_id", "is_latest"),
        Index("idx_minutes_parent_latest", "parent_id", "is_latest"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    executive_summary: Mapped[str] = mapped_column(
        Text, default="", server_default=text("''")
    )
    action_minutes: Mapped[str] = mapped_column(
        Text, default="", server_default=text("''")
    )
    attendees_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    decisions_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    risks_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    action_items_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    observations_data: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1")
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    is_latest: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

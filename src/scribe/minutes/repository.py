"""Minutes repository -- async persistence for versioned minutes records.

MinutesStore is the store contract the version chain depends on: insert,
get, patch-to-not-latest, and indexed finds by parent and by owner.
MinutesRepository implements it with the session_factory callable pattern
used by the other repositories, converting between MinutesRecordModel rows
and MinutesRecord schemas. JSON columns use model_dump(mode="json") on save
and model_validate() on load.

The store offers no multi-statement transaction to its callers: each method
commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.scribe.minutes.models import MinutesRecordModel
from src.scribe.minutes.schemas import (
    ActionItem,
    Attendee,
    Decision,
    MinutesRecord,
    NewMinutesRecord,
    Observation,
    Risk,
)

logger = structlog.get_logger(__name__)


class MinutesStore(Protocol):
    """Persistence contract for minutes records."""

    async def insert(self, data: NewMinutesRecord) -> MinutesRecord: ...

    async def get(self, record_id: str) -> MinutesRecord | None: ...

    async def mark_not_latest(self, record_id: str) -> bool: ...

    async def find_by_parent(self, parent_id: str) -> list[MinutesRecord]: ...

    async def list_latest_for_owner(
        self, owner_id: str, limit: int = 20
    ) -> list[MinutesRecord]: ...


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    """Parse an id string; malformed ids resolve to None (not found)."""
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _model_to_record(model: MinutesRecordModel) -> MinutesRecord:
    """Convert MinutesRecordModel to MinutesRecord schema."""
    return MinutesRecord(
        id=str(model.id),
        owner_id=model.owner_id,
        title=model.title,
        executive_summary=model.executive_summary or "",
        action_minutes=model.action_minutes or "",
        attendees=[Attendee.model_validate(a) for a in (model.attendees_data or [])],
        decisions=[Decision.model_validate(d) for d in (model.decisions_data or [])],
        risks=[Risk.model_validate(r) for r in (model.risks_data or [])],
        action_items=[
            ActionItem.model_validate(a) for a in (model.action_items_data or [])
        ],
        observations=[
            Observation.model_validate(o) for o in (model.observations_data or [])
        ],
        version=model.version or 1,
        parent_id=str(model.parent_id) if model.parent_id else None,
        is_latest=bool(model.is_latest),
        created_at=model.created_at,
        updated_at=model.updated_at or model.created_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class MinutesRepository:
    """Async CRUD operations for minutes records.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def insert(self, data: NewMinutesRecord) -> MinutesRecord:
        """Insert a new minutes record.

        Args:
            data: Content plus lineage fields for the new row.

        Returns:
            MinutesRecord with generated id and timestamps.
        """
        now = datetime.now(timezone.utc)
        async for session in self._session_factory():
            model = MinutesRecordModel(
                id=uuid.uuid4(),
                owner_id=data.owner_id,
                title=data.title,
                executive_summary=data.executive_summary,
                action_minutes=data.action_minutes,
                attendees_data=[a.model_dump(mode="json", by_alias=True) for a in data.attendees],
                decisions_data=[d.model_dump(mode="json", by_alias=True) for d in data.decisions],
                risks_data=[r.model_dump(mode="json", by_alias=True) for r in data.risks],
                action_items_data=[
                    a.model_dump(mode="json", by_alias=True) for a in data.action_items
                ],
                observations_data=[
                    o.model_dump(mode="json", by_alias=True) for o in data.observations
                ],
                version=data.version,
                parent_id=_parse_uuid(data.parent_id),
                is_latest=data.is_latest,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_record(model)

    async def get(self, record_id: str) -> MinutesRecord | None:
        """Get a record by id.

        Returns:
            MinutesRecord if found, None otherwise (including malformed ids).
        """
        rid = _parse_uuid(record_id)
        if rid is None:
            return None
        async for session in self._session_factory():
            stmt = select(MinutesRecordModel).where(MinutesRecordModel.id == rid)
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_record(model)

    async def mark_not_latest(self, record_id: str) -> bool:
        """Clear the is_latest flag on a record and bump updated_at.

        The update is conditional on the flag still being set.

        Returns:
            True if this call flipped the flag, False if it was already
            cleared (e.g. by a concurrent edit) or the record is missing.
        """
        rid = _parse_uuid(record_id)
        if rid is None:
            return False
        async for session in self._session_factory():
            stmt = (
                update(MinutesRecordModel)
                .where(
                    MinutesRecordModel.id == rid,
                    MinutesRecordModel.is_latest.is_(True),
                )
                .values(is_latest=False, updated_at=datetime.now(timezone.utc))
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1
        return False

    async def find_by_parent(self, parent_id: str) -> list[MinutesRecord]:
        """Get the direct children of a record, ordered by version."""
        pid = _parse_uuid(parent_id)
        if pid is None:
            return []
        async for session in self._session_factory():
            stmt = (
                select(MinutesRecordModel)
                .where(MinutesRecordModel.parent_id == pid)
                .order_by(MinutesRecordModel.version)
            )
            result = await session.execute(stmt)
            return [_model_to_record(m) for m in result.scalars().all()]
        return []

    async def list_latest_for_owner(
        self, owner_id: str, limit: int = 20
    ) -> list[MinutesRecord]:
        """Get an owner's latest record per lineage, newest first."""
        async for session in self._session_factory():
            stmt = (
                select(MinutesRecordModel)
                .where(
                    MinutesRecordModel.owner_id == owner_id,
                    MinutesRecordModel.is_latest.is_(True),
                )
                .order_by(MinutesRecordModel.updated_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [_model_to_record(m) for m in result.scalars().all()]
        return []

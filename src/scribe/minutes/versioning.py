"""VersionChainManager -- versioned lineage of minutes records.

A lineage is every record reachable from one root (the original generation)
through ``parent_id`` links. Exactly one record per lineage carries
``is_latest``. Editing inserts a new record pointing at the edited one and
flips the previous latest record to not-latest.

The store has no multi-statement transaction, so flip-then-insert is two
separate writes. A concurrent editor of the same record can slip in between
them; the conditional flip reports that case and it is logged, but the
window is not otherwise closed.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel

from src.scribe.core.monitoring import minutes_edits_total
from src.scribe.minutes.errors import AccessDeniedError, NotFoundError
from src.scribe.minutes.normalizer import normalize_minutes
from src.scribe.minutes.repository import MinutesStore
from src.scribe.minutes.schemas import MeetingMinutes, MinutesRecord, NewMinutesRecord

logger = structlog.get_logger(__name__)

MAX_LINEAGE_DEPTH = 1000


class VersionChainManager:
    """Creates and queries versioned minutes records.

    Args:
        store: Persistence backend implementing MinutesStore.
    """

    def __init__(self, store: MinutesStore) -> None:
        self._store = store

    async def create_root(self, minutes: MeetingMinutes, owner_id: str) -> MinutesRecord:
        """Persist a freshly generated document as version 1 of a new lineage."""
        record = await self._store.insert(
            NewMinutesRecord(
                **minutes.model_dump(),
                owner_id=owner_id,
                version=1,
                parent_id=None,
                is_latest=True,
            )
        )
        logger.info("minutes_root_created", record_id=record.id, owner_id=owner_id)
        return record

    async def create_edit(
        self, original_id: str, edited_raw: Any, owner_id: str
    ) -> MinutesRecord:
        """Save an edited document as the new latest version of a lineage.

        The edited content is untrusted and goes through the same
        normalization as provider output. Editing a record that is no longer
        latest still yields a single latest record: the lineage's current
        latest is flipped as well and the new version is numbered above it.

        Args:
            original_id: Record the edit was made against.
            edited_raw: Edited minutes as decoded JSON (camelCase keys).
            owner_id: Caller identity; must own the original record.

        Returns:
            The inserted record (``is_latest`` true, ``parent_id`` original_id).

        Raises:
            NotFoundError: original_id does not resolve.
            AccessDeniedError: The original belongs to another owner.
        """
        original = await self._store.get(original_id)
        if original is None:
            raise NotFoundError(f"Original minutes not found: {original_id}")
        if original.owner_id != owner_id:
            raise AccessDeniedError(
                "You don't have permission to edit these minutes"
            )

        if isinstance(edited_raw, BaseModel):
            edited_raw = edited_raw.model_dump(mode="json", by_alias=True)
        minutes = normalize_minutes(edited_raw)

        if original.is_latest:
            new_version = original.version + 1
            stale_latest: list[MinutesRecord] = []
        else:
            members = await self._lineage_of(original)
            new_version = max(m.version for m in members) + 1
            stale_latest = [m for m in members if m.is_latest]

        for record in [original, *stale_latest]:
            if not record.is_latest:
                continue
            flipped = await self._store.mark_not_latest(record.id)
            if not flipped:
                logger.warning(
                    "concurrent_edit_detected",
                    record_id=record.id,
                    original_id=original.id,
                )

        record = await self._store.insert(
            NewMinutesRecord(
                **minutes.model_dump(),
                owner_id=owner_id,
                version=new_version,
                parent_id=original.id,
                is_latest=True,
            )
        )
        minutes_edits_total.inc()
        logger.info(
            "minutes_edit_saved",
            record_id=record.id,
            original_id=original.id,
            version=new_version,
            stale_original=not original.is_latest,
        )
        return record

    async def resolve_latest(self, record_id: str) -> MinutesRecord | None:
        """Return the latest record of the lineage containing ``record_id``.

        Returns None for an unknown id. If no lineage member is flagged
        latest, the fetched record itself is returned.
        """
        record = await self._store.get(record_id)
        if record is None:
            return None
        if record.is_latest:
            return record

        flagged = [m for m in await self._lineage_of(record) if m.is_latest]
        if not flagged:
            logger.warning("lineage_without_latest", record_id=record_id)
            return record
        return max(flagged, key=lambda m: m.version or 1)

    async def list_versions(self, record_id: str) -> list[MinutesRecord]:
        """Every record in the lineage of ``record_id``, ascending by version."""
        record = await self._store.get(record_id)
        if record is None:
            return []
        members = await self._lineage_of(record)
        return sorted(members, key=lambda m: (m.version or 1, m.created_at))

    async def list_recent(self, owner_id: str, limit: int = 20) -> list[MinutesRecord]:
        return await self._store.list_latest_for_owner(owner_id, limit)

    # ── Lineage Traversal ────────────────────────────────────────────────────

    async def _lineage_of(self, record: MinutesRecord) -> list[MinutesRecord]:
        root = await self._find_root(record)
        return await self._collect_lineage(root)

    async def _find_root(self, record: MinutesRecord) -> MinutesRecord:
        """Follow parent_id upward; a dangling or cyclic link ends the walk."""
        current = record
        seen = {current.id}
        for _ in range(MAX_LINEAGE_DEPTH):
            if current.parent_id is None or current.parent_id in seen:
                return current
            parent = await self._store.get(current.parent_id)
            if parent is None:
                return current
            seen.add(parent.id)
            current = parent
        return current

    async def _collect_lineage(self, root: MinutesRecord) -> list[MinutesRecord]:
        """Root plus all descendants, breadth-first."""
        members = [root]
        seen = {root.id}
        frontier = [root.id]
        while frontier:
            next_frontier: list[str] = []
            for parent_id in frontier:
                for child in await self._store.find_by_parent(parent_id):
                    if child.id in seen:
                        continue
                    seen.add(child.id)
                    members.append(child)
                    next_frontier.append(child.id)
            frontier = next_frontier
        return members

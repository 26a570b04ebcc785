"""Shared test doubles for the minutes subsystem.

Provides:
- InMemoryMinutesStore: dict-backed MinutesStore
- FakeProvider: scripted MinutesProvider (texts, errors, or a hang)
- instant_guard(): InvocationGuard that never really sleeps
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
from jose import jwt

from src.scribe.config import get_settings
from src.scribe.minutes.errors import ConfigurationError
from src.scribe.minutes.guard import InvocationGuard
from src.scribe.minutes.schemas import MinutesRecord, NewMinutesRecord
from src.scribe.minutes.versioning import VersionChainManager
from src.scribe.services.llm import ProviderResponse

OWNER_ID = "user_alpha"
OTHER_OWNER_ID = "user_beta"

SAMPLE_MINUTES_JSON: dict[str, Any] = {
    "title": "Weekly Standup",
    "executiveSummary": "The team reviewed sprint progress.",
    "actionMinutes": "Release moves to Friday.",
    "attendees": [{"name": "Ana", "role": "Engineering Manager"}],
    "decisions": [
        {"description": "Ship on Friday", "madeBy": "Ana", "date": "2024-07-15"}
    ],
    "risks": [{"description": "QA capacity", "mitigation": "Borrow a tester"}],
    "actionItems": [
        {"description": "Cut release branch", "owner": "Bo", "deadline": "July 18, 2024"}
    ],
    "observations": [{"description": "Velocity is stable"}],
}


# ── Tokens ───────────────────────────────────────────────────────────────────


def issue_token(
    owner_id: str,
    token_type: str = "access",
    expires_in: timedelta = timedelta(minutes=30),
) -> str:
    """Sign a bearer token the way the account service does."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    claims = {"sub": owner_id, "type": token_type, "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# ── In-Memory Store ──────────────────────────────────────────────────────────


class InMemoryMinutesStore:
    """In-memory test double for MinutesRepository."""

    def __init__(self) -> None:
        self.records: dict[str, MinutesRecord] = {}
        self._clock = datetime(2024, 7, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def insert(self, data: NewMinutesRecord) -> MinutesRecord:
        now = self._tick()
        record = MinutesRecord(
            **data.model_dump(),
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
        )
        self.records[record.id] = record
        return record

    async def get(self, record_id: str) -> MinutesRecord | None:
        return self.records.get(record_id)

    async def mark_not_latest(self, record_id: str) -> bool:
        record = self.records.get(record_id)
        if record is None or not record.is_latest:
            return False
        self.records[record_id] = record.model_copy(
            update={"is_latest": False, "updated_at": self._tick()}
        )
        return True

    async def find_by_parent(self, parent_id: str) -> list[MinutesRecord]:
        children = [r for r in self.records.values() if r.parent_id == parent_id]
        return sorted(children, key=lambda r: r.version)

    async def list_latest_for_owner(
        self, owner_id: str, limit: int = 20
    ) -> list[MinutesRecord]:
        latest = [
            r for r in self.records.values() if r.owner_id == owner_id and r.is_latest
        ]
        latest.sort(key=lambda r: r.updated_at, reverse=True)
        return latest[:limit]

    def lineage_latest_count(self) -> int:
        return sum(1 for r in self.records.values() if r.is_latest)


# ── Fake Provider ────────────────────────────────────────────────────────────


class FakeProvider:
    """Scripted MinutesProvider.

    Each call consumes the next script entry: a str is returned as the
    response text, an exception instance is raised. When the script runs
    out the last entry repeats. ``hang=True`` makes every call wait forever.
    """

    def __init__(
        self,
        *script: str | BaseException,
        configured: bool = True,
        hang: bool = False,
    ) -> None:
        self.model = "fake/minutes-model"
        self.script = list(script) or [json.dumps(SAMPLE_MINUTES_JSON)]
        self.configured = configured
        self.hang = hang
        self.calls = 0
        self.prompts: list[str] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("No API key configured for model fake/minutes-model")

    async def generate_content(self, prompt: str) -> ProviderResponse:
        self.calls += 1
        self.prompts.append(prompt)
        if self.hang:
            await asyncio.Event().wait()
        entry = self.script[min(self.calls - 1, len(self.script) - 1)]
        if isinstance(entry, BaseException):
            raise entry
        return ProviderResponse(text=entry, model=self.model)


def instant_guard(**overrides: Any) -> InvocationGuard:
    """InvocationGuard with a mocked sleep and zero jitter."""
    params: dict[str, Any] = {
        "timeout_ms": 200,
        "max_retries": 2,
        "base_delay_ms": 1000,
        "sleep": AsyncMock(),
        "jitter": lambda a, b: 0.0,
    }
    params.update(overrides)
    return InvocationGuard(**params)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryMinutesStore:
    return InMemoryMinutesStore()


@pytest.fixture
def chain(store: InMemoryMinutesStore) -> VersionChainManager:
    return VersionChainManager(store)

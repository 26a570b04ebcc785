"""MinutesService -- the operations request handlers call.

Ties the generation pipeline to the version chain: a successful generation
is persisted as the root of a new lineage, edits extend an existing lineage,
and reads resolve the latest record or the full version list.

Every generation (success or failure) is reported to the Prometheus outcome
metrics and, when one is configured, to a ProcessingTimeRecorder.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

import structlog

from src.scribe.core.monitoring import record_generation
from src.scribe.minutes.errors import (
    ConfigurationError,
    GenerationFailed,
    InvalidInputError,
    UnparseableResponseError,
)
from src.scribe.minutes.generator import MinutesGenerator
from src.scribe.minutes.schemas import EditResult, GenerateResult, MinutesRecord
from src.scribe.minutes.versioning import VersionChainManager

logger = structlog.get_logger(__name__)


class ProcessingTimeRecorder(Protocol):
    """Analytics sink for generation timings."""

    async def record(
        self, owner_id: str, duration_ms: int, success: bool, input_type: str
    ) -> None: ...


def _outcome_for(exc: BaseException) -> str:
    if isinstance(exc, GenerationFailed):
        return "timeout" if exc.timed_out else "failed"
    if isinstance(exc, UnparseableResponseError):
        return "unparseable"
    if isinstance(exc, ConfigurationError):
        return "configuration"
    if isinstance(exc, InvalidInputError):
        return "invalid_input"
    return "failed"


class MinutesService:
    """Generate, edit, and read versioned meeting minutes.

    Args:
        generator: Generation pipeline (provider + guard).
        chain: Version chain over the minutes store.
        recorder: Optional processing-time analytics sink.
    """

    def __init__(
        self,
        generator: MinutesGenerator,
        chain: VersionChainManager,
        recorder: ProcessingTimeRecorder | None = None,
    ) -> None:
        self._generator = generator
        self._chain = chain
        self._recorder = recorder

    async def generate(
        self, text: str, owner_id: str, input_type: str = "text"
    ) -> GenerateResult:
        """Generate minutes from raw notes and store them as a new lineage.

        Raises:
            InvalidInputError, ConfigurationError, GenerationFailed,
            UnparseableResponseError: see MinutesGenerator.generate.
        """
        start = time.perf_counter()
        try:
            outcome = await self._generator.generate(text)
        except Exception as exc:
            duration_ms = int((time.perf_counter() - start) * 1000)
            record_generation(_outcome_for(exc), duration_ms)
            await self._record_time(owner_id, duration_ms, False, input_type)
            raise

        record = await self._chain.create_root(outcome.minutes, owner_id)
        record_generation("success", outcome.duration_ms)
        await self._record_time(owner_id, outcome.duration_ms, True, input_type)

        return GenerateResult(
            minutes=outcome.minutes,
            record_id=record.id,
            duration_ms=outcome.duration_ms,
        )

    async def edit(self, original_id: str, edited: Any, owner_id: str) -> EditResult:
        """Save an edited version of ``original_id``."""
        record = await self._chain.create_edit(original_id, edited, owner_id)
        return EditResult(record_id=record.id, version=record.version)

    async def get_latest(self, record_id: str) -> MinutesRecord | None:
        return await self._chain.resolve_latest(record_id)

    async def get_versions(self, record_id: str) -> list[MinutesRecord]:
        return await self._chain.list_versions(record_id)

    async def list_recent(self, owner_id: str, limit: int = 20) -> list[MinutesRecord]:
        """The owner's latest record per lineage, most recently updated first."""
        return await self._chain.list_recent(owner_id, limit)

    async def _record_time(
        self, owner_id: str, duration_ms: int, success: bool, input_type: str
    ) -> None:
        if self._recorder is None:
            return
        try:
            await self._recorder.record(owner_id, duration_ms, success, input_type)
        except Exception:
            logger.exception(
                "processing_time_record_failed",
                owner_id=owner_id,
                duration_ms=duration_ms,
            )

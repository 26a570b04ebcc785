"""Tests for MinutesService: generation persistence, metrics, and timing hook."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from src.scribe.minutes.errors import (
    ConfigurationError,
    GenerationFailed,
    InvalidInputError,
    ProviderError,
    UnparseableResponseError,
)
from src.scribe.minutes.generator import MinutesGenerator
from src.scribe.minutes.service import MinutesService
from tests.conftest import OWNER_ID, FakeProvider, instant_guard

NOTES = "Quarterly planning. Ana owns the roadmap draft due next Friday."


def _service(chain, provider, recorder=None) -> MinutesService:
    generator = MinutesGenerator(provider, guard=instant_guard(timeout_ms=20))
    return MinutesService(generator=generator, chain=chain, recorder=recorder)


def _outcome_count(outcome: str) -> float:
    return REGISTRY.get_sample_value("minutes_generations_total", {"outcome": outcome}) or 0.0


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success_persists_root_record(self, chain, store):
        service = _service(chain, FakeProvider())

        result = await service.generate(NOTES, OWNER_ID)

        record = await store.get(result.record_id)
        assert record is not None
        assert record.version == 1
        assert record.is_latest is True
        assert record.owner_id == OWNER_ID
        assert record.title == result.minutes.title == "Weekly Standup"
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_result_serializes_camel_case(self, chain):
        service = _service(chain, FakeProvider())

        payload = (await service.generate(NOTES, OWNER_ID)).model_dump(by_alias=True)

        assert set(payload) == {"minutes", "recordId", "durationMs"}
        assert "executiveSummary" in payload["minutes"]
        assert "madeBy" in payload["minutes"]["decisions"][0]

    @pytest.mark.asyncio
    async def test_failure_persists_nothing(self, chain, store):
        service = _service(chain, FakeProvider(ProviderError("down")))

        with pytest.raises(GenerationFailed):
            await service.generate(NOTES, OWNER_ID)

        assert store.records == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "provider,expected_error,outcome",
        [
            (FakeProvider(ProviderError("down")), GenerationFailed, "failed"),
            (FakeProvider(hang=True), GenerationFailed, "timeout"),
            (FakeProvider("no json"), UnparseableResponseError, "unparseable"),
            (FakeProvider(configured=False), ConfigurationError, "configuration"),
        ],
    )
    async def test_failure_outcomes_counted(self, chain, provider, expected_error, outcome):
        service = _service(chain, provider)
        before = _outcome_count(outcome)

        with pytest.raises(expected_error):
            await service.generate(NOTES, OWNER_ID)

        assert _outcome_count(outcome) == before + 1

    @pytest.mark.asyncio
    async def test_success_outcome_counted(self, chain):
        service = _service(chain, FakeProvider())
        before = _outcome_count("success")

        await service.generate(NOTES, OWNER_ID)

        assert _outcome_count("success") == before + 1


class TestProcessingTimeRecorder:
    @pytest.mark.asyncio
    async def test_success_reported(self, chain):
        recorder = AsyncMock()
        service = _service(chain, FakeProvider(), recorder=recorder)

        result = await service.generate(NOTES, OWNER_ID, input_type="audio")

        recorder.record.assert_awaited_once_with(
            OWNER_ID, result.duration_ms, True, "audio"
        )

    @pytest.mark.asyncio
    async def test_failure_reported(self, chain):
        recorder = AsyncMock()
        service = _service(chain, FakeProvider(ProviderError("down")), recorder=recorder)

        with pytest.raises(GenerationFailed):
            await service.generate(NOTES, OWNER_ID)

        recorder.record.assert_awaited_once()
        owner_id, duration_ms, success, input_type = recorder.record.await_args.args
        assert owner_id == OWNER_ID
        assert duration_ms >= 0
        assert success is False
        assert input_type == "text"

    @pytest.mark.asyncio
    async def test_invalid_input_reported(self, chain):
        recorder = AsyncMock()
        service = _service(chain, FakeProvider(), recorder=recorder)

        with pytest.raises(InvalidInputError):
            await service.generate("   ", OWNER_ID)

        assert recorder.record.await_args.args[2] is False

    @pytest.mark.asyncio
    async def test_recorder_failure_does_not_fail_generation(self, chain, store):
        recorder = AsyncMock()
        recorder.record.side_effect = RuntimeError("analytics offline")
        service = _service(chain, FakeProvider(), recorder=recorder)

        result = await service.generate(NOTES, OWNER_ID)

        assert result.record_id in store.records

    @pytest.mark.asyncio
    async def test_recorder_failure_keeps_original_error(self, chain):
        recorder = AsyncMock()
        recorder.record.side_effect = RuntimeError("analytics offline")
        service = _service(chain, FakeProvider("no json"), recorder=recorder)

        with pytest.raises(UnparseableResponseError):
            await service.generate(NOTES, OWNER_ID)


class TestEditAndRead:
    @pytest.mark.asyncio
    async def test_edit_returns_new_version(self, chain):
        service = _service(chain, FakeProvider())
        generated = await service.generate(NOTES, OWNER_ID)

        edited = await service.edit(generated.record_id, {"title": "Edited"}, OWNER_ID)

        assert edited.version == 2
        latest = await service.get_latest(generated.record_id)
        assert latest.id == edited.record_id
        assert latest.title == "Edited"
        assert [v.version for v in await service.get_versions(edited.record_id)] == [1, 2]

    @pytest.mark.asyncio
    async def test_list_recent(self, chain):
        service = _service(chain, FakeProvider())
        first = await service.generate(NOTES, OWNER_ID)
        second = await service.generate(NOTES, OWNER_ID)

        recent = await service.list_recent(OWNER_ID, limit=1)

        assert [r.id for r in recent] == [second.record_id]
        assert first.record_id != second.record_id

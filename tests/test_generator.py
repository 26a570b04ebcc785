"""Tests for MinutesGenerator: pipeline composition and failure semantics.

Uses FakeProvider doubles and a guard whose sleep is mocked.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from src.scribe.minutes.errors import (
    GENERIC_USER_MESSAGE,
    TIMEOUT_USER_MESSAGE,
    ConfigurationError,
    GenerationFailed,
    InvalidInputError,
    InvocationTimeoutError,
    ProviderError,
    UnparseableResponseError,
)
from src.scribe.minutes.generator import MinutesGenerator
from src.scribe.minutes.guard import InvocationGuard
from tests.conftest import SAMPLE_MINUTES_JSON, FakeProvider, instant_guard

NOTES = "Ana and Bo met. Decided to ship Friday. Bo cuts the release branch."


class TestGenerateSuccess:
    @pytest.mark.asyncio
    async def test_returns_normalized_minutes_and_duration(self):
        provider = FakeProvider(json.dumps(SAMPLE_MINUTES_JSON))
        generator = MinutesGenerator(provider, guard=instant_guard())

        outcome = await generator.generate(NOTES)

        assert outcome.minutes.title == "Weekly Standup"
        assert outcome.minutes.action_items[0].deadline == "2024-07-18"
        assert outcome.duration_ms >= 0
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_prose_wrapped_response_recovered(self):
        provider = FakeProvider('Sure! Here is the JSON: {"title":"X"} Hope that helps.')
        generator = MinutesGenerator(provider, guard=instant_guard())

        outcome = await generator.generate(NOTES)

        assert outcome.minutes.title == "X"
        assert outcome.minutes.attendees == []

    @pytest.mark.asyncio
    async def test_prompt_contains_notes_and_date(self):
        provider = FakeProvider()
        generator = MinutesGenerator(provider, guard=instant_guard())

        await generator.generate(f"  {NOTES}  ")

        prompt = provider.prompts[0]
        assert NOTES in prompt
        assert "Today's date is" in prompt
        assert "JSON" in prompt

    @pytest.mark.asyncio
    async def test_transient_failure_then_success(self):
        provider = FakeProvider(ProviderError("503"), json.dumps(SAMPLE_MINUTES_JSON))
        generator = MinutesGenerator(provider, guard=instant_guard())

        outcome = await generator.generate(NOTES)

        assert outcome.minutes.title == "Weekly Standup"
        assert provider.calls == 2

    def test_default_guard_parameters(self):
        generator = MinutesGenerator(FakeProvider())

        assert generator._guard.timeout_ms == 9000
        assert generator._guard.max_retries == 2
        assert generator._guard.base_delay_ms == 1000


class TestGenerateFailures:
    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_guard(self):
        provider = FakeProvider(configured=False)
        guard = instant_guard()

        with patch.object(InvocationGuard, "invoke", new_callable=AsyncMock) as mock_invoke:
            generator = MinutesGenerator(provider, guard=guard)
            with pytest.raises(ConfigurationError):
                await generator.generate(NOTES)

        mock_invoke.assert_not_awaited()
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_persistent_provider_error_becomes_generic_failure(self):
        provider = FakeProvider(ProviderError("upstream down"))
        generator = MinutesGenerator(provider, guard=instant_guard())

        with pytest.raises(GenerationFailed) as exc_info:
            await generator.generate(NOTES)

        assert provider.calls == 3
        assert exc_info.value.timed_out is False
        assert exc_info.value.user_message == GENERIC_USER_MESSAGE
        assert isinstance(exc_info.value.__cause__, ProviderError)

    @pytest.mark.asyncio
    async def test_persistent_timeout_becomes_timeout_failure(self):
        provider = FakeProvider(hang=True)
        generator = MinutesGenerator(provider, guard=instant_guard(timeout_ms=20))

        with pytest.raises(GenerationFailed) as exc_info:
            await generator.generate(NOTES)

        assert provider.calls == 3
        assert exc_info.value.timed_out is True
        assert exc_info.value.user_message == TIMEOUT_USER_MESSAGE
        assert isinstance(exc_info.value.__cause__, InvocationTimeoutError)

    @pytest.mark.asyncio
    async def test_unparseable_response_not_retried(self):
        provider = FakeProvider("I'm sorry, I can't help with that.")
        generator = MinutesGenerator(provider, guard=instant_guard())

        with pytest.raises(UnparseableResponseError):
            await generator.generate(NOTES)

        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_empty_response_is_unparseable(self):
        provider = FakeProvider("   ")
        generator = MinutesGenerator(provider, guard=instant_guard())

        with pytest.raises(UnparseableResponseError, match="empty message content"):
            await generator.generate(NOTES)

    @pytest.mark.asyncio
    async def test_rejected_credential_surfaces_immediately(self):
        provider = FakeProvider(ConfigurationError("bad key"))
        generator = MinutesGenerator(provider, guard=instant_guard())

        with pytest.raises(ConfigurationError):
            await generator.generate(NOTES)

        assert provider.calls == 1


class TestInputValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("notes", ["", "   \n\t "])
    async def test_blank_input_rejected(self, notes):
        provider = FakeProvider()
        generator = MinutesGenerator(provider, guard=instant_guard())

        with pytest.raises(InvalidInputError, match="No text provided"):
            await generator.generate(notes)

        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_over_long_input_rejected(self):
        provider = FakeProvider()
        generator = MinutesGenerator(provider, guard=instant_guard(), max_input_chars=100)

        with pytest.raises(InvalidInputError, match="too long"):
            await generator.generate("x" * 101)

        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_input_at_limit_accepted(self):
        provider = FakeProvider()
        generator = MinutesGenerator(provider, guard=instant_guard(), max_input_chars=100)

        await generator.generate("x" * 100)

        assert provider.calls == 1

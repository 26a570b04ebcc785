"""MinutesGenerator -- structured meeting minutes from raw notes.

Composes the generation pipeline:
1. validate the raw notes (non-empty, bounded length)
2. fail fast if the provider has no credential (no guarded call is made)
3. call the provider through the InvocationGuard (timeout + retry)
4. recover JSON from the model text (extract_json)
5. coerce it into MeetingMinutes (normalize_minutes, never fails)

Only step 3 is retried. A response with no recoverable JSON is a content
problem rather than a transient fault, so UnparseableResponseError is raised
directly. When the guard gives up, the terminal error is wrapped in
GenerationFailed whose user message distinguishes timeouts.

Exports:
    MinutesGenerator: Generation pipeline bound to a provider and guard.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone

import structlog

from src.scribe.minutes.errors import (
    GenerationFailed,
    InvalidInputError,
    UnparseableResponseError,
)
from src.scribe.minutes.extractor import extract_json
from src.scribe.minutes.guard import RETRYABLE_ERRORS, InvocationGuard
from src.scribe.minutes.normalizer import normalize_minutes
from src.scribe.minutes.prompts import build_minutes_prompt
from src.scribe.minutes.schemas import GenerationOutcome
from src.scribe.services.llm import MinutesProvider

logger = structlog.get_logger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_TIMEOUT_MS = 9000  # keeps a single attempt under a 10s request budget
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_INPUT_CHARS = 10_000


class MinutesGenerator:
    """Generates normalized meeting minutes from raw notes.

    Args:
        provider: AI provider client (injected; swap for a test double).
        guard: InvocationGuard wrapping each provider call. Defaults to
            9000ms timeout, 2 retries, 1000ms base delay.
        max_input_chars: Longest raw-notes input accepted.
    """

    def __init__(
        self,
        provider: MinutesProvider,
        guard: InvocationGuard | None = None,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ) -> None:
        self._provider = provider
        self._guard = guard or InvocationGuard(
            timeout_ms=DEFAULT_TIMEOUT_MS,
            max_retries=DEFAULT_MAX_RETRIES,
            base_delay_ms=DEFAULT_BASE_DELAY_MS,
        )
        self._max_input_chars = max_input_chars

    async def generate(self, notes: str) -> GenerationOutcome:
        """Turn raw meeting notes into structured minutes.

        Args:
            notes: Raw meeting notes or a transcript.

        Returns:
            GenerationOutcome with the normalized minutes and elapsed time.

        Raises:
            InvalidInputError: Notes are blank or too long.
            ConfigurationError: No credential for the configured model.
            GenerationFailed: The provider call failed on every attempt.
            UnparseableResponseError: The model text held no JSON object.
        """
        start = time.perf_counter()
        text = self._validate_input(notes)
        self._provider.ensure_configured()

        today = _today_utc()
        prompt = build_minutes_prompt(text, today)

        try:
            response = await self._guard.invoke(
                lambda: self._provider.generate_content(prompt)
            )
        except RETRYABLE_ERRORS as exc:
            timed_out = isinstance(exc, TimeoutError)
            logger.error(
                "minutes_generation_failed",
                model=self._provider.model,
                timed_out=timed_out,
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(start),
            )
            raise GenerationFailed(timed_out=timed_out) from exc

        if not response.text.strip():
            raise UnparseableResponseError(
                response.text, "Provider returned an empty message content"
            )

        raw = extract_json(response.text)
        minutes = normalize_minutes(raw, today=today)
        duration_ms = _elapsed_ms(start)

        logger.info(
            "minutes_generated",
            model=response.model or self._provider.model,
            duration_ms=duration_ms,
            attendees=len(minutes.attendees),
            decisions=len(minutes.decisions),
            action_items=len(minutes.action_items),
        )
        return GenerationOutcome(minutes=minutes, duration_ms=duration_ms)

    def _validate_input(self, notes: str) -> str:
        if not isinstance(notes, str) or not notes.strip():
            raise InvalidInputError("No text provided for processing")
        if len(notes) > self._max_input_chars:
            raise InvalidInputError(
                f"Input text is too long. Please limit your input to "
                f"{self._max_input_chars:,} characters."
            )
        return notes.strip()


# ── Module-Level Helpers ─────────────────────────────────────────────────────


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)

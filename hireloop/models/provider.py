"""
Provider call models for HireLoop

Transient records used by the provider gateway for fallback decisions and
logging. Nothing here is persisted.
"""

from enum import Enum

from pydantic import BaseModel, Field


class AttemptOutcome(str, Enum):
    """Classification of one provider attempt."""

    SUCCESS = "success"  # Non-empty text returned
    EMPTY = "empty"  # Call succeeded but returned nothing usable
    ERROR = "error"  # Transport error, non-2xx, malformed payload
    TIMEOUT = "timeout"  # Per-attempt timeout expired


class ProviderAttempt(BaseModel):
    """One call to one provider."""

    provider: str
    latency_ms: float
    outcome: AttemptOutcome
    detail: str | None = None


class GenerationResult(BaseModel):
    """
    Outcome of a gateway `generate` call.

    `text is None` is the "no result" sentinel: every provider failed and the
    caller must use its own canned fallback.
    """

    text: str | None = None
    provider: str | None = None
    attempts: list[ProviderAttempt] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.text is not None


class SpeechResult(BaseModel):
    """Outcome of a gateway `synthesize_speech` call. No audio is not an error."""

    audio: bytes | None = None
    format: str = "mp3"
    provider: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.audio)


NO_RESULT = GenerationResult()

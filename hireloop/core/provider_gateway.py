"""
Provider Gateway for HireLoop

One narrow interface over N interchangeable text-generation providers and a
single speech-synthesis provider:

- generate(): ordered fallback with a per-attempt timeout; every attempt is
  classified SUCCESS / EMPTY / ERROR / TIMEOUT and anything but SUCCESS moves
  on to the next provider. When every provider fails the "no result"
  sentinel is returned; provider failures never unwind past the gateway.
- synthesize_speech(): single provider; failure yields "no audio".

Integrated with Langfuse for observability and tracing when configured.
"""

import asyncio
import logging
import re
import time

from langfuse import Langfuse

from hireloop.config.settings import Settings, get_settings
from hireloop.core.providers import (
    SpeechProvider,
    TextProvider,
    build_speech_provider,
    build_text_providers,
)
from hireloop.models.provider import (
    AttemptOutcome,
    GenerationResult,
    ProviderAttempt,
    SpeechResult,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_markdown_fence(text: str) -> str:
    """Remove one enclosing ``` / ```json fence, if present."""
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


class ProviderGateway:
    """
    Uniform access to the configured AI providers.

    The provider list is injected in priority order, so adding, removing or
    reordering providers is configuration and never touches callers.
    """

    def __init__(
        self,
        providers: list[TextProvider],
        speech_provider: SpeechProvider | None = None,
        timeout_seconds: float = 20.0,
        speech_timeout_seconds: float = 30.0,
        default_voice: str = "alloy",
        langfuse: Langfuse | None = None,
    ):
        self.providers = list(providers)
        self.speech_provider = speech_provider
        self.timeout_seconds = timeout_seconds
        self.speech_timeout_seconds = speech_timeout_seconds
        self.default_voice = default_voice
        self.langfuse = langfuse

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ProviderGateway":
        """Build the gateway from application settings."""
        settings = settings or get_settings()

        langfuse = None
        if settings.langfuse_enabled:
            if settings.langfuse_secret_key and settings.langfuse_public_key:
                langfuse = Langfuse(
                    secret_key=settings.langfuse_secret_key,
                    public_key=settings.langfuse_public_key,
                    host=settings.langfuse_base_url,
                )
                logger.info("Langfuse initialized for LLM observability")
            else:
                logger.info("Langfuse keys not configured, tracing disabled")

        return cls(
            providers=build_text_providers(settings),
            speech_provider=build_speech_provider(settings),
            timeout_seconds=settings.provider_timeout_seconds,
            speech_timeout_seconds=settings.tts_timeout_seconds,
            default_voice=settings.tts_voice,
            langfuse=langfuse,
        )

    async def close(self):
        """Close provider clients and flush Langfuse."""
        for provider in self.providers:
            await provider.close()
        if self.speech_provider:
            await self.speech_provider.close()
        if self.langfuse:
            try:
                self.langfuse.flush()
            except Exception as e:
                logger.warning(f"Failed to flush Langfuse: {e}")

    # =========================================================================
    # TEXT GENERATION
    # =========================================================================

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 500,
        wants_json: bool = False,
        system_prompt: str | None = None,
        trace_name: str = "generate",
    ) -> GenerationResult:
        """
        Generate text with ordered provider fallback.

        Args:
            prompt: The prompt to send
            max_tokens: Maximum tokens in response
            wants_json: Request structured JSON output where supported
            system_prompt: Optional system instruction
            trace_name: Name for the Langfuse span

        Returns:
            GenerationResult; `text is None` when every provider failed
        """
        attempts: list[ProviderAttempt] = []

        for provider in self.providers:
            started = time.perf_counter()
            outcome = AttemptOutcome.ERROR
            detail = None
            text = None

            try:
                raw = await asyncio.wait_for(
                    provider.complete(
                        prompt,
                        max_tokens=max_tokens,
                        wants_json=wants_json and provider.supports_json_mode,
                        system_prompt=system_prompt,
                    ),
                    timeout=self.timeout_seconds,
                )
                text = (raw or "").strip()
                if wants_json and text:
                    text = strip_markdown_fence(text)
                outcome = AttemptOutcome.SUCCESS if text else AttemptOutcome.EMPTY
            except asyncio.TimeoutError:
                outcome = AttemptOutcome.TIMEOUT
                detail = f"no response within {self.timeout_seconds}s"
            except Exception as e:
                outcome = AttemptOutcome.ERROR
                detail = f"{type(e).__name__}: {e}"

            attempt = ProviderAttempt(
                provider=provider.name,
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
                outcome=outcome,
                detail=detail,
            )
            attempts.append(attempt)

            if outcome == AttemptOutcome.SUCCESS:
                logger.info(
                    f"[{trace_name}] {provider.name} succeeded in {attempt.latency_ms}ms "
                    f"(attempt {len(attempts)}/{len(self.providers)})"
                )
                result = GenerationResult(text=text, provider=provider.name, attempts=attempts)
                self._trace(trace_name, prompt, result)
                return result

            logger.warning(
                f"[{trace_name}] {provider.name} failed with {outcome.value}"
                f"{f' ({detail})' if detail else ''}, falling back"
            )

        logger.error(f"[{trace_name}] All {len(self.providers)} AI providers failed")
        result = GenerationResult(attempts=attempts)
        self._trace(trace_name, prompt, result)
        return result

    def _trace(self, name: str, prompt: str, result: GenerationResult) -> None:
        """Record one generate call as a Langfuse span."""
        if not self.langfuse:
            return
        try:
            span = self.langfuse.start_span(
                name=name,
                input=prompt[:2000],
                metadata={
                    "attempts": [attempt.model_dump(mode="json") for attempt in result.attempts],
                    "provider": result.provider,
                },
            )
            span.update(output=result.text)
            span.end()
        except Exception as lf_err:
            logger.warning(f"Langfuse span failed: {lf_err}")

    # =========================================================================
    # SPEECH SYNTHESIS
    # =========================================================================

    async def synthesize_speech(self, text: str, voice: str | None = None) -> SpeechResult:
        """
        Convert text to speech with the single configured provider.

        Failure is reported as "no audio"; the client is expected to fall back
        to local text-to-speech.
        """
        if not self.speech_provider or not text.strip():
            return SpeechResult()

        voice = voice or self.default_voice
        try:
            audio = await asyncio.wait_for(
                self.speech_provider.synthesize(text, voice),
                timeout=self.speech_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{self.speech_provider.name} speech synthesis timed out")
            return SpeechResult()
        except Exception as e:
            logger.error(f"{self.speech_provider.name} speech synthesis failed: {e}")
            return SpeechResult()

        if not audio:
            return SpeechResult()
        return SpeechResult(
            audio=audio,
            format=self.speech_provider.audio_format,
            provider=self.speech_provider.name,
        )

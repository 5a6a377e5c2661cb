"""
AI provider back-ends for HireLoop

Text generation:
- Gemini (Google Generative Language API)
- Any OpenAI-compatible chat-completions API (OpenRouter, OpenAI, Groq)

Speech synthesis:
- OpenAI speech API
- Edge TTS (Microsoft)

Providers raise on transport or HTTP errors; classifying and absorbing those
failures is the gateway's job.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import edge_tts
import httpx

from hireloop.config.settings import Settings

logger = logging.getLogger(__name__)


# ============================================================================
# TEXT PROVIDERS
# ============================================================================

class TextProvider(ABC):
    """One interchangeable text-generation back-end."""

    name: str = "provider"
    supports_json_mode: bool = False

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        wants_json: bool = False,
        system_prompt: str | None = None,
    ) -> str | None:
        """Return the generated text, or None/empty when nothing came back."""

    async def close(self) -> None:
        """Release network resources."""


class GeminiProvider(TextProvider):
    """Gemini via the Generative Language REST API."""

    supports_json_mode = True

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        temperature: float = 0.7,
        client: httpx.AsyncClient | None = None,
    ):
        self.name = "gemini"
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=60.0)

    async def close(self) -> None:
        await self.client.aclose()

    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        wants_json: bool = False,
        system_prompt: str | None = None,
    ) -> str | None:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": self.temperature,
                "responseMimeType": "application/json" if wants_json else "text/plain",
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        response = await self.client.post(
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json=payload,
        )
        response.raise_for_status()
        return self._extract_content(response.json())

    @staticmethod
    def _extract_content(result: dict) -> str:
        """Join the text parts of the first candidate."""
        candidates = result.get("candidates") or [{}]
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class OpenAICompatibleProvider(TextProvider):
    """Any provider speaking the OpenAI chat-completions protocol."""

    supports_json_mode = True

    def __init__(
        self,
        name: str,
        api_key: str,
        model: str,
        base_url: str,
        temperature: float = 0.7,
        client: httpx.AsyncClient | None = None,
    ):
        self.name = name
        self.model = model
        self.temperature = temperature
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=60.0,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        wants_json: bool = False,
        system_prompt: str | None = None,
    ) -> str | None:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": max_tokens,
        }
        if wants_json:
            payload["response_format"] = {"type": "json_object"}

        response = await self.client.post("/chat/completions", json=payload)
        response.raise_for_status()
        return self._extract_content(response.json())

    @staticmethod
    def _extract_content(result: dict) -> str:
        """Extract text content from API response, handling list/dict formats."""
        choices = result.get("choices") or [{}]
        content = choices[0].get("message", {}).get("content", "")

        # Handle case where content is a list (multi-part response)
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and "text" in part:
                    text_parts.append(part["text"])
            content = "".join(text_parts)

        if content is None:
            return ""
        return content if isinstance(content, str) else str(content)


def build_text_providers(settings: Settings) -> list[TextProvider]:
    """
    Build the ordered provider list from settings.

    Providers without an API key are skipped; unknown names are logged and
    ignored so a typo in PROVIDER_ORDER never takes the gateway down.
    """
    temperature = settings.provider_temperature
    factories = {
        "gemini": lambda: GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            temperature=temperature,
        ) if settings.gemini_api_key else None,
        "openrouter": lambda: OpenAICompatibleProvider(
            name="openrouter",
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
            base_url=settings.openrouter_base_url,
            temperature=temperature,
        ) if settings.openrouter_api_key else None,
        "openai": lambda: OpenAICompatibleProvider(
            name="openai",
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            temperature=temperature,
        ) if settings.openai_api_key else None,
        "groq": lambda: OpenAICompatibleProvider(
            name="groq",
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            base_url=settings.groq_base_url,
            temperature=temperature,
        ) if settings.groq_api_key else None,
    }

    providers: list[TextProvider] = []
    for name in settings.provider_order:
        factory = factories.get(name)
        if factory is None:
            logger.warning(f"Unknown text provider '{name}' in provider order, skipping")
            continue
        provider = factory()
        if provider is None:
            logger.info(f"Text provider '{name}' has no API key configured, skipping")
            continue
        providers.append(provider)

    logger.info(f"Text providers in priority order: {[p.name for p in providers]}")
    return providers


# ============================================================================
# SPEECH PROVIDERS
# ============================================================================

class SpeechProvider(ABC):
    """The speech-synthesis back-end."""

    name: str = "speech"
    audio_format: str = "mp3"

    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> bytes | None:
        """Return encoded audio bytes."""

    async def close(self) -> None:
        """Release network resources."""


class OpenAISpeechProvider(SpeechProvider):
    """OpenAI text-to-speech endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "tts-1",
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ):
        self.name = "openai-tts"
        self.model = model
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=60.0,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def synthesize(self, text: str, voice: str) -> bytes | None:
        response = await self.client.post(
            "/audio/speech",
            json={
                "model": self.model,
                "voice": voice,
                "input": text,
                "response_format": self.audio_format,
            },
        )
        if response.status_code == 429:
            logger.warning("TTS quota exceeded, client should fall back to local voice synthesis")
        response.raise_for_status()
        return response.content


class EdgeSpeechProvider(SpeechProvider):
    """Edge TTS (Microsoft) neural voices."""

    # Map voice names to Edge TTS voices
    EDGE_VOICES = {
        "male": "en-US-GuyNeural",
        "female": "en-US-JennyNeural",
        "professional": "en-US-AriaNeural",
        "default": "en-US-GuyNeural",
    }

    def __init__(self):
        self.name = "edge-tts"

    async def synthesize(self, text: str, voice: str) -> bytes | None:
        edge_voice = self.EDGE_VOICES.get(voice, voice if "Neural" in voice else self.EDGE_VOICES["default"])
        communicate = edge_tts.Communicate(text, edge_voice)

        # Collect audio chunks
        audio_chunks = []
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio_chunks.append(chunk["data"])

        return b"".join(audio_chunks)


def build_speech_provider(settings: Settings) -> SpeechProvider | None:
    """Build the single configured speech provider, or None when unavailable."""
    choice = settings.tts_provider.lower()
    if choice == "edge-tts":
        return EdgeSpeechProvider()
    if choice == "openai":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY missing, speech synthesis disabled")
            return None
        return OpenAISpeechProvider(
            api_key=settings.openai_api_key,
            model=settings.tts_model,
            base_url=settings.openai_base_url,
        )
    logger.warning(f"Unknown TTS provider '{settings.tts_provider}', speech synthesis disabled")
    return None

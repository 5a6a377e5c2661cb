"""
Audio Processor for HireLoop

High-fidelity batch speech recognition over a fully captured answer, using
the Whisper transcription API.
"""

import logging

import httpx

from hireloop.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Container sniffing by magic bytes, for the uploaded filename
_AUDIO_SIGNATURES = (
    (b"RIFF", "wav", "audio/wav"),
    (b"OggS", "ogg", "audio/ogg"),
    (b"\x1aE\xdf\xa3", "webm", "audio/webm"),
    (b"ID3", "mp3", "audio/mpeg"),
    (b"fLaC", "flac", "audio/flac"),
)


def detect_audio_format(audio_data: bytes) -> tuple[str, str]:
    """Return (extension, mime type) for an audio buffer, webm when unknown."""
    for signature, extension, mime in _AUDIO_SIGNATURES:
        if audio_data.startswith(signature):
            return extension, mime
    return "webm", "audio/webm"


class AudioProcessor:
    """
    Batch speech-to-text.

    Transcription errors propagate; callers that fuse several transcript
    sources treat a failed batch pass as an absent candidate.
    """

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(timeout=self.settings.whisper_timeout_seconds)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def speech_to_text(
        self,
        audio_data: bytes,
        filename: str | None = None,
        language: str = "en",
    ) -> str:
        """
        Transcribe a complete recording.

        Args:
            audio_data: Raw audio bytes (webm, wav, ogg, mp3, flac)
            filename: Upload name; derived from the audio format when omitted
            language: Language code

        Returns:
            Transcribed text ("" for an empty recording)
        """
        if not audio_data:
            return ""
        if not self.settings.openai_api_key:
            raise RuntimeError("Transcription is not configured (OPENAI_API_KEY is empty)")

        extension, mime = detect_audio_format(audio_data)
        files = {"file": (filename or f"answer.{extension}", audio_data, mime)}
        data = {"model": self.settings.whisper_model, "language": language}

        try:
            response = await self.client.post(
                self.settings.whisper_api_url,
                headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
                files=files,
                data=data,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Whisper API error: {e}")
            raise

        text = response.json().get("text", "").strip()
        logger.info(f"Transcribed {len(audio_data)} bytes of {extension} audio ({len(text)} chars)")
        return text

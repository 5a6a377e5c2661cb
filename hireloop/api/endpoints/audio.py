"""
Audio API endpoints

Handles:
- Text-to-speech generation
- Speech-to-text transcription
"""

import base64
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from hireloop.api.dependencies import get_audio_processor, get_gateway
from hireloop.api.schemas import CamelModel
from hireloop.core.audio_processor import AudioProcessor
from hireloop.core.provider_gateway import ProviderGateway

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class TTSRequest(CamelModel):
    """Request for text-to-speech."""
    text: str
    voice: str | None = None


class TTSResponse(CamelModel):
    """Generated audio, or no audio when the client should speak locally."""
    audio: str | None = None
    format: str | None = None
    provider: str | None = None


class STTResponse(CamelModel):
    """Response with transcribed text."""
    transcript: str


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/tts", response_model=TTSResponse, response_model_by_alias=True)
async def text_to_speech(
    request: TTSRequest,
    gateway: ProviderGateway = Depends(get_gateway),
) -> TTSResponse:
    """
    Convert text to speech.

    Returns base64-encoded audio, or `audio: null` when synthesis failed.
    """
    speech = await gateway.synthesize_speech(request.text, request.voice)
    if not speech.ok:
        return TTSResponse()
    return TTSResponse(
        audio=base64.b64encode(speech.audio).decode("ascii"),
        format=speech.format,
        provider=speech.provider,
    )


@router.post("/stt", response_model=STTResponse)
async def speech_to_text(
    audio: UploadFile = File(...),
    language: str = "en",
    processor: AudioProcessor = Depends(get_audio_processor),
) -> STTResponse:
    """
    Transcribe audio to text.

    Accepts audio file upload.
    """
    audio_data = await audio.read()
    try:
        transcript = await processor.speech_to_text(
            audio_data=audio_data,
            filename=audio.filename,
            language=language,
        )
    except Exception as e:
        logger.error(f"Transcription failed: {e}")
        raise HTTPException(status_code=502, detail="Transcription failed")

    return STTResponse(transcript=transcript)

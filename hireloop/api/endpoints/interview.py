"""
Interview API endpoints

Handles interview session lifecycle:
- Starting interviews
- Submitting answers (text or streamed voice)
- Session status
- Ending interviews
- Answer audit log and standalone answer evaluation
"""

import base64
import binascii
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from hireloop.api.dependencies import get_orchestrator
from hireloop.api.schemas import CamelModel
from hireloop.core.errors import HireLoopError, SessionNotFoundError
from hireloop.core.interview_orchestrator import InterviewOrchestrator
from hireloop.core.transcript_fusion import AnswerCapture

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class StartRequest(CamelModel):
    """Request to start an interview."""
    position_id: str
    subject_id: str


class NextRequest(CamelModel):
    """Candidate's answer to the current question."""
    session_id: str
    answer_text: str = ""


class RecordAnswerRequest(CamelModel):
    """One question/answer pair for the audit log."""
    position_id: str
    subject_id: str
    question: str = ""
    answer: str = ""


class EvaluateAnswerRequest(CamelModel):
    """Standalone answer evaluation."""
    question: str = ""
    answer: str = ""
    position_title: str = "Software Engineer"
    subject_id: str | None = None


# ============================================================================
# REST ENDPOINTS
# ============================================================================

@router.post("/start")
async def start_interview(
    request: StartRequest,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Start an interview.

    Builds the skill map from the candidate's resume analysis and returns
    the opening question. Fails with 400 when the analysis is missing.
    """
    return await orchestrator.start_interview(request.position_id, request.subject_id)


@router.post("/next")
async def next_question(
    request: NextRequest,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Submit an answer and get the next question or the final score."""
    return await orchestrator.submit_answer(request.session_id, request.answer_text)


@router.post("/record-answer")
async def record_answer(
    request: RecordAnswerRequest,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.record_answer(
        request.position_id, request.subject_id, request.question, request.answer
    )


@router.post("/evaluate-answer")
async def evaluate_answer(
    request: EvaluateAnswerRequest,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.evaluate_answer(
        request.question,
        request.answer,
        position_title=request.position_title,
        subject_id=request.subject_id,
    )


@router.get("/{session_id}")
async def get_session_status(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Get the current status of an interview session."""
    return await orchestrator.get_status(session_id)


@router.post("/{session_id}/end")
async def end_interview(
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """End the interview early and score what was answered."""
    return await orchestrator.end_interview(session_id)


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws/{session_id}")
async def websocket_interview(
    websocket: WebSocket,
    session_id: str,
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator),
):
    """
    WebSocket endpoint for spoken answers.

    Client sends:
    - audio_chunk: base64 audio appended to the current answer
    - partial: streaming recognizer result ({text, isFinal})
    - manual: typed or edited answer text
    - stop: answer finished; fuse transcripts and advance
    - ping

    Server sends:
    - transcript: the fused answer text
    - question: next question (with audio)
    - complete: interview finished (final score)
    - error: error occurred
    - pong
    """
    await websocket.accept()

    try:
        await orchestrator.sessions.get(session_id)
    except SessionNotFoundError:
        await websocket.close(code=4004, reason="Session not found")
        return

    capture = AnswerCapture()

    try:
        while True:
            data = await websocket.receive_json()
            message_type = data.get("type")

            if message_type == "audio_chunk":
                try:
                    capture.feed_audio(base64.b64decode(data.get("data") or ""))
                except (binascii.Error, ValueError):
                    await websocket.send_json({"type": "error", "message": "Invalid audio chunk"})

            elif message_type == "partial":
                capture.feed_partial(data.get("text", ""), bool(data.get("isFinal", False)))

            elif message_type == "manual":
                capture.set_manual(data.get("text"))

            elif message_type == "stop":
                result = await orchestrator.submit_voice_answer(session_id, capture)
                capture = AnswerCapture()

                await websocket.send_json({
                    "type": "transcript",
                    "data": result.pop("transcript", None),
                })

                if result.get("hasNext"):
                    await websocket.send_json({"type": "question", "data": result})
                else:
                    await websocket.send_json({"type": "complete", "data": result})
                    await websocket.close()
                    break

            elif message_type == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from session {session_id}")
    except HireLoopError as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=4004 if isinstance(e, SessionNotFoundError) else 4000)

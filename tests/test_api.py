import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

import main
from hireloop.api.dependencies import get_audio_processor, get_gateway, get_ledger, get_orchestrator


class StubAudioProcessor:

    async def speech_to_text(self, audio_data, filename=None, language="en"):
        return f"transcribed {len(audio_data)} bytes"


@pytest.fixture
def orchestrator(build_orchestrator):
    return build_orchestrator()


@pytest.fixture
def client(orchestrator):
    main.app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    main.app.dependency_overrides[get_ledger] = lambda: orchestrator.ledger
    main.app.dependency_overrides[get_gateway] = lambda: orchestrator.gateway
    main.app.dependency_overrides[get_audio_processor] = lambda: StubAudioProcessor()
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


def _start(client) -> str:
    response = client.post("/api/interview/start", json={"positionId": "job-1", "subjectId": "cand-1"})
    assert response.status_code == 200
    return response.json()["sessionId"]


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_start_without_resume_analysis_is_400(client) -> None:
    response = client.post("/api/interview/start", json={"positionId": "job-1", "subjectId": "stranger"})

    assert response.status_code == 400
    assert "Resume analysis required" in response.json()["detail"]


def test_start_and_advance(client) -> None:
    session_id = _start(client)

    response = client.post("/api/interview/next", json={"sessionId": session_id, "answerText": "A solid answer"})

    body = response.json()
    assert response.status_code == 200
    assert body["hasNext"] is True
    assert body["turnNumber"] == 2
    assert body["question"] == "How did you structure the async parts of that service?"

    status = client.get(f"/api/interview/{session_id}").json()
    assert status["phase"] == "drill_down"
    assert status["skillIndex"] == 0
    assert len(status["turns"]) == 3


def test_unknown_session_is_404(client) -> None:
    assert client.post("/api/interview/next", json={"sessionId": "nope", "answerText": "hi"}).status_code == 404
    assert client.get("/api/interview/nope").status_code == 404


def test_end_interview_twice(client) -> None:
    session_id = _start(client)

    first = client.post(f"/api/interview/{session_id}/end").json()
    second = client.post(f"/api/interview/{session_id}/end").json()

    assert first["status"] == "ended"
    assert second == {"status": "already_ended", "sessionId": session_id}


def test_record_and_evaluate_answer(client) -> None:
    recorded = client.post("/api/interview/record-answer", json={
        "positionId": "job-1", "subjectId": "cand-1", "question": "Q?", "answer": "A.",
    })
    evaluated = client.post("/api/interview/evaluate-answer", json={
        "question": "What is a B-tree?", "answer": "A balanced search tree", "positionTitle": "DBA",
    })

    assert recorded.json() == {"ok": True}
    assert evaluated.json()["score"] == 85
    assert evaluated.json()["needsProbe"] is False


def test_finalize_is_idempotent(client, orchestrator) -> None:
    payload = {"positionId": "job-1", "subjectId": "cand-1", "resumeMatch": 80, "assessmentScore": 70, "interviewScore": 60}

    first = client.post("/api/scores/finalize", json=payload).json()
    second = client.post("/api/scores/finalize", json=payload).json()

    assert first["finalScore"] == second["finalScore"] == 70
    assert second["status"] == "SHORTLISTED"
    assert client.get("/api/ledger/recruiter-1").json()["balance"] == 100


def test_finalize_rejects_out_of_range_scores(client) -> None:
    response = client.post("/api/scores/finalize", json={"positionId": "job-1", "subjectId": "cand-1", "resumeMatch": 101})

    assert response.status_code == 422


def test_ledger_soft_fail_and_history(client) -> None:
    debit = client.post("/api/ledger/debit", json={"accountId": "cand-1", "amount": 500, "reason": "Too expensive"})
    credit = client.post("/api/ledger/credit", json={"accountId": "cand-1", "amount": 10, "reason": "Manual Top-up"})
    missing = client.post("/api/ledger/credit", json={"accountId": "ghost", "amount": 10})
    invalid = client.post("/api/ledger/debit", json={"accountId": "cand-1", "amount": 0})

    assert debit.status_code == 200
    assert debit.json() == {"ok": False, "applied": False, "balance": 50, "error": "insufficient_funds"}
    assert credit.json()["balance"] == 60
    assert missing.json()["error"] == "account_not_found"
    assert invalid.status_code == 400

    account = client.get("/api/ledger/cand-1").json()
    assert [entry["reason"] for entry in account["history"]] == ["Manual Top-up"]
    assert client.get("/api/ledger/ghost").status_code == 404


def test_profile_bonus_is_paid_once(client) -> None:
    first = client.post("/api/ledger/cand-1/profile-bonus").json()
    second = client.post("/api/ledger/cand-1/profile-bonus").json()

    assert first["balance"] == 100
    assert second["error"] == "duplicate"


def test_tts_without_speech_provider_returns_no_audio(client) -> None:
    response = client.post("/api/audio/tts", json={"text": "Hello"})

    assert response.status_code == 200
    assert response.json()["audio"] is None


def test_stt_upload(client) -> None:
    response = client.post("/api/audio/stt", files={"audio": ("answer.wav", b"RIFF1234", "audio/wav")})

    assert response.json() == {"transcript": "transcribed 8 bytes"}


def test_websocket_voice_turn(client) -> None:
    session_id = _start(client)

    with client.websocket_connect(f"/api/interview/ws/{session_id}") as websocket:
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "partial", "text": "I used asyncio with a thread pool", "isFinal": True})
        websocket.send_json({"type": "stop"})

        transcript = websocket.receive_json()
        question = websocket.receive_json()

    assert transcript["type"] == "transcript"
    assert transcript["data"]["text"] == "I used asyncio with a thread pool"
    assert question["type"] == "question"
    assert question["data"]["turnNumber"] == 2


def test_websocket_unknown_session_is_closed(client) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/interview/ws/missing") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4004

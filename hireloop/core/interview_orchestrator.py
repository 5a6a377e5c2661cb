"""
Interview Orchestrator - coordinator for the interview lifecycle.

Wires the session manager, skill map builder, answer evaluator, transcript
fusion, provider gateway and score aggregator together for the HTTP layer.

Flow:
    start  -> skill map -> session -> opening question (+ speech)
    answer -> evaluate -> orchestrator transition -> next question (+ speech)
           -> (complete) verdict -> application upsert -> composite score

The interview never halts on a transient failure: provider trouble maps to
fallback evaluations and questions. Only unknown sessions and malformed
start requests are surfaced as errors.
"""

import base64
import logging
import random
from typing import Any

from hireloop.config import Settings, get_settings
from hireloop.core.answer_evaluator import AnswerEvaluator
from hireloop.core.audio_processor import AudioProcessor
from hireloop.core.coin_ledger import CoinLedger
from hireloop.core.errors import (
    InvalidInputError,
    PrerequisiteMissingError,
    SessionNotFoundError,
)
from hireloop.core.parsing import coerce_int, extract_json_object
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.core.score_aggregator import ScoreAggregator
from hireloop.core.session_manager import SessionManager
from hireloop.core.session_store import SessionStore
from hireloop.core.skill_map import SkillMapBuilder
from hireloop.core.skill_orchestrator import SkillPhaseOrchestrator
from hireloop.core.transcript_fusion import AnswerCapture, TranscriptFusionEngine
from hireloop.models.candidate import Position
from hireloop.models.evaluation import InterviewVerdict
from hireloop.models.interview import FinalTranscript, NextTurn, SessionComplete
from hireloop.models.scoring import ApplicationRecord, InterviewAnswer, InterviewLogEntry
from hireloop.prompts.interviewer import FALLBACK_FOLLOWUPS, InterviewerPrompts
from hireloop.storage.base import ApplicationStore, CandidateDirectory, LedgerStore

logger = logging.getLogger(__name__)


class InterviewOrchestrator:
    """
    Coordinates one interview from start to composite score.

    Holds no session state of its own; every session lives in the
    session store behind the session manager.
    """

    def __init__(
        self,
        sessions: SessionManager,
        skill_maps: SkillMapBuilder,
        evaluator: AnswerEvaluator,
        fusion: TranscriptFusionEngine,
        aggregator: ScoreAggregator,
        applications: ApplicationStore,
        directory: CandidateDirectory,
        ledger: CoinLedger,
        gateway: ProviderGateway,
        audio_processor: AudioProcessor | None = None,
        settings: Settings | None = None,
    ):
        self.sessions = sessions
        self.skill_maps = skill_maps
        self.evaluator = evaluator
        self.fusion = fusion
        self.aggregator = aggregator
        self.applications = applications
        self.directory = directory
        self.ledger = ledger
        self.gateway = gateway
        self.audio_processor = audio_processor
        self.settings = settings or get_settings()
        self.prompts = InterviewerPrompts()

    @classmethod
    def build(
        cls,
        settings: Settings,
        gateway: ProviderGateway,
        session_store: SessionStore,
        applications: ApplicationStore,
        ledger_store: LedgerStore,
        directory: CandidateDirectory,
        audio_processor: AudioProcessor | None = None,
    ) -> "InterviewOrchestrator":
        """Assemble the engine from its stores and settings."""
        evaluator = AnswerEvaluator(
            gateway,
            score_floor=settings.answer_score_floor,
            fallback_score=settings.fallback_answer_score,
            min_answer_chars=settings.min_answer_chars,
        )
        sessions = SessionManager(
            session_store,
            SkillPhaseOrchestrator(
                escalation_threshold=settings.escalation_threshold,
                max_probes_per_node=settings.max_probes_per_node,
            ),
            evaluator,
            max_questions=settings.interview_max_questions,
        )
        ledger = CoinLedger(ledger_store, default_balance=settings.default_coin_balance)
        aggregator = ScoreAggregator(
            applications,
            directory,
            ledger,
            elite_threshold=settings.elite_threshold,
            elite_reward_coins=settings.elite_reward_coins,
            high_score_threshold=settings.high_score_threshold,
            high_score_reward_coins=settings.high_score_reward_coins,
        )
        fusion = TranscriptFusionEngine(
            gateway,
            min_chars=settings.fusion_min_chars,
            hallucination_phrases=settings.hallucination_phrases,
        )
        return cls(
            sessions=sessions,
            skill_maps=SkillMapBuilder(gateway, skill_count=settings.skill_map_size),
            evaluator=evaluator,
            fusion=fusion,
            aggregator=aggregator,
            applications=applications,
            directory=directory,
            ledger=ledger,
            gateway=gateway,
            audio_processor=audio_processor,
            settings=settings,
        )

    # =========================================================================
    # INTERVIEW LIFECYCLE
    # =========================================================================

    async def start_interview(self, position_id: str, subject_id: str) -> dict[str, Any]:
        """
        Start an interview for a candidate who already has a resume analysis.

        Raises:
            InvalidInputError: missing identifiers
            PrerequisiteMissingError: no resume analysis for this position
        """
        if not position_id or not subject_id:
            raise InvalidInputError("positionId and subjectId are required")

        resume = await self.directory.get_resume_analysis(subject_id, position_id)
        if resume is None:
            raise PrerequisiteMissingError("Resume analysis required. Please analyze your resume first.")

        position = await self.directory.get_position(position_id) or Position(position_id=position_id)
        skill_map = await self.skill_maps.build(position, resume)

        session_id = await self.sessions.create(subject_id, position_id, skill_map, position.title)
        session = await self.sessions.get(session_id)
        question = session.current_question()

        return {
            "sessionId": session_id,
            "question": question,
            "audio": await self._speak(question),
            "turnNumber": session.turn_number(),
            "skills": [node.skill for node in skill_map],
        }

    async def submit_answer(self, session_id: str, answer_text: str) -> dict[str, Any]:
        """
        Advance the interview with the candidate's answer.

        Raises:
            SessionNotFoundError: unknown or finished session
        """
        try:
            outcome = await self.sessions.advance(session_id, answer_text)
        except SessionNotFoundError:
            raise
        except Exception:
            logger.exception(f"Advancing session {session_id} failed, asking a fallback question")
            outcome = await self.sessions.ask_fallback(session_id, answer_text, random.choice(FALLBACK_FOLLOWUPS))
            response = await self._respond(outcome)
            if response["hasNext"]:
                response["isFallback"] = True
            return response

        return await self._respond(outcome)

    async def _respond(self, outcome: NextTurn | SessionComplete) -> dict[str, Any]:
        if isinstance(outcome, SessionComplete):
            verdict = await self._complete(outcome.transcript)
            return {
                "hasNext": False,
                "finalScore": verdict.score,
                "feedback": verdict.feedback,
                "reason": outcome.reason,
            }

        # Speech is synthesized after the session lock has been released
        return {
            "hasNext": True,
            "question": outcome.question,
            "audio": await self._speak(outcome.question),
            "turnNumber": outcome.turn_number,
            "phase": outcome.phase.value,
            "skill": outcome.skill,
            "isProbe": outcome.is_probe,
        }

    async def submit_voice_answer(self, session_id: str, capture: AnswerCapture) -> dict[str, Any]:
        """
        Finish a spoken answer: flush the capture, fuse all transcript
        sources and advance the interview with the result.
        """
        session = await self.sessions.get(session_id)
        await capture.stop_and_flush(self.settings.capture_flush_grace_seconds)

        batch_text = None
        audio = capture.audio_bytes()
        if audio and self.audio_processor is not None:
            try:
                batch_text = await self.audio_processor.speech_to_text(audio)
            except Exception as e:
                # The other sources still stand in for a failed batch pass
                logger.warning(f"Batch transcription failed for session {session_id}: {e}")

        fused = await self.fusion.finalize(
            batch=batch_text,
            incremental=capture.incremental_text(),
            manual=capture.manual_text,
            question=session.current_question(),
        )
        result = await self.submit_answer(session_id, fused.text)
        result["transcript"] = fused.model_dump(mode="json")
        return result

    async def end_interview(self, session_id: str) -> dict[str, Any]:
        """End a session early and score what was answered."""
        try:
            transcript = await self.sessions.terminate(session_id)
        except SessionNotFoundError:
            return {"status": "already_ended", "sessionId": session_id}

        verdict = await self._complete(transcript)
        return {
            "status": "ended",
            "sessionId": session_id,
            "finalScore": verdict.score,
            "feedback": verdict.feedback,
            "transcript": transcript.model_dump(mode="json"),
        }

    async def get_status(self, session_id: str) -> dict[str, Any]:
        session = await self.sessions.get(session_id)
        current = session.current_skill()
        return {
            "sessionId": session.session_id,
            "subjectId": session.subject_id,
            "positionId": session.position_id,
            "skillIndex": session.state.skill_index,
            "skill": current.skill if current else None,
            "phase": session.state.phase.value,
            "turnNumber": session.turn_number(),
            "complete": session.state.complete,
            "turns": [turn.model_dump(mode="json") for turn in session.turns],
        }

    # =========================================================================
    # ANSWER OPERATIONS
    # =========================================================================

    async def record_answer(self, position_id: str, subject_id: str, question: str, answer: str) -> dict[str, Any]:
        """Append one question/answer pair to the application's audit log."""
        if not position_id or not subject_id:
            raise InvalidInputError("positionId and subjectId are required")
        await self.applications.append_log(
            subject_id,
            position_id,
            InterviewLogEntry(question=question or "", answer=answer or ""),
        )
        return {"ok": True}

    async def evaluate_answer(
        self,
        question: str,
        answer: str,
        position_title: str = "Software Engineer",
        subject_id: str | None = None,
    ) -> dict[str, Any]:
        """Score a single answer outside of a session."""
        if subject_id:
            await self.ledger.charge(subject_id, self.settings.answer_validation_cost, "Answer Validation")

        evaluation = await self.evaluator.evaluate(question or "", answer or "", position_title)
        return {
            "score": evaluation.score,
            "feedback": evaluation.feedback,
            "needsProbe": evaluation.needs_probe,
            "probeText": evaluation.probe_text,
            "evaluated": evaluation.evaluated,
        }

    async def finalize_scores(
        self,
        position_id: str,
        subject_id: str,
        resume_match: int | None = None,
        assessment_score: int | None = None,
        interview_score: int | None = None,
        applicant_name: str | None = None,
    ) -> ApplicationRecord:
        return await self.aggregator.finalize(
            subject_id,
            position_id,
            resume_match=resume_match,
            assessment_score=assessment_score,
            interview_score=interview_score,
            applicant_name=applicant_name,
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    async def _complete(self, transcript: FinalTranscript) -> InterviewVerdict:
        """Score a finished interview and persist it on the application."""
        verdict = await self._verdict(transcript)

        evaluations = transcript.evaluations
        answers = [
            InterviewAnswer(
                question=question,
                answer=answer,
                score=evaluations[index].score if index < len(evaluations) else None,
                feedback=evaluations[index].feedback if index < len(evaluations) else None,
            )
            for index, (question, answer) in enumerate(transcript.question_answer_pairs())
        ]

        try:
            await self.aggregator.finalize(
                transcript.subject_id,
                transcript.position_id,
                interview_score=verdict.score,
                interview_answers=answers,
                communication_delta=verdict.communication,
            )
        except Exception:
            # The candidate still gets a verdict; the record can be re-finalized
            logger.exception(f"Persisting interview result for session {transcript.session_id} failed")

        logger.info(
            f"Interview {transcript.session_id} scored {verdict.score} "
            f"({'AI verdict' if verdict.evaluated else 'fallback'})"
        )
        return verdict

    async def _verdict(self, transcript: FinalTranscript) -> InterviewVerdict:
        """Overall interview score from the providers, else from the answer scores."""
        await self.ledger.charge(
            transcript.subject_id, self.settings.interview_analysis_cost, "AI Interview Analysis"
        )
        resume = await self.directory.get_resume_analysis(transcript.subject_id, transcript.position_id)

        result = await self.gateway.generate(
            self.prompts.verdict_prompt(
                transcript.get_conversation_str(),
                transcript.position_title,
                resume.structured if resume else {},
            ),
            max_tokens=600,
            wants_json=True,
            system_prompt=self.prompts.SYSTEM_CONTEXT,
            trace_name="interview_verdict",
        )

        data = extract_json_object(result.text) if result.ok else None
        score = coerce_int(data.get("score")) if data else None
        if score is not None:
            metrics = data.get("metrics") if isinstance(data.get("metrics"), dict) else {}
            communication = coerce_int(metrics.get("communication"))
            return InterviewVerdict(
                score=self.evaluator.clamp(score),
                feedback=str(data.get("feedback") or "Interview completed."),
                communication=communication if communication is not None and 0 <= communication <= 10 else None,
            )

        evaluated = [evaluation.score for evaluation in transcript.evaluations if evaluation.evaluated]
        fallback = round(sum(evaluated) / len(evaluated)) if evaluated else self.settings.fallback_interview_score
        logger.warning(f"Interview verdict unavailable for {transcript.session_id}, using {fallback}")
        return InterviewVerdict(
            score=self.evaluator.clamp(fallback),
            feedback="Interview completed. Detailed feedback is unavailable right now.",
            evaluated=False,
        )

    async def _speak(self, text: str | None) -> str | None:
        """Base64 speech for a question, or None so the client speaks locally."""
        if not text:
            return None
        speech = await self.gateway.synthesize_speech(text)
        if not speech.ok:
            return None
        return base64.b64encode(speech.audio).decode("ascii")

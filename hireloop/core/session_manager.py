"""
Session Manager - single source of truth for "is this interview still
running" and "what turn are we on".

Owns the lifetime of every interview session: creation, per-turn advancement
through the skill-phase orchestrator, termination and cleanup.
"""

import logging
import secrets
from datetime import datetime

from hireloop.core.answer_evaluator import AnswerEvaluator
from hireloop.core.errors import InvalidInputError, SessionNotFoundError
from hireloop.core.session_store import SessionStore
from hireloop.core.skill_orchestrator import SkillPhaseOrchestrator, TransitionKind
from hireloop.models.evaluation import AnswerEvaluation
from hireloop.models.interview import (
    FinalTranscript,
    InterviewSession,
    NextTurn,
    OrchestratorState,
    SessionComplete,
    SkillNode,
    TurnRole,
)

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Creates, advances and terminates interview sessions.

    Turns of one session are serialized by that session's lock; no global
    lock is ever taken.
    """

    def __init__(
        self,
        store: SessionStore,
        orchestrator: SkillPhaseOrchestrator,
        evaluator: AnswerEvaluator | None = None,
        max_questions: int = 10,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.evaluator = evaluator
        self.max_questions = max_questions

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create(
        self,
        subject_id: str,
        position_id: str,
        skill_map: list[SkillNode],
        position_title: str = "Software Engineer",
    ) -> str:
        """
        Allocate a session and ask the opening question.

        Raises:
            InvalidInputError: empty identifiers or an empty skill map
        """
        if not subject_id or not position_id:
            raise InvalidInputError("subjectId and positionId are required")
        if not skill_map:
            raise InvalidInputError("Skill map must contain at least one skill")

        state, opening_question = self.orchestrator.opening(skill_map)
        session = InterviewSession(
            session_id=secrets.token_hex(16),
            subject_id=subject_id,
            position_id=position_id,
            position_title=position_title,
            skill_map=list(skill_map),
            state=state,
        )
        session.append_turn(TurnRole.INTERVIEWER, opening_question)
        await self.store.put(session)

        logger.info(
            f"Created interview session {session.session_id} for {subject_id} "
            f"({len(skill_map)} skills: {', '.join(node.skill for node in skill_map)})"
        )
        return session.session_id

    async def get(self, session_id: str) -> InterviewSession:
        """Snapshot of an open session."""
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def advance(self, session_id: str, answer: str) -> NextTurn | SessionComplete:
        """
        Record the candidate's answer and move the interview forward.

        Returns:
            NextTurn with the next question, or SessionComplete once the skill
            map is exhausted or the question cap is reached. A completed
            session is removed from the store.

        Raises:
            SessionNotFoundError: unknown or already terminated session
        """
        if await self.store.get(session_id) is None:
            raise SessionNotFoundError(session_id)

        async with self.store.lock_for(session_id):
            # Re-read under the lock: a concurrent turn may have finished it
            session = await self._locked_get(session_id)

            answer = answer or ""
            question = session.current_question() or ""
            session.append_turn(TurnRole.CANDIDATE, answer)

            evaluation = await self._evaluate(question, answer, session.position_title)
            session.evaluations.append(evaluation or self._unevaluated())

            transition = self.orchestrator.transition(session.state, session.skill_map, evaluation)
            session.last_active_at = datetime.utcnow()

            if transition.kind == TransitionKind.COMPLETE or session.turn_number() >= self.max_questions:
                reason = "skill_map_exhausted" if transition.kind == TransitionKind.COMPLETE else "question_cap"
                return await self._finish(session, transition.state, reason)

            session.state = transition.state
            session.append_turn(TurnRole.INTERVIEWER, transition.question)
            await self.store.put(session)

            logger.info(
                f"Session {session_id}: {transition.kind.value} -> skill {session.state.skill_index} "
                f"at {session.state.phase.value} (question {session.turn_number()})"
            )
            current_skill = session.current_skill()
            return NextTurn(
                question=transition.question,
                turn_number=session.turn_number(),
                phase=session.state.phase,
                skill=current_skill.skill if current_skill else "",
                is_probe=transition.kind == TransitionKind.PROBE,
                evaluation=session.evaluations[-1],
            )

    async def ask_fallback(self, session_id: str, answer: str, question: str) -> NextTurn | SessionComplete:
        """
        Record an answer without evaluation and ask `question` next.

        Used when `advance` failed unexpectedly. The stored session is left
        as it was before that attempt, so the answer and the fallback
        question are appended here and the transcript matches what the
        candidate was actually asked. The orchestrator stays on its current
        node. The question cap still applies.
        """
        async with self.store.lock_for(session_id):
            session = await self._locked_get(session_id)

            if session.expected_role() == TurnRole.CANDIDATE:
                session.append_turn(TurnRole.CANDIDATE, answer or "")
                session.evaluations.append(self._unevaluated())
            session.last_active_at = datetime.utcnow()

            if session.turn_number() >= self.max_questions:
                return await self._finish(session, session.state, "question_cap")

            session.state = session.state.model_copy(update={
                "questions_asked": session.state.questions_asked + 1,
            })
            session.append_turn(TurnRole.INTERVIEWER, question)
            await self.store.put(session)

            logger.warning(f"Session {session_id}: fallback question (question {session.turn_number()})")
            current_skill = session.current_skill()
            return NextTurn(
                question=question,
                turn_number=session.turn_number(),
                phase=session.state.phase,
                skill=current_skill.skill if current_skill else "",
                is_probe=False,
                evaluation=session.evaluations[-1] if session.evaluations else None,
            )

    async def terminate(self, session_id: str) -> FinalTranscript:
        """
        Remove a session and return its full history for scoring.

        A second call raises SessionNotFoundError, which callers treat as
        "already finalized".
        """
        async with self.store.lock_for(session_id):
            session = await self.store.delete(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        logger.info(f"Session {session_id} terminated after {session.turn_number()} questions")
        return self._final_transcript(session)

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    async def _locked_get(self, session_id: str) -> InterviewSession:
        """Re-read a session while holding its lock."""
        session = await self.store.get(session_id)
        if session is None:
            # Gone before the lock was taken (finished or reaped); drop the lock we created
            await self.store.delete(session_id)
            raise SessionNotFoundError(session_id)
        return session

    async def _finish(self, session: InterviewSession, state: OrchestratorState, reason: str) -> SessionComplete:
        session.state = state.model_copy(update={"complete": True})
        await self.store.delete(session.session_id)
        logger.info(
            f"Session {session.session_id} complete ({reason}) after {session.turn_number()} questions"
        )
        return SessionComplete(
            transcript=self._final_transcript(session),
            evaluation=session.evaluations[-1] if session.evaluations else None,
            reason=reason,
        )

    async def _evaluate(self, question: str, answer: str, position_title: str) -> AnswerEvaluation | None:
        """Evaluate an answer; any evaluator failure maps to None (non-escalating)."""
        if self.evaluator is None:
            return None
        try:
            return await self.evaluator.evaluate(question, answer, position_title)
        except Exception:
            logger.exception("Answer evaluation failed, advancing without evaluation")
            return None

    def _unevaluated(self) -> AnswerEvaluation:
        if self.evaluator is not None:
            return self.evaluator.fallback()
        return AnswerEvaluation(score=0, feedback="Not evaluated.", evaluated=False)

    @staticmethod
    def _final_transcript(session: InterviewSession) -> FinalTranscript:
        return FinalTranscript(
            session_id=session.session_id,
            subject_id=session.subject_id,
            position_id=session.position_id,
            position_title=session.position_title,
            turns=list(session.turns),
            evaluations=list(session.evaluations),
            state=session.state,
        )

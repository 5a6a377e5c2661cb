import asyncio

import pytest

from hireloop.core.errors import InvalidInputError, SessionNotFoundError
from hireloop.core.session_manager import SessionManager
from hireloop.core.session_store import InMemorySessionStore
from hireloop.core.skill_orchestrator import SkillPhaseOrchestrator
from hireloop.models.evaluation import AnswerEvaluation
from hireloop.models.interview import NextTurn, Phase, SessionComplete, TurnRole

from conftest import make_skill_map


class StubEvaluator:
    """Returns a fixed evaluation (or raises) after an optional delay."""

    def __init__(self, score: int = 85, delay: float = 0.0, error: Exception | None = None):
        self.score = score
        self.delay = delay
        self.error = error
        self.calls = 0

    async def evaluate(self, question, answer, position_title="Software Engineer"):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return AnswerEvaluation(score=self.score, feedback="ok")

    def fallback(self):
        return AnswerEvaluation(score=50, feedback="Answer recorded.", evaluated=False)


def _manager(evaluator=None, max_questions: int = 10, store=None) -> SessionManager:
    return SessionManager(
        store if store is not None else InMemorySessionStore(),
        SkillPhaseOrchestrator(escalation_threshold=70, max_probes_per_node=1),
        evaluator or StubEvaluator(),
        max_questions=max_questions,
    )


def test_create_rejects_invalid_input() -> None:
    manager = _manager()

    async def scenario():
        with pytest.raises(InvalidInputError):
            await manager.create("cand-1", "job-1", [])
        with pytest.raises(InvalidInputError):
            await manager.create("", "job-1", make_skill_map())

    asyncio.run(scenario())


def test_create_asks_opening_question() -> None:
    manager = _manager()

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(), "Backend Engineer")
        return session_id, await manager.get(session_id)

    session_id, session = asyncio.run(scenario())

    assert len(session_id) == 32
    assert [turn.role for turn in session.turns] == [TurnRole.INTERVIEWER]
    assert session.current_question() == "primary question 0"
    assert session.position_title == "Backend Engineer"


def test_strong_answers_consume_three_turns_per_skill() -> None:
    manager = _manager(StubEvaluator(score=85))

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(3))
        results = [await manager.advance(session_id, f"detailed answer {i}") for i in range(3)]
        return results, await manager.get(session_id)

    results, session = asyncio.run(scenario())

    assert [(r.skill, r.phase) for r in results] == [
        ("skill-0", Phase.DRILL_DOWN),
        ("skill-0", Phase.STRESS_TEST),
        ("skill-1", Phase.PRIMARY),
    ]
    assert results[-1].question == "primary question 1"
    skill_zero_questions = [
        turn.content for turn in session.turns
        if turn.role == TurnRole.INTERVIEWER and turn.content.endswith("question 0")
    ]
    assert len(skill_zero_questions) == 3


def test_exhausted_map_completes_and_removes_session() -> None:
    manager = _manager(StubEvaluator(score=40))

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(2))
        first = await manager.advance(session_id, "a weak answer")
        second = await manager.advance(session_id, "another weak answer")
        with pytest.raises(SessionNotFoundError):
            await manager.advance(session_id, "too late")
        return first, second

    first, second = asyncio.run(scenario())

    assert isinstance(first, NextTurn)
    assert isinstance(second, SessionComplete)
    assert second.reason == "skill_map_exhausted"
    assert second.transcript.state.complete
    assert len(second.transcript.turns) == 4
    assert second.transcript.question_answer_pairs()[1] == ("primary question 1", "another weak answer")


def test_question_cap_ends_interview() -> None:
    manager = _manager(StubEvaluator(score=90), max_questions=2)

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(3))
        await manager.advance(session_id, "first good answer")
        return await manager.advance(session_id, "second good answer")

    outcome = asyncio.run(scenario())

    assert isinstance(outcome, SessionComplete)
    assert outcome.reason == "question_cap"
    assert len(outcome.transcript.evaluations) == 2


def test_evaluator_failure_advances_to_next_skill() -> None:
    manager = _manager(StubEvaluator(error=RuntimeError("provider exploded")))

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(3))
        return await manager.advance(session_id, "an answer that was never scored")

    outcome = asyncio.run(scenario())

    assert isinstance(outcome, NextTurn)
    assert outcome.skill == "skill-1"
    assert outcome.evaluation.evaluated is False


def test_unknown_session_is_rejected() -> None:
    manager = _manager()

    with pytest.raises(SessionNotFoundError):
        asyncio.run(manager.advance("missing", "hello there"))


def test_terminate_twice_reports_already_finalized() -> None:
    manager = _manager()

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map())
        await manager.advance(session_id, "some answer")
        transcript = await manager.terminate(session_id)
        with pytest.raises(SessionNotFoundError):
            await manager.terminate(session_id)
        return transcript

    transcript = asyncio.run(scenario())

    assert len(transcript.turns) == 3
    assert transcript.turns[-1].role == TurnRole.INTERVIEWER


def test_concurrent_turns_on_one_session_are_serialized() -> None:
    evaluator = StubEvaluator(score=85, delay=0.01)
    manager = _manager(evaluator)

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map(3))
        await asyncio.gather(*(manager.advance(session_id, f"answer number {i}") for i in range(3)))
        return await manager.get(session_id)

    session = asyncio.run(scenario())

    roles = [turn.role for turn in session.turns]
    assert roles == [TurnRole.INTERVIEWER, TurnRole.CANDIDATE] * 3 + [TurnRole.INTERVIEWER]
    assert (session.state.skill_index, session.state.phase) == (1, Phase.PRIMARY)
    assert evaluator.calls == 3


def test_distinct_sessions_run_in_parallel() -> None:
    manager = _manager(StubEvaluator(score=85, delay=0.2))

    async def scenario():
        ids = [await manager.create(f"cand-{i}", "job-1", make_skill_map()) for i in range(5)]
        loop = asyncio.get_running_loop()
        started = loop.time()
        await asyncio.gather(*(manager.advance(session_id, "a parallel answer") for session_id in ids))
        return loop.time() - started

    elapsed = asyncio.run(scenario())

    # Five 0.2s evaluations finish together when no global lock serializes them
    assert elapsed < 0.8


class VanishingSessionStore(InMemorySessionStore):
    """Loses a session right after it is looked up, as a concurrent sweep would."""

    vanish = False

    async def get(self, session_id):
        session = await super().get(session_id)
        if self.vanish:
            await self.delete(session_id)
        return session


def test_session_lost_before_lock_leaves_no_lock_behind() -> None:
    store = VanishingSessionStore()
    manager = _manager(store=store)

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map())
        store.vanish = True
        with pytest.raises(SessionNotFoundError):
            await manager.advance(session_id, "an answer")
        return session_id

    session_id = asyncio.run(scenario())

    assert session_id not in store._locks
    assert len(store) == 0


def test_fallback_question_respects_question_cap() -> None:
    manager = _manager(max_questions=2)

    async def scenario():
        session_id = await manager.create("cand-1", "job-1", make_skill_map())
        first = await manager.ask_fallback(session_id, "first answer", "Could you walk me through that again?")
        second = await manager.ask_fallback(session_id, "second answer", "And what would you change?")
        return first, second

    first, second = asyncio.run(scenario())

    assert isinstance(first, NextTurn)
    assert first.turn_number == 2
    assert first.phase == Phase.PRIMARY
    assert isinstance(second, SessionComplete)
    assert second.reason == "question_cap"
    assert [turn.content for turn in second.transcript.turns] == [
        "primary question 0",
        "first answer",
        "Could you walk me through that again?",
        "second answer",
    ]

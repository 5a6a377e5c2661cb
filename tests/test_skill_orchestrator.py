import itertools

import pytest

from hireloop.core.skill_orchestrator import SkillPhaseOrchestrator, TransitionKind
from hireloop.models.evaluation import AnswerEvaluation
from hireloop.models.interview import OrchestratorState, Phase

from conftest import make_skill_map


def _eval(score: int, probe: str | None = None, evaluated: bool = True) -> AnswerEvaluation:
    return AnswerEvaluation(
        score=score,
        feedback="",
        needs_probe=probe is not None,
        probe_text=probe,
        evaluated=evaluated,
    )


def test_opening_asks_primary_of_first_skill() -> None:
    skill_map = make_skill_map()
    state, question = SkillPhaseOrchestrator().opening(skill_map)

    assert state == OrchestratorState()
    assert question == "primary question 0"


def test_strong_answers_escalate_then_move_to_next_skill() -> None:
    orchestrator = SkillPhaseOrchestrator(escalation_threshold=70)
    skill_map = make_skill_map()
    state, _ = orchestrator.opening(skill_map)

    first = orchestrator.transition(state, skill_map, _eval(85))
    assert first.kind == TransitionKind.ESCALATE
    assert (first.state.skill_index, first.state.phase) == (0, Phase.DRILL_DOWN)
    assert first.question == "drill-down question 0"

    second = orchestrator.transition(first.state, skill_map, _eval(85))
    assert (second.state.skill_index, second.state.phase) == (0, Phase.STRESS_TEST)
    assert second.question == "stress-test question 0"

    third = orchestrator.transition(second.state, skill_map, _eval(85))
    assert third.kind == TransitionKind.NEXT_SKILL
    assert (third.state.skill_index, third.state.phase) == (1, Phase.PRIMARY)
    assert third.question == "primary question 1"


def test_threshold_is_strict() -> None:
    orchestrator = SkillPhaseOrchestrator(escalation_threshold=70)
    skill_map = make_skill_map()
    state, _ = orchestrator.opening(skill_map)

    transition = orchestrator.transition(state, skill_map, _eval(70))

    assert transition.kind == TransitionKind.NEXT_SKILL
    assert transition.state.skill_index == 1


def test_probe_is_capped_at_one_per_node() -> None:
    orchestrator = SkillPhaseOrchestrator()
    skill_map = make_skill_map()
    state, _ = orchestrator.opening(skill_map)

    probe = orchestrator.transition(state, skill_map, _eval(50, probe="Can you be more specific?"))
    assert probe.kind == TransitionKind.PROBE
    assert probe.question == "Can you be more specific?"
    assert (probe.state.skill_index, probe.state.phase) == (0, Phase.PRIMARY)

    # A second probe request on the same node must advance
    forced = orchestrator.transition(probe.state, skill_map, _eval(50, probe="And then?"))
    assert forced.kind == TransitionKind.NEXT_SKILL
    assert forced.state.skill_index == 1
    assert forced.state.probes_on_node == 0


def test_probe_budget_resets_on_escalation() -> None:
    orchestrator = SkillPhaseOrchestrator()
    skill_map = make_skill_map()
    state, _ = orchestrator.opening(skill_map)

    probed = orchestrator.transition(state, skill_map, _eval(50, probe="Why?"))
    escalated = orchestrator.transition(probed.state, skill_map, _eval(90))
    assert escalated.state.phase == Phase.DRILL_DOWN
    assert escalated.state.probes_on_node == 0

    probed_again = orchestrator.transition(escalated.state, skill_map, _eval(50, probe="How?"))
    assert probed_again.kind == TransitionKind.PROBE


@pytest.mark.parametrize("evaluation", [None, _eval(95, evaluated=False)])
def test_missing_evaluation_moves_on_without_escalating(evaluation) -> None:
    orchestrator = SkillPhaseOrchestrator()
    skill_map = make_skill_map()
    state, _ = orchestrator.opening(skill_map)

    transition = orchestrator.transition(state, skill_map, evaluation)

    assert transition.kind == TransitionKind.NEXT_SKILL
    assert transition.state.phase == Phase.PRIMARY


def test_last_skill_completes() -> None:
    orchestrator = SkillPhaseOrchestrator()
    skill_map = make_skill_map(1)
    state, _ = orchestrator.opening(skill_map)

    transition = orchestrator.transition(state, skill_map, _eval(40))

    assert transition.kind == TransitionKind.COMPLETE
    assert transition.state.complete
    assert transition.question is None
    with pytest.raises(ValueError):
        orchestrator.transition(transition.state, skill_map, _eval(40))


def test_skill_index_never_decreases_and_phase_resets_only_on_skill_change() -> None:
    orchestrator = SkillPhaseOrchestrator()
    skill_map = make_skill_map(4)
    answers = itertools.cycle([
        _eval(90),
        _eval(40, probe="Clarify?"),
        _eval(40, probe="Clarify again?"),
        None,
        _eval(71),
        _eval(85, evaluated=False),
    ])
    state, _ = orchestrator.opening(skill_map)

    steps = 0
    while not state.complete:
        transition = orchestrator.transition(state, skill_map, next(answers))
        new = transition.state
        assert new.skill_index >= state.skill_index
        if new.phase == Phase.PRIMARY and state.phase != Phase.PRIMARY:
            assert new.skill_index > state.skill_index
        state = new
        steps += 1
        assert steps <= orchestrator.max_questions(skill_map)


def test_max_questions_bound() -> None:
    assert SkillPhaseOrchestrator(max_probes_per_node=1).max_questions(make_skill_map(3)) == 18

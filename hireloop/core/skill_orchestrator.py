"""
Skill-Phase Orchestrator - state machine over the {skill x depth} question tree.

States are (skill_index, phase) with phase in PRIMARY -> DRILL_DOWN ->
STRESS_TEST. Given the evaluation of the answer just received:

    1. needs_probe (and this node has not been probed yet)
           -> ask the probe, same skill and phase           (PROBE)
    2. score > threshold and phase != STRESS_TEST
           -> next phase, same skill                        (ESCALATE)
    3. otherwise
           -> next skill at PRIMARY                         (NEXT_SKILL)
    4. no next skill
           -> interview complete                            (COMPLETE)

A missing or unevaluated answer (evaluator outage) always takes rule 3 so a
candidate is never blocked by the evaluator.

The transition is a pure function of (state, skill map, evaluation); the
session manager owns storing the returned state.
"""

import logging
from enum import Enum

from pydantic import BaseModel

from hireloop.models.evaluation import AnswerEvaluation
from hireloop.models.interview import PHASE_ORDER, OrchestratorState, Phase, SkillNode

logger = logging.getLogger(__name__)


class TransitionKind(str, Enum):
    PROBE = "probe"
    ESCALATE = "escalate"
    NEXT_SKILL = "next_skill"
    COMPLETE = "complete"


class Transition(BaseModel):
    """Result of one orchestrator step."""

    kind: TransitionKind
    state: OrchestratorState
    question: str | None = None  # None only when complete


class SkillPhaseOrchestrator:
    """Adaptive depth control for one interview session at a time."""

    def __init__(self, escalation_threshold: int = 70, max_probes_per_node: int = 1):
        self.escalation_threshold = escalation_threshold
        self.max_probes_per_node = max_probes_per_node

    def opening(self, skill_map: list[SkillNode]) -> tuple[OrchestratorState, str]:
        """Initial state and the first question of a skill map."""
        if not skill_map:
            raise ValueError("Skill map must contain at least one skill")
        state = OrchestratorState()
        return state, skill_map[0].question_for(Phase.PRIMARY)

    def transition(
        self,
        state: OrchestratorState,
        skill_map: list[SkillNode],
        evaluation: AnswerEvaluation | None,
    ) -> Transition:
        """
        Compute the next state and question.

        Args:
            state: Current orchestrator state (must not be complete)
            skill_map: The session's skill map
            evaluation: Evaluation of the answer to the current node, or None
                when the evaluator failed

        Returns:
            Transition with the new state and next question
        """
        if state.complete or state.skill_index >= len(skill_map):
            raise ValueError("Cannot transition a completed interview")

        usable = evaluation is not None and evaluation.evaluated

        # 1. Barge-in: pause escalation for one probe on this node
        if (
            usable
            and evaluation.needs_probe
            and state.probes_on_node < self.max_probes_per_node
        ):
            new_state = state.model_copy(update={
                "probes_on_node": state.probes_on_node + 1,
                "questions_asked": state.questions_asked + 1,
            })
            logger.debug(f"Probe on skill {state.skill_index} at {state.phase.value}")
            return Transition(kind=TransitionKind.PROBE, state=new_state, question=evaluation.probe_text)

        # 2. Strong answer: same skill, deeper
        if (
            usable
            and evaluation.score > self.escalation_threshold
            and state.phase != Phase.STRESS_TEST
        ):
            phase = state.phase.next()
            new_state = state.model_copy(update={
                "phase": phase,
                "probes_on_node": 0,
                "nodes_completed": state.nodes_completed + 1,
                "questions_asked": state.questions_asked + 1,
            })
            question = skill_map[state.skill_index].question_for(phase)
            return Transition(kind=TransitionKind.ESCALATE, state=new_state, question=question)

        # 3. Mastered at max depth, weak answer, or no evaluation: move on
        next_index = state.skill_index + 1
        if next_index >= len(skill_map):
            # 4. Map exhausted
            new_state = state.model_copy(update={
                "skill_index": len(skill_map),
                "phase": Phase.PRIMARY,
                "probes_on_node": 0,
                "nodes_completed": state.nodes_completed + 1,
                "complete": True,
            })
            return Transition(kind=TransitionKind.COMPLETE, state=new_state)

        new_state = state.model_copy(update={
            "skill_index": next_index,
            "phase": Phase.PRIMARY,
            "probes_on_node": 0,
            "nodes_completed": state.nodes_completed + 1,
            "questions_asked": state.questions_asked + 1,
        })
        question = skill_map[next_index].question_for(Phase.PRIMARY)
        return Transition(kind=TransitionKind.NEXT_SKILL, state=new_state, question=question)

    def max_questions(self, skill_map: list[SkillNode]) -> int:
        """Worst-case questions for a skill map: every node asked and probed."""
        return len(PHASE_ORDER) * (1 + self.max_probes_per_node) * len(skill_map)

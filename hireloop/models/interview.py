"""
Interview session and state models for HireLoop
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hireloop.models.evaluation import AnswerEvaluation


class Phase(str, Enum):
    """Depth levels asked about a single skill, in escalation order."""

    PRIMARY = "primary"
    DRILL_DOWN = "drill_down"
    STRESS_TEST = "stress_test"

    def next(self) -> "Phase":
        """Return the next depth level (STRESS_TEST is the deepest)."""
        order = list(Phase)
        index = order.index(self)
        return order[min(index + 1, len(order) - 1)]


PHASE_ORDER: tuple[Phase, ...] = (Phase.PRIMARY, Phase.DRILL_DOWN, Phase.STRESS_TEST)


class TurnRole(str, Enum):
    """Speaker of a transcript turn."""

    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


class Turn(BaseModel):
    """One utterance in the interview transcript."""

    role: TurnRole
    content: str


class QuestionNode(BaseModel):
    """A single question at one depth level of a skill."""

    model_config = ConfigDict(frozen=True)

    phase: Phase
    question: str


class SkillNode(BaseModel):
    """
    A skill and its three escalating questions.

    Immutable once the skill map is generated for a session.
    """

    model_config = ConfigDict(frozen=True)

    skill: str
    nodes: tuple[QuestionNode, QuestionNode, QuestionNode]

    @field_validator("nodes")
    @classmethod
    def _check_phase_order(cls, nodes: tuple[QuestionNode, ...]) -> tuple[QuestionNode, ...]:
        phases = tuple(node.phase for node in nodes)
        if phases != PHASE_ORDER:
            raise ValueError(
                f"Skill nodes must be tagged {[p.value for p in PHASE_ORDER]}, got {[p.value for p in phases]}"
            )
        return nodes

    def question_for(self, phase: Phase) -> str:
        """Get the question text for a depth level."""
        return self.nodes[PHASE_ORDER.index(phase)].question

    @classmethod
    def from_questions(cls, skill: str, primary: str, drill_down: str, stress_test: str) -> "SkillNode":
        """Build a skill node from three question texts."""
        return cls(
            skill=skill,
            nodes=(
                QuestionNode(phase=Phase.PRIMARY, question=primary),
                QuestionNode(phase=Phase.DRILL_DOWN, question=drill_down),
                QuestionNode(phase=Phase.STRESS_TEST, question=stress_test),
            ),
        )


class OrchestratorState(BaseModel):
    """Position of a session in the {skill x phase} question tree."""

    model_config = ConfigDict(frozen=True)

    skill_index: int = 0
    phase: Phase = Phase.PRIMARY
    nodes_completed: int = 0
    probes_on_node: int = 0
    questions_asked: int = 1  # The opening question counts
    complete: bool = False


class TurnOrderError(ValueError):
    """Raised when a turn would break strict interviewer/candidate alternation."""
    pass


class InterviewSession(BaseModel):
    """Complete interview session state, owned by the session manager."""

    # Identification
    session_id: str
    subject_id: str
    position_id: str
    position_title: str = "Software Engineer"

    # Question tree
    skill_map: list[SkillNode]
    state: OrchestratorState = Field(default_factory=OrchestratorState)

    # Transcript
    turns: list[Turn] = Field(default_factory=list)
    evaluations: list[AnswerEvaluation] = Field(default_factory=list)

    # Timing
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_active_at: datetime = Field(default_factory=datetime.utcnow)

    def append_turn(self, role: TurnRole, content: str) -> None:
        """Append a turn, enforcing strict role alternation."""
        expected = self.expected_role()
        if role != expected:
            raise TurnOrderError(
                f"Session {self.session_id}: expected {expected.value} turn, got {role.value}"
            )
        self.turns.append(Turn(role=role, content=content))

    def expected_role(self) -> TurnRole:
        """The role allowed to speak next."""
        if not self.turns or self.turns[-1].role == TurnRole.CANDIDATE:
            return TurnRole.INTERVIEWER
        return TurnRole.CANDIDATE

    def current_question(self) -> str | None:
        """The most recent interviewer question."""
        for turn in reversed(self.turns):
            if turn.role == TurnRole.INTERVIEWER:
                return turn.content
        return None

    def current_skill(self) -> SkillNode | None:
        """The skill currently being asked about."""
        if self.state.skill_index < len(self.skill_map):
            return self.skill_map[self.state.skill_index]
        return None

    def turn_number(self) -> int:
        """Number of interviewer questions asked so far."""
        return sum(1 for turn in self.turns if turn.role == TurnRole.INTERVIEWER)

    def get_conversation_str(self) -> str:
        """Render the transcript for AI prompts."""
        lines = []
        for turn in self.turns:
            label = "INTERVIEWER" if turn.role == TurnRole.INTERVIEWER else "CANDIDATE"
            lines.append(f"[{label}]: {turn.content}")
        return "\n\n".join(lines)


class NextTurn(BaseModel):
    """Result of an advance that continues the interview."""

    question: str
    turn_number: int
    phase: Phase
    skill: str
    is_probe: bool = False
    evaluation: AnswerEvaluation | None = None


class FinalTranscript(BaseModel):
    """Everything the scorer needs once a session is over."""

    session_id: str
    subject_id: str
    position_id: str
    position_title: str
    turns: list[Turn]
    evaluations: list[AnswerEvaluation]
    state: OrchestratorState

    def question_answer_pairs(self) -> list[tuple[str, str]]:
        """Pair each interviewer question with the answer that followed it."""
        pairs = []
        for index in range(0, len(self.turns) - 1, 2):
            question, answer = self.turns[index], self.turns[index + 1]
            if question.role == TurnRole.INTERVIEWER and answer.role == TurnRole.CANDIDATE:
                pairs.append((question.content, answer.content))
        return pairs

    def get_conversation_str(self) -> str:
        return "\n\n".join(
            f"[{'INTERVIEWER' if turn.role == TurnRole.INTERVIEWER else 'CANDIDATE'}]: {turn.content}"
            for turn in self.turns
        )


class SessionComplete(BaseModel):
    """Result of an advance that ends the interview."""

    transcript: FinalTranscript
    evaluation: AnswerEvaluation | None = None
    reason: str = "skill_map_exhausted"  # or "question_cap"

"""
Data models and schemas for HireLoop

Contains Pydantic models for:
- Interview sessions and the skill map
- Answer evaluations
- Provider attempts and results
- Transcript fusion
- Composite scores and applications
- Coin ledger
"""

from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.evaluation import AnswerEvaluation, InterviewVerdict
from hireloop.models.interview import (
    FinalTranscript,
    InterviewSession,
    NextTurn,
    OrchestratorState,
    Phase,
    QuestionNode,
    SessionComplete,
    SkillNode,
    Turn,
    TurnOrderError,
    TurnRole,
)
from hireloop.models.ledger import (
    LedgerAccount,
    LedgerDirection,
    LedgerEntry,
    LedgerErrorKind,
    LedgerResult,
)
from hireloop.models.provider import (
    NO_RESULT,
    AttemptOutcome,
    GenerationResult,
    ProviderAttempt,
    SpeechResult,
)
from hireloop.models.scoring import (
    ApplicationRecord,
    ApplicationStatus,
    CompositeScore,
    InterviewAnswer,
    InterviewLogEntry,
)
from hireloop.models.transcript import FusionResult, TranscriptSource

__all__ = [
    # Candidate
    "Position",
    "ResumeAnalysis",
    # Evaluation
    "AnswerEvaluation",
    "InterviewVerdict",
    # Interview
    "FinalTranscript",
    "InterviewSession",
    "NextTurn",
    "OrchestratorState",
    "Phase",
    "QuestionNode",
    "SessionComplete",
    "SkillNode",
    "Turn",
    "TurnOrderError",
    "TurnRole",
    # Ledger
    "LedgerAccount",
    "LedgerDirection",
    "LedgerEntry",
    "LedgerErrorKind",
    "LedgerResult",
    # Provider
    "NO_RESULT",
    "AttemptOutcome",
    "GenerationResult",
    "ProviderAttempt",
    "SpeechResult",
    # Scoring
    "ApplicationRecord",
    "ApplicationStatus",
    "CompositeScore",
    "InterviewAnswer",
    "InterviewLogEntry",
    # Transcript
    "FusionResult",
    "TranscriptSource",
]

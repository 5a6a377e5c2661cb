"""
Core business logic modules for HireLoop

Contains:
- Provider Gateway: ordered AI provider fallback and speech synthesis
- Transcript Fusion: best-of-three answer transcripts
- Skill-Phase Orchestrator: adaptive depth state machine
- Session Manager: interview session lifecycle
- Score Aggregator and Coin Ledger: composite scores and rewards
- Interview Orchestrator: coordinator for the HTTP layer
"""

from hireloop.core.answer_evaluator import AnswerEvaluator
from hireloop.core.audio_processor import AudioProcessor
from hireloop.core.coin_ledger import CoinLedger
from hireloop.core.interview_orchestrator import InterviewOrchestrator
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.core.score_aggregator import ScoreAggregator
from hireloop.core.session_manager import SessionManager
from hireloop.core.session_store import InMemorySessionStore, SessionReaper, SessionStore
from hireloop.core.skill_map import SkillMapBuilder
from hireloop.core.skill_orchestrator import SkillPhaseOrchestrator
from hireloop.core.transcript_fusion import AnswerCapture, TranscriptFusionEngine

__all__ = [
    "AnswerCapture",
    "AnswerEvaluator",
    "AudioProcessor",
    "CoinLedger",
    "InMemorySessionStore",
    "InterviewOrchestrator",
    "ProviderGateway",
    "ScoreAggregator",
    "SessionManager",
    "SessionReaper",
    "SessionStore",
    "SkillMapBuilder",
    "SkillPhaseOrchestrator",
    "TranscriptFusionEngine",
]

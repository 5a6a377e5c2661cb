import asyncio
import json
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hireloop.config.settings import Settings
from hireloop.core.interview_orchestrator import InterviewOrchestrator
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.core.providers import SpeechProvider, TextProvider
from hireloop.core.session_store import InMemorySessionStore
from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.interview import SkillNode
from hireloop.storage.memory import (
    InMemoryApplicationStore,
    InMemoryCandidateDirectory,
    InMemoryLedgerStore,
)


class FakeProvider(TextProvider):
    """Scripted text provider: a fixed reply, a reply function, a delay or an error."""

    supports_json_mode = True

    def __init__(
        self,
        name: str = "fake",
        reply: str | Callable[[str], str | None] | None = "ok",
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.name = name
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt, max_tokens, wants_json=False, system_prompt=None):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply(prompt) if callable(self.reply) else self.reply


class FakeSpeechProvider(SpeechProvider):

    def __init__(self, audio: bytes | None = b"ID3fake-mp3", error: Exception | None = None):
        self.name = "fake-tts"
        self.audio = audio
        self.error = error

    async def synthesize(self, text, voice):
        if self.error:
            raise self.error
        return self.audio


def evaluation_reply(score: int = 85, needs_probe: bool = False, probe_text: str | None = None) -> str:
    return json.dumps({
        "score": score,
        "feedback": "Clear and specific.",
        "needsProbe": needs_probe,
        "probeText": probe_text,
    })


SKILL_MAP_REPLY = json.dumps({
    "skills": [
        {
            "skill": "Python",
            "primary": "How did you use Python in your last project?",
            "drill_down": "How did you structure the async parts of that service?",
            "stress_test": "What happens to that service when the event loop is blocked for seconds?",
        },
        {
            "skill": "PostgreSQL",
            "primary": "Describe a schema you designed in PostgreSQL.",
            "drill_down": "Which indexes did you add and why?",
            "stress_test": "A query on that schema suddenly takes 30 seconds. How do you investigate?",
        },
        {
            "skill": "Docker",
            "primary": "How did you containerize your application?",
            "drill_down": "How did you keep the images small?",
            "stress_test": "A container keeps getting OOM-killed in production. What do you do?",
        },
    ]
})

VERDICT_REPLY = json.dumps({
    "score": 78,
    "feedback": "Strong fundamentals with good depth on Python.",
    "metrics": {"technicalDepth": 8, "communication": 7, "honesty": 9},
})


def interview_responder(score: int = 85, needs_probe: bool = False, probe_text: str | None = None):
    """Reply to each prompt kind the engine sends."""

    def respond(prompt: str) -> str:
        if "adaptive interview plan" in prompt:
            return SKILL_MAP_REPLY
        if "Candidate Answer:" in prompt:
            return evaluation_reply(score, needs_probe, probe_text)
        if "interview conversation" in prompt:
            return VERDICT_REPLY
        if "Raw transcript:" in prompt:
            return prompt.split('"""')[1].strip()
        return "ok"

    return respond


def make_skill_map(count: int = 3) -> list[SkillNode]:
    return [
        SkillNode.from_questions(
            f"skill-{index}",
            f"primary question {index}",
            f"drill-down question {index}",
            f"stress-test question {index}",
        )
        for index in range(count)
    ]


@pytest.fixture
def settings():
    return Settings(_env_file=None, capture_flush_grace_seconds=0.05, mongodb_uri="")


@pytest.fixture
def directory():
    directory = InMemoryCandidateDirectory()
    directory.add_position(Position(
        position_id="job-1",
        title="Backend Engineer",
        recruiter_id="recruiter-1",
        skills=["Python", "PostgreSQL", "Docker"],
    ))
    directory.add_resume_analysis(ResumeAnalysis(
        subject_id="cand-1",
        position_id="job-1",
        match_percentage=80,
        structured={"skills": {"languages": ["Python"], "tools": ["Docker", "Git"]}},
        explanation="Strong backend profile.",
    ))
    return directory


@pytest.fixture
def ledger_store():
    store = InMemoryLedgerStore()
    store.add_account("cand-1", coins=50)
    store.add_account("recruiter-1", coins=0)
    return store


@pytest.fixture
def build_orchestrator(settings, directory, ledger_store):
    """Factory for a fully wired engine over in-memory stores and fake providers."""

    def build(providers=None, speech_provider=None, audio_processor=None, session_store=None):
        gateway = ProviderGateway(
            providers if providers is not None else [FakeProvider(reply=interview_responder())],
            speech_provider=speech_provider,
            timeout_seconds=1.0,
        )
        return InterviewOrchestrator.build(
            settings,
            gateway=gateway,
            session_store=session_store if session_store is not None else InMemorySessionStore(),
            applications=InMemoryApplicationStore(),
            ledger_store=ledger_store,
            directory=directory,
            audio_processor=audio_processor,
        )

    return build

"""
Answer Evaluator for HireLoop

Scores one answer through the provider gateway and decides whether the
interviewer should probe. Provider scores are clamped into the band
[answer_score_floor, 100]; the floor is a product policy kept as a named
setting.
"""

import logging

from hireloop.core.parsing import coerce_int, extract_json_object
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.models.evaluation import AnswerEvaluation
from hireloop.prompts.evaluator import EvaluatorPrompts

logger = logging.getLogger(__name__)


class AnswerEvaluator:
    """Turns a (question, answer) pair into an AnswerEvaluation."""

    def __init__(
        self,
        gateway: ProviderGateway,
        score_floor: int = 25,
        fallback_score: int = 50,
        min_answer_chars: int = 5,
    ):
        self.gateway = gateway
        self.score_floor = score_floor
        self.fallback_score = fallback_score
        self.min_answer_chars = min_answer_chars
        self.prompts = EvaluatorPrompts()

    def clamp(self, score: int) -> int:
        """Clamp a raw provider score into the realistic band."""
        return max(self.score_floor, min(100, score))

    def fallback(self) -> AnswerEvaluation:
        """Canned evaluation used when no provider produced a usable result."""
        return AnswerEvaluation(
            score=self.clamp(self.fallback_score),
            feedback="Answer recorded.",
            evaluated=False,
        )

    async def evaluate(self, question: str, answer: str, position_title: str = "Software Engineer") -> AnswerEvaluation:
        """
        Evaluate a candidate's answer.

        Never raises for provider trouble: a missing or malformed result maps
        to the non-escalating fallback evaluation.
        """
        if len((answer or "").strip()) < self.min_answer_chars:
            return AnswerEvaluation(
                score=self.score_floor,
                feedback="Answer is too short to evaluate.",
            )

        result = await self.gateway.generate(
            self.prompts.answer_prompt(question, answer, position_title),
            max_tokens=400,
            wants_json=True,
            system_prompt=self.prompts.SYSTEM_CONTEXT,
            trace_name="answer_evaluation",
        )
        if not result.ok:
            logger.warning("Answer evaluation unavailable, using fallback evaluation")
            return self.fallback()

        data = extract_json_object(result.text)
        score = coerce_int(data.get("score")) if data else None
        if score is None:
            logger.warning(f"Unparseable evaluation from {result.provider}, using fallback evaluation")
            return self.fallback()

        needs_probe = data.get("needsProbe", data.get("needs_probe", False))
        probe_text = data.get("probeText", data.get("probe_text"))
        return AnswerEvaluation(
            score=self.clamp(score),
            feedback=str(data.get("feedback") or "").strip(),
            needs_probe=bool(needs_probe),
            probe_text=probe_text if isinstance(probe_text, str) else None,
        )

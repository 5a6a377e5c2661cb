"""
Transcript Fusion Engine for HireLoop

Produces the single best text of a spoken answer from up to three
independently captured renditions:

- batch: high-fidelity recognition over the full recording (after stop)
- incremental: the streaming recognizer's accumulated final results
- manual: whatever the candidate typed or edited

Candidates that are too short or match a known silence hallucination are
dropped; the longest survivor wins. The winner is polished once through the
provider gateway, and the raw text is kept whenever polishing would lose it.
"""

import asyncio
import logging
import re

from hireloop.core.provider_gateway import ProviderGateway
from hireloop.models.transcript import FusionResult, TranscriptSource
from hireloop.prompts.evaluator import NO_TECHNICAL_CONTENT, EvaluatorPrompts

logger = logging.getLogger(__name__)

_TRAILING_PUNCT_RE = re.compile(r"[\s.!?,;:]+$")

# Tie-break order when two candidates have the same length
_SOURCE_PRIORITY = (TranscriptSource.BATCH, TranscriptSource.INCREMENTAL, TranscriptSource.MANUAL)


def _normalize(text: str) -> str:
    return _TRAILING_PUNCT_RE.sub("", " ".join(text.lower().split()))


class TranscriptFusionEngine:
    """Selects and polishes the answer text submitted for evaluation."""

    def __init__(
        self,
        gateway: ProviderGateway | None = None,
        min_chars: int = 5,
        hallucination_phrases: list[str] | tuple[str, ...] = (),
    ):
        self.gateway = gateway
        self.min_chars = min_chars
        self.hallucination_phrases = {_normalize(phrase) for phrase in hallucination_phrases}
        self.prompts = EvaluatorPrompts()

    def is_usable(self, text: str | None) -> bool:
        """True when a candidate is long enough and not a known hallucination."""
        if not text:
            return False
        stripped = text.strip()
        if len(stripped) < self.min_chars:
            return False
        return _normalize(stripped) not in self.hallucination_phrases

    def select(
        self,
        batch: str | None = None,
        incremental: str | None = None,
        manual: str | None = None,
    ) -> tuple[str, TranscriptSource | None]:
        """
        Pick the best available candidate.

        Returns:
            (text, source). When every candidate is filtered out the batch
            transcript is returned verbatim, or "" with source None when
            there is no batch transcript at all.
        """
        candidates = {
            TranscriptSource.BATCH: batch,
            TranscriptSource.INCREMENTAL: incremental,
            TranscriptSource.MANUAL: manual,
        }

        best: tuple[str, TranscriptSource] | None = None
        for source in _SOURCE_PRIORITY:
            text = candidates[source]
            if not self.is_usable(text):
                continue
            text = text.strip()
            if best is None or len(text) > len(best[0]):
                best = (text, source)

        if best is not None:
            return best
        if batch is not None:
            return batch, TranscriptSource.BATCH
        return "", None

    def fuse(
        self,
        batch: str | None = None,
        incremental: str | None = None,
        manual: str | None = None,
    ) -> str:
        """Selection only: the raw text of the chosen candidate."""
        return self.select(batch, incremental, manual)[0]

    async def refine(self, text: str, question: str | None = None) -> str | None:
        """
        Polish a transcript through the gateway.

        Returns None whenever the raw text must be kept: no gateway, no
        result, the no-technical-content marker, or a reply that dropped
        most of the answer.
        """
        if self.gateway is None or not text.strip():
            return None

        result = await self.gateway.generate(
            self.prompts.refine_prompt(text, question),
            max_tokens=max(200, len(text) // 2),
            system_prompt=self.prompts.REFINE_SYSTEM,
            trace_name="transcript_refinement",
        )
        if not result.ok:
            return None

        refined = result.text.strip().strip('"').strip()
        if not refined or NO_TECHNICAL_CONTENT in refined:
            logger.info("Refinement found no technical content, keeping raw transcript")
            return None
        if len(refined) < len(text.strip()) // 2:
            logger.warning(
                f"Refinement shrank transcript from {len(text)} to {len(refined)} chars, keeping raw transcript"
            )
            return None
        return refined

    async def finalize(
        self,
        batch: str | None = None,
        incremental: str | None = None,
        manual: str | None = None,
        question: str | None = None,
    ) -> FusionResult:
        """Select the best candidate, then polish it."""
        raw_text, source = self.select(batch, incremental, manual)
        logger.info(
            f"Fused transcript from {source.value if source else 'nothing'} "
            f"({len(raw_text)} chars; batch={len(batch or '')}, "
            f"incremental={len(incremental or '')}, manual={len(manual or '')})"
        )

        refined = await self.refine(raw_text, question) if self.is_usable(raw_text) else None
        return FusionResult(
            text=refined if refined is not None else raw_text,
            raw_text=raw_text,
            source=source,
            refined=refined is not None,
        )


class AnswerCapture:
    """
    Buffer for one spoken answer.

    Audio chunks are appended by the producer while the streaming recognizer
    reports partial results concurrently. `stop_and_flush` waits until the
    recognizer has settled (no pending non-final partial) so the tail of the
    answer is not lost, bounded by a short grace period.
    """

    def __init__(self):
        self._chunks: list[bytes] = []
        self._finals: list[str] = []
        self._pending: str = ""
        self._manual: str | None = None
        self._settled = asyncio.Event()
        self._settled.set()
        self.stopped = False

    def feed_audio(self, chunk: bytes) -> None:
        if self.stopped:
            logger.debug("Dropping audio chunk received after stop")
            return
        self._chunks.append(chunk)

    def feed_partial(self, text: str, is_final: bool) -> None:
        """Record a streaming recognizer result."""
        text = (text or "").strip()
        if is_final:
            if text:
                self._finals.append(text)
            self._pending = ""
            self._settled.set()
        else:
            self._pending = text
            if text:
                self._settled.clear()

    def set_manual(self, text: str | None) -> None:
        self._manual = text

    @property
    def manual_text(self) -> str | None:
        return self._manual

    async def stop_and_flush(self, grace_seconds: float = 0.75) -> None:
        """Stop capture and wait for the recognizer's trailing final result."""
        self.stopped = True
        try:
            await asyncio.wait_for(self._settled.wait(), timeout=grace_seconds)
        except asyncio.TimeoutError:
            # Keep the unfinished tail rather than dropping it
            if self._pending:
                logger.info("Recognizer did not settle within grace period, keeping pending partial")
                self._finals.append(self._pending)
                self._pending = ""
            self._settled.set()

    def audio_bytes(self) -> bytes:
        return b"".join(self._chunks)

    def incremental_text(self) -> str:
        return " ".join(self._finals)

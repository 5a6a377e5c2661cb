"""
API Dependencies

Provides dependency injection for API endpoints.
Manages singleton instances of core components.
"""

import logging

from hireloop.config import get_settings
from hireloop.core.audio_processor import AudioProcessor
from hireloop.core.coin_ledger import CoinLedger
from hireloop.core.interview_orchestrator import InterviewOrchestrator
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.core.session_store import InMemorySessionStore, SessionReaper, SessionStore
from hireloop.storage import (
    InMemoryApplicationStore,
    InMemoryCandidateDirectory,
    InMemoryLedgerStore,
)

logger = logging.getLogger(__name__)


# ============================================================================
# SINGLETON INSTANCES
# ============================================================================

_orchestrator: InterviewOrchestrator | None = None
_gateway: ProviderGateway | None = None
_audio_processor: AudioProcessor | None = None
_session_store: SessionStore | None = None
_reaper: SessionReaper | None = None


def _build_stores(settings):
    """MongoDB stores when a URI is configured, in-memory stores otherwise."""
    if settings.mongodb_uri:
        from hireloop.storage.mongo import (
            MongoApplicationStore,
            MongoCandidateDirectory,
            MongoLedgerStore,
            connect,
        )

        db = connect(settings.mongodb_uri, settings.mongodb_database)
        return MongoApplicationStore(db), MongoLedgerStore(db), MongoCandidateDirectory(db)

    logger.warning("MONGODB_URI not set, using in-memory storage (data is lost on restart)")
    return InMemoryApplicationStore(), InMemoryLedgerStore(), InMemoryCandidateDirectory()


def get_session_store() -> SessionStore:
    global _session_store

    if _session_store is None:
        settings = get_settings()
        _session_store = InMemorySessionStore(idle_timeout_seconds=settings.session_idle_timeout_seconds)

    return _session_store


def get_gateway() -> ProviderGateway:
    """Get the provider gateway singleton."""
    global _gateway

    if _gateway is None:
        _gateway = ProviderGateway.from_settings(get_settings())
        if not _gateway.providers:
            logger.warning("No AI provider API keys configured, every answer will use fallback evaluation")

    return _gateway


def get_audio_processor() -> AudioProcessor:
    """Get the audio processor singleton."""
    global _audio_processor

    if _audio_processor is None:
        _audio_processor = AudioProcessor(get_settings())

    return _audio_processor


def get_orchestrator() -> InterviewOrchestrator:
    """
    Get the interview orchestrator singleton.

    Lazily initializes all required components.
    """
    global _orchestrator

    if _orchestrator is None:
        settings = get_settings()
        applications, ledger_store, directory = _build_stores(settings)
        _orchestrator = InterviewOrchestrator.build(
            settings,
            gateway=get_gateway(),
            session_store=get_session_store(),
            applications=applications,
            ledger_store=ledger_store,
            directory=directory,
            audio_processor=get_audio_processor(),
        )

    return _orchestrator


def get_ledger() -> CoinLedger:
    return get_orchestrator().ledger


def get_session_reaper() -> SessionReaper:
    global _reaper

    if _reaper is None:
        _reaper = SessionReaper(get_session_store(), get_settings().session_sweep_interval_seconds)

    return _reaper


async def cleanup():
    """Cleanup resources on shutdown."""
    global _orchestrator, _gateway, _audio_processor, _session_store, _reaper

    if _reaper:
        await _reaper.stop()
        _reaper = None

    if _audio_processor:
        await _audio_processor.close()
        _audio_processor = None

    if _gateway:
        await _gateway.close()
        _gateway = None

    _orchestrator = None
    _session_store = None

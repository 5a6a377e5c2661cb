"""
Storage backends for HireLoop

Contains:
- Interfaces for applications, the coin ledger and candidate lookups
- In-memory implementations (default)
- MongoDB implementations (when MONGODB_URI is set)
"""

from hireloop.storage.base import ApplicationStore, CandidateDirectory, LedgerStore
from hireloop.storage.memory import (
    InMemoryApplicationStore,
    InMemoryCandidateDirectory,
    InMemoryLedgerStore,
)

__all__ = [
    "ApplicationStore",
    "CandidateDirectory",
    "LedgerStore",
    "InMemoryApplicationStore",
    "InMemoryCandidateDirectory",
    "InMemoryLedgerStore",
]

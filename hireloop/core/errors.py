"""
Error taxonomy for the interview engine.

Only input errors and missing sessions are surfaced to callers as hard
failures; provider, transcription and ledger failures are absorbed into
result values by the components that own them.
"""


class HireLoopError(Exception):
    """Base class for engine errors."""
    pass


class InvalidInputError(HireLoopError):
    """Malformed or missing identifiers. Rejected immediately, never retried."""
    pass


class PrerequisiteMissingError(InvalidInputError):
    """A record the operation depends on (e.g. resume analysis) does not exist."""
    pass


class SessionNotFoundError(HireLoopError):
    """
    The session token is unknown, expired or already terminated.

    Not retried: the client must restart the interview. On `terminate` this
    means "already finalized".
    """

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id

"""
API endpoint modules for HireLoop
"""

from hireloop.api.endpoints import audio, interview, ledger, scoring

__all__ = ["audio", "interview", "ledger", "scoring"]

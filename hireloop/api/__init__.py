"""
API layer for HireLoop
"""

from hireloop.api.router import api_router

__all__ = ["api_router"]

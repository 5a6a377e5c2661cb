"""
Main API router for HireLoop

Aggregates all API routes and provides the main application router.
"""

from fastapi import APIRouter

from hireloop.api.endpoints import audio, interview, ledger, scoring

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    interview.router,
    prefix="/interview",
    tags=["Interview"]
)

api_router.include_router(
    scoring.router,
    prefix="/scores",
    tags=["Scoring"]
)

api_router.include_router(
    ledger.router,
    prefix="/ledger",
    tags=["Ledger"]
)

api_router.include_router(
    audio.router,
    prefix="/audio",
    tags=["Audio"]
)

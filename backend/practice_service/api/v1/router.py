"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from practice_service.api.v1.endpoints import health, practice_sessions

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(practice_sessions.router, prefix="/practice-sessions", tags=["Practice Sessions"])

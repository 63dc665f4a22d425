"""
Live driving session package.

The package is organized into:
- api/: HTTP endpoints over the process-wide driving session
- services/: kinematics, speed-limit lookup and the session orchestrator
"""

from fastapi import APIRouter

from tracking.api import live

router = APIRouter()
router.include_router(live.router, tags=["driving-session"])

__all__ = ["router"]

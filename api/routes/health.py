"""
api/routes/health.py
--------------------
Liveness check plus which optional travel-data backends are configured.
"""
from __future__ import annotations

from fastapi import APIRouter

import config

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    """
    Returns 200 OK when the service is running.  ``distance_matrix`` is false
    without a provider key; schedules then fall back to straight-line estimates.
    """
    return {
        "status":          "ok",
        "service":         "shooting-schedule",
        "distance_matrix": bool(config.GOOGLE_MAPS_SERVER_API_KEY),
        "distance_cache":  config.DISTANCE_CACHE_ENABLED,
    }

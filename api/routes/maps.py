"""
api/routes/maps.py
------------------
POST /v1/maps/distance-matrix

Server-side proxy for the road distance matrix, so the provider key never
reaches the browser.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from modules.tool_usage.distance_matrix_tool import DistanceMatrixTool
from schemas.requests import DistanceMatrixRequest

router = APIRouter()


@router.post("/distance-matrix", summary="Fetch road travel times between points")
def distance_matrix(req: DistanceMatrixRequest) -> dict:
    """
    Returns ``{"available": false}`` when the provider cannot answer (no API
    key, too many points, upstream error); callers then schedule without it.
    """
    points = [(p.lat, p.lng) for p in req.points]
    try:
        matrix = DistanceMatrixTool().fetch(points)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Distance matrix error: {exc}") from exc
    if matrix is None:
        return {"available": False, "duration_min": None, "distance_km": None}
    return {
        "available":    True,
        "duration_min": [list(row) for row in matrix.duration_min],
        "distance_km":  [list(row) for row in matrix.distance_km],
    }

"""
modules/tool_usage/distance_tool.py
-------------------------------------
Straight-line travel estimates: Haversine distance divided by an assumed
average road speed.  Used whenever the distance matrix has no value for a
pair of points.  No external HTTP calls are made.

Config knobs (config.py):
  AVERAGE_SPEED_KMH          -- road speed used for minute estimates (default: 50)
  MISSING_COORD_DISTANCE_KM  -- stand-in distance when a point has no coordinates
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import config
from schemas.schedule import TravelLeg

logger = logging.getLogger(__name__)

Point = tuple[Optional[float], Optional[float]]

# ---------------------------------------------------------------------------
# Pure maths
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def _km_to_minutes(km: float, speed_kmh: float) -> int:
    """Straight-line km to whole minutes at a given speed."""
    return int(round((km / speed_kmh) * 60.0))


def _located(p: Point) -> bool:
    return p[0] is not None and p[1] is not None


# ---------------------------------------------------------------------------
# DistanceTool
# ---------------------------------------------------------------------------


class DistanceTool:
    """
    Estimates travel between lat/lng points using the Haversine formula plus
    an assumed average speed (config.AVERAGE_SPEED_KMH).
    """

    def __init__(self, speed_kmh: Optional[float] = None) -> None:
        self.speed_kmh: float = speed_kmh or config.AVERAGE_SPEED_KMH

    def estimate(self, a: Point, b: Point) -> Optional[TravelLeg]:
        """Travel leg from *a* to *b*, or None if either point lacks coordinates."""
        if not (_located(a) and _located(b)):
            return None
        km = haversine_km(a[0], a[1], b[0], b[1])
        return TravelLeg(
            minutes=_km_to_minutes(km, self.speed_kmh),
            km=round(km, 1),
            estimated=True,
        )

    def distance_km(self, a: Point, b: Point) -> float:
        """
        Haversine km for route ordering.  Points without coordinates are
        placed MISSING_COORD_DISTANCE_KM away so they never look colocated.
        """
        if not (_located(a) and _located(b)):
            return config.MISSING_COORD_DISTANCE_KM
        return haversine_km(a[0], a[1], b[0], b[1])

    def distance_matrix(self, points: list[Point]) -> list[list[float]]:
        """Full n x n km matrix (zero diagonal)."""
        n = len(points)
        return [
            [0.0 if i == j else self.distance_km(points[i], points[j]) for j in range(n)]
            for i in range(n)
        ]


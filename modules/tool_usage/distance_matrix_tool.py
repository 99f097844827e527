"""
modules/tool_usage/distance_matrix_tool.py
--------------------------------------------
Google Distance Matrix API client.  Returns a DistanceMatrix over the given
points (every point is both an origin and a destination) or None.

Failure policy: a missing API key, more than DISTANCE_MATRIX_MAX_ELEMENTS
cells, an HTTP / network error or a non-OK top-level status all return None,
and the scheduler carries on with straight-line estimates.  Cells whose
element status is not OK are unknown (None).

Conversions:
  minutes = round(duration.value seconds / 60)
  km      = round(distance.value metres / 100) / 10     (one decimal)

Config knobs (config.py):
  GOOGLE_MAPS_SERVER_API_KEY, DISTANCE_MATRIX_URL, DISTANCE_MATRIX_MODE,
  DISTANCE_MATRIX_LANGUAGE, DISTANCE_MATRIX_TIMEOUT, DISTANCE_MATRIX_MAX_ELEMENTS,
  DISTANCE_CACHE_ENABLED (redis cache, see db/redis_client.py)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import redis
import requests

import config
from db import redis_client
from schemas.schedule import DistanceMatrix

logger = logging.getLogger(__name__)

Point = tuple[float, float]


def _element_values(element: dict) -> tuple[Optional[int], Optional[float]]:
    if element.get("status") != "OK":
        return None, None
    seconds = element.get("duration", {}).get("value")
    metres = element.get("distance", {}).get("value")
    minutes = round(seconds / 60) if seconds is not None else None
    km = round(metres / 100) / 10 if metres is not None else None
    return minutes, km


def parse_response(data: dict, size: int) -> DistanceMatrix:
    """
    Convert a Distance Matrix JSON body into a DistanceMatrix.
    Missing rows / elements become unknown cells.
    """
    rows = data.get("rows", [])
    durations: list[list[Optional[int]]] = []
    distances: list[list[Optional[float]]] = []
    for i in range(size):
        elements = rows[i].get("elements", []) if i < len(rows) else []
        d_row: list[Optional[int]] = []
        k_row: list[Optional[float]] = []
        for j in range(size):
            if i == j:
                d_row.append(0)
                k_row.append(0.0)
                continue
            minutes, km = _element_values(elements[j]) if j < len(elements) else (None, None)
            d_row.append(minutes)
            k_row.append(km)
        durations.append(d_row)
        distances.append(k_row)
    return DistanceMatrix.from_raw(durations, distances)


class DistanceMatrixTool:
    """
    Fetches road travel times between coordinate pairs.

    Usage:
        tool = DistanceMatrixTool()
        matrix = tool.fetch([(35.68, 139.76), (35.01, 135.77)])
        if matrix is None:
            ...  # continue without travel data
    """

    def __init__(self, api_key: Optional[str] = None, mode: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else config.GOOGLE_MAPS_SERVER_API_KEY
        self.mode = mode or config.DISTANCE_MATRIX_MODE

    # ── Public API ────────────────────────────────────────────────────────────

    def fetch(self, points: Sequence[Point]) -> Optional[DistanceMatrix]:
        n = len(points)
        if n == 0:
            return None
        if n == 1:
            return DistanceMatrix.from_raw([[0]], [[0.0]])
        if n * n > config.DISTANCE_MATRIX_MAX_ELEMENTS:
            logger.warning(
                "Distance matrix request refused: %d points → %d elements (max %d)",
                n, n * n, config.DISTANCE_MATRIX_MAX_ELEMENTS,
            )
            return None

        cached = self._cache_get(points)
        if cached is not None:
            return cached

        if not self.api_key:
            logger.warning("GOOGLE_MAPS_SERVER_API_KEY not set; skipping distance matrix fetch")
            return None

        try:
            data = self._get(points)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Distance matrix request failed: %s", exc)
            return None

        status = data.get("status")
        if status != "OK":
            logger.warning(
                "Distance matrix API status %s: %s", status, data.get("error_message", "")
            )
            return None

        matrix = parse_response(data, n)
        self._cache_set(points, matrix)
        return matrix

    # ── HTTP ──────────────────────────────────────────────────────────────────

    def _get(self, points: Sequence[Point]) -> dict[str, Any]:
        """GET the Distance Matrix endpoint.  Raises on HTTP/network error."""
        joined = "|".join(f"{lat},{lng}" for lat, lng in points)
        params = {
            "origins":      joined,
            "destinations": joined,
            "mode":         self.mode,
            "language":     config.DISTANCE_MATRIX_LANGUAGE,
            "key":          self.api_key,
        }
        resp = requests.get(
            config.DISTANCE_MATRIX_URL,
            params=params,
            timeout=config.DISTANCE_MATRIX_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json()

    # ── Cache ─────────────────────────────────────────────────────────────────

    def _cache_get(self, points: Sequence[Point]) -> Optional[DistanceMatrix]:
        if not config.DISTANCE_CACHE_ENABLED:
            return None
        try:
            return redis_client.get_matrix(points, self.mode)
        except (redis.RedisError, ValueError, KeyError) as exc:
            logger.warning("Distance matrix cache read failed: %s", exc)
            return None

    def _cache_set(self, points: Sequence[Point], matrix: DistanceMatrix) -> None:
        if not config.DISTANCE_CACHE_ENABLED:
            return
        try:
            redis_client.set_matrix(points, self.mode, matrix)
        except redis.RedisError as exc:
            logger.warning("Distance matrix cache write failed: %s", exc)

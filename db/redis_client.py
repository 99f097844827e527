"""
db/redis_client.py
-------------------
redis-py client singleton plus helpers for the distance-matrix cache.

Key schema:

  dm:{mode}:{sha1(points)}
       Type : String (JSON)
       TTL  : DISTANCE_CACHE_TTL  (default 2,592,000 s = 30 days)
       Value: {"duration_min": [[...]], "distance_km": [[...]]}
              unknown cells stored as null

  {sha1(points)} hashes the ordered "lat,lng" list rounded to 6 decimals, so
  the same points in the same order always hit the same key.

Environment variables (set in config.py):
    REDIS_HOST              default: localhost
    REDIS_PORT              default: 6379
    REDIS_DB                default: 0
    REDIS_PASSWORD          default: ""  (empty = no auth)
    DISTANCE_CACHE_ENABLED  default: false
    DISTANCE_CACHE_TTL      default: 2592000
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional, Sequence

import redis

import config
from schemas.schedule import DistanceMatrix

# Module-level singleton; initialised lazily on first call to get_redis()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        kwargs: dict[str, Any] = {
            "host":             config.REDIS_HOST,
            "port":             config.REDIS_PORT,
            "db":               config.REDIS_DB,
            "decode_responses": True,   # return str, not bytes
        }
        if config.REDIS_PASSWORD:
            kwargs["password"] = config.REDIS_PASSWORD
        _client = redis.Redis(**kwargs)
    return _client


# ── Distance matrix cache ──────────────────────────────────────────────────────

def matrix_key(points: Sequence[tuple[float, float]], mode: str) -> str:
    joined = "|".join(f"{lat:.6f},{lng:.6f}" for lat, lng in points)
    digest = hashlib.sha1(joined.encode("utf-8")).hexdigest()
    return f"dm:{mode}:{digest}"


def get_matrix(points: Sequence[tuple[float, float]], mode: str) -> Optional[DistanceMatrix]:
    """
    Lookup a previously fetched matrix for *points*.

    Returns None on cache miss.  Caller should fall back to the live API.
    """
    raw = get_redis().get(matrix_key(points, mode))
    if raw is None:
        return None
    data = json.loads(raw)
    return DistanceMatrix.from_raw(data["duration_min"], data["distance_km"])


def set_matrix(
    points: Sequence[tuple[float, float]],
    mode: str,
    matrix: DistanceMatrix,
) -> None:
    """Write one matrix with DISTANCE_CACHE_TTL expiry."""
    payload = {
        "duration_min": [list(row) for row in matrix.duration_min],
        "distance_km":  [list(row) for row in matrix.distance_km],
    }
    get_redis().setex(
        matrix_key(points, mode),
        config.DISTANCE_CACHE_TTL,
        json.dumps(payload),
    )

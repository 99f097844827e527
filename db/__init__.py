"""
db/
----
Cache layer for the shooting-schedule planner.

  Redis (redis-py): volatile hot cache, off unless DISTANCE_CACHE_ENABLED
    dm:{mode}:{sha1(points)}   TTL = DISTANCE_CACHE_TTL  (30 days)

Schedules themselves are not stored here; callers persist the returned
Schedule however they like.

Public exports (import from here for convenience):
    from db import get_redis
"""

from db.redis_client import get_redis

__all__ = ["get_redis"]

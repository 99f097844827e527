"""
config.py
---------
Central configuration for the shooting-schedule planner.
All secrets loaded from environment variables — never hard-coded.

Modules read these attributes at call time (``config.AVERAGE_SPEED_KMH``),
not via ``from config import ...``, so tests can monkeypatch them.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (if it exists) so env vars in that file
# are picked up by os.getenv() below.  Won't override vars already set in the shell.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


# ── Project defaults (HH:MM, used when a project leaves a field empty) ──────────
WORK_START_DEFAULT:          str = os.getenv("WORK_START_DEFAULT",          "08:00")
WORK_END_DEFAULT:            str = os.getenv("WORK_END_DEFAULT",            "19:00")
EARLY_MORNING_START_DEFAULT: str = os.getenv("EARLY_MORNING_START_DEFAULT", "05:00")
NIGHT_SHOOTING_END_DEFAULT:  str = os.getenv("NIGHT_SHOOTING_END_DEFAULT",  "22:00")

# Gap inserted between two locations when no travel data exists at all (minutes).
# Overridden per project by the first Transport's default_travel_buffer.
DEFAULT_TRAVEL_BUFFER_MIN: int = int(os.getenv("DEFAULT_TRAVEL_BUFFER_MIN", "10"))

# ── Travel estimation ────────────────────────────────────────────────────────
# Straight-line km → minutes when the distance matrix has no value.
AVERAGE_SPEED_KMH: float = float(os.getenv("AVERAGE_SPEED_KMH", "50.0"))
# Distance assumed between two nodes when either lacks coordinates (route ordering only).
MISSING_COORD_DISTANCE_KM: float = float(os.getenv("MISSING_COORD_DISTANCE_KM", "999.0"))
# Routing cost for an unknown matrix cell: large but finite so a route is always produced.
UNKNOWN_TRAVEL_PENALTY: float = float(os.getenv("UNKNOWN_TRAVEL_PENALTY", "99999.0"))

# ── Route optimizer (nearest neighbour + 2-opt) ───────────────────────────────
TSP_MAX_ITERATIONS:       int = int(os.getenv("TSP_MAX_ITERATIONS",       "1000"))
TSP_MAX_ITERATIONS_LARGE: int = int(os.getenv("TSP_MAX_ITERATIONS_LARGE", "300"))
TSP_LARGE_NODE_COUNT:     int = int(os.getenv("TSP_LARGE_NODE_COUNT",     "15"))
# "balanced" optimisation blends minutes and kilometres with these weights
BALANCED_DURATION_WEIGHT: float = float(os.getenv("BALANCED_DURATION_WEIGHT", "0.6"))
BALANCED_DISTANCE_WEIGHT: float = float(os.getenv("BALANCED_DISTANCE_WEIGHT", "0.4"))
# Fewer located points than this (and no matrix) → keep caller order
MIN_LOCATED_FOR_OPTIMIZATION: int = int(os.getenv("MIN_LOCATED_FOR_OPTIMIZATION", "2"))

# ── Auto-meal insertion ───────────────────────────────────────────────────────
LUNCH_WINDOW_START:      str = os.getenv("LUNCH_WINDOW_START", "11:00")
LUNCH_WINDOW_END:        str = os.getenv("LUNCH_WINDOW_END",   "13:00")
AUTO_MEAL_DURATION_MIN:  int = int(os.getenv("AUTO_MEAL_DURATION_MIN", "60"))
AUTO_MEAL_LABEL:         str = os.getenv("AUTO_MEAL_LABEL", "Lunch")

# Hard stop for auto-mode day allocation
MAX_AUTO_DAYS: int = int(os.getenv("MAX_AUTO_DAYS", "60"))

# ── Google Distance Matrix API (optional) ─────────────────────────────────────
# Enable:  Distance Matrix API
# Set env: GOOGLE_MAPS_SERVER_API_KEY=AIza...
GOOGLE_MAPS_SERVER_API_KEY: str = os.getenv("GOOGLE_MAPS_SERVER_API_KEY", "")
DISTANCE_MATRIX_URL: str = os.getenv(
    "DISTANCE_MATRIX_URL", "https://maps.googleapis.com/maps/api/distancematrix/json"
)
DISTANCE_MATRIX_LANGUAGE:     str = os.getenv("DISTANCE_MATRIX_LANGUAGE", "en")
DISTANCE_MATRIX_MODE:         str = os.getenv("DISTANCE_MATRIX_MODE", "driving")
DISTANCE_MATRIX_TIMEOUT:      int = int(os.getenv("DISTANCE_MATRIX_TIMEOUT", "15"))
DISTANCE_MATRIX_MAX_ELEMENTS: int = int(os.getenv("DISTANCE_MATRIX_MAX_ELEMENTS", "625"))

# ── Redis (distance matrix cache, off by default) ─────────────────────────────
DISTANCE_CACHE_ENABLED: bool = _env_bool("DISTANCE_CACHE_ENABLED", False)
REDIS_HOST:     str = os.getenv("REDIS_HOST",     "localhost")
REDIS_PORT:     int = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB:       int = int(os.getenv("REDIS_DB",   "0"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
# 30 days
DISTANCE_CACHE_TTL: int = int(os.getenv("DISTANCE_CACHE_TTL", "2592000"))

# ── Observability ─────────────────────────────────────────────────────────────
LOG_LEVEL:        str  = os.getenv("LOG_LEVEL", "INFO")
LOGS_DIR:         Path = Path(os.getenv("LOGS_DIR", str(Path(__file__).parent / "logs")))
PERF_LOG_ENABLED: bool = _env_bool("PERF_LOG_ENABLED", True)

# ── HTTP API ──────────────────────────────────────────────────────────────────
# Comma-separated browser origins allowed to call /v1 ("*" = any, dev only)
CORS_ALLOW_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
]
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

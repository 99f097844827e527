"""
api/routes/schedule.py
-----------------------
POST /v1/schedules/generate

Malformed input (bad HH:MM, duplicate ids, mis-shaped matrices, ...) is a
422; anything else that escapes the core is a 500.  Unschedulable locations
are not errors: they come back in ``excluded_locations``.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from main import generate_schedule
from modules.validation import ScheduleInputError
from schemas.requests import ScheduleRequest, serialize_schedule

router = APIRouter()


@router.post("/generate", summary="Generate a multi-day shooting schedule")
def generate(req: ScheduleRequest) -> dict:
    """
    Orders the locations (unless optimization_type is "none" or legacy is set),
    fits them into working days and returns the schedule with totals and the
    list of locations that did not fit.
    """
    try:
        schedule = generate_schedule(req)
    except ScheduleInputError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Schedule generation error: {exc}") from exc
    return serialize_schedule(schedule)

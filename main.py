"""
main.py
--------
Shooting-schedule generator entry point.

  Stage 1: Load the project request (JSON, same body as POST /v1/schedules/generate)
  Stage 2: Optionally fetch a distance matrix from the Distance Matrix API
  Stage 3: Build the schedule (route optimisation + work-hours fitting)
  Stage 4: Print a day-by-day timetable (or the JSON schedule)

Run:
  python main.py project.json
  python main.py project.json --optimization balanced
  python main.py project.json --legacy
  python main.py project.json --json

Notes:
  - Distance matrix fetching needs GOOGLE_MAPS_SERVER_API_KEY (see config.py).
    Without it the schedule is built from straight-line estimates.
"""

from __future__ import annotations

import calendar
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import config
from modules.planning.schedule_builder import build_schedule, build_schedule_legacy
from modules.tool_usage.distance_matrix_tool import DistanceMatrixTool
from schemas.requests import ScheduleRequest, serialize_schedule
from schemas.schedule import DistanceMatrix, ItemType, OptimizationType, Schedule

logger = logging.getLogger(__name__)


def _fetch_matrix(req: ScheduleRequest) -> Optional[DistanceMatrix]:
    """
    One up-front matrix fetch over every location (plus the departure point).
    Returns None when any location lacks coordinates or the fetch fails.
    """
    if any(loc.lat is None or loc.lng is None for loc in req.locations):
        logger.info("Not fetching a distance matrix: some locations have no coordinates")
        return None
    points = [(loc.lat, loc.lng) for loc in req.locations]
    project = req.project
    if project.departure_lat is not None and project.departure_lng is not None:
        points.append((project.departure_lat, project.departure_lng))
    return DistanceMatrixTool().fetch(points)


def generate_schedule(req: ScheduleRequest) -> Schedule:
    """
    Build a schedule from a request body.

    Raises:
        ValueError: malformed input (ScheduleInputError, InvalidTimeFormatError,
                    mis-shaped distance matrix).
    """
    project = req.project.to_domain()
    locations = [loc.to_domain() for loc in req.locations]
    accommodations = [a.to_domain() for a in req.accommodations]
    meals = [m.to_domain() for m in req.meals]
    rest_stops = [r.to_domain() for r in req.rest_stops]
    transports = [t.to_domain() for t in req.transports]

    if req.legacy:
        return build_schedule_legacy(
            locations, project,
            accommodations=accommodations,
            meals=meals,
            transports=transports,
            rest_stops=rest_stops,
        )

    matrix = req.distance_matrix.to_domain() if req.distance_matrix else None
    if matrix is None and req.fetch_distance_matrix and locations:
        matrix = _fetch_matrix(req)

    return build_schedule(
        locations, project,
        accommodations=accommodations,
        meals=meals,
        transports=transports,
        distance_matrix=matrix,
        optimization_type=req.optimization_type,
        rest_stops=rest_stops,
    )


def _print_schedule(schedule: Schedule, title: str = "") -> None:
    """Print a human-readable day-by-day timetable."""
    width = 60
    print()
    print("═" * width)
    print(f"  SHOOTING SCHEDULE  —  {title or schedule.project_id or 'project'}  ({schedule.total_days} day(s))")
    print("═" * width)

    for day, items in schedule.days.items():
        first = items[0] if items else None
        if first is not None and first.date is not None:
            day_name = calendar.day_name[first.date.weekday()]
            print(f"\n  Day {day}  —  {day_name}, {first.date.strftime('%d %b %Y')}")
        else:
            print(f"\n  Day {day}")
        print("  " + "─" * (width - 2))

        if not items:
            print("    (nothing scheduled)")
            continue

        for it in items:
            time_block = f"{it.start_time} – {it.end_time}"
            name_col = it.name[:30].ljust(30)
            flags = []
            if it.type == ItemType.transport and it.travel_from_previous_km is not None:
                flags.append(f"{it.travel_from_previous_km} km")
            if it.is_outside_work_hours:
                flags.append("overtime")
            if it.is_auto_inserted:
                flags.append("auto")
            suffix = f"  ({', '.join(flags)})" if flags else ""
            print(f"    {time_block}   {it.type.value[:13].ljust(13)} {name_col}{suffix}")

    if schedule.excluded_locations:
        print("\n  Not scheduled:")
        for ex in schedule.excluded_locations:
            print(f"    - {ex.name} [{ex.priority.value}] {ex.reason.value}")

    print()
    print("═" * width)
    print(f"  Travel          : {schedule.total_duration_min} min / {schedule.total_distance_km} km")
    print(f"  Overtime        : {'YES' if schedule.has_overtime_warning else 'no'}")
    print("═" * width)
    print()


def _usage() -> None:
    print("Usage: python main.py <project.json> [--optimization TYPE] [--legacy] [--json]")
    print(f"       TYPE: {', '.join(t.value for t in OptimizationType)}")


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)

    _args = sys.argv[1:]
    _json_mode = "--json" in _args
    _legacy_mode = "--legacy" in _args
    _optimization: Optional[str] = None

    if "--optimization" in _args:
        _opt_idx = _args.index("--optimization")
        if _opt_idx + 1 >= len(_args):
            _usage()
            sys.exit(1)
        _optimization = _args[_opt_idx + 1]
        del _args[_opt_idx:_opt_idx + 2]

    _paths = [a for a in _args if not a.startswith("--")]
    if len(_paths) != 1 or "--help" in _args:
        _usage()
        sys.exit(0 if "--help" in _args else 1)

    _body = json.loads(Path(_paths[0]).read_text(encoding="utf-8"))
    if _optimization is not None:
        _body["optimization_type"] = _optimization
    if _legacy_mode:
        _body["legacy"] = True

    try:
        _req = ScheduleRequest.model_validate(_body)
        _schedule = generate_schedule(_req)
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        sys.exit(2)

    if _json_mode:
        print(json.dumps(serialize_schedule(_schedule), indent=2, ensure_ascii=False))
    else:
        _print_schedule(_schedule, title=_req.project.title)

"""
modules/validation/ingestion_validator.py
------------------------------------------
Structural guards applied to scheduling input before the core runs.

  Location:
    ✓ Non-empty id and name
    ✓ shooting_duration >= 1
    ✓ buffer_before / buffer_after / meal_duration_min >= 0
    ✓ Latitude in [-90, 90], longitude in [-180, 180] (when present)
    ✓ time_slot_start / time_slot_end are valid "HH:MM" (when present)

  Project:
    ✓ work_start_time / work_end_time valid and start < end
    ✓ early_morning_start < work_start_time when early shooting is allowed
    ✓ night_shooting_end > work_end_time when night shooting is allowed
    ✓ end_date >= start_date

  Batch:
    ✓ at least one location
    ✓ unique location ids
    ✓ distance matrix sized n, or n + 1 when the project has a departure point
    ✓ registered meal / rest stop / transport durations are non-negative

Unschedulable-but-valid input (too many hours, unreachable places) is NOT an
error here; the fitter reports it as excluded locations.

Usage:
    from modules.validation import validate_schedule_input

    validate_schedule_input(locations, project, distance_matrix=matrix)
    # raises ScheduleInputError listing every problem found
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from modules.tool_usage.time_tool import InvalidTimeFormatError, to_minutes
from schemas.schedule import (
    Accommodation,
    DistanceMatrix,
    Location,
    Meal,
    ProjectConfig,
    RestStop,
    Transport,
)


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Human-readable list of failure reasons.
        record: The input record dict (for logging purposes).
    """
    valid: bool
    errors: list[str] = field(default_factory=list)
    record: dict = field(default_factory=dict, repr=False)

    def __bool__(self) -> bool:
        return self.valid


class ScheduleInputError(ValueError):
    """Input is structurally unusable; ``errors`` lists every problem."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("ERROR_INVALID_SCHEDULE_INPUT: " + "; ".join(self.errors))


def _check_clock(value: Optional[str], label: str, errors: list[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return to_minutes(value)
    except InvalidTimeFormatError:
        errors.append(f"{label}={value!r} is not a valid HH:MM time")
        return None


# ── Location validation ────────────────────────────────────────────────────────

def validate_location(loc: Location) -> ValidationResult:
    errors: list[str] = []
    label = f"location {loc.name or loc.id!r}"

    if not loc.id or not str(loc.id).strip():
        errors.append(f"{label}: id must not be empty")
    if not loc.name or not str(loc.name).strip():
        errors.append(f"location {loc.id!r}: name must not be empty")

    # ── Durations ──────────────────────────────────────────────────────────
    if loc.shooting_duration < 1:
        errors.append(f"{label}: shooting_duration={loc.shooting_duration} must be >= 1")
    if loc.buffer_before < 0:
        errors.append(f"{label}: buffer_before={loc.buffer_before} must be >= 0")
    if loc.buffer_after < 0:
        errors.append(f"{label}: buffer_after={loc.buffer_after} must be >= 0")
    if loc.has_meal and loc.meal_duration_min < 0:
        errors.append(f"{label}: meal_duration_min={loc.meal_duration_min} must be >= 0")

    # ── Coordinates ────────────────────────────────────────────────────────
    if loc.lat is not None and not (-90.0 <= loc.lat <= 90.0):
        errors.append(f"{label}: lat={loc.lat} is outside valid range [-90, 90]")
    if loc.lng is not None and not (-180.0 <= loc.lng <= 180.0):
        errors.append(f"{label}: lng={loc.lng} is outside valid range [-180, 180]")

    # ── Time slot window ───────────────────────────────────────────────────
    start = _check_clock(loc.time_slot_start, f"{label}: time_slot_start", errors)
    end = _check_clock(loc.time_slot_end, f"{label}: time_slot_end", errors)
    if start is not None and end is not None and end < start:
        errors.append(f"{label}: time_slot_end is before time_slot_start")

    return ValidationResult(valid=len(errors) == 0, errors=errors, record=vars(loc))


# ── Project validation ─────────────────────────────────────────────────────────

def validate_project(project: ProjectConfig) -> ValidationResult:
    errors: list[str] = []

    ws = _check_clock(project.work_start_time, "work_start_time", errors)
    we = _check_clock(project.work_end_time, "work_end_time", errors)
    if ws is None and not errors:
        errors.append("work_start_time must not be empty")
    if we is None and not errors:
        errors.append("work_end_time must not be empty")
    if ws is not None and we is not None and we <= ws:
        errors.append(
            f"work_end_time={project.work_end_time} must be after "
            f"work_start_time={project.work_start_time}"
        )

    if project.allow_early_morning:
        early = _check_clock(project.early_morning_start, "early_morning_start", errors)
        if early is not None and ws is not None and early >= ws:
            errors.append(
                f"early_morning_start={project.early_morning_start} must be before "
                f"work_start_time={project.work_start_time}"
            )
    if project.allow_night_shooting:
        night = _check_clock(project.night_shooting_end, "night_shooting_end", errors)
        if night is not None and we is not None and night <= we:
            errors.append(
                f"night_shooting_end={project.night_shooting_end} must be after "
                f"work_end_time={project.work_end_time}"
            )

    # ── Date ordering ──────────────────────────────────────────────────────
    if project.start_date is not None and project.end_date is not None:
        if project.end_date < project.start_date:
            errors.append(
                f"end_date={project.end_date} is before start_date={project.start_date}"
            )

    return ValidationResult(valid=len(errors) == 0, errors=errors, record=vars(project))


# ── Distance matrix validation ─────────────────────────────────────────────────

def validate_distance_matrix(
    matrix: DistanceMatrix,
    location_count: int,
    has_departure: bool = False,
) -> ValidationResult:
    """
    The matrix must cover every location (in input order); it may carry one
    extra trailing row/column for the departure point.
    """
    errors: list[str] = []
    allowed = {location_count, location_count + 1} if has_departure else {location_count}
    if matrix.size not in allowed:
        errors.append(
            f"distance matrix is {matrix.size}x{matrix.size}; expected "
            + " or ".join(f"{n}x{n}" for n in sorted(allowed))
        )
    return ValidationResult(valid=len(errors) == 0, errors=errors)


# ── Batch validation ───────────────────────────────────────────────────────────

def validate_schedule_input(
    locations: Sequence[Location],
    project: ProjectConfig,
    accommodations: Sequence[Accommodation] = (),
    meals: Sequence[Meal] = (),
    rest_stops: Sequence[RestStop] = (),
    transports: Sequence[Transport] = (),
    distance_matrix: Optional[DistanceMatrix] = None,
) -> None:
    """Raise ScheduleInputError if anything structural is wrong."""
    errors: list[str] = []

    if not locations:
        errors.append("at least one location is required")

    seen: set[str] = set()
    for loc in locations:
        if loc.id in seen:
            errors.append(f"duplicate location id {loc.id!r}")
        seen.add(loc.id)
        errors.extend(validate_location(loc).errors)

    errors.extend(validate_project(project).errors)

    for acc in accommodations:
        _check_clock(acc.check_in_time, f"accommodation {acc.name!r}: check_in_time", errors)
        _check_clock(acc.check_out_time, f"accommodation {acc.name!r}: check_out_time", errors)
    for meal in meals:
        if meal.duration < 0:
            errors.append(f"meal {meal.name!r}: duration={meal.duration} must be >= 0")
        _check_clock(meal.scheduled_time, f"meal {meal.name!r}: scheduled_time", errors)
    for stop in rest_stops:
        if stop.duration < 0:
            errors.append(f"rest stop {stop.name!r}: duration={stop.duration} must be >= 0")
    for transport in transports:
        if transport.default_travel_buffer < 0:
            errors.append(
                f"transport {transport.id!r}: default_travel_buffer="
                f"{transport.default_travel_buffer} must be >= 0"
            )

    if distance_matrix is not None and locations:
        errors.extend(
            validate_distance_matrix(
                distance_matrix, len(locations), has_departure=project.has_departure
            ).errors
        )

    if errors:
        raise ScheduleInputError(errors)

from datetime import date

import pytest

from modules.validation import (
    ScheduleInputError,
    validate_distance_matrix,
    validate_location,
    validate_project,
    validate_schedule_input,
)
from schemas.schedule import Accommodation, DistanceMatrix, Meal, MealType, RestStop, Transport


def _matrix(n):
    rows = [[0 if i == j else 1 for j in range(n)] for i in range(n)]
    return DistanceMatrix.from_raw(rows, rows)


# ── Location ───────────────────────────────────────────────────────────────────

def test_valid_location(make_location):
    result = validate_location(make_location("a", lat=35.0, lng=139.0, time_slot_start="19:00"))
    assert result.valid
    assert bool(result)
    assert result.errors == []


@pytest.mark.parametrize("kwargs,fragment", [
    ({"shooting_duration": 0}, "shooting_duration"),
    ({"buffer_before": -5}, "buffer_before"),
    ({"buffer_after": -1}, "buffer_after"),
    ({"has_meal": True, "meal_duration_min": -30}, "meal_duration_min"),
    ({"lat": 91.0, "lng": 0.0}, "lat="),
    ({"lat": 0.0, "lng": -181.0}, "lng="),
    ({"time_slot_start": "25:00"}, "time_slot_start"),
    ({"time_slot_start": "21:00", "time_slot_end": "20:00"}, "before time_slot_start"),
    ({"name": ""}, "name must not be empty"),
])
def test_invalid_location_fields(make_location, kwargs, fragment):
    result = validate_location(make_location("a", **kwargs))
    assert not result.valid
    assert any(fragment in e for e in result.errors)


# ── Project ────────────────────────────────────────────────────────────────────

def test_valid_project(make_project):
    assert validate_project(make_project()).valid


@pytest.mark.parametrize("kwargs,fragment", [
    ({"work_start_time": "9am"}, "work_start_time"),
    ({"work_start_time": "18:00", "work_end_time": "09:00"}, "must be after"),
    ({"allow_early_morning": True, "early_morning_start": "10:00"}, "early_morning_start"),
    ({"allow_night_shooting": True, "night_shooting_end": "17:00"}, "night_shooting_end"),
    ({"start_date": date(2026, 5, 3), "end_date": date(2026, 5, 1)}, "end_date"),
])
def test_invalid_project_fields(make_project, kwargs, fragment):
    result = validate_project(make_project(**kwargs))
    assert not result.valid
    assert any(fragment in e for e in result.errors)


def test_disabled_windows_are_not_checked(make_project):
    # A bogus early start is irrelevant while early shooting is off
    assert validate_project(make_project(early_morning_start="10:00")).valid


# ── Distance matrix ────────────────────────────────────────────────────────────

def test_matrix_must_match_location_count():
    assert validate_distance_matrix(_matrix(3), 3).valid
    assert not validate_distance_matrix(_matrix(4), 3).valid
    assert validate_distance_matrix(_matrix(4), 3, has_departure=True).valid
    assert validate_distance_matrix(_matrix(3), 3, has_departure=True).valid
    assert not validate_distance_matrix(_matrix(5), 3, has_departure=True).valid


def test_ragged_matrix_is_rejected_on_construction():
    with pytest.raises(ValueError):
        DistanceMatrix.from_raw([[0, 1], [1]], [[0, 1], [1, 0]])


# ── Batch ──────────────────────────────────────────────────────────────────────

def test_batch_collects_every_error(make_location, make_project):
    locs = [make_location("a"), make_location("a", shooting_duration=0)]
    with pytest.raises(ScheduleInputError) as exc:
        validate_schedule_input(locs, make_project(work_end_time="08:00"))
    errors = exc.value.errors
    assert any("duplicate location id" in e for e in errors)
    assert any("shooting_duration" in e for e in errors)
    assert any("work_end_time" in e for e in errors)
    assert str(exc.value).startswith("ERROR_INVALID_SCHEDULE_INPUT")


def test_schedule_input_error_is_a_value_error(make_project):
    with pytest.raises(ValueError):
        validate_schedule_input([], make_project())


def test_related_records_are_checked(make_location, make_project):
    with pytest.raises(ScheduleInputError) as exc:
        validate_schedule_input(
            [make_location("a")],
            make_project(),
            accommodations=[Accommodation(id="h", name="Hotel", check_in_time="3pm")],
            meals=[Meal(id="m", name="Bento", meal_type=MealType.lunch, duration=-1)],
            rest_stops=[RestStop(id="r", name="PA", duration=-10)],
            transports=[Transport(id="t", default_travel_buffer=-5)],
        )
    errors = exc.value.errors
    assert len(errors) == 4
    assert any("check_in_time" in e for e in errors)
    assert any("Bento" in e for e in errors)
    assert any("rest stop" in e for e in errors)
    assert any("default_travel_buffer" in e for e in errors)


def test_valid_batch_returns_none(make_location, make_project):
    project = make_project(departure_lat=35.0, departure_lng=139.0)
    locs = [make_location("a"), make_location("b")]
    assert validate_schedule_input(locs, project, distance_matrix=_matrix(3)) is None

import copy
import json
from datetime import date

import pytest

import config
from modules.planning.schedule_builder import (
    build_cost_view,
    build_schedule,
    build_schedule_legacy,
    estimate_days,
    should_optimize,
)
from modules.planning.route_optimizer import RouteNode
from modules.validation import ScheduleInputError
from schemas.schedule import (
    DistanceMatrix,
    DurationMode,
    ItemType,
    OptimizationType,
    Priority,
    TimeSlot,
    Transport,
)


def _shootings(schedule):
    return [it for it in schedule.items if it.type == ItemType.shooting]


# ── Reference scenarios ────────────────────────────────────────────────────────

def test_three_short_locations_fit_one_day_with_lunch(make_location, make_project, check_days):
    locs = [make_location(x, shooting_duration=60) for x in ("a", "b", "c")]
    schedule = build_schedule(locs, make_project())

    assert schedule.total_days == 1
    assert schedule.excluded_locations == []
    shootings = _shootings(schedule)
    assert len(shootings) == 3
    assert shootings[-1].end_time <= "12:30"
    lunches = [it for it in schedule.items if it.type in (ItemType.meal, ItemType.auto_meal)]
    assert len(lunches) == 1
    assert "11:00" <= lunches[0].start_time < "13:00"
    assert lunches[0].is_auto_inserted
    assert not schedule.has_overtime_warning
    check_days(schedule.items)


def test_single_night_location(make_location, make_project):
    project = make_project(allow_night_shooting=True, night_shooting_end="22:00")
    loc = make_location("moon", shooting_duration=90, time_slot=TimeSlot.night)
    schedule = build_schedule([loc], project)

    shooting = _shootings(schedule)[0]
    assert shooting.start_time >= "18:00"
    assert shooting.end_time <= "22:00"
    assert not shooting.is_outside_work_hours
    assert not schedule.has_overtime_warning


def test_required_locations_are_never_excluded(make_location, make_project, one_day, check_days):
    locs = [make_location(f"r{i}", shooting_duration=150, priority=Priority.required) for i in range(5)]
    schedule = build_schedule(locs, make_project(**one_day))

    assert schedule.total_days == 1
    assert schedule.excluded_locations == []
    assert len(_shootings(schedule)) == 5
    assert schedule.has_overtime_warning
    assert any(it.is_outside_work_hours for it in _shootings(schedule))
    check_days(schedule.items)


# ── Day-count properties ───────────────────────────────────────────────────────

@pytest.mark.parametrize("count", [1, 4, 9])
def test_fixed_mode_day_count_matches_the_date_span(make_location, make_project, count):
    project = make_project(
        duration_mode=DurationMode.fixed, start_date=date(2026, 5, 1), end_date=date(2026, 5, 2),
    )
    locs = [make_location(f"l{i}", shooting_duration=200, priority=Priority.low) for i in range(count)]
    schedule = build_schedule(locs, project)

    assert schedule.total_days == 2
    assert set(schedule.days) == {1, 2}
    placed = {it.ref_id for it in _shootings(schedule)}
    for loc in locs:
        if loc.id not in placed:
            assert any(ex.location_id == loc.id and ex.reason for ex in schedule.excluded_locations)


@pytest.mark.parametrize("count,duration", [(1, 60), (5, 150), (8, 240)])
def test_auto_mode_schedules_every_location_once(make_location, make_project, count, duration):
    locs = [make_location(f"l{i}", shooting_duration=duration) for i in range(count)]
    schedule = build_schedule(locs, make_project())

    assert schedule.excluded_locations == []
    ids = [it.ref_id for it in _shootings(schedule)]
    assert sorted(ids) == sorted(loc.id for loc in locs)
    assert max(it.day for it in schedule.items) == schedule.total_days
    assert schedule.calculated_days is not None


def test_calculated_days_estimate(make_location, make_project):
    locs = [make_location(f"l{i}", shooting_duration=170) for i in range(6)]
    # 6 × (170 + 10) = 1080 minutes over a 540-minute day
    assert estimate_days(locs, make_project(), 10) == 2
    schedule = build_schedule(locs, make_project())
    assert schedule.calculated_days == 2


def test_fixed_mode_has_no_calculated_days(make_location, make_project, one_day):
    schedule = build_schedule([make_location("a")], make_project(**one_day))
    assert schedule.calculated_days is None


# ── Optimisation ───────────────────────────────────────────────────────────────

def test_locations_are_reordered_by_distance(make_location, make_project):
    locs = [
        make_location("a", lat=0.0, lng=0.0, order=0),
        make_location("b", lat=0.2, lng=0.0, order=1),
        make_location("c", lat=0.1, lng=0.0, order=2),
    ]
    schedule = build_schedule(locs, make_project())
    assert [it.ref_id for it in _shootings(schedule)] == ["a", "c", "b"]
    assert schedule.optimization_type == OptimizationType.shortest_time


def test_no_optimisation_keeps_caller_order(make_location, make_project):
    locs = [
        make_location("b", lat=0.2, lng=0.0, order=1),
        make_location("a", lat=0.0, lng=0.0, order=0),
        make_location("c", lat=0.1, lng=0.0, order=2),
    ]
    schedule = build_schedule(locs, make_project(), optimization_type=OptimizationType.none)
    assert [it.ref_id for it in _shootings(schedule)] == ["a", "b", "c"]
    assert schedule.optimization_type == OptimizationType.none


def test_optimisation_skipped_without_coordinates(make_location):
    locs = [make_location("a", lat=1.0, lng=1.0), make_location("b")]
    assert not should_optimize(locs, None, OptimizationType.shortest_time)
    matrix = DistanceMatrix.from_raw([[0, 5], [5, 0]], [[0, 1], [1, 0]])
    assert should_optimize(locs, matrix, OptimizationType.shortest_time)
    assert not should_optimize(locs[:1], matrix, OptimizationType.shortest_time)


def test_matrix_drives_the_order(make_location, make_project):
    locs = [make_location("a"), make_location("b"), make_location("c")]
    # a→c is cheap, a→b is expensive
    matrix = DistanceMatrix.from_raw(
        [[0, 50, 5], [50, 0, 5], [5, 5, 0]],
        [[0, 40, 3], [40, 0, 3], [3, 3, 0]],
    )
    schedule = build_schedule(locs, make_project(), distance_matrix=matrix)
    assert [it.ref_id for it in _shootings(schedule)] == ["a", "c", "b"]
    transports = [it for it in schedule.items if it.type == ItemType.transport]
    assert [t.travel_from_previous_min for t in transports] == [5, 5]
    assert schedule.total_distance_km == 6.0
    assert schedule.total_duration_min == 10


def test_departure_node_is_visited_first(make_location, make_project):
    project = make_project(departure_lat=0.3, departure_lng=0.0)
    locs = [
        make_location("a", lat=0.0, lng=0.0),
        make_location("b", lat=0.1, lng=0.0),
        make_location("c", lat=0.25, lng=0.0),
    ]
    schedule = build_schedule(locs, project)
    assert [it.ref_id for it in _shootings(schedule)] == ["c", "b", "a"]
    assert schedule.items[0].type == ItemType.transport


def test_departure_row_in_matrix(make_location, make_project):
    project = make_project(departure_lat=9.0, departure_lng=9.0)
    locs = [make_location("a"), make_location("b")]
    # row/column 2 is the departure point; b is next to it
    matrix = DistanceMatrix.from_raw(
        [[0, 30, 40], [30, 0, 7], [40, 7, 0]],
        [[0, 20, 30], [20, 0, 4], [30, 4, 0]],
    )
    schedule = build_schedule(locs, project, distance_matrix=matrix)
    assert [it.ref_id for it in _shootings(schedule)] == ["b", "a"]
    first = schedule.items[0]
    assert first.type == ItemType.transport
    assert first.travel_from_previous_min == 7


def test_balanced_cost_view_blends_minutes_and_km():
    nodes = [RouteNode("a"), RouteNode("b")]
    matrix = DistanceMatrix.from_raw([[0, 10], [20, 0]], [[0, 5], [5, 0]])
    cost = build_cost_view(nodes, [0, 1], matrix, OptimizationType.balanced)
    assert cost[0][1] == pytest.approx(
        config.BALANCED_DURATION_WEIGHT * 10 + config.BALANCED_DISTANCE_WEIGHT * 5
    )
    distance_only = build_cost_view(nodes, [0, 1], matrix, OptimizationType.shortest_distance)
    assert distance_only[1][0] == 5
    assert build_cost_view(nodes, [0, 1], matrix, OptimizationType.shortest_time)[1][0] == 20


def test_cost_view_leaves_unanswerable_pairs_unknown():
    nodes = [RouteNode("a"), RouteNode("b")]
    matrix = DistanceMatrix.from_raw([[0, -1], [-1, 0]], [[0, -1], [-1, 0]])
    cost = build_cost_view(nodes, [0, 1], matrix, OptimizationType.shortest_time)
    assert cost[0][1] is None


# ── Transports / legacy ────────────────────────────────────────────────────────

def test_first_transport_sets_default_gap(make_location, make_project):
    locs = [make_location("a"), make_location("b")]
    transports = [Transport(id="van", default_travel_buffer=25), Transport(id="bus", default_travel_buffer=5)]
    schedule = build_schedule(locs, make_project(), transports=transports)
    assert _shootings(schedule)[1].start_time == "10:25"


def test_legacy_path_ignores_coordinates(make_location, make_project):
    locs = [
        make_location("b", lat=1.0, lng=0.0, order=1),
        make_location("a", lat=0.0, lng=0.0, order=0),
    ]
    schedule = build_schedule_legacy(locs, make_project())
    assert [it.ref_id for it in _shootings(schedule)] == ["a", "b"]
    transport = [it for it in schedule.items if it.type == ItemType.transport][0]
    assert transport.travel_from_previous_min == config.DEFAULT_TRAVEL_BUFFER_MIN
    assert schedule.optimization_type == OptimizationType.none


# ── Input handling ─────────────────────────────────────────────────────────────

def test_inputs_are_not_mutated(make_location, make_project):
    locs = [make_location(f"l{i}", shooting_duration=200, lat=i * 0.1, lng=0.0, order=3 - i) for i in range(3)]
    project = make_project()
    before = (copy.deepcopy(locs), copy.deepcopy(project))
    build_schedule(locs, project)
    assert (locs, project) == before


def test_empty_location_list_is_rejected(make_project):
    with pytest.raises(ScheduleInputError) as exc:
        build_schedule([], make_project())
    assert "at least one location" in str(exc.value)


def test_malformed_time_is_rejected(make_location, make_project):
    with pytest.raises(ScheduleInputError) as exc:
        build_schedule([make_location("a")], make_project(work_start_time="9am"))
    assert any("work_start_time" in e for e in exc.value.errors)


def test_wrong_matrix_size_is_rejected(make_location, make_project):
    matrix = DistanceMatrix.from_raw([[0, 1], [1, 0]], [[0, 1], [1, 0]])
    with pytest.raises(ScheduleInputError):
        build_schedule([make_location("a")], make_project(), distance_matrix=matrix)


def test_build_logs_performance_event(make_location, make_project, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "PERF_LOG_ENABLED", True)
    from modules.planning import schedule_builder
    from modules.observability.logger import StructuredLogger

    perf = StructuredLogger(logs_dir=tmp_path)
    monkeypatch.setattr(schedule_builder, "_perf_logger", perf)
    build_schedule([make_location("a")], make_project(id="perf-proj"))
    perf.close()

    records = [json.loads(line) for line in (tmp_path / "default.jsonl").read_text().splitlines()]
    assert records[-1]["event_type"] == "PERFORMANCE"
    assert records[-1]["payload"]["component"] == "build_schedule"
    assert records[-1]["payload"]["project_id"] == "perf-proj"
    assert records[-1]["payload"]["locations"] == 1


def test_project_ids_never_become_log_files(make_location, make_project, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "PERF_LOG_ENABLED", True)
    from modules.planning import schedule_builder
    from modules.observability.logger import StructuredLogger

    logs = tmp_path / "perf"
    perf = StructuredLogger(logs_dir=logs)
    monkeypatch.setattr(schedule_builder, "_perf_logger", perf)
    for project_id in ("p0", "p1", "../escaped/pwn"):
        build_schedule([make_location("a")], make_project(id=project_id))

    assert len(perf._handles) == 1
    perf.close()
    assert sorted(p.name for p in logs.iterdir()) == ["default.jsonl"]
    assert not (tmp_path / "escaped").exists()

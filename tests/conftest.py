# tests/conftest.py
from datetime import date

import pytest

import config
from schemas.schedule import (
    DurationMode,
    ItemType,
    Location,
    ProjectConfig,
    ScheduleItem,
)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """
    Keep tests off the network, off redis and out of the real logs/ directory.
    """
    monkeypatch.setattr(config, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(config, "PERF_LOG_ENABLED", False)
    monkeypatch.setattr(config, "DISTANCE_CACHE_ENABLED", False)
    monkeypatch.setattr(config, "GOOGLE_MAPS_SERVER_API_KEY", "")
    yield


@pytest.fixture
def make_location():
    def _make(loc_id: str, **kw) -> Location:
        kw.setdefault("name", loc_id)
        return Location(id=loc_id, **kw)
    return _make


@pytest.fixture
def make_project():
    def _make(**kw) -> ProjectConfig:
        kw.setdefault("id", "proj-1")
        kw.setdefault("work_start_time", "09:00")
        kw.setdefault("work_end_time", "18:00")
        kw.setdefault("duration_mode", DurationMode.auto)
        return ProjectConfig(**kw)
    return _make


@pytest.fixture
def one_day():
    """Fixed-mode kwargs for a single shooting day."""
    d = date(2026, 5, 1)
    return {"duration_mode": DurationMode.fixed, "start_date": d, "end_date": d}


@pytest.fixture
def make_item():
    def _make(start: str, end: str, type_: ItemType = ItemType.shooting, day: int = 1, **kw) -> ScheduleItem:
        kw.setdefault("name", f"{type_.value} {start}")
        return ScheduleItem(day=day, start_time=start, end_time=end, type=type_, **kw)
    return _make


def assert_days_well_formed(items):
    """Per day: sorted by start time, no overlapping [start, end) intervals."""
    from modules.tool_usage.time_tool import to_minutes

    by_day = {}
    for it in items:
        by_day.setdefault(it.day, []).append(it)
    for day, day_items in by_day.items():
        starts = [to_minutes(it.start_time) for it in day_items]
        assert starts == sorted(starts), f"day {day} not sorted"
        prev_end = -1
        for it in day_items:
            s, e = to_minutes(it.start_time), to_minutes(it.end_time)
            assert e >= s, f"day {day}: {it.name} ends before it starts"
            assert s >= prev_end, f"day {day}: {it.name} overlaps previous item"
            prev_end = max(prev_end, e)


@pytest.fixture
def check_days():
    return assert_days_well_formed

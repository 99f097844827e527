"""
schemas/schedule.py
-------------------
Dataclass definitions for the scheduling inputs (locations, project settings,
registered accommodations / meals / rest stops / transports, travel matrix)
and the generated schedule.

All times of day are "HH:MM" strings; all durations are integer minutes;
distances are kilometres.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Sequence


# ── Enumerations ───────────────────────────────────────────────────────────────

class Priority(str, Enum):
    required = "required"
    high = "high"
    medium = "medium"
    low = "low"


class TimeSlot(str, Enum):
    normal = "normal"
    early_morning = "early_morning"
    night = "night"
    flexible = "flexible"


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"


class DurationMode(str, Enum):
    fixed = "fixed"
    auto = "auto"


class TransportType(str, Enum):
    car = "car"
    train = "train"
    bus = "bus"
    walk = "walk"
    other = "other"


class ItemType(str, Enum):
    shooting = "shooting"
    accommodation = "accommodation"
    meal = "meal"
    rest = "rest"
    transport = "transport"
    buffer = "buffer"
    auto_meal = "auto_meal"


class ExclusionReason(str, Enum):
    insufficient_hours = "insufficient_hours"
    low_priority = "low_priority"
    day_limit_exceeded = "day_limit_exceeded"
    unreachable = "unreachable"


class OptimizationType(str, Enum):
    none = "none"
    shortest_time = "shortest_time"
    shortest_distance = "shortest_distance"
    balanced = "balanced"


LUNCH_ITEM_TYPES: frozenset[ItemType] = frozenset({ItemType.meal, ItemType.auto_meal})


# ── Inputs ─────────────────────────────────────────────────────────────────────

@dataclass
class Location:
    """
    A place to shoot.  The unit the fitter schedules.

    A location occupies ``buffer_before + shooting_duration + buffer_after``
    minutes (plus ``meal_duration_min`` when ``has_meal``; the crew eats on site).
    ``order`` is the caller's own sequence, used when no optimisation runs.
    """
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    shooting_duration: int = 60
    buffer_before: int = 0
    buffer_after: int = 0
    has_meal: bool = False
    meal_type: Optional[MealType] = None
    meal_duration_min: int = 60
    priority: Priority = Priority.medium
    time_slot: TimeSlot = TimeSlot.normal
    time_slot_start: Optional[str] = None
    time_slot_end: Optional[str] = None
    notes: Optional[str] = None
    order: int = 0

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass
class ProjectConfig:
    """Scheduling parameters of a project.  Owned by the caller, never mutated."""
    id: str = ""
    title: str = ""
    duration_mode: DurationMode = DurationMode.fixed
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    work_start_time: str = "08:00"
    work_end_time: str = "19:00"
    allow_early_morning: bool = False
    early_morning_start: Optional[str] = "05:00"
    allow_night_shooting: bool = False
    night_shooting_end: Optional[str] = "22:00"
    departure_name: Optional[str] = None
    departure_lat: Optional[float] = None
    departure_lng: Optional[float] = None
    # Start day N+1 at the previous night's check-out time instead of work start
    use_accommodation_checkout: bool = False

    @property
    def has_departure(self) -> bool:
        return self.departure_lat is not None and self.departure_lng is not None


@dataclass
class Accommodation:
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    check_in_time: Optional[str] = "15:00"
    check_out_time: Optional[str] = "10:00"
    notes: Optional[str] = None


@dataclass
class Meal:
    id: str
    name: str
    meal_type: MealType
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    duration: int = 60
    notes: Optional[str] = None


@dataclass
class RestStop:
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    duration: int = 15
    notes: Optional[str] = None


@dataclass
class Transport:
    id: str
    type: TransportType = TransportType.car
    default_travel_buffer: int = 10
    notes: Optional[str] = None


@dataclass(frozen=True)
class DistanceMatrix:
    """
    Travel minutes / kilometres between locations, indexed by the input order
    of the locations (optionally followed by one departure point).

    Unknown cells are ``None``.  Providers that report ``-1`` for "no route"
    go through :meth:`from_raw`, which turns any negative value into ``None``.
    """
    duration_min: tuple[tuple[Optional[int], ...], ...]
    distance_km: tuple[tuple[Optional[float], ...], ...]

    def __post_init__(self) -> None:
        n = len(self.duration_min)
        if len(self.distance_km) != n:
            raise ValueError(
                f"duration_min has {n} rows but distance_km has {len(self.distance_km)}"
            )
        for name, rows in (("duration_min", self.duration_min), ("distance_km", self.distance_km)):
            for i, row in enumerate(rows):
                if len(row) != n:
                    raise ValueError(f"{name} row {i} has {len(row)} columns; expected {n}")

    @classmethod
    def from_raw(
        cls,
        duration_min: Sequence[Sequence[Optional[float]]],
        distance_km: Sequence[Sequence[Optional[float]]],
    ) -> "DistanceMatrix":
        def _dur(v: Optional[float]) -> Optional[int]:
            return None if v is None or v < 0 else int(round(v))

        def _dist(v: Optional[float]) -> Optional[float]:
            return None if v is None or v < 0 else float(v)

        return cls(
            duration_min=tuple(tuple(_dur(v) for v in row) for row in duration_min),
            distance_km=tuple(tuple(_dist(v) for v in row) for row in distance_km),
        )

    @property
    def size(self) -> int:
        return len(self.duration_min)

    def duration(self, i: int, j: int) -> Optional[int]:
        if i == j:
            return 0
        return self.duration_min[i][j]

    def distance(self, i: int, j: int) -> Optional[float]:
        if i == j:
            return 0.0
        return self.distance_km[i][j]


# ── Outputs ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TravelLeg:
    """Travel that precedes an item.  Only ``transport`` items carry one."""
    minutes: int
    km: Optional[float] = None
    estimated: bool = False


@dataclass(frozen=True)
class ScheduleItem:
    """
    One block of a day's timetable.

    ``type`` decides which optional fields are meaningful: ``travel`` only on
    transport items; buffer / meal / work-hours flags only on shooting items.
    """
    day: int
    start_time: str
    end_time: str
    type: ItemType
    name: str
    date: Optional[date] = None
    ref_id: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    order: int = 0
    time_slot: TimeSlot = TimeSlot.normal
    travel: Optional[TravelLeg] = None
    buffer_before_min: Optional[int] = None
    buffer_after_min: Optional[int] = None
    includes_meal: bool = False
    meal_duration_min: Optional[int] = None
    is_outside_work_hours: bool = False
    is_auto_inserted: bool = False

    @property
    def travel_from_previous_min(self) -> Optional[int]:
        return self.travel.minutes if self.travel else None

    @property
    def travel_from_previous_km(self) -> Optional[float]:
        return self.travel.km if self.travel else None


@dataclass(frozen=True)
class ExcludedLocation:
    location_id: str
    name: str
    priority: Priority
    reason: ExclusionReason


@dataclass
class Schedule:
    """
    Aggregate result of one generation run.
    Items are flat and ordered by (day, start_time); use :meth:`items_for_day`
    or :attr:`days` for rendering.
    """
    project_id: str = ""
    total_days: int = 1
    items: list[ScheduleItem] = field(default_factory=list)
    excluded_locations: list[ExcludedLocation] = field(default_factory=list)
    total_distance_km: float = 0.0
    total_duration_min: int = 0
    has_overtime_warning: bool = False
    optimization_type: OptimizationType = OptimizationType.none
    calculated_days: Optional[int] = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def items_for_day(self, day: int) -> list[ScheduleItem]:
        return [item for item in self.items if item.day == day]

    @property
    def days(self) -> dict[int, list[ScheduleItem]]:
        return {d: self.items_for_day(d) for d in range(1, self.total_days + 1)}

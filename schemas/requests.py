"""
schemas/requests.py
--------------------
Pydantic request bodies shared by the HTTP API and the CLI, plus the JSON
serialiser for a generated Schedule.

Request models convert to the dataclass domain model with ``to_domain()``;
the scheduling core never sees pydantic objects.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from schemas.schedule import (
    Accommodation,
    DistanceMatrix,
    DurationMode,
    Location,
    Meal,
    MealType,
    OptimizationType,
    Priority,
    ProjectConfig,
    RestStop,
    Schedule,
    ScheduleItem,
    TimeSlot,
    Transport,
    TransportType,
)


# ── Scheduling input ───────────────────────────────────────────────────────────

class LocationIn(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    shooting_duration: int = Field(60, ge=1, description="Minutes on camera")
    buffer_before: int = Field(0, ge=0, description="Setup minutes")
    buffer_after:  int = Field(0, ge=0, description="Teardown minutes")
    has_meal: bool = False
    meal_type: Optional[MealType] = None
    meal_duration_min: int = Field(60, ge=0)
    priority: Priority = Priority.medium
    time_slot: TimeSlot = TimeSlot.normal
    time_slot_start: Optional[str] = Field(None, description="HH:MM")
    time_slot_end:   Optional[str] = Field(None, description="HH:MM")
    notes: Optional[str] = None
    order: int = 0

    def to_domain(self) -> Location:
        return Location(**self.model_dump())


class ProjectIn(BaseModel):
    id: str = ""
    title: str = ""
    duration_mode: DurationMode = DurationMode.fixed
    start_date: Optional[date] = Field(None, description="ISO-8601 date YYYY-MM-DD")
    end_date:   Optional[date] = Field(None, description="ISO-8601 date YYYY-MM-DD")
    work_start_time: str = "08:00"
    work_end_time:   str = "19:00"
    allow_early_morning: bool = False
    early_morning_start: Optional[str] = "05:00"
    allow_night_shooting: bool = False
    night_shooting_end: Optional[str] = "22:00"
    departure_name: Optional[str] = None
    departure_lat: Optional[float] = None
    departure_lng: Optional[float] = None
    use_accommodation_checkout: bool = False

    def to_domain(self) -> ProjectConfig:
        return ProjectConfig(**self.model_dump())


class AccommodationIn(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    check_in_date:  Optional[date] = None
    check_out_date: Optional[date] = None
    check_in_time:  Optional[str] = "15:00"
    check_out_time: Optional[str] = "10:00"
    notes: Optional[str] = None

    def to_domain(self) -> Accommodation:
        return Accommodation(**self.model_dump())


class MealIn(BaseModel):
    id: str
    name: str
    meal_type: MealType
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    duration: int = Field(60, ge=0)
    notes: Optional[str] = None

    def to_domain(self) -> Meal:
        return Meal(**self.model_dump())


class RestStopIn(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    duration: int = Field(15, ge=0)
    notes: Optional[str] = None

    def to_domain(self) -> RestStop:
        return RestStop(**self.model_dump())


class TransportIn(BaseModel):
    id: str
    type: TransportType = TransportType.car
    default_travel_buffer: int = Field(10, ge=0)
    notes: Optional[str] = None

    def to_domain(self) -> Transport:
        return Transport(**self.model_dump())


class DistanceMatrixIn(BaseModel):
    """Square matrices in location input order; -1 or null marks an unknown cell."""
    duration_min: list[list[Optional[float]]]
    distance_km:  list[list[Optional[float]]]

    def to_domain(self) -> DistanceMatrix:
        # Raises ValueError on a non-square / mismatched shape
        return DistanceMatrix.from_raw(self.duration_min, self.distance_km)


class ScheduleRequest(BaseModel):
    project: ProjectIn = Field(default_factory=ProjectIn)
    locations: list[LocationIn] = Field(default_factory=list)
    accommodations: list[AccommodationIn] = Field(default_factory=list)
    meals: list[MealIn] = Field(default_factory=list)
    rest_stops: list[RestStopIn] = Field(default_factory=list)
    transports: list[TransportIn] = Field(default_factory=list)
    distance_matrix: Optional[DistanceMatrixIn] = None
    optimization_type: OptimizationType = OptimizationType.shortest_time
    fetch_distance_matrix: bool = Field(
        False, description="Fetch travel data from the Distance Matrix API before building"
    )
    legacy: bool = Field(False, description="Caller order, no travel data")


# ── Route optimisation ─────────────────────────────────────────────────────────

class RouteNodeIn(BaseModel):
    id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    time_slot: Optional[TimeSlot] = TimeSlot.normal


class RouteOptimizeRequest(BaseModel):
    nodes: list[RouteNodeIn] = Field(default_factory=list)
    cost_matrix: Optional[list[list[Optional[float]]]] = None
    fixed_start_index: Optional[int] = Field(None, ge=0)
    max_iterations: Optional[int] = Field(None, ge=1)


# ── Distance matrix proxy ──────────────────────────────────────────────────────

class PointIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DistanceMatrixRequest(BaseModel):
    points: list[PointIn] = Field(..., min_length=1)


# ── Serialisers ────────────────────────────────────────────────────────────────

def serialize_item(item: ScheduleItem) -> dict:
    return {
        "day":                       item.day,
        "date":                      item.date.isoformat() if item.date else None,
        "start_time":                item.start_time,
        "end_time":                  item.end_time,
        "type":                      item.type.value,
        "name":                      item.name,
        "ref_id":                    item.ref_id,
        "address":                   item.address,
        "notes":                     item.notes,
        "order":                     item.order,
        "time_slot":                 item.time_slot.value,
        "travel_from_previous_min":  item.travel_from_previous_min,
        "travel_from_previous_km":   item.travel_from_previous_km,
        "buffer_before_min":         item.buffer_before_min,
        "buffer_after_min":          item.buffer_after_min,
        "includes_meal":             item.includes_meal,
        "meal_duration_min":         item.meal_duration_min,
        "is_outside_work_hours":     item.is_outside_work_hours,
        "is_auto_inserted":          item.is_auto_inserted,
    }


def serialize_schedule(schedule: Schedule) -> dict:
    return {
        "project_id":           schedule.project_id,
        "generated_at":         schedule.generated_at.isoformat(),
        "optimization_type":    schedule.optimization_type.value,
        "total_days":           schedule.total_days,
        "calculated_days":      schedule.calculated_days,
        "total_distance_km":    schedule.total_distance_km,
        "total_duration_min":   schedule.total_duration_min,
        "has_overtime_warning": schedule.has_overtime_warning,
        "days": [
            {
                "day":   day,
                "items": [serialize_item(it) for it in items],
            }
            for day, items in schedule.days.items()
        ],
        "excluded_locations": [
            {
                "location_id": ex.location_id,
                "name":        ex.name,
                "priority":    ex.priority.value,
                "reason":      ex.reason.value,
            }
            for ex in schedule.excluded_locations
        ],
    }

"""
modules/planning/work_hours_fitter.py
---------------------------------------
Lays an ordered location queue out into concrete per-day timetables.

Each day d:
  1. Start cursor: early-morning start when early locations are queued,
     otherwise work start (or the previous night's check-out time when the
     project models check-out).
  2. Early block:  early_morning locations while they fit before work start.
                   The cursor then clamps to work start.
  3. Normal block: everything else while it fits before work end.  Night
                   locations too long to finish by 23:59 after work end
                   (or their own slot start) are fitted here too.
  4. Night block:  night locations from work end (or their own slot start)
                   until the night end (or their own slot end).
  5. Lunch:        auto-meal insertion over the day's items.
  6. Check-in:     zero-length accommodation item on every day but the last.

Placement of one location (travel + setup + shooting + meal + teardown):
  - fits in the block window                    → place
  - block (normal: day) has nothing yet         → place, raise overtime
  - fixed mode, medium / low                    → exclude (insufficient_hours),
                                                  keep scanning
  - final fixed day, required                   → place, raise overtime
  - otherwise                                   → stop; the location and
                                                  everything behind it in
                                                  the block move to day d+1
  Nothing may end after 23:59.  A location that cannot fit even an empty day
  is excluded (unreachable when travel alone breaks it).

Fixed mode always yields (end_date - start_date + 1) days; leftovers are
excluded with day_limit_exceeded.  Auto mode opens days until the queue is
empty (capped at config.MAX_AUTO_DAYS).

Travel between consecutive stops:
  distance matrix (by input index)  →  haversine at config.AVERAGE_SPEED_KMH
  →  default travel buffer.  Day-start travel (from departure / last night's
  accommodation) is 0 when unknown.

Unschedulable input never raises; it shows up in FitResult.excluded and
FitResult.has_overtime_warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Sequence

import config
from modules.planning.meal_inserter import insert_auto_meal
from modules.planning.route_optimizer import time_slot_group
from modules.tool_usage.distance_tool import DistanceTool
from modules.tool_usage.time_tool import (
    LAST_MINUTE_OF_DAY,
    location_total_minutes,
    optional_minutes,
    to_clock,
    to_minutes,
)
from schemas.schedule import (
    Accommodation,
    DistanceMatrix,
    DurationMode,
    ExcludedLocation,
    ExclusionReason,
    ItemType,
    Location,
    Meal,
    Priority,
    ProjectConfig,
    ScheduleItem,
    TimeSlot,
    TravelLeg,
)

logger = logging.getLogger(__name__)


@dataclass
class FitResult:
    items: list[ScheduleItem] = field(default_factory=list)
    excluded: list[ExcludedLocation] = field(default_factory=list)
    total_days: int = 1
    total_distance_km: float = 0.0
    total_duration_min: int = 0
    has_overtime_warning: bool = False


class _Decision(Enum):
    place = "place"
    place_overtime = "place_overtime"
    exclude = "exclude"
    carry = "carry"


@dataclass(frozen=True)
class _Anchor:
    """Where the crew is: a matrix index and/or coordinates (either may be missing)."""
    matrix_index: Optional[int]
    lat: Optional[float]
    lng: Optional[float]
    is_location: bool = False    # False for departure / accommodation


@dataclass
class _DayState:
    day: int
    date: Optional[date]
    cursor: int
    anchor: Optional[_Anchor]
    last_chance: bool
    items: list[ScheduleItem] = field(default_factory=list)
    excluded: list[ExcludedLocation] = field(default_factory=list)
    carried: set[str] = field(default_factory=set)
    overtime: bool = False
    km: float = 0.0
    travel_min: int = 0


def _meal_minutes(loc: Location) -> int:
    return loc.meal_duration_min if loc.has_meal else 0


class WorkHoursFitter:
    """
    Fits ordered locations into working-hour windows.

    Usage:
        fitter = WorkHoursFitter(project, accommodations=accs, distance_matrix=m,
                                 matrix_index={loc.id: i for i, loc in enumerate(locs)})
        result = fitter.fit(ordered_locations)

    ``matrix_index`` maps location ids to rows of *distance_matrix* (the
    caller's input order).  When the matrix has one more row than there are
    indexed locations, that last row is the project's departure point.
    ``estimate_travel=False`` disables the straight-line estimate so every
    gap falls back to the default travel buffer.
    """

    def __init__(
        self,
        project: ProjectConfig,
        accommodations: Sequence[Accommodation] = (),
        meals: Sequence[Meal] = (),
        travel_buffer_min: Optional[int] = None,
        distance_matrix: Optional[DistanceMatrix] = None,
        matrix_index: Optional[dict[str, int]] = None,
        estimate_travel: bool = True,
        distance_tool: Optional[DistanceTool] = None,
    ) -> None:
        self.project = project
        self.accommodations = list(accommodations)
        self.meals = list(meals)
        self.travel_buffer_min: int = (
            config.DEFAULT_TRAVEL_BUFFER_MIN if travel_buffer_min is None else travel_buffer_min
        )
        self.matrix = distance_matrix
        self.matrix_index = dict(matrix_index or {})
        self.estimate_travel = estimate_travel
        self.distance_tool = distance_tool or DistanceTool()

        self.work_start = to_minutes(project.work_start_time or config.WORK_START_DEFAULT)
        self.work_end = to_minutes(project.work_end_time or config.WORK_END_DEFAULT)
        self.early_start: Optional[int] = (
            to_minutes(project.early_morning_start or config.EARLY_MORNING_START_DEFAULT)
            if project.allow_early_morning else None
        )
        self.night_end: Optional[int] = (
            to_minutes(project.night_shooting_end or config.NIGHT_SHOOTING_END_DEFAULT)
            if project.allow_night_shooting else None
        )

        self.fixed_days: Optional[int] = None
        if project.duration_mode == DurationMode.fixed:
            if project.start_date is not None and project.end_date is not None:
                self.fixed_days = max(1, (project.end_date - project.start_date).days + 1)
            else:
                logger.warning(
                    "Project %r is in fixed mode without start/end dates; "
                    "falling back to automatic day count.", project.id,
                )

    # ── Public API ────────────────────────────────────────────────────────────

    def fit(self, locations: Sequence[Location]) -> FitResult:
        """Fit *locations* (already in visiting order) into days."""
        result = FitResult()
        queue = list(locations)
        day_limit = self.fixed_days or config.MAX_AUTO_DAYS
        prev_acc: Optional[Accommodation] = None
        day = 0

        while day < day_limit:
            day += 1
            if self.fixed_days is None and not queue:
                day -= 1
                break
            state = self._fit_day(day, queue, prev_acc)
            queue = [loc for loc in queue if loc.id in state.carried]

            is_last = day == day_limit or (self.fixed_days is None and not queue)
            day_items = insert_auto_meal(state.items, day, state.date, self.meals)
            prev_acc = None
            if not is_last:
                prev_acc = self._accommodation_for(day, state.date)
                if prev_acc is not None:
                    day_items.append(self._check_in_item(prev_acc, state, day_items))

            result.items.extend(day_items)
            result.excluded.extend(state.excluded)
            result.total_distance_km += state.km
            result.total_duration_min += state.travel_min
            result.has_overtime_warning = result.has_overtime_warning or state.overtime

        for loc in queue:
            result.excluded.append(
                ExcludedLocation(loc.id, loc.name, loc.priority, ExclusionReason.day_limit_exceeded)
            )
        if queue:
            logger.info("%d location(s) did not fit within %d day(s)", len(queue), day_limit)

        result.total_days = self.fixed_days or max(day, 1)
        result.total_distance_km = round(result.total_distance_km, 1)
        return result

    # ── One day ───────────────────────────────────────────────────────────────

    def _fit_day(
        self,
        day: int,
        queue: Sequence[Location],
        prev_acc: Optional[Accommodation],
    ) -> _DayState:
        early_q: list[Location] = []
        normal_q: list[Location] = []
        night_q: list[Location] = []
        for loc in queue:
            group = time_slot_group(loc.time_slot)
            if group == 0 and self.early_start is not None:
                early_q.append(loc)
            elif group == 2 and self.night_end is not None and self._fits_a_night(loc):
                night_q.append(loc)
            else:
                normal_q.append(loc)

        day_date = (
            self.project.start_date + timedelta(days=day - 1)
            if self.project.start_date is not None else None
        )
        state = _DayState(
            day=day,
            date=day_date,
            cursor=self._day_start(day, prev_acc, bool(early_q)),
            anchor=self._day_start_anchor(day, prev_acc),
            last_chance=self.fixed_days is not None and day == self.fixed_days,
        )

        # ── Early block ───────────────────────────────────────────────────────
        if early_q:
            self._fill_block(state, early_q, TimeSlot.early_morning, self.work_start)
            state.cursor = max(state.cursor, self.work_start)

        # ── Normal block ──────────────────────────────────────────────────────
        self._fill_block(state, normal_q, None, self.work_end)

        # ── Night block ───────────────────────────────────────────────────────
        if night_q:
            state.cursor = max(state.cursor, self.work_end)
            self._fill_block(state, night_q, TimeSlot.night, self.night_end)

        return state

    def _fits_a_night(self, loc: Location) -> bool:
        """Whether *loc* can finish by 23:59 when started at the earliest night start."""
        start = self.work_end
        slot_start = optional_minutes(loc.time_slot_start)
        if slot_start is not None:
            start = max(start, slot_start)
        fits = start + location_total_minutes(loc) + _meal_minutes(loc) <= LAST_MINUTE_OF_DAY
        if not fits:
            logger.debug("Night location %r is too long for the night; using the day window", loc.name)
        return fits

    def _day_start(self, day: int, prev_acc: Optional[Accommodation], has_early: bool) -> int:
        if has_early:
            return self.early_start  # type: ignore[return-value]
        if day > 1 and self.project.use_accommodation_checkout and prev_acc is not None:
            checkout = optional_minutes(prev_acc.check_out_time)
            if checkout is not None:
                return checkout
        return self.work_start

    def _day_start_anchor(self, day: int, prev_acc: Optional[Accommodation]) -> Optional[_Anchor]:
        if day == 1:
            if not self.project.has_departure:
                return None
            idx = None
            if self.matrix is not None and self.matrix.size == len(self.matrix_index) + 1:
                idx = self.matrix.size - 1
            return _Anchor(idx, self.project.departure_lat, self.project.departure_lng)
        if prev_acc is not None and prev_acc.lat is not None and prev_acc.lng is not None:
            return _Anchor(None, prev_acc.lat, prev_acc.lng)
        return None

    # ── Block filling ─────────────────────────────────────────────────────────

    def _fill_block(
        self,
        state: _DayState,
        block: list[Location],
        slot: Optional[TimeSlot],
        limit: Optional[int],
    ) -> None:
        """
        Place locations of one block in order.  Stops at the first carried
        location; it and the rest of *block* are marked for the next day.
        """
        placed_in_block = 0
        for pos, loc in enumerate(block):
            target = self._anchor_of(loc)
            leg = self._travel(state.anchor, target, loc)
            travel = leg.minutes if leg else 0
            on_site = location_total_minutes(loc) + _meal_minutes(loc)

            block_start = state.cursor + travel
            block_limit = limit
            if slot == TimeSlot.night:
                slot_start = optional_minutes(loc.time_slot_start)
                if slot_start is not None:
                    block_start = max(block_start, slot_start)
                slot_end = optional_minutes(loc.time_slot_end)
                if slot_end is not None:
                    block_limit = slot_end
            end = block_start + on_site

            if slot == TimeSlot.night or slot == TimeSlot.early_morning:
                block_empty = placed_in_block == 0
            else:
                block_empty = not state.items
            decision, reason = self._decide(loc, end, block_limit, block_empty, state)

            if decision is _Decision.carry:
                if not state.items and end > LAST_MINUTE_OF_DAY:
                    # Even a fresh day cannot hold it
                    reason = (
                        ExclusionReason.unreachable
                        if block_start - travel + on_site <= LAST_MINUTE_OF_DAY
                        else ExclusionReason.insufficient_hours
                    )
                    self._exclude(state, loc, reason)
                    continue
                state.carried.update(l.id for l in block[pos:])
                logger.debug("Day %d: %r and %d more carried", state.day, loc.name, len(block) - pos - 1)
                return
            if decision is _Decision.exclude:
                self._exclude(state, loc, reason)
                continue

            if decision is _Decision.place_overtime and slot != TimeSlot.early_morning:
                state.overtime = True
            self._emit(state, loc, leg, block_start, slot)
            state.anchor = target
            placed_in_block += 1

    def _decide(
        self,
        loc: Location,
        end: int,
        limit: Optional[int],
        block_empty: bool,
        state: _DayState,
    ) -> tuple[_Decision, Optional[ExclusionReason]]:
        fits_day = end <= LAST_MINUTE_OF_DAY
        if fits_day and (limit is None or end <= limit):
            return _Decision.place, None
        if fits_day and block_empty:
            return _Decision.place_overtime, None
        if (
            self.fixed_days is not None
            and state.items
            and loc.priority in (Priority.medium, Priority.low)
        ):
            return _Decision.exclude, ExclusionReason.insufficient_hours
        if fits_day and state.last_chance and loc.priority == Priority.required:
            return _Decision.place_overtime, None
        return _Decision.carry, None

    def _exclude(self, state: _DayState, loc: Location, reason: Optional[ExclusionReason]) -> None:
        reason = reason or ExclusionReason.insufficient_hours
        logger.info("Day %d: excluding %r (%s)", state.day, loc.name, reason.value)
        state.excluded.append(ExcludedLocation(loc.id, loc.name, loc.priority, reason))

    # ── Travel ────────────────────────────────────────────────────────────────

    def _anchor_of(self, loc: Location) -> _Anchor:
        return _Anchor(self.matrix_index.get(loc.id), loc.lat, loc.lng, is_location=True)

    def _travel(
        self,
        origin: Optional[_Anchor],
        target: _Anchor,
        loc: Location,
    ) -> Optional[TravelLeg]:
        """Travel leg to *target*; None means no travel to show."""
        if origin is None:
            return None
        if (
            self.matrix is not None
            and origin.matrix_index is not None
            and target.matrix_index is not None
        ):
            minutes = self.matrix.duration(origin.matrix_index, target.matrix_index)
            if minutes is not None:
                km = self.matrix.distance(origin.matrix_index, target.matrix_index)
                return TravelLeg(minutes=minutes, km=km)
        if self.estimate_travel:
            leg = self.distance_tool.estimate((origin.lat, origin.lng), (target.lat, target.lng))
            if leg is not None:
                return leg
        if not origin.is_location:
            # Unknown travel from the departure point or last night's accommodation
            return None
        logger.debug("No travel data to %r; using %d-minute buffer", loc.name, self.travel_buffer_min)
        return TravelLeg(minutes=self.travel_buffer_min, km=None, estimated=True)

    # ── Item emission ─────────────────────────────────────────────────────────

    def _item(self, state: _DayState, start: int, end: int, type_: ItemType, name: str, **kw) -> ScheduleItem:
        return ScheduleItem(
            day=state.day,
            date=state.date,
            start_time=to_clock(start),
            end_time=to_clock(end),
            type=type_,
            name=name,
            order=len(state.items),
            **kw,
        )

    def _emit(
        self,
        state: _DayState,
        loc: Location,
        leg: Optional[TravelLeg],
        block_start: int,
        slot: Optional[TimeSlot],
    ) -> None:
        item_slot = slot or (loc.time_slot if loc.time_slot == TimeSlot.flexible else TimeSlot.normal)

        if leg is not None and leg.minutes > 0:
            state.items.append(self._item(
                state, state.cursor, state.cursor + leg.minutes, ItemType.transport,
                f"Travel to {loc.name}", time_slot=item_slot, travel=leg,
            ))
            state.travel_min += leg.minutes
            state.km += leg.km or 0.0

        t = block_start
        if loc.buffer_before > 0:
            state.items.append(self._item(
                state, t, t + loc.buffer_before, ItemType.buffer, f"Setup: {loc.name}",
                ref_id=loc.id, time_slot=item_slot,
            ))
            t += loc.buffer_before

        shoot_end = t + loc.shooting_duration
        state.items.append(self._item(
            state, t, shoot_end, ItemType.shooting, loc.name,
            ref_id=loc.id,
            address=loc.address,
            notes=loc.notes,
            time_slot=item_slot,
            buffer_before_min=loc.buffer_before,
            buffer_after_min=loc.buffer_after,
            includes_meal=loc.has_meal,
            meal_duration_min=loc.meal_duration_min if loc.has_meal else None,
            is_outside_work_hours=slot is None and shoot_end > self.work_end,
        ))
        t = shoot_end

        if loc.has_meal and loc.meal_duration_min > 0:
            state.items.append(self._item(
                state, t, t + loc.meal_duration_min, ItemType.meal, f"Meal ({loc.name})",
                ref_id=loc.id, address=loc.address, time_slot=item_slot,
            ))
            t += loc.meal_duration_min

        if loc.buffer_after > 0:
            state.items.append(self._item(
                state, t, t + loc.buffer_after, ItemType.buffer, f"Teardown: {loc.name}",
                ref_id=loc.id, time_slot=item_slot,
            ))
            t += loc.buffer_after

        state.cursor = t

    # ── Accommodation ─────────────────────────────────────────────────────────

    def _accommodation_for(self, day: int, day_date: Optional[date]) -> Optional[Accommodation]:
        dated = [a for a in self.accommodations if a.check_in_date is not None]
        if day_date is not None and dated:
            for acc in dated:
                if acc.check_in_date == day_date:
                    return acc
            for acc in dated:
                if acc.check_out_date is not None and acc.check_in_date <= day_date < acc.check_out_date:
                    return acc
            return None
        if day - 1 < len(self.accommodations):
            return self.accommodations[day - 1]
        return None

    def _check_in_item(
        self,
        acc: Accommodation,
        state: _DayState,
        day_items: Sequence[ScheduleItem],
    ) -> ScheduleItem:
        last_end = max((to_minutes(it.end_time) for it in day_items), default=self.work_start)
        check_in = optional_minutes(acc.check_in_time)
        start = max(last_end, check_in) if check_in is not None else last_end
        return ScheduleItem(
            day=state.day,
            date=state.date,
            start_time=to_clock(start),
            end_time=to_clock(start),
            type=ItemType.accommodation,
            name=acc.name,
            ref_id=acc.id,
            address=acc.address,
            notes=acc.notes,
            order=len(day_items),
        )


def fit_work_hours(
    locations: Sequence[Location],
    project: ProjectConfig,
    accommodations: Sequence[Accommodation] = (),
    meals: Sequence[Meal] = (),
    travel_buffer_min: Optional[int] = None,
    distance_matrix: Optional[DistanceMatrix] = None,
    matrix_index: Optional[dict[str, int]] = None,
    estimate_travel: bool = True,
) -> FitResult:
    """Functional wrapper around :class:`WorkHoursFitter`."""
    return WorkHoursFitter(
        project,
        accommodations=accommodations,
        meals=meals,
        travel_buffer_min=travel_buffer_min,
        distance_matrix=distance_matrix,
        matrix_index=matrix_index,
        estimate_travel=estimate_travel,
    ).fit(locations)

"""
modules/planning/meal_inserter.py
-----------------------------------
Guarantees each working day a lunch block.

If no meal already starts inside the lunch window (config.LUNCH_WINDOW_START ..
LUNCH_WINDOW_END), the first idle gap whose lunch start (the later of the gap
start and the window start) falls before the window end and that holds
config.AUTO_MEAL_DURATION_MIN minutes receives a lunch item.  Fully booked
days are left alone; lunch is never squeezed into an overlapping slot.

A registered lunch Meal is reused for the inserted block when one exists
(same date first, else the first lunch); otherwise an ``auto_meal`` placeholder
named config.AUTO_MEAL_LABEL is synthesised.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

import config
from modules.tool_usage.time_tool import LAST_MINUTE_OF_DAY, add_minutes, to_clock, to_minutes
from schemas.schedule import LUNCH_ITEM_TYPES, ItemType, Meal, MealType, ScheduleItem

logger = logging.getLogger(__name__)


def _sort_and_renumber(items: Sequence[ScheduleItem]) -> list[ScheduleItem]:
    ordered = sorted(items, key=lambda it: (to_minutes(it.start_time), to_minutes(it.end_time)))
    return [it if it.order == idx else replace(it, order=idx) for idx, it in enumerate(ordered)]


def has_lunch(items: Sequence[ScheduleItem]) -> bool:
    """True if a meal / auto_meal item starts inside the lunch window."""
    lunch_start = to_minutes(config.LUNCH_WINDOW_START)
    lunch_end = to_minutes(config.LUNCH_WINDOW_END)
    return any(
        it.type in LUNCH_ITEM_TYPES and lunch_start <= to_minutes(it.start_time) < lunch_end
        for it in items
    )


def find_lunch_slot(items: Sequence[ScheduleItem]) -> Optional[int]:
    """Start minute of the first gap that can hold lunch, or None."""
    lunch_start = to_minutes(config.LUNCH_WINDOW_START)
    lunch_end = to_minutes(config.LUNCH_WINDOW_END)
    duration = config.AUTO_MEAL_DURATION_MIN

    gaps: list[tuple[int, int]] = []
    prev_end = 0
    for it in sorted(items, key=lambda x: to_minutes(x.start_time)):
        start = to_minutes(it.start_time)
        if start > prev_end:
            gaps.append((prev_end, start))
        prev_end = max(prev_end, to_minutes(it.end_time))
    gaps.append((prev_end, LAST_MINUTE_OF_DAY))

    for gap_start, gap_end in gaps:
        candidate = max(gap_start, lunch_start)
        if candidate < lunch_end and candidate + duration <= gap_end:
            return candidate
    return None


def _pick_registered_lunch(meals: Sequence[Meal], day_date: Optional[date]) -> Optional[Meal]:
    lunches = [m for m in meals if m.meal_type == MealType.lunch]
    if day_date is not None:
        for m in lunches:
            if m.scheduled_date == day_date:
                return m
    return lunches[0] if lunches else None


def insert_auto_meal(
    items: Sequence[ScheduleItem],
    day: int,
    day_date: Optional[date] = None,
    meals: Sequence[Meal] = (),
    label: Optional[str] = None,
) -> list[ScheduleItem]:
    """
    Return the day's items with a lunch block added when one is missing and
    fits.  Items come back sorted by start time with ``order`` renumbered.
    The input sequence is not modified.  Idempotent.
    """
    if not items:
        return []
    if has_lunch(items):
        return _sort_and_renumber(items)

    slot = find_lunch_slot(items)
    if slot is None:
        logger.info("Day %d: no free %d-minute slot for lunch", day, config.AUTO_MEAL_DURATION_MIN)
        return _sort_and_renumber(items)

    registered = _pick_registered_lunch(meals, day_date)
    start = to_clock(slot)
    end = add_minutes(start, config.AUTO_MEAL_DURATION_MIN)
    if registered is not None:
        lunch = ScheduleItem(
            day=day,
            date=day_date,
            start_time=start,
            end_time=end,
            type=ItemType.meal,
            name=registered.name,
            ref_id=registered.id,
            address=registered.address,
            notes=registered.notes,
            is_auto_inserted=True,
        )
    else:
        lunch = ScheduleItem(
            day=day,
            date=day_date,
            start_time=start,
            end_time=end,
            type=ItemType.auto_meal,
            name=label or config.AUTO_MEAL_LABEL,
            is_auto_inserted=True,
        )
    logger.debug("Day %d: lunch %r inserted at %s", day, lunch.name, lunch.start_time)
    return _sort_and_renumber([*items, lunch])

from datetime import date

import config
from modules.planning.meal_inserter import find_lunch_slot, has_lunch, insert_auto_meal
from schemas.schedule import ItemType, Meal, MealType


def _lunches(items):
    return [it for it in items if it.type in (ItemType.meal, ItemType.auto_meal)]


def test_inserts_placeholder_into_idle_lunch_window(make_item, check_days):
    items = [make_item("09:00", "10:00"), make_item("14:00", "15:00")]
    out = insert_auto_meal(items, day=1)

    lunches = _lunches(out)
    assert len(lunches) == 1
    lunch = lunches[0]
    assert (lunch.start_time, lunch.end_time) == ("11:00", "12:00")
    assert lunch.type == ItemType.auto_meal
    assert lunch.name == config.AUTO_MEAL_LABEL
    assert lunch.is_auto_inserted
    assert [it.order for it in out] == [0, 1, 2]
    check_days(out)


def test_lunch_starts_at_gap_start_when_after_eleven(make_item):
    items = [make_item("09:00", "12:30"), make_item("13:40", "18:00")]
    out = insert_auto_meal(items, day=1)
    lunch = _lunches(out)[0]
    assert (lunch.start_time, lunch.end_time) == ("12:30", "13:30")


def test_trailing_gap_after_last_item_is_used(make_item):
    items = [make_item("09:00", "12:20")]
    out = insert_auto_meal(items, day=1)
    assert _lunches(out)[0].start_time == "12:20"


def test_existing_meal_in_window_means_no_insertion(make_item):
    items = [
        make_item("09:00", "12:00"),
        make_item("12:00", "13:00", ItemType.meal, name="Meal (Harbour)"),
        make_item("13:00", "17:00"),
    ]
    out = insert_auto_meal(items, day=1)
    assert len(out) == 3
    assert has_lunch(out)


def test_meal_outside_window_does_not_count(make_item):
    items = [make_item("09:00", "10:00"), make_item("14:00", "15:00", ItemType.meal)]
    assert not has_lunch(items)
    assert len(_lunches(insert_auto_meal(items, day=1))) == 2


def test_fully_booked_day_gets_no_lunch(make_item):
    items = [make_item("09:00", "18:00")]
    assert find_lunch_slot(items) is None
    assert insert_auto_meal(items, day=1) == items


def test_short_gap_is_skipped(make_item):
    # 11:00-11:30 is too short, 12:30 onwards is used
    items = [make_item("09:00", "11:00"), make_item("11:30", "12:30"), make_item("16:00", "17:00")]
    out = insert_auto_meal(items, day=1)
    assert _lunches(out)[0].start_time == "12:30"


def test_empty_day_gets_nothing():
    assert insert_auto_meal([], day=3) == []


def test_insertion_is_idempotent(make_item):
    items = [make_item("09:00", "10:00"), make_item("14:00", "15:00")]
    once = insert_auto_meal(items, day=1)
    twice = insert_auto_meal(once, day=1)
    assert twice == once
    assert len(_lunches(twice)) == 1


def test_registered_lunch_is_reused(make_item):
    meals = [
        Meal(id="m-dinner", name="Izakaya", meal_type=MealType.dinner),
        Meal(id="m-lunch", name="Soba Ya", meal_type=MealType.lunch, address="1-2-3 Ginza"),
    ]
    out = insert_auto_meal([make_item("09:00", "10:00")], day=1, meals=meals)
    lunch = _lunches(out)[0]
    assert lunch.type == ItemType.meal
    assert lunch.ref_id == "m-lunch"
    assert lunch.name == "Soba Ya"
    assert lunch.address == "1-2-3 Ginza"
    assert lunch.is_auto_inserted


def test_registered_lunch_matching_the_date_wins(make_item):
    d1, d2 = date(2026, 5, 1), date(2026, 5, 2)
    meals = [
        Meal(id="l1", name="Day one lunch", meal_type=MealType.lunch, scheduled_date=d1),
        Meal(id="l2", name="Day two lunch", meal_type=MealType.lunch, scheduled_date=d2),
    ]
    out = insert_auto_meal([make_item("09:00", "10:00", day=2, date=d2)], day=2, day_date=d2, meals=meals)
    lunch = _lunches(out)[0]
    assert lunch.ref_id == "l2"
    assert lunch.date == d2
    assert lunch.day == 2


def test_input_is_not_mutated(make_item):
    items = [make_item("14:00", "15:00"), make_item("09:00", "10:00")]
    snapshot = list(items)
    insert_auto_meal(items, day=1)
    assert items == snapshot

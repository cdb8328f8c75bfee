"""Serving hours per dining hall.

FoodPro publishes menus but not hours, so the schedule is kept here. Times are
wall-clock times in the reference timezone.
"""

from datetime import date, datetime
from typing import Literal

from core.timezone import now_local
from models.types import MealHours, MealSchedule, MealStatus, MealType

DayType = Literal["weekday", "weekend"]

MEAL_ORDER: list[MealType] = [
    MealType.BREAKFAST,
    MealType.BRUNCH,
    MealType.LUNCH,
    MealType.DINNER,
]

MEAL_HOURS: dict[str, dict[DayType, dict[MealType, MealHours | None]]] = {
    # Glasgow
    "03": {
        "weekday": {
            MealType.BREAKFAST: MealHours(start="7:30 AM", end="10:30 AM"),
            MealType.LUNCH: MealHours(start="10:30 AM", end="2:30 PM"),
            MealType.DINNER: MealHours(start="5:00 PM", end="9:00 PM"),
            MealType.BRUNCH: None,
        },
        "weekend": {
            MealType.BREAKFAST: None,
            MealType.LUNCH: None,
            MealType.DINNER: MealHours(start="5:00 PM", end="9:00 PM"),
            MealType.BRUNCH: MealHours(start="10:00 AM", end="2:30 PM"),
        },
    },
    # Lothian
    "02": {
        "weekday": {
            MealType.BREAKFAST: None,
            MealType.LUNCH: MealHours(start="11:00 AM", end="2:30 PM"),
            MealType.DINNER: MealHours(start="5:00 PM", end="10:00 PM"),
            MealType.BRUNCH: None,
        },
        "weekend": {
            MealType.BREAKFAST: None,
            MealType.LUNCH: None,
            MealType.DINNER: None,
            MealType.BRUNCH: None,
        },
    },
}


def day_type(day: date) -> DayType:
    return "weekend" if day.weekday() >= 5 else "weekday"


def get_meal_hours(location_id: str, meal: MealType, day: date) -> MealHours | None:
    return MEAL_HOURS.get(location_id, {}).get(day_type(day), {}).get(meal)


def _minutes(clock: str) -> int:
    """Minutes since midnight for a time like "7:30 AM"."""
    parsed = datetime.strptime(clock.strip().upper(), "%I:%M %p")
    return parsed.hour * 60 + parsed.minute


def get_meal_status(
    location_id: str, meal: MealType, day: date, now: datetime | None = None
) -> MealStatus:
    hours = get_meal_hours(location_id, meal, day)
    if hours is None:
        return MealStatus.CLOSED

    now = now or now_local()
    if day > now.date():
        return MealStatus.UPCOMING
    if day < now.date():
        return MealStatus.CLOSED

    current = now.hour * 60 + now.minute
    if current < _minutes(hours.start):
        return MealStatus.UPCOMING
    if current < _minutes(hours.end):
        return MealStatus.OPEN
    return MealStatus.CLOSED


def get_available_meals(location_id: str, day: date) -> list[MealType]:
    return [meal for meal in MEAL_ORDER if get_meal_hours(location_id, meal, day) is not None]


def is_location_closed(location_id: str, day: date) -> bool:
    return not get_available_meals(location_id, day)


def get_current_or_next_meal(
    location_id: str, day: date, now: datetime | None = None
) -> MealType:
    """The open meal, else the next upcoming one, else the day's last meal."""
    now = now or now_local()
    statuses = {meal: get_meal_status(location_id, meal, day, now) for meal in MEAL_ORDER}
    for wanted in (MealStatus.OPEN, MealStatus.UPCOMING):
        for meal in MEAL_ORDER:
            if statuses[meal] == wanted:
                return meal
    available = get_available_meals(location_id, day)
    return available[-1] if available else MealType.DINNER


def menu_meal_key(meal: MealType, day: date) -> MealType:
    """FoodPro lists weekend brunch items under lunch."""
    if meal == MealType.BRUNCH and day_type(day) == "weekend":
        return MealType.LUNCH
    return meal


def meal_schedule(location_id: str, day: date, now: datetime | None = None) -> list[MealSchedule]:
    now = now or now_local()
    return [
        MealSchedule(
            meal=meal,
            hours=get_meal_hours(location_id, meal, day),
            status=get_meal_status(location_id, meal, day, now),
            menu_key=menu_meal_key(meal, day),
        )
        for meal in MEAL_ORDER
    ]

"""Fixed hourly slot grid and booking-horizon helpers"""

from datetime import date, timedelta

from ...models import WEEKDAYS

SLOT_COUNT = 12
FIRST_SLOT_HOUR = 9  # slot 1 starts at 09:00, slot 12 ends at 21:00


def slot_bounds(slot_number: int) -> tuple[str, str]:
    """Start and end ("HH:MM") of a slot number in 1..12"""
    if not 1 <= slot_number <= SLOT_COUNT:
        raise ValueError(f"Slot number must be between 1 and {SLOT_COUNT}")
    start = FIRST_SLOT_HOUR + slot_number - 1
    return f"{start:02d}:00", f"{start + 1:02d}:00"


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def within_horizon(day: date, today: date, horizon_days: int) -> bool:
    """Bookable dates run from today through the next ``horizon_days - 1`` days"""
    return today <= day < today + timedelta(days=horizon_days)

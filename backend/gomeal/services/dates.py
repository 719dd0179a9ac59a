"""Date helpers. Daily LINE features and auto grouping run on Japan time."""
from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from gomeal.models.availability import Weekday, TimeSlot, WEEKDAYS
from gomeal.models.pair_meal import TimeBand

JST = pytz.timezone("Asia/Tokyo")

MEETING_TIME_WINDOWS = {
    TimeBand.LUNCH: (10 * 60, 15 * 60),
    TimeBand.DINNER: (18 * 60, 23 * 60),
}


def weekday_for_date(d: date) -> Weekday:
    return WEEKDAYS[d.weekday()]


def now_in_jst(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(pytz.utc)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(JST)


def today_in_jst(now: Optional[datetime] = None) -> date:
    return now_in_jst(now).date()


def today_weekday_in_jst(now: Optional[datetime] = None) -> Weekday:
    return weekday_for_date(today_in_jst(now))


def start_of_day_in_jst(d: date) -> datetime:
    """Midnight JST of ``d`` as an aware UTC datetime."""
    local_midnight = JST.localize(datetime(d.year, d.month, d.day))
    return local_midnight.astimezone(pytz.utc)


def compute_expires_at(d: date, time_band: TimeBand) -> datetime:
    hours = 16 if time_band == TimeBand.LUNCH else 24
    return start_of_day_in_jst(d) + timedelta(hours=hours)


def time_band_to_slot(time_band: TimeBand) -> TimeSlot:
    return TimeSlot.DAY if time_band == TimeBand.LUNCH else TimeSlot.NIGHT


def slot_to_time_band(time_slot: TimeSlot) -> TimeBand:
    return TimeBand.LUNCH if time_slot == TimeSlot.DAY else TimeBand.DINNER


def parse_time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: Optional[int]) -> Optional[str]:
    if minutes is None:
        return None
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def validate_meeting_time(minutes: int, time_band: TimeBand) -> None:
    """Raise ValueError unless ``minutes`` is inside the band window on a 30-minute step."""
    low, high = MEETING_TIME_WINDOWS[time_band]
    if minutes < low or minutes > high:
        raise ValueError("meetingTime is out of the allowed range for this timeBand")
    if minutes % 30 != 0:
        raise ValueError("meetingTime must be in 30-minute increments")

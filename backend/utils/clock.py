# backend/utils/clock.py
import calendar
from datetime import datetime, timezone

# Naive UTC timestamps, matching what the DateTime columns store
def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

def add_months(value: datetime, months: int = 1) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)

def first_day_of_next_month(value: datetime) -> datetime:
    return add_months(value.replace(day=1, hour=0, minute=0, second=0, microsecond=0), 1)

"""Local calendar day helpers. Day-keys are zero-padded "YYYY-MM-DD" strings.

Every helper takes a ``tz``; ``None`` means the host's local time, resolved
per instant through the C library so daylight-saving changes are honoured.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def from_epoch_ms(ms: int, tz: tzinfo | None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone(tz)


def day_key_from_date(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_day_key(day_key: str) -> date:
    """Parse "YYYY-MM-DD"; raises ValueError on anything else."""
    parsed = datetime.strptime(day_key, "%Y-%m-%d").date()
    # strptime also accepts "2025-3-5"
    if day_key_from_date(parsed) != day_key:
        raise ValueError(f"Day key must be zero-padded YYYY-MM-DD, got {day_key!r}")
    return parsed


def today_key(now: datetime, tz: tzinfo | None) -> str:
    return day_key_from_date(now.astimezone(tz).date())


def yesterday_key(now: datetime, tz: tzinfo | None) -> str:
    return day_key_from_date(now.astimezone(tz).date() - timedelta(days=1))


def local_midnight(day: date, tz: tzinfo | None) -> datetime:
    if tz is None:
        # Naive local wall time; astimezone() applies the offset in force on that date
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds_ms(day_key: str, tz: tzinfo | None) -> tuple[int, int]:
    """Epoch-ms bounds [local midnight, next local midnight) for a day-key.

    Computed from calendar dates rather than start + 24h so DST days are
    23 or 25 hours long.
    """
    day = parse_day_key(day_key)
    start = local_midnight(day, tz)
    end = local_midnight(day + timedelta(days=1), tz)
    return to_epoch_ms(start), to_epoch_ms(end)


def recent_window_start_ms(now: datetime, tz: tzinfo | None, days: int) -> int:
    """Local midnight of the first day of an N-day window ending today."""
    first = now.astimezone(tz).date() - timedelta(days=max(days, 1) - 1)
    return to_epoch_ms(local_midnight(first, tz))

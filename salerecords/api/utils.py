from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

DATE_FORMAT = "%Y-%m-%d"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def validate_date_range(start: str | None, end: str | None, max_days: int) -> tuple[date, date] | None:
    """Parse a ``YYYY-MM-DD`` pair, or None when it cannot be used as a window.

    The span is counted in inclusive days, so ``max_days=31`` accepts
    2024-01-01..2024-01-31 and rejects 2024-01-01..2024-02-01.
    """
    if not start or not end:
        return None
    try:
        start_day = datetime.strptime(start, DATE_FORMAT).date()
        end_day = datetime.strptime(end, DATE_FORMAT).date()
    except ValueError:
        return None
    if start_day > end_day:
        return None
    if start_day + timedelta(days=max_days - 1) < end_day:
        return None
    return start_day, end_day


def resolve_search_window(
    start: str | None,
    end: str | None,
    max_days: int,
    now: datetime | None = None,
    utc_offset_hours: int = 8,
) -> tuple[datetime, datetime]:
    """Return a UTC ``[from, to)`` window for a local-date search.

    Anything that is not a usable range falls back to the trailing
    ``max_days`` ending now rather than being rejected.
    """
    now = now or now_utc()
    parsed = validate_date_range(start, end, max_days)
    if parsed is None:
        return now - timedelta(days=max_days), now
    start_day, end_day = parsed
    offset = timedelta(hours=utc_offset_hours)
    window_from = datetime.combine(start_day, datetime.min.time(), tzinfo=timezone.utc) - offset
    window_to = datetime.combine(end_day + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc) - offset
    return window_from, window_to


def parse_id_list(raw: str | None) -> list[int]:
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        ids.append(int(part))
    return ids

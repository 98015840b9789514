from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def is_report_hour(hours: list[int], now: datetime | None = None, tz: str = "UTC") -> bool:
    """Return whether the current hour (in ``tz``) is a scheduled report hour."""
    zone = ZoneInfo(tz)
    current = now or datetime.now(zone)

    if current.tzinfo is None:
        local_now = current.replace(tzinfo=zone)
    else:
        local_now = current.astimezone(zone)

    return local_now.hour in hours

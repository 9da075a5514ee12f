"""Time utilities pinned to the venue's local time zone."""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo


def _load_zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except Exception:
        # Fallback to system local timezone when tzdata is unavailable (Windows)
        return datetime.now().astimezone().tzinfo


LOCAL_TZ = _load_zone("Europe/Amsterdam")


def set_local_timezone(name: str) -> None:
    """Pin the venue time zone used for new timestamps (Settings.timezone)."""
    global LOCAL_TZ
    LOCAL_TZ = _load_zone(name)


def now_local() -> datetime:
    """Return timezone-aware datetime in the venue time zone."""
    return datetime.now(LOCAL_TZ)


def now_local_naive() -> datetime:
    """Return naive datetime representing venue local time (as stored in the database)."""
    return now_local().replace(tzinfo=None)

"""Usage period helpers.

The month key is computed once at the request boundary and passed down,
so the engine itself never reads the clock.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def month_key_for(now: datetime) -> str:
    """
    Ledger key ('YYYY-MM') for the calendar month containing `now`, in UTC.

    Example:
        month_key_for(datetime(2025, 1, 31, 23, 0, tzinfo=timezone.utc)) -> '2025-01'
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware (UTC)")
    return now.astimezone(timezone.utc).strftime("%Y-%m")

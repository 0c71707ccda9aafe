"""UTC clock helpers.

Snapshot keys and history points use **naive** UTC datetimes so that the
lexical order of snapshot file names always matches capture order (no DST
jumps). ``datetime.utcnow()`` is deprecated since Python 3.12; these wrappers
produce the same values without the DeprecationWarning.
"""

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive (tzinfo=None) datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def snapshot_now() -> datetime:
    """Current UTC time truncated to whole seconds (snapshot key precision)."""
    return utcnow().replace(microsecond=0)


def race_date(offset_days: int = 0) -> date:
    """Race card date to fetch: today (local calendar) plus ``offset_days``."""
    return date.today() + timedelta(days=offset_days)

"""Server clock.

All timestamps are naive UTC, matching how the models store them. Rules that
depend on the time of day call ``clock.utcnow()`` through this module so tests
can pin it.
"""
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

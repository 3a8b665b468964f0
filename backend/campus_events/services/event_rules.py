"""Timing rules for events.

Pure functions over an event-like object (anything with ``id``, ``status``,
``event_date``, ``event_time`` and ``grace_period_minutes``) and an explicit
``now`` in naive UTC. Nothing here touches the database.
"""
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from campus_events.models.status import AttendanceStatus
from campus_events.utils.errors import StateError

logger = logging.getLogger(__name__)

CLOSED_STATUSES = {'completed', 'archived'}
DEFAULT_GRACE_PERIOD_MINUTES = 15

_DATE_PREFIX = re.compile(r'^(\d{4}-\d{2}-\d{2})')
_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?')

def normalize_status(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ''

def normalize_event_date(raw: Any) -> Optional[date]:
    """Derive a calendar date from a stored value, or None if it can't be read."""
    if raw is None or raw == '':
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        match = _DATE_PREFIX.match(raw.strip())
        if match:
            try:
                return date.fromisoformat(match.group(1))
            except ValueError:
                return None
    return None

def normalize_event_time(raw: Any) -> Optional[time]:
    """Derive a clock time from a stored value, or None if absent/unreadable."""
    if raw is None or raw == '':
        return None
    if isinstance(raw, datetime):
        return raw.time()
    if isinstance(raw, time):
        return raw
    if isinstance(raw, str):
        match = _TIME_PATTERN.match(raw.strip())
        if match:
            try:
                return time(int(match.group(1)), int(match.group(2)), int(match.group(3) or 0))
            except ValueError:
                return None
    return None

def is_event_completed(event, now: datetime, same_day_cutoff: bool = True) -> bool:
    """Whether the event should be treated as over at ``now``.

    Completed/Archived status always wins. Otherwise the calendar date decides:
    future dates are open, past dates are closed. On the event date itself the
    event closes once its start time is reached, unless it has no time or
    ``same_day_cutoff`` is False, in which case it stays open all day.

    An unreadable date is logged and treated as not completed.
    """
    if normalize_status(event.status) in CLOSED_STATUSES:
        return True

    event_day = normalize_event_date(event.event_date)
    if event_day is None:
        logger.warning(
            "Unable to determine date for event %s (event_date=%r); keeping it open",
            getattr(event, 'id', None), event.event_date
        )
        return False

    today = now.date()
    if event_day > today:
        return False
    if event_day < today:
        return True

    if not same_day_cutoff:
        return False

    start_time = normalize_event_time(event.event_time)
    if start_time is None:
        if event.event_time not in (None, ''):
            logger.warning(
                "Unable to parse time for event %s (event_time=%r); open all day",
                getattr(event, 'id', None), event.event_time
            )
        return False

    return datetime.combine(event_day, start_time) <= now

def event_start(event) -> Optional[datetime]:
    """Start instant used for check-in; a missing time means midnight."""
    event_day = normalize_event_date(event.event_date)
    if event_day is None:
        return None
    return datetime.combine(event_day, normalize_event_time(event.event_time) or time(0, 0))

def classify_check_in(event, now: datetime) -> AttendanceStatus:
    """Classify a scan at ``now`` as on time or late.

    Raises ``StateError`` when the event has not started yet.
    """
    start = event_start(event)
    if start is None:
        return AttendanceStatus.ATTENDED

    if now < start:
        raise StateError("Event has not started yet", 'event_not_started')

    grace = event.grace_period_minutes
    if grace is None:
        grace = DEFAULT_GRACE_PERIOD_MINUTES

    if now > start + timedelta(minutes=grace):
        return AttendanceStatus.LATE
    return AttendanceStatus.ATTENDED

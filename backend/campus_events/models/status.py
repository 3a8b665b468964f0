"""Attendance status vocabulary.

Participants and attendance logs share one status type. Logs historically
reported ``present``/``verified`` where participants say ``attended``; the
tables below are the only place that translation happens.
"""
import enum

class AttendanceStatus(enum.Enum):
    REGISTERED = 'registered'
    ATTENDED = 'attended'
    LATE = 'late'
    ABSENT = 'absent'

# Statuses that occupy a seat when checking capacity.
ACTIVE_PARTICIPANT_STATUSES = (
    AttendanceStatus.REGISTERED,
    AttendanceStatus.ATTENDED,
    AttendanceStatus.LATE,
)

CHECKED_IN_STATUSES = (AttendanceStatus.ATTENDED, AttendanceStatus.LATE)

LOG_STATUS_LABELS = {
    AttendanceStatus.REGISTERED: 'registered',
    AttendanceStatus.ATTENDED: 'present',
    AttendanceStatus.LATE: 'late',
    AttendanceStatus.ABSENT: 'absent',
}

_INBOUND_LABELS = {
    'registered': AttendanceStatus.REGISTERED,
    'attended': AttendanceStatus.ATTENDED,
    'present': AttendanceStatus.ATTENDED,
    'verified': AttendanceStatus.ATTENDED,
    'late': AttendanceStatus.LATE,
    'absent': AttendanceStatus.ABSENT,
}

def log_label(status: AttendanceStatus) -> str:
    """Label an attendance-log status for API output."""
    return LOG_STATUS_LABELS[status] if status else None

def parse_status(label: str) -> AttendanceStatus:
    """Map any known label onto the shared status. Raises ``ValueError``."""
    try:
        return _INBOUND_LABELS[str(label).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown attendance status: {label}")

"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole, Admin
from .student import Student, StudentStatus
from .status import AttendanceStatus
from .event import Event, EventStatus, EventParticipant
from .attendance import AttendanceLog
from .onduty import OnDutyRequest, OnDutyStatus, OnDutyAttendance
from .certificate import Certificate, CertificateStatus

__all__ = [
    'BaseModel', 'User', 'UserRole', 'Admin',
    'Student', 'StudentStatus', 'AttendanceStatus',
    'Event', 'EventStatus', 'EventParticipant',
    'AttendanceLog', 'OnDutyRequest', 'OnDutyStatus',
    'OnDutyAttendance', 'Certificate', 'CertificateStatus'
]

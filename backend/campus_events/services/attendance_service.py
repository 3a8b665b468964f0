"""Check-in and photo-proof attachment.

Both entry points converge on one attendance log per (student, event)
through ``upsert_attendance``.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from campus_events import db
from campus_events.models.attendance import AttendanceLog
from campus_events.models.event import Event, EventParticipant
from campus_events.models.status import AttendanceStatus, parse_status
from campus_events.services.event_rules import (
    classify_check_in, event_start, is_event_completed, normalize_status
)
from campus_events.services.event_service import EventService
from campus_events.services.qr_service import QRService
from campus_events.services.storage_service import (
    ATTENDANCE_PHOTOS, FileStorage, decode_photo_data
)
from campus_events.services.student_service import StudentService
from campus_events.utils import clock
from campus_events.utils.errors import (
    ConflictError, NotFoundError, StateError, ValidationError
)
from campus_events.utils.helpers import isoformat
from campus_events.utils.validators import Validator

logger = logging.getLogger(__name__)

PROOF_ONLY_NOTE = 'Attendance recorded via photo proof'

def upsert_attendance(student_id: int, event_id: int, **changes) -> AttendanceLog:
    """Create or patch the attendance log keyed by (student, event).

    ``None`` values leave the stored column untouched. Does not commit.
    """
    log = AttendanceLog.query.filter_by(
        student_id=student_id, event_id=event_id
    ).with_for_update().first()

    if log is None:
        log = AttendanceLog(student_id=student_id, event_id=event_id)
        db.session.add(log)

    for field, value in changes.items():
        if value is not None:
            setattr(log, field, value)

    _flush_or_conflict()
    return log

def upsert_participant(student_id: int, event_id: int, status: AttendanceStatus,
                       check_in_time: datetime, notes: str = None,
                       keep_check_in_time: bool = False) -> EventParticipant:
    """Create or move the participant row for (event, student). Does not commit."""
    participant = EventParticipant.query.filter_by(
        event_id=event_id, student_id=student_id
    ).with_for_update().first()

    if participant is None:
        participant = EventParticipant(event_id=event_id, student_id=student_id)
        db.session.add(participant)

    participant.status = status
    if not (keep_check_in_time and participant.check_in_time):
        participant.check_in_time = check_in_time
    if notes:
        participant.notes = notes

    _flush_or_conflict()
    return participant

def _flush_or_conflict() -> None:
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(
            "Attendance is being recorded concurrently, please retry",
            'concurrent_update'
        )

def _ensure_open_for_attendance(event: Event, now: datetime) -> None:
    """Reject attendance on cancelled, not yet started or finished events."""
    if normalize_status(event.status) == 'cancelled':
        raise StateError("Event is not open for attendance", 'attendance_closed')

    start = event_start(event)
    if start is not None and now < start:
        raise StateError("Event has not started yet", 'event_not_started')

    if is_event_completed(event, now, same_day_cutoff=False):
        raise StateError("Event is already completed", 'event_already_completed')

def _ensure_not_absent(student_id: int, event_id: int) -> None:
    participant = EventParticipant.query.filter_by(
        event_id=event_id, student_id=student_id
    ).first()
    if participant and participant.status == AttendanceStatus.ABSENT:
        raise StateError(
            "You have been marked absent for this event",
            'marked_absent'
        )

def _device_info(value: Any) -> Any:
    if value in (None, ''):
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return {'raw': str(value)}

def _qr_text(value: Any) -> Optional[str]:
    if value in (None, ''):
        return None
    return value if isinstance(value, str) else json.dumps(value)

class AttendanceService:
    """Service for attendance transitions."""

    @staticmethod
    def check_in(user_id: int, qr_data: Any, location: str = None,
                 device_info: Any = None, now: datetime = None) -> Dict:
        """Apply a QR scan to the participant and attendance log."""
        now = now or clock.utcnow()
        event_id = QRService.parse_event_id(qr_data)

        event = Event.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found", 'event_not_found')
        _ensure_open_for_attendance(event, now)
        status = classify_check_in(event, now)

        student = StudentService.require_for_user(user_id)
        _ensure_not_absent(student.id, event.id)

        upsert_participant(student.id, event.id, status, now)
        log = upsert_attendance(
            student.id, event.id,
            status=status,
            location=location or event.venue,
            scanned_qr_data=_qr_text(qr_data),
            device_info=_device_info(device_info),
            timestamp=now
        )
        db.session.commit()

        logger.info("Student %s checked in to event %s as %s",
                    student.id, event.id, status.value)
        return {
            'id': log.id,
            'studentId': log.student_id,
            'eventId': log.event_id,
            'eventName': event.name,
            'eventVenue': event.venue,
            'location': log.location or event.venue,
            'checkInTime': isoformat(log.timestamp),
            'status': log.to_dict()['status'],
            'participantStatus': status.value
        }

    @staticmethod
    def attach_proof(user_id: int, data: Dict, storage: FileStorage,
                     now: datetime = None) -> Tuple[AttendanceLog, Event]:
        """Attach a photo and GPS fix to the student's attendance log.

        Targets an existing log by ``attendanceLogId`` or the (student, event)
        log by ``eventId``, creating it in the latter case.
        """
        now = now or clock.utcnow()
        photo = decode_photo_data(data.get('photoData'))

        log_id = data.get('attendanceLogId')
        event_id = data.get('eventId')
        if log_id in (None, '') and event_id in (None, ''):
            raise ValidationError("Either attendanceLogId or eventId is required", 'missing_target')
        if log_id not in (None, '') and event_id not in (None, ''):
            raise ValidationError("Provide only one of attendanceLogId or eventId", 'ambiguous_target')

        latitude = Validator.parse_coordinate(data.get('latitude'), 'latitude', 90)
        longitude = Validator.parse_coordinate(data.get('longitude'), 'longitude', 180)

        student = StudentService.require_for_user(user_id)

        if log_id not in (None, ''):
            log = AttendanceLog.query.filter_by(
                id=_as_int(log_id, 'attendanceLogId'), student_id=student.id
            ).first()
            if not log:
                raise NotFoundError("Attendance record not found", 'attendance_not_found')
            event = log.event
            if log.status == AttendanceStatus.ABSENT:
                raise StateError(
                    "You have been marked absent for this event",
                    'marked_absent'
                )
            photo_url = storage.save(photo, ATTENDANCE_PHOTOS, f"{event.id}_{student.id}")
            log.proof_photo_url = photo_url
            log.latitude = latitude
            log.longitude = longitude
            log.photo_taken_at = now
        else:
            event = Event.get_by_id(_as_int(event_id, 'eventId'))
            if not event:
                raise NotFoundError("Event not found", 'event_not_found')
            _ensure_open_for_attendance(event, now)
            _ensure_not_absent(student.id, event.id)
            photo_url = storage.save(photo, ATTENDANCE_PHOTOS, f"{event.id}_{student.id}")
            log = upsert_attendance(
                student.id, event.id,
                status=AttendanceStatus.ATTENDED,
                location=data.get('location') or event.venue,
                proof_photo_url=photo_url,
                latitude=latitude,
                longitude=longitude,
                photo_taken_at=now,
                scanned_qr_data=_qr_text(data.get('qrData')),
                device_info=_device_info(data.get('deviceInfo'))
            )
            upsert_participant(
                student.id, event.id, AttendanceStatus.ATTENDED, now,
                notes=PROOF_ONLY_NOTE, keep_check_in_time=True
            )

        db.session.commit()
        logger.info("Photo proof attached to attendance log %s (event %s, student %s)",
                    log.id, event.id, student.id)
        return log, event

    @staticmethod
    def history_for_student(student_id: int, principal) -> List[Dict]:
        """Attendance logs of one student; students may only read their own."""
        StudentService.require_access(student_id, principal)

        rows = (
            db.session.query(AttendanceLog, Event)
            .outerjoin(Event, AttendanceLog.event_id == Event.id)
            .filter(AttendanceLog.student_id == student_id)
            .order_by(AttendanceLog.timestamp.desc())
            .all()
        )
        result = []
        for log, event in rows:
            item = log.to_dict()
            item['event_name'] = event.name if event else None
            item['event_date'] = isoformat(event.event_date) if event else None
            item['venue'] = event.venue if event else None
            result.append(item)
        return result

    @staticmethod
    def update_participant(participant_id: int, data: Dict) -> EventParticipant:
        """Admin override of a participant's status/notes."""
        participant = EventParticipant.get_by_id(participant_id)
        if not participant:
            raise NotFoundError("Participant not found", 'participant_not_found')

        if data.get('status'):
            try:
                participant.status = parse_status(data['status'])
            except ValueError:
                raise ValidationError(f"Invalid status: {data['status']}", 'invalid_status')
        if data.get('notes') is not None:
            participant.notes = data['notes']

        db.session.commit()
        return participant

    @staticmethod
    def event_attendance(event_id: int) -> List[Dict]:
        return EventService.participants(event_id)

def _as_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}", 'invalid_number')

"""Event registry and registration rules."""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError

from campus_events import db
from campus_events.models.attendance import AttendanceLog
from campus_events.models.certificate import Certificate
from campus_events.models.event import Event, EventParticipant, EventStatus
from campus_events.models.status import (
    ACTIVE_PARTICIPANT_STATUSES, CHECKED_IN_STATUSES, AttendanceStatus
)
from campus_events.models.student import Student
from campus_events.services.event_rules import (
    CLOSED_STATUSES, is_event_completed, normalize_status
)
from campus_events.services.qr_service import QRService
from campus_events.services.student_service import StudentService
from campus_events.utils import clock
from campus_events.utils.errors import (
    ConflictError, NotFoundError, StateError, ValidationError
)
from campus_events.utils.helpers import isoformat
from campus_events.utils.validators import Validator

logger = logging.getLogger(__name__)

class EventService:
    """Service for events and their participants."""

    @staticmethod
    def get_or_404(event_id: int, for_update: bool = False) -> Event:
        query = Event.query.filter_by(id=event_id)
        if for_update:
            query = query.with_for_update()
        event = query.first()
        if not event:
            raise NotFoundError("Event not found", 'event_not_found')
        return event

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @staticmethod
    def register(event_id: int, user_id: int, fallback_student_id=None,
                 now: datetime = None) -> Tuple[str, Dict]:
        """Register the acting student for an event.

        Returns ``(message, data)``. Repeated registrations are idempotent.
        """
        now = now or clock.utcnow()
        # Row lock serializes concurrent registrations for the same event.
        event = EventService.get_or_404(event_id, for_update=True)

        if normalize_status(event.status) == 'cancelled':
            raise StateError("Event is cancelled", 'event_cancelled')

        if is_event_completed(event, now):
            raise StateError("Event registration has closed", 'registration_closed')

        student = StudentService.resolve_with_fallback(user_id, fallback_student_id)
        if not student:
            logger.warning("Unable to resolve student for user %s (fallback=%r)",
                           user_id, fallback_student_id)
            raise NotFoundError("Student profile not found", 'student_not_found')
        StudentService.require_approved(student, "register for events")

        participant = EventParticipant.query.filter_by(
            event_id=event.id, student_id=student.id
        ).first()

        if participant:
            data = {
                'eventId': event.id,
                'participantId': participant.id,
                'registrationStatus': participant.status.value
            }
            if participant.status in CHECKED_IN_STATUSES:
                return "You have already checked in for this event", data
            if participant.status == AttendanceStatus.ABSENT:
                raise StateError(
                    "Event has concluded. Registration is closed.",
                    'registration_closed'
                )
            return "You are already registered for this event", data

        if event.max_participants:
            taken = EventParticipant.query.filter(
                EventParticipant.event_id == event.id,
                EventParticipant.status.in_(ACTIVE_PARTICIPANT_STATUSES)
            ).count()
            if taken >= event.max_participants:
                raise ConflictError("Event has reached maximum capacity", 'capacity_exceeded')

        participant = EventParticipant(
            event_id=event.id,
            student_id=student.id,
            status=AttendanceStatus.REGISTERED
        )
        db.session.add(participant)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(
                "Registration already in progress for this event",
                'duplicate_registration'
            )

        logger.info("Student %s registered for event %s", student.id, event.id)
        return "Registered successfully", {
            'eventId': event.id,
            'participantId': participant.id,
            'registrationStatus': participant.status.value
        }

    @staticmethod
    def mark_pending_participants_absent(event: Event) -> int:
        """Close out participants still ``registered`` on a finished event.

        Adds an ``absent`` attendance log for each one that has none and flips
        the participant to ``absent``. Does not commit. Returns the number of
        participants transitioned.
        """
        pending = EventParticipant.query.filter_by(
            event_id=event.id, status=AttendanceStatus.REGISTERED
        ).all()

        for participant in pending:
            has_log = AttendanceLog.query.filter_by(
                student_id=participant.student_id, event_id=event.id
            ).first() is not None
            if not has_log:
                db.session.add(AttendanceLog(
                    student_id=participant.student_id,
                    event_id=event.id,
                    status=AttendanceStatus.ABSENT,
                    location=event.venue,
                    timestamp=clock.utcnow()
                ))
            participant.status = AttendanceStatus.ABSENT

        if pending:
            logger.info("Marked %d pending participants absent for event %s",
                        len(pending), event.id)
        return len(pending)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @staticmethod
    def create_event(data: Dict, admin_id: Optional[int] = None,
                     default_grace: int = 15) -> Event:
        if not data.get('name') or not (data.get('eventDate') or data.get('event_date')):
            raise ValidationError("Event name and date are required", 'missing_fields')

        grace = Validator.parse_positive_int(
            _pick(data, 'gracePeriodMinutes', 'grace_period_minutes'), 'gracePeriodMinutes'
        )
        event = Event(
            name=data['name'].strip(),
            description=data.get('description'),
            event_date=Validator.parse_date(_pick(data, 'eventDate', 'event_date'), 'eventDate'),
            event_time=Validator.parse_time(_pick(data, 'eventTime', 'event_time'), 'eventTime'),
            venue=data.get('venue'),
            category=data.get('category'),
            status=EventStatus.ACTIVE.value,
            max_participants=Validator.parse_positive_int(
                _pick(data, 'maxParticipants', 'max_participants'), 'maxParticipants'
            ) or None,
            grace_period_minutes=default_grace if grace is None else grace,
            created_by=admin_id
        )
        db.session.add(event)
        db.session.flush()  # Get event.id for the QR payload

        event.qr_data = QRService.build_event_payload(event)
        db.session.commit()

        logger.info("Event %s created for %s", event.id, event.event_date)
        return event

    @staticmethod
    def update_event(event_id: int, data: Dict) -> Event:
        """Partial update. Moving to Completed/Archived sweeps pending participants."""
        event = EventService.get_or_404(event_id, for_update=True)

        if data.get('name'):
            event.name = data['name'].strip()
        for field in ('description', 'venue', 'category'):
            if data.get(field) is not None:
                setattr(event, field, data[field])

        event_date = _pick(data, 'eventDate', 'event_date')
        if event_date:
            event.event_date = Validator.parse_date(event_date, 'eventDate')
        event_time = _pick(data, 'eventTime', 'event_time')
        if event_time:
            event.event_time = Validator.parse_time(event_time, 'eventTime')

        max_participants = _pick(data, 'maxParticipants', 'max_participants')
        if max_participants is not None:
            event.max_participants = Validator.parse_positive_int(
                max_participants, 'maxParticipants'
            ) or None
        grace = _pick(data, 'gracePeriodMinutes', 'grace_period_minutes')
        if grace is not None:
            event.grace_period_minutes = Validator.parse_positive_int(grace, 'gracePeriodMinutes')

        if data.get('status'):
            try:
                event.status = EventStatus.parse(data['status']).value
            except ValueError:
                raise ValidationError(f"Invalid status: {data['status']}", 'invalid_status')

        if normalize_status(event.status) in CLOSED_STATUSES:
            EventService.mark_pending_participants_absent(event)

        db.session.commit()
        return event

    @staticmethod
    def delete_event(event_id: int) -> None:
        event = EventService.get_or_404(event_id)
        # Certificates outlive the event they were issued for.
        Certificate.query.filter_by(event_id=event.id).update(
            {Certificate.event_id: None}, synchronize_session=False
        )
        db.session.delete(event)
        db.session.commit()
        logger.info("Event %s deleted", event_id)

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @staticmethod
    def list_events(filters: Dict, student: Optional[Student] = None) -> List[Dict]:
        query = Event.query

        if filters.get('status'):
            query = query.filter(func.lower(Event.status) == filters['status'].strip().lower())
        if filters.get('category'):
            query = query.filter(Event.category == filters['category'])
        if filters.get('from_date'):
            query = query.filter(Event.event_date >= Validator.parse_date(filters['from_date'], 'from_date'))
        if filters.get('to_date'):
            query = query.filter(Event.event_date <= Validator.parse_date(filters['to_date'], 'to_date'))

        events = query.order_by(Event.event_date.desc()).all()
        return [EventService.serialize(event, student) for event in events]

    @staticmethod
    def serialize(event: Event, student: Optional[Student] = None) -> Dict:
        data = event.to_dict()
        counts = dict(
            db.session.query(EventParticipant.status, func.count(EventParticipant.id))
            .filter(EventParticipant.event_id == event.id)
            .group_by(EventParticipant.status)
            .all()
        )
        for status in AttendanceStatus:
            data[f'{status.value}_count'] = counts.get(status, 0)

        if student is not None:
            participant = EventParticipant.query.filter_by(
                event_id=event.id, student_id=student.id
            ).first()
            data['registration_status'] = participant.status.value if participant else None
            data['check_in_time'] = isoformat(participant.check_in_time) if participant else None
            data['participant_id'] = participant.id if participant else None

        return data

    @staticmethod
    def participants(event_id: int) -> List[Dict]:
        """Participants joined with student identity and attendance proof."""
        EventService.get_or_404(event_id)
        rows = (
            db.session.query(EventParticipant, Student, AttendanceLog)
            .join(Student, EventParticipant.student_id == Student.id)
            .outerjoin(AttendanceLog, and_(
                AttendanceLog.student_id == EventParticipant.student_id,
                AttendanceLog.event_id == EventParticipant.event_id
            ))
            .filter(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.check_in_time.desc())
            .all()
        )

        result = []
        for participant, student, log in rows:
            item = participant.to_dict()
            item.update({
                'student_name': student.name,
                'student_email': student.email,
                'department': student.department,
                'college': student.college,
                'registration_number': student.registration_number,
                'proof_photo_url': log.proof_photo_url if log else None,
                'latitude': log.latitude if log else None,
                'longitude': log.longitude if log else None,
                'photo_taken_at': isoformat(log.photo_taken_at) if log else None,
            })
            result.append(item)
        return result

def _pick(data: Dict, *keys):
    """First present key, accepting camelCase and snake_case spellings."""
    for key in keys:
        if data.get(key) not in (None, ''):
            return data[key]
    return None

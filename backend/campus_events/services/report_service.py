"""Aggregate statistics for the admin dashboard."""
from datetime import datetime, time, timedelta
from typing import Dict, List

from sqlalchemy import case, distinct, func

from campus_events import db
from campus_events.models.attendance import AttendanceLog
from campus_events.models.certificate import Certificate, CertificateStatus
from campus_events.models.event import Event, EventParticipant, EventStatus
from campus_events.models.status import CHECKED_IN_STATUSES, AttendanceStatus, log_label
from campus_events.models.student import Student, StudentStatus
from campus_events.utils import clock
from campus_events.utils.helpers import isoformat
from campus_events.utils.validators import Validator

TOP_LIMIT = 10

def _count_where(condition, column):
    return func.count(distinct(case((condition, column))))

def _rate(part: int, total: int) -> float:
    return round(part * 100.0 / total, 2) if total else 0.0

class ReportService:
    """Read-only reporting queries. Nothing here writes."""

    @staticmethod
    def event_stats(filters: Dict) -> List[Dict]:
        """Per-event participation, optionally limited to a date range or cohort.

        Department and college filters count only matching students, so
        events with none of them drop out of the result.
        """
        student_id = EventParticipant.student_id
        query = (
            db.session.query(
                Event,
                func.count(distinct(student_id)),
                _count_where(EventParticipant.status == AttendanceStatus.ATTENDED, student_id),
                _count_where(EventParticipant.status == AttendanceStatus.LATE, student_id),
                _count_where(EventParticipant.status == AttendanceStatus.REGISTERED, student_id),
                _count_where(EventParticipant.status == AttendanceStatus.ABSENT, student_id),
            )
            .outerjoin(EventParticipant, EventParticipant.event_id == Event.id)
            .outerjoin(Student, Student.id == EventParticipant.student_id)
        )

        if filters.get('from_date'):
            query = query.filter(
                Event.event_date >= Validator.parse_date(filters['from_date'], 'from_date')
            )
        if filters.get('to_date'):
            query = query.filter(
                Event.event_date <= Validator.parse_date(filters['to_date'], 'to_date')
            )
        if filters.get('department'):
            query = query.filter(Student.department == filters['department'])
        if filters.get('college'):
            query = query.filter(Student.college == filters['college'])

        rows = query.group_by(Event.id).order_by(Event.event_date.desc(), Event.id.desc()).all()

        result = []
        for event, total, attended, late, registered, absent in rows:
            result.append({
                'id': event.id,
                'name': event.name,
                'event_date': isoformat(event.event_date),
                'venue': event.venue,
                'category': event.category,
                'status': event.status,
                'total_participants': total,
                'attended_count': attended,
                'late_count': late,
                'registered_count': registered,
                'absent_count': absent,
                'attendance_rate': _rate(attended + late, total),
            })
        return result

    @staticmethod
    def student_stats() -> Dict:
        counts = dict(
            db.session.query(Student.status, func.count(Student.id))
            .group_by(Student.status)
            .all()
        )
        overview = {
            'total_students': sum(counts.values()),
            'approved_students': counts.get(StudentStatus.APPROVED, 0),
            'pending_students': counts.get(StudentStatus.PENDING, 0),
            'rejected_students': counts.get(StudentStatus.REJECTED, 0),
            'total_colleges': db.session.query(func.count(distinct(Student.college))).scalar(),
            'total_departments': db.session.query(func.count(distinct(Student.department))).scalar(),
        }

        def breakdown(column, label):
            rows = (
                db.session.query(
                    column,
                    func.count(Student.id),
                    func.count(case((Student.status == StudentStatus.APPROVED, Student.id)))
                )
                .filter(column.isnot(None))
                .group_by(column)
                .order_by(func.count(Student.id).desc(), column.asc())
                .all()
            )
            return [
                {label: value, 'student_count': total, 'approved_count': approved}
                for value, total, approved in rows
            ]

        return {
            'overview': overview,
            'byDepartment': breakdown(Student.department, 'department'),
            'byCollege': breakdown(Student.college, 'college'),
        }

    @staticmethod
    def attendance_stats(filters: Dict) -> Dict:
        """Daily check-in volume and the most active students."""
        day = func.date(AttendanceLog.timestamp)
        daily = (
            db.session.query(
                day,
                func.count(distinct(AttendanceLog.student_id)),
                func.count(AttendanceLog.id)
            )
            .filter(AttendanceLog.status.in_(CHECKED_IN_STATUSES))
        )
        if filters.get('from_date'):
            start = datetime.combine(Validator.parse_date(filters['from_date'], 'from_date'), time.min)
            daily = daily.filter(AttendanceLog.timestamp >= start)
        if filters.get('to_date'):
            end = datetime.combine(Validator.parse_date(filters['to_date'], 'to_date'), time.min)
            end += timedelta(days=1)
            daily = daily.filter(AttendanceLog.timestamp < end)
        daily_rows = daily.group_by(day).order_by(day.desc()).all()

        attended_events = func.count(distinct(EventParticipant.event_id))
        top_rows = (
            db.session.query(Student, attended_events)
            .join(EventParticipant, EventParticipant.student_id == Student.id)
            .filter(EventParticipant.status.in_(CHECKED_IN_STATUSES))
            .group_by(Student.id)
            .order_by(attended_events.desc(), Student.name.asc())
            .limit(TOP_LIMIT)
            .all()
        )

        return {
            'dailyStats': [
                {'date': isoformat(value), 'unique_students': students, 'total_checkins': checkins}
                for value, students, checkins in daily_rows
            ],
            'topStudents': [
                {
                    'id': student.id,
                    'name': student.name,
                    'email': student.email,
                    'department': student.department,
                    'events_attended': count,
                }
                for student, count in top_rows
            ],
        }

    @staticmethod
    def certificate_stats() -> Dict:
        counts = dict(
            db.session.query(Certificate.status, func.count(Certificate.id))
            .group_by(Certificate.status)
            .all()
        )

        issued = func.count(Certificate.id)
        by_event = (
            db.session.query(Event, issued)
            .join(Certificate, Certificate.event_id == Event.id)
            .group_by(Event.id)
            .order_by(issued.desc(), Event.name.asc())
            .limit(TOP_LIMIT)
            .all()
        )

        return {
            'overview': {
                'total_certificates': sum(counts.values()),
                'approved_certificates': counts.get(CertificateStatus.APPROVED, 0),
                'pending_certificates': counts.get(CertificateStatus.PENDING, 0),
                'rejected_certificates': counts.get(CertificateStatus.REJECTED, 0),
            },
            'byEvent': [
                {'event_id': event.id, 'event_name': event.name, 'certificate_count': count}
                for event, count in by_event
            ],
        }

    @staticmethod
    def dashboard() -> Dict:
        student_counts = dict(
            db.session.query(Student.status, func.count(Student.id))
            .group_by(Student.status)
            .all()
        )
        event_status = func.lower(Event.status)
        event_counts = dict(
            db.session.query(event_status, func.count(Event.id))
            .group_by(event_status)
            .all()
        )
        certificate_counts = dict(
            db.session.query(Certificate.status, func.count(Certificate.id))
            .group_by(Certificate.status)
            .all()
        )

        recent = (
            db.session.query(AttendanceLog, Student, Event)
            .join(Student, AttendanceLog.student_id == Student.id)
            .join(Event, AttendanceLog.event_id == Event.id)
            .order_by(AttendanceLog.timestamp.desc(), AttendanceLog.id.desc())
            .limit(TOP_LIMIT)
            .all()
        )

        return {
            'students': {
                'total': sum(student_counts.values()),
                'approved': student_counts.get(StudentStatus.APPROVED, 0),
                'pending': student_counts.get(StudentStatus.PENDING, 0),
            },
            'events': {
                'total': sum(event_counts.values()),
                'active': event_counts.get(EventStatus.ACTIVE.value.lower(), 0),
                'completed': event_counts.get(EventStatus.COMPLETED.value.lower(), 0),
            },
            'certificates': {
                'total': sum(certificate_counts.values()),
                'approved': certificate_counts.get(CertificateStatus.APPROVED, 0),
                'pending': certificate_counts.get(CertificateStatus.PENDING, 0),
            },
            'recentActivity': [
                {
                    'id': log.id,
                    'timestamp': isoformat(log.timestamp),
                    'status': log_label(log.status),
                    'student_name': student.name,
                    'event_name': event.name,
                }
                for log, student, event in recent
            ],
            'generatedAt': isoformat(clock.utcnow()),
        }

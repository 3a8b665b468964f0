"""On-duty requests: submission, review and daily attendance."""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from campus_events import db
from campus_events.models.onduty import OnDutyAttendance, OnDutyRequest, OnDutyStatus
from campus_events.models.student import Student
from campus_events.models.user import Admin
from campus_events.services.storage_service import (
    ONDUTY_DOCUMENTS, ONDUTY_SELFIES, FileStorage, Upload
)
from campus_events.services.student_service import StudentService
from campus_events.utils import clock
from campus_events.utils.errors import (
    ConflictError, NotFoundError, StateError, ValidationError
)
from campus_events.utils.validators import Validator

logger = logging.getLogger(__name__)

REQUEST_FIELDS = ('collegeName', 'startDate', 'startTime', 'endDate', 'endTime', 'reason')

class OnDutyService:
    """Two-state, admin-gated leave workflow."""

    @staticmethod
    def _window(data: Dict, now: datetime, max_advance_days: int):
        """Parse and check the requested window. Returns (start, end) datetimes."""
        Validator.require_fields(data, REQUEST_FIELDS)

        start_date = Validator.parse_date(data['startDate'], 'startDate')
        start_time = Validator.parse_time(data['startTime'], 'startTime')
        end_date = Validator.parse_date(data['endDate'], 'endDate')
        end_time = Validator.parse_time(data['endTime'], 'endTime')
        start = datetime.combine(start_date, start_time)
        end = datetime.combine(end_date, end_time)

        if start < now:
            raise ValidationError("Start date/time cannot be in the past", 'start_in_past')
        if end <= start:
            raise ValidationError("End date/time must be after start date/time", 'invalid_window')
        if start > now + timedelta(days=max_advance_days):
            raise ValidationError(
                "On-duty requests cannot be more than one year in advance",
                'start_too_far'
            )
        return start, end

    @staticmethod
    def _own_request(request_id: int, student: Student) -> OnDutyRequest:
        od_request = OnDutyRequest.query.filter_by(id=request_id, student_id=student.id).first()
        if not od_request:
            raise NotFoundError("On-duty request not found", 'onduty_not_found')
        return od_request

    @staticmethod
    def create_request(user_id: int, data: Dict, storage: FileStorage,
                       document: Optional[Upload] = None, now: datetime = None,
                       max_advance_days: int = 365) -> OnDutyRequest:
        now = now or clock.utcnow()
        start, end = OnDutyService._window(data, now, max_advance_days)

        student = StudentService.require_for_user(user_id)
        StudentService.require_approved(student, "submit on-duty requests")

        document_url = None
        if document is not None:
            document_url = storage.save(
                document.data, ONDUTY_DOCUMENTS, f"od_{student.id}", document.extension
            )

        od_request = OnDutyRequest(
            student_id=student.id,
            college_name=data['collegeName'].strip(),
            start_date=start.date(),
            start_time=start.time(),
            end_date=end.date(),
            end_time=end.time(),
            reason=data['reason'].strip(),
            document_url=document_url,
            status=OnDutyStatus.PENDING
        )
        db.session.add(od_request)
        db.session.commit()

        logger.info("On-duty request %s submitted by student %s", od_request.id, student.id)
        return od_request

    @staticmethod
    def update_request(user_id: int, request_id: int, data: Dict, storage: FileStorage,
                       document: Optional[Upload] = None, now: datetime = None,
                       max_advance_days: int = 365) -> OnDutyRequest:
        """Owner edit of a request that has not been reviewed yet."""
        now = now or clock.utcnow()
        student = StudentService.require_for_user(user_id)
        od_request = OnDutyService._own_request(request_id, student)
        if od_request.status != OnDutyStatus.PENDING:
            raise StateError(
                "Cannot edit an on-duty request that has been processed",
                'onduty_not_pending'
            )

        merged = {
            'collegeName': od_request.college_name,
            'startDate': od_request.start_date.isoformat(),
            'startTime': od_request.start_time.isoformat(),
            'endDate': od_request.end_date.isoformat(),
            'endTime': od_request.end_time.isoformat(),
            'reason': od_request.reason,
        }
        merged.update({key: data[key] for key in REQUEST_FIELDS if data.get(key)})
        start, end = OnDutyService._window(merged, now, max_advance_days)

        od_request.college_name = merged['collegeName'].strip()
        od_request.reason = merged['reason'].strip()
        od_request.start_date, od_request.start_time = start.date(), start.time()
        od_request.end_date, od_request.end_time = end.date(), end.time()

        if document is not None:
            old_url = od_request.document_url
            od_request.document_url = storage.save(
                document.data, ONDUTY_DOCUMENTS, f"od_{student.id}", document.extension
            )
            if old_url:
                storage.delete(old_url)

        db.session.commit()
        return od_request

    @staticmethod
    def delete_request(user_id: int, request_id: int, storage: FileStorage) -> None:
        student = StudentService.require_for_user(user_id)
        od_request = OnDutyService._own_request(request_id, student)

        if od_request.status != OnDutyStatus.PENDING:
            raise StateError(
                "Cannot delete an on-duty request that has been processed",
                'onduty_not_pending'
            )

        document_url = od_request.document_url
        db.session.delete(od_request)
        db.session.commit()

        if document_url:
            storage.delete(document_url)
        logger.info("On-duty request %s deleted by student %s", request_id, student.id)

    @staticmethod
    def review(request_id: int, admin_user_id: int, status: str,
               rejection_reason: str = None) -> OnDutyRequest:
        """Approve or reject a pending request."""
        try:
            decision = OnDutyStatus(str(status or '').lower())
        except ValueError:
            decision = None
        if decision not in (OnDutyStatus.APPROVED, OnDutyStatus.REJECTED):
            raise ValidationError('Status must be either "approved" or "rejected"', 'invalid_status')
        if decision == OnDutyStatus.REJECTED and not (rejection_reason or '').strip():
            raise ValidationError("Rejection reason is required", 'missing_fields')

        od_request = OnDutyRequest.query.filter_by(id=request_id).with_for_update().first()
        if not od_request:
            raise NotFoundError("On-duty request not found", 'onduty_not_found')
        if od_request.status != OnDutyStatus.PENDING:
            raise StateError(
                f"On-duty request has already been {od_request.status.value}",
                'onduty_not_pending'
            )

        admin = Admin.query.filter_by(user_id=admin_user_id).first()
        od_request.status = decision
        od_request.approved_by = admin.id if admin else None
        od_request.rejection_reason = rejection_reason.strip() if decision == OnDutyStatus.REJECTED else None
        db.session.commit()

        logger.info("On-duty request %s %s by admin user %s",
                    od_request.id, decision.value, admin_user_id)
        return od_request

    @staticmethod
    def mark_attendance(user_id: int, data: Dict, storage: FileStorage,
                        selfie: Optional[Upload] = None, now: datetime = None) -> OnDutyAttendance:
        """Record today's GPS check-in for an approved request."""
        now = now or clock.utcnow()
        if data.get('onDutyRequestId') in (None, ''):
            raise ValidationError(
                "On-duty request ID, latitude, and longitude are required",
                'missing_fields'
            )
        latitude = Validator.parse_coordinate(data.get('latitude'), 'latitude', 90)
        longitude = Validator.parse_coordinate(data.get('longitude'), 'longitude', 180)
        try:
            request_id = int(data['onDutyRequestId'])
        except (TypeError, ValueError):
            raise ValidationError("Invalid onDutyRequestId", 'invalid_number')

        student = StudentService.require_for_user(user_id)
        od_request = OnDutyService._own_request(request_id, student)

        if od_request.status != OnDutyStatus.APPROVED:
            raise StateError("On-duty request is not approved", 'onduty_not_approved')

        today = now.date()
        if not od_request.start_date <= today <= od_request.end_date:
            raise StateError("On-duty request is not valid for today", 'outside_onduty_window')

        existing = OnDutyAttendance.query.filter_by(
            on_duty_request_id=od_request.id, student_id=student.id, check_in_date=today
        ).first()
        if existing:
            raise ConflictError(
                "Attendance already marked for this on-duty request today",
                'duplicate_attendance'
            )

        selfie_url = None
        if selfie is not None:
            selfie_url = storage.save(
                selfie.data, ONDUTY_SELFIES, f"od_{od_request.id}_{student.id}", selfie.extension
            )

        record = OnDutyAttendance(
            on_duty_request_id=od_request.id,
            student_id=student.id,
            check_in_time=now,
            check_in_date=today,
            latitude=latitude,
            longitude=longitude,
            address=data.get('address') or None,
            selfie_photo_url=selfie_url,
            qr_data=data.get('qrData') or None
        )
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(
                "Attendance already marked for this on-duty request today",
                'duplicate_attendance'
            )

        logger.info("On-duty attendance %s recorded for request %s", record.id, od_request.id)
        return record

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @staticmethod
    def my_requests(user_id: int) -> List[Dict]:
        student = StudentService.require_for_user(user_id)
        requests = OnDutyRequest.query.filter_by(student_id=student.id) \
            .order_by(OnDutyRequest.created_at.desc()).all()
        return [od_request.to_dict() for od_request in requests]

    @staticmethod
    def active_approved(user_id: int, today: date = None) -> List[Dict]:
        today = today or clock.utcnow().date()
        student = StudentService.require_for_user(user_id)
        requests = OnDutyRequest.query.filter(
            OnDutyRequest.student_id == student.id,
            OnDutyRequest.status == OnDutyStatus.APPROVED,
            OnDutyRequest.start_date <= today,
            OnDutyRequest.end_date >= today
        ).order_by(OnDutyRequest.start_date.desc()).all()
        return [od_request.to_dict() for od_request in requests]

    @staticmethod
    def attendance_history(user_id: int) -> List[Dict]:
        student = StudentService.require_for_user(user_id)
        rows = (
            db.session.query(OnDutyAttendance, OnDutyRequest)
            .join(OnDutyRequest, OnDutyAttendance.on_duty_request_id == OnDutyRequest.id)
            .filter(OnDutyAttendance.student_id == student.id)
            .order_by(OnDutyAttendance.check_in_time.desc())
            .all()
        )
        result = []
        for record, od_request in rows:
            item = record.to_dict()
            item['college_name'] = od_request.college_name
            item['start_date'] = od_request.start_date.isoformat()
            item['end_date'] = od_request.end_date.isoformat()
            result.append(item)
        return result

    @staticmethod
    def admin_requests(filters: Dict) -> List[Dict]:
        query = db.session.query(OnDutyRequest, Student).join(
            Student, OnDutyRequest.student_id == Student.id
        )

        if filters.get('status'):
            try:
                query = query.filter(OnDutyRequest.status == OnDutyStatus(filters['status'].lower()))
            except ValueError:
                raise ValidationError(f"Invalid status: {filters['status']}", 'invalid_status')
        if filters.get('search'):
            pattern = f"%{filters['search']}%"
            query = query.filter(or_(
                Student.name.ilike(pattern),
                Student.email.ilike(pattern),
                Student.registration_number.ilike(pattern),
                OnDutyRequest.college_name.ilike(pattern)
            ))
        if filters.get('startDate'):
            query = query.filter(
                OnDutyRequest.start_date >= Validator.parse_date(filters['startDate'], 'startDate')
            )
        if filters.get('endDate'):
            query = query.filter(
                OnDutyRequest.end_date <= Validator.parse_date(filters['endDate'], 'endDate')
            )

        result = []
        for od_request, student in query.order_by(OnDutyRequest.created_at.desc()).all():
            item = od_request.to_dict()
            item.update(_student_summary(student))
            item['department'] = student.department
            item['college'] = student.college
            result.append(item)
        return result

    @staticmethod
    def admin_attendance(filters: Dict) -> List[Dict]:
        query = (
            db.session.query(OnDutyAttendance, OnDutyRequest, Student)
            .join(OnDutyRequest, OnDutyAttendance.on_duty_request_id == OnDutyRequest.id)
            .join(Student, OnDutyAttendance.student_id == Student.id)
        )

        if filters.get('studentId'):
            query = query.filter(OnDutyAttendance.student_id == Validator.parse_positive_int(
                filters['studentId'], 'studentId'
            ))
        if filters.get('startDate'):
            query = query.filter(
                OnDutyAttendance.check_in_date >= Validator.parse_date(filters['startDate'], 'startDate')
            )
        if filters.get('endDate'):
            query = query.filter(
                OnDutyAttendance.check_in_date <= Validator.parse_date(filters['endDate'], 'endDate')
            )

        result = []
        for record, od_request, student in query.order_by(OnDutyAttendance.check_in_time.desc()).all():
            item = record.to_dict()
            item.update(_student_summary(student))
            item['college_name'] = od_request.college_name
            item['od_start_date'] = od_request.start_date.isoformat()
            item['od_end_date'] = od_request.end_date.isoformat()
            result.append(item)
        return result

def _student_summary(student: Student) -> Dict:
    return {
        'student_name': student.name,
        'student_email': student.email,
        'registration_number': student.registration_number,
    }

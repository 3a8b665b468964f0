"""Student profile lookups, review and self-service edits."""
import logging
from typing import Dict, Optional

from sqlalchemy import func, or_

from campus_events import db
from campus_events.models.attendance import AttendanceLog
from campus_events.models.certificate import Certificate
from campus_events.models.event import EventParticipant
from campus_events.models.onduty import OnDutyAttendance, OnDutyRequest
from campus_events.models.student import Student, StudentStatus
from campus_events.models.user import User
from campus_events.services.storage_service import PROFILE_PHOTOS, FileStorage, Upload
from campus_events.utils import clock
from campus_events.utils.errors import ForbiddenError, NotFoundError, ValidationError
from campus_events.utils.helpers import isoformat
from campus_events.utils.validators import Validator

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('phone', 'college', 'department', 'year', 'address')

class StudentService:
    """Service for resolving and managing students."""
    
    @staticmethod
    def get_for_user(user_id: int) -> Optional[Student]:
        """Student profile owned by a user account, if any."""
        return Student.query.filter_by(user_id=user_id).first()
    
    @staticmethod
    def require_for_user(user_id: int) -> Student:
        student = StudentService.get_for_user(user_id)
        if not student:
            raise NotFoundError("Student profile not found", 'student_not_found')
        return student
    
    @staticmethod
    def require_approved(student: Student, action: str) -> Student:
        if not student.is_approved:
            raise ForbiddenError(
                f"Your student profile is {student.status.value}. "
                f"Only approved students can {action}.",
                'student_not_approved'
            )
        return student
    
    @staticmethod
    def resolve_with_fallback(user_id: int, fallback_student_id=None) -> Optional[Student]:
        """Resolve the acting student, accepting a client-supplied id only as a fallback.
        
        The fallback row must belong to the caller: either it is linked to the
        same user or it carries the caller's email (profiles whose ``user_id``
        link was lost).
        """
        student = StudentService.get_for_user(user_id)
        if student or fallback_student_id in (None, ''):
            return student
        
        try:
            candidate = Student.get_by_id(int(fallback_student_id))
        except (TypeError, ValueError):
            return None
        if not candidate:
            return None
        
        user = User.get_by_id(user_id)
        if candidate.user_id == user_id or (user and candidate.email == user.email):
            logger.info("Resolved student %s for user %s via fallback id", candidate.id, user_id)
            return candidate
        
        logger.warning(
            "Rejected fallback student id %s for user %s: profile belongs to someone else",
            fallback_student_id, user_id
        )
        return None
    
    @staticmethod
    def list_students(status: str = None, college: str = None, department: str = None,
                      search: str = None, page: int = 1, per_page: int = 20) -> Dict:
        query = Student.query
        
        if status:
            try:
                query = query.filter_by(status=StudentStatus(status.lower()))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}", 'invalid_status')
        if college:
            query = query.filter_by(college=college)
        if department:
            query = query.filter_by(department=department)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Student.name.ilike(pattern),
                Student.email.ilike(pattern),
                Student.registration_number.ilike(pattern)
            ))
        
        pagination = query.order_by(Student.name.asc()).paginate(
            page=page, per_page=per_page, error_out=False
        )
        
        return {
            'students': [student.to_dict() for student in pagination.items],
            'total': pagination.total,
            'pages': pagination.pages,
            'current_page': page
        }
    
    @staticmethod
    def set_status(student_id: int, status: StudentStatus) -> Student:
        student = Student.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found", 'student_not_found')
        
        student.status = status
        db.session.commit()
        logger.info("Student %s marked %s", student.id, status.value)
        return student
    
    @staticmethod
    def require_access(student_id: int, principal) -> Student:
        """Student row the principal may act on: admins any, students their own."""
        if principal.is_student:
            own = StudentService.get_for_user(principal.id)
            if not own or own.id != student_id:
                raise ForbiddenError("Unauthorized", 'forbidden')
            return own
        
        student = Student.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found", 'student_not_found')
        return student
    
    @staticmethod
    def update_profile(student_id: int, principal, data: Dict) -> Student:
        """Partial profile edit. Email and registration number stay fixed."""
        student = StudentService.require_access(student_id, principal)
        changed = False
        
        if 'name' in data:
            name = str(data.get('name') or '').strip()
            if not name:
                raise ValidationError("Name cannot be empty", 'missing_fields')
            student.name = name
            changed = True
        
        for field in PROFILE_FIELDS:
            if field in data:
                value = data[field]
                setattr(student, field, str(value).strip() if value not in (None, '') else None)
                changed = True
        
        for key in ('dateOfBirth', 'date_of_birth'):
            if key in data:
                value = data[key]
                student.date_of_birth = (
                    Validator.parse_date(value, 'dateOfBirth') if value not in (None, '') else None
                )
                changed = True
                break
        
        if 'profilePhotoUrl' in data:
            student.profile_photo_url = data['profilePhotoUrl'] or None
            changed = True
        
        if data.get('password'):
            student.user.set_password(Validator.validate_password(data['password']))
            changed = True
        
        if not changed:
            raise ValidationError("No fields to update", 'no_changes')
        
        db.session.commit()
        logger.info("Student %s profile updated by %s user %s",
                    student.id, principal.role, principal.id)
        return student
    
    @staticmethod
    def set_profile_photo(student_id: int, principal, photo: Optional[Upload],
                          storage: FileStorage) -> Student:
        student = StudentService.require_access(student_id, principal)
        if photo is None:
            raise ValidationError("No file uploaded", 'missing_file')
        
        old_url = student.profile_photo_url
        student.profile_photo_url = storage.save(
            photo.data, PROFILE_PHOTOS, f"student_{student.id}", photo.extension
        )
        db.session.commit()
        
        if old_url:
            storage.delete(old_url)
        return student
    
    @staticmethod
    def delete_student(student_id: int, storage: FileStorage) -> None:
        """Remove a student, their account and everything recorded for them."""
        student = Student.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found", 'student_not_found')
        
        file_urls = [student.profile_photo_url]
        file_urls += [row.file_url for row in Certificate.query.filter_by(student_id=student.id)]
        file_urls += [row.document_url for row in OnDutyRequest.query.filter_by(student_id=student.id)]
        file_urls += [row.selfie_photo_url for row in OnDutyAttendance.query.filter_by(student_id=student.id)]
        file_urls += [row.proof_photo_url for row in AttendanceLog.query.filter_by(student_id=student.id)]
        
        for model in (Certificate, OnDutyAttendance, OnDutyRequest, AttendanceLog, EventParticipant):
            model.query.filter_by(student_id=student.id).delete(synchronize_session=False)
        
        user = student.user
        db.session.delete(student)
        if user:
            db.session.delete(user)
        db.session.commit()
        
        for url in file_urls:
            if url:
                storage.delete(url)
        logger.info("Student %s deleted", student_id)
    
    @staticmethod
    def meta() -> Dict:
        """Headline counts for the student management screen."""
        counts = dict(
            db.session.query(Student.status, func.count(Student.id))
            .group_by(Student.status)
            .all()
        )
        return {
            'total': sum(counts.values()),
            'approved': counts.get(StudentStatus.APPROVED, 0),
            'pending': counts.get(StudentStatus.PENDING, 0),
            'rejected': counts.get(StudentStatus.REJECTED, 0),
            'fetchedAt': isoformat(clock.utcnow())
        }

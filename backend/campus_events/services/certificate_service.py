"""Certificates: student uploads, admin review and issued certificates."""
import logging
from typing import Dict, List, Optional

from campus_events import db
from campus_events.models.certificate import Certificate, CertificateStatus
from campus_events.models.event import Event
from campus_events.models.student import Student
from campus_events.models.user import Admin
from campus_events.services.storage_service import CERTIFICATES, FileStorage, Upload
from campus_events.services.student_service import StudentService
from campus_events.utils import clock
from campus_events.utils.errors import ForbiddenError, NotFoundError, ValidationError
from campus_events.utils.validators import Validator

logger = logging.getLogger(__name__)

class CertificateService:
    """Service for certificate records and their files."""

    @staticmethod
    def _parse_status(value) -> CertificateStatus:
        try:
            return CertificateStatus.parse(value)
        except ValueError:
            raise ValidationError(
                "Invalid status. Must be Approved, Pending, or Rejected",
                'invalid_status'
            )

    @staticmethod
    def _event_or_none(value) -> Optional[Event]:
        event_id = Validator.parse_positive_int(value, 'eventId')
        if event_id is None:
            return None
        event = Event.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found", 'event_not_found')
        return event

    @staticmethod
    def _apply_review(certificate: Certificate, status: CertificateStatus,
                      admin_user_id: int, remarks: str = None) -> None:
        certificate.status = status
        if remarks is not None:
            certificate.remarks = remarks or None
        if status == CertificateStatus.APPROVED:
            admin = Admin.query.filter_by(user_id=admin_user_id).first()
            certificate.approved_at = clock.utcnow()
            certificate.approved_by = admin.id if admin else None
        else:
            certificate.approved_at = None
            certificate.approved_by = None

    @staticmethod
    def get_accessible(certificate_id: int, principal) -> Certificate:
        """Certificate visible to the principal: admins any, students their own."""
        certificate = Certificate.get_by_id(certificate_id)
        if not certificate:
            raise NotFoundError("Certificate not found", 'certificate_not_found')
        if principal.is_student:
            own = StudentService.get_for_user(principal.id)
            if not own or own.id != certificate.student_id:
                raise ForbiddenError("Access denied", 'forbidden')
        return certificate

    @staticmethod
    def upload(user_id: int, data: Dict, storage: FileStorage,
               file: Optional[Upload]) -> Certificate:
        """Student submission; starts out pending review."""
        if file is None:
            raise ValidationError("Please upload a file", 'missing_file')
        Validator.require_fields(data, ('title',))

        student = StudentService.require_for_user(user_id)
        event = CertificateService._event_or_none(data.get('eventId'))
        issue_date = data.get('issueDate') or data.get('issue_date')

        certificate = Certificate(
            student_id=student.id,
            event_id=event.id if event else None,
            title=data['title'].strip(),
            category=data.get('category') or None,
            description=data.get('description') or None,
            issue_date=Validator.parse_date(issue_date, 'issueDate') if issue_date else None,
            file_name=file.filename,
            file_url=storage.save(file.data, CERTIFICATES, f"cert_{student.id}", file.extension),
            status=CertificateStatus.PENDING,
            uploaded_at=clock.utcnow()
        )
        db.session.add(certificate)
        db.session.commit()

        logger.info("Certificate %s uploaded by student %s", certificate.id, student.id)
        return certificate

    @staticmethod
    def generate(admin_user_id: int, data: Dict) -> Certificate:
        """Issue an approved certificate record for a student."""
        if data.get('studentId') in (None, '') or not data.get('title'):
            raise ValidationError("Student ID and title are required", 'missing_fields')

        student = Student.get_by_id(Validator.parse_positive_int(data['studentId'], 'studentId'))
        if not student:
            raise NotFoundError("Student not found", 'student_not_found')
        event = CertificateService._event_or_none(data.get('eventId'))
        issued_date = data.get('issuedDate') or data.get('issueDate')

        certificate = Certificate(
            student_id=student.id,
            event_id=event.id if event else None,
            title=data['title'].strip(),
            certificate_type=data.get('certificateType') or None,
            issued_by=data.get('issuedBy') or None,
            issue_date=(
                Validator.parse_date(issued_date, 'issuedDate') if issued_date
                else clock.utcnow().date()
            ),
            uploaded_at=clock.utcnow()
        )
        CertificateService._apply_review(certificate, CertificateStatus.APPROVED, admin_user_id)
        db.session.add(certificate)
        db.session.commit()

        logger.info("Certificate %s generated for student %s by admin user %s",
                    certificate.id, student.id, admin_user_id)
        return certificate

    @staticmethod
    def review(certificate_id: int, admin_user_id: int, status, remarks: str = None) -> Certificate:
        """Set the review status; approval records who and when."""
        decision = CertificateService._parse_status(status)
        certificate = Certificate.get_by_id(certificate_id)
        if not certificate:
            raise NotFoundError("Certificate not found", 'certificate_not_found')

        CertificateService._apply_review(certificate, decision, admin_user_id, remarks)
        db.session.commit()

        logger.info("Certificate %s marked %s by admin user %s",
                    certificate.id, decision.value, admin_user_id)
        return certificate

    @staticmethod
    def update(certificate_id: int, principal, data: Dict, storage: FileStorage,
               file: Optional[Upload] = None) -> Certificate:
        """Edit metadata or replace the file. Only admins may change status or remarks."""
        certificate = CertificateService.get_accessible(certificate_id, principal)

        if 'title' in data:
            title = str(data.get('title') or '').strip()
            if not title:
                raise ValidationError("Title cannot be empty", 'missing_fields')
            certificate.title = title
        for field in ('category', 'description'):
            if field in data:
                setattr(certificate, field, data[field] or None)
        if 'eventId' in data:
            event = CertificateService._event_or_none(data['eventId'])
            certificate.event_id = event.id if event else None
        for key in ('issueDate', 'issue_date'):
            if key in data:
                certificate.issue_date = (
                    Validator.parse_date(data[key], 'issueDate') if data[key] else None
                )
                break

        if principal.is_admin:
            if data.get('status'):
                CertificateService._apply_review(
                    certificate, CertificateService._parse_status(data['status']),
                    principal.id, data.get('remarks')
                )
            elif 'remarks' in data:
                certificate.remarks = data['remarks'] or None
        elif data.get('status') or 'remarks' in data:
            raise ForbiddenError("Only admins can change certificate status", 'forbidden')

        old_url = None
        if file is not None:
            old_url = certificate.file_url
            certificate.file_url = storage.save(
                file.data, CERTIFICATES, f"cert_{certificate.student_id}", file.extension
            )
            certificate.file_name = file.filename

        db.session.commit()
        if old_url:
            storage.delete(old_url)
        return certificate

    @staticmethod
    def delete(certificate_id: int, principal, storage: FileStorage) -> None:
        certificate = CertificateService.get_accessible(certificate_id, principal)
        file_url = certificate.file_url

        db.session.delete(certificate)
        db.session.commit()

        if file_url:
            storage.delete(file_url)
        logger.info("Certificate %s deleted by %s user %s",
                    certificate_id, principal.role, principal.id)

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @staticmethod
    def list_for_student(student_id: int, principal) -> List[Dict]:
        StudentService.require_access(student_id, principal)
        certificates = Certificate.query.filter_by(student_id=student_id) \
            .order_by(Certificate.uploaded_at.desc()).all()
        return [certificate.to_dict() for certificate in certificates]

    @staticmethod
    def list_all(filters: Dict) -> List[Dict]:
        query = db.session.query(Certificate, Student).join(
            Student, Certificate.student_id == Student.id
        )

        if filters.get('status'):
            query = query.filter(
                Certificate.status == CertificateService._parse_status(filters['status'])
            )
        if filters.get('studentId'):
            query = query.filter(Certificate.student_id == Validator.parse_positive_int(
                filters['studentId'], 'studentId'
            ))
        if filters.get('eventId'):
            query = query.filter(Certificate.event_id == Validator.parse_positive_int(
                filters['eventId'], 'eventId'
            ))

        result = []
        for certificate, student in query.order_by(Certificate.uploaded_at.desc()).all():
            item = certificate.to_dict()
            item['student_name'] = student.name
            item['student_email'] = student.email
            item['department'] = student.department
            result.append(item)
        return result

"""Certificates uploaded by students or issued by admins."""
import enum
from campus_events import db
from campus_events.models.base import BaseModel
from campus_events.utils import clock

class CertificateStatus(enum.Enum):
    PENDING = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'

    @classmethod
    def parse(cls, value: str) -> 'CertificateStatus':
        """Case-insensitive lookup. Raises ``ValueError``."""
        normalized = str(value or '').strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown certificate status: {value}")

class Certificate(BaseModel):
    """A certificate file or an issued record, reviewed by an admin."""

    __tablename__ = 'certificates'

    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='SET NULL'), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    certificate_type = db.Column(db.String(50), nullable=True)
    description = db.Column(db.Text, nullable=True)
    issue_date = db.Column(db.Date, nullable=True)
    issued_by = db.Column(db.String(255), nullable=True)

    file_name = db.Column(db.String(255), nullable=True)
    file_url = db.Column(db.String(500), nullable=True)

    status = db.Column(db.Enum(CertificateStatus), nullable=False, default=CertificateStatus.PENDING, index=True)
    remarks = db.Column(db.Text, nullable=True)
    uploaded_at = db.Column(db.DateTime, default=clock.utcnow, nullable=False)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey('admins.id'), nullable=True)

    student = db.relationship('Student')
    event = db.relationship('Event')
    approver = db.relationship('Admin')

    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['event_name'] = self.event.name if self.event else None
        result['event_date'] = self.event.event_date.isoformat() if self.event else None
        result['approved_by_name'] = self.approver.name if self.approver else None
        return result

    def __repr__(self):
        return f'<Certificate {self.title}>'

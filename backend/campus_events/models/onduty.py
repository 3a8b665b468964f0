"""On-duty leave requests and their attendance check-ins."""
import enum
from campus_events import db
from campus_events.models.base import BaseModel
from campus_events.utils import clock

class OnDutyStatus(enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

class OnDutyRequest(BaseModel):
    """Student request to attend an external event, reviewed by an admin."""
    
    __tablename__ = 'on_duty_requests'
    
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    college_name = db.Column(db.String(255), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    document_url = db.Column(db.String(500), nullable=True)
    status = db.Column(db.Enum(OnDutyStatus), nullable=False, default=OnDutyStatus.PENDING, index=True)
    approved_by = db.Column(db.Integer, db.ForeignKey('admins.id'), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    
    student = db.relationship('Student')
    approver = db.relationship('Admin')
    attendance = db.relationship(
        'OnDutyAttendance', backref='request', lazy='dynamic',
        cascade='all, delete-orphan'
    )
    
    __table_args__ = (
        db.Index('ix_on_duty_requests_dates', 'start_date', 'end_date'),
    )
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['approved_by_name'] = self.approver.name if self.approver else None
        return result

class OnDutyAttendance(BaseModel):
    """One GPS check-in per calendar day of an approved on-duty window."""
    
    __tablename__ = 'on_duty_attendance'
    __table_args__ = (
        db.UniqueConstraint(
            'on_duty_request_id', 'student_id', 'check_in_date',
            name='uq_on_duty_attendance_day'
        ),
    )
    
    on_duty_request_id = db.Column(db.Integer, db.ForeignKey('on_duty_requests.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    check_in_time = db.Column(db.DateTime, default=clock.utcnow, nullable=False, index=True)
    check_in_date = db.Column(db.Date, nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    address = db.Column(db.Text, nullable=True)
    selfie_photo_url = db.Column(db.String(500), nullable=True)
    qr_data = db.Column(db.Text, nullable=True)

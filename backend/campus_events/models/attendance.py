"""Attendance log: the per-(student, event) attendance and proof record."""
from campus_events import db
from campus_events.models.base import BaseModel
from campus_events.models.status import AttendanceStatus, log_label
from campus_events.utils import clock

class AttendanceLog(BaseModel):
    """Attendance record with QR and photo/GPS proof fields."""
    
    __tablename__ = 'attendance_logs'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'event_id', name='uq_attendance_student_event'),
    )
    
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.ATTENDED)
    timestamp = db.Column(db.DateTime, default=clock.utcnow, nullable=False)
    location = db.Column(db.Text, nullable=True)
    scanned_qr_data = db.Column(db.Text, nullable=True)
    device_info = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    
    # Photo proof
    proof_photo_url = db.Column(db.Text, nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    photo_taken_at = db.Column(db.DateTime, nullable=True)
    
    student = db.relationship('Student')
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['status'] = log_label(self.status)
        return result
    
    def __repr__(self):
        return f'<AttendanceLog {self.student_id}-{self.event_id}>'

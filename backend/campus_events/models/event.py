"""Event and participant models."""
import enum
from campus_events import db
from campus_events.models.base import BaseModel
from campus_events.models.status import AttendanceStatus

class EventStatus(enum.Enum):
    """Canonical event status spellings."""
    ACTIVE = 'Active'
    COMPLETED = 'Completed'
    CANCELLED = 'Cancelled'
    ARCHIVED = 'Archived'
    
    @classmethod
    def parse(cls, value: str) -> 'EventStatus':
        """Case-insensitive lookup. Raises ``ValueError``."""
        normalized = str(value or '').strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown event status: {value}")

class Event(BaseModel):
    """A scheduled event students register for and check in to."""
    
    __tablename__ = 'events'
    
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    event_date = db.Column(db.Date, nullable=False, index=True)
    event_time = db.Column(db.Time, nullable=True)
    venue = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(100), nullable=True, index=True)
    # Kept as free text; rules compare it case-insensitively.
    status = db.Column(db.String(20), nullable=False, default=EventStatus.ACTIVE.value, index=True)
    qr_data = db.Column(db.Text, nullable=True)
    max_participants = db.Column(db.Integer, nullable=True)
    grace_period_minutes = db.Column(db.Integer, nullable=False, default=15)
    created_by = db.Column(db.Integer, db.ForeignKey('admins.id'), nullable=True)
    
    participants = db.relationship(
        'EventParticipant', backref='event', lazy='dynamic',
        cascade='all, delete-orphan'
    )
    attendance_logs = db.relationship(
        'AttendanceLog', backref='event', lazy='dynamic',
        cascade='all, delete-orphan'
    )
    
    def __repr__(self):
        return f'<Event {self.name}>'

class EventParticipant(BaseModel):
    """One registration per (event, student)."""
    
    __tablename__ = 'event_participants'
    __table_args__ = (
        db.UniqueConstraint('event_id', 'student_id', name='uq_event_participant'),
    )
    
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.REGISTERED, index=True)
    check_in_time = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    
    student = db.relationship('Student')
    
    def __repr__(self):
        return f'<EventParticipant {self.event_id}-{self.student_id}>'

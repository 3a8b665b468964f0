"""Student profile model."""
import enum
from campus_events import db
from campus_events.models.base import BaseModel

class StudentStatus(enum.Enum):
    """Profile review status. Only approved students take part in events."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

class Student(BaseModel):
    """Student profile linked to a user account."""
    
    __tablename__ = 'students'
    
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(20), nullable=True)
    college = db.Column(db.String(255), nullable=True)
    department = db.Column(db.String(100), nullable=True, index=True)
    year = db.Column(db.String(10), nullable=True)
    registration_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    address = db.Column(db.Text, nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    profile_photo_url = db.Column(db.String(500), nullable=True)
    
    status = db.Column(db.Enum(StudentStatus), nullable=False, default=StudentStatus.PENDING, index=True)
    
    user = db.relationship('User', backref=db.backref('student_profile', uselist=False))
    
    @property
    def is_approved(self) -> bool:
        return self.status == StudentStatus.APPROVED
    
    def __repr__(self):
        return f'<Student {self.registration_number}>'

"""Shared fixtures: app, client, accounts and a pinned clock."""
from datetime import date, datetime, time

import pytest

from campus_events import create_app, db
from campus_events.models.event import Event, EventStatus
from campus_events.models.student import Student, StudentStatus
from campus_events.models.user import User, UserRole
from campus_events.services.auth_service import AuthService
from campus_events.services.qr_service import QRService
from campus_events.utils import clock

@pytest.fixture
def app(tmp_path):
    """Create test app."""
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture
def freeze_time(monkeypatch):
    """Pin ``clock.utcnow`` to a given naive UTC datetime."""
    def _freeze(moment: datetime) -> datetime:
        monkeypatch.setattr(clock, 'utcnow', lambda: moment)
        return moment
    return _freeze

def auth_header(user: User) -> dict:
    token = AuthService.issue_tokens(user)['access_token']
    return {'Authorization': f'Bearer {token}'}

@pytest.fixture
def headers_for(app):
    """Build Authorization headers for a user or a student profile."""
    def _headers(account) -> dict:
        return auth_header(account.user if isinstance(account, Student) else account)
    return _headers

@pytest.fixture
def admin(app):
    return AuthService.create_admin('admin@example.com', 'Event Admin', 'admin123456')

@pytest.fixture
def admin_headers(admin):
    return auth_header(admin.user)

@pytest.fixture
def make_student(app):
    """Create a student account; approved unless told otherwise."""
    counter = {'n': 0}

    def _make(name: str = None, status: StudentStatus = StudentStatus.APPROVED, email: str = None):
        counter['n'] += 1
        n = counter['n']
        email = email or f'student{n}@example.com'

        user = User(email=email, role=UserRole.STUDENT)
        user.set_password('password123')
        db.session.add(user)
        db.session.flush()

        student = Student(
            user_id=user.id,
            name=name or f'Student {n}',
            email=email,
            college='Engineering College',
            department='CSE',
            year='3',
            registration_number=f'REG{n:04d}',
            status=status
        )
        db.session.add(student)
        db.session.commit()
        return student
    return _make

@pytest.fixture
def make_event(app):
    """Create an event; defaults match the 2025-03-15 10:00 scenario."""
    def _make(**overrides):
        fields = {
            'name': 'Tech Talk',
            'event_date': date(2025, 3, 15),
            'event_time': time(10, 0),
            'venue': 'Main Hall',
            'status': EventStatus.ACTIVE.value,
            'grace_period_minutes': 15,
        }
        fields.update(overrides)
        event = Event(**fields)
        db.session.add(event)
        db.session.flush()
        event.qr_data = QRService.build_event_payload(event)
        db.session.commit()
        return event
    return _make

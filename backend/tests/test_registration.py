"""Event registration rules."""
from datetime import datetime

import pytest

from campus_events import db
from campus_events.models.event import EventParticipant
from campus_events.models.status import AttendanceStatus
from campus_events.models.student import StudentStatus
from campus_events.services.event_service import EventService
from campus_events.utils.errors import NotFoundError, StateError

BEFORE_EVENT = datetime(2025, 3, 14, 9, 0)

@pytest.fixture(autouse=True)
def _before_event(freeze_time):
    freeze_time(BEFORE_EVENT)

def register(client, headers, event_id, **body):
    return client.post(f'/api/events/{event_id}/register', headers=headers, json=body)

def test_register_success(client, make_student, make_event, headers_for):
    student = make_student()
    event = make_event()

    response = register(client, headers_for(student), event.id)

    assert response.status_code == 200
    data = response.get_json()
    assert data['success'] is True
    assert data['data']['registrationStatus'] == 'registered'

def test_register_twice_is_idempotent(client, make_student, make_event, headers_for):
    student = make_student()
    event = make_event()

    first = register(client, headers_for(student), event.id)
    second = register(client, headers_for(student), event.id)

    assert first.status_code == second.status_code == 200
    assert second.get_json()['message'] == "You are already registered for this event"
    assert second.get_json()['data']['participantId'] == first.get_json()['data']['participantId']
    assert EventParticipant.query.filter_by(event_id=event.id, student_id=student.id).count() == 1

def test_capacity_is_enforced(client, make_student, make_event, headers_for):
    event = make_event(max_participants=2)
    first, second, third = make_student(), make_student(), make_student()

    assert register(client, headers_for(first), event.id).status_code == 200
    assert register(client, headers_for(second), event.id).status_code == 200

    response = register(client, headers_for(third), event.id)
    assert response.status_code == 409
    assert response.get_json()['error'] == 'capacity_exceeded'

def test_absent_participants_do_not_hold_seats(make_student, make_event):
    event = make_event(max_participants=1)
    gone, newcomer = make_student(), make_student()
    db.session.add(EventParticipant(
        event_id=event.id, student_id=gone.id, status=AttendanceStatus.ABSENT
    ))
    db.session.commit()

    message, data = EventService.register(event.id, newcomer.user_id, now=BEFORE_EVENT)
    assert data['registrationStatus'] == 'registered'

def test_cancelled_event_rejects_registration(client, make_student, make_event, headers_for):
    student = make_student()
    event = make_event(status='cancelled')

    response = register(client, headers_for(student), event.id)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'event_cancelled'

@pytest.mark.parametrize('now', [
    datetime(2025, 3, 15, 10, 0),
    datetime(2025, 3, 16, 8, 0),
])
def test_registration_closes_at_start(make_student, make_event, now):
    student = make_student()
    event = make_event()

    with pytest.raises(StateError) as excinfo:
        EventService.register(event.id, student.user_id, now=now)
    assert excinfo.value.code == 'registration_closed'

def test_completed_status_closes_registration(make_student, make_event):
    student = make_student()
    event = make_event(status='Completed')

    with pytest.raises(StateError):
        EventService.register(event.id, student.user_id, now=BEFORE_EVENT)

def test_checked_in_student_gets_success(make_student, make_event):
    student = make_student()
    event = make_event()
    db.session.add(EventParticipant(
        event_id=event.id, student_id=student.id, status=AttendanceStatus.LATE
    ))
    db.session.commit()

    message, data = EventService.register(event.id, student.user_id, now=BEFORE_EVENT)
    assert message == "You have already checked in for this event"
    assert data['registrationStatus'] == 'late'

def test_absent_student_cannot_reregister(make_student, make_event):
    student = make_student()
    event = make_event()
    db.session.add(EventParticipant(
        event_id=event.id, student_id=student.id, status=AttendanceStatus.ABSENT
    ))
    db.session.commit()

    with pytest.raises(StateError) as excinfo:
        EventService.register(event.id, student.user_id, now=BEFORE_EVENT)
    assert excinfo.value.code == 'registration_closed'

def test_unapproved_student_is_forbidden(client, make_student, make_event, headers_for):
    student = make_student(status=StudentStatus.PENDING)
    event = make_event()

    response = register(client, headers_for(student), event.id)
    assert response.status_code == 403
    assert response.get_json()['error'] == 'student_not_approved'

def test_unknown_event(client, make_student, headers_for):
    response = register(client, headers_for(make_student()), 999)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'event_not_found'

def test_admin_cannot_register(client, make_event, admin_headers):
    event = make_event()
    assert register(client, admin_headers, event.id).status_code == 403

def test_fallback_student_id_must_belong_to_caller(make_student, make_event, admin):
    owner = make_student(email='owner@example.com')
    event = make_event()

    # An account without a linked profile may not borrow someone else's id.
    with pytest.raises(NotFoundError):
        EventService.register(event.id, admin.user_id, fallback_student_id=owner.id,
                              now=BEFORE_EVENT)

def test_fallback_student_id_matching_email(make_student, make_event):
    student = make_student(email='relinked@example.com')
    event = make_event()
    orphan_user = student.user
    # Simulate a profile whose user link points elsewhere but shares the email.
    other = make_student(email='other@example.com')
    student.user_id = other.user_id + 100
    db.session.commit()

    message, data = EventService.register(
        event.id, orphan_user.id, fallback_student_id=student.id, now=BEFORE_EVENT
    )
    assert data['registrationStatus'] == 'registered'
    participant = EventParticipant.get_by_id(data['participantId'])
    assert participant.student_id == student.id

def test_rejected_fallback_does_not_leak_profile(make_student, make_event):
    victim = make_student()
    event = make_event()

    with pytest.raises(NotFoundError):
        EventService.register(event.id, 12345, fallback_student_id=victim.id, now=BEFORE_EVENT)
    assert EventParticipant.query.count() == 0

def test_student_sees_own_registration_in_listing(client, make_student, make_event, headers_for):
    student = make_student()
    event = make_event()
    register(client, headers_for(student), event.id)

    response = client.get('/api/events', headers=headers_for(student))
    listed = response.get_json()['data'][0]
    assert listed['registration_status'] == 'registered'
    assert listed['registered_count'] == 1
    assert listed['attended_count'] == 0

"""QR check-in through the API."""
import json
from datetime import datetime

import pytest

from campus_events.models.attendance import AttendanceLog
from campus_events.models.event import EventParticipant
from campus_events.models.status import AttendanceStatus

def check_in(client, headers, qr_data, **extra):
    return client.post('/api/attendance/checkin', headers=headers,
                       json={'qrData': qr_data, **extra})

@pytest.mark.parametrize('moment, participant_status, log_status', [
    (datetime(2025, 3, 15, 10, 14), 'attended', 'present'),
    (datetime(2025, 3, 15, 10, 16), 'late', 'late'),
])
def test_check_in_classification(client, make_student, make_event, headers_for, freeze_time,
                                 moment, participant_status, log_status):
    student = make_student()
    event = make_event()
    freeze_time(moment)

    response = check_in(client, headers_for(student), event.qr_data)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['participantStatus'] == participant_status
    assert data['status'] == log_status
    assert data['eventName'] == 'Tech Talk'
    assert data['location'] == 'Main Hall'

def test_check_in_before_start(client, make_student, make_event, headers_for, freeze_time):
    student = make_student()
    event = make_event()
    freeze_time(datetime(2025, 3, 15, 9, 59))

    response = check_in(client, headers_for(student), event.qr_data)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'event_not_started'
    assert AttendanceLog.query.count() == 0

def test_check_in_after_event_day(client, make_student, make_event, headers_for, freeze_time):
    student = make_student()
    event = make_event()
    freeze_time(datetime(2025, 3, 16, 9, 0))

    response = check_in(client, headers_for(student), event.qr_data)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'event_already_completed'

def test_check_in_cancelled_event(client, make_student, make_event, headers_for, freeze_time):
    student = make_student()
    event = make_event(status='Cancelled')
    freeze_time(datetime(2025, 3, 15, 10, 5))

    response = check_in(client, headers_for(student), event.qr_data)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'attendance_closed'

@pytest.mark.parametrize('qr_data', ['', 'not json', '{"type": "event_attendance"}', '[1, 2]'])
def test_invalid_qr(client, make_student, headers_for, qr_data):
    response = check_in(client, headers_for(make_student()), qr_data)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_qr_code'

def test_unknown_event_qr(client, make_student, headers_for):
    response = check_in(client, headers_for(make_student()), json.dumps({'eventId': 4040}))
    assert response.status_code == 404

def test_walk_in_without_registration(client, make_student, make_event, headers_for, freeze_time):
    """Scanning without a prior registration creates the participant row."""
    student = make_student()
    event = make_event()
    freeze_time(datetime(2025, 3, 15, 10, 1))

    response = check_in(client, headers_for(student), event.qr_data,
                        deviceInfo={'platform': 'android'})

    assert response.status_code == 200
    participant = EventParticipant.query.filter_by(event_id=event.id, student_id=student.id).one()
    assert participant.status == AttendanceStatus.ATTENDED
    log = AttendanceLog.query.filter_by(event_id=event.id, student_id=student.id).one()
    assert log.device_info == {'platform': 'android'}
    assert log.scanned_qr_data == event.qr_data

def test_rescan_keeps_single_log(client, make_student, make_event, headers_for, freeze_time):
    student = make_student()
    event = make_event()

    freeze_time(datetime(2025, 3, 15, 10, 5))
    check_in(client, headers_for(student), event.qr_data)
    freeze_time(datetime(2025, 3, 15, 10, 30))
    response = check_in(client, headers_for(student), event.qr_data)

    assert response.get_json()['data']['participantStatus'] == 'late'
    assert AttendanceLog.query.filter_by(event_id=event.id, student_id=student.id).count() == 1

def test_example_scenario(client, make_student, make_event, headers_for, admin_headers,
                          freeze_time):
    event = make_event(max_participants=2)
    alice, bob, carol = make_student('A'), make_student('B'), make_student('C')

    freeze_time(datetime(2025, 3, 14, 9, 0))
    for student in (alice, bob):
        response = client.post(f'/api/events/{event.id}/register', headers=headers_for(student))
        assert response.get_json()['data']['registrationStatus'] == 'registered'
    response = client.post(f'/api/events/{event.id}/register', headers=headers_for(carol))
    assert response.status_code == 409

    freeze_time(datetime(2025, 3, 15, 10, 5))
    response = check_in(client, headers_for(alice), event.qr_data)
    assert response.get_json()['data']['participantStatus'] == 'attended'

    freeze_time(datetime(2025, 3, 15, 10, 20))
    response = check_in(client, headers_for(bob), event.qr_data)
    assert response.get_json()['data']['participantStatus'] == 'late'

    freeze_time(datetime(2025, 3, 16, 0, 0))
    response = client.put(f'/api/events/{event.id}', headers=admin_headers,
                          json={'status': 'Completed'})
    assert response.status_code == 200
    body = response.get_json()['data']
    assert body['status'] == 'Completed'
    assert body['registered_count'] == 0
    assert body['absent_count'] == 0
    assert body['attended_count'] == 1
    assert body['late_count'] == 1
    assert AttendanceLog.query.filter_by(event_id=event.id).count() == 2

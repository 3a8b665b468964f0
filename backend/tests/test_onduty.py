"""On-duty request workflow and daily attendance."""
import io
import os
from datetime import datetime

import pytest

from campus_events.models.onduty import OnDutyAttendance, OnDutyRequest, OnDutyStatus
from campus_events.models.student import StudentStatus

SUBMITTED_AT = datetime(2025, 3, 10, 9, 0)

WINDOW = {
    'collegeName': 'City Engineering College',
    'startDate': '2025-03-12',
    'startTime': '09:00',
    'endDate': '2025-03-14',
    'endTime': '17:00',
    'reason': 'Inter-college symposium',
}

@pytest.fixture(autouse=True)
def _submitted(freeze_time):
    freeze_time(SUBMITTED_AT)

def submit(client, headers, document=None, **overrides):
    form = dict(WINDOW, **overrides)
    if document is not None:
        form['document'] = document
    return client.post('/api/onduty/request', headers=headers, data=form,
                       content_type='multipart/form-data')

def review(client, admin_headers, request_id, **body):
    return client.put(f'/api/onduty/admin/requests/{request_id}', headers=admin_headers, json=body)

def mark(client, headers, request_id, **extra):
    form = {'onDutyRequestId': str(request_id), 'latitude': '13.0', 'longitude': '80.2'}
    form.update(extra)
    return client.post('/api/onduty/attendance', headers=headers, data=form,
                       content_type='multipart/form-data')

@pytest.fixture
def approved_request(client, make_student, headers_for, admin_headers):
    student = make_student()
    request_id = submit(client, headers_for(student)).get_json()['data']['id']
    review(client, admin_headers, request_id, status='approved')
    return student, request_id

def test_submit_request_with_document(app, client, make_student, headers_for):
    student = make_student()
    document = (io.BytesIO(b'%PDF-1.4 letter'), 'letter.pdf')

    response = submit(client, headers_for(student), document=document)

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['status'] == 'pending'
    assert data['start_time'] == '09:00:00'
    assert data['document_url'].startswith('http://testserver/uploads/onduty-documents/od_')
    filename = data['document_url'].rsplit('/', 1)[-1]
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], 'onduty-documents', filename))

def test_document_type_is_checked(client, make_student, headers_for):
    document = (io.BytesIO(b'MZ'), 'payload.exe')
    response = submit(client, headers_for(make_student()), document=document)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_file_type'

@pytest.mark.parametrize('overrides, code', [
    ({'startDate': '2025-03-09'}, 'start_in_past'),
    ({'endDate': '2025-03-12', 'endTime': '08:00'}, 'invalid_window'),
    ({'startDate': '2026-03-11', 'endDate': '2026-03-12'}, 'start_too_far'),
    ({'reason': ''}, 'missing_fields'),
    ({'startDate': '12/03/2025'}, 'invalid_date'),
])
def test_window_validation(client, make_student, headers_for, overrides, code):
    response = submit(client, headers_for(make_student()), **overrides)
    assert response.status_code == 400
    assert response.get_json()['error'] == code

def test_pending_student_cannot_submit(client, make_student, headers_for):
    student = make_student(status=StudentStatus.PENDING)
    response = submit(client, headers_for(student))
    assert response.status_code == 403

def test_reject_requires_reason(client, make_student, headers_for, admin_headers):
    request_id = submit(client, headers_for(make_student())).get_json()['data']['id']

    response = review(client, admin_headers, request_id, status='rejected')
    assert response.status_code == 400

    response = review(client, admin_headers, request_id, status='rejected',
                      rejectionReason='Clashes with exams')
    assert response.status_code == 200
    assert response.get_json()['data']['rejection_reason'] == 'Clashes with exams'

def test_review_is_terminal(client, admin_headers, approved_request):
    _, request_id = approved_request

    response = review(client, admin_headers, request_id, status='rejected', rejectionReason='x')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'onduty_not_pending'

def test_review_rejects_unknown_status(client, make_student, headers_for, admin_headers):
    request_id = submit(client, headers_for(make_student())).get_json()['data']['id']
    response = review(client, admin_headers, request_id, status='pending')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_status'

def test_approval_records_admin(client, admin, approved_request):
    _, request_id = approved_request
    od_request = OnDutyRequest.get_by_id(request_id)
    assert od_request.status == OnDutyStatus.APPROVED
    assert od_request.approved_by == admin.id
    assert od_request.to_dict()['approved_by_name'] == 'Event Admin'

def test_one_attendance_per_day(client, headers_for, freeze_time, approved_request):
    student, request_id = approved_request
    headers = headers_for(student)

    freeze_time(datetime(2025, 3, 12, 10, 0))
    assert mark(client, headers, request_id, address='Symposium hall').status_code == 201

    freeze_time(datetime(2025, 3, 12, 15, 0))
    response = mark(client, headers, request_id)
    assert response.status_code == 409
    assert response.get_json()['error'] == 'duplicate_attendance'

    freeze_time(datetime(2025, 3, 13, 9, 30))
    assert mark(client, headers, request_id).status_code == 201

    rows = OnDutyAttendance.query.filter_by(on_duty_request_id=request_id).all()
    assert sorted(row.check_in_date.isoformat() for row in rows) == ['2025-03-12', '2025-03-13']
    assert all(row.student_id == student.id for row in rows)

def test_attendance_outside_window(client, headers_for, freeze_time, approved_request):
    student, request_id = approved_request

    freeze_time(datetime(2025, 3, 15, 9, 0))
    response = mark(client, headers_for(student), request_id)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'outside_onduty_window'

def test_attendance_requires_approval(client, make_student, headers_for, freeze_time):
    student = make_student()
    request_id = submit(client, headers_for(student)).get_json()['data']['id']

    freeze_time(datetime(2025, 3, 12, 10, 0))
    response = mark(client, headers_for(student), request_id)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'onduty_not_approved'

def test_attendance_on_someone_elses_request(client, make_student, headers_for, freeze_time,
                                             approved_request):
    _, request_id = approved_request
    freeze_time(datetime(2025, 3, 12, 10, 0))

    response = mark(client, headers_for(make_student()), request_id)
    assert response.status_code == 404

def test_attendance_requires_coordinates(client, headers_for, freeze_time, approved_request):
    student, request_id = approved_request
    freeze_time(datetime(2025, 3, 12, 10, 0))

    response = mark(client, headers_for(student), request_id, latitude='')
    assert response.status_code == 400

def test_attendance_with_selfie(client, headers_for, freeze_time, approved_request):
    student, request_id = approved_request
    freeze_time(datetime(2025, 3, 12, 10, 0))

    response = mark(client, headers_for(student), request_id,
                    selfie=(io.BytesIO(b'\xff\xd8selfie'), 'me.jpg'))

    assert response.status_code == 201
    assert '/uploads/onduty-selfies/' in response.get_json()['data']['selfie_photo_url']

def test_edit_and_delete_only_while_pending(app, client, make_student, headers_for, admin_headers):
    student = make_student()
    headers = headers_for(student)
    created = submit(client, headers, document=(io.BytesIO(b'doc'), 'note.pdf')).get_json()['data']

    response = client.put(f"/api/onduty/request/{created['id']}", headers=headers,
                          json={'reason': 'Updated reason', 'endDate': '2025-03-13'})
    assert response.status_code == 200
    assert response.get_json()['data']['reason'] == 'Updated reason'
    assert response.get_json()['data']['end_date'] == '2025-03-13'

    path = os.path.join(app.config['UPLOAD_FOLDER'], 'onduty-documents',
                        created['document_url'].rsplit('/', 1)[-1])
    assert os.path.exists(path)
    response = client.delete(f"/api/onduty/request/{created['id']}", headers=headers)
    assert response.status_code == 200
    assert not os.path.exists(path)
    assert OnDutyRequest.query.count() == 0

    other = submit(client, headers).get_json()['data']
    review(client, admin_headers, other['id'], status='approved')
    response = client.put(f"/api/onduty/request/{other['id']}", headers=headers,
                          json={'reason': 'Too late'})
    assert response.status_code == 400
    response = client.delete(f"/api/onduty/request/{other['id']}", headers=headers)
    assert response.status_code == 400

def test_listings(client, headers_for, admin_headers, freeze_time, approved_request):
    student, request_id = approved_request
    headers = headers_for(student)

    mine = client.get('/api/onduty/my-requests', headers=headers).get_json()['data']
    assert [item['id'] for item in mine] == [request_id]

    assert client.get('/api/onduty/approved', headers=headers).get_json()['data'] == []
    freeze_time(datetime(2025, 3, 13, 8, 0))
    active = client.get('/api/onduty/approved', headers=headers).get_json()['data']
    assert [item['id'] for item in active] == [request_id]

    mark(client, headers, request_id)
    history = client.get('/api/onduty/attendance-history', headers=headers).get_json()['data']
    assert history[0]['college_name'] == 'City Engineering College'

    listed = client.get('/api/onduty/admin/requests?status=approved&search=symposium',
                        headers=admin_headers).get_json()['data']
    assert listed == []
    listed = client.get('/api/onduty/admin/requests?status=approved&search=City',
                        headers=admin_headers).get_json()['data']
    assert listed[0]['registration_number'] == student.registration_number

    attendance = client.get(f'/api/onduty/admin/attendance?studentId={student.id}',
                            headers=admin_headers).get_json()['data']
    assert len(attendance) == 1
    assert attendance[0]['od_start_date'] == '2025-03-12'

@pytest.mark.parametrize('query, code', [
    ('studentId=abc', 'invalid_number'),
    ('startDate=yesterday', 'invalid_date'),
])
def test_admin_attendance_rejects_bad_filters(client, admin_headers, query, code):
    response = client.get(f'/api/onduty/admin/attendance?{query}', headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == code

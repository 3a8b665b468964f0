"""Certificate uploads, review and issued certificates."""
import io
import os
from datetime import datetime

import pytest

from campus_events.models.certificate import Certificate, CertificateStatus

def upload(client, headers, file=('winner.pdf', b'%PDF-1.4 certificate'), **fields):
    form = {'title': 'Hackathon Winner', 'category': 'Technical', 'issueDate': '2025-02-10'}
    form.update(fields)
    if file is not None:
        name, content = file
        form['certificate'] = (io.BytesIO(content), name)
    return client.post('/api/certificates/upload', headers=headers, data=form,
                       content_type='multipart/form-data')

def stored_path(app, url):
    return os.path.join(app.config['UPLOAD_FOLDER'], 'certificates', url.rsplit('/', 1)[-1])

def stored_files(app):
    folder = os.path.join(app.config['UPLOAD_FOLDER'], 'certificates')
    return os.listdir(folder) if os.path.isdir(folder) else []

@pytest.fixture
def uploaded(client, make_student, headers_for):
    student = make_student()
    data = upload(client, headers_for(student)).get_json()['data']
    return student, data

def test_upload_certificate(app, client, uploaded):
    student, data = uploaded

    assert data['status'] == 'Pending'
    assert data['title'] == 'Hackathon Winner'
    assert data['issue_date'] == '2025-02-10'
    assert data['file_name'] == 'winner.pdf'
    assert data['file_url'].startswith(f'http://testserver/uploads/certificates/cert_{student.id}_')
    with open(stored_path(app, data['file_url']), 'rb') as handle:
        assert handle.read() == b'%PDF-1.4 certificate'

@pytest.mark.parametrize('kwargs, code', [
    ({'file': None}, 'missing_file'),
    ({'file': ('payload.exe', b'MZ')}, 'invalid_file_type'),
    ({'file': ('huge.pdf', b'x' * (1024 * 1024 + 1))}, 'file_too_large'),
    ({'title': ''}, 'missing_fields'),
    ({'issueDate': 'last week'}, 'invalid_date'),
])
def test_upload_validation(app, client, make_student, headers_for, kwargs, code):
    response = upload(client, headers_for(make_student()), **kwargs)

    assert response.status_code == 400
    assert response.get_json()['error'] == code
    assert stored_files(app) == []

def test_upload_for_unknown_event(client, make_student, headers_for):
    response = upload(client, headers_for(make_student()), eventId='404')
    assert response.status_code == 404

def test_admin_cannot_use_student_upload(client, admin_headers):
    assert upload(client, admin_headers).status_code == 403

def test_student_listing_is_private(client, make_student, headers_for, admin_headers, uploaded):
    student, data = uploaded

    mine = client.get(f'/api/certificates/student/{student.id}', headers=headers_for(student))
    assert [item['id'] for item in mine.get_json()['data']] == [data['id']]

    other = client.get(f'/api/certificates/student/{student.id}', headers=headers_for(make_student()))
    assert other.status_code == 403
    single = client.get(f"/api/certificates/{data['id']}", headers=headers_for(make_student()))
    assert single.status_code == 403

    as_admin = client.get(f"/api/certificates/{data['id']}", headers=admin_headers)
    assert as_admin.get_json()['data']['title'] == 'Hackathon Winner'

def test_review_status(client, admin_headers, uploaded):
    _, data = uploaded
    url = f"/api/certificates/{data['id']}/status"

    response = client.put(url, headers=admin_headers, json={'status': 'approved', 'notes': 'Verified'})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Certificate Approved successfully'
    reviewed = response.get_json()['data']
    assert reviewed['status'] == 'Approved'
    assert reviewed['remarks'] == 'Verified'
    assert reviewed['approved_by_name'] == 'Event Admin'
    assert reviewed['approved_at'] is not None

    response = client.put(url, headers=admin_headers, json={'status': 'Pending'})
    assert response.get_json()['data']['approved_at'] is None

    response = client.put(url, headers=admin_headers, json={'status': 'lost'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_status'

def test_review_is_admin_only(client, headers_for, uploaded):
    student, data = uploaded
    response = client.put(f"/api/certificates/{data['id']}/status", headers=headers_for(student),
                          json={'status': 'Approved'})
    assert response.status_code == 403

def test_admin_listing_filters(client, make_student, headers_for, admin_headers, uploaded):
    student, _ = uploaded
    upload(client, headers_for(make_student()), title='Other')

    listed = client.get(f'/api/certificates?studentId={student.id}&status=pending',
                        headers=admin_headers).get_json()['data']
    assert len(listed) == 1
    assert listed[0]['student_name'] == student.name
    assert listed[0]['department'] == 'CSE'

    assert len(client.get('/api/certificates', headers=admin_headers).get_json()['data']) == 2
    assert client.get('/api/certificates?status=approved',
                      headers=admin_headers).get_json()['data'] == []
    response = client.get('/api/certificates?studentId=abc', headers=admin_headers)
    assert response.status_code == 400

def test_generate_certificate(client, make_student, make_event, admin_headers, freeze_time):
    student = make_student()
    event = make_event()
    freeze_time(datetime(2025, 3, 20, 9, 0))

    response = client.post('/api/certificates/generate', headers=admin_headers, json={
        'studentId': student.id,
        'eventId': event.id,
        'title': 'Certificate of Participation',
        'certificateType': 'Participation',
        'issuedBy': 'Department of CSE',
    })

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['status'] == 'Approved'
    assert data['event_name'] == 'Tech Talk'
    assert data['issue_date'] == '2025-03-20'
    assert data['file_url'] is None
    assert data['approved_at'] == '2025-03-20T09:00:00'

@pytest.mark.parametrize('body, status', [
    ({'title': 'No student'}, 400),
    ({'studentId': 999, 'title': 'Ghost'}, 404),
])
def test_generate_validation(client, admin_headers, body, status):
    response = client.post('/api/certificates/generate', headers=admin_headers, json=body)
    assert response.status_code == status

def test_owner_replaces_file(app, client, headers_for, uploaded):
    student, data = uploaded
    old_path = stored_path(app, data['file_url'])

    response = client.put(f"/api/certificates/{data['id']}", headers=headers_for(student),
                          data={'title': 'Hackathon Runner-up',
                                'certificate': (io.BytesIO(b'%PDF new'), 'runner-up.pdf')},
                          content_type='multipart/form-data')

    assert response.status_code == 200
    updated = response.get_json()['data']
    assert updated['title'] == 'Hackathon Runner-up'
    assert updated['file_name'] == 'runner-up.pdf'
    assert not os.path.exists(old_path)
    assert os.path.exists(stored_path(app, updated['file_url']))

def test_owner_cannot_self_approve(client, headers_for, uploaded):
    student, data = uploaded
    response = client.put(f"/api/certificates/{data['id']}", headers=headers_for(student),
                          json={'status': 'Approved'})
    assert response.status_code == 403
    assert Certificate.get_by_id(data['id']).status == CertificateStatus.PENDING

def test_delete_certificate(app, client, make_student, headers_for, uploaded):
    student, data = uploaded
    url = f"/api/certificates/{data['id']}"

    assert client.delete(url, headers=headers_for(make_student())).status_code == 403

    response = client.delete(url, headers=headers_for(student))
    assert response.status_code == 200
    assert Certificate.query.count() == 0
    assert not os.path.exists(stored_path(app, data['file_url']))

def test_event_deletion_keeps_certificates(client, make_student, make_event, admin_headers):
    event = make_event()
    created = client.post('/api/certificates/generate', headers=admin_headers, json={
        'studentId': make_student().id, 'eventId': event.id, 'title': 'Volunteer'
    }).get_json()['data']

    assert client.delete(f'/api/events/{event.id}', headers=admin_headers).status_code == 200

    response = client.get(f"/api/certificates/{created['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['event_id'] is None

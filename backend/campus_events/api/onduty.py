"""On-duty API: student requests, admin review and daily attendance."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_events.services.onduty_service import OnDutyService
from campus_events.services.storage_service import FileStorage, read_upload
from campus_events.utils.decorators import admin_required, current_principal, student_required
from campus_events.utils.helpers import success_response

onduty_bp = Blueprint('onduty', __name__)

def _form_data() -> dict:
    """Multipart form fields, or the JSON body when sent without files."""
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}

def _upload(field: str, allowed_key: str):
    return read_upload(request.files.get(field), current_app.config[allowed_key])

def _window_kwargs() -> dict:
    return {'max_advance_days': current_app.config.get('ONDUTY_MAX_ADVANCE_DAYS', 365)}

@onduty_bp.route('/request', methods=['POST'])
@jwt_required()
@student_required
def create_request():
    """Submit an on-duty request with an optional supporting document."""
    od_request = OnDutyService.create_request(
        current_principal().id,
        _form_data(),
        FileStorage.from_app(),
        document=_upload('document', 'ALLOWED_DOCUMENT_EXTENSIONS'),
        **_window_kwargs()
    )
    return success_response(
        data=od_request.to_dict(),
        message="On-duty request submitted successfully"
    ), 201

@onduty_bp.route('/request/<int:request_id>', methods=['PUT'])
@jwt_required()
@student_required
def update_request(request_id):
    od_request = OnDutyService.update_request(
        current_principal().id,
        request_id,
        _form_data(),
        FileStorage.from_app(),
        document=_upload('document', 'ALLOWED_DOCUMENT_EXTENSIONS'),
        **_window_kwargs()
    )
    return success_response(data=od_request.to_dict(), message="On-duty request updated")

@onduty_bp.route('/request/<int:request_id>', methods=['DELETE'])
@jwt_required()
@student_required
def delete_request(request_id):
    OnDutyService.delete_request(current_principal().id, request_id, FileStorage.from_app())
    return success_response(message="On-duty request deleted")

@onduty_bp.route('/my-requests', methods=['GET'])
@jwt_required()
@student_required
def my_requests():
    return success_response(data=OnDutyService.my_requests(current_principal().id))

@onduty_bp.route('/approved', methods=['GET'])
@jwt_required()
@student_required
def approved_requests():
    """Approved requests whose window covers today."""
    return success_response(data=OnDutyService.active_approved(current_principal().id))

@onduty_bp.route('/attendance', methods=['POST'])
@jwt_required()
@student_required
def mark_attendance():
    """Mark today's attendance for an approved on-duty request."""
    record = OnDutyService.mark_attendance(
        current_principal().id,
        _form_data(),
        FileStorage.from_app(),
        selfie=_upload('selfie', 'ALLOWED_IMAGE_EXTENSIONS')
    )
    return success_response(
        data=record.to_dict(),
        message="On-duty attendance marked successfully"
    ), 201

@onduty_bp.route('/attendance-history', methods=['GET'])
@jwt_required()
@student_required
def attendance_history():
    return success_response(data=OnDutyService.attendance_history(current_principal().id))

@onduty_bp.route('/admin/requests', methods=['GET'])
@jwt_required()
@admin_required
def admin_requests():
    filters = {key: request.args.get(key) for key in ('status', 'search', 'startDate', 'endDate')}
    return success_response(data=OnDutyService.admin_requests(filters))

@onduty_bp.route('/admin/requests/<int:request_id>', methods=['PUT'])
@jwt_required()
@admin_required
def review_request(request_id):
    """Approve or reject a pending request."""
    data = request.get_json(silent=True) or {}
    od_request = OnDutyService.review(
        request_id,
        current_principal().id,
        data.get('status'),
        data.get('rejectionReason')
    )
    return success_response(
        data=od_request.to_dict(),
        message=f"On-duty request {od_request.status.value}"
    )

@onduty_bp.route('/admin/attendance', methods=['GET'])
@jwt_required()
@admin_required
def admin_attendance():
    filters = {key: request.args.get(key) for key in ('studentId', 'startDate', 'endDate')}
    return success_response(data=OnDutyService.admin_attendance(filters))

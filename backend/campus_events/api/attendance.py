"""Attendance API: QR check-in, photo proof and read models."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from campus_events.services.attendance_service import AttendanceService
from campus_events.services.storage_service import FileStorage
from campus_events.utils.decorators import admin_required, current_principal, student_required
from campus_events.utils.helpers import success_response, error_response

attendance_bp = Blueprint('attendance', __name__)

@attendance_bp.route('/checkin', methods=['POST'])
@jwt_required()
@student_required
def check_in():
    """Check in to an event by scanning its QR code."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, 'invalid_body')

    result = AttendanceService.check_in(
        current_principal().id,
        data.get('qrData'),
        location=data.get('location'),
        device_info=data.get('deviceInfo')
    )
    message = "Checked in late" if result['participantStatus'] == 'late' else "Check-in successful"
    return success_response(data=result, message=message)

@attendance_bp.route('/upload-photo', methods=['POST'])
@jwt_required()
@student_required
def upload_photo():
    """Attach a photo with GPS coordinates to an attendance record."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, 'invalid_body')

    log, event = AttendanceService.attach_proof(
        current_principal().id, data, FileStorage.from_app()
    )
    result = log.to_dict()
    result['event_name'] = event.name
    return success_response(data=result, message="Attendance photo uploaded successfully")

@attendance_bp.route('/student/<int:student_id>', methods=['GET'])
@jwt_required()
def student_history(student_id):
    return success_response(
        data=AttendanceService.history_for_student(student_id, current_principal())
    )

@attendance_bp.route('/event/<int:event_id>', methods=['GET'])
@jwt_required()
@admin_required
def event_attendance(event_id):
    return success_response(data=AttendanceService.event_attendance(event_id))

@attendance_bp.route('/participant/<int:participant_id>', methods=['PUT'])
@jwt_required()
@admin_required
def update_participant(participant_id):
    """Override a participant's status or notes."""
    participant = AttendanceService.update_participant(
        participant_id, request.get_json(silent=True) or {}
    )
    return success_response(data=participant.to_dict(), message="Participant updated")

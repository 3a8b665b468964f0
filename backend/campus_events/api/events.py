"""Events API: registry, registration and QR."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_events.models.user import Admin
from campus_events.services.event_service import EventService
from campus_events.services.qr_service import QRService
from campus_events.services.student_service import StudentService
from campus_events.utils.decorators import admin_required, current_principal, student_required
from campus_events.utils.helpers import success_response

events_bp = Blueprint('events', __name__)

@events_bp.route('', methods=['GET'])
@jwt_required()
def list_events():
    """List events; students also get their own registration state."""
    principal = current_principal()
    student = StudentService.get_for_user(principal.id) if principal.is_student else None

    filters = {
        key: request.args.get(key)
        for key in ('status', 'category', 'from_date', 'to_date')
    }
    return success_response(data=EventService.list_events(filters, student))

@events_bp.route('', methods=['POST'])
@jwt_required()
@admin_required
def create_event():
    data = request.get_json(silent=True) or {}
    admin = Admin.query.filter_by(user_id=current_principal().id).first()

    event = EventService.create_event(
        data,
        admin_id=admin.id if admin else None,
        default_grace=current_app.config.get('DEFAULT_GRACE_PERIOD_MINUTES', 15)
    )
    return success_response(
        data=EventService.serialize(event),
        message="Event created successfully"
    ), 201

@events_bp.route('/<int:event_id>', methods=['GET'])
@jwt_required()
def get_event(event_id):
    principal = current_principal()
    student = StudentService.get_for_user(principal.id) if principal.is_student else None
    event = EventService.get_or_404(event_id)
    return success_response(data=EventService.serialize(event, student))

@events_bp.route('/<int:event_id>', methods=['PUT'])
@jwt_required()
@admin_required
def update_event(event_id):
    """Partial update; closing an event marks pending participants absent."""
    event = EventService.update_event(event_id, request.get_json(silent=True) or {})
    return success_response(
        data=EventService.serialize(event),
        message="Event updated successfully"
    )

@events_bp.route('/<int:event_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_event(event_id):
    EventService.delete_event(event_id)
    return success_response(message="Event deleted successfully")

@events_bp.route('/<int:event_id>/register', methods=['POST'])
@jwt_required()
@student_required
def register_for_event(event_id):
    """Register the calling student. ``studentId`` in the body is only a fallback."""
    data = request.get_json(silent=True) or {}
    message, result = EventService.register(
        event_id,
        current_principal().id,
        fallback_student_id=data.get('studentId')
    )
    return success_response(data=result, message=message)

@events_bp.route('/<int:event_id>/qr', methods=['GET'])
@jwt_required()
@admin_required
def get_event_qr(event_id):
    event = EventService.get_or_404(event_id)
    return success_response(data={
        'eventId': event.id,
        'qrData': event.qr_data,
        'qrCodeDataURL': QRService.render_data_url(event.qr_data) if event.qr_data else None
    })

@events_bp.route('/<int:event_id>/participants', methods=['GET'])
@jwt_required()
@admin_required
def get_participants(event_id):
    return success_response(data=EventService.participants(event_id))

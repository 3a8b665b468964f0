"""Analytics API - Admin Only."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from campus_events.services.report_service import ReportService
from campus_events.utils.decorators import admin_required
from campus_events.utils.helpers import success_response

analytics_bp = Blueprint('analytics', __name__)

@analytics_bp.route('/events', methods=['GET'])
@jwt_required()
@admin_required
def event_analytics():
    """Participation per event."""
    filters = {key: request.args.get(key) for key in ('from_date', 'to_date', 'department', 'college')}
    return success_response(data=ReportService.event_stats(filters))

@analytics_bp.route('/students', methods=['GET'])
@jwt_required()
@admin_required
def student_analytics():
    return success_response(data=ReportService.student_stats())

@analytics_bp.route('/attendance', methods=['GET'])
@jwt_required()
@admin_required
def attendance_analytics():
    filters = {key: request.args.get(key) for key in ('from_date', 'to_date')}
    return success_response(data=ReportService.attendance_stats(filters))

@analytics_bp.route('/certificates', methods=['GET'])
@jwt_required()
@admin_required
def certificate_analytics():
    return success_response(data=ReportService.certificate_stats())

@analytics_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@admin_required
def dashboard():
    """Headline numbers and the latest attendance activity."""
    return success_response(data=ReportService.dashboard())

"""Student Management API."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_events.models.student import StudentStatus
from campus_events.utils.helpers import success_response
from campus_events.utils.decorators import admin_required, current_principal
from campus_events.services.storage_service import FileStorage, read_upload
from campus_events.services.student_service import StudentService

students_bp = Blueprint('students', __name__)

@students_bp.route('', methods=['GET'])
@jwt_required()
@admin_required
def get_students():
    """Get all students with filters."""
    max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    per_page = request.args.get('per_page', current_app.config.get('DEFAULT_PAGE_SIZE', 20), type=int)

    data = StudentService.list_students(
        status=request.args.get('status'),
        college=request.args.get('college'),
        department=request.args.get('department'),
        search=request.args.get('search'),
        page=max(request.args.get('page', 1, type=int), 1),
        per_page=min(max(per_page, 1), max_page_size)
    )
    return success_response(data=data)

@students_bp.route('/meta', methods=['GET'])
@jwt_required()
@admin_required
def students_meta():
    """Student counts by review status."""
    return success_response(data=StudentService.meta())

@students_bp.route('/<int:student_id>', methods=['GET'])
@jwt_required()
def get_student(student_id):
    """Get single student details; students may read their own."""
    student = StudentService.require_access(student_id, current_principal())
    return success_response(data=student.to_dict())

@students_bp.route('/<int:student_id>', methods=['PUT'])
@jwt_required()
def update_student(student_id):
    student = StudentService.update_profile(
        student_id, current_principal(), request.get_json(silent=True) or {}
    )
    return success_response(data=student.to_dict(), message="Profile updated successfully")

@students_bp.route('/<int:student_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_student(student_id):
    StudentService.delete_student(student_id, FileStorage.from_app())
    return success_response(message="Student deleted successfully")

@students_bp.route('/<int:student_id>/profile-photo', methods=['POST'])
@jwt_required()
def upload_profile_photo(student_id):
    photo = read_upload(
        request.files.get('profilePhoto'),
        current_app.config['ALLOWED_IMAGE_EXTENSIONS'],
        current_app.config.get('MAX_PROFILE_PHOTO_SIZE_MB')
    )
    student = StudentService.set_profile_photo(
        student_id, current_principal(), photo, FileStorage.from_app()
    )
    return success_response(
        data={'profilePhotoUrl': student.profile_photo_url},
        message="Profile photo uploaded successfully"
    )

@students_bp.route('/<int:student_id>/approve', methods=['POST'])
@jwt_required()
@admin_required
def approve_student(student_id):
    student = StudentService.set_status(student_id, StudentStatus.APPROVED)
    return success_response(data=student.to_dict(), message="Student approved")

@students_bp.route('/<int:student_id>/reject', methods=['POST'])
@jwt_required()
@admin_required
def reject_student(student_id):
    student = StudentService.set_status(student_id, StudentStatus.REJECTED)
    return success_response(data=student.to_dict(), message="Student rejected")

"""Authentication API: student self-registration, login and profile."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from campus_events import limiter
from campus_events.models.user import User
from campus_events.utils.decorators import current_principal
from campus_events.utils.helpers import success_response, error_response
from campus_events.services.auth_service import AuthService

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    """Create a student account pending admin approval."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, 'invalid_body')

    student = AuthService.register_student(data)
    return success_response(
        data={"student": student.to_dict()},
        message="Registration successful. Your profile is pending approval."
    ), 201

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Email/password login for students and admins."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, 'invalid_body')

    result = AuthService.login(data.get("email", ""), data.get("password", ""))
    return success_response(data=result, message="Login successful")

@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    """Current user with the attached profile."""
    principal = current_principal()
    user = User.get_by_id(principal.id)
    if not user:
        return error_response("User not found", 404, 'user_not_found')

    data = {"user": user.to_dict()}
    if user.student_profile:
        data["student"] = user.student_profile.to_dict()
    if user.admin_profile:
        data["admin"] = user.admin_profile.to_dict()
    return success_response(data=data)

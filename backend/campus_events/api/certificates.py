"""Certificates API: student uploads, admin review and issued certificates."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required
from campus_events.services.certificate_service import CertificateService
from campus_events.services.storage_service import FileStorage, read_upload
from campus_events.utils.decorators import admin_required, current_principal, student_required
from campus_events.utils.helpers import success_response

certificates_bp = Blueprint('certificates', __name__)

def _form_data() -> dict:
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}

def _certificate_file():
    return read_upload(
        request.files.get('certificate'),
        current_app.config['ALLOWED_CERTIFICATE_EXTENSIONS'],
        current_app.config.get('MAX_CERTIFICATE_SIZE_MB')
    )

@certificates_bp.route('/upload', methods=['POST'])
@jwt_required()
@student_required
def upload_certificate():
    """Upload a certificate file for review."""
    certificate = CertificateService.upload(
        current_principal().id, _form_data(), FileStorage.from_app(), _certificate_file()
    )
    return success_response(
        data=certificate.to_dict(),
        message="Certificate uploaded successfully"
    ), 201

@certificates_bp.route('/student/<int:student_id>', methods=['GET'])
@jwt_required()
def student_certificates(student_id):
    return success_response(
        data=CertificateService.list_for_student(student_id, current_principal())
    )

@certificates_bp.route('', methods=['GET'])
@jwt_required()
@admin_required
def list_certificates():
    filters = {key: request.args.get(key) for key in ('status', 'studentId', 'eventId')}
    return success_response(data=CertificateService.list_all(filters))

@certificates_bp.route('/<int:certificate_id>/status', methods=['PUT'])
@jwt_required()
@admin_required
def review_certificate(certificate_id):
    """Approve, reject or reopen a certificate."""
    data = request.get_json(silent=True) or {}
    certificate = CertificateService.review(
        certificate_id, current_principal().id, data.get('status'), data.get('notes')
    )
    return success_response(
        data=certificate.to_dict(),
        message=f"Certificate {certificate.status.value} successfully"
    )

@certificates_bp.route('/generate', methods=['POST'])
@jwt_required()
@admin_required
def generate_certificate():
    certificate = CertificateService.generate(
        current_principal().id, request.get_json(silent=True) or {}
    )
    return success_response(
        data=certificate.to_dict(),
        message="Certificate generated successfully"
    ), 201

@certificates_bp.route('/<int:certificate_id>', methods=['GET'])
@jwt_required()
def get_certificate(certificate_id):
    certificate = CertificateService.get_accessible(certificate_id, current_principal())
    return success_response(data=certificate.to_dict())

@certificates_bp.route('/<int:certificate_id>', methods=['PUT'])
@jwt_required()
def update_certificate(certificate_id):
    certificate = CertificateService.update(
        certificate_id, current_principal(), _form_data(),
        FileStorage.from_app(), _certificate_file()
    )
    return success_response(data=certificate.to_dict(), message="Certificate updated successfully")

@certificates_bp.route('/<int:certificate_id>', methods=['DELETE'])
@jwt_required()
def delete_certificate(certificate_id):
    CertificateService.delete(certificate_id, current_principal(), FileStorage.from_app())
    return success_response(message="Certificate deleted successfully")

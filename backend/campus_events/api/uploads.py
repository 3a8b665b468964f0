"""Serves files written by FileStorage."""
from flask import Blueprint, abort, current_app, send_from_directory
from werkzeug.utils import secure_filename
from campus_events.services.storage_service import CATEGORIES, FileStorage

uploads_bp = Blueprint('uploads', __name__)

@uploads_bp.route('/<category>/<path:filename>', methods=['GET'])
def serve_upload(category, filename):
    if category not in CATEGORIES or secure_filename(filename) != filename:
        abort(404)

    storage = FileStorage(current_app.config['UPLOAD_FOLDER'])
    return send_from_directory(storage.category_dir(category), filename)

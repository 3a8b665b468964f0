"""Local file storage for uploaded photos and documents."""
import base64
import binascii
import logging
import os
import re
import uuid
from typing import Optional, Tuple

from flask import current_app
from werkzeug.utils import secure_filename

from campus_events.utils import clock
from campus_events.utils.errors import ValidationError

logger = logging.getLogger(__name__)

ATTENDANCE_PHOTOS = 'attendance-photos'
ONDUTY_DOCUMENTS = 'onduty-documents'
ONDUTY_SELFIES = 'onduty-selfies'
CERTIFICATES = 'certificates'
PROFILE_PHOTOS = 'profile-photos'
CATEGORIES = (ATTENDANCE_PHOTOS, ONDUTY_DOCUMENTS, ONDUTY_SELFIES, CERTIFICATES, PROFILE_PHOTOS)

_BASE64_PATTERN = re.compile(r'^[A-Za-z0-9+/]*={0,2}$')

class FileStorage:
    """Stores files under ``<root>/<category>/`` and hands out URLs for them."""
    
    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = os.path.abspath(root)
        self.base_url = (base_url or '').rstrip('/')
    
    @classmethod
    def from_app(cls) -> 'FileStorage':
        return cls(
            current_app.config['UPLOAD_FOLDER'],
            current_app.config.get('BASE_URL')
        )
    
    def category_dir(self, category: str) -> str:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown upload category: {category}")
        path = os.path.join(self.root, category)
        os.makedirs(path, exist_ok=True)
        return path
    
    def save(self, data: bytes, category: str, scope_key: str, extension: str = 'jpg') -> str:
        """Write ``data`` and return its URL."""
        timestamp = int(clock.utcnow().timestamp() * 1000)
        extension = secure_filename(extension.lstrip('.').lower()) or 'bin'
        filename = f"{secure_filename(scope_key)}_{timestamp}_{uuid.uuid4().hex[:8]}.{extension}"
        
        with open(os.path.join(self.category_dir(category), filename), 'wb') as handle:
            handle.write(data)
        
        logger.info("Stored %s file %s (%d bytes)", category, filename, len(data))
        return self.url_for(category, filename)
    
    def url_for(self, category: str, filename: str) -> str:
        return f"{self.base_url}/uploads/{category}/{filename}"
    
    def resolve(self, url: str) -> Optional[str]:
        """Map a URL issued by ``save`` back to a path inside the root."""
        if not url:
            return None
        path = re.sub(r'^https?://[^/]+', '', url)
        parts = [part for part in path.split('/') if part and part not in ('.', '..')]
        if len(parts) < 3 or parts[0] != 'uploads' or parts[1] not in CATEGORIES:
            return None
        filename = secure_filename(parts[-1])
        if not filename:
            return None
        return os.path.join(self.root, parts[1], filename)
    
    def delete(self, url: str) -> bool:
        """Remove a stored file. Returns False when there was nothing to remove."""
        path = self.resolve(url)
        if not path or not os.path.exists(path):
            return False
        try:
            os.remove(path)
        except OSError:
            logger.exception("Failed to delete stored file %s", path)
            return False
        return True

def max_photo_size_bytes() -> int:
    size_mb = current_app.config.get('MAX_ATTENDANCE_PHOTO_SIZE_MB') or 50
    return int(float(size_mb) * 1024 * 1024)

def decode_photo_data(photo_data: str, max_size_bytes: int = None) -> bytes:
    """Validate a base64 photo (optionally a data URL) and return its bytes."""
    if not photo_data or not isinstance(photo_data, str):
        raise ValidationError("Photo data is required", 'invalid_photo_data')
    
    encoded = photo_data.split(',', 1)[1] if ',' in photo_data else photo_data
    encoded = re.sub(r'\s+', '', encoded)
    if not encoded:
        raise ValidationError("Photo data is required", 'invalid_photo_data')
    
    if max_size_bytes is None:
        max_size_bytes = max_photo_size_bytes()
    estimated = len(encoded) * 3 // 4 - encoded.count('=')
    if estimated > max_size_bytes:
        limit_mb = round(max_size_bytes / 1024 / 1024, 1)
        raise ValidationError(
            f"Photo size exceeds maximum of {limit_mb}MB",
            'photo_too_large'
        )
    
    if not _BASE64_PATTERN.match(encoded):
        raise ValidationError("Invalid base64 format", 'invalid_photo_data')
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 format", 'invalid_photo_data')

def split_extension(filename: str, allowed: set) -> Tuple[str, str]:
    """Return (safe filename, extension) or raise if the type is not allowed."""
    safe_name = secure_filename(filename or '')
    extension = safe_name.rsplit('.', 1)[-1].lower() if '.' in safe_name else ''
    if extension not in allowed:
        raise ValidationError(
            f"Invalid file type. Allowed: {', '.join(sorted(allowed))}",
            'invalid_file_type'
        )
    return safe_name, extension

class Upload:
    """Bytes of an uploaded file plus the extension it is stored under."""

    def __init__(self, data: bytes, extension: str, filename: str = None):
        self.data = data
        self.extension = extension
        self.filename = filename

def read_upload(file, allowed: set, max_size_mb: float = None) -> Optional[Upload]:
    """Read a multipart file into an ``Upload``; None when nothing was sent."""
    if not file or not file.filename:
        return None
    safe_name, extension = split_extension(file.filename, allowed)
    data = file.read()
    if max_size_mb and len(data) > max_size_mb * 1024 * 1024:
        raise ValidationError(
            f"File size exceeds maximum of {max_size_mb:g}MB",
            'file_too_large'
        )
    return Upload(data, extension, safe_name)

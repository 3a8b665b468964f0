"""Settings shared by every environment."""
import os
from datetime import timedelta

class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    
    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    
    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGIN', '*').split(',')
    
    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"
    
    # File Upload
    MAX_CONTENT_LENGTH = int(os.environ.get('API_BODY_LIMIT_MB', 100)) * 1024 * 1024
    UPLOAD_FOLDER = os.environ.get('UPLOAD_DIR') or 'uploads'
    BASE_URL = os.environ.get('BASE_URL')
    MAX_ATTENDANCE_PHOTO_SIZE_MB = float(os.environ.get('MAX_ATTENDANCE_PHOTO_SIZE_MB', 50))
    ALLOWED_DOCUMENT_EXTENSIONS = {'pdf', 'jpg', 'jpeg', 'png', 'doc', 'docx'}
    ALLOWED_IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}
    ALLOWED_CERTIFICATE_EXTENSIONS = {'pdf', 'jpg', 'jpeg', 'png'}
    MAX_CERTIFICATE_SIZE_MB = float(os.environ.get('MAX_FILE_SIZE_MB', 10))
    MAX_PROFILE_PHOTO_SIZE_MB = 5
    
    # Events
    DEFAULT_GRACE_PERIOD_MINUTES = 15
    
    # On-duty
    ONDUTY_MAX_ADVANCE_DAYS = 365
    
    # Pagination
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
    
    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'

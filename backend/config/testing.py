"""Testing configuration."""
from datetime import timedelta

from .base import BaseConfig

class TestingConfig(BaseConfig):
    """Testing configuration class."""
    
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    
    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    
    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    
    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    
    # File Upload
    UPLOAD_FOLDER = '/tmp/campus_events_test_uploads'
    BASE_URL = 'http://testserver'
    MAX_ATTENDANCE_PHOTO_SIZE_MB = 1
    MAX_CERTIFICATE_SIZE_MB = 1
    
    # Logging
    LOG_LEVEL = 'WARNING'

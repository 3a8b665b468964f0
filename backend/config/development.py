"""Development configuration."""
import os

from .base import BaseConfig

class DevelopmentConfig(BaseConfig):
    """Development configuration class."""
    
    DEBUG = True
    TESTING = False
    
    # Database (SQLite file unless overridden)
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL') or 'sqlite:///campus_events_dev.db'
    SQLALCHEMY_ECHO = bool(int(os.getenv('SQLALCHEMY_ECHO', '0')))
    
    LOG_LEVEL = 'DEBUG'

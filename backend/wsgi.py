"""WSGI entry point for production deployment."""
import os
from dotenv import load_dotenv

load_dotenv()

from campus_events import create_app

app = create_app(os.getenv('FLASK_ENV', 'production'))

"""Campus Events - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    register_blueprints(app)
    register_error_handlers(app)
    setup_database(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Events',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from campus_events.api.auth import auth_bp
    from campus_events.api.students import students_bp
    from campus_events.api.events import events_bp
    from campus_events.api.attendance import attendance_bp
    from campus_events.api.onduty import onduty_bp
    from campus_events.api.certificates import certificates_bp
    from campus_events.api.analytics import analytics_bp
    from campus_events.api.uploads import uploads_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Admin management
    app.register_blueprint(students_bp, url_prefix='/api/students')

    # Core features
    app.register_blueprint(events_bp, url_prefix='/api/events')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(onduty_bp, url_prefix='/api/onduty')
    app.register_blueprint(certificates_bp, url_prefix='/api/certificates')

    # Reporting
    app.register_blueprint(analytics_bp, url_prefix='/api/analytics')

    # Stored files
    app.register_blueprint(uploads_bp, url_prefix='/uploads')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from campus_events.utils.errors import AppError
    from campus_events.utils.helpers import handle_error
    from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

    @app.errorhandler(AppError)
    def handle_app_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def request_too_large(error):
        return handle_error(error, 413)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        message = str(error) if app.debug else "Internal server error"
        return jsonify({
            'success': False,
            'message': message,
            'error': 'internal_error'
        }), 500

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'success': False,
            'message': 'Token has expired',
            'error': 'token_expired'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'success': False,
            'message': 'Invalid token',
            'error': 'invalid_token'
        }), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'success': False,
            'message': 'Authorization token required',
            'error': 'authorization_required'
        }), 401

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    # app.logger is the ``campus_events`` logger; service module loggers are its children.
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE') or 'logs/app.log'
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        app.logger.info('Campus Events startup')

def setup_database(app: Flask) -> None:
    """Setup database connections."""
    with app.app_context():
        # Import all models so metadata knows every table
        from campus_events.models import (
            User, UserRole, Admin,
            Student, StudentStatus,
            Event, EventParticipant,
            AttendanceLog,
            OnDutyRequest, OnDutyAttendance,
            Certificate
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt='Admin email')
    @click.option('--name', prompt='Admin name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin(email, name, password):
        """Create admin user."""
        from campus_events.services.auth_service import AuthService
        from campus_events.utils.errors import AppError

        try:
            admin = AuthService.create_admin(email, name, password)
        except AppError as e:
            db.session.rollback()
            raise click.ClickException(e.message)
        click.echo(f'Admin user created: {admin.email}')

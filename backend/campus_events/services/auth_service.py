"""Authentication service for user management."""
from flask_jwt_extended import create_access_token, create_refresh_token
from campus_events import db
from campus_events.models.user import Admin, User, UserRole
from campus_events.models.student import Student, StudentStatus
from campus_events.utils import clock
from campus_events.utils.errors import AppError, ConflictError, ForbiddenError, ValidationError
from campus_events.utils.validators import Validator

class AuthService:
    @staticmethod
    def issue_tokens(user: User) -> dict:
        """Access/refresh tokens carrying the user's role as a claim."""
        claims = {'role': user.role.value}
        return {
            "access_token": create_access_token(identity=str(user.id), additional_claims=claims),
            "refresh_token": create_refresh_token(identity=str(user.id), additional_claims=claims),
        }
    
    @staticmethod
    def login(email: str, password: str) -> dict:
        """Authenticate user and return tokens."""
        if not email or not password:
            raise ValidationError("Email and password are required", 'missing_fields')
        
        user = User.query.filter_by(email=email.lower().strip()).first()
        
        if not user or not user.check_password(password):
            raise AppError("Invalid email or password", 'invalid_credentials', 401)
        
        if not user.is_active:
            raise ForbiddenError("Account is deactivated", 'account_inactive')
        
        user.last_login = clock.utcnow()
        db.session.commit()
        
        result = AuthService.issue_tokens(user)
        result["user"] = user.to_dict()
        return result
    
    @staticmethod
    def register_student(data: dict) -> Student:
        """Create a student account whose profile awaits admin approval."""
        name = (data.get('full_name') or data.get('name') or '').strip()
        registration_number = (data.get('registration_number') or data.get('roll_number') or '').strip()
        
        if not name or not data.get('email') or not data.get('password'):
            raise ValidationError("Name, email, and password are required", 'missing_fields')
        if not registration_number:
            raise ValidationError("Registration number is required", 'missing_fields')
        
        email = Validator.validate_email(data['email'])
        password = Validator.validate_password(data['password'])
        
        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already registered", 'email_taken')
        if Student.query.filter_by(registration_number=registration_number).first():
            raise ConflictError("Registration number already registered", 'registration_number_taken')
        
        user = User(email=email, role=UserRole.STUDENT)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()  # Get user.id
        
        student = Student(
            user_id=user.id,
            name=name,
            email=email,
            phone=data.get('phone') or data.get('phone_number'),
            college=data.get('college'),
            department=data.get('department'),
            year=data.get('year'),
            registration_number=registration_number,
            status=StudentStatus.PENDING
        )
        db.session.add(student)
        db.session.commit()
        return student
    
    @staticmethod
    def create_admin(email: str, name: str, password: str) -> Admin:
        email = Validator.validate_email(email)
        Validator.validate_password(password)
        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already registered", 'email_taken')
        
        user = User(email=email, role=UserRole.ADMIN)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        
        admin = Admin(user_id=user.id, name=name, email=email)
        db.session.add(admin)
        db.session.commit()
        return admin

"""Role checks on top of the JWT principal."""
from dataclasses import dataclass
from functools import wraps

from flask_jwt_extended import get_jwt, get_jwt_identity

from campus_events.models.user import UserRole
from campus_events.utils.helpers import error_response

@dataclass(frozen=True)
class Principal:
    """Verified caller identity carried by the access token."""
    id: int
    role: str
    
    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
    
    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT.value

def current_principal() -> Principal:
    """Build the principal for the current request. Requires ``jwt_required``."""
    return Principal(id=int(get_jwt_identity()), role=get_jwt().get('role'))

def _role_required(role: UserRole, message: str):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if get_jwt().get('role') != role.value:
                return error_response(message, 403, 'forbidden')
            
            return f(*args, **kwargs)
        return decorated_function
    return decorator

admin_required = _role_required(UserRole.ADMIN, "Admin access required")
admin_required.__doc__ = "Decorator to require admin role."

student_required = _role_required(UserRole.STUDENT, "Student access required")
student_required.__doc__ = "Decorator to require student role."

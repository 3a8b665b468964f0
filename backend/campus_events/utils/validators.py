"""Validation utilities for request payloads."""
import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, Optional

from campus_events.utils.errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

class Validator:
    """Validation helper class.
    
    Every method raises ``ValidationError`` naming the offending field.
    """
    
    @staticmethod
    def require_fields(data: Dict, required_fields: Iterable[str]) -> None:
        """Validate required fields in data."""
        missing = [
            field for field in required_fields
            if data.get(field) in (None, '')
        ]
        if missing:
            raise ValidationError(
                f"Missing required field: {', '.join(missing)}",
                'missing_fields'
            )
    
    @staticmethod
    def validate_email(email: str) -> str:
        """Validate email format and return it normalized."""
        if not email or not EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("Invalid email format", 'invalid_email')
        return email.strip().lower()
    
    @staticmethod
    def validate_password(password: str) -> str:
        """Validate password strength."""
        if not password or len(password) < 6:
            raise ValidationError(
                "Password must be at least 6 characters long",
                'invalid_password'
            )
        if len(password) > 128:
            raise ValidationError("Password is too long", 'invalid_password')
        return password
    
    @staticmethod
    def parse_date(value: Any, field: str) -> date:
        """Parse a YYYY-MM-DD value."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD", 'invalid_date')
    
    @staticmethod
    def parse_time(value: Any, field: str) -> Optional[time]:
        """Parse an HH:MM or HH:MM:SS value; empty means no time."""
        if value in (None, ''):
            return None
        if isinstance(value, time):
            return value
        match = re.match(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?', str(value).strip())
        if not match:
            raise ValidationError(f"Invalid {field}: expected HH:MM", 'invalid_time')
        try:
            return time(int(match.group(1)), int(match.group(2)), int(match.group(3) or 0))
        except ValueError:
            raise ValidationError(f"Invalid {field}: expected HH:MM", 'invalid_time')
    
    @staticmethod
    def parse_coordinate(value: Any, field: str, limit: float) -> float:
        """Parse a latitude/longitude within ``[-limit, limit]``."""
        if value in (None, ''):
            raise ValidationError(f"Missing required field: {field}", 'missing_fields')
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}", 'invalid_coordinates')
        if not -limit <= number <= limit:
            raise ValidationError(f"{field} out of range", 'invalid_coordinates')
        return number
    
    @staticmethod
    def parse_positive_int(value: Any, field: str, allow_none: bool = True) -> Optional[int]:
        if value in (None, ''):
            if allow_none:
                return None
            raise ValidationError(f"Missing required field: {field}", 'missing_fields')
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}", 'invalid_number')
        if number < 0:
            raise ValidationError(f"{field} must not be negative", 'invalid_number')
        return number

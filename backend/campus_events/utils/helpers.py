"""Helper functions for the application."""
from flask import jsonify
from typing import Any

def handle_error(error, status_code: int):
    """Handle HTTP errors with the standard envelope."""
    message = getattr(error, 'description', None) or str(error)
    return jsonify({
        'success': False,
        'message': message,
        'error': getattr(error, 'name', 'error').lower().replace(' ', '_')
    }), status_code

def success_response(data: Any = None, message: str = None):
    """Return consistent success response."""
    response = {'success': True}
    
    if message is not None:
        response['message'] = message
    
    if data is not None:
        response['data'] = data
    
    return jsonify(response)

def error_response(message: str, status_code: int = 400, code: str = None):
    """Return consistent error response."""
    return jsonify({
        'success': False,
        'message': message,
        'error': code or 'error'
    }), status_code

def isoformat(value) -> Any:
    """Serialize date/time values, pass everything else through."""
    if value is None:
        return None
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value

"""Event QR payloads: generation, rendering and parsing."""
import qrcode
import io
import base64
import json
from typing import Any, Dict

from campus_events.utils import clock
from campus_events.utils.errors import ValidationError

QR_TYPE = 'event_attendance'

class QRService:
    """Service for QR code operations."""
    
    @staticmethod
    def build_event_payload(event) -> str:
        """Opaque JSON blob printed on an event's QR code."""
        return json.dumps({
            'eventId': event.id,
            'type': QR_TYPE,
            'name': event.name,
            'venue': event.venue,
            'timestamp': clock.utcnow().isoformat()
        }, separators=(',', ':'))
    
    @staticmethod
    def render_data_url(payload: str) -> str:
        """Render ``payload`` as a PNG data URL."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        
        img = qr.make_image(fill_color="black", back_color="white")
        
        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()
        
        return f"data:image/png;base64,{img_str}"
    
    @staticmethod
    def parse_event_id(qr_data: Any) -> int:
        """Extract the event id from a scanned payload."""
        if not qr_data:
            raise ValidationError("QR data is required", 'invalid_qr_code')
        
        if isinstance(qr_data, dict):
            payload: Dict = qr_data
        else:
            try:
                payload = json.loads(qr_data)
            except (TypeError, ValueError):
                raise ValidationError("Invalid QR code format", 'invalid_qr_code')
        
        if not isinstance(payload, dict):
            raise ValidationError("Invalid QR code format", 'invalid_qr_code')
        
        event_id = payload.get('eventId', payload.get('event_id'))
        try:
            return int(event_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid event QR code", 'invalid_qr_code')

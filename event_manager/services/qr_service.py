"""
QR code generation service
"""

import io

import qrcode

from event_manager.core.config import settings


class QRService:
    """Service for generating QR codes that link to event pages"""

    @staticmethod
    def get_event_url(event_id: int) -> str:
        """The URL the event QR code points to"""
        return f"{settings.BASE_URL.rstrip('/')}/events/{event_id}"

    @staticmethod
    def generate_event_qr(event_id: int, format: str = "PNG") -> bytes:
        """Generate a QR code image for the event page"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_event_url(event_id))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)
        return buffer.getvalue()

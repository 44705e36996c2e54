import base64
import hashlib
import hmac
import io
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import qrcode

logger = logging.getLogger(__name__)


class QrEncoder:
    """Encodes a signed booking payload as a PNG data URL."""

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8")

    def _signature(self, data: Dict[str, Any]) -> str:
        message = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return hmac.new(self._secret, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, payload: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        data = dict(payload)
        data["timestamp"] = (now or datetime.utcnow()).isoformat()
        data["signature"] = self._signature(data)
        return data

    def encode(self, payload: Dict[str, Any], now: Optional[datetime] = None) -> str:
        content = json.dumps(self.sign(payload, now), default=str)
        img = qrcode.make(content)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("utf-8")

    def verify(self, data: Dict[str, Any]) -> bool:
        signature = data.get("signature")
        if not isinstance(signature, str):
            return False
        unsigned = {k: v for k, v in data.items() if k != "signature"}
        return hmac.compare_digest(signature, self._signature(unsigned))

    def parse(self, content: str) -> Optional[Dict[str, Any]]:
        """Decoded scanner text -> payload, or None when it is not a valid signed payload."""
        try:
            data = json.loads(content)
        except (TypeError, ValueError):
            logger.warning("unreadable QR content")
            return None

        if not isinstance(data, dict) or not self.verify(data):
            logger.warning("QR signature verification failed")
            return None
        return data


def booking_qr_payload(booking, facility_name: str) -> Dict[str, Any]:
    return {
        "booking_id": booking.id,
        "booking_code": booking.booking_code,
        "facility_name": facility_name,
        "date": booking.date.isoformat(),
        "time_range": f"{booking.start_time}-{booking.end_time}",
    }

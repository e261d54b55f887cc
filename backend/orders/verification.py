"""
Order numbers, one-time pickup codes and the QR artifact handed to customers.

The QR image is a convenience for scanners; the OTP stored on the order is the
actual secret and is checked against the stored value.
"""
import base64
import hmac
import json
import re
import secrets
from io import BytesIO

import qrcode
from django.conf import settings

ORDER_NUMBER_PREFIX = "ORD-"
_ORDER_NUMBER_RE = re.compile(rf"^{re.escape(ORDER_NUMBER_PREFIX)}(\d+)$")


def generate_otp(length=None) -> str:
    """Numeric one-time code drawn from the secrets module."""
    length = length or getattr(settings, 'ORDER_OTP_LENGTH', 6)
    return "".join(secrets.choice("0123456789") for _ in range(length))


def otp_matches(stored, submitted) -> bool:
    if not stored or not submitted:
        return False
    return hmac.compare_digest(str(stored), str(submitted).strip())


def next_order_number(restaurant) -> str:
    """
    Next sequential order number for the restaurant (ORD-00001, ORD-00002, ...).
    Uniqueness is enforced by the database; callers retry on a collision.
    """
    from .models import Order

    last_order = (
        Order.all_objects.filter(restaurant=restaurant, order_number__startswith=ORDER_NUMBER_PREFIX)
        .order_by("-order_number")
        .first()
    )
    next_number = 1
    if last_order:
        match = _ORDER_NUMBER_RE.match(last_order.order_number)
        if match:
            next_number = int(match.group(1)) + 1
    return f"{ORDER_NUMBER_PREFIX}{next_number:05d}"


def build_qr_payload(order) -> str:
    """JSON string encoded into the QR image: {"orderId", "otp", "userId"}."""
    return json.dumps({
        "orderId": str(order.id),
        "otp": order.otp,
        "userId": str(order.customer_id) if order.customer_id else None,
    })


def parse_qr_payload(raw) -> dict:
    """Decode a scanned QR payload. Raises ValueError on anything that is not ours."""
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise ValueError("QR payload is not valid JSON")
    if not isinstance(data, dict) or not data.get("orderId") or not data.get("otp"):
        raise ValueError("QR payload must contain orderId and otp")
    return data


def render_qr_data_url(payload: str) -> str:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=6, border=2)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")

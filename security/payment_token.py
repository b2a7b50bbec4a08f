"""Signed guest payment links.

A link carries ``HMAC-SHA256(secret, "<booking id>.<guest email>")`` so the
unauthenticated payment page can only be opened for the booking and the
address the receipt was mailed to.
"""
import hashlib
import hmac

from flask import current_app, request


def _secret() -> bytes:
    secret = current_app.config.get("PAYMENT_LINK_SECRET") or current_app.config["SECRET_KEY"]
    return secret.encode("utf-8")


def generate_payment_token(booking_id, email: str) -> str:
    payload = f"{booking_id}.{email or ''}".encode("utf-8")
    return hmac.new(_secret(), payload, hashlib.sha256).hexdigest()


def verify_payment_token(booking_id, email: str, token) -> bool:
    if not token or not isinstance(token, str):
        return False
    expected = generate_payment_token(booking_id, email)
    return hmac.compare_digest(expected, token)


def build_payment_link(booking) -> str:
    base_url = current_app.config.get("PUBLIC_BASE_URL") or request.host_url
    token = generate_payment_token(booking.id, booking.guest_email)
    return f"{base_url.rstrip('/')}/pay/{booking.id}?t={token}"

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app, render_template
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.email_log import EmailLog

logger = logging.getLogger(__name__)


def _deliver(msg: EmailMessage):
    cfg = current_app.config
    with smtplib.SMTP(cfg["SMTP_HOST"], cfg.get("SMTP_PORT", 587), timeout=cfg.get("SMTP_TIMEOUT_SECONDS", 10)) as server:
        if cfg.get("SMTP_USE_TLS", True):
            server.starttls()
        if cfg.get("SMTP_USERNAME") and cfg.get("SMTP_PASSWORD"):
            server.login(cfg["SMTP_USERNAME"], cfg["SMTP_PASSWORD"])
        server.send_message(msg)


def _record(to_email: str, subject: str, status: str, error=None):
    try:
        db.session.add(EmailLog(recipient=to_email, subject=subject[:255], status=status, error_message=error))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not write email log for %s", to_email)


def send_email(to_email: str, subject: str, html: str, text=None):
    """
    Sends one message and records the attempt in email_logs.
    Returns (ok, error); delivery problems never raise.
    """
    host = current_app.config.get("SMTP_HOST")
    from_email = current_app.config.get("SMTP_FROM_EMAIL")
    from_name = current_app.config.get("SMTP_FROM_NAME", "Kina Resort")

    if not to_email:
        return False, "No recipient"

    if not host or not from_email:
        error = "Email not configured"
        logger.warning("Skipping email to %s (%s): %s", to_email, subject, error)
        _record(to_email, subject, "failed", error)
        return False, error

    msg = EmailMessage()
    msg["From"] = formataddr((from_name, from_email))
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text or "This message requires an HTML capable email client.")
    msg.add_alternative(html, subtype="html")

    try:
        _deliver(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Email to %s failed: %s", to_email, exc)
        _record(to_email, subject, "failed", str(exc))
        return False, str(exc)

    logger.info("Email sent to %s: %s", to_email, subject)
    _record(to_email, subject, "sent")
    return True, None


def send_booking_receipt(booking, pay_link=None):
    html = render_template(
        "emails/booking_receipt.html",
        booking=booking,
        pay_link=pay_link if booking.status != "cancelled" and booking.total_cost > 0 else None,
    )
    if booking.status == "confirmed":
        subject = "Booking Confirmation - Kina Resort"
    else:
        subject = "Booking Receipt - Kina Resort"
    return send_email(booking.guest_email, subject, html)


def send_payment_receipt(booking, method: str):
    html = render_template("emails/payment_receipt.html", booking=booking, method=method)
    return send_email(booking.guest_email, "Payment Confirmation - Kina Resort", html)


def send_password_reset_otp(user, code: str, ttl_minutes: int):
    html = render_template("emails/password_reset_otp.html", user=user, code=code, ttl_minutes=ttl_minutes)
    return send_email(user.email, "Password Reset OTP - Kina Resort", html)

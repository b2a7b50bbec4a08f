from datetime import datetime
import logging

from flask import Blueprint, request, jsonify, render_template

from models import db
from models.booking import Booking
from models.payment import METHODS, Payment
from security.payment_token import verify_payment_token
from utils.audit import log_event
from utils.emailer import send_payment_receipt
from utils.parsing import json_body, text_field

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__)

METHOD_LABELS = {
    "bank": "Bank Payment",
    "gcash": "GCash Payment",
    "cashier": "Pay at Counter/Cashier",
}


def _error(message, status, as_json):
    if as_json:
        return jsonify(error=message), status
    return render_template("message.html", title="Payment", message=message), status


@payments_bp.get("/pay/<int:booking_id>")
def pay_page(booking_id: int):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return render_template("message.html", title="Payment", message="Booking not found."), 404

    token = request.args.get("t")
    if not verify_payment_token(booking.id, booking.guest_email, token):
        return render_template("message.html", title="Payment", message="Invalid or expired payment link."), 400

    return render_template("pay.html", booking=booking, token=token, methods=METHOD_LABELS), 200


@payments_bp.post("/api/payments/confirm")
def confirm_payment():
    as_json = request.is_json
    data = json_body() if as_json else request.form

    booking_id = data.get("booking_id")
    token = data.get("token")
    method = text_field(data, "method").lower()

    if not booking_id or not token or not method:
        return _error("Missing payment details", 400, as_json)
    if method not in METHODS:
        return _error(f"Invalid payment method. Use one of: {', '.join(METHODS)}", 400, as_json)

    try:
        booking_id = int(booking_id)
    except (TypeError, ValueError):
        return _error("Booking not found", 404, as_json)

    booking = db.session.get(Booking, booking_id)
    if not booking:
        return _error("Booking not found", 404, as_json)

    if not verify_payment_token(booking.id, booking.guest_email, token):
        return _error("Invalid or expired payment link", 400, as_json)

    if booking.status == "cancelled":
        return _error("This booking has been cancelled", 409, as_json)

    if booking.status == "pending":
        booking.status = "confirmed"

    payment = Payment.query.filter_by(booking_id=booking.id, status="PAID").first()
    if payment is None:
        payment = Payment(
            booking_id=booking.id,
            method=method,
            amount=booking.total_cost,
            currency="PHP",
            status="PAID",
            paid_at=datetime.utcnow(),
        )
        db.session.add(payment)
    db.session.commit()

    ok, error = send_payment_receipt(booking, METHOD_LABELS[method])
    if not ok:
        logger.warning("Payment receipt for booking %s not sent: %s", booking.id, error)

    log_event(
        "booking_payment",
        user_id=booking.created_by,
        user_role="guest",
        details=f"Payment confirmed for booking {booking.id} via {method}",
        table_name="bookings",
        record_id=booking.id,
    )

    if as_json:
        return jsonify(
            message="Payment recorded",
            booking=booking.to_dict(),
            payment_method=payment.method,
            amount=payment.amount,
        ), 200
    return render_template("payment_confirmed.html", booking=booking), 200

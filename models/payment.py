from datetime import datetime
from models.db import db

METHODS = ("bank", "gcash", "cashier")


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)

    method = db.Column(db.String(20), nullable=False)  # bank, gcash, cashier
    amount = db.Column(db.Integer, nullable=False)     # whole pesos
    currency = db.Column(db.String(10), nullable=False, default="PHP")

    status = db.Column(db.String(20), nullable=False, default="PAID")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship(
        "Booking",
        backref=db.backref("payments", lazy=True, cascade="all, delete-orphan"),
    )

from datetime import datetime
from models.db import db

STATUSES = ("pending", "confirmed", "cancelled", "completed")
ACTIVE_STATUSES = ("pending", "confirmed")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    guest_name = db.Column(db.String(160), nullable=False)
    guest_email = db.Column(db.String(255), nullable=False, index=True)
    guest_phone = db.Column(db.String(40), nullable=True)

    # what is booked: a package row, or a free-form room type label
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id"), nullable=True, index=True)
    room_type = db.Column(db.String(120), nullable=True, index=True)

    check_in = db.Column(db.Date, nullable=False, index=True)
    check_out = db.Column(db.Date, nullable=False, index=True)
    booking_time = db.Column(db.String(40), nullable=True)

    guest_count = db.Column(db.Integer, nullable=False, default=1)
    adults = db.Column(db.Integer, nullable=False, default=0)
    kids = db.Column(db.Integer, nullable=False, default=0)
    visit_time = db.Column(db.String(20), nullable=True)  # morning, night
    cottage = db.Column(db.String(20), nullable=True)     # tropahan, barkads, family

    entrance_fee = db.Column(db.Integer, nullable=False, default=0)
    cottage_fee = db.Column(db.Integer, nullable=False, default=0)
    extra_guest_charge = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default="pending")
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    package = db.relationship("Package", lazy="joined")

    @property
    def total_cost(self) -> int:
        return (self.entrance_fee or 0) + (self.cottage_fee or 0) + (self.extra_guest_charge or 0)

    @property
    def package_title(self):
        if self.package is not None:
            return self.package.title
        return self.room_type or "Package"

    def to_dict(self):
        return {
            "id": self.id,
            "guest_name": self.guest_name,
            "guest_email": self.guest_email,
            "guest_phone": self.guest_phone,
            "package_id": self.package_id,
            "package": self.package.to_dict() if self.package is not None else None,
            "room_type": self.room_type,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "booking_time": self.booking_time,
            "guest_count": self.guest_count,
            "adults": self.adults,
            "kids": self.kids,
            "visit_time": self.visit_time,
            "cottage": self.cottage,
            "entrance_fee": self.entrance_fee,
            "cottage_fee": self.cottage_fee,
            "extra_guest_charge": self.extra_guest_charge,
            "total_cost": self.total_cost,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

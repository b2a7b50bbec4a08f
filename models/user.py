from datetime import datetime
from models.db import db

ROLES = ("admin", "staff", "customer")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    full_name = db.Column(db.String(160), nullable=True)

    role = db.Column(db.String(20), nullable=False, default="customer")  # admin, staff, customer
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    # bearer tokens issued before this are rejected
    password_changed_at = db.Column(db.DateTime, nullable=True)

    # loyalty metadata
    member_since = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    loyalty_points = db.Column(db.Integer, default=0, nullable=False)
    total_bookings = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def display_name(self):
        if self.full_name:
            return self.full_name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.display_name,
            "role": self.role,
            "is_active": self.is_active,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "member_since": self.member_since.isoformat() if self.member_since else None,
            "loyalty_points": self.loyalty_points,
            "total_bookings": self.total_bookings,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

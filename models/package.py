from datetime import datetime
from models.db import db


class Package(db.Model):
    __tablename__ = "packages"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(40), nullable=True)  # rooms, cottages, function-halls

    price = db.Column(db.Integer, nullable=False, default=0)  # whole pesos
    capacity = db.Column(db.Integer, nullable=False, default=4)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "capacity": self.capacity,
            "is_active": self.is_active,
        }

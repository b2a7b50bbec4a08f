from models import db
from models.package import Package

DEFAULT_PACKAGES = [
    {"title": "Standard Room", "category": "rooms", "price": 1500, "capacity": 4,
     "description": "Air-conditioned room for up to four guests."},
    {"title": "Ocean View Room", "category": "rooms", "price": 2500, "capacity": 4,
     "description": "Room with a balcony facing the beach."},
    {"title": "Deluxe Suite", "category": "rooms", "price": 3500, "capacity": 6,
     "description": "Two-bedroom suite with kitchenette."},
    {"title": "Function Hall", "category": "function-halls", "price": 8000, "capacity": 80,
     "description": "Events venue with sound system."},
]


def seed_packages():
    existing = {p.title for p in Package.query.all()}
    added = 0
    for row in DEFAULT_PACKAGES:
        if row["title"] not in existing:
            db.session.add(Package(**row))
            added += 1
    db.session.commit()
    return added

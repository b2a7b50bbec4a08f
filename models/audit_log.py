from datetime import datetime
from models.db import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)  # nullable for guest/system events
    user_role = db.Column(db.String(20), nullable=True)
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. booking_create, user_delete
    table_name = db.Column(db.String(80), nullable=True)
    record_id = db.Column(db.String(80), nullable=True)
    details = db.Column(db.Text, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)

    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

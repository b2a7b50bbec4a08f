import logging
import re

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE)
_INT_RE = re.compile(r"\b([0-9]+)\b")

# checked in order; first keyword found in the action wins
_TABLE_KEYWORDS = (
    ("booking", "bookings"),
    ("user", "users"),
    ("package", "packages"),
)


def infer_table_name(action: str):
    for keyword, table in _TABLE_KEYWORDS:
        if keyword in (action or ""):
            return table
    return None


def infer_record_id(details):
    if not details:
        return None
    uuid_match = _UUID_RE.search(details)
    if uuid_match:
        return uuid_match.group(0)
    int_match = _INT_RE.search(details)
    if int_match and "booking" in details:
        return int_match.group(1)
    return None


def client_ip():
    if not has_request_context():
        return None
    forwarded = request.headers.get("X-Forwarded-For")
    raw = forwarded.split(",")[0].strip() if forwarded else request.remote_addr
    if not raw:
        return None
    return re.sub(r"^::ffff:", "", raw)


def log_event(action: str, user_id=None, user_role=None, details=None,
              table_name=None, record_id=None, new_values=None):
    """
    Appends an audit row. Never raises: a failed insert is logged and
    rolled back so the caller's response is unaffected.
    """
    if new_values is None and user_role:
        new_values = {"role": user_role}

    user_agent = None
    if has_request_context():
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    row = AuditLog(
        user_id=user_id,
        user_role=user_role,
        action=action,
        table_name=table_name or infer_table_name(action),
        record_id=str(record_id) if record_id is not None else infer_record_id(details),
        details=details,
        new_values=new_values,
        ip_address=client_ip(),
        user_agent=user_agent,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Audit logging failed for action %s by user %s", action, user_id)
        return None

    logger.info("Audit log created: %s by user %s", action, user_id)
    return row

from collections import Counter
from datetime import datetime, time, timedelta

from flask import Blueprint, jsonify, request

from models import db
from models.audit_log import AuditLog
from models.user import User
from security.rbac import require_roles
from utils.parsing import page_args, parse_date

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-logs")

SYSTEM_USER = {"id": None, "full_name": "System", "email": "N/A"}


def _serialize(rows):
    user_ids = {r.user_id for r in rows if r.user_id is not None}
    users = {u.id: u for u in User.query.filter(User.id.in_(user_ids)).all()} if user_ids else {}

    out = []
    for r in rows:
        user = users.get(r.user_id)
        out.append({
            "id": r.id,
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "user_id": r.user_id,
            "user_role": r.user_role,
            "action": r.action,
            "table_name": r.table_name,
            "record_id": r.record_id,
            "details": r.details,
            "new_values": r.new_values,
            "ip_address": r.ip_address,
            "user_agent": r.user_agent,
            "user": {"id": user.id, "full_name": user.display_name, "email": user.email} if user else SYSTEM_USER,
        })
    return out


def _newest_first(q):
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())


@audit_bp.get("")
@require_roles("admin")
def list_audit_logs():
    limit, offset = page_args()
    rows = _newest_first(AuditLog.query).offset(offset).limit(limit).all()
    return jsonify(_serialize(rows)), 200


@audit_bp.get("/stats")
@require_roles("admin")
def audit_stats():
    total = db.session.query(db.func.count(AuditLog.id)).scalar() or 0

    since = datetime.utcnow() - timedelta(days=7)
    recent = db.session.query(db.func.count(AuditLog.id)).filter(AuditLog.created_at >= since).scalar() or 0

    # breakdown by the leading word of the action (booking, user, package...)
    actions = [a for (a,) in _newest_first(db.session.query(AuditLog.action)).limit(1000).all()]
    breakdown = Counter(a.split("_")[0] for a in actions)

    return jsonify(
        total_logs=total,
        recent_logs=recent,
        action_breakdown=dict(breakdown),
    ), 200


@audit_bp.get("/search")
@require_roles("admin")
def search_audit_logs():
    limit, offset = page_args(default_limit=50)
    q = AuditLog.query

    action = (request.args.get("action") or "").strip()
    if action:
        q = q.filter(AuditLog.action.ilike(f"%{action}%"))

    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    try:
        start = request.args.get("start_date")
        if start:
            q = q.filter(AuditLog.created_at >= datetime.combine(parse_date(start), time.min))
        end = request.args.get("end_date")
        if end:
            # inclusive of the whole end day
            q = q.filter(AuditLog.created_at < datetime.combine(parse_date(end) + timedelta(days=1), time.min))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = _newest_first(q).offset(offset).limit(limit).all()
    return jsonify(_serialize(rows)), 200

from datetime import date

from flask import Blueprint, jsonify, request

from models import db
from models.booking import STATUSES, Booking
from models.package import Package
from models.user import User
from security.rbac import require_roles

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def booking_stats(today=None):
    today = today or date.today()

    counts = dict(
        db.session.query(Booking.status, db.func.count(Booking.id))
        .group_by(Booking.status)
        .all()
    )
    total = sum(counts.values())
    confirmed = counts.get("confirmed", 0)

    revenue = 0
    for b in Booking.query.filter(Booking.status.in_(("confirmed", "completed"))).all():
        revenue += b.total_cost

    stats = {f"{status}_bookings": counts.get(status, 0) for status in STATUSES}
    stats.update(
        total_bookings=total,
        today_bookings=Booking.query.filter(Booking.check_in == today).count(),
        occupancy_rate=round(confirmed * 100 / total) if total else 0,
        revenue=revenue,
        packages_count=Package.query.filter_by(is_active=True).count(),
        users_count=User.query.filter_by(is_active=True).count(),
    )
    return stats


def recent_bookings(limit=10):
    return Booking.query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()


def today_operations(today=None):
    today = today or date.today()
    check_ins = Booking.query.filter(
        Booking.check_in == today, Booking.status.in_(("confirmed", "pending"))
    ).all()
    check_outs = Booking.query.filter(
        Booking.check_out == today, Booking.status == "confirmed"
    ).all()
    pending = (
        Booking.query.filter_by(status="pending")
        .order_by(Booking.check_in.asc())
        .limit(20)
        .all()
    )
    return check_ins, check_outs, pending


@dashboard_bp.get("/stats")
@require_roles("admin", "staff")
def stats():
    return jsonify(booking_stats()), 200


@dashboard_bp.get("/recent-bookings")
@require_roles("admin", "staff")
def recent():
    limit = request.args.get("limit", type=int) or 10
    limit = max(1, min(limit, 100))
    return jsonify([b.to_dict() for b in recent_bookings(limit)]), 200


@dashboard_bp.get("/today-operations")
@require_roles("admin", "staff")
def today():
    check_ins, check_outs, pending = today_operations()
    return jsonify(
        check_ins=[b.to_dict() for b in check_ins],
        check_outs=[b.to_dict() for b in check_outs],
        pending_bookings=[b.to_dict() for b in pending],
    ), 200

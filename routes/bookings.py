import logging
from datetime import date

from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import ACTIVE_STATUSES, STATUSES, Booking
from models.package import Package
from security.payment_token import build_payment_link
from security.rbac import has_role, require_roles
from utils.audit import log_event
from utils.auth_context import login_required
from utils.availability import has_conflict
from utils.emailer import send_booking_receipt
from utils.parsing import is_valid_email, json_body, normalize_email, page_args, parse_count, parse_date
from utils.pricing import PricingError, apply_fees

logger = logging.getLogger(__name__)

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")

STAFF_ROLES = ("admin", "staff")

_TEXT_FIELDS = ("guest_name", "guest_phone", "room_type", "booking_time")
_COUNT_FIELDS = ("guest_count", "adults", "kids")


class BookingError(Exception):
    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def _clean_text(value, limit=160):
    if value is None:
        return None
    if not isinstance(value, (str, int)):
        raise BookingError("Invalid text value")
    value = str(value).strip()
    return value[:limit] or None


def _choice(value):
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


def _resolve_package(value):
    if value in (None, ""):
        return None
    try:
        package_id = int(value)
    except (TypeError, ValueError):
        raise BookingError("package_id must be an integer")
    package = db.session.get(Package, package_id)
    if not package or not package.is_active:
        raise BookingError("Package not found", 404)
    return package


def _check_dates(check_in, check_out):
    if check_out < check_in:
        raise BookingError("Check-out date cannot be before check-in date")


def _check_availability(booking, exclude_id=None):
    if booking.status not in ACTIVE_STATUSES:
        return
    if has_conflict(
        booking.check_in,
        booking.check_out,
        package_id=booking.package_id,
        room_type=booking.room_type,
        exclude_id=exclude_id,
    ):
        raise BookingError("Room is already booked for these dates", 409)


def _json_safe(changes: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in changes.items()}


def create_booking(data, user=None) -> Booking:
    """
    Validates a reservation request, prices it and stores it.
    Raises BookingError; the caller decides how to render it.
    """
    guest_name = _clean_text(data.get("guest_name"))
    guest_email = normalize_email(data.get("guest_email"))
    if user is not None:
        guest_name = guest_name or user.display_name
        guest_email = guest_email or user.email

    if not guest_name or not guest_email:
        raise BookingError("guest_name and guest_email are required")
    if not is_valid_email(guest_email):
        raise BookingError("Invalid guest_email")

    package = _resolve_package(data.get("package_id"))
    room_type = _clean_text(data.get("room_type"), 120)
    if package is None and not room_type:
        raise BookingError("package_id or room_type is required")

    try:
        check_in = parse_date(data.get("check_in"))
        check_out = parse_date(data.get("check_out"))
    except ValueError:
        raise BookingError("check_in and check_out must be dates (YYYY-MM-DD)")

    if check_in < date.today():
        raise BookingError("Check-in date cannot be in the past")
    _check_dates(check_in, check_out)

    status = "pending"
    if user is not None and user.role in STAFF_ROLES:
        status = _choice(data.get("status")) or "pending"
        if status not in STATUSES:
            raise BookingError(f"Invalid status. Use one of: {', '.join(STATUSES)}")

    try:
        counts = {field: parse_count(data.get(field), field) for field in _COUNT_FIELDS}
    except ValueError as exc:
        raise BookingError(str(exc))

    booking = Booking(
        guest_name=guest_name,
        guest_email=guest_email,
        guest_phone=_clean_text(data.get("guest_phone"), 40),
        package_id=package.id if package else None,
        room_type=room_type,
        check_in=check_in,
        check_out=check_out,
        booking_time=_clean_text(data.get("booking_time"), 40),
        guest_count=counts["guest_count"] or 1,
        adults=counts["adults"],
        kids=counts["kids"],
        visit_time=_choice(data.get("visit_time")),
        cottage=_choice(data.get("cottage")),
        status=status,
        created_by=user.id if user is not None else None,
    )
    try:
        apply_fees(booking)
    except PricingError as exc:
        raise BookingError(str(exc))

    _check_availability(booking)

    db.session.add(booking)
    if user is not None and user.role == "customer":
        user.total_bookings = (user.total_bookings or 0) + 1
    db.session.commit()

    log_event(
        "booking_create",
        user_id=user.id if user is not None else None,
        user_role=user.role if user is not None else "guest",
        details=f"Created booking {booking.id} for {booking.guest_name}",
        record_id=booking.id,
    )

    ok, error = send_booking_receipt(booking, pay_link=build_payment_link(booking))
    if not ok:
        logger.warning("Receipt for booking %s not sent: %s", booking.id, error)
    return booking


def update_booking(booking, data) -> dict:
    """Applies a partial update in place and returns the changed fields."""
    changes = {}

    for field in _TEXT_FIELDS:
        if field in data:
            limit = 40 if field in ("guest_phone", "booking_time") else 160
            changes[field] = _clean_text(data[field], limit)

    if "guest_email" in data:
        email = normalize_email(data["guest_email"])
        if not is_valid_email(email):
            raise BookingError("Invalid guest_email")
        changes["guest_email"] = email

    if "package_id" in data:
        package = _resolve_package(data["package_id"])
        changes["package_id"] = package.id if package else None

    for field in ("check_in", "check_out"):
        if field in data:
            try:
                changes[field] = parse_date(data[field])
            except ValueError:
                raise BookingError(f"{field} must be a date (YYYY-MM-DD)")

    for field in _COUNT_FIELDS:
        if field in data:
            try:
                changes[field] = parse_count(data[field], field)
            except ValueError as exc:
                raise BookingError(str(exc))

    for field in ("visit_time", "cottage"):
        if field in data:
            changes[field] = _choice(data[field])

    if "status" in data:
        status = _choice(data["status"])
        if status not in STATUSES:
            raise BookingError(f"Invalid status. Use one of: {', '.join(STATUSES)}")
        changes["status"] = status

    if not changes:
        raise BookingError("No updatable fields supplied")

    for field, value in changes.items():
        setattr(booking, field, value)

    if booking.package_id is None and not booking.room_type:
        raise BookingError("package_id or room_type is required")
    if not booking.guest_name:
        raise BookingError("guest_name cannot be empty")

    _check_dates(booking.check_in, booking.check_out)
    try:
        apply_fees(booking)
    except PricingError as exc:
        raise BookingError(str(exc))
    _check_availability(booking, exclude_id=booking.id)
    return changes


def _visible_to_current_user(booking) -> bool:
    if has_role(*STAFF_ROLES):
        return True
    return booking.created_by == g.user.id or booking.guest_email == g.user.email


# ---------- public: availability ----------
@bookings_bp.get("/availability")
def availability():
    try:
        check_in = parse_date(request.args.get("check_in"))
        check_out = parse_date(request.args.get("check_out"))
    except ValueError:
        return jsonify(error="check_in and check_out must be dates (YYYY-MM-DD)"), 400
    if check_out < check_in:
        return jsonify(error="Check-out date cannot be before check-in date"), 400

    package_id = request.args.get("package_id", type=int)
    room_type = (request.args.get("room_type") or "").strip() or None
    if package_id is None and not room_type:
        return jsonify(error="package_id or room_type is required"), 400

    taken = has_conflict(check_in, check_out, package_id=package_id, room_type=room_type)
    return jsonify(
        available=not taken,
        check_in=check_in.isoformat(),
        check_out=check_out.isoformat(),
        package_id=package_id,
        room_type=room_type,
    ), 200


# ---------- list / read ----------
@bookings_bp.get("")
@login_required
def list_bookings():
    limit, offset = page_args()
    q = Booking.query

    if has_role(*STAFF_ROLES):
        status = request.args.get("status")
        if status and status != "all":
            q = q.filter(Booking.status == status)
        package_id = request.args.get("package_id", type=int)
        if package_id:
            q = q.filter(Booking.package_id == package_id)
    else:
        q = q.filter(db.or_(Booking.created_by == g.user.id, Booking.guest_email == g.user.email))

    rows = q.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(offset).limit(limit).all()
    return jsonify([b.to_dict() for b in rows]), 200


@bookings_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = db.session.get(Booking, booking_id)
    if not booking or not _visible_to_current_user(booking):
        return jsonify(error="Booking not found"), 404
    return jsonify(booking.to_dict()), 200


# ---------- create ----------
@bookings_bp.post("")
@login_required
def create():
    data = json_body()
    try:
        booking = create_booking(data, user=g.user)
    except BookingError as exc:
        db.session.rollback()
        return jsonify(error=exc.message), exc.status
    return jsonify(booking.to_dict()), 201


# ---------- STAFF/ADMIN: update ----------
@bookings_bp.route("/<int:booking_id>", methods=["PUT", "PATCH"])
@require_roles(*STAFF_ROLES)
def update(booking_id: int):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404

    data = json_body()
    previous_status = booking.status
    try:
        changes = update_booking(booking, data)
    except BookingError as exc:
        db.session.rollback()
        return jsonify(error=exc.message), exc.status

    db.session.commit()

    log_event(
        "booking_update",
        user_id=g.user.id,
        user_role=g.user.role,
        details=f"Updated booking {booking.id}",
        record_id=booking.id,
        new_values=_json_safe(changes),
    )

    if booking.status == "confirmed" and previous_status != "confirmed":
        ok, error = send_booking_receipt(booking, pay_link=build_payment_link(booking))
        if not ok:
            logger.warning("Confirmation for booking %s not sent: %s", booking.id, error)

    return jsonify(booking.to_dict()), 200


# ---------- ADMIN: delete ----------
@bookings_bp.delete("/<int:booking_id>")
@require_roles("admin")
def delete(booking_id: int):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404

    db.session.delete(booking)
    db.session.commit()

    log_event(
        "booking_delete",
        user_id=g.user.id,
        user_role=g.user.role,
        details=f"Deleted booking {booking_id}",
        record_id=booking_id,
    )
    return jsonify(message="Booking deleted"), 200

from flask import Blueprint, g, make_response, redirect, render_template, request, url_for

from models import db
from models.package import Package
from routes.auth import DASHBOARD_ROLES, authenticate, start_dashboard_session
from routes.bookings import BookingError, create_booking
from routes.dashboard import booking_stats, recent_bookings, today_operations
from security.payment_token import build_payment_link
from utils.parsing import normalize_email

pages_bp = Blueprint("pages", __name__)


def _active_packages():
    return Package.query.filter_by(is_active=True).order_by(Package.id.asc()).all()


@pages_bp.get("/")
def book_form():
    return render_template("book.html", packages=_active_packages(), form={}, error=None), 200


@pages_bp.post("/book")
def book_submit():
    try:
        booking = create_booking(request.form, user=None)
    except BookingError as exc:
        db.session.rollback()
        return render_template(
            "book.html", packages=_active_packages(), form=request.form, error=exc.message
        ), exc.status

    return render_template(
        "booking_received.html", booking=booking, pay_link=build_payment_link(booking)
    ), 201


@pages_bp.route("/admin/login", methods=["GET", "POST"])
def admin_login():
    if request.method == "GET":
        return render_template("admin_login.html", error=None, email=""), 200

    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    if not email or not password:
        return render_template("admin_login.html", error="Email and password required", email=email), 400

    user, error, status = authenticate(email, password)
    if user is None:
        return render_template("admin_login.html", error=error, email=email), status
    if user.role not in DASHBOARD_ROLES:
        return render_template(
            "admin_login.html", error="This account cannot access the dashboard", email=email
        ), 403

    resp = make_response(redirect(url_for("pages.admin_dashboard")))
    start_dashboard_session(user, resp)
    return resp


@pages_bp.get("/admin")
def admin_dashboard():
    user = getattr(g, "user", None)
    if user is None or not user.is_active or user.role not in DASHBOARD_ROLES:
        return redirect(url_for("pages.admin_login"))

    check_ins, check_outs, pending = today_operations()
    return render_template(
        "dashboard.html",
        user=user,
        stats=booking_stats(),
        recent=recent_bookings(10),
        check_ins=check_ins,
        check_outs=check_outs,
        pending=pending,
    ), 200

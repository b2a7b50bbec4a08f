import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from models.password_reset_otp import PasswordResetOtp
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.session import (
    cookie_name,
    create_session,
    revoke_all_sessions,
    revoke_session,
    set_session_cookie,
)
from security.csrf import issue_csrf_token
from security.tokens import issue_access_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import send_password_reset_otp
from utils.parsing import is_valid_email, json_body, normalize_email, text_field

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")

DASHBOARD_ROLES = ("admin", "staff")


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def _new_otp_code() -> str:
    length = current_app.config.get("OTP_LENGTH", 6)
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def _names(data):
    first_name = text_field(data, "first_name") or text_field(data, "firstName")
    last_name = text_field(data, "last_name") or text_field(data, "lastName")
    full_name = text_field(data, "full_name") or f"{first_name} {last_name}".strip()
    return first_name or None, last_name or None, full_name or None


def authenticate(email: str, password: str):
    """Returns (user, error, status). user is None on failure."""
    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        return None, "Invalid credentials", 401
    if not user.is_active:
        return None, "Account is deactivated", 403
    return user, None, 200


def start_dashboard_session(user, resp):
    """Rotates the user's sessions and attaches fresh session + CSRF cookies."""
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    user.last_login = datetime.utcnow()
    db.session.commit()

    set_session_cookie(resp, raw_token)
    issue_csrf_token(resp)
    log_event(
        "user_login",
        user_id=user.id,
        user_role=user.role,
        details=f"User logged in from {request.remote_addr}",
        new_values={"revoked_sessions": revoked_count},
    )
    return resp


@auth_bp.post("/register")
def register():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    first_name, last_name, full_name = _names(data)

    if not email or not password or not full_name:
        return jsonify(error="All fields are required"), 400
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        role="customer",
    )
    db.session.add(user)
    db.session.commit()

    log_event("user_register", user_id=user.id, user_role=user.role,
              details="New customer user registered", record_id=user.id)

    return jsonify(user=user.to_dict(), token=issue_access_token(user)), 201


@auth_bp.post("/auth/token")
def issue_token():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(error="Email and password required"), 400

    user, error, status = authenticate(email, password)
    if user is None:
        return jsonify(error=error), status

    user.last_login = datetime.utcnow()
    db.session.commit()

    return jsonify(user=user.to_dict(), token=issue_access_token(user)), 200


@auth_bp.post("/login")
def login():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    user_type = (text_field(data, "userType") or text_field(data, "user_type")).lower() or None

    if not email or not password:
        return jsonify(error="Email and password required"), 400
    if user_type is not None and user_type not in DASHBOARD_ROLES:
        return jsonify(error="Invalid user type"), 400

    user, error, status = authenticate(email, password)
    if user is None:
        log_event("user_login_failed", details=f"Failed login for {email}")
        return jsonify(error=error), status

    if user.role not in DASHBOARD_ROLES:
        return jsonify(error="This account cannot access the dashboard"), 403
    if user_type is not None and user.role != user_type:
        return jsonify(error=f"This account is not authorized as {user_type}"), 403

    resp = jsonify(message="Login successful", user=user.to_dict())
    start_dashboard_session(user, resp)
    return resp, 200


@auth_bp.post("/logout")
@login_required
def logout():
    name = cookie_name()
    if g.auth_method == "session":
        revoke_session(request.cookies.get(name))

    log_event("user_logout", user_id=g.user.id, user_role=g.user.role, details="User logged out")

    resp = jsonify(message="Logout successful")
    resp.delete_cookie(name, path="/")
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user=g.user.to_dict(), auth_method=g.auth_method), 200


# ---------- password reset (OTP by email) ----------

@auth_bp.post("/forgot-password")
def forgot_password():
    data = json_body()
    email = normalize_email(data.get("email"))
    if not email:
        return jsonify(error="Email is required"), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify(error="No account found with this email"), 400

    code = _new_otp_code()
    ttl = current_app.config.get("OTP_TTL_SECONDS", 900)
    db.session.add(PasswordResetOtp(
        email=email,
        code_hash=_hash_code(code),
        expires_at=datetime.utcnow() + timedelta(seconds=ttl),
    ))
    db.session.commit()

    sent, error = send_password_reset_otp(user, code, ttl_minutes=ttl // 60)
    if not sent:
        logger.warning("Password reset OTP for %s was not delivered: %s", email, error)

    log_event("user_password_reset_requested", user_id=user.id, user_role=user.role, record_id=user.id)
    return jsonify(message="OTP sent to your email"), 200


@auth_bp.post("/verify-otp")
def verify_otp():
    data = json_body()
    email = normalize_email(data.get("email"))
    code = str(data.get("otp") or "").strip()

    if not email or not code:
        return jsonify(error="Email and OTP are required"), 400

    # only the newest outstanding code for the address can be verified
    otp = (
        PasswordResetOtp.query
        .filter_by(email=email, used=False)
        .order_by(PasswordResetOtp.created_at.desc(), PasswordResetOtp.id.desc())
        .first()
    )
    if not otp:
        return jsonify(error="Invalid OTP"), 400

    max_attempts = current_app.config.get("OTP_MAX_ATTEMPTS", 5)
    if otp.attempts >= max_attempts:
        return jsonify(error="Too many failed attempts. Request a new OTP"), 429

    if not hmac.compare_digest(otp.code_hash, _hash_code(code)):
        otp.attempts += 1
        db.session.commit()
        if otp.attempts >= max_attempts:
            logger.warning("Password reset OTP for %s locked after %s failed attempts", email, otp.attempts)
        return jsonify(error="Invalid OTP"), 400

    now = datetime.utcnow()
    if now > otp.expires_at:
        return jsonify(error="OTP has expired"), 400

    otp.used = True
    otp.verified_at = now
    db.session.commit()
    return jsonify(message="OTP verified successfully"), 200



@auth_bp.post("/reset-password")
def reset_password():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(error="Email and password are required"), 400

    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error=errors[0], details=errors), 400

    window = current_app.config.get("OTP_RESET_WINDOW_SECONDS", 300)
    otp = (
        PasswordResetOtp.query
        .filter(
            PasswordResetOtp.email == email,
            PasswordResetOtp.used.is_(True),
            PasswordResetOtp.consumed_at.is_(None),
            PasswordResetOtp.verified_at.isnot(None),
        )
        .order_by(PasswordResetOtp.verified_at.desc())
        .first()
    )
    now = datetime.utcnow()
    if not otp or now > otp.expires_at or now - otp.verified_at > timedelta(seconds=window):
        return jsonify(error="Please verify OTP first"), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify(error="No account found with this email"), 400

    user.password_hash = hash_password(password)
    user.password_changed_at = now
    otp.consumed_at = now
    db.session.commit()

    revoke_all_sessions(user.id)
    log_event("user_password_reset", user_id=user.id, user_role=user.role, record_id=user.id)
    return jsonify(message="Password reset successful"), 200

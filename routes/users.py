from datetime import datetime

from flask import Blueprint, jsonify, g, request

from models import db
from models.booking import Booking
from models.session import Session
from models.user import ROLES, User
from security.password import hash_password
from security.password_policy import validate_password
from security.rbac import require_roles
from security.session import revoke_all_sessions
from utils.audit import log_event
from utils.parsing import is_valid_email, json_body, normalize_email, text_field

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _active_admin_count() -> int:
    return User.query.filter_by(role="admin", is_active=True).count()


def _is_last_active_admin(user) -> bool:
    return user.role == "admin" and user.is_active and _active_admin_count() <= 1


@users_bp.get("")
@require_roles("admin")
def list_users():
    role = (request.args.get("role") or "").strip().lower()
    q = User.query
    if role:
        q = q.filter(User.role == role)

    users = q.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.get("/<int:user_id>")
@require_roles("admin")
def get_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404
    return jsonify(user.to_dict()), 200


@users_bp.post("")
@require_roles("admin")
def create_user():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    full_name = text_field(data, "full_name")
    role = (text_field(data, "role") or "staff").lower()

    if not email or not password or not full_name:
        return jsonify(error="Missing required fields"), 400
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if role not in ROLES:
        return jsonify(error="Invalid role"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        return jsonify(error="User with this email already exists"), 409

    first_name, _, last_name = full_name.partition(" ")
    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        first_name=first_name or None,
        last_name=last_name.strip() or None,
        role=role,
    )
    db.session.add(user)
    db.session.commit()

    log_event(
        "user_create",
        user_id=g.user.id,
        user_role=g.user.role,
        details=f"Created {role} account for {email}",
        record_id=user.id,
    )
    return jsonify(message="Account created successfully", user=user.to_dict()), 201


@users_bp.route("/<int:user_id>", methods=["PUT", "PATCH"])
@require_roles("admin")
def update_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    data = json_body()
    changes = {}

    for field in ("full_name", "first_name", "last_name"):
        if field in data:
            value = data[field]
            if value is not None and (not isinstance(value, str) or len(value.strip()) > 160):
                return jsonify(error=f"Invalid {field}"), 400
            changes[field] = value.strip() if value else None

    if "email" in data:
        email = normalize_email(data["email"])
        if not is_valid_email(email):
            return jsonify(error="Invalid email"), 400
        taken = User.query.filter(User.email == email, User.id != user.id).first()
        if taken:
            return jsonify(error="User with this email already exists"), 409
        changes["email"] = email

    if "role" in data:
        role = text_field(data, "role").lower()
        if role not in ROLES:
            return jsonify(error="Invalid role"), 400
        changes["role"] = role

    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            return jsonify(error="is_active must be a boolean"), 400
        changes["is_active"] = data["is_active"]

    if "loyalty_points" in data:
        points = data["loyalty_points"]
        if not isinstance(points, int) or isinstance(points, bool) or points < 0:
            return jsonify(error="loyalty_points must be a non-negative integer"), 400
        changes["loyalty_points"] = points

    new_password = data.get("password")
    if new_password is not None:
        valid, errors = validate_password(new_password)
        if not valid:
            return jsonify(error="Password does not meet policy", details=errors), 400

    if not changes and new_password is None:
        return jsonify(error="No updatable fields supplied"), 400

    loses_admin = changes.get("role", user.role) != "admin" or changes.get("is_active", user.is_active) is False
    if user.role == "admin" and user.is_active and loses_admin:
        if user.id == g.user.id:
            return jsonify(error="Cannot remove your own admin access"), 403
        if _is_last_active_admin(user):
            return jsonify(error="Cannot remove the last admin"), 403

    for field, value in changes.items():
        setattr(user, field, value)
    if new_password is not None:
        user.password_hash = hash_password(new_password)
        user.password_changed_at = datetime.utcnow()
    db.session.commit()

    if changes.get("is_active") is False or new_password is not None:
        revoke_all_sessions(user.id)

    log_event(
        "user_update",
        user_id=g.user.id,
        user_role=g.user.role,
        details=f"Updated user {user.id}",
        record_id=user.id,
        new_values={**changes, "password_changed": new_password is not None},
    )
    return jsonify(user=user.to_dict()), 200


@users_bp.delete("/<int:user_id>")
@require_roles("admin")
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    if _is_last_active_admin(user):
        return jsonify(error="Cannot delete the last admin account"), 400

    if user.id == g.user.id:
        return jsonify(error="Cannot delete your own account"), 400

    email = user.email
    Session.query.filter_by(user_id=user.id).delete()
    Booking.query.filter_by(created_by=user.id).update({"created_by": None})
    db.session.delete(user)
    db.session.commit()

    log_event(
        "user_delete",
        user_id=g.user.id,
        user_role=g.user.role,
        details=f"Deleted user account: {email}",
        record_id=user_id,
    )
    return jsonify(message="Account deleted successfully"), 200

from functools import wraps
from flask import g, jsonify


def has_role(*role_names: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    return user.role in role_names


def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin", "staff")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            if not user.role:
                return jsonify(error="User role not configured"), 403

            if user.role not in role_names:
                return jsonify(error="Insufficient permissions"), 403

            if not user.is_active:
                return jsonify(error="Account is deactivated"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator

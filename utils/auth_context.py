from functools import wraps
from flask import g, jsonify, request

from models import db
from models.user import User
from security.session import get_session_from_request
from security.tokens import bearer_token_from_header, decode_access_token, token_matches_password


def load_current_user():
    """
    Resolves g.user from the dashboard session cookie, then from a bearer
    token. g.auth_method records which one matched ("session" or "token").
    """
    g.user = None
    g.session = None
    g.auth_method = None

    sess = get_session_from_request()
    if sess:
        user = db.session.get(User, sess.user_id)
        if user is not None:
            g.session = sess
            g.user = user
            g.auth_method = "session"
            return

    claims = decode_access_token(bearer_token_from_header(request.headers.get("Authorization")))
    if claims is not None:
        user = db.session.get(User, int(claims["sub"]))
        if user is not None and token_matches_password(claims, user):
            g.user = user
            g.auth_method = "token"


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        if not g.user.is_active:
            return jsonify(error="Account is deactivated"), 403
        return fn(*args, **kwargs)
    return wrapper

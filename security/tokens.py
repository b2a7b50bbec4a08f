from datetime import datetime, timedelta

from flask import current_app
from jose import JWTError, jwt


def _password_stamp(user):
    changed = user.password_changed_at
    return changed.isoformat() if changed else None


def issue_access_token(user) -> str:
    """Bearer token for the guest app: stateless, signed with JWT_SECRET_KEY."""
    days = current_app.config.get("JWT_EXPIRES_DAYS", 7)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        # ties the token to the password it was issued under
        "pwd": _password_stamp(user),
        "exp": datetime.utcnow() + timedelta(days=days),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_access_token(token: str):
    """Returns the claims of a valid token, else None."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except JWTError:
        return None

    sub = claims.get("sub")
    if sub is None or not str(sub).isdigit():
        return None
    return claims


def token_matches_password(claims, user) -> bool:
    """False once the user's password has changed since the token was issued."""
    return claims.get("pwd") == _password_stamp(user)


def bearer_token_from_header(header_value):
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

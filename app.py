import logging

import click
from flask import Flask, request, g, jsonify, render_template
from flask_migrate import Migrate
from sqlalchemy import inspect
from werkzeug.exceptions import HTTPException

from config import Config
from routes import (
    auth_bp, bookings_bp, packages_bp, users_bp, audit_bp, dashboard_bp, payments_bp, pages_bp,
)
from models import db
from models.user import User
from security.csrf import require_csrf
from security.password import hash_password
from security.password_policy import validate_password
from utils.auth_context import load_current_user
from utils.parsing import is_valid_email, normalize_email
from utils.seed import seed_packages

logger = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/api/login",
    "/api/register",
    "/api/auth/token",
    "/api/forgot-password",
    "/api/verify-otp",
    "/api/reset-password",
    "/api/payments/confirm",
    "/book",
    "/admin/login",
}


def peso(amount) -> str:
    return f"₱{(amount or 0):,.2f}"


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(auth_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(packages_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(pages_bp)

    app.add_template_filter(peso, "peso")

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed the package catalogue once the schema exists (idempotent)
    with app.app_context():
        if inspect(db.engine).has_table("packages"):
            added = seed_packages()
            if added:
                logger.info("Seeded %s default packages", added)

    @app.get("/health")
    def health():
        return jsonify(status="ok"), 200

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Bearer-token clients send no cookies, so only cookie sessions need CSRF
            if getattr(g, "auth_method", None) == "session":
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; frame-ancestors 'none';"
        )
        return resp

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if request.path.startswith("/api/"):
            return jsonify(error=exc.description or exc.name), exc.code
        return exc

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        if request.path.startswith("/api/"):
            return jsonify(error="Internal server error"), 500
        return render_template("message.html", title="Error", message="Something went wrong."), 500

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--name", default="Administrator", show_default=True)
    def create_admin(email, password, name):
        """Create an admin account, or promote an existing one (bootstrap)."""
        email = normalize_email(email)
        if not is_valid_email(email):
            raise click.BadParameter("Invalid email", param_hint="EMAIL")

        user = User.query.filter_by(email=email).first()
        if user:
            user.role = "admin"
            user.is_active = True
            db.session.commit()
            click.echo(f"{user.email} promoted to admin")
            return

        valid, errors = validate_password(password)
        if not valid:
            raise click.BadParameter("; ".join(errors), param_hint="--password")

        first_name, _, last_name = name.strip().partition(" ")
        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=name.strip(),
            first_name=first_name or None,
            last_name=last_name.strip() or None,
            role="admin",
        )
        db.session.add(user)
        db.session.commit()
        click.echo(f"Admin account created for {user.email}")

    @app.cli.command("seed-packages")
    def seed_packages_command():
        """Insert the default package catalogue."""
        added = seed_packages()
        click.echo(f"Added {added} packages")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)

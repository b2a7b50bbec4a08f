from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.package import Package
from security.rbac import require_roles
from utils.audit import log_event
from utils.parsing import json_body, text_field

packages_bp = Blueprint("packages", __name__, url_prefix="/api/packages")


def _non_negative_int(value, field):
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer")
    return value


@packages_bp.get("")
def list_packages():
    category = (request.args.get("category") or "").strip()
    q = Package.query.filter_by(is_active=True)
    if category:
        q = q.filter_by(category=category)
    return jsonify([p.to_dict() for p in q.order_by(Package.id.asc()).all()]), 200


@packages_bp.post("")
@require_roles("admin")
def create_package():
    data = json_body()
    title = text_field(data, "title")
    if not title:
        return jsonify(error="Package title required"), 400

    try:
        price = _non_negative_int(data.get("price", 0), "price")
        capacity = _non_negative_int(data.get("capacity", 4), "capacity")
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    package = Package(
        title=title,
        description=text_field(data, "description") or None,
        category=text_field(data, "category") or None,
        price=price,
        capacity=capacity,
    )
    db.session.add(package)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Package title already exists"), 409

    log_event("package_create", user_id=g.user.id, user_role=g.user.role,
              details=f"Created package {title}", record_id=package.id)
    return jsonify(package.to_dict()), 201


@packages_bp.patch("/<int:package_id>")
@require_roles("admin")
def update_package(package_id: int):
    package = db.session.get(Package, package_id)
    if not package:
        return jsonify(error="Package not found"), 404

    data = json_body()
    changes = {}
    try:
        for field in ("price", "capacity"):
            if field in data:
                changes[field] = _non_negative_int(data[field], field)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    for field in ("title", "description", "category"):
        if field in data:
            changes[field] = text_field(data, field) or None
    if "title" in changes and not changes["title"]:
        return jsonify(error="Package title required"), 400

    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            return jsonify(error="is_active must be a boolean"), 400
        changes["is_active"] = data["is_active"]

    for field, value in changes.items():
        setattr(package, field, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Package title already exists"), 409

    log_event("package_update", user_id=g.user.id, user_role=g.user.role,
              details=f"Updated package {package.id}", record_id=package.id, new_values=changes)
    return jsonify(package.to_dict()), 200

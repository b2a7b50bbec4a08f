from models import db
from models.audit_log import AuditLog
from models.package import Package


def test_public_listing(client):
    packages = client.get("/api/packages").get_json()
    assert [p["title"] for p in packages] == ["Standard Room", "Ocean View Room", "Deluxe Suite", "Function Hall"]

    halls = client.get("/api/packages?category=function-halls").get_json()
    assert [p["title"] for p in halls] == ["Function Hall"]


def test_inactive_packages_are_hidden(client, app):
    with app.app_context():
        Package.query.filter_by(title="Function Hall").one().is_active = False
        db.session.commit()
    titles = [p["title"] for p in client.get("/api/packages").get_json()]
    assert "Function Hall" not in titles


def test_admin_creates_package(client, admin_headers, app):
    resp = client.post("/api/packages", json={
        "title": "Family Cottage", "category": "cottages", "price": 500, "capacity": 8,
    }, headers=admin_headers)
    assert resp.status_code == 201
    assert resp.get_json()["capacity"] == 8

    dup = client.post("/api/packages", json={"title": "Family Cottage"}, headers=admin_headers)
    assert dup.status_code == 409

    bad = client.post("/api/packages", json={"title": "Free", "price": -5}, headers=admin_headers)
    assert bad.status_code == 400

    with app.app_context():
        assert AuditLog.query.filter_by(action="package_create", table_name="packages").count() == 1


def test_admin_updates_package(client, admin_headers, app):
    with app.app_context():
        suite_id = Package.query.filter_by(title="Deluxe Suite").one().id

    resp = client.patch(f"/api/packages/{suite_id}", json={"price": 3900, "is_active": False}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["price"] == 3900
    assert resp.get_json()["is_active"] is False

    assert client.patch("/api/packages/9999", json={"price": 1}, headers=admin_headers).status_code == 404


def test_staff_cannot_manage_packages(client, staff_headers):
    resp = client.post("/api/packages", json={"title": "Nope"}, headers=staff_headers)
    assert resp.status_code == 403


def test_package_writes_reject_malformed_bodies(client, admin_headers):
    listed = client.post("/api/packages", json=["x"], headers=admin_headers)
    assert listed.status_code == 400
    assert listed.get_json()["error"] == "Request body must be a JSON object"

    numeric = client.post("/api/packages", json={"title": 5}, headers=admin_headers)
    assert numeric.status_code == 400
    assert numeric.get_json()["error"] == "title must be a string"

    patched = client.patch("/api/packages/1", json={"category": ["cottages"]}, headers=admin_headers)
    assert patched.status_code == 400

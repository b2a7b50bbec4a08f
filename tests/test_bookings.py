from datetime import date, timedelta

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.package import Package
from models.user import User


def days_ahead(n):
    return (date.today() + timedelta(days=n)).isoformat()


@pytest.fixture
def guest(app, customer_id, token_headers):
    """A bearer-token client for the seeded customer, isolated from dashboard cookies."""
    client = app.test_client()
    headers = token_headers(customer_id)

    def _post(payload):
        return client.post("/api/bookings", json=payload, headers=headers)

    _post.client = client
    _post.headers = headers
    return _post


def test_create_prices_and_stores_pending_booking(guest, booking_payload, app, customer_id, outbox):
    resp = guest(booking_payload(adults=4, kids=2, visit_time="night", cottage="barkads", status="confirmed"))
    assert resp.status_code == 201
    body = resp.get_json()

    assert body["status"] == "pending"
    assert body["guest_count"] == 6
    assert body["entrance_fee"] == 4 * 120 + 2 * 100
    assert body["cottage_fee"] == 400
    assert body["extra_guest_charge"] == 200
    assert body["total_cost"] == 680 + 400 + 200
    assert body["package"]["title"] == "Standard Room"
    assert body["created_by"] == customer_id

    with app.app_context():
        assert db.session.get(User, customer_id).total_bookings == 1
        log = AuditLog.query.filter_by(action="booking_create").one()
        assert log.table_name == "bookings"
        assert log.record_id == str(body["id"])

    assert len(outbox) == 1
    assert outbox[0]["Subject"] == "Booking Receipt - Kina Resort"
    html = outbox[0].get_body(preferencelist=("html",)).get_content()
    assert f"https://resort.test/pay/{body['id']}?t=" in html


def test_requires_authentication(client, booking_payload):
    assert client.post("/api/bookings", json=booking_payload()).status_code == 401


@pytest.mark.parametrize("overrides,status", [
    ({"check_in": days_ahead(-1)}, 400),
    ({"check_in": days_ahead(5), "check_out": days_ahead(4)}, 400),
    ({"check_in": "next week"}, 400),
    ({"visit_time": "afternoon"}, 400),
    ({"cottage": "penthouse"}, 400),
    ({"adults": -1}, 400),
    ({"package_id": 9999}, 404),
    ({"package_id": None}, 400),
    ({"guest_email": "not-an-email"}, 400),
])
def test_create_validation(guest, booking_payload, overrides, status):
    resp = guest(booking_payload(**overrides))
    assert resp.status_code == status
    assert "error" in resp.get_json()


def test_overlapping_booking_is_rejected(guest, booking_payload):
    assert guest(booking_payload(start=10, nights=3)).status_code == 201

    clash = guest(booking_payload(start=12, nights=2))
    assert clash.status_code == 409
    assert clash.get_json()["error"] == "Room is already booked for these dates"

    inside = guest(booking_payload(start=11, nights=1))
    assert inside.status_code == 409


def test_back_to_back_bookings_are_allowed(guest, booking_payload):
    assert guest(booking_payload(start=10, nights=2)).status_code == 201
    assert guest(booking_payload(start=12, nights=2)).status_code == 201
    assert guest(booking_payload(start=8, nights=2)).status_code == 201


def test_other_packages_do_not_conflict(guest, booking_payload, app):
    with app.app_context():
        suite_id = Package.query.filter_by(title="Deluxe Suite").one().id

    assert guest(booking_payload(start=10)).status_code == 201
    assert guest(booking_payload(start=10, package_id=suite_id)).status_code == 201


def test_cancelled_bookings_free_the_dates(guest, booking_payload, app):
    first = guest(booking_payload(start=10)).get_json()
    with app.app_context():
        db.session.get(Booking, first["id"]).status = "cancelled"
        db.session.commit()

    assert guest(booking_payload(start=10)).status_code == 201


def test_same_day_visits_occupy_their_day(guest, booking_payload):
    assert guest(booking_payload(start=10, nights=0)).status_code == 201
    assert guest(booking_payload(start=10, nights=0)).status_code == 409
    assert guest(booking_payload(start=9, nights=2)).status_code == 409
    assert guest(booking_payload(start=11, nights=0)).status_code == 201
    assert guest(booking_payload(start=8, nights=2)).status_code == 201


def test_room_type_bookings_conflict_by_label(guest, booking_payload):
    payload = booking_payload(package_id=None, room_type="Nipa Hut")
    assert guest(payload).status_code == 201
    assert guest(payload).status_code == 409
    assert guest(booking_payload(package_id=None, room_type="Kubo")).status_code == 201


def test_staff_may_set_status(client, staff_headers, booking_payload):
    resp = client.post("/api/bookings", json=booking_payload(status="confirmed"), headers=staff_headers)
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "confirmed"


def test_update_does_not_conflict_with_itself(guest, booking_payload, client, staff_headers):
    booking = guest(booking_payload(start=10, nights=3)).get_json()

    resp = client.patch(
        f"/api/bookings/{booking['id']}",
        json={"check_out": days_ahead(14), "guest_name": "Juan D. Cruz"},
        headers=staff_headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["check_out"] == days_ahead(14)


def test_update_into_taken_dates_is_rejected(guest, booking_payload, client, staff_headers, app):
    guest(booking_payload(start=10, nights=2))
    later = guest(booking_payload(start=20, nights=2)).get_json()

    resp = client.put(
        f"/api/bookings/{later['id']}",
        json={"check_in": days_ahead(11), "check_out": days_ahead(13)},
        headers=staff_headers,
    )
    assert resp.status_code == 409
    with app.app_context():
        assert db.session.get(Booking, later["id"]).check_in.isoformat() == days_ahead(20)


def test_reactivating_into_taken_dates_is_rejected(guest, booking_payload, client, staff_headers):
    first = guest(booking_payload(start=10)).get_json()
    client.patch(f"/api/bookings/{first['id']}", json={"status": "cancelled"}, headers=staff_headers)
    guest(booking_payload(start=10))

    resp = client.patch(f"/api/bookings/{first['id']}", json={"status": "pending"}, headers=staff_headers)
    assert resp.status_code == 409


def test_update_recomputes_fees(guest, booking_payload, client, staff_headers, app):
    booking = guest(booking_payload(adults=2, visit_time="morning")).get_json()
    assert booking["total_cost"] == 140

    resp = client.patch(f"/api/bookings/{booking['id']}", json={"adults": 6, "cottage": "family"}, headers=staff_headers)
    body = resp.get_json()
    assert body["guest_count"] == 6
    assert body["entrance_fee"] == 420
    assert body["cottage_fee"] == 500
    assert body["extra_guest_charge"] == 200

    with app.app_context():
        log = AuditLog.query.filter_by(action="booking_update").one()
        assert log.new_values["adults"] == 6


def test_update_rejects_bad_status(guest, booking_payload, client, staff_headers):
    booking = guest(booking_payload()).get_json()
    resp = client.patch(f"/api/bookings/{booking['id']}", json={"status": "paid"}, headers=staff_headers)
    assert resp.status_code == 400


def test_confirming_sends_confirmation_email(guest, booking_payload, client, staff_headers, outbox):
    booking = guest(booking_payload()).get_json()
    outbox.clear()

    client.patch(f"/api/bookings/{booking['id']}", json={"status": "confirmed"}, headers=staff_headers)
    assert [m["Subject"] for m in outbox] == ["Booking Confirmation - Kina Resort"]

    client.patch(f"/api/bookings/{booking['id']}", json={"guest_phone": "0917"}, headers=staff_headers)
    assert len(outbox) == 1


def test_customers_cannot_update(guest, booking_payload):
    booking = guest(booking_payload()).get_json()
    resp = guest.client.patch(f"/api/bookings/{booking['id']}", json={"status": "confirmed"}, headers=guest.headers)
    assert resp.status_code == 403


def test_delete_is_admin_only(guest, booking_payload, app, staff_id):
    booking = guest(booking_payload()).get_json()

    staff = app.test_client()
    staff.post("/api/login", json={"email": "staff@kina.test", "password": "staffpass"})
    staff_csrf = {"X-CSRF-Token": staff.get_cookie("csrf_token").value}
    assert staff.delete(f"/api/bookings/{booking['id']}", headers=staff_csrf).status_code == 403


def test_admin_delete(guest, booking_payload, client, admin_headers, app):
    booking = guest(booking_payload()).get_json()
    resp = client.delete(f"/api/bookings/{booking['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/bookings/{booking['id']}").status_code == 404
    with app.app_context():
        assert AuditLog.query.filter_by(action="booking_delete", record_id=str(booking["id"])).count() == 1


def test_customers_only_see_their_bookings(guest, booking_payload, app, make_user, token_headers):
    mine = guest(booking_payload(start=10)).get_json()

    other_id = make_user("other@example.com")
    other = app.test_client()
    other_headers = token_headers(other_id)
    theirs = other.post(
        "/api/bookings", json=booking_payload(start=20, guest_email="other@example.com"), headers=other_headers
    ).get_json()

    listed = guest.client.get("/api/bookings", headers=guest.headers).get_json()
    assert [b["id"] for b in listed] == [mine["id"]]

    assert guest.client.get(f"/api/bookings/{theirs['id']}", headers=guest.headers).status_code == 404
    assert guest.client.get(f"/api/bookings/{mine['id']}", headers=guest.headers).status_code == 200


def test_staff_list_filters(guest, booking_payload, client, staff_headers):
    first = guest(booking_payload(start=10)).get_json()
    guest(booking_payload(start=20))
    client.patch(f"/api/bookings/{first['id']}", json={"status": "confirmed"}, headers=staff_headers)

    everything = client.get("/api/bookings").get_json()
    assert len(everything) == 2

    confirmed = client.get("/api/bookings?status=confirmed").get_json()
    assert [b["id"] for b in confirmed] == [first["id"]]


def test_public_availability_check(guest, booking_payload, client, package_id):
    guest(booking_payload(start=10, nights=2))

    taken = client.get(
        f"/api/bookings/availability?package_id={package_id}&check_in={days_ahead(11)}&check_out={days_ahead(12)}"
    )
    assert taken.status_code == 200
    assert taken.get_json()["available"] is False

    free = client.get(
        f"/api/bookings/availability?package_id={package_id}&check_in={days_ahead(12)}&check_out={days_ahead(14)}"
    )
    assert free.get_json()["available"] is True

    bad = client.get(f"/api/bookings/availability?check_in={days_ahead(12)}&check_out={days_ahead(14)}")
    assert bad.status_code == 400


def test_create_rejects_non_object_body(guest):
    resp = guest(["not", "a", "booking"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Request body must be a JSON object"

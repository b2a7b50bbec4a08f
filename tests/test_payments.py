import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.payment import Payment
from security.payment_token import generate_payment_token


@pytest.fixture
def booking(client, booking_payload, app, outbox):
    resp = client.post("/book", data=booking_payload(adults=2, visit_time="morning", cottage="tropahan"))
    assert resp.status_code == 201
    outbox.clear()
    with app.app_context():
        row = Booking.query.one()
        return {"id": row.id, "email": row.guest_email, "token": generate_payment_token(row.id, row.guest_email)}


def test_pay_page_renders_for_valid_link(client, booking):
    resp = client.get(f"/pay/{booking['id']}?t={booking['token']}")
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert "Amount Due: ₱440.00" in html
    assert 'value="gcash"' in html


def test_pay_page_rejects_bad_links(client, booking):
    assert client.get(f"/pay/{booking['id']}?t=deadbeef").status_code == 400
    assert client.get(f"/pay/{booking['id']}").status_code == 400
    assert client.get("/pay/9999?t=whatever").status_code == 404


def test_form_confirmation(client, app, booking, outbox):
    resp = client.post("/api/payments/confirm", data={
        "booking_id": booking["id"], "token": booking["token"], "method": "gcash",
    })
    assert resp.status_code == 200
    assert "Your payment has been recorded" in resp.get_data(as_text=True)

    with app.app_context():
        row = db.session.get(Booking, booking["id"])
        assert row.status == "confirmed"
        payment = Payment.query.filter_by(booking_id=row.id).one()
        assert payment.method == "gcash"
        assert payment.amount == 440
        assert payment.currency == "PHP"

        log = AuditLog.query.filter_by(action="booking_payment").one()
        assert log.user_role == "guest"
        assert log.table_name == "bookings"
        assert log.record_id == str(row.id)

    assert [m["Subject"] for m in outbox] == ["Payment Confirmation - Kina Resort"]
    assert "GCash Payment" in outbox[0].get_body(preferencelist=("html",)).get_content()


def test_json_confirmation_is_idempotent(client, app, booking):
    payload = {"booking_id": booking["id"], "token": booking["token"], "method": "bank"}
    first = client.post("/api/payments/confirm", json=payload)
    second = client.post("/api/payments/confirm", json=dict(payload, method="cashier"))

    assert first.status_code == 200
    assert first.get_json()["booking"]["status"] == "confirmed"
    assert second.get_json()["payment_method"] == "bank"
    with app.app_context():
        assert Payment.query.count() == 1


@pytest.mark.parametrize("payload,status", [
    ({"token": "x", "method": "gcash"}, 400),
    ({"booking_id": 1, "method": "gcash"}, 400),
    ({"booking_id": 1, "token": "x"}, 400),
    ({"booking_id": 1, "token": "x", "method": "crypto"}, 400),
    ({"booking_id": 9999, "token": "x", "method": "gcash"}, 404),
])
def test_confirmation_validation(client, booking, payload, status):
    resp = client.post("/api/payments/confirm", json=payload)
    assert resp.status_code == status
    assert "error" in resp.get_json()


def test_confirmation_rejects_wrong_token(client, app, booking):
    with app.app_context():
        foreign = generate_payment_token(booking["id"], "someone@else.com")

    resp = client.post("/api/payments/confirm", json={
        "booking_id": booking["id"], "token": foreign, "method": "gcash",
    })
    assert resp.status_code == 400
    with app.app_context():
        assert db.session.get(Booking, booking["id"]).status == "pending"


def test_cancelled_booking_cannot_be_paid(client, app, booking):
    with app.app_context():
        db.session.get(Booking, booking["id"]).status = "cancelled"
        db.session.commit()

    resp = client.post("/api/payments/confirm", json={
        "booking_id": booking["id"], "token": booking["token"], "method": "gcash",
    })
    assert resp.status_code == 409
    with app.app_context():
        assert db.session.get(Booking, booking["id"]).status == "cancelled"
        assert Payment.query.count() == 0

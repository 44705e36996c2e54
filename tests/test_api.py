import json
from decimal import Decimal

import pytest


@pytest.fixture
def booked(client, headers_for, user, facility, tomorrow):
    response = client.post(
        "/bookings/",
        json={"facility_id": facility.id, "date": tomorrow.isoformat(), "start_time": "10:00", "end_time": "11:00"},
        headers=headers_for(user),
    )
    assert response.status_code == 201
    return response.json()


# =========================
# AUTH / USERS
# =========================

def test_register_and_login(client, university):
    response = client.post(
        "/users/",
        json={"name": "Ana", "email": "ana@state.test", "password": "pw123456", "university_id": university.id},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "user"
    assert "password_hash" not in body

    duplicate = client.post("/users/", json={"name": "Ana", "email": "ana@state.test", "password": "x"})
    assert duplicate.status_code == 400

    login = client.post("/auth/login", data={"username": "ana@state.test", "password": "pw123456"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "ana@state.test"


def test_login_with_wrong_password(client, user):
    response = client.post("/auth/login", data={"username": user.email, "password": "wrong"})
    assert response.status_code == 401


def test_protected_route_requires_token(client):
    assert client.get("/bookings/user").status_code == 401


def test_user_administration(client, headers_for, user, other_user, admin):
    listed = client.get("/users/", params={"search": "student"}, headers=headers_for(admin))
    assert [u["id"] for u in listed.json()] == [user.id]
    assert client.get("/users/", headers=headers_for(user)).status_code == 403

    assert client.get(f"/users/{other_user.id}", headers=headers_for(user)).status_code == 403
    renamed = client.put(f"/users/{user.id}", json={"name": "Sam"}, headers=headers_for(user))
    assert renamed.json()["name"] == "Sam"
    escalated = client.put(f"/users/{user.id}", json={"role": "admin"}, headers=headers_for(user))
    assert escalated.status_code == 403

    changed = client.put(f"/users/{user.id}/password",
                         json={"current_password": "secret123", "new_password": "changed-pw"},
                         headers=headers_for(user))
    assert changed.status_code == 200
    assert client.post("/auth/login", data={"username": user.email, "password": "changed-pw"}).status_code == 200

    reset = client.put(f"/users/{user.id}/reset-password", json={"new_password": "reset-pw"},
                       headers=headers_for(admin))
    assert reset.status_code == 200

    assert client.delete(f"/users/{user.id}", headers=headers_for(admin)).status_code == 200
    assert client.post("/auth/login", data={"username": user.email, "password": "reset-pw"}).status_code == 401
    assert client.get("/users/me", headers=headers_for(user)).status_code == 401


def test_university_administrators(client, headers_for, super_admin, admin, user, university):
    url = f"/universities/{university.id}/administrators"

    assert client.post(url, json={"user_id": user.id}, headers=headers_for(admin)).status_code == 403

    promoted = client.post(url, json={"user_id": user.id}, headers=headers_for(super_admin))
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"

    again = client.post(url, json={"user_id": user.id}, headers=headers_for(super_admin))
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "ValidationError"

    admins = client.get(f"/users/administrators/{university.id}", headers=headers_for(admin)).json()
    assert {a["id"] for a in admins} == {admin.id, user.id}

    removed = client.delete(f"{url}/{user.id}", headers=headers_for(super_admin))
    assert removed.json()["role"] == "user"
    assert client.get("/users/", headers=headers_for(user)).status_code == 403


# =========================
# UNIVERSITIES / FACILITIES
# =========================

def test_university_crud(client, headers_for, super_admin, admin):
    payload = {"name": "North College", "city": "Ogdenville", "country": "US", "contact_email": "a@north.test"}

    assert client.post("/universities/", json=payload, headers=headers_for(admin)).status_code == 403

    created = client.post("/universities/", json=payload, headers=headers_for(super_admin))
    assert created.status_code == 201
    university_id = created.json()["id"]

    updated = client.put(f"/universities/{university_id}", json={"city": "North Haverbrook"},
                         headers=headers_for(super_admin))
    assert updated.json()["city"] == "North Haverbrook"

    client.delete(f"/universities/{university_id}", headers=headers_for(super_admin))
    names = [u["name"] for u in client.get("/universities/").json()]
    assert "North College" not in names


def test_facility_crud_and_operating_hours(client, headers_for, admin, university):
    created = client.post(
        "/facilities/",
        json={
            "name": "Pool",
            "university_id": university.id,
            "type": "swimming_pool",
            "capacity": 30,
            "price_per_hour": "1500.00",
            "currency": "RUB",
            "operating_hours": {"sunday": {"is_open": False, "open": "08:00", "close": "22:00"}},
        },
        headers=headers_for(admin),
    )
    assert created.status_code == 201
    facility = created.json()
    assert facility["operating_hours"]["sunday"]["is_open"] is False
    assert facility["operating_hours"]["monday"] == {"is_open": True, "open": "08:00", "close": "22:00"}
    assert Decimal(str(facility["price_per_hour"])) == Decimal("1500")

    hours = client.put(
        f"/facilities/{facility['id']}/operating-hours/Monday",
        json={"is_open": True, "open": "06:00", "close": "12:00"},
        headers=headers_for(admin),
    )
    assert hours.status_code == 200
    assert hours.json()["monday"] == {"is_open": True, "open": "06:00", "close": "12:00"}

    bad = client.put(
        f"/facilities/{facility['id']}/operating-hours/monday",
        json={"is_open": True, "open": "12:00", "close": "06:00"},
        headers=headers_for(admin),
    )
    assert bad.status_code == 400

    listed = client.get(f"/facilities/university/{university.id}").json()
    assert [f["name"] for f in listed] == ["Pool"]


def test_facility_rejects_unknown_type(client, headers_for, admin, university):
    response = client.post(
        "/facilities/",
        json={"name": "Rink", "university_id": university.id, "type": "ice_rink", "capacity": 10,
              "price_per_hour": "10"},
        headers=headers_for(admin),
    )
    assert response.status_code == 400


def test_regular_user_cannot_create_facility(client, headers_for, user, university):
    response = client.post(
        "/facilities/",
        json={"name": "Gym", "university_id": university.id, "type": "gym", "capacity": 10, "price_per_hour": "5"},
        headers=headers_for(user),
    )
    assert response.status_code == 403


# =========================
# BOOKINGS
# =========================

def test_availability_is_public(client, facility, tomorrow, booked):
    response = client.get(f"/bookings/availability/{facility.id}/{tomorrow.isoformat()}")
    assert response.status_code == 200
    slots = {s["start_time"]: s["is_available"] for s in response.json()["slots"]}
    assert slots["10:00"] is False
    assert slots["11:00"] is True


def test_create_booking(booked, tomorrow):
    assert booked["status"] == "pending"
    assert booked["payment_status"] == "unpaid"
    assert booked["date"] == tomorrow.isoformat()
    assert Decimal(str(booked["total_price"])) == Decimal("20")
    assert len(booked["booking_code"]) == 8


def test_overlap_returns_conflict(client, headers_for, other_user, facility, tomorrow, booked):
    response = client.post(
        "/bookings/",
        json={"facility_id": facility.id, "date": tomorrow.isoformat(), "start_time": "10:30", "end_time": "11:30"},
        headers=headers_for(other_user),
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "SlotUnavailable"


def test_malformed_time_is_a_validation_error(client, headers_for, user, facility, tomorrow):
    response = client.post(
        "/bookings/",
        json={"facility_id": facility.id, "date": tomorrow.isoformat(), "start_time": "25:00", "end_time": "26:00"},
        headers=headers_for(user),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "InvalidFormat"


def test_booking_listings(client, headers_for, user, other_user, admin, booked):
    mine = client.get("/bookings/user", headers=headers_for(user)).json()
    assert [b["id"] for b in mine] == [booked["id"]]
    assert client.get("/bookings/user", headers=headers_for(other_user)).json() == []

    assert client.get("/bookings/", headers=headers_for(user)).status_code == 403
    everything = client.get("/bookings/", params={"status": ["pending"]}, headers=headers_for(admin)).json()
    assert [b["id"] for b in everything] == [booked["id"]]

    assert client.get(f"/bookings/{booked['id']}", headers=headers_for(other_user)).status_code == 403
    assert client.get("/bookings/999", headers=headers_for(user)).status_code == 404


def test_verify_code(client, headers_for, admin, booked):
    response = client.get(f"/bookings/verify/{booked['booking_code'].lower()}", headers=headers_for(admin))
    assert response.status_code == 200
    assert response.json()["id"] == booked["id"]


def test_cancel_then_cancel_again(client, headers_for, user, booked):
    first = client.put(f"/bookings/{booked['id']}/cancel", json={"reason": "exam"}, headers=headers_for(user))
    assert first.json()["status"] == "cancelled"
    assert first.json()["cancellation_reason"] == "exam"

    again = client.put(f"/bookings/{booked['id']}/cancel", headers=headers_for(user))
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "InvalidStateTransition"


def test_unpaid_check_in_is_rejected(client, headers_for, admin, booked):
    client.put(f"/bookings/{booked['id']}/status", json={"status": "confirmed"}, headers=headers_for(admin))

    response = client.put(f"/bookings/{booked['id']}/check-in", headers=headers_for(admin))
    assert response.status_code == 400
    assert response.json()["detail"]["details"] == {"reason": "unpaid"}


def test_block_slots(client, headers_for, admin, user, facility, tomorrow):
    url = f"/schedules/{facility.id}/{tomorrow.isoformat()}/block"
    blocked = client.post(url, json={"start_time": "15:00", "end_time": "16:00", "reason": "holiday"},
                          headers=headers_for(admin))
    assert blocked.status_code == 200

    booking = client.post(
        "/bookings/",
        json={"facility_id": facility.id, "date": tomorrow.isoformat(), "start_time": "15:00", "end_time": "16:00"},
        headers=headers_for(user),
    )
    assert booking.status_code == 409

    released = client.request("DELETE", url, json={"start_time": "15:00", "end_time": "16:00"},
                              headers=headers_for(admin))
    assert all(s["is_available"] for s in released.json())


# =========================
# PAYMENTS
# =========================

def test_pay_and_check_in(client, gateway, headers_for, user, admin, booked):
    intent = client.post("/payments/create-payment-intent", json={"booking_id": booked["id"]},
                         headers=headers_for(user)).json()
    assert intent["amount"] == 2000
    gateway.settle(intent["transaction_id"])

    confirmed = client.post(
        "/payments/confirm",
        json={"booking_id": booked["id"], "transaction_id": intent["transaction_id"]},
        headers=headers_for(user),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "completed"

    booking = client.get(f"/bookings/{booked['id']}", headers=headers_for(user)).json()
    assert booking["status"] == "confirmed"
    assert booking["payment_status"] == "paid"

    checked = client.put(f"/bookings/{booked['id']}/check-in", headers=headers_for(admin))
    assert checked.json()["checked_in"] is True

    assert [p["id"] for p in client.get("/payments/user", headers=headers_for(user)).json()] == [
        confirmed.json()["id"]
    ]


def test_webhook_delivered_twice(client, booked):
    body = json.dumps(
        {"event_type": "succeeded", "transaction_id": "mock_pi_hook", "idempotency_ref": str(booked["id"])}
    )
    first = client.post("/payments/webhook", content=body, headers={"stripe-signature": "unused"})
    second = client.post("/payments/webhook", content=body, headers={"stripe-signature": "unused"})

    assert first.json()["handled"] is True
    assert second.json()["handled"] is False
    assert first.json()["payment_id"] == second.json()["payment_id"]


def test_refund(client, gateway, headers_for, user, admin, booked):
    intent = client.post("/payments/create-payment-intent", json={"booking_id": booked["id"]},
                         headers=headers_for(user)).json()
    gateway.settle(intent["transaction_id"])
    payment = client.post(
        "/payments/confirm",
        json={"booking_id": booked["id"], "transaction_id": intent["transaction_id"]},
        headers=headers_for(user),
    ).json()

    assert client.post(f"/payments/{payment['id']}/refund", headers=headers_for(user)).status_code == 403

    refunded = client.post(f"/payments/{payment['id']}/refund", json={"reason": "closed"},
                           headers=headers_for(admin))
    assert refunded.json()["status"] == "refunded"

    booking = client.get(f"/bookings/{booked['id']}", headers=headers_for(user)).json()
    assert booking["status"] == "cancelled"
    assert booking["payment_status"] == "refunded"


# =========================
# STATISTICS
# =========================

def test_statistics(client, headers_for, user, admin, booked):
    assert client.get("/statistics/", headers=headers_for(user)).status_code == 403

    summary = client.get("/statistics/", headers=headers_for(admin)).json()
    assert summary["total_bookings"] == 1
    assert summary["status"] == {"pending": 1}

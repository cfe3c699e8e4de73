from datetime import datetime, timedelta

from quickshow.database.models import Booking
from tests.conftest import auth_headers


# -------------------- status --------------------
def test_status_returns_booking_with_show_and_movie(client, make_booking):
    booking = make_booking(seats=("C3", "C4"))
    booking_id = booking.id

    response = client.get(f"/api/booking/{booking_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["booking"]["id"] == booking_id
    assert body["booking"]["is_paid"] is False
    assert body["booking"]["booked_seats"] == ["C3", "C4"]
    assert body["booking"]["show"]["movie"]["title"] == "Paper Moons"


def test_status_for_unknown_booking_is_not_found(client):
    response = client.get("/api/booking/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking not found"}


# -------------------- pay redirect --------------------
def test_pay_redirects_to_payment_link(client, make_booking):
    booking_id = make_booking().id

    response = client.get(f"/api/booking/pay/{booking_id}", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://checkout.stripe.com/c/pay/cs_test_seed"


def test_pay_for_paid_booking_has_no_link(client, make_booking):
    booking_id = make_booking(is_paid=True).id

    response = client.get(f"/api/booking/pay/{booking_id}", follow_redirects=False)

    assert response.status_code == 400
    assert response.text == "Payment link not available"


def test_pay_for_unknown_booking(client):
    response = client.get("/api/booking/pay/nope", follow_redirects=False)

    assert response.status_code == 404


# -------------------- occupied seats --------------------
def test_occupied_seats_lists_live_bookings(client, show, make_booking):
    make_booking(seats=("A1", "A2"))
    make_booking(seats=("B5",), is_paid=True)

    response = client.get(f"/api/booking/seats/{show.id}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "occupiedSeats": ["A1", "A2", "B5"]}


def test_occupied_seats_unknown_show(client):
    assert client.get("/api/booking/seats/nope").status_code == 404


# -------------------- create --------------------
def test_create_requires_authentication(client, show):
    response = client.post("/api/booking/create", json={"showId": show.id, "selectedSeats": ["A1"]})

    assert response.status_code == 401


def test_create_booking_opens_checkout(client, db, show, gateway):
    response = client.post(
        "/api/booking/create",
        json={"showId": show.id, "selectedSeats": [" A1", "A2 "]},
        headers=auth_headers("user_42"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["url"] == "https://checkout.stripe.com/c/pay/cs_test_1"

    db.expire_all()
    booking = db.get(Booking, body["bookingId"])
    assert booking.user_id == "user_42"
    assert booking.booked_seats == ["A1", "A2"]
    assert booking.amount == 20.0
    assert booking.is_paid is False
    assert booking.payment_link == body["url"]
    assert booking.checkout_session_id == "cs_test_1"

    session = gateway.sessions[0]
    assert session["booking_id"] == booking.id
    assert session["success_url"] == f"http://localhost:5173/loading/my-bookings?bookingId={booking.id}"
    assert session["cancel_url"] == "http://localhost:5173/my-bookings"


def test_create_ignores_client_supplied_paid_flag(client, db, show):
    response = client.post(
        "/api/booking/create",
        json={"show_id": show.id, "selected_seats": ["D1"], "isPaid": True, "is_paid": True},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Booking, response.json()["bookingId"]).is_paid is False


def test_create_rejects_taken_seats(client, show, make_booking):
    make_booking(seats=("A1",), user_id="someone_else")

    response = client.post(
        "/api/booking/create",
        json={"showId": show.id, "selectedSeats": ["A1", "A3"]},
        headers=auth_headers(),
    )

    assert response.status_code == 409
    assert response.json()["detail"]["seats"] == ["A1"]


def test_create_rejects_seats_locked_by_another_checkout(client, show, fake_redis):
    fake_redis.store[f"quickshow:seat_lock:{show.id}:A7"] = "user_other"

    response = client.post(
        "/api/booking/create",
        json={"showId": show.id, "selectedSeats": ["A6", "A7"]},
        headers=auth_headers(),
    )

    assert response.status_code == 409
    # nothing was locked for A6
    assert list(fake_redis.store) == [f"quickshow:seat_lock:{show.id}:A7"]


def test_create_rejects_duplicate_seats(client, show):
    response = client.post(
        "/api/booking/create",
        json={"showId": show.id, "selectedSeats": ["A1", " A1"]},
        headers=auth_headers(),
    )

    assert response.status_code == 400


def test_create_for_unknown_show(client):
    response = client.post(
        "/api/booking/create",
        json={"showId": "nope", "selectedSeats": ["A1"]},
        headers=auth_headers(),
    )

    assert response.status_code == 404


def test_create_rolls_back_when_checkout_fails(client, db, show, gateway, fake_redis):
    gateway.fail_with = "card processing unavailable"

    response = client.post(
        "/api/booking/create",
        json={"showId": show.id, "selectedSeats": ["E1"]},
        headers=auth_headers(),
    )

    assert response.status_code == 502
    db.expire_all()
    assert db.query(Booking).count() == 0
    assert fake_redis.store == {}


# -------------------- user bookings --------------------
def test_user_bookings_are_scoped_and_newest_first(client, make_booking):
    older = make_booking(seats=("A1",), created_at=datetime.utcnow() - timedelta(hours=2)).id
    newer = make_booking(seats=("A2",)).id
    make_booking(seats=("A3",), user_id="user_2")

    response = client.get("/api/user/bookings", headers=auth_headers("user_1"))

    assert response.status_code == 200
    assert [b["id"] for b in response.json()["bookings"]] == [newer, older]


def test_user_bookings_reject_bad_token(client):
    response = client.get("/api/user/bookings", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401

from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

import catalog
import models_sqlalchemy as models
from api_endpoints import ERROR_STATUS
from service_results import ErrorKind

# ---------- TEST DATA HELPERS ----------

def create_user_dict(first_name="Alice", last_name="Smith", email="alice@example.com", password="secret123"):
    return {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "password": password,
        "phone_number": "+1-555-0100",
    }


def create_package_dict(destination="Kyoto, Japan", price="4200", season="spring", **overrides):
    data = {
        "destination": destination,
        "description": "Philosopher's Path Walk",
        "price": price,
        "season": season,
        "image_url": "https://example.com/kyoto.jpg",
        "default_start_date": "2026-04-01",
        "default_end_date": "2026-04-15",
        "duration_days": 0,
        "is_active": True,
    }
    data.update(overrides)
    return data


def create_cart_item_dict(package_id, guests=2, start="2026-04-01", end="2026-04-15", notes=None):
    return {
        "travel_package_id": package_id,
        "start_date": start,
        "end_date": end,
        "number_of_guests": guests,
        "special_requests": notes,
    }


def auth(user_id):
    return {"X-User-Id": str(user_id)}


def register(client, **kwargs):
    r = client.post("/auth/register", json=create_user_dict(**kwargs))
    assert r.status_code == 201
    return r.json()["id"]


def register_admin(client, db_session, email="admin@example.com"):
    user_id = register(client, first_name="Ada", email=email)
    user = db_session.query(models.User).filter(models.User.id == user_id).first()
    user.is_admin = True
    db_session.commit()
    return user_id


def create_package(client, admin_id, **kwargs):
    r = client.post("/admin/packages/", json=create_package_dict(**kwargs), headers=auth(admin_id))
    assert r.status_code == 201
    return r.json()


# ---------- HAPPY PATH TESTS ----------

def test_register_login_and_profile(client):
    user_id = register(client, email="Alice@Example.com")
    r = client.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert r.status_code == 200
    assert r.json()["id"] == user_id
    assert r.json()["email"] == "alice@example.com"
    assert r.json()["is_admin"] is False

    r2 = client.get("/profile", headers=auth(user_id))
    assert r2.status_code == 200
    assert r2.json()["first_name"] == "Alice"


def test_update_profile(client):
    user_id = register(client)
    r = client.put("/profile", json={"first_name": "Alicia", "phone_number": "555"}, headers=auth(user_id))
    assert r.status_code == 200
    assert r.json()["first_name"] == "Alicia"
    assert r.json()["last_name"] == "Smith"
    assert r.json()["phone_number"] == "555"


def test_admin_creates_and_lists_packages(client, db_session):
    admin_id = register_admin(client, db_session)
    package = create_package(client, admin_id, season="SPRING")
    assert package["season"] == "spring"
    assert package["duration_days"] == 14
    assert Decimal(package["price"]) == Decimal("4200")

    r = client.get("/packages/")
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == [package["id"]]

    r2 = client.get(f"/packages/{package['id']}")
    assert r2.status_code == 200
    assert r2.json() == package


def test_inactive_packages_hidden_from_catalog(client, db_session):
    admin_id = register_admin(client, db_session)
    visible = create_package(client, admin_id, destination="Lapland, Finland", season="winter")
    hidden = create_package(client, admin_id, destination="Aspen, USA", season="winter")
    r = client.post(f"/admin/packages/{hidden['id']}/toggle", headers=auth(admin_id))
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    assert [p["id"] for p in client.get("/packages/").json()] == [visible["id"]]
    assert [p["id"] for p in client.get("/packages/?season=Winter").json()] == [visible["id"]]
    admin_view = client.get("/admin/packages/", headers=auth(admin_id)).json()
    assert {p["id"] for p in admin_view} == {visible["id"], hidden["id"]}


def test_update_package(client, db_session):
    admin_id = register_admin(client, db_session)
    package = create_package(client, admin_id)
    update = create_package_dict(destination="Kyoto", price="5100.50", duration_days=12)
    r = client.put(f"/admin/packages/{package['id']}", json=update, headers=auth(admin_id))
    assert r.status_code == 200
    assert r.json()["id"] == package["id"]
    assert r.json()["destination"] == "Kyoto"
    assert Decimal(r.json()["price"]) == Decimal("5100.50")
    assert r.json()["duration_days"] == 12


def test_cart_to_booking_flow(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id, price="4200")

    r = client.post("/cart/", json=create_cart_item_dict(package["id"], guests=2), headers=auth(user_id))
    assert r.status_code == 200
    assert Decimal(r.json()["total_price"]) == Decimal("8400")
    assert r.json()["package"]["id"] == package["id"]

    summary = client.get("/cart/summary", headers=auth(user_id)).json()
    assert summary["count"] == 1
    assert Decimal(summary["total"]) == Decimal("8400")

    r2 = client.post("/cart/checkout", headers=auth(user_id))
    assert r2.status_code == 200
    booked = r2.json()
    assert len(booked) == 1
    assert Decimal(booked[0]["total_price"]) == Decimal("8400")
    assert booked[0]["status"] == "Pending"
    assert booked[0]["destination"] == "Kyoto, Japan"
    assert client.get("/cart/", headers=auth(user_id)).json() == []

    booking_id = booked[0]["id"]
    r3 = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "Confirmed"}, headers=auth(admin_id))
    assert r3.status_code == 200
    assert r3.json()["status"] == "Confirmed"
    assert r3.json()["confirmed_at"] is not None

    r4 = client.post(f"/bookings/{booking_id}/cancel", headers=auth(user_id))
    assert r4.status_code == 200
    assert r4.json()["status"] == "Cancelled"
    assert r4.json()["cancelled_at"] is not None


def test_add_same_package_twice_keeps_one_item(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    client.post("/cart/", json=create_cart_item_dict(package["id"], guests=2), headers=auth(user_id))
    client.post("/cart/", json=create_cart_item_dict(package["id"], guests=5, notes="twin rooms"), headers=auth(user_id))

    items = client.get("/cart/", headers=auth(user_id)).json()
    assert len(items) == 1
    assert items[0]["number_of_guests"] == 5
    assert items[0]["special_requests"] == "twin rooms"


def test_update_and_remove_cart_item(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    item = client.post("/cart/", json=create_cart_item_dict(package["id"]), headers=auth(user_id)).json()

    update = {"start_date": "2026-04-02", "end_date": "2026-04-10", "number_of_guests": 3}
    r = client.put(f"/cart/{item['id']}", json=update, headers=auth(user_id))
    assert r.status_code == 200
    assert r.json()["number_of_guests"] == 3
    assert Decimal(r.json()["total_price"]) == Decimal("12600")

    r2 = client.delete(f"/cart/{item['id']}", headers=auth(user_id))
    assert r2.status_code == 204
    assert client.get("/cart/summary", headers=auth(user_id)).json()["count"] == 0


def test_clear_cart(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    first = create_package(client, admin_id)
    second = create_package(client, admin_id, destination="Vermont, USA", season="autumn")
    client.post("/cart/", json=create_cart_item_dict(first["id"]), headers=auth(user_id))
    client.post("/cart/", json=create_cart_item_dict(second["id"]), headers=auth(user_id))
    r = client.delete("/cart/", headers=auth(user_id))
    assert r.status_code == 204
    assert client.get("/cart/", headers=auth(user_id)).json() == []


def test_direct_booking_update_and_list(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id, price="1000")
    r = client.post("/bookings/", json=create_cart_item_dict(package["id"], guests=2), headers=auth(user_id))
    assert r.status_code == 201
    booking = r.json()
    assert Decimal(booking["total_price"]) == Decimal("2000")

    update = {"start_date": "2026-04-03", "end_date": "2026-04-12", "number_of_guests": 4, "special_requests": "crib"}
    r2 = client.put(f"/bookings/{booking['id']}", json=update, headers=auth(user_id))
    assert r2.status_code == 200
    assert Decimal(r2.json()["total_price"]) == Decimal("4000")
    assert r2.json()["status"] == "Pending"

    listed = client.get("/bookings/", headers=auth(user_id)).json()
    assert [b["id"] for b in listed] == [booking["id"]]
    assert client.get(f"/bookings/{booking['id']}", headers=auth(user_id)).json()["number_of_guests"] == 4


def test_admin_dashboard_and_bookings(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id, price="500", season="summer", destination="Santorini, Greece")
    client.post("/bookings/", json=create_cart_item_dict(package["id"], guests=1), headers=auth(user_id))
    cancelled = client.post("/bookings/", json=create_cart_item_dict(package["id"], guests=2), headers=auth(user_id)).json()
    client.post(f"/bookings/{cancelled['id']}/cancel", headers=auth(user_id))

    stats = client.get("/admin/stats", headers=auth(admin_id)).json()
    assert stats["total_bookings"] == 2
    assert stats["pending_bookings"] == 1
    assert stats["cancelled_bookings"] == 1
    assert Decimal(stats["total_revenue"]) == Decimal("500")
    assert Decimal(stats["monthly_revenue"]) == Decimal("500")
    assert stats["bookings_by_season"] == {"summer": 2}
    assert stats["total_users"] == 2
    assert len(stats["recent_bookings"]) == 2

    pending = client.get("/admin/bookings/?status=Pending", headers=auth(admin_id)).json()
    assert len(pending) == 1
    assert len(client.get("/admin/bookings/", headers=auth(admin_id)).json()) == 2
    assert client.get(f"/admin/bookings/{cancelled['id']}", headers=auth(admin_id)).json()["status"] == "Cancelled"


def test_admin_user_management(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    users = client.get("/admin/users/", headers=auth(admin_id)).json()
    assert {u["id"] for u in users} == {admin_id, user_id}

    r = client.post(f"/admin/users/{user_id}/toggle-admin", headers=auth(admin_id))
    assert r.status_code == 200
    assert r.json()["is_admin"] is True
    assert client.get("/admin/stats", headers=auth(user_id)).status_code == 200


def test_delete_package_cascades(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    client.post("/cart/", json=create_cart_item_dict(package["id"]), headers=auth(user_id))
    client.post("/bookings/", json=create_cart_item_dict(package["id"]), headers=auth(user_id))

    r = client.delete(f"/admin/packages/{package['id']}", headers=auth(admin_id))
    assert r.status_code == 204
    assert client.get(f"/packages/{package['id']}").status_code == 404
    assert client.get("/cart/", headers=auth(user_id)).json() == []
    assert client.get("/bookings/", headers=auth(user_id)).json() == []


def test_destination_search_endpoint(client):
    r = client.get("/destinations/search", params={"query": "lavender", "season": "Spring"})
    assert r.status_code == 200
    assert [s["full_name"] for s in r.json()] == ["Provence, France"]
    assert r.json()[0]["suggested_season"] == "spring"


# ---------- EDGE CASE TESTS ----------

def test_register_duplicate_email_case_insensitive(client):
    register(client, email="x@y.com")
    r = client.post("/auth/register", json=create_user_dict(email="X@Y.com"))
    assert r.status_code == 409
    assert "Email already registered" in r.text


def test_update_profile_duplicate_email(client):
    register(client, email="a@x.com")
    other = register(client, email="b@x.com")
    r = client.put("/profile", json={"email": "A@x.com"}, headers=auth(other))
    assert r.status_code == 409


def test_login_wrong_password(client):
    register(client)
    r = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert r.status_code == 401


def test_requests_without_identity(client):
    assert client.get("/cart/").status_code == 401
    assert client.get("/cart/", headers=auth(999)).status_code == 401


def test_admin_endpoints_forbidden_for_customers(client):
    user_id = register(client)
    assert client.get("/admin/stats", headers=auth(user_id)).status_code == 403
    r = client.post("/admin/packages/", json=create_package_dict(), headers=auth(user_id))
    assert r.status_code == 403


def test_invalid_package_payloads(client, db_session):
    admin_id = register_admin(client, db_session)
    r = client.post("/admin/packages/", json=create_package_dict(season="monsoon"), headers=auth(admin_id))
    assert r.status_code == 422
    r2 = client.post("/admin/packages/", json=create_package_dict(price="-1"), headers=auth(admin_id))
    assert r2.status_code == 422


def test_cart_guest_bounds(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    r = client.post("/cart/", json=create_cart_item_dict(package["id"], guests=0), headers=auth(user_id))
    assert r.status_code == 422
    r2 = client.post("/cart/", json=create_cart_item_dict(package["id"], guests=21), headers=auth(user_id))
    assert r2.status_code == 422
    assert client.get("/cart/summary", headers=auth(user_id)).json()["count"] == 0


def test_cart_dates_reversed(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    data = create_cart_item_dict(package["id"], start="2026-04-15", end="2026-04-01")
    r = client.post("/cart/", json=data, headers=auth(user_id))
    assert r.status_code == 400
    assert "end_date" in r.text


def test_add_nonexistent_package_to_cart(client):
    user_id = register(client)
    r = client.post("/cart/", json=create_cart_item_dict(999), headers=auth(user_id))
    assert r.status_code == 404


def test_other_users_items_look_missing(client, db_session):
    admin_id = register_admin(client, db_session)
    owner = register(client, email="owner@example.com")
    stranger = register(client, email="stranger@example.com")
    package = create_package(client, admin_id)
    item = client.post("/cart/", json=create_cart_item_dict(package["id"]), headers=auth(owner)).json()
    booking = client.post("/bookings/", json=create_cart_item_dict(package["id"]), headers=auth(owner)).json()

    assert client.delete(f"/cart/{item['id']}", headers=auth(stranger)).status_code == 404
    assert client.get(f"/bookings/{booking['id']}", headers=auth(stranger)).status_code == 404
    assert client.post(f"/bookings/{booking['id']}/cancel", headers=auth(stranger)).status_code == 404


def test_checkout_empty_cart(client):
    user_id = register(client)
    r = client.post("/cart/checkout", headers=auth(user_id))
    assert r.status_code == 200
    assert r.json() == []


def test_cancel_twice(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    booking = client.post("/bookings/", json=create_cart_item_dict(package["id"]), headers=auth(user_id)).json()
    first = client.post(f"/bookings/{booking['id']}/cancel", headers=auth(user_id))
    assert first.status_code == 200
    second = client.post(f"/bookings/{booking['id']}/cancel", headers=auth(user_id))
    assert second.status_code == 409
    assert client.get(f"/bookings/{booking['id']}", headers=auth(user_id)).json()["cancelled_at"] == first.json()["cancelled_at"]


def test_update_cancelled_booking_rejected(client, db_session):
    admin_id = register_admin(client, db_session)
    user_id = register(client)
    package = create_package(client, admin_id)
    booking = client.post("/bookings/", json=create_cart_item_dict(package["id"]), headers=auth(user_id)).json()
    client.post(f"/bookings/{booking['id']}/cancel", headers=auth(user_id))
    update = {"start_date": "2026-04-03", "end_date": "2026-04-12", "number_of_guests": 4}
    r = client.put(f"/bookings/{booking['id']}", json=update, headers=auth(user_id))
    assert r.status_code == 409


def test_admin_nonexistent_resources(client, db_session):
    admin_id = register_admin(client, db_session)
    headers = auth(admin_id)
    assert client.get("/admin/packages/999", headers=headers).status_code == 404
    assert client.put("/admin/packages/999", json=create_package_dict(), headers=headers).status_code == 404
    assert client.delete("/admin/packages/999", headers=headers).status_code == 404
    assert client.post("/admin/packages/999/toggle", headers=headers).status_code == 404
    assert client.get("/admin/bookings/999", headers=headers).status_code == 404
    assert client.put("/admin/bookings/999/status", json={"status": "Confirmed"}, headers=headers).status_code == 404
    assert client.post("/admin/users/999/toggle-admin", headers=headers).status_code == 404


def test_admin_rights_come_from_stored_user(client, db_session):
    user_id = register(client)
    r = client.get("/admin/stats", headers={**auth(user_id), "X-Is-Admin": "true"})
    assert r.status_code == 403
    admin_id = register_admin(client, db_session, email="boss@example.com")
    assert client.get("/admin/stats", headers=auth(admin_id)).status_code == 200


def test_database_failure_returns_generic_error(client, monkeypatch):
    def broken_list_active(db):
        raise SQLAlchemyError("connection reset by peer")

    monkeypatch.setattr(catalog, "list_active", broken_list_active)
    r = client.get("/packages/")
    assert r.status_code == 500
    assert r.json() == {"detail": "Something went wrong, please try again later"}
    assert "connection reset" not in r.text


def test_every_error_kind_maps_to_a_status():
    assert set(ERROR_STATUS) == set(ErrorKind)
    assert ERROR_STATUS[ErrorKind.UPSTREAM_UNAVAILABLE] == 503

# ---------- END OF TEST SUITE ----------

"""HTTP-level tests: the routers running against the in-memory store."""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from agroconnect.main import create_app
from agroconnect.routers.deps import get_store
from agroconnect.services.auth import create_access_token


@pytest.fixture
def client(store):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_token(client, announcement):
    response = client.post("/api/offers", json={"announcement_id": str(announcement.id), "price": "100"})

    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"


def test_rejects_garbage_token(client):
    response = client.get("/api/offers/mine", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


def test_full_deal_over_http(client, store, owner, bidder, announcement):
    created = client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": "100", "message": "Pago a vista"},
        headers=auth_header(bidder),
    )
    assert created.status_code == 201
    offer = created.json()
    assert offer["status"] == "pending"
    assert Decimal(offer["price"]) == Decimal("100")

    forbidden = client.put(
        f"/api/offers/{offer['id']}/status", json={"status": "accepted"}, headers=auth_header(bidder)
    )
    assert forbidden.status_code == 403

    accepted = client.put(
        f"/api/offers/{offer['id']}/status", json={"status": "accepted"}, headers=auth_header(owner)
    )
    assert accepted.json()["status"] == "accepted"

    completed = client.put(
        f"/api/offers/{offer['id']}/status", json={"status": "completed"}, headers=auth_header(bidder)
    )
    assert completed.json()["status"] == "completed"

    review = client.post(
        "/api/reviews",
        json={"offer_id": offer["id"], "rating": 5, "comment": "Tudo certo"},
        headers=auth_header(bidder),
    )
    assert review.status_code == 201
    assert review.json()["reviewer_type"] == "buyer"

    check = client.get(f"/api/reviews/check/{offer['id']}", headers=auth_header(bidder)).json()
    assert check == {
        "eligible": False,
        "reviewer_type": "buyer",
        "counterparty_user_id": str(owner.id),
        "reason": "already reviewed",
    }
    assert client.get(
        f"/api/reviews/check/{offer['id']}", headers=auth_header(owner)
    ).json()["eligible"] is True

    reputation = client.get(f"/api/users/{owner.id}").json()
    assert reputation["rating"] == 5.0
    assert reputation["review_count"] == 1
    assert reputation["completed_deals"] == 1

    public_reviews = client.get(f"/api/reviews/user/{owner.id}").json()
    assert public_reviews["total"] == 1

    feed = client.get(f"/api/activities/user/{owner.id}").json()
    assert [entry["activity_type"] for entry in feed["items"]] == ["review_received"]


@pytest.mark.parametrize("price", ["0", "-5", "abc", "123456789012.345", "10.123", "100000000"])
def test_create_offer_rejects_bad_price(client, bidder, announcement, price):
    response = client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": price},
        headers=auth_header(bidder),
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_malformed_offer_body_uses_error_envelope(client, bidder, announcement):
    response = client.post(
        "/api/offers",
        json={"announcement_id": "not-a-uuid", "price": "abc"},
        headers=auth_header(bidder),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["kind"] == "invalid_argument"
    assert "detail" not in body


def test_counter_offer_price_out_of_range(client, owner, bidder, announcement):
    offer = client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": "100"},
        headers=auth_header(bidder),
    ).json()

    response = client.put(
        f"/api/offers/{offer['id']}/counteroffer",
        json={"price": "99999999999"},
        headers=auth_header(owner),
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_duplicate_pending_offer_conflicts(client, bidder, announcement):
    body = {"announcement_id": str(announcement.id), "price": "100"}
    client.post("/api/offers", json=body, headers=auth_header(bidder))

    response = client.post("/api/offers", json=body, headers=auth_header(bidder))

    assert response.status_code == 409


def test_offer_on_missing_announcement(client, bidder):
    response = client.post(
        "/api/offers",
        json={"announcement_id": str(uuid4()), "price": "100"},
        headers=auth_header(bidder),
    )

    assert response.status_code == 404


def test_unknown_status_value(client, owner, bidder, announcement):
    offer = client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": "100"},
        headers=auth_header(bidder),
    ).json()

    response = client.put(
        f"/api/offers/{offer['id']}/status", json={"status": "counteroffered"}, headers=auth_header(owner)
    )

    assert response.status_code == 400


def test_counter_offer_route(client, owner, bidder, announcement):
    offer = client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": "100"},
        headers=auth_header(bidder),
    ).json()

    response = client.put(
        f"/api/offers/{offer['id']}/counteroffer",
        json={"price": "140", "message": "Minimo 140"},
        headers=auth_header(owner),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert Decimal(response.json()["price"]) == Decimal("140")


def test_offer_lists(client, owner, bidder, announcement):
    client.post(
        "/api/offers",
        json={"announcement_id": str(announcement.id), "price": "100"},
        headers=auth_header(bidder),
    )

    mine = client.get("/api/offers/mine", headers=auth_header(bidder)).json()
    received = client.get("/api/offers/received", headers=auth_header(owner)).json()
    on_listing = client.get(
        f"/api/offers/announcement/{announcement.id}", headers=auth_header(owner)
    ).json()

    assert mine["total"] == received["total"] == on_listing["total"] == 1
    assert mine["limit"] == 10

    assert client.get(
        f"/api/offers/announcement/{announcement.id}", headers=auth_header(bidder)
    ).status_code == 403


def test_pagination_bounds(client, bidder):
    response = client.get("/api/offers/mine?limit=0", headers=auth_header(bidder))

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_register_login_and_me(client):
    registered = client.post("/api/auth/register", json={
        "name": "Lucia Campos",
        "email": "lucia@example.com",
        "password": "segredo1",
        "user_type": "tecnico",
    })
    assert registered.status_code == 201

    login = client.post("/api/auth/login", json={"email": "lucia@example.com", "password": "segredo1"})
    assert login.status_code == 200
    token = login.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "lucia@example.com"
    assert "password" not in me.json()

    wrong = client.post("/api/auth/login", json={"email": "lucia@example.com", "password": "outra1"})
    assert wrong.status_code == 401


def test_announcement_routes(client, owner, bidder):
    created = client.post("/api/announcements", json={
        "title": "Servico de colheita mecanizada",
        "description": "Colheita de soja e milho com maquina propria na regiao.",
        "price": "3500.00",
        "location": "Rio Verde, GO",
        "category": "Servicos",
    }, headers=auth_header(owner))
    assert created.status_code == 201
    announcement_id = created.json()["id"]

    listed = client.get("/api/announcements?category=Servicos").json()
    assert [a["id"] for a in listed["items"]] == [announcement_id]

    fetched = client.get(f"/api/announcements/{announcement_id}").json()
    assert fetched["views"] == 1

    assert client.put(
        f"/api/announcements/{announcement_id}", json={"price": "3000.00"}, headers=auth_header(bidder)
    ).status_code == 403

    deleted = client.delete(f"/api/announcements/{announcement_id}", headers=auth_header(owner))
    assert deleted.json()["status"] == "success"
    assert client.get(f"/api/announcements/{announcement_id}").status_code == 404


def test_unknown_user_reputation(client):
    assert client.get(f"/api/users/{uuid4()}").status_code == 404


def test_account_management_routes(client, store):
    user = store.add_user(email="rita@example.com", password="segredo1")
    headers = auth_header(user)

    profile = client.put("/api/auth/profile", json={"location": "Uberaba, MG"}, headers=headers)
    assert profile.status_code == 200
    assert profile.json()["location"] == "Uberaba, MG"

    bad_phone = client.put("/api/auth/profile", json={"phone": "123"}, headers=headers)
    assert bad_phone.status_code == 400
    assert bad_phone.json()["kind"] == "invalid_argument"

    wrong = client.put(
        "/api/auth/password",
        json={"current_password": "errada", "new_password": "novasenha"},
        headers=headers,
    )
    assert wrong.status_code == 401

    changed = client.put(
        "/api/auth/password",
        json={"current_password": "segredo1", "new_password": "novasenha"},
        headers=headers,
    )
    assert changed.json()["status"] == "success"

    deleted = client.delete("/api/auth/account", headers=headers)
    assert deleted.json()["status"] == "success"

    login = client.post("/api/auth/login", json={"email": "rita@example.com", "password": "novasenha"})
    assert login.status_code == 401
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_user_stats_route(client, owner):
    response = client.get(f"/api/users/{owner.id}/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
    assert body["verification_level"] == 0

    assert client.get(f"/api/users/{uuid4()}/stats").status_code == 404


def test_document_routes(client, store, bidder, outsider):
    admin = store.add_user(name="Equipe AgroConnect", is_admin=True)

    submitted = client.post("/api/documents", json={
        "type": "crea",
        "document_number": "GO-55555",
        "document_url": "https://files.example.com/crea.pdf",
    }, headers=auth_header(bidder))
    assert submitted.status_code == 201
    document_id = submitted.json()["id"]

    bad_type = client.post("/api/documents", json={
        "type": "passaporte",
        "document_url": "https://files.example.com/p.pdf",
    }, headers=auth_header(bidder))
    assert bad_type.status_code == 400

    listed = client.get("/api/documents", headers=auth_header(bidder)).json()
    assert [d["id"] for d in listed["items"]] == [document_id]

    assert client.get(f"/api/documents/{document_id}", headers=auth_header(outsider)).status_code == 403

    forbidden = client.put(
        f"/api/documents/{document_id}/verify", json={"status": "approved"}, headers=auth_header(bidder)
    )
    assert forbidden.status_code == 403

    verified = client.put(
        f"/api/documents/{document_id}/verify", json={"status": "approved"}, headers=auth_header(admin)
    )
    assert verified.status_code == 200
    assert verified.json()["is_verified"] is True

    stats = client.get(f"/api/users/{bidder.id}/stats").json()
    assert stats["is_verified"] is True
    assert stats["verification_level"] == 3

    assert client.delete(
        f"/api/documents/{document_id}", headers=auth_header(bidder)
    ).status_code == 409

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.wishlist import Wishlist
from tests.helpers import auth_headers, create_product, create_user


def test_like_and_unlike_upserts_one_row(client: TestClient, db_session: Session):
    user = create_user(db_session, "wish@example.com")
    shirt = create_product(db_session, "Shirt", price="10.00")
    headers = auth_headers(user)

    liked = client.post("/api/v1/wishlist", headers=headers, json={"product": shirt.id})
    assert liked.status_code == 200
    assert liked.json()["data"]["wishlist"]["created"] is True

    listing = client.get("/api/v1/wishlist", headers=headers).json()["data"]["wishlist"]
    assert [item["product"]["slug"] for item in listing] == ["shirt"]
    assert listing[0]["product"]["price"] == 10.0

    unliked = client.post(
        "/api/v1/wishlist",
        headers=headers,
        json={"product": shirt.id, "is_liked": False},
    )
    assert unliked.json()["data"]["wishlist"]["created"] is False
    assert unliked.json()["message"] == "Removed from your Wishlist"
    assert db_session.query(Wishlist).count() == 1
    assert client.get("/api/v1/wishlist", headers=headers).json()["data"]["wishlist"] == []


def test_wishlist_is_per_user(client: TestClient, db_session: Session):
    first = create_user(db_session, "first@example.com")
    second = create_user(db_session, "second@example.com")
    shirt = create_product(db_session, "Shirt")

    client.post("/api/v1/wishlist", headers=auth_headers(first), json={"product": shirt.id})

    assert client.get("/api/v1/wishlist", headers=auth_headers(second)).json()["data"]["wishlist"] == []


def test_wishlist_unknown_product(client: TestClient, db_session: Session):
    user = create_user(db_session, "nowish@example.com")

    missing = client.post("/api/v1/wishlist", headers=auth_headers(user), json={"product": "b" * 24})
    malformed = client.post("/api/v1/wishlist", headers=auth_headers(user), json={"product": "shirt"})

    assert missing.status_code == 404
    assert malformed.status_code == 400


def test_wishlist_requires_authentication(client: TestClient, db_session: Session):
    assert client.get("/api/v1/wishlist").status_code == 401

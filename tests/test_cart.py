from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.cart import Cart, CartItem
from tests.helpers import auth_headers, create_product, create_user, stock_of


def _add_cart(client: TestClient, user, products) -> dict:
    response = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={"products": products},
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_add_cart_prices_from_catalog_and_takes_stock(client: TestClient, db_session: Session):
    user = create_user(db_session, "cart@example.com")
    shirt = create_product(db_session, "Shirt", price="10.00", quantity=10, taxable=True)

    data = _add_cart(client, user, [{"product": shirt.id, "quantity": 3}])

    assert len(data["cart_id"]) == 24
    item = data["products"][0]
    assert item["purchase_price"] == 10.0
    assert item["total_price"] == 30.0
    assert item["total_tax"] == 1.5
    assert item["price_with_tax"] == 31.5
    assert item["status"] == "Active"
    assert stock_of(db_session, shirt) == 7


def test_add_cart_rejects_client_supplied_price(client: TestClient, db_session: Session):
    user = create_user(db_session, "price@example.com")
    shirt = create_product(db_session, "Shirt")

    response = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={"products": [{"product": shirt.id, "quantity": 1, "price": 0.01}]},
    )

    assert response.status_code == 400
    assert db_session.query(Cart).count() == 0


def test_add_cart_requires_authentication(client: TestClient, db_session: Session):
    shirt = create_product(db_session, "Shirt")

    response = client.post("/api/v1/cart/add", json={"products": [{"product": shirt.id}]})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_add_cart_insufficient_stock(client: TestClient, db_session: Session):
    user = create_user(db_session, "stock@example.com")
    shirt = create_product(db_session, "Shirt", quantity=2)

    response = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={
            "products": [
                {"product": shirt.id, "quantity": 2},
                {"product": shirt.id, "quantity": 1},
            ]
        },
    )

    assert response.status_code == 400
    assert "Insufficient stock for Shirt" in response.json()["message"]
    assert stock_of(db_session, shirt) == 2


def test_add_cart_unknown_or_inactive_product(client: TestClient, db_session: Session):
    user = create_user(db_session, "missing@example.com")
    hidden = create_product(db_session, "Hidden", is_active=False)

    unknown = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={"products": [{"product": "0" * 24}]},
    )
    inactive = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={"products": [{"product": hidden.id}]},
    )

    assert unknown.status_code == 404
    assert inactive.status_code == 404


def test_add_cart_malformed_product_id(client: TestClient, db_session: Session):
    user = create_user(db_session, "malformed@example.com")

    response = client.post(
        "/api/v1/cart/add",
        headers=auth_headers(user),
        json={"products": [{"product": "not-an-id"}]},
    )

    assert response.status_code == 400


def test_append_item_to_owned_cart(client: TestClient, db_session: Session):
    user = create_user(db_session, "append@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    socks = create_product(db_session, "Socks", price="2.50", quantity=5)
    cart_id = _add_cart(client, user, [{"product": shirt.id, "quantity": 1}])["cart_id"]

    response = client.post(
        f"/api/v1/cart/add/{cart_id}",
        headers=auth_headers(user),
        json={"product": socks.id, "quantity": 2},
    )

    assert response.status_code == 200
    assert response.json()["data"]["item"]["total_price"] == 5.0
    assert stock_of(db_session, socks) == 3
    items = db_session.query(CartItem).filter(CartItem.cart_id == cart_id).all()
    assert sorted(item.product_id for item in items) == sorted([shirt.id, socks.id])


def test_append_item_to_foreign_cart_is_not_found(client: TestClient, db_session: Session):
    owner = create_user(db_session, "owner@example.com")
    other = create_user(db_session, "other@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id = _add_cart(client, owner, [{"product": shirt.id}])["cart_id"]

    response = client.post(
        f"/api/v1/cart/add/{cart_id}",
        headers=auth_headers(other),
        json={"product": shirt.id},
    )

    assert response.status_code == 404
    assert stock_of(db_session, shirt) == 9


def test_delete_cart_restores_stock(client: TestClient, db_session: Session):
    user = create_user(db_session, "delete@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id = _add_cart(client, user, [{"product": shirt.id, "quantity": 4}])["cart_id"]
    assert stock_of(db_session, shirt) == 6

    response = client.delete(f"/api/v1/cart/delete/{cart_id}", headers=auth_headers(user))

    assert response.status_code == 200
    assert stock_of(db_session, shirt) == 10
    assert db_session.query(Cart).count() == 0
    assert db_session.query(CartItem).count() == 0

    again = client.delete(f"/api/v1/cart/delete/{cart_id}", headers=auth_headers(user))
    assert again.status_code == 404
    assert stock_of(db_session, shirt) == 10


def test_delete_foreign_cart_is_not_found(client: TestClient, db_session: Session):
    owner = create_user(db_session, "owner2@example.com")
    other = create_user(db_session, "other2@example.com")
    shirt = create_product(db_session, "Shirt")
    cart_id = _add_cart(client, owner, [{"product": shirt.id}])["cart_id"]

    response = client.delete(f"/api/v1/cart/delete/{cart_id}", headers=auth_headers(other))

    assert response.status_code == 404
    assert db_session.query(Cart).count() == 1


def test_delete_cart_malformed_id(client: TestClient, db_session: Session):
    user = create_user(db_session, "badid@example.com")

    response = client.delete("/api/v1/cart/delete/xyz", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid cart ID"


def test_remove_product_from_cart(client: TestClient, db_session: Session):
    user = create_user(db_session, "remove@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    socks = create_product(db_session, "Socks", quantity=10)
    cart_id = _add_cart(
        client,
        user,
        [{"product": shirt.id, "quantity": 2}, {"product": socks.id, "quantity": 3}],
    )["cart_id"]

    response = client.delete(
        f"/api/v1/cart/delete/{cart_id}/{socks.id}",
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["data"]["removed"] == 1
    assert stock_of(db_session, socks) == 10
    assert stock_of(db_session, shirt) == 8

    again = client.delete(
        f"/api/v1/cart/delete/{cart_id}/{socks.id}",
        headers=auth_headers(user),
    )
    assert again.status_code == 404


def test_append_item_to_ordered_cart_is_rejected(client: TestClient, db_session: Session):
    user = create_user(db_session, "ordered@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    socks = create_product(db_session, "Socks", quantity=5)
    cart_id = _add_cart(client, user, [{"product": shirt.id}])["cart_id"]
    placed = client.post("/api/v1/order/add", headers=auth_headers(user), json={"cart_id": cart_id})
    assert placed.status_code == 201

    response = client.post(
        f"/api/v1/cart/add/{cart_id}",
        headers=auth_headers(user),
        json={"product": socks.id, "quantity": 2},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "An order has already been placed for this cart."
    assert stock_of(db_session, socks) == 5
    assert db_session.query(CartItem).filter(CartItem.cart_id == cart_id).count() == 1

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.cart import Cart, CartItem, CartItemStatus
from app.models.order import Order
from tests.helpers import auth_headers, create_product, create_user, stock_of


def _checkout(client: TestClient, user, products) -> tuple:
    headers = auth_headers(user)
    cart = client.post("/api/v1/cart/add", headers=headers, json={"products": products})
    assert cart.status_code == 201, cart.json()
    cart_data = cart.json()["data"]
    order = client.post("/api/v1/order/add", headers=headers, json={"cart_id": cart_data["cart_id"]})
    assert order.status_code == 201, order.json()
    item_ids = [item["id"] for item in cart_data["products"]]
    return cart_data["cart_id"], order.json()["data"]["order_id"], item_ids


def _set_status(client: TestClient, user, item_id: str, body: dict):
    return client.put(
        f"/api/v1/order/status/item/{item_id}",
        headers=auth_headers(user),
        json=body,
    )


def test_cancel_one_item_restores_its_stock(client: TestClient, db_session: Session):
    user = create_user(db_session, "status@example.com")
    shirt = create_product(db_session, "Shirt", price="10.00", quantity=10, taxable=True)
    socks = create_product(db_session, "Socks", price="5.00", quantity=10, taxable=True)
    cart_id, order_id, (shirt_item, socks_item) = _checkout(
        client,
        user,
        [{"product": shirt.id, "quantity": 2}, {"product": socks.id, "quantity": 1}],
    )

    response = _set_status(
        client, user, socks_item, {"cart_id": cart_id, "order_id": order_id, "status": "Cancelled"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["order_cancelled"] is False
    assert response.json()["message"] == "Item has been cancelled successfully!"
    assert stock_of(db_session, socks) == 10
    assert stock_of(db_session, shirt) == 8

    order = client.get(f"/api/v1/order/{order_id}", headers=auth_headers(user)).json()["data"]["order"]
    assert order["total"] == 20.0
    assert order["total_tax"] == 1.0
    cancelled = next(item for item in order["products"] if item["id"] == socks_item)
    assert cancelled["status"] == "Cancelled"
    assert cancelled["total_tax"] == 0


def test_cancelling_twice_restores_stock_once(client: TestClient, db_session: Session):
    user = create_user(db_session, "twice@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    socks = create_product(db_session, "Socks", quantity=10)
    cart_id, order_id, (_, socks_item) = _checkout(
        client,
        user,
        [{"product": shirt.id}, {"product": socks.id, "quantity": 4}],
    )

    first = _set_status(client, user, socks_item, {"cart_id": cart_id})
    second = _set_status(client, user, socks_item, {"cart_id": cart_id})

    assert first.status_code == 200
    assert second.status_code == 200
    assert stock_of(db_session, socks) == 10


def test_cancelling_last_item_cascades(client: TestClient, db_session: Session):
    user = create_user(db_session, "cascade@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id, order_id, (item_id,) = _checkout(client, user, [{"product": shirt.id, "quantity": 3}])
    assert stock_of(db_session, shirt) == 7

    response = _set_status(client, user, item_id, {"cart_id": cart_id, "order_id": order_id})

    assert response.status_code == 200
    assert response.json()["data"]["order_cancelled"] is True
    assert stock_of(db_session, shirt) == 10
    assert db_session.query(Order).count() == 0
    assert db_session.query(Cart).count() == 0
    assert db_session.query(CartItem).count() == 0

    repeat = _set_status(client, user, item_id, {"cart_id": cart_id, "order_id": order_id})
    assert repeat.status_code == 404
    assert stock_of(db_session, shirt) == 10


def test_cascade_requires_cart_id(client: TestClient, db_session: Session):
    user = create_user(db_session, "nocart@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id, order_id, (item_id,) = _checkout(client, user, [{"product": shirt.id}])

    response = _set_status(client, user, item_id, {"status": "Cancelled"})

    assert response.status_code == 200
    assert response.json()["data"]["order_cancelled"] is False
    assert db_session.query(Cart).count() == 1
    assert db_session.query(Order).count() == 1


def test_non_cancel_status_only_updates(client: TestClient, db_session: Session):
    user = create_user(db_session, "shipped@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id, order_id, (item_id,) = _checkout(client, user, [{"product": shirt.id, "quantity": 2}])

    response = _set_status(client, user, item_id, {"cart_id": cart_id, "status": "Shipped"})

    assert response.status_code == 200
    assert response.json()["message"] == "Item status has been updated successfully!"
    db_session.expire_all()
    assert db_session.get(CartItem, item_id).status == CartItemStatus.SHIPPED
    assert stock_of(db_session, shirt) == 8


def test_status_update_with_wrong_cart_id(client: TestClient, db_session: Session):
    user = create_user(db_session, "wrongcart@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    _, _, (item_id,) = _checkout(client, user, [{"product": shirt.id}])
    other_cart_id, _, _ = _checkout(client, user, [{"product": shirt.id}])

    response = _set_status(client, user, item_id, {"cart_id": other_cart_id})

    assert response.status_code == 400
    assert stock_of(db_session, shirt) == 8


def test_status_update_with_unrelated_order(client: TestClient, db_session: Session):
    user = create_user(db_session, "wrongorder@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id, _, (item_id,) = _checkout(client, user, [{"product": shirt.id}])
    _, other_order_id, _ = _checkout(client, user, [{"product": shirt.id}])

    response = _set_status(client, user, item_id, {"cart_id": cart_id, "order_id": other_order_id})

    assert response.status_code == 404
    assert db_session.query(Order).count() == 2


def test_status_update_by_other_customer(client: TestClient, db_session: Session):
    owner = create_user(db_session, "itemowner@example.com")
    other = create_user(db_session, "itemthief@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    cart_id, order_id, (item_id,) = _checkout(client, owner, [{"product": shirt.id}])

    response = _set_status(client, other, item_id, {"cart_id": cart_id, "order_id": order_id})

    assert response.status_code == 404
    assert stock_of(db_session, shirt) == 9


def test_status_update_malformed_ids(client: TestClient, db_session: Session):
    user = create_user(db_session, "badstatus@example.com")
    shirt = create_product(db_session, "Shirt", quantity=10)
    _, _, (item_id,) = _checkout(client, user, [{"product": shirt.id}])

    bad_path = _set_status(client, user, "nope", {})
    bad_body = _set_status(client, user, item_id, {"order_id": "1234"})
    bad_status = _set_status(client, user, item_id, {"status": "Lost"})

    assert bad_path.status_code == 400
    assert bad_body.status_code == 400
    assert bad_status.status_code == 400


def test_cancelled_item_cannot_be_reactivated(client: TestClient, db_session: Session):
    user = create_user(db_session, "reactivate@example.com")
    shirt = create_product(db_session, "Shirt", quantity=7)
    socks = create_product(db_session, "Socks", quantity=10)
    cart_id, order_id, (shirt_item, _) = _checkout(
        client,
        user,
        [{"product": shirt.id, "quantity": 3}, {"product": socks.id}],
    )
    assert stock_of(db_session, shirt) == 4

    cancelled = _set_status(client, user, shirt_item, {"cart_id": cart_id, "status": "Cancelled"})
    reactivated = _set_status(client, user, shirt_item, {"cart_id": cart_id, "status": "Active"})
    cancelled_again = _set_status(client, user, shirt_item, {"cart_id": cart_id, "status": "Cancelled"})

    assert cancelled.status_code == 200
    assert reactivated.status_code == 400
    assert reactivated.json()["message"] == "A cancelled item cannot be reactivated."
    assert cancelled_again.status_code == 200
    assert stock_of(db_session, shirt) == 7
    db_session.expire_all()
    assert db_session.get(CartItem, shirt_item).status == CartItemStatus.CANCELLED

    cancel = client.delete(f"/api/v1/order/cancel/{order_id}", headers=auth_headers(user))
    assert cancel.status_code == 200
    assert stock_of(db_session, shirt) == 7
    assert stock_of(db_session, socks) == 10

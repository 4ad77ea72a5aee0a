from decimal import Decimal
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from app.core.config import settings
from app.core.exceptions import (
    CartNotFound,
    ForbiddenError,
    InvalidPrice,
    InvalidQuantity,
    NotFoundError,
    OrderNotFound,
    ProductNotFound,
    ValidationError,
)
from app.models.cart import Cart, CartItem, CartItemStatus
from app.models.order import Order
from app.models.product import Product
from app.models.user import User
from app.schemas.order import CartItemStatusUpdate
from app.services.cart_service import CartService, owned_carts, restorable_items
from app.services.inventory_service import InventoryService
from app.utils.email import send_order_confirmation_email
from app.utils.object_id import is_valid_object_id
from app.utils.tax import TaxLine, calculate_order_tax, to_display

logger = structlog.get_logger()

# cart -> items -> product -> brand, loaded up front for order rendering
CART_CONTENTS = (
    selectinload(Cart.items)
    .joinedload(CartItem.product)
    .joinedload(Product.brand)
)
ORDER_CONTENTS = (
    selectinload(Order.cart)
    .selectinload(Cart.items)
    .joinedload(CartItem.product)
    .joinedload(Product.brand)
)


def _product_summary(product: Optional[Product]) -> Optional[dict]:
    if product is None:
        return None
    brand = product.brand
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "sku": product.sku,
        "image_url": product.image_url,
        "price": to_display(product.price),
        "taxable": product.taxable,
        "brand": {"id": brand.id, "name": brand.name, "slug": brand.slug} if brand else None,
    }


def format_order(order: Order, cart: Cart) -> dict:
    """Render an order with per-line and order-level tax.

    The displayed total is recomputed from the non-cancelled line items, so
    cancelling a line lowers it without rewriting the stored total.
    """
    lines = [
        TaxLine(
            price=item.purchase_price,
            quantity=item.quantity,
            taxable=bool(item.product and item.product.taxable),
            status=item.status,
        )
        for item in cart.items
    ]
    summary = calculate_order_tax(lines, settings.TAX_RATE)

    return {
        "id": order.id,
        "cart_id": order.cart_id,
        "user_id": order.user_id,
        "created": order.created_at,
        "total": to_display(summary.total),
        "total_tax": to_display(summary.total_tax),
        "total_with_tax": to_display(summary.total_with_tax),
        "products": [
            {
                "id": item.id,
                "quantity": item.quantity,
                "status": item.status.value,
                "purchase_price": to_display(item.purchase_price),
                "total_price": to_display(line.total_price),
                "total_tax": to_display(line.total_tax),
                "price_with_tax": to_display(line.price_with_tax),
                "product": _product_summary(item.product),
            }
            for item, line in zip(cart.items, summary.lines)
        ],
    }


def visible_orders(db: Session, user: User) -> Query:
    """Orders whose cart still exists, scoped to the caller unless admin."""
    query = db.query(Order).join(Cart, Cart.id == Order.cart_id)
    if not user.is_admin:
        query = query.filter(Order.user_id == user.id)
    return query


class OrderService:

    @staticmethod
    def create_order(db: Session, user: User, cart_id: str) -> dict:
        """Turn a cart into an order priced from the current catalog."""
        cart = (
            owned_carts(db, user)
            .options(CART_CONTENTS, joinedload(Cart.user))
            .filter(Cart.id == cart_id)
            .first()
        )
        if not cart:
            raise CartNotFound()
        if db.query(Order.id).filter(Order.cart_id == cart.id).first():
            raise ValidationError("An order has already been placed for this cart.")
        if not cart.items:
            raise ValidationError("Cart is empty")

        total = Decimal("0")
        for item in cart.items:
            product = item.product
            if product is None:
                raise ProductNotFound("A product in this cart is no longer available.")
            if product.price is None or product.price < 0:
                raise InvalidPrice(product.name)
            if item.quantity <= 0:
                raise InvalidQuantity(product.name)
            item.purchase_price = product.price
            total += product.price * item.quantity

        order = Order(cart_id=cart.id, user_id=cart.user_id, total=total)
        db.add(order)
        db.flush()

        payload = format_order(order, cart)
        recipient = cart.user.email
        db.commit()

        logger.info(
            "order_created",
            order_id=payload["id"],
            cart_id=cart_id,
            user_id=payload["user_id"],
            total=str(total),
        )

        # Best-effort; a failed notification never affects the committed order.
        send_order_confirmation_email(recipient, payload)
        return payload

    @staticmethod
    def get_order(db: Session, user: User, order_id: str) -> dict:
        order = (
            visible_orders(db, user)
            .options(ORDER_CONTENTS)
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError(f"Cannot find order with the id: {order_id}.")
        return format_order(order, order.cart)

    @staticmethod
    def search_orders(db: Session, user: User, search: str) -> List[dict]:
        """Exact id lookup; anything that is not a well-formed id finds nothing."""
        search = (search or "").strip()
        if not is_valid_object_id(search):
            return []

        orders = (
            visible_orders(db, user)
            .options(ORDER_CONTENTS)
            .filter(Order.id == search.lower())
            .all()
        )
        return [format_order(order, order.cart) for order in orders]

    @staticmethod
    def list_orders(
        db: Session,
        user: User,
        page: int,
        limit: int,
        mine: bool = False,
    ) -> Tuple[List[dict], int]:
        """One page of orders, newest first."""
        if not mine and not user.is_admin:
            raise ForbiddenError()

        query = db.query(Order).join(Cart, Cart.id == Order.cart_id)
        if mine:
            query = query.filter(Order.user_id == user.id)

        count = query.count()
        orders = (
            query.options(ORDER_CONTENTS)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [format_order(order, order.cart) for order in orders], count

    @staticmethod
    def cancel_order(db: Session, user: User, order_id: str) -> None:
        """Cancel an order: give back its stock, then delete its cart and itself.

        Orders whose cart is already gone are still cancellable; there is no
        stock left to restore for them.
        """
        query = db.query(Order).filter(Order.id == order_id)
        if not user.is_admin:
            query = query.filter(Order.user_id == user.id)
        order = query.first()
        if not order:
            raise OrderNotFound()

        cart = (
            db.query(Cart)
            .options(selectinload(Cart.items))
            .filter(Cart.id == order.cart_id)
            .first()
        )
        if cart:
            InventoryService.increase_quantity(db, restorable_items(cart.items))
            CartService.delete_cart_rows(db, cart.id)
        else:
            logger.warning("order_cart_missing", order_id=order_id, cart_id=order.cart_id)

        db.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
        db.commit()
        logger.info("order_cancelled", order_id=order_id, user_id=user.id)

    @staticmethod
    def update_item_status(
        db: Session,
        user: User,
        item_id: str,
        data: CartItemStatusUpdate,
    ) -> dict:
        """Change one line item's status.

        Cancelling gives the item's stock back exactly once. When the last
        live item of a cart is cancelled and ``cart_id`` was supplied, the
        cart (and the order, if ``order_id`` was supplied) is deleted too.
        """
        cart = (
            owned_carts(db, user)
            .join(CartItem, CartItem.cart_id == Cart.id)
            .options(selectinload(Cart.items))
            .filter(CartItem.id == item_id)
            .first()
        )
        if not cart:
            raise CartNotFound("Cart item not found.")

        if data.cart_id and data.cart_id != cart.id:
            raise ValidationError("Item does not belong to this cart.")

        if data.order_id:
            order_query = db.query(Order.id).filter(
                Order.id == data.order_id,
                Order.cart_id == cart.id,
            )
            if not user.is_admin:
                order_query = order_query.filter(Order.user_id == user.id)
            if not order_query.first():
                raise OrderNotFound()

        item = next(item for item in cart.items if item.id == item_id)
        previous_status = item.status
        if previous_status == CartItemStatus.CANCELLED and data.status != CartItemStatus.CANCELLED:
            raise ValidationError("A cancelled item cannot be reactivated.")
        item.status = data.status

        if data.status != CartItemStatus.CANCELLED:
            db.commit()
            logger.info("cart_item_status_updated", item_id=item_id, status=data.status.value)
            return {
                "order_cancelled": False,
                "message": "Item status has been updated successfully!",
            }

        if previous_status != CartItemStatus.CANCELLED:
            InventoryService.increase_quantity(db, [(item.product_id, item.quantity)])

        if data.cart_id and cart.is_fully_cancelled:
            if data.order_id:
                db.flush()
                db.query(Order).filter(Order.id == data.order_id).delete(
                    synchronize_session=False
                )
            CartService.delete_cart_rows(db, cart.id)
            db.commit()
            logger.info(
                "cart_cascade_cancelled",
                cart_id=cart.id,
                order_id=data.order_id,
                user_id=user.id,
            )
            return {
                "order_cancelled": True,
                "message": f"{'Order' if user.is_admin else 'Your order'} has been cancelled successfully!",
            }

        db.commit()
        logger.info("cart_item_cancelled", item_id=item_id, cart_id=cart.id)
        return {
            "order_cancelled": False,
            "message": "Item has been cancelled successfully!",
        }

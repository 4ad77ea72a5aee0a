from typing import Dict, Iterable, List, Tuple

import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from app.core.config import settings
from app.core.exceptions import (
    CartNotFound,
    InsufficientStock,
    NotFoundError,
    ProductNotFound,
    ValidationError,
)
from app.models.cart import Cart, CartItem, CartItemStatus
from app.models.order import Order
from app.models.product import Product
from app.models.user import User
from app.schemas.cart import CartCreate, CartItemCreate
from app.services.inventory_service import InventoryService
from app.utils.tax import TaxLine, calculate_items_sales_tax, to_display

logger = structlog.get_logger()


def owned_carts(db: Session, user: User) -> Query:
    """Carts visible to ``user``: their own, or every cart for an admin."""
    query = db.query(Cart)
    if not user.is_admin:
        query = query.filter(Cart.user_id == user.id)
    return query


def restorable_items(items: Iterable[CartItem]) -> List[Tuple[str, int]]:
    """Stock still held by line items; cancelled items were already given back."""
    return [
        (item.product_id, item.quantity)
        for item in items
        if item.status != CartItemStatus.CANCELLED
    ]


class CartService:

    @staticmethod
    def _load_products(db: Session, items: List[CartItemCreate]) -> Dict[str, Product]:
        product_ids = {item.product for item in items}
        products = {
            product.id: product
            for product in db.query(Product).filter(
                Product.id.in_(product_ids),
                Product.is_active.is_(True),
            )
        }
        if len(products) != len(product_ids):
            raise ProductNotFound()

        requested: Dict[str, int] = {}
        for item in items:
            requested[item.product] = requested.get(item.product, 0) + item.quantity
        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.quantity < quantity:
                raise InsufficientStock(product.name, product.quantity)
        return products

    @staticmethod
    def _price(items: List[CartItem], products: Dict[str, Product]) -> List[dict]:
        lines = [
            TaxLine(
                price=item.purchase_price,
                quantity=item.quantity,
                taxable=products[item.product_id].taxable,
                status=item.status,
            )
            for item in items
        ]
        priced = calculate_items_sales_tax(lines, settings.TAX_RATE)
        return [
            {
                "id": item.id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "status": item.status.value,
                "purchase_price": to_display(item.purchase_price),
                "total_price": to_display(line.total_price),
                "total_tax": to_display(line.total_tax),
                "price_with_tax": to_display(line.price_with_tax),
            }
            for item, line in zip(items, priced)
        ]

    @staticmethod
    def _take_stock(db: Session, cart_id: str, items: List[Tuple[str, int]]) -> None:
        # Runs after the cart commit and is not rolled back against it: a
        # failure here leaves the cart in place with stock not yet decremented.
        try:
            InventoryService.decrease_quantity(db, items)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("inventory_decrement_failed", cart_id=cart_id)
            raise

    @staticmethod
    def create_cart(db: Session, user: User, cart_data: CartCreate) -> dict:
        """Persist a cart priced from catalog records, then take its stock."""
        products = CartService._load_products(db, cart_data.products)

        cart = Cart(user_id=user.id)
        cart.items = [
            CartItem(
                product_id=item.product,
                quantity=item.quantity,
                purchase_price=products[item.product].price,
                status=CartItemStatus.ACTIVE,
                position=position,
            )
            for position, item in enumerate(cart_data.products)
        ]
        db.add(cart)
        db.flush()

        cart_id = cart.id
        priced_items = CartService._price(cart.items, products)
        db.commit()
        logger.info("cart_created", cart_id=cart_id, user_id=user.id, items=len(priced_items))

        CartService._take_stock(
            db, cart_id, [(item.product, item.quantity) for item in cart_data.products]
        )
        return {"cart_id": cart_id, "products": priced_items}

    @staticmethod
    def add_item(db: Session, user: User, cart_id: str, item_data: CartItemCreate) -> dict:
        """Append one product to an existing cart."""
        cart = owned_carts(db, user).filter(Cart.id == cart_id).first()
        if not cart:
            raise CartNotFound()
        if db.query(Order.id).filter(Order.cart_id == cart.id).first():
            raise ValidationError("An order has already been placed for this cart.")

        products = CartService._load_products(db, [item_data])
        last_position = (
            db.query(func.max(CartItem.position)).filter(CartItem.cart_id == cart.id).scalar()
        )

        item = CartItem(
            cart_id=cart.id,
            product_id=item_data.product,
            quantity=item_data.quantity,
            purchase_price=products[item_data.product].price,
            status=CartItemStatus.ACTIVE,
            position=(last_position or 0) + 1,
        )
        db.add(item)
        db.flush()

        priced_item = CartService._price([item], products)[0]
        db.commit()
        logger.info("cart_item_added", cart_id=cart_id, product_id=item_data.product)

        CartService._take_stock(db, cart_id, [(item_data.product, item_data.quantity)])
        return priced_item

    @staticmethod
    def delete_cart_rows(db: Session, cart_id: str) -> int:
        """Delete a cart and its line items; 0 when it was already gone."""
        db.flush()
        db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)
        return db.query(Cart).filter(Cart.id == cart_id).delete(synchronize_session=False)

    @staticmethod
    def delete_cart(db: Session, user: User, cart_id: str) -> None:
        """Delete a whole cart, returning the stock its live items held."""
        cart = (
            owned_carts(db, user)
            .options(selectinload(Cart.items))
            .filter(Cart.id == cart_id)
            .first()
        )
        if not cart:
            raise CartNotFound()

        InventoryService.increase_quantity(db, restorable_items(cart.items))
        CartService.delete_cart_rows(db, cart.id)
        db.commit()
        logger.info("cart_deleted", cart_id=cart_id, user_id=user.id)

    @staticmethod
    def remove_product(db: Session, user: User, cart_id: str, product_id: str) -> int:
        """Remove every line item for ``product_id`` from the cart."""
        items = (
            db.query(CartItem)
            .join(Cart, Cart.id == CartItem.cart_id)
            .filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        )
        if not user.is_admin:
            items = items.filter(Cart.user_id == user.id)
        items = items.all()

        if not items:
            raise NotFoundError("Cart not found or you are not authorized to modify it.")

        InventoryService.increase_quantity(db, restorable_items(items))
        removed = (
            db.query(CartItem)
            .filter(CartItem.id.in_([item.id for item in items]))
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("cart_product_removed", cart_id=cart_id, product_id=product_id, removed=removed)
        return removed

from collections import defaultdict
from typing import Dict, Iterable, Tuple

import structlog
from sqlalchemy import bindparam, update
from sqlalchemy.orm import Session

from app.models.product import Product

logger = structlog.get_logger()

products_table = Product.__table__

# One statement, many parameter sets: a single executemany round trip.
_adjust_quantity = (
    update(products_table)
    .where(products_table.c.id == bindparam("target_id"))
    .values(quantity=products_table.c.quantity + bindparam("delta"))
)


class InventoryService:

    @staticmethod
    def _collapse(items: Iterable[Tuple[str, int]], sign: int) -> Dict[str, int]:
        deltas: Dict[str, int] = defaultdict(int)
        for product_id, quantity in items:
            deltas[product_id] += sign * quantity
        return {product_id: delta for product_id, delta in deltas.items() if delta}

    @staticmethod
    def _apply(db: Session, deltas: Dict[str, int]) -> int:
        if not deltas:
            return 0
        params = [
            {"target_id": product_id, "delta": delta}
            for product_id, delta in sorted(deltas.items())
        ]
        db.connection().execute(_adjust_quantity, params)
        return len(params)

    @staticmethod
    def decrease_quantity(db: Session, items: Iterable[Tuple[str, int]]) -> int:
        """Take ``(product_id, quantity)`` pairs out of stock. Caller commits."""
        deltas = InventoryService._collapse(items, -1)
        adjusted = InventoryService._apply(db, deltas)
        logger.info("inventory_decreased", products=adjusted)
        return adjusted

    @staticmethod
    def increase_quantity(db: Session, items: Iterable[Tuple[str, int]]) -> int:
        """Put ``(product_id, quantity)`` pairs back in stock. Caller commits."""
        deltas = InventoryService._collapse(items, 1)
        adjusted = InventoryService._apply(db, deltas)
        logger.info("inventory_restored", products=adjusted)
        return adjusted

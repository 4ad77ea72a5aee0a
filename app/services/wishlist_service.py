from typing import List

import structlog
from sqlalchemy.orm import Session

from app.core.exceptions import ProductNotFound
from app.models.product import Product
from app.models.user import User
from app.models.wishlist import Wishlist
from app.schemas.wishlist import WishlistUpdate
from app.utils.tax import to_display

logger = structlog.get_logger()


class WishlistService:

    @staticmethod
    def update_wishlist(db: Session, user: User, data: WishlistUpdate) -> dict:
        """Like or unlike a product. One wishlist row per user and product."""
        if not db.query(Product.id).filter(Product.id == data.product).first():
            raise ProductNotFound()

        item = db.query(Wishlist).filter(
            Wishlist.user_id == user.id,
            Wishlist.product_id == data.product,
        ).first()

        created = item is None
        if created:
            item = Wishlist(user_id=user.id, product_id=data.product)
            db.add(item)
        item.is_liked = data.is_liked

        db.commit()
        logger.info(
            "wishlist_updated",
            user_id=user.id,
            product_id=data.product,
            is_liked=data.is_liked,
            created=created,
        )
        return {
            "id": item.id,
            "product_id": item.product_id,
            "is_liked": item.is_liked,
            "created": created,
        }

    @staticmethod
    def get_user_wishlist(db: Session, user: User) -> List[dict]:
        """Liked products, most recently updated first."""
        rows = (
            db.query(Wishlist, Product)
            .join(Product, Wishlist.product_id == Product.id)
            .filter(Wishlist.user_id == user.id, Wishlist.is_liked.is_(True))
            .order_by(Wishlist.updated_at.desc(), Wishlist.id.desc())
            .all()
        )
        return [
            {
                "id": item.id,
                "is_liked": item.is_liked,
                "updated": item.updated_at,
                "product": {
                    "id": product.id,
                    "name": product.name,
                    "slug": product.slug,
                    "price": to_display(product.price),
                    "image_url": product.image_url,
                },
            }
            for item, product in rows
        ]

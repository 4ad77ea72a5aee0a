import json
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import structlog
from fastapi import UploadFile
from slugify import slugify
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import NotFoundError, ProductNotFound, ValidationError
from app.models.brand import Brand
from app.models.cart import CartItem
from app.models.category import Category
from app.models.product import Product
from app.models.review import Review, ReviewStatus
from app.models.user import User
from app.models.wishlist import Wishlist
from app.schemas.product import ProductCreate, ProductUpdate
from app.utils.image_upload import delete_product_image, save_product_image
from app.utils.tax import to_display

logger = structlog.get_logger()

SORT_FIELDS = ("price", "created", "name", "rating")


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` matches literally (escape char ``\\``)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_sort_order(raw: Optional[str]) -> List[Tuple[str, int]]:
    """Parse ``{"price": 1, "name": -1}``; anything unexpected yields ``[]``."""
    if not raw:
        return []
    try:
        requested = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(requested, dict):
        return []

    order = []
    for field, direction in requested.items():
        if field not in SORT_FIELDS or isinstance(direction, bool) or direction not in (1, -1):
            return []
        order.append((field, direction))
    return order


def _brand_view(brand: Optional[Brand]) -> Optional[dict]:
    if brand is None:
        return None
    return {"id": brand.id, "name": brand.name, "slug": brand.slug}


def product_view(product: Product) -> dict:
    return {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "image_url": product.image_url,
        "price": to_display(product.price),
        "quantity": product.quantity,
        "taxable": product.taxable,
        "is_active": product.is_active,
        "brand": _brand_view(product.brand),
        "category_id": product.category_id,
        "created": product.created_at,
        "updated": product.updated_at,
    }


def _visible_brand():
    return or_(Product.brand_id.is_(None), Brand.is_active.is_(True))


class ProductService:

    @staticmethod
    def get_store_product(db: Session, slug: str) -> dict:
        row = (
            db.query(Product)
            .outerjoin(Brand, Brand.id == Product.brand_id)
            .options(joinedload(Product.brand))
            .filter(Product.slug == slug, Product.is_active.is_(True), _visible_brand())
            .first()
        )
        if not row:
            raise NotFoundError("No product found.")
        return product_view(row)

    @staticmethod
    def search_by_name(db: Session, name: str) -> List[dict]:
        """Case-insensitive substring match on product name."""
        pattern = f"%{escape_like(name)}%"
        products = (
            db.query(Product.name, Product.slug, Product.image_url, Product.price)
            .filter(Product.is_active.is_(True), Product.name.ilike(pattern, escape="\\"))
            .order_by(Product.name)
            .limit(settings.MAX_PAGE_SIZE)
            .all()
        )
        return [
            {
                "name": product.name,
                "slug": product.slug,
                "image_url": product.image_url,
                "price": to_display(product.price),
            }
            for product in products
        ]

    @staticmethod
    def list_store_products(
        db: Session,
        user: Optional[User],
        page: int,
        limit: int,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        rating: Optional[float] = None,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> Tuple[List[dict], int, int]:
        """Public listing; returns ``(products, count, current_page)``."""
        ratings = (
            db.query(
                Review.product_id.label("product_id"),
                func.avg(Review.rating).label("avg_rating"),
                func.count(Review.id).label("total_reviews"),
            )
            .filter(Review.status == ReviewStatus.APPROVED)
            .group_by(Review.product_id)
            .subquery()
        )
        avg_rating = func.coalesce(ratings.c.avg_rating, 0)
        total_reviews = func.coalesce(ratings.c.total_reviews, 0)

        query = (
            db.query(Product, avg_rating.label("avg_rating"), total_reviews.label("total_reviews"))
            .outerjoin(Brand, Brand.id == Product.brand_id)
            .outerjoin(ratings, ratings.c.product_id == Product.id)
            .options(joinedload(Product.brand))
            .filter(Product.is_active.is_(True), _visible_brand())
        )

        if min_price is not None:
            query = query.filter(Product.price >= min_price)
        if max_price is not None:
            query = query.filter(Product.price <= max_price)
        if rating is not None:
            query = query.filter(avg_rating >= rating)
        if category:
            category_row = db.query(Category.id).filter(
                Category.slug == category, Category.is_active.is_(True)
            ).first()
            if category_row:
                query = query.filter(Product.category_id == category_row.id)
        if brand:
            brand_row = db.query(Brand.id).filter(
                Brand.slug == brand, Brand.is_active.is_(True)
            ).first()
            if brand_row:
                query = query.filter(Product.brand_id == brand_row.id)

        sort_columns = {
            "price": Product.price,
            "created": Product.created_at,
            "name": Product.name,
            "rating": avg_rating,
        }
        order = parse_sort_order(sort_order) or [("created", -1)]
        query = query.order_by(
            *[
                sort_columns[field].asc() if direction == 1 else sort_columns[field].desc()
                for field, direction in order
            ],
            Product.id.desc(),
        )

        count = query.count()
        # A single page of results always renders as page 1
        current_page = page if count > limit else 1
        rows = query.offset((current_page - 1) * limit).limit(limit).all()

        liked = set()
        if user is not None and rows:
            liked = {
                product_id
                for (product_id,) in db.query(Wishlist.product_id).filter(
                    Wishlist.user_id == user.id,
                    Wishlist.is_liked.is_(True),
                    Wishlist.product_id.in_([row.Product.id for row in rows]),
                )
            }

        products = []
        for row in rows:
            view = product_view(row.Product)
            view["avg_rating"] = round(float(row.avg_rating or 0), 1)
            view["total_reviews"] = int(row.total_reviews or 0)
            if user is not None:
                view["is_liked"] = row.Product.id in liked
            products.append(view)
        return products, count, current_page

    @staticmethod
    def list_select(db: Session) -> List[dict]:
        rows = db.query(Product.id, Product.name).order_by(Product.name).all()
        return [{"id": row.id, "name": row.name} for row in rows]

    @staticmethod
    def list_products(db: Session) -> List[dict]:
        products = (
            db.query(Product)
            .options(joinedload(Product.brand))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .all()
        )
        return [product_view(product) for product in products]

    @staticmethod
    def _get(db: Session, product_id: str) -> Product:
        product = (
            db.query(Product)
            .options(joinedload(Product.brand))
            .filter(Product.id == product_id)
            .first()
        )
        if not product:
            raise ProductNotFound()
        return product

    @staticmethod
    def get_product(db: Session, product_id: str) -> dict:
        return product_view(ProductService._get(db, product_id))

    @staticmethod
    def _check_references(db: Session, brand_id: Optional[str], category_id: Optional[str]) -> None:
        if brand_id and not db.query(Brand.id).filter(Brand.id == brand_id).first():
            raise NotFoundError("Brand not found.")
        if category_id and not db.query(Category.id).filter(Category.id == category_id).first():
            raise NotFoundError("Category not found.")

    @staticmethod
    def _unique_slug(db: Session, name: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(name) or "product"
        slug = base
        suffix = 1
        while True:
            query = db.query(Product.id).filter(Product.slug == slug)
            if exclude_id:
                query = query.filter(Product.id != exclude_id)
            if not query.first():
                return slug
            suffix += 1
            slug = f"{base}-{suffix}"

    @staticmethod
    def create_product(db: Session, data: ProductCreate) -> dict:
        if db.query(Product.id).filter(Product.sku == data.sku).first():
            raise ValidationError("This sku is already in use.")
        ProductService._check_references(db, data.brand, data.category)

        product = Product(
            sku=data.sku,
            name=data.name,
            slug=ProductService._unique_slug(db, data.name),
            description=data.description,
            quantity=data.quantity,
            price=data.price,
            taxable=data.taxable,
            is_active=data.is_active,
            brand_id=data.brand,
            category_id=data.category,
        )
        db.add(product)
        db.commit()
        logger.info("product_created", product_id=product.id, sku=product.sku)
        return ProductService.get_product(db, product.id)

    @staticmethod
    def update_product(db: Session, product_id: str, data: ProductUpdate) -> dict:
        product = ProductService._get(db, product_id)
        changes: Dict = data.model_dump(exclude_unset=True)

        sku = changes.get("sku")
        if sku and db.query(Product.id).filter(Product.sku == sku, Product.id != product.id).first():
            raise ValidationError("Sku is already in use.")
        slug = changes.get("slug")
        if slug and db.query(Product.id).filter(Product.slug == slug, Product.id != product.id).first():
            raise ValidationError("Slug is already in use.")

        if "brand" in changes:
            changes["brand_id"] = changes.pop("brand")
        if "category" in changes:
            changes["category_id"] = changes.pop("category")
        ProductService._check_references(db, changes.get("brand_id"), changes.get("category_id"))

        for field, value in changes.items():
            if value is None and field not in ("brand_id", "category_id", "description"):
                continue
            setattr(product, field, value)

        db.commit()
        logger.info("product_updated", product_id=product_id, fields=sorted(changes))
        return ProductService.get_product(db, product_id)

    @staticmethod
    def set_active(db: Session, product_id: str, is_active: bool) -> dict:
        product = ProductService._get(db, product_id)
        product.is_active = is_active
        db.commit()
        logger.info("product_active_changed", product_id=product_id, is_active=is_active)
        return ProductService.get_product(db, product_id)

    @staticmethod
    def delete_product(db: Session, product_id: str) -> None:
        product = ProductService._get(db, product_id)
        if db.query(CartItem.id).filter(CartItem.product_id == product.id).first():
            raise ValidationError(
                "This product is in a cart and cannot be deleted. Deactivate it instead."
            )
        image_url = product.image_url
        db.delete(product)
        db.commit()
        if image_url:
            delete_product_image(image_url)
        logger.info("product_deleted", product_id=product_id)

    @staticmethod
    def upload_image(db: Session, product_id: str, file: UploadFile) -> dict:
        product = ProductService._get(db, product_id)
        previous = product.image_url

        product.image_url = save_product_image(file)
        db.commit()
        if previous:
            delete_product_image(previous)
        return ProductService.get_product(db, product_id)

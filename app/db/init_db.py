from decimal import Decimal

import structlog
from slugify import slugify
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.base import Base
from app.models.brand import Brand
from app.models.category import Category
from app.models.product import Product
from app.models.user import User, UserRole

logger = structlog.get_logger()

BRANDS = [
    {"name": "Northwind", "description": "Everyday essentials"},
    {"name": "Contoso", "description": "Home and kitchen"},
]

CATEGORIES = [
    {"name": "Apparel", "description": "Clothing and accessories"},
    {"name": "Kitchen", "description": "Cookware and utensils"},
]

PRODUCTS = [
    {"sku": "NW-TEE-001", "name": "Cotton T-Shirt", "price": "10.00", "quantity": 100,
     "taxable": True, "brand": "Northwind", "category": "Apparel"},
    {"sku": "NW-SCK-002", "name": "Wool Socks", "price": "6.50", "quantity": 250,
     "taxable": True, "brand": "Northwind", "category": "Apparel"},
    {"sku": "CT-PAN-001", "name": "Cast Iron Pan", "price": "34.99", "quantity": 40,
     "taxable": False, "brand": "Contoso", "category": "Kitchen"},
]


def init_db(db: Session) -> None:
    """Create tables and seed an admin plus a small catalog. Safe to re-run."""
    Base.metadata.create_all(bind=db.get_bind())

    admin = db.query(User).filter(User.email == settings.FIRST_ADMIN_EMAIL).first()
    if not admin:
        db.add(
            User(
                email=settings.FIRST_ADMIN_EMAIL,
                full_name="Store Admin",
                role=UserRole.ADMIN,
                is_active=True,
            )
        )
        logger.info("admin_user_created", email=settings.FIRST_ADMIN_EMAIL)

    brands = {}
    for brand_data in BRANDS:
        slug = slugify(brand_data["name"])
        brand = db.query(Brand).filter(Brand.slug == slug).first()
        if not brand:
            brand = Brand(slug=slug, **brand_data)
            db.add(brand)
            logger.info("brand_created", name=brand_data["name"])
        brands[brand_data["name"]] = brand

    categories = {}
    for category_data in CATEGORIES:
        slug = slugify(category_data["name"])
        category = db.query(Category).filter(Category.slug == slug).first()
        if not category:
            category = Category(slug=slug, **category_data)
            db.add(category)
            logger.info("category_created", name=category_data["name"])
        categories[category_data["name"]] = category

    db.flush()

    for product_data in PRODUCTS:
        if db.query(Product.id).filter(Product.sku == product_data["sku"]).first():
            continue
        db.add(
            Product(
                sku=product_data["sku"],
                name=product_data["name"],
                slug=slugify(product_data["name"]),
                description=product_data["name"],
                price=Decimal(product_data["price"]),
                quantity=product_data["quantity"],
                taxable=product_data["taxable"],
                brand_id=brands[product_data["brand"]].id,
                category_id=categories[product_data["category"]].id,
            )
        )
        logger.info("product_created", sku=product_data["sku"])

    db.commit()
    logger.info("database_initialized")


if __name__ == "__main__":
    from app.db.session import SessionLocal

    configure_logging()
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()

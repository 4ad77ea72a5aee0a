from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.security import create_access_token
from app.models.brand import Brand
from app.models.category import Category
from app.models.product import Product
from app.models.user import User, UserRole


def create_user(db: Session, email: str, role: UserRole = UserRole.CUSTOMER) -> User:
    user = User(email=email, full_name="Store Test User", role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


def create_brand(db: Session, name: str = "Northwind", is_active: bool = True) -> Brand:
    brand = Brand(name=name, slug=name.lower().replace(" ", "-"), is_active=is_active)
    db.add(brand)
    db.commit()
    db.refresh(brand)
    return brand


def create_category(db: Session, name: str = "Apparel") -> Category:
    category = Category(name=name, slug=name.lower().replace(" ", "-"), is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_product(
    db: Session,
    name: str,
    price: str = "10.00",
    quantity: int = 10,
    taxable: bool = False,
    brand: Optional[Brand] = None,
    category: Optional[Category] = None,
    is_active: bool = True,
) -> Product:
    slug = name.lower().replace(" ", "-")
    product = Product(
        sku=f"SKU-{slug}",
        name=name,
        slug=slug,
        description=f"{name} description",
        price=Decimal(price),
        quantity=quantity,
        taxable=taxable,
        is_active=is_active,
        brand_id=brand.id if brand else None,
        category_id=category.id if category else None,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def stock_of(db: Session, product: Product) -> int:
    db.expire_all()
    return db.get(Product, product.id).quantity

from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Text, Index, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class Product(Base):
    __tablename__ = "products"

    id = Column(String(24), primary_key=True, default=new_object_id)
    brand_id = Column(String(24), ForeignKey("brands.id"), nullable=True)
    category_id = Column(String(24), ForeignKey("categories.id"), nullable=True)

    sku = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(250), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)

    # Pricing & Stock
    price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    taxable = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    brand = relationship("Brand", back_populates="products")
    category = relationship("Category", back_populates="products")
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")
    wishlist_items = relationship("Wishlist", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

# Composite indexes for store listing
Index('idx_product_brand_active', Product.brand_id, Product.is_active)
Index('idx_product_price', Product.price)

from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class Wishlist(Base):
    __tablename__ = "wishlists"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    product_id = Column(String(24), ForeignKey("products.id"), nullable=False)
    is_liked = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="wishlist")
    product = relationship("Product", back_populates="wishlist_items")

    # Ensure one product per user in wishlist
    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', name='unique_user_product_wishlist'),
    )

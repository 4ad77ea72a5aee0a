from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class CartItemStatus(str, enum.Enum):
    ACTIVE = "Active"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="carts")
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.position",
    )

    @property
    def is_fully_cancelled(self) -> bool:
        return bool(self.items) and all(
            item.status == CartItemStatus.CANCELLED for item in self.items
        )


class CartItem(Base):
    """A line item: one product, a quantity and a status."""
    __tablename__ = "cart_items"

    id = Column(String(24), primary_key=True, default=new_object_id)
    cart_id = Column(String(24), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(24), ForeignKey("products.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)

    quantity = Column(Integer, default=1, nullable=False)
    purchase_price = Column(Numeric(12, 2), nullable=False)  # Server price snapshot
    status = Column(Enum(CartItemStatus), default=CartItemStatus.ACTIVE, nullable=False)

    # Relationships
    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

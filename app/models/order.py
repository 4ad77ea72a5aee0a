from sqlalchemy import Column, String, Numeric, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(24), primary_key=True, default=new_object_id)
    # No FK: the cart may be deleted before the order (orphaned order)
    cart_id = Column(String(24), unique=True, nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)

    total = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="orders")
    cart = relationship(
        "Cart",
        primaryjoin="foreign(Order.cart_id) == Cart.id",
        uselist=False,
        viewonly=True,
    )

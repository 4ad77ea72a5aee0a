from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Boolean, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class ReviewStatus(str, enum.Enum):
    WAITING_APPROVAL = "Waiting Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    product_id = Column(String(24), ForeignKey("products.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5 stars
    review = Column(Text, nullable=False)
    is_recommended = Column(Boolean, default=True, nullable=False)
    status = Column(Enum(ReviewStatus), default=ReviewStatus.WAITING_APPROVAL, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="reviews")
    product = relationship("Product", back_populates="reviews")

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.utils.object_id import new_object_id


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(100), unique=True, nullable=False, index=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500))
    is_active = Column(Boolean, default=True)

    # Relationships
    products = relationship("Product", back_populates="category")

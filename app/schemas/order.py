from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.cart import CartItemStatus
from app.schemas.common import ObjectIdStr


class OrderCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cart_id: ObjectIdStr


class CartItemStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order_id: Optional[ObjectIdStr] = None
    cart_id: Optional[ObjectIdStr] = None
    status: CartItemStatus = CartItemStatus.CANCELLED

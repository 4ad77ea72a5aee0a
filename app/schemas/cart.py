from pydantic import BaseModel, ConfigDict, Field
from typing import List

from app.schemas.common import ObjectIdStr


class CartItemCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product: ObjectIdStr
    quantity: int = Field(default=1, ge=1, le=100)


class CartCreate(BaseModel):
    # Only product + quantity are accepted; prices always come from the catalog.
    model_config = ConfigDict(extra="forbid")

    products: List[CartItemCreate] = Field(..., min_length=1, max_length=50)

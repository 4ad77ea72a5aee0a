from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

import bleach

from app.schemas.common import ObjectIdStr


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    quantity: int = Field(..., ge=0)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    taxable: bool = False
    is_active: bool = True
    brand: Optional[ObjectIdStr] = None
    category: Optional[ObjectIdStr] = None

    @field_validator("name", "description")
    @classmethod
    def sanitize_text(cls, value: str) -> str:
        return _clean_text(value)


class ProductUpdate(BaseModel):
    """Fields an admin may change; anything else in the body is rejected."""
    model_config = ConfigDict(extra="forbid")

    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=250, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    taxable: Optional[bool] = None
    brand: Optional[ObjectIdStr] = None
    category: Optional[ObjectIdStr] = None

    @field_validator("name", "description")
    @classmethod
    def sanitize_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)


class ProductActiveUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
import bleach

from app.schemas.common import ObjectIdStr


def _sanitize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


class ReviewCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product: ObjectIdStr
    title: str = Field(..., min_length=1, max_length=200)
    rating: int = Field(..., ge=1, le=5, description="Rating must be between 1 and 5")
    review: str = Field(..., min_length=1, max_length=1000)
    is_recommended: bool = True

    @field_validator("title", "review")
    @classmethod
    def sanitize_text(cls, value: str) -> str:
        return _sanitize(value)


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating must be between 1 and 5")
    review: Optional[str] = Field(None, min_length=1, max_length=1000)
    is_recommended: Optional[bool] = None

    @field_validator("title", "review")
    @classmethod
    def sanitize_text(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize(value)

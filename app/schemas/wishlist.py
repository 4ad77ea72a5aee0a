from pydantic import BaseModel, ConfigDict

from app.schemas.common import ObjectIdStr


class WishlistUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product: ObjectIdStr
    is_liked: bool = True

from typing import Annotated

from pydantic import AfterValidator

from app.utils.object_id import is_valid_object_id


def _check_object_id(value: str) -> str:
    if not is_valid_object_id(value):
        raise ValueError("Invalid ID format")
    return value.lower()


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]

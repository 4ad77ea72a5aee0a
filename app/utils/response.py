from fastapi.encoders import jsonable_encoder
from typing import Any, Optional


def success(
    data: Optional[Any] = None,
    message: str = "Success",
):
    response = {
        "success": True,
        "message": message,
        "data": data,
        "errors": None,
    }

    # Ensure SQLAlchemy models, datetimes, Decimals, etc. are JSON-serializable.
    return jsonable_encoder(response)


def total_pages(count: int, limit: int) -> int:
    return (count + limit - 1) // limit


def paginated(
    key: str,
    items,
    count: int,
    page: int,
    limit: int,
    message: str = "Success",
):
    return success(
        data={
            key: items,
            "total_pages": total_pages(count, limit),
            "current_page": page,
            "count": count,
        },
        message=message,
    )

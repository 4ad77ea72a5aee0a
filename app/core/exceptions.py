from fastapi import status
from typing import Any, List, Optional


class APIError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Your request could not be processed. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(APIError):
    """Malformed identifier or missing required field."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(APIError):
    """Referenced entity is absent or not visible to the caller."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ForbiddenError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class InvariantViolation(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPrice(InvariantViolation):
    def __init__(self, product_name: str):
        super().__init__(f"Invalid price detected for {product_name}")


class InvalidQuantity(InvariantViolation):
    def __init__(self, product_name: str):
        super().__init__(f"Invalid quantity detected for {product_name}")


class InsufficientStock(APIError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_name: str, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Only {available} items available"
        )


class ProductNotFound(NotFoundError):
    default_message = "No product found."


class CartNotFound(NotFoundError):
    default_message = "Cart not found."


class OrderNotFound(NotFoundError):
    default_message = "Order not found"


class ReviewNotFound(NotFoundError):
    default_message = "Review not found"

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.cart import CartCreate, CartItemCreate
from app.services.cart_service import CartService
from app.utils.object_id import parse_object_id
from app.utils.response import success

router = APIRouter()


@router.post("/add", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_cart(
    request: Request,
    cart_data: CartCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a cart priced from the catalog and reserve its stock"""
    data = CartService.create_cart(db, current_user, cart_data)
    return success(data=data, message="Cart has been created successfully!")


@router.post("/add/{cart_id}")
@limiter.limit("60/minute")
def add_cart_item(
    request: Request,
    cart_id: str,
    item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Append a product to an existing cart"""
    cart_id = parse_object_id(cart_id, "cart ID")
    data = CartService.add_item(db, current_user, cart_id, item)
    return success(data={"cart_id": cart_id, "item": data}, message="Item added to cart")


@router.delete("/delete/{cart_id}")
@limiter.limit("30/minute")
def delete_cart(
    request: Request,
    cart_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cart_id = parse_object_id(cart_id, "cart ID")
    CartService.delete_cart(db, current_user, cart_id)
    return success(message="Cart has been deleted successfully!")


@router.delete("/delete/{cart_id}/{product_id}")
@limiter.limit("60/minute")
def delete_cart_product(
    request: Request,
    cart_id: str,
    product_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove every line item for one product from the cart"""
    cart_id = parse_object_id(cart_id, "cart ID")
    product_id = parse_object_id(product_id, "product ID")
    removed = CartService.remove_product(db, current_user, cart_id, product_id)
    return success(
        data={"removed": removed},
        message="Item has been removed from the cart successfully!",
    )

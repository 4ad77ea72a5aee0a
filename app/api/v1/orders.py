from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.config import settings
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.order import CartItemStatusUpdate, OrderCreate
from app.services.order_service import OrderService
from app.utils.object_id import parse_object_id
from app.utils.response import paginated, success

router = APIRouter()


@router.post(
    "/add",
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="""
Turns one of the caller's carts into an order.

Process:
1. Loads the cart with its products (404 when not owned by the caller)
2. Rejects carts that already have an order
3. Re-prices every line item from the current catalog price
4. Persists the order and queues a confirmation email
""",
    responses={
        201: {"description": "Order created successfully"},
        400: {"description": "Invalid id, invalid price or quantity, or order already exists"},
        401: {"description": "Authentication required"},
        404: {"description": "Cart not found"},
    },
    tags=["Orders"],
)
@limiter.limit("10/minute")
def add_order(
    request: Request,
    order_data: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = OrderService.create_order(db, current_user, order_data.cart_id)
    return success(
        data={"order_id": order["id"], "order": order},
        message="Your order has been placed successfully!",
    )


@router.get("/search")
@limiter.limit("60/minute")
def search_orders(
    request: Request,
    search: str = Query("", max_length=64),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Find an order by its exact id"""
    orders = OrderService.search_orders(db, current_user, search)
    return success(data={"orders": orders})


@router.get("/me")
@limiter.limit("60/minute")
def list_my_orders(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders, count = OrderService.list_orders(db, current_user, page, limit, mine=True)
    return paginated("orders", orders, count, page, limit)


@router.get("")
@limiter.limit("60/minute")
def list_orders(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Every order in the store (admin only)"""
    orders, count = OrderService.list_orders(db, current_user, page, limit)
    return paginated("orders", orders, count, page, limit)


@router.get("/{order_id}")
@limiter.limit("60/minute")
def get_order(
    request: Request,
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order_id = parse_object_id(order_id, "order ID")
    order = OrderService.get_order(db, current_user, order_id)
    return success(data={"order": order})


@router.delete("/cancel/{order_id}")
@limiter.limit("20/minute")
def cancel_order(
    request: Request,
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancel an order, restoring the stock its items still hold"""
    order_id = parse_object_id(order_id, "order ID")
    OrderService.cancel_order(db, current_user, order_id)
    message = (
        "Order has been cancelled successfully"
        if current_user.is_admin
        else "Your order has been cancelled successfully"
    )
    return success(message=message)


@router.put("/status/item/{item_id}")
@limiter.limit("30/minute")
def update_item_status(
    request: Request,
    item_id: str,
    data: CartItemStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item_id = parse_object_id(item_id, "item ID")
    result = OrderService.update_item_status(db, current_user, item_id, data)
    return success(
        data={"order_cancelled": result["order_cancelled"]},
        message=result["message"],
    )

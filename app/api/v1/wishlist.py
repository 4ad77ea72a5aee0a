from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.wishlist import WishlistUpdate
from app.services.wishlist_service import WishlistService
from app.utils.response import success

router = APIRouter()


@router.post("")
@limiter.limit("60/minute")
def update_wishlist(
    request: Request,
    data: WishlistUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Like or unlike a product."""
    item = WishlistService.update_wishlist(db, current_user, data)
    message = "Added to your Wishlist successfully!" if item["is_liked"] else "Removed from your Wishlist"
    return success(data={"wishlist": item}, message=message)


@router.get("")
@limiter.limit("60/minute")
def get_user_wishlist(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get user's wishlist with product details."""
    items = WishlistService.get_user_wishlist(db, current_user)
    return success(data={"wishlist": items})

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.core.config import settings
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.review import ReviewStatus
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services.review_service import ReviewService
from app.utils.object_id import parse_object_id
from app.utils.response import paginated, success

router = APIRouter()


@router.post("/add", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/hour")
def create_review(
    request: Request,
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submit a review; it stays hidden until an admin approves it."""
    review = ReviewService.create_review(db, current_user, review_data)
    return success(data={"review": review}, message="Your review has been added successfully and will appear when approved!")


@router.get("")
@limiter.limit("100/minute")
def list_reviews(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    reviews, count = ReviewService.list_reviews(db, page, limit)
    return paginated("reviews", reviews, count, page, limit)


@router.get("/{slug}")
@limiter.limit("100/minute")
def get_product_reviews(request: Request, slug: str, db: Session = Depends(get_db)):
    """Approved reviews for a product. Public endpoint."""
    reviews = ReviewService.list_product_reviews(db, slug)
    return success(data={"reviews": reviews})


@router.put("/approve/{review_id}")
@limiter.limit("30/minute")
def approve_review(
    request: Request,
    review_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    review_id = parse_object_id(review_id, "review ID")
    review = ReviewService.set_status(db, review_id, ReviewStatus.APPROVED)
    return success(data={"review": review}, message="Review has been approved")


@router.put("/reject/{review_id}")
@limiter.limit("30/minute")
def reject_review(
    request: Request,
    review_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    review_id = parse_object_id(review_id, "review ID")
    review = ReviewService.set_status(db, review_id, ReviewStatus.REJECTED)
    return success(data={"review": review}, message="Review has been rejected")


@router.put("/{review_id}")
@limiter.limit("20/minute")
def update_review(
    request: Request,
    review_id: str,
    review_data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a review. Only owner or admin can update."""
    review_id = parse_object_id(review_id, "review ID")
    review = ReviewService.update_review(db, current_user, review_id, review_data)
    return success(data={"review": review}, message="Review has been updated successfully!")


@router.delete("/delete/{review_id}")
@limiter.limit("20/minute")
def delete_review(
    request: Request,
    review_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a review. Only owner or admin can delete."""
    review_id = parse_object_id(review_id, "review ID")
    ReviewService.delete_review(db, current_user, review_id)
    return success(message="Review has been deleted successfully!")

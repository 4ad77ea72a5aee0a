from typing import List, Tuple

import structlog
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ForbiddenError, ProductNotFound, ReviewNotFound
from app.models.product import Product
from app.models.review import Review, ReviewStatus
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewUpdate

logger = structlog.get_logger()


def review_view(review: Review) -> dict:
    product = review.product
    return {
        "id": review.id,
        "title": review.title,
        "rating": review.rating,
        "review": review.review,
        "is_recommended": review.is_recommended,
        "status": review.status.value,
        "created": review.created_at,
        "user": {
            "id": review.user_id,
            "full_name": review.user.full_name if review.user else None,
        },
        "product": {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "image_url": product.image_url,
        } if product else None,
    }


class ReviewService:

    @staticmethod
    def _get(db: Session, review_id: str) -> Review:
        review = (
            db.query(Review)
            .options(joinedload(Review.user), joinedload(Review.product))
            .filter(Review.id == review_id)
            .first()
        )
        if not review:
            raise ReviewNotFound()
        return review

    @staticmethod
    def _get_owned(db: Session, user: User, review_id: str) -> Review:
        """Reviews may be changed by their author or an admin."""
        review = ReviewService._get(db, review_id)
        if review.user_id != user.id and not user.is_admin:
            raise ForbiddenError("You can only modify your own reviews")
        return review

    @staticmethod
    def create_review(db: Session, user: User, review_data: ReviewCreate) -> dict:
        product = db.query(Product).filter(
            Product.id == review_data.product,
            Product.is_active.is_(True),
        ).first()
        if not product:
            raise ProductNotFound()

        review = Review(
            user_id=user.id,
            product_id=product.id,
            title=review_data.title,
            rating=review_data.rating,
            review=review_data.review,
            is_recommended=review_data.is_recommended,
            status=ReviewStatus.WAITING_APPROVAL,
        )
        db.add(review)
        db.commit()
        logger.info("review_created", review_id=review.id, product_id=product.id, user_id=user.id)
        return review_view(ReviewService._get(db, review.id))

    @staticmethod
    def list_reviews(db: Session, page: int, limit: int) -> Tuple[List[dict], int]:
        query = db.query(Review)
        count = query.count()
        reviews = (
            query.options(joinedload(Review.user), joinedload(Review.product))
            .order_by(Review.created_at.desc(), Review.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [review_view(review) for review in reviews], count

    @staticmethod
    def list_product_reviews(db: Session, slug: str) -> List[dict]:
        """Approved reviews of an active product, newest first."""
        product = db.query(Product.id).filter(
            Product.slug == slug,
            Product.is_active.is_(True),
        ).first()
        if not product:
            raise ProductNotFound()

        reviews = (
            db.query(Review)
            .options(joinedload(Review.user), joinedload(Review.product))
            .filter(Review.product_id == product.id, Review.status == ReviewStatus.APPROVED)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
        return [review_view(review) for review in reviews]

    @staticmethod
    def update_review(db: Session, user: User, review_id: str, review_data: ReviewUpdate) -> dict:
        review = ReviewService._get_owned(db, user, review_id)

        for field, value in review_data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(review, field, value)

        db.commit()
        logger.info("review_updated", review_id=review_id, user_id=user.id)
        return review_view(ReviewService._get(db, review_id))

    @staticmethod
    def set_status(db: Session, review_id: str, review_status: ReviewStatus) -> dict:
        review = ReviewService._get(db, review_id)
        review.status = review_status
        db.commit()
        logger.info("review_moderated", review_id=review_id, status=review_status.value)
        return review_view(ReviewService._get(db, review_id))

    @staticmethod
    def delete_review(db: Session, user: User, review_id: str) -> None:
        ReviewService._get_owned(db, user, review_id)
        db.query(Review).filter(Review.id == review_id).delete(synchronize_session=False)
        db.commit()
        logger.info("review_deleted", review_id=review_id, user_id=user.id)

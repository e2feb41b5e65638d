"""
Product reviews gated on approved purchases.

Rules:
- A buyer may review a product only with at least one approved request for it
- At most one review per (buyer, product)
- Ratings are integers 1-5
- After each new review the product's rating (mean, one decimal, half-up)
  and review_count are recomputed from all of its reviews
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from context import UserContext
from errors import AlreadyReviewedError, InvalidRatingError, NotEligibleError, NotFoundError
from models import Product, ProductRequest, ProductReview, RequestStatus

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class ReviewStats:
    rating: float
    review_count: int


def average_rating(ratings: Sequence[int]) -> float:
    """Mean rating rounded half-up to one decimal; 0 when there are no ratings."""
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ReviewService:
    """Eligibility checks, review creation and rating aggregation"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def can_review(self, buyer_id: str, product_id: str) -> bool:
        """True if the buyer has an approved request for the product."""
        approved = (
            self.db_session.query(ProductRequest.id)
            .filter(
                ProductRequest.buyer_id == buyer_id,
                ProductRequest.product_id == product_id,
                ProductRequest.status == RequestStatus.APPROVED,
            )
            .first()
        )
        return approved is not None

    def has_reviewed(self, buyer_id: str, product_id: str) -> bool:
        existing = (
            self.db_session.query(ProductReview.id)
            .filter(ProductReview.buyer_id == buyer_id, ProductReview.product_id == product_id)
            .first()
        )
        return existing is not None

    def create_review(
        self,
        buyer: UserContext,
        product_id: str,
        rating: int,
        comment: str = "",
    ) -> str:
        """
        Create a review and refresh the product's aggregate rating.

        Args:
            buyer: Reviewing buyer (name and avatar are snapshotted)
            product_id: Reviewed product
            rating: Integer 1-5
            comment: Free text

        Returns:
            The new review id

        Raises:
            InvalidRatingError: If rating is not an integer in 1-5
            NotFoundError: If the product does not exist
            NotEligibleError: If the buyer has no approved request for the product
            AlreadyReviewedError: If the buyer already reviewed the product
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRatingError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")

        product = self.db_session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        if not self.can_review(buyer.user_id, product_id):
            raise NotEligibleError(
                "You must have an approved purchase for this product to leave a review"
            )
        if self.has_reviewed(buyer.user_id, product_id):
            raise AlreadyReviewedError("You have already reviewed this product")

        review = ProductReview(
            product_id=product_id,
            buyer_id=buyer.user_id,
            buyer_name=buyer.name,
            buyer_avatar=buyer.avatar,
            rating=rating,
            comment=comment,
        )

        try:
            self.db_session.add(review)
            self.db_session.flush()
            self._refresh_product_rating(product)
            self.db_session.commit()
        except IntegrityError as e:
            # Concurrent duplicate caught by the (buyer_id, product_id) constraint
            self.db_session.rollback()
            raise AlreadyReviewedError("You have already reviewed this product") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to create review for product {product_id}: {e}")
            self.db_session.rollback()
            raise

        logger.info(
            f"✓ Review {review.id} ({rating}★) on {product_id}; "
            f"product now {product.rating} over {product.review_count} reviews"
        )
        return review.id

    def list_by_product(self, product_id: str) -> List[ProductReview]:
        return (
            self.db_session.query(ProductReview)
            .filter(ProductReview.product_id == product_id)
            .order_by(ProductReview.created_at.desc())
            .all()
        )

    def list_by_buyer(self, buyer_id: str) -> List[ProductReview]:
        return (
            self.db_session.query(ProductReview)
            .filter(ProductReview.buyer_id == buyer_id)
            .order_by(ProductReview.created_at.desc())
            .all()
        )

    def get_review_stats(self, product_id: str) -> ReviewStats:
        ratings = [review.rating for review in self.list_by_product(product_id)]
        return ReviewStats(rating=average_rating(ratings), review_count=len(ratings))

    def _refresh_product_rating(self, product: Product) -> None:
        stats = self.get_review_stats(product.id)
        product.rating = stats.rating
        product.review_count = stats.review_count

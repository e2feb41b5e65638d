"""
Seller profiles and nearby-seller discovery.

Nearby search algorithm:
1. Fetch every seller (newest first); the stored geohash is not used to prune
2. Compute the Haversine distance from the buyer to each seller
3. Keep sellers with distance <= radius
4. Sort ascending by distance (stable) and truncate to the limit

This is a linear scan per query, fine for a local marketplace's seller count.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from errors import NotFoundError, ValidationError
from geo import GeoLocation, encode_geohash
from models import Seller
from schemas import SellerProfile, SellerUpdate, validate

logger = logging.getLogger(__name__)


@dataclass
class SellerWithDistance:
    """A seller together with its distance (miles) from the search origin"""
    seller: Seller
    distance: float


class SellerService:
    """Seller CRUD plus radius search"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get_seller(self, seller_id: str) -> Seller:
        seller = self.db_session.get(Seller, seller_id)
        if seller is None:
            raise NotFoundError("Seller", seller_id)
        return seller

    def get_seller_by_user_id(self, user_id: str) -> Optional[Seller]:
        return self.db_session.query(Seller).filter(Seller.user_id == user_id).first()

    def create_seller(
        self,
        user_id: str,
        business_name: str,
        description: str,
        location: GeoLocation,
        categories: List[str],
        avatar: Optional[str] = None,
        cover_image: Optional[str] = None,
        seller_id: Optional[str] = None,
    ) -> Seller:
        """
        Create the business profile when a seller completes onboarding.

        Rating and review count always start at zero; the geohash is derived
        from the location.

        Raises:
            ValidationError: If the profile fields are malformed or the user
                already has a seller profile
        """
        profile = validate(
            SellerProfile,
            business_name=business_name,
            description=description,
            categories=categories,
            avatar=avatar,
            cover_image=cover_image,
        )
        if self.get_seller_by_user_id(user_id) is not None:
            raise ValidationError(f"User {user_id} already has a seller profile")

        seller = Seller(user_id=user_id, rating=0, review_count=0, **profile.model_dump())
        if seller_id:
            seller.id = seller_id
        self._apply_location(seller, location)

        self._commit(seller)
        logger.info(f"✓ Created seller '{seller.business_name}' ({seller.id}) at {seller.geohash}")
        return seller

    def update_seller(self, seller_id: str, location: Optional[GeoLocation] = None, **updates) -> Seller:
        """Update profile fields; a new location also refreshes the geohash."""
        fields = validate(SellerUpdate, **updates).model_dump(exclude_unset=True)

        seller = self.get_seller(seller_id)
        for field_name, value in fields.items():
            setattr(seller, field_name, value)
        if location is not None:
            self._apply_location(seller, location)

        self._commit(seller)
        return seller

    def delete_seller(self, seller_id: str) -> None:
        seller = self.get_seller(seller_id)
        try:
            self.db_session.delete(seller)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete seller {seller_id}: {e}")
            self.db_session.rollback()
            raise
        logger.info(f"Deleted seller {seller_id}")

    def get_nearby_sellers(
        self,
        location: GeoLocation,
        radius_miles: float = config.DEFAULT_RADIUS_MILES,
        limit: int = config.NEARBY_SELLER_LIMIT,
    ) -> List[SellerWithDistance]:
        """
        Find sellers within `radius_miles` of `location`, closest first.

        Args:
            location: Buyer's location
            radius_miles: Inclusive search radius
            limit: Maximum number of sellers returned

        Returns:
            SellerWithDistance list sorted by ascending distance (may be empty)
        """
        sellers = self.db_session.query(Seller).order_by(Seller.created_at.desc()).all()

        nearby = []
        for seller in sellers:
            distance = location.distance_to(seller.location)
            if distance <= radius_miles:
                nearby.append(SellerWithDistance(seller=seller, distance=distance))

        nearby.sort(key=lambda s: s.distance)

        logger.info(
            f"Nearby search: {len(nearby)}/{len(sellers)} sellers within {radius_miles} mi "
            f"of ({location.latitude:.4f}, {location.longitude:.4f})"
        )
        return nearby[:limit]

    def _apply_location(self, seller: Seller, location: GeoLocation) -> None:
        seller.set_location(location)
        seller.geohash = encode_geohash(
            location.latitude, location.longitude, config.GEOHASH_PRECISION
        )

    def _commit(self, seller: Seller) -> None:
        try:
            self.db_session.add(seller)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save seller {seller.id}: {e}")
            self.db_session.rollback()
            raise

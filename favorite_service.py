"""Buyer favorites, keyed by "{buyer_id}_{product_id}"."""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Favorite

logger = logging.getLogger(__name__)


class FavoriteService:

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def is_favorited(self, buyer_id: str, product_id: str) -> bool:
        return self.db_session.get(Favorite, Favorite.key(buyer_id, product_id)) is not None

    def toggle(self, buyer_id: str, product_id: str) -> bool:
        """
        Add the favorite if absent, remove it if present.

        Returns:
            True if the product is now favorited, False if it was removed
        """
        key = Favorite.key(buyer_id, product_id)
        existing = self.db_session.get(Favorite, key)

        try:
            if existing is not None:
                self.db_session.delete(existing)
                favorited = False
            else:
                self.db_session.add(Favorite(id=key, buyer_id=buyer_id, product_id=product_id))
                favorited = True
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to toggle favorite {key}: {e}")
            self.db_session.rollback()
            raise

        logger.debug(f"Favorite {key} -> {favorited}")
        return favorited

    def count(self, product_id: str) -> int:
        return self.db_session.query(Favorite).filter(Favorite.product_id == product_id).count()

    def list_by_buyer(self, buyer_id: str) -> List[str]:
        """Product ids the buyer has favorited."""
        rows = (
            self.db_session.query(Favorite.product_id)
            .filter(Favorite.buyer_id == buyer_id)
            .order_by(Favorite.created_at.desc())
            .all()
        )
        return [row.product_id for row in rows]

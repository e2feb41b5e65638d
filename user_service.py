"""
User profile storage.

The auth provider owns identity; this service only keeps the profile that
other records reference by id.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError, ValidationError
from geo import GeoLocation
from models import User, UserType
from schemas import UserCreate, validate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "phone_number", "avatar", "user_type"}


class UserService:
    """CRUD for user profiles"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get_user(self, user_id: str) -> User:
        user = self.db_session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def create_user(
        self,
        user_id: str,
        email: str,
        name: str,
        user_type: UserType,
        location: Optional[GeoLocation] = None,
        phone_number: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> User:
        """
        Store the profile for a freshly authenticated user.

        Args:
            user_id: Id issued by the auth provider
            email: Account e-mail
            name: Display name (at least 2 characters)
            user_type: buyer or seller
            location: Optional home location

        Returns:
            The persisted User

        Raises:
            ValidationError: If a field is malformed
        """
        data = validate(
            UserCreate,
            email=email,
            name=name,
            user_type=user_type,
            phone_number=phone_number,
            avatar=avatar,
        )

        user = User(id=user_id, **data.model_dump())
        if location is not None:
            user.set_location(location)

        self._commit(user)
        logger.info(f"✓ Created {user.user_type.value} profile {user_id}")
        return user

    def update_user(self, user_id: str, **updates) -> User:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update user fields: {sorted(unknown)}")

        user = self.get_user(user_id)
        if "user_type" in updates:
            try:
                updates["user_type"] = UserType(updates["user_type"])
            except ValueError as e:
                raise ValidationError(str(e)) from e

        for field_name, value in updates.items():
            setattr(user, field_name, value)

        self._commit(user)
        return user

    def update_user_location(self, user_id: str, location: GeoLocation) -> User:
        user = self.get_user(user_id)
        user.set_location(location)
        self._commit(user)
        logger.info(f"Updated location for user {user_id}")
        return user

    def _commit(self, user: User) -> None:
        try:
            self.db_session.add(user)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save user {user.id}: {e}")
            self.db_session.rollback()
            raise

"""
Explicit caller identity.

Operations that depend on who is calling (request creation, approval,
reviews, moderation) take a UserContext argument instead of reading
ambient auth state.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from models import User, UserType


@dataclass(frozen=True)
class UserContext:
    """Authenticated user as seen by the core services"""
    user_id: str
    email: str = ""
    name: str = ""
    user_type: UserType = UserType.BUYER
    avatar: Optional[str] = None
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User, admin_emails: Optional[Iterable[str]] = None) -> "UserContext":
        """Build a context from a stored profile; admin role comes from the configured e-mail list."""
        if admin_emails is None:
            import config
            admin_emails = config.ADMIN_EMAILS

        admins = {email.lower() for email in admin_emails}
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            user_type=user.user_type,
            avatar=user.avatar,
            is_admin=user.email.lower() in admins,
        )

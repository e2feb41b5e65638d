"""
Bug reports and suggestions.

Any user (or an anonymous caller) can submit feedback; only admins can list
it or change its status. Status is a moderation tag with no transition rules.
"""

import logging
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from context import UserContext
from errors import NotAuthorizedError, NotFoundError, ValidationError
from models import BugReport, BugStatus, Suggestion, SuggestionStatus
from schemas import FeedbackCreate, validate

logger = logging.getLogger(__name__)


def _require_admin(user: UserContext) -> None:
    if not user.is_admin:
        raise NotAuthorizedError(f"User {user.user_id} is not an admin")


class FeedbackService:
    """Submission and admin moderation of user feedback"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def submit_bug_report(self, title: str, description: str,
                          user: Optional[UserContext] = None) -> str:
        return self._submit(BugReport, title, description, user)

    def submit_suggestion(self, title: str, description: str,
                          user: Optional[UserContext] = None) -> str:
        return self._submit(Suggestion, title, description, user)

    def list_bugs(self, admin: UserContext) -> List[BugReport]:
        _require_admin(admin)
        return self.db_session.query(BugReport).order_by(BugReport.created_at.desc()).all()

    def list_suggestions(self, admin: UserContext) -> List[Suggestion]:
        _require_admin(admin)
        return self.db_session.query(Suggestion).order_by(Suggestion.created_at.desc()).all()

    def set_bug_status(self, admin: UserContext, bug_id: str,
                       status: Union[BugStatus, str]) -> BugReport:
        return self._set_status(admin, BugReport, BugStatus, bug_id, status)

    def set_suggestion_status(self, admin: UserContext, suggestion_id: str,
                              status: Union[SuggestionStatus, str]) -> Suggestion:
        return self._set_status(admin, Suggestion, SuggestionStatus, suggestion_id, status)

    def _submit(self, model, title: str, description: str, user: Optional[UserContext]) -> str:
        data = validate(FeedbackCreate, title=title, description=description)

        record = model(title=data.title, description=data.description)
        if user is not None:
            record.user_id = user.user_id
            record.user_email = user.email
            record.user_name = user.name

        try:
            self.db_session.add(record)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to submit {model.__tablename__} entry: {e}")
            self.db_session.rollback()
            raise

        logger.info(f"✓ New {model.__name__} {record.id}: {record.title}")
        return record.id

    def _set_status(self, admin: UserContext, model, status_enum, record_id: str, status):
        _require_admin(admin)
        try:
            new_status = status_enum(status)
        except ValueError as e:
            raise ValidationError(f"Unknown {model.__name__} status: {status!r}") from e

        record = self.db_session.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)

        try:
            record.status = new_status
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update {model.__name__} {record_id}: {e}")
            self.db_session.rollback()
            raise

        logger.info(f"{model.__name__} {record_id} marked {new_status.value} by {admin.user_id}")
        return record

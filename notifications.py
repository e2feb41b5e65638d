"""
Unseen request status changes.

PendingNotificationTracker is fed with a buyer's request list (typically as
a RequestFeed subscriber). It remembers the last status it saw for every
request and records a pending notification whenever a request moves away
from `pending`. The buyer's badge count is the size of that set; viewing the
requests list clears it.

Usage:
    tracker = PendingNotificationTracker(db_manager)
    feed.subscribe(buyer_id, functools.partial(tracker.observe, buyer_id))
"""

import logging
from typing import Dict, Iterable, Set

from sqlalchemy.exc import SQLAlchemyError

from models import PendingNotification, ProductRequest, RequestStatus

logger = logging.getLogger(__name__)


class PendingNotificationTracker:

    def __init__(self, db_manager):
        self.db_manager = db_manager
        # user id -> {request id -> status} from the latest snapshot only
        self._last_seen: Dict[str, Dict[str, RequestStatus]] = {}

    def observe(self, user_id: str, requests: Iterable[ProductRequest]) -> Set[str]:
        """
        Diff `requests` against the previously seen statuses.

        Returns:
            Ids of requests that just left `pending`
        """
        previous_statuses = self._last_seen.get(user_id, {})
        current_statuses = {}
        changed = set()
        for request in requests:
            previous = previous_statuses.get(request.id)
            if previous is RequestStatus.PENDING and request.status is not RequestStatus.PENDING:
                changed.add(request.id)
            current_statuses[request.id] = request.status
        self._last_seen[user_id] = current_statuses

        if changed:
            self._add(user_id, changed)
        return changed

    def pending_ids(self, user_id: str) -> Set[str]:
        with self.db_manager.session_scope() as session:
            rows = (
                session.query(PendingNotification.request_id)
                .filter(PendingNotification.user_id == user_id)
                .all()
            )
            return {row.request_id for row in rows}

    def clear(self, user_id: str) -> None:
        with self.db_manager.session_scope() as session:
            session.query(PendingNotification).filter(
                PendingNotification.user_id == user_id
            ).delete(synchronize_session=False)
        logger.debug(f"Cleared pending notifications for {user_id}")

    def _add(self, user_id: str, request_ids: Set[str]) -> None:
        new_ids = request_ids - self.pending_ids(user_id)
        if not new_ids:
            return
        try:
            with self.db_manager.session_scope() as session:
                session.add_all(
                    PendingNotification(user_id=user_id, request_id=request_id)
                    for request_id in new_ids
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to record notifications for {user_id}: {e}")
            raise
        logger.info(f"🔔 {len(new_ids)} new status change(s) for {user_id}")

"""
Purchase request lifecycle.

States:
    pending ──approve──> approved   (decrements product quantity)
       └─────reject────> rejected   (no inventory side effect)

Approved and rejected are terminal. Stock is NOT reserved when a request is
created: several pending requests can together exceed a product's quantity,
and approving them only floors the quantity at zero. Sellers reconcile
overcommitted stock by rejecting requests.

RequestFeed pushes a buyer's request list to subscribers after every
committed change to that buyer's requests; it is what drives unseen
status-change badges (see notifications.py).
"""

import logging
import threading
from itertools import chain
from typing import Callable, Dict, List, Union

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from context import UserContext
from errors import (
    InvalidStateTransitionError, NotAuthorizedError, NotFoundError, ValidationError
)
from models import Product, ProductRequest, RequestStatus, Seller
from schemas import RequestCreate, validate

logger = logging.getLogger(__name__)

RequestCallback = Callable[[List[ProductRequest]], None]


def parse_status(status: Union[RequestStatus, str]) -> RequestStatus:
    try:
        return RequestStatus(status)
    except ValueError as e:
        raise ValidationError(f"Unknown request status: {status!r}") from e


class RequestLifecycleManager:
    """Creates requests and moves them through pending -> approved/rejected"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def create_request(
        self,
        buyer: UserContext,
        seller_id: str,
        product_id: str,
        quantity: int,
        message: str = "",
    ) -> str:
        """
        Create a pending request with product and buyer snapshots.

        The caller is expected to have checked `quantity` against the
        product's current stock; live stock is not re-checked here.

        Args:
            buyer: Requesting buyer
            seller_id: Seller the product belongs to
            product_id: Requested product
            quantity: Positive number of units
            message: Optional note to the seller

        Returns:
            The new request id

        Raises:
            ValidationError: If quantity is not a positive integer or the
                product does not belong to `seller_id`
            NotFoundError: If the product does not exist
        """
        data = validate(RequestCreate, quantity=quantity, message=message)

        product = self.db_session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if product.seller_id != seller_id:
            raise ValidationError(f"Product {product_id} is not sold by seller {seller_id}")

        request = ProductRequest(
            buyer_id=buyer.user_id,
            buyer_name=buyer.name,
            buyer_email=buyer.email,
            seller_id=seller_id,
            product_id=product_id,
            product_name=product.name,
            product_price=product.price,
            quantity=data.quantity,
            total_price=product.price * data.quantity,
            message=data.message,
            status=RequestStatus.PENDING,
        )

        try:
            self.db_session.add(request)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to create request for product {product_id}: {e}")
            self.db_session.rollback()
            raise

        logger.info(
            f"✓ Request {request.id}: {buyer.user_id} asks {data.quantity}x "
            f"'{product.name}' (${request.total_price:.2f})"
        )
        return request.id

    def get_request(self, request_id: str) -> ProductRequest:
        request = self.db_session.get(ProductRequest, request_id)
        if request is None:
            raise NotFoundError("Request", request_id)
        return request

    def list_by_seller(self, seller_id: str) -> List[ProductRequest]:
        return (
            self.db_session.query(ProductRequest)
            .filter(ProductRequest.seller_id == seller_id)
            .order_by(ProductRequest.created_at.desc())
            .all()
        )

    def list_by_buyer(self, buyer_id: str) -> List[ProductRequest]:
        return (
            self.db_session.query(ProductRequest)
            .filter(ProductRequest.buyer_id == buyer_id)
            .order_by(ProductRequest.created_at.desc())
            .all()
        )

    def set_status(
        self,
        seller: UserContext,
        request_id: str,
        status: Union[RequestStatus, str],
    ) -> ProductRequest:
        """
        Approve or reject a pending request.

        Approval also decrements the product's quantity by the requested
        amount (floored at 0) and recomputes in_stock. The status write and
        the inventory write are committed together.

        Raises:
            ValidationError: If `status` is not a known status
            NotFoundError: If the request does not exist
            NotAuthorizedError: If `seller` does not own the request's seller profile
            InvalidStateTransitionError: If the request is no longer pending or
                the target is `pending`
        """
        target = parse_status(status)
        request = self.get_request(request_id)

        owner = self.db_session.get(Seller, request.seller_id)
        if owner is None or owner.user_id != seller.user_id:
            raise NotAuthorizedError(f"User {seller.user_id} cannot update request {request_id}")

        if request.status.is_terminal or not target.is_terminal:
            raise InvalidStateTransitionError(request_id, request.status.value, target.value)

        try:
            request.status = target
            if target is RequestStatus.APPROVED:
                self._decrement_inventory(request)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to set request {request_id} to {target.value}: {e}")
            self.db_session.rollback()
            raise

        logger.info(f"✓ Request {request_id} {target.value}")
        return request

    def delete_request(self, buyer: UserContext, request_id: str) -> None:
        """Let a buyer retract their own request while it is still pending."""
        request = self.get_request(request_id)
        if request.buyer_id != buyer.user_id:
            raise NotAuthorizedError(f"User {buyer.user_id} cannot delete request {request_id}")
        if request.status.is_terminal:
            raise InvalidStateTransitionError(request_id, request.status.value, "deleted")

        try:
            self.db_session.delete(request)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete request {request_id}: {e}")
            self.db_session.rollback()
            raise
        logger.info(f"Request {request_id} retracted by buyer")

    def _decrement_inventory(self, request: ProductRequest) -> None:
        product = self.db_session.get(Product, request.product_id)
        if product is None:
            logger.warning(f"Product {request.product_id} no longer exists; approving without inventory update")
            return
        if product.quantity is None:
            return

        new_quantity = max(0, product.quantity - request.quantity)
        product.quantity = new_quantity
        product.in_stock = new_quantity > 0
        logger.info(f"   Product {product.id} quantity -> {new_quantity}")


class RequestFeed:
    """
    Live per-buyer request lists.

    Listens to the session factory of a DatabaseManager: changes to
    ProductRequest rows are collected on flush and, once the transaction
    commits, every subscriber of an affected buyer receives that buyer's
    full request list (newest first). Rolled back changes are dropped.
    """

    _INFO_KEY = "request_feed_buyers"

    def __init__(self, db_manager):
        self.db_manager = db_manager
        self._subscribers: Dict[str, List[RequestCallback]] = {}
        self._lock = threading.Lock()

        session_factory = db_manager.SessionLocal
        event.listen(session_factory, "after_flush", self._collect_changes)
        event.listen(session_factory, "after_commit", self._dispatch)
        event.listen(session_factory, "after_rollback", self._discard)

    def subscribe(self, buyer_id: str, callback: RequestCallback) -> Callable[[], None]:
        """
        Register `callback` for a buyer's requests.

        The current list is delivered immediately, then again after each
        committed change.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.setdefault(buyer_id, []).append(callback)

        callback(self._load(buyer_id))

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(buyer_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(buyer_id, None)

        return unsubscribe

    def close(self) -> None:
        session_factory = self.db_manager.SessionLocal
        event.remove(session_factory, "after_flush", self._collect_changes)
        event.remove(session_factory, "after_commit", self._dispatch)
        event.remove(session_factory, "after_rollback", self._discard)
        with self._lock:
            self._subscribers.clear()

    def _collect_changes(self, session, flush_context) -> None:
        buyers = session.info.setdefault(self._INFO_KEY, set())
        for obj in chain(session.new, session.dirty, session.deleted):
            if isinstance(obj, ProductRequest):
                buyers.add(obj.buyer_id)

    def _discard(self, session) -> None:
        session.info.pop(self._INFO_KEY, None)

    def _dispatch(self, session) -> None:
        buyers = session.info.pop(self._INFO_KEY, set())
        for buyer_id in buyers:
            with self._lock:
                callbacks = list(self._subscribers.get(buyer_id, []))
            if not callbacks:
                continue

            requests = self._load(buyer_id)
            for callback in callbacks:
                try:
                    callback(requests)
                except Exception:
                    logger.exception(f"Request subscriber for buyer {buyer_id} failed")

    def _load(self, buyer_id: str) -> List[ProductRequest]:
        with self.db_manager.session_scope() as session:
            return RequestLifecycleManager(session).list_by_buyer(buyer_id)

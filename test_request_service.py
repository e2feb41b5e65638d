from datetime import datetime, timedelta

import pytest

from context import UserContext
from errors import (
    InvalidStateTransitionError, NotAuthorizedError, NotFoundError, ValidationError
)
from models import ProductRequest, RequestStatus
from product_service import ProductService
from request_service import RequestFeed, RequestLifecycleManager


@pytest.fixture
def manager(session):
    return RequestLifecycleManager(session)


def test_create_request_snapshots_product_and_buyer(manager, seller, buyer, make_product):
    product = make_product(price=12.5, quantity=10)
    request_id = manager.create_request(buyer, seller.id, product.id, 3, "Gift wrap please")

    request = manager.get_request(request_id)
    assert request.status is RequestStatus.PENDING
    assert request.product_name == "Wool Scarf"
    assert request.product_price == 12.5
    assert request.total_price == 37.5
    assert request.buyer_name == "Bea Buyer"
    assert request.buyer_email == "bea@example.com"
    assert request.message == "Gift wrap please"


def test_total_price_is_not_recalculated_after_price_change(session, manager, seller, buyer, make_product):
    product = make_product(price=10.0)
    request_id = manager.create_request(buyer, seller.id, product.id, 2)
    ProductService(session).update_product(product.id, price=99.0)
    assert manager.get_request(request_id).total_price == 20.0


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
def test_quantity_must_be_positive_integer(manager, seller, buyer, make_product, quantity):
    product = make_product()
    with pytest.raises(ValidationError):
        manager.create_request(buyer, seller.id, product.id, quantity)


def test_create_request_for_missing_product(manager, seller, buyer):
    with pytest.raises(NotFoundError):
        manager.create_request(buyer, seller.id, "missing", 1)


def test_create_request_with_wrong_seller(manager, buyer, make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        manager.create_request(buyer, "another-seller", product.id, 1)


def test_approval_decrements_quantity(session, manager, seller, seller_user, buyer, make_product):
    product = make_product(quantity=10)
    request_id = manager.create_request(buyer, seller.id, product.id, 3)

    manager.set_status(seller_user, request_id, RequestStatus.APPROVED)

    product = ProductService(session).get_product(product.id)
    assert product.quantity == 7
    assert product.in_stock is True
    assert manager.get_request(request_id).status is RequestStatus.APPROVED


def test_approving_remaining_quantity_sells_out(session, manager, seller, seller_user, buyer, make_product):
    product = make_product(quantity=1)
    request_id = manager.create_request(buyer, seller.id, product.id, 1)

    manager.set_status(seller_user, request_id, "approved")

    product = ProductService(session).get_product(product.id)
    assert product.quantity == 0
    assert product.in_stock is False


def test_overcommitted_requests_floor_quantity_at_zero(session, manager, seller, seller_user,
                                                        buyer, other_buyer, make_product):
    product = make_product(quantity=4)
    first = manager.create_request(buyer, seller.id, product.id, 3)
    second = manager.create_request(other_buyer, seller.id, product.id, 3)

    manager.set_status(seller_user, first, RequestStatus.APPROVED)
    manager.set_status(seller_user, second, RequestStatus.APPROVED)

    product = ProductService(session).get_product(product.id)
    assert product.quantity == 0
    assert product.in_stock is False


def test_rejection_leaves_inventory_alone(session, manager, seller, seller_user, buyer, make_product):
    product = make_product(quantity=5)
    request_id = manager.create_request(buyer, seller.id, product.id, 2)

    manager.set_status(seller_user, request_id, RequestStatus.REJECTED)

    assert ProductService(session).get_product(product.id).quantity == 5
    assert manager.get_request(request_id).status is RequestStatus.REJECTED


def test_approval_without_tracked_quantity(session, manager, seller, seller_user, buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 2)
    manager.set_status(seller_user, request_id, RequestStatus.APPROVED)

    product = ProductService(session).get_product(product.id)
    assert product.quantity is None
    assert product.in_stock is True


def test_approval_after_product_deleted(session, manager, seller, seller_user, buyer, make_product):
    product = make_product(quantity=3)
    request_id = manager.create_request(buyer, seller.id, product.id, 1)
    ProductService(session).delete_product(product.id)

    request = manager.set_status(seller_user, request_id, RequestStatus.APPROVED)
    assert request.status is RequestStatus.APPROVED


@pytest.mark.parametrize("first, second", [
    (RequestStatus.APPROVED, RequestStatus.REJECTED),
    (RequestStatus.REJECTED, RequestStatus.APPROVED),
    (RequestStatus.APPROVED, RequestStatus.APPROVED),
])
def test_terminal_requests_cannot_transition(session, manager, seller, seller_user, buyer,
                                             make_product, first, second):
    product = make_product(quantity=10)
    request_id = manager.create_request(buyer, seller.id, product.id, 2)
    manager.set_status(seller_user, request_id, first)

    with pytest.raises(InvalidStateTransitionError):
        manager.set_status(seller_user, request_id, second)

    assert ProductService(session).get_product(product.id).quantity == (8 if first is RequestStatus.APPROVED else 10)


def test_cannot_move_back_to_pending(manager, seller, seller_user, buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 1)
    with pytest.raises(InvalidStateTransitionError):
        manager.set_status(seller_user, request_id, RequestStatus.PENDING)


def test_unknown_status_string(manager, seller, seller_user, buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 1)
    with pytest.raises(ValidationError):
        manager.set_status(seller_user, request_id, "shipped")


def test_only_owning_seller_sets_status(manager, seller, buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 1)
    with pytest.raises(NotAuthorizedError):
        manager.set_status(buyer, request_id, RequestStatus.APPROVED)


def test_set_status_on_missing_request(manager, seller_user):
    with pytest.raises(NotFoundError):
        manager.set_status(seller_user, "missing", RequestStatus.APPROVED)


def test_buyer_retracts_pending_request(manager, seller, buyer, other_buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 1)

    with pytest.raises(NotAuthorizedError):
        manager.delete_request(other_buyer, request_id)

    manager.delete_request(buyer, request_id)
    with pytest.raises(NotFoundError):
        manager.get_request(request_id)


def test_decided_request_cannot_be_retracted(manager, seller, seller_user, buyer, make_product):
    product = make_product()
    request_id = manager.create_request(buyer, seller.id, product.id, 1)
    manager.set_status(seller_user, request_id, RequestStatus.REJECTED)
    with pytest.raises(InvalidStateTransitionError):
        manager.delete_request(buyer, request_id)


def test_lists_are_newest_first(session, manager, seller, buyer, other_buyer, make_product):
    product = make_product()
    now = datetime.utcnow()
    first = manager.create_request(buyer, seller.id, product.id, 1)
    second = manager.create_request(buyer, seller.id, product.id, 2)
    third = manager.create_request(other_buyer, seller.id, product.id, 1)
    for age, request_id in enumerate([third, second, first]):
        manager.get_request(request_id).created_at = now - timedelta(minutes=age)
    session.commit()

    assert [r.id for r in manager.list_by_buyer(buyer.user_id)] == [second, first]
    assert [r.id for r in manager.list_by_seller(seller.id)] == [third, second, first]
    assert manager.list_by_buyer("nobody") == []


class TestRequestFeed:

    @pytest.fixture
    def feed(self, db_manager):
        feed = RequestFeed(db_manager)
        yield feed
        feed.close()

    def test_subscribe_delivers_current_list(self, feed, manager, seller, buyer, make_product):
        product = make_product()
        request_id = manager.create_request(buyer, seller.id, product.id, 1)

        received = []
        feed.subscribe(buyer.user_id, received.append)

        assert [[r.id for r in snapshot] for snapshot in received] == [[request_id]]

    def test_updates_follow_commits(self, feed, manager, seller, seller_user, buyer, make_product):
        product = make_product(quantity=5)
        received = []
        feed.subscribe(buyer.user_id, received.append)

        request_id = manager.create_request(buyer, seller.id, product.id, 1)
        manager.set_status(seller_user, request_id, RequestStatus.APPROVED)

        statuses = [[r.status for r in snapshot] for snapshot in received]
        assert statuses == [[], [RequestStatus.PENDING], [RequestStatus.APPROVED]]

    def test_other_buyers_changes_are_not_delivered(self, feed, manager, seller, buyer,
                                                     other_buyer, make_product):
        product = make_product()
        received = []
        feed.subscribe(buyer.user_id, received.append)

        manager.create_request(other_buyer, seller.id, product.id, 1)

        assert received == [[]]

    def test_product_changes_are_not_delivered(self, session, feed, buyer, make_product):
        received = []
        feed.subscribe(buyer.user_id, received.append)

        product = make_product()
        ProductService(session).update_product(product.id, price=11.0)

        assert received == [[]]

    def test_rolled_back_changes_are_not_delivered(self, session, feed, seller, buyer, make_product):
        product = make_product()
        received = []
        feed.subscribe(buyer.user_id, received.append)

        session.add(ProductRequest(
            buyer_id=buyer.user_id, seller_id=seller.id, product_id=product.id,
            product_name=product.name, product_price=product.price,
            quantity=1, total_price=product.price,
        ))
        session.flush()
        session.rollback()

        assert received == [[]]

    def test_unsubscribe_stops_delivery(self, feed, manager, seller, buyer, make_product):
        product = make_product()
        received = []
        unsubscribe = feed.subscribe(buyer.user_id, received.append)
        unsubscribe()

        manager.create_request(buyer, seller.id, product.id, 1)

        assert len(received) == 1

    def test_failing_subscriber_does_not_block_others(self, feed, manager, seller, buyer, make_product):
        product = make_product()
        received = []
        calls = []

        def broken(requests):
            calls.append(len(requests))
            if requests:
                raise RuntimeError("render failed")

        feed.subscribe(buyer.user_id, broken)
        feed.subscribe(buyer.user_id, received.append)

        request_id = manager.create_request(buyer, seller.id, product.id, 1)

        assert calls == [0, 1]
        assert [r.id for r in received[-1]] == [request_id]

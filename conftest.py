"""Shared pytest fixtures: a fresh in-memory database per test."""

import pytest

from context import UserContext
from database import DatabaseManager
from geo import GeoLocation
from models import UserType
from product_service import ProductService
from seller_service import SellerService


@pytest.fixture
def db_manager():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager):
    session = db_manager.get_session()
    yield session
    session.close()


@pytest.fixture
def seller_user():
    return UserContext(
        user_id="user-seller",
        email="maya@cozyknits.test",
        name="Maya Maker",
        user_type=UserType.SELLER,
    )


@pytest.fixture
def buyer():
    return UserContext(
        user_id="user-buyer",
        email="bea@example.com",
        name="Bea Buyer",
        avatar="https://img.test/bea.png",
    )


@pytest.fixture
def other_buyer():
    return UserContext(user_id="user-buyer-2", email="sam@example.com", name="Sam Shopper")


@pytest.fixture
def admin():
    return UserContext(user_id="user-admin", email="admin@example.com", name="Ada Admin", is_admin=True)


@pytest.fixture
def seller(session, seller_user):
    return SellerService(session).create_seller(
        user_id=seller_user.user_id,
        business_name="Cozy Knits",
        description="Handmade scarves, hats, and cozy winter wear.",
        location=GeoLocation(latitude=0.0, longitude=0.0, city="Null Island"),
        categories=["Knitting", "Winter"],
    )


@pytest.fixture
def make_product(session, seller):
    """Factory creating products for the default seller."""
    service = ProductService(session)

    def _make(name="Wool Scarf", price=25.0, category="Scarf", **extra):
        extra.setdefault("description", f"Cozy Knits • {category} handmade")
        return service.create_product(
            seller_id=seller.id,
            name=name,
            price=price,
            category=category,
            **extra,
        )

    return _make

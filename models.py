"""
SQLAlchemy ORM Models for the Hometown Marketplace

Tables:
- users: Identity profile (buyer or seller) with optional home location
- sellers: Business profile tied 1:1 to a user, with location and geohash
- products: Listings owned by a seller, with stock and derived ratings
- requests: A buyer's ask to purchase a quantity of a product
- reviews: One review per buyer per product, gated on an approved request
- favorites: Buyer/product pairs keyed by "{buyer_id}_{product_id}"
- bugs / suggestions: User feedback moderated by admins
- pending_notifications: Request ids with unseen status changes per user

Requests, reviews and favorites reference products by plain id (no foreign
key) because products may be deleted at any time while those records keep
their denormalized snapshots.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Column, DateTime, Enum, Float, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint, Boolean
)
from sqlalchemy.orm import declarative_base, relationship

from geo import GeoLocation

Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


def _enum_column(enum_cls, name):
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
    )


class UserType(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"


class RequestStatus(str, enum.Enum):
    """Forward-only lifecycle: pending -> approved | rejected"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class BugStatus(str, enum.Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


class SuggestionStatus(str, enum.Enum):
    OPEN = "open"
    UNDER_REVIEW = "under-review"
    IMPLEMENTED = "implemented"
    CLOSED = "closed"


class LocatedMixin:
    """Latitude/longitude plus free-text address fields"""
    latitude = Column(Float)
    longitude = Column(Float)
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(50))
    zip_code = Column(String(10))

    @property
    def location(self):
        if self.latitude is None or self.longitude is None:
            return None
        return GeoLocation(
            latitude=self.latitude,
            longitude=self.longitude,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
        )

    def set_location(self, location: GeoLocation) -> None:
        self.latitude = location.latitude
        self.longitude = location.longitude
        self.address = location.address
        self.city = location.city
        self.state = location.state
        self.zip_code = location.zip_code


class User(LocatedMixin, Base):
    """Identity profile; the id comes from the auth provider"""
    __tablename__ = 'users'

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    user_type = Column(_enum_column(UserType, "user_type"), nullable=False)
    phone_number = Column(String(20))
    avatar = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.email}>"


class Seller(LocatedMixin, Base):
    """Business profile with an aggregate rating derived from reviews"""
    __tablename__ = 'sellers'

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64), unique=True, nullable=False)
    business_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    geohash = Column(String(12))  # maintained on every location write, never queried
    rating = Column(Float, nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)
    avatar = Column(String(500))
    cover_image = Column(String(500))
    categories = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    products = relationship("Product", back_populates="seller", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Seller {self.business_name}>"


class Product(Base):
    """A seller's listing. When quantity is tracked, in_stock == quantity > 0"""
    __tablename__ = 'products'
    __table_args__ = (
        Index('idx_products_seller_id', 'seller_id'),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    seller_id = Column(String(64), ForeignKey('sellers.id', ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    images = Column(JSON, nullable=False, default=list)
    category = Column(String(100), nullable=False)
    in_stock = Column(Boolean, nullable=False, default=True)
    quantity = Column(Integer, nullable=True)
    emoji = Column(String(16))
    tags = Column(JSON, nullable=False, default=list)
    rating = Column(Float, nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    seller = relationship("Seller", back_populates="products")

    def __repr__(self):
        return f"<Product {self.name}: ${self.price}>"


class ProductRequest(Base):
    """Purchase request with name/price snapshots taken at creation time"""
    __tablename__ = 'requests'
    __table_args__ = (
        Index('idx_requests_buyer_id', 'buyer_id'),
        Index('idx_requests_seller_id', 'seller_id'),
        Index('idx_requests_product_id', 'product_id'),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    buyer_id = Column(String(64), nullable=False)
    buyer_name = Column(String(255), nullable=False, default="")
    buyer_email = Column(String(255), nullable=False, default="")
    seller_id = Column(String(64), nullable=False)
    product_id = Column(String(64), nullable=False)
    product_name = Column(String(255), nullable=False)
    product_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    message = Column(Text, nullable=False, default="")
    status = Column(
        _enum_column(RequestStatus, "request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ProductRequest {self.id} {self.product_name} x{self.quantity} [{self.status.value}]>"


class ProductReview(Base):
    __tablename__ = 'reviews'
    __table_args__ = (
        UniqueConstraint('buyer_id', 'product_id', name='unique_buyer_product_review'),
        Index('idx_reviews_product_id', 'product_id'),
    )

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), nullable=False)
    buyer_id = Column(String(64), nullable=False)
    buyer_name = Column(String(255), nullable=False, default="")
    buyer_avatar = Column(String(500))
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ProductReview {self.product_id} by {self.buyer_id}: {self.rating}>"


class Favorite(Base):
    __tablename__ = 'favorites'
    __table_args__ = (
        Index('idx_favorites_buyer_id', 'buyer_id'),
        Index('idx_favorites_product_id', 'product_id'),
    )

    id = Column(String(140), primary_key=True)  # "{buyer_id}_{product_id}"
    buyer_id = Column(String(64), nullable=False)
    product_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    @staticmethod
    def key(buyer_id: str, product_id: str) -> str:
        return f"{buyer_id}_{product_id}"

    def __repr__(self):
        return f"<Favorite {self.id}>"


class BugReport(Base):
    __tablename__ = 'bugs'

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64))
    user_email = Column(String(255))
    user_name = Column(String(255))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(_enum_column(BugStatus, "bug_status"), nullable=False, default=BugStatus.OPEN)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<BugReport {self.title} [{self.status.value}]>"


class Suggestion(Base):
    __tablename__ = 'suggestions'

    id = Column(String(64), primary_key=True, default=new_id)
    user_id = Column(String(64))
    user_email = Column(String(255))
    user_name = Column(String(255))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(
        _enum_column(SuggestionStatus, "suggestion_status"),
        nullable=False,
        default=SuggestionStatus.OPEN,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Suggestion {self.title} [{self.status.value}]>"


class PendingNotification(Base):
    """A request whose status changed and the user has not looked at yet"""
    __tablename__ = 'pending_notifications'
    __table_args__ = (
        UniqueConstraint('user_id', 'request_id', name='unique_user_request_notification'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    request_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<PendingNotification {self.user_id}:{self.request_id}>"


if __name__ == "__main__":
    print("SQLAlchemy ORM Models:")
    for table in Base.metadata.sorted_tables:
        print(f"- {table.name}")

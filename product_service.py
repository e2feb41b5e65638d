"""
Product listings and the catalog filter.

Catalog reads fetch the whole (seller's or global) product set, sort it
newest first, then filter in memory with `apply_filters`.

Stock rule: whenever a quantity is written, in_stock is recomputed as
quantity > 0. Products without a quantity keep a manually toggled in_stock.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from errors import NotFoundError, ValidationError
from models import Product, Seller
from schemas import ProductCreate, ProductFilters, ProductUpdate, validate

logger = logging.getLogger(__name__)


def apply_filters(products: Iterable[Product], filters: Optional[ProductFilters]) -> List[Product]:
    """
    Keep the products matching every provided filter (logical AND).

    Args:
        products: Products in display order
        filters: ProductFilters; None fields (and empty category/search text)
            impose no constraint

    Returns:
        Matching products, original order preserved
    """
    filtered = list(products)
    if filters is None:
        return filtered

    if filters.category:
        filtered = [p for p in filtered if p.category == filters.category]

    if filters.in_stock is not None:
        filtered = [p for p in filtered if p.in_stock == filters.in_stock]

    if filters.min_price is not None:
        filtered = [p for p in filtered if p.price >= filters.min_price]

    if filters.max_price is not None:
        filtered = [p for p in filtered if p.price <= filters.max_price]

    if filters.search_query:
        query = filters.search_query.lower()
        filtered = [p for p in filtered if _matches_text(p, query)]

    return filtered


def _matches_text(product: Product, query: str) -> bool:
    return (
        query in (product.name or "").lower()
        or query in (product.description or "").lower()
        or any(query in tag.lower() for tag in (product.tags or []))
    )


class ProductService:
    """Seller-side product management and buyer-side catalog reads"""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get_product(self, product_id: str) -> Product:
        product = self.db_session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def get_products_by_seller(
        self,
        seller_id: str,
        filters: Optional[ProductFilters] = None
    ) -> List[Product]:
        products = (
            self.db_session.query(Product)
            .filter(Product.seller_id == seller_id)
            .order_by(Product.created_at.desc())
            .all()
        )
        return apply_filters(products, filters)

    def get_all_products(
        self,
        filters: Optional[ProductFilters] = None,
        limit: int = config.PRODUCT_LIST_LIMIT
    ) -> List[Product]:
        """Full catalog, newest first, filtered then truncated to `limit`."""
        products = self.db_session.query(Product).order_by(Product.created_at.desc()).all()
        matching = apply_filters(products, filters)
        logger.debug(f"Catalog search: {len(matching)}/{len(products)} products match")
        return matching[:limit]

    def create_product(self, seller_id: str, name: str, description: str, price: float,
                       category: str, **extra) -> Product:
        """
        Create a listing for a seller.

        Args:
            seller_id: Owning seller
            name, description, price, category: Required listing fields
            **extra: in_stock, quantity, images, emoji, tags

        Returns:
            The persisted Product

        Raises:
            ValidationError: If a field is malformed
            NotFoundError: If the seller does not exist
        """
        data = validate(
            ProductCreate,
            seller_id=seller_id,
            name=name,
            description=description,
            price=price,
            category=category,
            **extra,
        )
        if self.db_session.get(Seller, seller_id) is None:
            raise NotFoundError("Seller", seller_id)

        fields = data.model_dump()
        if fields["quantity"] is not None:
            fields["in_stock"] = fields["quantity"] > 0

        product = Product(**fields)
        self._commit(product)
        logger.info(f"✓ Created product '{product.name}' ({product.id}) for seller {seller_id}")
        return product

    def update_product(self, product_id: str, **updates) -> Product:
        """
        Apply partial updates; writing quantity also derives in_stock.

        Raises:
            ValidationError: If `in_stock` is written without a quantity and
                disagrees with the quantity already tracked
        """
        fields = validate(ProductUpdate, **updates).model_dump(exclude_unset=True)

        product = self.get_product(product_id)
        if fields.get("quantity") is not None:
            fields["in_stock"] = fields["quantity"] > 0
        elif "in_stock" in fields and "quantity" not in fields:
            self._check_stock_matches_quantity(product, fields["in_stock"])

        for field_name, value in fields.items():
            setattr(product, field_name, value)

        self._commit(product)
        return product

    def delete_product(self, product_id: str) -> None:
        product = self.get_product(product_id)
        try:
            self.db_session.delete(product)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete product {product_id}: {e}")
            self.db_session.rollback()
            raise
        logger.info(f"Deleted product {product_id}")

    def toggle_product_stock(self, product_id: str, in_stock: bool) -> Product:
        """
        Manually mark a product in or out of stock.

        Raises:
            ValidationError: If the product tracks a quantity that disagrees
                with `in_stock`; update the quantity instead
        """
        product = self.get_product(product_id)
        self._check_stock_matches_quantity(product, in_stock)

        product.in_stock = in_stock
        self._commit(product)
        return product

    @staticmethod
    def _check_stock_matches_quantity(product: Product, in_stock: bool) -> None:
        if product.quantity is not None and (product.quantity > 0) != in_stock:
            raise ValidationError(
                f"Product {product.id} tracks quantity {product.quantity}; "
                f"update the quantity to change its stock"
            )

    def _commit(self, product: Product) -> None:
        try:
            self.db_session.add(product)
            self.db_session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save product {product.id}: {e}")
            self.db_session.rollback()
            raise

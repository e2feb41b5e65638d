from datetime import datetime, timedelta

import pytest

from errors import NotFoundError, ValidationError
from models import Product
from product_service import ProductService, apply_filters
from schemas import ProductFilters


def catalog():
    return [
        Product(id="p1", name="Wool Scarf", description="Warm merino knit", price=25.0,
                category="Scarf", in_stock=True, tags=["Winter"]),
        Product(id="p2", name="Ceramic Mug", description="Glazed stoneware", price=20.0,
                category="Mug", in_stock=False, tags=["Kitchen", "Gift"]),
        Product(id="p3", name="Beanie Hat", description="Chunky WOOL beanie", price=18.0,
                category="Hat", in_stock=True, tags=[]),
        Product(id="p4", name="Tea Towel", description="Linen towel", price=12.0,
                category="Kitchen", in_stock=True, tags=["kitchen"]),
    ]


def ids(products):
    return [p.id for p in products]


def test_empty_filters_return_input_unchanged():
    products = catalog()
    assert ids(apply_filters(products, ProductFilters())) == ["p1", "p2", "p3", "p4"]
    assert ids(apply_filters(products, None)) == ["p1", "p2", "p3", "p4"]


def test_category_filter():
    assert ids(apply_filters(catalog(), ProductFilters(category="Mug"))) == ["p2"]


def test_empty_category_means_no_constraint():
    assert len(apply_filters(catalog(), ProductFilters(category=""))) == 4


def test_in_stock_filter_both_ways():
    assert ids(apply_filters(catalog(), ProductFilters(in_stock=False))) == ["p2"]
    assert ids(apply_filters(catalog(), ProductFilters(in_stock=True))) == ["p1", "p3", "p4"]


def test_price_bounds_are_inclusive():
    filters = ProductFilters(min_price=18, max_price=20)
    assert ids(apply_filters(catalog(), filters)) == ["p2", "p3"]


def test_search_matches_name_description_and_tags_case_insensitively():
    assert ids(apply_filters(catalog(), ProductFilters(search_query="wool"))) == ["p1", "p3"]
    assert ids(apply_filters(catalog(), ProductFilters(search_query="KITCHEN"))) == ["p2", "p4"]
    assert ids(apply_filters(catalog(), ProductFilters(search_query="towel"))) == ["p4"]
    assert apply_filters(catalog(), ProductFilters(search_query="bicycle")) == []


def test_filters_combine_as_conjunction():
    filters = ProductFilters(search_query="kitchen", in_stock=True, max_price=15)
    assert ids(apply_filters(catalog(), filters)) == ["p4"]

    products = catalog()
    expected = [
        p for p in products
        if p.in_stock and p.price >= 15 and "w" in (p.name + p.description).lower()
    ]
    result = apply_filters(products, ProductFilters(in_stock=True, min_price=15, search_query="w"))
    assert result == expected


def test_create_derives_in_stock_from_quantity(make_product):
    assert make_product(quantity=0, in_stock=True).in_stock is False
    assert make_product(name="Beanie Hat", quantity=4, in_stock=False).in_stock is True
    untracked = make_product(name="Mittens", in_stock=False)
    assert untracked.quantity is None
    assert untracked.in_stock is False


def test_create_validates_fields(make_product):
    with pytest.raises(ValidationError):
        make_product(name="ab")
    with pytest.raises(ValidationError):
        make_product(price=0)
    with pytest.raises(ValidationError):
        make_product(description="short")
    with pytest.raises(ValidationError):
        make_product(quantity=-1)
    with pytest.raises(ValidationError):
        make_product(colour="red")


def test_create_requires_existing_seller(session):
    with pytest.raises(NotFoundError):
        ProductService(session).create_product(
            seller_id="ghost", name="Ghost Mug", description="Does not exist anywhere",
            price=5, category="Mug",
        )


def test_update_quantity_recomputes_in_stock(session, make_product):
    product = make_product(quantity=5)
    service = ProductService(session)

    updated = service.update_product(product.id, quantity=0)
    assert updated.in_stock is False

    updated = service.update_product(product.id, quantity=3, price=30.0)
    assert updated.in_stock is True
    assert updated.price == 30.0


def test_update_rejects_unknown_or_derived_fields(session, make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        ProductService(session).update_product(product.id, rating=5.0)


def test_toggle_stock_for_untracked_product(session, make_product):
    product = make_product()
    assert ProductService(session).toggle_product_stock(product.id, False).in_stock is False


def test_toggle_stock_cannot_contradict_quantity(session, make_product):
    product = make_product(quantity=2)
    with pytest.raises(ValidationError):
        ProductService(session).toggle_product_stock(product.id, False)


def test_update_stock_flag_cannot_contradict_quantity(session, make_product):
    product = make_product(quantity=5)
    service = ProductService(session)

    with pytest.raises(ValidationError):
        service.update_product(product.id, in_stock=False)

    refreshed = service.get_product(product.id)
    assert (refreshed.quantity, refreshed.in_stock) == (5, True)
    assert service.update_product(product.id, in_stock=True, price=20.0).in_stock is True


def test_update_stock_flag_for_untracked_product(session, make_product):
    product = make_product()
    assert ProductService(session).update_product(product.id, in_stock=False).in_stock is False


def test_delete_and_get_missing(session, make_product):
    product = make_product()
    service = ProductService(session)
    service.delete_product(product.id)
    with pytest.raises(NotFoundError):
        service.get_product(product.id)


def test_catalog_reads_newest_first_and_limit(session, seller, make_product):
    now = datetime.utcnow()
    names = ["Wool Scarf", "Beanie Hat", "Mittens"]
    for age, name in enumerate(names):
        product = make_product(name=name)
        product.created_at = now - timedelta(minutes=age)
    session.commit()

    service = ProductService(session)
    assert [p.name for p in service.get_products_by_seller(seller.id)] == names
    assert [p.name for p in service.get_all_products(limit=2)] == names[:2]
    assert [p.name for p in service.get_all_products(ProductFilters(search_query="hat"))] == ["Beanie Hat"]

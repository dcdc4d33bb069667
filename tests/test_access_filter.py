"""
Unit tests for the access filter – eligibility gate, secondary filters,
validation and sorting.
"""

from datetime import datetime, timezone

import pytest

from catalog_access import config
from catalog_access.access_filter import (
    VENDOR_MEDICINE_REASON,
    VENDOR_PRESCRIPTION_REASON,
    access_level_for,
    assert_vendor_safe,
    available_categories,
    eligibility_denial,
    is_eligible,
    matches_search,
    recommend,
    restrictions_for,
    select_products,
    sort_views,
    validate_filters,
)
from catalog_access.catalog import CatalogStore
from catalog_access.errors import InvalidInput
from catalog_access.models import (
    AccessLevel,
    AggregatePricing,
    BusinessKind,
    CatalogFilters,
    MasterProduct,
    PriceRange,
    ProductKind,
    ProductView,
    SortBy,
    SortOrder,
)
from catalog_access.seed import build_sample_catalog


# ── Helpers ──────────────────────────────────────────────────────────

def _product(product_id, kind=ProductKind.MEDICAL_SUPPLY, rx=False, pharmacy=True, vendor=True,
                     name=None, category="misc", created=None, **extra):
    return MasterProduct(
        id=product_id, name=name or f"Product {product_id}", category=category, kind=kind,
        manufacturer="Acme", prescription_required=rx,
        pharmacy_eligible=pharmacy, vendor_eligible=vendor,
        created_at=created or datetime(2024, 1, 1, tzinfo=timezone.utc), **extra,
    )


def _view(product, price=None):
    agg = None
    if price is not None:
        agg = AggregatePricing(average_price=price, average_rating=4.0,
                               total_reviews=1, business_count=1, in_stock=True)
    return ProductView(product=product, aggregate=agg)


# ── Tests: eligibility gate ──────────────────────────────────────────

def test_pharmacy_sees_pharmacy_eligible_including_medicine():
    med = _product(1, kind=ProductKind.MEDICINE, rx=True, vendor=False)
    assert is_eligible(med, BusinessKind.PHARMACY)
    assert not is_eligible(_product(2, pharmacy=False), BusinessKind.PHARMACY)


def test_vendor_blocked_from_medicine_even_when_flagged_eligible():
    stale = _product(1, kind=ProductKind.MEDICINE, vendor=True)
    assert eligibility_denial(stale, BusinessKind.VENDOR) == VENDOR_MEDICINE_REASON


def test_vendor_blocked_from_prescription_even_when_flagged_eligible():
    stale = _product(1, kind=ProductKind.MEDICAL_DEVICE, rx=True, vendor=True)
    assert eligibility_denial(stale, BusinessKind.VENDOR) == VENDOR_PRESCRIPTION_REASON


def test_vendor_needs_flag():
    assert not is_eligible(_product(1, vendor=False), BusinessKind.VENDOR)
    assert is_eligible(_product(2), BusinessKind.VENDOR)


def test_unknown_business_kind_raises():
    with pytest.raises(ValueError, match="Unknown business kind"):
        eligibility_denial(_product(1), "wholesaler")


def test_access_level_and_restrictions():
    assert access_level_for(BusinessKind.PHARMACY) == AccessLevel.FULL
    assert access_level_for(BusinessKind.VENDOR) == AccessLevel.RESTRICTED
    assert restrictions_for(BusinessKind.PHARMACY) == []
    assert "Medicines are not available for vendors" in restrictions_for(BusinessKind.VENDOR)


def test_select_products_vendor_never_returns_regulated_items():
    store = CatalogStore([
        _product(1, kind=ProductKind.MEDICINE, vendor=True),
        _product(2, rx=True, vendor=True),
        _product(3),
    ], [])
    result = select_products(store, BusinessKind.VENDOR, CatalogFilters())
    assert [p.id for p in result] == [3]


def test_assert_vendor_safe_fails_loudly(monkeypatch):
    monkeypatch.setattr(config, "ENFORCE_INVARIANTS", True)
    with pytest.raises(AssertionError, match="Invariant breach"):
        assert_vendor_safe(BusinessKind.VENDOR, [_product(1, kind=ProductKind.MEDICINE)])
    # pharmacies may hold medicines
    assert_vendor_safe(BusinessKind.PHARMACY, [_product(1, kind=ProductKind.MEDICINE)])


# ── Tests: secondary filters ─────────────────────────────────────────

def test_search_paracetamol_for_pharmacy():
    store = build_sample_catalog()
    result = select_products(store, BusinessKind.PHARMACY, CatalogFilters(search_query="PARACETAMOL"))
    assert [p.id for p in result] == [1001]
    for p in result:
        haystack = " ".join([p.name, p.description, *p.keywords, *p.tags]).lower()
        assert "paracetamol" in haystack


def test_search_matches_any_field():
    p = _product(1, active_ingredient="Cholecalciferol", tags=("bone-health",),
                 keywords=("sunshine",), name_ar="فيتامين")
    assert matches_search(p, "calcifer")
    assert matches_search(p, "BONE")
    assert matches_search(p, "sunshine")
    assert matches_search(p, "فيتامين")
    assert matches_search(p, "acme")
    assert not matches_search(p, "insulin")


def test_search_paracetamol_for_vendor_is_empty():
    store = build_sample_catalog()
    result = select_products(store, BusinessKind.VENDOR, CatalogFilters(search_query="paracetamol"))
    assert result == []


def test_category_filter_case_insensitive():
    store = build_sample_catalog()
    result = select_products(store, BusinessKind.VENDOR, CatalogFilters(category="Medical-Devices"))
    assert {p.id for p in result} == {2003, 2005, 2009, 2010}


def test_prescription_toggle():
    store = build_sample_catalog()
    rx = select_products(store, BusinessKind.PHARMACY, CatalogFilters(prescription_only=True))
    otc = select_products(store, BusinessKind.PHARMACY, CatalogFilters(prescription_only=False))
    assert {p.id for p in rx} == {1002, 1003}
    assert len(otc) == len(store.products) - 2


def test_available_categories_for_vendor_excludes_medicine_categories():
    store = build_sample_catalog()
    cats = available_categories(store, BusinessKind.VENDOR)
    assert "antibiotics" not in cats
    assert cats == sorted(cats)
    assert "hygiene" in cats


# ── Tests: validate_filters ──────────────────────────────────────────

def test_validate_filters_defaults():
    f = validate_filters(None)
    assert f.offset == 0
    assert f.sort_by is None


def test_validate_filters_coerces_sort_strings():
    f = validate_filters(CatalogFilters(sort_by="price", sort_order="desc", search_query="  x "))
    assert f.sort_by == SortBy.PRICE
    assert f.sort_order == SortOrder.DESC
    assert f.search_query == "x"


@pytest.mark.parametrize("filters, match", [
    (CatalogFilters(price_range=PriceRange(-1, 10)), "negative"),
    (CatalogFilters(price_range=PriceRange(20, 10)), "exceeds"),
    (CatalogFilters(offset=-1), "offset"),
    (CatalogFilters(limit=0), "limit"),
    (CatalogFilters(limit=10_000), "limit"),
    (CatalogFilters(sort_by="popularity"), "sortBy"),
    (CatalogFilters(sort_order="sideways"), "sortOrder"),
])
def test_validate_filters_rejects_malformed(filters, match):
    with pytest.raises(InvalidInput, match=match):
        validate_filters(filters)


# ── Tests: sorting ───────────────────────────────────────────────────

def test_sort_by_name_and_price():
    a = _view(_product(1, name="beta"), price=5.0)
    b = _view(_product(2, name="Alpha"), price=9.0)
    c = _view(_product(3, name="gamma"), price=1.0)
    assert [v.id for v in sort_views([a, b, c], SortBy.NAME)] == [2, 1, 3]
    assert [v.id for v in sort_views([a, b, c], SortBy.PRICE, SortOrder.DESC)] == [2, 1, 3]
    assert [v.id for v in sort_views([a, b, c], None)] == [1, 2, 3]


def test_sort_by_newest():
    old = _view(_product(1, created=datetime(2023, 1, 1, tzinfo=timezone.utc)))
    new = _view(_product(2, created=datetime(2024, 6, 1, tzinfo=timezone.utc)))
    assert [v.id for v in sort_views([old, new], SortBy.NEWEST, SortOrder.DESC)] == [2, 1]


# ── Tests: recommendations ───────────────────────────────────────────

def test_recommend_scores_similar_products():
    store = build_sample_catalog()
    current = store.product_by_id(2003)  # thermometer
    candidates = select_products(store, BusinessKind.VENDOR, CatalogFilters())
    result = recommend(candidates, current, limit=3)
    assert current not in result
    assert len(result) == 3
    assert all(p.category == "medical-devices" for p in result)

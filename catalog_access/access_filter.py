"""
Access Filter – role-based product eligibility and secondary filtering.

Stage 1 is the hard regulatory gate: pharmacies see pharmacy-eligible
products; vendors see vendor-eligible products that are neither medicines nor
prescription-only. The vendor checks on kind and prescription are applied on
top of the vendor_eligible flag so that a wrong flag alone cannot leak a
regulated product.

Stage 2 narrows the eligible set by category, prescription toggle and free-text
search. Price and stock bounds need inventory data and run after synthesis.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from catalog_access import config
from catalog_access.catalog import CatalogStore
from catalog_access.errors import InvalidInput
from catalog_access.models import (
    AccessLevel,
    BusinessKind,
    CatalogFilters,
    MasterProduct,
    ProductKind,
    ProductView,
    SortBy,
    SortOrder,
)

PHARMACY_INELIGIBLE_REASON = "Product not available for pharmacies"
VENDOR_MEDICINE_REASON = "Medicines are restricted to licensed pharmacies"
VENDOR_PRESCRIPTION_REASON = "Prescription products are restricted to licensed pharmacies"
VENDOR_INELIGIBLE_REASON = "Product not available for vendors"

VENDOR_RESTRICTIONS = [
    "Medicines are not available for vendors",
    "Prescription products are not available for vendors",
    "Only vendor-eligible medical supplies, hygiene supplies and medical devices are listed",
]


# ── Stage 1: hard eligibility gate ───────────────────────────────────

def eligibility_denial(product: MasterProduct, kind: BusinessKind) -> Optional[str]:
    """Return why *kind* may not access *product*, or None when it may."""

    if kind == BusinessKind.PHARMACY:
        if not product.pharmacy_eligible:
            return PHARMACY_INELIGIBLE_REASON
        return None

    if kind == BusinessKind.VENDOR:
        if product.kind == ProductKind.MEDICINE:
            return VENDOR_MEDICINE_REASON
        if product.prescription_required:
            return VENDOR_PRESCRIPTION_REASON
        if not product.vendor_eligible:
            return VENDOR_INELIGIBLE_REASON
        if product.kind not in (
            ProductKind.MEDICAL_SUPPLY,
            ProductKind.HYGIENE_SUPPLY,
            ProductKind.MEDICAL_DEVICE,
        ):
            raise ValueError(f"Unknown product kind: {product.kind}")
        return None

    raise ValueError(f"Unknown business kind: {kind}")


def is_eligible(product: MasterProduct, kind: BusinessKind) -> bool:
    return eligibility_denial(product, kind) is None


def access_level_for(kind: BusinessKind) -> AccessLevel:
    if kind == BusinessKind.PHARMACY:
        return AccessLevel.FULL
    if kind == BusinessKind.VENDOR:
        return AccessLevel.RESTRICTED
    raise ValueError(f"Unknown business kind: {kind}")


def restrictions_for(kind: BusinessKind) -> List[str]:
    """Human-readable restrictions echoed to the caller for UI messaging."""
    if kind == BusinessKind.PHARMACY:
        return []
    if kind == BusinessKind.VENDOR:
        return list(VENDOR_RESTRICTIONS)
    raise ValueError(f"Unknown business kind: {kind}")


def assert_vendor_safe(kind: BusinessKind, products: Iterable[MasterProduct]) -> None:
    """Fail loudly if a medicine or prescription product reached a vendor."""
    if kind != BusinessKind.VENDOR or not config.ENFORCE_INVARIANTS:
        return
    for p in products:
        if p.kind == ProductKind.MEDICINE or p.prescription_required:
            raise AssertionError(
                f"Invariant breach: regulated product {p.id} ({p.kind.value}) "
                "in a vendor result set."
            )


# ── Stage 2: secondary filters ───────────────────────────────────────

def matches_category(product: MasterProduct, category: str) -> bool:
    return product.category.casefold() == category.casefold()


def matches_prescription(product: MasterProduct, prescription_only: bool) -> bool:
    return product.prescription_required == prescription_only


def matches_search(product: MasterProduct, query: str) -> bool:
    """Case-insensitive substring match; any one field matching is enough."""
    q = query.casefold()
    fields = [
        product.name,
        product.name_ar,
        product.description,
        product.description_ar,
        product.manufacturer,
        product.active_ingredient,
    ]
    fields.extend(product.keywords)
    fields.extend(product.tags)
    return any(q in f.casefold() for f in fields if f)


def validate_filters(filters: Optional[CatalogFilters]) -> CatalogFilters:
    """Check filter values and return a normalised copy.

    Raises InvalidInput before any filtering runs.
    """
    if filters is None:
        return CatalogFilters()

    sort_by = filters.sort_by
    if sort_by is not None and not isinstance(sort_by, SortBy):
        try:
            sort_by = SortBy(sort_by)
        except ValueError:
            raise InvalidInput(f"Unsupported sortBy value: {filters.sort_by!r}")

    sort_order = filters.sort_order or SortOrder.ASC
    if not isinstance(sort_order, SortOrder):
        try:
            sort_order = SortOrder(sort_order)
        except ValueError:
            raise InvalidInput(f"Unsupported sortOrder value: {filters.sort_order!r}")

    pr = filters.price_range
    if pr is not None:
        if pr.min < 0 or pr.max < 0:
            raise InvalidInput("Price bounds must not be negative.")
        if pr.min > pr.max:
            raise InvalidInput(f"Price range minimum {pr.min} exceeds maximum {pr.max}.")

    if filters.offset is not None and filters.offset < 0:
        raise InvalidInput("offset must not be negative.")
    if filters.limit is not None:
        if filters.limit <= 0:
            raise InvalidInput("limit must be positive.")
        if filters.limit > config.MAX_PAGE_LIMIT:
            raise InvalidInput(f"limit must not exceed {config.MAX_PAGE_LIMIT}.")

    search = filters.search_query.strip() if filters.search_query else None
    category = filters.category.strip() if filters.category else None

    return replace(
        filters,
        sort_by=sort_by,
        sort_order=sort_order,
        search_query=search or None,
        category=category or None,
        offset=filters.offset or 0,
    )


def select_products(
    store: CatalogStore, kind: BusinessKind, filters: CatalogFilters
) -> List[MasterProduct]:
    """Run the eligibility gate then the catalog-only secondary filters, in order."""
    products = [p for p in store.products_eligible_for(kind) if is_eligible(p, kind)]

    if filters.category:
        products = [p for p in products if matches_category(p, filters.category)]

    if filters.prescription_only is not None:
        products = [p for p in products if matches_prescription(p, filters.prescription_only)]

    if filters.search_query:
        products = [p for p in products if matches_search(p, filters.search_query)]

    assert_vendor_safe(kind, products)
    return products


def apply_inventory_filters(views: List[ProductView], filters: CatalogFilters) -> List[ProductView]:
    """Price range and in-stock bounds, applied after inventory synthesis."""
    if filters.price_range is not None:
        lo, hi = filters.price_range.min, filters.price_range.max
        views = [v for v in views if v.price is not None and lo <= v.price <= hi]

    if filters.in_stock_only:
        views = [v for v in views if v.in_stock]

    return views


# ── Sorting ──────────────────────────────────────────────────────────

def sort_views(
    views: List[ProductView], sort_by: Optional[SortBy], sort_order: SortOrder = SortOrder.ASC
) -> List[ProductView]:
    if sort_by is None:
        return views

    if sort_by == SortBy.NAME:
        key = lambda v: v.product.name.casefold()
    elif sort_by == SortBy.PRICE:
        key = lambda v: v.price or 0
    elif sort_by == SortBy.RATING:
        key = lambda v: v.rating or 0
    elif sort_by == SortBy.NEWEST:
        key = lambda v: v.product.created_at
    else:
        raise ValueError(f"Unknown sort key: {sort_by}")

    return sorted(views, key=key, reverse=sort_order == SortOrder.DESC)


# ── Catalog browsing helpers ─────────────────────────────────────────

def available_categories(store: CatalogStore, kind: BusinessKind) -> List[str]:
    return sorted({p.category for p in select_products(store, kind, CatalogFilters())})


def available_manufacturers(store: CatalogStore, kind: BusinessKind) -> List[str]:
    return sorted({p.manufacturer for p in select_products(store, kind, CatalogFilters())})


def recommend(
    candidates: Sequence[MasterProduct], current: MasterProduct, limit: int = 5
) -> List[MasterProduct]:
    """Rank similar products by category, manufacturer, shared tags and kind."""
    scored = []
    for p in candidates:
        if p.id == current.id:
            continue
        score = 0
        if p.category == current.category:
            score += 3
        if p.manufacturer == current.manufacturer:
            score += 2
        score += len(set(p.tags) & set(current.tags))
        if p.kind == current.kind:
            score += 1
        if score > 0:
            scored.append((score, p))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in scored[:limit]]

"""
Catalog Store – immutable snapshot of the master product list and the
business directory, indexed by id, kind and location.

A snapshot is never mutated after construction. Reloading the catalog means
building a new CatalogStore and swapping the reference (see CatalogEngine).
"""

from typing import Dict, Iterable, List, Optional, Tuple

from catalog_access.errors import NotFoundError
from catalog_access.models import Business, BusinessKind, MasterProduct, ProductKind


class CatalogStore:
    def __init__(self, products: Iterable[MasterProduct], businesses: Iterable[Business]):
        self._products: Tuple[MasterProduct, ...] = tuple(products)
        self._businesses: Tuple[Business, ...] = tuple(businesses)

        self._product_index: Dict[int, MasterProduct] = {}
        for p in self._products:
            if p.id in self._product_index:
                raise ValueError(f"Duplicate product id in catalog: {p.id}")
            self._product_index[p.id] = p

        self._business_index: Dict[str, Business] = {}
        for b in self._businesses:
            if b.id in self._business_index:
                raise ValueError(f"Duplicate business id in directory: {b.id}")
            self._business_index[b.id] = b

        self._by_product_kind: Dict[ProductKind, Tuple[MasterProduct, ...]] = {
            kind: tuple(p for p in self._products if p.kind == kind) for kind in ProductKind
        }
        # Flag-only index; the access filter applies the full eligibility gate.
        self._flagged_for: Dict[BusinessKind, Tuple[MasterProduct, ...]] = {
            BusinessKind.PHARMACY: tuple(p for p in self._products if p.pharmacy_eligible),
            BusinessKind.VENDOR: tuple(p for p in self._products if p.vendor_eligible),
        }

    # ── Products ─────────────────────────────────────────────────────

    @property
    def products(self) -> Tuple[MasterProduct, ...]:
        return self._products

    def product_by_id(self, product_id: int) -> MasterProduct:
        product = self._product_index.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def find_product(self, product_id: int) -> Optional[MasterProduct]:
        return self._product_index.get(product_id)

    def products_by_kind(self, kind: ProductKind) -> Tuple[MasterProduct, ...]:
        return self._by_product_kind[kind]

    def products_eligible_for(self, kind: BusinessKind) -> Tuple[MasterProduct, ...]:
        """Products whose eligibility flag is set for *kind*."""
        if kind not in self._flagged_for:
            raise ValueError(f"Unknown business kind: {kind}")
        return self._flagged_for[kind]

    # ── Businesses ───────────────────────────────────────────────────

    @property
    def businesses(self) -> Tuple[Business, ...]:
        return self._businesses

    def business_by_id(self, business_id: str) -> Business:
        business = self._business_index.get(business_id)
        if business is None:
            raise NotFoundError("Business", business_id)
        return business

    def find_business(self, business_id: str) -> Optional[Business]:
        return self._business_index.get(business_id)

    def businesses_by_kind(self, kind: BusinessKind) -> List[Business]:
        """Active businesses of the given kind."""
        return [b for b in self._businesses if b.kind == kind and b.is_active]

    def businesses_by_location(
        self, city_id: Optional[str] = None, governorate_id: Optional[str] = None
    ) -> List[Business]:
        """Active businesses, optionally narrowed to a city and/or governorate."""
        result = []
        for b in self._businesses:
            if not b.is_active:
                continue
            if city_id and b.location.city_id != city_id:
                continue
            if governorate_id and b.location.governorate_id != governorate_id:
                continue
            result.append(b)
        return result

    def __len__(self) -> int:
        return len(self._products)

"""
Query Façade – the caller-facing catalog and compliance operations.

A CatalogEngine owns its catalog snapshot, inventory synthesizer and compliance
monitor. Build one at process start and pass it to whoever needs it.
"""

import logging
import os
import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from catalog_access import config
from catalog_access.access_filter import (
    access_level_for,
    apply_inventory_filters,
    assert_vendor_safe,
    available_categories,
    available_manufacturers,
    is_eligible,
    recommend,
    restrictions_for,
    select_products,
    sort_views,
    validate_filters,
)
from catalog_access.analysis import business_type_statistics
from catalog_access.catalog import CatalogStore
from catalog_access.compliance import ComplianceMonitor
from catalog_access.errors import InvalidInput
from catalog_access.inventory import InventoryRepository, InventorySynthesizer
from catalog_access.models import (
    AccessAction,
    AccessResult,
    Business,
    BusinessKind,
    CatalogFilters,
    CatalogPage,
    ComplianceReport,
    ComplianceStatus,
    MasterProduct,
    ProductResult,
    ProductView,
)

logger = logging.getLogger(__name__)


def parse_business_kind(value: Union[str, BusinessKind]) -> BusinessKind:
    if isinstance(value, BusinessKind):
        return value
    try:
        return BusinessKind(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unsupported business kind: {value!r}")


def parse_action(value: Union[str, AccessAction]) -> AccessAction:
    if isinstance(value, AccessAction):
        return value
    try:
        return AccessAction(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unsupported action: {value!r}")


class CatalogEngine:
    def __init__(
        self,
        store: CatalogStore,
        inventory: InventoryRepository,
        monitor: Optional[ComplianceMonitor] = None,
    ):
        self._store = store
        self._reload_lock = threading.Lock()
        self.synthesizer = InventorySynthesizer(inventory)
        self.monitor = monitor or ComplianceMonitor()

    @property
    def store(self) -> CatalogStore:
        return self._store

    def reload_catalog(self, store: CatalogStore) -> None:
        """Swap in a new catalog snapshot. In-flight queries keep the old one."""
        with self._reload_lock:
            self._store = store
            self.synthesizer.clear_cache()
        logger.info("Catalog snapshot reloaded: %d products, %d businesses",
                    len(store.products), len(store.businesses))

    # ── Helpers ──────────────────────────────────────────────────────

    def _resolve_business(
        self, store: CatalogStore, kind: BusinessKind, business_id: Optional[str]
    ) -> Optional[Business]:
        if business_id is None:
            return None
        business = store.business_by_id(business_id)
        if business.kind != kind:
            raise InvalidInput(
                f"Business {business_id} is a {business.kind.value}, not a {kind.value}."
            )
        return business

    def _sellers(
        self, store: CatalogStore, kind: BusinessKind,
        city_id: Optional[str] = None, governorate_id: Optional[str] = None,
    ) -> List[Business]:
        return [b for b in store.businesses_by_location(city_id, governorate_id) if b.kind == kind]

    def _view(
        self, product: MasterProduct, business: Optional[Business], sellers: Sequence[Business]
    ) -> ProductView:
        if business is not None:
            return ProductView(
                product=product,
                inventory=self.synthesizer.overlay(product, business),
                business=business,
            )
        return ProductView(product=product, aggregate=self.synthesizer.aggregate(product, sellers))

    def _build_views(
        self, store: CatalogStore, kind: BusinessKind, filters: CatalogFilters,
        business: Optional[Business],
    ) -> List[ProductView]:
        products = select_products(store, kind, filters)
        sellers = [] if business else self._sellers(
            store, kind, filters.city_id, filters.governorate_id
        )
        views = [self._view(p, business, sellers) for p in products]
        views = apply_inventory_filters(views, filters)
        return sort_views(views, filters.sort_by, filters.sort_order)

    # ── Catalog queries ──────────────────────────────────────────────

    def query_catalog(
        self,
        business_kind: Union[str, BusinessKind],
        business_id: Optional[str] = None,
        filters: Optional[CatalogFilters] = None,
    ) -> CatalogPage:
        """Eligible products for a seller, filtered, sorted and paginated when a limit is set.

        Bulk browsing is not written to the audit trail.
        """
        kind = parse_business_kind(business_kind)
        filters = validate_filters(filters)
        store = self._store
        business = self._resolve_business(store, kind, business_id)

        views = self._build_views(store, kind, filters, business)

        total = len(views)
        if filters.limit is not None:
            items = views[filters.offset:filters.offset + filters.limit]
            has_more = filters.offset + len(items) < total
        else:
            items = views
            has_more = False
        assert_vendor_safe(kind, (v.product for v in items))

        return CatalogPage(
            items=items,
            total_count=total,
            has_more=has_more,
            access_level=access_level_for(kind),
            restrictions=restrictions_for(kind),
        )

    def get_product(
        self,
        product_id: int,
        business_kind: Union[str, BusinessKind],
        business_id: Optional[str] = None,
    ) -> ProductResult:
        """Single product for a seller; every call is evaluated and audited."""
        kind = parse_business_kind(business_kind)
        store = self._store

        decision = self.monitor.evaluate(
            store, product_id, AccessAction.VIEW, business_id=business_id, business_kind=kind
        )
        if not decision.allowed:
            return ProductResult(
                product=None, allowed=False,
                reason=decision.reason, violation=decision.violation,
            )

        product = store.product_by_id(product_id)
        assert_vendor_safe(kind, [product])
        business = store.find_business(business_id) if business_id is not None else None
        view = self._view(product, business, self._sellers(store, kind))
        return ProductResult(product=view, allowed=True)

    def validate_access(
        self,
        business_id: str,
        product_id: int,
        action: Union[str, AccessAction],
    ) -> AccessResult:
        """Whether a business may perform *action* on a product; always audited."""
        return self.monitor.evaluate(
            self._store, product_id, parse_action(action), business_id=business_id
        )

    # ── Compliance ───────────────────────────────────────────────────

    def get_compliance_status(self) -> ComplianceStatus:
        return self.monitor.get_status()

    def get_compliance_report(self, start: datetime, end: datetime) -> ComplianceReport:
        return self.monitor.generate_report(start, end)

    def purge_old_records(self, days: int = config.RECORD_RETENTION_DAYS):
        return self.monitor.purge_older_than(days)

    # ── Browsing helpers ─────────────────────────────────────────────

    def available_categories(self, business_kind: Union[str, BusinessKind]) -> List[str]:
        return available_categories(self._store, parse_business_kind(business_kind))

    def available_manufacturers(self, business_kind: Union[str, BusinessKind]) -> List[str]:
        return available_manufacturers(self._store, parse_business_kind(business_kind))

    def business_type_statistics(self, business_kind: Union[str, BusinessKind]) -> Dict[str, float]:
        kind = parse_business_kind(business_kind)
        views = self._build_views(self._store, kind, CatalogFilters(), None)
        return business_type_statistics(views)

    def recommended_products(
        self, product_id: int, business_kind: Union[str, BusinessKind], limit: int = 5
    ) -> List[ProductView]:
        kind = parse_business_kind(business_kind)
        store = self._store
        current = store.find_product(product_id)
        if current is None or not is_eligible(current, kind):
            return []
        candidates = select_products(store, kind, CatalogFilters())
        sellers = self._sellers(store, kind)
        return [self._view(p, None, sellers) for p in recommend(candidates, current, limit)]


def build_engine(db_uri: Optional[str] = None) -> CatalogEngine:
    """Engine over the database at *db_uri* (or DB_URI), else over the sample catalog."""
    db_uri = db_uri or os.getenv("DB_URI")
    if db_uri:
        from catalog_access.database import init_engine, load_catalog, load_inventory

        db = init_engine(db_uri)
        store = load_catalog(db)
        inventory = load_inventory(db)
    else:
        from catalog_access.data_generator import build_demo_repository
        from catalog_access.seed import build_sample_catalog

        print("[init] DB_URI not set, using the sample catalog.")
        store = build_sample_catalog()
        inventory = build_demo_repository(store)

    print(f"[init] Catalog loaded: {len(store.products)} products, "
          f"{len(store.businesses)} businesses, {len(inventory.records())} inventory rows.")
    return CatalogEngine(store, inventory)

"""
Inventory Synthesizer – per-(business, product) stock/price overlays and
aggregate pricing across sellers.

Prices are derived from a fixed base-price table and a seller-kind markup.
Stock comes from an InventoryRepository; the repository never decides
eligibility.
"""

import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from catalog_access import config
from catalog_access.models import (
    AggregatePricing,
    Business,
    BusinessInventory,
    BusinessKind,
    InventoryRecord,
    MasterProduct,
    ProductKind,
    StockStatus,
)


# ── Repository ───────────────────────────────────────────────────────

class InventoryRepository:
    """Backing store of stock rows keyed by (business_id, product_id)."""

    @property
    def version(self) -> int:
        raise NotImplementedError

    def get(self, business_id: str, product_id: int) -> Optional[InventoryRecord]:
        raise NotImplementedError

    def upsert(self, record: InventoryRecord) -> None:
        raise NotImplementedError

    def records(self) -> List[InventoryRecord]:
        raise NotImplementedError


class InMemoryInventoryRepository(InventoryRepository):
    """Dict-backed repository. Every write bumps the version."""

    def __init__(self, records: Iterable[InventoryRecord] = ()):
        self._lock = threading.Lock()
        self._rows: Dict[Tuple[str, int], InventoryRecord] = {}
        self._version = 0
        for r in records:
            self._put(r)

    def _put(self, record: InventoryRecord) -> None:
        if record.stock < 0:
            raise ValueError(
                f"Stock must not be negative ({record.business_id}, {record.product_id})."
            )
        self._rows[(record.business_id, record.product_id)] = record

    @property
    def version(self) -> int:
        return self._version

    def get(self, business_id: str, product_id: int) -> Optional[InventoryRecord]:
        with self._lock:
            return self._rows.get((business_id, product_id))

    def upsert(self, record: InventoryRecord) -> None:
        with self._lock:
            self._put(record)
            self._version += 1

    def records(self) -> List[InventoryRecord]:
        with self._lock:
            return list(self._rows.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


# ── Pricing ──────────────────────────────────────────────────────────

def base_price(product: MasterProduct) -> float:
    """Kind-based price scaled by the category multiplier."""
    if product.kind == ProductKind.MEDICINE:
        price = (
            config.PRESCRIPTION_MEDICINE_BASE_PRICE
            if product.prescription_required
            else config.MEDICINE_BASE_PRICE
        )
    elif product.kind == ProductKind.MEDICAL_DEVICE:
        price = config.MEDICAL_DEVICE_BASE_PRICE
    elif product.kind == ProductKind.MEDICAL_SUPPLY:
        price = config.MEDICAL_SUPPLY_BASE_PRICE
    elif product.kind == ProductKind.HYGIENE_SUPPLY:
        price = config.HYGIENE_SUPPLY_BASE_PRICE
    else:
        raise ValueError(f"Unknown product kind: {product.kind}")

    multiplier = config.CATEGORY_PRICE_MULTIPLIERS.get(product.category, 1.0)
    return round(price * multiplier, 2)


def markup(kind: BusinessKind) -> float:
    if kind == BusinessKind.PHARMACY:
        return config.PHARMACY_MARKUP
    if kind == BusinessKind.VENDOR:
        return config.VENDOR_MARKUP
    raise ValueError(f"Unknown business kind: {kind}")


def selling_price(product: MasterProduct, kind: BusinessKind) -> float:
    return round(base_price(product) * markup(kind), 2)


def stock_status(stock: int, min_stock_threshold: int) -> StockStatus:
    if stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock <= min_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


# ── Synthesizer ──────────────────────────────────────────────────────

class InventorySynthesizer:
    def __init__(self, repository: InventoryRepository):
        self.repository = repository
        self._lock = threading.Lock()
        self._cache: Dict[Tuple[str, int], BusinessInventory] = {}
        self._cache_version = repository.version

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._cache_version = self.repository.version

    def overlay(self, product: MasterProduct, business: Business) -> BusinessInventory:
        """Stock/price overlay of *product* at *business*, memoized per repository version."""
        key = (business.id, product.id)
        with self._lock:
            if self._cache_version != self.repository.version:
                self._cache.clear()
                self._cache_version = self.repository.version
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        inv = self._synthesize(product, business)
        with self._lock:
            if self._cache_version == self.repository.version:
                self._cache[key] = inv
        return inv

    def _synthesize(self, product: MasterProduct, business: Business) -> BusinessInventory:
        record = self.repository.get(business.id, product.id)
        price = selling_price(product, business.kind)

        if record is None:
            stock = 0
            threshold = config.DEFAULT_MIN_STOCK_THRESHOLD
            original_price = None
        else:
            stock = record.stock
            threshold = record.min_stock_threshold
            original_price = None
            d = record.discount_percent
            if d is not None and 0 < d < 100:
                original_price = round(price / (1 - d / 100.0), 2)

        return BusinessInventory(
            business_id=business.id,
            product_id=product.id,
            business_kind=business.kind,
            stock=stock,
            price=price,
            cost_price=base_price(product),
            status=stock_status(stock, threshold),
            min_stock_threshold=threshold,
            original_price=original_price,
            batch_number=record.batch_number if record else None,
            expiry_date=record.expiry_date if record else None,
            sku=record.sku if record else None,
        )

    def aggregate(
        self, product: MasterProduct, businesses: Sequence[Business]
    ) -> Optional[AggregatePricing]:
        """Average price and rating across the given (active, eligible) businesses."""
        active = [b for b in businesses if b.is_active]
        if not active:
            return None

        overlays = [self.overlay(product, b) for b in active]
        avg_price = sum(o.price for o in overlays) / len(overlays)
        avg_rating = sum(b.rating for b in active) / len(active)

        return AggregatePricing(
            average_price=round(avg_price, 2),
            average_rating=round(avg_rating, 2),
            total_reviews=sum(b.review_count for b in active),
            business_count=len(active),
            in_stock=any(o.in_stock for o in overlays),
        )

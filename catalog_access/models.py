"""
Domain types used across the application.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple


# ── Enumerations ─────────────────────────────────────────────────────

class BusinessKind(str, Enum):
    PHARMACY = "pharmacy"
    VENDOR = "vendor"


class ProductKind(str, Enum):
    MEDICINE = "medicine"
    MEDICAL_SUPPLY = "medical-supply"
    HYGIENE_SUPPLY = "hygiene-supply"
    MEDICAL_DEVICE = "medical-device"


class RegulatoryStatus(str, Enum):
    APPROVED = "approved"
    RESTRICTED = "restricted"
    CONTROLLED = "controlled"


class AccessAction(str, Enum):
    VIEW = "view"
    SELL = "sell"
    ADD_TO_INVENTORY = "add_to_inventory"
    PROCESS_ORDER = "process_order"


class StockStatus(str, Enum):
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


class ViolationType(str, Enum):
    UNAUTHORIZED_MEDICINE_ACCESS = "unauthorized_medicine_access"
    UNAUTHORIZED_PRESCRIPTION_ACCESS = "unauthorized_prescription_access"
    INVALID_BUSINESS_TYPE = "invalid_business_type"
    MISSING_PERMISSIONS = "missing_permissions"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplianceState(str, Enum):
    COMPLIANT = "compliant"
    WARNING = "warning"
    VIOLATION = "violation"


class AccessLevel(str, Enum):
    FULL = "full"
    RESTRICTED = "restricted"


class SortBy(str, Enum):
    NAME = "name"
    PRICE = "price"
    RATING = "rating"
    NEWEST = "newest"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ── Catalog ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MasterProduct:
    """A record of the shared master catalog. Immutable at query time."""
    id: int
    name: str
    category: str
    kind: ProductKind
    manufacturer: str
    prescription_required: bool
    pharmacy_eligible: bool
    vendor_eligible: bool
    created_at: datetime
    name_ar: str = ""
    description: str = ""
    description_ar: str = ""
    active_ingredient: str = ""
    dosage: str = ""
    form: str = ""
    pack_size: str = ""
    barcode: Optional[str] = None
    regulatory_status: RegulatoryStatus = RegulatoryStatus.APPROVED
    tags: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Location:
    city_id: str
    governorate_id: str


@dataclass(frozen=True)
class DeliveryTerms:
    home_delivery: bool = True
    pickup_available: bool = True
    delivery_fee: float = 0.0
    free_delivery_threshold: Optional[float] = None
    estimated_delivery_time: str = ""


@dataclass(frozen=True)
class Business:
    """A seller account. Read-only to this engine."""
    id: str
    name: str
    kind: BusinessKind
    location: Location
    is_active: bool = True
    rating: float = 0.0
    review_count: int = 0
    delivery: DeliveryTerms = field(default_factory=DeliveryTerms)
    license_number: str = ""


# ── Inventory ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class InventoryRecord:
    """Stock row held by an inventory repository for one (business, product)."""
    business_id: str
    product_id: int
    stock: int
    min_stock_threshold: int
    max_stock_capacity: int = 500
    discount_percent: Optional[float] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    sku: Optional[str] = None
    shelf_location: Optional[str] = None
    supplier: Optional[str] = None
    supplier_contact: Optional[str] = None


@dataclass(frozen=True)
class BusinessInventory:
    """Seller-specific stock/price overlay on a catalog product."""
    business_id: str
    product_id: int
    business_kind: BusinessKind
    stock: int
    price: float
    cost_price: float
    status: StockStatus
    min_stock_threshold: int
    original_price: Optional[float] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    sku: Optional[str] = None

    @property
    def in_stock(self) -> bool:
        return self.status != StockStatus.OUT_OF_STOCK


@dataclass(frozen=True)
class AggregatePricing:
    """Pricing summary across the eligible businesses of one seller kind."""
    average_price: float
    average_rating: float
    total_reviews: int
    business_count: int
    in_stock: bool


@dataclass
class ProductView:
    """A catalog product as seen by one seller (kind or specific business)."""
    product: MasterProduct
    inventory: Optional[BusinessInventory] = None
    aggregate: Optional[AggregatePricing] = None
    business: Optional[Business] = None

    @property
    def id(self) -> int:
        return self.product.id

    @property
    def price(self) -> Optional[float]:
        if self.inventory is not None:
            return self.inventory.price
        if self.aggregate is not None:
            return self.aggregate.average_price
        return None

    @property
    def in_stock(self) -> bool:
        if self.inventory is not None:
            return self.inventory.in_stock
        if self.aggregate is not None:
            return self.aggregate.in_stock
        return False

    @property
    def rating(self) -> Optional[float]:
        if self.business is not None:
            return self.business.rating
        if self.aggregate is not None:
            return self.aggregate.average_rating
        return None


# ── Query inputs / outputs ───────────────────────────────────────────

@dataclass(frozen=True)
class PriceRange:
    min: float
    max: float


@dataclass
class CatalogFilters:
    category: Optional[str] = None
    price_range: Optional[PriceRange] = None
    in_stock_only: bool = False
    prescription_only: Optional[bool] = None  # True = Rx only, False = OTC only
    search_query: Optional[str] = None
    sort_by: Optional[SortBy] = None
    sort_order: SortOrder = SortOrder.ASC
    limit: Optional[int] = None
    offset: int = 0
    city_id: Optional[str] = None
    governorate_id: Optional[str] = None


@dataclass
class CatalogPage:
    items: List[ProductView]
    total_count: int
    has_more: bool
    access_level: AccessLevel
    restrictions: List[str]


# ── Audit / compliance ───────────────────────────────────────────────

@dataclass(frozen=True)
class PolicyDenied:
    """A regulatory or eligibility denial. Returned, never raised."""
    classification: Optional[ViolationType]
    reason: str


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    timestamp: datetime
    business_id: Optional[str]
    business_kind: Optional[BusinessKind]  # None when the business is unknown
    product_id: int
    action: AccessAction
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ComplianceViolation:
    id: str
    timestamp: datetime
    violation_type: ViolationType
    severity: Severity
    business_id: Optional[str]
    business_kind: Optional[BusinessKind]
    product_id: Optional[int]
    action: AccessAction
    description: str
    blocked: bool = True


@dataclass
class AccessResult:
    allowed: bool
    reason: Optional[str] = None
    violation: Optional[ComplianceViolation] = None
    denial: Optional[PolicyDenied] = None


@dataclass
class ProductResult:
    product: Optional[ProductView]
    allowed: bool
    reason: Optional[str] = None
    violation: Optional[ComplianceViolation] = None


@dataclass
class ComplianceStatus:
    status: ComplianceState
    recent_violations_count: int
    critical_violations_count: int
    last_violation_timestamp: Optional[datetime]
    message: str


@dataclass
class ComplianceReport:
    start: datetime
    end: datetime
    total_violations: int
    blocked_violations: int
    critical_violations: int
    offending_business_ids: List[str]
    violations: List[ComplianceViolation]
    recommendations: List[str]

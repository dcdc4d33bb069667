"""
Database engine initialisation, catalog tables and snapshot loading.

Catalog reads happen once per snapshot: load_catalog() returns a fresh
immutable CatalogStore and load_inventory() a repository loaded into memory.
Queries never touch the database; only inventory upserts write to it.
"""

import sys
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    text,
)

from catalog_access.catalog import CatalogStore
from catalog_access.config import DEFAULT_MAX_STOCK_CAPACITY, get_env
from catalog_access.inventory import InMemoryInventoryRepository
from catalog_access.models import (
    Business,
    BusinessKind,
    DeliveryTerms,
    InventoryRecord,
    Location,
    MasterProduct,
    ProductKind,
    RegulatoryStatus,
)

metadata = MetaData()

products_table = Table(
    "products", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("name_ar", String(255), default=""),
    Column("category", String(64), nullable=False),
    Column("kind", String(32), nullable=False),
    Column("manufacturer", String(255), nullable=False),
    Column("description", String(1024), default=""),
    Column("description_ar", String(1024), default=""),
    Column("active_ingredient", String(255), default=""),
    Column("dosage", String(64), default=""),
    Column("form", String(64), default=""),
    Column("pack_size", String(64), default=""),
    Column("barcode", String(32), nullable=True),
    Column("regulatory_status", String(32), default=RegulatoryStatus.APPROVED.value),
    Column("prescription_required", Boolean, nullable=False),
    Column("pharmacy_eligible", Boolean, nullable=False),
    Column("vendor_eligible", Boolean, nullable=False),
    Column("tags", JSON, default=list),
    Column("keywords", JSON, default=list),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

businesses_table = Table(
    "businesses", metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("kind", String(16), nullable=False),
    Column("city_id", String(64), nullable=False),
    Column("governorate_id", String(64), nullable=False),
    Column("is_active", Boolean, default=True),
    Column("rating", Float, default=0.0),
    Column("review_count", Integer, default=0),
    Column("license_number", String(64), default=""),
    Column("home_delivery", Boolean, default=True),
    Column("pickup_available", Boolean, default=True),
    Column("delivery_fee", Float, default=0.0),
    Column("free_delivery_threshold", Float, nullable=True),
    Column("estimated_delivery_time", String(64), default=""),
)

inventory_table = Table(
    "business_inventory", metadata,
    Column("business_id", String(64), primary_key=True),
    Column("product_id", Integer, primary_key=True),
    Column("stock", Integer, nullable=False),
    Column("min_stock_threshold", Integer, nullable=False),
    Column("max_stock_capacity", Integer, default=DEFAULT_MAX_STOCK_CAPACITY),
    Column("discount_percent", Float, nullable=True),
    Column("batch_number", String(64), nullable=True),
    Column("expiry_date", Date, nullable=True),
    Column("sku", String(64), nullable=True),
    Column("shelf_location", String(32), nullable=True),
    Column("supplier", String(255), nullable=True),
    Column("supplier_contact", String(64), nullable=True),
)


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine) -> None:
    metadata.create_all(engine)


# ── Row mapping ──────────────────────────────────────────────────────

def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _product_from_row(row) -> MasterProduct:
    try:
        kind = ProductKind(row["kind"])
    except ValueError:
        raise ValueError(f"Unsupported product kind '{row['kind']}' for product {row['id']}.")
    return MasterProduct(
        id=int(row["id"]),
        name=row["name"],
        name_ar=row["name_ar"] or "",
        category=row["category"],
        kind=kind,
        manufacturer=row["manufacturer"],
        description=row["description"] or "",
        description_ar=row["description_ar"] or "",
        active_ingredient=row["active_ingredient"] or "",
        dosage=row["dosage"] or "",
        form=row["form"] or "",
        pack_size=row["pack_size"] or "",
        barcode=row["barcode"],
        regulatory_status=RegulatoryStatus(row["regulatory_status"] or "approved"),
        prescription_required=bool(row["prescription_required"]),
        pharmacy_eligible=bool(row["pharmacy_eligible"]),
        vendor_eligible=bool(row["vendor_eligible"]),
        tags=tuple(row["tags"] or ()),
        keywords=tuple(row["keywords"] or ()),
        created_at=_aware(row["created_at"]),
    )


def _business_from_row(row) -> Business:
    try:
        kind = BusinessKind(str(row["kind"]).strip().lower())
    except ValueError:
        raise ValueError(f"Unsupported business kind '{row['kind']}' for business {row['id']}.")
    return Business(
        id=row["id"],
        name=row["name"],
        kind=kind,
        location=Location(city_id=row["city_id"], governorate_id=row["governorate_id"]),
        is_active=bool(row["is_active"]),
        rating=float(row["rating"] or 0.0),
        review_count=int(row["review_count"] or 0),
        license_number=row["license_number"] or "",
        delivery=DeliveryTerms(
            home_delivery=bool(row["home_delivery"]),
            pickup_available=bool(row["pickup_available"]),
            delivery_fee=float(row["delivery_fee"] or 0.0),
            free_delivery_threshold=row["free_delivery_threshold"],
            estimated_delivery_time=row["estimated_delivery_time"] or "",
        ),
    )


def _record_from_row(row) -> InventoryRecord:
    return InventoryRecord(
        business_id=row["business_id"],
        product_id=int(row["product_id"]),
        stock=int(row["stock"]),
        min_stock_threshold=int(row["min_stock_threshold"]),
        max_stock_capacity=int(row["max_stock_capacity"] or 0),
        discount_percent=row["discount_percent"],
        batch_number=row["batch_number"],
        expiry_date=row["expiry_date"],
        sku=row["sku"],
        shelf_location=row["shelf_location"],
        supplier=row["supplier"],
        supplier_contact=row["supplier_contact"],
    )


def _record_to_row(r: InventoryRecord) -> dict:
    return {
        "business_id": r.business_id, "product_id": r.product_id, "stock": r.stock,
        "min_stock_threshold": r.min_stock_threshold,
        "max_stock_capacity": r.max_stock_capacity,
        "discount_percent": r.discount_percent, "batch_number": r.batch_number,
        "expiry_date": r.expiry_date, "sku": r.sku, "shelf_location": r.shelf_location,
        "supplier": r.supplier, "supplier_contact": r.supplier_contact,
    }


# ── Snapshot loading ─────────────────────────────────────────────────

def load_catalog(engine) -> CatalogStore:
    """Read products and businesses into a new immutable snapshot."""
    with engine.connect() as conn:
        product_rows = conn.execute(
            select(products_table).order_by(products_table.c.id)
        ).mappings().all()
        business_rows = conn.execute(
            select(businesses_table).order_by(businesses_table.c.id)
        ).mappings().all()

    return CatalogStore(
        (_product_from_row(r) for r in product_rows),
        (_business_from_row(r) for r in business_rows),
    )


class SqlInventoryRepository(InMemoryInventoryRepository):
    """Snapshot of business_inventory; upserts write through to the database."""

    def __init__(self, engine):
        self.engine = engine
        with engine.connect() as conn:
            rows = conn.execute(select(inventory_table)).mappings().all()
        super().__init__(_record_from_row(r) for r in rows)

    def upsert(self, record: InventoryRecord) -> None:
        if record.stock < 0:
            raise ValueError(
                f"Stock must not be negative ({record.business_id}, {record.product_id})."
            )
        with self.engine.begin() as conn:
            conn.execute(
                delete(inventory_table).where(
                    inventory_table.c.business_id == record.business_id,
                    inventory_table.c.product_id == record.product_id,
                )
            )
            conn.execute(insert(inventory_table), [_record_to_row(record)])
        super().upsert(record)


def load_inventory(engine) -> SqlInventoryRepository:
    return SqlInventoryRepository(engine)


# ── Seeding ──────────────────────────────────────────────────────────

def seed_database(engine, store: CatalogStore, records: Iterable[InventoryRecord] = ()) -> None:
    """Replace table contents with the given catalog and inventory rows."""
    product_rows = [
        {
            "id": p.id, "name": p.name, "name_ar": p.name_ar, "category": p.category,
            "kind": p.kind.value, "manufacturer": p.manufacturer,
            "description": p.description, "description_ar": p.description_ar,
            "active_ingredient": p.active_ingredient, "dosage": p.dosage, "form": p.form,
            "pack_size": p.pack_size, "barcode": p.barcode,
            "regulatory_status": p.regulatory_status.value,
            "prescription_required": p.prescription_required,
            "pharmacy_eligible": p.pharmacy_eligible, "vendor_eligible": p.vendor_eligible,
            "tags": list(p.tags), "keywords": list(p.keywords), "created_at": p.created_at,
        }
        for p in store.products
    ]
    business_rows = [
        {
            "id": b.id, "name": b.name, "kind": b.kind.value,
            "city_id": b.location.city_id, "governorate_id": b.location.governorate_id,
            "is_active": b.is_active, "rating": b.rating, "review_count": b.review_count,
            "license_number": b.license_number,
            "home_delivery": b.delivery.home_delivery,
            "pickup_available": b.delivery.pickup_available,
            "delivery_fee": b.delivery.delivery_fee,
            "free_delivery_threshold": b.delivery.free_delivery_threshold,
            "estimated_delivery_time": b.delivery.estimated_delivery_time,
        }
        for b in store.businesses
    ]
    inventory_rows = [_record_to_row(r) for r in records]

    with engine.begin() as conn:
        for table in (inventory_table, businesses_table, products_table):
            conn.execute(delete(table))
        if product_rows:
            conn.execute(insert(products_table), product_rows)
        if business_rows:
            conn.execute(insert(businesses_table), business_rows)
        if inventory_rows:
            conn.execute(insert(inventory_table), inventory_rows)

"""
Demo inventory generator.

Fills an inventory repository with seeded stock rows for every eligible
(business, product) pair, so local runs have realistic stock levels without a
real inventory backend.
"""

import random
from typing import List

from faker import Faker

from catalog_access import config
from catalog_access.access_filter import is_eligible
from catalog_access.catalog import CatalogStore
from catalog_access.inventory import InMemoryInventoryRepository
from catalog_access.models import InventoryRecord

STOCK_RANGE = (0, 200)
THRESHOLD_RANGE = (5, 24)
CAPACITY_RANGE = (100, 599)
DISCOUNT_CHANCE = 0.2
DISCOUNT_RANGE = (5, 24)


def generate_inventory(store: CatalogStore, seed: int = config.INVENTORY_SEED) -> List[InventoryRecord]:
    rng = random.Random(seed)
    fake = Faker()
    fake.seed_instance(seed)

    records = []
    for business in store.businesses:
        if not business.is_active:
            continue
        for product in store.products:
            if not is_eligible(product, business.kind):
                continue

            discount = None
            if rng.random() < DISCOUNT_CHANCE:
                discount = float(rng.randint(*DISCOUNT_RANGE))

            records.append(InventoryRecord(
                business_id=business.id,
                product_id=product.id,
                stock=rng.randint(*STOCK_RANGE),
                min_stock_threshold=rng.randint(*THRESHOLD_RANGE),
                max_stock_capacity=rng.randint(*CAPACITY_RANGE),
                discount_percent=discount,
                batch_number=fake.bothify("BATCH-####-??").upper(),
                expiry_date=fake.date_between(start_date="+30d", end_date="+2y"),
                sku=f"{business.kind.value.upper()}-{product.id}-{rng.randint(1000, 9999)}",
                shelf_location=f"{rng.choice('ABC')}-{rng.randint(1, 10)}-{rng.randint(1, 20)}",
                supplier=f"{product.manufacturer} Distribution",
                supplier_contact=fake.phone_number(),
            ))
    return records


def build_demo_repository(store: CatalogStore, seed: int = config.INVENTORY_SEED) -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository(generate_inventory(store, seed))

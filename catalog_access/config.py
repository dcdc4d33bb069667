"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Environment ──────────────────────────────────────────────────────
CATALOG_ENV = os.getenv("CATALOG_ENV", "development")

# Fail loudly when a regulated product leaks into a vendor result.
ENFORCE_INVARIANTS = CATALOG_ENV != "production"

# ── Audit / compliance ───────────────────────────────────────────────
AUDIT_LOG_MAX_ENTRIES = int(os.getenv("AUDIT_LOG_MAX_ENTRIES", "10000"))
VIOLATION_LOG_MAX_ENTRIES = int(os.getenv("VIOLATION_LOG_MAX_ENTRIES", "10000"))
COMPLIANCE_WINDOW_HOURS = int(os.getenv("COMPLIANCE_WINDOW_HOURS", "24"))
COMPLIANCE_WARNING_THRESHOLD = int(os.getenv("COMPLIANCE_WARNING_THRESHOLD", "5"))
RECORD_RETENTION_DAYS = 90

# ── Pricing ──────────────────────────────────────────────────────────
PHARMACY_MARKUP = 1.5
VENDOR_MARKUP = 1.3

MEDICINE_BASE_PRICE = 25.0
PRESCRIPTION_MEDICINE_BASE_PRICE = 50.0
MEDICAL_DEVICE_BASE_PRICE = 100.0
MEDICAL_SUPPLY_BASE_PRICE = 15.0
HYGIENE_SUPPLY_BASE_PRICE = 8.0

CATEGORY_PRICE_MULTIPLIERS = {
    "antibiotics": 2.0,
    "diabetes": 3.0,
    "analgesics": 1.2,
    "vitamins": 1.5,
    "medical-devices": 5.0,
    "emergency-care": 2.5,
}

# ── Inventory ────────────────────────────────────────────────────────
DEFAULT_MIN_STOCK_THRESHOLD = 20
DEFAULT_MAX_STOCK_CAPACITY = 500
INVENTORY_SEED = 42

# ── Query limits ─────────────────────────────────────────────────────
MAX_PAGE_LIMIT = 200

# ── API server ───────────────────────────────────────────────────────
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
BUSINESS_KIND_HEADER = "X-Business-Kind"
BUSINESS_ID_HEADER = "X-Business-Id"


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value

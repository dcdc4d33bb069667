"""
Catalog and compliance analytics – per-kind catalog statistics and violation
summaries.
"""

from typing import Dict, List, Sequence

import pandas as pd

from catalog_access.models import ComplianceViolation, ProductKind, ProductView


# ── Catalog statistics ───────────────────────────────────────────────

def catalog_frame(views: Sequence[ProductView]) -> pd.DataFrame:
    """One row per product view with the columns used for statistics."""
    return pd.DataFrame(
        [
            {
                "product_id": v.product.id,
                "name": v.product.name,
                "kind": v.product.kind.value,
                "category": v.product.category,
                "prescription_required": v.product.prescription_required,
                "price": v.price,
                "in_stock": v.in_stock,
            }
            for v in views
        ],
        columns=["product_id", "name", "kind", "category",
                 "prescription_required", "price", "in_stock"],
    )


def business_type_statistics(views: Sequence[ProductView]) -> Dict[str, float]:
    """Counts by product kind, Rx vs OTC, and the average positive price."""
    df = catalog_frame(views)
    kinds = df["kind"].value_counts()

    prices = pd.to_numeric(df["price"], errors="coerce").dropna()
    prices = prices[prices > 0]
    average_price = round(float(prices.mean()), 2) if not prices.empty else 0.0

    return {
        "total_products": int(len(df)),
        "total_medicines": int(kinds.get(ProductKind.MEDICINE.value, 0)),
        "total_medical_supplies": int(kinds.get(ProductKind.MEDICAL_SUPPLY.value, 0)),
        "total_hygiene_supplies": int(kinds.get(ProductKind.HYGIENE_SUPPLY.value, 0)),
        "total_medical_devices": int(kinds.get(ProductKind.MEDICAL_DEVICE.value, 0)),
        "prescription_products": int(df["prescription_required"].sum()),
        "otc_products": int((~df["prescription_required"].astype(bool)).sum()),
        "average_price": average_price,
    }


# ── Violation summaries ──────────────────────────────────────────────

def violations_frame(violations: Sequence[ComplianceViolation]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "timestamp": v.timestamp,
                "violation_type": v.violation_type.value,
                "severity": v.severity.value,
                "business_id": v.business_id,
                "product_id": v.product_id,
                "action": v.action.value,
            }
            for v in violations
        ],
        columns=["timestamp", "violation_type", "severity",
                 "business_id", "product_id", "action"],
    )


def summarize_violations(violations: Sequence[ComplianceViolation]) -> str:
    """Markdown tables of violation counts by type/severity and by business."""
    df = violations_frame(violations)
    if df.empty:
        return "(no violations in period)"

    pieces: List[str] = []

    by_type = (
        df.groupby(["violation_type", "severity"]).size()
        .reset_index(name="count")
        .sort_values("count", ascending=False)
    )
    pieces.append("By type:\n" + by_type.to_markdown(index=False))

    by_business = df["business_id"].fillna("(unknown)").value_counts().reset_index()
    by_business.columns = ["business_id", "count"]
    pieces.append("By business:\n" + by_business.to_markdown(index=False))

    return "\n\n".join(pieces)

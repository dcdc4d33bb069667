"""
Flask route handlers for the REST API.

Seller context (kind and id) arrives in request headers set by the
authentication layer in front of this service.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import jsonify, request

from catalog_access.config import BUSINESS_ID_HEADER, BUSINESS_KIND_HEADER
from catalog_access.errors import InvalidInput, NotFoundError
from catalog_access.models import (
    AccessResult,
    AuditLogEntry,
    CatalogFilters,
    ComplianceViolation,
    PriceRange,
    ProductView,
)

logger = logging.getLogger(__name__)


# ── Request parsing ──────────────────────────────────────────────────

def _arg_int(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer, got {raw!r}")


def _arg_float(name: str) -> Optional[float]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be a number, got {raw!r}")


def _arg_bool(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    value = raw.strip().lower()
    if value in {"1", "true", "yes"}:
        return True
    if value in {"0", "false", "no"}:
        return False
    raise InvalidInput(f"{name} must be true or false, got {raw!r}")


def _arg_datetime(name: str) -> datetime:
    raw = request.args.get(name)
    if not raw:
        raise InvalidInput(f"{name} is required")
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an ISO-8601 timestamp, got {raw!r}")
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _business_context():
    kind = request.headers.get(BUSINESS_KIND_HEADER) or request.args.get("business_kind")
    if not kind:
        raise InvalidInput(f"{BUSINESS_KIND_HEADER} header is required")
    business_id = request.headers.get(BUSINESS_ID_HEADER) or request.args.get("business_id")
    return kind, business_id or None


def parse_catalog_filters() -> CatalogFilters:
    min_price = _arg_float("min_price")
    max_price = _arg_float("max_price")
    price_range = None
    if min_price is not None or max_price is not None:
        price_range = PriceRange(
            min=min_price if min_price is not None else 0.0,
            max=max_price if max_price is not None else float("inf"),
        )

    return CatalogFilters(
        category=request.args.get("category"),
        price_range=price_range,
        in_stock_only=bool(_arg_bool("in_stock_only")),
        prescription_only=_arg_bool("prescription_only"),
        search_query=request.args.get("q") or request.args.get("search"),
        sort_by=request.args.get("sort_by") or None,
        sort_order=request.args.get("sort_order") or "asc",
        limit=_arg_int("limit"),
        offset=_arg_int("offset") or 0,
        city_id=request.args.get("city_id"),
        governorate_id=request.args.get("governorate_id"),
    )


# ── Serialisation ────────────────────────────────────────────────────

def serialize_view(view: ProductView) -> dict:
    p = view.product
    data = {
        "id": p.id,
        "name": p.name,
        "name_ar": p.name_ar,
        "category": p.category,
        "kind": p.kind.value,
        "manufacturer": p.manufacturer,
        "description": p.description,
        "prescription_required": p.prescription_required,
        "tags": list(p.tags),
        "price": view.price,
        "in_stock": view.in_stock,
        "rating": view.rating,
    }
    if view.inventory is not None:
        inv = view.inventory
        data["inventory"] = {
            "business_id": inv.business_id,
            "stock": inv.stock,
            "status": inv.status.value,
            "price": inv.price,
            "original_price": inv.original_price,
            "batch_number": inv.batch_number,
            "expiry_date": inv.expiry_date.isoformat() if inv.expiry_date else None,
        }
    if view.business is not None:
        data["delivery_fee"] = view.business.delivery.delivery_fee
        data["estimated_delivery_time"] = view.business.delivery.estimated_delivery_time
    if view.aggregate is not None:
        data["reviews"] = view.aggregate.total_reviews
        data["seller_count"] = view.aggregate.business_count
    return data


def serialize_violation(v: Optional[ComplianceViolation]) -> Optional[dict]:
    if v is None:
        return None
    return {
        "id": v.id,
        "timestamp": v.timestamp.isoformat(),
        "violation_type": v.violation_type.value,
        "severity": v.severity.value,
        "business_id": v.business_id,
        "product_id": v.product_id,
        "action": v.action.value,
        "description": v.description,
        "blocked": v.blocked,
    }


def serialize_access(result: AccessResult) -> dict:
    return {
        "allowed": result.allowed,
        "reason": result.reason,
        "violation": serialize_violation(result.violation),
    }


def serialize_audit_entry(e: AuditLogEntry) -> dict:
    return {
        "id": e.id,
        "timestamp": e.timestamp.isoformat(),
        "business_id": e.business_id,
        "business_kind": e.business_kind.value if e.business_kind else None,
        "product_id": e.product_id,
        "action": e.action.value,
        "allowed": e.allowed,
        "reason": e.reason,
    }


def register_routes(app, engine):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Marketplace Catalog Access API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "catalog": "/api/catalog",
                "product": "/api/products/<id>",
                "validate": "/api/access/validate",
                "compliance_status": "/api/compliance/status",
                "compliance_report": "/api/compliance/report",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        store = engine.store
        return jsonify({
            "status": "healthy",
            "checks": {
                "products": len(store.products),
                "businesses": len(store.businesses),
                "audit_entries": engine.monitor.audit_log_count(),
            },
        }), 200

    # ── Catalog ──────────────────────────────────────────────────────

    @app.route("/api/catalog", methods=["GET"])
    def query_catalog():
        kind, business_id = _business_context()
        page = engine.query_catalog(kind, business_id, parse_catalog_filters())
        return jsonify({
            "success": True,
            "items": [serialize_view(v) for v in page.items],
            "total_count": page.total_count,
            "has_more": page.has_more,
            "access_level": page.access_level.value,
            "restrictions": page.restrictions,
        }), 200

    @app.route("/api/catalog/categories", methods=["GET"])
    def categories():
        kind, _ = _business_context()
        return jsonify({
            "success": True,
            "categories": engine.available_categories(kind),
            "manufacturers": engine.available_manufacturers(kind),
        }), 200

    @app.route("/api/catalog/statistics", methods=["GET"])
    def statistics():
        kind, _ = _business_context()
        return jsonify({"success": True, "statistics": engine.business_type_statistics(kind)}), 200

    @app.route("/api/products/<int:product_id>", methods=["GET"])
    def get_product(product_id):
        kind, business_id = _business_context()
        result = engine.get_product(product_id, kind, business_id)
        return jsonify({
            "success": True,
            "allowed": result.allowed,
            "reason": result.reason,
            "product": serialize_view(result.product) if result.product else None,
        }), 200

    @app.route("/api/products/<int:product_id>/recommendations", methods=["GET"])
    def recommendations(product_id):
        kind, _ = _business_context()
        limit = _arg_int("limit") or 5
        views = engine.recommended_products(product_id, kind, limit)
        return jsonify({"success": True, "items": [serialize_view(v) for v in views]}), 200

    # ── Access validation ────────────────────────────────────────────

    @app.route("/api/access/validate", methods=["POST"])
    def validate_access():
        if not request.is_json:
            raise InvalidInput("Content-Type must be application/json")

        data = request.json
        business_id = str(data.get("business_id", "")).strip()
        product_id = data.get("product_id")
        action = data.get("action", "view")
        if not business_id:
            raise InvalidInput("business_id is required")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise InvalidInput("product_id must be an integer")

        result = engine.validate_access(business_id, product_id, action)
        return jsonify({"success": True, **serialize_access(result)}), 200

    # ── Compliance ───────────────────────────────────────────────────

    @app.route("/api/compliance/status", methods=["GET"])
    def compliance_status():
        status = engine.get_compliance_status()
        last = status.last_violation_timestamp
        return jsonify({
            "success": True,
            "status": status.status.value,
            "recent_violations_count": status.recent_violations_count,
            "critical_violations_count": status.critical_violations_count,
            "last_violation_timestamp": last.isoformat() if last else None,
            "message": status.message,
        }), 200

    @app.route("/api/compliance/report", methods=["GET"])
    def compliance_report():
        report = engine.get_compliance_report(_arg_datetime("start"), _arg_datetime("end"))
        return jsonify({
            "success": True,
            "period": {"start": report.start.isoformat(), "end": report.end.isoformat()},
            "total_violations": report.total_violations,
            "blocked_violations": report.blocked_violations,
            "critical_violations": report.critical_violations,
            "offending_business_ids": report.offending_business_ids,
            "violations": [serialize_violation(v) for v in report.violations],
            "recommendations": report.recommendations,
        }), 200

    @app.route("/api/compliance/audit", methods=["GET"])
    def audit_logs():
        logs = engine.monitor.get_audit_logs(
            business_id=request.args.get("business_id"),
            product_id=_arg_int("product_id"),
            limit=_arg_int("limit") or 100,
        )
        return jsonify({"success": True, "entries": [serialize_audit_entry(e) for e in logs]}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(InvalidInput)
    def invalid_input(e):
        return jsonify({"success": False, "error": "Invalid input", "details": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def not_found_resource(e):
        return jsonify({"success": False, "error": f"{e.resource} not found"}), 404

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error("Internal server error: %s", e)
        return jsonify({"error": "Internal server error"}), 500

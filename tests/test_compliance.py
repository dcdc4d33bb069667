"""
Unit tests for the compliance monitor – access evaluation, audit trail,
violation classification, status and reports.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, timezone

import pytest

from catalog_access.catalog import CatalogStore
from catalog_access.compliance import (
    COMPLIANT_MESSAGE,
    INACTIVE_BUSINESS_REASON,
    INVALID_BUSINESS_REASON,
    PRODUCT_NOT_FOUND_REASON,
    AccessAttempt,
    AttemptState,
    ComplianceMonitor,
)
from catalog_access.errors import InvalidInput
from catalog_access.models import (
    AccessAction,
    Business,
    BusinessKind,
    ComplianceState,
    Location,
    MasterProduct,
    ProductKind,
    Severity,
    ViolationType,
)
from catalog_access.seed import build_sample_catalog, sample_businesses, sample_products


T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeClock:
    """Deterministic clock; call advance() to move time forward."""
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def _monitor(clock=None, **kwargs):
    return ComplianceMonitor(clock=clock or FakeClock(), **kwargs)


def _store_with_pharmacy_only_product():
    """Sample catalog plus product 3001 that pharmacies may not list."""
    blocked = MasterProduct(
        id=3001, name="Vendor-only Scrubs", category="apparel",
        kind=ProductKind.MEDICAL_SUPPLY, manufacturer="Acme",
        prescription_required=False, pharmacy_eligible=False, vendor_eligible=True,
        created_at=T0,
    )
    closed = Business(id="closed-pharmacy", name="Closed", kind=BusinessKind.PHARMACY,
                      location=Location("ismailia-city", "ismailia"), is_active=False)
    return CatalogStore(sample_products() + [blocked], sample_businesses() + [closed])


# ── Tests: evaluation ────────────────────────────────────────────────

def test_vendor_medicine_access_is_critical_violation():
    store = build_sample_catalog()
    monitor = _monitor()

    result = monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    assert result.allowed is False
    assert result.violation is not None
    assert result.violation.violation_type == ViolationType.UNAUTHORIZED_MEDICINE_ACCESS
    assert result.violation.severity == Severity.CRITICAL
    assert result.violation.blocked is True
    assert result.denial.classification == ViolationType.UNAUTHORIZED_MEDICINE_ACCESS

    logs = monitor.get_audit_logs(business_id="medtech-vendor", product_id=1001)
    assert len(logs) == 1
    assert logs[0].allowed is False
    assert logs[0].action == AccessAction.SELL


def test_pharmacy_medicine_access_is_allowed_without_violation():
    store = build_sample_catalog()
    monitor = _monitor()
    result = monitor.evaluate(store, 1002, AccessAction.SELL, business_id="healthplus-ismailia")
    assert result.allowed is True
    assert result.violation is None
    assert monitor.get_violations() == []
    assert monitor.audit_log_count() == 1


def test_vendor_prescription_device_is_high_violation():
    rx_device = MasterProduct(
        id=3002, name="Rx Device", category="medical-devices",
        kind=ProductKind.MEDICAL_DEVICE, manufacturer="Acme",
        prescription_required=True, pharmacy_eligible=True, vendor_eligible=True,
        created_at=T0,
    )
    store = CatalogStore([rx_device], sample_businesses())
    result = _monitor().evaluate(store, 3002, AccessAction.VIEW, business_id="medtech-vendor")
    assert result.violation.violation_type == ViolationType.UNAUTHORIZED_PRESCRIPTION_ACCESS
    assert result.violation.severity == Severity.HIGH


def test_pharmacy_ineligible_product_is_missing_permissions():
    store = _store_with_pharmacy_only_product()
    result = _monitor().evaluate(store, 3001, AccessAction.VIEW, business_id="wellcare-ismailia")
    assert result.allowed is False
    assert result.violation.violation_type == ViolationType.MISSING_PERMISSIONS
    assert result.violation.severity == Severity.MEDIUM


def test_unknown_business_is_invalid_business_type():
    store = build_sample_catalog()
    monitor = _monitor()
    result = monitor.evaluate(store, 2001, AccessAction.VIEW, business_id="ghost")
    assert result.allowed is False
    assert result.reason == INVALID_BUSINESS_REASON
    assert result.violation.violation_type == ViolationType.INVALID_BUSINESS_TYPE
    assert result.violation.severity == Severity.HIGH
    assert monitor.get_audit_logs()[0].business_kind is None


def test_declared_kind_mismatch_is_invalid_business_type():
    store = build_sample_catalog()
    result = _monitor().evaluate(store, 2001, AccessAction.VIEW,
                                 business_id="medtech-vendor",
                                 business_kind=BusinessKind.PHARMACY)
    assert result.allowed is False
    assert "registered as vendor" in result.reason
    assert result.violation.violation_type == ViolationType.INVALID_BUSINESS_TYPE


def test_unknown_product_denied_and_audited_without_violation():
    store = build_sample_catalog()
    monitor = _monitor()
    result = monitor.evaluate(store, 9999, AccessAction.VIEW, business_id="healthplus-ismailia")
    assert result.allowed is False
    assert result.reason == PRODUCT_NOT_FOUND_REASON
    assert result.violation is None
    assert result.denial.classification is None
    assert monitor.audit_log_count() == 1
    assert monitor.get_violations() == []


def test_inactive_business_denied():
    store = _store_with_pharmacy_only_product()
    result = _monitor().evaluate(store, 1001, AccessAction.VIEW, business_id="closed-pharmacy")
    assert result.allowed is False
    assert result.reason == INACTIVE_BUSINESS_REASON
    assert result.violation.violation_type == ViolationType.MISSING_PERMISSIONS


def test_evaluate_by_declared_kind_only():
    store = build_sample_catalog()
    monitor = _monitor()
    result = monitor.evaluate(store, 1003, AccessAction.VIEW, business_kind=BusinessKind.VENDOR)
    assert result.allowed is False
    assert result.violation.business_id is None
    assert result.violation.business_kind == BusinessKind.VENDOR


def test_evaluate_requires_business_or_kind():
    with pytest.raises(ValueError, match="business_id or a business_kind"):
        _monitor().evaluate(build_sample_catalog(), 1001, AccessAction.VIEW)


def test_attempt_is_denied_unless_allowed():
    attempt = AccessAttempt("b", 1, AccessAction.VIEW)
    attempt.start()
    attempt.finish()
    assert attempt.state == AttemptState.DENIED
    assert attempt.reason == "Access denied"

    done = AccessAttempt("b", 1, AccessAction.VIEW)
    with pytest.raises(RuntimeError):
        done.allow()


# ── Tests: audit trail ───────────────────────────────────────────────

def test_every_attempt_is_audited():
    store = build_sample_catalog()
    monitor = _monitor()
    attempts = [
        ("healthplus-ismailia", 1001), ("medtech-vendor", 1001),
        ("medtech-vendor", 2001), ("ghost", 2001), ("wellcare-ismailia", 9999),
    ]
    for business_id, product_id in attempts:
        monitor.evaluate(store, product_id, AccessAction.VIEW, business_id=business_id)

    assert monitor.audit_log_count() == len(attempts)
    assert len(monitor.get_audit_logs(business_id="medtech-vendor")) == 2
    assert len(monitor.get_violations()) == 2


def test_audit_log_newest_first_and_evicts_oldest():
    store = build_sample_catalog()
    clock = FakeClock()
    monitor = _monitor(clock, audit_max_entries=3)
    for product_id in (2001, 2002, 2003, 2004, 2005):
        monitor.evaluate(store, product_id, AccessAction.VIEW, business_id="medtech-vendor")
        clock.advance(minutes=1)

    logs = monitor.get_audit_logs()
    assert monitor.audit_log_count() == 3
    assert [e.product_id for e in logs] == [2005, 2004, 2003]
    assert len(monitor.get_audit_logs(limit=2)) == 2


def test_audit_logger_emits_json(caplog):
    store = build_sample_catalog()
    with caplog.at_level(logging.DEBUG, logger="audit"):
        _monitor().evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    records = [r for r in caplog.records if r.name == "audit"]
    assert len(records) == 2
    violation = json.loads(records[-1].getMessage())
    assert records[-1].levelno == logging.ERROR
    assert violation["event_type"] == "compliance.unauthorized_medicine_access"
    assert violation["event_severity"] == "critical"


# ── Tests: status ────────────────────────────────────────────────────

def test_status_compliant_when_quiet():
    status = _monitor().get_status()
    assert status.status == ComplianceState.COMPLIANT
    assert status.recent_violations_count == 0
    assert status.last_violation_timestamp is None


def test_status_warning_above_threshold():
    store = _store_with_pharmacy_only_product()
    monitor = _monitor()
    for _ in range(5):
        monitor.evaluate(store, 3001, AccessAction.VIEW, business_id="wellcare-ismailia")
    assert monitor.get_status().status == ComplianceState.COMPLIANT

    monitor.evaluate(store, 3001, AccessAction.VIEW, business_id="wellcare-ismailia")
    status = monitor.get_status()
    assert status.status == ComplianceState.WARNING
    assert status.recent_violations_count == 6


def test_status_violation_on_critical_until_window_passes():
    store = build_sample_catalog()
    clock = FakeClock()
    monitor = _monitor(clock)
    monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    status = monitor.get_status()
    assert status.status == ComplianceState.VIOLATION
    assert status.critical_violations_count == 1
    assert status.message == "1 critical violations detected in the last 24 hours"

    clock.advance(hours=25)
    status = monitor.get_status()
    assert status.status == ComplianceState.COMPLIANT
    assert status.last_violation_timestamp == T0


# ── Tests: reports ───────────────────────────────────────────────────

def test_report_empty_window_is_compliant():
    report = _monitor().generate_report(T0 - timedelta(days=7), T0)
    assert report.total_violations == 0
    assert report.offending_business_ids == []
    assert report.recommendations == [COMPLIANT_MESSAGE]


def test_report_window_is_half_open():
    store = build_sample_catalog()
    clock = FakeClock()
    monitor = _monitor(clock)
    monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    assert monitor.generate_report(T0, T0 + timedelta(hours=1)).total_violations == 1
    assert monitor.generate_report(T0 - timedelta(hours=1), T0).total_violations == 0


def test_report_counts_and_recommendations():
    store = build_sample_catalog()
    clock = FakeClock()
    monitor = _monitor(clock)
    monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")
    monitor.evaluate(store, 1002, AccessAction.VIEW, business_id="hygiene-plus-vendor")
    monitor.evaluate(store, 1003, AccessAction.VIEW, business_id="medtech-vendor")
    monitor.evaluate(store, 2001, AccessAction.VIEW, business_id="medtech-vendor")

    report = monitor.generate_report(T0, T0 + timedelta(days=1))
    assert report.total_violations == 3
    assert report.blocked_violations == 3
    assert report.critical_violations == 3
    assert report.offending_business_ids == ["medtech-vendor", "hygiene-plus-vendor"]
    assert report.recommendations == [
        "Immediate review required for critical violations",
        "Consider additional training for businesses with violations",
        "Review access permissions for businesses with violations",
    ]


def test_report_accepts_naive_bounds_as_utc():
    store = build_sample_catalog()
    monitor = _monitor(FakeClock())
    monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    report = monitor.generate_report(datetime(2024, 3, 1, 11, 0), datetime(2024, 3, 1, 13, 0))
    assert report.total_violations == 1
    assert report.start == T0 - timedelta(hours=1)
    assert report.start.tzinfo is not None

    earlier = monitor.generate_report(datetime(2024, 3, 1, 10, 0), datetime(2024, 3, 1, 12, 0))
    assert earlier.total_violations == 0


def test_report_rejects_inverted_range():
    with pytest.raises(InvalidInput, match="before end"):
        _monitor().generate_report(T0, T0)
    with pytest.raises(InvalidInput, match="before end"):
        _monitor().generate_report(datetime(2024, 3, 2), datetime(2024, 3, 1))


# ── Tests: concurrency ───────────────────────────────────────────────

def _evaluate_from_threads(monitor, store, threads=8, per_thread=200):
    def worker():
        for _ in range(per_thread):
            monitor.evaluate(store, 1001, AccessAction.SELL, business_id="medtech-vendor")

    pool = [threading.Thread(target=worker) for _ in range(threads)]
    for t in pool:
        t.start()
    for t in pool:
        t.join()
    return threads * per_thread


def test_concurrent_evaluations_are_all_recorded():
    store = build_sample_catalog()
    monitor = _monitor()

    expected = _evaluate_from_threads(monitor, store)

    assert monitor.audit_log_count() == expected
    assert len(monitor.get_violations()) == expected
    assert monitor.get_status().critical_violations_count == expected


def test_concurrent_evaluations_respect_store_caps():
    store = build_sample_catalog()
    monitor = _monitor(audit_max_entries=50, violation_max_entries=50)

    _evaluate_from_threads(monitor, store)

    assert monitor.audit_log_count() == 50
    assert len(monitor.get_violations()) == 50


# ── Tests: retention ─────────────────────────────────────────────────

def test_purge_older_than():
    store = build_sample_catalog()
    clock = FakeClock()
    monitor = _monitor(clock)
    monitor.evaluate(store, 1001, AccessAction.VIEW, business_id="medtech-vendor")
    monitor.evaluate(store, 2001, AccessAction.VIEW, business_id="medtech-vendor")

    clock.advance(days=100)
    monitor.evaluate(store, 1002, AccessAction.VIEW, business_id="medtech-vendor")

    assert monitor.purge_older_than(90) == (1, 2)
    assert monitor.audit_log_count() == 1
    assert [v.product_id for v in monitor.get_violations()] == [1002]

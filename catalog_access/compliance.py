"""
Compliance Monitor – evaluates every access attempt, keeps the audit trail,
classifies regulatory violations and reports on them.

Evaluation is fail-closed: an attempt is allowed only when the eligibility gate
explicitly passes for a known, active business (or a declared seller kind).
Every attempt is appended to the audit trail; only regulation-driven denials
become ComplianceViolation records.
"""

import json
import logging
import threading
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

from catalog_access import config
from catalog_access.access_filter import eligibility_denial
from catalog_access.catalog import CatalogStore
from catalog_access.errors import InvalidInput
from catalog_access.models import (
    AccessAction,
    AccessResult,
    AuditLogEntry,
    Business,
    BusinessKind,
    ComplianceReport,
    ComplianceState,
    ComplianceStatus,
    ComplianceViolation,
    MasterProduct,
    PolicyDenied,
    ProductKind,
    Severity,
    ViolationType,
)

logger = logging.getLogger(__name__)

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")

COMPLIANT_MESSAGE = "No violations detected - system operating within compliance"

# (predicate over report summary, recommendation) – evaluated in order.
RECOMMENDATION_RULES: List[Tuple[Callable[[dict], bool], str]] = [
    (lambda s: s["critical"] > 0, "Immediate review required for critical violations"),
    (lambda s: s["critical"] > 0, "Consider additional training for businesses with violations"),
    (lambda s: s["businesses"] > 0, "Review access permissions for businesses with violations"),
    (lambda s: s["total"] == 0, COMPLIANT_MESSAGE),
]

INVALID_BUSINESS_REASON = "Invalid business ID"
PRODUCT_NOT_FOUND_REASON = "Product not found"
INACTIVE_BUSINESS_REASON = "Business account is inactive"


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttemptState(str, Enum):
    REQUESTED = "requested"
    EVALUATING = "evaluating"
    ALLOWED = "allowed"
    DENIED = "denied"


class AccessAttempt:
    """One access attempt. Ends DENIED unless explicitly allowed."""

    def __init__(self, business_id: Optional[str], product_id: int, action: AccessAction):
        self.business_id = business_id
        self.product_id = product_id
        self.action = action
        self.state = AttemptState.REQUESTED
        self.business: Optional[Business] = None
        self.product: Optional[MasterProduct] = None
        self.kind: Optional[BusinessKind] = None
        self.reason: Optional[str] = None
        self.classification: Optional[ViolationType] = None
        self.severity: Optional[Severity] = None

    def start(self) -> None:
        self.state = AttemptState.EVALUATING

    def allow(self) -> None:
        if self.state != AttemptState.EVALUATING:
            raise RuntimeError(f"Cannot allow an attempt in state {self.state.value}")
        self.state = AttemptState.ALLOWED

    def deny(self, reason: str, classification: Optional[ViolationType] = None,
             severity: Optional[Severity] = None) -> None:
        self.state = AttemptState.DENIED
        self.reason = reason
        self.classification = classification
        self.severity = severity

    def finish(self) -> None:
        if self.state != AttemptState.ALLOWED:
            self.state = AttemptState.DENIED
            if self.reason is None:
                self.reason = "Access denied"

    @property
    def allowed(self) -> bool:
        return self.state == AttemptState.ALLOWED


def classify_denial(
    kind: BusinessKind, product: MasterProduct
) -> Tuple[ViolationType, Severity]:
    """Map an eligibility failure to a violation type and severity."""
    if kind == BusinessKind.VENDOR and product.kind == ProductKind.MEDICINE:
        return ViolationType.UNAUTHORIZED_MEDICINE_ACCESS, Severity.CRITICAL
    if kind == BusinessKind.VENDOR and product.prescription_required:
        return ViolationType.UNAUTHORIZED_PRESCRIPTION_ACCESS, Severity.HIGH
    return ViolationType.MISSING_PERMISSIONS, Severity.MEDIUM


class ComplianceMonitor:
    def __init__(
        self,
        audit_max_entries: int = config.AUDIT_LOG_MAX_ENTRIES,
        violation_max_entries: int = config.VIOLATION_LOG_MAX_ENTRIES,
        window_hours: int = config.COMPLIANCE_WINDOW_HOURS,
        warning_threshold: int = config.COMPLIANCE_WARNING_THRESHOLD,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._lock = threading.Lock()
        self._audit_logs: Deque[AuditLogEntry] = deque(maxlen=audit_max_entries)
        self._violations: Deque[ComplianceViolation] = deque(maxlen=violation_max_entries)
        self.window_hours = window_hours
        self.warning_threshold = warning_threshold
        self.clock = clock

    # ── Evaluation ───────────────────────────────────────────────────

    def evaluate(
        self,
        store: CatalogStore,
        product_id: int,
        action: AccessAction,
        business_id: Optional[str] = None,
        business_kind: Optional[BusinessKind] = None,
    ) -> AccessResult:
        """Decide, record and return the outcome of one access attempt.

        With a business_id the registered business kind is authoritative and a
        differing *business_kind* is treated as an invalid business type.
        Without one, the attempt is evaluated for the declared seller kind.
        """
        if business_id is None and business_kind is None:
            raise ValueError("evaluate() needs a business_id or a business_kind.")

        attempt = AccessAttempt(business_id, product_id, action)
        attempt.start()
        self._decide(store, attempt, business_kind)
        attempt.finish()

        self._record_access(attempt)
        violation = None
        if not attempt.allowed and attempt.classification is not None:
            violation = self._record_violation(attempt)

        if attempt.allowed:
            return AccessResult(allowed=True)
        return AccessResult(
            allowed=False,
            reason=attempt.reason,
            violation=violation,
            denial=PolicyDenied(classification=attempt.classification, reason=attempt.reason),
        )

    def _decide(
        self, store: CatalogStore, attempt: AccessAttempt, declared: Optional[BusinessKind]
    ) -> None:
        attempt.product = store.find_product(attempt.product_id)

        if attempt.business_id is not None:
            business = store.find_business(attempt.business_id)
            if business is None:
                attempt.deny(INVALID_BUSINESS_REASON,
                             ViolationType.INVALID_BUSINESS_TYPE, Severity.HIGH)
                return
            attempt.business = business
            attempt.kind = business.kind
            if declared is not None and declared != business.kind:
                attempt.deny(
                    f"Business is registered as {business.kind.value}, not {declared.value}",
                    ViolationType.INVALID_BUSINESS_TYPE, Severity.HIGH,
                )
                return
        else:
            attempt.kind = declared

        if attempt.product is None:
            attempt.deny(PRODUCT_NOT_FOUND_REASON)
            return

        reason = eligibility_denial(attempt.product, attempt.kind)
        if reason is not None:
            classification, severity = classify_denial(attempt.kind, attempt.product)
            attempt.deny(reason, classification, severity)
            return

        if attempt.business is not None and not attempt.business.is_active:
            attempt.deny(INACTIVE_BUSINESS_REASON,
                         ViolationType.MISSING_PERMISSIONS, Severity.MEDIUM)
            return

        attempt.allow()

    # ── Recording ────────────────────────────────────────────────────

    def _record_access(self, attempt: AccessAttempt) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=f"audit_{uuid.uuid4().hex}",
            timestamp=self.clock(),
            business_id=attempt.business_id,
            business_kind=attempt.kind,
            product_id=attempt.product_id,
            action=attempt.action,
            allowed=attempt.allowed,
            reason=attempt.reason,
        )
        with self._lock:
            self._audit_logs.append(entry)

        if attempt.allowed:
            audit_logger.debug(json.dumps(_audit_payload(entry)))
        else:
            audit_logger.info(json.dumps(_audit_payload(entry)))
        return entry

    def _record_violation(self, attempt: AccessAttempt) -> ComplianceViolation:
        product = attempt.product
        name = product.name if product else attempt.product_id
        violation = ComplianceViolation(
            id=f"violation_{uuid.uuid4().hex}",
            timestamp=self.clock(),
            violation_type=attempt.classification,
            severity=attempt.severity,
            business_id=attempt.business_id,
            business_kind=attempt.kind,
            product_id=attempt.product_id,
            action=attempt.action,
            description=f"{attempt.reason} (product {name}, action {attempt.action.value})",
        )
        with self._lock:
            self._violations.append(violation)

        payload = json.dumps(_violation_payload(violation))
        if violation.severity == Severity.CRITICAL:
            audit_logger.error(payload)
        else:
            audit_logger.warning(payload)
        return violation

    # ── Queries ──────────────────────────────────────────────────────

    def audit_log_count(self) -> int:
        with self._lock:
            return len(self._audit_logs)

    def get_audit_logs(
        self,
        business_id: Optional[str] = None,
        product_id: Optional[int] = None,
        action: Optional[AccessAction] = None,
        limit: Optional[int] = None,
    ) -> List[AuditLogEntry]:
        """Audit entries, newest first."""
        with self._lock:
            logs = list(self._audit_logs)

        if business_id is not None:
            logs = [e for e in logs if e.business_id == business_id]
        if product_id is not None:
            logs = [e for e in logs if e.product_id == product_id]
        if action is not None:
            logs = [e for e in logs if e.action == action]

        logs.sort(key=lambda e: e.timestamp, reverse=True)
        return logs[:limit] if limit else logs

    def get_violations(
        self,
        business_id: Optional[str] = None,
        severity: Optional[Severity] = None,
        limit: Optional[int] = None,
    ) -> List[ComplianceViolation]:
        """Violations, newest first."""
        with self._lock:
            violations = list(self._violations)

        if business_id is not None:
            violations = [v for v in violations if v.business_id == business_id]
        if severity is not None:
            violations = [v for v in violations if v.severity == severity]

        violations.sort(key=lambda v: v.timestamp, reverse=True)
        return violations[:limit] if limit else violations

    def get_status(self) -> ComplianceStatus:
        """Rolling status over the trailing window."""
        now = self.clock()
        cutoff = now - timedelta(hours=self.window_hours)
        with self._lock:
            violations = list(self._violations)

        recent = [v for v in violations if v.timestamp >= cutoff]
        critical = [v for v in recent if v.severity == Severity.CRITICAL]
        last = max((v.timestamp for v in violations), default=None)

        if critical:
            status = ComplianceState.VIOLATION
            message = (f"{len(critical)} critical violations detected "
                       f"in the last {self.window_hours} hours")
        elif len(recent) > self.warning_threshold:
            status = ComplianceState.WARNING
            message = f"{len(recent)} violations detected in the last {self.window_hours} hours"
        else:
            status = ComplianceState.COMPLIANT
            message = "System is operating within regulatory compliance"

        return ComplianceStatus(
            status=status,
            recent_violations_count=len(recent),
            critical_violations_count=len(critical),
            last_violation_timestamp=last,
            message=message,
        )

    def generate_report(self, start: datetime, end: datetime) -> ComplianceReport:
        """Summarise violations with start <= timestamp < end. Naive bounds are taken as UTC."""
        start, end = _aware(start), _aware(end)
        if start >= end:
            raise InvalidInput("Report start must be before end.")

        with self._lock:
            violations = [v for v in self._violations if start <= v.timestamp < end]

        offending: List[str] = []
        for v in violations:
            if v.business_id is not None and v.business_id not in offending:
                offending.append(v.business_id)

        summary = {
            "total": len(violations),
            "blocked": sum(1 for v in violations if v.blocked),
            "critical": sum(1 for v in violations if v.severity == Severity.CRITICAL),
            "businesses": len(offending),
        }
        recommendations = [msg for rule, msg in RECOMMENDATION_RULES if rule(summary)]

        return ComplianceReport(
            start=start,
            end=end,
            total_violations=summary["total"],
            blocked_violations=summary["blocked"],
            critical_violations=summary["critical"],
            offending_business_ids=offending,
            violations=violations,
            recommendations=recommendations,
        )

    # ── Retention ────────────────────────────────────────────────────

    def purge_older_than(self, days: int = config.RECORD_RETENTION_DAYS) -> Tuple[int, int]:
        """Drop records older than *days*. Returns (violations_cleared, audit_logs_cleared)."""
        cutoff = self.clock() - timedelta(days=days)
        with self._lock:
            kept_v = [v for v in self._violations if v.timestamp >= cutoff]
            kept_a = [e for e in self._audit_logs if e.timestamp >= cutoff]
            cleared = (len(self._violations) - len(kept_v), len(self._audit_logs) - len(kept_a))
            self._violations = deque(kept_v, maxlen=self._violations.maxlen)
            self._audit_logs = deque(kept_a, maxlen=self._audit_logs.maxlen)

        if any(cleared):
            logger.info("Purged %d violations and %d audit entries older than %d days",
                        cleared[0], cleared[1], days)
        return cleared


def _audit_payload(entry: AuditLogEntry) -> dict:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "event_type": "catalog.access",
        "business_id": entry.business_id,
        "business_kind": entry.business_kind.value if entry.business_kind else None,
        "product_id": entry.product_id,
        "action": entry.action.value,
        "allowed": entry.allowed,
        "reason": entry.reason,
    }


def _violation_payload(v: ComplianceViolation) -> dict:
    return {
        "timestamp": v.timestamp.isoformat(),
        "event_type": f"compliance.{v.violation_type.value}",
        "event_severity": v.severity.value,
        "business_id": v.business_id,
        "business_kind": v.business_kind.value if v.business_kind else None,
        "product_id": v.product_id,
        "action": v.action.value,
        "description": v.description,
        "blocked": v.blocked,
    }

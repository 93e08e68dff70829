"""Deadline evaluator.

Turns a claim or coverage-window snapshot into zero or more
``DeadlineFinding`` values. Each rule only fires inside a bounded
lookahead window and stops firing once the action it waits for has
happened, so relevance is decided here and not by the alert lifecycle.
"""

from datetime import datetime
from typing import List, Optional

from app.core.config import DeadlinePolicy
from app.schemas.alerts import AlertKind, AlertRefType, AlertSeverity
from app.schemas.claims import ClaimSnapshot, ClaimState, CoverageState, PolicyCoverageSnapshot
from app.services.claims.lifecycle import is_deadline_tracking_active
from app.services.deadlines import clock_policy
from app.services.deadlines.contracts import DeadlineFinding
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

REPORT_CRITICAL_DAYS = 5

LIQUIDATION_WINDOW_DAYS = 5
LIQUIDATION_CRITICAL_DAYS = 2

PAYMENT_WINDOW_HOURS = 48
PAYMENT_CRITICAL_HOURS = 24

EXPIRY_WINDOW_DAYS = 30
EXPIRY_WARNING_DAYS = 15
EXPIRY_CRITICAL_DAYS = 7


class DeadlineEvaluator:
    """Computes deadline findings for claims and policy coverage windows."""

    def __init__(self, policy: Optional[DeadlinePolicy] = None):
        self.policy = policy or DeadlinePolicy()

    def evaluate_claim(self, claim: ClaimSnapshot, now: datetime) -> List[DeadlineFinding]:
        """Run every claim rule; a claim in a terminal state yields nothing."""
        if not is_deadline_tracking_active(claim.state):
            return []

        findings = []
        for rule in (self._report_deadline, self._liquidation_deadline, self._payment_deadline):
            finding = rule(claim, now)
            if finding is not None:
                findings.append(finding)
        return findings

    def evaluate_coverage(self, coverage: PolicyCoverageSnapshot, now: datetime) -> List[DeadlineFinding]:
        finding = self._policy_expiry(coverage, now)
        return [finding] if finding is not None else []

    def _report_deadline(self, claim: ClaimSnapshot, now: datetime) -> Optional[DeadlineFinding]:
        """60 days from the report date to send the case file to the insurer."""
        if claim.sent_to_insurer_at is not None or claim.reported_at is None:
            return None

        days = self.policy.report_days
        days_remaining = clock_policy.remaining_calendar_days(claim.reported_at, days, now)
        deadline = clock_policy.calendar_deadline(claim.reported_at, days)

        if days_remaining <= 0:
            severity = AlertSeverity.CRITICAL
            message = (
                f"PLAZO EXPIRADO: El caso {claim.case_code} ha excedido los {days} días "
                f"para reportar a la aseguradora"
            )
        elif days_remaining <= self.policy.critical_threshold_days:
            severity = AlertSeverity.CRITICAL if days_remaining <= REPORT_CRITICAL_DAYS else AlertSeverity.WARNING
            message = f"Quedan {days_remaining} días para reportar el caso {claim.case_code} a la aseguradora"
        else:
            return None

        return DeadlineFinding(
            kind=AlertKind.PLAZO_60D,
            severity=severity,
            message=message,
            deadline=deadline,
            ref_type=AlertRefType.SINIESTRO,
            ref_id=claim.id,
        )

    def _liquidation_deadline(self, claim: ClaimSnapshot, now: datetime) -> Optional[DeadlineFinding]:
        """15 business days from sending the case for the insurer to liquidate."""
        if claim.sent_to_insurer_at is None or claim.state != ClaimState.LIQUIDATION:
            return None

        days = self.policy.liquidation_business_days
        days_remaining = clock_policy.remaining_business_days_approx(claim.sent_to_insurer_at, days, now)
        if not 0 < days_remaining <= LIQUIDATION_WINDOW_DAYS:
            return None

        severity = AlertSeverity.CRITICAL if days_remaining <= LIQUIDATION_CRITICAL_DAYS else AlertSeverity.WARNING
        return DeadlineFinding(
            kind=AlertKind.PLAZO_15D,
            severity=severity,
            message=f"Quedan {days_remaining} días hábiles para la liquidación del caso {claim.case_code}",
            deadline=clock_policy.business_deadline(claim.sent_to_insurer_at, days),
            ref_type=AlertRefType.SINIESTRO,
            ref_id=claim.id,
        )

    def _payment_deadline(self, claim: ClaimSnapshot, now: datetime) -> Optional[DeadlineFinding]:
        """72 hours from the signed acceptance to execute the payment."""
        if claim.signature_received_at is None or claim.state != ClaimState.PAYMENT:
            return None

        hours = self.policy.payment_hours
        hours_remaining = clock_policy.remaining_hours(claim.signature_received_at, hours, now)
        if not 0 < hours_remaining <= PAYMENT_WINDOW_HOURS:
            return None

        severity = AlertSeverity.CRITICAL if hours_remaining <= PAYMENT_CRITICAL_HOURS else AlertSeverity.WARNING
        return DeadlineFinding(
            kind=AlertKind.PLAZO_72H,
            severity=severity,
            message=f"Quedan {hours_remaining} horas para ejecutar el pago del caso {claim.case_code}",
            deadline=clock_policy.hours_deadline(claim.signature_received_at, hours),
            ref_type=AlertRefType.SINIESTRO,
            ref_id=claim.id,
        )

    def _policy_expiry(self, coverage: PolicyCoverageSnapshot, now: datetime) -> Optional[DeadlineFinding]:
        if coverage.state != CoverageState.OPEN:
            return None

        days_remaining = clock_policy.remaining_calendar_days(coverage.valid_until, 0, now)
        if not 0 < days_remaining <= EXPIRY_WINDOW_DAYS:
            return None

        if days_remaining <= EXPIRY_CRITICAL_DAYS:
            severity = AlertSeverity.CRITICAL
        elif days_remaining <= EXPIRY_WARNING_DAYS:
            severity = AlertSeverity.WARNING
        else:
            severity = AlertSeverity.INFO

        return DeadlineFinding(
            kind=AlertKind.VENCIMIENTO_POLIZA,
            severity=severity,
            message=f"La póliza {coverage.policy_code} vence en {days_remaining} días",
            deadline=clock_policy.as_utc(coverage.valid_until),
            ref_type=AlertRefType.POLIZA,
            ref_id=coverage.policy_id,
        )

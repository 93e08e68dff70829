"""In-memory collaborators for the deadline engine."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.core.exceptions import DuplicateAlertError, NotFoundError
from app.schemas.alerts import AlertCounts, AlertFilter, AlertSeverity
from app.schemas.claims import ClaimSnapshot, ClaimState, CoverageState, PolicyCoverageSnapshot
from app.services.deadlines.contracts import AlertPayload, DeadlineFinding

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@dataclass
class StoredAlert:
    kind: object
    severity: AlertSeverity
    message: str
    ref_type: object
    ref_id: uuid.UUID
    deadline: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    notified: Optional[bool] = None
    created_at: datetime = NOW
    updated_at: datetime = NOW


class InMemoryAlertStore:
    """AlertStore backed by a dict; enforces the unresolved-key uniqueness."""

    def __init__(self):
        self.alerts: Dict[uuid.UUID, StoredAlert] = {}
        self.create_calls = 0
        self.update_calls = 0
        self.rollback_calls = 0

    def unresolved(self) -> List[StoredAlert]:
        return [a for a in self.alerts.values() if not a.resolved]

    async def find_unresolved(self, kind, ref_type, ref_id):
        for alert in self.alerts.values():
            if (alert.kind, alert.ref_type, alert.ref_id) == (kind, ref_type, ref_id) and not alert.resolved:
                return alert
        return None

    async def create(self, finding: DeadlineFinding):
        if await self.find_unresolved(finding.kind, finding.ref_type, finding.ref_id) is not None:
            raise DuplicateAlertError("Unresolved alert already exists for this key")
        self.create_calls += 1
        alert = StoredAlert(
            kind=finding.kind,
            severity=finding.severity,
            message=finding.message,
            ref_type=finding.ref_type,
            ref_id=finding.ref_id,
            deadline=finding.deadline,
        )
        self.alerts[alert.id] = alert
        return alert

    async def update(self, alert_id, **fields):
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        self.update_calls += 1
        for key, value in fields.items():
            setattr(alert, key, value)
        return alert

    async def list_all(self, filters: Optional[AlertFilter] = None):
        filters = filters or AlertFilter()
        alerts = [
            a for a in self.alerts.values()
            if (filters.kind is None or a.kind == filters.kind)
            and (filters.severity is None or a.severity == filters.severity)
            and (filters.resolved is None or a.resolved == filters.resolved)
        ]
        return sorted(alerts, key=lambda a: (a.resolved, -a.severity.rank, a.deadline))

    async def count_unresolved_by_severity(self) -> AlertCounts:
        counts = AlertCounts()
        for alert in self.unresolved():
            setattr(counts, alert.severity.value.lower(), getattr(counts, alert.severity.value.lower()) + 1)
            counts.total += 1
        return counts

    async def resolve(self, alert_id):
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        alert.resolved = True
        alert.resolved_at = alert.resolved_at or NOW
        return alert

    async def resolve_all(self) -> int:
        open_alerts = self.unresolved()
        for alert in open_alerts:
            alert.resolved = True
            alert.resolved_at = NOW
        return len(open_alerts)

    async def rollback(self):
        self.rollback_calls += 1


class RecordingNotifier:
    def __init__(self, result: bool = True):
        self.result = result
        self.payloads: List[AlertPayload] = []

    async def notify(self, payload: AlertPayload) -> bool:
        self.payloads.append(payload)
        return self.result


class StaticClaims:
    def __init__(self, claims=None):
        self.claims = list(claims or [])

    async def list_tracked(self):
        return list(self.claims)


class StaticCoverages:
    def __init__(self, coverages=None):
        self.coverages = list(coverages or [])

    async def list_open(self):
        return list(self.coverages)


def make_claim(**overrides) -> ClaimSnapshot:
    values = {
        "id": uuid.uuid4(),
        "case_code": "SIN-2026-001",
        "state": ClaimState.VALIDATING,
        "reported_at": None,
        "sent_to_insurer_at": None,
        "signature_received_at": None,
    }
    values.update(overrides)
    return ClaimSnapshot(**values)


def make_coverage(**overrides) -> PolicyCoverageSnapshot:
    values = {
        "id": uuid.uuid4(),
        "policy_id": uuid.uuid4(),
        "policy_code": "POL-UTPL-01",
        "valid_from": datetime(2025, 4, 1, tzinfo=timezone.utc),
        "valid_until": datetime(2026, 4, 1, tzinfo=timezone.utc),
        "state": CoverageState.OPEN,
    }
    values.update(overrides)
    return PolicyCoverageSnapshot(**values)



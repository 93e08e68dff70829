"""Contracts between the deadline engine and its collaborators."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol
from uuid import UUID

from app.schemas.alerts import AlertCounts, AlertFilter, AlertKind, AlertRefType, AlertSeverity


@dataclass(frozen=True)
class DeadlineFinding:
    """A deadline condition computed by the evaluator, not yet persisted."""
    kind: AlertKind
    severity: AlertSeverity
    message: str
    deadline: datetime
    ref_type: AlertRefType
    ref_id: UUID

    @property
    def key(self) -> tuple:
        return (self.kind, self.ref_type, self.ref_id)


@dataclass(frozen=True)
class AlertPayload:
    """What the notifier receives for a newly created alert."""
    kind: AlertKind
    severity: AlertSeverity
    message: str
    deadline: datetime
    ref_id: UUID


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    ESCALATED = "escalated"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    alert_id: UUID
    notified: Optional[bool] = None


class AlertStore(Protocol):
    """Persistence operations the reconciler and alert API rely on."""

    async def find_unresolved(self, kind: AlertKind, ref_type: AlertRefType, ref_id: UUID): ...

    async def create(self, finding: DeadlineFinding): ...

    async def update(self, alert_id: UUID, **fields): ...

    async def list_all(self, filters: Optional[AlertFilter] = None) -> List: ...

    async def count_unresolved_by_severity(self) -> AlertCounts: ...

    async def resolve(self, alert_id: UUID): ...

    async def resolve_all(self) -> int: ...

    async def rollback(self) -> None:
        """Discard work left half-done by a failed operation."""
        ...


class Notifier(Protocol):
    """Delivers alert notifications. Never raises; returns delivery success."""

    async def notify(self, payload: AlertPayload) -> bool: ...

"""Pydantic schemas and enums for deadline alerts."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AlertKind(str, Enum):
    """Deadline clock an alert belongs to."""
    PLAZO_60D = "PLAZO_60D"  # report the case to the insurer
    PLAZO_15D = "PLAZO_15D"  # insurer liquidation
    PLAZO_72H = "PLAZO_72H"  # payment after signed acceptance
    VENCIMIENTO_POLIZA = "VENCIMIENTO_POLIZA"


class AlertSeverity(str, Enum):
    """Alert severity, ordered INFO < WARNING < CRITICAL."""
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self.value)

    def __lt__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, AlertSeverity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = ("INFO", "WARNING", "CRITICAL")


class AlertRefType(str, Enum):
    """Kind of record an alert points at."""
    SINIESTRO = "SINIESTRO"
    POLIZA = "POLIZA"


class AlertFilter(BaseModel):
    """Optional filters for listing alerts."""
    kind: Optional[AlertKind] = None
    severity: Optional[AlertSeverity] = None
    resolved: Optional[bool] = None


class AlertResponse(BaseModel):
    """Alert as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kind: AlertKind
    severity: AlertSeverity
    message: str
    ref_type: AlertRefType
    ref_id: UUID
    deadline: datetime
    resolved: bool
    resolved_at: Optional[datetime] = None
    notified: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AlertCounts(BaseModel):
    """Unresolved alerts per severity."""
    critical: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0


class ResolveAllResponse(BaseModel):
    count: int = Field(..., description="Number of alerts marked as resolved")
    message: str


class FailedEntity(BaseModel):
    """An entity whose evaluation or reconciliation raised during a pass."""
    ref_type: AlertRefType
    ref_id: UUID
    error: str


class DeadlineCheckResult(BaseModel):
    """Outcome of one reconciliation pass."""
    alerts_created: int = 0
    alerts_escalated: int = 0
    notifications_failed: int = 0
    claims_evaluated: int = 0
    coverages_evaluated: int = 0
    failed_entities: List[FailedEntity] = Field(default_factory=list)
    completed: bool = True
    skipped: bool = False


class NotificationConfigResponse(BaseModel):
    recipient_email: str
    recipient_name: str
    sender_email: str
    sender_name: str
    api_key_configured: bool


class NotificationConfigUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    recipient_email: Optional[EmailStr] = None
    recipient_name: Optional[str] = None
    sender_email: Optional[EmailStr] = None
    sender_name: Optional[str] = None

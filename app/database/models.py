"""SQLAlchemy models for claims, policies, coverage windows and alerts."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.schemas.alerts import AlertKind, AlertRefType, AlertSeverity
from app.schemas.claims import ClaimState, CoverageState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls, name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Policy(Base):
    """Insurance policy. Validity is tracked through its coverage windows."""

    __tablename__ = "policies"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )

    coverages: Mapped[list["PolicyCoverage"]] = relationship(
        "PolicyCoverage", back_populates="policy", cascade="all, delete-orphan"
    )
    claims: Mapped[list["Claim"]] = relationship("Claim", back_populates="policy")


class PolicyCoverage(Base):
    """Bounded validity window ("vigencia") of a policy."""

    __tablename__ = "policy_coverages"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False
    )
    valid_from: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    state: Mapped[CoverageState] = mapped_column(
        _enum_column(CoverageState, "coverage_state"),
        nullable=False,
        default=CoverageState.OPEN,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )

    policy: Mapped["Policy"] = relationship("Policy", back_populates="coverages")

    __table_args__ = (
        # At most one open window per policy
        Index(
            "uq_policy_coverages_open_window",
            "policy_id",
            unique=True,
            postgresql_where=text("state = 'OPEN'"),
        ),
    )


class Claim(Base):
    """Death-benefit case ("siniestro")."""

    __tablename__ = "claims"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    state: Mapped[ClaimState] = mapped_column(
        _enum_column(ClaimState, "claim_state"),
        nullable=False,
        default=ClaimState.RECEIVED,
    )
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id"), nullable=True
    )
    reported_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    sent_to_insurer_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    signature_received_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    settlement_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    invalid_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), onupdate=_utcnow
    )

    policy: Mapped["Policy | None"] = relationship("Policy", back_populates="claims")


class Alert(Base):
    """Deadline reminder an operator acts on.

    At most one unresolved alert exists per (kind, ref_type, ref_id); the
    partial unique index below enforces it.
    """

    __tablename__ = "alerts"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    kind: Mapped[AlertKind] = mapped_column(_enum_column(AlertKind, "alert_kind"), nullable=False)
    severity: Mapped[AlertSeverity] = mapped_column(
        _enum_column(AlertSeverity, "alert_severity"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    ref_type: Mapped[AlertRefType] = mapped_column(
        _enum_column(AlertRefType, "alert_ref_type"), nullable=False
    )
    ref_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    deadline: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    notified: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), onupdate=_utcnow
    )

    __table_args__ = (
        Index(
            "uq_alerts_unresolved_key",
            "kind",
            "ref_type",
            "ref_id",
            unique=True,
            postgresql_where=text("resolved = false"),
        ),
        Index("ix_alerts_resolved_severity", "resolved", "severity"),
    )

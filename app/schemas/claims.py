"""Pydantic schemas and enums for claims and policy coverage windows."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClaimState(str, Enum):
    """Lifecycle stage of a death-benefit claim."""
    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    LIQUIDATION = "LIQUIDATION"
    PAYMENT = "PAYMENT"
    CLOSED = "CLOSED"
    INVALID = "INVALID"


class CoverageState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ClaimSnapshot(BaseModel):
    """Read-only view of a claim taken at the start of a deadline pass."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    case_code: str
    state: ClaimState
    reported_at: Optional[datetime] = None
    sent_to_insurer_at: Optional[datetime] = None
    signature_received_at: Optional[datetime] = None
    settlement_amount: Optional[Decimal] = None


class PolicyCoverageSnapshot(BaseModel):
    """Read-only view of a policy validity window."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    policy_id: UUID
    policy_code: str
    valid_from: datetime
    valid_until: datetime
    state: CoverageState


class ClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_code: str
    state: ClaimState
    reported_at: Optional[datetime] = None
    sent_to_insurer_at: Optional[datetime] = None
    signature_received_at: Optional[datetime] = None
    settlement_amount: Optional[Decimal] = None
    closed_at: Optional[datetime] = None
    invalid_reason: Optional[str] = None


class TransitionRequest(BaseModel):
    next_state: ClaimState = Field(..., description="Target lifecycle state")
    reason: Optional[str] = Field(None, description="Required when the target is INVALID")


class InvalidateRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the case is being invalidated")


class SignatureRequest(BaseModel):
    received_at: Optional[datetime] = Field(None, description="Defaults to now")


class SettlementRequest(BaseModel):
    amount: Decimal = Field(..., ge=0, description="Settled amount reported by the insurer")


class CoverageCreate(BaseModel):
    valid_from: datetime
    valid_until: datetime


class CoverageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    policy_id: UUID
    valid_from: datetime
    valid_until: datetime
    state: CoverageState

"""Case-management actions that move a claim through its lifecycle."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.database.models import Claim
from app.repositories.claim_repository import ClaimRepository
from app.schemas.claims import ClaimState
from app.services.claims.lifecycle import ClaimLifecycle
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ClaimService:
    """Loads a claim, applies a lifecycle action and saves it."""

    def __init__(self, session: AsyncSession, lifecycle: Optional[ClaimLifecycle] = None):
        self.repository = ClaimRepository(session)
        self.lifecycle = lifecycle or ClaimLifecycle()

    async def get(self, claim_id: UUID) -> Claim:
        claim = await self.repository.get_by_id(claim_id)
        if claim is None:
            raise NotFoundError(f"Claim {claim_id} not found")
        return claim

    async def transition(
        self,
        claim_id: UUID,
        next_state: ClaimState,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Claim:
        claim = await self.get(claim_id)
        self.lifecycle.transition(claim, next_state, now or _now(), reason=reason)
        return await self.repository.save(claim)

    async def send_to_insurer(self, claim_id: UUID, now: Optional[datetime] = None) -> Claim:
        """Mark the case file as sent; this stops the 60-day report clock."""
        claim = await self.get(claim_id)
        self.lifecycle.send_to_insurer(claim, now or _now())
        LOGGER.info(f"Claim {claim.case_code} sent to insurer")
        return await self.repository.save(claim)

    async def invalidate(self, claim_id: UUID, reason: str, now: Optional[datetime] = None) -> Claim:
        claim = await self.get(claim_id)
        self.lifecycle.invalidate(claim, reason, now or _now())
        return await self.repository.save(claim)

    async def record_signature(self, claim_id: UUID, received_at: Optional[datetime] = None) -> Claim:
        claim = await self.get(claim_id)
        self.lifecycle.record_signature(claim, received_at or _now())
        return await self.repository.save(claim)

    async def register_settlement(self, claim_id: UUID, amount: Decimal) -> Claim:
        claim = await self.get(claim_id)
        self.lifecycle.register_settlement(claim, amount)
        return await self.repository.save(claim)


def _now() -> datetime:
    return datetime.now(timezone.utc)

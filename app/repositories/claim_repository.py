"""Repository for claim ("siniestro") data access."""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.database.models import Claim
from app.repositories.base_repository import BaseRepository
from app.schemas.claims import ClaimSnapshot, ClaimState
from app.services.claims.lifecycle import TERMINAL_STATES
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ClaimRepository(BaseRepository[Claim]):
    """Repository for Claim entity operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Claim)

    async def list_tracked(self) -> List[ClaimSnapshot]:
        """Snapshot every claim whose deadlines are still being tracked."""
        try:
            query = (
                select(Claim)
                .where(Claim.state.not_in(list(TERMINAL_STATES)))
                .order_by(Claim.reported_at.asc())
            )
            result = await self.session.execute(query)
            claims = result.scalars().all()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error loading tracked claims: {str(e)}", exc_info=True)
            raise DatabaseError("Could not load claims", original_error=e)

        return [ClaimSnapshot.model_validate(claim) for claim in claims]

    async def save(self, claim: Claim) -> Claim:
        """Commit in-place changes made to a loaded claim."""
        await self.commit(f"save claim {claim.case_code}")
        LOGGER.info(f"Saved claim {claim.case_code} in state {claim.state.value}")
        return claim

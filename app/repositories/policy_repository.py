"""Repository for policies and their coverage windows."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import DatabaseError
from app.database.models import Policy, PolicyCoverage
from app.repositories.base_repository import BaseRepository
from app.schemas.claims import CoverageState, PolicyCoverageSnapshot
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PolicyRepository(BaseRepository[Policy]):
    """Repository for Policy entity operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Policy)


class PolicyCoverageRepository(BaseRepository[PolicyCoverage]):
    """Repository for coverage windows ("vigencias")."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, PolicyCoverage)

    async def list_open(self) -> List[PolicyCoverageSnapshot]:
        """Snapshot every open coverage window together with its policy code."""
        try:
            query = (
                select(PolicyCoverage)
                .options(selectinload(PolicyCoverage.policy))
                .where(PolicyCoverage.state == CoverageState.OPEN)
                .order_by(PolicyCoverage.valid_until.asc())
            )
            result = await self.session.execute(query)
            coverages = result.scalars().all()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error loading open coverages: {str(e)}", exc_info=True)
            raise DatabaseError("Could not load coverage windows", original_error=e)

        return [
            PolicyCoverageSnapshot(
                id=coverage.id,
                policy_id=coverage.policy_id,
                policy_code=coverage.policy.code,
                valid_from=coverage.valid_from,
                valid_until=coverage.valid_until,
                state=coverage.state,
            )
            for coverage in coverages
        ]

    async def open_window(
        self, policy_id: UUID, valid_from: datetime, valid_until: datetime
    ) -> PolicyCoverage:
        """Close the policy's open window and open a new one in one transaction."""
        try:
            await self.session.execute(
                update(PolicyCoverage)
                .where(
                    PolicyCoverage.policy_id == policy_id,
                    PolicyCoverage.state == CoverageState.OPEN,
                )
                .values(state=CoverageState.CLOSED)
            )
            coverage = PolicyCoverage(
                policy_id=policy_id,
                valid_from=valid_from,
                valid_until=valid_until,
                state=CoverageState.OPEN,
            )
            self.session.add(coverage)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error opening coverage window for policy {policy_id}: {str(e)}", exc_info=True)
            raise DatabaseError("Could not open coverage window", original_error=e)

        LOGGER.info(f"Opened coverage window {coverage.id} for policy {policy_id}")
        return coverage

    async def get_open(self, policy_id: UUID) -> Optional[PolicyCoverage]:
        """Get the policy's currently open window, if any."""
        try:
            query = select(PolicyCoverage).where(
                PolicyCoverage.policy_id == policy_id,
                PolicyCoverage.state == CoverageState.OPEN,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error loading open coverage for policy {policy_id}: {str(e)}", exc_info=True)
            raise DatabaseError("Could not load coverage window", original_error=e)

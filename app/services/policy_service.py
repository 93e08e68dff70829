"""Policy coverage window management."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import PolicyCoverage
from app.repositories.policy_repository import PolicyCoverageRepository, PolicyRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PolicyService:
    """Opens coverage windows, keeping at most one open window per policy."""

    def __init__(self, session: AsyncSession):
        self.policies = PolicyRepository(session)
        self.coverages = PolicyCoverageRepository(session)

    async def open_coverage(
        self, policy_id: UUID, valid_from: datetime, valid_until: datetime
    ) -> PolicyCoverage:
        """Open a new window for the policy, closing the previous open one.

        Raises:
            ValidationError: valid_until is not after valid_from
            NotFoundError: Unknown policy
        """
        if valid_until <= valid_from:
            raise ValidationError("valid_until must be after valid_from")

        policy = await self.policies.get_by_id(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found")

        return await self.coverages.open_window(policy_id, valid_from, valid_until)

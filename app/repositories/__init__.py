"""Repository layer modules."""

from app.repositories.alert_repository import AlertRepository
from app.repositories.claim_repository import ClaimRepository
from app.repositories.policy_repository import PolicyCoverageRepository, PolicyRepository

__all__ = [
    "AlertRepository",
    "ClaimRepository",
    "PolicyCoverageRepository",
    "PolicyRepository",
]

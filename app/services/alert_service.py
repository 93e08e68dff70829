"""Operator-facing alert operations."""

from typing import List, Optional
from uuid import UUID

from app.database.models import Alert
from app.schemas.alerts import AlertCounts, AlertFilter
from app.services.deadlines.contracts import AlertStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AlertService:
    """Listing, counting and resolving alerts on top of an AlertStore."""

    def __init__(self, store: AlertStore):
        self.store = store

    async def list_alerts(self, filters: Optional[AlertFilter] = None) -> List[Alert]:
        return await self.store.list_all(filters)

    async def list_unresolved(self) -> List[Alert]:
        return await self.store.list_all(AlertFilter(resolved=False))

    async def counts(self) -> AlertCounts:
        return await self.store.count_unresolved_by_severity()

    async def resolve(self, alert_id: UUID) -> Alert:
        """Resolve one alert; raises NotFoundError for unknown ids."""
        alert = await self.store.resolve(alert_id)
        LOGGER.info(f"Alert {alert_id} resolved")
        return alert

    async def resolve_all(self) -> int:
        return await self.store.resolve_all()

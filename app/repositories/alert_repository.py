"""Repository for deadline alerts.

Implements the AlertStore contract used by the reconciler and the alert
API on top of the ``alerts`` table.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError, DuplicateAlertError, NotFoundError
from app.database.models import Alert
from app.repositories.base_repository import BaseRepository
from app.schemas.alerts import AlertCounts, AlertFilter, AlertKind, AlertRefType, AlertSeverity
from app.services.deadlines.contracts import DeadlineFinding
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AlertRepository(BaseRepository[Alert]):
    """SQLAlchemy-backed alert store."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Alert)

    async def find_unresolved(
        self, kind: AlertKind, ref_type: AlertRefType, ref_id: UUID
    ) -> Optional[Alert]:
        """Get the unresolved alert for a (kind, ref_type, ref_id) key."""
        try:
            query = select(Alert).where(
                Alert.kind == kind,
                Alert.ref_type == ref_type,
                Alert.ref_id == ref_id,
                Alert.resolved.is_(False),
            )
            result = await self.session.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error looking up unresolved {kind.value} alert for {ref_type.value}:{ref_id}",
                exc_info=True,
            )
            raise DatabaseError("Could not look up alert", original_error=e)

    async def create(self, finding: DeadlineFinding) -> Alert:
        """Persist a new unresolved alert from a finding.

        Raises:
            DuplicateAlertError: Another writer created the same unresolved key first
        """
        alert = Alert(
            kind=finding.kind,
            severity=finding.severity,
            message=finding.message,
            ref_type=finding.ref_type,
            ref_id=finding.ref_id,
            deadline=finding.deadline,
            resolved=False,
        )
        try:
            self.session.add(alert)
            await self.session.flush()
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            LOGGER.warning(
                "Unresolved alert already exists",
                extra={"kind": finding.kind.value, "ref_type": finding.ref_type.value, "ref_id": str(finding.ref_id)},
            )
            raise DuplicateAlertError("Unresolved alert already exists for this key", original_error=e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error creating alert: {str(e)}", exc_info=True)
            raise DatabaseError("Could not create alert", original_error=e)

        LOGGER.info(f"Created {alert.severity.value} alert {alert.id} ({alert.kind.value})")
        return alert

    async def update(self, alert_id: UUID, **fields) -> Alert:
        """Update alert fields in place.

        Raises:
            NotFoundError: No alert with this id
        """
        fields["updated_at"] = datetime.now(timezone.utc)
        alert = await super().update(alert_id, **fields)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    async def list_all(self, filters: Optional[AlertFilter] = None) -> List[Alert]:
        """List alerts, unresolved first, then most severe, then nearest deadline."""
        filters = filters or AlertFilter()
        severity_rank = case(
            (Alert.severity == AlertSeverity.CRITICAL, 2),
            (Alert.severity == AlertSeverity.WARNING, 1),
            else_=0,
        )
        try:
            query = select(Alert)
            if filters.kind is not None:
                query = query.where(Alert.kind == filters.kind)
            if filters.severity is not None:
                query = query.where(Alert.severity == filters.severity)
            if filters.resolved is not None:
                query = query.where(Alert.resolved.is_(filters.resolved))

            query = query.order_by(Alert.resolved.asc(), severity_rank.desc(), Alert.deadline.asc())
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error listing alerts: {str(e)}", exc_info=True)
            raise DatabaseError("Could not list alerts", original_error=e)

    async def count_unresolved_by_severity(self) -> AlertCounts:
        """Count unresolved alerts per severity in a single grouped query."""
        try:
            query = (
                select(Alert.severity, func.count())
                .where(Alert.resolved.is_(False))
                .group_by(Alert.severity)
            )
            result = await self.session.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error counting alerts: {str(e)}", exc_info=True)
            raise DatabaseError("Could not count alerts", original_error=e)

        counts = AlertCounts()
        for severity, count in rows:
            setattr(counts, AlertSeverity(severity).value.lower(), count)
            counts.total += count
        return counts

    async def resolve(self, alert_id: UUID) -> Alert:
        """Mark one alert as resolved.

        Raises:
            NotFoundError: No alert with this id
        """
        alert = await self.get_by_id(alert_id)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        if alert.resolved:
            return alert
        return await self.update(alert_id, resolved=True, resolved_at=datetime.now(timezone.utc))

    async def resolve_all(self) -> int:
        """Mark every unresolved alert as resolved and return how many changed."""
        now = datetime.now(timezone.utc)
        try:
            stmt = (
                update(Alert)
                .where(Alert.resolved.is_(False))
                .values(resolved=True, resolved_at=now, updated_at=now)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error resolving alerts: {str(e)}", exc_info=True)
            raise DatabaseError("Could not resolve alerts", original_error=e)

        LOGGER.info(f"{result.rowcount} alerts resolved")
        return result.rowcount

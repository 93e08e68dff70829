"""Alert reconciler.

The only writer of alerts. For every finding it keeps at most one
unresolved alert per (kind, ref_type, ref_id):

- no unresolved alert: create one and notify
- unresolved alert with a different severity: update severity, message
  and deadline in place, without notifying again
- same severity: leave it alone

Running the same findings twice therefore writes nothing the second time.
Alerts whose rule stopped firing are left for an operator to resolve.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable, Optional

from app.core.exceptions import AppError, DuplicateAlertError
from app.services.deadlines.contracts import (
    AlertPayload,
    AlertStore,
    DeadlineFinding,
    Notifier,
    ReconcileOutcome,
    ReconcileResult,
)
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every reconciler in the process so concurrent callers serialize per key
ALERT_KEY_LOCKS = KeyedLocks()


class AlertReconciler:
    """Applies deadline findings to the alert store."""

    def __init__(
        self,
        store: AlertStore,
        notifier: Notifier,
        locks: Optional[KeyedLocks] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.locks = locks if locks is not None else ALERT_KEY_LOCKS

    async def reconcile(self, finding: DeadlineFinding) -> ReconcileResult:
        """Create, escalate or keep the unresolved alert matching ``finding``."""
        async with self.locks.hold(finding.key):
            existing = await self.store.find_unresolved(finding.kind, finding.ref_type, finding.ref_id)

            if existing is None:
                try:
                    alert = await self.store.create(finding)
                except DuplicateAlertError:
                    # Another process won the race for this key; treat its alert as ours
                    existing = await self.store.find_unresolved(finding.kind, finding.ref_type, finding.ref_id)
                    if existing is None:
                        raise
                else:
                    notified = await self._notify(alert.id, finding)
                    await self._record_notification(alert.id, notified)
                    return ReconcileResult(ReconcileOutcome.CREATED, alert.id, notified=notified)

            if existing.severity != finding.severity:
                previous = existing.severity
                await self.store.update(
                    existing.id,
                    severity=finding.severity,
                    message=finding.message,
                    deadline=finding.deadline,
                )
                LOGGER.info(
                    f"Alert {existing.id} ({finding.kind.value}) changed "
                    f"{previous.value} -> {finding.severity.value}"
                )
                return ReconcileResult(ReconcileOutcome.ESCALATED, existing.id)

            return ReconcileResult(ReconcileOutcome.UNCHANGED, existing.id)

    async def _notify(self, alert_id, finding: DeadlineFinding) -> bool:
        payload = AlertPayload(
            kind=finding.kind,
            severity=finding.severity,
            message=finding.message,
            deadline=finding.deadline,
            ref_id=finding.ref_id,
        )
        try:
            delivered = await self.notifier.notify(payload)
        except Exception as e:
            # Delivery is best effort; the alert is already stored
            LOGGER.error(f"Notifier raised for alert {alert_id}: {e}", exc_info=True)
            return False

        if not delivered:
            LOGGER.warning(f"Notification for alert {alert_id} was not delivered")
        return bool(delivered)

    async def _record_notification(self, alert_id, notified: bool) -> None:
        try:
            await self.store.update(alert_id, notified=notified)
        except AppError as e:
            LOGGER.warning(f"Could not record notification result for alert {alert_id}: {e}")

"""Deadline check orchestration.

``DeadlineCheckService.run_deadline_check`` is the single entry point for
a reconciliation pass: load every tracked claim and open coverage
window, evaluate them and reconcile the findings. The daily Temporal
schedule, the in-process ``DeadlineTicker`` and the manual API trigger
all call it.

Only one pass runs at a time per process; a trigger that arrives while
a pass is running is skipped, not queued.
"""

import asyncio
import time
from datetime import datetime, time as dt_time, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Protocol

from app.core.config import DeadlinePolicy, settings
from app.schemas.alerts import AlertRefType, DeadlineCheckResult, FailedEntity
from app.schemas.claims import ClaimSnapshot, PolicyCoverageSnapshot
from app.services.deadlines.contracts import AlertStore, Notifier, ReconcileOutcome, ReconcileResult
from app.services.deadlines.evaluator import DeadlineEvaluator
from app.services.deadlines.reconciler import AlertReconciler
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Single-flight guard shared by every service instance in the process
DEADLINE_PASS_LOCK = asyncio.Lock()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClaimSource(Protocol):
    async def list_tracked(self) -> List[ClaimSnapshot]: ...


class CoverageSource(Protocol):
    async def list_open(self) -> List[PolicyCoverageSnapshot]: ...


class DeadlineCheckService:
    """Runs reconciliation passes over claims and coverage windows."""

    def __init__(
        self,
        claims: ClaimSource,
        coverages: CoverageSource,
        store: AlertStore,
        notifier: Notifier,
        policy: Optional[DeadlinePolicy] = None,
        timeout_seconds: Optional[float] = None,
        pass_lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.claims = claims
        self.coverages = coverages
        self.evaluator = DeadlineEvaluator(policy or settings.deadline_policy())
        self.store = store
        self.reconciler = AlertReconciler(store, notifier)
        self.timeout_seconds = timeout_seconds
        self.pass_lock = pass_lock if pass_lock is not None else DEADLINE_PASS_LOCK
        self.clock = clock

    async def run_deadline_check(self, now: Optional[datetime] = None) -> DeadlineCheckResult:
        """Run one full pass, or skip it if another pass is in progress.

        Args:
            now: Evaluation time; defaults to the service clock

        Returns:
            DeadlineCheckResult with created/escalated counts and failed entities
        """
        if self.pass_lock.locked():
            LOGGER.warning("Deadline check already running; skipping this trigger")
            return DeadlineCheckResult(completed=False, skipped=True)

        async with self.pass_lock:
            return await self._run_pass(now or self.clock())

    async def _run_pass(self, now: datetime) -> DeadlineCheckResult:
        LOGGER.info(f"Running deadline check at {now.isoformat()}")
        started = time.monotonic()
        result = DeadlineCheckResult()

        claims = await self.claims.list_tracked()
        coverages = await self.coverages.list_open()

        entities = [
            (AlertRefType.SINIESTRO, claim.id, claim, self.evaluator.evaluate_claim)
            for claim in claims
        ] + [
            (AlertRefType.POLIZA, coverage.policy_id, coverage, self.evaluator.evaluate_coverage)
            for coverage in coverages
        ]

        for ref_type, ref_id, entity, evaluate in entities:
            if self.timeout_seconds is not None and time.monotonic() - started > self.timeout_seconds:
                LOGGER.warning(
                    f"Deadline check timed out after {self.timeout_seconds}s; remaining entities skipped"
                )
                result.completed = False
                break

            try:
                for finding in evaluate(entity, now):
                    self._tally(result, await self.reconciler.reconcile(finding))
            except Exception as e:
                LOGGER.error(
                    f"Deadline check failed for {ref_type.value} {ref_id}: {e}",
                    exc_info=True,
                )
                await self._discard_failed_work()
                result.failed_entities.append(FailedEntity(ref_type=ref_type, ref_id=ref_id, error=str(e)))
                continue

            if ref_type == AlertRefType.SINIESTRO:
                result.claims_evaluated += 1
            else:
                result.coverages_evaluated += 1

        LOGGER.info(
            "Deadline check finished",
            extra={
                "alerts_created": result.alerts_created,
                "alerts_escalated": result.alerts_escalated,
                "failed_entities": len(result.failed_entities),
                "completed": result.completed,
            },
        )
        return result

    async def _discard_failed_work(self) -> None:
        # A failed statement leaves the shared session unusable until rolled back
        try:
            await self.store.rollback()
        except Exception as e:
            LOGGER.error(f"Rollback after failed entity raised: {e}", exc_info=True)

    @staticmethod
    def _tally(result: DeadlineCheckResult, outcome: ReconcileResult) -> None:
        if outcome.outcome == ReconcileOutcome.CREATED:
            result.alerts_created += 1
            if outcome.notified is False:
                result.notifications_failed += 1
        elif outcome.outcome == ReconcileOutcome.ESCALATED:
            result.alerts_escalated += 1


async def run_scheduled_deadline_check(now: Optional[datetime] = None) -> DeadlineCheckResult:
    """Open a database session and run one pass with the configured collaborators."""
    from app.core.database import async_session_maker
    from app.repositories.alert_repository import AlertRepository
    from app.repositories.claim_repository import ClaimRepository
    from app.repositories.policy_repository import PolicyCoverageRepository
    from app.services.notifications.email_notifier import get_notifier

    async with async_session_maker() as session:
        service = DeadlineCheckService(
            claims=ClaimRepository(session),
            coverages=PolicyCoverageRepository(session),
            store=AlertRepository(session),
            notifier=get_notifier(),
            timeout_seconds=settings.deadlines.timeout_seconds,
        )
        return await service.run_deadline_check(now)


def next_run_after(now: datetime, run_at: dt_time) -> datetime:
    """Next occurrence of ``run_at`` (in ``now``'s timezone) strictly after ``now``."""
    candidate = now.replace(hour=run_at.hour, minute=run_at.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class DeadlineTicker:
    """In-process daily trigger for the deadline check.

    The clock and sleep function are injectable so the ticker can be
    driven without wall-clock time; ``trigger`` runs a pass on demand.
    """

    def __init__(
        self,
        run_check: Callable[[datetime], Awaitable[DeadlineCheckResult]],
        run_at: dt_time = dt_time(6, 0),
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.run_check = run_check
        self.run_at = run_at
        self.clock = clock
        self.sleep = sleep
        self.last_result: Optional[DeadlineCheckResult] = None
        self._task: Optional[asyncio.Task] = None

    async def trigger(self, now: Optional[datetime] = None) -> DeadlineCheckResult:
        """Run a pass immediately."""
        self.last_result = await self.run_check(now or self.clock())
        return self.last_result

    async def tick(self) -> DeadlineCheckResult:
        """Wait for the next scheduled time, then run a pass."""
        now = self.clock()
        wait_seconds = (next_run_after(now, self.run_at) - now).total_seconds()
        await self.sleep(wait_seconds)
        return await self.trigger()

    async def run_forever(self, max_runs: Optional[int] = None) -> None:
        runs = 0
        while max_runs is None or runs < max_runs:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                LOGGER.error(f"Scheduled deadline check failed: {e}", exc_info=True)
            runs += 1

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                LOGGER.info("Deadline ticker stopped")
            self._task = None

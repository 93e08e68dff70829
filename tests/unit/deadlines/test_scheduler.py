import asyncio
from datetime import datetime, time, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.core.config import DeadlinePolicy
from app.core.exceptions import DatabaseError
from app.schemas.alerts import AlertKind, AlertRefType, AlertSeverity, DeadlineCheckResult
from app.schemas.claims import ClaimState
from app.services.deadlines.contracts import DeadlineFinding
from app.services.deadlines.reconciler import KeyedLocks
from app.services.deadlines.scheduler import DeadlineCheckService, DeadlineTicker, next_run_after
from tests.fakes import NOW, InMemoryAlertStore, StaticClaims, StaticCoverages, make_claim, make_coverage


def _service(claims, coverages, store, notifier, **kwargs):
    service = DeadlineCheckService(
        claims=StaticClaims(claims),
        coverages=StaticCoverages(coverages),
        store=store,
        notifier=notifier,
        policy=DeadlinePolicy(),
        pass_lock=kwargs.pop("pass_lock", asyncio.Lock()),
        clock=lambda: NOW,
        **kwargs,
    )
    service.reconciler.locks = KeyedLocks()
    return service


@pytest.fixture
def claims():
    return [
        make_claim(case_code="SIN-1", reported_at=NOW - timedelta(days=52)),
        make_claim(case_code="SIN-2", reported_at=NOW - timedelta(days=60)),
        make_claim(case_code="SIN-3", reported_at=NOW - timedelta(days=10)),
    ]


@pytest.fixture
def coverages():
    return [make_coverage(valid_until=NOW + timedelta(days=12))]


@pytest.mark.asyncio
async def test_pass_creates_alerts_and_notifies(claims, coverages, alert_store, notifier):
    service = _service(claims, coverages, alert_store, notifier)

    result = await service.run_deadline_check()

    assert result.completed is True
    assert result.skipped is False
    assert result.alerts_created == 3
    assert result.claims_evaluated == 3
    assert result.coverages_evaluated == 1
    assert len(notifier.payloads) == 3
    kinds = sorted(a.kind.value for a in alert_store.unresolved())
    assert kinds == ["PLAZO_60D", "PLAZO_60D", "VENCIMIENTO_POLIZA"]


@pytest.mark.asyncio
async def test_second_pass_is_idempotent(claims, coverages, alert_store, notifier):
    service = _service(claims, coverages, alert_store, notifier)
    await service.run_deadline_check()

    second = await service.run_deadline_check()

    assert second.alerts_created == 0
    assert second.alerts_escalated == 0
    assert alert_store.create_calls == 3
    assert len(notifier.payloads) == 3


@pytest.mark.asyncio
async def test_escalation_across_passes_keeps_one_alert(alert_store, notifier):
    claim = make_claim(case_code="SIN-9", reported_at=NOW - timedelta(days=52))
    service = _service([claim], [], alert_store, notifier)

    first = await service.run_deadline_check(NOW)
    second = await service.run_deadline_check(NOW + timedelta(days=5))

    assert first.alerts_created == 1
    assert second.alerts_escalated == 1
    [alert] = alert_store.unresolved()
    assert alert.severity == AlertSeverity.CRITICAL
    assert len(notifier.payloads) == 1


@pytest.mark.asyncio
async def test_alerts_stay_open_when_rule_stops_firing(alert_store, notifier):
    claim = make_claim(reported_at=NOW - timedelta(days=52))
    service = _service([claim], [], alert_store, notifier)
    await service.run_deadline_check()

    service.claims.claims = [claim.model_copy(update={"sent_to_insurer_at": NOW, "state": ClaimState.LIQUIDATION})]
    await service.run_deadline_check()

    assert len(alert_store.unresolved()) == 1


@pytest.mark.asyncio
async def test_concurrent_passes_never_duplicate(claims, coverages, alert_store, notifier):
    first = _service(claims, coverages, alert_store, notifier)
    second = _service(claims, coverages, alert_store, notifier)
    second.reconciler.locks = first.reconciler.locks

    await asyncio.gather(first.run_deadline_check(), second.run_deadline_check())

    keys = [(a.kind, a.ref_type, a.ref_id) for a in alert_store.unresolved()]
    assert len(keys) == len(set(keys)) == 3
    assert len(notifier.payloads) == 3


@pytest.mark.asyncio
async def test_overlapping_trigger_is_skipped(claims, alert_store, notifier):
    lock = asyncio.Lock()
    service = _service(claims, [], alert_store, notifier, pass_lock=lock)

    async with lock:
        result = await service.run_deadline_check()

    assert result.skipped is True
    assert result.completed is False
    assert alert_store.create_calls == 0


@pytest.mark.asyncio
async def test_failing_entity_does_not_abort_pass(claims, alert_store, notifier):
    service = _service(claims, [], alert_store, notifier)
    broken = claims[0]
    evaluate = service.evaluator.evaluate_claim

    def flaky(claim, now):
        if claim.id == broken.id:
            raise RuntimeError("bad data")
        return evaluate(claim, now)

    service.evaluator.evaluate_claim = flaky

    result = await service.run_deadline_check()

    assert result.completed is True
    assert result.alerts_created == 1
    assert result.claims_evaluated == 2
    [failed] = result.failed_entities
    assert failed.ref_type == AlertRefType.SINIESTRO
    assert failed.ref_id == broken.id
    assert "bad data" in failed.error


class AbortingAlertStore(InMemoryAlertStore):
    """Fails one lookup, then refuses every call until rolled back."""

    def __init__(self, failing_ref_id):
        super().__init__()
        self.failing_ref_id = failing_ref_id
        self.aborted = False

    async def find_unresolved(self, kind, ref_type, ref_id):
        if self.aborted:
            raise DatabaseError("current transaction is aborted")
        if ref_id == self.failing_ref_id:
            self.aborted = True
            raise DatabaseError("connection reset")
        return await super().find_unresolved(kind, ref_type, ref_id)

    async def create(self, finding):
        if self.aborted:
            raise DatabaseError("current transaction is aborted")
        return await super().create(finding)

    async def rollback(self):
        await super().rollback()
        self.aborted = False


@pytest.mark.asyncio
async def test_failed_entity_is_rolled_back_before_the_next(claims, notifier):
    store = AbortingAlertStore(failing_ref_id=claims[0].id)
    service = _service(claims, [], store, notifier)

    result = await service.run_deadline_check()

    assert store.rollback_calls == 1
    assert result.alerts_created == 1
    assert result.claims_evaluated == 2
    [failed] = result.failed_entities
    assert failed.ref_id == claims[0].id
    assert "connection reset" in failed.error


@pytest.mark.asyncio
async def test_alerts_stored_before_a_failure_are_counted(alert_store, notifier):
    claim = make_claim(reported_at=NOW - timedelta(days=52))
    service = _service([claim], [], alert_store, notifier)
    findings = [
        DeadlineFinding(
            kind=kind,
            severity=AlertSeverity.WARNING,
            message=f"{kind.value} SIN-2026-001",
            deadline=NOW + timedelta(days=8),
            ref_type=AlertRefType.SINIESTRO,
            ref_id=claim.id,
        )
        for kind in (AlertKind.PLAZO_60D, AlertKind.PLAZO_15D)
    ]
    service.evaluator.evaluate_claim = lambda claim, now: findings
    create = alert_store.create

    async def create_first_only(finding):
        if finding.kind == AlertKind.PLAZO_15D:
            raise DatabaseError("insert failed")
        return await create(finding)

    alert_store.create = create_first_only

    result = await service.run_deadline_check()

    assert result.alerts_created == 1
    assert len(notifier.payloads) == 1
    assert len(alert_store.unresolved()) == 1
    assert result.claims_evaluated == 0
    [failed] = result.failed_entities
    assert failed.ref_id == claim.id


@pytest.mark.asyncio
async def test_failed_coverage_is_reported_by_policy(alert_store, notifier):
    coverage = make_coverage(valid_until=NOW + timedelta(days=12))
    service = _service([], [coverage], alert_store, notifier)

    def broken(coverage, now):
        raise RuntimeError("bad window")

    service.evaluator.evaluate_coverage = broken

    result = await service.run_deadline_check()

    [failed] = result.failed_entities
    assert failed.ref_type == AlertRefType.POLIZA
    assert failed.ref_id == coverage.policy_id
    assert result.coverages_evaluated == 0


@pytest.mark.asyncio
async def test_timeout_marks_pass_incomplete(claims, alert_store, notifier):
    service = _service(claims, [], alert_store, notifier, timeout_seconds=-1)

    result = await service.run_deadline_check()

    assert result.completed is False
    assert result.claims_evaluated == 0
    assert alert_store.create_calls == 0


@pytest.mark.asyncio
async def test_failed_notifications_are_counted(claims, alert_store, notifier):
    notifier.result = False
    service = _service(claims, [], alert_store, notifier)

    result = await service.run_deadline_check()

    assert result.alerts_created == 2
    assert result.notifications_failed == 2


def test_next_run_after_same_day():
    now = datetime(2026, 3, 2, 5, 30, tzinfo=timezone.utc)
    assert next_run_after(now, time(6, 0)) == datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)


def test_next_run_after_rolls_to_next_day():
    now = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
    assert next_run_after(now, time(6, 0)) == datetime(2026, 3, 3, 6, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_ticker_sleeps_until_run_time_then_runs():
    run_check = AsyncMock(return_value=DeadlineCheckResult(alerts_created=1))
    sleep = AsyncMock()
    clock = lambda: datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)
    ticker = DeadlineTicker(run_check, run_at=time(6, 0), clock=clock, sleep=sleep)

    result = await ticker.tick()

    sleep.assert_awaited_once_with(3600.0)
    run_check.assert_awaited_once_with(clock())
    assert result.alerts_created == 1
    assert ticker.last_result is result


@pytest.mark.asyncio
async def test_ticker_manual_trigger_uses_given_time():
    run_check = AsyncMock(return_value=DeadlineCheckResult())
    ticker = DeadlineTicker(run_check, sleep=AsyncMock())

    await ticker.trigger(NOW)

    run_check.assert_awaited_once_with(NOW)


@pytest.mark.asyncio
async def test_ticker_keeps_running_after_a_failed_pass():
    run_check = AsyncMock(side_effect=[RuntimeError("db down"), DeadlineCheckResult()])
    ticker = DeadlineTicker(run_check, clock=lambda: NOW, sleep=AsyncMock())

    await ticker.run_forever(max_runs=2)

    assert run_check.await_count == 2
    assert ticker.last_result == DeadlineCheckResult()

import uuid
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import DatabaseError, DuplicateAlertError, NotFoundError
from app.database.models import Alert
from app.repositories.alert_repository import AlertRepository
from app.repositories.claim_repository import ClaimRepository
from app.schemas.alerts import AlertKind, AlertRefType, AlertSeverity
from app.services.deadlines.contracts import DeadlineFinding
from tests.fakes import NOW


@pytest.fixture
def session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repository(session):
    return AlertRepository(session)


@pytest.fixture
def finding():
    return DeadlineFinding(
        kind=AlertKind.PLAZO_60D,
        severity=AlertSeverity.WARNING,
        message="Quedan 8 días para reportar el caso SIN-1",
        deadline=NOW + timedelta(days=8),
        ref_type=AlertRefType.SINIESTRO,
        ref_id=uuid.uuid4(),
    )


def _returning(session, value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    session.execute.return_value = result


@pytest.mark.asyncio
async def test_create_adds_unresolved_alert_and_commits(repository, session, finding):
    alert = await repository.create(finding)

    session.add.assert_called_once_with(alert)
    session.commit.assert_awaited_once()
    assert isinstance(alert, Alert)
    assert alert.resolved is False
    assert alert.ref_id == finding.ref_id
    assert alert.severity == AlertSeverity.WARNING


@pytest.mark.asyncio
async def test_create_maps_integrity_error_to_duplicate(repository, session, finding):
    session.flush.side_effect = IntegrityError("INSERT INTO alerts", {}, Exception("duplicate key"))

    with pytest.raises(DuplicateAlertError):
        await repository.create(finding)

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_wraps_other_database_errors(repository, session, finding):
    session.flush.side_effect = OperationalError("INSERT INTO alerts", {}, Exception("connection reset"))

    with pytest.raises(DatabaseError) as exc_info:
        await repository.create(finding)

    assert not isinstance(exc_info.value, DuplicateAlertError)
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_lookup_rolls_back_session(repository, session, finding):
    session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))

    with pytest.raises(DatabaseError):
        await repository.find_unresolved(finding.kind, finding.ref_type, finding.ref_id)

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_claim_load_rolls_back_session(session):
    session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))

    with pytest.raises(DatabaseError):
        await ClaimRepository(session).list_tracked()

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_rollback_delegates_to_session(repository, session):
    await repository.rollback()

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_unknown_alert_raises_not_found(repository, session):
    _returning(session, None)

    with pytest.raises(NotFoundError):
        await repository.update(uuid.uuid4(), notified=True)

    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_unknown_alert_raises_not_found(repository, session):
    _returning(session, None)

    with pytest.raises(NotFoundError):
        await repository.resolve(uuid.uuid4())


@pytest.mark.asyncio
async def test_resolve_marks_alert_resolved(repository, session):
    alert = SimpleNamespace(id=uuid.uuid4(), resolved=False, resolved_at=None, updated_at=None)
    _returning(session, alert)

    result = await repository.resolve(alert.id)

    assert result is alert
    assert alert.resolved is True
    assert alert.resolved_at is not None
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_resolve_already_resolved_alert_is_a_no_op(repository, session):
    alert = SimpleNamespace(id=uuid.uuid4(), resolved=True, resolved_at=NOW, updated_at=NOW)
    _returning(session, alert)

    result = await repository.resolve(alert.id)

    assert result.resolved_at == NOW
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_all_on_empty_set_returns_zero(repository, session):
    session.execute.return_value = MagicMock(rowcount=0)

    assert await repository.resolve_all() == 0
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_counts_come_from_one_grouped_query(repository, session):
    result = MagicMock()
    result.all.return_value = [(AlertSeverity.CRITICAL, 2), ("INFO", 3)]
    session.execute.return_value = result

    counts = await repository.count_unresolved_by_severity()

    session.execute.assert_awaited_once()
    assert counts.model_dump() == {"critical": 2, "warning": 0, "info": 3, "total": 5}

"""Alert listing, counting, resolution and the manual deadline check."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.errors import raise_http_error
from app.core.config import settings
from app.core.database import get_async_session as get_session
from app.core.exceptions import AppError
from app.repositories.alert_repository import AlertRepository
from app.repositories.claim_repository import ClaimRepository
from app.repositories.policy_repository import PolicyCoverageRepository
from app.schemas.alerts import (
    AlertFilter,
    AlertKind,
    AlertResponse,
    AlertSeverity,
    ResolveAllResponse,
)
from app.schemas.common import ApiResponse
from app.services.alert_service import AlertService
from app.services.deadlines.scheduler import DeadlineCheckService
from app.services.notifications.email_notifier import get_notifier
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_alert_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> AlertService:
    return AlertService(AlertRepository(db_session))


async def get_deadline_check_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> DeadlineCheckService:
    return DeadlineCheckService(
        claims=ClaimRepository(db_session),
        coverages=PolicyCoverageRepository(db_session),
        store=AlertRepository(db_session),
        notifier=get_notifier(),
        timeout_seconds=settings.deadlines.timeout_seconds,
    )


@router.get(
    "/",
    response_model=ApiResponse,
    summary="List alerts",
    operation_id="list_alerts",
)
async def list_alerts(
    request: Request,
    kind: Optional[AlertKind] = Query(None),
    severity: Optional[AlertSeverity] = Query(None),
    resolved: Optional[bool] = Query(None),
    alert_service: Annotated[AlertService, Depends(get_alert_service)] = None,
) -> ApiResponse:
    """List alerts: unresolved first, then by severity and nearest deadline."""
    try:
        alerts = await alert_service.list_alerts(AlertFilter(kind=kind, severity=severity, resolved=resolved))
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=[AlertResponse.model_validate(alert) for alert in alerts],
        message=f"{len(alerts)} alerts found",
        request=request,
    )


@router.get(
    "/unresolved",
    response_model=ApiResponse,
    summary="List unresolved alerts",
    operation_id="list_unresolved_alerts",
)
async def list_unresolved_alerts(
    request: Request,
    alert_service: Annotated[AlertService, Depends(get_alert_service)] = None,
) -> ApiResponse:
    try:
        alerts = await alert_service.list_unresolved()
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=[AlertResponse.model_validate(alert) for alert in alerts],
        message=f"{len(alerts)} unresolved alerts",
        request=request,
    )


@router.get(
    "/counts",
    response_model=ApiResponse,
    summary="Count unresolved alerts by severity",
    operation_id="count_alerts",
)
async def count_alerts(
    request: Request,
    alert_service: Annotated[AlertService, Depends(get_alert_service)] = None,
) -> ApiResponse:
    try:
        counts = await alert_service.counts()
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(data=counts, message="Alert counts retrieved", request=request)


@router.post(
    "/resolve-all",
    response_model=ApiResponse,
    summary="Resolve every unresolved alert",
    operation_id="resolve_all_alerts",
)
async def resolve_all_alerts(
    request: Request,
    alert_service: Annotated[AlertService, Depends(get_alert_service)] = None,
) -> ApiResponse:
    """Bulk resolve; succeeds with a count of zero when nothing is open."""
    try:
        count = await alert_service.resolve_all()
    except AppError as e:
        raise_http_error(request, e)

    data = ResolveAllResponse(count=count, message=f"{count} alertas resueltas")
    return create_api_response(data=data, message=data.message, request=request)


@router.post(
    "/check-deadlines",
    response_model=ApiResponse,
    summary="Run the deadline check now",
    operation_id="check_deadlines",
)
async def check_deadlines(
    request: Request,
    check_service: Annotated[DeadlineCheckService, Depends(get_deadline_check_service)] = None,
) -> ApiResponse:
    """Run one reconciliation pass immediately and return its result."""
    LOGGER.info("Manual deadline check requested")
    try:
        result = await check_service.run_deadline_check()
    except AppError as e:
        raise_http_error(request, e)

    message = "Deadline check skipped: a check is already running" if result.skipped else "Deadline check completed"
    return create_api_response(data=result, message=message, request=request)


@router.post(
    "/{alert_id}/resolve",
    response_model=ApiResponse,
    summary="Resolve an alert",
    operation_id="resolve_alert",
)
async def resolve_alert(
    request: Request,
    alert_id: UUID,
    alert_service: Annotated[AlertService, Depends(get_alert_service)] = None,
) -> ApiResponse:
    try:
        alert = await alert_service.resolve(alert_id)
    except AppError as e:
        raise_http_error(request, e)

    return create_api_response(
        data=AlertResponse.model_validate(alert),
        message="Alerta resuelta",
        request=request,
    )

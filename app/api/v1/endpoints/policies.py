"""Policy coverage windows."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.errors import raise_http_error
from app.core.database import get_async_session as get_session
from app.core.exceptions import AppError
from app.schemas.claims import CoverageCreate, CoverageResponse
from app.schemas.common import ApiResponse
from app.services.policy_service import PolicyService
from app.utils.responses import create_api_response

router = APIRouter()


async def get_policy_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> PolicyService:
    return PolicyService(db_session)


@router.post(
    "/{policy_id}/coverages",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a coverage window",
    operation_id="open_policy_coverage",
)
async def open_policy_coverage(
    request: Request,
    policy_id: UUID,
    payload: CoverageCreate,
    policy_service: Annotated[PolicyService, Depends(get_policy_service)] = None,
) -> ApiResponse:
    """Open a new window; the previous open window of the policy is closed."""
    try:
        coverage = await policy_service.open_coverage(policy_id, payload.valid_from, payload.valid_until)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(
        data=CoverageResponse.model_validate(coverage),
        message="Vigencia creada",
        request=request,
    )

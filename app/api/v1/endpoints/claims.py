"""Claim lifecycle actions."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.errors import raise_http_error
from app.core.database import get_async_session as get_session
from app.core.exceptions import AppError
from app.schemas.claims import (
    ClaimResponse,
    InvalidateRequest,
    SettlementRequest,
    SignatureRequest,
    TransitionRequest,
)
from app.schemas.common import ApiResponse
from app.services.claims.claim_service import ClaimService
from app.utils.responses import create_api_response

router = APIRouter()


async def get_claim_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ClaimService:
    return ClaimService(db_session)


@router.get(
    "/{claim_id}",
    response_model=ApiResponse,
    summary="Get a claim",
    operation_id="get_claim",
)
async def get_claim(
    request: Request,
    claim_id: UUID,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    try:
        claim = await claim_service.get(claim_id)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(data=ClaimResponse.model_validate(claim), request=request)


@router.post(
    "/{claim_id}/transitions",
    response_model=ApiResponse,
    summary="Move a claim to another lifecycle state",
    operation_id="transition_claim",
)
async def transition_claim(
    request: Request,
    claim_id: UUID,
    payload: TransitionRequest,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    """Apply a lifecycle transition; disallowed moves return 409."""
    try:
        claim = await claim_service.transition(claim_id, payload.next_state, reason=payload.reason)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(
        data=ClaimResponse.model_validate(claim),
        message=f"Claim moved to {claim.state.value}",
        request=request,
    )


@router.post(
    "/{claim_id}/send-to-insurer",
    response_model=ApiResponse,
    summary="Send the case file to the insurer",
    operation_id="send_claim_to_insurer",
)
async def send_claim_to_insurer(
    request: Request,
    claim_id: UUID,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    try:
        claim = await claim_service.send_to_insurer(claim_id)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(
        data=ClaimResponse.model_validate(claim),
        message="Expediente enviado a la aseguradora",
        request=request,
    )


@router.post(
    "/{claim_id}/signature",
    response_model=ApiResponse,
    summary="Record the signed settlement acceptance",
    operation_id="record_claim_signature",
)
async def record_claim_signature(
    request: Request,
    claim_id: UUID,
    payload: SignatureRequest,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    try:
        claim = await claim_service.record_signature(claim_id, payload.received_at)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(data=ClaimResponse.model_validate(claim), request=request)


@router.post(
    "/{claim_id}/invalidate",
    response_model=ApiResponse,
    summary="Mark a claim as invalid",
    operation_id="invalidate_claim",
)
async def invalidate_claim(
    request: Request,
    claim_id: UUID,
    payload: InvalidateRequest,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    try:
        claim = await claim_service.invalidate(claim_id, payload.reason)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(
        data=ClaimResponse.model_validate(claim),
        message="Siniestro marcado como inválido",
        request=request,
    )


@router.post(
    "/{claim_id}/settlement",
    response_model=ApiResponse,
    summary="Register the settled amount",
    operation_id="register_claim_settlement",
)
async def register_claim_settlement(
    request: Request,
    claim_id: UUID,
    payload: SettlementRequest,
    claim_service: Annotated[ClaimService, Depends(get_claim_service)] = None,
) -> ApiResponse:
    try:
        claim = await claim_service.register_settlement(claim_id, payload.amount)
    except AppError as e:
        raise_http_error(request, e)
    return create_api_response(data=ClaimResponse.model_validate(claim), request=request)

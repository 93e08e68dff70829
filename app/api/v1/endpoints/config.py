"""Runtime notification configuration."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.schemas.alerts import NotificationConfigResponse, NotificationConfigUpdate
from app.schemas.common import ApiResponse
from app.services.notifications.email_notifier import EmailNotifier, get_notifier
from app.utils.responses import create_api_response

router = APIRouter()


def _describe(notifier: EmailNotifier) -> NotificationConfigResponse:
    config = notifier.config
    return NotificationConfigResponse(
        recipient_email=config.recipient_email,
        recipient_name=config.recipient_name,
        sender_email=config.sender_email,
        sender_name=config.sender_name,
        api_key_configured=bool(config.api_key),
    )


@router.get(
    "/notifications",
    response_model=ApiResponse,
    summary="Get the notification configuration",
    operation_id="get_notification_config",
)
async def get_notification_config(
    request: Request,
    notifier: Annotated[EmailNotifier, Depends(get_notifier)] = None,
) -> ApiResponse:
    """The API key itself is never returned, only whether one is set."""
    return create_api_response(data=_describe(notifier), request=request)


@router.put(
    "/notifications",
    response_model=ApiResponse,
    summary="Update the notification configuration",
    operation_id="update_notification_config",
)
async def update_notification_config(
    request: Request,
    payload: NotificationConfigUpdate,
    notifier: Annotated[EmailNotifier, Depends(get_notifier)] = None,
) -> ApiResponse:
    changes = payload.model_dump(exclude_none=True)
    notifier.reconfigure(notifier.config.model_copy(update=changes))
    return create_api_response(
        data=_describe(notifier),
        message="Configuración de notificaciones actualizada",
        request=request,
    )

"""Translate domain errors into HTTP problem responses."""

from typing import Dict, NoReturn, Type

from fastapi import HTTPException, Request, status

from app.core.exceptions import (
    AppError,
    ClaimStateError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from app.utils.responses import create_error_detail

ERROR_STATUS: Dict[Type[AppError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ClaimStateError: status.HTTP_409_CONFLICT,
    ValidationError: 422,
    DatabaseError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_TITLES: Dict[int, str] = {
    status.HTTP_404_NOT_FOUND: "Not Found",
    status.HTTP_409_CONFLICT: "Invalid State Transition",
    422: "Validation Failed",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def raise_http_error(request: Request, error: AppError) -> NoReturn:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break

    error_detail = create_error_detail(
        title=ERROR_TITLES[status_code],
        status=status_code,
        detail=str(error),
        request=request,
    )
    raise HTTPException(status_code=status_code, detail=error_detail.model_dump(mode="json"))

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from agent_service.utils.exceptions import (
    AgentServiceError,
    AuthError,
    DuplicateError,
    ExpiredError,
    InvalidCodeError,
    LockedError,
    MaxAttemptsError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ValidationError.code: status.HTTP_400_BAD_REQUEST,
    NotFoundError.code: status.HTTP_404_NOT_FOUND,
    DuplicateError.code: status.HTTP_409_CONFLICT,
    InvalidCodeError.code: status.HTTP_401_UNAUTHORIZED,
    ExpiredError.code: status.HTTP_401_UNAUTHORIZED,
    MaxAttemptsError.code: status.HTTP_401_UNAUTHORIZED,
    AuthError.code: status.HTTP_401_UNAUTHORIZED,
    LockedError.code: status.HTTP_429_TOO_MANY_REQUESTS,
}


def status_for(error: AgentServiceError) -> int:
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def agent_service_error_handler(request: Request, exc: AgentServiceError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code} ({exc.code}): {exc.message}")

    headers = None
    if isinstance(exc, AuthError):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=status_code,
        content={"success": False, "detail": exc.message, "code": exc.code, **exc.to_dict()},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AgentServiceError, agent_service_error_handler)

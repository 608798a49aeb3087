from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any

from unionvote.config.settings import VotingConfigs
from unionvote.config.sentry import capture_exception, add_breadcrumb
from unionvote.core.exceptions import ResendCooldownActive, VotingError
from unionvote.logging.utils import get_app_logger

logger = get_app_logger("unionvote.handlers")


def _debug() -> bool:
    # DEBUG=false means production
    return VotingConfigs().DEBUG


async def _voting_exception_handler(request: Request, exc: VotingError):
    """Domain errors carry their own status and a user-facing message."""
    if exc.status_code >= 500:
        logger.error(f"voting_error | method={request.method} path={request.url.path} error={type(exc).__name__} status_code={exc.status_code}", exc_info=exc)
        add_breadcrumb(
            message=f"{type(exc).__name__} on {request.method} {request.url.path}",
            category="voting",
            level="error",
            data={"status_code": exc.status_code},
        )
        capture_exception(exc)
    else:
        logger.warning(f"voting_error | method={request.method} path={request.url.path} error={type(exc).__name__} status_code={exc.status_code}")

    payload = {"success": False, "message": exc.message, "error": type(exc).__name__}
    headers = None
    if isinstance(exc, ResendCooldownActive):
        payload["retry_after"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with production-safe messages."""
    logger.warning(f"validation_error | method={request.method} path={request.url.path} errors={exc.errors()}")

    if not _debug():
        payload = {"success": False, "message": "Invalid request data"}
    else:
        # one "field_path: error_message" line per error
        error_messages = []
        for err in exc.errors():
            field_path = " -> ".join(str(loc) for loc in err.get("loc", []))
            error_messages.append(f"{field_path}: {err.get('msg', 'Invalid input')}")

        if len(error_messages) == 1:
            payload = {"success": False, "message": error_messages[0]}
        else:
            payload = {"success": False, "message": "Validation errors", "errors": error_messages}

    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)


async def _http_exception_handler(request: Request, exc: Any):
    """Handle HTTP exceptions with production-safe messages."""
    status_code = getattr(exc, 'status_code', status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, 'detail', str(exc))
    if status_code >= 500:
        logger.error(f"http_exception | method={request.method} path={request.url.path} status_code={status_code} detail={detail}", exc_info=True)
        add_breadcrumb(
            message=f"HTTP {status_code} error on {request.method} {request.url.path}",
            category="http",
            level="error",
            data={"status_code": status_code, "detail": detail},
        )
        capture_exception(exc)
    else:
        logger.warning(f"http_exception | method={request.method} path={request.url.path} status_code={status_code} detail={detail}")

    if not _debug():
        if status_code == 404:
            message = "Resource not found"
        elif status_code == 403:
            message = "Access denied"
        elif status_code == 401:
            message = "Authentication required"
        elif 400 <= status_code < 500:
            message = "Invalid request"
        else:
            message = "Something went wrong"
    else:
        message = detail

    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def _general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with production-safe messages."""
    logger.error(
        f"unhandled_exception | method={request.method} path={request.url.path} exception_type={type(exc).__name__} exception_message={exc}",
        exc_info=exc,
    )
    add_breadcrumb(
        message=f"Unhandled exception on {request.method} {request.url.path}",
        category="exception",
        level="error",
        data={"exception_type": type(exc).__name__},
    )
    capture_exception(exc)

    if not _debug():
        payload = {"success": False, "message": "Something went wrong"}
    else:
        payload = {"success": False, "message": f"Internal server error: {exc}"}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the given FastAPI instance."""
    app.add_exception_handler(VotingError, _voting_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _general_exception_handler)

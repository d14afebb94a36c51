"""Error taxonomy and normalized HTTP handlers."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from trybud.core.logging import LOGGER_NAME, get_request_id, log_event


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


# Caller / validation errors. Rejected before any ledger call.
class InvalidParametersError(AppError, ValueError):
    code = "invalid_parameters"
    status_code = 400


class InvalidDurationError(InvalidParametersError):
    """Duration is not one of the published tiers."""
    code = "invalid_duration"


class UnknownStageError(InvalidParametersError):
    """Buddy stage outside the fixed label table."""
    code = "unknown_stage"


class UnauthenticatedError(AppError):
    """No wallet address is attached to a write operation."""
    code = "unauthenticated"
    status_code = 401


class ForbiddenError(AppError):
    code = "forbidden"
    status_code = 403


class QuestNotFoundError(AppError, LookupError):
    code = "quest_not_found"
    status_code = 404


# State preconditions.
class QuestNotActiveError(AppError):
    code = "quest_not_active"
    status_code = 409


class QuestAlreadyCompleteError(AppError):
    """Every day of the quest has already been credited."""
    code = "quest_already_complete"
    status_code = 409


class QuestExpiredError(AppError):
    """The quest passed its end time and is waiting for settlement."""
    code = "quest_expired"
    status_code = 409


class SettlementNotDueError(AppError):
    code = "settlement_not_due"
    status_code = 409


# Remote ledger failures. Never partially applied.
class LedgerRejectedError(AppError):
    code = "ledger_rejected"
    status_code = 502


class StakeTransferFailedError(LedgerRejectedError):
    code = "stake_transfer_failed"


def _request_id_for(request: Request, preferred: Optional[str] = None) -> str:
    return preferred or getattr(request.state, "request_id", None) or get_request_id() or uuid4().hex


def _error_response(request: Request, status_code: int, code: str, message: str, *, request_id: Optional[str] = None) -> JSONResponse:
    """Render the shared error envelope and echo the request id header."""
    rid = _request_id_for(request, request_id)
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "request_id": rid},
            "detail": message,
        },
    )
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    level = "error" if exc.status_code >= 500 else "warning"
    log_event(
        level,
        "app.error",
        request_id=exc.request_id,
        error_code=exc.code,
        extra={"status": exc.status_code, "path": request.url.path, "error_message": exc.message},
    )
    return _error_response(request, exc.status_code, exc.code, exc.message, request_id=exc.request_id)


async def http_error_handler(request: Request, exc: HTTPException):
    code = "not_found" if exc.status_code == 404 else "http_error"
    log_event("warning", "http.error", error_code=code, extra={"status": exc.status_code, "path": request.url.path})
    return _error_response(request, exc.status_code, code, str(exc.detail or "HTTP error"))


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "invalid request")
    message = f"{location}: {reason}" if location else reason
    log_event("warning", "request.invalid", error_code="validation_error", extra={"path": request.url.path, "reason": message})
    return _error_response(request, 422, "validation_error", message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.getLogger(LOGGER_NAME).error(
        "unhandled.exception",
        exc_info=exc,
        extra={"request_id": _request_id_for(request), "error_code": "internal_error"},
    )
    return _error_response(request, 500, "internal_error", "Unexpected error")

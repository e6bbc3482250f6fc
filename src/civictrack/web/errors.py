"""HTTP error mapping for report endpoints.

Rejections always carry a stable ``error`` code in the body; clients
branch on it rather than on any message text.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from civictrack.core.errors import (
    ConcurrencyConflictError,
    ReportNotFoundError,
    UserNotFoundError,
)
from civictrack.core.types import ReasonCode

# Everything else a guard rejects is a conflict with the report's state.
_BAD_REQUEST_REASONS = frozenset({ReasonCode.AFTER_PHOTOS_LIMIT})


class TransitionRejected(Exception):
    def __init__(self, reason: ReasonCode | str) -> None:
        super().__init__(str(reason))
        self.reason = str(reason)


def status_for_reason(reason: str) -> int:
    if reason in _BAD_REQUEST_REASONS:
        return 400
    if reason == ReasonCode.FORBIDDEN:
        return 403
    return 409


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TransitionRejected)
    async def _rejected(request: Request, exc: TransitionRejected) -> JSONResponse:
        return JSONResponse(status_code=status_for_reason(exc.reason), content={"error": exc.reason})

    @app.exception_handler(ConcurrencyConflictError)
    async def _conflict(request: Request, exc: ConcurrencyConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": "concurrent_modification"})

    @app.exception_handler(ReportNotFoundError)
    async def _report_missing(request: Request, exc: ReportNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "detail": f"Report {exc.report_id!r} not found"},
        )

    @app.exception_handler(UserNotFoundError)
    async def _user_missing(request: Request, exc: UserNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "detail": f"User {exc.user_id!r} not found"},
        )

    @app.exception_handler(PermissionError)
    async def _forbidden(request: Request, exc: PermissionError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"error": "forbidden", "detail": str(exc)})

    @app.exception_handler(ValueError)
    async def _bad_request(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "bad_request", "detail": str(exc)})

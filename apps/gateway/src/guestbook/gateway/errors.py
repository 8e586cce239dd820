"""错误响应 -- 统一 {"error": {"code", "message"}} 结构

核心层异常在此映射为 HTTP 状态码，核心层本身不感知 HTTP。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from guestbook.core.exceptions import (
    InvalidCursorError,
    MessageValidationError,
    StoreReadError,
    StoreWriteError,
)
from starlette.responses import JSONResponse

log = structlog.get_logger()


class ApiError(Exception):
    """Gateway 层错误（鉴权失败、请求体非法等）"""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message)


async def _invalid_cursor_handler(request: Request, exc: InvalidCursorError) -> JSONResponse:
    await log.ainfo("invalid_cursor", reason=exc.reason)
    return error_response(400, "INVALID_CURSOR", "Pagination cursor is malformed")


async def _validation_handler(
    request: Request, exc: MessageValidationError
) -> JSONResponse:
    return error_response(400, "VALIDATION_ERROR", f"{exc.field}: must be a positive integer")


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    return error_response(400, "VALIDATION_ERROR", f"Invalid request parameters: {fields}")


async def _store_error_handler(
    request: Request, exc: StoreWriteError | StoreReadError
) -> JSONResponse:
    await log.aerror(
        "store_error",
        error_type=type(exc).__name__,
        key=exc.key,
        error=str(exc),
    )
    return error_response(503, "STORE_UNAVAILABLE", "Message store is unavailable")


def register_exception_handlers(app: FastAPI) -> None:
    """注册异常 -> 错误响应映射"""
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(InvalidCursorError, _invalid_cursor_handler)
    app.add_exception_handler(MessageValidationError, _validation_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StoreWriteError, _store_error_handler)
    app.add_exception_handler(StoreReadError, _store_error_handler)

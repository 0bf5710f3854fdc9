"""API 错误信封

所有错误响应统一为 {"error": {"code": ..., "message": ...}}。
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse


class ApiError(Exception):
    """可直接映射为 HTTP 错误响应的异常"""

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


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体/参数校验失败 -> 422 + 错误信封"""
    message = "invalid request"
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "invalid value")
        if location:
            message = f"{location}: {message}"
    return error_response(422, "VALIDATION_ERROR", message)

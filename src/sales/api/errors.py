"""Response envelope and API error rendering.

Read and write endpoints answer ``{success, data?, error?, message?}``;
errors raised as ``ApiError`` are rendered in the same shape.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, details: Any = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    @classmethod
    def from_validation(cls, exc: ValidationError) -> "ApiError":
        return cls(400, "Validation failed", details=exc.messages)


def envelope(data: Any = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def error_body(error: str, details: Any = None) -> dict:
    body: dict[str, Any] = {"success": False, "error": error}
    if details:
        body["details"] = details
    return body


async def _render_api_error(request: Request, exc: ApiError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.details))


def register_api_error_handler(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _render_api_error)

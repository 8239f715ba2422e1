from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(success: bool, message: str, data: Optional[Any] = None, error: Optional[str] = None) -> dict:
    """Build the uniform response body. ``data``/``error`` are left out when unset."""
    body = {"success": success, "message": message}
    if error is not None:
        body["error"] = error
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body


def success_response(message: str, data: Optional[Any] = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(True, message, data))


def error_response(status_code: int, error: str, message: str, data: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, message, data, error))

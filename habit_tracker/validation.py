"""Request-body validation that runs ahead of authentication."""

from typing import Any, Callable, Dict, List, Sequence, Type, TypeVar

from fastapi import Request, status
from pydantic import BaseModel, ValidationError

from .errors import ApiError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Leading location segments FastAPI adds that are not part of the field name
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _field_name(loc: Sequence[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _error_message(error: Dict[str, Any]) -> str:
    # Messages raised by our own validators come through as value_error with
    # pydantic's "Value error, " prefix; report the original text instead.
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return error.get("msg", "Invalid value")


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    return [
        {"field": _field_name(error.get("loc", ())), "message": _error_message(error)}
        for error in errors
    ]


def validation_failed(details: List[Dict[str, str]]) -> ApiError:
    return ApiError(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Validation failed",
        data=details,
    )


def validate_body(schema: Type[SchemaT]) -> Callable[[Request], Any]:
    """Dependency factory that parses the JSON body into ``schema``.

    Declare it before the authentication dependency so malformed input is
    rejected first.
    """

    async def dependency(request: Request) -> SchemaT:
        try:
            payload = await request.json()
        except ValueError:
            raise validation_failed(
                [{"field": "body", "message": "Request body must be valid JSON"}]
            )
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise validation_failed(format_validation_errors(exc.errors()))

    return dependency

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from fastapi import status

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Failure that is rendered as an error envelope."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.data = data


class StorageError(Exception):
    """The persistence service failed or could not be reached."""


class GenerationError(Exception):
    """The text-generation service failed or could not be reached."""


class GenerationParseError(GenerationError):
    """The generated text held no usable schedule."""


def not_found(error: str, message: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, error, message)


@contextmanager
def operation(error: str, message: str) -> Iterator[None]:
    """Collapse unexpected failures inside a handler into a 500 envelope.

    ApiError passes through untouched so handlers can still answer with
    precise 4xx codes from inside the block.
    """
    try:
        yield
    except ApiError:
        raise
    except GenerationParseError:
        logger.exception("%s: generated schedule could not be parsed", error)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "GENERATION_PARSE_ERROR",
            "Failed to parse AI-generated schedule",
        )
    except Exception:
        logger.exception("%s: %s", error, message)
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, error, message)

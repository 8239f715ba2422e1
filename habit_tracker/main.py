import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import API_PREFIX, API_VERSION, CORS_ORIGINS
from .errors import ApiError
from .logging_config import configure_logging
from .responses import error_response, success_response
from .routers import auth, habits, schedules, tasks
from .routers.auth import get_optional_user
from .schemas.user import TokenData
from .services.generation import OpenAIScheduleGenerator, ScheduleGenerator
from .services.storage import Storage, build_storage
from .validation import format_validation_errors

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", "Route not found"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", "Method not allowed"),
}


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as an error envelope."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return error_response(exc.status_code, exc.error, exc.message, exc.data)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "Validation failed",
            format_validation_errors(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        error, message = _HTTP_ERROR_CODES.get(exc.status_code, ("HTTP_ERROR", str(exc.detail)))
        return error_response(exc.status_code, error, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "Internal server error",
        )


def create_app(
    storage: Optional[Storage] = None,
    generator: Optional[ScheduleGenerator] = None,
) -> FastAPI:
    """Build the API with the given collaborators (configured defaults otherwise)."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.storage.open()
        logger.info("Habit Tracker API started")
        yield
        await app.state.storage.close()

    app = FastAPI(
        title="Habit Tracker API",
        description="Habit tracking API with AI-generated daily schedules",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.storage = storage if storage is not None else build_storage()
    app.state.generator = generator if generator is not None else OpenAIScheduleGenerator()

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
    app.include_router(habits.router, prefix=f"{API_PREFIX}/habits", tags=["habits"])
    app.include_router(schedules.router, prefix=f"{API_PREFIX}/schedules", tags=["schedules"])
    app.include_router(tasks.router, prefix=f"{API_PREFIX}/tasks", tags=["tasks"])

    @app.get("/")
    def read_root(current_user: Optional[TokenData] = Depends(get_optional_user)):
        return success_response("Welcome to Habit Tracker API", {
            "version": API_VERSION,
            "authenticated": current_user is not None,
            "endpoints": {
                "auth": f"{API_PREFIX}/auth",
                "habits": f"{API_PREFIX}/habits",
                "schedules": f"{API_PREFIX}/schedules",
                "tasks": f"{API_PREFIX}/tasks",
                "health": "/health",
            },
        })

    @app.get("/health")
    def health_check():
        return success_response("Habit Tracker API is running", {
            "timestamp": datetime.utcnow().isoformat(),
            "version": API_VERSION,
        })

    return app


app = create_app()

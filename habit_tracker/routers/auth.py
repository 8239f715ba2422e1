import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from ..errors import ApiError, operation
from ..responses import success_response
from ..schemas.user import AuthResponse, TokenData, UserCreate, UserLogin, UserUpdate
from ..security import (
    create_access_token,
    decode_access_token,
    dummy_password_hash,
    get_password_hash,
    validate_password_strength,
    verify_password,
)
from ..services.storage import Storage, get_storage
from ..validation import validate_body

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _unauthenticated() -> ApiError:
    return ApiError(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "User not authenticated")


async def get_current_user(request: Request) -> TokenData:
    """Identity from the bearer token; rejects the request without one."""
    token = _get_token_from_request(request)
    if not token:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "MISSING_TOKEN",
            "Access token is required",
        )

    token_data = decode_access_token(token)
    if token_data is None:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "INVALID_TOKEN",
            "Invalid or expired token",
        )

    request.state.user = token_data
    return token_data


async def get_optional_user(request: Request) -> Optional[TokenData]:
    """Identity from the bearer token, or None for anonymous callers."""
    token = _get_token_from_request(request)
    token_data = decode_access_token(token) if token else None
    request.state.user = token_data
    return token_data


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    payload: UserCreate = Depends(validate_body(UserCreate)),
    storage: Storage = Depends(get_storage),
):
    """Create a new user account."""
    password_errors = validate_password_strength(payload.password)
    if password_errors:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "PASSWORD_VALIDATION_ERROR",
            "Password validation failed",
            data=password_errors,
        )

    with operation("SIGNUP_ERROR", "Failed to create user account"):
        if await storage.get_user_by_email(payload.email):
            raise ApiError(
                status.HTTP_409_CONFLICT,
                "USER_EXISTS",
                "User with this email already exists",
            )

        password_hash = await run_in_threadpool(get_password_hash, payload.password)
        user = await storage.create_user(
            email=payload.email,
            username=payload.username,
            password_hash=password_hash,
        )
        token = create_access_token(user)

    logger.info("User %s signed up", user.id)
    return success_response(
        "User created successfully",
        AuthResponse(user=user.to_public(), token=token),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(
    payload: UserLogin = Depends(validate_body(UserLogin)),
    storage: Storage = Depends(get_storage),
):
    """Sign in and get a token. Unknown email and wrong password look the same."""
    with operation("LOGIN_ERROR", "Failed to authenticate user"):
        user = await storage.get_user_by_email(payload.email)
        password_hash = user.password_hash if user else await run_in_threadpool(dummy_password_hash)
        password_ok = await run_in_threadpool(verify_password, payload.password, password_hash)
        if user is None or not password_ok:
            raise ApiError(
                status.HTTP_401_UNAUTHORIZED,
                "INVALID_CREDENTIALS",
                "Invalid email or password",
            )
        token = create_access_token(user)

    return success_response(
        "Login successful",
        AuthResponse(user=user.to_public(), token=token),
    )


@router.get("/profile")
async def get_profile(
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("PROFILE_ERROR", "Failed to retrieve user profile"):
        user = await storage.get_user_by_id(current_user.user_id)
        if user is None:
            raise _unauthenticated()

    return success_response("Profile retrieved successfully", user.to_public())


@router.patch("/profile")
async def update_profile(
    payload: UserUpdate = Depends(validate_body(UserUpdate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Apply only the profile fields present in the request."""
    changes = payload.model_dump(exclude_unset=True)

    with operation("UPDATE_PROFILE_ERROR", "Failed to update user profile"):
        if changes:
            user = await storage.update_user(current_user.user_id, changes)
        else:
            user = await storage.get_user_by_id(current_user.user_id)
        if user is None:
            raise _unauthenticated()

    return success_response("Profile updated successfully", user.to_public())

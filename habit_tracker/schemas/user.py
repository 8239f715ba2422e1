import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, ValidationInfo, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")
USERNAME_MESSAGE = (
    "Username must be 3-30 characters long and contain only letters, numbers, and underscores"
)


def _check_username(value: str) -> str:
    if not USERNAME_PATTERN.match(value):
        raise ValueError(USERNAME_MESSAGE)
    return value


class UserCreate(BaseModel):
    """Signup payload."""
    email: EmailStr
    username: str
    password: str
    confirm_password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, value: str, info: ValidationInfo) -> str:
        if value != info.data.get("password"):
            raise ValueError("Password confirmation does not match password")
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class UserUpdate(BaseModel):
    """Profile update; only the fields that were sent are applied."""
    username: Optional[str] = None
    is_setup_complete: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError(USERNAME_MESSAGE)
        return _check_username(value)

    @field_validator("is_setup_complete")
    @classmethod
    def check_setup_flag(cls, value: Optional[bool]) -> Optional[bool]:
        if value is None:
            raise ValueError("is_setup_complete must be a boolean value")
        return value


class User(BaseModel):
    """Public view of a user. Never carries the password hash."""
    id: str
    email: str
    username: str
    created_at: datetime
    is_setup_complete: bool = False

    class Config:
        from_attributes = True


class UserRecord(User):
    """User as stored, including the password hash."""
    password_hash: str

    def to_public(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            username=self.username,
            created_at=self.created_at,
            is_setup_complete=self.is_setup_complete,
        )


class TokenData(BaseModel):
    """Identity carried by an access token."""
    user_id: str
    email: str
    username: str


class AuthResponse(BaseModel):
    user: User
    token: str

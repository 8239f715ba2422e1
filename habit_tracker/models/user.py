from sqlmodel import SQLModel, Field
from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from datetime import datetime
from uuid import uuid4

class User(SQLModel, table=True):
    """User account row."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(unique=True, index=True)
    username: str
    password_hash: str
    created_at: NaiveDatetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    is_setup_complete: bool = Field(default=False)

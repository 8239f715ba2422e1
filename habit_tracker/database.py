from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool, StaticPool

# Import all models to ensure they are registered with SQLModel metadata
from .models import Habit, Schedule, TaskCompletion, User  # noqa: F401


def create_db_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                echo=False,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        return create_engine(database_url, echo=False, connect_args=connect_args)

    # Neon/Postgres: disable pooling for serverless and enable pre-ping
    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=engine)

"""Database engine ownership and session management."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Database:
    """Owns the engine and session factory for one process.

    Created once at application startup and handed to whatever needs a session.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        )
        self.session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session from the application's database."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()

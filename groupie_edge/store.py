"""
Credential Store
================

Owns the pooled SQLAlchemy engine behind the account API and exposes the two
operations the auth service needs: create a user and fetch one by id.

Pool policy (MySQL):
    - at most DB_MAX_OPEN_CONNS open connections (pool_size + max_overflow)
    - DB_POOL_SIZE connections kept idle
    - connections recycled after DB_CONN_MAX_LIFETIME_SECONDS
    - pre-ping on checkout, driver connect/read/write timeouts of
      DB_TIMEOUT_SECONDS

``CredentialStore.connect`` pings eagerly and returns ``None`` when the
database cannot be reached; the caller keeps running without a store.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import Integer, String, UniqueConstraint, create_engine, select, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class StoreError(Exception):
    """Database operation failed."""


class DuplicateUserError(StoreError):
    """Insert rejected by a uniqueness constraint."""


# =============================================================================
# Schema
# =============================================================================

class Base(DeclarativeBase):
    """Declarative base for ORM models."""


class User(Base):
    """
    Row of the ``user`` table.

    Column names follow the existing MySQL schema; ``password`` holds the
    bcrypt hash, never the plaintext.
    """
    __tablename__ = "user"
    __table_args__ = (UniqueConstraint("Nom", "Prénom", name="uq_user_nom_prenom"),)

    id: Mapped[int] = mapped_column("id_user", Integer, primary_key=True, autoincrement=True)
    last_name: Mapped[str] = mapped_column("Nom", String(100), nullable=False)
    first_name: Mapped[str] = mapped_column("Prénom", String(100), nullable=False)
    sex: Mapped[str] = mapped_column("sexe", String(20), nullable=False)
    password_hash: Mapped[str] = mapped_column("password", String(255), nullable=False)


@dataclass(frozen=True)
class UserRecord:
    """Detached copy of a user row handed to the auth service."""
    id: int
    last_name: str
    first_name: str
    sex: str
    password_hash: str


# =============================================================================
# Engine Construction
# =============================================================================

def engine_options(settings: Settings, url: URL) -> Dict[str, Any]:
    """
    Build create_engine keyword arguments for the configured backend.

    SQLite (tests, local development) uses its own pool classes, so the
    MySQL pool sizing only applies to server databases.
    """
    if url.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    options = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OPEN_CONNS - settings.DB_POOL_SIZE,
        "pool_recycle": settings.DB_CONN_MAX_LIFETIME_SECONDS,
        "pool_pre_ping": True,
    }
    if url.get_backend_name() == "mysql":
        timeout = settings.DB_TIMEOUT_SECONDS
        options["connect_args"] = {
            "connect_timeout": timeout,
            "read_timeout": timeout,
            "write_timeout": timeout,
        }
    return options


# =============================================================================
# Store
# =============================================================================

class CredentialStore:
    """
    User persistence over a pooled SQLAlchemy engine.

    Safe to share between worker threads: every call checks a connection out
    of the pool through its own session.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        url = settings.database_url
        engine = create_engine(url, **engine_options(settings, url))
        return cls(engine)

    @classmethod
    def connect(cls, settings: Settings) -> Optional["CredentialStore"]:
        """
        Create the store and check the database is reachable.

        Returns:
            A ready store, or None when the engine cannot be built or the
            ping fails. There is no retry; the caller runs degraded.
        """
        try:
            store = cls.from_settings(settings)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            logger.error(f"DB disabled (engine setup failed): {e}")
            return None

        try:
            store.ping()
            if settings.DB_CREATE_SCHEMA:
                store.create_schema()
        except StoreError as e:
            logger.error(f"DB disabled (init failed): {e}")
            store.close()
            return None

        logger.info(
            "DB connection established",
            extra={"database": settings.database_url.render_as_string(hide_password=True)},
        )
        return store

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError(f"ping failed: {e}") from e

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StoreError(f"schema creation failed: {e}") from e

    def create_user(self, last_name: str, first_name: str, sex: str, password_hash: str) -> int:
        """
        Insert a user row and return its generated id.

        Raises:
            DuplicateUserError: The (Nom, Prénom) pair already exists.
            StoreError: Any other database failure.
        """
        user = User(
            last_name=last_name,
            first_name=first_name,
            sex=sex,
            password_hash=password_hash,
        )
        with self._sessions() as session:
            try:
                session.add(user)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateUserError(str(e.orig)) from e
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreError(str(e)) from e
            return user.id

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        """
        Fetch a user by id.

        Returns:
            The user record, or None when no row has this id.

        Raises:
            StoreError: The lookup itself failed.
        """
        try:
            with self._sessions() as session:
                user = session.scalars(select(User).where(User.id == user_id)).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        if user is None:
            return None

        return UserRecord(
            id=user.id,
            last_name=user.last_name,
            first_name=user.first_name,
            sex=user.sex,
            password_hash=user.password_hash,
        )

    def close(self) -> None:
        self._engine.dispose()

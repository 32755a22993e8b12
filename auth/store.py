"""
auth/store.py -- Credential Store contract and its SQLAlchemy Core implementation.

Pattern: Repository + Data Mapper.
CredentialStore is the contract AuthService depends on; SQLCredentialStore is
the repository; _row_to_user / _row_to_app are the mappers. AuthService never
touches SQL directly.

Contract (any persistence technology may implement it):
  save_user(ctx, email, pass_hash) -> int        raises DuplicateUserError
  get_user_by_email(ctx, email)    -> User       raises UserNotFoundError
  get_admin_flag(ctx, user_id)     -> bool       raises UserNotFoundError
  get_app(ctx, app_id)             -> App        raises AppNotFoundError

  Every method takes the request context first and must call ctx.check()
  before doing any I/O. Email uniqueness and atomic id assignment are the
  store's job; the service does no locking of its own.

Security:
  All queries use bound parameters. No f-strings in SQL.
  UNIQUE(email) is enforced by the database, so two concurrent registrations
  of the same email cannot both commit.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import AppNotFoundError, DuplicateUserError, UserNotFoundError
from auth.models import App, User
from core.context import RequestContext

# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def save_user(self, ctx: RequestContext, email: str, pass_hash: bytes) -> int: ...

    def get_user_by_email(self, ctx: RequestContext, email: str) -> User: ...

    def get_admin_flag(self, ctx: RequestContext, user_id: int) -> bool: ...

    def get_app(self, ctx: RequestContext, app_id: int) -> App: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", String(255), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on a registration write.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SQLCredentialStore:
    """SQLAlchemy Core implementation of CredentialStore.

    Usage:
        store = SQLCredentialStore("sqlite:///./sso.db")
        app_id = store.create_app("web", "a-long-random-secret")
        user_id = store.save_user(ctx, "alice@example.com", hash_password("pw"))
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # CredentialStore contract
    # ------------------------------------------------------------------

    def save_user(self, ctx: RequestContext, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned id.

        The INSERT runs in a single transaction: on any failure nothing is
        committed. Raises DuplicateUserError if the email is already taken.
        """
        ctx.check()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash, is_admin=False))
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUserError(f"email already registered: {email}") from exc
        return user_id

    def get_user_by_email(self, ctx: RequestContext, email: str) -> User:
        """Look up a user by exact email (case-sensitive)."""
        ctx.check()
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise UserNotFoundError(f"no user with email {email}")
        return _row_to_user(row)

    def get_admin_flag(self, ctx: RequestContext, user_id: int) -> bool:
        ctx.check()
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise UserNotFoundError(f"no user with id {user_id}")
        return bool(row.is_admin)

    def get_app(self, ctx: RequestContext, app_id: int) -> App:
        ctx.check()
        with self.engine.connect() as conn:
            row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        if row is None:
            raise AppNotFoundError(f"no app with id {app_id}")
        return _row_to_app(row)

    # ------------------------------------------------------------------
    # Operator-only (main.py); not part of the service contract
    # ------------------------------------------------------------------

    def create_app(self, name: str, secret: str) -> int:
        """Register a relying application and return its id.

        Raises ValueError on an empty secret: a token signed with an empty
        key could be forged by anyone. Raises sqlalchemy IntegrityError if
        the name is taken.
        """
        if not secret:
            raise ValueError("app secret must not be empty")
        with self.engine.begin() as conn:
            result = conn.execute(_apps.insert().values(name=name, secret=secret))
            return result.inserted_primary_key[0]

    def set_admin(self, user_id: int, is_admin: bool = True) -> bool:
        """Grant or revoke admin. Returns False if user_id was not found."""
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(is_admin=is_admin))
        return result.rowcount > 0

    def count_users(self, email: str | None = None) -> int:
        """Return the number of user rows, optionally for one email."""
        query = select(func.count()).select_from(_users)
        if email is not None:
            query = query.where(_users.c.email == email)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar_one()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)

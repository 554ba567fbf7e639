"""
accounts/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user is the mapper. Workflow, route and CLI code never touch SQL
directly.

The storage capability (a SQLAlchemy Engine and its connection pool) is
injected at construction. build_engine() is the one place that knows how to
turn a URL into a configured engine; tests hand in in-memory engines.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Plaintext passwords only ever exist as arguments to create() and
  update_password(); they are hashed before any statement is built.

Errors:
  Every statement runs inside _connect(). SQLAlchemy failures are logged and
  re-raised as StorageError (UniquenessViolation for unique-key collisions).
  Nothing is retried. "Not found" is a None / 0 result, not an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from accounts.errors import StorageError, UniquenessViolation
from accounts.models import NewUser, ProfileUpdate, User
from accounts.passwords import hash_password

logger = logging.getLogger("accounts.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "user_list",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name_1", String(100), nullable=False),
    Column("last_name_2", String(100)),
    Column("username", String(100), nullable=False, unique=True),
    Column("user_password", String(255), nullable=False),  # bcrypt hash
    Column("email", String(255), nullable=False, unique=True),
    Column("verified", Integer, nullable=False, server_default="0"),
)

_admins = Table(
    "admin_list",
    _metadata,
    Column("user_id", Integer, ForeignKey("user_list.id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign keys on every new SQLite connection.

    PRAGMAs are per-connection in SQLite and are not inherited from the pool.
    foreign_keys=ON makes admin_list rows follow their user on delete.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(db_url: str) -> Engine:
    """Create an Engine for db_url, applying SQLite-specific settings when needed."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


# Only the first line of the driver message is inspected: PostgreSQL appends a
# DETAIL line echoing the conflicting value, which may contain anything.
#   SQLite:     UNIQUE constraint failed: user_list.email
#   PostgreSQL: duplicate key value violates unique constraint "user_list_email_key"
_UNIQUE_MARKERS = ("unique constraint failed", "violates unique constraint")
_UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    "username": ("user_list.username", "user_list_username_key"),
    "email": ("user_list.email", "user_list_email_key"),
}


def _driver_message(exc: IntegrityError) -> str:
    lines = str(exc.orig).strip().lower().splitlines()
    return lines[0] if lines else ""


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = _driver_message(exc)
    return any(marker in message for marker in _UNIQUE_MARKERS)


def _violated_field(exc: IntegrityError) -> str | None:
    message = _driver_message(exc)
    for field, names in _UNIQUE_FIELDS.items():
        if any(name in message for name in names):
            return field
    return None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User rows and admin membership.

    Usage:
        store = CredentialStore(build_engine("sqlite:///accounts.db"))
        store.create(NewUser(username="alice", email="a@example.com",
                             first_name="Alice", last_name_1="Smith",
                             password="s3cret"))
        user = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self.engine = engine
        if create_schema:
            try:
                _metadata.create_all(self.engine)
            except SQLAlchemyError as exc:
                logger.error("Schema creation failed: %s", exc)
                raise StorageError("Could not initialize the account schema") from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a connection, translating SQLAlchemy failures into StorageError."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError as exc:
            if not _is_unique_violation(exc):
                logger.error("Integrity failure: %s", _driver_message(exc))
                raise StorageError("Account store rejected the write") from exc
            field = _violated_field(exc)
            logger.info("Unique constraint violated (field=%s)", field or "unknown")
            raise UniquenessViolation(f"{field or 'value'} already in use", field=field) from exc
        except SQLAlchemyError as exc:
            logger.error("Storage failure: %s", exc.__class__.__name__)
            raise StorageError("Account store unavailable") from exc

    def ping(self) -> bool:
        """Return True if the store answers a trivial query. Used by the health check."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StorageError:
            return False
        return True

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive lookup. Returns None if not found."""
        return self._find_one(_users.c.username == username)

    def find_by_email(self, email: str) -> User | None:
        return self._find_one(_users.c.email == email)

    def find_by_id(self, user_id: int) -> User | None:
        return self._find_one(_users.c.id == user_id)

    def _find_one(self, clause) -> User | None:
        with self._connect() as conn:
            row = conn.execute(_users.select().where(clause)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, new_user: NewUser) -> None:
        """Hash the password and insert the account with verified = False.

        Raises UniquenessViolation if the username or email is taken and
        StorageError if the store cannot be reached.
        """
        password_hash = hash_password(new_user.password)
        with self._connect() as conn:
            conn.execute(
                _users.insert().values(
                    first_name=new_user.first_name,
                    last_name_1=new_user.last_name_1,
                    last_name_2=new_user.last_name_2,
                    username=new_user.username,
                    user_password=password_hash,
                    email=new_user.email,
                    verified=0,
                )
            )
            conn.commit()
        logger.info("Created user %s", new_user.username)

    def update_profile(self, user_id: int, fields: ProfileUpdate) -> int:
        """Apply the non-None fields and reset verified to False.

        verified is reset even when no field is supplied or nothing changes:
        an edited identity has to be re-verified. Returns the number of rows
        affected; 0 means the id is unknown.
        """
        with self._connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields.changes(), verified=0)
            )
            conn.commit()
        return result.rowcount

    def update_password(self, user_id: int, new_password: str) -> None:
        """Replace the stored hash. verified is left untouched."""
        password_hash = hash_password(new_password)
        with self._connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(user_password=password_hash))
            conn.commit()

    def delete_by_id(self, user_id: int) -> int:
        """Delete the account. Returns affected rows; 0 for an unknown id."""
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount

    def delete_by_username(self, username: str) -> int:
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.username == username))
            conn.commit()
        return result.rowcount

    def bulk_verify(self, usernames: Iterable[str]) -> int:
        """Set verified = True for every existing username in the batch.

        Unknown usernames are ignored. Returns the number of rows touched.
        """
        names = sorted(set(usernames))
        if not names:
            return 0
        with self._connect() as conn:
            result = conn.execute(_users.update().where(_users.c.username.in_(names)).values(verified=1))
            conn.commit()
        logger.info("Verified %d of %d requested accounts", result.rowcount, len(names))
        return result.rowcount

    # ------------------------------------------------------------------
    # Admin membership
    # ------------------------------------------------------------------

    def is_admin(self, user_id: int) -> bool:
        """Return True if user_id has a row in admin_list.

        Failures raise StorageError; a failed check is never reported as False.
        """
        with self._connect() as conn:
            row = conn.execute(select(_admins.c.user_id).where(_admins.c.user_id == user_id)).fetchone()
        return row is not None

    def grant_admin(self, user_id: int) -> bool:
        """Add user_id to admin_list.

        Returns True if a membership row was written, False if the user does
        not exist or is already an admin.
        """
        if self.find_by_id(user_id) is None or self.is_admin(user_id):
            return False
        try:
            with self._connect() as conn:
                conn.execute(_admins.insert().values(user_id=user_id))
                conn.commit()
        except UniquenessViolation:
            # A concurrent grant landed first.
            return False
        logger.info("Granted admin to user %d", user_id)
        return True

    def revoke_admin(self, user_id: int) -> bool:
        """Remove user_id from admin_list. Returns True if a row was removed."""
        with self._connect() as conn:
            result = conn.execute(_admins.delete().where(_admins.c.user_id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        first_name=row.first_name,
        last_name_1=row.last_name_1,
        last_name_2=row.last_name_2,
        password_hash=row.user_password,
        verified=bool(row.verified),
    )

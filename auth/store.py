"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The password hash leaves this module through get_by_email() only. Every
  other read maps rows with include_hash=False, so the hash is None on the
  returned User.

  Refresh-token rotation is a single conditional UPDATE
  (WHERE id = :id AND refresh_token = :expected). The compare and the write
  happen in one statement, so two requests presenting the same token cannot
  both rotate it -- the second sees rowcount 0.

  Email uniqueness: UNIQUE constraint in SQL, plus an explicit lookup before
  insert so the service gets DuplicateEmailError instead of a driver error.
  The IntegrityError path covers the race where two inserts pass the lookup.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmailError
from auth.models import User

logger = logging.getLogger("authkit.store")

_DEFAULT_DB_URL = "sqlite:///./authkit.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("refresh_token", Text),  # NULL = logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///./authkit.db")
        user = store.create_user(User(name="Ann", email="ann@x.com", hashed_password=hash_password("secret1")))
        found = store.get_by_email("ann@x.com")
        store.close()
    """

    # Columns update_user() may write. Validated before any SQL so a caller
    # cannot overwrite hashed_password or timestamps through this path.
    _UPDATABLE_FIELDS: frozenset = frozenset({"name", "email", "refresh_token"})

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record (hash excluded).

        Raises DuplicateEmailError if the email is already registered, whether
        detected by the lookup or by the UNIQUE constraint on a racing insert.
        """
        if self.get_by_email(user.email) is not None:
            raise DuplicateEmailError(user.email)
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        refresh_token=user.refresh_token,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc
        logger.info("Created user id=%s", user_id)
        return self.get_by_id(user_id)

    def update_user(self, user_id: int, **fields) -> User | None:
        """Update whitelisted fields on an existing user.

        Unknown keys raise ValueError rather than being silently ignored.
        Returns the updated user (hash excluded), or None if user_id was not found.
        """
        unknown = set(fields) - self._UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def rotate_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """Replace the stored refresh token only if it still equals expected.

        Returns True if the swap happened, False if the user is missing or the
        stored token has already moved on (replay or concurrent rotation).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token == expected))
                .values(refresh_token=new, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def clear_refresh_token(self, user_id: int) -> bool:
        """Drop the stored refresh token. Returns True if the user exists."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token=None, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. The only read that returns the password hash."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row, include_hash=True) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Cheap connectivity probe for the health endpoint."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, include_hash: bool = False) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password if include_hash else None,
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

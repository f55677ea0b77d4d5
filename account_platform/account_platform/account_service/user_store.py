"""
Durable user store backed by a single SQLite file.

The store owns the ``users`` table: it creates it on first run, migrates
older on-disk shapes in place, and hands callers detached ``UserRecord``
copies rather than live ORM objects.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
import logging
import os
import threading
import uuid

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db import Base, create_db_engine, make_session_factory
from .errors import DuplicateEmail, InvalidInput, StorageFailure
from .models import CORE_COLUMNS, PROFILE_COLUMNS, MembershipLevel, User
from .schemas import ProfileUpdate, UserRecord

logger = logging.getLogger(__name__)


class SchemaMigrationError(Exception):
    """The on-disk users table cannot be brought up to the current shape."""


class UserStore:
    def __init__(self, database_path: str):
        self.database_path = database_path
        self._lock = threading.Lock()
        self.engine = self._open()
        self.SessionLocal = make_session_factory(self.engine)

    # ---------------- Startup / schema evolution ----------------

    def _open(self) -> Engine:
        if not os.path.exists(self.database_path):
            engine = create_db_engine(self.database_path)
            Base.metadata.create_all(bind=engine)
            logger.info("[Store] Initialized new user store at %s", self.database_path)
            return engine

        engine = create_db_engine(self.database_path)
        try:
            self._load_existing(engine)
            return engine
        except (SQLAlchemyError, SchemaMigrationError) as e:
            logger.error(
                "[Store] Could not load or migrate %s (%s); falling back to a fresh empty schema",
                self.database_path, e,
            )
            engine.dispose()
            self._quarantine()
            engine = create_db_engine(self.database_path)
            Base.metadata.create_all(bind=engine)
            return engine

    def _load_existing(self, engine: Engine) -> None:
        inspector = inspect(engine)
        if "users" not in inspector.get_table_names():
            Base.metadata.create_all(bind=engine)
            logger.info("[Store] Created users table in existing file %s", self.database_path)
            return

        columns = {col["name"] for col in inspector.get_columns("users")}
        missing_core = [name for name in CORE_COLUMNS if name not in columns]
        if missing_core:
            raise SchemaMigrationError(f"users table is missing core columns: {', '.join(missing_core)}")

        missing = [name for name in PROFILE_COLUMNS if name not in columns]
        if not missing:
            logger.info("[Store] Loaded user store from %s", self.database_path)
            return

        self._migrate(engine, missing)

    def _migrate(self, engine: Engine, missing: list) -> None:
        with engine.begin() as conn:
            for name in missing:
                conn.execute(text(f"ALTER TABLE users ADD COLUMN {name} {PROFILE_COLUMNS[name]}"))
            conn.execute(
                text("UPDATE users SET membership_level = :level WHERE membership_level IS NULL"),
                {"level": MembershipLevel.BRONZE.value},
            )
            conn.execute(text("UPDATE users SET points = 0 WHERE points IS NULL"))
            _normalize_created_at(conn)
            conn.execute(text("CREATE UNIQUE INDEX IF NOT EXISTS ix_users_email ON users (email)"))
            record_count = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()

        columns = {col["name"] for col in inspect(engine).get_columns("users")}
        still_missing = [name for name in PROFILE_COLUMNS if name not in columns]
        if still_missing:
            raise SchemaMigrationError(f"columns still missing after migration: {', '.join(still_missing)}")

        logger.info(
            "[Store] Migrated users table: added columns %s, %d records preserved",
            ", ".join(missing), record_count,
        )

    def _quarantine(self) -> None:
        """Move an unusable store file aside so a fresh one can take its place."""
        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        target = f"{self.database_path}.corrupt-{stamp}"
        try:
            os.replace(self.database_path, target)
        except OSError as e:
            logger.error("[Store] Could not move unusable store file aside: %s", e)
            raise StorageFailure("User store is unusable and could not be reset") from e
        logger.warning("[Store] Unusable store file moved to %s", target)

    # ---------------- Sessions ----------------

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("[Store] Storage operation failed: %s", e)
            raise StorageFailure() from e
        finally:
            db.close()

    # ---------------- Public operations ----------------

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        """
        Insert a new user with default profile values.

        Raises:
            DuplicateEmail: If a user with this exact email already exists
            StorageFailure: If the write could not be committed
        """
        with self._lock, self._session() as db:
            if db.query(User).filter(User.email == email).first():
                raise DuplicateEmail()

            user = User(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                membership_level=MembershipLevel.BRONZE.value,
                points=0,
                created_at=datetime.utcnow(),
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                # Unique constraint is the final word when another writer got there first
                if "email" in str(e.orig).lower():
                    raise DuplicateEmail() from e
                raise StorageFailure() from e

            logger.info("[Store] Created user: user_id=%s", user.id)
            return UserRecord.model_validate(user)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self._session() as db:
            user = db.query(User).filter(User.email == email).first()
            return UserRecord.model_validate(user) if user else None

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._session() as db:
            user = db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    def update_profile(self, user_id: str, update: ProfileUpdate) -> Optional[UserRecord]:
        """
        Apply only the fields present in ``update``.

        Returns:
            The full record after the update, or None if ``user_id`` is unknown
        """
        fields = update.present_fields()
        with self._lock, self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None

            for name, value in fields.items():
                setattr(user, name, value)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise InvalidInput("Profile update violates a constraint", fields=sorted(fields)) from e

            logger.info("[Store] Updated profile: user_id=%s, fields=%s", user_id, sorted(fields))
            return UserRecord.model_validate(user)

    def check_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("[Store] Database connection check failed: %s", e)
            return False

    def close(self) -> None:
        self.engine.dispose()


STORED_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def parse_legacy_timestamp(value: str) -> datetime:
    """
    Parse a created_at string written by an older store version.

    Accepts ``YYYY-MM-DD HH:MM:SS[.ffffff]`` as well as ISO 8601 with a ``T``
    separator and a ``Z`` or numeric offset. Aware values come back as naive UTC.
    """
    cleaned = value.strip()
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError as e:
        raise SchemaMigrationError(f"unrecognised created_at value {value!r}") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _normalize_created_at(conn) -> None:
    """Rewrite every created_at in the one layout the ORM reads back."""
    rows = conn.execute(text("SELECT id, created_at FROM users")).all()
    for user_id, created_at in rows:
        if created_at is None:
            normalized = datetime.utcnow()
        elif isinstance(created_at, str):
            normalized = parse_legacy_timestamp(created_at)
        else:
            raise SchemaMigrationError(f"unrecognised created_at value {created_at!r} for user {user_id}")
        conn.execute(
            text("UPDATE users SET created_at = :created_at WHERE id = :id"),
            {"created_at": normalized.strftime(STORED_TIMESTAMP_FORMAT), "id": user_id},
        )

"""SQLite remote for offline use.

Implements the same identity service and tables as the hosted backend on
a local SQLite file, so the journal works without network access and
tests can exercise the whole sync path.
"""

import hashlib
import hmac
import json
import logging
import secrets
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, Optional

from weekjournal.dates.weeks import parse_week_key
from weekjournal.errors import AuthError, NetworkError
from weekjournal.models import CustomCheck, JournalEntry
from weekjournal.remote.base import (
    AuthCallback,
    BaseRemote,
    Identity,
    Subscription,
    WeekRow,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_PBKDF2_ROUNDS = 100_000


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ROUNDS
    )
    return digest.hex()


class SqliteRemote(BaseRemote):
    """SQLite-backed remote store with a local identity service."""

    REQUIRED_TABLES = [
        "users",
        "journal_settings",
        "journal_weeks",
    ]

    def __init__(self, db_path: Path, session_path: Optional[Path] = None):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
            session_path: Where the signed-in session is kept.
        """
        self.db_path = Path(db_path)
        self.session_path = session_path or self.db_path.parent / "session.json"
        self._listeners: list[AuthCallback] = []
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor, committing on success and mapping SQLite errors."""
        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            raise NetworkError(f"Local store error: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS journal_settings (
                    user_id TEXT PRIMARY KEY,
                    custom_checks TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS journal_weeks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    week_end TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(user_id, week_start)
                )
            """)

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]

    # ==================== Session ====================

    def _save_session(self, identity: Identity) -> None:
        """Save the signed-in identity to file."""
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        session_data = {
            "user_id": identity.id,
            "email": identity.email,
            "timestamp": datetime.now().isoformat(),
        }
        self.session_path.write_text(json.dumps(session_data))

    def _load_session(self) -> Optional[Identity]:
        """Load the signed-in identity from file, if still valid."""
        if not self.session_path.exists():
            return None
        try:
            session_data = json.loads(self.session_path.read_text())
            user_id = session_data["user_id"]
        except (json.JSONDecodeError, KeyError, TypeError):
            return None

        with self._transaction() as cursor:
            cursor.execute("SELECT id, email FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return Identity(id=row["id"], email=row["email"])

    def _clear_session(self) -> None:
        """Remove the stored session."""
        self.session_path.unlink(missing_ok=True)

    def _emit(self, event: str, identity: Optional[Identity]) -> None:
        for callback in list(self._listeners):
            callback(event, identity)

    # ==================== Identity ====================

    def get_user(self) -> Optional[Identity]:
        return self._load_session()

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return Subscription(unsubscribe)

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("A valid email address is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        salt = secrets.token_hex(16)
        identity = Identity(id=str(uuid.uuid4()), email=email)
        try:
            with self._transaction() as cursor:
                cursor.execute(
                    """
                    INSERT INTO users (id, email, password_hash, salt, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        identity.id,
                        email,
                        _hash_password(password, salt),
                        salt,
                        datetime.now().isoformat(),
                    ),
                )
        except NetworkError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise AuthError("User already registered") from e
            raise
        return identity

    def sign_in(self, email: str, password: str) -> Identity:
        email = (email or "").strip().lower()
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT id, email, password_hash, salt FROM users WHERE email = ?",
                (email,),
            )
            row = cursor.fetchone()

        if row is None or not hmac.compare_digest(
            row["password_hash"], _hash_password(password or "", row["salt"])
        ):
            raise AuthError("Invalid login credentials")

        identity = Identity(id=row["id"], email=row["email"])
        self._save_session(identity)
        self._emit("SIGNED_IN", identity)
        return identity

    def sign_out(self) -> None:
        self._clear_session()
        self._emit("SIGNED_OUT", None)

    def reset_password_email(self, email: str) -> None:
        raise AuthError("Password reset emails are not available with the local backend")

    # ==================== Tables ====================

    def fetch_settings(self, user_id: str) -> Optional[list[CustomCheck]]:
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT custom_checks FROM journal_settings WHERE user_id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        try:
            return [CustomCheck.model_validate(item) for item in json.loads(row["custom_checks"])]
        except ValueError as e:
            raise NetworkError(f"Unreadable journal settings: {e}") from e

    def fetch_weeks(self, user_id: str) -> list[WeekRow]:
        with self._transaction() as cursor:
            cursor.execute(
                """
                SELECT week_start, week_end, payload, updated_at
                FROM journal_weeks
                WHERE user_id = ?
                ORDER BY week_start DESC
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        try:
            return [
                WeekRow(
                    week_start=date.fromisoformat(row["week_start"]),
                    week_end=date.fromisoformat(row["week_end"]),
                    payload=json.loads(row["payload"]),
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                )
                for row in rows
            ]
        except ValueError as e:
            raise NetworkError(f"Unreadable journal week: {e}") from e

    def upsert_settings(self, user_id: str, checks: list[CustomCheck]) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO journal_settings (user_id, custom_checks, updated_at)
                VALUES (?, ?, ?)
                """,
                (
                    user_id,
                    json.dumps([check.model_dump(mode="json") for check in checks]),
                    datetime.now().isoformat(),
                ),
            )

    def upsert_week(self, user_id: str, key: str, entry: JournalEntry) -> None:
        start, end = parse_week_key(key)
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO journal_weeks
                (user_id, week_start, week_end, payload, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    start.isoformat(),
                    end.isoformat(),
                    json.dumps(entry.to_document()),
                    datetime.now().isoformat(),
                ),
            )

"""Supabase remote implementation."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from supabase import Client, create_client

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

SETTINGS_TABLE = "journal_settings"
WEEKS_TABLE = "journal_weeks"


def _identity(user: Any) -> Optional[Identity]:
    if user is None or not getattr(user, "id", None):
        return None
    return Identity(id=str(user.id), email=getattr(user, "email", None))


class SupabaseRemote(BaseRemote):
    """Supabase implementation of the remote store.

    Uses Supabase Auth for identity and two Postgres tables for data.
    Session tokens are kept on disk so consecutive CLI runs share a
    session.
    """

    def __init__(
        self,
        url: str,
        key: str,
        session_path: Optional[Path] = None,
        client: Optional[Client] = None,
    ):
        """Initialize the Supabase remote.

        Args:
            url: Supabase project URL.
            key: Supabase anon key.
            session_path: Path to store session tokens.
            client: Pre-built client (mainly for tests).
        """
        self.url = url
        self.key = key
        self.session_path = session_path or Path.home() / ".config" / "weekjournal" / "session.json"
        try:
            self._client = client or create_client(url, key)
        except Exception as e:
            raise NetworkError(f"Could not create Supabase client: {e}") from e
        self._client.auth.on_auth_state_change(self._track_session)
        self._restore_session()

    # ==================== Session ====================

    def _save_session(self, session: Any) -> None:
        """Save session tokens to file."""
        if session is None or not getattr(session, "access_token", None):
            return
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        session_data = {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "timestamp": datetime.now().isoformat(),
        }
        self.session_path.write_text(json.dumps(session_data))

    def _clear_session(self) -> None:
        """Clear stored session tokens."""
        self.session_path.unlink(missing_ok=True)

    def _restore_session(self) -> bool:
        """Load stored tokens into the client.

        Returns:
            True if a session was restored, False otherwise.
        """
        if not self.session_path.exists():
            return False
        try:
            session_data = json.loads(self.session_path.read_text())
            self._client.auth.set_session(
                session_data["access_token"], session_data["refresh_token"]
            )
            return True
        except (json.JSONDecodeError, KeyError, TypeError):
            self._clear_session()
            return False
        except Exception as e:
            logger.warning("Stored Supabase session rejected: %s", e)
            self._clear_session()
            return False

    def _track_session(self, event: str, session: Any) -> None:
        if event == "SIGNED_OUT":
            self._clear_session()
        elif session is not None:
            self._save_session(session)

    # ==================== Identity ====================

    def get_user(self) -> Optional[Identity]:
        try:
            response = self._client.auth.get_user()
        except Exception as e:
            raise NetworkError(f"Could not fetch current user: {e}") from e
        return _identity(getattr(response, "user", None)) if response else None

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        def relay(event: str, session: Any) -> None:
            callback(str(event), _identity(getattr(session, "user", None)))

        subscription = self._client.auth.on_auth_state_change(relay)
        return Subscription(subscription.unsubscribe)

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        try:
            response = self._client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            raise AuthError(str(e) or "Sign up failed") from e
        if getattr(response, "session", None) is None:
            return None
        return _identity(response.user)

    def sign_in(self, email: str, password: str) -> Identity:
        try:
            response = self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise AuthError(str(e) or "Sign in failed") from e
        identity = _identity(getattr(response, "user", None))
        if identity is None:
            raise AuthError("Sign in failed")
        self._save_session(response.session)
        return identity

    def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except Exception as e:
            raise NetworkError(f"Sign out failed: {e}") from e
        finally:
            self._clear_session()

    def reset_password_email(self, email: str) -> None:
        try:
            self._client.auth.reset_password_for_email(email)
        except Exception as e:
            raise AuthError(str(e) or "Could not send reset email") from e

    # ==================== Tables ====================

    def fetch_settings(self, user_id: str) -> Optional[list[CustomCheck]]:
        try:
            response = (
                self._client.table(SETTINGS_TABLE)
                .select("custom_checks")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise NetworkError(f"Could not fetch settings: {e}") from e
        if not response.data:
            return None
        return [
            CustomCheck.model_validate(item)
            for item in response.data[0].get("custom_checks") or []
        ]

    def fetch_weeks(self, user_id: str) -> list[WeekRow]:
        try:
            response = (
                self._client.table(WEEKS_TABLE)
                .select("week_start,week_end,payload,updated_at")
                .eq("user_id", user_id)
                .order("week_start", desc=True)
                .execute()
            )
        except Exception as e:
            raise NetworkError(f"Could not fetch journal weeks: {e}") from e
        return [WeekRow.model_validate(row) for row in response.data or []]

    def upsert_settings(self, user_id: str, checks: list[CustomCheck]) -> None:
        row = {
            "user_id": user_id,
            "custom_checks": [check.model_dump(mode="json") for check in checks],
            "updated_at": datetime.now().astimezone().isoformat(),
        }
        try:
            self._client.table(SETTINGS_TABLE).upsert(row, on_conflict="user_id").execute()
        except Exception as e:
            raise NetworkError(f"Could not save settings: {e}") from e

    def upsert_week(self, user_id: str, key: str, entry: JournalEntry) -> None:
        start, end = parse_week_key(key)
        row = {
            "user_id": user_id,
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "payload": entry.to_document(),
            "updated_at": datetime.now().astimezone().isoformat(),
        }
        try:
            (
                self._client.table(WEEKS_TABLE)
                .upsert(row, on_conflict="user_id,week_start")
                .execute()
            )
        except Exception as e:
            raise NetworkError(f"Could not save week {key}: {e}") from e

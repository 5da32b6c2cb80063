"""Base remote store interface for WeekJournal."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field

from weekjournal.models import CustomCheck, JournalEntry

AuthEvent = Literal["SIGNED_IN", "SIGNED_OUT", "TOKEN_REFRESHED", "USER_UPDATED"]
AuthCallback = Callable[[str, Optional["Identity"]], None]


class Identity(BaseModel):
    """An authenticated user."""

    id: str = Field(..., min_length=1, description="User ID")
    email: Optional[str] = Field(default=None, description="User email")

    model_config = {"frozen": True}


class WeekRow(BaseModel):
    """One stored journal week as kept by the remote."""

    week_start: date = Field(..., description="Monday of the week")
    week_end: date = Field(..., description="Sunday of the week")
    payload: dict[str, Any] = Field(default_factory=dict, description="Entry JSON")
    updated_at: Optional[datetime] = Field(default=None, description="Last write")

    model_config = {"frozen": True}


class Subscription:
    """Handle returned by ``on_auth_state_change``."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call twice."""
        if self.active:
            self.active = False
            self._unsubscribe()


class BaseRemote(ABC):
    """Abstract base class for remote journal backends.

    A backend provides the identity service and two tables: per-user
    settings (the custom checklist) and per-user, per-week entries.
    Implementations raise ``NetworkError`` for transport or backend
    failures and ``AuthError`` for rejected credentials.
    """

    # ==================== Identity ====================

    @abstractmethod
    def get_user(self) -> Optional[Identity]:
        """Return the signed-in user, or None."""
        pass

    @abstractmethod
    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        """Subscribe to sign-in/sign-out notifications.

        Args:
            callback: Called with the event name and the new identity.
        """
        pass

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """Create an account.

        Returns:
            The new identity if the account is usable immediately, None if
            it still needs confirmation.
        """
        pass

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""
        pass

    @abstractmethod
    def sign_out(self) -> None:
        """End the current session."""
        pass

    @abstractmethod
    def reset_password_email(self, email: str) -> None:
        """Send a password reset email."""
        pass

    # ==================== Tables ====================

    @abstractmethod
    def fetch_settings(self, user_id: str) -> Optional[list[CustomCheck]]:
        """Return the user's custom checklist, or None if never saved."""
        pass

    @abstractmethod
    def fetch_weeks(self, user_id: str) -> list[WeekRow]:
        """Return all stored weeks for the user, newest week first."""
        pass

    @abstractmethod
    def upsert_settings(self, user_id: str, checks: list[CustomCheck]) -> None:
        """Insert or replace the user's custom checklist."""
        pass

    @abstractmethod
    def upsert_week(self, user_id: str, key: str, entry: JournalEntry) -> None:
        """Insert or replace one week, keyed by (user, week start)."""
        pass

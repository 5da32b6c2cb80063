"""Exception types for WeekJournal."""


class JournalError(Exception):
    """Base class for all WeekJournal errors."""


class FormatError(JournalError):
    """Malformed trade-log input (missing required column, unreadable file)."""


class ValidationError(JournalError):
    """Imported backup document is missing required keys or is malformed."""


class NetworkError(JournalError):
    """Identity, session or remote store call failed."""


class AuthError(NetworkError):
    """Sign-in, sign-up or password reset was rejected."""


class StorageQuotaError(JournalError):
    """A file is too large to be stored in the local cache."""

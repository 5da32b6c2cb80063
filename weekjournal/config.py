"""Configuration loading for WeekJournal.

Settings live in ``config.toml`` under the WeekJournal home directory,
``$WEEKJOURNAL_HOME`` or ``~/.config/weekjournal``.
"""

import os
from pathlib import Path
from typing import Any, Optional

import toml

from weekjournal.errors import JournalError

HOME_ENV_VAR = "WEEKJOURNAL_HOME"
BACKEND_MODES = ("local", "supabase")


def home_dir() -> Path:
    """Directory holding config, cache, session and the local database."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "weekjournal"


def config_path() -> Path:
    return home_dir() / "config.toml"


def load_config(path: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load the configuration file.

    Returns:
        Config dict, or None if the file does not exist.

    Raises:
        JournalError: If the file is not valid TOML.
    """
    path = path or config_path()
    if not path.exists():
        return None
    try:
        return toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise JournalError(f"Could not read {path}: {e}") from e


def create_template_config(path: Optional[Path] = None) -> Path:
    """Write a template configuration file and return its path."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "backend": {
            "mode": "local",  # local (SQLite) or supabase
        },
        "supabase": {
            "url": "",  # Leave empty to use SUPABASE_URL env var
            "key": "",  # Leave empty to use SUPABASE_KEY env var
        },
        "session": {
            "idle_minutes": 30,
        },
        "sync": {
            "debounce_ms": 800,
        },
    }

    with open(path, "w") as f:
        toml.dump(template, f)

    return path


def backend_mode(config: dict[str, Any]) -> str:
    return config.get("backend", {}).get("mode", "local")


def supabase_credentials(config: dict[str, Any]) -> tuple[str, str]:
    """Supabase URL and key, falling back to environment variables."""
    section = config.get("supabase", {})
    url = section.get("url") or os.environ.get("SUPABASE_URL", "")
    key = section.get("key") or os.environ.get("SUPABASE_KEY", "")
    return url, key


def idle_timeout_seconds(config: dict[str, Any]) -> float:
    return float(config.get("session", {}).get("idle_minutes", 30)) * 60


def debounce_seconds(config: dict[str, Any]) -> float:
    return float(config.get("sync", {}).get("debounce_ms", 800)) / 1000


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate configuration and return list of missing or bad keys."""
    missing = []
    mode = backend_mode(config)

    if mode not in BACKEND_MODES:
        missing.append(f"backend.mode (one of: {', '.join(BACKEND_MODES)})")

    # Supabase credentials only required for the hosted backend
    if mode == "supabase":
        url, key = supabase_credentials(config)
        if not url:
            missing.append("supabase.url (or set SUPABASE_URL env var)")
        if not key:
            missing.append("supabase.key (or set SUPABASE_KEY env var)")

    try:
        if idle_timeout_seconds(config) <= 0:
            missing.append("session.idle_minutes (must be positive)")
        if debounce_seconds(config) < 0:
            missing.append("sync.debounce_ms (must not be negative)")
    except (TypeError, ValueError):
        missing.append("session.idle_minutes / sync.debounce_ms (must be numbers)")

    return missing

"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclasses, passed explicitly into the app
  directory, the vendor clients and the dispatch core
- get_settings() only supplies the default value; nothing mutates it

EXTENSIBILITY:
- To add a store: add a <Store>Settings group and a field on Settings
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def default_config_dir() -> Path:
    """
    Platform config directory for the tool.

    Windows: %LOCALAPPDATA%/AppReviewFetch
    macOS/Linux: ~/.config/AppReviewFetch
    """
    if os.name == "nt":
        base = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path.home() / ".config"
    return base / "AppReviewFetch"


def _config_dir() -> Path:
    return Path(os.getenv("REVIEWFETCH_CONFIG_DIR", "") or default_config_dir())


def _path_from_env(name: str, filename: str) -> Path:
    """Explicit path from the environment, else <config_dir>/<filename>."""
    return Path(os.getenv(name, "") or _config_dir() / filename)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "")
    try:
        return int(value) if value.strip() else default
    except ValueError:
        return default


@dataclass(frozen=True)
class StorageSettings:
    """Where the app directory and credentials live."""

    config_dir: Path = field(default_factory=lambda: _config_dir())
    apps_file: Path = field(
        default_factory=lambda: _path_from_env("REVIEWFETCH_APPS_FILE", "Apps.json")
    )
    credentials_file: Path = field(
        default_factory=lambda: _path_from_env("REVIEWFETCH_CREDENTIALS_FILE", "Credentials.json")
    )


@dataclass(frozen=True)
class AppStoreSettings:
    """App Store Connect API settings."""

    api_url: str = "https://api.appstoreconnect.apple.com"
    audience: str = "appstoreconnect-v1"

    # Apple rejects tokens that live longer than 20 minutes
    token_lifetime_minutes: int = 20

    max_page_size: int = 200
    timeout_seconds: int = field(default_factory=lambda: _env_int("APP_STORE_TIMEOUT", 30))


@dataclass(frozen=True)
class GooglePlaySettings:
    """Google Play Developer API settings."""

    api_url: str = "https://androidpublisher.googleapis.com/androidpublisher/v3"
    scope: str = "https://www.googleapis.com/auth/androidpublisher"
    max_page_size: int = 100
    timeout_seconds: int = field(default_factory=lambda: _env_int("GOOGLE_PLAY_TIMEOUT", 30))


@dataclass(frozen=True)
class ReviewSettings:
    """Review fetching defaults."""

    default_limit: int = 100

    # Upper bound on pages followed by export / unanswered views
    max_export_pages: int = field(
        default_factory=lambda: _env_int("REVIEWFETCH_MAX_EXPORT_PAGES", 20)
    )


@dataclass(frozen=True)
class WebSettings:
    host: str = field(default_factory=lambda: os.getenv("REVIEWFETCH_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _env_int("REVIEWFETCH_PORT", 8000))


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from reviewfetch.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.storage.apps_file)
    """

    storage: StorageSettings = field(default_factory=StorageSettings)
    app_store: AppStoreSettings = field(default_factory=AppStoreSettings)
    google_play: GooglePlaySettings = field(default_factory=GooglePlaySettings)
    review: ReviewSettings = field(default_factory=ReviewSettings)
    web: WebSettings = field(default_factory=WebSettings)

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        has_env_credentials = any(
            os.getenv(name)
            for name in ("APP_STORE_KEY_ID", "GOOGLE_PLAY_SERVICE_ACCOUNT_JSON")
        )
        if not self.storage.credentials_file.exists() and not has_env_credentials:
            issues.append(
                f"WARNING: Credentials file not found: {self.storage.credentials_file}. "
                "Create it or set APP_STORE_* / GOOGLE_PLAY_SERVICE_ACCOUNT_JSON."
            )

        if not 0 < self.review.default_limit:
            issues.append("WARNING: review.default_limit must be positive.")

        if self.review.max_export_pages < 1:
            issues.append(
                "WARNING: REVIEWFETCH_MAX_EXPORT_PAGES must be at least 1. "
                "Exports will fetch a single page."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()

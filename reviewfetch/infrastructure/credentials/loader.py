"""
Credentials Loader - Per-Vendor API Credentials
================================================

Credentials come from the environment first, then from Credentials.json in
the config directory:

    {
      "appStoreConnect": {"keyId": "...", "issuerId": "...", "privateKey": "-----BEGIN..."},
      "googlePlay": {"serviceAccountJson": "{...service account key...}"}
    }

Environment variables:
    APP_STORE_KEY_ID, APP_STORE_ISSUER_ID,
    APP_STORE_PRIVATE_KEY or APP_STORE_PRIVATE_KEY_PATH
    GOOGLE_PLAY_SERVICE_ACCOUNT_JSON (inline JSON or a path to the key file)

Missing or incomplete credentials raise CredentialsError; the dispatch core
turns that into a "not configured" store instead of failing.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ...domain import CredentialsError, Vendor
from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppStoreConnectCredentials:
    key_id: str
    issuer_id: str
    private_key: str
    app_id: Optional[str] = None


@dataclass(frozen=True)
class GooglePlayCredentials:
    service_account_info: Dict[str, Any]

    @property
    def client_email(self) -> str:
        return self.service_account_info.get("client_email", "")


def mask(value: Optional[str]) -> str:
    """Show only the first and last four characters of an identifier."""
    if not value:
        return "not set"
    if len(value) <= 8:
        return "*" * len(value)
    return value[:4] + "*" * (len(value) - 8) + value[-4:]


def _read_credentials_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise CredentialsError(f"Failed to read credentials file {path}: {e}") from e
    if not isinstance(data, dict):
        raise CredentialsError(f"Credentials file {path} must contain a JSON object")
    return data


def load_app_store_credentials(settings: Settings) -> AppStoreConnectCredentials:
    """Load App Store Connect API key credentials."""
    path = settings.storage.credentials_file

    if os.getenv("APP_STORE_KEY_ID"):
        key_path = os.getenv("APP_STORE_PRIVATE_KEY_PATH", "")
        private_key = os.getenv("APP_STORE_PRIVATE_KEY", "")
        if not private_key and key_path:
            try:
                private_key = Path(key_path).expanduser().read_text(encoding="utf-8")
            except OSError as e:
                raise CredentialsError(f"Cannot read APP_STORE_PRIVATE_KEY_PATH {key_path}: {e}") from e
        section = {
            "keyId": os.getenv("APP_STORE_KEY_ID", ""),
            "issuerId": os.getenv("APP_STORE_ISSUER_ID", ""),
            "privateKey": private_key,
            "appId": os.getenv("APP_STORE_APP_ID") or None,
        }
    else:
        section = _read_credentials_file(path).get("appStoreConnect")
        if not section:
            raise CredentialsError(
                f"App Store Connect credentials not found. Add an 'appStoreConnect' "
                f"section to {path} or set APP_STORE_KEY_ID, APP_STORE_ISSUER_ID "
                "and APP_STORE_PRIVATE_KEY."
            )

    key_id = (section.get("keyId") or "").strip()
    issuer_id = (section.get("issuerId") or "").strip()
    private_key = (section.get("privateKey") or "").strip()

    if not key_id or not issuer_id or not private_key:
        raise CredentialsError(
            "App Store Connect credentials are missing required fields "
            "(keyId, issuerId, or privateKey)."
        )

    return AppStoreConnectCredentials(
        key_id=key_id,
        issuer_id=issuer_id,
        private_key=private_key,
        app_id=section.get("appId") or None,
    )


def _parse_service_account(raw: Any, origin: str) -> Dict[str, Any]:
    if isinstance(raw, dict):
        info = raw
    elif isinstance(raw, str) and raw.strip().startswith("{"):
        try:
            info = json.loads(raw)
        except ValueError as e:
            raise CredentialsError(f"Invalid service account JSON in {origin}: {e}") from e
    elif isinstance(raw, str) and raw.strip():
        key_file = Path(raw.strip()).expanduser()
        try:
            info = json.loads(key_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CredentialsError(f"Cannot read service account key file {key_file}: {e}") from e
    else:
        raise CredentialsError(f"Service account JSON in {origin} is empty")

    missing = [name for name in ("client_email", "private_key") if not info.get(name)]
    if missing:
        raise CredentialsError(
            f"Service account JSON in {origin} is missing: {', '.join(missing)}"
        )
    return info


def load_google_play_credentials(settings: Settings) -> GooglePlayCredentials:
    """Load the Google Play service account key."""
    env_value = os.getenv("GOOGLE_PLAY_SERVICE_ACCOUNT_JSON", "")
    if env_value:
        info = _parse_service_account(env_value, "GOOGLE_PLAY_SERVICE_ACCOUNT_JSON")
        return GooglePlayCredentials(service_account_info=info)

    path = settings.storage.credentials_file
    section = _read_credentials_file(path).get("googlePlay")
    if not section:
        raise CredentialsError(
            f"Google Play credentials not found. Add a 'googlePlay' section with "
            f"'serviceAccountJson' to {path} or set GOOGLE_PLAY_SERVICE_ACCOUNT_JSON."
        )

    info = _parse_service_account(section.get("serviceAccountJson"), str(path))
    return GooglePlayCredentials(service_account_info=info)


def credentials_status(settings: Settings) -> Dict[Vendor, Dict[str, Any]]:
    """
    Summarise credentials per store for display. Never raises and never
    exposes secrets.
    """
    status: Dict[Vendor, Dict[str, Any]] = {}

    try:
        creds = load_app_store_credentials(settings)
        status[Vendor.APP_STORE] = {
            "configured": True,
            "detail": f"Key ID {mask(creds.key_id)}, Issuer ID {mask(creds.issuer_id)}",
        }
    except CredentialsError as e:
        status[Vendor.APP_STORE] = {"configured": False, "detail": str(e)}

    try:
        gp_creds = load_google_play_credentials(settings)
        status[Vendor.GOOGLE_PLAY] = {
            "configured": True,
            "detail": f"Service account {gp_creds.client_email}",
        }
    except CredentialsError as e:
        status[Vendor.GOOGLE_PLAY] = {"configured": False, "detail": str(e)}

    return status

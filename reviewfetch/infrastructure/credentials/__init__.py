from .loader import (
    AppStoreConnectCredentials,
    GooglePlayCredentials,
    credentials_status,
    load_app_store_credentials,
    load_google_play_credentials,
    mask,
)

__all__ = [
    "AppStoreConnectCredentials",
    "GooglePlayCredentials",
    "credentials_status",
    "load_app_store_credentials",
    "load_google_play_credentials",
    "mask",
]

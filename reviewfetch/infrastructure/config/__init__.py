from .settings import (
    AppStoreSettings,
    GooglePlaySettings,
    ReviewSettings,
    Settings,
    StorageSettings,
    WebSettings,
    default_config_dir,
    get_settings,
)

__all__ = [
    "AppStoreSettings",
    "GooglePlaySettings",
    "ReviewSettings",
    "Settings",
    "StorageSettings",
    "WebSettings",
    "default_config_dir",
    "get_settings",
]

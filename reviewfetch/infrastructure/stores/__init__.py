# Review Service Module
from .app_store_connect import AppStoreConnectService
from .google_play import GooglePlayService
from .review_service import ReviewService

__all__ = ["ReviewService", "AppStoreConnectService", "GooglePlayService"]

"""
Review Service - Abstraction Layer for App Store Review APIs
============================================================

Provides a unified interface for reading and answering reviews.
Currently supports App Store Connect and the Google Play Developer API.

USAGE:
    service = AppStoreConnectService(credentials, settings.app_store)
    page = await service.fetch_reviews("123456789", ReviewRequest(limit=50))

    service = GooglePlayService(credentials, settings.google_play)
    page = await service.fetch_reviews("com.example.app", ReviewRequest())

All methods are coroutines. Implementations do their HTTP work with
requests in a worker thread, so every vendor call is a suspension point for
the event loop.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from ...domain import AppListResult, DeveloperResponse, ReviewPage, ReviewRequest, Vendor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReviewService(ABC):
    """
    Abstract base class for app store review backends.
    Implement this interface to add new stores.

    Ids passed in and returned are vendor-native (no "as:"/"gp:" prefix).
    """

    vendor: Vendor

    @abstractmethod
    async def fetch_reviews(self, app_id: str, request: ReviewRequest) -> ReviewPage:
        """Fetch one page of reviews for an app."""
        ...

    @abstractmethod
    async def list_apps(self) -> AppListResult:
        """List the apps these credentials can see."""
        ...

    @abstractmethod
    async def respond_to_review(self, review_id: str, text: str) -> DeveloperResponse:
        """Create or replace the developer response to a review."""
        ...

    @abstractmethod
    async def delete_response(self, response_id: str) -> None:
        """Delete a developer response."""
        ...

    def close(self) -> None:
        """Clean up resources."""
        pass

    @staticmethod
    async def _in_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

"""
Omni Review Service - Multi-Store Dispatch
==========================================

Single entry point for every review operation. Callers pass an app name,
bundle/package id or numeric id and never need to know which store backs
the app; review and response ids carry an "as:"/"gp:" prefix so follow-up
calls route themselves.

ARCHITECTURAL DECISION:
- Each store has a slot that is either Ready (a live ReviewService) or
  NotConfigured (the reason credentials could not be loaded). Slots are
  fixed at construction; at least one must be Ready.
- App queries resolve against the local app directory first. A match in
  the directory is authoritative: if its store is not configured the call
  fails instead of guessing another store.
- Unknown queries are routed by shape: all digits to App Store, anything
  with a dot to Google Play, otherwise whichever store is configured.
- list_apps() asks every Ready store in parallel. One store failing turns
  into a warning; the other stores' apps are still merged and saved.

USAGE:
    service = OmniReviewService()
    page = await service.get_reviews("My App", ReviewRequest(limit=20))
    await service.respond_to_review(page.reviews[0].id, "Thanks!")
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..domain import (
    AppListResult,
    AppRecord,
    CredentialsError,
    DeveloperResponse,
    NoCredentialsError,
    Pagination,
    Review,
    ReviewPage,
    ReviewRequest,
    ScopedId,
    StorageError,
    UnresolvableQueryError,
    Vendor,
    VendorNotConfiguredError,
)
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.persistence import AppDirectory
from ..infrastructure.stores import AppStoreConnectService, GooglePlayService, ReviewService

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[Settings], ReviewService]

DEFAULT_FACTORIES: Dict[Vendor, ServiceFactory] = {
    Vendor.APP_STORE: AppStoreConnectService.from_settings,
    Vendor.GOOGLE_PLAY: GooglePlayService.from_settings,
}


@dataclass
class VendorSlot:
    """Ready when service is set; otherwise reason says why not."""
    service: Optional[ReviewService] = None
    reason: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.service is not None


class OmniReviewService:
    """
    Routes review operations to the right store.

    Args:
        settings: Configuration; defaults to get_settings().
        directory: App directory; defaults to one at settings.storage.apps_file.
        service_factories: Builds each store's ReviewService from settings.
            A factory raising CredentialsError leaves that store NotConfigured.

    Raises:
        NoCredentialsError: No store could be configured.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        directory: Optional[AppDirectory] = None,
        service_factories: Optional[Mapping[Vendor, ServiceFactory]] = None,
    ):
        self._settings = settings or get_settings()
        self._directory = directory if directory is not None else AppDirectory(self._settings.storage.apps_file)
        factories = DEFAULT_FACTORIES if service_factories is None else service_factories

        self._slots: Dict[Vendor, VendorSlot] = {}
        for vendor in Vendor:
            factory = factories.get(vendor)
            if factory is None:
                self._slots[vendor] = VendorSlot(reason=f"No {vendor.value} backend is registered.")
                continue

            try:
                service = factory(self._settings)
            except CredentialsError as e:
                logger.warning(f"{vendor.display_name} not configured: {e}")
                self._slots[vendor] = VendorSlot(reason=str(e))
            else:
                logger.info(f"{vendor.display_name} configured")
                self._slots[vendor] = VendorSlot(service=service)

        if not any(slot.ready for slot in self._slots.values()):
            raise NoCredentialsError(
                "No valid credentials found for any supported app store. "
                "Configure App Store Connect or Google Play in "
                f"{self._settings.storage.credentials_file} or through environment variables."
            )

    @property
    def directory(self) -> AppDirectory:
        """The app directory, for manual add/edit/delete."""
        return self._directory

    @property
    def settings(self) -> Settings:
        return self._settings

    # ── Reviews ────────────────────────────────────────────────────

    async def get_reviews(self, app_query: str, request: Optional[ReviewRequest] = None) -> ReviewPage:
        """
        Fetch one page of reviews for an app.

        Args:
            app_query: App name, bundle/package id or store id.
            request: Sort, country, cursor and page size.

        Returns:
            ReviewPage with scheme-prefixed review and response ids.
        """
        if not app_query or not app_query.strip():
            raise ValueError("App query cannot be empty")

        request = request or ReviewRequest(limit=self._settings.review.default_limit)
        vendor, api_identifier = await self._resolve_target(app_query)

        logger.debug(f"Fetching {vendor.value} reviews for {api_identifier}")
        page = await self._slots[vendor].service.fetch_reviews(api_identifier, request)
        return page.with_scheme(vendor)

    async def fetch_all_reviews(
        self,
        app_query: str,
        request: Optional[ReviewRequest] = None,
        max_pages: Optional[int] = None,
    ) -> ReviewPage:
        """
        Follow next_cursor until the last page or max_pages pages.

        Returns:
            One ReviewPage holding every review, with no cursor and the
            warnings of all pages, each listed once.
        """
        request = request or ReviewRequest(limit=self._settings.review.default_limit)
        reviews: List[Review] = []
        warnings: List[str] = []
        cursor = request.cursor
        pages = 0

        while True:
            page = await self.get_reviews(app_query, ReviewRequest(
                sort_order=request.sort_order,
                country=request.country,
                cursor=cursor,
                limit=request.limit,
            ))
            reviews.extend(page.reviews)
            for warning in page.warnings:
                if warning not in warnings:
                    warnings.append(warning)
            pages += 1

            cursor = page.pagination.next_cursor
            if not page.pagination.has_more_pages or not cursor:
                break
            if max_pages is not None and pages >= max_pages:
                logger.info(f"Stopped after {pages} pages of reviews for '{app_query}'")
                break

        return ReviewPage(
            reviews=reviews,
            pagination=Pagination(total_count=len(reviews)),
            warnings=warnings,
        )

    async def respond_to_review(self, review_id: str, text: str) -> DeveloperResponse:
        """Reply to a review given its scoped id ("as:..." or "gp:...")."""
        if not text or not text.strip():
            raise ValueError("Response text cannot be empty")

        scoped = ScopedId.parse(review_id)
        service = self._ready_service(scoped.vendor)
        response = await service.respond_to_review(scoped.native_id, text)

        response.id = str(ScopedId(scoped.vendor, response.id))
        logger.info(f"Responded to review {review_id}")
        return response

    async def delete_review_response(self, response_id: str) -> None:
        """Delete a developer response given its scoped id."""
        scoped = ScopedId.parse(response_id)
        service = self._ready_service(scoped.vendor)
        await service.delete_response(scoped.native_id)
        logger.info(f"Deleted response {response_id}")

    # ── Apps ───────────────────────────────────────────────────────

    async def list_apps(self) -> AppListResult:
        """
        Ask every configured store for its apps, merge them into the
        directory and save it.

        Returns:
            The whole directory (hidden apps included) plus warnings for
            stores that failed and for a failed save.
        """
        await self._ensure_directory()

        ready = [(vendor, slot.service) for vendor, slot in self._slots.items() if slot.ready]
        results = await asyncio.gather(*(self._list_vendor(vendor, service) for vendor, service in ready))

        warnings: List[str] = []
        for (vendor, _), (apps, vendor_warnings) in zip(ready, results):
            warnings.extend(vendor_warnings)
            if apps:
                added = self._directory.merge_from_vendor_listing(apps, vendor)
                logger.info(f"{vendor.value}: {len(apps)} apps listed, {added} new")

        try:
            await asyncio.to_thread(self._directory.save)
        except StorageError as e:
            logger.warning(f"Failed to save app directory: {e}")
            warnings.append(f"Warning: Failed to save app database: {e}")

        return AppListResult(apps=self._directory.get_all(include_hidden=True), warnings=warnings)

    async def _list_vendor(self, vendor: Vendor, service: ReviewService) -> Tuple[List[AppRecord], List[str]]:
        try:
            result = await service.list_apps()
        except Exception as e:
            logger.exception(f"{vendor.value} app listing failed")
            return [], [f"{vendor.value}: Error - {e}"]
        return result.apps, list(result.warnings)

    # ── Store status ───────────────────────────────────────────────

    def has_credentials(self, store: str) -> bool:
        """True when the store ('apple', 'Google Play', 'android', ...) is Ready."""
        vendor = Vendor.from_alias(store)
        return vendor is not None and self._slots[vendor].ready

    def available_stores(self) -> List[str]:
        return [vendor.value for vendor, slot in self._slots.items() if slot.ready]

    def store_status(self) -> Dict[Vendor, VendorSlot]:
        return dict(self._slots)

    def close(self):
        for slot in self._slots.values():
            if slot.ready:
                slot.service.close()

    # ── Internals ──────────────────────────────────────────────────

    async def _ensure_directory(self):
        if not self._directory.is_loaded:
            await asyncio.to_thread(self._directory.ensure_loaded)

    def _ready_service(self, vendor: Vendor) -> ReviewService:
        slot = self._slots[vendor]
        if not slot.ready:
            raise VendorNotConfiguredError(
                f"{vendor.display_name} credentials not configured. {slot.reason or ''}".strip()
            )
        return slot.service

    async def _resolve_target(self, app_query: str) -> Tuple[Vendor, str]:
        await self._ensure_directory()

        target = self._directory.resolve_for_api(app_query, include_hidden=True)
        if target is not None:
            if not self._slots[target.vendor].ready:
                raise VendorNotConfiguredError(
                    f"App '{target.record.name}' is from {target.vendor.value}, but "
                    f"credentials are not configured for {target.vendor.value}. "
                    f"{self._slots[target.vendor].reason or ''}".strip()
                )
            return target.vendor, target.api_identifier

        query = app_query.strip()
        vendor = self._route_by_shape(query)
        if vendor is None:
            raise UnresolvableQueryError(
                f"Unable to determine which store to use for app query '{query}'. "
                "Run 'list' first to populate the app directory, or use 'add-app' to add it manually."
            )
        logger.debug(f"'{query}' is not in the app directory, routing to {vendor.value}")
        return vendor, query

    def _route_by_shape(self, query: str) -> Optional[Vendor]:
        app_store = self._slots[Vendor.APP_STORE].ready
        google_play = self._slots[Vendor.GOOGLE_PLAY].ready

        if query.isdigit() and app_store:
            return Vendor.APP_STORE
        if "." in query and google_play:
            return Vendor.GOOGLE_PLAY
        if app_store:
            return Vendor.APP_STORE
        if google_play:
            return Vendor.GOOGLE_PLAY
        return None

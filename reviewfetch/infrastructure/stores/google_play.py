"""
Google Play Service - Google Play Developer API Reviews
=======================================================

Reads and answers reviews through the Android Publisher v3 API.
Documentation: https://developers.google.com/android-publisher/api-ref/rest/v3/reviews

LIMITATIONS:
- No "list apps" endpoint exists; apps are added to the directory by hand
- The API only returns reviews from the last week, newest first, with no
  sort or territory filter; other sort orders are applied to the page
- Developer replies cannot be deleted through the API

Review ids are emitted as "<package>:<reviewId>" because the reply endpoint
needs the package name as well as the review id.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from ...domain import (
    ApiError,
    AppListResult,
    AuthError,
    CredentialsError,
    DeveloperResponse,
    DispatchError,
    NotSupportedError,
    Pagination,
    Review,
    ReviewPage,
    ReviewRequest,
    ReviewSortOrder,
    Vendor,
)
from ..config import GooglePlaySettings, Settings
from ..credentials import GooglePlayCredentials, load_google_play_credentials
from .review_service import ReviewService

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[Dict[str, Any]]) -> Optional[datetime]:
    """Convert a {"seconds": "...", "nanos": ...} timestamp to an aware datetime."""
    if not value or value.get("seconds") is None:
        return None
    seconds = int(value["seconds"]) + int(value.get("nanos") or 0) / 1e9
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def split_review_id(review_id: str) -> Tuple[str, str]:
    """Split "<package>:<reviewId>" at the first colon. Package names never contain one."""
    package, sep, native = (review_id or "").partition(":")
    if not sep or not package or not native:
        raise ValueError(
            f"Google Play review id must look like 'com.example.app:<reviewId>', got '{review_id}'"
        )
    return package, native


def _latest(comments: List[Dict[str, Any]], kind: str) -> Optional[Dict[str, Any]]:
    """Most recently modified comment of one kind ("userComment"/"developerComment")."""
    found = [c[kind] for c in comments if c.get(kind)]
    if not found:
        return None
    return max(found, key=lambda c: int((c.get("lastModified") or {}).get("seconds") or 0))


# Client-side ordering for the single page the API returns
_PAGE_SORTS = {
    ReviewSortOrder.OLDEST_FIRST: (lambda r: r.created_date, False),
    ReviewSortOrder.HIGHEST_RATING_FIRST: (lambda r: (r.rating, r.created_date), True),
    ReviewSortOrder.LOWEST_RATING_FIRST: (lambda r: (r.rating, r.created_date), False),
    ReviewSortOrder.MOST_HELPFUL: (lambda r: (r.rating, r.created_date), True),
}


class GooglePlayService(ReviewService):
    """
    Google Play review backend using a service account.

    USAGE:
        service = GooglePlayService.from_settings(get_settings())
        page = await service.fetch_reviews("com.example.app", ReviewRequest())
    """

    vendor = Vendor.GOOGLE_PLAY

    def __init__(
        self,
        credentials: GooglePlayCredentials,
        settings: GooglePlaySettings,
        session: Optional[requests.Session] = None,
    ):
        self._credentials = credentials
        self._settings = settings

        if session is None:
            try:
                google_credentials = service_account.Credentials.from_service_account_info(
                    credentials.service_account_info,
                    scopes=[settings.scope],
                )
            except (ValueError, KeyError) as e:
                raise CredentialsError(
                    f"Google Play service account JSON is not usable: {e}. "
                    "Download a fresh key from the Google Cloud console."
                ) from e
            session = AuthorizedSession(google_credentials)

        self._session = session

    @classmethod
    def from_settings(cls, settings: Settings) -> "GooglePlayService":
        """Build from configured credentials. Raises CredentialsError if absent."""
        return cls(load_google_play_credentials(settings), settings.google_play)

    # ── Capability ─────────────────────────────────────────────────

    async def fetch_reviews(self, app_id: str, request: ReviewRequest) -> ReviewPage:
        if not app_id or not app_id.strip():
            raise ValueError("Package name cannot be empty")

        package = app_id.strip()
        params: Dict[str, Any] = {
            "maxResults": min(request.limit, self._settings.max_page_size) if request.limit > 0 else 50,
        }
        if request.cursor:
            params["token"] = request.cursor

        path = f"/applications/{quote(package, safe='')}/reviews"
        data = await self._in_thread(self._request, "GET", path, params)
        page = self._parse_reviews(package, data)

        if request.sort_order in _PAGE_SORTS:
            key, reverse = _PAGE_SORTS[request.sort_order]
            page.reviews.sort(key=key, reverse=reverse)
            page.warnings.append(
                f"Google Play does not support server-side sorting; "
                f"{request.sort_order.value} was applied to this page only."
            )
        if request.country:
            page.warnings.append(
                f"Google Play does not support filtering by country; "
                f"'{request.country}' was ignored."
            )
        return page

    async def list_apps(self) -> AppListResult:
        # No listing endpoint; packages must be known up front
        return AppListResult()

    async def respond_to_review(self, review_id: str, text: str) -> DeveloperResponse:
        package, native_id = split_review_id(review_id)
        path = (
            f"/applications/{quote(package, safe='')}"
            f"/reviews/{quote(native_id, safe='')}:reply"
        )
        data = await self._in_thread(self._request, "POST", path, None, {"replyText": text})

        result = data.get("result") or {}
        edited = parse_timestamp(result.get("lastEdited"))
        logger.info(f"Replied to Google Play review {review_id}")
        return DeveloperResponse(
            id=f"{review_id}_response",
            body=result.get("replyText") or text,
            created_date=edited or datetime.now(timezone.utc),
            modified_date=edited,
        )

    async def delete_response(self, response_id: str) -> None:
        raise NotSupportedError(
            "Google Play does not support deleting review replies through the API. "
            "Remove the reply in the Play Console, or post a new reply to replace it."
        )

    def close(self) -> None:
        self._session.close()

    # ── HTTP ───────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._settings.api_url}{path}"
        logger.debug(f"Google Play {method} {url} params={params}")

        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers={"Accept": "application/json"},
                timeout=self._settings.timeout_seconds,
            )
        except RefreshError as e:
            raise AuthError(
                f"Google Play token refresh failed: {e}. Check that the service "
                "account key is valid and has access in the Play Console."
            ) from e
        except GoogleAuthError as e:
            raise AuthError(f"Google Play authentication failed: {e}") from e
        except requests.RequestException as e:
            raise DispatchError(f"Google Play request failed: {e}") from e

        if not response.ok:
            self._raise_api_error(response)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise DispatchError("Google Play returned a malformed response") from e

    def _raise_api_error(self, response: requests.Response):
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}

        if response.status_code == 401:
            raise AuthError(
                f"Google Play rejected the service account (HTTP 401): "
                f"{error.get('message') or response.reason}"
            )

        if error:
            raise ApiError(
                int(error.get("code") or response.status_code),
                error.get("status") or str(error.get("code") or response.status_code),
                error.get("message") or "Unknown error",
            )

        raise ApiError(
            response.status_code,
            str(response.status_code),
            f"Request failed with status {response.status_code}: {response.text[:500]}",
        )

    # ── Parsing ────────────────────────────────────────────────────

    def _parse_reviews(self, package: str, data: Dict[str, Any]) -> ReviewPage:
        reviews = []
        try:
            for item in data.get("reviews") or []:
                comments = item.get("comments") or []
                user_comment = _latest(comments, "userComment")
                if user_comment is None:
                    continue

                review_id = f"{package}:{item['reviewId']}"
                review = Review(
                    id=review_id,
                    rating=int(user_comment.get("starRating") or 0),
                    created_date=(
                        parse_timestamp(user_comment.get("lastModified"))
                        or datetime.now(timezone.utc)
                    ),
                    body=(user_comment.get("text") or "").strip() or None,
                    reviewer_nickname=item.get("authorName"),
                    # Reviewer language is the closest thing to a territory
                    territory=user_comment.get("reviewerLanguage"),
                )

                developer_comment = _latest(comments, "developerComment")
                if developer_comment is not None:
                    modified = parse_timestamp(developer_comment.get("lastModified"))
                    review.developer_response = DeveloperResponse(
                        id=f"{review_id}_response",
                        body=developer_comment.get("text") or "",
                        created_date=modified or datetime.now(timezone.utc),
                        modified_date=modified,
                    )

                reviews.append(review)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DispatchError(f"Google Play returned malformed reviews: {e}") from e

        tokens = data.get("tokenPagination") or {}
        total = (data.get("pageInfo") or {}).get("totalResults")
        pagination = Pagination(
            total_count=int(total) if total is not None else None,
            next_cursor=tokens.get("nextPageToken"),
            previous_cursor=tokens.get("previousPageToken"),
            has_more_pages=bool(tokens.get("nextPageToken")),
        )
        return ReviewPage(reviews=reviews, pagination=pagination)

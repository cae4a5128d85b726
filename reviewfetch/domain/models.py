"""
Domain Models - Vendor-Neutral Review and App Shapes
=====================================================

Every review, app and developer response, no matter which store it comes
from, is converted into these shapes before it reaches a caller.

ID SCHEME:
- Reviews and responses leaving the dispatch core carry a vendor scheme
  prefix ("as:" for App Store, "gp:" for Google Play).
- ScopedId is the parsed form; the "scheme:native" string only exists at
  the boundary (CLI arguments, HTTP paths, JSON output).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import MalformedIdError


class Vendor(Enum):
    """App store backends, valued by their display name."""
    APP_STORE = "App Store"
    GOOGLE_PLAY = "Google Play"

    @property
    def scheme(self) -> str:
        return _SCHEMES[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_scheme(cls, scheme: str) -> Optional["Vendor"]:
        for vendor, value in _SCHEMES.items():
            if value == scheme:
                return vendor
        return None

    @classmethod
    def from_alias(cls, alias: str) -> Optional["Vendor"]:
        """Case-insensitive lookup: 'apple', 'App Store', 'android', ..."""
        return _ALIASES.get((alias or "").strip().lower())


_SCHEMES = {
    Vendor.APP_STORE: "as",
    Vendor.GOOGLE_PLAY: "gp",
}

_DISPLAY_NAMES = {
    Vendor.APP_STORE: "App Store Connect",
    Vendor.GOOGLE_PLAY: "Google Play",
}

_ALIASES = {
    "appstore": Vendor.APP_STORE,
    "app store": Vendor.APP_STORE,
    "apple": Vendor.APP_STORE,
    "googleplay": Vendor.GOOGLE_PLAY,
    "google play": Vendor.GOOGLE_PLAY,
    "android": Vendor.GOOGLE_PLAY,
}


@dataclass(frozen=True)
class ScopedId:
    """A review or response id tagged with the vendor it belongs to."""
    vendor: Vendor
    native_id: str

    @classmethod
    def parse(cls, value: str) -> "ScopedId":
        """
        Parse "scheme:native". Splits on the first colon only, so native ids
        may themselves contain colons (e.g. "gp:com.app:abc123").
        """
        if not value or ":" not in value:
            raise MalformedIdError(
                f"Invalid ID format. Expected 'scheme:id' "
                f"(e.g. 'as:123' or 'gp:com.app:456'), got '{value}'"
            )

        scheme, native_id = value.split(":", 1)
        vendor = Vendor.from_scheme(scheme)
        if vendor is None:
            raise MalformedIdError(
                f"Unknown ID scheme '{scheme}' in '{value}'. Expected 'as' or 'gp'."
            )
        if not native_id:
            raise MalformedIdError(f"ID '{value}' has an empty vendor id after '{scheme}:'")

        return cls(vendor=vendor, native_id=native_id)

    def __str__(self) -> str:
        return f"{self.vendor.scheme}:{self.native_id}"


class ReviewSortOrder(Enum):
    """Sort order options for reviews."""
    NEWEST_FIRST = "NewestFirst"
    OLDEST_FIRST = "OldestFirst"
    HIGHEST_RATING_FIRST = "HighestRatingFirst"
    LOWEST_RATING_FIRST = "LowestRatingFirst"
    MOST_HELPFUL = "MostHelpful"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReviewSortOrder":
        """Accepts 'NewestFirst', 'newest-first', 'NEWEST_FIRST', ..."""
        if not value:
            return cls.NEWEST_FIRST

        wanted = value.replace("-", "").replace("_", "").lower()
        for order in cls:
            if order.value.lower() == wanted:
                return order
        raise ValueError(
            f"Unknown sort order '{value}'. "
            f"Use one of: {', '.join(o.value for o in cls)}"
        )


@dataclass
class ReviewRequest:
    """Parameters for fetching one page of reviews."""
    sort_order: ReviewSortOrder = ReviewSortOrder.NEWEST_FIRST
    country: Optional[str] = None       # ISO 3166-1 alpha-2, e.g. "US"
    cursor: Optional[str] = None
    limit: int = 100


@dataclass
class DeveloperResponse:
    """A developer's reply to a review."""
    id: str
    body: str
    created_date: datetime
    modified_date: Optional[datetime] = None
    state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "body": self.body,
            "createdDate": self.created_date.isoformat(),
            "modifiedDate": self.modified_date.isoformat() if self.modified_date else None,
            "state": self.state,
        }


@dataclass
class Review:
    """A single customer review from any store."""
    id: str
    rating: int
    created_date: datetime
    title: Optional[str] = None
    body: Optional[str] = None
    reviewer_nickname: Optional[str] = None
    territory: Optional[str] = None
    developer_response: Optional[DeveloperResponse] = None

    @property
    def has_response(self) -> bool:
        return self.developer_response is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rating": self.rating,
            "title": self.title,
            "body": self.body,
            "reviewerNickname": self.reviewer_nickname,
            "createdDate": self.created_date.isoformat(),
            "territory": self.territory,
            "developerResponse": (
                self.developer_response.to_dict() if self.developer_response else None
            ),
        }


@dataclass
class Pagination:
    total_count: Optional[int] = None
    next_cursor: Optional[str] = None
    previous_cursor: Optional[str] = None
    has_more_pages: bool = False


@dataclass
class ReviewPage:
    """One page of reviews plus pagination metadata."""
    reviews: List[Review] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)
    warnings: List[str] = field(default_factory=list)

    def with_scheme(self, vendor: Vendor) -> "ReviewPage":
        """Copy of this page with every review and response id scheme-prefixed."""
        reviews = []
        for review in self.reviews:
            response = review.developer_response
            if response is not None:
                response = replace(response, id=str(ScopedId(vendor, response.id)))
            reviews.append(
                replace(review, id=str(ScopedId(vendor, review.id)), developer_response=response)
            )
        return replace(self, reviews=reviews)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reviews": [r.to_dict() for r in self.reviews],
            "pagination": {
                "totalCount": self.pagination.total_count,
                "nextCursor": self.pagination.next_cursor,
                "previousCursor": self.pagination.previous_cursor,
                "hasMorePages": self.pagination.has_more_pages,
            },
            "warnings": list(self.warnings),
        }


@dataclass
class AppRecord:
    """
    An app known to the local directory.

    Vendor fields are refreshed on every listing; project_url, is_hidden and
    notes are local metadata and never come from a vendor.
    """
    native_id: str
    name: str
    vendor: Vendor
    bundle_id: Optional[str] = None
    sku: Optional[str] = None
    platforms: List[str] = field(default_factory=list)
    primary_locale: Optional[str] = None
    is_available: Optional[bool] = None
    current_version: Optional[str] = None

    # Local-only metadata
    project_url: Optional[str] = None
    is_hidden: bool = False
    notes: Optional[str] = None

    def __post_init__(self):
        # Ordered set semantics
        self.platforms = list(dict.fromkeys(self.platforms or []))

    @property
    def lookup_id(self) -> str:
        """The id this record is keyed by: bundle/package id, else native id."""
        return self.bundle_id or self.native_id

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with stable camelCase keys, omitting empty optionals."""
        data = {
            "id": self.native_id,
            "name": self.name,
            "bundleId": self.bundle_id,
            "sku": self.sku,
            "platforms": list(self.platforms),
            "store": self.vendor.value,
            "primaryLocale": self.primary_locale,
            "isAvailable": self.is_available,
            "currentVersion": self.current_version,
            "projectUrl": self.project_url,
            "isHidden": self.is_hidden,
            "notes": self.notes,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppRecord":
        vendor = Vendor.from_alias(data.get("store", ""))
        if vendor is None:
            raise ValueError(f"Unknown store '{data.get('store')}' for app '{data.get('name')}'")

        return cls(
            native_id=str(data["id"]),
            name=data.get("name", ""),
            vendor=vendor,
            bundle_id=data.get("bundleId"),
            sku=data.get("sku"),
            platforms=list(data.get("platforms") or []),
            primary_locale=data.get("primaryLocale"),
            is_available=data.get("isAvailable"),
            current_version=data.get("currentVersion"),
            project_url=data.get("projectUrl"),
            is_hidden=bool(data.get("isHidden", False)),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class ResolvedTarget:
    """Result of resolving a query: what to send on the wire, and to whom."""
    api_identifier: str
    vendor: Vendor
    record: AppRecord


@dataclass
class AppListResult:
    apps: List[AppRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from reviewfetch.application import OmniReviewService
from reviewfetch.domain import (
    AppListResult,
    AppRecord,
    CredentialsError,
    DeveloperResponse,
    Pagination,
    Review,
    ReviewPage,
    Vendor,
)
from reviewfetch.infrastructure.config import Settings, StorageSettings
from reviewfetch.infrastructure.persistence import AppDirectory
from reviewfetch.infrastructure.stores import ReviewService

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

CREDENTIAL_ENV_VARS = (
    "APP_STORE_KEY_ID",
    "APP_STORE_ISSUER_ID",
    "APP_STORE_PRIVATE_KEY",
    "APP_STORE_PRIVATE_KEY_PATH",
    "APP_STORE_APP_ID",
    "GOOGLE_PLAY_SERVICE_ACCOUNT_JSON",
)


class FakeReviewService(ReviewService):
    """In-memory store backend that records every call."""

    def __init__(
        self,
        vendor: Vendor,
        apps: Optional[List[AppRecord]] = None,
        pages: Optional[Dict[Optional[str], ReviewPage]] = None,
        list_error: Optional[Exception] = None,
        delete_error: Optional[Exception] = None,
    ):
        self.vendor = vendor
        self.apps = apps or []
        self.pages = pages or {}
        self.list_error = list_error
        self.delete_error = delete_error
        self.fetch_calls = []
        self.responses = []
        self.deleted = []
        self.closed = False

    async def fetch_reviews(self, app_id, request):
        self.fetch_calls.append((app_id, request))
        return self.pages.get(request.cursor, ReviewPage())

    async def list_apps(self):
        if self.list_error is not None:
            raise self.list_error
        return AppListResult(apps=list(self.apps))

    async def respond_to_review(self, review_id, text):
        self.responses.append((review_id, text))
        return DeveloperResponse(id="resp-1", body=text, created_date=NOW, state="PENDING_PUBLISH")

    async def delete_response(self, response_id):
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(response_id)

    def close(self):
        self.closed = True


class FakeResponse:
    """Just enough of requests.Response for the store clients."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode()
        self.reason = "OK" if status_code < 400 else "Error"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


def make_review(review_id: str, rating: int = 5, response_id: Optional[str] = None) -> Review:
    response = None
    if response_id:
        response = DeveloperResponse(id=response_id, body="Thanks", created_date=NOW)
    return Review(
        id=review_id,
        rating=rating,
        created_date=NOW,
        title="Great",
        body="Works well",
        reviewer_nickname="tester",
        territory="USA",
        developer_response=response,
    )


def make_page(*reviews: Review, next_cursor: Optional[str] = None) -> ReviewPage:
    return ReviewPage(
        reviews=list(reviews),
        pagination=Pagination(
            total_count=len(reviews),
            next_cursor=next_cursor,
            has_more_pages=next_cursor is not None,
        ),
    )


def make_app(native_id: str, name: str, vendor: Vendor = Vendor.APP_STORE, **kwargs) -> AppRecord:
    return AppRecord(native_id=native_id, name=name, vendor=vendor, **kwargs)


@pytest.fixture(autouse=True)
def _clean_credentials_env(monkeypatch):
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage=StorageSettings(
            config_dir=tmp_path,
            apps_file=tmp_path / "Apps.json",
            credentials_file=tmp_path / "Credentials.json",
        )
    )


@pytest.fixture
def directory(settings: Settings) -> AppDirectory:
    return AppDirectory(settings.storage.apps_file)


def _not_configured(vendor: Vendor):
    def factory(_settings):
        raise CredentialsError(f"{vendor.value} credentials not found")
    return factory


@pytest.fixture
def build_omni(settings, directory):
    """Build an OmniReviewService from fakes; None leaves that store unconfigured."""

    def _build(app_store: Optional[ReviewService] = None, google_play: Optional[ReviewService] = None):
        factories = {
            Vendor.APP_STORE: (lambda s: app_store) if app_store else _not_configured(Vendor.APP_STORE),
            Vendor.GOOGLE_PLAY: (lambda s: google_play) if google_play else _not_configured(Vendor.GOOGLE_PLAY),
        }
        return OmniReviewService(settings=settings, directory=directory, service_factories=factories)

    return _build

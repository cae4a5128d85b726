from __future__ import annotations

import asyncio
import json

import pytest

from reviewfetch.application import OmniReviewService
from reviewfetch.domain import (
    MalformedIdError,
    NoCredentialsError,
    NotSupportedError,
    ReviewRequest,
    Vendor,
    VendorNotConfiguredError,
)
from reviewfetch.infrastructure.persistence import AppDirectory

from conftest import FakeReviewService, make_app, make_page, make_review


def test_construction_fails_without_any_store(build_omni):
    with pytest.raises(NoCredentialsError):
        build_omni()


def test_store_status_and_aliases(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))

    assert omni.available_stores() == ["App Store"]
    assert omni.has_credentials("apple")
    assert omni.has_credentials("APP STORE")
    assert not omni.has_credentials("android")
    assert not omni.has_credentials("steam")
    assert "not found" in omni.store_status()[Vendor.GOOGLE_PLAY].reason


def test_numeric_query_routes_to_app_store_when_not_in_directory(build_omni):
    app_store = FakeReviewService(
        Vendor.APP_STORE,
        pages={None: make_page(make_review("r1", response_id="resp9"))},
    )
    omni = build_omni(app_store=app_store)

    page = asyncio.run(omni.get_reviews("123456789", ReviewRequest()))

    assert app_store.fetch_calls[0][0] == "123456789"
    assert page.reviews[0].id == "as:r1"
    assert page.reviews[0].developer_response.id == "as:resp9"


def test_package_name_routes_to_google_play_when_both_ready(build_omni):
    app_store = FakeReviewService(Vendor.APP_STORE)
    google_play = FakeReviewService(
        Vendor.GOOGLE_PLAY,
        pages={None: make_page(make_review("com.foo.bar:abc"))},
    )
    omni = build_omni(app_store=app_store, google_play=google_play)

    page = asyncio.run(omni.get_reviews("com.foo.bar"))

    assert google_play.fetch_calls[0][0] == "com.foo.bar"
    assert app_store.fetch_calls == []
    assert page.reviews[0].id == "gp:com.foo.bar:abc"


def test_free_text_falls_back_to_the_only_ready_store(build_omni):
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY)
    omni = build_omni(google_play=google_play)

    asyncio.run(omni.get_reviews("Some App"))

    assert google_play.fetch_calls[0][0] == "Some App"


def test_directory_match_wins_over_shape(build_omni, directory):
    directory.add_or_update(make_app("X1", "Example", vendor=Vendor.GOOGLE_PLAY, bundle_id="com.example.app"))
    app_store = FakeReviewService(Vendor.APP_STORE)
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY)
    omni = build_omni(app_store=app_store, google_play=google_play)

    asyncio.run(omni.get_reviews("X1"))

    assert google_play.fetch_calls[0][0] == "com.example.app"
    assert app_store.fetch_calls == []


def test_directory_match_for_unconfigured_store_does_not_fall_through(build_omni, directory):
    directory.add_or_update(make_app("X1", "Example", vendor=Vendor.GOOGLE_PLAY, bundle_id="com.example.app"))
    app_store = FakeReviewService(Vendor.APP_STORE)
    omni = build_omni(app_store=app_store)

    with pytest.raises(VendorNotConfiguredError) as excinfo:
        asyncio.run(omni.get_reviews("com.example.app"))

    assert "Example" in str(excinfo.value)
    assert "Google Play" in str(excinfo.value)
    assert app_store.fetch_calls == []


def test_empty_query_is_rejected(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))
    with pytest.raises(ValueError):
        asyncio.run(omni.get_reviews("   "))


def test_default_request_uses_configured_limit(build_omni):
    app_store = FakeReviewService(Vendor.APP_STORE)
    omni = build_omni(app_store=app_store)

    asyncio.run(omni.get_reviews("1"))

    assert app_store.fetch_calls[0][1].limit == omni.settings.review.default_limit


def test_fetch_all_reviews_follows_cursors(build_omni):
    app_store = FakeReviewService(
        Vendor.APP_STORE,
        pages={
            None: make_page(make_review("1"), make_review("2"), next_cursor="c2"),
            "c2": make_page(make_review("3"), next_cursor="c3"),
            "c3": make_page(make_review("4")),
        },
    )
    omni = build_omni(app_store=app_store)

    reviews = asyncio.run(omni.fetch_all_reviews("42", ReviewRequest(limit=2))).reviews
    assert [r.id for r in reviews] == ["as:1", "as:2", "as:3", "as:4"]
    assert [call[1].cursor for call in app_store.fetch_calls] == [None, "c2", "c3"]

    limited = asyncio.run(omni.fetch_all_reviews("42", ReviewRequest(limit=2), max_pages=2))
    assert len(limited.reviews) == 3
    assert limited.pagination.next_cursor is None


def test_fetch_all_reviews_keeps_each_page_warning_once(build_omni):
    first = make_page(make_review("com.a:1"), next_cursor="t2")
    first.warnings = ["Sorting applied to this page only", "Country filter 'US' ignored"]
    second = make_page(make_review("com.a:2"))
    second.warnings = ["Sorting applied to this page only"]
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY, pages={None: first, "t2": second})
    omni = build_omni(google_play=google_play)

    page = asyncio.run(omni.fetch_all_reviews("com.a"))

    assert [r.id for r in page.reviews] == ["gp:com.a:1", "gp:com.a:2"]
    assert page.warnings == ["Sorting applied to this page only", "Country filter 'US' ignored"]


def test_list_apps_merges_and_reports_failing_store(build_omni, settings):
    app_store = FakeReviewService(
        Vendor.APP_STORE,
        apps=[make_app("1", "One"), make_app("2", "Two"), make_app("3", "Three")],
    )
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY, list_error=RuntimeError("quota exceeded"))
    omni = build_omni(app_store=app_store, google_play=google_play)

    result = asyncio.run(omni.list_apps())

    assert len(result.apps) == 3
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Google Play: Error - ")
    assert "quota exceeded" in result.warnings[0]

    saved = json.loads(settings.storage.apps_file.read_text(encoding="utf-8"))
    assert {a["id"] for a in saved} == {"1", "2", "3"}


def test_list_apps_keeps_local_metadata_and_hidden_apps(build_omni, directory):
    directory.add_or_update(make_app("1", "One", notes="keep me", is_hidden=True))
    directory.save()

    app_store = FakeReviewService(Vendor.APP_STORE, apps=[make_app("1", "One v2")])
    omni = build_omni(app_store=app_store)

    result = asyncio.run(omni.list_apps())

    assert [(a.name, a.notes, a.is_hidden) for a in result.apps] == [("One v2", "keep me", True)]


def test_list_apps_save_failure_becomes_warning(settings, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    app_store = FakeReviewService(Vendor.APP_STORE, apps=[make_app("1", "One")])
    omni = OmniReviewService(
        settings=settings,
        directory=AppDirectory(blocker / "Apps.json"),
        service_factories={Vendor.APP_STORE: lambda s: app_store},
    )

    result = asyncio.run(omni.list_apps())

    assert [a.native_id for a in result.apps] == ["1"]
    assert any(w.startswith("Warning: Failed to save app database") for w in result.warnings)


def test_list_apps_cancellation_propagates(build_omni, settings):
    class SlowService(FakeReviewService):
        async def list_apps(self):
            self.started.set()
            await asyncio.sleep(30)

    async def scenario():
        slow = SlowService(Vendor.APP_STORE)
        slow.started = asyncio.Event()
        omni = build_omni(app_store=slow, google_play=FakeReviewService(Vendor.GOOGLE_PLAY))

        task = asyncio.create_task(omni.list_apps())
        await slow.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert not settings.storage.apps_file.exists()


def test_respond_strips_and_restores_scheme(build_omni):
    app_store = FakeReviewService(Vendor.APP_STORE)
    omni = build_omni(app_store=app_store)

    response = asyncio.run(omni.respond_to_review("as:999", "Thanks!"))

    assert app_store.responses == [("999", "Thanks!")]
    assert response.id == "as:resp-1"


def test_respond_keeps_colons_in_google_play_ids(build_omni):
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY)
    omni = build_omni(google_play=google_play)

    asyncio.run(omni.respond_to_review("gp:com.example.app:abc", "Hi"))

    assert google_play.responses == [("com.example.app:abc", "Hi")]


def test_respond_rejects_empty_text(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))
    with pytest.raises(ValueError):
        asyncio.run(omni.respond_to_review("as:1", " "))


def test_respond_to_unconfigured_store(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))
    with pytest.raises(VendorNotConfiguredError) as excinfo:
        asyncio.run(omni.respond_to_review("gp:com.app:1", "Hi"))
    assert "Google Play" in str(excinfo.value)


def test_delete_response_requires_scheme(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))
    with pytest.raises(MalformedIdError) as excinfo:
        asyncio.run(omni.delete_review_response("nocolon"))
    assert "scheme:id" in str(excinfo.value)


def test_delete_response_rejects_unknown_scheme(build_omni):
    omni = build_omni(app_store=FakeReviewService(Vendor.APP_STORE))
    with pytest.raises(MalformedIdError):
        asyncio.run(omni.delete_review_response("xx:1"))


def test_delete_response_dispatches_native_id(build_omni):
    app_store = FakeReviewService(Vendor.APP_STORE)
    omni = build_omni(app_store=app_store)
    asyncio.run(omni.delete_review_response("as:r-77"))
    assert app_store.deleted == ["r-77"]


def test_google_play_not_supported_propagates(build_omni):
    google_play = FakeReviewService(Vendor.GOOGLE_PLAY, delete_error=NotSupportedError("no"))
    omni = build_omni(google_play=google_play)
    with pytest.raises(NotSupportedError):
        asyncio.run(omni.delete_review_response("gp:com.app:1_response"))


def test_close_closes_ready_services(build_omni):
    app_store = FakeReviewService(Vendor.APP_STORE)
    omni = build_omni(app_store=app_store)
    omni.close()
    assert app_store.closed

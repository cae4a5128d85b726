from __future__ import annotations

import json

import pytest

from reviewfetch import cli
from reviewfetch.application import OmniReviewService
from reviewfetch.domain import Vendor

from conftest import FakeReviewService, make_app, make_page, make_review


@pytest.fixture
def app_store():
    return FakeReviewService(
        Vendor.APP_STORE,
        apps=[make_app("111", "Alpha")],
        pages={
            None: make_page(make_review("r1", response_id="x"), make_review("r2"), next_cursor="c2"),
            "c2": make_page(make_review("r3")),
        },
    )


@pytest.fixture(autouse=True)
def wire_cli(settings, app_store, monkeypatch):
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_service",
        lambda s: OmniReviewService(settings=s, service_factories={Vendor.APP_STORE: lambda _: app_store}),
    )


def _saved_apps(settings):
    return json.loads(settings.storage.apps_file.read_text(encoding="utf-8"))


def test_add_edit_delete_app(settings, capsys):
    assert cli.main(["add-app", "Google Play", "com.example.app", "Example", "--notes", "beta"]) == 0
    saved = _saved_apps(settings)
    assert saved[0]["bundleId"] == "com.example.app"
    assert saved[0]["notes"] == "beta"

    assert cli.main(["edit-app", "android", "com.example.app", "--hidden", "--project-url", "https://git/x"]) == 0
    saved = _saved_apps(settings)
    assert saved[0]["isHidden"] is True
    assert saved[0]["projectUrl"] == "https://git/x"

    assert cli.main(["edit-app", "android", "com.example.app", "--visible"]) == 0
    assert _saved_apps(settings)[0]["isHidden"] is False

    assert cli.main(["delete-app", "googleplay", "com.example.app"]) == 0
    assert _saved_apps(settings) == []
    assert cli.main(["delete-app", "googleplay", "com.example.app"]) == 1


def test_unknown_store_is_an_error(capsys):
    assert cli.main(["add-app", "steam", "1", "X"]) == 1
    assert "Unknown store" in capsys.readouterr().out


def test_list_prints_apps_and_saves(settings, capsys):
    assert cli.main(["list"]) == 0
    out = capsys.readouterr().out
    assert "App Store (1)" in out
    assert "Alpha" in out
    assert _saved_apps(settings)[0]["id"] == "111"


def test_fetch_single_page_prints_next_cursor(capsys):
    assert cli.main(["fetch", "111", "--limit", "2"]) == 0
    out = capsys.readouterr().out
    assert "[as:r1]" in out
    assert "Response [as:x]" in out
    assert "Next page: --cursor c2" in out


def test_fetch_unanswered_export(tmp_path, capsys):
    target = tmp_path / "out.csv"
    assert cli.main(["fetch", "111", "--unanswered", "--export", str(target)]) == 0
    assert "Exported 2 reviews" in capsys.readouterr().out
    assert target.read_text(encoding="utf-8").count("as:r") == 2


def test_export_prints_page_warnings(app_store, tmp_path, capsys):
    app_store.pages["c2"].warnings = ["Country filter 'US' ignored"]

    assert cli.main(["fetch", "111", "--export", str(tmp_path / "out.csv")]) == 0

    out = capsys.readouterr().out
    assert "Exported 3 reviews" in out
    assert out.count("WARNING: Country filter 'US' ignored") == 1


def test_respond_and_malformed_id(app_store, capsys):
    assert cli.main(["respond", "as:r1", "Thanks!"]) == 0
    assert app_store.responses == [("r1", "Thanks!")]
    assert "as:resp-1" in capsys.readouterr().out

    assert cli.main(["delete-response", "nocolon"]) == 1
    assert "scheme:id" in capsys.readouterr().out


def test_status_runs_without_credentials(settings, capsys):
    assert cli.main(["status"]) == 0
    out = capsys.readouterr().out
    assert "App Store Connect: NOT configured" in out
    assert "Known apps: 0" in out

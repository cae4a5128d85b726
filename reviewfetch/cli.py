"""
Review Fetch CLI
================

Command line front end for the review dispatch core.

    reviewfetch status
    reviewfetch list [--hidden]
    reviewfetch fetch "My App" --limit 20 --sort LowestRatingFirst
    reviewfetch fetch com.example.app --unanswered --export reviews.csv
    reviewfetch respond as:123456 "Thanks for the feedback!"
    reviewfetch delete-response as:987654
    reviewfetch add-app "Google Play" com.example.app "Example App"
    reviewfetch edit-app "App Store" 123456789 --notes "Legacy" --hidden
    reviewfetch delete-app "Google Play" com.example.app

App directory commands (add-app, edit-app, delete-app) work without any
credentials; everything else needs at least one store configured.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import __version__
from .application import OmniReviewService
from .domain import (
    AppRecord,
    ReviewFetchError,
    ReviewRequest,
    ReviewSortOrder,
    Vendor,
)
from .infrastructure.config import Settings, get_settings
from .infrastructure.credentials import credentials_status
from .infrastructure.export import export_reviews_csv
from .infrastructure.persistence import AppDirectory

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> OmniReviewService:
    return OmniReviewService(settings=settings)


def _parse_store(value: str) -> Vendor:
    vendor = Vendor.from_alias(value)
    if vendor is None:
        raise ValueError(f"Unknown store '{value}'. Use 'App Store' or 'Google Play'.")
    return vendor


def _load_directory(settings: Settings) -> AppDirectory:
    directory = AppDirectory(settings.storage.apps_file)
    directory.load()
    return directory


# ── Output ─────────────────────────────────────────────────────────

def _print_app(app: AppRecord):
    flags = " [hidden]" if app.is_hidden else ""
    print(f"  {app.name}{flags}")
    print(f"     ID: {app.native_id}" + (f" | Bundle: {app.bundle_id}" if app.bundle_id else ""))
    if app.platforms:
        print(f"     Platforms: {', '.join(app.platforms)}")
    if app.current_version:
        print(f"     Version: {app.current_version}")
    if app.project_url:
        print(f"     Project: {app.project_url}")
    if app.notes:
        print(f"     Notes: {app.notes}")


def _print_review(review):
    stars = "*" * review.rating + "." * (5 - review.rating)
    print(f"\n{'─' * 40}")
    print(f"[{review.id}] {stars} {review.created_date:%Y-%m-%d}"
          + (f" ({review.territory})" if review.territory else ""))
    if review.title:
        print(f"   {review.title}")
    if review.body:
        print(f"   {review.body}")
    print(f"   - {review.reviewer_nickname or 'Anonymous'}")
    if review.developer_response:
        print(f"   Response [{review.developer_response.id}]: {review.developer_response.body}")


def _print_warnings(warnings: List[str]):
    for warning in warnings:
        print(f"WARNING: {warning}")


# ── Commands ───────────────────────────────────────────────────────

def cmd_status(args, settings: Settings) -> int:
    print(f"Config directory: {settings.storage.config_dir}")
    print(f"Credentials file: {settings.storage.credentials_file}")
    print(f"App directory:    {settings.storage.apps_file}\n")

    for vendor, status in credentials_status(settings).items():
        mark = "configured" if status["configured"] else "NOT configured"
        print(f"  {vendor.display_name}: {mark}")
        print(f"     {status['detail']}")

    directory = _load_directory(settings)
    hidden = sum(1 for app in directory.get_all() if app.is_hidden)
    print(f"\nKnown apps: {len(directory)} ({hidden} hidden)")

    issues = settings.validate()
    if issues:
        print()
        for issue in issues:
            print(issue)
    return 0


def cmd_list(args, settings: Settings) -> int:
    service = build_service(settings)
    try:
        result = asyncio.run(service.list_apps())
    finally:
        service.close()

    apps = [a for a in result.apps if args.hidden or not a.is_hidden]
    if not apps:
        print("No apps found.")
    for vendor in Vendor:
        group = [a for a in apps if a.vendor == vendor]
        if not group:
            continue
        print(f"\n{vendor.value} ({len(group)})")
        for app in group:
            _print_app(app)

    _print_warnings(result.warnings)
    return 0


async def _fetch(service: OmniReviewService, args, settings: Settings):
    request = ReviewRequest(
        sort_order=ReviewSortOrder.parse(args.sort),
        country=args.country,
        cursor=args.cursor,
        limit=args.limit or settings.review.default_limit,
    )

    if args.pages in (None, 1) and not (args.export or args.unanswered):
        page = await service.get_reviews(args.app, request)
        return page.reviews, page.warnings, page.pagination.next_cursor

    max_pages = args.pages or settings.review.max_export_pages
    page = await service.fetch_all_reviews(args.app, request, max_pages=max_pages)
    return page.reviews, page.warnings, None


def cmd_fetch(args, settings: Settings) -> int:
    service = build_service(settings)
    try:
        reviews, warnings, next_cursor = asyncio.run(_fetch(service, args, settings))
    finally:
        service.close()

    if args.unanswered:
        reviews = [r for r in reviews if not r.has_response]

    if args.export:
        count = export_reviews_csv(reviews, args.export)
        print(f"Exported {count} reviews to {args.export}")
    else:
        for review in reviews:
            _print_review(review)
        print(f"\n{len(reviews)} reviews")
        if next_cursor:
            print(f"Next page: --cursor {next_cursor}")

    _print_warnings(warnings)
    return 0


def cmd_respond(args, settings: Settings) -> int:
    service = build_service(settings)
    try:
        response = asyncio.run(service.respond_to_review(args.review_id, args.text))
    finally:
        service.close()

    print(f"Response posted: {response.id}")
    if response.state:
        print(f"   State: {response.state}")
    return 0


def cmd_delete_response(args, settings: Settings) -> int:
    service = build_service(settings)
    try:
        asyncio.run(service.delete_review_response(args.response_id))
    finally:
        service.close()

    print(f"Response deleted: {args.response_id}")
    return 0


def cmd_add_app(args, settings: Settings) -> int:
    vendor = _parse_store(args.store)
    directory = _load_directory(settings)

    record = AppRecord(
        native_id=args.id,
        name=args.name,
        vendor=vendor,
        # Google Play apps are looked up by package name
        bundle_id=args.bundle_id or (args.id if vendor == Vendor.GOOGLE_PLAY else None),
        project_url=args.project_url,
        is_hidden=args.hidden,
        notes=args.notes,
    )
    directory.add_or_update(record)
    directory.save()
    print(f"Added {vendor.value} app '{record.name}' ({record.lookup_id})")
    return 0


def cmd_edit_app(args, settings: Settings) -> int:
    vendor = _parse_store(args.store)
    directory = _load_directory(settings)

    updated = directory.update_metadata(
        vendor,
        args.key,
        name=args.name,
        project_url=args.project_url,
        is_hidden=args.hidden,
        notes=args.notes,
    )
    if updated is None:
        print(f"Error: No {vendor.value} app '{args.key}' in the app directory. Run 'list' to see known apps.")
        return 1

    directory.save()
    print(f"Updated {vendor.value} app '{updated.name}'")
    return 0


def cmd_delete_app(args, settings: Settings) -> int:
    vendor = _parse_store(args.store)
    directory = _load_directory(settings)

    if not directory.delete(vendor, args.key):
        print(f"Error: No {vendor.value} app '{args.key}' in the app directory.")
        return 1

    directory.save()
    print(f"Deleted {vendor.value} app '{args.key}'")
    return 0


# ── Parser ─────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reviewfetch",
        description="Fetch and answer App Store and Google Play reviews.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("status", help="Show configuration and credentials")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("list", help="List apps from every configured store")
    p.add_argument("--hidden", action="store_true", help="Include hidden apps")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("fetch", help="Fetch reviews for an app")
    p.add_argument("app", help="App name, bundle/package id or store id")
    p.add_argument("--country", help="Territory filter (App Store only)")
    p.add_argument("--sort", default=ReviewSortOrder.NEWEST_FIRST.value,
                   help=", ".join(o.value for o in ReviewSortOrder))
    p.add_argument("--limit", type=int, help="Reviews per page")
    p.add_argument("--cursor", help="Continue from a previous page")
    p.add_argument("--pages", type=int,
                   help="Pages to follow (default 1; --export and --unanswered follow up to the export limit)")
    p.add_argument("--unanswered", action="store_true", help="Only reviews without a response")
    p.add_argument("--export", metavar="FILE", help="Write reviews to a CSV file")
    p.set_defaults(func=cmd_fetch)

    p = sub.add_parser("respond", help="Respond to a review")
    p.add_argument("review_id", help="Review id, e.g. as:123 or gp:com.app:abc")
    p.add_argument("text")
    p.set_defaults(func=cmd_respond)

    p = sub.add_parser("delete-response", help="Delete a developer response")
    p.add_argument("response_id")
    p.set_defaults(func=cmd_delete_response)

    p = sub.add_parser("add-app", help="Add an app to the directory by hand")
    p.add_argument("store", help="'App Store' or 'Google Play'")
    p.add_argument("id", help="App id (App Store) or package name (Google Play)")
    p.add_argument("name")
    p.add_argument("--bundle-id")
    p.add_argument("--project-url")
    p.add_argument("--notes")
    p.add_argument("--hidden", action="store_true")
    p.set_defaults(func=cmd_add_app)

    p = sub.add_parser("edit-app", help="Edit local app metadata")
    p.add_argument("store")
    p.add_argument("key", help="App id or bundle/package id")
    p.add_argument("--name")
    p.add_argument("--project-url", help="Empty string clears it")
    p.add_argument("--notes", help="Empty string clears them")
    visibility = p.add_mutually_exclusive_group()
    visibility.add_argument("--hidden", dest="hidden", action="store_true", default=None)
    visibility.add_argument("--visible", dest="hidden", action="store_false")
    p.set_defaults(func=cmd_edit_app)

    p = sub.add_parser("delete-app", help="Remove an app from the directory")
    p.add_argument("store")
    p.add_argument("key")
    p.set_defaults(func=cmd_delete_app)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        return args.func(args, get_settings())
    except (ReviewFetchError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nCancelled")
        return 130


if __name__ == "__main__":
    sys.exit(main())

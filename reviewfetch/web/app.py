"""
FastAPI Web Application - Review Fetch HTTP API
================================================

JSON API over the review dispatch core: app directory management, review
listing and CSV export, and developer responses.

App directory routes work without credentials. Review routes answer 503
until at least one store is configured.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .. import __version__
from ..application import OmniReviewService
from ..domain import (
    ApiError,
    AppRecord,
    AuthError,
    CredentialsError,
    DispatchError,
    MalformedIdError,
    NoCredentialsError,
    NotSupportedError,
    Review,
    ReviewFetchError,
    ReviewRequest,
    ReviewSortOrder,
    StorageError,
    UnresolvableQueryError,
    Vendor,
    VendorNotConfiguredError,
)
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.credentials import credentials_status
from ..infrastructure.export import reviews_to_frame
from ..infrastructure.persistence import AppDirectory

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ── Globals ────────────────────────────────────────────────────────
settings: Optional[Settings] = None
directory: Optional[AppDirectory] = None
omni: Optional[OmniReviewService] = None
omni_error: Optional[str] = None


def build_service(app_settings: Settings, app_directory: AppDirectory) -> OmniReviewService:
    return OmniReviewService(settings=app_settings, directory=app_directory)


# ── Lifespan ───────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    global settings, directory, omni, omni_error
    settings = get_settings()
    for issue in settings.validate():
        logger.warning(issue)

    directory = AppDirectory(settings.storage.apps_file)
    try:
        omni = build_service(settings, directory)
        omni_error = None
        logger.info(f"Review API ready: {', '.join(omni.available_stores())}")
    except NoCredentialsError as e:
        omni = None
        omni_error = str(e)
        logger.warning(f"Review endpoints disabled: {e}")

    yield

    if omni is not None:
        omni.close()
    omni = None


app = FastAPI(title="Review Fetch", description="App Store and Google Play reviews", version=__version__, lifespan=lifespan)


# ── Request Models ─────────────────────────────────────────────────

class AddAppRequest(BaseModel):
    store: str
    id: str
    name: str
    bundle_id: Optional[str] = None
    project_url: Optional[str] = None
    notes: Optional[str] = None
    is_hidden: bool = False


class UpdateAppRequest(BaseModel):
    name: Optional[str] = None
    project_url: Optional[str] = None
    notes: Optional[str] = None
    is_hidden: Optional[bool] = None


class RespondRequest(BaseModel):
    text: str


# ── Error Handling ─────────────────────────────────────────────────

# First match wins; subclasses before their bases
ERROR_STATUS = [
    (MalformedIdError, 400),
    (UnresolvableQueryError, 404),
    (VendorNotConfiguredError, 409),
    (CredentialsError, 503),
    (NotSupportedError, 501),
    (AuthError, 502),
    (ApiError, 502),
    (StorageError, 500),
    (DispatchError, 502),
]


def status_for(exc: ReviewFetchError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


@app.exception_handler(ReviewFetchError)
async def review_fetch_error_handler(request: Request, exc: ReviewFetchError):
    body = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, ApiError):
        body["statusCode"] = exc.status_code
        body["vendorCode"] = exc.vendor_code
    status = status_for(exc)
    if status >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": "ValueError", "detail": str(exc)})


# ── Helpers ────────────────────────────────────────────────────────

def _require_service() -> OmniReviewService:
    if omni is None:
        raise NoCredentialsError(omni_error or "Review service is not initialised")
    return omni


async def _loaded_directory() -> AppDirectory:
    await asyncio.to_thread(directory.ensure_loaded)
    return directory


def _parse_store(store: str) -> Vendor:
    vendor = Vendor.from_alias(store)
    if vendor is None:
        raise HTTPException(status_code=400, detail=f"Unknown store '{store}'. Use 'App Store' or 'Google Play'.")
    return vendor


def _summary(reviews: List[Review]) -> dict:
    rated = [r.rating for r in reviews if r.rating]
    return {
        "count": len(reviews),
        "averageRating": round(sum(rated) / len(rated), 2) if rated else None,
        "withResponse": sum(1 for r in reviews if r.has_response),
    }


def _review_request(sort: Optional[str], country: Optional[str], cursor: Optional[str], limit: Optional[int]) -> ReviewRequest:
    return ReviewRequest(
        sort_order=ReviewSortOrder.parse(sort),
        country=country or None,
        cursor=cursor or None,
        limit=limit or settings.review.default_limit,
    )


# ── Status ─────────────────────────────────────────────────────────

@app.get("/api/status")
async def api_status():
    stores = await asyncio.to_thread(credentials_status, settings)
    app_directory = await _loaded_directory()
    return {
        "version": __version__,
        "stores": {
            vendor.value: {"configured": status["configured"], "detail": status["detail"]}
            for vendor, status in stores.items()
        },
        "availableStores": omni.available_stores() if omni else [],
        "appCount": len(app_directory),
        "warnings": settings.validate(),
    }


# ── App Directory ──────────────────────────────────────────────────

@app.get("/api/apps")
async def api_list_apps(include_hidden: bool = False):
    app_directory = await _loaded_directory()
    return {"apps": [a.to_dict() for a in app_directory.get_all(include_hidden=include_hidden)]}


@app.post("/api/apps/sync")
async def api_sync_apps():
    result = await _require_service().list_apps()
    return {"apps": [a.to_dict() for a in result.apps], "warnings": result.warnings}


@app.post("/api/apps", status_code=201)
async def api_add_app(body: AddAppRequest):
    vendor = _parse_store(body.store)
    app_directory = await _loaded_directory()

    record = AppRecord(
        native_id=body.id,
        name=body.name,
        vendor=vendor,
        bundle_id=body.bundle_id or (body.id if vendor == Vendor.GOOGLE_PLAY else None),
        project_url=body.project_url,
        is_hidden=body.is_hidden,
        notes=body.notes,
    )
    app_directory.add_or_update(record)
    await asyncio.to_thread(app_directory.save)
    return record.to_dict()


@app.patch("/api/apps/{store}/{key}")
async def api_update_app(store: str, key: str, body: UpdateAppRequest):
    vendor = _parse_store(store)
    app_directory = await _loaded_directory()

    updated = app_directory.update_metadata(
        vendor,
        key,
        name=body.name,
        project_url=body.project_url,
        is_hidden=body.is_hidden,
        notes=body.notes,
    )
    if updated is None:
        raise HTTPException(status_code=404, detail=f"No {vendor.value} app '{key}' in the app directory")

    await asyncio.to_thread(app_directory.save)
    return updated.to_dict()


@app.delete("/api/apps/{store}/{key}")
async def api_delete_app(store: str, key: str):
    vendor = _parse_store(store)
    app_directory = await _loaded_directory()

    if not app_directory.delete(vendor, key):
        raise HTTPException(status_code=404, detail=f"No {vendor.value} app '{key}' in the app directory")

    await asyncio.to_thread(app_directory.save)
    return {"deleted": key, "store": vendor.value}


# ── Reviews ────────────────────────────────────────────────────────

@app.get("/api/apps/{query}/reviews")
async def api_get_reviews(
    query: str,
    sort: Optional[str] = None,
    country: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    unanswered: bool = False,
):
    page = await _require_service().get_reviews(query, _review_request(sort, country, cursor, limit))
    if unanswered:
        page.reviews = [r for r in page.reviews if not r.has_response]

    result = page.to_dict()
    result["summary"] = _summary(page.reviews)
    return result


@app.get("/api/apps/{query}/reviews/export")
async def api_export_reviews(
    query: str,
    sort: Optional[str] = None,
    country: Optional[str] = None,
    limit: Optional[int] = None,
    max_pages: Optional[int] = None,
    unanswered: bool = False,
):
    page = await _require_service().fetch_all_reviews(
        query,
        _review_request(sort, country, None, limit),
        max_pages=max_pages or settings.review.max_export_pages,
    )
    reviews = page.reviews
    if unanswered:
        reviews = [r for r in reviews if not r.has_response]

    headers = {"Content-Disposition": 'attachment; filename="reviews.csv"'}
    if page.warnings:
        for warning in page.warnings:
            logger.warning(f"Export of '{query}': {warning}")
        headers["X-Review-Warnings"] = " | ".join(page.warnings)

    csv_text = reviews_to_frame(reviews).to_csv(index=False)
    return Response(content=csv_text, media_type="text/csv", headers=headers)


@app.post("/api/reviews/{review_id}/response")
async def api_respond(review_id: str, body: RespondRequest):
    response = await _require_service().respond_to_review(review_id, body.text)
    return response.to_dict()


@app.delete("/api/responses/{response_id}")
async def api_delete_response(response_id: str):
    await _require_service().delete_review_response(response_id)
    return {"deleted": response_id}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=get_settings().web.host, port=get_settings().web.port)

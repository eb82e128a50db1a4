"""
HTTP routes for the public API: messages, bottles, recipients, music
search, visits, feedback, reviews, site content and user profiles.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional
from xml.sax.saxutils import escape

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
)

from backend import messages as message_ops
from backend.auth import AuthBackend, AuthUser
from backend.cache import MessageCache
from backend.config import Settings, get_settings
from backend.content import SiteContentService
from backend.db import (
    DbClient,
    FeedbackRecord,
    MessageRecord,
    ReviewRecord,
    UserRecord,
    VisitRecord,
)
from backend.dependencies import (
    get_auth_backend,
    get_content_service,
    get_current_user,
    get_db_client,
    get_geo_locator,
    get_message_cache,
    get_optional_user,
    get_registered_user,
    get_spotify_client,
    get_storage_client,
    get_viewer_id,
    is_admin,
)
from backend.geolocation import GeoLocator, client_ip
from backend.images import ImageValidationError, store_image
from backend.recipients import page_recipients
from backend.schemas import (
    BottleResponse,
    DeleteAccountResponse,
    EditMessageRequest,
    FavoriteToggleResponse,
    FeedbackRequest,
    FeedbackResponse,
    HistoryResponse,
    MessagePageResponse,
    MessageResponse,
    ProfileResponse,
    RecentlyViewedResponse,
    RecipientPageResponse,
    RecipientResponse,
    ReviewItem,
    ReviewListResponse,
    ReviewRequest,
    SendMessageRequest,
    SendMessageResponse,
    TrackResponse,
    TracksResponse,
    TrackVisitResponse,
    UpdateProfileRequest,
)
from backend.spotify import SpotifyClient, SpotifyConfigError, SpotifyError
from backend.stats import review_summary
from backend.storage import StorageClient
from shared.constants import ANONYMOUS_SENDER_NAME

logger = logging.getLogger(__name__)

router = APIRouter()
# Routes served outside the API prefix.
site_router = APIRouter()

SITEMAP_ENTRIES = (
    ("", "yearly", 1.0),
    ("/send", "monthly", 0.8),
    ("/browse", "weekly", 0.5),
    ("/about", "monthly", 0.5),
)


def message_response(message: MessageRecord, storage: StorageClient) -> MessageResponse:
    return MessageResponse(
        id=message.message_id,
        content=message.content,
        recipient=message.recipient,
        timestamp=message.timestamp,
        photo_url=(
            storage.presign_get(message.photo_path) if message.photo_path else None
        ),
        spotify_track_id=message.spotify_track_id,
    )


def _load_owned_message(
    db: DbClient, message_id: str, user: AuthUser, settings: Settings
) -> MessageRecord:
    message = db.get_message(message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.sender_id != user.uid and not is_admin(user, settings):
        raise HTTPException(
            status_code=403, detail="You can only change your own messages"
        )
    return message


# Messages


@router.post("/messages", response_model=SendMessageResponse, status_code=201)
def send_message(
    payload: SendMessageRequest,
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
    settings: Settings = Depends(get_settings),
):
    try:
        message = message_ops.send_message(
            db,
            storage,
            cache,
            content=payload.content,
            recipient=payload.recipient,
            sender=user,
            photo_data_url=payload.photo,
            spotify_track_id=payload.spotify_track_id,
            max_photo_bytes=settings.max_photo_bytes,
            photo_max_dimension=settings.photo_max_dimension,
        )
    except ImageValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SendMessageResponse(
        message_id=message.message_id, recipient=message.recipient
    )


@router.get("/messages", response_model=MessagePageResponse)
def browse_messages(
    cursor: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    try:
        page = message_ops.browse_messages(
            db,
            page_size=page_size or settings.browse_page_size,
            cursor=cursor,
            search_term=search,
        )
    except message_ops.InvalidCursorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MessagePageResponse(
        messages=[message_response(m, storage) for m in page.messages],
        next_cursor=page.next_cursor,
    )


@router.get("/messages/{message_id}", response_model=MessageResponse)
def get_message(
    message_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    message = db.get_message(message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message_response(message, storage)


@router.patch("/messages/{message_id}", response_model=MessageResponse)
def edit_message(
    message_id: str,
    payload: EditMessageRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
    settings: Settings = Depends(get_settings),
):
    _load_owned_message(db, message_id, user, settings)
    updated = message_ops.edit_message(db, cache, message_id, payload.content)
    if not updated:
        raise HTTPException(status_code=404, detail="Message not found")
    return message_response(updated, storage)


@router.delete("/messages/{message_id}", status_code=204)
def delete_message(
    message_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
    settings: Settings = Depends(get_settings),
):
    _load_owned_message(db, message_id, user, settings)
    message_ops.delete_message(db, storage, cache, message_id)
    return Response(status_code=204)


# Bottles and recipients


@router.get("/bottles/{recipient}", response_model=BottleResponse)
def get_bottle(
    recipient: str,
    viewer: Optional[str] = Depends(get_viewer_id),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
):
    if not recipient.strip():
        raise HTTPException(status_code=400, detail="Recipient cannot be empty.")
    bottle = message_ops.get_bottle(db, cache, recipient, viewer)
    return BottleResponse(
        recipient=bottle.recipient,
        messages=[message_response(m, storage) for m in bottle.messages],
        cached=bottle.cached,
    )


@router.get("/recipients", response_model=RecipientPageResponse)
def list_recipients(
    offset: int = Query(0, ge=0),
    batch_size: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    page = page_recipients(
        db,
        offset=offset,
        batch_size=batch_size or settings.recipient_batch_size,
        search_term=search,
        window=settings.recipient_browse_window,
    )
    return RecipientPageResponse(
        recipients=[RecipientResponse(**asdict(r)) for r in page.recipients],
        offset=page.offset,
        total=page.total,
        has_more=page.has_more,
    )


@router.get("/recently-viewed", response_model=RecentlyViewedResponse)
def recently_viewed(
    viewer: Optional[str] = Depends(get_viewer_id),
    cache: MessageCache = Depends(get_message_cache),
):
    if not viewer:
        return RecentlyViewedResponse(recipients=[])
    return RecentlyViewedResponse(recipients=cache.recent(viewer))


# Music search proxy


def _tracks_or_error(fetch) -> TracksResponse:
    try:
        tracks = fetch()
    except SpotifyConfigError as exc:
        logger.error("Spotify is not configured: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except SpotifyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return TracksResponse(tracks=[TrackResponse(**asdict(t)) for t in tracks])


@router.get("/spotify/search", response_model=TracksResponse)
def spotify_search(
    query: Optional[str] = Query(None),
    spotify: SpotifyClient = Depends(get_spotify_client),
):
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required")
    return _tracks_or_error(lambda: spotify.search(query.strip()))


@router.get("/spotify/featured", response_model=TracksResponse)
def spotify_featured(spotify: SpotifyClient = Depends(get_spotify_client)):
    return _tracks_or_error(spotify.featured)


# Visits


@router.post("/track-visit", response_model=TrackVisitResponse)
def track_visit(
    request: Request,
    db: DbClient = Depends(get_db_client),
    locator: GeoLocator = Depends(get_geo_locator),
):
    ip = client_ip(
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
    )
    location = locator.lookup(ip)
    try:
        db.add_visit(VisitRecord(country=location.country, city=location.city))
    except Exception as exc:
        logger.exception("Error tracking visit")
        raise HTTPException(status_code=500, detail="Error tracking visit") from exc
    return TrackVisitResponse(success=True, message="Visit tracked successfully.")


# Feedback and reviews


@router.post("/feedback", response_model=FeedbackResponse, status_code=201)
def submit_feedback(
    payload: FeedbackRequest,
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: DbClient = Depends(get_db_client),
):
    record = FeedbackRecord(
        content=payload.content,
        feedback_type=payload.type.value,
        sender_id=user.uid if user else None,
    )
    db.add_feedback(record)
    return FeedbackResponse(status="ok", feedback_id=record.feedback_id)


@router.get("/reviews", response_model=ReviewListResponse)
def list_reviews(db: DbClient = Depends(get_db_client)):
    reviews = db.list_reviews()
    average, count = review_summary(reviews)
    return ReviewListResponse(
        reviews=[
            ReviewItem(
                id=r.review_id,
                rating=r.rating,
                content=r.content,
                sender_name=r.sender_name,
                timestamp=r.timestamp,
            )
            for r in reviews
        ],
        average=average,
        count=count,
    )


@router.post("/reviews", response_model=ReviewItem, status_code=201)
def submit_review(
    payload: ReviewRequest,
    user: AuthUser = Depends(get_registered_user),
    db: DbClient = Depends(get_db_client),
):
    profile = db.get_user(user.uid)
    sender_name = (
        (profile.display_name if profile else None)
        or user.name
        or ANONYMOUS_SENDER_NAME
    )
    review = ReviewRecord(
        rating=payload.rating,
        content=payload.content.strip(),
        sender_id=user.uid,
        sender_name=sender_name,
    )
    db.add_review(review)
    return ReviewItem(
        id=review.review_id,
        rating=review.rating,
        content=review.content,
        sender_name=review.sender_name,
        timestamp=review.timestamp,
    )


# Site content


@router.get("/content")
def get_site_content(content: SiteContentService = Depends(get_content_service)):
    return content.get_content().to_document()


@site_router.get("/sitemap.xml", include_in_schema=False)
def sitemap(settings: Settings = Depends(get_settings)):
    base_url = settings.site_base_url.rstrip("/")
    urls = "".join(
        "<url>"
        f"<loc>{escape(base_url + path)}</loc>"
        f"<changefreq>{freq}</changefreq>"
        f"<priority>{priority}</priority>"
        "</url>"
        for path, freq, priority in SITEMAP_ENTRIES
    )
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{urls}</urlset>"
    )
    return Response(content=body, media_type="application/xml")


# Profile


def _profile_response(
    user: AuthUser,
    profile: Optional[UserRecord],
    storage: StorageClient,
    settings: Settings,
) -> ProfileResponse:
    photo_path = profile.photo_path if profile else None
    return ProfileResponse(
        uid=user.uid,
        display_name=(profile.display_name if profile else None) or user.name,
        email=user.email,
        photo_url=storage.presign_get(photo_path) if photo_path else None,
        is_anonymous=user.is_anonymous,
        is_admin=is_admin(user, settings),
    )


@router.get("/me", response_model=ProfileResponse)
def get_profile(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return _profile_response(user, db.get_user(user.uid), storage, settings)


@router.patch("/me", response_model=ProfileResponse)
def update_profile(
    payload: UpdateProfileRequest,
    user: AuthUser = Depends(get_registered_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    profile = db.get_user(user.uid) or UserRecord(uid=user.uid)
    profile.display_name = payload.display_name
    db.save_user(profile)
    return _profile_response(user, profile, storage, settings)


@router.post("/me/photo", response_model=ProfileResponse)
async def upload_profile_photo(
    file: UploadFile = File(...),
    user: AuthUser = Depends(get_registered_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please select an image file.")
    data = await file.read(settings.max_photo_bytes + 1)
    try:
        path = store_image(
            storage,
            f"users/{user.uid}/avatar",
            data,
            max_bytes=settings.max_photo_bytes,
            max_dimension=settings.photo_max_dimension,
        )
    except ImageValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    profile = db.get_user(user.uid) or UserRecord(uid=user.uid, display_name=user.name)
    if profile.photo_path and profile.photo_path != path:
        storage.delete(profile.photo_path)
    profile.photo_path = path
    db.save_user(profile)
    return _profile_response(user, profile, storage, settings)


@router.get("/me/history", response_model=HistoryResponse)
def message_history(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    sent = db.list_messages_for_sender(user.uid)
    return HistoryResponse(messages=[message_response(m, storage) for m in sent])


@router.get("/me/favorites", response_model=HistoryResponse)
def list_favorites(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    return HistoryResponse(
        messages=[message_response(m, storage) for m in db.list_favorites(user.uid)]
    )


@router.post("/me/favorites/{message_id}", response_model=FavoriteToggleResponse)
def toggle_favorite(
    message_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.get_message(message_id):
        raise HTTPException(status_code=404, detail="Message not found")
    favorite = db.toggle_favorite(user.uid, message_id)
    return FavoriteToggleResponse(message_id=message_id, favorite=favorite)


@router.delete("/me", response_model=DeleteAccountResponse)
def delete_account(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
    auth_backend: AuthBackend = Depends(get_auth_backend),
):
    profile = db.get_user(user.uid)
    deleted = message_ops.delete_messages_for_sender(db, storage, cache, user.uid)
    db.delete_user(user.uid)
    if profile and profile.photo_path:
        storage.delete(profile.photo_path)
    auth_backend.delete_account(user.uid)
    logger.info("Deleted account %s and %d messages", user.uid, len(deleted))
    return DeleteAccountResponse(status="deleted", deleted_messages=len(deleted))

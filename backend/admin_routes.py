"""
HTTP routes for the admin back office. Every route requires an admin token.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from backend import messages as message_ops
from backend.cache import MessageCache
from backend.config import Settings, get_settings
from backend.content import ContentValidationError, SiteContentService
from backend.db import DbClient, MessageRecord
from backend.dependencies import (
    get_content_service,
    get_db_client,
    get_message_cache,
    get_storage_client,
    require_admin,
)
from backend.routes import message_response
from backend.schemas import (
    AdminMessagePageResponse,
    AdminMessageResponse,
    DailyCountItem,
    DashboardResponse,
    EditMessageRequest,
    FeedbackItem,
    FeedbackListResponse,
    RawContentRequest,
    RawContentResponse,
    SaveContentResponse,
    VisitItem,
    VisitListResponse,
)
from backend.stats import compute_dashboard
from backend.storage import StorageClient
from shared.types import FeedbackType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _admin_message(
    message: MessageRecord, storage: StorageClient
) -> AdminMessageResponse:
    return AdminMessageResponse(
        **message_response(message, storage).model_dump(),
        sender_id=message.sender_id,
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    stats = compute_dashboard(db.list_messages())
    return DashboardResponse(
        total_messages=stats.total_messages,
        total_recipients=stats.total_recipients,
        engagement=stats.engagement,
        daily_messages=[
            DailyCountItem(date=d.date, count=d.count) for d in stats.daily_messages
        ],
        recent_messages=[_admin_message(m, storage) for m in stats.recent_messages],
    )


@router.get("/messages", response_model=AdminMessagePageResponse)
def list_messages(
    cursor: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    try:
        page = message_ops.browse_messages(
            db,
            page_size=settings.admin_page_size,
            cursor=cursor,
            search_term=search,
        )
    except message_ops.InvalidCursorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AdminMessagePageResponse(
        messages=[_admin_message(m, storage) for m in page.messages],
        next_cursor=page.next_cursor,
    )


@router.patch("/messages/{message_id}", response_model=AdminMessageResponse)
def edit_message(
    message_id: str,
    payload: EditMessageRequest,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
):
    updated = message_ops.edit_message(db, cache, message_id, payload.content)
    if not updated:
        raise HTTPException(status_code=404, detail="Message not found")
    return _admin_message(updated, storage)


@router.delete("/messages/{message_id}", status_code=204)
def delete_message(
    message_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    cache: MessageCache = Depends(get_message_cache),
):
    deleted = message_ops.delete_message(db, storage, cache, message_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Message not found")
    logger.info("Admin deleted message %s", message_id)
    return Response(status_code=204)


@router.get("/feedback", response_model=FeedbackListResponse)
def list_feedback(
    type: Optional[FeedbackType] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    items = db.list_feedback(type.value if type else None)
    return FeedbackListResponse(
        feedback=[
            FeedbackItem(
                id=fb.feedback_id,
                content=fb.content,
                type=fb.feedback_type,
                timestamp=fb.timestamp,
                sender_id=fb.sender_id,
            )
            for fb in items
        ]
    )


@router.get("/visits", response_model=VisitListResponse)
def list_visits(
    limit: int = Query(200, ge=1, le=1000),
    db: DbClient = Depends(get_db_client),
):
    return VisitListResponse(
        visits=[
            VisitItem(
                id=v.visit_id, country=v.country, city=v.city, timestamp=v.timestamp
            )
            for v in db.list_visits(limit=limit)
        ]
    )


@router.get("/content")
def get_content(content: SiteContentService = Depends(get_content_service)):
    return content.get_content().to_document()


@router.put("/content", response_model=SaveContentResponse)
def save_content(
    document: dict,
    content: SiteContentService = Depends(get_content_service),
):
    try:
        content.save(document)
    except ContentValidationError as exc:
        return JSONResponse(
            status_code=400,
            content=SaveContentResponse(success=False, error=str(exc)).model_dump(),
        )
    return SaveContentResponse(success=True)


@router.get("/content/raw", response_model=RawContentResponse)
def get_raw_content(content: SiteContentService = Depends(get_content_service)):
    return RawContentResponse(raw=content.get_raw())


@router.put("/content/raw", response_model=SaveContentResponse)
def save_raw_content(
    payload: RawContentRequest,
    content: SiteContentService = Depends(get_content_service),
):
    try:
        content.save(payload.raw)
    except ContentValidationError as exc:
        return JSONResponse(
            status_code=400,
            content=SaveContentResponse(success=False, error=str(exc)).model_dump(),
        )
    return SaveContentResponse(success=True)

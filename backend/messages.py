"""
Message operations shared by the public, profile and admin routes.

Every write that changes what a bottle shows invalidates that recipient's
cache entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from backend.auth import AuthUser
from backend.cache import MessageCache
from backend.db import DbClient, MessageRecord
from backend.images import decode_data_url, store_image
from backend.recipients import normalize_recipient
from backend.storage import StorageClient

logger = logging.getLogger(__name__)


class InvalidCursorError(ValueError):
    """Raised when a pagination cursor does not name a stored message."""


@dataclass
class MessagePage:
    messages: list[MessageRecord]
    next_cursor: Optional[str]


@dataclass
class Bottle:
    recipient: str
    messages: list[MessageRecord]
    cached: bool


def send_message(
    db: DbClient,
    storage: StorageClient,
    cache: MessageCache,
    *,
    content: str,
    recipient: str,
    sender: Optional[AuthUser] = None,
    photo_data_url: Optional[str] = None,
    spotify_track_id: Optional[str] = None,
    max_photo_bytes: int,
    photo_max_dimension: int,
) -> MessageRecord:
    message = MessageRecord(content=content, recipient=normalize_recipient(recipient))
    # Anonymous sessions never leave a sender trail.
    if sender is not None and not sender.is_anonymous:
        message.sender_id = sender.uid
    if spotify_track_id:
        message.spotify_track_id = spotify_track_id
    if photo_data_url:
        message.photo_path = store_image(
            storage,
            f"messages/{message.message_id}/photo",
            decode_data_url(photo_data_url),
            max_bytes=max_photo_bytes,
            max_dimension=photo_max_dimension,
        )

    db.add_message(message)
    cache.invalidate(message.recipient)
    logger.info("Stored message %s for %s", message.message_id, message.recipient)
    return message


def get_bottle(
    db: DbClient,
    cache: MessageCache,
    recipient: str,
    viewer: Optional[str] = None,
) -> Bottle:
    name = normalize_recipient(recipient)
    cached = cache.get(name)
    if cached is not None:
        messages, from_cache = cached, True
    else:
        messages, from_cache = db.list_messages_for_recipient(name), False
        cache.set(name, messages)
    if viewer:
        cache.touch_recent(viewer, name)
    return Bottle(recipient=name, messages=messages, cached=from_cache)


def browse_messages(
    db: DbClient,
    *,
    page_size: int,
    cursor: Optional[str] = None,
    search_term: Optional[str] = None,
) -> MessagePage:
    after = None
    if cursor:
        after = db.get_message(cursor)
        if after is None:
            raise InvalidCursorError(f"Unknown cursor: {cursor}")

    prefix = normalize_recipient(search_term or "") or None
    messages = db.list_messages(limit=page_size, after=after, recipient_prefix=prefix)
    next_cursor = messages[-1].message_id if len(messages) == page_size else None
    return MessagePage(messages=messages, next_cursor=next_cursor)


def edit_message(
    db: DbClient, cache: MessageCache, message_id: str, content: str
) -> Optional[MessageRecord]:
    updated = db.update_message_content(message_id, content)
    if updated is not None:
        cache.invalidate(updated.recipient)
    return updated


def delete_message(
    db: DbClient, storage: StorageClient, cache: MessageCache, message_id: str
) -> Optional[MessageRecord]:
    deleted = db.delete_message(message_id)
    if deleted is not None:
        cache.invalidate(deleted.recipient)
        _delete_photo(storage, deleted)
    return deleted


def delete_messages_for_sender(
    db: DbClient, storage: StorageClient, cache: MessageCache, sender_id: str
) -> list[MessageRecord]:
    deleted = db.delete_messages_for_sender(sender_id)
    for recipient in {m.recipient for m in deleted}:
        cache.invalidate(recipient)
    for message in deleted:
        _delete_photo(storage, message)
    return deleted


def _delete_photo(storage: StorageClient, message: MessageRecord) -> None:
    if not message.photo_path:
        return
    try:
        storage.delete(message.photo_path)
    except Exception:
        logger.exception("Failed to delete photo %s", message.photo_path)

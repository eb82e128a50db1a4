"""
Recipient aggregation and incremental (batch) loading for the browse view.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from backend.db import DbClient, MessageRecord
from shared.types import Recipient


@dataclass
class RecipientPage:
    recipients: list[Recipient]
    offset: int
    total: int
    has_more: bool


def normalize_recipient(name: str) -> str:
    return name.strip().lower()


def aggregate_recipients(messages: Iterable[MessageRecord]) -> list[Recipient]:
    """Group messages by recipient, most recently active recipients first."""
    by_name: dict[str, Recipient] = {}
    for message in messages:
        current = by_name.get(message.recipient)
        if current is None:
            by_name[message.recipient] = Recipient(
                name=message.recipient,
                message_count=1,
                last_message_timestamp=message.timestamp,
            )
            continue
        current.message_count += 1
        if message.timestamp > (current.last_message_timestamp or 0.0):
            current.last_message_timestamp = message.timestamp

    recipients = sorted(by_name.values(), key=lambda r: r.name)
    recipients.sort(key=lambda r: r.last_message_timestamp or 0.0, reverse=True)
    return recipients


def recipients_by_fallback(
    db: DbClient, search_term: Optional[str] = None, *, window: int = 100
) -> list[Recipient]:
    """
    Derive recipients from stored messages.

    With a search term every message whose recipient starts with the term is
    considered; otherwise only the latest `window` messages are.
    """
    term = normalize_recipient(search_term or "")
    if term:
        messages = db.list_messages(recipient_prefix=term)
    else:
        messages = db.list_messages(limit=window)
    return aggregate_recipients(messages)


def page_recipients(
    db: DbClient,
    *,
    offset: int = 0,
    batch_size: int = 8,
    search_term: Optional[str] = None,
    window: int = 100,
) -> RecipientPage:
    term = normalize_recipient(search_term or "")
    recipients = recipients_by_fallback(db, term, window=window)
    if term:
        # Search results are returned in full; there is nothing more to load.
        return RecipientPage(
            recipients=recipients, offset=0, total=len(recipients), has_more=False
        )

    batch = recipients[offset : offset + batch_size]
    return RecipientPage(
        recipients=batch,
        offset=offset,
        total=len(recipients),
        has_more=offset + len(batch) < len(recipients),
    )

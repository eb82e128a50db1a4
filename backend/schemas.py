"""
Pydantic schemas for the Message in a Bottle API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from shared.constants import (
    MAX_DISPLAY_NAME_LENGTH,
    MAX_FEEDBACK_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_RATING,
    MAX_RECIPIENT_LENGTH,
    MAX_REVIEW_LENGTH,
    MAX_SPOTIFY_TRACK_ID_LENGTH,
    MIN_RATING,
)
from shared.types import FeedbackType


def _not_blank(value: str, message: str) -> str:
    if not value.strip():
        raise ValueError(message)
    return value


class SendMessageRequest(BaseModel):
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    recipient: str = Field(..., max_length=MAX_RECIPIENT_LENGTH)
    # base64 data URL, as produced by a browser file reader or canvas
    photo: Optional[str] = None
    spotify_track_id: Optional[str] = Field(
        default=None, max_length=MAX_SPOTIFY_TRACK_ID_LENGTH
    )

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        return _not_blank(value, "Message cannot be empty.")

    @field_validator("recipient")
    @classmethod
    def _recipient_not_blank(cls, value: str) -> str:
        return _not_blank(value, "Recipient cannot be empty.")


class SendMessageResponse(BaseModel):
    message_id: str
    recipient: str


class EditMessageRequest(BaseModel):
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        return _not_blank(value, "Message cannot be empty.")


class MessageResponse(BaseModel):
    id: str
    content: str
    recipient: str
    timestamp: float
    photo_url: Optional[str] = None
    spotify_track_id: Optional[str] = None


class AdminMessageResponse(MessageResponse):
    sender_id: Optional[str] = None


class BottleResponse(BaseModel):
    recipient: str
    messages: list[MessageResponse]
    cached: bool = False


class MessagePageResponse(BaseModel):
    messages: list[MessageResponse]
    next_cursor: Optional[str] = None


class AdminMessagePageResponse(BaseModel):
    messages: list[AdminMessageResponse]
    next_cursor: Optional[str] = None


class RecipientResponse(BaseModel):
    name: str
    message_count: int
    last_message_timestamp: Optional[float] = None


class RecipientPageResponse(BaseModel):
    recipients: list[RecipientResponse]
    offset: int
    total: int
    has_more: bool


class RecentlyViewedResponse(BaseModel):
    recipients: list[str]


class TrackResponse(BaseModel):
    id: str
    name: str
    artist: str
    album_art: str


class TracksResponse(BaseModel):
    tracks: list[TrackResponse]


class TrackVisitResponse(BaseModel):
    success: bool
    message: str


class FeedbackRequest(BaseModel):
    content: str = Field(..., max_length=MAX_FEEDBACK_LENGTH)
    type: FeedbackType = FeedbackType.OTHER

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        return _not_blank(value, "Feedback cannot be empty.")


class FeedbackResponse(BaseModel):
    status: Literal["ok"]
    feedback_id: str


class FeedbackItem(BaseModel):
    id: str
    content: str
    type: str
    timestamp: float
    sender_id: Optional[str] = None


class FeedbackListResponse(BaseModel):
    feedback: list[FeedbackItem]


class ReviewRequest(BaseModel):
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    content: str = Field(..., max_length=MAX_REVIEW_LENGTH)


class ReviewItem(BaseModel):
    id: str
    rating: int
    content: str
    sender_name: str
    timestamp: float


class ReviewListResponse(BaseModel):
    reviews: list[ReviewItem]
    average: float
    count: int


class ProfileResponse(BaseModel):
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    is_anonymous: bool = False
    is_admin: bool = False


class UpdateProfileRequest(BaseModel):
    display_name: str = Field(..., max_length=MAX_DISPLAY_NAME_LENGTH)

    @field_validator("display_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        return _not_blank(value, "Display name cannot be empty.").strip()


class HistoryResponse(BaseModel):
    messages: list[MessageResponse]


class FavoriteToggleResponse(BaseModel):
    message_id: str
    favorite: bool


class DeleteAccountResponse(BaseModel):
    status: Literal["deleted"]
    deleted_messages: int


class DailyCountItem(BaseModel):
    date: str
    count: int


class DashboardResponse(BaseModel):
    total_messages: int
    total_recipients: int
    engagement: str
    daily_messages: list[DailyCountItem]
    recent_messages: list[AdminMessageResponse]


class VisitItem(BaseModel):
    id: str
    country: str
    city: str
    timestamp: float


class VisitListResponse(BaseModel):
    visits: list[VisitItem]


class RawContentRequest(BaseModel):
    raw: str


class RawContentResponse(BaseModel):
    raw: str


class SaveContentResponse(BaseModel):
    success: bool
    error: Optional[str] = None

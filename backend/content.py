"""
The site content document: all user-facing copy and image URLs, editable
from the admin API.

The document is a flat JSON object keyed by camelCase names. Reads never
fail; a missing or broken document falls back to the built-in defaults.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from backend.storage import StorageClient

logger = logging.getLogger(__name__)

CONTENT_STORAGE_PATH = "content/site-content.json"
INVALID_JSON_MESSAGE = "Invalid JSON format. Please check your syntax."


class ContentValidationError(ValueError):
    """Raised when a content document cannot be saved."""


class SiteContent(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    # Home page
    home_subtitle: str = "Send anonymous messages into the digital ocean."
    home_dark_mode_title: str = "Reading at Night?"
    home_dark_mode_subtitle: str = (
        "It's bad for the eyes. Double-click the lamp to activate dark mode."
    )
    home_send_button: str = "Send a Message"
    home_browse_button: str = "Browse Messages"
    home_hero_image_light: str = (
        "https://images.pexels.com/photos/35230228/pexels-photo-35230228.png"
    )
    home_hero_image_dark: str = "https://i.ibb.co/cXVXsHjJ/Fsw-GESQo.jpg"
    home_hint_image_light: str = (
        "https://i.ibb.co/rGWKNLgw/Gemini-Generated-Image-abs8y5abs8y5abs8.png"
    )
    home_hint_image_dark: str = "https://i.ibb.co/rGXHyCpy/wfn66enk.jpg"
    # Send page
    send_title: str = "Cast a Message into the Ocean"
    send_subtitle: str = "Your message will be delivered anonymously."
    send_recipient_label: str = "This letter is for:"
    send_recipient_placeholder: str = "e.g., Mike"
    send_message_label: str = "Your Anonymous Message"
    send_message_placeholder: str = "Write Something..."
    send_add_something_button: str = "Add Something"
    send_attach_photo_button: str = "Attach a Photo"
    send_draw_button: str = "Draw"
    send_add_song_button: str = "Add a Song"
    send_message_button: str = "Send Message"
    send_success_title: str = "Message Sent!"
    send_success_description: str = (
        "Your message is now floating in the digital ocean. Share the link with "
        "your recipient."
    )
    send_copy_link_button: str = "Copy Link"
    send_another_button: str = "Send Another"
    send_drawing_title: str = "Create a Sketch"
    send_music_title: str = "Search for a Song"
    send_music_placeholder: str = "Search for a song or artist..."
    send_featured_songs: str = "Featured Songs"
    send_note: str = "Note: Once a message is sent into the ocean, it cannot be unsent."
    send_success_image_light: str = "https://i.ibb.co/GvX9XMwm/bottle-default.png"
    send_success_image_dark: str = "https://i.ibb.co/pkBNQZv/bottle-glow-dark-mode.png"
    send_sending_image_light: str = "https://i.ibb.co/GvX9XMwm/bottle-default.png"
    send_sending_image_dark: str = "https://i.ibb.co/pkBNQZv/bottle-glow-dark-mode.png"
    # Browse page
    browse_title: str = "Browse Bottles"
    browse_subtitle: str = "Select a recipient to view their messages."
    browse_search_placeholder: str = "Search for a recipient..."
    browse_new_messages: str = "New Message"
    browse_load_more: str = "Load More"
    browse_end: str = "You've reached the end."
    browse_no_results: str = "No bottles found for"
    browse_bottle_image_light: str = "https://i.ibb.co/GvX9XMwm/bottle-default.png"
    browse_bottle_image_dark: str = (
        "https://i.ibb.co/nKmq0gc/Gemini-Generated-Image-5z3cjz5z3cjz5z3c-removebg-preview.png"
    )
    browse_bottle_hover_image_light: str = "https://i.ibb.co/3mRwMGRq/bottle-glow.png"
    browse_bottle_hover_image_dark: str = "https://i.ibb.co/pkBNQZv/bottle-glow-dark-mode.png"
    # Bottle page
    bottle_back_button: str = "Back to all bottles"
    bottle_title: str = "letter's for"
    bottle_subtitle: str = "Click each message to open."
    bottle_no_messages: str = "No messages in this bottle yet."
    # Message page
    message_back_button: str = "Back to"
    message_for: str = "for"
    # About page
    about_support_title: str = "Support the Developers"
    about_support_description: str = (
        "Your contribution helps us maintain and improve this application. "
        "Every little bit helps!"
    )
    about_donate_button: str = "Donate Now"
    about_reviews_title: str = "Community Reviews"
    about_reviews_description: str = "See what others are saying about the app."
    about_reviews_average: str = "{avg} average from {count} reviews"
    about_no_reviews: str = "No reviews yet. Be the first!"
    about_view_all_button: str = "View All Reviews"
    about_all_reviews_title: str = "All Community Reviews"
    about_review_now_button: str = "Review Now"
    about_rate_app_title: str = "Rate the App"
    about_rate_app_description: str = "Share your experience by leaving a review."
    about_your_review_label: str = "Your Review"
    about_your_review_placeholder: str = "What did you like or dislike?"
    about_submit_review_button: str = "Submit Review"
    about_must_be_logged_in: str = "You must be logged in to submit a review."
    about_feedback_title: str = "Feedback"
    about_feedback_description: str = "Have a suggestion or found a bug? Let us know!"
    about_leave_feedback_button: str = "Leave Feedback"
    about_submit_feedback_title: str = "Submit Feedback"
    about_submit_feedback_description: str = "What's on your mind? Let us know how we can improve."
    about_feedback_suggestion: str = "Suggestion"
    about_feedback_bug: str = "Bug"
    about_feedback_other: str = "Other"
    about_your_feedback_label: str = "Your Feedback"
    # Donate page
    donate_title: str = "Support the Project"
    donate_description: str = (
        "If you find this application useful, please consider supporting its "
        "development. Every donation helps!"
    )
    donate_with_paypal: str = "Donate with PayPal"
    donate_back_button: str = "Back to About"

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class ContentStore(Protocol):
    def read_text(self) -> str:
        ...

    def write_text(self, text: str) -> None:
        ...


@dataclass
class FileContentStore:
    """Keeps the document in a JSON file on local disk."""

    path: str

    def read_text(self) -> str:
        return Path(self.path).read_text(encoding="utf-8")

    def write_text(self, text: str) -> None:
        target = Path(self.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, target)


@dataclass
class StorageContentStore:
    """Keeps the document in object storage."""

    storage: StorageClient
    path: str = CONTENT_STORAGE_PATH

    def read_text(self) -> str:
        try:
            data = self.storage.get_bytes(self.path)
        except (BotoCoreError, ClientError) as exc:
            raise OSError(f"Could not read {self.path}: {exc}") from exc
        return data.decode("utf-8")

    def write_text(self, text: str) -> None:
        self.storage.upload_bytes(
            self.path, text.encode("utf-8"), content_type="application/json"
        )


class SiteContentService:
    def __init__(self, store: ContentStore):
        self.store = store

    def get_content(self) -> SiteContent:
        try:
            return SiteContent.model_validate(json.loads(self.store.read_text()))
        except FileNotFoundError:
            return SiteContent()
        except (OSError, ValueError, ValidationError):
            # json.JSONDecodeError is a ValueError.
            logger.exception("Failed to read site content; using defaults")
            return SiteContent()

    def get_raw(self) -> str:
        try:
            return self.store.read_text()
        except FileNotFoundError:
            return "{}"
        except (OSError, UnicodeDecodeError):
            logger.exception("Failed to read raw site content")
            return "{}"

    def save(self, content: Union[str, dict, SiteContent]) -> SiteContent:
        if isinstance(content, SiteContent):
            document = content.to_document()
        elif isinstance(content, str):
            try:
                document = json.loads(content)
            except ValueError as exc:
                raise ContentValidationError(INVALID_JSON_MESSAGE) from exc
        else:
            document = dict(content)

        if not isinstance(document, dict):
            raise ContentValidationError("Content document must be a JSON object.")
        try:
            parsed = SiteContent.model_validate(document)
        except ValidationError as exc:
            fields = ", ".join(str(err["loc"][0]) for err in exc.errors())
            raise ContentValidationError(f"Invalid values for: {fields}") from exc

        self.store.write_text(json.dumps(document, indent=2, ensure_ascii=False))
        logger.info("Saved site content (%d keys)", len(document))
        return parsed

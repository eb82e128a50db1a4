"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    Float,
    Integer,
    String,
    Text,
    and_,
    create_engine,
    or_,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.constants import (
    FAVORITES_COLLECTION,
    FEEDBACK_COLLECTION,
    MESSAGES_COLLECTION,
    REVIEWS_COLLECTION,
    USERS_COLLECTION,
    VISITS_COLLECTION,
)


class DbClient(Protocol):
    """Interface for database access."""

    def add_message(self, message: "MessageRecord") -> None:
        ...

    def get_message(self, message_id: str) -> Optional["MessageRecord"]:
        ...

    def list_messages_for_recipient(self, recipient: str) -> list["MessageRecord"]:
        ...

    def list_messages(
        self,
        *,
        limit: Optional[int] = None,
        after: Optional["MessageRecord"] = None,
        recipient_prefix: Optional[str] = None,
    ) -> list["MessageRecord"]:
        ...

    def list_messages_for_sender(self, sender_id: str) -> list["MessageRecord"]:
        ...

    def update_message_content(
        self, message_id: str, content: str
    ) -> Optional["MessageRecord"]:
        ...

    def delete_message(self, message_id: str) -> Optional["MessageRecord"]:
        ...

    def delete_messages_for_sender(self, sender_id: str) -> list["MessageRecord"]:
        ...

    def add_feedback(self, feedback: "FeedbackRecord") -> None:
        ...

    def list_feedback(
        self, feedback_type: Optional[str] = None
    ) -> list["FeedbackRecord"]:
        ...

    def add_visit(self, visit: "VisitRecord") -> None:
        ...

    def list_visits(self, limit: Optional[int] = None) -> list["VisitRecord"]:
        ...

    def add_review(self, review: "ReviewRecord") -> None:
        ...

    def list_reviews(self) -> list["ReviewRecord"]:
        ...

    def get_user(self, uid: str) -> Optional["UserRecord"]:
        ...

    def save_user(self, user: "UserRecord") -> None:
        ...

    def delete_user(self, uid: str) -> None:
        ...

    def toggle_favorite(self, uid: str, message_id: str) -> bool:
        ...

    def list_favorites(self, uid: str) -> list["MessageRecord"]:
        ...


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class MessageRecord:
    content: str
    recipient: str
    message_id: str = field(default_factory=_new_id)
    timestamp: float = field(default_factory=lambda: time.time())
    sender_id: Optional[str] = None
    photo_path: Optional[str] = None
    spotify_track_id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "message_id": self.message_id,
            "content": self.content,
            "recipient": self.recipient,
            "timestamp": self.timestamp,
            "sender_id": self.sender_id,
            "photo_path": self.photo_path,
            "spotify_track_id": self.spotify_track_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MessageRecord":
        return cls(
            message_id=data["message_id"],
            content=data["content"],
            recipient=data["recipient"],
            timestamp=data["timestamp"],
            sender_id=data.get("sender_id"),
            photo_path=data.get("photo_path"),
            spotify_track_id=data.get("spotify_track_id"),
        )


@dataclass
class FeedbackRecord:
    content: str
    feedback_type: str
    sender_id: Optional[str] = None
    feedback_id: str = field(default_factory=_new_id)
    timestamp: float = field(default_factory=lambda: time.time())


@dataclass
class VisitRecord:
    country: str
    city: str
    visit_id: str = field(default_factory=_new_id)
    timestamp: float = field(default_factory=lambda: time.time())


@dataclass
class ReviewRecord:
    rating: int
    content: str
    sender_id: str
    sender_name: str
    review_id: str = field(default_factory=_new_id)
    timestamp: float = field(default_factory=lambda: time.time())


@dataclass
class UserRecord:
    uid: str
    display_name: Optional[str] = None
    photo_path: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())


def _newest_first(messages) -> list[MessageRecord]:
    return sorted(messages, key=lambda m: (m.timestamp, m.message_id), reverse=True)


def _is_before(message: MessageRecord, anchor: MessageRecord) -> bool:
    """True when `message` sorts after `anchor` in newest-first order."""
    return (message.timestamp, message.message_id) < (
        anchor.timestamp,
        anchor.message_id,
    )


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.messages: Dict[str, MessageRecord] = {}
        self.feedback: Dict[str, FeedbackRecord] = {}
        self.visits: Dict[str, VisitRecord] = {}
        self.reviews: Dict[str, ReviewRecord] = {}
        self.users: Dict[str, UserRecord] = {}
        self.favorites: Dict[str, Dict[str, float]] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.messages.clear()
        self.feedback.clear()
        self.visits.clear()
        self.reviews.clear()
        self.users.clear()
        self.favorites.clear()

    def add_message(self, message: MessageRecord) -> None:
        self.messages[message.message_id] = message

    def get_message(self, message_id: str) -> Optional[MessageRecord]:
        return self.messages.get(message_id)

    def list_messages_for_recipient(self, recipient: str) -> list[MessageRecord]:
        return _newest_first(
            m for m in self.messages.values() if m.recipient == recipient
        )

    def list_messages(
        self,
        *,
        limit: Optional[int] = None,
        after: Optional[MessageRecord] = None,
        recipient_prefix: Optional[str] = None,
    ) -> list[MessageRecord]:
        items = _newest_first(self.messages.values())
        if recipient_prefix:
            items = [m for m in items if m.recipient.startswith(recipient_prefix)]
        if after is not None:
            items = [m for m in items if _is_before(m, after)]
        if limit is not None:
            items = items[:limit]
        return items

    def list_messages_for_sender(self, sender_id: str) -> list[MessageRecord]:
        return _newest_first(
            m for m in self.messages.values() if m.sender_id == sender_id
        )

    def update_message_content(
        self, message_id: str, content: str
    ) -> Optional[MessageRecord]:
        message = self.messages.get(message_id)
        if message:
            message.content = content
        return message

    def delete_message(self, message_id: str) -> Optional[MessageRecord]:
        return self.messages.pop(message_id, None)

    def delete_messages_for_sender(self, sender_id: str) -> list[MessageRecord]:
        deleted = self.list_messages_for_sender(sender_id)
        for message in deleted:
            del self.messages[message.message_id]
        return deleted

    def add_feedback(self, feedback: FeedbackRecord) -> None:
        self.feedback[feedback.feedback_id] = feedback

    def list_feedback(
        self, feedback_type: Optional[str] = None
    ) -> list[FeedbackRecord]:
        items = [
            fb
            for fb in self.feedback.values()
            if feedback_type is None or fb.feedback_type == feedback_type
        ]
        return sorted(items, key=lambda fb: fb.timestamp, reverse=True)

    def add_visit(self, visit: VisitRecord) -> None:
        self.visits[visit.visit_id] = visit

    def list_visits(self, limit: Optional[int] = None) -> list[VisitRecord]:
        items = sorted(self.visits.values(), key=lambda v: v.timestamp, reverse=True)
        return items[:limit] if limit is not None else items

    def add_review(self, review: ReviewRecord) -> None:
        self.reviews[review.review_id] = review

    def list_reviews(self) -> list[ReviewRecord]:
        return sorted(self.reviews.values(), key=lambda r: r.timestamp, reverse=True)

    def get_user(self, uid: str) -> Optional[UserRecord]:
        return self.users.get(uid)

    def save_user(self, user: UserRecord) -> None:
        self.users[user.uid] = user

    def delete_user(self, uid: str) -> None:
        self.users.pop(uid, None)
        self.favorites.pop(uid, None)

    def toggle_favorite(self, uid: str, message_id: str) -> bool:
        favorites = self.favorites.setdefault(uid, {})
        if message_id in favorites:
            del favorites[message_id]
            return False
        favorites[message_id] = time.time()
        return True

    def list_favorites(self, uid: str) -> list[MessageRecord]:
        favorites = self.favorites.get(uid, {})
        ordered = sorted(favorites.items(), key=lambda item: item[1], reverse=True)
        return [
            self.messages[message_id]
            for message_id, _ in ordered
            if message_id in self.messages
        ]


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL
    (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_message(row: "MessageRow") -> MessageRecord:
        return MessageRecord(
            message_id=row.message_id,
            content=row.content,
            recipient=row.recipient,
            timestamp=row.timestamp,
            sender_id=row.sender_id,
            photo_path=row.photo_path,
            spotify_track_id=row.spotify_track_id,
        )

    def add_message(self, message: MessageRecord) -> None:
        with self.Session() as session:
            session.add(
                MessageRow(
                    message_id=message.message_id,
                    content=message.content,
                    recipient=message.recipient,
                    timestamp=message.timestamp,
                    sender_id=message.sender_id,
                    photo_path=message.photo_path,
                    spotify_track_id=message.spotify_track_id,
                )
            )
            session.commit()

    def get_message(self, message_id: str) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            return self._to_message(row) if row else None

    def _newest_first(self):
        return select(MessageRow).order_by(
            MessageRow.timestamp.desc(), MessageRow.message_id.desc()
        )

    def list_messages_for_recipient(self, recipient: str) -> list[MessageRecord]:
        with self.Session() as session:
            stmt = self._newest_first().where(MessageRow.recipient == recipient)
            return [self._to_message(row) for row in session.execute(stmt).scalars()]

    def list_messages(
        self,
        *,
        limit: Optional[int] = None,
        after: Optional[MessageRecord] = None,
        recipient_prefix: Optional[str] = None,
    ) -> list[MessageRecord]:
        stmt = self._newest_first()
        if recipient_prefix:
            stmt = stmt.where(
                MessageRow.recipient.startswith(recipient_prefix, autoescape=True)
            )
        if after is not None:
            stmt = stmt.where(
                or_(
                    MessageRow.timestamp < after.timestamp,
                    and_(
                        MessageRow.timestamp == after.timestamp,
                        MessageRow.message_id < after.message_id,
                    ),
                )
            )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.Session() as session:
            return [self._to_message(row) for row in session.execute(stmt).scalars()]

    def list_messages_for_sender(self, sender_id: str) -> list[MessageRecord]:
        with self.Session() as session:
            stmt = self._newest_first().where(MessageRow.sender_id == sender_id)
            return [self._to_message(row) for row in session.execute(stmt).scalars()]

    def update_message_content(
        self, message_id: str, content: str
    ) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if not row:
                return None
            row.content = content
            session.commit()
            return self._to_message(row)

    def delete_message(self, message_id: str) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if not row:
                return None
            record = self._to_message(row)
            session.delete(row)
            session.commit()
            return record

    def delete_messages_for_sender(self, sender_id: str) -> list[MessageRecord]:
        with self.Session() as session:
            stmt = self._newest_first().where(MessageRow.sender_id == sender_id)
            rows = list(session.execute(stmt).scalars())
            deleted = [self._to_message(row) for row in rows]
            for row in rows:
                session.delete(row)
            session.commit()
            return deleted

    def add_feedback(self, feedback: FeedbackRecord) -> None:
        with self.Session() as session:
            session.add(
                FeedbackRow(
                    id=feedback.feedback_id,
                    content=feedback.content,
                    type=feedback.feedback_type,
                    sender_id=feedback.sender_id,
                    timestamp=feedback.timestamp,
                )
            )
            session.commit()

    def list_feedback(
        self, feedback_type: Optional[str] = None
    ) -> list[FeedbackRecord]:
        stmt = select(FeedbackRow).order_by(FeedbackRow.timestamp.desc())
        if feedback_type:
            stmt = stmt.where(FeedbackRow.type == feedback_type)
        with self.Session() as session:
            return [
                FeedbackRecord(
                    feedback_id=row.id,
                    content=row.content,
                    feedback_type=row.type,
                    sender_id=row.sender_id,
                    timestamp=row.timestamp,
                )
                for row in session.execute(stmt).scalars()
            ]

    def add_visit(self, visit: VisitRecord) -> None:
        with self.Session() as session:
            session.add(
                VisitRow(
                    id=visit.visit_id,
                    country=visit.country,
                    city=visit.city,
                    timestamp=visit.timestamp,
                )
            )
            session.commit()

    def list_visits(self, limit: Optional[int] = None) -> list[VisitRecord]:
        stmt = select(VisitRow).order_by(VisitRow.timestamp.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.Session() as session:
            return [
                VisitRecord(
                    visit_id=row.id,
                    country=row.country,
                    city=row.city,
                    timestamp=row.timestamp,
                )
                for row in session.execute(stmt).scalars()
            ]

    def add_review(self, review: ReviewRecord) -> None:
        with self.Session() as session:
            session.add(
                ReviewRow(
                    id=review.review_id,
                    rating=review.rating,
                    content=review.content,
                    sender_id=review.sender_id,
                    sender_name=review.sender_name,
                    timestamp=review.timestamp,
                )
            )
            session.commit()

    def list_reviews(self) -> list[ReviewRecord]:
        stmt = select(ReviewRow).order_by(ReviewRow.timestamp.desc())
        with self.Session() as session:
            return [
                ReviewRecord(
                    review_id=row.id,
                    rating=row.rating,
                    content=row.content,
                    sender_id=row.sender_id,
                    sender_name=row.sender_name,
                    timestamp=row.timestamp,
                )
                for row in session.execute(stmt).scalars()
            ]

    def get_user(self, uid: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, uid)
            if not row:
                return None
            return UserRecord(
                uid=row.uid,
                display_name=row.display_name,
                photo_path=row.photo_path,
                created_at=row.created_at,
            )

    def save_user(self, user: UserRecord) -> None:
        with self.Session() as session:
            existing = session.get(UserRow, user.uid)
            if existing:
                existing.display_name = user.display_name
                existing.photo_path = user.photo_path
            else:
                session.add(
                    UserRow(
                        uid=user.uid,
                        display_name=user.display_name,
                        photo_path=user.photo_path,
                        created_at=user.created_at,
                    )
                )
            session.commit()

    def delete_user(self, uid: str) -> None:
        with self.Session() as session:
            session.query(FavoriteRow).filter(FavoriteRow.uid == uid).delete(
                synchronize_session=False
            )
            row = session.get(UserRow, uid)
            if row:
                session.delete(row)
            session.commit()

    def toggle_favorite(self, uid: str, message_id: str) -> bool:
        with self.Session() as session:
            row = session.get(FavoriteRow, (uid, message_id))
            if row:
                session.delete(row)
                session.commit()
                return False
            session.add(
                FavoriteRow(uid=uid, message_id=message_id, created_at=time.time())
            )
            session.commit()
            return True

    def list_favorites(self, uid: str) -> list[MessageRecord]:
        stmt = (
            select(MessageRow)
            .join(FavoriteRow, FavoriteRow.message_id == MessageRow.message_id)
            .where(FavoriteRow.uid == uid)
            .order_by(FavoriteRow.created_at.desc())
        )
        with self.Session() as session:
            return [self._to_message(row) for row in session.execute(stmt).scalars()]


Base = declarative_base()


class MessageRow(Base):
    __tablename__ = MESSAGES_COLLECTION

    message_id = Column(String, primary_key=True)
    content = Column(Text, nullable=False)
    recipient = Column(String, nullable=False, index=True)
    timestamp = Column(Float, nullable=False, index=True)
    sender_id = Column(String, nullable=True, index=True)
    photo_path = Column(String, nullable=True)
    spotify_track_id = Column(String, nullable=True)


class FeedbackRow(Base):
    __tablename__ = FEEDBACK_COLLECTION

    id = Column(String, primary_key=True)
    content = Column(Text, nullable=False)
    type = Column(String, nullable=False, index=True)
    sender_id = Column(String, nullable=True)
    timestamp = Column(Float, nullable=False)


class VisitRow(Base):
    __tablename__ = VISITS_COLLECTION

    id = Column(String, primary_key=True)
    country = Column(String, nullable=False)
    city = Column(String, nullable=False)
    timestamp = Column(Float, nullable=False, index=True)


class ReviewRow(Base):
    __tablename__ = REVIEWS_COLLECTION

    id = Column(String, primary_key=True)
    rating = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    sender_id = Column(String, nullable=False)
    sender_name = Column(String, nullable=False)
    timestamp = Column(Float, nullable=False)


class UserRow(Base):
    __tablename__ = USERS_COLLECTION

    uid = Column(String, primary_key=True)
    display_name = Column(String, nullable=True)
    photo_path = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class FavoriteRow(Base):
    __tablename__ = FAVORITES_COLLECTION

    uid = Column(String, primary_key=True)
    message_id = Column(String, primary_key=True)
    created_at = Column(Float, nullable=False)

"""
Identity is delegated to Firebase Authentication; this module only
verifies ID tokens and deletes accounts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a token cannot be verified."""


@dataclass
class AuthUser:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_anonymous: bool = False


class AuthBackend(Protocol):
    def verify_token(self, token: str) -> AuthUser:
        ...

    def delete_account(self, uid: str) -> None:
        ...


class FirebaseAuthBackend:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, project_id: Optional[str] = None):
        options = {"projectId": project_id} if project_id else None
        try:
            self.app = firebase_admin.get_app()
        except ValueError:
            self.app = firebase_admin.initialize_app(options=options)

    def verify_token(self, token: str) -> AuthUser:
        try:
            claims = firebase_auth.verify_id_token(token, app=self.app)
        except (
            firebase_auth.InvalidIdTokenError,
            firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError,
            firebase_auth.CertificateFetchError,
            ValueError,
        ) as exc:
            raise AuthError(str(exc)) from exc

        provider = (claims.get("firebase") or {}).get("sign_in_provider")
        return AuthUser(
            uid=claims["uid"],
            email=claims.get("email"),
            name=claims.get("name"),
            is_anonymous=provider == "anonymous",
        )

    def delete_account(self, uid: str) -> None:
        try:
            firebase_auth.delete_user(uid, app=self.app)
        except firebase_auth.UserNotFoundError:
            logger.warning("Auth account %s already deleted", uid)


@dataclass
class InMemoryAuthBackend:
    """Static token table for development and tests."""

    tokens: dict = field(default_factory=dict)
    deleted: list = field(default_factory=list)

    def register(self, token: str, user: AuthUser) -> None:
        self.tokens[token] = user

    def reset(self) -> None:
        self.tokens.clear()
        self.deleted.clear()

    def verify_token(self, token: str) -> AuthUser:
        user = self.tokens.get(token)
        if user is None or user.uid in self.deleted:
            raise AuthError("Invalid token")
        return user

    def delete_account(self, uid: str) -> None:
        self.deleted.append(uid)

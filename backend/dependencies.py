"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth import (
    AuthBackend,
    AuthError,
    AuthUser,
    FirebaseAuthBackend,
    InMemoryAuthBackend,
)
from backend.cache import InMemoryMessageCache, MessageCache, RedisMessageCache
from backend.config import Settings, get_settings
from backend.content import FileContentStore, SiteContentService, StorageContentStore
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.geolocation import GeoLocator
from backend.spotify import SpotifyClient
from backend.storage import CosStorageClient, InMemoryStorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_message_cache: MessageCache | None = None
_auth_backend: AuthBackend | None = None
_spotify_client: SpotifyClient | None = None
_geo_locator: GeoLocator | None = None
_content_service: SiteContentService | None = None

_bearer = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.cos_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_message_cache() -> MessageCache:
    global _message_cache
    if _message_cache:
        return _message_cache

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _message_cache = RedisMessageCache(
            url=settings.redis_url,
            prefix=settings.redis_cache_prefix,
            ttl_seconds=settings.message_cache_ttl_seconds,
            recent_limit=settings.recently_viewed_limit,
        )
    else:
        _message_cache = InMemoryMessageCache(
            ttl_seconds=settings.message_cache_ttl_seconds,
            recent_limit=settings.recently_viewed_limit,
        )
    return _message_cache


def get_auth_backend() -> AuthBackend:
    global _auth_backend
    if _auth_backend:
        return _auth_backend

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        _auth_backend = InMemoryAuthBackend()
    else:
        _auth_backend = FirebaseAuthBackend(settings.firebase_project_id)
    return _auth_backend


def get_spotify_client() -> SpotifyClient:
    global _spotify_client
    if _spotify_client:
        return _spotify_client
    settings = get_settings()
    _spotify_client = SpotifyClient(
        settings.spotify_client_id, settings.spotify_client_secret
    )
    return _spotify_client


def get_geo_locator() -> GeoLocator:
    global _geo_locator
    if _geo_locator:
        return _geo_locator
    settings = get_settings()
    _geo_locator = GeoLocator(settings.geo_api_url, settings.geo_api_key)
    return _geo_locator


def get_content_service() -> SiteContentService:
    global _content_service
    if _content_service:
        return _content_service
    settings = get_settings()
    if settings.content_path:
        store = FileContentStore(settings.content_path)
    else:
        store = StorageContentStore(get_storage_client())
    _content_service = SiteContentService(store)
    return _content_service


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth_backend: AuthBackend = Depends(get_auth_backend),
) -> Optional[AuthUser]:
    """The caller's identity when a bearer token is sent; None otherwise."""
    if credentials is None:
        return None
    try:
        return auth_backend.verify_token(credentials.credentials)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from exc


def get_current_user(
    user: Optional[AuthUser] = Depends(get_optional_user),
) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def get_registered_user(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if user.is_anonymous:
        raise HTTPException(
            status_code=403, detail="You must be logged in to do this."
        )
    return user


def is_admin(user: Optional[AuthUser], settings: Settings) -> bool:
    if user is None or not user.email or user.is_anonymous:
        return False
    allowed = {email.lower() for email in settings.admin_emails}
    return user.email.lower() in allowed


def require_admin(
    user: AuthUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> AuthUser:
    if not is_admin(user, settings):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_viewer_id(
    user: Optional[AuthUser] = Depends(get_optional_user),
    x_viewer_id: Optional[str] = Header(default=None, max_length=128),
) -> Optional[str]:
    """Key for the recently viewed list: the user id, else a client-chosen id."""
    if user is not None:
        return f"user:{user.uid}"
    if x_viewer_id:
        return f"viewer:{x_viewer_id}"
    return None

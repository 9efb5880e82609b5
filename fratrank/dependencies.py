"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from fratrank.config import get_settings
from fratrank.ratelimit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from fratrank.seed import seed_demo_data
from fratrank.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from fratrank.store import (
    DirectoryKeyValueBackend,
    EntityStore,
    InMemoryEntityStore,
    LocalEntityStore,
)
from fratrank.votes import VoteLock

_store: EntityStore | None = None
_storage_client: StorageClient | None = None
_rate_limiter: RateLimiter | None = None
_vote_lock: VoteLock | None = None


def get_store() -> EntityStore:
    """
    Return a singleton entity store so data persists across requests.
    """
    global _store
    if _store:
        return _store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _store = InMemoryEntityStore()
    elif settings.database_url:
        from fratrank.db import SqlEntityStore

        _store = SqlEntityStore(settings.database_url)
    elif settings.local_store_dir:
        _store = LocalEntityStore(
            DirectoryKeyValueBackend(
                settings.local_store_dir, settings.local_store_quota_bytes
            )
        )
    else:
        _store = InMemoryEntityStore()

    if settings.seed_demo_data:
        seed_demo_data(_store)
    return _store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter:
        return _rate_limiter

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _rate_limiter = RedisRateLimiter(
            url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
        )
    else:
        _rate_limiter = InMemoryRateLimiter()
    return _rate_limiter


def get_vote_lock() -> VoteLock:
    global _vote_lock
    if _vote_lock is None:
        _vote_lock = VoteLock()
    return _vote_lock


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """The gateway authenticates the caller and forwards their id."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def get_optional_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None

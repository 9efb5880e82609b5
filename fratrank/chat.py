"""
Anonymous campus chat feed.

Authors are stored for ownership checks and rate limiting but never returned
to readers.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fratrank.errors import NotFoundError, PermissionDeniedError, ValidationError
from fratrank.points import award_points, record_user_action
from fratrank.ratelimit import RateLimiter, enforce_rate_limit
from fratrank.scoring import hot_score, net_score
from fratrank.store import EntityStore, Record, parse_timestamp, to_timestamp, utc_now

logger = logging.getLogger(__name__)

FEED_SORTS = ("new", "top", "hot")
PUBLIC_FIELDS = (
    "id",
    "parent_message_id",
    "text",
    "mentioned_fraternity_id",
    "mentioned_party_id",
    "upvotes",
    "downvotes",
    "locked",
    "created_at",
)


def public_message(message: Record, reply_count: int = 0) -> dict:
    data = {key: message.get(key) for key in PUBLIC_FIELDS}
    data["upvotes"] = data["upvotes"] or 0
    data["downvotes"] = data["downvotes"] or 0
    data["locked"] = bool(data["locked"])
    data["net_score"] = net_score(data["upvotes"], data["downvotes"])
    data["reply_count"] = reply_count
    return data


def _live_message(store: EntityStore, message_id: str) -> Record:
    message = store.get("chat_messages", message_id)
    if not message or message.get("deleted_at"):
        raise NotFoundError("Message not found")
    return message


def post_message(
    store: EntityStore,
    limiter: RateLimiter,
    user_id: str,
    text: str,
    parent_message_id: Optional[str] = None,
    mentioned_fraternity_id: Optional[str] = None,
    mentioned_party_id: Optional[str] = None,
) -> dict:
    if parent_message_id:
        parent = _live_message(store, parent_message_id)
        if parent.get("locked"):
            raise ValidationError("This thread is locked")
    if mentioned_fraternity_id and not store.get("fraternities", mentioned_fraternity_id):
        raise NotFoundError("Mentioned fraternity not found")
    if mentioned_party_id and not store.get("parties", mentioned_party_id):
        raise NotFoundError("Mentioned party not found")

    enforce_rate_limit(limiter, user_id, "post")
    message = store.create(
        "chat_messages",
        {
            "user_id": user_id,
            "parent_message_id": parent_message_id,
            "text": text,
            "mentioned_fraternity_id": mentioned_fraternity_id,
            "mentioned_party_id": mentioned_party_id,
            "upvotes": 0,
            "downvotes": 0,
            "locked": False,
        },
    )
    limiter.record(user_id, "post")
    award_points(store, user_id, "create_comment" if parent_message_id else "create_post")
    record_user_action(store, user_id)
    return public_message(message)


def _reply_counts(messages: list[Record]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for message in messages:
        parent = message.get("parent_message_id")
        if parent and not message.get("deleted_at"):
            counts[parent] = counts.get(parent, 0) + 1
    return counts


def feed(
    store: EntityStore,
    sort: str = "hot",
    limit: int = 50,
    now: Optional[datetime] = None,
) -> list[dict]:
    if sort not in FEED_SORTS:
        raise ValidationError(f"Unknown feed sort: {sort}")
    now = now or utc_now()
    messages = store.list("chat_messages")
    counts = _reply_counts(messages)
    posts = [
        public_message(m, counts.get(m["id"], 0))
        for m in messages
        if not m.get("parent_message_id") and not m.get("deleted_at")
    ]

    if sort == "new":
        posts.sort(key=lambda p: p["created_at"], reverse=True)
    elif sort == "top":
        posts.sort(key=lambda p: (p["net_score"], p["created_at"]), reverse=True)
    else:

        def hotness(post: dict) -> float:
            created = parse_timestamp(post["created_at"]) or now
            age_hours = (now - created).total_seconds() / 3600
            return hot_score(post["net_score"], post["reply_count"], age_hours)

        posts.sort(key=lambda p: (hotness(p), p["created_at"]), reverse=True)
    return posts[:limit]


def thread(store: EntityStore, message_id: str) -> dict:
    message = _live_message(store, message_id)
    replies = store.filter(
        "chat_messages", {"parent_message_id": message_id}, sort_by="created_at"
    )
    counts = _reply_counts(store.list("chat_messages"))
    return {
        "message": public_message(message, counts.get(message_id, 0)),
        "replies": [
            public_message(r, counts.get(r["id"], 0))
            for r in replies
            if not r.get("deleted_at")
        ],
    }


def delete_message(
    store: EntityStore, message_id: str, user_id: str, now: Optional[datetime] = None
) -> None:
    """Soft delete; only the author may remove a message."""
    message = _live_message(store, message_id)
    if message.get("user_id") != user_id:
        raise PermissionDeniedError("You can only delete your own posts")
    store.update(
        "chat_messages",
        message_id,
        {"deleted_at": to_timestamp(now or utc_now()), "deleted_by": user_id},
    )
    logger.info("Chat message %s deleted by its author", message_id)

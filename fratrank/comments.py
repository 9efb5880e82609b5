"""
Threaded comments on parties and fraternities.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from fratrank.errors import NotFoundError, PermissionDeniedError, ValidationError
from fratrank.points import award_points, record_user_action
from fratrank.ratelimit import RateLimiter, enforce_rate_limit
from fratrank.scoring import net_score
from fratrank.store import EntityStore, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentTarget:
    target_entity: str
    comment_entity: str
    vote_entity: str
    foreign_key: str


COMMENT_TARGETS = {
    "party": CommentTarget("parties", "party_comments", "party_comment_votes", "party_id"),
    "fraternity": CommentTarget(
        "fraternities", "fraternity_comments", "fraternity_comment_votes", "fraternity_id"
    ),
}


def comment_target(kind: str) -> CommentTarget:
    try:
        return COMMENT_TARGETS[kind]
    except KeyError:
        raise NotFoundError(f"Unknown comment kind: {kind}") from None


def add_comment(
    store: EntityStore,
    limiter: RateLimiter,
    kind: str,
    target_id: str,
    user_id: str,
    text: str,
    parent_comment_id: Optional[str] = None,
) -> Record:
    target = comment_target(kind)
    if not store.get(target.target_entity, target_id):
        raise NotFoundError(f"{kind.capitalize()} not found")
    if parent_comment_id:
        parent = store.get(target.comment_entity, parent_comment_id)
        if not parent or parent.get(target.foreign_key) != target_id:
            raise ValidationError("Parent comment does not belong to this thread")

    enforce_rate_limit(limiter, user_id, "comment")
    comment = store.create(
        target.comment_entity,
        {
            target.foreign_key: target_id,
            "user_id": user_id,
            "parent_comment_id": parent_comment_id,
            "text": text,
            "sentiment_score": 0,
            "toxicity_label": "safe",
            "upvotes": 0,
            "downvotes": 0,
            "moderated": False,
        },
    )
    limiter.record(user_id, "comment")
    award_points(store, user_id, "create_comment")
    record_user_action(store, user_id)
    return comment


def comment_thread(store: EntityStore, kind: str, target_id: str) -> list[dict]:
    """Top-level comments oldest first, with replies nested under their parent."""
    target = comment_target(kind)
    comments = store.filter(
        target.comment_entity, {target.foreign_key: target_id}, sort_by="created_at"
    )
    children: dict[Optional[str], list[Record]] = defaultdict(list)
    ids = {c["id"] for c in comments}
    for comment in comments:
        parent = comment.get("parent_comment_id")
        children[parent if parent in ids else None].append(comment)

    def build(comment: Record) -> dict:
        return {
            **comment,
            "net_score": net_score(comment.get("upvotes"), comment.get("downvotes")),
            "replies": [build(child) for child in children.get(comment["id"], [])],
        }

    return [build(c) for c in children[None]]


def _descendants(comments: list[Record], root_id: str) -> list[str]:
    found = [root_id]
    frontier = [root_id]
    while frontier:
        parent = frontier.pop()
        for comment in comments:
            if comment.get("parent_comment_id") == parent:
                found.append(comment["id"])
                frontier.append(comment["id"])
    return found


def delete_comment(store: EntityStore, kind: str, comment_id: str, user_id: str) -> int:
    """Delete the user's own comment and its replies; returns the number removed."""
    target = comment_target(kind)
    comment = store.get(target.comment_entity, comment_id)
    if not comment:
        raise NotFoundError("Comment not found")
    if comment.get("user_id") != user_id:
        raise PermissionDeniedError("You can only delete your own comments")

    siblings = store.filter(
        target.comment_entity, {target.foreign_key: comment[target.foreign_key]}
    )
    removed = 0
    for doomed in _descendants(siblings, comment_id):
        for vote in store.filter(target.vote_entity, {"comment_id": doomed}):
            store.delete(target.vote_entity, vote["id"])
        removed += int(store.delete(target.comment_entity, doomed))
    logger.info("Deleted %s comment %s (%d rows)", kind, comment_id, removed)
    return removed

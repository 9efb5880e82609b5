"""
Up/down voting on comments, chat messages and photos.

A user holds at most one vote per target. Voting the same direction again
removes the vote, the opposite direction flips it. Target counts are always
recomputed from the vote rows after a change.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from fratrank.errors import (
    DuplicateRecordError,
    DuplicateSubmissionError,
    NotFoundError,
    ValidationError,
)
from fratrank.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteKind:
    target_entity: str
    vote_entity: str
    foreign_key: str
    up_field: str = "upvotes"
    down_field: str = "downvotes"


VOTE_KINDS = {
    "party_comment": VoteKind("party_comments", "party_comment_votes", "comment_id"),
    "fraternity_comment": VoteKind(
        "fraternity_comments", "fraternity_comment_votes", "comment_id"
    ),
    "chat_message": VoteKind("chat_messages", "chat_message_votes", "message_id"),
    "party_photo": VoteKind(
        "party_photos", "party_photo_votes", "photo_id", "likes", "dislikes"
    ),
}


@dataclass(frozen=True)
class VoteResult:
    target_id: str
    value: Optional[int]
    previous: Optional[int]
    upvotes: int
    downvotes: int


def vote_kind(kind: str) -> VoteKind:
    try:
        return VOTE_KINDS[kind]
    except KeyError:
        raise NotFoundError(f"Unknown vote kind: {kind}") from None


def next_vote_value(current: Optional[int], direction: int) -> Optional[int]:
    if direction not in (1, -1):
        raise ValidationError("Vote direction must be 1 or -1")
    return None if current == direction else direction


def adjust_counts(
    upvotes: int, downvotes: int, current: Optional[int], direction: int
) -> tuple[int, int, Optional[int]]:
    """Optimistic counts after toggling, without touching storage."""
    new_value = next_vote_value(current, direction)
    if current == 1:
        upvotes -= 1
    elif current == -1:
        downvotes -= 1
    if new_value == 1:
        upvotes += 1
    elif new_value == -1:
        downvotes += 1
    return upvotes, downvotes, new_value


class VoteLock:
    """Rejects a second vote submission for the same key while one is in flight."""

    def __init__(self):
        self._mutex = threading.Lock()
        self._held: set[tuple] = set()

    @contextmanager
    def hold(self, key: tuple) -> Iterator[None]:
        with self._mutex:
            if key in self._held:
                raise DuplicateSubmissionError("Vote already in progress")
            self._held.add(key)
        try:
            yield
        finally:
            with self._mutex:
                self._held.discard(key)

    def is_held(self, key: tuple) -> bool:
        with self._mutex:
            return key in self._held


def recount_votes(store: EntityStore, kind: str, target_id: str) -> tuple[int, int]:
    """Recompute counts from the vote rows and write them onto the target."""
    vk = vote_kind(kind)
    votes = store.filter(vk.vote_entity, {vk.foreign_key: target_id})
    upvotes = sum(1 for v in votes if v.get("value") == 1)
    downvotes = sum(1 for v in votes if v.get("value") == -1)
    store.update(
        vk.target_entity,
        target_id,
        {vk.up_field: upvotes, vk.down_field: downvotes},
    )
    return upvotes, downvotes


def _existing_vote(store: EntityStore, vk: VoteKind, target_id: str, user_id: str):
    rows = store.filter(vk.vote_entity, {vk.foreign_key: target_id, "user_id": user_id})
    return rows[0] if rows else None


def cast_vote(
    store: EntityStore,
    lock: VoteLock,
    kind: str,
    target_id: str,
    user_id: str,
    direction: int,
) -> VoteResult:
    vk = vote_kind(kind)
    with lock.hold((user_id, kind, target_id)):
        target = store.get(vk.target_entity, target_id)
        if not target or target.get("deleted_at"):
            raise NotFoundError(f"{kind} not found")

        existing = _existing_vote(store, vk, target_id, user_id)
        current = existing.get("value") if existing else None
        new_value = next_vote_value(current, direction)

        if existing is None:
            try:
                store.create(
                    vk.vote_entity,
                    {vk.foreign_key: target_id, "user_id": user_id, "value": new_value},
                )
            except DuplicateRecordError:
                # Another process inserted first; reconcile against its row.
                existing = _existing_vote(store, vk, target_id, user_id)
                if existing:
                    store.update(vk.vote_entity, existing["id"], {"value": new_value})
        elif new_value is None:
            store.delete(vk.vote_entity, existing["id"])
        else:
            store.update(vk.vote_entity, existing["id"], {"value": new_value})

        upvotes, downvotes = recount_votes(store, kind, target_id)
        logger.debug(
            "Vote %s on %s %s by %s -> %s", direction, kind, target_id, user_id, new_value
        )
        return VoteResult(
            target_id=target_id,
            value=new_value,
            previous=current,
            upvotes=upvotes,
            downvotes=downvotes,
        )


def votes_by_user(store: EntityStore, kind: str, user_id: str) -> dict[str, int]:
    vk = vote_kind(kind)
    return {
        v[vk.foreign_key]: v["value"]
        for v in store.filter(vk.vote_entity, {"user_id": user_id})
        if v.get("value") in (1, -1)
    }

"""
Party and reputation ratings.

Both rating kinds are upserts keyed by (target, user): a user's second
submission updates their existing row. Aggregates on the rated party or
fraternity are recomputed from the rating rows after every write.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fratrank.catalog import get_fraternity, get_party
from fratrank.errors import DuplicateRecordError, ValidationError
from fratrank.points import award_points, has_awarded, record_user_action
from fratrank.scoring import (
    clamp,
    combined_reputation,
    party_quality,
    stored_overall_score,
)
from fratrank.store import EntityStore, Record

logger = logging.getLogger(__name__)


def _upsert(
    store: EntityStore, entity: str, keys: dict, values: dict
) -> tuple[Record, bool]:
    existing = store.filter(entity, keys)
    if existing:
        return store.update(entity, existing[0]["id"], values), False
    try:
        return store.create(entity, {**keys, **values}), True
    except DuplicateRecordError:
        existing = store.filter(entity, keys)
        return store.update(entity, existing[0]["id"], values), False


def _has_any_rating(store: EntityStore, user_id: str) -> bool:
    return bool(
        store.filter("party_ratings", {"user_id": user_id})
        or store.filter("reputation_ratings", {"user_id": user_id})
    )


def _award_first_rating(store: EntityStore, user_id: str, first_ever: bool) -> None:
    if first_ever and not has_awarded(store, user_id, "first_rating"):
        award_points(store, user_id, "first_rating", "First rating")


def submit_party_rating(
    store: EntityStore,
    party_id: str,
    user_id: str,
    vibe: float,
    music: float,
    execution: float,
    now: Optional[datetime] = None,
) -> tuple[Record, bool]:
    """Create or update the user's rating of a party. Returns (rating, created)."""
    party = get_party(store, party_id, now)
    if party["status"] == "upcoming":
        raise ValidationError("Parties can only be rated once they have started")
    if party["status"] == "cancelled":
        raise ValidationError("Cancelled parties cannot be rated")

    vibe, music, execution = clamp(vibe), clamp(music), clamp(execution)
    first_ever = not _has_any_rating(store, user_id)
    rating, created = _upsert(
        store,
        "party_ratings",
        {"party_id": party_id, "user_id": user_id},
        {
            "vibe_score": vibe,
            "music_score": music,
            "execution_score": execution,
            "party_quality_score": party_quality(vibe, music, execution),
            "weight": 1.0,
        },
    )

    total = len(store.filter("party_ratings", {"party_id": party_id}))
    store.update("parties", party_id, {"total_ratings": total})

    if created:
        award_points(store, user_id, "rate_party", party.get("title"))
        _award_first_rating(store, user_id, first_ever)
    record_user_action(store, user_id, now)
    return rating, created


def recompute_fraternity_scores(store: EntityStore, fraternity_id: str) -> Record:
    """Refresh ``reputation_score`` and ``display_score`` from the rating rows."""
    try:
        ratings = store.filter("reputation_ratings", {"fraternity_id": fraternity_id})
        combined = [
            float(r["combined_score"])
            for r in ratings
            if r.get("combined_score") is not None
        ]
        fraternity = get_fraternity(store, fraternity_id)
        if combined:
            fraternity["reputation_score"] = clamp(sum(combined) / len(combined))
        return store.update(
            "fraternities",
            fraternity_id,
            {
                "reputation_score": fraternity.get("reputation_score"),
                "display_score": stored_overall_score(fraternity),
            },
        )
    except Exception:
        logger.exception("Failed to recompute scores for fraternity %s", fraternity_id)
        raise


def submit_reputation_rating(
    store: EntityStore,
    fraternity_id: str,
    user_id: str,
    brotherhood: float,
    reputation: float,
    community: float,
    semester: str,
    now: Optional[datetime] = None,
) -> tuple[Record, bool]:
    get_fraternity(store, fraternity_id)
    brotherhood, reputation, community = (
        clamp(brotherhood),
        clamp(reputation),
        clamp(community),
    )
    first_ever = not _has_any_rating(store, user_id)
    rating, created = _upsert(
        store,
        "reputation_ratings",
        {"fraternity_id": fraternity_id, "user_id": user_id},
        {
            "brotherhood_score": brotherhood,
            "reputation_score": reputation,
            "community_score": community,
            "combined_score": combined_reputation(brotherhood, reputation, community),
            "weight": 1.0,
            "semester": semester,
        },
    )
    recompute_fraternity_scores(store, fraternity_id)

    if created:
        fraternity = store.get("fraternities", fraternity_id)
        award_points(store, user_id, "rate_fraternity", fraternity.get("name"))
        _award_first_rating(store, user_id, first_ever)
        if _rated_all_active(store, user_id) and not has_awarded(
            store, user_id, "complete_all_frat_ratings"
        ):
            award_points(
                store, user_id, "complete_all_frat_ratings", "Rated every fraternity"
            )
    record_user_action(store, user_id, now)
    return rating, created


def _rated_all_active(store: EntityStore, user_id: str) -> bool:
    active = {f["id"] for f in store.filter("fraternities", {"status": "active"})}
    rated = {
        r["fraternity_id"]
        for r in store.filter("reputation_ratings", {"user_id": user_id})
    }
    return bool(active) and active <= rated


def rating_history(store: EntityStore, user_id: str) -> list[dict]:
    """The user's ratings of both kinds, newest first."""
    history = []
    for rating in store.filter("party_ratings", {"user_id": user_id}):
        party = store.get("parties", rating["party_id"]) or {}
        history.append(
            {
                "kind": "party",
                "target_id": rating["party_id"],
                "target_name": party.get("title"),
                "score": rating.get("party_quality_score"),
                "created_at": rating["created_at"],
            }
        )
    for rating in store.filter("reputation_ratings", {"user_id": user_id}):
        fraternity = store.get("fraternities", rating["fraternity_id"]) or {}
        history.append(
            {
                "kind": "reputation",
                "target_id": rating["fraternity_id"],
                "target_name": fraternity.get("name"),
                "score": rating.get("combined_score"),
                "created_at": rating["created_at"],
            }
        )
    history.sort(key=lambda item: item["created_at"], reverse=True)
    return history

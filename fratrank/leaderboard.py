"""
Campus leaderboard built from live rating and comment activity.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Optional

from fratrank.catalog import get_fraternity, list_parties
from fratrank.scoring import (
    FraternityActivity,
    campus_baseline,
    compute_fraternity_scores,
    sort_fraternities,
    tier_for_rank,
)
from fratrank.store import EntityStore


def load_activity(store: EntityStore) -> dict[str, FraternityActivity]:
    """Group ratings, parties and comments by fraternity id."""
    activity: dict[str, FraternityActivity] = defaultdict(FraternityActivity)
    party_owner = {}
    for party in store.list("parties"):
        party_owner[party["id"]] = party.get("fraternity_id")
        activity[party.get("fraternity_id")].parties.append(party)
    for rating in store.list("reputation_ratings"):
        activity[rating["fraternity_id"]].reputation_ratings.append(rating)
    for rating in store.list("party_ratings"):
        activity[party_owner.get(rating["party_id"])].party_ratings.append(rating)
    for comment in store.list("party_comments"):
        activity[party_owner.get(comment["party_id"])].party_comments.append(comment)
    for comment in store.list("fraternity_comments"):
        activity[comment["fraternity_id"]].fraternity_comments.append(comment)
    return activity


def leaderboard(
    store: EntityStore, category: str = "overall", now: Optional[datetime] = None
) -> list[dict]:
    fraternities = store.filter("fraternities", {"status": "active"})
    baseline = campus_baseline(fraternities, store.list("party_ratings"))
    activity = load_activity(store)
    scored = [
        (f, compute_fraternity_scores(activity.get(f["id"], FraternityActivity()), baseline, now))
        for f in fraternities
    ]
    ranked = sort_fraternities(scored, category)
    total = len(ranked)
    return [
        {
            "rank": rank,
            "tier": tier_for_rank(rank, total),
            "fraternity": fraternity,
            "scores": scores.as_dict(),
        }
        for rank, (fraternity, scores) in enumerate(ranked, start=1)
    ]


def fraternity_detail(
    store: EntityStore, fraternity_id: str, now: Optional[datetime] = None
) -> dict:
    fraternity = get_fraternity(store, fraternity_id)
    baseline = campus_baseline(
        store.filter("fraternities", {"status": "active"}), store.list("party_ratings")
    )
    activity = load_activity(store).get(fraternity_id, FraternityActivity())
    return {
        "fraternity": fraternity,
        "scores": compute_fraternity_scores(activity, baseline, now).as_dict(),
        "parties": list_parties(store, fraternity_id=fraternity_id, order="desc", now=now),
    }

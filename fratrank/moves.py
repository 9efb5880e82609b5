"""
"Where are we going tonight" voting.

Each user holds one vote per date across the day's parties, the default
options and that day's custom suggestions.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from fratrank.catalog import parties_on
from fratrank.errors import ValidationError
from fratrank.store import EntityStore, Record, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_MOVE_OPTIONS = (
    ("devines", "Devines"),
    ("shooters", "Shooters"),
    ("stay_in", "Stay In"),
)


def today(now: Optional[datetime] = None) -> date:
    return (now or utc_now()).date()


def _party_sub_label(store: EntityStore, party: Record) -> Optional[str]:
    fraternity = store.get("fraternities", party.get("fraternity_id") or "") or {}
    starts = parse_timestamp(party.get("starts_at"))
    if not fraternity.get("chapter") or starts is None:
        return None
    return f"{fraternity['chapter']} · {starts.strftime('%I:%M %p').lstrip('0')}"


def move_options(
    store: EntityStore, vote_date: date, now: Optional[datetime] = None
) -> list[dict]:
    """Every option that can be voted for on ``vote_date``, without counts."""
    options = [
        {
            "id": party["id"],
            "type": "party",
            "label": party["title"],
            "sub_label": _party_sub_label(store, party),
        }
        for party in parties_on(store, vote_date, now)
    ]
    options += [
        {"id": option_id, "type": "default", "label": label, "sub_label": None}
        for option_id, label in DEFAULT_MOVE_OPTIONS
    ]
    options += [
        {"id": s["id"], "type": "custom", "label": s["text"], "sub_label": None}
        for s in store.filter(
            "move_suggestions", {"vote_date": vote_date.isoformat()}, sort_by="created_at"
        )
    ]
    return options


def add_suggestion(
    store: EntityStore, user_id: str, text: str, vote_date: date
) -> Record:
    """Add a custom option; an existing suggestion with the same text is reused."""
    text = text.strip()
    key = text.casefold()
    if not key or len(text) > 40:
        raise ValidationError("Suggestion must be between 1 and 40 characters")
    for suggestion in store.filter("move_suggestions", {"vote_date": vote_date.isoformat()}):
        if suggestion["text"].strip().casefold() == key:
            return suggestion
    return store.create(
        "move_suggestions",
        {"user_id": user_id, "vote_date": vote_date.isoformat(), "text": text},
    )


def cast_move_vote(
    store: EntityStore,
    user_id: str,
    option_id: str,
    vote_date: date,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Vote for ``option_id``. Voting for the option already chosen removes the
    vote; returns the user's choice afterwards.
    """
    options = {o["id"]: o for o in move_options(store, vote_date, now)}
    if option_id not in options:
        raise ValidationError("Unknown option for this date")

    existing = store.filter(
        "move_votes", {"user_id": user_id, "vote_date": vote_date.isoformat()}
    )
    current = existing[0] if existing else None
    if current and current["option_id"] == option_id:
        store.delete("move_votes", current["id"])
        return None
    changes = {"option_id": option_id, "option_name": options[option_id]["label"]}
    if current:
        store.update("move_votes", current["id"], changes)
    else:
        store.create(
            "move_votes",
            {"user_id": user_id, "vote_date": vote_date.isoformat(), **changes},
        )
    return option_id


def tally(
    store: EntityStore,
    vote_date: date,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    votes = store.filter("move_votes", {"vote_date": vote_date.isoformat()})
    counts: dict[str, int] = {}
    user_choice = None
    for vote in votes:
        counts[vote["option_id"]] = counts.get(vote["option_id"], 0) + 1
        if user_id and vote["user_id"] == user_id:
            user_choice = vote["option_id"]

    total = len(votes)
    options = [
        {
            **option,
            "votes": counts.get(option["id"], 0),
            "percentage": round(counts.get(option["id"], 0) / total * 100) if total else 0,
            "leading": False,
        }
        for option in move_options(store, vote_date, now)
    ]
    options.sort(key=lambda o: o["votes"], reverse=True)
    if options and options[0]["votes"] > 0:
        options[0]["leading"] = True
    return {
        "vote_date": vote_date,
        "total_votes": total,
        "user_choice": user_choice,
        "options": options,
    }

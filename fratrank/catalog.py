"""
Campuses, fraternities and parties.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from fratrank.errors import NotFoundError, ValidationError
from fratrank.schemas import PartyCreate
from fratrank.store import EntityStore, Record, parse_timestamp, to_timestamp, utc_now

logger = logging.getLogger(__name__)

PARTY_STATUSES = ("upcoming", "active", "completed", "cancelled")


def party_status(party: Record, now: Optional[datetime] = None) -> str:
    """Derive status from the party window; ``cancelled`` always sticks."""
    if party.get("status") == "cancelled":
        return "cancelled"
    now = now or utc_now()
    starts = parse_timestamp(party.get("starts_at"))
    ends = parse_timestamp(party.get("ends_at"))
    if starts is None:
        return party.get("status") or "upcoming"
    if now < starts:
        return "upcoming"
    if ends is None or now <= ends:
        return "active"
    return "completed"


def with_status(party: Record, now: Optional[datetime] = None) -> Record:
    return {**party, "status": party_status(party, now)}


def list_campuses(store: EntityStore) -> list[Record]:
    return store.list("campuses", sort_by="name")


def list_fraternities(store: EntityStore, active_only: bool = False) -> list[Record]:
    filters = {"status": "active"} if active_only else {}
    return store.filter("fraternities", filters, sort_by="-display_score")


def get_fraternity(store: EntityStore, fraternity_id: str) -> Record:
    fraternity = store.get("fraternities", fraternity_id)
    if not fraternity:
        raise NotFoundError("Fraternity not found")
    return fraternity


def get_party(store: EntityStore, party_id: str, now: Optional[datetime] = None) -> Record:
    party = store.get("parties", party_id)
    if not party:
        raise NotFoundError("Party not found")
    return with_status(party, now)


def list_parties(
    store: EntityStore,
    fraternity_id: Optional[str] = None,
    status: Optional[str] = None,
    order: str = "asc",
    now: Optional[datetime] = None,
) -> list[Record]:
    if status is not None and status not in PARTY_STATUSES:
        raise ValidationError(f"Unknown party status: {status}")
    if order not in ("asc", "desc"):
        raise ValidationError("order must be 'asc' or 'desc'")
    sort_by = "starts_at" if order == "asc" else "-starts_at"
    parties = [
        with_status(p, now)
        for p in store.filter("parties", {"fraternity_id": fraternity_id}, sort_by=sort_by)
    ]
    if status:
        parties = [p for p in parties if p["status"] == status]
    return parties


def parties_on(store: EntityStore, day: date, now: Optional[datetime] = None) -> list[Record]:
    """Non-cancelled parties starting on ``day`` (UTC)."""
    result = []
    for party in list_parties(store, order="asc", now=now):
        starts = parse_timestamp(party.get("starts_at"))
        if starts and starts.date() == day and party["status"] != "cancelled":
            result.append(party)
    return result


def create_party(store: EntityStore, payload: PartyCreate, user_id: str) -> Record:
    get_fraternity(store, payload.fraternity_id)
    party = store.create(
        "parties",
        {
            "fraternity_id": payload.fraternity_id,
            "user_id": user_id,
            "title": payload.title,
            "starts_at": to_timestamp(payload.starts_at),
            "ends_at": to_timestamp(payload.ends_at),
            "venue": payload.venue,
            "theme": payload.theme,
            "access_type": "invite_only" if payload.invite_only else "open",
            "contact_email": payload.contact_email,
            "tags": list(payload.tags),
            "display_photo_url": payload.display_photo_url,
            "performance_score": 0,
            "quantifiable_score": 0,
            "unquantifiable_score": 0,
            "total_ratings": 0,
            "status": "upcoming",
        },
    )
    logger.info("Party %s created for fraternity %s", party["id"], payload.fraternity_id)
    return with_status(party)

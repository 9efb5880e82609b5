"""
"Are you going?" attendance for upcoming and in-progress parties.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fratrank.catalog import get_party
from fratrank.errors import DuplicateRecordError, ValidationError
from fratrank.points import award_points, has_awarded, record_user_action
from fratrank.store import EntityStore, to_timestamp, utc_now

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("upcoming", "active")


def set_attendance(
    store: EntityStore,
    party_id: str,
    user_id: str,
    is_going: bool,
    now: Optional[datetime] = None,
) -> Optional[bool]:
    """
    Mark the user as going or not going. Repeating the current choice clears
    it; returns the user's choice afterwards.
    """
    now = now or utc_now()
    party = get_party(store, party_id, now)
    if party["status"] not in OPEN_STATUSES:
        raise ValidationError(f"Attendance is closed for a {party['status']} party")

    keys = {"party_id": party_id, "user_id": user_id}
    existing = store.filter("party_attendances", keys)
    current = existing[0] if existing else None
    if current and current.get("is_going") == is_going:
        store.delete("party_attendances", current["id"])
        return None

    changes = {"is_going": is_going, "updated_at": to_timestamp(now)}
    if current:
        store.update("party_attendances", current["id"], changes)
    else:
        try:
            store.create("party_attendances", {**keys, **changes})
        except DuplicateRecordError:
            rows = store.filter("party_attendances", keys)
            store.update("party_attendances", rows[0]["id"], changes)

    description = f"party:{party_id}"
    if not has_awarded(store, user_id, "mark_attendance", description):
        award_points(store, user_id, "mark_attendance", description)
        record_user_action(store, user_id, now)
    logger.debug("Attendance for %s by %s -> %s", party_id, user_id, is_going)
    return is_going


def attendance_counts(
    store: EntityStore, party_id: str, user_id: Optional[str] = None
) -> dict:
    get_party(store, party_id)
    rows = store.filter("party_attendances", {"party_id": party_id})
    going = sum(1 for r in rows if r.get("is_going"))
    mine = next((r for r in rows if user_id and r["user_id"] == user_id), None)
    return {
        "party_id": party_id,
        "going": going,
        "not_going": len(rows) - going,
        "user_attendance": mine.get("is_going") if mine else None,
    }

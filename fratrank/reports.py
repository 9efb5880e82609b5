"""
User reports of objectionable content.
"""

from __future__ import annotations

import logging
from typing import Optional

from fratrank.errors import NotFoundError, ValidationError
from fratrank.ratelimit import RateLimiter, enforce_rate_limit
from fratrank.store import EntityStore, Record

logger = logging.getLogger(__name__)

REPORTABLE_ENTITIES = {
    "party": "parties",
    "party_comment": "party_comments",
    "fraternity_comment": "fraternity_comments",
    "chat_message": "chat_messages",
    "party_photo": "party_photos",
}


def create_report(
    store: EntityStore,
    limiter: RateLimiter,
    reporter_id: str,
    content_type: str,
    content_id: str,
    reason: str,
    description: Optional[str] = None,
) -> tuple[Record, bool]:
    """File a report; an open report by the same user is returned unchanged."""
    entity = REPORTABLE_ENTITIES.get(content_type)
    if entity is None:
        raise ValidationError(f"Unknown content type: {content_type}")
    if not store.get(entity, content_id):
        raise NotFoundError("Reported content not found")

    open_reports = store.filter(
        "content_reports",
        {
            "reporter_id": reporter_id,
            "content_type": content_type,
            "content_id": content_id,
            "status": "pending",
        },
    )
    if open_reports:
        return open_reports[0], False

    enforce_rate_limit(limiter, reporter_id, "report")
    report = store.create(
        "content_reports",
        {
            "reporter_id": reporter_id,
            "content_type": content_type,
            "content_id": content_id,
            "reason": reason,
            "description": description,
            "status": "pending",
        },
    )
    limiter.record(reporter_id, "report")
    logger.info("Report %s filed against %s %s", report["id"], content_type, content_id)
    return report, True

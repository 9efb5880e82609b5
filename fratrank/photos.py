"""
Party photo galleries and cover selection.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fratrank.catalog import get_party
from fratrank.errors import ValidationError
from fratrank.points import award_points, record_user_action
from fratrank.scoring import net_score
from fratrank.storage import StorageClient, photo_storage_path, validate_upload
from fratrank.store import EntityStore, Record

logger = logging.getLogger(__name__)

UPLOAD_URL_EXPIRY_SECONDS = 15 * 60


def request_upload(
    store: EntityStore,
    storage: StorageClient,
    party_id: str,
    content_type: str,
    size_bytes: Optional[int] = None,
) -> dict:
    get_party(store, party_id)
    allowed = validate_upload(content_type, size_bytes)
    path = photo_storage_path(party_id, allowed.extension)
    return {
        "upload_url": storage.presign_put(
            path, expires_in=UPLOAD_URL_EXPIRY_SECONDS, content_type=allowed.mime_type
        ),
        "storage_path": path,
        "expires_in": UPLOAD_URL_EXPIRY_SECONDS,
    }


def add_photo(
    store: EntityStore,
    storage: StorageClient,
    party_id: str,
    user_id: str,
    storage_path: str,
    caption: Optional[str] = None,
    consent_verified: bool = False,
    auto_approve: bool = False,
) -> Record:
    get_party(store, party_id)
    if not consent_verified:
        raise ValidationError("Consent must be confirmed before uploading")
    if not storage_path.startswith(f"party-photos/{party_id}/"):
        raise ValidationError("Storage path does not belong to this party")

    photo = store.create(
        "party_photos",
        {
            "party_id": party_id,
            "user_id": user_id,
            "url": storage.public_url(storage_path),
            "storage_path": storage_path,
            "caption": caption,
            "likes": 0,
            "dislikes": 0,
            "consent_verified": True,
            "moderation_status": "approved" if auto_approve else "pending",
        },
    )
    award_points(store, user_id, "upload_photo")
    record_user_action(store, user_id)
    logger.info("Photo %s added to party %s", photo["id"], party_id)
    return photo


def list_photos(store: EntityStore, party_id: str) -> list[Record]:
    return [
        p
        for p in store.filter("party_photos", {"party_id": party_id}, sort_by="-created_at")
        if p.get("moderation_status") != "rejected"
    ]


def select_cover_photo(photos: Iterable[Record]) -> Optional[Record]:
    """Highest net score wins; ties go to the most recent upload."""
    candidates = [p for p in photos if p.get("moderation_status") != "rejected"]
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda p: (net_score(p.get("likes"), p.get("dislikes")), p.get("created_at") or ""),
    )


def party_cover(store: EntityStore, party_id: str) -> Optional[str]:
    party = get_party(store, party_id)
    if party.get("display_photo_url"):
        return party["display_photo_url"]
    cover = select_cover_photo(store.filter("party_photos", {"party_id": party_id}))
    return cover["url"] if cover else None

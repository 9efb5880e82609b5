"""
HTTP routes for the FratRank API.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response

from fratrank import (
    attendance,
    catalog,
    chat,
    comments,
    leaderboard,
    moves,
    photos,
    ratings,
    reports,
)
from fratrank.config import get_settings
from fratrank.dependencies import (
    get_current_user_id,
    get_optional_user_id,
    get_rate_limiter,
    get_storage_client,
    get_store,
    get_vote_lock,
)
from fratrank.points import (
    award_points,
    check_streak,
    has_awarded,
    level_info,
    total_points,
)
from fratrank.ratelimit import RateLimiter, enforce_rate_limit
from fratrank.schemas import (
    AttendanceOut,
    AttendanceRequest,
    CampusOut,
    ChatMessageCreate,
    ChatMessageOut,
    ChatThreadOut,
    CommentCreate,
    CommentOut,
    CoverOut,
    FraternityDetailOut,
    FraternityOut,
    LeaderboardCategory,
    LeaderboardOut,
    MoveSuggestionOut,
    MoveSuggestionRequest,
    MoveTallyOut,
    MoveVoteOut,
    MoveVoteRequest,
    PartyCreate,
    PartyOut,
    PartyRatingOut,
    PartyRatingRequest,
    PhotoCreate,
    PhotoOut,
    PhotoUploadRequest,
    PointsOut,
    RatingHistoryItem,
    ReportCreate,
    ReportOut,
    ReputationRatingOut,
    ReputationRatingRequest,
    StreakOut,
    UploadUrlOut,
    UserVotesOut,
    VoteOut,
    VoteRequest,
)
from fratrank.storage import StorageClient
from fratrank.store import EntityStore
from fratrank.votes import VoteLock, cast_vote, votes_by_user

logger = logging.getLogger(__name__)

router = APIRouter()

VOTE_POINT_ACTIONS = {
    "chat_message": "vote_on_post",
    "party_comment": "vote_on_comment",
    "fraternity_comment": "vote_on_comment",
}


@router.get("/campuses", response_model=list[CampusOut])
def list_campuses(store: EntityStore = Depends(get_store)):
    return catalog.list_campuses(store)


@router.get("/fraternities", response_model=list[FraternityOut])
def list_fraternities(
    active_only: bool = Query(False),
    store: EntityStore = Depends(get_store),
):
    return catalog.list_fraternities(store, active_only=active_only)


@router.get("/fraternities/{fraternity_id}", response_model=FraternityDetailOut)
def fraternity_detail(fraternity_id: str, store: EntityStore = Depends(get_store)):
    return leaderboard.fraternity_detail(store, fraternity_id)


@router.get("/leaderboard", response_model=LeaderboardOut)
def get_leaderboard(
    sort: LeaderboardCategory = Query("overall"),
    store: EntityStore = Depends(get_store),
):
    return LeaderboardOut(category=sort, entries=leaderboard.leaderboard(store, sort))


@router.get("/parties", response_model=list[PartyOut])
def list_parties(
    fraternity_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    order: Literal["asc", "desc"] = Query("asc"),
    store: EntityStore = Depends(get_store),
):
    return catalog.list_parties(
        store, fraternity_id=fraternity_id, status=status, order=order
    )


@router.post("/parties", response_model=PartyOut, status_code=201)
def create_party(
    payload: PartyCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    return catalog.create_party(store, payload, user_id)


@router.get("/parties/{party_id}", response_model=PartyOut)
def get_party(party_id: str, store: EntityStore = Depends(get_store)):
    return catalog.get_party(store, party_id)


@router.post("/parties/{party_id}/ratings", response_model=PartyRatingOut)
def rate_party(
    party_id: str,
    payload: PartyRatingRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    rating, created = ratings.submit_party_rating(
        store,
        party_id,
        user_id,
        payload.vibe_score,
        payload.music_score,
        payload.execution_score,
    )
    response.status_code = 201 if created else 200
    return rating


@router.post("/fraternities/{fraternity_id}/ratings", response_model=ReputationRatingOut)
def rate_fraternity(
    fraternity_id: str,
    payload: ReputationRatingRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    rating, created = ratings.submit_reputation_rating(
        store,
        fraternity_id,
        user_id,
        payload.brotherhood_score,
        payload.reputation_score,
        payload.community_score,
        semester=get_settings().current_semester,
    )
    response.status_code = 201 if created else 200
    return rating


@router.get("/me/ratings", response_model=list[RatingHistoryItem])
def my_ratings(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    return ratings.rating_history(store, user_id)


@router.get("/parties/{party_id}/comments", response_model=list[CommentOut])
def party_comments(party_id: str, store: EntityStore = Depends(get_store)):
    return comments.comment_thread(store, "party", party_id)


@router.post("/parties/{party_id}/comments", response_model=CommentOut, status_code=201)
def add_party_comment(
    party_id: str,
    payload: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    return comments.add_comment(
        store, limiter, "party", party_id, user_id, payload.text, payload.parent_comment_id
    )


@router.get("/fraternities/{fraternity_id}/comments", response_model=list[CommentOut])
def fraternity_comments(fraternity_id: str, store: EntityStore = Depends(get_store)):
    return comments.comment_thread(store, "fraternity", fraternity_id)


@router.post(
    "/fraternities/{fraternity_id}/comments", response_model=CommentOut, status_code=201
)
def add_fraternity_comment(
    fraternity_id: str,
    payload: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    return comments.add_comment(
        store,
        limiter,
        "fraternity",
        fraternity_id,
        user_id,
        payload.text,
        payload.parent_comment_id,
    )


@router.delete("/comments/{kind}/{comment_id}", status_code=204)
def delete_comment(
    kind: Literal["party", "fraternity"],
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    comments.delete_comment(store, kind, comment_id, user_id)
    return Response(status_code=204)


@router.post("/votes/{kind}/{target_id}", response_model=VoteOut)
def vote(
    kind: Literal["party_comment", "fraternity_comment", "chat_message", "party_photo"],
    target_id: str,
    payload: VoteRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    lock: VoteLock = Depends(get_vote_lock),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    enforce_rate_limit(limiter, user_id, "vote")
    result = cast_vote(store, lock, kind, target_id, user_id, payload.direction)
    limiter.record(user_id, "vote")
    action = VOTE_POINT_ACTIONS.get(kind)
    if action and result.value is not None:
        # One award per target, however often the vote is toggled.
        description = f"{kind}:{target_id}"
        if not has_awarded(store, user_id, action, description):
            award_points(store, user_id, action, description)
    return VoteOut(
        target_id=result.target_id,
        value=result.value,
        upvotes=result.upvotes,
        downvotes=result.downvotes,
    )


@router.get("/me/votes/{kind}", response_model=UserVotesOut)
def my_votes(
    kind: Literal["party_comment", "fraternity_comment", "chat_message", "party_photo"],
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    return UserVotesOut(votes=votes_by_user(store, kind, user_id))


@router.get("/chat", response_model=list[ChatMessageOut])
def chat_feed(
    sort: Literal["new", "top", "hot"] = Query("hot"),
    limit: int = Query(50, ge=1, le=200),
    store: EntityStore = Depends(get_store),
):
    return chat.feed(store, sort=sort, limit=limit)


@router.post("/chat", response_model=ChatMessageOut, status_code=201)
def post_chat_message(
    payload: ChatMessageCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    return chat.post_message(
        store,
        limiter,
        user_id,
        payload.text,
        parent_message_id=payload.parent_message_id,
        mentioned_fraternity_id=payload.mentioned_fraternity_id,
        mentioned_party_id=payload.mentioned_party_id,
    )


@router.get("/chat/{message_id}", response_model=ChatThreadOut)
def chat_thread(message_id: str, store: EntityStore = Depends(get_store)):
    return chat.thread(store, message_id)


@router.delete("/chat/{message_id}", status_code=204)
def delete_chat_message(
    message_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    chat.delete_message(store, message_id, user_id)
    return Response(status_code=204)


@router.post("/parties/{party_id}/photos/upload-url", response_model=UploadUrlOut)
def photo_upload_url(
    party_id: str,
    payload: PhotoUploadRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    storage: StorageClient = Depends(get_storage_client),
):
    return photos.request_upload(
        store, storage, party_id, payload.content_type, payload.size_bytes
    )


@router.get("/parties/{party_id}/photos", response_model=list[PhotoOut])
def party_photos(party_id: str, store: EntityStore = Depends(get_store)):
    catalog.get_party(store, party_id)
    return photos.list_photos(store, party_id)


@router.post("/parties/{party_id}/photos", response_model=PhotoOut, status_code=201)
def add_party_photo(
    party_id: str,
    payload: PhotoCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    storage: StorageClient = Depends(get_storage_client),
):
    return photos.add_photo(
        store,
        storage,
        party_id,
        user_id,
        payload.storage_path,
        caption=payload.caption,
        consent_verified=payload.consent_verified,
        auto_approve=get_settings().photo_auto_approve,
    )


@router.get("/parties/{party_id}/cover", response_model=CoverOut)
def party_cover(party_id: str, store: EntityStore = Depends(get_store)):
    return CoverOut(party_id=party_id, url=photos.party_cover(store, party_id))


@router.get("/parties/{party_id}/attendance", response_model=AttendanceOut)
def party_attendance(
    party_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    store: EntityStore = Depends(get_store),
):
    return attendance.attendance_counts(store, party_id, user_id)


@router.post("/parties/{party_id}/attendance", response_model=AttendanceOut)
def mark_attendance(
    party_id: str,
    payload: AttendanceRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    attendance.set_attendance(store, party_id, user_id, payload.is_going)
    return attendance.attendance_counts(store, party_id, user_id)


@router.get("/moves", response_model=MoveTallyOut)
def move_tally(
    vote_date: Optional[date] = Query(None, alias="date"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    store: EntityStore = Depends(get_store),
):
    return moves.tally(store, vote_date or moves.today(), user_id=user_id)


@router.post("/moves/votes", response_model=MoveVoteOut)
def move_vote(
    payload: MoveVoteRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    vote_date = payload.vote_date or moves.today()
    choice = moves.cast_move_vote(store, user_id, payload.option_id, vote_date)
    return MoveVoteOut(vote_date=vote_date, option_id=choice)


@router.post("/moves/suggestions", response_model=MoveSuggestionOut, status_code=201)
def move_suggestion(
    payload: MoveSuggestionRequest,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    vote_date = payload.vote_date or moves.today()
    suggestion = moves.add_suggestion(store, user_id, payload.text, vote_date)
    return MoveSuggestionOut(
        id=suggestion["id"],
        option_id=suggestion["id"],
        text=suggestion["text"],
        vote_date=vote_date,
    )


@router.post("/reports", response_model=ReportOut)
def report_content(
    payload: ReportCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    report, created = reports.create_report(
        store,
        limiter,
        user_id,
        payload.content_type,
        payload.content_id,
        payload.reason,
        payload.description,
    )
    response.status_code = 201 if created else 200
    return report


@router.get("/me/points", response_model=PointsOut)
def my_points(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    info = level_info(total_points(store, user_id))
    return PointsOut(
        total_points=info.points,
        level=info.level,
        level_name=info.name,
        progress_to_next=info.progress_to_next,
        points_to_next_level=info.points_to_next_level,
        next_level_name=info.next_level_name,
    )


@router.get("/me/streak", response_model=StreakOut)
def my_streak(
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_store),
):
    streak = check_streak(store, user_id)
    return StreakOut(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_action_at=streak.last_action_at,
        streak_expires_at=streak.streak_expires_at,
        hours_remaining=streak.hours_remaining,
    )

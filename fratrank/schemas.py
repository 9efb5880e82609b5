"""
Pydantic schemas for the FratRank API.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_TEXT_SHORT = 100
MAX_TEXT_MEDIUM = 500
MAX_TEXT_LONG = 2000
MAX_EMAIL = 255

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ContentType = Literal[
    "party", "party_comment", "fraternity_comment", "chat_message", "party_photo"
]
LeaderboardCategory = Literal["overall", "reputation", "party", "trending"]


def sanitize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip())


def clean_text(
    value: Optional[str], label: str, max_length: int, required: bool = True
) -> Optional[str]:
    if value is None:
        if required:
            raise ValueError(f"{label} is required")
        return None
    cleaned = sanitize_text(value)
    if required and not cleaned:
        raise ValueError(f"{label} cannot be empty")
    if len(cleaned) > max_length:
        raise ValueError(f"{label} must be less than {max_length} characters")
    return cleaned or None


class PartyCreate(BaseModel):
    title: str
    fraternity_id: str
    venue: Optional[str] = None
    starts_at: datetime
    ends_at: datetime
    contact_email: str
    theme: Optional[str] = Field(default=None, max_length=50)
    tags: list[str] = Field(default_factory=list)
    invite_only: bool = False
    display_photo_url: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        return clean_text(value, "Party name", MAX_TEXT_SHORT)

    @field_validator("venue")
    @classmethod
    def _venue(cls, value: Optional[str]) -> Optional[str]:
        return clean_text(value, "Venue", MAX_TEXT_SHORT, required=False)

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive times are UTC, as when the store serialises them.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("contact_email")
    @classmethod
    def _email(cls, value: str) -> str:
        value = value.strip().lower()
        if len(value) > MAX_EMAIL or not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value

    @model_validator(mode="after")
    def _ends_after_start(self) -> "PartyCreate":
        if self.ends_at <= self.starts_at:
            raise ValueError("End time must be after start time")
        return self


class PartyRatingRequest(BaseModel):
    vibe_score: float
    music_score: float
    execution_score: float


class ReputationRatingRequest(BaseModel):
    brotherhood_score: float
    reputation_score: float
    community_score: float


class CommentCreate(BaseModel):
    text: str
    parent_comment_id: Optional[str] = None

    @field_validator("text")
    @classmethod
    def _text(cls, value: str) -> str:
        return clean_text(value, "Comment", MAX_TEXT_MEDIUM)


class ChatMessageCreate(BaseModel):
    text: str
    parent_message_id: Optional[str] = None
    mentioned_fraternity_id: Optional[str] = None
    mentioned_party_id: Optional[str] = None

    @field_validator("text")
    @classmethod
    def _text(cls, value: str) -> str:
        return clean_text(value, "Post", MAX_TEXT_LONG)


class VoteRequest(BaseModel):
    direction: Literal[1, -1]


class PhotoUploadRequest(BaseModel):
    content_type: str
    size_bytes: Optional[int] = Field(default=None, ge=0)


class PhotoCreate(BaseModel):
    storage_path: str
    caption: Optional[str] = None
    consent_verified: bool = False

    @field_validator("caption")
    @classmethod
    def _caption(cls, value: Optional[str]) -> Optional[str]:
        return clean_text(value, "Caption", 200, required=False)


class MoveVoteRequest(BaseModel):
    option_id: str
    vote_date: Optional[date] = None


class AttendanceRequest(BaseModel):
    is_going: bool


class MoveSuggestionRequest(BaseModel):
    text: str
    vote_date: Optional[date] = None

    @field_validator("text")
    @classmethod
    def _text(cls, value: str) -> str:
        return clean_text(value, "Suggestion", 40)


class ReportCreate(BaseModel):
    content_type: ContentType
    content_id: str
    reason: str
    description: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def _reason(cls, value: str) -> str:
        return clean_text(value, "Reason", 50)

    @field_validator("description")
    @classmethod
    def _description(cls, value: Optional[str]) -> Optional[str]:
        return clean_text(value, "Description", MAX_TEXT_MEDIUM, required=False)


class CampusOut(BaseModel):
    id: str
    name: str
    domain: str
    location: Optional[str] = None
    active: Optional[bool] = None
    created_at: str


class FraternityOut(BaseModel):
    id: str
    campus_id: Optional[str] = None
    name: str
    chapter: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    founded_year: Optional[int] = None
    reputation_score: Optional[float] = None
    historical_party_score: Optional[float] = None
    momentum: Optional[float] = None
    display_score: Optional[float] = None
    status: Optional[str] = None
    created_at: str


class PartyOut(BaseModel):
    id: str
    fraternity_id: Optional[str] = None
    title: str
    starts_at: Optional[str] = None
    ends_at: Optional[str] = None
    venue: Optional[str] = None
    theme: Optional[str] = None
    access_type: Optional[str] = None
    tags: Optional[list[str]] = None
    display_photo_url: Optional[str] = None
    total_ratings: Optional[int] = None
    status: Optional[str] = None
    created_at: str


class PartyRatingOut(BaseModel):
    id: str
    party_id: str
    user_id: str
    vibe_score: Optional[float] = None
    music_score: Optional[float] = None
    execution_score: Optional[float] = None
    party_quality_score: Optional[float] = None
    weight: Optional[float] = None
    created_at: str


class ReputationRatingOut(BaseModel):
    id: str
    fraternity_id: str
    user_id: str
    brotherhood_score: Optional[float] = None
    reputation_score: Optional[float] = None
    community_score: Optional[float] = None
    combined_score: Optional[float] = None
    weight: Optional[float] = None
    semester: Optional[str] = None
    created_at: str


class RatingHistoryItem(BaseModel):
    kind: Literal["party", "reputation"]
    target_id: str
    target_name: Optional[str] = None
    score: Optional[float] = None
    created_at: str


class CommentOut(BaseModel):
    id: str
    user_id: str
    parent_comment_id: Optional[str] = None
    text: str
    upvotes: int = 0
    downvotes: int = 0
    net_score: int = 0
    toxicity_label: Optional[str] = None
    created_at: str
    replies: list["CommentOut"] = Field(default_factory=list)


class ChatMessageOut(BaseModel):
    id: str
    parent_message_id: Optional[str] = None
    text: str
    mentioned_fraternity_id: Optional[str] = None
    mentioned_party_id: Optional[str] = None
    upvotes: int = 0
    downvotes: int = 0
    net_score: int = 0
    reply_count: int = 0
    locked: bool = False
    created_at: str


class ChatThreadOut(BaseModel):
    message: ChatMessageOut
    replies: list[ChatMessageOut]


class PhotoOut(BaseModel):
    id: str
    party_id: str
    url: str
    caption: Optional[str] = None
    likes: int = 0
    dislikes: int = 0
    moderation_status: Optional[str] = None
    created_at: str


class UploadUrlOut(BaseModel):
    upload_url: str
    storage_path: str
    expires_in: int


class CoverOut(BaseModel):
    party_id: str
    url: Optional[str] = None


class VoteOut(BaseModel):
    target_id: str
    value: Optional[int] = None
    upvotes: int
    downvotes: int


class UserVotesOut(BaseModel):
    votes: dict[str, int]


class ScoresOut(BaseModel):
    overall: float
    rep_adj: float
    party_adj: float
    semester_party_score: float
    avg_brotherhood: float
    avg_reputation: float
    avg_community: float
    confidence_overall: float
    trending: float
    activity_trending: float
    num_rep_ratings: int
    num_party_ratings: int
    has_rep_data: bool
    has_party_score_data: bool
    has_overall_data: bool


class LeaderboardEntryOut(BaseModel):
    rank: int
    tier: str
    fraternity: FraternityOut
    scores: ScoresOut


class LeaderboardOut(BaseModel):
    category: LeaderboardCategory
    entries: list[LeaderboardEntryOut]


class FraternityDetailOut(BaseModel):
    fraternity: FraternityOut
    scores: ScoresOut
    parties: list[PartyOut]


class MoveOptionOut(BaseModel):
    id: str
    type: Literal["party", "default", "custom"]
    label: str
    sub_label: Optional[str] = None
    votes: int
    percentage: int
    leading: bool


class MoveTallyOut(BaseModel):
    vote_date: date
    total_votes: int
    user_choice: Optional[str] = None
    options: list[MoveOptionOut]


class MoveVoteOut(BaseModel):
    vote_date: date
    option_id: Optional[str] = None


class AttendanceOut(BaseModel):
    party_id: str
    going: int
    not_going: int
    user_attendance: Optional[bool] = None


class MoveSuggestionOut(BaseModel):
    id: str
    option_id: str
    text: str
    vote_date: date


class ReportOut(BaseModel):
    id: str
    content_type: str
    content_id: str
    reason: str
    description: Optional[str] = None
    status: str
    created_at: str


class PointsOut(BaseModel):
    total_points: int
    level: int
    level_name: str
    progress_to_next: float
    points_to_next_level: int
    next_level_name: Optional[str] = None


class StreakOut(BaseModel):
    current_streak: int
    longest_streak: int
    last_action_at: Optional[str] = None
    streak_expires_at: Optional[str] = None
    hours_remaining: Optional[float] = None

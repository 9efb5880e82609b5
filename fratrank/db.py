"""
SQLAlchemy-backed entity store mirroring the BaaS Postgres schema.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fratrank.errors import DuplicateRecordError
from fratrank.store import Record, new_record

Base = declarative_base()


class _RecordMixin:
    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False, index=True)


class CampusRow(_RecordMixin, Base):
    __tablename__ = "campuses"

    name = Column(String, nullable=False)
    domain = Column(String, nullable=False)
    location = Column(String, nullable=True)
    active = Column(Boolean, nullable=True, default=True)


class FraternityRow(_RecordMixin, Base):
    __tablename__ = "fraternities"

    campus_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    chapter = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    logo_url = Column(String, nullable=True)
    founded_year = Column(Integer, nullable=True)
    base_score = Column(Float, nullable=True)
    reputation_score = Column(Float, nullable=True)
    historical_party_score = Column(Float, nullable=True)
    momentum = Column(Float, nullable=True)
    display_score = Column(Float, nullable=True)
    status = Column(String, nullable=True, index=True)


class PartyRow(_RecordMixin, Base):
    __tablename__ = "parties"

    fraternity_id = Column(String, nullable=True, index=True)
    user_id = Column(String, nullable=True)
    title = Column(String, nullable=False)
    starts_at = Column(String, nullable=True, index=True)
    ends_at = Column(String, nullable=True)
    venue = Column(String, nullable=True)
    theme = Column(String, nullable=True)
    access_type = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    tags = Column(JSON, nullable=True)
    display_photo_url = Column(String, nullable=True)
    performance_score = Column(Float, nullable=True)
    quantifiable_score = Column(Float, nullable=True)
    unquantifiable_score = Column(Float, nullable=True)
    total_ratings = Column(Integer, nullable=True)
    status = Column(String, nullable=True)


class PartyRatingRow(_RecordMixin, Base):
    __tablename__ = "party_ratings"
    __table_args__ = (UniqueConstraint("party_id", "user_id"),)

    party_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    vibe_score = Column(Float, nullable=True)
    music_score = Column(Float, nullable=True)
    execution_score = Column(Float, nullable=True)
    party_quality_score = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)


class ReputationRatingRow(_RecordMixin, Base):
    __tablename__ = "reputation_ratings"
    __table_args__ = (UniqueConstraint("fraternity_id", "user_id"),)

    fraternity_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    brotherhood_score = Column(Float, nullable=True)
    reputation_score = Column(Float, nullable=True)
    community_score = Column(Float, nullable=True)
    combined_score = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    semester = Column(String, nullable=True)


class _CommentMixin(_RecordMixin):
    user_id = Column(String, nullable=False)
    parent_comment_id = Column(String, nullable=True)
    text = Column(Text, nullable=False)
    sentiment_score = Column(Float, nullable=True)
    toxicity_label = Column(String, nullable=True)
    upvotes = Column(Integer, nullable=True, default=0)
    downvotes = Column(Integer, nullable=True, default=0)
    moderated = Column(Boolean, nullable=True, default=False)


class PartyCommentRow(_CommentMixin, Base):
    __tablename__ = "party_comments"

    party_id = Column(String, nullable=False, index=True)


class FraternityCommentRow(_CommentMixin, Base):
    __tablename__ = "fraternity_comments"

    fraternity_id = Column(String, nullable=False, index=True)


class PartyCommentVoteRow(_RecordMixin, Base):
    __tablename__ = "party_comment_votes"
    __table_args__ = (UniqueConstraint("comment_id", "user_id"),)

    comment_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    value = Column(Integer, nullable=False)


class FraternityCommentVoteRow(_RecordMixin, Base):
    __tablename__ = "fraternity_comment_votes"
    __table_args__ = (UniqueConstraint("comment_id", "user_id"),)

    comment_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    value = Column(Integer, nullable=False)


class ChatMessageRow(_RecordMixin, Base):
    __tablename__ = "chat_messages"

    user_id = Column(String, nullable=False)
    parent_message_id = Column(String, nullable=True, index=True)
    text = Column(Text, nullable=False)
    mentioned_fraternity_id = Column(String, nullable=True)
    mentioned_party_id = Column(String, nullable=True)
    upvotes = Column(Integer, nullable=True, default=0)
    downvotes = Column(Integer, nullable=True, default=0)
    locked = Column(Boolean, nullable=True, default=False)
    deleted_at = Column(String, nullable=True)
    deleted_by = Column(String, nullable=True)


class ChatMessageVoteRow(_RecordMixin, Base):
    __tablename__ = "chat_message_votes"
    __table_args__ = (UniqueConstraint("message_id", "user_id"),)

    message_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    value = Column(Integer, nullable=False)


class PartyPhotoRow(_RecordMixin, Base):
    __tablename__ = "party_photos"

    party_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    url = Column(String, nullable=False)
    storage_path = Column(String, nullable=True)
    caption = Column(String, nullable=True)
    likes = Column(Integer, nullable=True, default=0)
    dislikes = Column(Integer, nullable=True, default=0)
    consent_verified = Column(Boolean, nullable=True)
    moderation_status = Column(String, nullable=True)


class PartyPhotoVoteRow(_RecordMixin, Base):
    __tablename__ = "party_photo_votes"
    __table_args__ = (UniqueConstraint("photo_id", "user_id"),)

    photo_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    value = Column(Integer, nullable=False)


class PartyAttendanceRow(_RecordMixin, Base):
    __tablename__ = "party_attendances"
    __table_args__ = (UniqueConstraint("party_id", "user_id"),)

    party_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    is_going = Column(Boolean, nullable=False, default=True)
    updated_at = Column(String, nullable=True)


class MoveVoteRow(_RecordMixin, Base):
    __tablename__ = "move_votes"
    __table_args__ = (UniqueConstraint("user_id", "vote_date"),)

    user_id = Column(String, nullable=False)
    vote_date = Column(String, nullable=False, index=True)
    option_id = Column(String, nullable=False)
    option_name = Column(String, nullable=False)


class MoveSuggestionRow(_RecordMixin, Base):
    __tablename__ = "move_suggestions"

    user_id = Column(String, nullable=False)
    vote_date = Column(String, nullable=False, index=True)
    text = Column(String, nullable=False)


class ContentReportRow(_RecordMixin, Base):
    __tablename__ = "content_reports"

    reporter_id = Column(String, nullable=False, index=True)
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False, index=True)
    reason = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending")
    reviewed_at = Column(String, nullable=True)
    reviewed_by = Column(String, nullable=True)


class UserPointsHistoryRow(_RecordMixin, Base):
    __tablename__ = "user_points_history"

    user_id = Column(String, nullable=False, index=True)
    points = Column(Integer, nullable=False)
    action_type = Column(String, nullable=False)
    description = Column(String, nullable=True)


class UserStreakRow(_RecordMixin, Base):
    __tablename__ = "user_streaks"

    user_id = Column(String, nullable=False, unique=True)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_action_at = Column(String, nullable=True)


ROW_TYPES = {
    row.__tablename__: row
    for row in (
        CampusRow,
        FraternityRow,
        PartyRow,
        PartyRatingRow,
        ReputationRatingRow,
        PartyCommentRow,
        FraternityCommentRow,
        PartyCommentVoteRow,
        FraternityCommentVoteRow,
        ChatMessageRow,
        ChatMessageVoteRow,
        PartyPhotoRow,
        PartyPhotoVoteRow,
        PartyAttendanceRow,
        MoveVoteRow,
        MoveSuggestionRow,
        ContentReportRow,
        UserPointsHistoryRow,
        UserStreakRow,
    )
}


class SqlEntityStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlEntityStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _row_type(self, entity: str):
        row_type = ROW_TYPES.get(entity)
        if row_type is None:
            raise ValueError(f"Unknown entity: {entity}")
        return row_type

    def _columns(self, row_type) -> set[str]:
        return {c.name for c in row_type.__table__.columns}

    def _check_columns(self, row_type, data: dict) -> None:
        unknown = set(data) - self._columns(row_type)
        if unknown:
            raise ValueError(
                f"Unknown columns for {row_type.__tablename__}: {sorted(unknown)}"
            )

    def _to_record(self, row) -> Record:
        return {c.name: getattr(row, c.name) for c in row.__table__.columns}

    def _select(self, row_type, filters: dict, sort_by: Optional[str]):
        stmt = select(row_type)
        for key, value in filters.items():
            if value is None:
                continue
            stmt = stmt.where(getattr(row_type, key) == value)
        if sort_by:
            desc = sort_by.startswith("-")
            column = getattr(row_type, sort_by[1:] if desc else sort_by)
            order = column.desc() if desc else column.asc()
            stmt = stmt.order_by(order.nulls_last())
        return stmt

    def list(self, entity: str, sort_by: Optional[str] = None) -> list[Record]:
        return self.filter(entity, {}, sort_by)

    def filter(
        self, entity: str, filters: dict, sort_by: Optional[str] = None
    ) -> list[Record]:
        row_type = self._row_type(entity)
        self._check_columns(row_type, filters)
        with self.Session() as session:
            rows = session.execute(self._select(row_type, filters, sort_by)).scalars()
            return [self._to_record(row) for row in rows]

    def get(self, entity: str, record_id: str) -> Optional[Record]:
        row_type = self._row_type(entity)
        with self.Session() as session:
            row = session.get(row_type, record_id)
            return self._to_record(row) if row else None

    def create(self, entity: str, data: dict) -> Record:
        row_type = self._row_type(entity)
        record = new_record(data)
        self._check_columns(row_type, record)
        with self.Session() as session:
            row = row_type(**record)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRecordError(str(exc.orig)) from exc
            session.refresh(row)
            return self._to_record(row)

    def update(self, entity: str, record_id: str, changes: dict) -> Optional[Record]:
        row_type = self._row_type(entity)
        changes = {k: v for k, v in changes.items() if k != "id"}
        self._check_columns(row_type, changes)
        with self.Session() as session:
            row = session.get(row_type, record_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def delete(self, entity: str, record_id: str) -> bool:
        row_type = self._row_type(entity)
        with self.Session() as session:
            row = session.get(row_type, record_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

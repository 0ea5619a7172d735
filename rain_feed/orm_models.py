"""
SQLAlchemy ORM models for the Rain feed.

These models are internal to the store layer. The public interface
uses the dataclass models from models.py.
"""

from typing import Optional

from sqlalchemy import (
    Boolean,
    Float,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from rain_feed.models import (
    Article,
    ArticleStatus,
    Chunk,
    FeedItem,
    FeedState,
    QueueEntry,
    Rating,
    UserSettings,
)


class Base(DeclarativeBase):
    pass


class ArticleORM(Base):
    """SQLAlchemy model for articles table."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    moved_to_river_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    moved_to_ocean_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_articles_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )


class ChunkORM(Base):
    """SQLAlchemy model for chunks table."""

    __tablename__ = "chunks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    # AUTOINCREMENT keeps ids of deleted chunks from being reused by later articles
    __table_args__ = (
        Index("idx_chunks_user_article", "user_id", "article_id"),
        Index("idx_chunks_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )


class RatingORM(Base):
    """SQLAlchemy model for chunk_ratings table."""

    __tablename__ = "chunk_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chunk_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    annotation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    predicted_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    was_explore: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "chunk_id", name="uq_rating_user_chunk"),
        Index("idx_ratings_user_created", "user_id", "created_at"),
    )


class FeedQueueORM(Base):
    """SQLAlchemy model for feed_queue table."""

    __tablename__ = "feed_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chunk_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    predicted_score: Mapped[float] = mapped_column(Float, nullable=False)
    was_explore: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "chunk_id", name="uq_queue_user_chunk"),
        Index("idx_queue_user_created", "user_id", "created_at"),
    )


class FeedItemORM(Base):
    """SQLAlchemy model for feed_items table (the Feed Log)."""

    __tablename__ = "feed_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chunk_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    predicted_score: Mapped[float] = mapped_column(Float, nullable=False)
    was_explore: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    shown_at: Mapped[int] = mapped_column(Integer, nullable=False)

    # AUTOINCREMENT keeps ids of rerolled entries from being handed out again
    __table_args__ = (
        UniqueConstraint("user_id", "chunk_id", name="uq_feed_item_user_chunk"),
        UniqueConstraint("user_id", "position", name="uq_feed_item_user_position"),
        {"sqlite_autoincrement": True},
    )


class FeedSequenceORM(Base):
    """SQLAlchemy model for feed_sequences table.

    One row per user holding the last Feed Log position handed out.
    """

    __tablename__ = "feed_sequences"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    last_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class FeedStateORM(Base):
    """SQLAlchemy model for user_feed_state table."""

    __tablename__ = "user_feed_state"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    last_seen_feed_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)


class UserSettingsORM(Base):
    """SQLAlchemy model for user_settings table."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    chunk_size: Mapped[int] = mapped_column(Integer, nullable=False)
    explore_ratio: Mapped[float] = mapped_column(Float, nullable=False)
    feed_batch_size: Mapped[int] = mapped_column(Integer, nullable=False)
    candidate_pool_size: Mapped[int] = mapped_column(Integer, nullable=False)
    scoring_batch_size: Mapped[int] = mapped_column(Integer, nullable=False)
    num_few_shot: Mapped[int] = mapped_column(Integer, nullable=False)
    scoring_model: Mapped[str] = mapped_column(Text, nullable=False)
    context_model: Mapped[str] = mapped_column(Text, nullable=False)
    show_explore_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)


# Conversion functions between ORM models and dataclasses


def article_orm_to_dataclass(orm: ArticleORM) -> Article:
    """Convert an ArticleORM instance to an Article dataclass."""
    return Article(
        id=orm.id,
        user_id=orm.user_id,
        url=orm.url,
        title=orm.title,
        status=ArticleStatus(orm.status),
        created_at=orm.created_at,
        moved_to_river_at=orm.moved_to_river_at,
        moved_to_ocean_at=orm.moved_to_ocean_at,
    )


def chunk_orm_to_dataclass(orm: ChunkORM) -> Chunk:
    """Convert a ChunkORM instance to a Chunk dataclass."""
    return Chunk(
        id=orm.id,
        article_id=orm.article_id,
        user_id=orm.user_id,
        chunk_index=orm.chunk_index,
        content=orm.content,
        word_count=orm.word_count,
        created_at=orm.created_at,
    )


def rating_orm_to_dataclass(orm: RatingORM) -> Rating:
    """Convert a RatingORM instance to a Rating dataclass."""
    return Rating(
        id=orm.id,
        chunk_id=orm.chunk_id,
        user_id=orm.user_id,
        rating=orm.rating,
        annotation=orm.annotation,
        predicted_score=orm.predicted_score,
        was_explore=bool(orm.was_explore),
        created_at=orm.created_at,
    )


def queue_orm_to_dataclass(orm: FeedQueueORM) -> QueueEntry:
    """Convert a FeedQueueORM instance to a QueueEntry dataclass."""
    return QueueEntry(
        id=orm.id,
        chunk_id=orm.chunk_id,
        user_id=orm.user_id,
        predicted_score=orm.predicted_score,
        was_explore=bool(orm.was_explore),
        created_at=orm.created_at,
    )


def feed_item_orm_to_dataclass(orm: FeedItemORM) -> FeedItem:
    """Convert a FeedItemORM instance to a FeedItem dataclass."""
    return FeedItem(
        id=orm.id,
        chunk_id=orm.chunk_id,
        user_id=orm.user_id,
        predicted_score=orm.predicted_score,
        was_explore=bool(orm.was_explore),
        position=orm.position,
        shown_at=orm.shown_at,
    )


def feed_state_orm_to_dataclass(orm: FeedStateORM) -> FeedState:
    """Convert a FeedStateORM instance to a FeedState dataclass."""
    return FeedState(
        user_id=orm.user_id,
        last_seen_feed_item_id=orm.last_seen_feed_item_id,
        updated_at=orm.updated_at,
    )


def settings_orm_to_dataclass(orm: UserSettingsORM) -> UserSettings:
    """Convert a UserSettingsORM instance to a UserSettings dataclass."""
    return UserSettings(
        user_id=orm.user_id,
        chunk_size=orm.chunk_size,
        explore_ratio=orm.explore_ratio,
        feed_batch_size=orm.feed_batch_size,
        candidate_pool_size=orm.candidate_pool_size,
        scoring_batch_size=orm.scoring_batch_size,
        num_few_shot=orm.num_few_shot,
        scoring_model=orm.scoring_model,
        context_model=orm.context_model,
        show_explore_flag=bool(orm.show_explore_flag),
        updated_at=orm.updated_at,
    )

"""
The Rating Store: append-only user feedback on shown chunks.

A rating is a one-time action. The unique (user_id, chunk_id) constraint
is what settles two concurrent attempts; the lifecycle check before it
only gives the common cases a clear error.
"""

import time
from typing import List, Optional, Set

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError

from rain_feed.constants import MAX_RATING, MIN_RATING
from rain_feed.db_engine import Database
from rain_feed.errors import ConflictError, InvalidTransition, NotShownError, ValidationError
from rain_feed.lifecycle import ChunkEvent, ChunkStage, advance, derive_stage
from rain_feed.models import FewShotExample, Rating
from rain_feed.orm_models import (
    ChunkORM,
    FeedItemORM,
    FeedQueueORM,
    RatingORM,
    rating_orm_to_dataclass,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def validate_rating(rating) -> int:
    """Accept integers 1..5 (and integral floats such as 4.0)."""
    if isinstance(rating, bool):
        raise ValidationError("Rating must be an integer from 1 to 5")
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be an integer from 1 to 5")
    return rating


class RatingStore:
    """Reads and writes the chunk_ratings table."""

    def __init__(self, db: Database):
        self.db = db

    def rate(self, user_id: str, chunk_id: int, rating, annotation: Optional[str] = None) -> Rating:
        """
        Rate a chunk that has been shown to the user.

        The predicted score and explore flag are copied from the chunk's
        Feed Log entry so later accuracy reports do not depend on it.

        Raises:
            ValidationError: rating is not an integer in 1..5.
            NotShownError: the chunk has no Feed Log entry for this user.
            ConflictError: the chunk was already rated.
        """
        rating = validate_rating(rating)
        if isinstance(annotation, str):
            annotation = annotation.strip() or None
        else:
            annotation = None

        with self.db.session() as session:
            shown = session.execute(
                select(FeedItemORM).where(
                    FeedItemORM.user_id == user_id,
                    FeedItemORM.chunk_id == chunk_id,
                )
            ).scalar_one_or_none()
            is_rated = session.execute(
                select(exists().where(RatingORM.user_id == user_id, RatingORM.chunk_id == chunk_id))
            ).scalar()
            is_queued = session.execute(
                select(exists().where(FeedQueueORM.user_id == user_id, FeedQueueORM.chunk_id == chunk_id))
            ).scalar()

            stage = derive_stage(is_rated=is_rated, is_shown=shown is not None, is_queued=is_queued)
            try:
                advance(stage, ChunkEvent.RATE)
            except InvalidTransition:
                if stage == ChunkStage.RATED:
                    raise ConflictError("Chunk already rated") from None
                raise NotShownError("Chunk was not shown to this user") from None

            orm = RatingORM(
                chunk_id=chunk_id,
                user_id=user_id,
                rating=rating,
                annotation=annotation,
                predicted_score=shown.predicted_score,
                was_explore=shown.was_explore,
                created_at=int(time.time()),
            )
            session.add(orm)
            try:
                session.flush()
            except IntegrityError:
                raise ConflictError("Chunk already rated") from None

            logger.info(f"User {user_id} rated chunk {chunk_id}: {rating} (predicted {shown.predicted_score:.2f})")
            return rating_orm_to_dataclass(orm)

    def recent_examples(self, user_id: str, limit: int) -> List[FewShotExample]:
        """The user's `limit` most recent ratings as few-shot examples, newest first.

        Ratings whose chunk no longer exists are skipped.
        """
        if limit <= 0:
            return []
        with self.db.session() as session:
            stmt = (
                select(RatingORM, ChunkORM.content)
                .outerjoin(ChunkORM, ChunkORM.id == RatingORM.chunk_id)
                .where(RatingORM.user_id == user_id)
                .order_by(RatingORM.created_at.desc(), RatingORM.id.desc())
                .limit(limit)
            )
            return [
                FewShotExample(content=content, rating=orm.rating, annotation=orm.annotation)
                for orm, content in session.execute(stmt)
                if content
            ]

    def ratings_for_user(self, user_id: str) -> List[Rating]:
        """All of a user's ratings, oldest first."""
        with self.db.session() as session:
            stmt = (
                select(RatingORM)
                .where(RatingORM.user_id == user_id)
                .order_by(RatingORM.created_at.asc(), RatingORM.id.asc())
            )
            return [rating_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

    def rated_chunk_ids(self, user_id: str) -> Set[int]:
        with self.db.session() as session:
            stmt = select(RatingORM.chunk_id).where(RatingORM.user_id == user_id)
            return set(session.execute(stmt).scalars())

"""
The Feed Log: the durable, position-ordered record of what a user was shown.

Positions come from a per-user counter in feed_sequences that is bumped
inside the promoting transaction, so two concurrent promotions can never
hand out the same position and a position is never reused, not even
after a reroll deletes the entry that held it.
"""

import time
from typing import List, Optional

from sqlalchemy import delete, exists, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from rain_feed.db_engine import Database
from rain_feed.feed_queue import oldest_entries, remove_entries
from rain_feed.models import FeedItem
from rain_feed.orm_models import (
    FeedItemORM,
    FeedSequenceORM,
    RatingORM,
    feed_item_orm_to_dataclass,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def allocate_positions(session: Session, user_id: str, count: int) -> int:
    """Reserve `count` consecutive positions for a user; returns the first.

    Must run inside the transaction that uses the positions.
    """
    session.execute(
        sqlite_insert(FeedSequenceORM)
        .values(user_id=user_id, last_position=0)
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    session.execute(
        update(FeedSequenceORM)
        .where(FeedSequenceORM.user_id == user_id)
        .values(last_position=FeedSequenceORM.last_position + count)
        .execution_options(synchronize_session=False)
    )
    last = session.execute(
        select(FeedSequenceORM.last_position).where(FeedSequenceORM.user_id == user_id)
    ).scalar_one()
    return last - count + 1


class FeedLog:
    """Reads and appends to the feed_items table."""

    def __init__(self, db: Database):
        self.db = db

    def promote(self, user_id: str, limit: int) -> List[FeedItem]:
        """
        Move up to `limit` of the oldest queued chunks into the Feed Log.

        Insert and delete happen in one transaction, and only the entries
        read here are deleted. A chunk another request promoted first is
        skipped rather than shown twice.

        Returns:
            The newly shown entries, ascending by position.
        """
        if limit <= 0:
            return []

        with self.db.session() as session:
            entries = oldest_entries(session, user_id, limit)
            if not entries:
                return []

            first = allocate_positions(session, user_id, len(entries))
            now = int(time.time())
            for offset, entry in enumerate(entries):
                session.execute(
                    sqlite_insert(FeedItemORM)
                    .values(
                        chunk_id=entry.chunk_id,
                        user_id=user_id,
                        predicted_score=entry.predicted_score,
                        was_explore=entry.was_explore,
                        position=first + offset,
                        shown_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["user_id", "chunk_id"])
                )
            remove_entries(session, [entry.id for entry in entries])

            stmt = (
                select(FeedItemORM)
                .where(
                    FeedItemORM.user_id == user_id,
                    FeedItemORM.position.between(first, first + len(entries) - 1),
                )
                .order_by(FeedItemORM.position.asc())
            )
            promoted = [feed_item_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

        logger.info(f"Promoted {len(promoted)} of {len(entries)} queued chunks for user {user_id}")
        return promoted

    def get_item(self, user_id: str, feed_item_id: int) -> Optional[FeedItem]:
        """A Feed Log entry, only if it belongs to the user."""
        with self.db.session() as session:
            orm = session.get(FeedItemORM, feed_item_id)
            if orm is None or orm.user_id != user_id:
                return None
            return feed_item_orm_to_dataclass(orm)

    def get_by_chunk(self, user_id: str, chunk_id: int) -> Optional[FeedItem]:
        with self.db.session() as session:
            stmt = select(FeedItemORM).where(
                FeedItemORM.user_id == user_id, FeedItemORM.chunk_id == chunk_id
            )
            orm = session.execute(stmt).scalar_one_or_none()
            return feed_item_orm_to_dataclass(orm) if orm is not None else None

    def head(self, user_id: str, limit: int) -> List[FeedItem]:
        """The first `limit` entries of the log."""
        with self.db.session() as session:
            stmt = (
                select(FeedItemORM)
                .where(FeedItemORM.user_id == user_id)
                .order_by(FeedItemORM.position.asc())
                .limit(limit)
            )
            return [feed_item_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

    def items_from(self, user_id: str, position: int, limit: int, inclusive: bool = True) -> List[FeedItem]:
        """Entries at (or after, if not inclusive) a position, ascending."""
        if inclusive:
            condition = FeedItemORM.position >= position
        else:
            condition = FeedItemORM.position > position
        with self.db.session() as session:
            stmt = (
                select(FeedItemORM)
                .where(FeedItemORM.user_id == user_id, condition)
                .order_by(FeedItemORM.position.asc())
                .limit(limit)
            )
            return [feed_item_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

    def items_before(self, user_id: str, position: int, limit: int) -> List[FeedItem]:
        """The `limit` entries just before a position, ascending."""
        with self.db.session() as session:
            stmt = (
                select(FeedItemORM)
                .where(FeedItemORM.user_id == user_id, FeedItemORM.position < position)
                .order_by(FeedItemORM.position.desc())
                .limit(limit)
            )
            items = [feed_item_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]
        items.reverse()
        return items

    def has_before(self, user_id: str, position: int) -> bool:
        with self.db.session() as session:
            stmt = select(
                exists().where(FeedItemORM.user_id == user_id, FeedItemORM.position < position)
            )
            return session.execute(stmt).scalar()

    def delete_unrated_after(self, user_id: str, position: Optional[int]) -> int:
        """
        Delete entries past `position` whose chunk the user has not rated.

        With no position every unrated entry goes. Returns how many were deleted.
        """
        rated = select(RatingORM.chunk_id).where(RatingORM.user_id == user_id)
        stmt = delete(FeedItemORM).where(
            FeedItemORM.user_id == user_id,
            FeedItemORM.chunk_id.not_in(rated),
        )
        if position is not None:
            stmt = stmt.where(FeedItemORM.position > position)

        with self.db.session() as session:
            result = session.execute(stmt.execution_options(synchronize_session=False))
            return result.rowcount

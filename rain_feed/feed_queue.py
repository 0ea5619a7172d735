"""
The Feed Queue: scored chunks waiting to be shown, one per (user, chunk).
"""

import time
from typing import Iterable, List, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from rain_feed.db_engine import Database
from rain_feed.models import QueueEntry, ScoredChunk
from rain_feed.orm_models import FeedQueueORM, queue_orm_to_dataclass
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def oldest_entries(session: Session, user_id: str, limit: int) -> List[FeedQueueORM]:
    """The user's `limit` oldest queue entries, first inserted first."""
    if limit <= 0:
        return []
    stmt = (
        select(FeedQueueORM)
        .where(FeedQueueORM.user_id == user_id)
        .order_by(FeedQueueORM.created_at.asc(), FeedQueueORM.id.asc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars())


def remove_entries(session: Session, entry_ids: Iterable[int]) -> int:
    """Delete exactly these queue entries, nothing else."""
    ids = list(entry_ids)
    if not ids:
        return 0
    result = session.execute(
        delete(FeedQueueORM)
        .where(FeedQueueORM.id.in_(ids))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


class FeedQueue:
    """Reads and writes the feed_queue table."""

    def __init__(self, db: Database):
        self.db = db

    def insert(self, user_id: str, scored: Sequence[ScoredChunk]) -> int:
        """
        Queue scored chunks for a user.

        A chunk that is already queued keeps its first score; the duplicate
        is silently ignored. Returns how many entries were actually added.
        """
        if not scored:
            return 0
        now = int(time.time())
        added = 0
        with self.db.session() as session:
            for item in scored:
                stmt = sqlite_insert(FeedQueueORM).values(
                    chunk_id=item.id,
                    user_id=user_id,
                    predicted_score=item.score,
                    was_explore=item.was_explore,
                    created_at=now,
                ).on_conflict_do_nothing(index_elements=["user_id", "chunk_id"])
                added += session.execute(stmt).rowcount
        return added

    def size(self, user_id: str) -> int:
        with self.db.session() as session:
            stmt = select(func.count()).select_from(FeedQueueORM).where(FeedQueueORM.user_id == user_id)
            return session.execute(stmt).scalar_one()

    def entries(self, user_id: str) -> List[QueueEntry]:
        """All queued entries for a user, oldest first."""
        with self.db.session() as session:
            stmt = (
                select(FeedQueueORM)
                .where(FeedQueueORM.user_id == user_id)
                .order_by(FeedQueueORM.created_at.asc(), FeedQueueORM.id.asc())
            )
            return [queue_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

    def clear(self, user_id: str) -> int:
        """Empty a user's queue. Returns how many entries were dropped."""
        with self.db.session() as session:
            result = session.execute(
                delete(FeedQueueORM)
                .where(FeedQueueORM.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

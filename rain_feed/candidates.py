"""
The Candidate Selector: unseen chunks from the user's active sources.
"""

import random
from typing import List, Optional, Sequence

from sqlalchemy import select, union

from rain_feed.constants import CANDIDATE_WINDOW_FLOOR, CANDIDATE_WINDOW_MULTIPLIER
from rain_feed.db_engine import Database
from rain_feed.models import CandidateChunk
from rain_feed.orm_models import ChunkORM, FeedItemORM, FeedQueueORM, RatingORM


def candidate_window(pool_size: int) -> int:
    """How many of the newest chunks are looked at before filtering."""
    return max(pool_size * CANDIDATE_WINDOW_MULTIPLIER, CANDIDATE_WINDOW_FLOOR)


class CandidateSelector:
    """Picks chunks that are not shown, queued or rated for a user."""

    def __init__(self, db: Database, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def select(self, user_id: str, article_ids: Sequence[int], pool_size: int) -> List[CandidateChunk]:
        """
        Return up to `pool_size` candidate chunks from the given articles.

        Only the newest chunks (see candidate_window) are considered; those
        still eligible are shuffled and truncated so the pick is not biased
        toward the newest chunk index. Empty when there is nothing to offer.
        """
        if not article_ids or pool_size <= 0:
            return []

        with self.db.session() as session:
            window = session.execute(
                select(ChunkORM.id, ChunkORM.content)
                .where(
                    ChunkORM.user_id == user_id,
                    ChunkORM.article_id.in_(list(article_ids)),
                )
                .order_by(ChunkORM.created_at.desc(), ChunkORM.id.desc())
                .limit(candidate_window(pool_size))
            ).all()
            if not window:
                return []

            window_ids = [row.id for row in window]
            excluded_stmt = union(
                select(FeedItemORM.chunk_id).where(
                    FeedItemORM.user_id == user_id, FeedItemORM.chunk_id.in_(window_ids)
                ),
                select(FeedQueueORM.chunk_id).where(
                    FeedQueueORM.user_id == user_id, FeedQueueORM.chunk_id.in_(window_ids)
                ),
                select(RatingORM.chunk_id).where(
                    RatingORM.user_id == user_id, RatingORM.chunk_id.in_(window_ids)
                ),
            )
            excluded = set(session.execute(excluded_stmt).scalars())

        eligible = [CandidateChunk(id=row.id, content=row.content) for row in window if row.id not in excluded]
        self.rng.shuffle(eligible)
        return eligible[:pool_size]

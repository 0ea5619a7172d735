"""
The Position Tracker: where the user left off in their Feed Log.
"""

import time
from typing import Optional

from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from rain_feed.db_engine import Database
from rain_feed.errors import InvalidCursorError
from rain_feed.models import FeedState
from rain_feed.orm_models import FeedItemORM, FeedStateORM, feed_state_orm_to_dataclass


class PositionTracker:
    """Reads and writes the user_feed_state table (last write wins)."""

    def __init__(self, db: Database):
        self.db = db

    def save(self, user_id: str, feed_item_id: Optional[int]) -> FeedState:
        """
        Record the user's last seen Feed Log entry.

        None clears the position. Clients are expected to debounce calls.

        Raises:
            InvalidCursorError: the entry is not in the user's Feed Log.
        """
        now = int(time.time())
        with self.db.session() as session:
            if feed_item_id is not None:
                item = session.get(FeedItemORM, feed_item_id)
                if item is None or item.user_id != user_id:
                    raise InvalidCursorError("Invalid feed item")

            stmt = sqlite_insert(FeedStateORM).values(
                user_id=user_id,
                last_seen_feed_item_id=feed_item_id,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={"last_seen_feed_item_id": feed_item_id, "updated_at": now},
            )
            session.execute(stmt)

        return FeedState(user_id=user_id, last_seen_feed_item_id=feed_item_id, updated_at=now)

    def get(self, user_id: str) -> Optional[FeedState]:
        with self.db.session() as session:
            orm = session.get(FeedStateORM, user_id)
            return feed_state_orm_to_dataclass(orm) if orm is not None else None

    def last_seen_id(self, user_id: str) -> Optional[int]:
        state = self.get(user_id)
        return state.last_seen_feed_item_id if state is not None else None

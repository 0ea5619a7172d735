"""
Rewind-and-reset: forget unrated feed history past a cut point and re-score.
"""

from dataclasses import dataclass
from typing import Optional

from rain_feed.errors import InvalidCursorError
from rain_feed.feed_log import FeedLog
from rain_feed.feed_queue import FeedQueue
from rain_feed.position import PositionTracker
from util.logging_util import setup_logger

logger = setup_logger(__name__)


@dataclass
class RerollResult:
    cut_feed_item_id: Optional[int]
    deleted_items: int
    cleared_queue: int


class Reroller:

    def __init__(self, feed_log: FeedLog, queue: FeedQueue, positions: PositionTracker):
        self.feed_log = feed_log
        self.queue = queue
        self.positions = positions

    def reroll(self, user_id: str, from_feed_item_id: Optional[int] = None) -> RerollResult:
        """
        Delete unrated Feed Log entries after the cut point and empty the queue.

        The cut point is `from_feed_item_id`, or the saved position when
        omitted. With neither, every unrated entry is deleted. Rated entries
        always survive. If the saved position was among the deleted entries
        it moves to the cut point.

        Raises:
            InvalidCursorError: an explicit cut point not in the user's Feed Log.
        """
        saved_id = self.positions.last_seen_id(user_id)
        cut_id = from_feed_item_id if from_feed_item_id is not None else saved_id

        cut_item = self.feed_log.get_item(user_id, cut_id) if cut_id is not None else None
        if from_feed_item_id is not None and cut_item is None:
            raise InvalidCursorError("Invalid feed item")

        position = cut_item.position if cut_item is not None else None
        deleted = self.feed_log.delete_unrated_after(user_id, position)
        cleared = self.queue.clear(user_id)

        if saved_id is not None and self.feed_log.get_item(user_id, saved_id) is None:
            self.positions.save(user_id, cut_item.id if cut_item is not None else None)

        logger.info(
            f"Rerolled feed for user {user_id} from position {position}: "
            f"{deleted} entries deleted, {cleared} queued dropped"
        )
        return RerollResult(
            cut_feed_item_id=cut_item.id if cut_item is not None else None,
            deleted_items=deleted,
            cleared_queue=cleared,
        )

"""
The Feed Reader: paginated windows over the Feed Log.

Reading forward is also what "shows" chunks: when a forward window
comes up short, queued chunks are promoted into the log to fill it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from rain_feed.chunk_store import ChunkStore
from rain_feed.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from rain_feed.errors import InvalidCursorError, ValidationError
from rain_feed.feed_log import FeedLog
from rain_feed.models import FeedEntryView, FeedItem, FeedPage, ReadMode
from rain_feed.position import PositionTracker
from rain_feed.settings import SettingsStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


@dataclass
class FeedHistory:
    items: List[FeedEntryView] = field(default_factory=list)
    resume_feed_item_id: Optional[int] = None


def resolve_mode(
    before: Optional[int] = None,
    after: Optional[int] = None,
    from_id: Optional[int] = None,
) -> ReadMode:
    given = [mode for mode, value in (
        (ReadMode.BEFORE, before), (ReadMode.AFTER, after), (ReadMode.FROM, from_id)
    ) if value is not None]
    if len(given) > 1:
        raise ValidationError("Use only one of before, after and from")
    return given[0] if given else ReadMode.RESUME


class FeedReader:

    def __init__(
        self,
        feed_log: FeedLog,
        chunks: ChunkStore,
        positions: PositionTracker,
        settings: SettingsStore,
    ):
        self.feed_log = feed_log
        self.chunks = chunks
        self.positions = positions
        self.settings = settings

    def _cursor(self, user_id: str, feed_item_id: int) -> FeedItem:
        item = self.feed_log.get_item(user_id, feed_item_id)
        if item is None:
            raise InvalidCursorError("Invalid feed item")
        return item

    def _resume_position(self, user_id: str) -> Optional[int]:
        """Position of the saved entry, or None to start from the beginning."""
        last_seen = self.positions.last_seen_id(user_id)
        if last_seen is None:
            return None
        item = self.feed_log.get_item(user_id, last_seen)
        return item.position if item is not None else None

    def _forward(self, user_id: str, start: Optional[int], inclusive: bool, limit: int) -> List[FeedItem]:
        if start is None:
            return self.feed_log.head(user_id, limit)
        return self.feed_log.items_from(user_id, start, limit, inclusive=inclusive)

    def read(
        self,
        user_id: str,
        before: Optional[int] = None,
        after: Optional[int] = None,
        from_id: Optional[int] = None,
    ) -> FeedPage:
        """
        Read a page of the feed.

        With no cursor the page starts at the saved position (inclusive).
        `from_id` is inclusive, `after` and `before` are exclusive. Pages
        are always ascending by position.

        Raises:
            ValidationError: more than one cursor given.
            InvalidCursorError: the cursor is not in the user's Feed Log.
        """
        mode = resolve_mode(before, after, from_id)
        limit = self.settings.get_or_create(user_id).feed_batch_size

        if mode == ReadMode.BEFORE:
            cursor = self._cursor(user_id, before)
            items = self.feed_log.items_before(user_id, cursor.position, limit)
            return FeedPage(items=self.enrich(items), has_before=len(items) == limit)

        if mode == ReadMode.AFTER:
            start, inclusive = self._cursor(user_id, after).position, False
        elif mode == ReadMode.FROM:
            start, inclusive = self._cursor(user_id, from_id).position, True
        else:
            start = self._resume_position(user_id)
            inclusive = True

        items = self._forward(user_id, start, inclusive, limit)
        queue_empty = False
        if len(items) < limit:
            promoted = self.feed_log.promote(user_id, limit - len(items))
            queue_empty = len(promoted) < limit - len(items)
            if promoted:
                # Re-read so entries another request promoted meanwhile are not skipped
                items = self._forward(user_id, start, inclusive, limit)

        if items:
            has_before = self.feed_log.has_before(user_id, items[0].position)
        elif start is not None:
            has_before = self.feed_log.has_before(user_id, start if inclusive else start + 1)
        else:
            has_before = False

        return FeedPage(
            items=self.enrich(items),
            has_more=len(items) == limit,
            has_before=has_before,
            queue_empty=queue_empty,
        )

    def history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> FeedHistory:
        """The start of the Feed Log plus the saved position."""
        limit = max(1, min(MAX_HISTORY_LIMIT, int(limit)))
        items = self.feed_log.head(user_id, limit)
        return FeedHistory(
            items=self.enrich(items),
            resume_feed_item_id=self.positions.last_seen_id(user_id),
        )

    def enrich(self, items: List[FeedItem]) -> List[FeedEntryView]:
        """Join entries with their chunk and article; unresolvable entries are dropped."""
        chunks = self.chunks.get_chunks(item.chunk_id for item in items)
        articles = self.chunks.get_articles(chunk.article_id for chunk in chunks.values())

        views = []
        for item in items:
            chunk = chunks.get(item.chunk_id)
            article = articles.get(chunk.article_id) if chunk is not None else None
            if chunk is None or article is None:
                logger.debug(f"Dropping feed item {item.id}: chunk or article is gone")
                continue
            views.append(FeedEntryView(
                feed_item_id=item.id,
                position=item.position,
                chunk_id=chunk.id,
                article_id=article.id,
                article_title=article.title,
                article_url=article.url,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                predicted_score=item.predicted_score,
                was_explore=item.was_explore,
                shown_at=item.shown_at,
            ))
        return views

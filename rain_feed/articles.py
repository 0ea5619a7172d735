"""
Saving articles to read later and turning them into feed chunks.
"""

import time
from typing import List, Optional
from urllib.parse import urlparse

from sqlalchemy import delete, select

from rain_feed.chunk_store import ChunkStore
from rain_feed.chunker import chunk_text
from rain_feed.constants import MAX_TITLE_LENGTH
from rain_feed.db_engine import Database
from rain_feed.document_fetcher import DocumentFetcher
from rain_feed.errors import NotFoundError, UpstreamError, ValidationError
from rain_feed.lifecycle import advance_article
from rain_feed.models import Article, ArticleStatus
from rain_feed.orm_models import (
    ArticleORM,
    ChunkORM,
    FeedQueueORM,
    article_orm_to_dataclass,
)
from rain_feed.settings import SettingsStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def validate_url(url: Optional[str]) -> str:
    """Check that `url` is an absolute http(s) URL and return it stripped."""
    if not url or not isinstance(url, str):
        raise ValidationError("URL is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid URL")
    return url


class ArticleStore:
    """Article bookmarking, ingestion and status changes."""

    def __init__(
        self,
        db: Database,
        chunks: ChunkStore,
        settings: SettingsStore,
        fetcher: DocumentFetcher,
    ):
        self.db = db
        self.chunks = chunks
        self.settings = settings
        self.fetcher = fetcher

    def add_article(self, user_id: str, url: str) -> Article:
        """
        Save an article and chunk its text into the user's feed sources.

        The article starts out in CLOUD, so its chunks become feed
        candidates immediately. If the page cannot be fetched the article
        is still saved, just without chunks.
        """
        url = validate_url(url)
        title = urlparse(url).hostname or url
        markdown = ""

        try:
            document = self.fetcher.fetch(url)
            markdown = document.markdown
            if document.title:
                title = document.title
        except UpstreamError as e:
            logger.warning(f"Saving {url} without content: {e}")

        now = int(time.time())
        with self.db.session() as session:
            orm = ArticleORM(
                user_id=user_id,
                url=url,
                title=title[:MAX_TITLE_LENGTH],
                status=ArticleStatus.CLOUD.value,
                created_at=now,
            )
            session.add(orm)
            session.flush()
            article = article_orm_to_dataclass(orm)

        if markdown:
            chunk_size = self.settings.get_or_create(user_id).chunk_size
            count = self.chunks.add_chunks(user_id, article.id, chunk_text(markdown, chunk_size))
            logger.info(f"Stored article {article.id} ({url}) with {count} chunks")
        return article

    def list_articles(self, user_id: str) -> List[Article]:
        """Get a user's articles, newest first."""
        with self.db.session() as session:
            stmt = (
                select(ArticleORM)
                .where(ArticleORM.user_id == user_id)
                .order_by(ArticleORM.created_at.desc(), ArticleORM.id.desc())
            )
            return [article_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

    def get_article(self, user_id: str, article_id: int) -> Article:
        article = self.chunks.get_article(user_id, article_id)
        if article is None:
            raise NotFoundError("Article not found")
        return article

    def active_article_ids(self, user_id: str) -> List[int]:
        """Ids of the articles currently feeding the Rain (status CLOUD)."""
        with self.db.session() as session:
            stmt = select(ArticleORM.id).where(
                ArticleORM.user_id == user_id,
                ArticleORM.status == ArticleStatus.CLOUD.value,
            )
            return list(session.execute(stmt).scalars())

    def set_status(self, user_id: str, article_id: int, status: ArticleStatus) -> Article:
        with self.db.session() as session:
            orm = session.get(ArticleORM, article_id)
            if orm is None or orm.user_id != user_id:
                raise NotFoundError("Article not found")

            article = advance_article(article_orm_to_dataclass(orm), status)
            orm.status = article.status.value
            orm.moved_to_river_at = article.moved_to_river_at
            orm.moved_to_ocean_at = article.moved_to_ocean_at
            return article

    def delete_article(self, user_id: str, article_id: int):
        """Delete an article, its chunks and any of them still queued.

        Feed Log entries and ratings are history and stay; the reader
        drops entries whose chunk is gone.
        """
        with self.db.session() as session:
            orm = session.get(ArticleORM, article_id)
            if orm is None or orm.user_id != user_id:
                raise NotFoundError("Article not found")

            chunk_ids = select(ChunkORM.id).where(ChunkORM.article_id == article_id)
            session.execute(
                delete(FeedQueueORM).where(
                    FeedQueueORM.user_id == user_id,
                    FeedQueueORM.chunk_id.in_(chunk_ids),
                )
            )
            session.execute(delete(ChunkORM).where(ChunkORM.article_id == article_id))
            session.delete(orm)
        logger.info(f"Deleted article {article_id} for user {user_id}")

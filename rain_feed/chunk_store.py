"""
Read access to articles and their chunks, plus chunk insertion for ingestion.

Chunks are immutable once stored.
"""

import time
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select

from rain_feed.chunker import TextChunk
from rain_feed.db_engine import Database
from rain_feed.models import Article, Chunk
from rain_feed.orm_models import (
    ArticleORM,
    ChunkORM,
    article_orm_to_dataclass,
    chunk_orm_to_dataclass,
)


class ChunkStore:
    """Owner-scoped lookups of chunks and the articles they belong to."""

    def __init__(self, db: Database):
        self.db = db

    def add_chunks(self, user_id: str, article_id: int, pieces: Iterable[TextChunk]) -> int:
        """Store an article's chunks in order. Returns how many were stored."""
        now = int(time.time())
        count = 0
        with self.db.session() as session:
            for index, piece in enumerate(pieces):
                session.add(ChunkORM(
                    article_id=article_id,
                    user_id=user_id,
                    chunk_index=index,
                    content=piece.content,
                    word_count=piece.word_count,
                    created_at=now,
                ))
                count += 1
        return count

    def get_chunk(self, user_id: str, chunk_id: int) -> Optional[Chunk]:
        with self.db.session() as session:
            orm = session.get(ChunkORM, chunk_id)
            if orm is None or orm.user_id != user_id:
                return None
            return chunk_orm_to_dataclass(orm)

    def get_chunks(self, chunk_ids: Iterable[int]) -> Dict[int, Chunk]:
        """Get chunks by id. Missing ids are simply absent from the result."""
        ids = list(set(chunk_ids))
        if not ids:
            return {}
        with self.db.session() as session:
            stmt = select(ChunkORM).where(ChunkORM.id.in_(ids))
            return {orm.id: chunk_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()}

    def get_article(self, user_id: str, article_id: int) -> Optional[Article]:
        with self.db.session() as session:
            orm = session.get(ArticleORM, article_id)
            if orm is None or orm.user_id != user_id:
                return None
            return article_orm_to_dataclass(orm)

    def get_articles(self, article_ids: Iterable[int]) -> Dict[int, Article]:
        ids = list(set(article_ids))
        if not ids:
            return {}
        with self.db.session() as session:
            stmt = select(ArticleORM).where(ArticleORM.id.in_(ids))
            return {orm.id: article_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()}

    def chunks_for_article(self, user_id: str, article_id: int) -> List[Chunk]:
        with self.db.session() as session:
            stmt = (
                select(ChunkORM)
                .where(ChunkORM.user_id == user_id, ChunkORM.article_id == article_id)
                .order_by(ChunkORM.chunk_index.asc())
            )
            return [chunk_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars()]

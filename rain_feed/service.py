"""
Composition root: builds every Rain feed component from one Database.
"""

import random
from typing import Optional

from rain_feed.accuracy import AccuracyReporter
from rain_feed.articles import ArticleStore
from rain_feed.candidates import CandidateSelector
from rain_feed.chunk_store import ChunkStore
from rain_feed.config import RainFeedConfig
from rain_feed.context import ContextGenerator
from rain_feed.db_engine import Database
from rain_feed.document_fetcher import DocumentFetcher
from rain_feed.feed_log import FeedLog
from rain_feed.feed_queue import FeedQueue
from rain_feed.position import PositionTracker
from rain_feed.ratings import RatingStore
from rain_feed.reader import FeedReader
from rain_feed.replenisher import Replenisher
from rain_feed.reroll import Reroller
from rain_feed.scorer import LLMScoringBackend, RelevanceScorer, ScoringBackend
from rain_feed.settings import SettingsStore


class RainFeedService:
    """Holds the wired-up components for one process."""

    def __init__(
        self,
        db: Database,
        config: Optional[RainFeedConfig] = None,
        scoring_backend: Optional[ScoringBackend] = None,
        fetcher: Optional[DocumentFetcher] = None,
        rng: Optional[random.Random] = None,
        context: Optional[ContextGenerator] = None,
    ):
        config = config or RainFeedConfig()
        rng = rng or random.Random()

        self.db = db
        self.config = config
        self.fetcher = fetcher or DocumentFetcher(
            base_url=config.document_reader_base_url,
            timeout=config.fetch_timeout_seconds,
        )

        self.settings = SettingsStore(db)
        self.chunks = ChunkStore(db)
        self.articles = ArticleStore(db, self.chunks, self.settings, self.fetcher)
        self.ratings = RatingStore(db)
        self.queue = FeedQueue(db)
        self.feed_log = FeedLog(db)
        self.positions = PositionTracker(db)

        self.scorer = RelevanceScorer(
            scoring_backend or LLMScoringBackend(timeout=config.scoring_timeout_seconds),
            max_workers=config.max_concurrent_scoring_calls,
            timeout=config.scoring_timeout_seconds,
            rng=rng,
        )
        self.replenisher = Replenisher(
            self.settings,
            self.articles,
            CandidateSelector(db, rng=rng),
            self.scorer,
            self.ratings,
            self.queue,
            rng=rng,
        )
        self.reader = FeedReader(self.feed_log, self.chunks, self.positions, self.settings)
        self.reroller = Reroller(self.feed_log, self.queue, self.positions)
        self.accuracy = AccuracyReporter(self.ratings)
        self.context = context or ContextGenerator(
            self.chunks, self.settings, self.fetcher, timeout=config.scoring_timeout_seconds
        )

    @classmethod
    def from_config(cls, config: RainFeedConfig, **kwargs) -> "RainFeedService":
        db = Database.from_url(config.database_url)
        db.init_db()
        return cls(db, config=config, **kwargs)

"""
The Replenisher: keeps a user's Feed Queue topped up with scored chunks.
"""

import random
import threading
from typing import Callable, Dict, Optional

from rain_feed.articles import ArticleStore
from rain_feed.candidates import CandidateSelector
from rain_feed.feed_queue import FeedQueue
from rain_feed.models import ReplenishReason, ReplenishResult
from rain_feed.partition import partition
from rain_feed.ratings import RatingStore
from rain_feed.scorer import RelevanceScorer
from rain_feed.settings import SettingsStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class _Flight:
    def __init__(self):
        self.done = threading.Event()
        self.result: Optional[ReplenishResult] = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    """Collapses overlapping calls for the same key into one.

    Callers arriving while a call is in flight wait for it and get its
    result (or its exception). This only saves duplicate work within one
    process; correctness comes from the idempotent queue insert.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._flights: Dict[str, _Flight] = {}

    def do(self, key: str, fn: Callable[[], ReplenishResult]) -> ReplenishResult:
        with self._lock:
            flight = self._flights.get(key)
            leader = flight is None
            if leader:
                flight = _Flight()
                self._flights[key] = flight

        if not leader:
            logger.debug(f"Joining in-flight replenish for {key}")
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.result

        try:
            flight.result = fn()
            return flight.result
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                del self._flights[key]
            flight.done.set()


class Replenisher:

    def __init__(
        self,
        settings: SettingsStore,
        articles: ArticleStore,
        selector: CandidateSelector,
        scorer: RelevanceScorer,
        ratings: RatingStore,
        queue: FeedQueue,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.articles = articles
        self.selector = selector
        self.scorer = scorer
        self.ratings = ratings
        self.queue = queue
        self.rng = rng or random.Random()
        self._single_flight = SingleFlight()

    def replenish(self, user_id: str) -> ReplenishResult:
        """
        Top up the user's queue if it holds less than one feed batch.

        "Nothing to do" outcomes come back as a result with a reason;
        only store failures raise.
        """
        return self._single_flight.do(user_id, lambda: self._replenish(user_id))

    def _replenish(self, user_id: str) -> ReplenishResult:
        settings = self.settings.get_or_create(user_id)

        queue_size = self.queue.size(user_id)
        if queue_size >= settings.feed_batch_size:
            return ReplenishResult(
                replenished=False, queue_size=queue_size, reason=ReplenishReason.ALREADY_SUFFICIENT
            )

        article_ids = self.articles.active_article_ids(user_id)
        if not article_ids:
            return ReplenishResult(
                replenished=False, queue_size=queue_size, reason=ReplenishReason.NO_ACTIVE_SOURCES
            )

        candidates = self.selector.select(user_id, article_ids, settings.candidate_pool_size)
        if not candidates:
            return ReplenishResult(
                replenished=False, queue_size=queue_size, reason=ReplenishReason.NO_CANDIDATES
            )

        examples = self.ratings.recent_examples(user_id, settings.num_few_shot)
        scored = self.scorer.score(
            candidates, examples, settings.scoring_model, settings.scoring_batch_size
        )

        picked = partition(scored, settings.feed_batch_size, settings.explore_ratio, rng=self.rng)
        # Interleave explore and exploit picks; queue order becomes feed order
        self.rng.shuffle(picked)
        added = self.queue.insert(user_id, picked)

        queue_size = self.queue.size(user_id)
        explore = sum(1 for p in picked if p.was_explore)
        logger.info(
            f"Replenished queue for user {user_id}: {added} added "
            f"({len(picked) - explore} exploit, {explore} explore) from "
            f"{len(candidates)} candidates, queue size {queue_size}"
        )
        return ReplenishResult(replenished=True, queue_size=queue_size, added=added)

"""
The Relevance Scorer Adapter: few-shot LLM scoring of candidate chunks.

Scores use the rating scale (1-5) so they can be compared with the
ratings the user later gives. Scoring never fails a replenish: without
any ratings yet the scores are uniform random, and any batch the LLM
fails on gets the neutral score.
"""

import json
import math
import random
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Sequence

from llm.llm_util import get_llm_response
from rain_feed.constants import (
    MAX_CONCURRENT_SCORING_CALLS,
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_SCORE,
    PROMPTS_DIR,
    SCORING_TIMEOUT_SECONDS,
)
from rain_feed.models import CandidateChunk, FewShotExample, ScoredChunk
from util.logging_util import setup_logger

logger = setup_logger(__name__)

SCORE_CHUNKS_TEMPLATE = PROMPTS_DIR / "score_chunks.jinja2"

# (candidates, examples, model) -> {chunk id: raw score}; may raise
ScoringBackend = Callable[[Sequence[CandidateChunk], Sequence[FewShotExample], str], Dict[int, float]]


def _strip_code_fence(response: str) -> str:
    response = response.strip()
    if response.startswith("```"):
        lines = response.split("\n")
        response = "\n".join(lines[1:-1])
    return response


def parse_scores(response: str) -> Dict[int, float]:
    """
    Parse a scorer response of the form {"scores": [{"id": .., "score": ..}]}.

    Entries with an unusable id or score are skipped, so a partial answer
    still yields the scores it does contain.

    Raises:
        ValueError: the response is not JSON or has no scores list.
    """
    result = json.loads(_strip_code_fence(response))
    if not isinstance(result, dict) or not isinstance(result.get("scores"), list):
        raise ValueError("Response has no 'scores' list")

    scores = {}
    for entry in result["scores"]:
        if not isinstance(entry, dict):
            continue
        try:
            chunk_id = int(entry["id"])
            score = float(entry["score"])
        except (KeyError, TypeError, ValueError):
            continue
        if math.isfinite(score):
            scores[chunk_id] = score
    return scores


def clamp_score(score: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, score))


class LLMScoringBackend:
    """Scores a batch with a single templated LLM call."""

    def __init__(self, timeout: float = SCORING_TIMEOUT_SECONDS, template_path=SCORE_CHUNKS_TEMPLATE):
        self.timeout = timeout
        self.template_path = template_path

    def __call__(
        self,
        candidates: Sequence[CandidateChunk],
        examples: Sequence[FewShotExample],
        model: str,
    ) -> Dict[int, float]:
        response = get_llm_response(
            str(self.template_path),
            {
                "examples": [
                    {"content": e.content, "rating": e.rating, "annotation": e.annotation}
                    for e in examples
                ],
                "candidates_json": json.dumps([{"id": c.id, "content": c.content} for c in candidates]),
            },
            model_name=model,
            timeout=self.timeout,
        )
        return parse_scores(response)


class RelevanceScorer:
    """Scores candidates in parallel batches, degrading to safe defaults."""

    def __init__(
        self,
        backend: ScoringBackend,
        max_workers: int = MAX_CONCURRENT_SCORING_CALLS,
        timeout: float = SCORING_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.backend = backend
        self.max_workers = max_workers
        self.timeout = timeout
        self.rng = rng or random.Random()

    def random_scores(self, candidates: Sequence[CandidateChunk]) -> List[ScoredChunk]:
        return [ScoredChunk(id=c.id, score=self.rng.uniform(MIN_SCORE, MAX_SCORE)) for c in candidates]

    def score(
        self,
        candidates: Sequence[CandidateChunk],
        examples: Sequence[FewShotExample],
        model: str,
        batch_size: int,
    ) -> List[ScoredChunk]:
        """
        Score every candidate, in the order given.

        Args:
            candidates: Chunks to score.
            examples: Few-shot examples, newest first. None means random scores.
            model: Scoring model identifier.
            batch_size: Maximum candidates per LLM call.

        Returns:
            One ScoredChunk per candidate with a score in [1, 5].
        """
        if not candidates:
            return []
        if not examples:
            logger.info(f"No ratings yet, assigning random scores to {len(candidates)} candidates")
            return self.random_scores(candidates)

        batch_size = max(1, batch_size)
        batches = [list(candidates[i:i + batch_size]) for i in range(0, len(candidates), batch_size)]

        # Each wave of workers gets the full per-call timeout
        waves = math.ceil(len(batches) / self.max_workers)
        deadline = self.timeout * waves

        scores: Dict[int, float] = {}
        pool = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {pool.submit(self.backend, batch, list(examples), model): batch for batch in batches}
            done, not_done = wait(futures, timeout=deadline)

            for future in not_done:
                future.cancel()
                logger.warning(f"Scoring batch of {len(futures[future])} timed out, using neutral scores")

            for future in done:
                batch = futures[future]
                try:
                    batch_scores = future.result()
                except Exception as e:
                    logger.warning(f"Scoring batch of {len(batch)} failed ({e}), using neutral scores")
                    continue
                batch_ids = {c.id for c in batch}
                scores.update({cid: s for cid, s in batch_scores.items() if cid in batch_ids})
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        missing = sum(1 for c in candidates if c.id not in scores)
        if missing:
            logger.info(f"{missing} of {len(candidates)} candidates got the neutral score")

        return [
            ScoredChunk(id=c.id, score=clamp_score(scores[c.id]) if c.id in scores else NEUTRAL_SCORE)
            for c in candidates
        ]

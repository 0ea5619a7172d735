"""
The Explore/Exploit Partitioner.

Exploit picks are the top scores; explore picks are a uniform random
sample of everything else, so the feed keeps collecting ratings outside
what the model already likes.
"""

import random
from typing import List, Optional, Sequence, Tuple

from rain_feed.models import ScoredChunk


def split_counts(batch_size: int, explore_ratio: float) -> Tuple[int, int]:
    """Return (exploit_count, explore_count) for a batch."""
    # Python's round() is banker's rounding; halves round up here
    exploit = int((1 - explore_ratio) * batch_size + 0.5)
    exploit = max(0, min(batch_size, exploit))
    return exploit, batch_size - exploit


def partition(
    scored: Sequence[ScoredChunk],
    batch_size: int,
    explore_ratio: float,
    rng: Optional[random.Random] = None,
) -> List[ScoredChunk]:
    """
    Choose up to `batch_size` chunks, tagging each as explore or exploit.

    Candidates are ranked by score, highest first; equal scores keep
    their original order. The returned list's order carries no meaning.
    """
    rng = rng or random.Random()
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)

    size = min(batch_size, len(ranked))
    exploit_count, explore_count = split_counts(size, explore_ratio)

    exploit = ranked[:exploit_count]
    explore = rng.sample(ranked[exploit_count:], explore_count)

    return (
        [ScoredChunk(id=s.id, score=s.score, was_explore=False) for s in exploit]
        + [ScoredChunk(id=s.id, score=s.score, was_explore=True) for s in explore]
    )

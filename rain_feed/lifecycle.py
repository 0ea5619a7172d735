"""
Lifecycle of chunks and articles as explicit state machines.

A chunk moves, per user, from CANDIDATE to QUEUED (scored) to SHOWN
(in the Feed Log) to RATED (terminal). Rerolling sends unrated SHOWN
chunks back to CANDIDATE, and clearing the queue does the same for
QUEUED ones. Every legal move is listed in CHUNK_TRANSITIONS; anything
else raises InvalidTransition.
"""

import time
from enum import Enum
from typing import Dict, Optional, Tuple

from rain_feed.errors import InvalidTransition
from rain_feed.models import Article, ArticleStatus


class ChunkStage(Enum):
    CANDIDATE = "candidate"
    QUEUED = "queued"
    SHOWN = "shown"
    RATED = "rated"


class ChunkEvent(Enum):
    ENQUEUE = "enqueue"
    PROMOTE = "promote"
    RATE = "rate"
    REROLL = "reroll"
    CLEAR_QUEUE = "clear_queue"


CHUNK_TRANSITIONS: Dict[Tuple[ChunkStage, ChunkEvent], ChunkStage] = {
    (ChunkStage.CANDIDATE, ChunkEvent.ENQUEUE): ChunkStage.QUEUED,
    (ChunkStage.QUEUED, ChunkEvent.PROMOTE): ChunkStage.SHOWN,
    (ChunkStage.QUEUED, ChunkEvent.CLEAR_QUEUE): ChunkStage.CANDIDATE,
    (ChunkStage.SHOWN, ChunkEvent.RATE): ChunkStage.RATED,
    (ChunkStage.SHOWN, ChunkEvent.REROLL): ChunkStage.CANDIDATE,
}


def advance(stage: ChunkStage, event: ChunkEvent) -> ChunkStage:
    """Return the stage a chunk reaches when `event` happens in `stage`."""
    try:
        return CHUNK_TRANSITIONS[(stage, event)]
    except KeyError:
        raise InvalidTransition(
            f"Cannot {event.value} a chunk that is {stage.value}"
        ) from None


def derive_stage(is_rated: bool, is_shown: bool, is_queued: bool) -> ChunkStage:
    """Work out a chunk's stage from which stores currently hold it.

    A rating outranks everything: a rated chunk keeps its Feed Log entry.
    """
    if is_rated:
        return ChunkStage.RATED
    if is_shown:
        return ChunkStage.SHOWN
    if is_queued:
        return ChunkStage.QUEUED
    return ChunkStage.CANDIDATE


def advance_article(article: Article, target: ArticleStatus, now: Optional[int] = None) -> Article:
    """Move an article to a different status, stamping the move time."""
    if article.status == target:
        raise InvalidTransition(f"Article is already {target.value}")

    now = now if now is not None else int(time.time())
    article.status = target
    if target == ArticleStatus.RIVER:
        article.moved_to_river_at = now
    elif target == ArticleStatus.OCEAN:
        article.moved_to_ocean_at = now
    return article

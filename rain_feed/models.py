"""
Data models for the Rain feed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ArticleStatus(Enum):
    CLOUD = "cloud"    # actively sourced into the feed
    RIVER = "river"    # being read in full
    OCEAN = "ocean"    # archived


class ReplenishReason(Enum):
    ALREADY_SUFFICIENT = "already_sufficient"
    NO_ACTIVE_SOURCES = "no_active_sources"
    NO_CANDIDATES = "no_candidates"


class ReadMode(Enum):
    RESUME = "resume"
    FROM = "from"
    AFTER = "after"
    BEFORE = "before"


@dataclass
class Article:
    """A saved article the user wants to read later."""
    user_id: str
    url: str
    title: str
    id: Optional[int] = None
    status: ArticleStatus = ArticleStatus.CLOUD
    created_at: int = 0
    moved_to_river_at: Optional[int] = None
    moved_to_ocean_at: Optional[int] = None


@dataclass
class Chunk:
    """An immutable, word-bounded slice of an article."""
    article_id: int
    user_id: str
    chunk_index: int
    content: str
    word_count: int
    id: Optional[int] = None
    created_at: int = 0


@dataclass
class Rating:
    """A one-time user rating of a shown chunk."""
    chunk_id: int
    user_id: str
    rating: int
    id: Optional[int] = None
    annotation: Optional[str] = None
    predicted_score: Optional[float] = None
    was_explore: bool = False
    created_at: int = 0


@dataclass
class QueueEntry:
    """A scored chunk waiting to be shown."""
    chunk_id: int
    user_id: str
    predicted_score: float
    was_explore: bool
    id: Optional[int] = None
    created_at: int = 0


@dataclass
class FeedItem:
    """An entry of the append-only Feed Log."""
    chunk_id: int
    user_id: str
    predicted_score: float
    was_explore: bool
    position: int
    id: Optional[int] = None
    shown_at: int = 0


@dataclass
class FeedState:
    """The user's last seen Feed Log entry."""
    user_id: str
    last_seen_feed_item_id: Optional[int] = None
    updated_at: int = 0


@dataclass
class UserSettings:
    """Per-user feed configuration."""
    user_id: str
    chunk_size: int
    explore_ratio: float
    feed_batch_size: int
    candidate_pool_size: int
    scoring_batch_size: int
    num_few_shot: int
    scoring_model: str
    context_model: str
    show_explore_flag: bool
    updated_at: int = 0


@dataclass
class CandidateChunk:
    """A chunk offered to the scorer."""
    id: int
    content: str


@dataclass
class FewShotExample:
    """A past rating shown to the scorer as calibration context."""
    content: str
    rating: int
    annotation: Optional[str] = None


@dataclass
class ScoredChunk:
    id: int
    score: float
    was_explore: bool = False


@dataclass
class ReplenishResult:
    replenished: bool
    queue_size: int
    added: int = 0
    reason: Optional[ReplenishReason] = None


@dataclass
class FeedEntryView:
    """A Feed Log entry enriched with its chunk and article."""
    feed_item_id: int
    position: int
    chunk_id: int
    article_id: int
    article_title: str
    article_url: str
    chunk_index: int
    content: str
    predicted_score: float
    was_explore: bool
    shown_at: int


@dataclass
class FeedPage:
    items: List[FeedEntryView] = field(default_factory=list)
    has_more: Optional[bool] = None
    has_before: Optional[bool] = None
    queue_empty: bool = False


@dataclass
class AccuracyPoint:
    date: str
    mae: float


@dataclass
class AccuracyReport:
    overall_mae: Optional[float]
    explore_mae: Optional[float]
    exploit_mae: Optional[float]
    total_ratings: int
    explore_ratings: int
    exploit_ratings: int
    overall_timeline: List[AccuracyPoint] = field(default_factory=list)
    explore_timeline: List[AccuracyPoint] = field(default_factory=list)
    exploit_timeline: List[AccuracyPoint] = field(default_factory=list)

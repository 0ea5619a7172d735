"""
Constants for the Rain feed.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

PROMPTS_DIR = MODULE_ROOT / "prompts"

DATA_DIR = MODULE_ROOT / "data"

DEFAULT_CONFIG_PATH = DATA_DIR / "config.yaml"

DB_NAME = "rain_feed.db"

# Per-user settings, created lazily on first access
DEFAULT_SETTINGS = {
    "chunk_size": 200,
    "explore_ratio": 0.2,
    "feed_batch_size": 10,
    "candidate_pool_size": 100,
    "scoring_batch_size": 10,
    "num_few_shot": 20,
    "scoring_model": "gemini-3-flash-preview",
    "context_model": "gemini-3-flash-preview",
    "show_explore_flag": False,
}

# (min, max) clamps for numeric settings
SETTINGS_BOUNDS = {
    "chunk_size": (50, 500),
    "explore_ratio": (0.0, 1.0),
    "feed_batch_size": (1, 100),
    "candidate_pool_size": (10, 1000),
    "scoring_batch_size": (1, 100),
    "num_few_shot": (0, 100),
}

# Settings that are stored as integers
INTEGER_SETTINGS = {
    "chunk_size",
    "feed_batch_size",
    "candidate_pool_size",
    "scoring_batch_size",
    "num_few_shot",
}

# Candidate pre-filter window: max(multiplier * pool size, floor) newest chunks
CANDIDATE_WINDOW_MULTIPLIER = 4
CANDIDATE_WINDOW_FLOOR = 300

# Scores share the rating scale
MIN_SCORE = 1.0
MAX_SCORE = 5.0
NEUTRAL_SCORE = 3.0

MIN_RATING = 1
MAX_RATING = 5

# Timeouts (in seconds)
SCORING_TIMEOUT_SECONDS = 20
FETCH_TIMEOUT_SECONDS = 30

MAX_CONCURRENT_SCORING_CALLS = 4

# Feed history page size
DEFAULT_HISTORY_LIMIT = 200
MAX_HISTORY_LIMIT = 1000

MAX_TITLE_LENGTH = 200

# Reader service that turns a web page into markdown
DOCUMENT_READER_BASE_URL = "https://r.jina.ai/"
MARKDOWN_CONTENT_MARKER = "Markdown Content:"

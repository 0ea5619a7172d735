"""
Secrets for external services, read from the process environment.
"""

import os
from functools import lru_cache

GEMINI_API_KEY_ENV = "GEMINI_API_KEY"


@lru_cache
def get_gemini_api_key() -> str:
    """Get the Gemini API key used for scoring and context generation."""
    key = os.environ.get(GEMINI_API_KEY_ENV)
    if not key:
        raise RuntimeError(f"{GEMINI_API_KEY_ENV} is not configured")
    return key

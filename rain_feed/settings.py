"""
Per-user feed settings: lazily created with defaults, changed only by the user.
"""

import math
import time
from typing import Any, Dict, Optional

from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from rain_feed.constants import DEFAULT_SETTINGS, INTEGER_SETTINGS, SETTINGS_BOUNDS
from rain_feed.db_engine import Database
from rain_feed.models import UserSettings
from rain_feed.orm_models import UserSettingsORM, settings_orm_to_dataclass
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _clamp_number(value: Any, low: float, high: float, fallback: float) -> float:
    if isinstance(value, bool):
        return fallback
    try:
        num = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(num):
        return fallback
    return max(low, min(high, num))


def sanitize_settings(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Clamp a settings payload into valid ranges, filling gaps with defaults."""
    payload = payload or {}
    clean: Dict[str, Any] = {}

    for name, (low, high) in SETTINGS_BOUNDS.items():
        value = _clamp_number(payload.get(name), low, high, DEFAULT_SETTINGS[name])
        clean[name] = int(round(value)) if name in INTEGER_SETTINGS else value

    for name in ("scoring_model", "context_model"):
        clean[name] = str(payload.get(name) or DEFAULT_SETTINGS[name])

    clean["show_explore_flag"] = bool(payload.get("show_explore_flag", DEFAULT_SETTINGS["show_explore_flag"]))
    return clean


class SettingsStore:
    """Reads and writes the user_settings table."""

    def __init__(self, db: Database):
        self.db = db

    def get_or_create(self, user_id: str) -> UserSettings:
        """Get a user's settings, creating the default row on first access."""
        with self.db.session() as session:
            orm = session.get(UserSettingsORM, user_id)
            if orm is not None:
                return settings_orm_to_dataclass(orm)

            # Two first requests may race; the loser's insert is a no-op
            stmt = sqlite_insert(UserSettingsORM).values(
                user_id=user_id,
                updated_at=int(time.time()),
                **sanitize_settings(DEFAULT_SETTINGS),
            ).on_conflict_do_nothing(index_elements=["user_id"])
            session.execute(stmt)
            session.flush()

            orm = session.get(UserSettingsORM, user_id)
            logger.info(f"Created default settings for user {user_id}")
            return settings_orm_to_dataclass(orm)

    def update(self, user_id: str, payload: Dict[str, Any]) -> UserSettings:
        """Replace a user's settings with the sanitized payload."""
        values = sanitize_settings(payload)
        now = int(time.time())
        with self.db.session() as session:
            stmt = sqlite_insert(UserSettingsORM).values(
                user_id=user_id, updated_at=now, **values
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={**values, "updated_at": now},
            )
            session.execute(stmt)
            session.flush()
            session.expire_all()
            orm = session.get(UserSettingsORM, user_id)
            return settings_orm_to_dataclass(orm)

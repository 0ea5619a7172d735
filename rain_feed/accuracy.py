"""
The Accuracy Reporter: how far predicted scores were from actual ratings.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from rain_feed.models import AccuracyPoint, AccuracyReport, Rating
from rain_feed.ratings import RatingStore


def mean_absolute_error(ratings: Sequence[Rating]) -> Optional[float]:
    """MAE over ratings that carry a predicted score; None when there are none."""
    errors = [abs(r.rating - r.predicted_score) for r in ratings if r.predicted_score is not None]
    if not errors:
        return None
    return sum(errors) / len(errors)


def utc_day(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date().isoformat()


def build_timeline(ratings: Sequence[Rating]) -> List[AccuracyPoint]:
    """One MAE point per UTC day present in the data, oldest day first.

    Days whose ratings all lack a predicted score report an MAE of 0.
    """
    by_day: Dict[str, List[Rating]] = defaultdict(list)
    for rating in ratings:
        by_day[utc_day(rating.created_at)].append(rating)

    return [
        AccuracyPoint(date=day, mae=mean_absolute_error(rows) or 0.0)
        for day, rows in sorted(by_day.items())
    ]


def build_report(ratings: Sequence[Rating]) -> AccuracyReport:
    explore = [r for r in ratings if r.was_explore]
    exploit = [r for r in ratings if not r.was_explore]
    return AccuracyReport(
        overall_mae=mean_absolute_error(ratings),
        explore_mae=mean_absolute_error(explore),
        exploit_mae=mean_absolute_error(exploit),
        total_ratings=len(ratings),
        explore_ratings=len(explore),
        exploit_ratings=len(exploit),
        overall_timeline=build_timeline(ratings),
        explore_timeline=build_timeline(explore),
        exploit_timeline=build_timeline(exploit),
    )


class AccuracyReporter:

    def __init__(self, ratings: RatingStore):
        self.ratings = ratings

    def report(self, user_id: str) -> AccuracyReport:
        return build_report(self.ratings.ratings_for_user(user_id))

"""Stats service for daily rollover, streaks and batched stats updates."""
from dataclasses import replace
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Optional

from vocabflow.dates import parse_day, today_string
from vocabflow.exceptions import StoreError
from vocabflow.models.learning_models import (
    DailySettings,
    StoryTargetFrequency,
    UserStats,
)
from vocabflow.services.storage_service import FetchResult, StatsStore

logger = logging.getLogger(__name__)

# Two logins closer than this keep the streak going
STREAK_WINDOW = timedelta(hours=48)

WEEKLY_STORY_GOALS = {
    StoryTargetFrequency.OFF: 0,
    StoryTargetFrequency.DAILY: 7,
    StoryTargetFrequency.WEEKLY_3: 3,
    StoryTargetFrequency.WEEKLY_5: 5,
    StoryTargetFrequency.WEEKLY_7: 7,
}


def default_settings() -> DailySettings:
    """Get daily settings populated from configuration."""
    return DailySettings()


def default_stats(today: Optional[str] = None) -> UserStats:
    """Get zeroed stats for a learner seen for the first time."""
    return UserStats(last_login_date=today or today_string(), settings=default_settings())


def next_streak(streak: int, last_login_date: str, today: str) -> int:
    """Get the streak after logging in on `today`.

    Elapsed time between the two calendar days is compared with a 48 hour
    window, so this does not account for DST or timezone changes.
    """
    previous = parse_day(last_login_date)
    current = parse_day(today)
    if previous is None or current is None:
        return 1
    elapsed = datetime.combine(current, datetime.min.time()) - datetime.combine(previous, datetime.min.time())
    return streak + 1 if elapsed < STREAK_WINDOW else 1


def _same_iso_week(first: str, second: str) -> bool:
    first_day = parse_day(first)
    second_day = parse_day(second)
    if first_day is None or second_day is None:
        return False
    return first_day.isocalendar()[:2] == second_day.isocalendar()[:2]


def rollover_if_new_day(stats: UserStats, today: Optional[str] = None) -> UserStats:
    """Reset daily counters when the learner comes back on a new day."""
    if today is None:
        today = today_string()
    if stats.last_login_date == today:
        return stats

    stories_this_week = stats.stories_completed_this_week
    if not _same_iso_week(stats.last_login_date, today):
        stories_this_week = 0

    rolled = replace(
        stats,
        words_learned_today=0,
        last_login_date=today,
        streak=next_streak(stats.streak, stats.last_login_date, today),
        stories_completed_this_week=stories_this_week,
    )
    logger.info(f"Rolled stats over from {stats.last_login_date or 'never'} to {today}, streak {rolled.streak}")
    return rolled


def record_quiz_outcome(stats: UserStats, learned_increase: int, mistake_increase: int) -> Dict[str, Any]:
    """Get the stats patch for a completed quiz batch."""
    return {
        "words_learned_today": stats.words_learned_today + learned_increase,
        "mistakes_count": stats.mistakes_count + mistake_increase,
    }


def record_story_completion(stats: UserStats, story_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    """Get the stats patch for a completed story."""
    completed = list(stats.completed_story_ids)
    if story_id not in completed:
        completed.append(story_id)
    return {
        "last_story_date": today or today_string(),
        "stories_completed_this_week": stats.stories_completed_this_week + 1,
        "completed_story_ids": completed,
    }


def story_goal_for_week(daily: DailySettings) -> int:
    """Get how many stories the learner aims to read per week."""
    return WEEKLY_STORY_GOALS[daily.story_target]


def story_goal_met(stats: UserStats) -> bool:
    """Check whether this week's story target has been reached."""
    return stats.stories_completed_this_week >= story_goal_for_week(stats.settings)


class StatsUpdate:
    """Patches collected during one user action and saved together."""

    def __init__(self) -> None:
        self.patch: Dict[str, Any] = {}

    def merge(self, patch: Optional[Dict[str, Any]]) -> "StatsUpdate":
        """Add fields to the pending patch; later values win."""
        if patch:
            self.patch.update(patch)
        return self

    def __bool__(self) -> bool:
        return bool(self.patch)

    def apply(self, stats: UserStats) -> UserStats:
        """Return stats with the pending patch applied."""
        if not self.patch:
            return stats
        patch = dict(self.patch)
        # Never let a patch rewind the focus cursor
        if "last_focus_words_index" in patch:
            patch["last_focus_words_index"] = max(
                stats.last_focus_words_index, patch["last_focus_words_index"]
            )
        return replace(stats, **patch)


class StatsService:
    """Service for loading and saving a learner's stats."""

    def __init__(self, store: StatsStore):
        """Initialize the service with a stats store."""
        self.store = store
        # True while default stats stand in for an unreadable record
        self.degraded = False

    def fetch_stats(self, today: Optional[str] = None) -> FetchResult[UserStats]:
        """Fetch stats, rolling over to today and saving the result.

        The returned result always carries stats: store failures keep their
        status but degrade to default stats so learning stays usable. Saves
        are skipped until a later fetch succeeds.
        """
        if today is None:
            today = today_string()
        result = self.store.fetch(today)
        self.degraded = not result.ok or result.data is None
        if self.degraded:
            logger.error(f"Could not fetch stats ({result.status.value}): {result.error}")
            return FetchResult(result.status, default_stats(today), result.error)

        stats = result.data
        rolled = rollover_if_new_day(stats, today)
        if rolled is not stats:
            self.save(rolled)
        return FetchResult.success(rolled)

    def save(self, stats: UserStats) -> bool:
        """Persist stats, returning False when the store failed or stats are degraded."""
        if self.degraded:
            logger.warning("Stats were not loaded from the store, skipping save")
            return False
        try:
            self.store.save(stats)
        except StoreError as e:
            logger.error(f"Error saving stats: {e}")
            return False
        return True

    def commit(self, stats: UserStats, update: StatsUpdate) -> UserStats:
        """Apply a batched update and save it once."""
        if not update:
            return stats
        updated = update.apply(stats)
        self.save(updated)
        return updated

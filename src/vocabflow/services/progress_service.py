"""Learner progress: XP, levels, badges and word library summaries."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from vocabflow.models.learning_models import UserStats, WordRecord, WordStatus
from vocabflow.services.stats_service import story_goal_for_week, story_goal_met

XP_PER_LEARNED_WORD = 10
XP_PER_LEARNING_WORD = 5
XP_PER_STORY = 50
XP_PER_LEVEL = 200


@dataclass
class Badge:
    """An achievement shown on the profile."""
    id: str
    name: str
    description: str
    unlocked: bool = False


@dataclass
class ProfileProgress:
    """Aggregated progress for the profile screen."""
    xp: int
    level: int
    level_progress: float  # percent of the way to the next level
    next_level_xp: int
    learned_count: int
    learning_count: int
    stories_completed: int
    streak: int
    story_goal: int
    story_goal_met: bool
    badges: List[Badge] = field(default_factory=list)

    @property
    def unlocked_badges(self) -> List[Badge]:
        return [badge for badge in self.badges if badge.unlocked]


@dataclass
class LibrarySummary:
    """Counts shown above the word library."""
    total: int = 0
    practiced: int = 0
    not_practiced: int = 0
    by_status: Dict[WordStatus, int] = field(default_factory=dict)


class PracticeFilter(str, Enum):
    """Filter words by whether they were ever answered."""
    ALL = "ALL"
    PRACTICED = "PRACTICED"
    NOT_PRACTICED = "NOT_PRACTICED"


def level_for_xp(xp: int) -> int:
    """Get the level reached with `xp` points, starting at 1."""
    return xp // XP_PER_LEVEL + 1


def build_badges(streak: int, learned_count: int, stories_completed: int) -> List[Badge]:
    """Get every badge with its unlocked flag."""
    return [
        Badge("streak_3", "On Fire", "Reach a 3-day streak", streak >= 3),
        Badge("streak_7", "Dedicated", "Reach a 7-day streak", streak >= 7),
        Badge("words_10", "First Steps", "Learn 10 words", learned_count >= 10),
        Badge("words_50", "Scholar", "Learn 50 words", learned_count >= 50),
        Badge("stories_1", "Reader", "Complete 1 story", stories_completed >= 1),
        Badge("stories_5", "Bookworm", "Complete 5 stories", stories_completed >= 5),
    ]


def profile_progress(words: List[WordRecord], stats: UserStats) -> ProfileProgress:
    """Compute XP, level and badges from the library and stats.

    Args:
        words: The learner's word library
        stats: The learner's current stats

    Returns:
        ProfileProgress for the profile screen
    """
    learned_count = sum(1 for word in words if word.status == WordStatus.LEARNED)
    learning_count = sum(1 for word in words if word.status == WordStatus.LEARNING)
    stories_completed = len(stats.completed_story_ids)

    xp = (
        learned_count * XP_PER_LEARNED_WORD
        + learning_count * XP_PER_LEARNING_WORD
        + stories_completed * XP_PER_STORY
    )
    level = level_for_xp(xp)
    previous_level_xp = (level - 1) * XP_PER_LEVEL
    next_level_xp = level * XP_PER_LEVEL

    return ProfileProgress(
        xp=xp,
        level=level,
        level_progress=(xp - previous_level_xp) / (next_level_xp - previous_level_xp) * 100,
        next_level_xp=next_level_xp,
        learned_count=learned_count,
        learning_count=learning_count,
        stories_completed=stories_completed,
        streak=stats.streak,
        story_goal=story_goal_for_week(stats.settings),
        story_goal_met=story_goal_met(stats),
        badges=build_badges(stats.streak, learned_count, stories_completed),
    )


def library_summary(words: List[WordRecord]) -> LibrarySummary:
    """Count words in total, by practice and by status."""
    practiced = sum(1 for word in words if word.total_attempts > 0)
    return LibrarySummary(
        total=len(words),
        practiced=practiced,
        not_practiced=len(words) - practiced,
        by_status={status: sum(1 for word in words if word.status == status) for status in WordStatus},
    )


def filter_library(
    words: List[WordRecord],
    query: str = "",
    status: Optional[WordStatus] = None,
    practice: PracticeFilter = PracticeFilter.ALL,
) -> List[WordRecord]:
    """Filter the library by a search query, a status and practice state.

    The query matches anywhere in the word, meaning or example, ignoring case.
    """
    result = words
    query = query.strip().lower()
    if query:
        result = [
            word for word in result
            if query in word.word.lower()
            or query in (word.meaning or "").lower()
            or query in (word.example or "").lower()
        ]
    if status is not None:
        result = [word for word in result if word.status == status]
    if practice == PracticeFilter.PRACTICED:
        result = [word for word in result if word.total_attempts > 0]
    elif practice == PracticeFilter.NOT_PRACTICED:
        result = [word for word in result if word.total_attempts == 0]
    return result

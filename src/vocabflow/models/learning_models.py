"""Models for learning-related data structures."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from vocabflow.config import settings


class WordStatus(str, Enum):
    """Lifecycle status of a word."""
    NEW = "NEW"
    LEARNING = "LEARNING"
    LEARNED = "LEARNED"
    MISTAKE = "MISTAKE"  # Last answer was wrong, back to LEARNING on the next correct one


class NewReviewRatio(str, Enum):
    """How a daily target is split between new and review words."""
    RETENTION = "RETENTION"  # 20% new
    BALANCED = "BALANCED"  # 50% new
    GROWTH = "GROWTH"  # 80% new


class WeakPriorityLevel(str, Enum):
    """How strongly weak words are pushed into a session."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class StoryTargetFrequency(str, Enum):
    """How many stories a learner wants to read."""
    OFF = "OFF"
    DAILY = "DAILY"
    WEEKLY_3 = "WEEKLY_3"
    WEEKLY_5 = "WEEKLY_5"
    WEEKLY_7 = "WEEKLY_7"


def new_word_id() -> str:
    """Generate an opaque word id."""
    return uuid.uuid4().hex


@dataclass
class WordRecord:
    """One vocabulary item owned by a learner."""
    word: str
    meaning: str
    example: str = ""
    language: Optional[str] = None
    id: str = field(default_factory=new_word_id)
    status: WordStatus = WordStatus.NEW

    # SRS fields
    interval: int = 0  # days until next review
    repetition: int = 0  # consecutive correct answers
    next_review_date: Optional[datetime] = None  # None means never scheduled, always due
    last_review_date: Optional[datetime] = None

    # Analytics fields
    strength_score: int = 0  # 0-100
    mistake_count: int = 0
    total_attempts: int = 0
    avg_response_time: float = 0.0  # ms

    def is_due(self, now: datetime) -> bool:
        """Check whether the word's review date has passed."""
        return self.next_review_date is None or self.next_review_date <= now


@dataclass
class DailySettings:
    """Per-learner daily goal settings."""
    daily_target: int = field(default_factory=lambda: settings.learning.daily_target)
    ratio: NewReviewRatio = field(
        default_factory=lambda: NewReviewRatio(settings.learning.new_review_ratio)
    )
    include_weak_words: bool = field(default_factory=lambda: settings.learning.include_weak_words)
    weak_priority: WeakPriorityLevel = WeakPriorityLevel.MEDIUM
    rest_day_mode: bool = False
    max_session_time_minutes: int = 0  # 0 for unlimited
    story_target: StoryTargetFrequency = field(
        default_factory=lambda: StoryTargetFrequency(settings.learning.story_target)
    )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "daily_target": self.daily_target,
            "ratio": self.ratio.value,
            "include_weak_words": self.include_weak_words,
            "weak_priority": self.weak_priority.value,
            "rest_day_mode": self.rest_day_mode,
            "max_session_time_minutes": self.max_session_time_minutes,
            "story_target": self.story_target.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DailySettings":
        """Build settings from a stored dict, falling back to defaults for missing keys."""
        defaults = cls()
        if not data:
            return defaults
        return cls(
            daily_target=int(data.get("daily_target", defaults.daily_target)),
            ratio=NewReviewRatio(data.get("ratio", defaults.ratio.value)),
            include_weak_words=bool(data.get("include_weak_words", defaults.include_weak_words)),
            weak_priority=WeakPriorityLevel(data.get("weak_priority", defaults.weak_priority.value)),
            rest_day_mode=bool(data.get("rest_day_mode", defaults.rest_day_mode)),
            max_session_time_minutes=int(
                data.get("max_session_time_minutes", defaults.max_session_time_minutes)
            ),
            story_target=StoryTargetFrequency(data.get("story_target", defaults.story_target.value)),
        )


@dataclass
class UserStats:
    """Per-learner counters and bookkeeping."""
    streak: int = 0
    last_login_date: str = ""  # YYYY-MM-DD
    words_learned_today: int = 0
    mistakes_count: int = 0  # cumulative
    settings: DailySettings = field(default_factory=DailySettings)

    # Story stats
    stories_completed_this_week: int = 0
    last_story_date: str = ""  # YYYY-MM-DD
    completed_story_ids: List[str] = field(default_factory=list)

    # Daily focus words
    last_focus_words_date: str = ""  # YYYY-MM-DD
    last_focus_words_index: int = 0  # high-water mark into the NEW word pool
    today_focus_word_ids: List[str] = field(default_factory=list)


@dataclass
class SessionBreakdown:
    """Summary of a planned session for the dashboard."""
    total: int = 0
    new_count: int = 0
    review_count: int = 0
    weak_count: int = 0
    estimated_minutes: int = 0
    story_available: bool = False


@dataclass
class SessionPlan:
    """Words chosen for today's session and their breakdown."""
    session_list: List[WordRecord]
    breakdown: SessionBreakdown


@dataclass
class FocusWords:
    """Today's batch of new words and the stats fields that changed."""
    words: List[WordRecord]
    stats_patch: Optional[Dict[str, Any]] = None


@dataclass
class QuizResult:
    """One answer given during a quiz."""
    word_id: str
    correct: bool
    response_time_ms: float = 0.0


@dataclass
class ExtractedWord:
    """Vocabulary triple produced by an extraction collaborator."""
    word: str
    meaning: str
    example: str = ""
    language: Optional[str] = None

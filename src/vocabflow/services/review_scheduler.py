"""Review scheduler choosing the words for today's session."""
import logging
import math
import random
from datetime import datetime, UTC
from typing import List, Optional, Tuple

from vocabflow.config import NEW_WORD_RATIOS, settings
from vocabflow.dates import today_string
from vocabflow.models.learning_models import (
    SessionBreakdown,
    SessionPlan,
    UserStats,
    WordRecord,
    WordStatus,
)

logger = logging.getLogger(__name__)

# Fixed ceiling so remediation never swamps a session
WEAK_WORD_CAP = 10
WEAK_STRENGTH_THRESHOLD = 40
MINUTES_PER_WORD = 0.5


def is_weak(word: WordRecord) -> bool:
    """Check whether a word needs remediation."""
    if word.status == WordStatus.MISTAKE:
        return True
    return word.status == WordStatus.LEARNED and word.strength_score < WEAK_STRENGTH_THRESHOLD


def partition_words(
    all_words: List[WordRecord], now: datetime
) -> Tuple[List[WordRecord], List[WordRecord], List[WordRecord]]:
    """Split words into weak, due-review and new buckets, keeping input order."""
    weak_words: List[WordRecord] = []
    due_reviews: List[WordRecord] = []
    new_words: List[WordRecord] = []
    for word in all_words:
        if is_weak(word):
            weak_words.append(word)
        elif word.status == WordStatus.LEARNED and word.is_due(now):
            due_reviews.append(word)
        elif word.status == WordStatus.NEW:
            new_words.append(word)
    return weak_words, due_reviews, new_words


def new_word_limit(stats: UserStats) -> int:
    """Get how many new words the daily target allows."""
    daily = stats.settings
    if daily.rest_day_mode:
        return 0
    return math.floor(daily.daily_target * NEW_WORD_RATIOS[daily.ratio.value])


def build_breakdown(session_list: List[WordRecord], stats: UserStats, today: str) -> SessionBreakdown:
    """Summarize a session list by word status.

    Counts come from the final status of each word, not from the bucket that
    admitted it: a LEARNED word with low strength is admitted as weak but is
    counted as a review here, and only MISTAKE words count as weak.
    """
    return SessionBreakdown(
        total=len(session_list),
        new_count=sum(1 for w in session_list if w.status == WordStatus.NEW),
        review_count=sum(1 for w in session_list if w.status == WordStatus.LEARNED),
        weak_count=sum(1 for w in session_list if w.status == WordStatus.MISTAKE),
        estimated_minutes=math.ceil(len(session_list) * MINUTES_PER_WORD),
        story_available=not stats.last_story_date or stats.last_story_date != today,
    )


def plan_session(
    all_words: List[WordRecord],
    stats: UserStats,
    now: Optional[datetime] = None,
    today: Optional[str] = None,
) -> SessionPlan:
    """Plan today's session from the learner's words and settings.

    Weak words come first (up to a fixed cap), then due reviews up to the
    review limit, then new words until the daily target is reached.
    """
    if now is None:
        now = datetime.now(UTC)
    if today is None:
        today = today_string(now)

    daily = stats.settings
    daily_target = daily.daily_target
    weak_words, due_reviews, new_words = partition_words(all_words, now)

    new_limit = new_word_limit(stats)
    review_limit = daily_target - min(new_limit, len(new_words))

    session_list: List[WordRecord] = []
    if daily.include_weak_words:
        session_list.extend(weak_words[:WEAK_WORD_CAP])

    needed_reviews = max(0, review_limit - len(session_list))
    session_list.extend(due_reviews[:needed_reviews])

    if len(session_list) < daily_target and not daily.rest_day_mode:
        needed_new = daily_target - len(session_list)
        session_list.extend(new_words[:needed_new])

    breakdown = build_breakdown(session_list, stats, today)
    logger.debug(
        f"Planned session: weak={len(weak_words)} due={len(due_reviews)} new={len(new_words)} "
        f"new_limit={new_limit} review_limit={review_limit} -> {breakdown}"
    )
    return SessionPlan(session_list=session_list, breakdown=breakdown)


def get_mistake_words(all_words: List[WordRecord]) -> List[WordRecord]:
    """Get words whose last answer was wrong."""
    return [word for word in all_words if word.status == WordStatus.MISTAKE]


def get_practice_words(
    all_words: List[WordRecord],
    limit: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[WordRecord]:
    """Pick a random sample of already-seen words for pronunciation practice."""
    if limit is None:
        limit = settings.learning.practice_words_limit
    rng = rng or random.Random()
    seen = [word for word in all_words if word.status != WordStatus.NEW]
    return rng.sample(seen, min(limit, len(seen)))

"""Daily focus words: a stable, paginated batch of never-seen words per day."""
import logging
from typing import Any, Dict, List, Optional

from vocabflow import monitoring
from vocabflow.dates import today_string
from vocabflow.models.learning_models import FocusWords, UserStats, WordRecord, WordStatus

logger = logging.getLogger(__name__)


def focus_pool(all_words: List[WordRecord]) -> List[WordRecord]:
    """Get never-attempted NEW words in insertion order."""
    return [
        word for word in all_words
        if word.status == WordStatus.NEW and word.total_attempts == 0
    ]


def _allocate(pool: List[WordRecord], stats: UserStats, today: str) -> FocusWords:
    """Slice the next batch from the pool and describe the stats change."""
    start_index = stats.last_focus_words_index or 0
    end_index = min(start_index + stats.settings.daily_target, len(pool))
    selected = pool[start_index:end_index]

    patch: Dict[str, Any] = {
        "last_focus_words_date": today,
        # The cursor is a high-water mark and never moves backwards
        "last_focus_words_index": max(start_index, end_index),
        "today_focus_word_ids": [word.id for word in selected],
    }
    return FocusWords(words=selected, stats_patch=patch)


def get_today_focus_words(
    all_words: List[WordRecord],
    stats: UserStats,
    today: Optional[str] = None,
) -> FocusWords:
    """Get today's focus words and, when they were (re)allocated, the stats patch.

    On a new day the next `daily_target` words are sliced from the pool at the
    stored cursor. On the same day the stored ids are resolved again; if any
    of them no longer resolves the batch is rebuilt from the current cursor.
    """
    if today is None:
        today = today_string()
    pool = focus_pool(all_words)

    if stats.last_focus_words_date != today:
        focus = _allocate(pool, stats, today)
        logger.info(
            f"Allocated {len(focus.words)} focus words for {today} "
            f"(cursor {stats.last_focus_words_index} -> {focus.stats_patch['last_focus_words_index']})"
        )
        return focus

    stored_ids = stats.today_focus_word_ids or []
    if stored_ids:
        wanted = set(stored_ids)
        focus_words = [word for word in all_words if word.id in wanted]
        if len(focus_words) == len(stored_ids):
            return FocusWords(words=focus_words)

    focus = _allocate(pool, stats, today)
    if not stored_ids:
        logger.debug(f"No focus words stored for {today}, allocated {len(focus.words)} words")
        return focus

    monitoring.focus_repairs.inc()
    logger.warning(
        f"Today's focus words could not be resolved ({len(stored_ids)} stored ids), "
        f"reallocated {len(focus.words)} words from cursor {stats.last_focus_words_index}"
    )
    return focus

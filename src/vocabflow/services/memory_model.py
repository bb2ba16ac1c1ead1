"""Per-word spaced repetition update rule.

A simplified SM-2 variant without an ease factor: the first two correct
answers schedule the word one and three days out, every later correct answer
multiplies the interval by 2.5. A wrong answer resets the word to MISTAKE with
a zero interval.
"""
from dataclasses import replace
from datetime import datetime, timedelta, UTC
import math
from typing import Optional

from vocabflow.models.learning_models import WordRecord, WordStatus

FIRST_INTERVAL = 1
SECOND_INTERVAL = 3
INTERVAL_MULTIPLIER = 2.5
STRENGTH_GAIN = 10
STRENGTH_LOSS = 20
MAX_STRENGTH = 100
MIN_STRENGTH = 0
# Correct answers in a row (before this one) needed to move LEARNING -> LEARNED
LEARNED_AFTER_REPETITIONS = 2


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def next_status(status: WordStatus, repetition: int, correct: bool) -> WordStatus:
    """Get the status a word moves to after an answer."""
    if not correct:
        return WordStatus.MISTAKE
    if status in (WordStatus.NEW, WordStatus.MISTAKE):
        return WordStatus.LEARNING
    if status == WordStatus.LEARNING and repetition >= LEARNED_AFTER_REPETITIONS:
        return WordStatus.LEARNED
    return status


def next_interval(interval: int, repetition: int) -> int:
    """Get the interval in days after a correct answer."""
    if repetition == 0:
        return FIRST_INTERVAL
    if repetition == 1:
        return SECOND_INTERVAL
    return round_half_up(max(0, interval) * INTERVAL_MULTIPLIER)


def apply_answer(
    word: WordRecord,
    correct: bool,
    response_time_ms: float,
    now: Optional[datetime] = None,
) -> WordRecord:
    """Return a copy of the word updated for one quiz answer.

    Args:
        word: Word before the answer
        correct: Whether the answer was correct
        response_time_ms: Time taken to answer in milliseconds
        now: Review time, defaults to the current UTC time

    Returns:
        Updated word; the input is not modified
    """
    if now is None:
        now = datetime.now(UTC)

    status = next_status(word.status, word.repetition, correct)
    mistake_count = word.mistake_count
    if correct:
        interval = next_interval(word.interval, word.repetition)
        repetition = word.repetition + 1
        strength = min(MAX_STRENGTH, word.strength_score + STRENGTH_GAIN)
    else:
        interval = 0
        repetition = 0
        strength = max(MIN_STRENGTH, word.strength_score - STRENGTH_LOSS)
        mistake_count += 1

    attempts = word.total_attempts + 1
    avg_response_time = (word.avg_response_time * word.total_attempts + response_time_ms) / attempts

    return replace(
        word,
        status=status,
        interval=interval,
        repetition=repetition,
        next_review_date=now + timedelta(days=interval),
        last_review_date=now,
        strength_score=max(MIN_STRENGTH, min(MAX_STRENGTH, strength)),
        mistake_count=mistake_count,
        total_attempts=attempts,
        avg_response_time=avg_response_time,
    )

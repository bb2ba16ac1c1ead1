"""Tests for the word memory model."""
import random
from datetime import timedelta

import pytest

from conftest import NOW
from vocabflow.models.learning_models import WordRecord, WordStatus
from vocabflow.services.memory_model import apply_answer


def test_three_correct_answers_learn_a_new_word(make_word) -> None:
    """Test the NEW -> LEARNING -> LEARNED path."""
    word = make_word(status=WordStatus.NEW, total_attempts=0)

    first = apply_answer(word, True, 1000, now=NOW)
    assert first.status == WordStatus.LEARNING
    assert (first.interval, first.repetition, first.strength_score) == (1, 1, 10)

    second = apply_answer(first, True, 1000, now=NOW)
    assert second.status == WordStatus.LEARNING
    assert (second.interval, second.repetition, second.strength_score) == (3, 2, 20)

    third = apply_answer(second, True, 1000, now=NOW)
    assert third.status == WordStatus.LEARNED
    assert (third.interval, third.repetition, third.strength_score) == (8, 3, 30)
    assert third.total_attempts == 3
    assert third.avg_response_time == pytest.approx(1000)


@pytest.mark.parametrize(
    "repetition, interval, expected",
    [
        (0, 0, 1),
        (1, 1, 3),
        (2, 3, 8),
        (3, 8, 20),
        (4, 20, 50),
        (5, 5, 13),  # 12.5 rounds half up
    ],
)
def test_interval_growth(make_word, repetition: int, interval: int, expected: int) -> None:
    """Test interval growth on correct answers."""
    word = make_word(status=WordStatus.LEARNED, repetition=repetition, interval=interval, strength_score=50)
    updated = apply_answer(word, True, 500, now=NOW)
    assert updated.interval == expected
    assert updated.repetition == repetition + 1
    assert updated.next_review_date == NOW + timedelta(days=expected)
    assert updated.last_review_date == NOW


@pytest.mark.parametrize("status", list(WordStatus))
def test_mistake_resets_progress(make_word, status: WordStatus) -> None:
    """Test that any wrong answer resets the word to MISTAKE."""
    word = make_word(status=status, repetition=4, interval=20, strength_score=50, mistake_count=2)
    updated = apply_answer(word, False, 2000, now=NOW)

    assert updated.status == WordStatus.MISTAKE
    assert updated.interval == 0
    assert updated.repetition == 0
    assert updated.strength_score == 30
    assert updated.mistake_count == 3
    assert updated.next_review_date == NOW


def test_mistake_returns_to_learning(make_word) -> None:
    """Test that a correct answer after a mistake moves back to LEARNING."""
    word = make_word(status=WordStatus.MISTAKE, strength_score=10)
    updated = apply_answer(word, True, 800, now=NOW)
    assert updated.status == WordStatus.LEARNING
    assert updated.interval == 1


def test_learned_stays_learned(make_word) -> None:
    """Test that LEARNED words stay LEARNED on correct answers."""
    word = make_word(status=WordStatus.LEARNED, repetition=1, interval=1, strength_score=80)
    updated = apply_answer(word, True, 800, now=NOW)
    assert updated.status == WordStatus.LEARNED


def test_strength_is_clamped(make_word) -> None:
    """Test strength bounds at both ends."""
    strong = make_word(status=WordStatus.LEARNED, strength_score=95)
    assert apply_answer(strong, True, 100, now=NOW).strength_score == 100

    weak = make_word(status=WordStatus.LEARNING, strength_score=5)
    assert apply_answer(weak, False, 100, now=NOW).strength_score == 0


def test_running_mean_response_time(make_word) -> None:
    """Test the incremental response time average."""
    word = make_word(status=WordStatus.LEARNING, total_attempts=3, avg_response_time=1000.0)
    updated = apply_answer(word, True, 3000, now=NOW)
    assert updated.total_attempts == 4
    assert updated.avg_response_time == pytest.approx(1500.0)


def test_input_word_is_not_modified(make_word) -> None:
    """Test that the update returns a copy."""
    word = make_word()
    apply_answer(word, True, 1000, now=NOW)
    assert word.status == WordStatus.NEW
    assert word.total_attempts == 0
    assert word.next_review_date is None


def test_random_answer_sequences_keep_invariants() -> None:
    """Test strength bounds and the learning path over random answer sequences."""
    rng = random.Random(42)
    for _ in range(200):
        word = WordRecord(word="tree", meaning="a plant")
        streak = 0
        for _ in range(rng.randint(1, 30)):
            correct = rng.random() < 0.7
            previous_status = word.status
            word = apply_answer(word, correct, rng.randint(200, 5000), now=NOW)
            streak = streak + 1 if correct else 0

            assert 0 <= word.strength_score <= 100
            assert word.interval >= 0
            assert word.total_attempts > 0 and word.status != WordStatus.NEW
            if word.status == WordStatus.LEARNED and previous_status != WordStatus.LEARNED:
                assert streak >= 3

"""Tests for database and local JSON stores."""
from datetime import datetime, UTC
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import NOW
from vocabflow.exceptions import SchemaMissingError, StoreError
from vocabflow.models.learning_models import NewReviewRatio, UserStats, WordStatus
from vocabflow.models.models import ProfileRow, StoryRow, UserWordRow
from vocabflow.models.story_models import QuestionType, Story, StoryQuestion
from vocabflow.services.local_store import LocalStatsStore, LocalStoryStore, LocalWordStore
from vocabflow.services.memory_model import apply_answer
from vocabflow.services.storage_service import (
    DatabaseStatsStore,
    DatabaseStoryStore,
    DatabaseWordStore,
    FetchStatus,
    from_millis,
    stats_from_dict,
    to_millis,
    word_from_dict,
    word_to_dict,
)


@pytest.fixture
def bare_db(tmp_path: Path):
    """A database session on a file without any tables."""
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    db = sessionmaker(bind=engine)()
    yield db
    db.close()
    engine.dispose()


@pytest.fixture
def story() -> Story:
    return Story(
        title="Harbor",
        content="The sailor reached the harbor.",
        target_words=["sailor", "harbor"],
        questions=[
            StoryQuestion(
                id="h1",
                type=QuestionType.FILL_BLANK,
                question="The ___ reached the harbor.",
                correct_answer="sailor",
                target_word="sailor",
            ),
            StoryQuestion(
                id="h2",
                type=QuestionType.MATCHING,
                question='What does "harbor" mean in this context?',
                correct_answer="a port",
                target_word="harbor",
                options=["a boat", "a port", "a storm"],
            ),
        ],
        is_custom=True,
    )


def test_millis_conversion() -> None:
    """Test epoch millisecond conversion."""
    assert to_millis(None) is None
    assert from_millis(None) is None
    assert from_millis(to_millis(NOW)) == NOW
    assert to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000


def test_word_from_dict_clamps_values(make_word) -> None:
    """Test that stored values out of range are clamped."""
    data = word_to_dict(make_word())
    data.update(interval=-3, strength_score=140, status=None)
    word = word_from_dict(data)
    assert word.interval == 0
    assert word.strength_score == 100
    assert word.status == WordStatus.NEW


def test_stats_from_dict_drops_duplicate_story_ids() -> None:
    """Test that completed story ids are unique after loading."""
    stats = stats_from_dict({"completed_story_ids": ["story_1", "story_2", "story_1"]})
    assert stats.completed_story_ids == ["story_1", "story_2"]
    assert stats.settings.daily_target > 0


def test_database_words_keep_insertion_order(db, make_words) -> None:
    """Test that words come back in the order they were inserted."""
    store = DatabaseWordStore(db)
    first = make_words(3)
    second = make_words(2)
    store.insert(first)
    store.insert(second)

    result = store.fetch_all()

    assert result.ok
    assert [word.id for word in result.data] == [word.id for word in first + second]


def test_database_word_update(db, make_word) -> None:
    """Test saving a word after an answer."""
    store = DatabaseWordStore(db)
    word = make_word(language="en")
    store.insert([word])

    answered = apply_answer(word, True, 1200, now=NOW)
    store.update(answered)
    loaded = store.fetch_all().data[0]

    assert loaded == answered
    assert loaded.next_review_date.tzinfo is not None


def test_database_update_many_skips_unknown_words(db, make_words, make_word) -> None:
    """Test a bulk update with an id that is not stored."""
    store = DatabaseWordStore(db)
    words = make_words(2)
    store.insert(words)

    store.update_many([apply_answer(w, False, 500, now=NOW) for w in words] + [make_word()])

    loaded = store.fetch_all().data
    assert len(loaded) == 2
    assert all(word.status == WordStatus.MISTAKE for word in loaded)


def test_database_stats_created_on_first_fetch(db) -> None:
    """Test that a missing profile is created with defaults."""
    store = DatabaseStatsStore(db, learner_id="learner-1")

    first = store.fetch()
    second = store.fetch()

    assert first.ok and second.ok
    assert first.data.streak == 0
    assert second.data == first.data


def test_database_stats_round_trip(db, make_stats) -> None:
    """Test saving and loading stats."""
    store = DatabaseStatsStore(db)
    stats = make_stats(
        daily_target=12,
        ratio=NewReviewRatio.GROWTH,
        streak=4,
        completed_story_ids=["story_1"],
        today_focus_word_ids=["a", "b"],
        last_focus_words_index=2,
    )

    store.save(stats)
    loaded = store.fetch().data

    assert loaded == stats


def test_database_stats_are_per_learner(db, make_stats) -> None:
    """Test that learners do not share stats."""
    DatabaseStatsStore(db, "one").save(make_stats(streak=9))
    assert DatabaseStatsStore(db, "two").fetch().data.streak == 0
    assert DatabaseStatsStore(db, "one").fetch().data.streak == 9


def test_database_stories(db, story) -> None:
    """Test storing user stories."""
    store = DatabaseStoryStore(db)
    other = Story(title="Second", content="Another one.")
    store.insert(story)
    store.insert(other)

    loaded = store.fetch_all().data

    assert [item.id for item in loaded] == [story.id, other.id]
    assert loaded[0].questions == story.questions
    assert all(item.is_custom for item in loaded)


def test_missing_tables_are_reported(bare_db, make_word, make_stats) -> None:
    """Test reads and writes against a database without tables."""
    assert DatabaseWordStore(bare_db).fetch_all().status == FetchStatus.SCHEMA_MISSING
    assert DatabaseStatsStore(bare_db).fetch().status == FetchStatus.SCHEMA_MISSING
    assert DatabaseStoryStore(bare_db).fetch_all().status == FetchStatus.SCHEMA_MISSING

    with pytest.raises(SchemaMissingError):
        DatabaseWordStore(bare_db).insert([make_word()])
    with pytest.raises(SchemaMissingError):
        DatabaseStatsStore(bare_db).save(make_stats())


def test_local_word_store(tmp_path: Path, make_words) -> None:
    """Test the JSON word store."""
    store = LocalWordStore(tmp_path)
    assert store.fetch_all().data == []

    words = make_words(3, language="en")
    store.insert(words)
    answered = apply_answer(words[1], True, 900, now=NOW)
    store.update_many([answered])

    loaded = store.fetch_all().data
    assert [word.id for word in loaded] == [word.id for word in words]
    assert loaded[1] == answered
    assert (tmp_path / "words.json").exists()


def test_local_update_keeps_identity_fields(tmp_path: Path, make_word) -> None:
    """Test that updates do not rewrite the word text."""
    store = LocalWordStore(tmp_path)
    word = make_word(word="harbor", meaning="a port")
    store.insert([word])

    changed = apply_answer(word, True, 900, now=NOW)
    changed.meaning = "something else"
    store.update(changed)

    loaded = store.fetch_all().data[0]
    assert loaded.meaning == "a port"
    assert loaded.status == WordStatus.LEARNING


def test_local_stats_store(tmp_path: Path, make_stats) -> None:
    """Test the JSON stats store."""
    store = LocalStatsStore(tmp_path)
    created = store.fetch()
    assert created.ok
    assert isinstance(created.data, UserStats)

    stats = make_stats(streak=3, completed_story_ids=["story_2"])
    store.save(stats)
    assert store.fetch().data == stats


def test_local_story_store(tmp_path: Path, story) -> None:
    """Test the JSON story store."""
    store = LocalStoryStore(tmp_path)
    store.insert(story)
    loaded = store.fetch_all().data
    assert loaded == [story]


def test_corrupt_local_files(tmp_path: Path, make_word) -> None:
    """Test that unreadable JSON is reported as an error."""
    for name in ("words.json", "stats.json", "stories.json"):
        (tmp_path / name).write_text("{not json", encoding="utf-8")

    assert LocalWordStore(tmp_path).fetch_all().status == FetchStatus.ERROR
    assert LocalStatsStore(tmp_path).fetch().status == FetchStatus.ERROR
    assert LocalStoryStore(tmp_path).fetch_all().status == FetchStatus.ERROR
    with pytest.raises(StoreError):
        LocalWordStore(tmp_path).insert([make_word()])


def test_malformed_database_rows_are_errors(db, make_word) -> None:
    """Test that rows which cannot be converted are reported instead of raised."""
    DatabaseWordStore(db).insert([make_word()])
    db.add(UserWordRow(id="bad-status", position=9, word="harbor", status="REVIEWING"))
    db.add(ProfileRow(id="default", settings={"ratio": "FAST"}))
    db.add(StoryRow(id="bad-story", position=1, title="Harbor", content="...",
                    questions=[{"id": "q1", "type": "ESSAY", "question": "?", "correct_answer": "x"}]))
    db.commit()

    words = DatabaseWordStore(db).fetch_all()
    assert words.status == FetchStatus.ERROR
    assert "REVIEWING" in words.error
    assert DatabaseStatsStore(db).fetch().status == FetchStatus.ERROR
    assert DatabaseStoryStore(db).fetch_all().status == FetchStatus.ERROR


def test_database_stats_created_for_given_day(db) -> None:
    """Test that a new profile is stamped with the caller's day."""
    created = DatabaseStatsStore(db).fetch(today="2020-05-01")
    assert created.data.last_login_date == "2020-05-01"
    assert DatabaseStatsStore(db).fetch().data.last_login_date == "2020-05-01"


@pytest.mark.parametrize(
    "name, content",
    [
        ("words.json", '{"id": "w1", "word": "harbor"}'),
        ("words.json", '[{"id": "w1", "word": "harbor", "status": "REVIEWING"}]'),
        ("words.json", '["harbor"]'),
        ("stats.json", "[]"),
        ("stats.json", '{"settings": {"ratio": "FAST"}}'),
        ("stories.json", '{"stories": []}'),
        ("stories.json", '[{"id": "s1", "title": "Harbor"}]'),
    ],
)
def test_malformed_local_files_are_errors(tmp_path: Path, name: str, content: str) -> None:
    """Test that valid JSON of the wrong shape is reported as an error."""
    (tmp_path / name).write_text(content, encoding="utf-8")

    results = {
        "words.json": LocalWordStore(tmp_path).fetch_all,
        "stats.json": LocalStatsStore(tmp_path).fetch,
        "stories.json": LocalStoryStore(tmp_path).fetch_all,
    }
    assert results[name]().status == FetchStatus.ERROR


def test_writes_refuse_non_list_files(tmp_path: Path, make_word, story) -> None:
    """Test that inserts and updates do not extend a document that is not a list."""
    (tmp_path / "words.json").write_text("{}", encoding="utf-8")
    (tmp_path / "stories.json").write_text("{}", encoding="utf-8")

    with pytest.raises(StoreError):
        LocalWordStore(tmp_path).insert([make_word()])
    with pytest.raises(StoreError):
        LocalWordStore(tmp_path).update(make_word())
    with pytest.raises(StoreError):
        LocalStoryStore(tmp_path).insert(story)

    (tmp_path / "words.json").write_text('["harbor"]', encoding="utf-8")
    with pytest.raises(StoreError):
        LocalWordStore(tmp_path).update(make_word())


def test_local_stats_created_for_given_day(tmp_path: Path) -> None:
    """Test that a new local profile is stamped with the caller's day."""
    assert LocalStatsStore(tmp_path).fetch(today="2020-05-01").data.last_login_date == "2020-05-01"
    assert LocalStatsStore(tmp_path).fetch().data.last_login_date == "2020-05-01"

"""Stores for words, learner stats and stories.

Reads never raise: they return a FetchResult tagged OK, SCHEMA_MISSING or
ERROR so callers can fall back to defaults and prompt for setup. Writes raise
StoreError (or SchemaMissingError) after rolling the session back.
"""
from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
import logging
from typing import Any, Dict, Generic, List, Optional, Protocol, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from vocabflow import monitoring
from vocabflow.dates import today_string
from vocabflow.exceptions import SchemaMissingError, StoreError
from vocabflow.models.learning_models import DailySettings, UserStats, WordRecord, WordStatus
from vocabflow.models.models import ProfileRow, StoryRow, UserWordRow
from vocabflow.models.story_models import Story, StoryQuestion

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LEARNER_ID = "default"

# Messages drivers use when a table has not been created
MISSING_TABLE_MARKERS = ("no such table", "does not exist", "undefinedtable", "doesn't exist")

# Raised while converting a stored record of the wrong shape
CONVERSION_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


class FetchStatus(str, Enum):
    """Outcome of a store read."""
    OK = "ok"
    SCHEMA_MISSING = "schema_missing"
    ERROR = "error"


@dataclass
class FetchResult(Generic[T]):
    """Data read from a store, or why it could not be read."""
    status: FetchStatus
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.OK

    @classmethod
    def success(cls, data: T) -> "FetchResult[T]":
        return cls(FetchStatus.OK, data)

    @classmethod
    def failure(cls, error: Exception) -> "FetchResult[T]":
        status = FetchStatus.SCHEMA_MISSING if is_schema_missing(error) else FetchStatus.ERROR
        return cls(status, None, str(error))


class WordStore(Protocol):
    """Persistence for a learner's words."""

    def fetch_all(self) -> FetchResult[List[WordRecord]]: ...

    def insert(self, words: List[WordRecord]) -> None: ...

    def update(self, word: WordRecord) -> None: ...

    def update_many(self, words: List[WordRecord]) -> None: ...


class StatsStore(Protocol):
    """Persistence for a learner's stats."""

    def fetch(self, today: Optional[str] = None) -> FetchResult[UserStats]: ...

    def save(self, stats: UserStats) -> None: ...


class StoryStore(Protocol):
    """Persistence for user-imported stories."""

    def fetch_all(self) -> FetchResult[List[Story]]: ...

    def insert(self, story: Story) -> None: ...


def is_schema_missing(error: Exception) -> bool:
    """Check whether an error means the backing tables do not exist."""
    if isinstance(error, SchemaMissingError):
        return True
    if isinstance(error, (OperationalError, ProgrammingError)):
        message = str(error).lower()
        return any(marker in message for marker in MISSING_TABLE_MARKERS)
    return False


def _record_error(operation: str, error: Exception) -> None:
    monitoring.store_errors.labels(error_type=type(error).__name__).inc()
    if is_schema_missing(error):
        logger.warning(f"Missing tables while trying to {operation}, run init-db to create them")
    else:
        logger.error(f"Error trying to {operation}: {error}")


def _wrap_write_error(operation: str, error: Exception) -> StoreError:
    _record_error(operation, error)
    if is_schema_missing(error):
        return SchemaMissingError(f"Could not {operation}: tables are missing")
    return StoreError(f"Could not {operation}: {error}")


# ---- Serialization (snake_case at rest) ----

def to_millis(value: Optional[datetime]) -> Optional[int]:
    """Convert a datetime to epoch milliseconds."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def from_millis(value: Optional[int]) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, UTC)


def word_to_dict(word: WordRecord) -> Dict[str, Any]:
    """Serialize a word record."""
    return {
        "id": word.id,
        "word": word.word,
        "meaning": word.meaning,
        "example": word.example,
        "language": word.language,
        "status": word.status.value,
        "interval": word.interval,
        "repetition": word.repetition,
        "next_review_date": to_millis(word.next_review_date),
        "last_review_date": to_millis(word.last_review_date),
        "strength_score": word.strength_score,
        "mistake_count": word.mistake_count,
        "total_attempts": word.total_attempts,
        "avg_response_time": word.avg_response_time,
    }


def word_from_dict(data: Dict[str, Any]) -> WordRecord:
    """Deserialize a word record."""
    return WordRecord(
        id=data["id"],
        word=data["word"],
        meaning=data.get("meaning") or "",
        example=data.get("example") or "",
        language=data.get("language"),
        status=WordStatus(data.get("status") or WordStatus.NEW.value),
        interval=max(0, data.get("interval") or 0),
        repetition=data.get("repetition") or 0,
        next_review_date=from_millis(data.get("next_review_date")),
        last_review_date=from_millis(data.get("last_review_date")),
        strength_score=max(0, min(100, data.get("strength_score") or 0)),
        mistake_count=data.get("mistake_count") or 0,
        total_attempts=data.get("total_attempts") or 0,
        avg_response_time=data.get("avg_response_time") or 0.0,
    )


def stats_to_dict(stats: UserStats) -> Dict[str, Any]:
    """Serialize learner stats."""
    return {
        "streak": stats.streak,
        "last_login_date": stats.last_login_date,
        "words_learned_today": stats.words_learned_today,
        "mistakes_count": stats.mistakes_count,
        "settings": stats.settings.to_dict(),
        "stories_completed_this_week": stats.stories_completed_this_week,
        "last_story_date": stats.last_story_date,
        "completed_story_ids": list(stats.completed_story_ids),
        "last_focus_words_date": stats.last_focus_words_date,
        "last_focus_words_index": stats.last_focus_words_index,
        "today_focus_word_ids": list(stats.today_focus_word_ids),
    }


def stats_from_dict(data: Dict[str, Any]) -> UserStats:
    """Deserialize learner stats, tolerating missing optional fields."""
    completed_ids: List[str] = []
    for story_id in data.get("completed_story_ids") or []:
        if story_id not in completed_ids:
            completed_ids.append(story_id)
    return UserStats(
        streak=data.get("streak") or 0,
        last_login_date=data.get("last_login_date") or "",
        words_learned_today=data.get("words_learned_today") or 0,
        mistakes_count=data.get("mistakes_count") or 0,
        settings=DailySettings.from_dict(data.get("settings")),
        stories_completed_this_week=data.get("stories_completed_this_week") or 0,
        last_story_date=data.get("last_story_date") or "",
        completed_story_ids=completed_ids,
        last_focus_words_date=data.get("last_focus_words_date") or "",
        last_focus_words_index=data.get("last_focus_words_index") or 0,
        today_focus_word_ids=list(data.get("today_focus_word_ids") or []),
    )


def story_to_dict(story: Story) -> Dict[str, Any]:
    """Serialize a story."""
    return {
        "id": story.id,
        "title": story.title,
        "content": story.content,
        "target_words": list(story.target_words),
        "questions": [question.to_dict() for question in story.questions],
    }


def story_from_dict(data: Dict[str, Any]) -> Story:
    """Deserialize a user story."""
    return Story(
        id=data["id"],
        title=data["title"],
        content=data["content"],
        target_words=list(data.get("target_words") or []),
        questions=[StoryQuestion.from_dict(q) for q in data.get("questions") or []],
        is_custom=True,
    )


# ---- SQLAlchemy stores ----

class DatabaseWordStore:
    """Word store backed by the `user_words` table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def fetch_all(self) -> FetchResult[List[WordRecord]]:
        """Get all words in insertion order."""
        try:
            rows = self.db.query(UserWordRow).order_by(UserWordRow.position, UserWordRow.created_at).all()
            return FetchResult.success([self._to_record(row) for row in rows])
        except SQLAlchemyError as e:
            self.db.rollback()
            _record_error("fetch words", e)
            return FetchResult.failure(e)
        except CONVERSION_ERRORS as e:
            _record_error("read stored words", e)
            return FetchResult.failure(e)

    def insert(self, words: List[WordRecord]) -> None:
        """Add new words after the existing ones."""
        if not words:
            return
        try:
            last_position = self.db.query(func.max(UserWordRow.position)).scalar()
            position = (last_position or 0) + 1
            rows = []
            for offset, word in enumerate(words):
                row = UserWordRow(id=word.id, position=position + offset)
                self._copy_fields(word, row)
                row.word = word.word
                row.meaning = word.meaning
                row.example = word.example
                row.language = word.language
                rows.append(row)
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _wrap_write_error("insert words", e) from e
        logger.info(f"Inserted {len(words)} words")

    def update(self, word: WordRecord) -> None:
        """Save a word's SRS and analytics fields."""
        self.update_many([word])

    def update_many(self, words: List[WordRecord]) -> None:
        """Save several words' SRS and analytics fields in one commit."""
        if not words:
            return
        try:
            for word in words:
                row = self.db.get(UserWordRow, word.id)
                if row is None:
                    logger.warning(f"Word {word.id} not found, skipping update")
                    continue
                self._copy_fields(word, row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _wrap_write_error("update words", e) from e

    @staticmethod
    def _copy_fields(word: WordRecord, row: UserWordRow) -> None:
        row.status = word.status.value
        row.interval = word.interval
        row.repetition = word.repetition
        row.next_review_date = to_millis(word.next_review_date)
        row.last_review_date = to_millis(word.last_review_date)
        row.strength_score = word.strength_score
        row.mistake_count = word.mistake_count
        row.total_attempts = word.total_attempts
        row.avg_response_time = word.avg_response_time

    @staticmethod
    def _to_record(row: UserWordRow) -> WordRecord:
        return word_from_dict({
            "id": row.id,
            "word": row.word,
            "meaning": row.meaning,
            "example": row.example,
            "language": row.language,
            "status": row.status,
            "interval": row.interval,
            "repetition": row.repetition,
            "next_review_date": row.next_review_date,
            "last_review_date": row.last_review_date,
            "strength_score": row.strength_score,
            "mistake_count": row.mistake_count,
            "total_attempts": row.total_attempts,
            "avg_response_time": row.avg_response_time,
        })


class DatabaseStatsStore:
    """Stats store backed by the `profiles` table."""

    def __init__(self, db: Session, learner_id: str = DEFAULT_LEARNER_ID):
        """Initialize the store with a database session and learner id."""
        self.db = db
        self.learner_id = learner_id

    def fetch(self, today: Optional[str] = None) -> FetchResult[UserStats]:
        """Get the learner's stats, creating a default profile for `today` if absent."""
        try:
            row = self.db.get(ProfileRow, self.learner_id)
            if row is None:
                logger.info(f"Creating default profile for learner {self.learner_id}")
                stats = UserStats(last_login_date=today or today_string())
                row = ProfileRow(id=self.learner_id)
                self._copy_fields(stats, row)
                self.db.add(row)
                self.db.commit()
                return FetchResult.success(stats)
            return FetchResult.success(stats_from_dict({
                column: getattr(row, column) for column in stats_to_dict(UserStats())
            }))
        except SQLAlchemyError as e:
            self.db.rollback()
            _record_error("fetch stats", e)
            return FetchResult.failure(e)
        except CONVERSION_ERRORS as e:
            _record_error("read stored stats", e)
            return FetchResult.failure(e)

    def save(self, stats: UserStats) -> None:
        """Save the learner's stats."""
        try:
            row = self.db.get(ProfileRow, self.learner_id)
            if row is None:
                row = ProfileRow(id=self.learner_id)
                self.db.add(row)
            self._copy_fields(stats, row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _wrap_write_error("save stats", e) from e

    @staticmethod
    def _copy_fields(stats: UserStats, row: ProfileRow) -> None:
        for column, value in stats_to_dict(stats).items():
            setattr(row, column, value)


class DatabaseStoryStore:
    """Story store backed by the `stories` table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def fetch_all(self) -> FetchResult[List[Story]]:
        """Get user stories in the order they were added."""
        try:
            rows = self.db.query(StoryRow).order_by(StoryRow.position, StoryRow.created_at).all()
            return FetchResult.success([
                story_from_dict({
                    "id": row.id,
                    "title": row.title,
                    "content": row.content,
                    "target_words": row.target_words,
                    "questions": row.questions,
                })
                for row in rows
            ])
        except SQLAlchemyError as e:
            self.db.rollback()
            _record_error("fetch stories", e)
            return FetchResult.failure(e)
        except CONVERSION_ERRORS as e:
            _record_error("read stored stories", e)
            return FetchResult.failure(e)

    def insert(self, story: Story) -> None:
        """Add a story after the existing ones."""
        data = story_to_dict(story)
        try:
            last_position = self.db.query(func.max(StoryRow.position)).scalar()
            self.db.add(StoryRow(position=(last_position or 0) + 1, is_custom=True, **data))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _wrap_write_error("insert story", e) from e
        logger.info(f"Inserted story {story.id}: {story.title}")

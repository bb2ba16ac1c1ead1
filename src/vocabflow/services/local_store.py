"""JSON-file stores used when no database is configured."""
import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from vocabflow import monitoring
from vocabflow.dates import today_string
from vocabflow.exceptions import StoreError
from vocabflow.models.learning_models import UserStats, WordRecord
from vocabflow.models.story_models import Story
from vocabflow.services.storage_service import (
    CONVERSION_ERRORS,
    FetchResult,
    stats_from_dict,
    stats_to_dict,
    story_from_dict,
    story_to_dict,
    word_from_dict,
    word_to_dict,
)

logger = logging.getLogger(__name__)

WORDS_FILE = "words.json"
STATS_FILE = "stats.json"
STORIES_FILE = "stories.json"


class JsonFile:
    """A JSON document on disk, replaced atomically on write."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self, default: Any) -> Any:
        """Read the document, returning `default` if the file does not exist."""
        if not self.path.exists():
            return default
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def read_list(self) -> List[Any]:
        """Read a document that must hold a JSON list."""
        data = self.read([])
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON list in {self.path}, found {type(data).__name__}")
        return data

    def write(self, data: Any) -> None:
        """Write the document through a temporary file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            monitoring.store_errors.labels(error_type=type(e).__name__).inc()
            logger.error(f"Error writing {self.path}: {e}")
            raise StoreError(f"Could not write {self.path}: {e}") from e


def _read_failure(path: Path, error: Exception) -> FetchResult:
    monitoring.store_errors.labels(error_type=type(error).__name__).inc()
    logger.error(f"Error reading {path}: {error}")
    return FetchResult.failure(error)


class LocalWordStore:
    """Word store kept in a JSON list."""

    def __init__(self, directory: Path):
        self.file = JsonFile(Path(directory) / WORDS_FILE)

    def fetch_all(self) -> FetchResult[List[WordRecord]]:
        try:
            return FetchResult.success([word_from_dict(item) for item in self.file.read_list()])
        except (OSError, *CONVERSION_ERRORS) as e:
            return _read_failure(self.file.path, e)

    def _read_raw(self) -> List[dict]:
        try:
            return self.file.read_list()
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read {self.file.path}: {e}") from e

    def insert(self, words: List[WordRecord]) -> None:
        if not words:
            return
        current = self._read_raw()
        current.extend(word_to_dict(word) for word in words)
        self.file.write(current)
        logger.info(f"Inserted {len(words)} words into {self.file.path}")

    def update(self, word: WordRecord) -> None:
        self.update_many([word])

    def update_many(self, words: List[WordRecord]) -> None:
        if not words:
            return
        updates = {word.id: word_to_dict(word) for word in words}
        current = self._read_raw()
        for index, item in enumerate(current):
            if not isinstance(item, dict):
                raise StoreError(f"Could not update {self.file.path}: entry {index} is not an object")
            if item.get("id") in updates:
                # Identity fields stay as stored
                current[index] = {**updates.pop(item["id"]), **{
                    key: item.get(key) for key in ("word", "meaning", "example", "language")
                }}
        for word_id in updates:
            logger.warning(f"Word {word_id} not found, skipping update")
        self.file.write(current)


class LocalStatsStore:
    """Stats store kept in a JSON object."""

    def __init__(self, directory: Path):
        self.file = JsonFile(Path(directory) / STATS_FILE)

    def fetch(self, today: Optional[str] = None) -> FetchResult[UserStats]:
        try:
            if not self.file.exists():
                stats = UserStats(last_login_date=today or today_string())
                logger.info("Creating default local stats")
                self.file.write(stats_to_dict(stats))
                return FetchResult.success(stats)
            return FetchResult.success(stats_from_dict(self.file.read({})))
        except StoreError as e:
            return FetchResult.failure(e)
        except (OSError, *CONVERSION_ERRORS) as e:
            return _read_failure(self.file.path, e)

    def save(self, stats: UserStats) -> None:
        self.file.write(stats_to_dict(stats))


class LocalStoryStore:
    """Story store kept in a JSON list."""

    def __init__(self, directory: Path):
        self.file = JsonFile(Path(directory) / STORIES_FILE)

    def fetch_all(self) -> FetchResult[List[Story]]:
        try:
            return FetchResult.success([story_from_dict(item) for item in self.file.read_list()])
        except (OSError, *CONVERSION_ERRORS) as e:
            return _read_failure(self.file.path, e)

    def insert(self, story: Story) -> None:
        try:
            current = self.file.read_list()
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read {self.file.path}: {e}") from e
        current.append(story_to_dict(story))
        self.file.write(current)

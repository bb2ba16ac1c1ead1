"""Test configuration."""
import os
import tempfile
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="vocabflow-test-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from vocabflow.config import ensure_directories
from vocabflow.dates import today_string
from vocabflow.models.base import init_db
from vocabflow.models.learning_models import DailySettings, NewReviewRatio, UserStats, WordRecord, WordStatus

fake = Faker()

NOW = datetime(2024, 3, 14, 12, 0, tzinfo=UTC)
TODAY = today_string(NOW)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def engine(tmp_path: Path):
    """Create a SQLite database file with all tables."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_word() -> Callable[..., WordRecord]:
    """Factory for word records with generated vocabulary."""
    def _make_word(**kwargs) -> WordRecord:
        kwargs.setdefault("word", fake.word())
        kwargs.setdefault("meaning", fake.sentence(nb_words=4))
        kwargs.setdefault("example", fake.sentence())
        if kwargs.get("status", WordStatus.NEW) != WordStatus.NEW:
            kwargs.setdefault("total_attempts", 3)
        return WordRecord(**kwargs)
    return _make_word


@pytest.fixture
def make_words(make_word) -> Callable[..., List[WordRecord]]:
    """Factory for several words sharing the same fields."""
    def _make_words(count: int, **kwargs) -> List[WordRecord]:
        return [make_word(**kwargs) for _ in range(count)]
    return _make_words


@pytest.fixture
def make_stats() -> Callable[..., UserStats]:
    """Factory for stats with explicit daily settings."""
    def _make_stats(
        daily_target: int = 20,
        ratio: NewReviewRatio = NewReviewRatio.BALANCED,
        include_weak_words: bool = True,
        rest_day_mode: bool = False,
        **kwargs,
    ) -> UserStats:
        kwargs.setdefault("last_login_date", TODAY)
        return UserStats(
            settings=DailySettings(
                daily_target=daily_target,
                ratio=ratio,
                include_weak_words=include_weak_words,
                rest_day_mode=rest_day_mode,
            ),
            **kwargs,
        )
    return _make_stats

"""Database models for words, learner profiles and stories."""
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Float,
    Integer,
    JSON,
    String,
    Text,
)

from vocabflow.models.base import Base, TimestampMixin


class UserWordRow(Base, TimestampMixin):
    """Stored vocabulary item with its SRS state."""

    __tablename__ = "user_words"

    id = Column(String(64), primary_key=True)
    position = Column(Integer, index=True)  # insertion order
    word = Column(String, nullable=False)
    meaning = Column(Text, default="")
    example = Column(Text, default="")
    language = Column(String(16), nullable=True)
    status = Column(String(16), nullable=False, default="NEW")
    interval = Column(Integer, default=0)
    repetition = Column(Integer, default=0)
    next_review_date = Column(BigInteger, nullable=True)  # epoch milliseconds
    last_review_date = Column(BigInteger, nullable=True)  # epoch milliseconds
    strength_score = Column(Integer, default=0)
    mistake_count = Column(Integer, default=0)
    total_attempts = Column(Integer, default=0)
    avg_response_time = Column(Float, default=0.0)


class ProfileRow(Base, TimestampMixin):
    """Stored learner stats (one row per learner)."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    streak = Column(Integer, default=0)
    last_login_date = Column(String(10), default="")
    words_learned_today = Column(Integer, default=0)
    mistakes_count = Column(Integer, default=0)
    settings = Column(JSON, nullable=True)
    stories_completed_this_week = Column(Integer, default=0)
    last_story_date = Column(String(10), default="")
    completed_story_ids = Column(JSON, default=list)
    last_focus_words_date = Column(String(10), default="")
    last_focus_words_index = Column(Integer, default=0)
    today_focus_word_ids = Column(JSON, default=list)


class StoryRow(Base, TimestampMixin):
    """Stored user-imported or generated story."""

    __tablename__ = "stories"

    id = Column(String(64), primary_key=True)
    position = Column(Integer, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    target_words = Column(JSON, default=list)
    questions = Column(JSON, default=list)
    is_custom = Column(Boolean, default=True)

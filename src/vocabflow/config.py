"""Configuration settings for the learning scheduler."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LOCAL_STORE_DIR = DATA_DIR / "local"
NLTK_DATA_DIR = DATA_DIR / "nltk"

# Scheduling constants
NEW_WORD_RATIOS = {
    "RETENTION": 0.2,
    "BALANCED": 0.5,
    "GROWTH": 0.8,
}
STORAGE_BACKENDS = ("database", "local")


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        LOCAL_STORE_DIR,
        NLTK_DATA_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    local_store_dir: Path = LOCAL_STORE_DIR
    nltk_data_dir: Path = NLTK_DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabflow.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class StorageSettings:
    """Which store backs words, stats and stories."""
    backend: str = os.getenv("STORAGE_BACKEND", "database").lower()


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class LearningSettings:
    """Learning process settings."""
    daily_target: int = int(os.getenv("DAILY_TARGET", "20"))
    new_review_ratio: str = os.getenv("NEW_REVIEW_RATIO", "BALANCED").upper()
    include_weak_words: bool = os.getenv("INCLUDE_WEAK_WORDS", "true").lower() == "true"
    practice_words_limit: int = int(os.getenv("PRACTICE_WORDS_LIMIT", "10"))
    story_target: str = os.getenv("STORY_TARGET", "DAILY").upper()


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    metrics_port: int = int(os.getenv("METRICS_PORT", "0"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.storage.backend not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")

        if self.learning.daily_target < 1:
            raise ValueError("DAILY_TARGET must be positive")

        if self.learning.new_review_ratio not in NEW_WORD_RATIOS:
            raise ValueError(f"NEW_REVIEW_RATIO must be one of {', '.join(NEW_WORD_RATIOS)}")

        if self.learning.story_target not in ("OFF", "DAILY", "WEEKLY_3", "WEEKLY_5", "WEEKLY_7"):
            raise ValueError("STORY_TARGET must be OFF, DAILY, WEEKLY_3, WEEKLY_5 or WEEKLY_7")

        if self.monitoring.metrics_port < 0:
            raise ValueError("METRICS_PORT cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()

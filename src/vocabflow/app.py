"""Application wiring: stores, database session and learning session."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from vocabflow.config import ensure_directories, settings
from vocabflow.models.base import SessionLocal, init_db
from vocabflow.services.local_store import LocalStatsStore, LocalStoryStore, LocalWordStore
from vocabflow.services.session_service import LearningSession
from vocabflow.services.storage_service import (
    DatabaseStatsStore,
    DatabaseStoryStore,
    DatabaseWordStore,
    DEFAULT_LEARNER_ID,
)


class VocabFlowApp:
    """Main application class."""

    def __init__(self, backend: Optional[str] = None, learner_id: str = DEFAULT_LEARNER_ID):
        """Initialize the application."""
        self.backend = backend or settings.storage.backend
        self.learner_id = learner_id
        self.db: Optional[Session] = None
        self.session: Optional[LearningSession] = None
        self.logger = logging.getLogger(__name__)

    def start(self, create_tables: bool = False) -> LearningSession:
        """Open the stores and create a learning session."""
        if self.session is not None:
            return self.session

        ensure_directories()
        if self.backend == "local":
            directory = settings.paths.local_store_dir
            self.session = LearningSession(
                LocalWordStore(directory),
                LocalStatsStore(directory),
                LocalStoryStore(directory),
            )
            self.logger.info(f"Using local JSON store in {directory}")
        else:
            if create_tables:
                init_db()
                self.logger.info("Database initialized")
            self.db = SessionLocal()
            self.session = LearningSession(
                DatabaseWordStore(self.db),
                DatabaseStatsStore(self.db, self.learner_id),
                DatabaseStoryStore(self.db),
            )
            self.logger.info("Using database store")
        return self.session

    def stop(self) -> None:
        """Flush pending writes and close the database session."""
        if self.session is not None:
            self.session.write_queue.flush()
            self.session = None
        if self.db is not None:
            self.db.close()
            self.db = None
            self.logger.info("Database session closed")

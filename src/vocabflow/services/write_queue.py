"""Write-behind queue for word updates."""
import logging
from typing import Dict, List

from vocabflow import monitoring
from vocabflow.exceptions import StoreError
from vocabflow.models.learning_models import WordRecord
from vocabflow.services.storage_service import WordStore

logger = logging.getLogger(__name__)


class WriteBehindQueue:
    """Collects updated words and saves them to the store in bulk.

    Only the latest version of each word is kept. A failed flush leaves the
    words queued so the next flush retries them; the in-memory word set is
    already up to date and never depends on the outcome.
    """

    def __init__(self, store: WordStore):
        """Initialize the queue with a word store."""
        self.store = store
        self._pending: Dict[str, WordRecord] = {}

    def enqueue(self, word: WordRecord) -> None:
        """Queue the latest version of a word."""
        self._pending[word.id] = word

    @property
    def pending(self) -> List[WordRecord]:
        """Words waiting to be saved, in the order they were first queued."""
        return list(self._pending.values())

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> bool:
        """Save all queued words, returning False if the store failed."""
        if not self._pending:
            return True
        batch = self.pending
        try:
            self.store.update_many(batch)
        except StoreError as e:
            monitoring.write_failures.inc(len(batch))
            logger.error(f"Could not save {len(batch)} word updates, keeping them queued: {e}")
            return False

        for word in batch:
            # Keep anything re-queued with a newer version while saving
            if self._pending.get(word.id) is word:
                del self._pending[word.id]
        logger.debug(f"Saved {len(batch)} word updates")
        return True

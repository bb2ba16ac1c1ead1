"""Session orchestration: learn -> quiz -> apply updates."""
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from enum import Enum
import logging
from typing import Callable, Dict, Iterable, List, Optional

from vocabflow import monitoring
from vocabflow.dates import today_string
from vocabflow.exceptions import SessionStateError, StoreError
from vocabflow.models.learning_models import (
    DailySettings,
    ExtractedWord,
    QuizResult,
    SessionBreakdown,
    UserStats,
    WordRecord,
    WordStatus,
)
from vocabflow.models.story_models import Story
from vocabflow.services import focus_service, progress_service, review_scheduler, story_service
from vocabflow.services.content_generator import StoryGenerator, VocabularyExtractor
from vocabflow.services.memory_model import apply_answer
from vocabflow.services.progress_service import LibrarySummary, PracticeFilter, ProfileProgress
from vocabflow.services.stats_service import (
    StatsService,
    StatsUpdate,
    record_quiz_outcome,
    record_story_completion,
)
from vocabflow.services.storage_service import FetchStatus, StatsStore, StoryStore, WordStore
from vocabflow.services.write_queue import WriteBehindQueue

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Where the learner is in the learn/quiz cycle."""
    IDLE = "IDLE"
    LEARNING = "LEARNING"
    QUIZZING = "QUIZZING"
    STORY = "STORY"


@dataclass
class LoadResult:
    """What happened while loading the learner's data."""
    words: int = 0
    stories: int = 0
    schema_missing: bool = False
    degraded: bool = False  # some data could not be read and defaults were used


@dataclass
class Dashboard:
    """Everything the home screen shows."""
    focus_words: List[WordRecord]
    breakdown: SessionBreakdown
    recommended_story: Optional[Story]
    mistakes: List[WordRecord] = field(default_factory=list)


@dataclass
class QuizSummary:
    """Outcome of a completed quiz."""
    answered: int = 0
    correct: int = 0
    newly_learned: int = 0
    mistakes: int = 0
    persisted: bool = True


@dataclass
class StorySummary:
    """Outcome of a completed story and its quiz."""
    story_id: str
    correct: int = 0
    total: int = 0
    newly_learned: int = 0
    mistakes: int = 0
    persisted: bool = True


def build_word_record(item: ExtractedWord) -> WordRecord:
    """Create a NEW word with default SRS fields from an extracted triple."""
    return WordRecord(
        word=item.word,
        meaning=item.meaning,
        example=item.example,
        language=item.language or "en",
    )


class LearningSession:
    """Drives one learner through dashboard, learning, quiz and story screens."""

    def __init__(
        self,
        word_store: WordStore,
        stats_store: StatsStore,
        story_store: StoryStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the session with its stores and an optional clock."""
        self.word_store = word_store
        self.story_store = story_store
        self.stats_service = StatsService(stats_store)
        self.write_queue = WriteBehindQueue(word_store)
        self.clock = clock or (lambda: datetime.now(UTC))

        self.state = SessionState.IDLE
        self.words: List[WordRecord] = []
        self.stats: Optional[UserStats] = None
        self.user_stories: List[Story] = []
        self.cards: List[WordRecord] = []
        self.current_story: Optional[Story] = None
        # Settings used for today only, and the saved ones they replace
        self.today_settings: Optional[DailySettings] = None
        self.saved_settings: Optional[DailySettings] = None

    # ---- helpers ----

    def _now(self) -> datetime:
        return self.clock()

    def _today(self) -> str:
        return today_string(self._now())

    def _require_state(self, action: str, *states: SessionState) -> None:
        if self.state not in states:
            raise SessionStateError(action, self.state.value)

    def _require_stats(self) -> UserStats:
        if self.stats is None:
            self.load()
        return self.stats

    def _commit(self, update: StatsUpdate) -> UserStats:
        """Save a stats update, keeping today-only settings out of the stored record."""
        stats = self._require_stats()
        if self.today_settings is None:
            self.stats = self.stats_service.commit(stats, update)
        else:
            stored = replace(stats, settings=self.saved_settings)
            self.stats = replace(self.stats_service.commit(stored, update), settings=self.today_settings)
        return self.stats

    # ---- loading ----

    def load(self) -> LoadResult:
        """Load words, stats and stories, degrading to defaults on store failures.

        Stats are rolled over to today before anything else reads them.
        """
        result = LoadResult()
        today = self._today()

        stats_result = self.stats_service.fetch_stats(today)
        self.stats = stats_result.data
        self.today_settings = None
        self.saved_settings = None

        words_result = self.word_store.fetch_all()
        self.words = words_result.data if words_result.ok else []

        stories_result = self.story_store.fetch_all()
        self.user_stories = stories_result.data if stories_result.ok else []

        statuses = [stats_result.status, words_result.status, stories_result.status]
        result.schema_missing = FetchStatus.SCHEMA_MISSING in statuses
        result.degraded = any(status != FetchStatus.OK for status in statuses)
        result.words = len(self.words)
        result.stories = len(self.user_stories)
        if result.schema_missing:
            logger.warning("Storage tables are missing, running with an empty library")
        logger.info(f"Loaded {result.words} words and {result.stories} user stories")
        return result

    # ---- dashboard ----

    def catalog(self) -> List[Story]:
        """Get built-in and user stories."""
        return story_service.get_all_stories(self.user_stories)

    def dashboard(self) -> Dashboard:
        """Compute today's focus words, breakdown and story recommendation."""
        stats = self._require_stats()
        now = self._now()
        today = self._today()

        update = StatsUpdate()
        focus = focus_service.get_today_focus_words(self.words, stats, today)
        update.merge(focus.stats_patch)
        self._commit(update)

        plan = review_scheduler.plan_session(self.words, self.stats, now=now, today=today)
        return Dashboard(
            focus_words=focus.words,
            breakdown=plan.breakdown,
            recommended_story=story_service.recommend_story(self.stats.completed_story_ids, self.catalog()),
            mistakes=review_scheduler.get_mistake_words(self.words),
        )

    def mistakes(self) -> List[WordRecord]:
        """Get words to revisit on the review-mistakes screen."""
        return review_scheduler.get_mistake_words(self.words)

    def practice_words(self) -> List[WordRecord]:
        """Get a random set of seen words for pronunciation practice."""
        return review_scheduler.get_practice_words(self.words)

    # ---- learn / quiz ----

    def start_learning(self) -> Optional[List[WordRecord]]:
        """Start a session with today's plan, or return None when there is nothing to review."""
        self._require_state("start learning", SessionState.IDLE)
        stats = self._require_stats()
        plan = review_scheduler.plan_session(self.words, stats, now=self._now(), today=self._today())
        if not plan.session_list:
            monitoring.empty_sessions.inc()
            logger.info("No words to review or learn right now")
            return None

        self.cards = plan.session_list
        self.state = SessionState.LEARNING
        monitoring.sessions_planned.inc()
        monitoring.session_size.observe(len(self.cards))
        logger.info(f"Started session with {len(self.cards)} words: {plan.breakdown}")
        return self.cards

    def finish_learning(self) -> List[WordRecord]:
        """Move from the learning cards to the quiz."""
        self._require_state("start the quiz", SessionState.LEARNING)
        self.state = SessionState.QUIZZING
        return self.cards

    def _apply_results(self, results: Iterable[QuizResult]) -> QuizSummary:
        """Apply answers to library words and flush them through the write queue."""
        now = self._now()
        summary = QuizSummary()

        by_id: Dict[str, QuizResult] = {}
        for result in results:
            by_id[result.word_id] = result

        updated_words: List[WordRecord] = []
        for word in self.words:
            result = by_id.pop(word.id, None)
            if result is None:
                updated_words.append(word)
                continue

            updated = apply_answer(word, result.correct, result.response_time_ms, now=now)
            if word.status == WordStatus.NEW and updated.status != WordStatus.NEW:
                summary.newly_learned += 1
            if result.correct:
                summary.correct += 1
            else:
                summary.mistakes += 1
            summary.answered += 1
            monitoring.answers_recorded.labels(correct=str(result.correct).lower()).inc()
            self.write_queue.enqueue(updated)
            updated_words.append(updated)

        for word_id in by_id:
            logger.warning(f"Quiz answer for unknown word {word_id} ignored")

        self.words = updated_words
        summary.persisted = self.write_queue.flush()
        monitoring.words_learned.inc(summary.newly_learned)
        return summary

    def complete_quiz(self, results: Iterable[QuizResult]) -> QuizSummary:
        """Apply quiz answers, save the words and update stats once."""
        self._require_state("complete the quiz", SessionState.QUIZZING)
        stats = self._require_stats()
        summary = self._apply_results(results)

        self._commit(StatsUpdate().merge(record_quiz_outcome(stats, summary.newly_learned, summary.mistakes)))

        self.cards = []
        self.state = SessionState.IDLE
        logger.info(
            f"Quiz completed: {summary.correct}/{summary.answered} correct, "
            f"{summary.newly_learned} newly learned"
        )
        return summary

    def cancel(self) -> None:
        """Abandon the current session without applying anything."""
        self.cards = []
        self.current_story = None
        self.state = SessionState.IDLE

    # ---- stories ----

    def start_story(self) -> Optional[Story]:
        """Open the recommended story, or return None when every story is completed."""
        self._require_state("start a story", SessionState.IDLE)
        stats = self._require_stats()
        story = story_service.recommend_story(stats.completed_story_ids, self.catalog())
        if story is None:
            logger.info("All stories completed")
            return None
        self.current_story = story
        self.state = SessionState.STORY
        return story

    def open_story(self, story_id: str) -> Optional[Story]:
        """Open a story picked from the catalog, or return None when the id is unknown."""
        self._require_state("open a story", SessionState.IDLE)
        story = next((story for story in self.catalog() if story.id == story_id), None)
        if story is None:
            logger.warning(f"Story {story_id} not found in the catalog")
            return None
        self.current_story = story
        self.state = SessionState.STORY
        return story

    def complete_story(self, answers: Optional[Dict[str, str]] = None) -> StorySummary:
        """Record the current story as completed, grading its quiz when answers are given.

        Answers are keyed by question id. Questions about library words update
        those words like quiz answers, and all stats changes are saved once.
        """
        self._require_state("complete a story", SessionState.STORY)
        stats = self._require_stats()
        story = self.current_story
        summary = StorySummary(story_id=story.id)
        update = StatsUpdate()

        if answers is not None:
            graded = story_service.grade_story(story, answers, self.words)
            applied = self._apply_results(graded.word_results)
            summary.correct = graded.correct
            summary.total = graded.total
            summary.newly_learned = applied.newly_learned
            summary.mistakes = applied.mistakes
            summary.persisted = applied.persisted
            update.merge(record_quiz_outcome(stats, applied.newly_learned, applied.mistakes))

        update.merge(record_story_completion(stats, story.id, self._today()))
        self._commit(update)
        monitoring.stories_completed.inc()
        logger.info(f"Story {story.id} completed: {summary.correct}/{summary.total} correct")

        self.current_story = None
        self.state = SessionState.IDLE
        return summary

    # ---- imports ----

    def import_words(self, items: Iterable[ExtractedWord]) -> List[WordRecord]:
        """Add extracted vocabulary to the library as NEW words."""
        new_words = [build_word_record(item) for item in items]
        if not new_words:
            return []
        self.words = [*self.words, *new_words]
        try:
            self.word_store.insert(new_words)
        except StoreError as e:
            logger.error(f"Imported words are kept in memory only: {e}")
        monitoring.words_imported.inc(len(new_words))
        return new_words

    def import_text(self, raw_text: str, extractor: VocabularyExtractor) -> List[WordRecord]:
        """Extract vocabulary from raw text and import it."""
        return self.import_words(extractor.extract(raw_text))

    def import_story(self, story: Story) -> Story:
        """Add a user story to the catalog."""
        story.is_custom = True
        self.user_stories = [*self.user_stories, story]
        try:
            self.story_store.insert(story)
        except StoreError as e:
            logger.error(f"Imported story is kept in memory only: {e}")
        return story

    def generate_story(self, raw_text: str, generator: StoryGenerator) -> Story:
        """Generate a story from raw text and import it."""
        return self.import_story(generator.generate(raw_text))

    # ---- settings ----

    def apply_settings_today(self, daily: DailySettings) -> UserStats:
        """Use new settings until the next load without saving them.

        Later stats saves keep the learner's saved settings in the stored record.
        """
        stats = self._require_stats()
        if self.today_settings is None:
            self.saved_settings = stats.settings
        self.today_settings = daily
        self.stats = replace(stats, settings=daily)
        return self.stats

    def save_default_settings(self, daily: DailySettings) -> UserStats:
        """Use new settings and save them as the learner's defaults."""
        self._require_stats()
        self.today_settings = None
        self.saved_settings = None
        return self._commit(StatsUpdate().merge({"settings": daily}))

    # ---- progress ----

    def profile(self) -> ProfileProgress:
        """Get XP, level and badges for the profile screen."""
        return progress_service.profile_progress(self.words, self._require_stats())

    def library(
        self,
        query: str = "",
        status: Optional[WordStatus] = None,
        practice: PracticeFilter = PracticeFilter.ALL,
    ) -> List[WordRecord]:
        """Get library words matching the search and filters."""
        return progress_service.filter_library(self.words, query, status, practice)

    def library_summary(self) -> LibrarySummary:
        """Get word counts for the library screen."""
        return progress_service.library_summary(self.words)

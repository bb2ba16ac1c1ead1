"""Story catalog, recommendation and quiz grading."""
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from vocabflow.models.learning_models import QuizResult, WordRecord
from vocabflow.models.story_models import QuestionType, Story, StoryQuestion

# Built-in stories, always offered before user stories
SYSTEM_STORIES: List[Story] = [
    Story(
        id="story_1",
        title="The Morning Routine",
        content=(
            "John woke up early to the sound of birds. He brewed a strong coffee and sat by the "
            "window. The sun was rising, casting a golden glow over the city. He opened his book "
            "and began to read, enjoying the quiet moment before the chaos of the day began."
        ),
        target_words=["coffee", "window", "sun", "book", "chaos", "city", "morning"],
        questions=[
            StoryQuestion(
                id="q1",
                type=QuestionType.FILL_BLANK,
                target_word="coffee",
                question="He brewed a strong ___ and sat by the window.",
                correct_answer="coffee",
            ),
            StoryQuestion(
                id="q2",
                type=QuestionType.MATCHING,
                target_word="chaos",
                question='What does "chaos" mean in this context?',
                correct_answer="Complete disorder and confusion",
                options=["Complete disorder and confusion", "A peaceful time", "A type of breakfast"],
            ),
        ],
    ),
    Story(
        id="story_2",
        title="A Walk in the Park",
        content=(
            "Sarah decided to take a break from work. She walked to the nearby park to clear her "
            "mind. The trees were green and the air was fresh. She saw a dog chasing a ball and "
            "smiled. It was important to appreciate nature."
        ),
        target_words=["park", "trees", "air", "dog", "nature", "work", "break"],
        questions=[
            StoryQuestion(
                id="q3",
                type=QuestionType.FILL_BLANK,
                target_word="nature",
                question="It was important to appreciate ___.",
                correct_answer="nature",
            ),
            StoryQuestion(
                id="q4",
                type=QuestionType.MATCHING,
                target_word="fresh",
                question="The air was ___.",
                correct_answer="fresh",
                options=["fresh", "stale", "dirty"],
            ),
        ],
    ),
    Story(
        id="story_3",
        title="The Tech Conference",
        content=(
            "The developers gathered in the main hall. The speaker discussed the future of "
            "artificial intelligence. Everyone listened intently, taking notes on their laptops. "
            "Innovation was moving fast, and nobody wanted to be left behind."
        ),
        target_words=["developers", "future", "intelligence", "notes", "innovation", "laptops"],
        questions=[
            StoryQuestion(
                id="q5",
                type=QuestionType.FILL_BLANK,
                target_word="innovation",
                question="___ was moving fast.",
                correct_answer="innovation",
            ),
            StoryQuestion(
                id="q6",
                type=QuestionType.MATCHING,
                target_word="future",
                question="The speaker discussed the ___ of AI.",
                correct_answer="future",
                options=["future", "past", "history"],
            ),
        ],
    ),
]


def get_all_stories(user_stories: Optional[List[Story]] = None) -> List[Story]:
    """Get the full catalog: built-in stories first, then user stories."""
    return [*SYSTEM_STORIES, *(user_stories or [])]


def recommend_story(completed_ids: Iterable[str], catalog: List[Story]) -> Optional[Story]:
    """Get the first story in catalog order that has not been completed."""
    completed = set(completed_ids)
    return next((story for story in catalog if story.id not in completed), None)


def find_word_in_library(word_text: str, library: List[WordRecord]) -> Optional[WordRecord]:
    """Find a library word matching a story word, ignoring case."""
    wanted = word_text.lower()
    return next((word for word in library if word.word.lower() == wanted), None)


@dataclass
class StoryQuizResult:
    """Graded answers to a story's questions."""
    correct: int = 0
    total: int = 0
    word_results: List[QuizResult] = field(default_factory=list)


def grade_story_answer(question: StoryQuestion, answer: str) -> bool:
    """Check one answer: options must match exactly, typed answers ignore case and spacing."""
    if question.type == QuestionType.MATCHING:
        return answer == question.correct_answer
    return answer.strip().lower() == question.correct_answer.strip().lower()


def grade_story(story: Story, answers: Mapping[str, str], library: List[WordRecord]) -> StoryQuizResult:
    """Grade answers keyed by question id.

    Unanswered questions count as wrong. Each question whose target word is in
    the library yields a quiz result for that word; its response time is the
    word's current average, so grading leaves the average unchanged.
    """
    result = StoryQuizResult(total=len(story.questions))
    for question in story.questions:
        correct = grade_story_answer(question, answers.get(question.id, ""))
        if correct:
            result.correct += 1
        word = find_word_in_library(question.target_word, library)
        if word is not None:
            result.word_results.append(QuizResult(word.id, correct, word.avg_response_time))
    return result

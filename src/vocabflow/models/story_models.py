"""Models for story-related data."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


class QuestionType(str, Enum):
    """Kinds of story comprehension questions."""
    FILL_BLANK = "FILL_BLANK"
    MATCHING = "MATCHING"


@dataclass
class StoryQuestion:
    """A quiz question about a story's vocabulary."""
    id: str
    type: QuestionType
    question: str  # The sentence with a blank, or the word to match
    correct_answer: str
    target_word: str
    options: Optional[List[str]] = None  # MATCHING only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "question": self.question,
            "correct_answer": self.correct_answer,
            "target_word": self.target_word,
            "options": list(self.options) if self.options is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryQuestion":
        return cls(
            id=data["id"],
            type=QuestionType(data["type"]),
            question=data["question"],
            correct_answer=data["correct_answer"],
            target_word=data.get("target_word", ""),
            options=data.get("options"),
        )


@dataclass
class Story:
    """A short text built around a set of target words."""
    title: str
    content: str
    target_words: List[str] = field(default_factory=list)
    questions: List[StoryQuestion] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_custom: bool = False

"""Vocabulary extraction and story generation using NLTK."""
from datetime import datetime, timedelta
import logging
import random
import re
from typing import Any, List, Optional, Protocol
import uuid

import nltk
from nltk.corpus import wordnet
from nltk.tokenize import PunktSentenceTokenizer, RegexpTokenizer

from vocabflow.config import settings
from vocabflow.models.learning_models import ExtractedWord
from vocabflow.models.story_models import QuestionType, Story, StoryQuestion

logger = logging.getLogger(__name__)

MIN_WORD_LENGTH = 3
MAX_EXTRACTED_WORDS = 50
MAX_STORY_QUESTIONS = 6
MATCHING_OPTIONS = 3
TITLE_WORDS = 6


class VocabularyExtractor(Protocol):
    """Turns raw text into vocabulary triples."""

    def extract(self, raw_text: str) -> List[ExtractedWord]: ...


class StoryGenerator(Protocol):
    """Turns raw text into a story with quiz questions."""

    def generate(self, raw_text: str) -> Story: ...


class WordNetData:
    """Makes sure the WordNet corpus is available, downloading it when missing."""
    _last_check: Optional[datetime] = None
    _check_interval = timedelta(days=7)  # Check for updates every 7 days

    @classmethod
    def ensure(cls) -> None:
        """Check and download NLTK WordNet data if needed."""
        current_time = datetime.now()
        if cls._last_check is not None and current_time - cls._last_check <= cls._check_interval:
            return

        download_dir = str(settings.paths.nltk_data_dir)
        if download_dir not in nltk.data.path:
            nltk.data.path.append(download_dir)
        try:
            nltk.data.find("corpora/wordnet")
        except LookupError:
            # Wordnet is not installed, download it
            nltk.download("wordnet", download_dir=download_dir, quiet=True)
            logger.info("Downloaded NLTK wordnet data")
        cls._last_check = current_time


class WordNetVocabularyExtractor:
    """Extracts words with WordNet definitions and examples.

    A text with one entry per line is treated as a word list and every entry
    is kept; running prose is tokenized and only words WordNet knows are kept.
    """

    def __init__(self, lexicon: Any = None, language: str = "en", max_words: int = MAX_EXTRACTED_WORDS):
        if lexicon is None:
            WordNetData.ensure()
            lexicon = wordnet
        self.lexicon = lexicon
        self.language = language
        self.max_words = max_words
        self.word_tokenizer = RegexpTokenizer(r"[A-Za-z][A-Za-z'-]*")
        self.sentence_tokenizer = PunktSentenceTokenizer()

    @staticmethod
    def is_word_list(raw_text: str) -> bool:
        """Check whether the text is a list of words rather than sentences."""
        lines = [line.strip() for line in raw_text.splitlines() if line.strip()]
        return bool(lines) and all(len(line.split()) <= 3 and not line.endswith(".") for line in lines)

    def lookup(self, word: str) -> tuple[str, str]:
        """Get a definition and example for a word, empty when unknown."""
        try:
            synsets = self.lexicon.synsets(word.replace(" ", "_"))
        except Exception as e:
            logger.error(f"Error looking up word: {word}, error: {e}")
            return "", ""
        if not synsets:
            return "", ""
        synset = synsets[0]
        examples = synset.examples()
        return synset.definition(), examples[0] if examples else ""

    def _candidates(self, raw_text: str) -> List[str]:
        if self.is_word_list(raw_text):
            words = [line.strip() for line in raw_text.splitlines() if line.strip()]
        else:
            words = [
                token.lower() for token in self.word_tokenizer.tokenize(raw_text)
                if len(token) >= MIN_WORD_LENGTH
            ]
        unique: List[str] = []
        seen = set()
        for word in words:
            key = word.lower()
            if key not in seen:
                seen.add(key)
                unique.append(word)
        return unique

    def extract(self, raw_text: str) -> List[ExtractedWord]:
        """Extract vocabulary triples from raw text."""
        word_list = self.is_word_list(raw_text)
        sentences = [] if word_list else self.sentence_tokenizer.tokenize(raw_text)

        extracted: List[ExtractedWord] = []
        for word in self._candidates(raw_text):
            meaning, example = self.lookup(word)
            if not meaning and not word_list:
                continue
            if not word_list:
                # Prefer the sentence the word was found in
                pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
                example = next((s for s in sentences if pattern.search(s)), example)
            extracted.append(ExtractedWord(word=word, meaning=meaning, example=example, language=self.language))
            if len(extracted) >= self.max_words:
                break
        logger.info(f"Extracted {len(extracted)} words from {len(raw_text)} characters of text")
        return extracted


class SimpleStoryGenerator:
    """Builds a story quiz from a text and its vocabulary."""

    def __init__(self, extractor: VocabularyExtractor, rng: Optional[random.Random] = None):
        self.extractor = extractor
        self.rng = rng or random.Random()
        self.sentence_tokenizer = PunktSentenceTokenizer()

    @staticmethod
    def make_title(content: str) -> str:
        words = content.split()
        title = " ".join(words[:TITLE_WORDS]).rstrip(".,;:!?")
        return title + ("..." if len(words) > TITLE_WORDS else "")

    def generate(self, raw_text: str) -> Story:
        """Generate a story with fill-in-the-blank and matching questions."""
        content = raw_text.strip()
        sentences = self.sentence_tokenizer.tokenize(content)
        vocabulary = self.extractor.extract(content)
        meanings = [item.meaning for item in vocabulary if item.meaning]

        questions: List[StoryQuestion] = []
        for item in vocabulary:
            if len(questions) >= MAX_STORY_QUESTIONS:
                break
            pattern = re.compile(rf"\b{re.escape(item.word)}\b", re.IGNORECASE)
            sentence = next((s for s in sentences if pattern.search(s)), None)
            if sentence is not None and len(questions) % 2 == 0:
                questions.append(StoryQuestion(
                    id=uuid.uuid4().hex,
                    type=QuestionType.FILL_BLANK,
                    target_word=item.word,
                    question=pattern.sub("___", sentence, count=1),
                    correct_answer=item.word,
                ))
                continue
            distractors = [meaning for meaning in meanings if meaning != item.meaning]
            if item.meaning and len(distractors) >= MATCHING_OPTIONS - 1:
                options = [item.meaning, *self.rng.sample(distractors, MATCHING_OPTIONS - 1)]
                self.rng.shuffle(options)
                questions.append(StoryQuestion(
                    id=uuid.uuid4().hex,
                    type=QuestionType.MATCHING,
                    target_word=item.word,
                    question=f'What does "{item.word}" mean in this context?',
                    correct_answer=item.meaning,
                    options=options,
                ))

        story = Story(
            title=self.make_title(content),
            content=content,
            target_words=[item.word for item in vocabulary],
            questions=questions,
            is_custom=True,
        )
        logger.info(f"Generated story '{story.title}' with {len(questions)} questions")
        return story

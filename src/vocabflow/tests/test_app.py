"""Tests for application wiring and the command line."""
from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest

from vocabflow.__main__ import main
from vocabflow.app import VocabFlowApp
from vocabflow.config import settings
from vocabflow.models.learning_models import ExtractedWord
from vocabflow.services.local_store import LocalStoryStore, LocalWordStore
from vocabflow.services.storage_service import DatabaseWordStore


class StaticExtractor:
    """Extractor returning one entry per whitespace-separated token."""

    def __init__(self, *args, **kwargs):
        pass

    def extract(self, raw_text: str) -> List[ExtractedWord]:
        return [ExtractedWord(word=token, meaning=f"meaning of {token}") for token in raw_text.split()]


@pytest.fixture
def local_dir(tmp_path: Path):
    """Point the local backend at a temporary directory."""
    with patch.object(settings.paths, "local_store_dir", tmp_path):
        yield tmp_path


def test_local_backend(local_dir: Path) -> None:
    """Test starting and stopping with local stores."""
    app = VocabFlowApp(backend="local")
    session = app.start()

    assert isinstance(session.word_store, LocalWordStore)
    assert app.start() is session
    assert app.db is None

    app.stop()
    assert app.session is None


def test_database_backend() -> None:
    """Test starting with database stores."""
    with patch("vocabflow.app.SessionLocal") as session_local:
        app = VocabFlowApp(backend="database", learner_id="learner-1")
        session = app.start()

        assert isinstance(session.word_store, DatabaseWordStore)
        assert session.stats_service.store.learner_id == "learner-1"
        app.stop()
        session_local.return_value.close.assert_called_once()
        assert app.db is None


def test_plan_command(local_dir: Path, capsys) -> None:
    """Test the plan command on an empty library."""
    assert main(["--backend", "local", "plan"]) == 0

    output = capsys.readouterr().out
    assert "Streak: 0 day(s)" in output
    assert "No words to review or learn right now!" in output
    assert "Story available: The Morning Routine" in output


def test_import_and_plan(local_dir: Path, tmp_path: Path, capsys) -> None:
    """Test importing a word file and planning with it."""
    words_file = tmp_path / "words.txt"
    words_file.write_text("harbor storm anchor", encoding="utf-8")

    with patch("vocabflow.__main__.WordNetVocabularyExtractor", StaticExtractor):
        assert main(["--backend", "local", "import", str(words_file)]) == 0
    assert "Imported 3 words" in capsys.readouterr().out
    assert [word.word for word in LocalWordStore(local_dir).fetch_all().data] == ["harbor", "storm", "anchor"]

    assert main(["--backend", "local", "plan"]) == 0
    output = capsys.readouterr().out
    assert "  - harbor: meaning of harbor" in output
    assert "Session: 3 words (3 new, 0 review, 0 weak)" in output


def test_import_story_command(local_dir: Path, tmp_path: Path, capsys) -> None:
    """Test generating a story from a text file."""
    story_file = tmp_path / "story.txt"
    story_file.write_text("The sailor reached the harbor. A storm was coming.", encoding="utf-8")

    with patch("vocabflow.__main__.WordNetVocabularyExtractor", StaticExtractor):
        assert main(["--backend", "local", "import-story", str(story_file)]) == 0

    assert "Imported story 'The sailor reached the harbor. A...'" in capsys.readouterr().out
    assert len(LocalStoryStore(local_dir).fetch_all().data) == 1


def test_missing_input_file(local_dir: Path, tmp_path: Path) -> None:
    """Test that an unreadable input file fails cleanly."""
    assert main(["--backend", "local", "import", str(tmp_path / "missing.txt")]) == 1


def test_profile_command(local_dir: Path, capsys) -> None:
    """Test the profile command for a new learner."""
    assert main(["--backend", "local", "profile"]) == 0

    output = capsys.readouterr().out
    assert "Level 1: 0 XP (0% to 200 XP)" in output
    assert "Words: 0 total, 0 practiced, 0 learned" in output
    assert "Badges: none yet" in output

"""Command line entry point."""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from vocabflow.app import VocabFlowApp
from vocabflow.config import settings
from vocabflow.logging_config import setup_logging
from vocabflow.monitoring import start_monitoring
from vocabflow.services.content_generator import SimpleStoryGenerator, WordNetVocabularyExtractor

logger = logging.getLogger("vocabflow")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="vocabflow", description="Adaptive vocabulary scheduler")
    parser.add_argument("--backend", choices=["database", "local"], default=None,
                        help="Storage backend (defaults to STORAGE_BACKEND)")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables")
    subparsers.add_parser("plan", help="Show today's focus words and session breakdown")
    subparsers.add_parser("profile", help="Show XP, level, badges and library counts")

    import_parser = subparsers.add_parser("import", help="Extract vocabulary from a text file")
    import_parser.add_argument("file", type=Path)

    story_parser = subparsers.add_parser("import-story", help="Generate a story quiz from a text file")
    story_parser.add_argument("file", type=Path)
    return parser


def run_plan(app: VocabFlowApp) -> int:
    session = app.start()
    load = session.load()
    if load.schema_missing:
        print("Storage is not set up yet, run `vocabflow init-db` first.")
    dashboard = session.dashboard()
    stats = session.stats
    breakdown = dashboard.breakdown

    print(f"Streak: {stats.streak} day(s), learned today: {stats.words_learned_today}")
    print(f"Today's focus words ({len(dashboard.focus_words)}):")
    for word in dashboard.focus_words:
        print(f"  - {word.word}: {word.meaning}")
    if breakdown.total == 0:
        print("No words to review or learn right now!")
    else:
        print(
            f"Session: {breakdown.total} words ({breakdown.new_count} new, {breakdown.review_count} review, "
            f"{breakdown.weak_count} weak), about {breakdown.estimated_minutes} min"
        )
    if breakdown.story_available and dashboard.recommended_story is not None:
        print(f"Story available: {dashboard.recommended_story.title}")
    return 0


def run_profile(app: VocabFlowApp) -> int:
    session = app.start()
    session.load()
    progress = session.profile()
    summary = session.library_summary()

    print(f"Level {progress.level}: {progress.xp} XP ({progress.level_progress:.0f}% to {progress.next_level_xp} XP)")
    print(f"Words: {summary.total} total, {summary.practiced} practiced, {progress.learned_count} learned")
    print(f"Stories completed: {progress.stories_completed}")
    badges = ", ".join(badge.name for badge in progress.unlocked_badges) or "none yet"
    print(f"Badges: {badges}")
    return 0


def run_import(app: VocabFlowApp, file: Path, story: bool) -> int:
    text = file.read_text(encoding="utf-8")
    session = app.start()
    session.load()
    extractor = WordNetVocabularyExtractor()
    if story:
        generated = session.generate_story(text, SimpleStoryGenerator(extractor))
        print(f"Imported story '{generated.title}' with {len(generated.questions)} questions")
    else:
        words = session.import_text(text, extractor)
        print(f"Imported {len(words)} words")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)
    setup_logging("Starting VocabFlow ...", args.log_level)
    if settings.monitoring.metrics_port:
        start_monitoring(settings.monitoring.metrics_port)

    app = VocabFlowApp(backend=args.backend)
    try:
        if args.command == "init-db":
            app.start(create_tables=True)
            print("Tables created")
            return 0
        if args.command == "plan":
            return run_plan(app)
        if args.command == "profile":
            return run_profile(app)
        if args.command == "import":
            return run_import(app, args.file, story=False)
        if args.command == "import-story":
            return run_import(app, args.file, story=True)
    except OSError as e:
        logger.error(f"Could not read input: {e}")
        return 1
    finally:
        app.stop()
    return 2


if __name__ == "__main__":
    sys.exit(main())

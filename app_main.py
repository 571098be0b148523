"""Application entry point for the QuizRanking service."""

from __future__ import annotations

import argparse
from pathlib import Path

from quiz_ranking.config import AppSettings
from quiz_ranking.core.quiz_importer import QuizImportError
from quiz_ranking.core.scoring_manager import ScoringManager
from quiz_ranking.server.api_server import run_api_server
from quiz_ranking.storage.database import Database
from quiz_ranking.utils.logging_config import configure_logging


def _parse_arguments(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve quiz scores, leaderboards and statistics.")
    parser.add_argument(
        "quiz_files",
        nargs="*",
        type=Path,
        help="Quiz text files to import into the catalog before serving.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging and storage, import quiz files, and serve the API."""
    arguments = _parse_arguments(argv)
    settings = AppSettings.from_environment()
    logger = configure_logging(settings.log_level)
    logger.info("Starting QuizRanking service…")

    database = Database(settings.database_url)
    database.create_schema()
    manager = ScoringManager(database, policy=settings.policy)

    for quiz_file in arguments.quiz_files:
        try:
            quiz_id = manager.import_quiz_file(quiz_file)
        except (OSError, QuizImportError) as exc:
            logger.error("Could not import %s: %s", quiz_file, exc)
            raise SystemExit(1) from exc
        logger.info("Imported %s as quiz %s", quiz_file, quiz_id)

    logger.info("API available at http://%s:%s/", settings.host, settings.port)
    try:
        run_api_server(manager, host=settings.host, port=settings.port, log_level=settings.log_level)
    finally:
        database.dispose()


if __name__ == "__main__":
    main()

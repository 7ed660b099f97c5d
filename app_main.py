"""Application entry point for QuizFlow."""

from __future__ import annotations

from quizflow.config import Settings
from quizflow.constants.about import APP_NAME, APP_VERSION
from quizflow.core.exam_manager import QuizServices
from quizflow.server.api_server import run_api_server
from quizflow.utils.logging_config import configure_logging


def main() -> None:
    """Read settings, initialize logging, and serve the API."""
    settings = Settings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    services = QuizServices.from_settings(settings)
    if services.quizzes.uses_local_fallback():
        logger.info("Quiz records are kept in %s", settings.local_store_path)
    run_api_server(services, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()

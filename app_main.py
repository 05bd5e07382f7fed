"""Application entry point for the Knowledge Quiz API."""

from __future__ import annotations

from knowledge_quiz.core.services.leaderboard import JsonFileLeaderboard
from knowledge_quiz.core.services.question_bank import (
    FileQuestionBank,
    HttpQuestionBank,
    QuestionBankProvider,
)
from knowledge_quiz.core.services.session_store import JsonFileSessionStore
from knowledge_quiz.core.session_controller import SessionController
from knowledge_quiz.server.api_server import start_api_server
from knowledge_quiz.utils.app_config import AppConfig
from knowledge_quiz.utils.logging_config import configure_logging


def build_question_bank(config: AppConfig) -> QuestionBankProvider:
    if config.bank_url:
        return HttpQuestionBank(config.bank_url, seed=config.shuffle_seed)
    return FileQuestionBank(config.bank_dir, seed=config.shuffle_seed)


def build_controller(config: AppConfig) -> SessionController:
    return SessionController(
        question_bank=build_question_bank(config),
        store=JsonFileSessionStore(config.state_dir),
        leaderboard=JsonFileLeaderboard(config.state_dir),
    )


def main() -> None:
    """Initialize logging, restore the player and serve the quiz API."""
    config = AppConfig.from_env()
    logger = configure_logging(config.log_level)
    logger.info("Starting Knowledge Quiz…")

    controller = build_controller(config)
    player = controller.load_player_name()
    if player:
        logger.info("Welcome back, %s", player)

    server_thread = start_api_server(controller=controller, host=config.host, port=config.port)
    logger.info("Quiz API available at http://%s:%d/", config.host, config.port)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        controller.close()


if __name__ == "__main__":
    main()

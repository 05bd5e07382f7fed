"""FastAPI adapter exposing the session controller to a browser front end."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from knowledge_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from knowledge_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from knowledge_quiz.core.errors import InvalidOperation, LoadError
from knowledge_quiz.core.markdown_math_renderer import renderer
from knowledge_quiz.core.models import LeaderboardEntry, QuizResult, ReviewItem, Session
from knowledge_quiz.core.services.game_session import accuracy_percentage
from knowledge_quiz.core.session_controller import SessionController

logger = logging.getLogger(__name__)


class PlayerPayload(BaseModel):
    """Payload schema for setting the player identity."""

    player_name: str = Field(min_length=1, max_length=80)


class AnswerPayload(BaseModel):
    """Payload schema for selecting an option on the current question."""

    option_index: int


def _get_controller_dependency(controller: SessionController):
    def dependency() -> SessionController:
        return controller

    return dependency


def _session_payload(session: Session) -> dict[str, object]:
    question = session.current_question
    payload: dict[str, object] = {
        "subject_id": session.subject_id,
        "player_name": session.player_name,
        "question_number": session.current_question_index + 1,
        "question_count": session.question_count,
        "question_html": renderer.render_fragment(question.prompt),
        "options": [renderer.render_inline(option) for option in question.options],
        "selected_option_index": session.current_answer,
        "answered_count": sum(1 for answer in session.answers if answer is not None),
        "time_left_seconds": session.time_left_seconds,
        "time_fraction": session.time_fraction,
        "progress_fraction": session.progress_fraction,
        "is_last_question": session.is_last_question,
        "quiz_started": session.quiz_started,
        "quiz_completed": session.quiz_completed,
    }
    return payload


def _entry_payload(entry: LeaderboardEntry, question_count: int | None) -> dict[str, object]:
    payload: dict[str, object] = {
        "player_name": entry.player_name,
        "score": entry.score,
        "submitted_at": entry.submitted_at.isoformat(),
    }
    if question_count:
        payload["accuracy_percentage"] = accuracy_percentage(entry.score, question_count)
    return payload


def _result_payload(result: QuizResult) -> dict[str, object]:
    return {
        "subject_id": result.subject_id,
        "player_name": result.player_name,
        "score": result.score,
        "incorrect": result.incorrect,
        "total_questions": result.total_questions,
        "accuracy_percentage": result.accuracy_percentage,
        "rank": result.rank,
        "message": result.message,
        "leaderboard": [
            {"rank": position, **_entry_payload(entry, result.total_questions)}
            for position, entry in enumerate(result.leaderboard, start=1)
        ],
    }


def _review_payload(item: ReviewItem) -> dict[str, object]:
    return {
        "question_number": item.question_number,
        "question_html": renderer.render_fragment(item.prompt),
        "options": [renderer.render_inline(option) for option in item.options],
        "selected_option_index": item.selected_option_index,
        "correct_option_index": item.correct_option_index,
        "is_correct": item.is_correct,
        "explanation_html": renderer.render_fragment(item.explanation) if item.explanation else None,
    }


def _require_session(controller: SessionController) -> Session:
    session = controller.session
    if session is None:
        raise HTTPException(status_code=404, detail="No active quiz session.")
    return session


def create_api_app(controller: SessionController) -> FastAPI:
    """Create a FastAPI application wired to the provided session controller."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        controller.close()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    controller_dep = _get_controller_dependency(controller)

    @app.exception_handler(LoadError)
    async def handle_load_error(_: Request, exc: LoadError) -> JSONResponse:
        logger.warning("Load failed: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})

    @app.exception_handler(InvalidOperation)
    async def handle_invalid_operation(_: Request, exc: InvalidOperation) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    # --- Player ---

    @app.get("/player")
    def get_player(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        return {"player_name": manager.player_name}

    @app.put("/player")
    def set_player(
        payload: PlayerPayload,
        manager: SessionController = Depends(controller_dep),
    ) -> dict[str, object]:
        return {"player_name": manager.save_player_name(payload.player_name)}

    @app.delete("/player", status_code=204)
    def logout(manager: SessionController = Depends(controller_dep)) -> None:
        manager.clear_all_data()

    # --- Subjects ---

    @app.get("/subjects")
    def list_subjects(manager: SessionController = Depends(controller_dep)) -> list[dict[str, object]]:
        return [
            {
                "id": subject.id,
                "name": subject.name,
                "time_in_minutes": subject.time_in_minutes,
                "question_count": subject.question_count,
            }
            for subject in manager.list_subjects()
        ]

    @app.post("/subjects/{subject_id}/enter")
    def enter_subject(
        subject_id: str,
        manager: SessionController = Depends(controller_dep),
    ) -> dict[str, object]:
        session = manager.enter_subject(subject_id)
        manager.start_timer()
        return _session_payload(session)

    @app.get("/leaderboard/{subject_id}")
    def get_leaderboard(
        subject_id: str,
        manager: SessionController = Depends(controller_dep),
    ) -> list[dict[str, object]]:
        return [
            {"rank": position, **_entry_payload(entry, None)}
            for position, entry in enumerate(manager.get_leaderboard(subject_id), start=1)
        ]

    # --- Active session ---

    @app.get("/session")
    def get_session(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        return _session_payload(_require_session(manager))

    @app.post("/session/answer")
    def select_answer(
        payload: AnswerPayload,
        manager: SessionController = Depends(controller_dep),
    ) -> dict[str, object]:
        _require_session(manager)
        if not manager.select_answer(payload.option_index):
            raise HTTPException(status_code=409, detail="Answer rejected.")
        return _session_payload(_require_session(manager))

    @app.post("/session/next")
    def next_question(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        _require_session(manager)
        advanced = manager.next_question()
        return {"advanced": advanced, "session": _session_payload(_require_session(manager))}

    @app.post("/session/previous")
    def previous_question(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        _require_session(manager)
        manager.previous_question()
        return _session_payload(_require_session(manager))

    @app.get("/session/hint")
    def get_hint(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        _require_session(manager)
        return {"hint_html": renderer.render_fragment(manager.current_hint())}

    @app.post("/session/complete")
    def complete_quiz(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        _require_session(manager)
        manager.stop_timer()
        manager.complete_quiz()
        return _result_payload(manager.get_results())

    @app.post("/session/restart")
    def restart_quiz(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        session = _require_session(manager)
        manager.stop_timer()
        manager.clear_state(session.subject_id)
        fresh = manager.start_quiz(session.subject_id)
        manager.start_timer()
        return _session_payload(fresh)

    @app.post("/session/leave", status_code=204)
    def leave_quiz(manager: SessionController = Depends(controller_dep)) -> None:
        manager.stop_timer()
        session = manager.session
        if session is not None:
            manager.save_state(session.subject_id)

    @app.get("/session/results")
    def get_results(manager: SessionController = Depends(controller_dep)) -> dict[str, object]:
        _require_session(manager)
        return _result_payload(manager.get_results())

    @app.get("/session/review")
    def get_review(manager: SessionController = Depends(controller_dep)) -> list[dict[str, object]]:
        _require_session(manager)
        return [_review_payload(item) for item in manager.review()]

    return app


def start_api_server(
    controller: SessionController,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(controller)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="QuizApiServer", daemon=True)
    thread.start()
    return thread

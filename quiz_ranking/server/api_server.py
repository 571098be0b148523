"""FastAPI server that exposes submission, ranking and analytics endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
import uvicorn

from quiz_ranking.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quiz_ranking.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_ranking.constants.scoring_constants import DEFAULT_LEADERBOARD_SIZE
from quiz_ranking.core.errors import (
    NotFoundError,
    ScoringError,
    StateConflictError,
    StorageError,
    ValidationError,
)
from quiz_ranking.core.models import Difficulty
from quiz_ranking.core.scoring_manager import ScoringManager


class SubmissionPayload(BaseModel):
    """Payload schema for a completed quiz attempt."""

    user_id: int
    answers: list[int]
    time_spent_seconds: int = Field(description="Wall-clock seconds the attempt took.")


def _status_for(error: ScoringError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, StateConflictError):
        return 409
    if isinstance(error, StorageError):
        return 503
    return 400


def _to_http_error(error: ScoringError) -> HTTPException:
    return HTTPException(
        status_code=_status_for(error),
        detail={"reason": error.reason, "message": error.message},
    )


def _get_scoring_manager_dependency(scoring_manager: ScoringManager):
    def dependency() -> ScoringManager:
        return scoring_manager

    return dependency


def create_api_app(scoring_manager: ScoringManager) -> FastAPI:
    """Create a FastAPI application wired to the provided scoring manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    manager_dep = _get_scoring_manager_dependency(scoring_manager)

    @app.post("/quizzes/{quiz_id}/submissions", status_code=201)
    def submit_quiz(
        quiz_id: int,
        payload: SubmissionPayload,
        manager: ScoringManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            result = manager.submit_quiz(
                quiz_id, payload.user_id, payload.answers, payload.time_spent_seconds
            )
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return asdict(result)

    @app.get("/quizzes/{quiz_id}/leaderboard")
    def get_leaderboard(
        quiz_id: int,
        limit: int = Query(DEFAULT_LEADERBOARD_SIZE),
        manager: ScoringManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            entries = manager.get_leaderboard(quiz_id, limit)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return [asdict(entry) for entry in entries]

    @app.get("/quizzes/{quiz_id}/rank/{user_id}")
    def get_user_rank(
        quiz_id: int,
        user_id: int,
        manager: ScoringManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            rank = manager.get_user_rank(quiz_id, user_id)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return {"quiz_id": quiz_id, "user_id": user_id, "rank": rank}

    @app.get("/quizzes/{quiz_id}/stats")
    def get_quiz_stats(
        quiz_id: int,
        manager: ScoringManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            stats = manager.get_quiz_stats(quiz_id)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return asdict(stats)

    @app.get("/leaderboard/global")
    def get_global_leaderboard(
        limit: int = Query(DEFAULT_LEADERBOARD_SIZE),
        difficulty: Difficulty | None = None,
        manager: ScoringManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            entries = manager.get_global_leaderboard(limit, difficulty)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return [asdict(entry) for entry in entries]

    @app.get("/users/{user_id}/stats")
    def get_user_stats(
        user_id: int,
        manager: ScoringManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            stats = manager.get_user_stats(user_id)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return asdict(stats)

    @app.get("/questions/difficult")
    def get_difficult_questions(
        limit: int = Query(20),
        manager: ScoringManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            insights = manager.get_difficult_questions(limit)
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return [asdict(insight) for insight in insights]

    @app.get("/questions/categories")
    def get_category_success_rates(
        manager: ScoringManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            rates = manager.get_category_success_rates()
        except ScoringError as exc:
            raise _to_http_error(exc) from exc
        return [asdict(rate) for rate in rates]

    return app


def run_api_server(
    scoring_manager: ScoringManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(scoring_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    uvicorn.Server(config).run()

"""FastAPI server that exposes the student exam flow and teacher passthroughs."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import secrets
from typing import Annotated, Any, Literal, Union

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
import uvicorn

from quizflow.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from quizflow.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEVICE_COOKIE,
    DEVICE_COOKIE_MAX_AGE,
    SESSION_COOKIE,
    SESSION_COOKIE_MAX_AGE,
)
from quizflow.constants.quiz_constants import MIN_PARTICIPANT_NAME_LENGTH, REDIRECT_TARGET
from quizflow.core.answer_collector import AnswersFrozenError
from quizflow.core.attempt_controller import AttemptState, AttemptStateError
from quizflow.core.exam_manager import ExamSession, ExamSessionManager, QuizServices
from quizflow.core.markdown_math_renderer import renderer
from quizflow.core.models import (
    Answer,
    EssayAnswer,
    Principal,
    QuestionType,
    QuestionWithOptions,
    SelectedOptions,
    TrueFalseAnswer,
)
from quizflow.core.notifications import Notification, NotificationCenter
from quizflow.core.services.remote_store import PersistenceError
from quizflow.server.student_page import STUDENT_PAGE_HTML

logger = logging.getLogger(__name__)


# --- Payloads ------------------------------------------------------------------


class NamePayload(BaseModel):
    name: str = ""


class MultipleChoicePayload(BaseModel):
    type: Literal["multiple_choice"]
    option_ids: list[str] = Field(default_factory=list)


class TrueFalsePayload(BaseModel):
    type: Literal["true_false"]
    value: bool


class EssayPayload(BaseModel):
    type: Literal["essay"]
    text: str = ""


AnswerPayload = Annotated[
    Union[MultipleChoicePayload, TrueFalsePayload, EssayPayload],
    Field(discriminator="type"),
]


class TogglePayload(BaseModel):
    option_id: str
    selected: bool


class QuizPayload(BaseModel):
    name: str
    duration_minutes: int
    question_type: str = "mixed"
    description: str | None = None
    owner_id: str | None = None


class OptionPayload(BaseModel):
    content: str
    is_correct: bool = False
    order_no: int | None = None


class QuestionPayload(BaseModel):
    type: QuestionType
    content: str
    points: int = Field(default=1, ge=0)
    order_no: int
    options: list[OptionPayload] = Field(default_factory=list)


def _to_answer(payload: MultipleChoicePayload | TrueFalsePayload | EssayPayload) -> Answer:
    if isinstance(payload, MultipleChoicePayload):
        return SelectedOptions(frozenset(payload.option_ids))
    if isinstance(payload, TrueFalsePayload):
        return TrueFalseAnswer(payload.value)
    return EssayAnswer(payload.text)


# --- Dependencies ----------------------------------------------------------------


def get_services(request: Request) -> QuizServices:
    return request.app.state.services


def get_session_manager(request: Request) -> ExamSessionManager:
    return request.app.state.sessions


async def get_principal(
    request: Request,
    services: QuizServices = Depends(get_services),
) -> Principal | None:
    """Resolve the signed-in account from a bearer token, if one was sent."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    if not token or services.remote is None:
        return None
    try:
        user = await services.remote.get_user(token)
    except PersistenceError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return Principal(user_id=str(user["id"]), email=user.get("email"))


def get_exam_session(
    request: Request,
    manager: ExamSessionManager = Depends(get_session_manager),
) -> ExamSession:
    session = manager.get_session(request.cookies.get(SESSION_COOKIE))
    if session is None:
        raise HTTPException(
            status_code=404,
            detail={"message": "No exam session.", "redirect": REDIRECT_TARGET, "notifications": []},
        )
    return session


# --- Helpers ---------------------------------------------------------------------


def _notifications(items: list[Notification]) -> list[dict[str, Any]]:
    return [item.to_dict() for item in items]


def _error(status_code: int, message: str, notifier: NotificationCenter, **extra: Any) -> HTTPException:
    detail = {"message": message, "notifications": _notifications(notifier.drain())}
    detail.update(extra)
    return HTTPException(status_code=status_code, detail=detail)


def _render_question(item: QuestionWithOptions) -> dict[str, Any]:
    question = item.question
    return {
        "id": question.id,
        "type": question.type.value,
        "points": question.points,
        "order_no": question.order_no,
        "content_html": renderer.render_fragment(question.content),
        "options": [
            {"id": option.id, "content_html": renderer.render_inline(option.content)}
            for option in item.options
        ],
    }


def _session_snapshot(session: ExamSession) -> dict[str, Any]:
    controller = session.controller
    countdown = controller.countdown
    result = controller.result
    return {
        "quiz_id": controller.quiz_id,
        "state": controller.state.value,
        "participant_name": controller.participant_name,
        "attempt_id": controller.attempt_id,
        "can_start": controller.can_start(),
        "answers": {
            question_id: answer.to_row()
            for question_id, answer in controller.answers.snapshot().items()
        },
        "result": result.to_dict() if result is not None else None,
        "countdown_remaining": countdown.remaining if countdown is not None else None,
        "redirect": controller.redirected_to,
        "notifications": _notifications(session.notifier.drain()),
    }


def _require_owner(principal: Principal | None, services: QuizServices, owner_id: str | None) -> str:
    if principal is not None:
        return principal.user_id
    if services.quizzes.uses_local_fallback() and owner_id:
        return owner_id
    raise HTTPException(status_code=401, detail="Sign in to manage quizzes.")


def _require_remote(services: QuizServices) -> None:
    if services.remote is None:
        raise HTTPException(status_code=503, detail="No hosted backend is configured.")


# --- Application -------------------------------------------------------------------


def create_api_app(services: QuizServices) -> FastAPI:
    """Create a FastAPI application wired to the provided services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.sessions.close_all()

    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, description=APP_ABOUT_TEXT, lifespan=lifespan)
    app.state.services = services
    app.state.sessions = ExamSessionManager(services)

    @app.get("/", response_class=HTMLResponse)
    def serve_student_page() -> str:
        return STUDENT_PAGE_HTML

    # --- Exam flow ---

    @app.get("/api/exam")
    async def load_exam(
        request: Request,
        response: Response,
        quiz: str = "",
        services: QuizServices = Depends(get_services),
        manager: ExamSessionManager = Depends(get_session_manager),
        principal: Principal | None = Depends(get_principal),
    ) -> dict[str, Any]:
        notifier = NotificationCenter()
        quiz_id = quiz.strip()
        if not quiz_id:
            notifier.error("Invalid link", "The quiz id is missing from the link.")
            raise _error(400, "Missing quiz id.", notifier)

        try:
            quiz_record = await services.quizzes.get_quiz(quiz_id)
            questions = (
                await services.questions.list_questions(quiz_id)
                if services.questions is not None
                else []
            )
        except PersistenceError as exc:
            notifier.error("Could not load the quiz", str(exc))
            raise _error(502, str(exc), notifier) from exc

        device_id = request.cookies.get(DEVICE_COOKIE) or ""
        if not device_id:
            device_id = secrets.token_urlsafe(16)
            response.set_cookie(
                key=DEVICE_COOKIE,
                value=device_id,
                max_age=DEVICE_COOKIE_MAX_AGE,
                samesite="lax",
                httponly=True,
            )

        session = manager.get_session(request.cookies.get(SESSION_COOKIE))
        if session is None or session.controller.quiz_id != quiz_id:
            if session is not None:
                manager.close_session(session.token)
            session = manager.open_session(quiz_id, questions, principal, device_id=device_id)
            response.set_cookie(
                key=SESSION_COOKIE,
                value=session.token,
                max_age=SESSION_COOKIE_MAX_AGE,
                samesite="lax",
                httponly=True,
            )

        return {
            "quiz": {
                "id": quiz_record.id,
                "name": quiz_record.name,
                "description": quiz_record.description,
                "duration_minutes": quiz_record.duration_minutes,
            },
            "questions": [_render_question(item) for item in session.controller.questions],
            "session": _session_snapshot(session),
        }

    @app.post("/api/exam/name")
    async def update_name(payload: NamePayload, session: ExamSession = Depends(get_exam_session)) -> dict[str, Any]:
        try:
            allowed = session.controller.set_participant_name(payload.name)
        except AttemptStateError as exc:
            raise _error(409, str(exc), session.notifier) from exc
        snapshot = _session_snapshot(session)
        snapshot["allowed"] = allowed
        return snapshot

    @app.post("/api/exam/start")
    async def start_exam(payload: NamePayload, session: ExamSession = Depends(get_exam_session)) -> dict[str, Any]:
        controller = session.controller
        if controller.state is not AttemptState.NOT_STARTED:
            raise _error(409, "The quiz has already been started.", session.notifier)
        if payload.name and not controller.set_participant_name(payload.name):
            raise _error(409, "Quiz already completed.", session.notifier, redirect=REDIRECT_TARGET)
        if not controller.can_start():
            raise _error(
                422,
                f"Enter a name of at least {MIN_PARTICIPANT_NAME_LENGTH} characters.",
                session.notifier,
            )
        if not await controller.start():
            if controller.redirected_to:
                raise _error(409, "Quiz already completed.", session.notifier, redirect=REDIRECT_TARGET)
            raise _error(502, "The attempt could not be started.", session.notifier)
        return _session_snapshot(session)

    @app.put("/api/exam/answers/{question_id}")
    async def record_answer(
        question_id: str,
        payload: AnswerPayload,
        session: ExamSession = Depends(get_exam_session),
    ) -> dict[str, Any]:
        answer = _to_answer(payload)
        try:
            session.controller.record_answer(question_id, answer)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except (AttemptStateError, AnswersFrozenError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"question_id": question_id, **answer.to_row()}

    @app.post("/api/exam/answers/{question_id}/toggle")
    async def toggle_option(
        question_id: str,
        payload: TogglePayload,
        session: ExamSession = Depends(get_exam_session),
    ) -> dict[str, Any]:
        try:
            answer = session.controller.toggle_option(question_id, payload.option_id, payload.selected)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except (AttemptStateError, AnswersFrozenError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"question_id": question_id, **answer.to_row()}

    @app.post("/api/exam/submit")
    async def submit_exam(session: ExamSession = Depends(get_exam_session)) -> dict[str, Any]:
        controller = session.controller
        if controller.state is not AttemptState.IN_PROGRESS:
            raise _error(409, "There is no attempt in progress.", session.notifier)
        result = await controller.submit()
        if result is None:
            if controller.state is AttemptState.IN_PROGRESS:
                raise _error(502, "Your answers could not be submitted.", session.notifier)
            raise _error(409, "The attempt was already submitted.", session.notifier)
        return _session_snapshot(session)

    @app.get("/api/exam/session")
    async def read_session(session: ExamSession = Depends(get_exam_session)) -> dict[str, Any]:
        return _session_snapshot(session)

    @app.delete("/api/exam/session", status_code=204)
    async def close_session(
        request: Request,
        manager: ExamSessionManager = Depends(get_session_manager),
    ) -> Response:
        token = request.cookies.get(SESSION_COOKIE)
        if token:
            manager.close_session(token)
        response = Response(status_code=204)
        response.delete_cookie(SESSION_COOKIE)
        return response

    # --- Teacher passthroughs ---

    @app.post("/api/quizzes", status_code=201)
    async def create_quiz(
        payload: QuizPayload,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> dict[str, Any]:
        owner_id = _require_owner(principal, services, payload.owner_id)
        try:
            quiz = await services.quizzes.create_quiz(
                name=payload.name,
                owner_id=owner_id,
                duration_minutes=payload.duration_minutes,
                question_type=payload.question_type,
                description=payload.description,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return quiz.to_row()

    @app.get("/api/quizzes")
    async def list_quizzes(
        owner_id: str | None = None,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> list[dict[str, Any]]:
        owner = _require_owner(principal, services, owner_id)
        try:
            quizzes = await services.quizzes.list_quizzes(owner)
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return [quiz.to_row() for quiz in quizzes]

    @app.post("/api/quizzes/{quiz_id}/questions", status_code=201)
    async def create_question(
        quiz_id: str,
        payload: QuestionPayload,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> dict[str, Any]:
        _require_remote(services)
        if principal is None:
            raise HTTPException(status_code=401, detail="Sign in to edit questions.")
        try:
            question = await services.questions.create_question(
                quiz_id=quiz_id,
                type=payload.type,
                content=payload.content,
                points=payload.points,
                order_no=payload.order_no,
                options=[option.model_dump(exclude_none=True) for option in payload.options],
            )
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {
            "id": question.id,
            "quiz_id": question.quiz_id,
            "type": question.type.value,
            "content": question.content,
            "points": question.points,
            "order_no": question.order_no,
        }

    @app.delete("/api/quizzes/{quiz_id}/questions/{question_id}", status_code=204)
    async def delete_question(
        quiz_id: str,
        question_id: str,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> Response:
        _require_remote(services)
        if principal is None:
            raise HTTPException(status_code=401, detail="Sign in to edit questions.")
        try:
            await services.questions.delete_question(question_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        logger.info("Deleted question %s from quiz %s", question_id, quiz_id)
        return Response(status_code=204)

    @app.get("/api/quizzes/{quiz_id}/attempts")
    async def list_attempts(
        quiz_id: str,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> list[dict[str, Any]]:
        _require_remote(services)
        if principal is None:
            raise HTTPException(status_code=401, detail="Sign in to view results.")
        try:
            attempts = await services.attempts.list_attempts(quiz_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return [attempt.to_dict() for attempt in attempts]

    @app.get("/api/attempts/{attempt_id}/responses")
    async def list_responses(
        attempt_id: str,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> list[dict[str, Any]]:
        _require_remote(services)
        if principal is None:
            raise HTTPException(status_code=401, detail="Sign in to view results.")
        try:
            responses = await services.attempts.list_responses(attempt_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return [item.to_dict() for item in responses]

    @app.get("/api/quizzes/{quiz_id}/responses")
    async def list_anonymous_responses(
        quiz_id: str,
        owner_id: str | None = None,
        services: QuizServices = Depends(get_services),
        principal: Principal | None = Depends(get_principal),
    ) -> list[dict[str, Any]]:
        owner = _require_owner(principal, services, owner_id)
        try:
            quiz = await services.quizzes.get_quiz(quiz_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        if quiz.owner_id != owner:
            raise HTTPException(status_code=403, detail="Only the quiz owner can view its responses.")
        return services.response_log.entries(quiz_id)

    return app


def run_api_server(
    services: QuizServices,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the FastAPI app with uvicorn until interrupted."""
    app = create_api_app(services)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    logger.info("Serving QuizFlow on http://%s:%d/", host, port)
    server.run()

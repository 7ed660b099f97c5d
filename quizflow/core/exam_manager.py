"""Wiring of quiz services and bookkeeping of live exam sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import secrets
from threading import Lock
import time
from typing import Sequence

from quizflow.config import Settings
from quizflow.constants.network_constants import SESSION_COOKIE_MAX_AGE
from quizflow.core.attempt_controller import AttemptController
from quizflow.core.completion_guard import CompletionGuard
from quizflow.core.models import Principal, QuestionWithOptions
from quizflow.core.notifications import NotificationCenter
from quizflow.core.services.answer_persistence import AnswerPersistence
from quizflow.core.services.attempt_store import AttemptStore
from quizflow.core.services.local_store import LocalStore
from quizflow.core.services.question_repository import QuestionRepository
from quizflow.core.services.quiz_repository import QuizRepository
from quizflow.core.services.remote_store import RemoteStore
from quizflow.core.services.response_log import ResponseLog

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QuizServices:
    """Collaborators shared by every exam session."""

    local: LocalStore
    quizzes: QuizRepository
    guard: CompletionGuard
    response_log: ResponseLog
    persistence: AnswerPersistence
    remote: RemoteStore | None = None
    questions: QuestionRepository | None = None
    attempts: AttemptStore | None = None
    redirect_seconds: int = 45

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuizServices":
        local = LocalStore(settings.local_store_path)
        remote = None
        if settings.remote_configured:
            remote = RemoteStore(settings.supabase_url, settings.supabase_key)
        else:
            logger.warning("No hosted backend configured; quizzes are stored locally only")
        return cls.build(local, remote, redirect_seconds=settings.redirect_seconds)

    @classmethod
    def build(
        cls,
        local: LocalStore,
        remote: RemoteStore | None = None,
        *,
        redirect_seconds: int = 45,
    ) -> "QuizServices":
        attempts = AttemptStore(remote) if remote is not None else None
        response_log = ResponseLog(local)
        return cls(
            local=local,
            quizzes=QuizRepository(remote, local),
            guard=CompletionGuard(local),
            response_log=response_log,
            persistence=AnswerPersistence(attempts, response_log),
            remote=remote,
            questions=QuestionRepository(remote) if remote is not None else None,
            attempts=attempts,
            redirect_seconds=redirect_seconds,
        )


@dataclass(slots=True)
class ExamSession:
    token: str
    controller: AttemptController
    notifier: NotificationCenter
    last_seen: float = field(default_factory=time.monotonic)


class ExamSessionManager:
    """Tracks one attempt controller per browser session token."""

    def __init__(self, services: QuizServices) -> None:
        self._services = services
        self._sessions: dict[str, ExamSession] = {}
        self._lock = Lock()

    def open_session(
        self,
        quiz_id: str,
        questions: Sequence[QuestionWithOptions],
        principal: Principal | None = None,
        device_id: str = "",
    ) -> ExamSession:
        self._prune_idle()
        token = secrets.token_urlsafe(24)
        notifier = NotificationCenter()
        controller = AttemptController(
            quiz_id=quiz_id,
            questions=questions,
            guard=self._services.guard.for_device(device_id),
            persistence=self._services.persistence,
            notifier=notifier,
            attempt_store=self._services.attempts,
            principal=principal,
            on_redirect=lambda _target: self.close_session(token),
            countdown_seconds=self._services.redirect_seconds,
        )
        session = ExamSession(token=token, controller=controller, notifier=notifier)
        with self._lock:
            self._sessions[token] = session
        logger.info("Opened exam session for quiz %s", quiz_id)
        return session

    def get_session(self, token: str | None) -> ExamSession | None:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is not None:
                session.last_seen = time.monotonic()
            return session

    def close_session(self, token: str) -> None:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is not None:
            session.controller.close()
            logger.info("Closed exam session for quiz %s", session.controller.quiz_id)

    def close_all(self) -> None:
        with self._lock:
            tokens = list(self._sessions)
        for token in tokens:
            self.close_session(token)

    def _prune_idle(self) -> None:
        cutoff = time.monotonic() - SESSION_COOKIE_MAX_AGE
        with self._lock:
            stale = [token for token, s in self._sessions.items() if s.last_seen < cutoff]
        for token in stale:
            self.close_session(token)

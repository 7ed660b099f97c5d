"""Service for managing quiz records."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from uuid import uuid4

from quizflow.constants.quiz_constants import QUIZZES_STORAGE_KEY
from quizflow.core.models import Quiz
from quizflow.core.services.local_store import LocalStore
from quizflow.core.services.remote_store import PersistenceError, RemoteStore, equals

logger = logging.getLogger(__name__)

_QUIZ_TYPES = ("multiple_choice", "essay", "mixed")


class QuizRepository:
    """Creates and lists quizzes.

    Quiz records fall back to the local store when no hosted backend is
    configured. Questions, options and attempts always need the backend.
    """

    def __init__(self, remote: RemoteStore | None, local: LocalStore) -> None:
        self._remote = remote
        self._local = local

    def uses_local_fallback(self) -> bool:
        return self._remote is None

    async def create_quiz(
        self,
        *,
        name: str,
        owner_id: str,
        duration_minutes: int,
        question_type: str = "mixed",
        description: str | None = None,
    ) -> Quiz:
        cleaned_name = name.strip()
        if not cleaned_name:
            raise ValueError("Quiz name must not be empty.")
        if duration_minutes <= 0:
            raise ValueError("Quiz duration must be a positive number of minutes.")
        if question_type not in _QUIZ_TYPES:
            raise ValueError(f"Unknown quiz question type: {question_type}")

        if self._remote is None:
            quiz = Quiz(
                id=str(uuid4()),
                name=cleaned_name,
                owner_id=owner_id,
                duration_minutes=duration_minutes,
                question_type=question_type,
                created_at=datetime.now(timezone.utc).isoformat(),
                description=description,
            )
            rows = self._load_local()
            rows.insert(0, quiz.to_row())
            self._local.set_json(QUIZZES_STORAGE_KEY, rows)
            logger.info("Stored quiz %s locally", quiz.id)
            return quiz

        inserted = await self._remote.insert(
            "quizzes",
            {
                "name": cleaned_name,
                "description": description,
                "duration_minutes": duration_minutes,
                "question_type": question_type,
                "owner_id": owner_id,
            },
        )
        if not inserted:
            raise PersistenceError("Quiz was not returned after insert.")
        return Quiz.from_row(inserted[0])

    async def list_quizzes(self, owner_id: str) -> list[Quiz]:
        """Return the owner's quizzes, newest first."""
        if self._remote is None:
            return [Quiz.from_row(row) for row in self._load_local() if str(row.get("owner_id")) == owner_id]
        rows = await self._remote.select(
            "quizzes",
            filters={"owner_id": equals(owner_id)},
            order="created_at.desc",
        )
        return [Quiz.from_row(row) for row in rows]

    async def get_quiz(self, quiz_id: str) -> Quiz:
        if self._remote is None:
            for row in self._load_local():
                if str(row.get("id")) == quiz_id:
                    return Quiz.from_row(row)
            raise PersistenceError(f"Quiz {quiz_id} not found.")
        row = await self._remote.select_one("quizzes", filters={"id": equals(quiz_id)})
        return Quiz.from_row(row)

    def _load_local(self) -> list[dict]:
        rows = self._local.get_json(QUIZZES_STORAGE_KEY, default=[])
        return rows if isinstance(rows, list) else []

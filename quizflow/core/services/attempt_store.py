"""Service for attempt rows and their per-question responses."""

from __future__ import annotations

from datetime import datetime, timezone

from quizflow.core.models import Answer, Attempt, AttemptResponse
from quizflow.core.services.remote_store import PersistenceError, RemoteStore, equals


class AttemptStore:
    """Attempts of authenticated participants, kept in the hosted backend."""

    def __init__(self, remote: RemoteStore) -> None:
        self._remote = remote

    async def start_attempt(self, quiz_id: str, student_id: str) -> Attempt:
        inserted = await self._remote.insert(
            "quiz_attempts",
            {"quiz_id": quiz_id, "student_id": student_id},
        )
        if not inserted:
            raise PersistenceError("Attempt was not returned after insert.")
        return Attempt.from_row(inserted[0])

    async def submit_attempt(self, attempt_id: str, total_score: int, duration_seconds: int) -> None:
        await self._remote.update(
            "quiz_attempts",
            {
                "submitted_at": datetime.now(timezone.utc).isoformat(),
                "total_score": total_score,
                "duration_seconds": duration_seconds,
            },
            filters={"id": equals(attempt_id)},
        )

    async def save_response(
        self,
        attempt_id: str,
        question_id: str,
        answer: Answer,
        score: int | None = None,
        time_spent_seconds: int | None = None,
    ) -> None:
        row = {
            "attempt_id": attempt_id,
            "question_id": question_id,
            "score": score,
            "time_spent_seconds": time_spent_seconds,
        }
        row.update(answer.to_row())
        await self._remote.insert("attempt_responses", row, returning=False)

    async def list_attempts(self, quiz_id: str) -> list[Attempt]:
        """Return the quiz's attempts, most recently started first."""
        rows = await self._remote.select(
            "quiz_attempts",
            filters={"quiz_id": equals(quiz_id)},
            order="started_at.desc",
        )
        return [Attempt.from_row(row) for row in rows]

    async def list_responses(self, attempt_id: str) -> list[AttemptResponse]:
        rows = await self._remote.select(
            "attempt_responses",
            filters={"attempt_id": equals(attempt_id)},
        )
        return [AttemptResponse.from_row(row) for row in rows]

"""Chooses where a submitted attempt's answers are written."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable, Mapping

from quizflow.core.models import Answer, Principal, QuestionWithOptions
from quizflow.core.services.attempt_store import AttemptStore
from quizflow.core.services.response_log import ResponseLog

logger = logging.getLogger(__name__)


class AnswerPersistence:
    """Authenticated accounts get one response row per answered question.

    Anonymous participants get a single aggregated entry in the local
    per-quiz log. Rows are written one at a time; a failure part way
    through leaves the earlier rows in place.
    """

    def __init__(self, attempt_store: AttemptStore | None, response_log: ResponseLog) -> None:
        self._attempt_store = attempt_store
        self._response_log = response_log

    async def persist(
        self,
        *,
        principal: Principal | None,
        quiz_id: str,
        attempt_id: str,
        participant_name: str,
        questions: Iterable[QuestionWithOptions],
        answers: Mapping[str, Answer],
        duration_seconds: int,
    ) -> int:
        """Write the answers and return how many records were written."""
        if principal is not None:
            return await self._save_responses(attempt_id, questions, answers)

        self._response_log.append(
            quiz_id,
            {
                "attempt_id": attempt_id,
                "student_name": participant_name,
                "at": datetime.now(timezone.utc).isoformat(),
                "answers": {question_id: answer.to_row() for question_id, answer in answers.items()},
                "duration_seconds": duration_seconds,
            },
        )
        logger.info("Logged anonymous attempt %s for quiz %s", attempt_id, quiz_id)
        return 1

    async def _save_responses(
        self,
        attempt_id: str,
        questions: Iterable[QuestionWithOptions],
        answers: Mapping[str, Answer],
    ) -> int:
        if self._attempt_store is None:
            raise RuntimeError("Authenticated attempts need a configured backend.")
        written = 0
        for item in questions:
            answer = answers.get(item.question.id)
            if answer is None:
                continue
            await self._attempt_store.save_response(
                attempt_id,
                item.question.id,
                answer,
                score=None,
                time_spent_seconds=None,
            )
            written += 1
        logger.info("Saved %d response row(s) for attempt %s", written, attempt_id)
        return written

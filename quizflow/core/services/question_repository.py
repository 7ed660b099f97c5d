"""Service for reading and authoring quiz questions."""

from __future__ import annotations

from collections import defaultdict

from quizflow.core.models import Question, QuestionOption, QuestionType, QuestionWithOptions
from quizflow.core.services.remote_store import PersistenceError, RemoteStore, equals, in_list


class QuestionRepository:
    """Questions and options live in the hosted backend only."""

    def __init__(self, remote: RemoteStore) -> None:
        self._remote = remote

    async def list_questions(self, quiz_id: str) -> list[QuestionWithOptions]:
        """Return the quiz's questions with their options, both by ``order_no``."""
        question_rows = await self._remote.select(
            "questions",
            filters={"quiz_id": equals(quiz_id)},
            order="order_no.asc",
        )
        if not question_rows:
            return []
        questions = [Question.from_row(row) for row in question_rows]

        option_rows = await self._remote.select(
            "question_options",
            filters={"question_id": in_list([q.id for q in questions])},
            order="order_no.asc",
        )
        grouped: dict[str, list[QuestionOption]] = defaultdict(list)
        for row in option_rows:
            option = QuestionOption.from_row(row)
            grouped[option.question_id].append(option)

        return [
            QuestionWithOptions(question=question, options=tuple(grouped.get(question.id, [])))
            for question in questions
        ]

    async def create_question(
        self,
        *,
        quiz_id: str,
        type: QuestionType,
        content: str,
        points: int,
        order_no: int,
        options: list[dict] | None = None,
    ) -> Question:
        if points < 0:
            raise ValueError("Question points must not be negative.")
        inserted = await self._remote.insert(
            "questions",
            {
                "quiz_id": quiz_id,
                "type": type.value,
                "content": content,
                "points": points,
                "order_no": order_no,
            },
        )
        if not inserted:
            raise PersistenceError("Question was not returned after insert.")
        question = Question.from_row(inserted[0])

        option_rows = [
            {
                "question_id": question.id,
                "content": str(option.get("content", "")).strip(),
                "is_correct": bool(option.get("is_correct", False)),
                "order_no": int(option.get("order_no", index)),
            }
            for index, option in enumerate(options or [])
        ]
        option_rows = [row for row in option_rows if row["content"]]
        if option_rows:
            await self._remote.insert("question_options", option_rows, returning=False)
        return question

    async def delete_question(self, question_id: str) -> None:
        await self._remote.delete("questions", filters={"id": equals(question_id)})

"""In-memory accumulation of a student's answers during an attempt."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from quizflow.core.models import (
    Answer,
    EssayAnswer,
    QuestionType,
    QuestionWithOptions,
    SelectedOptions,
    TrueFalseAnswer,
)


class AnswersFrozenError(RuntimeError):
    """Raised when an answer is recorded while a submit is in flight."""


class AnswerCollector:
    """Keeps the latest answer per question id.

    The last write for a question wins and there is no ordering or
    completeness requirement across questions.
    """

    def __init__(self, questions: Iterable[QuestionWithOptions]) -> None:
        self._question_types: dict[str, QuestionType] = {
            item.question.id: item.question.type for item in questions
        }
        self._answers: dict[str, Answer] = {}
        self._frozen = False

    def record(self, question_id: str, answer: Answer) -> None:
        """Store ``answer`` for ``question_id``, replacing any previous answer."""
        if self._frozen:
            raise AnswersFrozenError("Answers are locked while the quiz is being submitted.")
        expected = self._question_types.get(question_id)
        if expected is None:
            raise ValueError(f"Unknown question id: {question_id}")
        if answer.question_type is not expected:
            raise ValueError(
                f"Question {question_id} expects a {expected.value} answer, "
                f"got {answer.question_type.value}."
            )
        self._answers[question_id] = answer

    def toggle_option(self, question_id: str, option_id: str, selected: bool) -> SelectedOptions:
        current = self._answers.get(question_id)
        previous = current.option_ids if isinstance(current, SelectedOptions) else frozenset()
        if selected:
            updated = SelectedOptions(previous | {option_id})
        else:
            updated = SelectedOptions(previous - {option_id})
        self.record(question_id, updated)
        return updated

    def set_true_false(self, question_id: str, value: bool) -> None:
        self.record(question_id, TrueFalseAnswer(value))

    def set_essay_text(self, question_id: str, text: str) -> None:
        self.record(question_id, EssayAnswer(text))

    def get(self, question_id: str) -> Answer | None:
        return self._answers.get(question_id)

    def snapshot(self) -> Mapping[str, Answer]:
        """Return a read-only copy of the current answers."""
        return MappingProxyType(dict(self._answers))

    def freeze(self) -> None:
        self._frozen = True

    def unfreeze(self) -> None:
        self._frozen = False

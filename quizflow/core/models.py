"""Domain models for the quiz application."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class QuestionType(str, Enum):
    """Question kinds a quiz may mix."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    ESSAY = "essay"


@dataclass(slots=True)
class Quiz:
    """Quiz metadata owned by a teacher account."""

    id: str
    name: str
    owner_id: str
    duration_minutes: int
    question_type: str
    created_at: str
    description: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Quiz":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            owner_id=str(row["owner_id"]),
            duration_minutes=int(row.get("duration_minutes") or 0),
            question_type=row.get("question_type") or "mixed",
            created_at=row.get("created_at") or "",
            description=row.get("description"),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "duration_minutes": self.duration_minutes,
            "question_type": self.question_type,
            "created_at": self.created_at,
            "description": self.description,
        }


@dataclass(slots=True, frozen=True)
class Question:
    """A question as stored by the authoring flow; read-only while a quiz is taken."""

    id: str
    quiz_id: str
    type: QuestionType
    content: str
    points: int
    order_no: int

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Question":
        points = int(row.get("points") or 0)
        if points < 0:
            raise ValueError(f"Question {row['id']} has negative points.")
        return cls(
            id=str(row["id"]),
            quiz_id=str(row["quiz_id"]),
            type=QuestionType(row["type"]),
            content=row.get("content") or "",
            points=points,
            order_no=int(row.get("order_no") or 0),
        )


@dataclass(slots=True, frozen=True)
class QuestionOption:
    """Selectable option of a multiple choice question."""

    id: str
    question_id: str
    content: str
    is_correct: bool = False
    order_no: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "QuestionOption":
        return cls(
            id=str(row["id"]),
            question_id=str(row["question_id"]),
            content=row.get("content") or "",
            is_correct=bool(row.get("is_correct")),
            order_no=int(row.get("order_no") or 0),
        )


@dataclass(slots=True, frozen=True)
class QuestionWithOptions:
    """A question bundled with its ordered options."""

    question: Question
    options: tuple[QuestionOption, ...] = ()

    @property
    def correct_option_ids(self) -> list[str]:
        if self.question.type is not QuestionType.MULTIPLE_CHOICE:
            return []
        return [option.id for option in self.options if option.is_correct]


# --- Answers ---------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class SelectedOptions:
    """Answer to a multiple choice question: the set of chosen option ids."""

    option_ids: frozenset[str] = frozenset()

    @property
    def question_type(self) -> QuestionType:
        return QuestionType.MULTIPLE_CHOICE

    def to_row(self) -> dict[str, Any]:
        return {
            "selected_option_ids": sorted(self.option_ids),
            "true_false_answer": None,
            "text_answer": None,
        }


@dataclass(slots=True, frozen=True)
class TrueFalseAnswer:
    """Answer to a true/false question."""

    value: bool

    @property
    def question_type(self) -> QuestionType:
        return QuestionType.TRUE_FALSE

    def to_row(self) -> dict[str, Any]:
        return {
            "selected_option_ids": None,
            "true_false_answer": self.value,
            "text_answer": None,
        }


@dataclass(slots=True, frozen=True)
class EssayAnswer:
    """Free text answer to an essay question."""

    text: str

    @property
    def question_type(self) -> QuestionType:
        return QuestionType.ESSAY

    def to_row(self) -> dict[str, Any]:
        return {
            "selected_option_ids": None,
            "true_false_answer": None,
            "text_answer": self.text,
        }


Answer = Union[SelectedOptions, TrueFalseAnswer, EssayAnswer]


def answer_from_row(row: dict[str, Any]) -> Answer:
    """Rebuild an answer from the three nullable response columns."""
    if row.get("selected_option_ids") is not None:
        return SelectedOptions(frozenset(str(value) for value in row["selected_option_ids"]))
    if row.get("true_false_answer") is not None:
        return TrueFalseAnswer(bool(row["true_false_answer"]))
    if row.get("text_answer") is not None:
        return EssayAnswer(row["text_answer"])
    raise ValueError("Response row does not carry an answer.")


# --- Attempts ----------------------------------------------------------------


@dataclass(slots=True)
class Attempt:
    """One student's pass through a quiz."""

    id: str
    quiz_id: str
    student_id: str
    started_at: str
    submitted_at: str | None = None
    total_score: int | None = None
    duration_seconds: int | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Attempt":
        return cls(
            id=str(row["id"]),
            quiz_id=str(row["quiz_id"]),
            student_id=str(row["student_id"]),
            started_at=row.get("started_at") or "",
            submitted_at=row.get("submitted_at"),
            total_score=row.get("total_score"),
            duration_seconds=row.get("duration_seconds"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "student_id": self.student_id,
            "started_at": self.started_at,
            "submitted_at": self.submitted_at,
            "total_score": self.total_score,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(slots=True)
class AttemptResponse:
    """Persisted answer row of an authenticated attempt."""

    id: str
    attempt_id: str
    question_id: str
    answer: Answer
    score: int | None = None
    time_spent_seconds: int | None = None
    created_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AttemptResponse":
        return cls(
            id=str(row["id"]),
            attempt_id=str(row["attempt_id"]),
            question_id=str(row["question_id"]),
            answer=answer_from_row(row),
            score=row.get("score"),
            time_spent_seconds=row.get("time_spent_seconds"),
            created_at=row.get("created_at") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "id": self.id,
            "attempt_id": self.attempt_id,
            "question_id": self.question_id,
            "score": self.score,
            "time_spent_seconds": self.time_spent_seconds,
            "created_at": self.created_at,
        }
        payload.update(self.answer.to_row())
        return payload


@dataclass(slots=True, frozen=True)
class Principal:
    """An authenticated account as reported by the auth provider."""

    user_id: str
    email: str | None = None

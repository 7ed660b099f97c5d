"""Grading engine for submitted attempts.

Only multiple choice questions are graded automatically. True/false and
essay questions count towards the total possible points but are left
unresolved (``is_correct`` is ``None``) for manual grading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from quizflow.core.models import Answer, QuestionType, QuestionWithOptions, SelectedOptions


class GradeLabel(str, Enum):
    """Five grade buckets, best first."""

    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    WEAK = "Weak"


# Inclusive lower bounds, checked in order.
GRADE_THRESHOLDS: list[tuple[int, GradeLabel]] = [
    (90, GradeLabel.EXCELLENT),
    (80, GradeLabel.VERY_GOOD),
    (70, GradeLabel.GOOD),
    (60, GradeLabel.ACCEPTABLE),
]


@dataclass(slots=True)
class QuestionResult:
    """Per-question outcome of an attempt."""

    question_id: str
    order_no: int
    type: QuestionType
    points: int
    is_correct: bool | None
    awarded_points: int
    correct_option_ids: list[str] = field(default_factory=list)
    selected_option_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.question_id,
            "order_no": self.order_no,
            "type": self.type.value,
            "points": self.points,
            "is_correct": self.is_correct,
            "awarded_points": self.awarded_points,
            "correct_option_ids": list(self.correct_option_ids),
            "selected_option_ids": list(self.selected_option_ids),
        }


@dataclass(slots=True)
class ExamResult:
    """Aggregate result shown to the student after submitting."""

    total_score: int
    total_points: int
    percent: int
    grade: GradeLabel
    by_question: list[QuestionResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "total_points": self.total_points,
            "percent": self.percent,
            "grade": self.grade.value,
            "by_question": [item.to_dict() for item in self.by_question],
        }


def percentage(score: int, total_points: int) -> int:
    """Return ``score / total_points`` as a whole percent, rounding halves up."""
    if total_points <= 0:
        return 0
    # Integer arithmetic keeps .5 boundaries exact.
    return (200 * score + total_points) // (2 * total_points)


def grade_label(percent: int) -> GradeLabel:
    for lower_bound, label in GRADE_THRESHOLDS:
        if percent >= lower_bound:
            return label
    return GradeLabel.WEAK


def grade(
    questions: Iterable[QuestionWithOptions],
    answers: Mapping[str, Answer],
) -> ExamResult:
    """Grade ``answers`` against ``questions``.

    A multiple choice question is correct only when the selected option set
    equals the correct option set exactly; there is no partial credit. A
    missing answer counts as an empty selection.
    """
    by_question: list[QuestionResult] = []
    total_points = 0
    total_score = 0

    for item in questions:
        question = item.question
        total_points += question.points
        answer = answers.get(question.id)
        selected: frozenset[str] = (
            answer.option_ids if isinstance(answer, SelectedOptions) else frozenset()
        )

        if question.type is QuestionType.MULTIPLE_CHOICE:
            correct_ids = item.correct_option_ids
            is_correct: bool | None = selected == frozenset(correct_ids)
            awarded = question.points if is_correct else 0
        else:
            correct_ids = []
            is_correct = None
            awarded = 0

        total_score += awarded
        by_question.append(
            QuestionResult(
                question_id=question.id,
                order_no=question.order_no,
                type=question.type,
                points=question.points,
                is_correct=is_correct,
                awarded_points=awarded,
                correct_option_ids=correct_ids,
                selected_option_ids=sorted(selected),
            )
        )

    percent = percentage(total_score, total_points)
    return ExamResult(
        total_score=total_score,
        total_points=total_points,
        percent=percent,
        grade=grade_label(percent),
        by_question=by_question,
    )

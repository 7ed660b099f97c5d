import pytest

from conftest import make_question
from quizflow.core.grading import GradeLabel, grade, grade_label, percentage
from quizflow.core.models import EssayAnswer, SelectedOptions, TrueFalseAnswer


def _mc_question(points=4, correct=("A", "C")):
    options = [(option_id, option_id in correct) for option_id in ("A", "B", "C")]
    return make_question("mc", "multiple_choice", points=points, options=options)


def test_exact_selection_earns_full_points():
    result = grade([_mc_question()], {"mc": SelectedOptions(frozenset({"A", "C"}))})

    row = result.by_question[0]
    assert row.is_correct is True
    assert row.awarded_points == 4
    assert result.total_score == 4


@pytest.mark.parametrize("selection", [{"A"}, {"A", "B", "C"}, set()])
def test_any_other_selection_earns_nothing(selection):
    result = grade([_mc_question()], {"mc": SelectedOptions(frozenset(selection))})

    row = result.by_question[0]
    assert row.is_correct is False
    assert row.awarded_points == 0
    assert result.total_score == 0


def test_unanswered_question_counts_as_empty_selection():
    result = grade([_mc_question()], {})

    row = result.by_question[0]
    assert row.is_correct is False
    assert row.selected_option_ids == []
    assert row.correct_option_ids == ["A", "C"]


def test_unanswered_question_without_correct_options_is_correct():
    question = make_question("mc", "multiple_choice", points=3, options=[("A", False), ("B", False)])

    result = grade([question], {})

    assert result.by_question[0].is_correct is True
    assert result.total_score == 3


def test_true_false_and_essay_are_left_ungraded():
    questions = [
        make_question("tf", "true_false", points=2, order_no=1),
        make_question("essay", "essay", points=8, order_no=2),
    ]
    answers = {"tf": TrueFalseAnswer(True), "essay": EssayAnswer("Because.")}

    result = grade(questions, answers)

    assert [row.is_correct for row in result.by_question] == [None, None]
    assert result.total_score == 0
    assert result.total_points == 10
    assert result.percent == 0
    assert result.grade is GradeLabel.WEAK


def test_empty_quiz_has_zero_percent():
    result = grade([], {})

    assert result.total_points == 0
    assert result.percent == 0
    assert result.by_question == []


def test_seven_of_ten_is_third_tier():
    assert percentage(7, 10) == 70
    assert grade_label(percentage(7, 10)) is GradeLabel.GOOD


@pytest.mark.parametrize(
    "percent, expected",
    [
        (100, GradeLabel.EXCELLENT),
        (90, GradeLabel.EXCELLENT),
        (89, GradeLabel.VERY_GOOD),
        (80, GradeLabel.VERY_GOOD),
        (79, GradeLabel.GOOD),
        (70, GradeLabel.GOOD),
        (69, GradeLabel.ACCEPTABLE),
        (60, GradeLabel.ACCEPTABLE),
        (59, GradeLabel.WEAK),
        (0, GradeLabel.WEAK),
    ],
)
def test_grade_thresholds(percent, expected):
    assert grade_label(percent) is expected


def test_percentage_rounds_halves_up():
    assert percentage(1, 8) == 13
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(0, 0) == 0


def test_full_run_scenario(two_question_quiz):
    answers = {"q1": SelectedOptions(frozenset({"opt1"})), "q2": TrueFalseAnswer(True)}

    result = grade(two_question_quiz, answers)

    assert result.total_score == 5
    assert result.total_points == 10
    assert result.percent == 50
    assert result.grade is GradeLabel.WEAK
    assert result.by_question[0].is_correct is True
    assert result.by_question[1].is_correct is None


def test_result_serializes_for_the_client(two_question_quiz):
    payload = grade(two_question_quiz, {"q1": SelectedOptions(frozenset({"opt2"}))}).to_dict()

    assert payload["grade"] == "Weak"
    assert payload["by_question"][0] == {
        "id": "q1",
        "order_no": 1,
        "type": "multiple_choice",
        "points": 5,
        "is_correct": False,
        "awarded_points": 0,
        "correct_option_ids": ["opt1"],
        "selected_option_ids": ["opt2"],
    }

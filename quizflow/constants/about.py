"""Static metadata describing QuizFlow."""

APP_NAME = "QuizFlow"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "QuizFlow lets teachers publish quizzes with multiple choice, true/false and essay "
    "questions and share a join link. Students take each quiz once and objective "
    "questions are graded automatically."
)

"""Quiz-related constants shared across core and server layers."""

MIN_PARTICIPANT_NAME_LENGTH: int = 2
REDIRECT_COUNTDOWN_SECONDS: int = 45
REDIRECT_TARGET: str = "/"

QUIZZES_STORAGE_KEY: str = "quizflow:quizzes"
RESPONSES_KEY_TEMPLATE: str = "quizflow:responses:{quiz_id}"
COMPLETED_KEY_TEMPLATE: str = "quizflow:completed:{device_id}:{quiz_id}:{name}"

SUBMIT_TOAST_DURATION_MS: int = 4000

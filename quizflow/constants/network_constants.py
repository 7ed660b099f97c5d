"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
REMOTE_TIMEOUT_SECONDS: float = 15.0
SESSION_COOKIE: str = "quizflow_exam_session"
SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 6
DEVICE_COOKIE: str = "quizflow_device"
DEVICE_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 365
MATHJAX_SCRIPT_URL: str = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"

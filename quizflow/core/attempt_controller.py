"""Lifecycle of one student's attempt: not started, in progress, submitted."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
import time
from typing import Awaitable, Callable, Sequence
from uuid import uuid4

from quizflow.constants.quiz_constants import (
    MIN_PARTICIPANT_NAME_LENGTH,
    REDIRECT_COUNTDOWN_SECONDS,
    REDIRECT_TARGET,
    SUBMIT_TOAST_DURATION_MS,
)
from quizflow.core.answer_collector import AnswerCollector
from quizflow.core.completion_guard import CompletionGuard
from quizflow.core.grading import ExamResult, grade
from quizflow.core.models import Answer, Principal, QuestionWithOptions, SelectedOptions
from quizflow.core.notifications import NotificationCenter
from quizflow.core.services.answer_persistence import AnswerPersistence
from quizflow.core.services.attempt_store import AttemptStore

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class AttemptStateError(RuntimeError):
    """Raised when an operation does not fit the attempt's current state."""


class RedirectCountdown:
    """Counts down once per tick and calls ``on_expire`` when it reaches zero.

    Runs as a task on the current event loop; ``cancel`` stops it for good.
    """

    def __init__(
        self,
        seconds: int,
        on_expire: Callable[[], None],
        *,
        tick_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._remaining = max(0, seconds)
        self._on_expire = on_expire
        self._tick_seconds = tick_seconds
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._expired = False

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        """Wait until the countdown expires or is cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self) -> None:
        while self._remaining > 0:
            await self._sleep(self._tick_seconds)
            self._remaining -= 1
        self._expired = True
        self._on_expire()


class AttemptController:
    """Drives a single attempt and owns its answers.

    Submitting freezes the answers for as long as the submit is in flight;
    if it fails the answers are unlocked again and the attempt stays in
    progress so the student can retry.
    """

    def __init__(
        self,
        *,
        quiz_id: str,
        questions: Sequence[QuestionWithOptions],
        guard: CompletionGuard,
        persistence: AnswerPersistence,
        notifier: NotificationCenter,
        attempt_store: AttemptStore | None = None,
        principal: Principal | None = None,
        on_redirect: Callable[[str], None] | None = None,
        countdown_seconds: int = REDIRECT_COUNTDOWN_SECONDS,
        tick_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._quiz_id = quiz_id
        self._questions = list(questions)
        self._guard = guard
        self._persistence = persistence
        self._notifier = notifier
        self._attempt_store = attempt_store
        self._principal = principal
        self._on_redirect = on_redirect
        self._countdown_seconds = countdown_seconds
        self._tick_seconds = tick_seconds
        self._clock = clock

        self._collector = AnswerCollector(self._questions)
        self._state = AttemptState.NOT_STARTED
        self._participant_name = ""
        self._attempt_id: str | None = None
        self._started_at: float | None = None
        self._result: ExamResult | None = None
        self._countdown: RedirectCountdown | None = None
        self._submitting = False
        self._redirected_to: str | None = None

    # --- Read-only state ---

    @property
    def state(self) -> AttemptState:
        return self._state

    @property
    def quiz_id(self) -> str:
        return self._quiz_id

    @property
    def questions(self) -> list[QuestionWithOptions]:
        return list(self._questions)

    @property
    def participant_name(self) -> str:
        return self._participant_name

    @property
    def attempt_id(self) -> str | None:
        return self._attempt_id

    @property
    def result(self) -> ExamResult | None:
        return self._result

    @property
    def countdown(self) -> RedirectCountdown | None:
        return self._countdown

    @property
    def redirected_to(self) -> str | None:
        return self._redirected_to

    @property
    def answers(self) -> AnswerCollector:
        return self._collector

    # --- Entry ---

    def set_participant_name(self, name: str) -> bool:
        """Update the typed name; returns False if the guard turned the student away."""
        if self._state is not AttemptState.NOT_STARTED:
            raise AttemptStateError("The participant name is fixed once the quiz has started.")
        self._participant_name = name
        if name.strip() and self._guard.is_completed(self._quiz_id, name):
            self._refuse_repeat_entry()
            return False
        return True

    def can_start(self) -> bool:
        return (
            self._state is AttemptState.NOT_STARTED
            and len(self._participant_name.strip()) >= MIN_PARTICIPANT_NAME_LENGTH
            and bool(self._quiz_id)
        )

    async def start(self) -> bool:
        if not self.can_start():
            return False
        if self._guard.is_completed(self._quiz_id, self._participant_name):
            self._refuse_repeat_entry()
            return False

        try:
            if self._principal is not None:
                if self._attempt_store is None:
                    raise RuntimeError("Signed-in attempts need a configured backend.")
                attempt = await self._attempt_store.start_attempt(
                    self._quiz_id, self._principal.user_id
                )
                attempt_id = attempt.id
            else:
                attempt_id = str(uuid4())
        except Exception as exc:
            logger.exception("Starting an attempt on quiz %s failed", self._quiz_id)
            self._notifier.error("Could not start the quiz", str(exc))
            return False

        self._attempt_id = attempt_id
        self._started_at = self._clock()
        self._state = AttemptState.IN_PROGRESS
        logger.info("Attempt %s started on quiz %s", attempt_id, self._quiz_id)
        self._notifier.notify("Quiz started", "Good luck!")
        return True

    # --- Answers ---

    def record_answer(self, question_id: str, answer: Answer) -> None:
        self._require_in_progress()
        self._collector.record(question_id, answer)

    def toggle_option(self, question_id: str, option_id: str, selected: bool) -> SelectedOptions:
        self._require_in_progress()
        return self._collector.toggle_option(question_id, option_id, selected)

    def set_true_false(self, question_id: str, value: bool) -> None:
        self._require_in_progress()
        self._collector.set_true_false(question_id, value)

    def set_essay_text(self, question_id: str, text: str) -> None:
        self._require_in_progress()
        self._collector.set_essay_text(question_id, text)

    # --- Submission ---

    async def submit(self) -> ExamResult | None:
        """Grade, persist and close the attempt; returns None when nothing happened."""
        if self._state is not AttemptState.IN_PROGRESS or not self._attempt_id or self._submitting:
            return None

        self._submitting = True
        self._collector.freeze()
        try:
            answers = self._collector.snapshot()
            duration_seconds = self.elapsed_seconds()
            result = grade(self._questions, answers)
            await self._persistence.persist(
                principal=self._principal,
                quiz_id=self._quiz_id,
                attempt_id=self._attempt_id,
                participant_name=self._participant_name.strip(),
                questions=self._questions,
                answers=answers,
                duration_seconds=duration_seconds,
            )
            if self._principal is not None and self._attempt_store is not None:
                await self._attempt_store.submit_attempt(
                    self._attempt_id, result.total_score, duration_seconds
                )
            self._guard.mark_completed(self._quiz_id, self._participant_name)
        except Exception as exc:
            logger.exception("Submitting attempt %s failed", self._attempt_id)
            self._collector.unfreeze()
            self._notifier.error("Could not submit your answers", str(exc))
            return None
        finally:
            self._submitting = False

        self._result = result
        self._state = AttemptState.SUBMITTED
        logger.info(
            "Attempt %s submitted: %d/%d (%d%%)",
            self._attempt_id,
            result.total_score,
            result.total_points,
            result.percent,
        )
        self._notifier.notify(
            "Submitted",
            "Your answers were sent and your result is shown below.",
            duration_ms=SUBMIT_TOAST_DURATION_MS,
        )
        self._countdown = RedirectCountdown(
            self._countdown_seconds,
            self._redirect_after_countdown,
            tick_seconds=self._tick_seconds,
        )
        self._countdown.start()
        return result

    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        return max(0, int(self._clock() - self._started_at + 0.5))

    # --- Teardown ---

    def close(self) -> None:
        """Tear down: a pending countdown never fires after this."""
        if self._countdown is not None:
            self._countdown.cancel()

    # --- Internals ---

    def _require_in_progress(self) -> None:
        if self._state is not AttemptState.IN_PROGRESS:
            raise AttemptStateError("Answers can only be recorded while the quiz is in progress.")

    def _refuse_repeat_entry(self) -> None:
        self._notifier.error(
            "You cannot take this quiz again",
            "Your answers were already submitted.",
        )
        self._redirect()

    def _redirect_after_countdown(self) -> None:
        logger.info("Redirect countdown for attempt %s finished", self._attempt_id)
        self._redirect()

    def _redirect(self) -> None:
        self._redirected_to = REDIRECT_TARGET
        if self._on_redirect is not None:
            self._on_redirect(REDIRECT_TARGET)

import asyncio

import pytest

from conftest import make_question
from quizflow.core.answer_collector import AnswersFrozenError
from quizflow.core.attempt_controller import AttemptController, AttemptState, AttemptStateError
from quizflow.core.completion_guard import CompletionGuard
from quizflow.core.models import Attempt, Principal
from quizflow.core.notifications import NotificationCenter
from quizflow.core.services.answer_persistence import AnswerPersistence
from quizflow.core.services.remote_store import PersistenceError
from quizflow.core.services.response_log import ResponseLog


class FakeAttemptStore:
    def __init__(self, fail_start=False, fail_response_after=None, fail_submit=False):
        self.started = []
        self.submitted = []
        self.responses = []
        self.fail_start = fail_start
        self.fail_response_after = fail_response_after
        self.fail_submit = fail_submit

    async def start_attempt(self, quiz_id, student_id):
        if self.fail_start:
            raise PersistenceError("database offline")
        self.started.append((quiz_id, student_id))
        return Attempt(id="server-attempt-1", quiz_id=quiz_id, student_id=student_id, started_at="now")

    async def submit_attempt(self, attempt_id, total_score, duration_seconds):
        if self.fail_submit:
            raise PersistenceError("update rejected")
        self.submitted.append((attempt_id, total_score, duration_seconds))

    async def save_response(self, attempt_id, question_id, answer, score=None, time_spent_seconds=None):
        if self.fail_response_after is not None and len(self.responses) >= self.fail_response_after:
            raise PersistenceError("insert rejected")
        self.responses.append((attempt_id, question_id, answer, score, time_spent_seconds))


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class Harness:
    def __init__(self, local_store, questions, principal=None, attempt_store=None, countdown_seconds=45):
        self.store = attempt_store or FakeAttemptStore()
        self.guard = CompletionGuard(local_store)
        self.log = ResponseLog(local_store)
        self.notifier = NotificationCenter()
        self.clock = FakeClock()
        self.redirects = []
        self.controller = AttemptController(
            quiz_id="quiz-1",
            questions=questions,
            guard=self.guard,
            persistence=AnswerPersistence(self.store, self.log),
            notifier=self.notifier,
            attempt_store=self.store,
            principal=principal,
            on_redirect=self.redirects.append,
            countdown_seconds=countdown_seconds,
            tick_seconds=0.001,
            clock=self.clock,
        )

    def titles(self):
        return [item.title for item in self.notifier.drain()]


@pytest.fixture
def questions():
    return [
        make_question("q1", "multiple_choice", points=5, order_no=1, options=[("opt1", True), ("opt2", False)]),
        make_question("q2", "true_false", points=5, order_no=2),
        make_question("q3", "essay", points=10, order_no=3),
    ]


def test_start_requires_a_two_character_name(local_store, questions):
    harness = Harness(local_store, questions)
    controller = harness.controller

    controller.set_participant_name(" a ")
    assert asyncio.run(controller.start()) is False
    assert controller.state is AttemptState.NOT_STARTED
    assert harness.titles() == []

    controller.set_participant_name("Al")
    assert asyncio.run(controller.start()) is True
    assert controller.state is AttemptState.IN_PROGRESS


def test_start_requires_a_quiz_id(local_store, questions):
    harness = Harness(local_store, questions)
    controller = AttemptController(
        quiz_id="",
        questions=questions,
        guard=harness.guard,
        persistence=AnswerPersistence(None, harness.log),
        notifier=harness.notifier,
    )
    controller.set_participant_name("Student")

    assert controller.can_start() is False
    assert asyncio.run(controller.start()) is False


def test_anonymous_start_fabricates_attempt_id(local_store, questions):
    harness = Harness(local_store, questions)
    harness.controller.set_participant_name("Sara")

    asyncio.run(harness.controller.start())

    assert harness.controller.attempt_id
    assert harness.store.started == []
    assert harness.titles() == ["Quiz started"]


def test_signed_in_start_asks_the_backend(local_store, questions):
    harness = Harness(local_store, questions, principal=Principal(user_id="user-9"))
    harness.controller.set_participant_name("Sara")

    asyncio.run(harness.controller.start())

    assert harness.store.started == [("quiz-1", "user-9")]
    assert harness.controller.attempt_id == "server-attempt-1"


def test_failed_start_keeps_state_and_notifies(local_store, questions):
    harness = Harness(
        local_store, questions, principal=Principal(user_id="user-9"), attempt_store=FakeAttemptStore(fail_start=True)
    )
    harness.controller.set_participant_name("Sara")

    assert asyncio.run(harness.controller.start()) is False
    assert harness.controller.state is AttemptState.NOT_STARTED
    assert harness.controller.attempt_id is None
    notes = harness.notifier.drain()
    assert notes[0].variant == "destructive"
    assert notes[0].description == "database offline"


def test_answers_only_while_in_progress(local_store, questions):
    harness = Harness(local_store, questions)
    with pytest.raises(AttemptStateError):
        harness.controller.set_true_false("q2", True)


def test_submit_before_start_is_a_no_op(local_store, questions):
    harness = Harness(local_store, questions)

    assert asyncio.run(harness.controller.submit()) is None
    assert harness.controller.state is AttemptState.NOT_STARTED
    assert harness.log.entries("quiz-1") == []


def test_anonymous_submit_writes_one_log_entry(local_store, questions):
    harness = Harness(local_store, questions)
    controller = harness.controller

    async def run():
        controller.set_participant_name("  Sara  ")
        await controller.start()
        controller.toggle_option("q1", "opt1", True)
        controller.set_true_false("q2", True)
        harness.clock.now += 42.4
        result = await controller.submit()
        controller.close()
        return result

    result = asyncio.run(run())

    assert result.total_score == 5
    assert result.total_points == 20
    assert controller.state is AttemptState.SUBMITTED
    entries = harness.log.entries("quiz-1")
    assert len(entries) == 1
    entry = entries[0]
    assert entry["student_name"] == "Sara"
    assert entry["attempt_id"] == controller.attempt_id
    assert entry["duration_seconds"] == 42
    assert entry["answers"] == {
        "q1": {"selected_option_ids": ["opt1"], "true_false_answer": None, "text_answer": None},
        "q2": {"selected_option_ids": None, "true_false_answer": True, "text_answer": None},
    }
    assert harness.store.responses == []


def test_signed_in_submit_writes_one_row_per_answered_question(local_store, questions):
    harness = Harness(local_store, questions, principal=Principal(user_id="user-9"))
    controller = harness.controller

    async def run():
        controller.set_participant_name("Sara")
        await controller.start()
        controller.toggle_option("q1", "opt1", True)
        controller.set_essay_text("q3", "An essay.")
        harness.clock.now += 10
        await controller.submit()
        controller.close()

    asyncio.run(run())

    assert [(row[1], row[3], row[4]) for row in harness.store.responses] == [
        ("q1", None, None),
        ("q3", None, None),
    ]
    assert harness.store.submitted == [("server-attempt-1", 5, 10)]
    assert harness.log.entries("quiz-1") == []


def test_completed_participant_cannot_start_again(local_store, questions):
    first = Harness(local_store, questions)

    async def take_quiz():
        first.controller.set_participant_name("Sara")
        await first.controller.start()
        await first.controller.submit()
        first.controller.close()

    asyncio.run(take_quiz())

    for typed in ("Sara", "  sara ", "SARA"):
        again = Harness(local_store, questions)
        assert again.controller.set_participant_name(typed) is False
        assert again.redirects == ["/"]
        assert asyncio.run(again.controller.start()) is False
        assert again.controller.state is AttemptState.NOT_STARTED
        assert "You cannot take this quiz again" in again.titles()

    other = Harness(local_store, questions)
    assert other.controller.set_participant_name("Samir") is True


def test_failed_submit_stays_in_progress_and_keeps_partial_rows(local_store, questions):
    store = FakeAttemptStore(fail_response_after=1)
    harness = Harness(local_store, questions, principal=Principal(user_id="user-9"), attempt_store=store)
    controller = harness.controller

    async def run():
        controller.set_participant_name("Sara")
        await controller.start()
        controller.toggle_option("q1", "opt1", True)
        controller.set_true_false("q2", False)
        return await controller.submit()

    assert asyncio.run(run()) is None
    assert controller.state is AttemptState.IN_PROGRESS
    assert controller.result is None
    assert len(store.responses) == 1
    assert store.submitted == []
    assert not harness.guard.is_completed("quiz-1", "Sara")
    controller.set_true_false("q2", True)
    assert controller.answers.get("q2").value is True
    assert "Could not submit your answers" in harness.titles()


def test_answers_are_frozen_while_submit_is_in_flight(local_store, questions):
    harness = Harness(local_store, questions)
    controller = harness.controller
    seen = []
    gate = {}

    class SlowPersistence:
        async def persist(self, **kwargs):
            await gate["release"].wait()
            return 1

    controller._persistence = SlowPersistence()

    async def run():
        gate["release"] = asyncio.Event()
        controller.set_participant_name("Sara")
        await controller.start()
        controller.set_true_false("q2", True)
        submit_task = asyncio.create_task(controller.submit())
        await asyncio.sleep(0)
        with pytest.raises(AnswersFrozenError):
            controller.set_true_false("q2", False)
        seen.append(await controller.submit())
        gate["release"].set()
        result = await submit_task
        controller.close()
        return result

    result = asyncio.run(run())

    assert seen == [None]
    assert result is not None
    assert controller.answers.get("q2").value is True


def test_countdown_redirects_when_it_reaches_zero(local_store, questions):
    harness = Harness(local_store, questions, countdown_seconds=3)
    controller = harness.controller

    async def run():
        controller.set_participant_name("Sara")
        await controller.start()
        await controller.submit()
        assert controller.countdown.remaining == 3
        await controller.countdown.wait()

    asyncio.run(run())

    assert controller.countdown.remaining == 0
    assert controller.countdown.expired is True
    assert harness.redirects == ["/"]


def test_close_cancels_the_countdown(local_store, questions):
    harness = Harness(local_store, questions, countdown_seconds=1000)
    controller = harness.controller

    async def run():
        controller.set_participant_name("Sara")
        await controller.start()
        await controller.submit()
        controller.close()
        await controller.countdown.wait()

    asyncio.run(run())

    assert controller.countdown.expired is False
    assert controller.countdown.is_running() is False
    assert harness.redirects == []

import itertools
import json
from urllib.parse import parse_qsl

import httpx
import pytest

from quizflow.core.models import Question, QuestionOption, QuestionType, QuestionWithOptions
from quizflow.core.services.local_store import LocalStore
from quizflow.core.services.remote_store import RemoteStore


def make_question(question_id, qtype, points=5, order_no=1, options=(), quiz_id="quiz-1"):
    question = Question(
        id=question_id,
        quiz_id=quiz_id,
        type=QuestionType(qtype),
        content=f"Question {question_id}",
        points=points,
        order_no=order_no,
    )
    built = tuple(
        QuestionOption(
            id=option_id,
            question_id=question_id,
            content=f"Option {option_id}",
            is_correct=is_correct,
            order_no=index,
        )
        for index, (option_id, is_correct) in enumerate(options)
    )
    return QuestionWithOptions(question=question, options=built)


@pytest.fixture
def two_question_quiz():
    return [
        make_question("q1", "multiple_choice", points=5, order_no=1, options=[("opt1", True), ("opt2", False)]),
        make_question("q2", "true_false", points=5, order_no=2),
    ]


@pytest.fixture
def local_store():
    return LocalStore(None)


class FakeBackend:
    """In-memory stand-in for the hosted PostgREST + auth endpoints."""

    def __init__(self):
        self.tables = {
            "quizzes": [],
            "questions": [],
            "question_options": [],
            "quiz_attempts": [],
            "attempt_responses": [],
        }
        self.users = {}
        self.requests = []
        self.fail_inserts_into = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def add_user(self, token, user_id, email=None):
        self.users[token] = {"id": user_id, "email": email}

    def seed(self, table, row):
        self.tables[table].append(dict(row))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/auth/v1/user":
            token = request.headers.get("Authorization", "")[len("Bearer "):]
            user = self.users.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        table = path.rsplit("/", 1)[-1]
        rows = self.tables[table]
        params = dict(parse_qsl(request.url.query.decode()))
        order = params.pop("order", None)
        params.pop("select", None)

        if request.method == "GET":
            selected = [row for row in rows if _matches(row, params)]
            if order:
                column, direction = order.split(".")
                selected.sort(key=lambda row: row[column], reverse=direction == "desc")
            return httpx.Response(200, json=selected)

        if request.method == "POST":
            remaining = self.fail_inserts_into.get(table)
            if remaining is not None:
                if remaining <= 0:
                    return httpx.Response(400, json={"message": f"insert into {table} rejected"})
                self.fail_inserts_into[table] = remaining - 1
            body = json.loads(request.content)
            new_rows = body if isinstance(body, list) else [body]
            created = []
            for row in new_rows:
                stored = {"id": f"{table}-{next(self._ids)}", **row}
                if table == "quiz_attempts":
                    stored.setdefault("started_at", f"2026-01-01T00:00:{next(self._clock):02d}Z")
                    stored.setdefault("submitted_at", None)
                    stored.setdefault("total_score", None)
                    stored.setdefault("duration_seconds", None)
                if table == "quizzes":
                    stored.setdefault("created_at", f"2026-01-01T00:00:{next(self._clock):02d}Z")
                rows.append(stored)
                created.append(stored)
            if request.headers.get("Prefer") == "return=minimal":
                return httpx.Response(201)
            return httpx.Response(201, json=created)

        if request.method == "PATCH":
            patch = json.loads(request.content)
            for row in rows:
                if _matches(row, params):
                    row.update(patch)
            return httpx.Response(204)

        if request.method == "DELETE":
            self.tables[table] = [row for row in rows if not _matches(row, params)]
            return httpx.Response(204)

        return httpx.Response(405)


def _matches(row, filters):
    for column, expression in filters.items():
        operator, _, value = expression.partition(".")
        if operator == "eq" and str(row.get(column)) != value:
            return False
        if operator == "in" and str(row.get(column)) not in value.strip("()").split(","):
            return False
    return True


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def remote(backend):
    return RemoteStore(
        "https://db.example.test",
        "anon-key",
        transport=httpx.MockTransport(backend.handler),
    )

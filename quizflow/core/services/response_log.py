"""Per-quiz log of answers submitted by anonymous participants."""

from __future__ import annotations

from typing import Any

from quizflow.constants.quiz_constants import RESPONSES_KEY_TEMPLATE
from quizflow.core.services.local_store import LocalStore


class ResponseLog:
    """Append-only, newest entry first."""

    def __init__(self, local: LocalStore) -> None:
        self._local = local

    def append(self, quiz_id: str, entry: dict[str, Any]) -> None:
        key = RESPONSES_KEY_TEMPLATE.format(quiz_id=quiz_id)
        entries = self.entries(quiz_id)
        entries.insert(0, entry)
        self._local.set_json(key, entries)

    def entries(self, quiz_id: str) -> list[dict[str, Any]]:
        stored = self._local.get_json(RESPONSES_KEY_TEMPLATE.format(quiz_id=quiz_id), default=[])
        return list(stored) if isinstance(stored, list) else []

"""Per-device flag that stops a named participant from retaking a quiz.

The flag is keyed by the browser's device id, the quiz id and the
participant's typed name, and lives in the local store only. Another
browser, a cleared cookie or a different name gets around it, so it is a
convenience for honest students, not an access control. Enforcing one
attempt per participant needs a unique constraint on (quiz_id, student_id)
in the hosted backend.
"""

from __future__ import annotations

from quizflow.constants.quiz_constants import COMPLETED_KEY_TEMPLATE
from quizflow.core.services.local_store import LocalStore


def normalize_name(name: str) -> str:
    return name.strip().lower()


class CompletionGuard:
    def __init__(self, local: LocalStore, device_id: str = "") -> None:
        self._local = local
        self._device_id = device_id

    @property
    def device_id(self) -> str:
        return self._device_id

    def for_device(self, device_id: str) -> "CompletionGuard":
        """Return a guard sharing this store but scoped to another browser."""
        return CompletionGuard(self._local, device_id)

    @staticmethod
    def key_for(quiz_id: str, name: str, device_id: str = "") -> str:
        return COMPLETED_KEY_TEMPLATE.format(
            device_id=device_id,
            quiz_id=quiz_id,
            name=normalize_name(name),
        )

    def is_completed(self, quiz_id: str, name: str) -> bool:
        return self._local.get_item(self.key_for(quiz_id, name, self._device_id)) is not None

    def mark_completed(self, quiz_id: str, name: str) -> None:
        self._local.set_item(self.key_for(quiz_id, name, self._device_id), "1")

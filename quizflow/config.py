"""Runtime settings read from the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from quizflow.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quizflow.constants.quiz_constants import REDIRECT_COUNTDOWN_SECONDS


@dataclass(slots=True, frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    data_dir: Path = Path.home() / ".quizflow"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    redirect_seconds: int = REDIRECT_COUNTDOWN_SECONDS
    log_level: str = "INFO"

    @property
    def remote_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def local_store_path(self) -> Path:
        return self.data_dir / "local_store.json"

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        data_dir = (os.getenv("QUIZFLOW_DATA_DIR") or "").strip()
        return cls(
            supabase_url=(os.getenv("QUIZFLOW_SUPABASE_URL") or "").strip(),
            supabase_key=(os.getenv("QUIZFLOW_SUPABASE_KEY") or "").strip(),
            data_dir=Path(data_dir).expanduser() if data_dir else Path.home() / ".quizflow",
            host=(os.getenv("QUIZFLOW_HOST") or DEFAULT_HOST).strip(),
            port=int(os.getenv("QUIZFLOW_PORT") or DEFAULT_PORT),
            redirect_seconds=int(os.getenv("QUIZFLOW_REDIRECT_SECONDS") or REDIRECT_COUNTDOWN_SECONDS),
            log_level=(os.getenv("QUIZFLOW_LOG_LEVEL") or "INFO").strip().upper(),
        )

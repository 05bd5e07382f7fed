"""Runtime settings resolved from the environment.

Every value has a default so the application starts without any
configuration, using the bundled question bank and a local state directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path

from knowledge_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT

PACKAGE_DIR = Path(__file__).resolve().parent.parent
BUNDLED_BANK_DIR = PACKAGE_DIR / "data" / "bank"
DEFAULT_STATE_DIR = Path.home() / ".knowledge_quiz"

_ENV_PREFIX = "KNOWLEDGE_QUIZ_"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application settings."""

    state_dir: Path = DEFAULT_STATE_DIR
    bank_dir: Path = BUNDLED_BANK_DIR
    bank_url: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    shuffle_seed: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ

        def read(name: str) -> str | None:
            value = env.get(_ENV_PREFIX + name, "").strip()
            return value or None

        port = read("PORT")
        seed = read("SHUFFLE_SEED")
        try:
            parsed_port = int(port) if port else DEFAULT_PORT
            parsed_seed = int(seed) if seed else None
        except ValueError as exc:
            raise ValueError(f"Invalid numeric setting: {exc}") from exc

        state_dir = read("STATE_DIR")
        bank_dir = read("BANK_DIR")
        return cls(
            state_dir=Path(state_dir).expanduser() if state_dir else DEFAULT_STATE_DIR,
            bank_dir=Path(bank_dir).expanduser() if bank_dir else BUNDLED_BANK_DIR,
            bank_url=read("BANK_URL"),
            host=read("HOST") or DEFAULT_HOST,
            port=parsed_port,
            log_level=(read("LOG_LEVEL") or "INFO").upper(),
            shuffle_seed=parsed_seed,
        )

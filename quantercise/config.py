from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

STORE_BACKEND_ENV = "QUANTERCISE_STORE_BACKEND"
STORE_PATH_ENV = "QUANTERCISE_STORE_PATH"
DISABLE_AUDIO_ENV = "QUANTERCISE_DISABLE_AUDIO"
LOG_LEVEL_ENV = "QUANTERCISE_LOG_LEVEL"


class StoreBackend(str, Enum):
    JSON = "json"
    SQLITE = "sqlite"


@dataclass(frozen=True, slots=True)
class AppConfig:
    store_backend: StoreBackend
    store_path: Path
    audio_enabled: bool = True
    log_level: int = logging.WARNING

    @staticmethod
    def default_path(backend: StoreBackend) -> Path:
        suffix = ".sqlite3" if backend is StoreBackend.SQLITE else ".json"
        return Path.home() / f".quantercise{suffix}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        raw_backend = env.get(STORE_BACKEND_ENV, "").strip().lower() or StoreBackend.JSON.value
        try:
            backend = StoreBackend(raw_backend)
        except ValueError:
            raise ValueError(f"{STORE_BACKEND_ENV} must be 'json' or 'sqlite', got {raw_backend!r}") from None

        explicit = env.get(STORE_PATH_ENV, "").strip()
        path = Path(explicit).expanduser() if explicit else cls.default_path(backend)

        audio_enabled = env.get(DISABLE_AUDIO_ENV, "0").strip() != "1"

        raw_level = env.get(LOG_LEVEL_ENV, "").strip().upper() or "WARNING"
        level = logging.getLevelName(raw_level)
        if not isinstance(level, int):
            raise ValueError(f"{LOG_LEVEL_ENV} is not a logging level: {raw_level!r}")

        return cls(
            store_backend=backend,
            store_path=path,
            audio_enabled=audio_enabled,
            log_level=level,
        )

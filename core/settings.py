from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from core.constants import DEFAULT_MAX_RESISTANCE, DEFAULT_STORAGE_MULTIPLIER, HISTORY_CAPACITY
from core.errors import InvalidValueError


MAX_RESISTANCE_ENV_VAR = "POWERTABLE_MAX_RESISTANCE"
STORAGE_MULTIPLIER_ENV_VAR = "POWERTABLE_STORAGE_MULTIPLIER"
HISTORY_CAPACITY_ENV_VAR = "POWERTABLE_HISTORY_CAPACITY"
LOG_DIR_ENV_VAR = "POWERTABLE_LOG_DIR"
MAX_SESSIONS_ENV_VAR = "POWERTABLE_MAX_SESSIONS"

DEFAULT_MAX_SESSIONS = 32


@dataclass(frozen=True)
class EditorSettings:
    max_resistance: int = DEFAULT_MAX_RESISTANCE
    storage_multiplier: int = DEFAULT_STORAGE_MULTIPLIER
    history_capacity: int = HISTORY_CAPACITY
    log_dir: Path | None = None
    max_sessions: int = DEFAULT_MAX_SESSIONS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EditorSettings":
        """Build settings from POWERTABLE_* environment variables.

        Unset (or blank) variables keep their defaults.
        """

        env = os.environ if environ is None else environ
        log_dir_raw = (env.get(LOG_DIR_ENV_VAR) or "").strip()
        return cls(
            max_resistance=_positive_int(env, MAX_RESISTANCE_ENV_VAR, DEFAULT_MAX_RESISTANCE),
            storage_multiplier=_positive_int(env, STORAGE_MULTIPLIER_ENV_VAR, DEFAULT_STORAGE_MULTIPLIER),
            history_capacity=_positive_int(env, HISTORY_CAPACITY_ENV_VAR, HISTORY_CAPACITY),
            log_dir=Path(log_dir_raw).expanduser() if log_dir_raw else None,
            max_sessions=_positive_int(env, MAX_SESSIONS_ENV_VAR, DEFAULT_MAX_SESSIONS),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise InvalidValueError(f"{name} must be positive, got {value}")
    return value

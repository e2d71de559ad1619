"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_PULSE_DELAY_S = 0.2
DEFAULT_FOLLOW_UP_DELAY_S = 0.1
DEFAULT_TRIGGER_INTERVAL_S = 0.5
DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class Settings:
    local_store: Path
    shared_store: Path
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    pulse_delay_s: float = DEFAULT_PULSE_DELAY_S
    follow_up_delay_s: float = DEFAULT_FOLLOW_UP_DELAY_S
    trigger_interval_s: float = DEFAULT_TRIGGER_INTERVAL_S
    max_workers: int = DEFAULT_MAX_WORKERS


def _store_paths(env: Mapping[str, str]) -> tuple[Path, Path]:
    xdg_config = Path(env.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(env.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    shared_override = env.get("DYNCTL_SHARED_STORE")
    shared = Path(shared_override) if shared_override else xdg_data / "dynctl/shared.json"
    return xdg_config / "dynctl/devices.json", shared


def _read_number(env: Mapping[str, str], key: str, default: float, cast: type = float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        LOGGER.warning("Ignoring %s=%r: not a number, using %s", key, raw, default)
        return default
    if value <= 0:
        LOGGER.warning("Ignoring %s=%r: must be positive, using %s", key, raw, default)
        return default
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    local_store, shared_store = _store_paths(env)
    return Settings(
        local_store=local_store,
        shared_store=shared_store,
        poll_interval_s=_read_number(env, "DYNCTL_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_S),
        pulse_delay_s=_read_number(env, "DYNCTL_PULSE_DELAY", DEFAULT_PULSE_DELAY_S),
        follow_up_delay_s=_read_number(env, "DYNCTL_FOLLOW_UP_DELAY", DEFAULT_FOLLOW_UP_DELAY_S),
        trigger_interval_s=_read_number(env, "DYNCTL_TRIGGER_INTERVAL", DEFAULT_TRIGGER_INTERVAL_S),
        max_workers=int(_read_number(env, "DYNCTL_MAX_WORKERS", DEFAULT_MAX_WORKERS, cast=int)),
    )

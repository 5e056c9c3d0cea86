"""Runtime settings, read from ``BIOTRIAGE_*`` environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "BIOTRIAGE_"


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {raw!r}")
    return value


def _env_log_level(env: Mapping[str, str], default: str) -> str:
    raw = env.get(ENV_PREFIX + "LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        raise ValueError(f"{ENV_PREFIX}LOG_LEVEL must be a logging level name, got {raw!r}")
    return raw


@dataclass
class Settings:
    """Connection and polling settings.

    Attributes:
        serial_port: Default port for ``connect`` when none is given.
        baudrate: Default line speed.
        poll_interval: Seconds between temperature/pressure requests.
        read_timeout: Serial read timeout in seconds.
        log_level: Root logging level name.
    """

    serial_port: str = ""
    baudrate: int = 115200
    poll_interval: float = 5.0
    read_timeout: float = 0.1
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if env is None else env
        return cls(
            serial_port=env.get(ENV_PREFIX + "SERIAL_PORT", "").strip(),
            baudrate=_env_number(env, "BAUDRATE", cls.baudrate, int),
            poll_interval=_env_number(env, "POLL_INTERVAL", cls.poll_interval, float),
            read_timeout=_env_number(env, "READ_TIMEOUT", cls.read_timeout, float),
            log_level=_env_log_level(env, cls.log_level),
        )

"""
Relay configuration, read from RELAY_* environment variables.

    RELAY_HOST                       bind host            (0.0.0.0)
    RELAY_PORT                       bind port            (8080)
    RELAY_HANDSHAKE_EXPIRY_SECONDS   expiry window        (86400)
    RELAY_SWEEP_INTERVAL_SECONDS     sweeper period       (300)
    RELAY_CORS_ORIGINS               comma separated list
    RELAY_LOG_LEVEL                  log level            (INFO)
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Mapping, Optional

_DEFAULT_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    handshake_expiry: timedelta = timedelta(hours=24)
    sweep_interval_seconds: float = 300.0
    cors_origins: List[str] = field(
        default_factory=lambda: _DEFAULT_ORIGINS.split(",")
    )
    log_level: str = "INFO"


def _positive_int(
    env: Mapping[str, str], name: str, default: int, maximum: Optional[int] = None
) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be at most {maximum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    origins = env.get("RELAY_CORS_ORIGINS", _DEFAULT_ORIGINS)
    return Settings(
        host=env.get("RELAY_HOST", "0.0.0.0"),
        port=_positive_int(env, "RELAY_PORT", 8080, maximum=65535),
        handshake_expiry=timedelta(
            seconds=_positive_int(env, "RELAY_HANDSHAKE_EXPIRY_SECONDS", 86400)
        ),
        sweep_interval_seconds=float(
            _positive_int(env, "RELAY_SWEEP_INTERVAL_SECONDS", 300)
        ),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=env.get("RELAY_LOG_LEVEL", "INFO").upper(),
    )

import hashlib
import logging
from dataclasses import dataclass, replace
from os import environ
from typing import Mapping

from src.kernel.events import GENESIS_MESSAGE

ENV_PREFIX = "CHAINTRACE_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppConfig:
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    hash_algorithm: str = "sha256"
    genesis_message: str = GENESIS_MESSAGE
    log_level: str = "INFO"

    def with_overrides(self, **changes) -> "AppConfig":
        cfg = replace(self, **changes)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not 0 < self.port <= 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"hash_algorithm {self.hash_algorithm!r} is not available")
        if hashlib.new(self.hash_algorithm).digest_size != 32:
            raise ValueError("hash_algorithm must produce a 256-bit digest")
        if not (self.genesis_message or "").strip():
            raise ValueError("genesis_message must not be empty")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())


def _coerce_bool(value: str) -> bool:
    truthy = {"1", "true", "yes", "on"}
    falsy = {"0", "false", "no", "off"}
    lowered = value.strip().lower()
    if lowered in truthy:
        return True
    if lowered in falsy:
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _coerce_int(value: str, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer for {field}: {value}") from exc


def _get_env(env: Mapping[str, str], key: str):
    return env.get(f"{ENV_PREFIX}{key}")


def load_config(env: Mapping[str, str] = None) -> AppConfig:
    source = environ if env is None else env

    port_raw = _get_env(source, "PORT")
    debug_raw = _get_env(source, "DEBUG")

    cfg = AppConfig(
        host=_get_env(source, "HOST") or AppConfig.host,
        port=_coerce_int(port_raw, "port") if port_raw is not None else AppConfig.port,
        debug=_coerce_bool(debug_raw) if debug_raw is not None else AppConfig.debug,
        hash_algorithm=(_get_env(source, "HASH_ALGORITHM") or AppConfig.hash_algorithm).strip().lower(),
        genesis_message=_get_env(source, "GENESIS_MESSAGE") or AppConfig.genesis_message,
        log_level=(_get_env(source, "LOG_LEVEL") or AppConfig.log_level).strip().upper(),
    )
    cfg.validate()
    return cfg

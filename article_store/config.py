"""
Configuration models for the article store service.

This module centralizes the tunable runtime settings:

* HTTP bind host/port
* log level
* snapshot persistence path and write behavior

Settings can be built directly or read from ``ARTICLES_*`` environment
variables with :meth:`ServiceConfig.from_env`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

ENV_PREFIX = "ARTICLES_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class PersistenceConfig:
    """
    Snapshot persistence settings for restart recovery.

    Parameters
    ----------
    enabled:
        If false, the service runs purely in memory and starts from seed data.
    snapshot_path:
        File path of the binary snapshot.
    fsync:
        Force each written snapshot to disk before the save completes.
    atomic_writes:
        Write through a temporary file and rename. When false, each save
        truncates and rewrites the snapshot in place.
    """

    enabled: bool = True
    snapshot_path: str = "articles.snapshot"
    fsync: bool = False
    atomic_writes: bool = False

    def __post_init__(self) -> None:
        if self.enabled and not self.snapshot_path.strip():
            raise ValueError("PersistenceConfig.snapshot_path must be non-empty when enabled.")


@dataclass(slots=True)
class ServiceConfig:
    """
    Top-level runtime configuration for the HTTP service.

    Parameters
    ----------
    host:
        Interface the HTTP server binds to.
    port:
        TCP port the HTTP server listens on.
    log_level:
        Name of the root logging level (``DEBUG``, ``INFO``, ...).
    persistence:
        Snapshot persistence behavior.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)

    def __post_init__(self) -> None:
        """Validate values that would otherwise fail late at server startup."""
        if not self.host:
            raise ValueError("ServiceConfig.host must be a non-empty string.")
        if not (1 <= int(self.port) <= 65535):
            raise ValueError("ServiceConfig.port must be in range 1..65535.")
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"ServiceConfig.log_level {self.log_level!r} is not a logging level.")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServiceConfig":
        """
        Build a configuration from ``ARTICLES_*`` environment variables.

        Unset or blank variables fall back to the dataclass defaults.

        Raises
        ------
        RuntimeError
            If a variable holds a value of the wrong type.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        persistence_defaults = defaults.persistence
        return cls(
            host=_get_env(env, "HOST", defaults.host),
            port=_parse_int(env, "PORT", defaults.port),
            log_level=_get_env(env, "LOG_LEVEL", defaults.log_level),
            persistence=PersistenceConfig(
                enabled=_parse_bool(env, "PERSISTENCE", persistence_defaults.enabled),
                snapshot_path=_get_env(env, "DATA_FILE", persistence_defaults.snapshot_path),
                fsync=_parse_bool(env, "FSYNC", persistence_defaults.fsync),
                atomic_writes=_parse_bool(
                    env, "ATOMIC_WRITES", persistence_defaults.atomic_writes
                ),
            ),
        )


def _get_env(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(f"{ENV_PREFIX}{name}", "").strip()
    return value if value else default


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get_env(env, name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {ENV_PREFIX}{name} must be an integer.") from exc


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get_env(env, name, "").lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise RuntimeError(
        f"Environment variable {ENV_PREFIX}{name} must be a boolean "
        f"(one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))})."
    )

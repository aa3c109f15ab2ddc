"""Host configuration loaded from ``piecework.toml``."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import tomllib
from platformdirs import user_config_dir, user_data_dir

APP_NAME = "piecework"
CONFIG_FILE_NAME = "piecework.toml"
CONFIG_ENV_VAR = "PIECEWORK_CONFIG"
DEFAULT_USER_ID = "piecework"
DEFAULT_PROVIDER = "json"


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or validated."""


def default_config_path(config_dir: Path | None = None) -> Path:
    """Return the config path, honouring ``PIECEWORK_CONFIG``."""

    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    if config_dir is None:
        config_dir = Path(user_config_dir(APP_NAME, appauthor=APP_NAME))
    return config_dir / CONFIG_FILE_NAME


def default_data_dir() -> Path:
    """Where pieces keep their data when the config does not say."""

    return Path(user_data_dir(APP_NAME, appauthor=APP_NAME))


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = document.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _typed(section: Mapping[str, Any], label: str, key: str, expected: type, default: Any) -> Any:
    if key not in section:
        return default
    value = section[key]
    if expected is bool and not isinstance(value, bool):
        raise ConfigError(f"{label}.{key} must be a boolean")
    if not isinstance(value, expected):
        raise ConfigError(f"{label}.{key} must be of type {expected.__name__}")
    return value


def _string_list(section: Mapping[str, Any], label: str, key: str) -> list[str]:
    values = _typed(section, label, key, list, [])
    if not all(isinstance(value, str) and value.strip() for value in values):
        raise ConfigError(f"{label}.{key} must be a list of non-empty strings")
    return [value.strip() for value in values]


@dataclass(frozen=True)
class HostConfig:
    """Settings the host uses to find, configure and log pieces."""

    user_id: str = DEFAULT_USER_ID
    log_level: str = "INFO"
    builtin_pieces: bool = True
    directories: tuple[Path, ...] = ()
    disabled: frozenset[str] = frozenset()
    provider: str | None = DEFAULT_PROVIDER
    data_dir: Path = field(default_factory=default_data_dir)
    path: Path | None = None

    @classmethod
    def load(cls, path: Path | str | None = None) -> "HostConfig":
        """Read configuration from ``path``; a missing file yields defaults."""

        config_path = Path(path) if path is not None else default_config_path()
        if not config_path.exists():
            return cls(path=config_path)
        try:
            with config_path.open("rb") as handle:
                document = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"unable to read config at {config_path}: {exc}") from exc
        return cls.from_mapping(document, base_dir=config_path.parent, path=config_path)

    @classmethod
    def from_mapping(
        cls,
        document: Mapping[str, Any],
        *,
        base_dir: Path | None = None,
        path: Path | None = None,
    ) -> "HostConfig":
        host = _section(document, "host")
        pieces = _section(document, "pieces")
        base = base_dir or Path.cwd()

        log_level = str(_typed(host, "host", "log_level", str, "INFO")).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"host.log_level {log_level!r} is not a logging level")

        user_id = _typed(host, "host", "user_id", str, DEFAULT_USER_ID).strip()
        if not user_id:
            raise ConfigError("host.user_id cannot be empty")

        disabled = _string_list(pieces, "pieces", "disabled")
        for entry in disabled:
            kind, sep, name = entry.partition(":")
            if not sep or not kind or not name:
                raise ConfigError(f"pieces.disabled entry {entry!r} must look like 'kind:name'")

        provider = _typed(pieces, "pieces", "provider", str, DEFAULT_PROVIDER).strip() or None

        data_dir_raw = _typed(pieces, "pieces", "data_dir", str, "")
        data_dir = base / data_dir_raw if data_dir_raw else default_data_dir()

        return cls(
            user_id=user_id,
            log_level=log_level,
            builtin_pieces=_typed(host, "host", "builtin_pieces", bool, True),
            directories=tuple(base / entry for entry in _string_list(pieces, "pieces", "directories")),
            disabled=frozenset(disabled),
            provider=provider,
            data_dir=data_dir,
            path=path,
        )

    def is_disabled(self, kind: str, name: str) -> bool:
        return f"{kind}:{name}" in self.disabled

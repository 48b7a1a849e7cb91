from __future__ import annotations

import os
import pathlib
import tomllib
import typing as t

import yaml

from sqlbatch.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    VERBOSITY_FULL,
    VERBOSITY_LOW,
    VERBOSITY_NAMES,
    VERBOSITY_NONE,
)
from sqlbatch.errors import ConfigError

_DEFAULT_PATH = pathlib.Path("sqlbatch.config.yml")


def _secret(value: t.Any) -> str | None:
    """Resolve the ``${ENV_VAR}`` syntax used for credentials."""
    if value is None:
        return None
    raw = str(value)
    if raw.startswith("${") and raw.endswith("}"):
        return os.getenv(raw[2:-1])
    return raw


def _flag(value: t.Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_verbosity(value: t.Any) -> int:
    """
    Map ``0``‑``3`` or a level name (``none``, ``low``, ``medium``/``med``/``m``,
    ``full``/``f``) to the numeric verbosity.  ``None`` means *low*.
    """
    if value is None:
        return VERBOSITY_LOW
    if isinstance(value, bool):
        raise ConfigError(f"Invalid verbosity {value!r}")
    if isinstance(value, int):
        level = value
    else:
        text = str(value).strip().lower()
        if text.isdigit():
            level = int(text)
        elif text in VERBOSITY_NAMES:
            return VERBOSITY_NAMES[text]
        else:
            raise ConfigError(f"Invalid verbosity {value!r}")
    if not VERBOSITY_NONE <= level <= VERBOSITY_FULL:
        raise ConfigError(f"Verbosity must be between 0 and 3, got {level}")
    return level


class Environment:
    """
    A thin value‑object holding the connection attributes and the execution
    defaults of one named environment.  Nothing here talks to the database.
    """

    def __init__(self, name: str, d: dict[str, t.Any]) -> None:
        self.name: str = name
        self.user: str | None = _secret(d.get("user"))
        self.password: str | None = _secret(d.get("password"))
        if not (self.user and self.password):
            raise ConfigError(
                f"Both database username and password must be defined (env {name!r})"
            )

        self.host: str = d.get("host") or DEFAULT_HOST
        try:
            self.port: int = int(d.get("port") or DEFAULT_PORT)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid port {d.get('port')!r}") from exc
        self.database: str | None = d.get("database") or None

        self.verbosity: int = parse_verbosity(d.get("verbosity"))
        self.force: bool = _flag(d.get("force"), True)
        self.serial: bool = _flag(d.get("serial"), False)
        # Issue ``USE <database>`` ahead of every script
        self.switch_database: bool = _flag(d.get("switch_database"), False)
        self.ssl: bool = _flag(d.get("ssl"), False)

        if self.switch_database and not self.database:
            raise ConfigError("`switch_database` needs a `database` to switch to")

    def __repr__(self) -> str:
        return f"Environment({self.name!r}, {self.user}@{self.host}:{self.port}/{self.database or ''})"

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #
    def dsn(self) -> dict[str, t.Any]:
        """Return kwargs that mysql‑connector understands."""
        dsn: dict[str, t.Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "ssl_disabled": not self.ssl,
        }
        if self.database:
            dsn["database"] = self.database
        return dsn


def _read(path: pathlib.Path) -> dict[str, t.Any]:
    if path.suffix.lower() == ".toml":
        with path.open("rb") as fh:
            return tomllib.load(fh)
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def load(
    path: pathlib.Path | str | None = None,
    env: str | None = None,
    overrides: dict[str, t.Any] | None = None,
) -> Environment:
    """
    Parse *path* (YAML or TOML, default ``sqlbatch.config.yml``) and return the
    :class:`Environment` called *env*, with non‑``None`` *overrides* applied.

    Without an explicit *path* a missing default file is not an error: the
    environment is then built from *overrides* alone.
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    cfg_file = pathlib.Path(path) if path else _DEFAULT_PATH

    if not cfg_file.exists():
        if path:
            raise ConfigError(f"Config file {cfg_file} not found.")
        if env:
            raise ConfigError(f"Environment {env!r} requested but {cfg_file} not found.")
        return Environment("default", overrides)

    try:
        raw = _read(cfg_file)
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Cannot parse {cfg_file}: {exc}") from exc

    env_name = env or raw.get("default_env")
    if not env_name:
        raise ConfigError("No environment specified and no default_env in config")

    try:
        settings = dict(raw["environments"][env_name])
    except (KeyError, TypeError) as exc:
        raise ConfigError(f"Environment {env_name!r} not found in config") from exc

    settings.update(overrides)
    return Environment(env_name, settings)

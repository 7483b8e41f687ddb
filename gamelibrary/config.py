"""Application configuration read from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from datetime import timedelta
from fractions import Fraction
from typing import Any

SERVICE_NAME = "game-library-api"

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_PART = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION = re.compile(rf"([+-]?)((?:{_PART})+|0)")

_BOOLS = {
    **dict.fromkeys(("1", "t", "T", "TRUE", "true", "True"), True),
    **dict.fromkeys(("0", "f", "F", "FALSE", "false", "False"), False),
}

# Environment variable names of credential settings.
_DB_CREDENTIAL_VAR = "DB_PASSWORD"
_IGDB_CLIENT_CREDENTIAL_VAR = "IGDB_CLIENT_SECRET"
_UPLOADCARE_PRIVATE_VAR = "UPLOADCARE_SECRET_KEY"
_REDIS_CREDENTIAL_VAR = "REDIS_PASSWORD"


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"1.5h"`` or ``"2m30s"``."""
    match = _DURATION.fullmatch(value)
    if match is None:
        raise ValueError(f'time: invalid duration "{value}"')
    total = sum(
        (Fraction(number) * _UNIT_NANOSECONDS[unit] for number, unit in re.findall(_PART, match[2])),
        Fraction(0),
    )
    if match[1] == "-":
        total = -total
    return timedelta(microseconds=float(total / 1000))


def _parse_bool(value: str) -> bool:
    try:
        return _BOOLS[value]
    except KeyError:
        raise ValueError(f'invalid boolean value "{value}"') from None


def _env(key: str, default: Any = "", convert: Callable[[str], Any] = str) -> Any:
    return field(default=default, metadata={"env": key, "convert": convert})


@dataclass
class DBSettings:
    """Database settings."""

    host: str = _env("DB_HOST")
    name: str = _env("DB_NAME")
    user: str = _env("DB_USER")
    password: str = _env(_DB_CREDENTIAL_VAR)
    require_ssl: bool = _env("DB_REQUIRESSL", False, _parse_bool)


@dataclass
class WebSettings:
    """Web server settings."""

    address: str = _env("APP_ADDRESS")
    debug_address: str = _env("DEBUG_ADDRESS")
    read_timeout: timedelta = _env("APP_READTIMEOUT", timedelta(0), parse_duration)
    write_timeout: timedelta = _env("APP_WRITETIMEOUT", timedelta(0), parse_duration)
    shutdown_timeout: timedelta = _env("APP_SHUTDOWNTIMEOUT", timedelta(0), parse_duration)
    allowed_cors_origin: str = _env("APP_ALLOWEDCORSORIGIN")


@dataclass
class ZipkinSettings:
    """Trace storage settings."""

    reporter_url: str = _env("ZIPKIN_REPORTERURL")


@dataclass
class AuthSettings:
    """Authentication and authorization settings."""

    verify_token_api_url: str = _env("AUTH_VERIFYTOKENURL")
    signing_algorithm: str = _env("AUTH_SIGNINGALG")


@dataclass
class IGDBSettings:
    """IGDB integration settings."""

    client_id: str = _env("IGDB_CLIENT_ID")
    client_secret: str = _env(_IGDB_CLIENT_CREDENTIAL_VAR)
    token_url: str = _env("IGDB_TOKEN_URL")
    api_url: str = _env("IGDB_API_URL")


@dataclass
class SchedulerSettings:
    """Scheduled task settings."""

    fetch_igdb_games: str = _env("SCHED_FETCH_IGDB_GAMES")


@dataclass
class UploadcareSettings:
    """Uploadcare integration settings."""

    public_key: str = _env("UPLOADCARE_PUBLIC_KEY")
    secret_key: str = _env(_UPLOADCARE_PRIVATE_VAR)


@dataclass
class RedisSettings:
    """Redis settings."""

    address: str = _env("REDIS_ADDR")
    password: str = _env(_REDIS_CREDENTIAL_VAR)
    ttl: str = _env("REDIS_TTL")


@dataclass
class GraylogSettings:
    """Graylog integration settings."""

    address: str = _env("GRAYLOG_ADDR")


@dataclass
class Config:
    """Whole application configuration."""

    db: DBSettings = field(default_factory=DBSettings)
    web: WebSettings = field(default_factory=WebSettings)
    zipkin: ZipkinSettings = field(default_factory=ZipkinSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    igdb: IGDBSettings = field(default_factory=IGDBSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    uploadcare: UploadcareSettings = field(default_factory=UploadcareSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    graylog: GraylogSettings = field(default_factory=GraylogSettings)


def _build(cls: type, environ: Mapping[str, str]) -> Any:
    values = {}
    for item in fields(cls):
        key = item.metadata["env"]
        if key in environ:
            try:
                values[item.name] = item.metadata["convert"](environ[key])
            except ValueError as exc:
                raise ValueError(f"{key}: {exc}") from exc
    return cls(**values)


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build the configuration from a mapping of environment variables."""
    env = os.environ if environ is None else environ
    return Config(**{f.name: _build(type(f.default_factory()), env) for f in fields(Config)})
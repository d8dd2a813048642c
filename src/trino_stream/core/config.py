"""Configuration management for trino-stream.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--host, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (TRINO_HOST, TRINO_PORT, TRINO_USER, ...)
4. Named profile (--profile or TRINO_PROFILE env var)
5. Config file defaults
6. Built-in defaults
"""

from __future__ import annotations

import getpass
import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from trino_stream.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "trino-stream" / "config.toml"

_TRINO_ENV_VARS: dict[str, str] = {
    "TRINO_HOST": "host",
    "TRINO_PORT": "port",
    "TRINO_USER": "user",
    "TRINO_PASSWORD": "password",  # pragma: allowlist secret
    "TRINO_CATALOG": "catalog",
    "TRINO_SCHEMA": "schema_name",
}

_HTTP_SCHEMES = ("http", "https")


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "trino-stream"


def _profile_defaults() -> dict[str, Any]:
    return {
        "host": "localhost",
        "port": 8080,
        "user": _default_user(),
        "password": None,
        "catalog": None,
        "schema_name": None,
        "source": "trino-stream",
        "http_scheme": "http",
        "verify": True,
        "time_zone": None,
        "client_tags": [],
        "session_properties": {},
        "request_timeout": 30.0,
        "max_attempts": 5,
    }


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Parse ``trino://user:pw@host:port/catalog/schema?source=..&http_scheme=..``."""
    parsed = urlparse(dsn)
    if parsed.scheme != "trino":
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'trino'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    if parsed.hostname:
        result["host"] = parsed.hostname
    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigError(f"Invalid port in DSN: {e}") from e
    if port:
        result["port"] = port
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)

    path = [part for part in parsed.path.split("/") if part]
    if len(path) > 2:
        msg = f"Invalid DSN path: '{parsed.path}'. Expected /catalog[/schema]"
        raise ConfigError(msg)
    if path:
        result["catalog"] = path[0]
    if len(path) == 2:
        result["schema_name"] = path[1]

    query_params = parse_qs(parsed.query)
    if "source" in query_params:
        result["source"] = query_params["source"][0]
    if "http_scheme" in query_params:
        result["http_scheme"] = query_params["http_scheme"][0]
    if "time_zone" in query_params:
        result["time_zone"] = query_params["time_zone"][0]
    if "verify" in query_params:
        result["verify"] = query_params["verify"][0].lower() not in ("false", "0")
    return result


class TrinoProfile(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int = 8080
    user: str | None = None
    password: str | None = None
    catalog: str | None = None
    # TOML files may spell it ``schema``
    schema_name: str | None = Field(
        default=None, validation_alias=AliasChoices("schema_name", "schema")
    )
    source: str = "trino-stream"
    http_scheme: str = "http"
    verify: bool = True
    time_zone: str | None = None
    client_tags: list[str] = []
    session_properties: dict[str, str] = {}
    request_timeout: float = 30.0
    max_attempts: int = 5

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("http_scheme")
    @classmethod
    def validate_http_scheme(cls, v: str) -> str:
        if v not in _HTTP_SCHEMES:
            msg = f"Invalid http_scheme: '{v}'. Must be one of: {', '.join(_HTTP_SCHEMES)}"
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def connection_url(self) -> str:
        userinfo = f"{self.user}@" if self.user else ""
        path = ""
        if self.catalog:
            path = f"/{self.catalog}"
            if self.schema_name:
                path += f"/{self.schema_name}"
        return f"trino://{userinfo}{self.host}:{self.port}{path}?http_scheme={self.http_scheme}"


class AppConfig(BaseModel):
    default_timeout: float = 300.0
    default_format: str = "table"
    default_profile: str | None = None
    profiles: dict[str, TrinoProfile] = {}


class ResolvedConfig(BaseModel):
    host: str = "localhost"
    port: int = 8080
    user: str = "trino-stream"
    password: str | None = None
    catalog: str | None = None
    schema_name: str | None = None
    source: str = "trino-stream"
    http_scheme: str = "http"
    verify: bool = True
    time_zone: str | None = None
    client_tags: list[str] = []
    session_properties: dict[str, str] = {}
    request_timeout: float = 30.0
    max_attempts: int = 5
    default_timeout: float = 300.0
    default_format: str = "table"
    active_profile: str | None = None
    sources: dict[str, str] = {}

    @property
    def base_url(self) -> str:
        return f"{self.http_scheme}://{self.host}:{self.port}"


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > DSN > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_profile_defaults())
    resolved["default_timeout"] = 300.0
    resolved["default_format"] = "table"
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    if config.default_timeout != 300.0:
        resolved["default_timeout"] = config.default_timeout
        sources["default_timeout"] = "config"
    if config.default_format != "table":
        resolved["default_format"] = config.default_format
        sources["default_format"] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("TRINO_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "dsn":
                continue
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _TRINO_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            if field_name == "port":
                try:
                    resolved[field_name] = int(value)
                except ValueError:
                    msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                    raise ConfigError(msg) from None
            else:
                resolved[field_name] = value
            sources[field_name] = f"env: {env_var}"

    # Layer 5: DSN flag
    if dsn:
        dsn_fields = parse_dsn(dsn)
        for key, value in dsn_fields.items():
            if key in resolved:
                resolved[key] = value
                sources[key] = "dsn"

    # Layer 6: CLI flags (highest priority)
    cli_to_field = {
        "host": "host",
        "port": "port",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "catalog": "catalog",
        "schema": "schema_name",
        "http_scheme": "http_scheme",
        "timeout": "default_timeout",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name}"

    # --session adds to the profile's properties rather than replacing them
    session = cli_overrides.get("session")
    if session:
        resolved["session_properties"] = {**resolved["session_properties"], **session}
        sources["session_properties"] = "cli: --session"

    if resolved["http_scheme"] not in _HTTP_SCHEMES:
        msg = (
            f"Invalid http_scheme: '{resolved['http_scheme']}'. "
            f"Must be one of: {', '.join(_HTTP_SCHEMES)}"
        )
        raise ConfigError(msg)

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    return ResolvedConfig(**resolved)

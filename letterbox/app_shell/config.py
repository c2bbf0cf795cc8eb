"""
Configuration loading.

``configuration/base.yaml`` is deep-merged with ``configuration/<env>.yaml``
(env from LETTERBOX_ENVIRONMENT, default ``local``), then any
``LETTERBOX_<SECTION>__<KEY>`` environment variable overrides a leaf.
The result is validated into Settings.

Raises FileNotFoundError for a missing file, ValueError for bad YAML, an
unknown environment, or a schema violation.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from letterbox.core.ports.email import EmailAddress
from letterbox.domain.subscriber import SubscriberEmail, SubscriberName

ENV_PREFIX = "LETTERBOX_"
ENVIRONMENT_VARIABLE = "LETTERBOX_ENVIRONMENT"
DEFAULT_CONFIG_DIR = Path("configuration")


class Environment(str, Enum):
    LOCAL = "local"
    PRODUCTION = "production"


class ApplicationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = 8000
    base_url: str
    hmac_secret: SecretStr
    session_secret: SecretStr
    session_ttl_minutes: int = Field(default=60, gt=0)
    secure_cookies: bool = False

    @field_validator("hmac_secret", "session_secret")
    @classmethod
    def _secret_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("must not be empty")
        return v


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str


class EmailBackend(str, Enum):
    DEV = "dev"
    BREVO = "brevo"


class EmailSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: EmailBackend = EmailBackend.DEV
    api_url: str = "https://api.brevo.com/v3/smtp/email"
    api_key: SecretStr = SecretStr("")
    sender_name: str
    sender_email: str
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("sender_name")
    @classmethod
    def _valid_sender_name(cls, v: str) -> str:
        return str(SubscriberName.parse(v))

    @field_validator("sender_email")
    @classmethod
    def _valid_sender_email(cls, v: str) -> str:
        return str(SubscriberEmail.parse(v))

    @property
    def sender(self) -> EmailAddress:
        return EmailAddress(email=self.sender_email, name=self.sender_name)


class AuthSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time_cost: int = Field(default=2, ge=1)
    memory_cost: int = Field(default=15000, ge=8)
    parallelism: int = Field(default=1, ge=1)
    verifier_workers: int = Field(default=4, ge=1)


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    application: ApplicationSettings
    database: DatabaseSettings
    email: EmailSettings
    auth: AuthSettings = Field(default_factory=AuthSettings)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """``LETTERBOX_EMAIL__API_KEY=x`` -> ``{"email": {"api_key": "x"}}``"""
    overrides: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or "__" not in name:
            continue
        section, _, key = name[len(ENV_PREFIX):].lower().partition("__")
        if section and key:
            overrides.setdefault(section, {})[key] = value
    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path.name}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a mapping at the top level")
    return data


def resolve_environment(raw: str | None) -> Environment:
    try:
        return Environment((raw or Environment.LOCAL.value).lower())
    except ValueError as e:
        raise ValueError(
            f"{raw} is not a supported environment. Use either `local` or `production`."
        ) from e


def load_settings(
    config_dir: Path = DEFAULT_CONFIG_DIR,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    environ = os.environ if environ is None else environ
    environment = resolve_environment(environ.get(ENVIRONMENT_VARIABLE))

    data = deep_merge(
        _read_yaml(config_dir / "base.yaml"),
        _read_yaml(config_dir / f"{environment.value}.yaml"),
    )
    data = deep_merge(data, env_overrides(environ))

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e

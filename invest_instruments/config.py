#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Any, Dict, Optional, Union
from dataclasses import dataclass
from pathlib import Path
import logging

import yaml

from invest_instruments.common.errors import ConfigError

logger = logging.getLogger("__main__")

PROD_ENDPOINT = "invest-public-api.tinkoff.ru:443"
SANDBOX_ENDPOINT = "sandbox-invest-public-api.tinkoff.ru:443"

DEFAULT_APP_NAME = "invest-instruments"
DEFAULT_CONNECT_TIMEOUT = 10.0

# Accepted spellings for each field, keys are compared in lower case
CONFIG_KEYS = {
    "endpoint": ("endpoint",),
    "token": ("apitoken", "token"),
    "app_name": ("appname", "app_name"),
    "account_id": ("accountid", "account_id"),
    "insecure": ("insecure",),
    "connect_timeout": ("connecttimeout", "connect_timeout"),
}

# Retries are left to the remote service, these keys are accepted but not used
IGNORED_KEYS = ("maxretries", "disableallretry", "disableresourceexhaustedretry")

TRUE_VALUES = ("true", "yes", "on", "1")
FALSE_VALUES = ("false", "no", "off", "0")


@dataclass(frozen=True)
class Config:
    token: str
    endpoint: str = SANDBOX_ENDPOINT
    app_name: str = DEFAULT_APP_NAME
    account_id: Optional[str] = None
    insecure: bool = False
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self):
        if not self.token:
            raise ConfigError("Missing required key: 'APIToken'")

        if not self.endpoint:
            object.__setattr__(self, "endpoint", SANDBOX_ENDPOINT)

        if not self.app_name:
            object.__setattr__(self, "app_name", DEFAULT_APP_NAME)

        if self.connect_timeout <= 0:
            raise ConfigError(
                f"Connect timeout must be positive, got: '{self.connect_timeout}'"
            )

    def __repr__(self) -> str:
        return (
            f"Config(endpoint={self.endpoint!r}, app_name={self.app_name!r}, "
            f"account_id={self.account_id!r}, insecure={self.insecure!r}, "
            f"connect_timeout={self.connect_timeout!r})"
        )


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, (str, int)):
        _value = str(value).strip().lower()
        if _value in TRUE_VALUES:
            return True
        if _value in FALSE_VALUES:
            return False

    raise ValueError(f"Expected a boolean, got: '{value}'")


def _resolve(raw: Dict[str, Any]) -> Dict[str, Any]:
    _resolved: Dict[str, Any] = {}
    for field, aliases in CONFIG_KEYS.items():
        for alias in aliases:
            if raw.get(alias) is not None:
                _resolved[field] = raw[alias]
                break

    for key in raw:
        if key in IGNORED_KEYS:
            logger.debug(f"Config: Ignoring retry option: '{key}'")
        elif not any(key in aliases for aliases in CONFIG_KEYS.values()):
            logger.warning(f"Config: Unknown option: '{key}', skipping")

    return _resolved


def load_config(path: Union[str, Path]) -> Config:
    """Loads the client configuration from a YAML file"""
    _path = Path(path)
    try:
        with _path.open(mode="r", encoding="utf-8") as _file:
            raw = yaml.safe_load(_file)
    except OSError as exc:
        raise ConfigError(f"Failed to read config file: '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file: '{path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file: '{path}' must contain a mapping")

    _resolved = _resolve({str(key).lower(): value for key, value in raw.items()})

    try:
        if "connect_timeout" in _resolved:
            _resolved["connect_timeout"] = float(_resolved["connect_timeout"])
        if "insecure" in _resolved:
            _resolved["insecure"] = _to_bool(_resolved["insecure"])
        for key in ("token", "endpoint", "app_name", "account_id"):
            if key in _resolved:
                _resolved[key] = str(_resolved[key])

        return Config(**{"token": "", **_resolved})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config file: '{path}': {exc}") from exc

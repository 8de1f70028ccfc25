"""Configuration files of lvmd and of the scheduler extender."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any

import yaml

from topolvm.constants import DEFAULT_LVMD_SOCKET

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDR = ":8000"
DEFAULT_DIVISOR = 1.0


class ConfigError(ValueError):
    """Raised when a configuration file has the wrong shape."""


def _read_mapping(path: str | PathLike[str]) -> dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: configuration must be a mapping")
    return data


def _string(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{key}: expected a string, got {value!r}")
    return value


def _mapping_list(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ConfigError(f"{key}: expected a list of mappings")
    return value


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key}: expected a number, got {value!r}")
    return float(value)


@dataclass
class LvmdConfig:
    """Configuration of lvmd: its socket and the device and lvcreate option classes."""

    socket_name: str = DEFAULT_LVMD_SOCKET
    device_classes: list[dict[str, Any]] = field(default_factory=list)
    lvcreate_option_classes: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def load(cls, path: str | PathLike[str]) -> LvmdConfig:
        """Read a YAML file; keys it does not set keep their defaults."""
        data = _read_mapping(path)
        config = cls(
            socket_name=_string(data, "socket-name", DEFAULT_LVMD_SOCKET),
            device_classes=_mapping_list(data, "device-classes"),
            lvcreate_option_classes=_mapping_list(data, "lvcreate-option-classes"),
        )
        logger.info(
            "configuration file loaded",
            extra={
                "device_classes": config.device_classes,
                "socket_name": config.socket_name,
                "file_name": str(path),
            },
        )
        return config


@dataclass
class SchedulerConfig:
    """Configuration of the scheduler extender."""

    listen_addr: str = DEFAULT_LISTEN_ADDR
    # Divisor of each device-class, by name.
    divisors: dict[str, float] = field(default_factory=dict)
    default_divisor: float = DEFAULT_DIVISOR

    @classmethod
    def load(cls, path: str | PathLike[str] | None) -> SchedulerConfig:
        """Read a YAML file, or return the defaults when no path is given."""
        if not path:
            return cls()
        data = _read_mapping(path)
        raw_divisors = data.get("divisors")
        if raw_divisors is None:
            divisors: dict[str, float] = {}
        elif isinstance(raw_divisors, dict):
            divisors = {
                str(name): _number(value, f"divisors.{name}")
                for name, value in raw_divisors.items()
            }
        else:
            raise ConfigError("divisors: expected a mapping")
        default = data.get("default-divisor")
        return cls(
            listen_addr=_string(data, "listen", DEFAULT_LISTEN_ADDR),
            divisors=divisors,
            default_divisor=(
                DEFAULT_DIVISOR if default is None else _number(default, "default-divisor")
            ),
        )
"""Connection configuration for the extruder monitor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import voluptuous as vol

from .const import (
    CONF_BAUDRATE,
    CONF_HISTORY_SIZE,
    CONF_PORT,
    CONF_TIMEOUT,
    CONF_WARNING_LIMIT,
    DEFAULT_BAUDRATE,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_WARNING_LIMIT,
)


CONNECTION_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_PORT): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_BAUDRATE, default=DEFAULT_BAUDRATE): vol.All(
            vol.Coerce(int), vol.Range(min=300, max=4_000_000)
        ),
        vol.Optional(CONF_TIMEOUT, default=DEFAULT_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=10.0)
        ),
        vol.Optional(CONF_HISTORY_SIZE, default=DEFAULT_HISTORY_SIZE): vol.All(int, vol.Range(min=1)),
        vol.Optional(CONF_WARNING_LIMIT, default=DEFAULT_WARNING_LIMIT): vol.All(int, vol.Range(min=1)),
    }
)


class InvalidConfig(ValueError):
    """Raised when connection settings fail validation."""

    def __init__(self, key: str | None, message: str) -> None:
        self.key = key
        super().__init__(f"{key}: {message}" if key else message)


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    port: str
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT
    history_size: int = DEFAULT_HISTORY_SIZE
    warning_limit: int = DEFAULT_WARNING_LIMIT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectionConfig:
        """Validate raw settings and build a config object."""
        try:
            validated = CONNECTION_SCHEMA(dict(data))
        except vol.MultipleInvalid as err:
            first = err.errors[0]
            key = str(first.path[0]) if first.path else None
            raise InvalidConfig(key, first.msg) from err
        return cls(
            port=validated[CONF_PORT],
            baudrate=validated[CONF_BAUDRATE],
            timeout=validated[CONF_TIMEOUT],
            history_size=validated[CONF_HISTORY_SIZE],
            warning_limit=validated[CONF_WARNING_LIMIT],
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            CONF_PORT: self.port,
            CONF_BAUDRATE: self.baudrate,
            CONF_TIMEOUT: self.timeout,
            CONF_HISTORY_SIZE: self.history_size,
            CONF_WARNING_LIMIT: self.warning_limit,
        }

"""Telemetry monitor for serial filament extruder controllers."""

from __future__ import annotations

from typing import Any

from .config import ConnectionConfig, InvalidConfig
from .coordinator import ExtruderCoordinator, RawLine, TelemetrySnapshot, TransportFailure
from .protocol import (
    DataRow,
    DecodeError,
    DecodeErrorKind,
    SystemStatus,
    UnknownStatus,
    decode_row,
    is_header,
    parse_status,
)
from .session import (
    HeaderDetected,
    InitBlock,
    InitBlockReady,
    InitLine,
    ParserSession,
    ParseWarning,
    Row,
    SessionPhase,
)
from .transport import NotConnected, PortInfo, PortType, SerialTransport, TransportError, list_ports

__all__ = [
    "CannotConnect",
    "ConnectionConfig",
    "DataRow",
    "DecodeError",
    "DecodeErrorKind",
    "ExtruderCoordinator",
    "HeaderDetected",
    "InitBlock",
    "InitBlockReady",
    "InitLine",
    "InvalidConfig",
    "NotConnected",
    "ParseWarning",
    "ParserSession",
    "PortInfo",
    "PortType",
    "RawLine",
    "Row",
    "SerialTransport",
    "SessionPhase",
    "SystemStatus",
    "TelemetrySnapshot",
    "TransportError",
    "TransportFailure",
    "UnknownStatus",
    "async_setup",
    "async_unload",
    "decode_row",
    "is_header",
    "list_ports",
    "parse_status",
]


class CannotConnect(TransportError):
    """Error to indicate the extruder port could not be opened."""


async def async_setup(data: dict[str, Any]) -> ExtruderCoordinator:
    """Validate settings, open the port and start streaming."""
    config = ConnectionConfig.from_dict(data)
    coordinator = ExtruderCoordinator(config)
    try:
        await coordinator.async_start_reader()
    except TransportError as err:
        raise CannotConnect(f"Unable to open extruder port {config.port} at {config.baudrate} baud") from err
    return coordinator


async def async_unload(coordinator: ExtruderCoordinator) -> None:
    """Stop the reader task and close the port."""
    await coordinator.async_stop_reader()

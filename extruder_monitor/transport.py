"""Serial transport for the extruder controller (pyserial)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any, Callable

import serial
from serial.tools import list_ports as serial_list_ports

from .config import ConnectionConfig
from .const import WAKEUP_PAYLOAD

_LOGGER = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when the serial link fails."""


class NotConnected(TransportError):
    """Raised when an operation needs an open port."""

    def __init__(self) -> None:
        super().__init__("Not connected to a serial port")


class PortType(Enum):
    USB = "USB"
    PCI = "PCI"
    BLUETOOTH = "Bluetooth"
    UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class PortInfo:
    port_name: str
    port_type: PortType


def classify_port(port: Any) -> PortType:
    """Derive a coarse type tag from a pyserial ListPortInfo."""
    if getattr(port, "vid", None) is not None:
        return PortType.USB
    hwid = (getattr(port, "hwid", "") or "").upper()
    device = (getattr(port, "device", "") or "").lower()
    description = (getattr(port, "description", "") or "").lower()
    if hwid.startswith("USB"):
        return PortType.USB
    if hwid.startswith("PCI"):
        return PortType.PCI
    if "BTHENUM" in hwid or "rfcomm" in device or "bluetooth" in description:
        return PortType.BLUETOOTH
    return PortType.UNKNOWN


def list_ports() -> list[PortInfo]:
    """Return the serial ports visible on this machine."""
    return [
        PortInfo(port_name=port.device, port_type=classify_port(port))
        for port in serial_list_ports.comports()
    ]


class SerialTransport:
    """Line-oriented reader/writer around one pyserial port."""

    def __init__(
        self,
        config: ConnectionConfig,
        serial_factory: Callable[..., Any] = serial.Serial,
    ) -> None:
        self.config = config
        self._serial_factory = serial_factory
        self._serial: Any = None
        self._buffer = bytearray()
        self._write_lock = threading.Lock()
        self._read_lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._serial is not None

    def open(self) -> None:
        if self._serial is not None:
            return
        try:
            self._serial = self._serial_factory(
                port=self.config.port,
                baudrate=self.config.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.config.timeout,
            )
        except (serial.SerialException, OSError) as err:
            raise TransportError(f"Failed to open port: {err}") from err
        with self._read_lock:
            self._buffer.clear()
        _LOGGER.debug("Opened %s at %s baud", self.config.port, self.config.baudrate)

    def close(self) -> None:
        """Close the port once any in-flight read has returned."""
        with self._write_lock:
            ser, self._serial = self._serial, None
        with self._read_lock:
            self._buffer.clear()
            if ser is None:
                return
            try:
                ser.close()
            except (serial.SerialException, OSError) as err:
                _LOGGER.debug("Error closing %s: %s", self.config.port, err)

    def write(self, data: bytes) -> None:
        with self._write_lock:
            if self._serial is None:
                raise NotConnected()
            try:
                self._serial.write(data)
                self._serial.flush()
            except (serial.SerialException, OSError) as err:
                raise TransportError(f"Failed to write: {err}") from err

    def send_wakeup(self) -> None:
        """Nudge the controller into printing its banner and header."""
        self.write(WAKEUP_PAYLOAD)

    def read_line(self) -> str | None:
        """Return the next complete line, or None if the read timed out.

        Partial data stays buffered until its line terminator arrives. Bytes
        outside ASCII become U+FFFD so a damaged token fails its field parse.
        """
        with self._read_lock:
            ser = self._serial
            if ser is None:
                raise NotConnected()
            while b"\n" not in self._buffer:
                try:
                    chunk = ser.read(max(1, ser.in_waiting))
                except (serial.SerialException, OSError) as err:
                    raise TransportError(f"Error reading: {err}") from err
                if not chunk:
                    return None
                self._buffer.extend(chunk)

            raw_line, _, rest = bytes(self._buffer).partition(b"\n")
            self._buffer = bytearray(rest)
        return raw_line.decode("ascii", errors="replace").rstrip()

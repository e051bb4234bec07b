"""Ingestion driver for the extruder monitor."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
import logging
import threading
from typing import Callable, Iterable

from .config import ConnectionConfig
from .const import RECONNECT_DELAY
from .protocol import DataRow
from .session import (
    Event,
    HeaderDetected,
    InitBlockReady,
    ParserSession,
    ParseWarning,
    Row,
    SessionPhase,
)
from .transport import SerialTransport, TransportError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RawLine:
    line: str


@dataclass(frozen=True, slots=True)
class TransportFailure:
    message: str


Listener = Callable[[object], None]


@dataclass(slots=True)
class TelemetrySnapshot:
    init_block: str = ""
    header: str = ""
    current: DataRow | None = None
    history: deque[DataRow] = field(default_factory=deque)
    warnings: deque[str] = field(default_factory=deque)
    connected: bool = False


class ExtruderCoordinator:
    """Feeds received lines through a ParserSession and caches the results."""

    def __init__(
        self,
        config: ConnectionConfig,
        transport: SerialTransport | None = None,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.config = config
        self.reconnect_delay = reconnect_delay
        self.transport = transport if transport is not None else SerialTransport(config)
        self.session = ParserSession()
        self.data = TelemetrySnapshot(
            history=deque(maxlen=config.history_size),
            warnings=deque(maxlen=config.warning_limit),
        )
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._reader_task: asyncio.Task | None = None
        self._reader_running = False

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every published event."""
        self._listeners.append(listener)

        def _remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove_listener

    def handle_line(self, line: str) -> list[Event]:
        """Run one received line through the parser and publish its events."""
        line = line.rstrip()
        with self._lock:
            events = self.session.handle_line(line)
            for event in events:
                self._apply(event)
        self._publish(RawLine(line))
        for event in events:
            self._publish(event)
        return events

    def feed(self, lines: Iterable[str]) -> int:
        """Drive the parser from any iterable of lines. Returns the count handled."""
        count = 0
        for line in lines:
            self.handle_line(line)
            count += 1
        return count

    def reset(self) -> None:
        with self._lock:
            self.session.reset()

    def forget_init_block(self) -> None:
        with self._lock:
            self.session.forget_init_block()
            self.data.init_block = ""

    def clear_history(self) -> None:
        with self._lock:
            self.data.history.clear()
            self.data.current = None

    def clear_warnings(self) -> None:
        with self._lock:
            self.data.warnings.clear()

    def connect(self) -> None:
        self.transport.open()
        with self._lock:
            self.data.connected = True

    def disconnect(self) -> None:
        """Close the port and return the parser to INIT, keeping boot text."""
        self.transport.close()
        with self._lock:
            self.data.connected = False
            self.session.reset()

    def send_wakeup(self) -> None:
        self.transport.send_wakeup()

    async def async_start_reader(self) -> None:
        """Open the port and start the background reader task."""
        if self._reader_task is not None and not self._reader_task.done():
            return
        await asyncio.to_thread(self.connect)
        self._reader_running = True
        self._reader_task = asyncio.get_running_loop().create_task(self._async_reader_loop())

    async def async_stop_reader(self) -> None:
        self._reader_running = False
        if self._reader_task is None:
            return
        self._reader_task.cancel()
        try:
            await self._reader_task
        except asyncio.CancelledError:
            pass
        finally:
            self._reader_task = None
            # Closing waits for any read still running in its worker thread.
            await asyncio.to_thread(self.disconnect)

    async def _async_reader_loop(self) -> None:
        while self._reader_running:
            try:
                if not self.transport.is_open:
                    await asyncio.to_thread(self.connect)
                    _LOGGER.debug("Reconnected extruder reader to %s", self.config.port)
                line = await asyncio.to_thread(self.transport.read_line)
            except TransportError as err:
                if not self._reader_running:
                    break
                _LOGGER.debug("Extruder reader disconnected from %s: %s", self.config.port, err)
                await asyncio.to_thread(self.disconnect)
                self._publish(TransportFailure(str(err)))
                await asyncio.sleep(self.reconnect_delay)
                continue
            if line is None:
                # Read timeout, not end of stream.
                continue
            self.handle_line(line)

    def _apply(self, event: Event) -> None:
        if isinstance(event, Row):
            self.data.current = event.row
            self.data.history.append(event.row)
        elif isinstance(event, ParseWarning):
            self.data.warnings.append(event.message)
        elif isinstance(event, HeaderDetected):
            self.data.header = event.line
        elif isinstance(event, InitBlockReady):
            self.data.init_block = event.text

    def _publish(self, event: object) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # pragma: no cover - listener safety net
                _LOGGER.exception("Extruder event listener failure")

"""Line-by-line session parser for the extruder telemetry stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging

from .protocol import DataRow, DecodeError, decode_row, is_header

_LOGGER = logging.getLogger(__name__)


class SessionPhase(Enum):
    INIT = "init"
    HEADER_DETECTED = "header_detected"
    DATA_STREAMING = "data_streaming"


@dataclass(frozen=True, slots=True)
class InitLine:
    line: str


@dataclass(frozen=True, slots=True)
class InitBlockReady:
    text: str


@dataclass(frozen=True, slots=True)
class HeaderDetected:
    line: str
    layout_changed: bool = False


@dataclass(frozen=True, slots=True)
class Row:
    row: DataRow


@dataclass(frozen=True, slots=True)
class ParseWarning:
    message: str
    error: DecodeError | None = field(default=None, compare=False)


Event = InitLine | InitBlockReady | HeaderDetected | Row | ParseWarning


class InitBlock:
    """Boot text received before the header line."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def push(self, line: str) -> None:
        self._lines.append(line)

    def drain_if_nonempty(self) -> str | None:
        """Return the buffered lines joined by newlines and empty the buffer."""
        if not self._lines:
            return None
        text = "\n".join(self._lines)
        self._lines.clear()
        return text

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)


def _header_columns(line: str) -> tuple[str, ...]:
    return tuple(column.upper() for column in line.split())


class ParserSession:
    """Phase tracking for one logical device connection.

    Not thread-safe: callers must not run handle_line concurrently with
    reset on the same session.
    """

    def __init__(self) -> None:
        self.phase = SessionPhase.INIT
        self.init_block = InitBlock()
        self.header: str | None = None
        self.rows_decoded = 0
        self.warnings_emitted = 0

    def handle_line(self, line: str) -> list[Event]:
        """Consume one received line and return the events it produced, in order."""
        if self.phase is SessionPhase.INIT:
            return self._handle_init(line)
        if self.phase is SessionPhase.DATA_STREAMING and is_header(line):
            return [self._reannounce_header(line)]
        return [self._decode(line)]

    def reset(self) -> None:
        """Return to INIT after a disconnect. Buffered boot text is kept."""
        _LOGGER.debug("Resetting parser session from %s", self.phase.name)
        self.phase = SessionPhase.INIT

    def forget_init_block(self) -> None:
        self.init_block.clear()

    def _handle_init(self, line: str) -> list[Event]:
        if not is_header(line):
            self.init_block.push(line)
            return [InitLine(line)]

        events: list[Event] = []
        text = self.init_block.drain_if_nonempty()
        if text is not None:
            events.append(InitBlockReady(text))
        layout_changed = self._layout_changed(line)
        if self.header is None or layout_changed:
            self.header = line
        self.phase = SessionPhase.HEADER_DETECTED
        _LOGGER.debug("Header detected: %s", line)
        events.append(HeaderDetected(line, layout_changed=layout_changed))
        return events

    def _reannounce_header(self, line: str) -> HeaderDetected:
        layout_changed = self._layout_changed(line)
        if layout_changed:
            self.header = line
        return HeaderDetected(line, layout_changed=layout_changed)

    def _layout_changed(self, line: str) -> bool:
        if self.header is None:
            return False
        if _header_columns(line) == _header_columns(self.header):
            return False
        # Rows keep decoding against the fixed 37-column layout.
        _LOGGER.warning("Header changed mid-session: was %r, now %r", self.header, line)
        return True

    def _decode(self, line: str) -> Event:
        try:
            row = decode_row(line)
        except DecodeError as err:
            self.warnings_emitted += 1
            _LOGGER.debug("Rejected data line in %s: %s", self.phase.name, err)
            return ParseWarning(f"Failed to parse data row: {err}", err)

        self.rows_decoded += 1
        if self.phase is SessionPhase.HEADER_DETECTED:
            self.phase = SessionPhase.DATA_STREAMING
        return Row(row)

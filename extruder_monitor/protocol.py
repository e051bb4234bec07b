"""Protocol helpers for the extruder controller's text telemetry."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from .const import FIELD_COUNT, INT_MAX, INT_MIN, STATUS_POSITION


class SystemStatus(Enum):
    """Named controller states reported in the Status column."""

    IDLE = "IDLE"
    HOMING = "HOMING"
    HEATING = "HEATING"
    PREPARED = "PREPARED"
    RUNNING = "RUNNING"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class UnknownStatus:
    """Status token outside the known vocabulary, kept exactly as received."""

    text: str


Status = SystemStatus | UnknownStatus


def parse_status(text: str) -> Status:
    """Map a raw Status token to a known state or an UnknownStatus."""
    try:
        return SystemStatus(text.strip().upper())
    except ValueError:
        return UnknownStatus(text)


def status_text(status: Status) -> str:
    if isinstance(status, UnknownStatus):
        return status.text
    return status.value


def status_payload(status: Status) -> str | dict[str, str]:
    """Render status the way JSON consumers expect: "IDLE" or {"Unknown": text}."""
    if isinstance(status, UnknownStatus):
        return {"Unknown": status.text}
    return status.value


@dataclass(frozen=True, slots=True)
class DataRow:
    time: float

    set_t1: float
    temp1: float
    dc1: float
    err1: int

    set_t2: float
    temp2: float
    dc2: float
    err2: int

    set_t3: float
    temp3: float
    dc3: float
    err3: int

    set_t4: float
    temp4: float
    dc4: float
    err4: int

    int_t4: float

    ext_cur: float
    ext_pwm: int
    ext_tmp: float

    unused: int

    fault: int
    set_rpm: float
    rpm: float

    ft: float
    ft_avg: float

    puller: int
    mem_free: int

    status: Status

    wndr_spd: float
    pos_spd: float

    length: float
    volume: float

    sp_dia: float
    sp_fill: float

    fs_int_t: int

    @property
    def is_fault_active(self) -> bool:
        return self.fault == 1

    def as_record(self) -> dict[str, Any]:
        """Return the row as a flat mapping keyed by attribute name."""
        record = {item.name: getattr(self, item.name) for item in fields(self)}
        record["status"] = status_payload(self.status)
        return record


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    attribute: str
    kind: type


# Column order as announced by the controller's header line.
FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("Time", "time", float),
    FieldSpec("SetT1", "set_t1", float),
    FieldSpec("Temp1", "temp1", float),
    FieldSpec("dc1", "dc1", float),
    FieldSpec("Err1", "err1", int),
    FieldSpec("SetT2", "set_t2", float),
    FieldSpec("Temp2", "temp2", float),
    FieldSpec("dc2", "dc2", float),
    FieldSpec("Err2", "err2", int),
    FieldSpec("SetT3", "set_t3", float),
    FieldSpec("Temp3", "temp3", float),
    FieldSpec("dc3", "dc3", float),
    FieldSpec("Err3", "err3", int),
    FieldSpec("SetT4", "set_t4", float),
    FieldSpec("Temp4", "temp4", float),
    FieldSpec("dc4", "dc4", float),
    FieldSpec("Err4", "err4", int),
    FieldSpec("intT4", "int_t4", float),
    FieldSpec("ExtCur", "ext_cur", float),
    FieldSpec("ExtPWM", "ext_pwm", int),
    FieldSpec("ExtTmp", "ext_tmp", float),
    FieldSpec("Unused", "unused", int),
    FieldSpec("FAULT", "fault", int),
    FieldSpec("SetRPM", "set_rpm", float),
    FieldSpec("RPM", "rpm", float),
    FieldSpec("FT", "ft", float),
    FieldSpec("FTAVG", "ft_avg", float),
    FieldSpec("Puller", "puller", int),
    FieldSpec("MemFree", "mem_free", int),
    FieldSpec("Status", "status", str),
    FieldSpec("WndrSpd", "wndr_spd", float),
    FieldSpec("PosSpd", "pos_spd", float),
    FieldSpec("Length", "length", float),
    FieldSpec("Volume", "volume", float),
    FieldSpec("SpDia", "sp_dia", float),
    FieldSpec("SpFill", "sp_fill", float),
    FieldSpec("FsIntT", "fs_int_t", int),
)

HEADER_COLUMNS: tuple[str, ...] = tuple(spec.name for spec in FIELDS)


class DecodeErrorKind(Enum):
    FIELD_COUNT = "field_count"
    FIELD_VALUE = "field_value"


class DecodeError(ValueError):
    """A data line that could not be turned into a DataRow.

    FIELD_COUNT errors carry the number of tokens found. FIELD_VALUE errors
    identify the column by name and 0-based position along with the token
    exactly as it appeared on the line.
    """

    def __init__(
        self,
        kind: DecodeErrorKind,
        line: str,
        *,
        token_count: int | None = None,
        field_name: str | None = None,
        position: int | None = None,
        raw: str | None = None,
    ) -> None:
        self.kind = kind
        self.line = line
        self.token_count = token_count
        self.field_name = field_name
        self.position = position
        self.raw = raw
        super().__init__(self._describe())

    @classmethod
    def field_count(cls, line: str, token_count: int) -> DecodeError:
        return cls(DecodeErrorKind.FIELD_COUNT, line, token_count=token_count)

    @classmethod
    def field_value(cls, line: str, spec: FieldSpec, position: int, raw: str) -> DecodeError:
        return cls(
            DecodeErrorKind.FIELD_VALUE,
            line,
            field_name=spec.name,
            position=position,
            raw=raw,
        )

    def _describe(self) -> str:
        if self.kind is DecodeErrorKind.FIELD_COUNT:
            return f"Expected at least {FIELD_COUNT} fields, got {self.token_count}. Line: '{self.line}'"
        return f"Failed to parse field {self.field_name} ('{self.raw}') at position {self.position}"


def is_header(line: str) -> bool:
    """Return True if the line looks like the controller's column header."""
    upper = line.upper()
    return upper.startswith("TIME") and "SETT1" in upper and "TEMP1" in upper


def split_tokens(line: str) -> list[str]:
    """Split on tabs when present, otherwise on runs of whitespace."""
    if "\t" in line:
        return line.split("\t")
    return line.split()


def _parse_number(token: str, kind: type) -> int | float:
    text = token.strip()
    # int()/float() accept digit-group underscores; the controller never sends them.
    if "_" in text:
        raise ValueError(token)
    value = kind(text)
    if kind is int and not INT_MIN <= value <= INT_MAX:
        raise ValueError(token)
    return value


def decode_row(line: str) -> DataRow:
    """Decode one data line into a DataRow.

    Raises DecodeError when the line has fewer than 37 tokens or when any
    numeric column fails to parse. Tokens past the 37th are ignored.
    """
    tokens = split_tokens(line)
    if len(tokens) < FIELD_COUNT:
        raise DecodeError.field_count(line, len(tokens))

    values: dict[str, Any] = {}
    for position, spec in enumerate(FIELDS):
        token = tokens[position]
        if position == STATUS_POSITION:
            values[spec.attribute] = parse_status(token)
            continue
        try:
            values[spec.attribute] = _parse_number(token, spec.kind)
        except ValueError:
            raise DecodeError.field_value(line, spec, position, token) from None

    return DataRow(**values)

from __future__ import annotations

from extruder_monitor.protocol import DecodeErrorKind, SystemStatus
from extruder_monitor.session import (
    HeaderDetected,
    InitBlock,
    InitBlockReady,
    InitLine,
    ParserSession,
    ParseWarning,
    Row,
    SessionPhase,
)


def _feed(session: ParserSession, lines: list[str]) -> list[list[object]]:
    return [session.handle_line(line) for line in lines]


def test_boot_header_data_sequence(header_line, sample_line):
    session = ParserSession()

    batches = _feed(session, ["Extruder v2.1", "EEPROM ok", header_line, sample_line])

    assert batches[0] == [InitLine("Extruder v2.1")]
    assert batches[1] == [InitLine("EEPROM ok")]
    assert batches[2] == [InitBlockReady("Extruder v2.1\nEEPROM ok"), HeaderDetected(header_line)]
    assert len(batches[3]) == 1
    assert isinstance(batches[3][0], Row)
    assert batches[3][0].row.status is SystemStatus.IDLE
    assert session.phase is SessionPhase.DATA_STREAMING


def test_header_without_boot_text_skips_init_block(header_line):
    session = ParserSession()

    assert session.handle_line(header_line) == [HeaderDetected(header_line)]
    assert session.phase is SessionPhase.HEADER_DETECTED


def test_empty_lines_accumulate_during_init(header_line):
    session = ParserSession()

    _feed(session, ["", "boot"])
    events = session.handle_line(header_line)

    assert events[0] == InitBlockReady("\nboot")


def test_bad_line_after_header_keeps_phase(header_line, sample_line):
    session = ParserSession()
    session.handle_line(header_line)

    events = session.handle_line("1\t2\t3")

    assert len(events) == 1
    warning = events[0]
    assert isinstance(warning, ParseWarning)
    assert warning.error.kind is DecodeErrorKind.FIELD_COUNT
    assert warning.message.startswith("Failed to parse data row: Expected at least 37 fields, got 3")
    assert session.phase is SessionPhase.HEADER_DETECTED

    assert isinstance(session.handle_line(sample_line)[0], Row)
    assert session.phase is SessionPhase.DATA_STREAMING


def test_empty_line_after_header_is_a_warning(header_line):
    session = ParserSession()
    session.handle_line(header_line)

    assert isinstance(session.handle_line("")[0], ParseWarning)


def test_bad_line_while_streaming_keeps_phase(header_line, sample_line, sample_tokens):
    session = ParserSession()
    _feed(session, [header_line, sample_line])
    sample_tokens[24] = "r?m"

    events = session.handle_line("\t".join(sample_tokens))

    assert events[0].error.field_name == "RPM"
    assert events[0].error.position == 24
    assert session.phase is SessionPhase.DATA_STREAMING
    assert session.rows_decoded == 1
    assert session.warnings_emitted == 1


def test_header_reannounced_while_streaming(header_line, sample_line):
    session = ParserSession()
    _feed(session, [header_line, sample_line])

    events = session.handle_line(header_line)

    assert events == [HeaderDetected(header_line, layout_changed=False)]
    assert session.phase is SessionPhase.DATA_STREAMING


def test_reannounced_header_with_new_columns_is_flagged(header_line, sample_line):
    session = ParserSession()
    _feed(session, [header_line, sample_line])
    revised = header_line + "\tNewCol"

    events = session.handle_line(revised)

    assert events == [HeaderDetected(revised, layout_changed=True)]
    assert session.header == revised
    assert isinstance(session.handle_line(sample_line)[0], Row)


def test_header_whitespace_drift_is_not_a_layout_change(header_line, sample_line):
    session = ParserSession()
    _feed(session, [header_line, sample_line])

    events = session.handle_line(header_line.replace("\t", "  "))

    assert events[0].layout_changed is False


def test_header_seen_in_header_detected_phase_is_a_warning(header_line):
    session = ParserSession()
    session.handle_line(header_line)

    events = session.handle_line(header_line)

    assert isinstance(events[0], ParseWarning)
    assert session.phase is SessionPhase.HEADER_DETECTED


def test_reset_keeps_buffered_boot_text(header_line, sample_line):
    session = ParserSession()
    _feed(session, ["boot one"])
    session.reset()
    assert session.phase is SessionPhase.INIT

    _feed(session, ["boot two"])
    events = session.handle_line(header_line)

    assert events[0] == InitBlockReady("boot one\nboot two")


def test_reset_after_streaming_returns_to_init(header_line, sample_line):
    session = ParserSession()
    _feed(session, ["boot", header_line, sample_line])

    session.reset()

    assert session.phase is SessionPhase.INIT
    assert session.handle_line(sample_line) == [InitLine(sample_line)]
    assert session.handle_line(header_line)[0] == InitBlockReady(sample_line)


def test_init_block_flushes_once(header_line):
    session = ParserSession()
    _feed(session, ["boot", header_line])
    session.reset()

    assert session.handle_line(header_line) == [HeaderDetected(header_line)]


def test_forget_init_block(header_line):
    session = ParserSession()
    _feed(session, ["boot", "more"])

    session.forget_init_block()

    assert session.handle_line(header_line) == [HeaderDetected(header_line)]


def test_init_block_accumulator():
    block = InitBlock()
    assert not block
    assert block.drain_if_nonempty() is None

    block.push("a")
    block.push("b")
    assert len(block) == 2
    assert block.lines == ("a", "b")
    assert block.drain_if_nonempty() == "a\nb"
    assert block.drain_if_nonempty() is None

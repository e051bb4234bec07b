from __future__ import annotations

import pytest

HEADER_LINE = (
    "Time\tSetT1\tTemp1\tdc1\tErr1\tSetT2\tTemp2\tdc2\tErr2\tSetT3\tTemp3\tdc3\tErr3\t"
    "SetT4\tTemp4\tdc4\tErr4\tintT4\tExtCur\tExtPWM\tExtTmp\tUnused\tFAULT\tSetRPM\tRPM\t"
    "FT\tFTAVG\tPuller\tMemFree\tStatus\tWndrSpd\tPosSpd\tLength\tVolume\tSpDia\tSpFill\tFsIntT"
)

SAMPLE_TOKENS = (
    "1 265 49.25 0 0 275 76.25 0 0 265 68.25 0 0 255 82.50 0 0 21.75 0 0 23 0 0 "
    "1500 0 0 0 640 1689 IDLE 271 0 0 0 105 0 21000"
).split()


@pytest.fixture
def header_line() -> str:
    return HEADER_LINE


@pytest.fixture
def sample_tokens() -> list[str]:
    return list(SAMPLE_TOKENS)


@pytest.fixture
def sample_line() -> str:
    return "\t".join(SAMPLE_TOKENS)

from __future__ import annotations

import pytest

from acmbridge.protocol.core.assembler import REPLY_DELIMITERS, FrameAssembler
from acmbridge.protocol.core.frame import Endpoint


STREAM = b'{"MsgType":"M1","data":{"a":1}}\r\n{"MsgType":"M4","action":"wait"}\r\n{"MsgType":"M6","toptype":0,"data":""}\r\n'
EXPECTED = [
    b'{"MsgType":"M1","data":{"a":1}}',
    b'{"MsgType":"M4","action":"wait"}',
    b'{"MsgType":"M6","toptype":0,"data":""}',
]


def _chunks(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


@pytest.mark.parametrize("size", [1, 3, len(STREAM)])
def test_chunking_does_not_change_frames(size):
    asm = FrameAssembler(Endpoint.BACK_END)

    frames = []
    for chunk in _chunks(STREAM, size):
        frames.extend(asm.feed(chunk))

    assert [f.payload for f in frames] == EXPECTED
    assert all(f.endpoint is Endpoint.BACK_END for f in frames)
    assert all(f.delimiter == b"\r\n" for f in frames)
    assert asm.pending == b""


def test_front_end_lines_split_on_newline():
    asm = FrameAssembler(Endpoint.FRONT_END)

    frames = asm.feed(b"ver\nsta\nalgo -b 1")

    assert [f.payload for f in frames] == [b"ver", b"sta"]
    assert asm.pending == b"algo -b 1"
    assert [f.payload for f in asm.feed(b" -p 100\n")] == [b"algo -b 1 -p 100"]


def test_empty_frames_are_emitted():
    asm = FrameAssembler(Endpoint.FRONT_END)
    assert [f.payload for f in asm.feed(b"\n\n")] == [b"", b""]


def test_delimiter_split_across_chunks():
    asm = FrameAssembler(Endpoint.BACK_END)
    assert asm.feed(b'{"MsgType":"M4"}\r') == []
    assert [f.payload for f in asm.feed(b"\n")] == [b'{"MsgType":"M4"}']


def test_overflow_drops_buffer_exactly_once_and_recovers():
    dropped = []
    asm = FrameAssembler(Endpoint.BACK_END, capacity=64, slack=8, on_overflow=dropped.append)

    # 60 bytes without a delimiter exceed 64 - 8
    assert asm.feed(b"x" * 60) == []
    assert asm.overflow_count == 1
    assert dropped == [60]
    assert asm.pending == b""

    frames = asm.feed(b'{"MsgType":"M4"}\r\n')
    assert [f.payload for f in frames] == [b'{"MsgType":"M4"}']
    assert asm.overflow_count == 1


def test_full_capacity_without_delimiter_overflows_once():
    asm = FrameAssembler(Endpoint.FRONT_END)

    for chunk in _chunks(b"a" * asm.capacity, 512):
        asm.feed(chunk)

    assert asm.overflow_count == 1
    assert [f.payload for f in asm.feed(b"ver\n")] == [b"ver"]


def test_buffer_at_limit_is_kept():
    asm = FrameAssembler(Endpoint.BACK_END, capacity=64, slack=8)
    asm.feed(b"y" * 56)
    assert asm.overflow_count == 0
    assert len(asm.pending) == 56


def test_complete_frames_survive_a_trailing_overflow():
    asm = FrameAssembler(Endpoint.BACK_END, capacity=32, slack=2)
    frames = asm.feed(b"ok\r\n" + b"z" * 40)
    assert [f.payload for f in frames] == [b"ok"]
    assert asm.overflow_count == 1
    assert asm.pending == b""


def test_reply_delimiters_leftmost_match_wins():
    asm = FrameAssembler(Endpoint.FRONT_END, REPLY_DELIMITERS)

    frames = asm.feed(b'{"ver":"1.0.0"}\n>{"MsgType":"M4"}\r\nCommand not recognised: help\n>')

    assert [f.payload for f in frames] == [
        b'{"ver":"1.0.0"}',
        b'{"MsgType":"M4"}',
        b"Command not recognised: help",
    ]
    assert [f.delimiter for f in frames] == [b"\n>", b"\r\n", b"\n>"]


def test_longer_delimiter_wins_on_tie():
    asm = FrameAssembler(Endpoint.FRONT_END, (b"\n", b"\n>"))
    frames = asm.feed(b"abc\n>def\n")
    assert [(f.payload, f.delimiter) for f in frames] == [(b"abc", b"\n>"), (b"def", b"\n")]


def test_reset_clears_partial_frame():
    asm = FrameAssembler(Endpoint.FRONT_END)
    asm.feed(b"partial")
    asm.reset()
    assert asm.pending == b""
    assert [f.payload for f in asm.feed(b"ver\n")] == [b"ver"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"delimiters": [b""]},
        {"capacity": 100, "slack": 100},
        {"capacity": 100, "slack": -1},
    ],
)
def test_invalid_configuration_rejected(kwargs):
    with pytest.raises(ValueError):
        FrameAssembler(Endpoint.BACK_END, **kwargs)

from __future__ import annotations

import pytest

from acmbridge.protocol.core.codec import BackEndCodec
from acmbridge.protocol.core.messages import (
    DataMessage,
    IndexedMessage,
    PassthroughMessage,
    StatusMessage,
    UnknownMessage,
)
from acmbridge.protocol.correlation import CorrelationTracker
from acmbridge.protocol.translator import CommandTranslator


@pytest.fixture
def tracker():
    return CorrelationTracker(timeout_s=5.0)


@pytest.fixture
def translator(tracker):
    return CommandTranslator(tracker)


def test_routing_table_is_exactly_the_known_verbs(translator):
    assert set(translator.verbs) == {"ver", "sta", "algo", "cfg"}


def test_ver_maps_to_m4_version(translator):
    t = translator.to_back_end("ver")
    assert t.forwarded
    assert t.message == StatusMessage(action="version")
    assert t.reply is None
    assert t.pending is None


def test_sta_maps_to_m4_status(translator):
    assert translator.to_back_end("sta\r").message == StatusMessage(action="status")


def test_algo_maps_to_tracked_m2(translator, tracker):
    t = translator.to_back_end("algo -b 1 -p 100")

    assert isinstance(t.message, IndexedMessage)
    assert t.message.data == {"cmd": "algo -b 1 -p 100"}
    assert t.pending is not None
    assert t.pending.idex == t.message.idex
    assert t.message.idex in tracker


def test_consecutive_algo_commands_get_distinct_idex(translator):
    a = translator.to_back_end("algo -b 1").message
    b = translator.to_back_end("algo -b 2").message
    assert a.idex != b.idex


def test_cfg_maps_json_object_to_m1(translator):
    t = translator.to_back_end('cfg {"cfgData":{"hp30":1}}')
    assert t.message == DataMessage(data={"cfgData": {"hp30": 1}})


@pytest.mark.parametrize(
    "command",
    ["unknowncmd", "help", "", "   ", "ver now", "sta 1", "algo", "cfg", "cfg [1,2]", "cfg {broken", "VER"],
)
def test_unrecognised_commands_are_rejected_locally(translator, tracker, command):
    t = translator.to_back_end(command)

    assert not t.forwarded
    assert t.message is None
    assert t.reply == f"Command not recognised: {command.strip()}"
    assert tracker.pending_count == 0


def test_m1_and_m2_forward_data_as_compact_json(translator):
    assert translator.to_front_end(DataMessage(data={"a": 1, "b": [1, 2]})) == '{"a":1,"b":[1,2]}'
    assert translator.to_front_end(IndexedMessage(idex=0, data={})) == "{}"


def test_m2_reply_resolves_pending_request(translator, tracker):
    t = translator.to_back_end("algo -b 1 -p 100")
    reply = IndexedMessage(idex=t.message.idex, data={"result": 42})

    assert translator.to_front_end(reply) == '{"result":42}'
    assert tracker.pending_count == 0
    result = t.pending.wait(0)
    assert result["status"] == "ok"
    assert result["response"] == reply


def test_m4_version_and_status_get_fixed_replies(translator):
    assert translator.to_front_end(StatusMessage(action="version", c_ver="9.9")) == '{"ver":"1.0.0"}'
    assert translator.to_front_end(StatusMessage(action="status")) == '{"status":"ready"}'


def test_fixed_replies_are_configurable(tracker):
    tr = CommandTranslator(tracker, version_reply={"ver": "2.3.4"})
    assert tr.to_front_end(StatusMessage(action="version")) == '{"ver":"2.3.4"}'


def test_other_messages_are_forwarded_verbatim(translator):
    raw = b'{"MsgType":"M6","toptype":0,"data":""}'
    assert translator.to_front_end(PassthroughMessage(toptype=0, data=""), raw=raw) == raw.decode()


def test_without_raw_the_message_is_reencoded(translator):
    msg = StatusMessage(action="wait")
    assert translator.to_front_end(msg) == BackEndCodec().dumps(msg)


@pytest.mark.parametrize("message", [DataMessage(), IndexedMessage(idex=4)])
def test_m1_and_m2_without_data_produce_no_reply(translator, message):
    assert translator.to_front_end(message, raw=b'{"MsgType":"M1"}') is None


def test_m2_without_idex_leaves_requests_pending(translator, tracker):
    pending = translator.to_back_end("algo -b 1").pending

    assert translator.to_front_end(IndexedMessage(data={"code": 0})) == '{"code":0}'
    assert tracker.pending_count == 1
    assert not pending.future.done()


def test_unknown_message_produces_no_reply(translator):
    assert translator.to_front_end(UnknownMessage(raw=b'{"MsgType":"M9"}', reason="unrecognized")) is None

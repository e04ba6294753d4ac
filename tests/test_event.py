import inspect
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from zlog.event import Event, dict_event
from zlog.globals import Level


def _event(level=Level.DEBUG, **kwargs):
    buf = io.BytesIO()
    return Event(buf, level, **kwargs), buf


def _out(buf):
    return buf.getvalue().decode("utf-8").strip()


class _Person:
    def __init__(self, name, age):
        self.name = name
        self.age = age

    def marshal_zerolog_object(self, e):
        e.str("name", "custom_value").int("age", self.age)


@pytest.mark.parametrize(
    "err, want",
    [
        (None, "{}"),
        (ValueError("test"), '{"err":"test"}'),
    ],
)
def test_an_err(err, want):
    e, buf = _event()
    e.an_err("err", err)
    e.write()
    assert _out(buf) == want


def test_object_with_none():
    e, buf = _event()
    e.object("obj", None)
    e.write()
    assert _out(buf) == '{"obj":null}'


def test_embed_object_with_none():
    e, buf = _event()
    e.embed_object(None)
    e.write()
    assert _out(buf) == "{}"


def test_object_with_marshaler():
    e, buf = _event()
    e.object("obj", _Person("foo", 29)).str("after", "x")
    e.write()
    assert _out(buf) == '{"obj":{"name":"custom_value","age":29},"after":"x"}'


def test_interface_uses_marshaler():
    e, buf = _event()
    e.interface("obj", _Person("foo", 29)).send()
    assert _out(buf) == '{"obj":{"name":"custom_value","age":29}}'


def test_embed_object_with_marshaler():
    e, buf = _event()
    e.embed_object(_Person("foo", 3)).send()
    assert _out(buf) == '{"name":"custom_value","age":3}'


def test_write_ends_with_line_break():
    e, buf = _event()
    e.str("a", "b").write()
    assert buf.getvalue() == b'{"a":"b"}\n'


def test_msg_adds_message():
    e, buf = _event()
    e.str("foo", "bar").msg("hello")
    assert _out(buf) == '{"foo":"bar","message":"hello"}'


def test_send_has_no_message():
    e, buf = _event()
    e.send()
    assert _out(buf) == "{}"


def test_msgf_formats():
    e, buf = _event()
    e.msgf("%s=%d", "a", 1)
    assert _out(buf) == '{"message":"a=1"}'


def test_msg_func_builds_message():
    e, buf = _event()
    e.msg_func(lambda: "built")
    assert _out(buf) == '{"message":"built"}'


def test_discard_prevents_write():
    e, buf = _event()
    e.str("a", "b").discard()
    assert e.enabled() is False
    e.msg("x")
    assert buf.getvalue() == b""


def test_disabled_event_skips_message_builder():
    calls = []
    e, buf = _event(Level.DISABLED)
    e.msg_func(lambda: calls.append(1) or "m")
    assert calls == []
    assert buf.getvalue() == b""


def test_func_runs_only_when_enabled():
    seen = []
    e, _ = _event()
    e.func(lambda ev: seen.append("on"))
    e.discard().func(lambda ev: seen.append("off"))
    assert seen == ["on"]


def test_hooks_run_before_write():
    class Hook:
        def __init__(self):
            self.calls = []

        def run(self, e, level, msg):
            self.calls.append((level, msg))
            e.str("hooked", "yes")

    hook = Hook()
    e, buf = _event(Level.INFO, hooks=[hook])
    e.msg("m")
    assert hook.calls == [(Level.INFO, "m")]
    assert _out(buf) == '{"hooked":"yes","message":"m"}'


def test_done_called_with_message():
    done = []
    e, _ = _event(done=done.append)
    e.msg("bye")
    assert done == ["bye"]


def test_write_failure_reported_and_done_still_called(capsys):
    class Broken:
        def write(self, data):
            raise OSError("disk full")

    done = []
    e = Event(Broken(), Level.INFO, done=done.append)
    e.msg("x")
    assert "could not write event: disk full" in capsys.readouterr().err
    assert done == ["x"]


def test_level_writer_receives_level():
    class LevelSink:
        def __init__(self):
            self.records = []

        def write_level(self, level, data):
            self.records.append((level, data))

    sink = LevelSink()
    Event(sink, Level.WARN).str("k", "v").send()
    assert sink.records == [(Level.WARN, b'{"k":"v"}\n')]


def test_text_writer():
    out = io.StringIO()
    Event(out, Level.INFO).int("n", 5).send()
    assert out.getvalue() == '{"n":5}\n'


def test_dict():
    e, buf = _event()
    e.dict("d", dict_event().str("bar", "baz").int("n", 1)).send()
    assert _out(buf) == '{"d":{"bar":"baz","n":1}}'


def test_numbers():
    e, buf = _event()
    (
        e.bool("b", True)
        .int("i", -3)
        .uint("u", 7)
        .float32("f32", 11.98122)
        .float("f", 12.987654321)
        .bools("bs", [True, False])
        .ints("is", [1, 2])
        .floats("fs", [1.5, 2.0])
        .send()
    )
    assert _out(buf) == (
        '{"b":true,"i":-3,"u":7,"f32":11.98122,"f":12.987654321,'
        '"bs":[true,false],"is":[1,2],"fs":[1.5,2]}'
    )


def test_uint_rejects_negative():
    e, _ = _event()
    with pytest.raises(ValueError):
        e.uint("u", -1)


def test_strings_and_bytes():
    e, buf = _event()
    (
        e.strs("s", ["a", "b"])
        .stringer("none", None)
        .stringer("num", 42)
        .bytes("raw", b"b")
        .hex("h", b"\x1f")
        .raw_json("j", b'{"some":"json"}')
        .send()
    )
    assert _out(buf) == (
        '{"s":["a","b"],"none":null,"num":"42","raw":"b","h":"1f",'
        '"j":{"some":"json"}}'
    )


def test_stringers():
    e, buf = _event()
    e.stringers("v", [1, None]).send()
    assert _out(buf) == '{"v":["1",null]}'


def test_raw_cbor():
    e, buf = _event()
    e.raw_cbor("c", b"\x01").send()
    assert _out(buf) == '{"c":"data:application/cbor;base64,AQ=="}'


def test_time_and_durations():
    when = datetime(2001, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    e, buf = _event()
    (
        e.time("t", when)
        .times("ts", [when])
        .dur("d", timedelta(seconds=1))
        .durs("ds", [timedelta(milliseconds=2)])
        .send()
    )
    assert _out(buf) == (
        '{"t":"2001-02-03T04:05:06Z","ts":["2001-02-03T04:05:06Z"],'
        '"d":1000,"ds":[2]}'
    )


def test_time_diff_is_never_negative():
    start = datetime(2001, 2, 3, tzinfo=timezone.utc)
    e, buf = _event()
    e.time_diff("later", start + timedelta(seconds=2), start)
    e.time_diff("earlier", start - timedelta(seconds=2), start).send()
    assert _out(buf) == '{"later":2000,"earlier":0}'


def test_timestamp_adds_time_string():
    e, buf = _event()
    e.timestamp().send()
    record = json.loads(_out(buf))
    assert list(record) == ["time"]
    assert len(record["time"]) >= 20


def test_err_and_errs():
    e, buf = _event()
    e.err(ValueError("boom")).errs("errs", [ValueError("a"), None]).send()
    assert _out(buf) == '{"error":"boom","errs":["a",null]}'


def test_err_none_adds_nothing():
    e, buf = _event()
    e.err(None).send()
    assert _out(buf) == "{}"


def test_interface_and_type():
    e, buf = _event()
    e.any("i", {"b": [1, 2], "a": 1}).type("t", "x").type("n", None).send()
    assert _out(buf) == '{"i":{"a":1,"b":[1,2]},"t":"str","n":"<nil>"}'


def test_network_fields():
    e, buf = _event()
    (
        e.ip_addr("ip", "192.168.0.10")
        .ip_prefix("net", "10.0.0.0/8")
        .mac_addr("mac", b"\x02\x00\x00\x00\x00\x01")
        .send()
    )
    assert _out(buf) == (
        '{"ip":"192.168.0.10","net":"10.0.0.0/8","mac":"02:00:00:00:00:01"}'
    )


def test_caller_points_at_call_site():
    e, buf = _event()
    line = inspect.currentframe().f_lineno + 1
    e.caller()
    e.send()
    caller = json.loads(_out(buf))["caller"]
    assert caller.endswith(f"test_event.py:{line}")


def test_ctx_roundtrip():
    e, _ = _event()
    assert dict(e.get_ctx()) == {}
    e.ctx({"trace": "abc"})
    assert e.get_ctx() == {"trace": "abc"}


def test_dict_event_level_is_debug():
    d = dict_event()
    assert d.level == Level.DEBUG
    assert d.enabled() is True
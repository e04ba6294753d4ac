import threading

import pytest

from zlog.diode import DiodeWriter
from zlog.event import Event
from zlog.globals import Level


class Sink:
    def __init__(self):
        self.chunks = []
        self.closed = False

    def write(self, data):
        self.chunks.append(bytes(data))
        return len(data)

    def close(self):
        self.closed = True

    def text(self):
        return b"".join(self.chunks).decode("utf-8")


class GatedSink(Sink):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.gate = threading.Event()

    def write(self, data):
        self.entered.set()
        self.gate.wait()
        return super().write(data)


@pytest.mark.parametrize("interval", [0.0, 0.005])
def test_new_writer(interval):
    sink = Sink()
    w = DiodeWriter(sink, 1000, interval, lambda missed: None)
    Event(w, Level.DEBUG).str("level", "debug").msg("test")
    w.close()
    assert sink.text() == '{"level":"debug","message":"test"}\n'


def test_close_closes_wrapped_writer():
    sink = Sink()
    w = DiodeWriter(sink, 1000)
    w.write(b"x")
    w.close()
    assert sink.closed is True
    assert sink.text() == "x"


def test_context_manager_drains_in_order():
    sink = Sink()
    with DiodeWriter(sink, 100) as w:
        for i in range(20):
            assert w.write(f"{i}\n".encode()) == len(f"{i}\n")
    assert sink.text() == "".join(f"{i}\n" for i in range(20))
    assert sink.closed is True


def test_write_copies_data():
    sink = Sink()
    buf = bytearray(b"abc")
    with DiodeWriter(sink, 10) as w:
        w.write(buf)
        buf[:] = b"zzz"
    assert sink.text() == "abc"


def test_slow_writer_drops_and_reports():
    sink = GatedSink()
    missed = []
    w = DiodeWriter(sink, 4, 0.0, missed.append)
    w.write(b"first")
    assert sink.entered.wait(timeout=5)
    total = 20
    for i in range(total):
        w.write(str(i).encode())
    sink.gate.set()
    w.close()
    assert sink.chunks[0] == b"first"
    assert len(sink.chunks) - 1 + sum(missed) == total
    assert sink.chunks[-1] == str(total - 1).encode()
    assert sum(missed) > 0


def test_invalid_size_raises():
    with pytest.raises(ValueError):
        DiodeWriter(Sink(), 0)
"""Proxies around HTTP response writers that record status and size."""

from __future__ import annotations

from typing import Any, Optional

STATUS_OK = 200


class BasicWriter:
    """Wraps a response writer, remembering the status and bytes written.

    The wrapped object needs ``write(data)`` and ``write_header(code)``.
    """

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self._wrote_header = False
        self._code = 0
        self._bytes = 0
        self._tee: Optional[Any] = None

    @property
    def status(self) -> int:
        """The status sent, or 0 if none was sent yet."""
        return self._code

    @property
    def bytes_written(self) -> int:
        return self._bytes

    @property
    def header(self) -> Any:
        return self._writer.header

    def write_header(self, code: int) -> None:
        """Send the status once; later calls are ignored."""
        if not self._wrote_header:
            self._code = code
            self._wrote_header = True
            self._writer.write_header(code)

    def write(self, data: bytes) -> int:
        """Write the body, sending 200 first if no status was sent."""
        self.write_header(STATUS_OK)
        n = self._writer.write(data)
        if n is None:
            n = len(data)
        if self._tee is not None:
            self._tee.write(data[:n])
        self._bytes += n
        return n

    def _maybe_write_header(self) -> None:
        if not self._wrote_header:
            self.write_header(STATUS_OK)

    def tee(self, writer: Any) -> None:
        """Also copy the body to ``writer``; replaces any earlier tee."""
        self._tee = writer

    def unwrap(self) -> Any:
        """Return the wrapped writer."""
        return self._writer


class FlushWriter(BasicWriter):
    """A proxy for writers that can flush."""

    def flush(self) -> None:
        self._writer.flush()


class FancyWriter(BasicWriter):
    """A proxy for writers that flush, hijack, notify close and read from."""

    def flush(self) -> None:
        self._writer.flush()

    def close_notify(self) -> Any:
        return self._writer.close_notify()

    def hijack(self) -> Any:
        return self._writer.hijack()

    def read_from(self, reader: Any) -> int:
        """Copy ``reader`` into the response and return the byte count."""
        if self._tee is not None:
            total = 0
            while True:
                chunk = reader.read(32 * 1024)
                if not chunk:
                    break
                total += self.write(chunk)
            self._bytes += total
            return total
        self._maybe_write_header()
        n = self._writer.read_from(reader)
        self._bytes += n
        return n


def wrap_writer(writer: Any) -> BasicWriter:
    """Pick the richest proxy the wrapped writer supports."""
    def has(name: str) -> bool:
        return callable(getattr(writer, name, None))

    if all(has(n) for n in ("close_notify", "flush", "hijack", "read_from")):
        return FancyWriter(writer)
    if has("flush"):
        return FlushWriter(writer)
    return BasicWriter(writer)
"""Log events: a JSON object built field by field and written when finished."""

from __future__ import annotations

import inspect
import io
import os
import sys
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, runtime_checkable

from .encoding import (
    encode_bool,
    encode_bytes,
    encode_cbor,
    encode_duration,
    encode_float,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ip_addr,
    encode_ip_prefix,
    encode_key,
    encode_list,
    encode_mac_addr,
    encode_string,
    encode_time,
)
from .globals import Level, settings

_EMPTY_CTX: Mapping[str, Any] = MappingProxyType({})

sms_sender: Optional[Callable[[str, str], Any]] = None
"""Called as ``sms_sender(destination, text)`` for events at the MOBILE level.

The destination is taken from the ``SMS_DESTINATION`` environment variable.
"""


@runtime_checkable
class LogObjectMarshaler(Protocol):
    """An object that writes its own fields into an event."""

    def marshal_zerolog_object(self, e: Event) -> None: ...


@runtime_checkable
class LogArrayMarshaler(Protocol):
    """An object that writes its own items into an array."""

    def marshal_zerolog_array(self, a: Any) -> None: ...


@runtime_checkable
class Hook(Protocol):
    """Runs on an event just before it is written."""

    def run(self, e: Event, level: Level, msg: str) -> None: ...


def _encode_stringer(value: Any) -> str:
    return "null" if value is None else encode_string(str(value))


def _type_name(value: Any) -> str:
    if value is None:
        return "<nil>"
    kind = type(value)
    if kind.__module__ == "builtins":
        return kind.__qualname__
    return f"{kind.__module__}.{kind.__qualname__}"


def _check_unsigned(value: int) -> int:
    if value < 0:
        raise ValueError(f"unsigned value expected, got {value}")
    return value


class Event:
    """A log event under construction.

    Field methods return the event so calls chain. Once the event is
    disabled (by its level or by ``discard``) every method does nothing.
    """

    def __init__(
        self,
        writer: Any = None,
        level: Level = Level.DEBUG,
        *,
        hooks: Iterable[Hook] = (),
        done: Optional[Callable[[str], Any]] = None,
        stack: bool = False,
        ctx: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._writer = writer
        self._level = Level(level)
        self._hooks = list(hooks)
        self._done = done
        self._stack = stack
        self._ctx = ctx
        self._skip_frame = 0
        self._buf = "{"

    @property
    def level(self) -> Level:
        return self._level

    # -- internals ---------------------------------------------------------

    def _append_key(self, key: str) -> None:
        if not self._buf.endswith("{"):
            self._buf += ","
        self._buf += encode_key(key)

    def _append_members(self, members: str) -> None:
        """Append already encoded ``"key":value`` members, comma separated."""
        if not members:
            return
        if not self._buf.endswith("{"):
            self._buf += ","
        self._buf += members

    def _field(self, key: str, encode: Callable[[Any], str], value: Any) -> Event:
        if self.enabled():
            encoded = encode(value)
            self._append_key(key)
            self._buf += encoded
        return self

    def _append_object(self, obj: LogObjectMarshaler) -> None:
        self._buf += "{"
        obj.marshal_zerolog_object(self)
        self._buf += "}"

    def _close_object(self) -> str:
        """Return the event's fields as a complete JSON object."""
        return self._buf + "}"

    def _append_caller(self, skip: int) -> Event:
        if not self.enabled():
            return self
        frame = inspect.currentframe()
        for _ in range(skip + self._skip_frame):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return self
        location = settings.caller_marshal_func(
            frame.f_lasti, frame.f_code.co_filename, frame.f_lineno
        )
        self._append_key(settings.caller_field_name)
        self._buf += encode_string(location)
        return self

    # -- lifecycle ---------------------------------------------------------

    def enabled(self) -> bool:
        """Report whether the event will be written."""
        return self._level != Level.DISABLED

    def discard(self) -> Event:
        """Disable the event so that finishing it writes nothing."""
        self._level = Level.DISABLED
        return self

    def write(self) -> None:
        """Write the finished object and a line break to the writer.

        Errors raised by the writer propagate.
        """
        if self._level == Level.DISABLED:
            return
        text = self._close_object() + "\n"
        try:
            writer = self._writer
            if writer is not None:
                write_level = getattr(writer, "write_level", None)
                if write_level is not None:
                    write_level(self._level, text.encode("utf-8"))
                elif isinstance(writer, io.TextIOBase):
                    writer.write(text)
                else:
                    writer.write(text.encode("utf-8"))
        finally:
            if self._level == Level.MOBILE and sms_sender is not None:
                sms_sender(os.environ.get("SMS_DESTINATION", ""), text)

    def _finish(self, message: str) -> None:
        for hook in self._hooks:
            hook.run(self, self._level, message)
        if message:
            self._append_key(settings.message_field_name)
            self._buf += encode_string(message)
        try:
            self.write()
        except Exception as exc:
            if settings.error_handler is not None:
                settings.error_handler(exc)
            else:
                print(f"zlog: could not write event: {exc}", file=sys.stderr)
        finally:
            if self._done is not None:
                self._done(message)

    def msg(self, message: str) -> None:
        """Finish the event, adding ``message`` when it is not empty."""
        if self.enabled():
            self._finish(message)

    def send(self) -> None:
        """Finish the event without a message."""
        self.msg("")

    def msgf(self, fmt: str, *args: Any) -> None:
        """Finish the event with a %-formatted message."""
        if self.enabled():
            self._finish(fmt % args if args else fmt)

    def msg_func(self, create_msg: Callable[[], str]) -> None:
        """Finish the event with a message built only if it is enabled."""
        if self.enabled():
            self._finish(create_msg())

    # -- composite fields --------------------------------------------------

    def fields(self, fields: Any) -> Event:
        """Add fields from a mapping or from an alternating key/value list."""
        if not self.enabled():
            return self
        from .fields import encode_fields

        self._append_members(encode_fields(fields, self._stack))
        return self

    def dict(self, key: str, dict_event: Event) -> Event:
        """Add the fields of ``dict_event`` as a nested object."""
        if self.enabled():
            self._append_key(key)
            self._buf += dict_event._close_object()
        return self

    def array(self, key: str, arr: Any) -> Event:
        """Add an Array, or any array marshaler, under ``key``."""
        if not self.enabled():
            return self
        from .array import Array, arr as new_array

        if isinstance(arr, Array):
            items = arr
        else:
            items = new_array()
            arr.marshal_zerolog_array(items)
        self._append_key(key)
        self._buf += items.encode()
        return self

    def object(self, key: str, obj: Optional[LogObjectMarshaler]) -> Event:
        """Add an object marshaler as a nested object, or null for None."""
        if not self.enabled():
            return self
        self._append_key(key)
        if obj is None:
            self._buf += "null"
            return self
        self._append_object(obj)
        return self

    def func(self, f: Callable[[Event], Any]) -> Event:
        """Run ``f`` on the event only if it is enabled."""
        if self.enabled():
            f(self)
        return self

    def embed_object(self, obj: Optional[LogObjectMarshaler]) -> Event:
        """Add the fields of an object marshaler directly to the event."""
        if self.enabled() and obj is not None:
            obj.marshal_zerolog_object(self)
        return self

    # -- strings and bytes -------------------------------------------------

    def str(self, key: str, value: str) -> Event:
        return self._field(key, encode_string, value)

    def strs(self, key: str, values: Iterable[str]) -> Event:
        return self._field(key, lambda v: encode_list(v, encode_string), values)

    def stringer(self, key: str, value: Any) -> Event:
        """Add ``str(value)``, or null when value is None."""
        return self._field(key, _encode_stringer, value)

    def stringers(self, key: str, values: Iterable[Any]) -> Event:
        return self._field(key, lambda v: encode_list(v, _encode_stringer), values)

    def bytes(self, key: str, value: bytes) -> Event:
        return self._field(key, encode_bytes, value)

    def hex(self, key: str, value: bytes) -> Event:
        return self._field(key, encode_hex, value)

    def raw_json(self, key: str, value: Any) -> Event:
        """Add already encoded JSON without any check."""

        def raw(v: Any) -> str:
            return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else v

        return self._field(key, raw, value)

    def raw_cbor(self, key: str, value: bytes) -> Event:
        """Add raw CBOR as a base64 data URL."""
        return self._field(key, encode_cbor, value)

    # -- errors ------------------------------------------------------------

    def an_err(self, key: str, err: Optional[BaseException]) -> Event:
        """Add a serialized error under ``key``; nothing is added for None."""
        if not self.enabled():
            return self
        marshaled = settings.error_marshal_func(err)
        if marshaled is None:
            return self
        if isinstance(marshaled, LogObjectMarshaler):
            return self.object(key, marshaled)
        if isinstance(marshaled, BaseException):
            return self.str(key, str(marshaled))
        if isinstance(marshaled, str):
            return self.str(key, marshaled)
        return self.interface(key, marshaled)

    def errs(self, key: str, errs: Iterable[Optional[BaseException]]) -> Event:
        """Add an array of serialized errors."""
        if not self.enabled():
            return self
        from .array import arr as new_array

        items = new_array()
        for err in errs:
            marshaled = settings.error_marshal_func(err)
            if isinstance(marshaled, LogObjectMarshaler):
                items.object(marshaled)
            elif isinstance(marshaled, BaseException):
                items.err(marshaled)
            elif isinstance(marshaled, str):
                items.str(marshaled)
            else:
                items.interface(marshaled)
        return self.array(key, items)

    def err(self, err: Optional[BaseException]) -> Event:
        """Add ``err`` under the error field name, with its stack if enabled."""
        if not self.enabled():
            return self
        marshal_stack = settings.error_stack_marshaler
        if self._stack and marshal_stack is not None:
            stack_key = settings.error_stack_field_name
            marshaled = marshal_stack(err)
            if marshaled is None:
                pass
            elif isinstance(marshaled, LogObjectMarshaler):
                self.object(stack_key, marshaled)
            elif isinstance(marshaled, BaseException):
                self.str(stack_key, str(marshaled))
            elif isinstance(marshaled, str):
                self.str(stack_key, marshaled)
            else:
                self.interface(stack_key, marshaled)
        return self.an_err(settings.error_field_name, err)

    def stack(self) -> Event:
        """Record the error stack for the error passed to ``err``."""
        self._stack = True
        return self

    def ctx(self, ctx: Mapping[str, Any]) -> Event:
        """Attach a context for hooks; it is not written out."""
        self._ctx = ctx
        return self

    def get_ctx(self) -> Mapping[str, Any]:
        """Return the attached context, or an empty one."""
        return _EMPTY_CTX if self._ctx is None else self._ctx

    # -- scalars -----------------------------------------------------------

    def bool(self, key: str, value: bool) -> Event:
        return self._field(key, encode_bool, value)

    def bools(self, key: str, values: Iterable[bool]) -> Event:
        return self._field(key, lambda v: encode_list(v, encode_bool), values)

    def int(self, key: str, value: int) -> Event:
        return self._field(key, encode_int, value)

    def ints(self, key: str, values: Iterable[int]) -> Event:
        return self._field(key, lambda v: encode_list(v, encode_int), values)

    def uint(self, key: str, value: int) -> Event:
        """Add a non-negative integer; raises ValueError for a negative one."""
        return self._field(key, lambda v: encode_int(_check_unsigned(v)), value)

    def uints(self, key: str, values: Iterable[int]) -> Event:
        return self._field(
            key,
            lambda v: encode_list(v, lambda i: encode_int(_check_unsigned(i))),
            values,
        )

    def float32(self, key: str, value: float) -> Event:
        return self._field(key, lambda v: encode_float(v, 32), value)

    def floats32(self, key: str, values: Iterable[float]) -> Event:
        return self._field(
            key, lambda v: encode_list(v, lambda f: encode_float(f, 32)), values
        )

    def float(self, key: str, value: float) -> Event:
        return self._field(key, lambda v: encode_float(v, 64), value)

    def floats(self, key: str, values: Iterable[float]) -> Event:
        return self._field(
            key, lambda v: encode_list(v, lambda f: encode_float(f, 64)), values
        )

    # -- time --------------------------------------------------------------

    def timestamp(self) -> Event:
        """Add the current time under the timestamp field name."""
        return self._field(
            settings.timestamp_field_name,
            lambda v: encode_time(v, settings.time_field_format),
            settings.timestamp_func() if self.enabled() else None,
        )

    def time(self, key: str, value: datetime) -> Event:
        return self._field(
            key, lambda v: encode_time(v, settings.time_field_format), value
        )

    def times(self, key: str, values: Iterable[datetime]) -> Event:
        return self._field(
            key,
            lambda v: encode_list(
                v, lambda t: encode_time(t, settings.time_field_format)
            ),
            values,
        )

    def dur(self, key: str, value: timedelta) -> Event:
        """Add a duration counted in the configured duration unit."""
        return self._field(
            key,
            lambda v: encode_duration(
                v, settings.duration_field_unit, settings.duration_field_integer
            ),
            value,
        )

    def durs(self, key: str, values: Iterable[timedelta]) -> Event:
        return self._field(
            key,
            lambda v: encode_list(
                v,
                lambda d: encode_duration(
                    d, settings.duration_field_unit, settings.duration_field_integer
                ),
            ),
            values,
        )

    def time_diff(self, key: str, t: datetime, start: datetime) -> Event:
        """Add ``t - start``, or zero when ``t`` is not after ``start``."""
        if not self.enabled():
            return self
        elapsed = t - start if t > start else timedelta(0)
        return self.dur(key, elapsed)

    # -- arbitrary values --------------------------------------------------

    def any(self, key: str, value: Any) -> Event:
        return self.interface(key, value)

    def interface(self, key: str, value: Any) -> Event:
        """Add any value, through its marshaler if it has one."""
        if isinstance(value, LogObjectMarshaler):
            return self.object(key, value)
        return self._field(key, encode_interface, value)

    def type(self, key: str, value: Any) -> Event:
        """Add the name of the value's type."""
        return self._field(key, lambda v: encode_string(_type_name(v)), value)

    # -- caller ------------------------------------------------------------

    def caller_skip_frame(self, skip: int) -> Event:
        """Skip ``skip`` more frames in every later caller lookup."""
        if self.enabled():
            self._skip_frame += skip
        return self

    def caller(self, *args: int) -> Event:
        """Add the file:line of the caller; an optional argument skips frames."""
        skip = settings.caller_skip_frame_count
        if args:
            skip = args[0] + settings.caller_skip_frame_count
        return self._append_caller(skip)

    # -- network -----------------------------------------------------------

    def ip_addr(self, key: str, ip: Any) -> Event:
        return self._field(key, encode_ip_addr, ip)

    def ip_prefix(self, key: str, network: Any) -> Event:
        return self._field(key, encode_ip_prefix, network)

    def mac_addr(self, key: str, address: Any) -> Event:
        return self._field(key, encode_mac_addr, address)


def dict_event() -> Event:
    """Create an event whose fields are meant for ``Event.dict``."""
    return Event(None, Level.DEBUG)
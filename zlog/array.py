"""Arrays of log values that can be filled once and added to events."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, List, Optional

from .encoding import (
    encode_bool,
    encode_bytes,
    encode_duration,
    encode_float,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ip_addr,
    encode_ip_prefix,
    encode_mac_addr,
    encode_string,
    encode_time,
)
from .event import Event, LogObjectMarshaler, dict_event
from .globals import settings


def _marshaled_object(obj: LogObjectMarshaler) -> str:
    holder = dict_event()
    obj.marshal_zerolog_object(holder)
    return holder._close_object()


class Array:
    """An ordered list of encoded values, rendered as a JSON array.

    Item methods return the array so calls chain.
    """

    def __init__(self) -> None:
        self._items: List[str] = []

    def __len__(self) -> int:
        return len(self._items)

    def _push(self, encoded: str) -> Array:
        self._items.append(encoded)
        return self

    def marshal_zerolog_array(self, a: Array) -> None:
        """Do nothing: the array already holds its items encoded."""

    def encode(self) -> str:
        """Return the items as a JSON array."""
        return "[" + ",".join(self._items) + "]"

    def object(self, obj: LogObjectMarshaler) -> Array:
        """Append an object marshaler as a nested object."""
        return self._push(_marshaled_object(obj))

    def str(self, value: str) -> Array:
        return self._push(encode_string(value))

    def bytes(self, value: bytes) -> Array:
        return self._push(encode_bytes(value))

    def hex(self, value: bytes) -> Array:
        return self._push(encode_hex(value))

    def raw_json(self, value: Any) -> Array:
        """Append already encoded JSON without any check."""
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8")
        return self._push(value)

    def err(self, err: Optional[BaseException]) -> Array:
        """Append a serialized error; None becomes null."""
        marshaled = settings.error_marshal_func(err)
        if isinstance(marshaled, LogObjectMarshaler):
            return self._push(_marshaled_object(marshaled))
        if isinstance(marshaled, BaseException):
            return self._push(encode_string(f"{marshaled}"))
        if isinstance(marshaled, type("")):
            return self._push(encode_string(marshaled))
        return self._push(encode_interface(marshaled))

    def bool(self, value: bool) -> Array:
        return self._push(encode_bool(value))

    def int(self, value: int) -> Array:
        return self._push(encode_int(value))

    def uint(self, value: int) -> Array:
        """Append a non-negative integer; raises ValueError for a negative one."""
        if value < 0:
            raise ValueError(f"unsigned value expected, got {value}")
        return self._push(encode_int(value))

    def float32(self, value: float) -> Array:
        return self._push(encode_float(value, 32))

    def float(self, value: float) -> Array:
        return self._push(encode_float(value, 64))

    def time(self, value: datetime) -> Array:
        """Append a time formatted with the configured time field format."""
        return self._push(encode_time(value, settings.time_field_format))

    def dur(self, value: timedelta) -> Array:
        """Append a duration counted in the configured duration unit."""
        return self._push(
            encode_duration(
                value, settings.duration_field_unit, settings.duration_field_integer
            )
        )

    def interface(self, value: Any) -> Array:
        """Append any value, through its marshaler if it has one."""
        if isinstance(value, LogObjectMarshaler):
            return self.object(value)
        return self._push(encode_interface(value))

    def ip_addr(self, ip: Any) -> Array:
        return self._push(encode_ip_addr(ip))

    def ip_prefix(self, network: Any) -> Array:
        return self._push(encode_ip_prefix(network))

    def mac_addr(self, address: Any) -> Array:
        return self._push(encode_mac_addr(address))

    def dict(self, dict_event: Event) -> Array:
        """Append the fields of ``dict_event`` as a nested object."""
        return self._push(dict_event._close_object())


def arr() -> Array:
    """Create an empty array to fill and add to an event."""
    return Array()
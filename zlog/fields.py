"""Encoding of loosely typed field collections into object members."""

from __future__ import annotations

import ipaddress
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Optional

from .encoding import (
    encode_bool,
    encode_bytes,
    encode_duration,
    encode_float,
    encode_int,
    encode_interface,
    encode_ip_addr,
    encode_ip_prefix,
    encode_key,
    encode_list,
    encode_string,
    encode_time,
)
from .event import LogObjectMarshaler, dict_event
from .globals import settings

_ADDRESSES = (ipaddress.IPv4Address, ipaddress.IPv6Address)
_NETWORKS = (
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
)


def _encode_time(value: datetime) -> str:
    return encode_time(value, settings.time_field_format)


def _encode_duration(value: timedelta) -> str:
    return encode_duration(
        value, settings.duration_field_unit, settings.duration_field_integer
    )


def _encode_float(value: float) -> str:
    return encode_float(value, 64)


def _scalar_encoder(value: Any) -> Optional[Callable[[Any], str]]:
    if isinstance(value, bool):
        return encode_bool
    if isinstance(value, int):
        return encode_int
    if isinstance(value, float):
        return _encode_float
    if isinstance(value, str):
        return encode_string
    if isinstance(value, datetime):
        return _encode_time
    if isinstance(value, timedelta):
        return _encode_duration
    return None


def _encode_object(obj: LogObjectMarshaler) -> str:
    holder = dict_event()
    obj.marshal_zerolog_object(holder)
    return holder._close_object()


def _encode_error(err: Optional[BaseException]) -> str:
    marshaled = settings.error_marshal_func(err)
    if isinstance(marshaled, LogObjectMarshaler):
        return _encode_object(marshaled)
    if isinstance(marshaled, BaseException):
        return encode_string(str(marshaled))
    if marshaled is None:
        return "null"
    if isinstance(marshaled, str):
        return encode_string(marshaled)
    return encode_interface(marshaled)


def _encode_stack(err: BaseException) -> Optional[str]:
    marshaler = settings.error_stack_marshaler
    if marshaler is None:
        return None
    marshaled = marshaler(err)
    if marshaled is None:
        return None
    if isinstance(marshaled, BaseException):
        return encode_string(str(marshaled))
    if isinstance(marshaled, str):
        return encode_string(marshaled)
    return encode_interface(marshaled)


def _is_error_list(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and bool(value)
        and all(isinstance(item, BaseException) for item in value)
    )


def _encode_sequence(value: Any) -> str:
    encoders = [_scalar_encoder(item) for item in value]
    if encoders and all(encoders):
        kinds = {encoder for encoder in encoders}
        if len(kinds) == 1:
            return encode_list(value, encoders[0])
    return encode_interface(value)


def _encode_value(value: Any) -> str:
    if isinstance(value, LogObjectMarshaler):
        return _encode_object(value)
    if value is None:
        return "null"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return encode_bytes(bytes(value))
    encoder = _scalar_encoder(value)
    if encoder is not None:
        return encoder(value)
    if _is_error_list(value):
        return encode_list(value, _encode_error)
    if isinstance(value, (list, tuple)):
        return _encode_sequence(value)
    if isinstance(value, _ADDRESSES):
        return encode_ip_addr(value)
    if isinstance(value, _NETWORKS):
        return encode_ip_prefix(value)
    return encode_interface(value)


def encode_field_list(kv_list: Iterable[Any], stack: bool) -> str:
    """Encode alternating keys and values as comma-separated members.

    Pairs whose key is not a string are skipped; a trailing key without a
    value is ignored. Errors get an extra stack member when ``stack`` is set
    and a stack marshaler is configured.
    """
    members: List[str] = []
    items = iter(kv_list)
    for key, value in zip(items, items):
        if not isinstance(key, str):
            continue
        if isinstance(value, BaseException) and not isinstance(
            value, LogObjectMarshaler
        ):
            members.append(encode_key(key) + _encode_error(value))
            if stack:
                trace = _encode_stack(value)
                if trace is not None:
                    members.append(
                        encode_key(settings.error_stack_field_name) + trace
                    )
            continue
        members.append(encode_key(key) + _encode_value(value))
    return ",".join(members)


def encode_fields(fields: Any, stack: bool) -> str:
    """Encode a mapping (in sorted key order) or a key/value list as members.

    Any other type yields no members.
    """
    if isinstance(fields, dict):
        pairs: List[Any] = []
        for key in sorted(fields):
            pairs.extend((key, fields[key]))
        return encode_field_list(pairs, stack)
    if isinstance(fields, (list, tuple)):
        return encode_field_list(fields, stack)
    return ""
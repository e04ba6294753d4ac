"""Encoders that turn field values into JSON fragments."""

from __future__ import annotations

import base64
import ipaddress
import math
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Union

from .globals import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_RFC3339_NANO,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    settings,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _build_escape_table() -> dict:
    table = {code: f"\\u{code:04x}" for code in range(0x20)}
    table.update(
        {
            ord('"'): '\\"',
            ord("\\"): "\\\\",
            ord("\b"): "\\b",
            ord("\f"): "\\f",
            ord("\n"): "\\n",
            ord("\r"): "\\r",
            ord("\t"): "\\t",
        }
    )
    # Lone surrogates stand for bytes that were not valid UTF-8.
    table.update({code: "\\ufffd" for code in range(0xD800, 0xE000)})
    return table


_ESCAPES = _build_escape_table()


def encode_key(key: str) -> str:
    """Encode an object key followed by its colon."""
    return encode_string(key) + ":"


def encode_string(value: str) -> str:
    """Encode a string as a quoted, escaped JSON string."""
    return '"' + value.translate(_ESCAPES) + '"'


def encode_bytes(data: bytes) -> str:
    """Encode bytes as a JSON string; invalid UTF-8 bytes become U+FFFD."""
    return encode_string(bytes(data).decode("utf-8", "surrogateescape"))


def encode_hex(data: bytes) -> str:
    """Encode bytes as a quoted lowercase hex string."""
    return '"' + bytes(data).hex() + '"'


def encode_bool(value: bool) -> str:
    return "true" if value else "false"


def encode_int(value: int) -> str:
    return str(int(value))


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _shortest_float32(value: float) -> str:
    for digits in range(1, 10):
        text = f"{value:.{digits}g}"
        if _to_float32(float(text)) == value:
            return text
    return repr(value)


def _fixed(text: str) -> str:
    out = format(Decimal(text), "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    return out


def _scientific(text: str) -> str:
    sign, digit_tuple, exponent = Decimal(text).as_tuple()
    exponent10 = exponent + len(digit_tuple) - 1
    digits = "".join(map(str, digit_tuple)).rstrip("0") or "0"
    mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    if exponent10 >= 0:
        exp_text = f"+{exponent10:02d}"
    else:
        exp_text = f"-{-exponent10}"
    return ("-" if sign else "") + mantissa + "e" + exp_text


def encode_float(value: float, bits: int) -> str:
    """Encode a 32- or 64-bit float the way JavaScript prints numbers.

    NaN and infinities, which JSON cannot hold, become quoted strings.
    """
    if bits not in (32, 64):
        raise ValueError(f"unsupported float size: {bits}")
    value = float(value)
    if bits == 32:
        value = _to_float32(value)
    if math.isnan(value):
        return '"NaN"'
    if math.isinf(value):
        return '"+Inf"' if value > 0 else '"-Inf"'
    text = repr(value) if bits == 64 else _shortest_float32(value)
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        return _scientific(text)
    return _fixed(text)


def _as_aware(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def _offset_text(value: datetime) -> str:
    offset = value.utcoffset()
    if not offset:
        return "Z"
    minutes = offset // timedelta(minutes=1)
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _rfc3339(value: datetime, with_fraction: bool) -> str:
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if with_fraction and value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + _offset_text(value)


def encode_time(value: datetime, time_format: str) -> str:
    """Encode a datetime as a Unix integer or a formatted string.

    ``time_format`` is one of the TIME_FORMAT_* constants or a strftime pattern.
    """
    aware = _as_aware(value)
    nanos = (aware - _EPOCH) // _MICROSECOND * 1000
    if time_format == TIME_FORMAT_UNIX:
        return encode_int((aware - _EPOCH) // timedelta(seconds=1))
    if time_format == TIME_FORMAT_UNIX_MS:
        return encode_int(_truncating_div(nanos, 1_000_000))
    if time_format == TIME_FORMAT_UNIX_MICRO:
        return encode_int(_truncating_div(nanos, 1_000))
    if time_format == TIME_FORMAT_UNIX_NANO:
        return encode_int(nanos)
    if time_format == TIME_FORMAT_RFC3339:
        return encode_string(_rfc3339(aware, with_fraction=False))
    if time_format == TIME_FORMAT_RFC3339_NANO:
        return encode_string(_rfc3339(aware, with_fraction=True))
    return encode_string(aware.strftime(time_format))


def encode_duration(value: timedelta, unit: timedelta, use_int: bool) -> str:
    """Encode a duration counted in ``unit``, as an integer or a float."""
    if use_int:
        return encode_int(_truncating_div(value // _MICROSECOND, unit // _MICROSECOND))
    return encode_float(value / unit, 64)


def encode_interface(value: Any) -> str:
    """Encode any value with the configured marshal function.

    A marshaling failure is recorded as a string instead of raising.
    """
    try:
        marshaled = settings.interface_marshal_func(value)
    except Exception as exc:
        return encode_string(f"marshaling error: {exc}")
    if isinstance(marshaled, (bytes, bytearray)):
        return bytes(marshaled).decode("utf-8", "replace")
    return str(marshaled)


_Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def encode_ip_addr(ip: Any) -> str:
    """Encode an IPv4 or IPv6 address given as an object, string, int or bytes."""
    if ip is None or (isinstance(ip, (bytes, bytearray)) and not ip):
        return encode_string("<nil>")
    if isinstance(ip, bytearray):
        ip = bytes(ip)
    address: _Address = (
        ip
        if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address))
        else ipaddress.ip_address(ip)
    )
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return encode_string(str(address))


def encode_ip_prefix(network: Any) -> str:
    """Encode an address with its prefix length, such as ``10.0.0.0/8``."""
    if isinstance(
        network,
        (
            ipaddress.IPv4Network,
            ipaddress.IPv6Network,
            ipaddress.IPv4Interface,
            ipaddress.IPv6Interface,
        ),
    ):
        return encode_string(str(network))
    return encode_string(str(ipaddress.ip_interface(network)))


def encode_mac_addr(address: Union[bytes, bytearray, str]) -> str:
    """Encode a hardware address as colon-separated lowercase hex."""
    if isinstance(address, str):
        address = bytes.fromhex(address.replace(":", "").replace("-", ""))
    return encode_string(":".join(f"{octet:02x}" for octet in bytes(address)))


def encode_list(values: Iterable[Any], encode_item: Callable[[Any], str]) -> str:
    """Encode an iterable as a JSON array, each item through ``encode_item``."""
    return "[" + ",".join(encode_item(value) for value in values) + "]"


def encode_cbor(data: bytes) -> str:
    """Embed raw CBOR as a base64 data URL string."""
    encoded = base64.b64encode(bytes(data)).decode("ascii")
    return '"data:application/cbor;base64,' + encoded + '"'


def decode_if_binary_to_string(data: Union[bytes, str]) -> str:
    """Return the log line as text; JSON output needs no decoding."""
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", "replace")


def decode_object_to_str(data: Union[bytes, str]) -> str:
    """Return an encoded object as text."""
    return decode_if_binary_to_string(data)


def decode_if_binary_to_bytes(data: Union[bytes, str]) -> bytes:
    """Return the log line as bytes; JSON output needs no decoding."""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)
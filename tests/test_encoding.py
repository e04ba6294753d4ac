import base64
import ipaddress
import json
import struct
from datetime import datetime, timedelta, timezone

import pytest

from zlog.encoding import (
    decode_if_binary_to_bytes,
    decode_if_binary_to_string,
    decode_object_to_str,
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
from zlog.globals import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_RFC3339_NANO,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MS = timedelta(milliseconds=1)


@pytest.mark.parametrize(
    "text", ["a", "", 'quote " here', "back\\slash", "line\nbreak\t\r", "\x00\x1f", "héllo ✓"]
)
def test_string_round_trip(text):
    assert json.loads(encode_string(text)) == text


def test_string_has_no_raw_control_characters():
    out = encode_string("a\x01b\nc")
    assert all(ord(ch) >= 0x20 for ch in out)


def test_key_is_string_with_colon():
    assert encode_key("level") == encode_string("level") + ":"


def test_bytes_and_hex_from_array_case():
    assert encode_bytes(b"b") == '"b"'
    assert encode_hex(bytes([0x1F])) == '"1f"'


def test_invalid_utf8_bytes_become_replacement():
    assert json.loads(encode_bytes(b"a\xffb")) == "a\ufffdb"


def test_hex_round_trip():
    data = bytes(range(20))
    assert bytes.fromhex(json.loads(encode_hex(data))) == data


def test_bool_and_int():
    assert encode_bool(True) == "true"
    assert encode_bool(False) == "false"
    assert encode_int(1152921504606846976) == "1152921504606846976"


def test_floats_from_source_cases():
    assert encode_float(11.98122, 32) == "11.98122"
    assert encode_float(12.987654321, 64) == "12.987654321"
    assert encode_float(1.23, 64) == "1.23"


@pytest.mark.parametrize("value", [0.1, 1e21, 1e-7, -3.5, 123456.789, 5e300, 2.0])
def test_float64_round_trip(value):
    assert float(json.loads(encode_float(value, 64))) == value


@pytest.mark.parametrize("value", [0.1, 3.14159, 1e-8, 65504.0])
def test_float32_round_trip(value):
    expected = struct.unpack("<f", struct.pack("<f", value))[0]
    decoded = float(json.loads(encode_float(value, 32)))
    assert struct.unpack("<f", struct.pack("<f", decoded))[0] == expected


def test_small_float_uses_short_exponent():
    assert encode_float(1e-7, 64) == "1e-7"


def test_special_floats_are_strings():
    assert isinstance(json.loads(encode_float(float("nan"), 64)), str)
    assert json.loads(encode_float(float("inf"), 64)) != json.loads(
        encode_float(float("-inf"), 64)
    )
    assert isinstance(json.loads(encode_float(float("-inf"), 32)), str)


def test_float_bad_size():
    with pytest.raises(ValueError):
        encode_float(1.0, 16)


def test_time_rfc3339_zero_value():
    zero = datetime(1, 1, 1, tzinfo=timezone.utc)
    assert encode_time(zero, TIME_FORMAT_RFC3339) == '"0001-01-01T00:00:00Z"'


def test_time_rfc3339_offset_round_trip():
    zone = timezone(timedelta(hours=-5, minutes=-30))
    moment = datetime(2001, 2, 3, 4, 5, 6, tzinfo=zone)
    assert datetime.fromisoformat(json.loads(encode_time(moment, TIME_FORMAT_RFC3339))) == moment


def test_time_rfc3339_nano_keeps_fraction():
    zone = timezone(timedelta(hours=2))
    moment = datetime(2001, 2, 3, 4, 5, 6, 123456, tzinfo=zone)
    out = json.loads(encode_time(moment, TIME_FORMAT_RFC3339_NANO))
    assert datetime.fromisoformat(out) == moment


def test_time_unix_formats():
    assert encode_time(EPOCH + timedelta(seconds=1234), TIME_FORMAT_UNIX) == "1234"
    assert encode_time(EPOCH + timedelta(milliseconds=1234567), TIME_FORMAT_UNIX_MS) == "1234567"
    micro = EPOCH + timedelta(microseconds=1234567891)
    assert encode_time(micro, TIME_FORMAT_UNIX_MICRO) == "1234567891"
    assert int(encode_time(micro, TIME_FORMAT_UNIX_NANO)) == int(
        encode_time(micro, TIME_FORMAT_UNIX_MICRO)
    ) * 1000


def test_time_custom_format():
    moment = datetime(2022, 10, 20, 20, 24, 50, tzinfo=timezone.utc)
    assert json.loads(encode_time(moment, "%Y-%m-%d %H:%M:%S")) == "2022-10-20 20:24:50"


@pytest.mark.parametrize("millis", [0, 250, 1500])
def test_duration_integer_and_float(millis):
    duration = timedelta(milliseconds=millis)
    assert encode_duration(duration, MS, True) == str(millis)
    assert encode_duration(duration, MS, False) == str(millis)


def test_interface_list_from_console_case():
    assert encode_interface([1, 2, 3]) == "[1,2,3]"


def test_interface_round_trip_and_html_escape():
    value = {"tag": "<a&b>", "n": [1, None, True]}
    out = encode_interface(value)
    assert json.loads(out) == value
    assert "<" not in out and "&" not in out


def test_interface_error_becomes_string():
    out = json.loads(encode_interface(float("nan")))
    assert out.startswith("marshaling error")


def test_ip_addr_from_array_case():
    assert encode_ip_addr(bytes([192, 168, 0, 10])) == '"192.168.0.10"'


def test_ip_addr_ipv6_and_mapped():
    assert json.loads(encode_ip_addr("2001:db8::1")) == "2001:db8::1"
    mapped = ipaddress.IPv6Address("::ffff:10.1.2.3")
    assert json.loads(encode_ip_addr(mapped)) == "10.1.2.3"


def test_ip_prefix():
    assert json.loads(encode_ip_prefix(ipaddress.ip_network("10.0.0.0/8"))) == "10.0.0.0/8"
    assert json.loads(encode_ip_prefix("192.168.0.10/24")) == "192.168.0.10/24"


def test_mac_addr():
    made_up = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])
    assert json.loads(encode_mac_addr(made_up)) == "02:00:00:00:00:01"
    assert encode_mac_addr("02-00-00-00-00-01") == encode_mac_addr(made_up)


def test_list_encoding():
    assert json.loads(encode_list([1, 2, 3], encode_int)) == [1, 2, 3]
    assert json.loads(encode_list([], encode_string)) == []
    assert json.loads(encode_list(["a", "b"], encode_string)) == ["a", "b"]


def test_cbor_data_url():
    payload = b"\xa1\x61\x61\x01"
    text = json.loads(encode_cbor(payload))
    prefix = "data:application/cbor;base64,"
    assert text.startswith(prefix)
    assert base64.b64decode(text[len(prefix):]) == payload


def test_decoders_pass_json_through():
    line = b'{"level":"info"}\n'
    assert decode_if_binary_to_string(line) == line.decode()
    assert decode_object_to_str(line) == line.decode()
    assert decode_if_binary_to_bytes(line) == line
    assert decode_if_binary_to_bytes(line.decode()) == line
"""Levels, global switches and the settings that shape every log line."""

from __future__ import annotations

import base64
import dataclasses
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Callable, Optional

TIME_FORMAT_UNIX = ""
"""Serialize time fields as Unix timestamp integers in seconds."""

TIME_FORMAT_UNIX_MS = "UNIXMS"
"""Serialize time fields as Unix timestamp integers in milliseconds."""

TIME_FORMAT_UNIX_MICRO = "UNIXMICRO"
"""Serialize time fields as Unix timestamp integers in microseconds."""

TIME_FORMAT_UNIX_NANO = "UNIXNANO"
"""Serialize time fields as Unix timestamp integers in nanoseconds."""

TIME_FORMAT_RFC3339 = "RFC3339"
"""Serialize time fields as RFC 3339 strings with second precision."""

TIME_FORMAT_RFC3339_NANO = "RFC3339NANO"
"""Serialize time fields as RFC 3339 strings with fractional seconds."""

CONTEXT_CALLER_SKIP_FRAME_COUNT = 2
"""Extra frames added by the hook machinery when locating a caller."""

_COLOR_RED = 31
_COLOR_GREEN = 32
_COLOR_YELLOW = 33
_COLOR_BLUE = 34


class Level(IntEnum):
    """Severity of a log event."""

    TRACE = -1
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    PANIC = 5
    NO_LEVEL = 6
    DISABLED = 7
    MOBILE = 8

    def __str__(self) -> str:
        names = {
            Level.TRACE: settings.level_trace_value,
            Level.DEBUG: settings.level_debug_value,
            Level.INFO: settings.level_info_value,
            Level.WARN: settings.level_warn_value,
            Level.ERROR: settings.level_error_value,
            Level.FATAL: settings.level_fatal_value,
            Level.PANIC: settings.level_panic_value,
            Level.MOBILE: settings.level_mobile_value,
            Level.DISABLED: "disabled",
            Level.NO_LEVEL: "",
        }
        return names[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


def parse_level(name: str) -> Level:
    """Return the level whose marshaled name matches ``name``, ignoring case.

    Numeric strings are accepted as raw level values. Raises ``ValueError``
    for anything else.
    """
    folded = name.casefold()
    for level in Level:
        if folded == settings.level_field_marshal_func(level).casefold():
            return level
    try:
        number = int(name)
    except ValueError:
        raise ValueError(
            f"Unknown Level String: '{name}', defaulting to NoLevel"
        ) from None
    if number > 127 or number < -128:
        raise ValueError("Out-Of-Bounds Level: '%s', defaulting to NoLevel" % name)
    try:
        return Level(number)
    except ValueError:
        raise ValueError(f"Unknown Level: {number}") from None


_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value // timedelta(microseconds=1) * 1000
    raise TypeError(f"unsupported type: {type(value).__name__}")


def _json_marshal(value: Any) -> str:
    """Compact JSON with sorted keys and HTML-sensitive characters escaped."""
    text = json.dumps(
        value,
        ensure_ascii=False,
        allow_nan=False,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_default,
    )
    return text.translate(_HTML_ESCAPES)


def _caller_marshal(pc: int, file: str, line: int) -> str:
    return f"{file}:{line}"


def _error_marshal(err: Optional[BaseException]) -> Any:
    return err


def _level_marshal(level: Level) -> str:
    return str(level)


def _now() -> datetime:
    return datetime.now().astimezone()


def _default_level_colors() -> dict:
    return {
        Level.TRACE: _COLOR_BLUE,
        Level.DEBUG: 0,
        Level.INFO: _COLOR_GREEN,
        Level.WARN: _COLOR_YELLOW,
        Level.ERROR: _COLOR_RED,
        Level.FATAL: _COLOR_RED,
        Level.PANIC: _COLOR_RED,
    }


def _default_formatted_levels() -> dict:
    return {
        Level.TRACE: "TRC",
        Level.DEBUG: "DBG",
        Level.INFO: "INF",
        Level.WARN: "WRN",
        Level.ERROR: "ERR",
        Level.FATAL: "FTL",
        Level.PANIC: "PNC",
    }


@dataclass
class Settings:
    """Process-wide knobs for field names, formats and marshaling."""

    timestamp_field_name: str = "time"
    level_field_name: str = "level"
    level_trace_value: str = "trace"
    level_debug_value: str = "debug"
    level_info_value: str = "info"
    level_warn_value: str = "warn"
    level_error_value: str = "error"
    level_fatal_value: str = "fatal"
    level_panic_value: str = "panic"
    level_mobile_value: str = "mobile"
    level_field_marshal_func: Callable[[Level], str] = _level_marshal
    message_field_name: str = "message"
    error_field_name: str = "error"
    caller_field_name: str = "caller"
    caller_skip_frame_count: int = 2
    caller_marshal_func: Callable[[int, str, int], str] = _caller_marshal
    error_stack_field_name: str = "stack"
    error_stack_marshaler: Optional[Callable[[BaseException], Any]] = None
    error_marshal_func: Callable[[Optional[BaseException]], Any] = _error_marshal
    interface_marshal_func: Callable[[Any], Any] = _json_marshal
    time_field_format: str = TIME_FORMAT_RFC3339
    timestamp_func: Callable[[], datetime] = _now
    duration_field_unit: timedelta = timedelta(milliseconds=1)
    duration_field_integer: bool = False
    error_handler: Optional[Callable[[BaseException], None]] = None
    default_context_logger: Any = None
    level_colors: dict = field(default_factory=_default_level_colors)
    formatted_levels: dict = field(default_factory=_default_formatted_levels)
    trigger_level_writer_buffer_reuse_limit: int = 64 * 1024


settings = Settings()

_state_lock = threading.Lock()
_global_level = Level.TRACE
_sampling_disabled = False


def set_global_level(level: Level) -> None:
    """Set the minimum level every logger honours; DISABLED silences all."""
    global _global_level
    with _state_lock:
        _global_level = Level(level)


def global_level() -> Level:
    """Return the current global minimum level."""
    with _state_lock:
        return _global_level


def disable_sampling(value: bool) -> None:
    """Turn sampling off in every logger when ``value`` is true."""
    global _sampling_disabled
    with _state_lock:
        _sampling_disabled = bool(value)


def sampling_disabled() -> bool:
    """Report whether sampling is globally disabled."""
    with _state_lock:
        return _sampling_disabled
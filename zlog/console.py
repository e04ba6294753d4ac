"""Human-friendly, optionally colorized rendering of JSON log lines."""

from __future__ import annotations

import io
import json
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .globals import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_RFC3339_NANO,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    Level,
    parse_level,
    settings,
)

COLOR_BLACK = 30
COLOR_RED = 31
COLOR_GREEN = 32
COLOR_YELLOW = 33
COLOR_BLUE = 34
COLOR_MAGENTA = 35
COLOR_CYAN = 36
COLOR_WHITE = 37
COLOR_BOLD = 1
COLOR_DARK_GRAY = 90

TIME_FORMAT_KITCHEN = "KITCHEN"
"""Render times like ``3:04PM``."""

CONSOLE_DEFAULT_TIME_FORMAT = TIME_FORMAT_KITCHEN

Formatter = Callable[[Any], str]

_UNIX_FORMATS = (
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_NANO,
)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class _Number(str):
    """A JSON number kept exactly as it was written."""


def _plain(value: Any) -> Any:
    if isinstance(value, _Number):
        text = str(value)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _sprint(value: Any) -> str:
    if value is None:
        return "%!s(<nil>)"
    if isinstance(value, bool):
        return f"%!s(bool={'true' if value else 'false'})"
    return str(value)


def _go_quote(s: str) -> str:
    specials = {
        '"': '\\"', "\\": "\\\\", "\a": "\\a", "\b": "\\b", "\f": "\\f",
        "\n": "\\n", "\r": "\\r", "\t": "\\t", "\v": "\\v",
    }
    out = []
    for ch in s:
        if ch in specials:
            out.append(specials[ch])
        elif ch.isprintable():
            out.append(ch)
        elif ord(ch) < 0x80:
            out.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    return '"' + "".join(out) + '"'


def needs_quote(s: str) -> bool:
    """Report whether ``s`` must be quoted in console output."""
    return any(ord(c) < 0x20 or ord(c) > 0x7E or c in ' \\"' for c in s)


def colorize(value: Any, color: int, disabled: bool) -> str:
    """Wrap ``value`` in an ANSI color code unless disabled, NO_COLOR or color 0."""
    if os.environ.get("NO_COLOR", "") != "" or color == 0:
        disabled = True
    if disabled:
        return _sprint(value)
    return f"\x1b[{color}m{value}\x1b[0m"


def _format_time(value: datetime, time_format: str) -> str:
    if time_format == TIME_FORMAT_KITCHEN:
        hour = value.hour % 12 or 12
        return f"{hour}:{value.minute:02d}{'PM' if value.hour >= 12 else 'AM'}"
    if time_format in (TIME_FORMAT_RFC3339, TIME_FORMAT_RFC3339_NANO):
        spec = "seconds" if time_format == TIME_FORMAT_RFC3339 else "auto"
        return value.isoformat(timespec=spec).replace("+00:00", "Z")
    return value.strftime(time_format)


def _parse_time(text: str) -> datetime:
    fmt = settings.time_field_format
    if fmt in _UNIX_FORMATS:
        raise ValueError("not a textual time format")
    if fmt in (TIME_FORMAT_RFC3339, TIME_FORMAT_RFC3339_NANO):
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    else:
        parsed = datetime.strptime(text, fmt)
    return parsed.astimezone()


def _default_parts_order() -> List[str]:
    return [
        settings.timestamp_field_name,
        settings.level_field_name,
        settings.caller_field_name,
        settings.message_field_name,
    ]


def _format_timestamp(time_format: str, no_color: bool) -> Formatter:
    time_format = time_format or CONSOLE_DEFAULT_TIME_FORMAT

    def fmt(value: Any) -> str:
        text = "<nil>"
        if isinstance(value, _Number):
            try:
                number = int(str(value))
            except ValueError:
                text = str(value)
            else:
                scale = {
                    TIME_FORMAT_UNIX_NANO: 1,
                    TIME_FORMAT_UNIX_MICRO: 1_000,
                    TIME_FORMAT_UNIX_MS: 1_000_000,
                }.get(settings.time_field_format, 1_000_000_000)
                nanos = number * scale
                moment = _EPOCH + timedelta(microseconds=nanos // 1000)
                text = _format_time(moment.astimezone(), time_format)
        elif isinstance(value, str):
            try:
                text = _format_time(_parse_time(value), time_format)
            except ValueError:
                text = value
        return colorize(text, COLOR_DARK_GRAY, no_color)

    return fmt


def _format_level(no_color: bool) -> Formatter:
    def fmt(value: Any) -> str:
        if isinstance(value, str) and not isinstance(value, _Number):
            try:
                level = parse_level(value)
            except ValueError:
                level = Level.NO_LEVEL
            short = settings.formatted_levels.get(level)
            if short is not None:
                return colorize(short, settings.level_colors.get(level, 0), no_color)
            return value.upper()[:3]
        if value is None:
            return "???"
        return _sprint(value).upper()[:3]

    return fmt


def _format_caller(no_color: bool) -> Formatter:
    def fmt(value: Any) -> str:
        text = value if isinstance(value, str) else ""
        if text:
            try:
                text = os.path.relpath(text, os.getcwd())
            except (ValueError, OSError):
                pass
            text = colorize(text, COLOR_BOLD, no_color) + colorize(" >", COLOR_CYAN, no_color)
        return text

    return fmt


def _format_message(no_color: bool, level: Any) -> Formatter:
    def fmt(value: Any) -> str:
        if value is None or value == "":
            return ""
        bold_levels = (
            settings.level_info_value,
            settings.level_warn_value,
            settings.level_error_value,
            settings.level_fatal_value,
            settings.level_panic_value,
        )
        if isinstance(level, str) and level in bold_levels:
            return colorize(_sprint(value), COLOR_BOLD, no_color)
        return _sprint(value)

    return fmt


def _format_field_name(no_color: bool) -> Formatter:
    return lambda value: colorize(f"{_sprint(value)}=", COLOR_CYAN, no_color)


def _format_field_value(value: Any) -> str:
    return _sprint(value)


def _format_err_field_value(no_color: bool) -> Formatter:
    return lambda value: colorize(
        colorize(_sprint(value), COLOR_BOLD, no_color), COLOR_RED, no_color
    )


def _default_out() -> Any:
    return sys.stdout


@dataclass
class ConsoleWriter:
    """Parses JSON log lines and writes them in a readable form to ``out``."""

    out: Any = field(default_factory=_default_out)
    no_color: bool = False
    time_format: str = CONSOLE_DEFAULT_TIME_FORMAT
    parts_order: Optional[List[str]] = None
    parts_exclude: List[str] = field(default_factory=list)
    fields_exclude: List[str] = field(default_factory=list)
    format_timestamp: Optional[Formatter] = None
    format_level: Optional[Formatter] = None
    format_caller: Optional[Formatter] = None
    format_message: Optional[Formatter] = None
    format_field_name: Optional[Formatter] = None
    format_field_value: Optional[Formatter] = None
    format_err_field_name: Optional[Formatter] = None
    format_err_field_value: Optional[Formatter] = None
    format_extra: Optional[Callable[[Dict[str, Any], io.StringIO], None]] = None
    format_prepare: Optional[Callable[[Dict[str, Any]], None]] = None

    def write(self, data: Any) -> int:
        """Render one JSON event; raises ValueError if it cannot be decoded."""
        text = data if isinstance(data, str) else bytes(data).decode("utf-8", "replace")
        decoder = json.JSONDecoder(parse_int=_Number, parse_float=_Number)
        try:
            evt, _ = decoder.raw_decode(text.lstrip())
        except ValueError as exc:
            raise ValueError(f"cannot decode event: {exc}") from None
        if not isinstance(evt, dict):
            raise ValueError("cannot decode event: not a JSON object")
        if self.format_prepare is not None:
            self.format_prepare(evt)
        buf = io.StringIO()
        for part in self.parts_order if self.parts_order is not None else _default_parts_order():
            self._write_part(buf, evt, part)
        self._write_fields(evt, buf)
        if self.format_extra is not None:
            self.format_extra(evt, buf)
        buf.write("\n")
        rendered = buf.getvalue()
        if isinstance(self.out, io.TextIOBase):
            self.out.write(rendered)
        else:
            self.out.write(rendered.encode("utf-8"))
        return len(data)

    def close(self) -> None:
        """Close ``out`` if it can be closed."""
        closer = getattr(self.out, "close", None)
        if callable(closer):
            closer()

    def _write_fields(self, evt: Dict[str, Any], buf: io.StringIO) -> None:
        skipped = {
            settings.level_field_name,
            settings.timestamp_field_name,
            settings.message_field_name,
            settings.caller_field_name,
        }
        names = sorted(
            name for name in evt if name not in self.fields_exclude and name not in skipped
        )
        if buf.tell() > 0 and names:
            buf.write(" ")
        error_name = settings.error_field_name
        if error_name in names:
            names.remove(error_name)
            names.insert(0, error_name)
        rendered = []
        for name in names:
            if name == error_name:
                fn = self.format_err_field_name or _format_field_name(self.no_color)
                fv = self.format_err_field_value or _format_err_field_value(self.no_color)
            else:
                fn = self.format_field_name or _format_field_name(self.no_color)
                fv = self.format_field_value or _format_field_value
            value = evt[name]
            if isinstance(value, _Number):
                shown = fv(value)
            elif isinstance(value, str):
                shown = fv(_go_quote(value) if needs_quote(value) else value)
            else:
                try:
                    marshaled = settings.interface_marshal_func(_plain(value))
                except Exception as exc:
                    shown = colorize(f"[error: {exc}]", COLOR_RED, self.no_color)
                else:
                    if isinstance(marshaled, (bytes, bytearray)):
                        marshaled = bytes(marshaled).decode("utf-8", "replace")
                    shown = fv(marshaled)
            rendered.append(fn(name) + shown)
        buf.write(" ".join(rendered))

    def _write_part(self, buf: io.StringIO, evt: Dict[str, Any], part: str) -> None:
        if part in self.parts_exclude:
            return
        if part == settings.level_field_name:
            f = self.format_level or _format_level(self.no_color)
        elif part == settings.timestamp_field_name:
            f = self.format_timestamp or _format_timestamp(self.time_format, self.no_color)
        elif part == settings.message_field_name:
            f = self.format_message or _format_message(
                self.no_color, evt.get(settings.level_field_name)
            )
        elif part == settings.caller_field_name:
            f = self.format_caller or _format_caller(self.no_color)
        else:
            f = self.format_field_value or _format_field_value
        text = f(evt.get(part))
        if text:
            if buf.tell() > 0:
                buf.write(" ")
            buf.write(text)


def new_console_writer(*args: Callable[[ConsoleWriter], Any]) -> ConsoleWriter:
    """Create a console writer on stdout, then apply each option to it."""
    writer = ConsoleWriter(parts_order=_default_parts_order())
    for option in args:
        option(writer)
    return writer
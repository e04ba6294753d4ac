# zlog

Structured logging that writes one JSON object per line. You build each
object with chainable, typed field methods.

## Events

`zlog.event.Event` collects fields and writes them when it is finished with
`msg`, `msgf`, `msg_func` or `send`. You construct it with a writer and a level:

```python
import sys
from zlog.event import Event
from zlog.globals import Level

Event(sys.stdout, Level.INFO).str("user", "alice").int("attempts", 3).msg("login")
# {"user":"alice","attempts":3,"message":"login"}
```

The writer can be any of the following:

- a text stream;
- an object whose `write` takes bytes;
- an object with `write_level(level, data)`.

An event at `Level.DISABLED`, or one you have called `discard()` on, writes
nothing. Every field method on it does nothing.

### Fields

Field methods include:

- `str`, `strs`, `bytes`, `hex`
- `bool`, `int`, `uint`, `float`, `float32` and their list forms
- `time`, `times`, `dur`, `durs`, `time_diff`, `timestamp`
- `ip_addr`, `ip_prefix`, `mac_addr`
- `raw_json`, `raw_cbor`
- `interface` / `any`, `type`
- `caller`

For a mapping, or for a list of alternating keys and values, use
`fields(...)`.

### Nested data and errors

There are two ways to add nested data:

- Build a nested object with `zlog.event.dict_event()` and add it with `Event.dict`.
- Build an array with `zlog.array.arr()` and add it with `Event.array`.

Objects with a `marshal_zerolog_object(event)` method can be added with
`object` or `embed_object`.

Errors go in with `err`, `an_err` and `errs`. Once you have called `stack()`,
`err` also records a stack, provided `settings.error_stack_marshaler` is set.

If writing an event fails, the failure goes to `settings.error_handler`. When
no handler is set, it is printed on stderr.

For events at `Level.MOBILE`, `zlog.event.sms_sender` is called if it is set.
It gets the destination from `SMS_DESTINATION` and the log line.

### Settings

`zlog.globals` holds the shared configuration in `settings`, an instance of
`Settings`. It covers:

- field names;
- the time format (`TIME_FORMAT_RFC3339`, the `TIME_FORMAT_UNIX*` constants, or a strftime pattern);
- the duration unit;
- the marshal functions.

Other helpers in the same module:

- `parse_level("info")` returns a `Level`.
- `set_global_level` and `global_level` store and read a process-wide level.
- `disable_sampling` and `sampling_disabled` store and read a process-wide switch.

## Console output

`zlog.console.ConsoleWriter` takes JSON log lines and writes them in a
readable, optionally coloured form:

```python
from zlog.console import ConsoleWriter

w = ConsoleWriter(no_color=True)
w.write(b'{"level":"info","message":"Hello World","foo":"bar"}')
# <nil> INF Hello World foo=bar
```

You can shape the output in these ways:

- `no_color` turns colour off. Colour is also off when `NO_COLOR` is set.
- `time_format` takes `TIME_FORMAT_KITCHEN` (the default), an RFC 3339 constant, or a strftime pattern.
- `parts_order`, `parts_exclude` and `fields_exclude` choose what is shown and in what order.
- The `format_*` hooks replace individual formatters.

The remaining fields are printed sorted by name, with `error` first.
`new_console_writer(*options)` creates a writer on stdout and then applies
each option function to it.

A `ConsoleWriter` can also serve as the writer of an `Event`.

## Non-blocking writes

`zlog.diode.DiodeWriter` wraps any writer with a ring buffer that a background
thread drains. Writes never block. When the consumer falls behind, older lines
are dropped and the alert callback is told how many were lost.

The drain mode depends on the poll interval:

- With a positive poll interval (seconds), the thread polls.
- Otherwise it sleeps until a write wakes it.

On exit, the context manager drains pending lines and closes the wrapped
writer:

```python
from zlog.diode import DiodeWriter

with open("app.log", "wb") as out, DiodeWriter(out, 1000, 0, lambda missed: print(f"Dropped {missed}")) as w:
    w.write(b'{"level":"info","message":"hi"}\n')
```

The building blocks can also be used directly:

- the ring buffers `OneToOne` and `ManyToOne` in `zlog.diodes`;
- the blocking readers `Poller` and `Waiter` in `zlog.polling`.

## HTTP response proxies

`zlog.writer_proxy.wrap_writer` wraps a response writer. The wrapped object
needs `write` and `write_header`. The proxy records `status` and
`bytes_written`, and can `tee` the body to another writer.

Writers that also offer `flush` get a `FlushWriter`. Writers that also offer
`close_notify`, `hijack` and `read_from` get a `FancyWriter`.

## Command line

`prettylog` renders JSON log lines with `ConsoleWriter`. It reads from a pipe,
or from the files given as arguments:

```
my_app 2>&1 | prettylog
prettylog output.jsonl
```

## What this package does not include

- There is no logger object. Nothing creates events per level, adds context
  fields to every line, runs hooks or samples. Events are built directly from
  a writer and a level, and the level is not written as a field unless you add
  it.
- There is no HTTP middleware that puts a logger into requests. Only the
  response proxies are provided.
- Output is JSON only; there is no binary encoding.

## Tests

```
pip install -e .[test]
pytest
```
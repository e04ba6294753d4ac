"""Ring buffers that never block writers and drop data when the reader lags."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Tuple

Alerter = Callable[[int], Any]
"""Called with the number of values that were overwritten before being read."""

_log = logging.getLogger(__name__)


class Diode(Protocol):
    """Anything that stores values without blocking and hands them out in order."""

    def set(self, data: Any) -> None: ...

    def try_next(self) -> Tuple[Any, bool]: ...


@dataclass(frozen=True)
class _Bucket:
    data: Any
    seq: int


def _ignore_alert(missed: int) -> None:
    return None


class _Ring:
    """Shared storage and read logic of the diodes."""

    def __init__(self, size: int, alerter: Optional[Alerter]) -> None:
        if size <= 0:
            raise ValueError(f"diode size must be positive, got {size}")
        self._buffer: List[Optional[_Bucket]] = [None] * size
        self._alerter: Alerter = alerter if alerter is not None else _ignore_alert
        self._lock = threading.Lock()
        self._read_index = 0

    def __len__(self) -> int:
        return len(self._buffer)

    def _take_next(self) -> Tuple[Any, bool]:
        idx = self._read_index % len(self._buffer)
        with self._lock:
            result = self._buffer[idx]
            self._buffer[idx] = None

        # Nothing written here yet.
        if result is None:
            return None, False

        # A stale value from an earlier lap that was already skipped over.
        if result.seq < self._read_index:
            return None, False

        # The writer lapped the reader: fast forward to the value found.
        if result.seq > self._read_index:
            dropped = result.seq - self._read_index
            self._read_index = result.seq
            self._alerter(dropped)

        self._read_index += 1
        return result.data, True


class OneToOne(_Ring):
    """A diode for a single writer and a single reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        self._write_index = 0

    def set(self, data: Any) -> None:
        """Store ``data`` in the next slot, overwriting whatever was there."""
        idx = self._write_index % len(self._buffer)
        bucket = _Bucket(data, self._write_index)
        self._write_index += 1
        with self._lock:
            self._buffer[idx] = bucket

    def try_next(self) -> Tuple[Any, bool]:
        """Return ``(data, True)`` for the next value, or ``(None, False)``.

        When the writer has lapped the reader, the reader skips ahead to the
        value found and the alerter is told how many values were lost.
        """
        return self._take_next()


class ManyToOne(_Ring):
    """A diode for many concurrent writers and a single reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        # One before zero, so the first write lands on index 0.
        self._write_index = -1

    def set(self, data: Any) -> None:
        """Store ``data`` in the next slot; safe to call from many threads."""
        size = len(self._buffer)
        while True:
            with self._lock:
                self._write_index += 1
                write_index = self._write_index
                idx = write_index % size
                old = self._buffer[idx]
                if (
                    old is not None
                    and write_index >= size
                    and old.seq > write_index - size
                ):
                    collided = True
                else:
                    collided = False
                    self._buffer[idx] = _Bucket(data, write_index)
            if collided:
                _log.warning("Diode set collision: consider using a larger diode")
                continue
            return

    def try_next(self) -> Tuple[Any, bool]:
        """Return ``(data, True)`` for the next value, or ``(None, False)``.

        When the writers have lapped the reader, the reader skips ahead to the
        value found and the alerter is told how many values were lost.
        """
        return self._take_next()
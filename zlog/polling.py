"""Blocking readers on top of diodes: one polls, one waits to be woken."""

from __future__ import annotations

import threading
import time
from typing import Any, Optional, Tuple

from .diodes import Diode

DEFAULT_POLLING_INTERVAL = 0.01
"""Seconds between two polls of an empty diode."""


class Poller:
    """Polls a diode until a value is available or ``done`` is set."""

    def __init__(
        self,
        diode: Diode,
        interval: float = DEFAULT_POLLING_INTERVAL,
        done: Optional[threading.Event] = None,
    ) -> None:
        self._diode = diode
        self._interval = interval
        self._done = done if done is not None else threading.Event()

    def set(self, data: Any) -> None:
        self._diode.set(data)

    def try_next(self) -> Tuple[Any, bool]:
        return self._diode.try_next()

    def next(self) -> Any:
        """Return the next value, or None once ``done`` is set and none is left."""
        while True:
            data, ok = self._diode.try_next()
            if ok:
                return data
            if self._done.is_set():
                return None
            time.sleep(self._interval)


class Waiter:
    """Wakes the reader whenever a value is set or ``done`` is set."""

    def __init__(self, diode: Diode, done: Optional[threading.Event] = None) -> None:
        self._diode = diode
        self._cond = threading.Condition()
        self._done = done if done is not None else threading.Event()
        threading.Thread(target=self._wake_when_done, daemon=True).start()

    def _wake_when_done(self) -> None:
        self._done.wait()
        with self._cond:
            self._cond.notify_all()

    def set(self, data: Any) -> None:
        """Store ``data`` and wake any waiting reader."""
        self._diode.set(data)
        with self._cond:
            self._cond.notify_all()

    def try_next(self) -> Tuple[Any, bool]:
        return self._diode.try_next()

    def next(self) -> Any:
        """Return the next value, or None once ``done`` is set and none is left."""
        with self._cond:
            while True:
                data, ok = self._diode.try_next()
                if ok:
                    return data
                if self._done.is_set():
                    return None
                self._cond.wait()
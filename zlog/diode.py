"""A writer wrapper that never blocks the logger and drops lines it cannot keep."""

from __future__ import annotations

import io
import threading
from typing import Any, Optional, Union

from .diodes import Alerter, ManyToOne
from .polling import Poller, Waiter


class DiodeWriter:
    """Hands writes to a background thread through a many-to-one diode.

    Writes never block; when ``writer`` cannot keep up, older lines are
    dropped and ``alerter`` is called with how many were lost. With a
    positive ``poll_interval`` (seconds) the thread polls, otherwise it
    sleeps until woken by a write.
    """

    def __init__(
        self,
        writer: Any,
        size: int,
        poll_interval: float = 0.0,
        alerter: Optional[Alerter] = None,
    ) -> None:
        self._writer = writer
        self._done = threading.Event()
        diode = ManyToOne(size, alerter)
        self._diode: Union[Poller, Waiter]
        if poll_interval > 0:
            self._diode = Poller(diode, interval=poll_interval, done=self._done)
        else:
            self._diode = Waiter(diode, done=self._done)
        self._thread = threading.Thread(target=self._poll, name="diode-writer", daemon=True)
        self._thread.start()

    def write(self, data: Any) -> int:
        """Queue a copy of ``data`` and return its length."""
        copy = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self._diode.set(copy)
        return len(copy)

    def close(self) -> None:
        """Stop the background thread after it drains, then close ``writer``."""
        self._done.set()
        self._thread.join()
        closer = getattr(self._writer, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> DiodeWriter:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _poll(self) -> None:
        while True:
            data = self._diode.next()
            if data is None:
                return
            try:
                if isinstance(self._writer, io.TextIOBase):
                    self._writer.write(data.decode("utf-8", "replace"))
                else:
                    self._writer.write(data)
            except Exception:
                # Write failures are not reported, as with any dropped line.
                pass
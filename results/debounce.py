from __future__ import annotations
import threading
from typing import Any, Callable, Optional

from .constants import DEBOUNCE_SECONDS


class Debouncer:
    """
    Trailing-edge debounce: each call restarts the window, only the last
    arguments reach `fn`, once, after `wait` seconds of quiet.
    """

    def __init__(self, fn: Callable[..., Any], wait: float = DEBOUNCE_SECONDS):
        self.fn = fn
        self.wait = wait
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending = None
        # bumped on every call/flush/cancel; a timer only fires for its own generation
        self._generation = 0

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self.wait, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            pending, self._pending = self._pending, None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self.fn(*args, **kwargs)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def flush(self) -> None:
        """Run the pending call now, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            generation = self._generation
        self._fire(generation)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._generation += 1

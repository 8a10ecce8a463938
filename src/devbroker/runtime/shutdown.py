from __future__ import annotations

import atexit
import logging
import threading
from typing import Callable, List, Protocol, Sequence

logger = logging.getLogger(__name__)


class CancellationToken(Protocol):
    def cancel(self) -> None:
        ...


class ShutdownNotifier(Protocol):
    """Something that calls back once when its owner terminates."""

    def register(self, callback: Callable[[], None]) -> CancellationToken:
        ...


class _Registration:
    """One callback registration; firing and cancelling are mutually exclusive."""

    def __init__(self, callback: Callable[[], None], on_cancel: Callable[["_Registration"], None]) -> None:
        self._callback = callback
        self._on_cancel = on_cancel
        self._lock = threading.Lock()
        self._done = False

    @property
    def active(self) -> bool:
        return not self._done

    def __call__(self) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        self._callback()

    def cancel(self) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        self._on_cancel(self)


class ProcessExitNotifier:
    """Runs callbacks when the interpreter exits (``atexit``)."""

    def register(self, callback: Callable[[], None]) -> CancellationToken:
        # Unregistering can happen while atexit is already running callbacks; a
        # cancelled registration ignores any later call, so it never runs twice.
        registration = _Registration(callback, atexit.unregister)
        atexit.register(registration)
        return registration


class CloseTaskNotifier:
    """Close tasks of an execution context that can be discarded before the process exits.

    ``close`` runs outstanding tasks once, most recent first. Registering after close
    runs nothing and returns an already-spent token.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: List[_Registration] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, callback: Callable[[], None]) -> CancellationToken:
        registration = _Registration(callback, self._forget)
        with self._lock:
            closed = self._closed
            if not closed:
                self._tasks.append(registration)
        if closed:
            registration.cancel()
        return registration

    def pending(self) -> int:
        with self._lock:
            return sum(1 for task in self._tasks if task.active)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            tasks = list(reversed(self._tasks))
            self._tasks.clear()

        for task in tasks:
            try:
                task()
            except Exception:
                logger.exception("Close task failed")

    def _forget(self, registration: _Registration) -> None:
        with self._lock:
            if registration in self._tasks:
                self._tasks.remove(registration)


class ShutdownHook:
    """Teardown callback registered with every available termination notifier.

    Whichever notifier fires first runs ``teardown`` and cancels the registrations on
    the other notifiers, so teardown runs at most once per hook.
    """

    def __init__(self, teardown: Callable[[], None]) -> None:
        self._teardown = teardown
        self._lock = threading.Lock()
        self._tokens: List[CancellationToken] = []
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def arm(self, notifiers: Sequence[ShutdownNotifier]) -> None:
        tokens = [notifier.register(self) for notifier in notifiers]
        with self._lock:
            self._tokens.extend(tokens)

    def disarm(self) -> None:
        """Deregister from every notifier without running teardown."""
        with self._lock:
            tokens, self._tokens = self._tokens, []
        for token in tokens:
            token.cancel()

    def __call__(self) -> None:
        with self._lock:
            if self._fired:
                return
            self._fired = True
            tokens, self._tokens = self._tokens, []
        for token in tokens:
            token.cancel()
        self._teardown()

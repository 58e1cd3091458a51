"""Minimal synchronous multicast primitive backing every state stream.

A :class:`StateSubject` holds the latest value, replays it to each new
subscriber during ``subscribe`` and then fans out every later value in the
order it was set. :class:`Stream` is the read-only view handed to callers;
``map`` and ``distinct_until_changed`` build derived views on top of it.

Values set from inside an observer callback are queued and delivered once
the current fan-out finishes, so every observer sees values in set order.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pystateful.exceptions import StateCompletedError

_logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

_MISSING: Any = object()
_COMPLETE: Any = object()


@dataclass(slots=True, eq=False)
class _Observer(Generic[T]):
    """A subscriber registered on a subject.

    ``since`` is the sequence number of the value replayed at subscribe time;
    queued values at or below it were already seen.
    """

    on_next: Callable[[T], None]
    on_complete: Callable[[], None] | None = None
    since: int = 0
    active: bool = True


def _call_quietly(callback: Callable[..., None], *args: Any) -> None:
    try:
        callback(*args)
    except Exception:
        _logger.warning("State observer callback failed", exc_info=True)


class Subscription:
    """Handle returned by :meth:`Stream.subscribe`.

    Usable as a context manager; leaving the block unsubscribes.
    """

    def __init__(self, unsubscribe: Callable[[], None] | None = None) -> None:
        self._unsubscribe = unsubscribe
        self._closed = unsubscribe is None

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unsubscribe()


class Stream(Generic[T]):
    """Read-only, shareable view over a subject."""

    def __init__(self, subscribe: Callable[[_Observer[T]], Subscription]) -> None:
        self._subscribe = subscribe

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None = None,
    ) -> Subscription:
        """Subscribe to the stream.

        ``on_next`` is called with the current value before this method
        returns, then with every later value. ``on_complete`` is called once
        when the owning container completes.
        """
        return self._subscribe(_Observer(on_next, on_complete))

    def map(self, fn: Callable[[T], U]) -> Stream[U]:
        """Derive a stream that applies ``fn`` to every value."""

        def subscribe(observer: _Observer[U]) -> Subscription:
            return self._subscribe(
                _Observer(lambda value: observer.on_next(fn(value)), observer.on_complete)
            )

        return Stream(subscribe)

    def distinct_until_changed(
        self,
        comparer: Callable[[T, T], bool] | None = None,
    ) -> Stream[T]:
        """Derive a stream that drops values equal to the last one emitted.

        Only the most recent emitted value is compared; ``comparer`` defaults
        to ``==``.
        """
        same = comparer or (lambda a, b: a == b)

        def subscribe(observer: _Observer[T]) -> Subscription:
            last = _MISSING

            def on_next(value: T) -> None:
                nonlocal last
                if last is not _MISSING and same(last, value):
                    return
                last = value
                observer.on_next(value)

            return self._subscribe(_Observer(on_next, observer.on_complete))

        return Stream(subscribe)


class StateSubject(Generic[T]):
    """Holds the current value and multicasts changes to observers."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._seq = 0
        self._observers: list[_Observer[T]] = []
        self._pending: deque[tuple[int, Any]] = deque()
        self._emitting = False
        self._completed = False

    @property
    def value(self) -> T:
        return self._value

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def next(self, value: T) -> None:
        """Make ``value`` current and publish it."""
        if self._completed:
            raise StateCompletedError("Cannot publish a value after the state stream was completed")
        self._value = value
        self._seq += 1
        self._pending.append((self._seq, value))
        self._drain()

    def complete(self) -> None:
        """Stop publishing and notify observers. Idempotent."""
        if self._completed:
            return
        self._completed = True
        self._pending.append((self._seq, _COMPLETE))
        self._drain()

    def subscribe(self, observer: _Observer[T]) -> Subscription:
        if self._completed:
            if observer.on_complete is not None:
                _call_quietly(observer.on_complete)
            return Subscription()

        observer.since = self._seq
        self._observers.append(observer)

        def unsubscribe() -> None:
            observer.active = False
            if observer in self._observers:
                self._observers.remove(observer)

        subscription = Subscription(unsubscribe)
        _call_quietly(observer.on_next, self._value)
        return subscription

    def stream(self) -> Stream[T]:
        return Stream(self.subscribe)

    def _drain(self) -> None:
        if self._emitting:
            return
        self._emitting = True
        try:
            while self._pending:
                seq, item = self._pending.popleft()
                if item is _COMPLETE:
                    self._finish()
                    continue
                for observer in tuple(self._observers):
                    if observer.active and seq > observer.since:
                        _call_quietly(observer.on_next, item)
        finally:
            self._emitting = False

    def _finish(self) -> None:
        observers, self._observers = self._observers, []
        for observer in observers:
            if not observer.active:
                continue
            observer.active = False
            if observer.on_complete is not None:
                _call_quietly(observer.on_complete)

"""Reactive single-value state container."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from pystateful._stream import StateSubject, Stream

_logger = logging.getLogger(__name__)

TState = TypeVar("TState")
TValue = TypeVar("TValue")


def is_record(value: Any) -> bool:
    """Return ``True`` for values usable as a state record."""
    return isinstance(value, (Mapping, BaseModel))


def merge_state(state: TState, partial: Mapping[str, Any]) -> TState:
    """Shallow merge: keys in ``partial`` overwrite fields of ``state``.

    Pydantic models are re-validated, so a wrongly typed field raises
    ``pydantic.ValidationError`` before anything is published. Mappings are
    rebuilt as a new mapping of the same type where possible.
    """
    if not partial:
        return state
    if isinstance(state, BaseModel):
        return type(state).model_validate({**state.model_dump(), **partial})
    merged = {**state, **partial}  # type: ignore[dict-item]
    if type(state) is dict:
        return merged  # type: ignore[return-value]
    try:
        return type(state)(merged)  # type: ignore[call-arg]
    except TypeError:
        return merged  # type: ignore[return-value]


def read_field(state: Any, name: str) -> Any:
    """Read one field, by key for mappings and by attribute for models."""
    if isinstance(state, BaseModel):
        return getattr(state, name)
    return state[name]


class Stateful(Generic[TState]):
    """Owns one state value and publishes every change to observers.

    Every mutation (``patch``, ``reset``) funnels through :meth:`set`, and
    :meth:`set` is the only place a value is published. An optional
    ``write_through`` callback runs after each publish attempt with the
    resulting snapshot, however the publish exits; it is how
    :class:`~pystateful.storage_stateful.StorageStateful` persists changes.

    Usage::

        state = Stateful({"name": "Example"})
        state.select("name").subscribe(print)   # prints "Example"
        state.patch(name="Other")                # prints "Other"
        state.complete()
    """

    def __init__(
        self,
        default_state: TState,
        *,
        write_through: Callable[[TState], None] | None = None,
    ) -> None:
        self._default_state = default_state
        self._write_through = write_through
        self._subject: StateSubject[TState] = StateSubject(default_state)

    @property
    def state(self) -> Stream[TState]:
        """Stream of state changes, starting with the current value."""
        return self._subject.stream()

    @property
    def completed(self) -> bool:
        return self._subject.completed

    def observe(self) -> Stream[TState]:
        return self.state

    def complete(self) -> None:
        """Stop the emission of state changes."""
        if not self._subject.completed:
            _logger.debug("Completing state stream (observers=%d)", self._subject.observer_count)
        self._subject.complete()

    def default(self) -> TState:
        """The state used by :meth:`reset`."""
        return self._default_state

    def patch(self, partial: Mapping[str, Any] | None = None, /, **fields: Any) -> None:
        """Overwrite some fields of the current state in a single publish."""
        update: dict[str, Any] = dict(partial or {})
        update.update(fields)
        self.set(merge_state(self.snapshot(), update))

    def reset(self, default_state: TState | None = None) -> None:
        """Reset to the default state, optionally replacing the default first."""
        if default_state is not None:
            self._default_state = default_state
        self.set(self._default_state)

    def select(self, name: str) -> Stream[Any]:
        """Stream one field of the state, skipping repeats."""
        return self.selector(lambda state: read_field(state, name))

    def selector(self, selector: Callable[[TState], TValue]) -> Stream[TValue]:
        """Stream a value projected from the state, skipping repeats."""
        return self._subject.stream().map(selector).distinct_until_changed()

    def set(self, state: TState) -> None:
        """Replace the state and publish it.

        Raises
        ------
        StateCompletedError
            If :meth:`complete` was already called.
        """
        if self._write_through is None:
            self._subject.next(state)
            return
        try:
            self._subject.next(state)
        finally:
            self._write_through(self._subject.value)

    def snapshot(self) -> TState:
        """The current state."""
        return self._subject.value

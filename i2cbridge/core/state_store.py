"""State store interfaces and the in-process store used by the runner."""

from __future__ import annotations

import fnmatch
from collections.abc import Callable
from typing import Any, Protocol

from i2cbridge.core.model import StateValue

ChangeCallback = Callable[[str, "StateValue | None"], None]


class StateStore(Protocol):
    namespace: str

    def get_states(self, pattern: str) -> dict[str, StateValue]:
        """Return states whose full id matches a namespace-relative glob."""

    def set_state(self, state_id: str, value: Any, *, ack: bool) -> None:
        """Write a namespace-relative state."""

    def extend_object(self, object_id: str, obj: dict[str, Any]) -> None:
        """Create or merge object metadata for a namespace-relative id."""

    def get_object(self, object_id: str) -> dict[str, Any] | None:
        """Look up object metadata by full id."""

    def subscribe_states(self, pattern: str) -> None:
        ...

    def subscribe_foreign_states(self, state_id: str) -> None:
        ...

    def unsubscribe_foreign_states(self, state_id: str) -> None:
        ...

    def add_change_listener(self, callback: ChangeCallback) -> None:
        ...


class InMemoryStateStore:
    """Process-local store with glob subscriptions and synchronous notifications."""

    def __init__(self, namespace: str = "i2c.0") -> None:
        self.namespace = namespace
        self.states: dict[str, StateValue] = {}
        self.objects: dict[str, dict[str, Any]] = {}
        self._patterns: set[str] = set()
        self._foreign: set[str] = set()
        self._listeners: list[ChangeCallback] = []

    def full_id(self, state_id: str) -> str:
        return f"{self.namespace}.{state_id}"

    def get_states(self, pattern: str) -> dict[str, StateValue]:
        full_pattern = self.full_id(pattern)
        return {k: v for k, v in self.states.items() if fnmatch.fnmatchcase(k, full_pattern)}

    def set_state(self, state_id: str, value: Any, *, ack: bool) -> None:
        self.set_foreign_state(self.full_id(state_id), value, ack=ack)

    def set_foreign_state(self, full_id: str, value: Any, *, ack: bool) -> None:
        state = StateValue(val=value, ack=ack)
        self.states[full_id] = state
        if self._is_subscribed(full_id):
            self._notify(full_id, state)

    def delete_state(self, full_id: str) -> None:
        self.states.pop(full_id, None)
        if self._is_subscribed(full_id):
            self._notify(full_id, None)

    def extend_object(self, object_id: str, obj: dict[str, Any]) -> None:
        full_id = self.full_id(object_id)
        existing = self.objects.setdefault(full_id, {})
        for key, value in obj.items():
            if isinstance(value, dict) and isinstance(existing.get(key), dict):
                existing[key].update(value)
            else:
                existing[key] = value

    def set_foreign_object(self, full_id: str, obj: dict[str, Any]) -> None:
        self.objects[full_id] = dict(obj)

    def get_object(self, object_id: str) -> dict[str, Any] | None:
        return self.objects.get(object_id)

    def subscribe_states(self, pattern: str) -> None:
        self._patterns.add(self.full_id(pattern))

    def subscribe_foreign_states(self, state_id: str) -> None:
        self._foreign.add(state_id)

    def unsubscribe_foreign_states(self, state_id: str) -> None:
        self._foreign.discard(state_id)

    def add_change_listener(self, callback: ChangeCallback) -> None:
        self._listeners.append(callback)

    def _is_subscribed(self, full_id: str) -> bool:
        if full_id in self._foreign:
            return True
        return any(fnmatch.fnmatchcase(full_id, p) for p in self._patterns)

    def _notify(self, full_id: str, state: StateValue | None) -> None:
        for callback in list(self._listeners):
            callback(full_id, state)

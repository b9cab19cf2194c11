"""Acknowledged-value cache and change-notification routing."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from i2cbridge.core.errors import StateStoreError
from i2cbridge.core.model import DispatchOutcome, StateValue
from i2cbridge.core.state_store import StateStore

LocalListener = Callable[[Any, Any], None]
ForeignListener = Callable[[Any], None]
LOGGER = logging.getLogger(__name__)


class StateSync:
    """Sole writer of the acknowledged-value cache.

    Handlers address states by namespace-relative id (``"0x20.3"``); the store
    notifies with full ids (``"i2c.0.0x20.3"``). Foreign ids are always full.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self.namespace = store.namespace
        self._local_listeners: dict[str, LocalListener] = {}
        self._foreign_listeners: dict[str, ForeignListener] = {}
        self._values: dict[str, Any] = {}

    def full_id(self, state_id: str) -> str:
        return f"{self.namespace}.{state_id}"

    def load_acknowledged(self) -> int:
        """Seed the cache with every acknowledged state under the namespace."""
        try:
            states = self.store.get_states("*")
        except Exception as exc:
            raise StateStoreError(f"Could not query acknowledged states: {exc}") from exc
        loaded = 0
        for full_id, state in states.items():
            if state is not None and state.ack:
                self._values[full_id] = state.val
                loaded += 1
        LOGGER.debug("Seeded %d acknowledged value(s)", loaded)
        return loaded

    def set_acknowledged(self, state_id: str, value: Any) -> None:
        try:
            self.store.set_state(state_id, value, ack=True)
        except Exception as exc:
            raise StateStoreError(f"Could not acknowledge {state_id}={value!r}: {exc}") from exc
        self._values[self.full_id(state_id)] = value

    def get_cached_value(self, state_id: str) -> Any:
        return self._values.get(self.full_id(state_id))

    def register_local_change_listener(self, state_id: str, callback: LocalListener) -> None:
        self._local_listeners[self.full_id(state_id)] = callback

    def remove_local_change_listener(self, state_id: str) -> None:
        self._local_listeners.pop(self.full_id(state_id), None)

    def register_foreign_change_listener(self, external_id: str, callback: ForeignListener) -> None:
        self._foreign_listeners[external_id] = callback

    def remove_foreign_change_listener(self, external_id: str, callback: ForeignListener) -> bool:
        """Remove ``callback`` if it is still the listener for ``external_id``.

        Several handlers can share one interrupt line; a handler that was
        replaced by a later registration must not remove its successor.
        """
        if self._foreign_listeners.get(external_id) != callback:
            return False
        del self._foreign_listeners[external_id]
        return True

    def has_foreign_change_listener(self, external_id: str) -> bool:
        return external_id in self._foreign_listeners

    def route(self, full_id: str, state: StateValue | None) -> DispatchOutcome:
        if state is None:
            return DispatchOutcome.DELETED
        if full_id in self._foreign_listeners:
            return DispatchOutcome.FOREIGN
        if state.ack:
            return DispatchOutcome.ACK_ECHO
        if full_id not in self._local_listeners:
            return DispatchOutcome.UNSUPPORTED
        return DispatchOutcome.LOCAL

    def on_state_change(self, full_id: str, state: StateValue | None) -> DispatchOutcome:
        outcome = self.route(full_id, state)
        if outcome is DispatchOutcome.FOREIGN:
            self._foreign_listeners[full_id](state.val)
        elif outcome is DispatchOutcome.LOCAL:
            LOGGER.debug("stateChange %s %r", full_id, state)
            self._local_listeners[full_id](self._values.get(full_id), state.val)
        elif outcome is DispatchOutcome.UNSUPPORTED:
            LOGGER.error("Unsupported state change: %s", full_id)
        return outcome

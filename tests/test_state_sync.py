from __future__ import annotations

import logging

import pytest

from i2cbridge.core.errors import StateStoreError
from i2cbridge.core.hexutil import parse_int, to_hex_string
from i2cbridge.core.model import DispatchOutcome, StateValue
from i2cbridge.core.state_store import InMemoryStateStore
from i2cbridge.core.state_sync import StateSync


class BrokenStore(InMemoryStateStore):
    def set_state(self, state_id, value, *, ack):
        raise ConnectionError("store offline")


def _sync() -> StateSync:
    return StateSync(InMemoryStateStore("i2c.0"))


def test_set_acknowledged_updates_store_and_cache() -> None:
    sync = _sync()
    sync.set_acknowledged("0x20.1", True)
    assert sync.store.states["i2c.0.0x20.1"] == StateValue(val=True, ack=True)
    assert sync.get_cached_value("0x20.1") is True


def test_set_acknowledged_surfaces_store_failure() -> None:
    sync = StateSync(BrokenStore("i2c.0"))
    with pytest.raises(StateStoreError):
        sync.set_acknowledged("0x20.1", True)
    assert sync.get_cached_value("0x20.1") is None


def test_load_acknowledged_skips_requested_values() -> None:
    store = InMemoryStateStore("i2c.0")
    store.states["i2c.0.0x20.0"] = StateValue(val=True, ack=True)
    store.states["i2c.0.0x20.1"] = StateValue(val=True, ack=False)
    store.states["other.0.x"] = StateValue(val=1, ack=True)
    sync = StateSync(store)

    assert sync.load_acknowledged() == 1
    assert sync.get_cached_value("0x20.0") is True
    assert sync.get_cached_value("0x20.1") is None


def test_local_change_gets_old_and_new_value() -> None:
    sync = _sync()
    sync.set_acknowledged("0x20.3", False)
    calls: list[tuple[object, object]] = []
    sync.register_local_change_listener("0x20.3", lambda old, new: calls.append((old, new)))

    outcome = sync.on_state_change("i2c.0.0x20.3", StateValue(val=True, ack=False))

    assert outcome is DispatchOutcome.LOCAL
    assert calls == [(False, True)]


def test_reregistering_replaces_listener() -> None:
    sync = _sync()
    first: list[object] = []
    second: list[object] = []
    sync.register_local_change_listener("0x20.3", lambda old, new: first.append(new))
    sync.register_local_change_listener("0x20.3", lambda old, new: second.append(new))

    sync.on_state_change("i2c.0.0x20.3", StateValue(val=True))

    assert first == []
    assert second == [True]


def test_foreign_dispatch_wins_even_for_acknowledged_values() -> None:
    sync = _sync()
    seen: list[object] = []
    sync.register_foreign_change_listener("gpio.0.17", seen.append)

    outcome = sync.on_state_change("gpio.0.17", StateValue(val=True, ack=True))

    assert outcome is DispatchOutcome.FOREIGN
    assert seen == [True]


def test_foreign_listener_is_removed_only_by_its_owner() -> None:
    sync = _sync()
    replaced: list[object] = []
    current: list[object] = []
    sync.register_foreign_change_listener("gpio.0.17", replaced.append)
    sync.register_foreign_change_listener("gpio.0.17", current.append)

    assert sync.remove_foreign_change_listener("gpio.0.17", replaced.append) is False
    assert sync.has_foreign_change_listener("gpio.0.17")
    sync.on_state_change("gpio.0.17", StateValue(val=True))
    assert current == [True]

    assert sync.remove_foreign_change_listener("gpio.0.17", current.append) is True
    assert not sync.has_foreign_change_listener("gpio.0.17")


def test_ack_echo_is_ignored() -> None:
    sync = _sync()
    calls: list[object] = []
    sync.register_local_change_listener("0x20.3", lambda old, new: calls.append(new))

    assert sync.on_state_change("i2c.0.0x20.3", StateValue(val=True, ack=True)) is DispatchOutcome.ACK_ECHO
    assert calls == []


def test_unsupported_change_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    sync = _sync()
    with caplog.at_level(logging.ERROR):
        outcome = sync.on_state_change("i2c.0.0x21.0", StateValue(val=True))
    assert outcome is DispatchOutcome.UNSUPPORTED
    assert "Unsupported state change: i2c.0.0x21.0" in caplog.text


def test_deleted_state_is_ignored() -> None:
    assert _sync().on_state_change("i2c.0.0x20.0", None) is DispatchOutcome.DELETED


def test_store_notifications_reach_listeners() -> None:
    store = InMemoryStateStore("i2c.0")
    sync = StateSync(store)
    store.add_change_listener(sync.on_state_change)
    store.subscribe_states("*")
    calls: list[object] = []
    sync.register_local_change_listener("0x20.0", lambda old, new: calls.append(new))

    store.set_state("0x20.0", True, ack=False)
    store.set_state("0x20.1", True, ack=True)

    assert calls == [True]


def test_hex_formatting() -> None:
    assert to_hex_string(0x20) == "0x20"
    assert to_hex_string(7) == "0x07"
    assert to_hex_string(0xABC, 4) == "0x0ABC"
    assert parse_int("0x20") == 32
    assert parse_int("32") == 32
    assert parse_int(5) == 5

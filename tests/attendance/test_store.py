from __future__ import annotations

import asyncio

import pytest

from conftest import DAY, GROUP, make_snapshot
from src.yomyom_attendance.yomyom_attendance.attendance.model import FetchKey
from src.yomyom_attendance.yomyom_attendance.core.enums import WireStatus
from src.yomyom_attendance.yomyom_attendance.core.exceptions import TransportError, ValidationError


def test_fetch_stores_snapshot_and_key(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    issued = asyncio.run(store.fetch(GROUP, DAY))

    assert issued is True
    assert store.snapshot == make_snapshot()
    assert store.key == FetchKey(GROUP, DAY)
    assert store.error is None
    assert store.is_loading is False


def test_repeated_fetch_is_a_cache_hit(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    async def scenario():
        await store.fetch(GROUP, DAY)
        return await store.fetch(GROUP, DAY)

    assert asyncio.run(scenario()) is False
    assert transport.reads == [(GROUP, DAY)]


def test_second_fetch_is_dropped_while_first_is_in_flight(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    async def scenario():
        transport.read_gate = asyncio.Event()
        first = asyncio.create_task(store.fetch(GROUP, DAY))
        await asyncio.sleep(0)
        assert store.is_loading
        second = await store.fetch("group-2", "2024-01-16")
        transport.read_gate.set()
        await first
        return second

    assert asyncio.run(scenario()) is False
    assert transport.reads == [(GROUP, DAY)]
    assert store.key == FetchKey(GROUP, DAY)


def test_fetch_empty_day_is_not_an_error(store, transport):
    asyncio.run(store.fetch("group-1", "2024-01-15"))

    assert store.snapshot is None
    assert store.error is None
    assert store.key == FetchKey("group-1", "2024-01-15")


def test_fetch_transport_error_keeps_previous_snapshot(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()
    asyncio.run(store.fetch(GROUP, DAY))

    transport.read_error = TransportError("boom", status_code=500)
    asyncio.run(store.fetch("group-1", "2024-01-16"))

    assert store.error == "boom"
    assert store.snapshot == make_snapshot()
    assert store.key == FetchKey(GROUP, DAY)
    assert store.is_loading is False


def test_fetch_rejects_empty_arguments(store):
    with pytest.raises(ValidationError):
        asyncio.run(store.fetch("", DAY))
    with pytest.raises(ValidationError):
        asyncio.run(store.fetch(GROUP, ""))


def test_bulk_update_replaces_snapshot(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()
    asyncio.run(store.fetch(GROUP, DAY))
    updated = store.snapshot.with_child_status("c1", "arrived", timestamp="now")

    asyncio.run(store.update("group-1", "2024-01-15", updated))

    assert store.snapshot.child("c1").status == WireStatus.ARRIVED
    assert transport.writes == [(GROUP, DAY, updated)]
    assert store.error is None


def test_failed_update_leaves_state_and_reraises(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()
    asyncio.run(store.fetch(GROUP, DAY))
    before = store.snapshot
    transport.write_error = TransportError("write failed")

    with pytest.raises(TransportError):
        asyncio.run(store.update(GROUP, DAY, before.with_child_status("c1", "arrived", timestamp="now")))

    assert store.snapshot is before
    assert store.error == "write failed"


def test_refresh_bypasses_cache_hit(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    async def scenario():
        await store.fetch(GROUP, DAY)
        transport.snapshots[(GROUP, DAY)] = make_snapshot({"c1": "Arrived", "c2": "Unreported"})
        return await store.refresh()

    assert asyncio.run(scenario()) is True
    assert len(transport.reads) == 2
    assert store.snapshot.child("c1").status == WireStatus.ARRIVED


def test_refresh_without_key_is_noop(store, transport):
    assert asyncio.run(store.refresh()) is False
    assert transport.reads == []


def test_clear_drops_everything(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()
    asyncio.run(store.fetch(GROUP, DAY))

    store.clear()

    assert store.snapshot is None
    assert store.key is None
    assert store.error is None


def test_completion_after_clear_is_discarded(store, transport):
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    async def scenario():
        transport.read_gate = asyncio.Event()
        pending = asyncio.create_task(store.fetch(GROUP, DAY))
        await asyncio.sleep(0)
        store.clear()
        transport.read_gate.set()
        await pending

    asyncio.run(scenario())

    assert store.snapshot is None
    assert store.key is None
    assert store.is_loading is False


def test_update_completion_after_clear_is_discarded(store, transport):
    async def scenario():
        transport.write_gate = asyncio.Event()
        pending = asyncio.create_task(store.update(GROUP, DAY, make_snapshot()))
        await asyncio.sleep(0)
        store.clear()
        transport.write_gate.set()
        await pending

    asyncio.run(scenario())

    assert store.snapshot is None
    assert store.key is None


def test_init_fetches_today_once(store, transport, monkeypatch):
    from src.yomyom_attendance.yomyom_attendance.attendance import store as store_module

    monkeypatch.setattr(store_module, "today_iso", lambda: DAY)

    async def scenario():
        await store.init(GROUP)
        await store.init(GROUP)

    asyncio.run(scenario())
    assert transport.reads == [(GROUP, DAY)]

    store.clear()
    asyncio.run(store.init(GROUP))
    assert len(transport.reads) == 2


def test_listeners_see_every_canonical_change(store, transport):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    transport.snapshots[(GROUP, DAY)] = make_snapshot()

    asyncio.run(store.fetch(GROUP, DAY))
    store.clear()
    unsubscribe()
    asyncio.run(store.fetch(GROUP, DAY))

    assert seen == [make_snapshot(), None]


def test_closed_snapshot_is_reported_to_gate(store, transport, gate):
    transport.snapshots[(GROUP, DAY)] = make_snapshot(is_closed=True)
    asyncio.run(store.fetch(GROUP, DAY))
    assert gate.is_closed(FetchKey(GROUP, DAY))
